"""
Host-facing entry point for one world namespace.
Combines topology, terrain adjustment, geometry and reconciliation.
"""
from typing import Optional

from .cell_data import CellCoordinate, CellPlan, NetworkCell
from .world_store import WorldStore
from ..modules.placement import TerrainAdjuster
from ..modules.curves import CurveBuilder
from ..modules.inclines import InclineBuilder
from ..modules.bridges import BridgeBuilder
from ..modules.layout import CellLayoutPlanner
from ..modules.reconciliation import BoundaryScanner, ConnectionProcessor


class TrackNetwork:
    """
    Track network of one world namespace.

    The world accessor must provide ``sample_surface_height``,
    ``sample_floor_height``, ``is_liquid_at``, ``cell_is_materialized`` and
    ``track_exists_at``. The connector must provide ``connect``.
    """

    def __init__(self, store: WorldStore, world, connector=None, namespace: Optional[str] = None):
        self.store = store
        self.config = store.config
        self.namespace = namespace or self.config.namespace
        self.world = world
        self.caches = store.get(self.namespace, world)

        geometry = self.config.geometry
        self.adjuster = TerrainAdjuster(self.config.terrain)
        self.curves = CurveBuilder(geometry)
        self.inclines = InclineBuilder(geometry)
        self.bridges = BridgeBuilder(self.config.terrain, geometry, world)
        self.layout = CellLayoutPlanner(geometry, self.curves, self.inclines, self.bridges)

        self.processor = ConnectionProcessor(self.config.reconciliation, connector)
        self.scanner = BoundaryScanner(self.config.reconciliation, self.caches.registry, self.caches.queue)

    def base_cell(self, coord: CellCoordinate) -> NetworkCell:
        """Memoized decision before terrain adjustment."""
        return self.caches.topology.get_cell(coord)

    def decide_cell(self, coord: CellCoordinate) -> NetworkCell:
        """Terrain-adjusted decision with its final placement height."""
        cell = self.base_cell(coord)
        if not cell.has_track:
            return cell
        profile = self.caches.heights.get_profile(coord)
        return self.adjuster.adjust(coord, cell, profile)

    def plan_cell(self, coord: CellCoordinate) -> CellPlan:
        """
        Decide a cell and lay out its geometry.

        Args:
            coord: Cell coordinate

        Returns:
            CellPlan: Adjusted decision, height profile and geometry
        """
        cell = self.base_cell(coord)
        if not cell.has_track:
            return CellPlan(coord, cell)
        profile = self.caches.heights.get_profile(coord)
        adjusted = self.adjuster.adjust(coord, cell, profile)
        return CellPlan(coord, adjusted, profile, self.layout.plan(coord, adjusted))

    def mark_track_placed(self, coord: CellCoordinate):
        """Record that the host has placed track in a cell."""
        self.caches.registry.mark(coord)

    def on_cell_available(self, coord: CellCoordinate) -> int:
        """Scan a newly available cell's boundaries once."""
        if not self.caches.registry.has_track(coord):
            return 0
        if not self.caches.mark_scanned(coord):
            return 0
        return self.scanner.scan(self.world, coord)

    def on_tick(self) -> int:
        """Drain the per-tick batch of pending connections."""
        return self.caches.queue.drain(self.world, self.processor)

    def on_world_ready(self) -> int:
        """Flush pending connections once the world is ready."""
        return self.caches.queue.flush(self.world, self.processor)

    def teardown(self) -> bool:
        return self.store.teardown(self.namespace)
