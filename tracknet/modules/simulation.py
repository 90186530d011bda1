"""
Simulated host world.
Stands in for a real world pipeline: tracks materialized cells and placed track.
"""
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..core.cell_data import CellCoordinate, CellPlan, Direction, Position
from .inclines import InclineBuilder


class SimulatedWorld:
    """
    World accessor backed by a terrain and in-memory track storage.
    """

    def __init__(self, terrain):
        self.terrain = terrain
        self._materialized: Set[CellCoordinate] = set()
        self._tracks: Dict[Tuple[int, int], Set[int]] = {}

    def sample_surface_height(self, x: int, z: int) -> int:
        return self.terrain.sample_surface_height(x, z)

    def sample_floor_height(self, x: int, z: int) -> int:
        return self.terrain.sample_floor_height(x, z)

    def is_liquid_at(self, x: int, y: int, z: int) -> bool:
        return self.terrain.is_liquid_at(x, y, z)

    def materialize(self, coord: CellCoordinate):
        self._materialized.add(coord)

    def cell_is_materialized(self, coord: CellCoordinate) -> bool:
        return coord in self._materialized

    def place_positions(self, positions: Iterable[Position]) -> int:
        placed = 0
        for position in positions:
            column = self._tracks.setdefault((position.x, position.z), set())
            if position.y not in column:
                column.add(position.y)
                placed += 1
        return placed

    def place_plan(self, plan: CellPlan) -> int:
        """Materialize a cell and store its track positions."""
        self.materialize(plan.coordinate)
        return self.place_positions(plan.track_positions())

    def track_exists_at(self, x: int, y: int, z: int) -> Optional[int]:
        column = self._tracks.get((x, z))
        if column and y in column:
            return y
        return None

    @property
    def track_count(self) -> int:
        return sum(len(column) for column in self._tracks.values())


class RecordingConnector:
    """
    Connector that records every join and, given an incline builder, lays the
    connecting incline into the simulated world.
    """

    def __init__(self, world: Optional[SimulatedWorld] = None, inclines: Optional[InclineBuilder] = None):
        self.world = world
        self.inclines = inclines
        self.connections: List[Tuple[Position, Position, Direction]] = []

    def connect(self, anchor_a: Position, anchor_b: Position, direction: Direction) -> bool:
        self.connections.append((anchor_a, anchor_b, direction))
        if self.world is None or self.inclines is None:
            return True
        segments = self.inclines.build_incline(anchor_a, anchor_b, direction)
        self.world.place_positions(s.position for s in segments)
        return bool(segments)
