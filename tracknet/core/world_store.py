"""
Per-namespace ownership of every track network cache.
"""
import threading
import time
from typing import Callable, Dict, List, Set

from .cell_data import CellCoordinate
from ..config.settings import TrackWorldConfig
from ..modules.height_profile import HeightProfileAnalyzer
from ..modules.topology import TopologyGenerator
from ..modules.reconciliation import ConnectionQueue, TrackCellRegistry


class WorldCaches:
    """All cached state belonging to one world namespace."""

    def __init__(self, namespace: str, config: TrackWorldConfig, terrain,
                 clock: Callable[[], float] = time.time):
        self.namespace = namespace
        self.config = config
        self.terrain = terrain
        self.topology = TopologyGenerator(config.network, config.seed)
        self.heights = HeightProfileAnalyzer(config.terrain, terrain)
        self.queue = ConnectionQueue(config.reconciliation, clock=clock)
        self.registry = TrackCellRegistry()
        self.scanned: Set[CellCoordinate] = set()

    def mark_scanned(self, coord: CellCoordinate) -> bool:
        """Record a scan; returns False if the cell was already scanned."""
        if coord in self.scanned:
            return False
        if len(self.scanned) >= self.config.reconciliation.max_scanned_cells:
            self.scanned.clear()
        self.scanned.add(coord)
        return True

    def clear(self):
        self.topology.clear_cache()
        self.heights.clear_cache()
        self.queue.clear()
        self.registry.clear()
        self.scanned.clear()


class WorldStore:
    """
    Injected store owning one set of caches per world namespace.
    """

    def __init__(self, config: TrackWorldConfig, clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock
        self._worlds: Dict[str, WorldCaches] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, terrain) -> WorldCaches:
        """Get the caches of a namespace, creating them on first use."""
        caches = self._worlds.get(namespace)
        if caches is not None:
            return caches
        with self._lock:
            if namespace not in self._worlds:
                self._worlds[namespace] = WorldCaches(namespace, self.config, terrain, self.clock)
            return self._worlds[namespace]

    def has(self, namespace: str) -> bool:
        return namespace in self._worlds

    @property
    def namespaces(self) -> List[str]:
        return sorted(self._worlds)

    def teardown(self, namespace: str) -> bool:
        """Clear and forget every cache of one namespace."""
        with self._lock:
            caches = self._worlds.pop(namespace, None)
        if caches is None:
            return False
        caches.clear()
        print(f"  → Released track network caches for '{namespace}'")
        return True

    def teardown_all(self):
        for namespace in self.namespaces:
            self.teardown(namespace)
