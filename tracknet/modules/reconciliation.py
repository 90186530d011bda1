"""
Connection reconciliation module.
Queues cross-cell joins until both cells exist and hands them to the host's connector.
"""
import threading
import time
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Set, Tuple

from ..core.cell_data import CellCoordinate, Direction, PendingConnection, Position, CELL_SIZE
from ..config.settings import ReconciliationConfig


CENTER = CELL_SIZE // 2
LAST = CELL_SIZE - 1


def boundary_column(coord: CellCoordinate, direction: Direction, inward: int = 0) -> Tuple[int, int]:
    """World x/z of the edge midpoint on one side of a cell, moved inward."""
    origin_x, origin_z = coord.origin()
    if direction is Direction.NORTH:
        return origin_x + CENTER, origin_z + inward
    if direction is Direction.SOUTH:
        return origin_x + CENTER, origin_z + LAST - inward
    if direction is Direction.EAST:
        return origin_x + LAST - inward, origin_z + CENTER
    return origin_x + inward, origin_z + CENTER


def band_range(band: Tuple[int, int]) -> range:
    low, high = band
    if low <= high:
        return range(low, high + 1)
    return range(low, high - 1, -1)


def find_track_height(world, x: int, z: int, bands: Iterable[Tuple[int, int]]) -> Optional[int]:
    """Search the bands in order for track in a column."""
    for band in bands:
        for y in band_range(band):
            found = world.track_exists_at(x, y, z)
            if found is not None:
                return found
    return None


class TrackCellRegistry:
    """Cells known to hold placed track."""

    def __init__(self):
        self._cells: Set[CellCoordinate] = set()
        self._lock = threading.Lock()

    def mark(self, coord: CellCoordinate):
        with self._lock:
            self._cells.add(coord)

    def unmark(self, coord: CellCoordinate):
        with self._lock:
            self._cells.discard(coord)

    def has_track(self, coord: CellCoordinate) -> bool:
        return coord in self._cells

    def clear(self):
        with self._lock:
            self._cells.clear()

    def __len__(self) -> int:
        return len(self._cells)


class ConnectionProcessor:
    """
    Joins track across one boundary through the host's connector.

    The connector must provide ``connect(anchor_a, anchor_b, direction) -> bool``.
    """

    def __init__(self, config: ReconciliationConfig, connector):
        self.config = config
        self.connector = connector

    @property
    def bands(self) -> List[Tuple[int, int]]:
        return [self.config.primary_band, self.config.upper_band, self.config.lower_band]

    def min_run(self, delta: int) -> int:
        run = delta * 4 if delta < 4 else delta * 3
        return max(run, self.config.min_connection_run)

    def find_anchor(self, world, coord: CellCoordinate, direction: Direction) -> Optional[Position]:
        """Locate track at a cell's boundary, looking a few columns inward."""
        for inward in range(self.config.anchor_search_depth + 1):
            x, z = boundary_column(coord, direction, inward)
            y = find_track_height(world, x, z, self.bands)
            if y is not None:
                return Position(x, y, z)
        return None

    def find_anchor_near(self, world, coord: CellCoordinate, direction: Direction,
                         inward: int, height: int) -> Optional[Position]:
        """Locate track a given distance inside a cell, close to an expected height."""
        x, z = boundary_column(coord, direction, min(inward, LAST))
        for offset in range(self.config.anchor_window + 1):
            candidates = (height + offset, height - offset) if offset else (height,)
            for y in candidates:
                found = world.track_exists_at(x, y, z)
                if found is not None:
                    return Position(x, found, z)
        return None

    def process(self, world, pending: PendingConnection) -> bool:
        """
        Try to connect the track on both sides of a boundary.

        Args:
            world: Host world accessor
            pending: Connection to process

        Returns:
            bool: False only when the connector reports failure
        """
        boundary_a = self.find_anchor(world, pending.cell_a, pending.direction)
        boundary_b = self.find_anchor(world, pending.cell_b, pending.direction.opposite)
        if boundary_a is None or boundary_b is None:
            print(f"  → No boundary track for {pending.identity}, skipping")
            return True

        delta = abs(boundary_b.y - boundary_a.y)
        if delta == 0:
            return True

        inward = self.min_run(delta) // 2
        anchor_a = self.find_anchor_near(world, pending.cell_a, pending.direction, inward, boundary_a.y)
        anchor_b = self.find_anchor_near(world, pending.cell_b, pending.direction.opposite, inward, boundary_b.y)
        if anchor_a is None or anchor_b is None:
            print(f"  → No inner anchors for {pending.identity}, skipping")
            return True

        return bool(self.connector.connect(anchor_a, anchor_b, pending.direction))


class ConnectionQueue:
    """
    Pending cross-cell connections for one world namespace.
    """

    def __init__(self, config: ReconciliationConfig, clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock
        self._queue: Deque[PendingConnection] = deque()
        self._pending_ids: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._processed: Set[str] = set()
        self._lock = threading.Lock()

        self.total_added = 0
        self.total_processed = 0
        self.total_failed = 0
        self.total_expired = 0

    def add_pending(self, connection: PendingConnection) -> bool:
        """
        Queue a connection unless it is already queued or processed.

        Returns:
            bool: True when the connection was queued
        """
        identity = connection.identity
        with self._lock:
            if self._known(identity):
                return False
            self._queue.append(connection)
            self._pending_ids.add(identity)
            self.total_added += 1
            report = self.total_added % self.config.stats_interval == 0

        if report:
            self.print_stats()
        return True

    def drain(self, world, processor: ConnectionProcessor, batch_size: Optional[int] = None) -> int:
        """
        Work through up to ``batch_size`` queued connections.

        Connections whose cells are not both materialized go back on the
        queue until they grow older than the maximum age, then are dropped.

        Returns:
            int: Number of connections processed
        """
        if batch_size is None:
            batch_size = self.config.tick_batch_size

        with self._lock:
            limit = min(batch_size, len(self._queue))

        processed = 0
        for _ in range(limit):
            with self._lock:
                if not self._queue:
                    break
                connection = self._queue.popleft()
                # Stays known while in flight so the mirror side cannot requeue it
                self._pending_ids.discard(connection.identity)
                self._in_flight.add(connection.identity)

            if not (world.cell_is_materialized(connection.cell_a) and
                    world.cell_is_materialized(connection.cell_b)):
                self._defer(connection)
                continue

            try:
                if not processor.process(world, connection):
                    self._count_failure()
                    print(f"Warning: Could not connect {connection.identity}")
            except Exception as e:
                self._count_failure()
                print(f"Error connecting {connection.identity}: {e}")
            finally:
                with self._lock:
                    self._processed.add(connection.identity)
                    self._in_flight.discard(connection.identity)
                    self.total_processed += 1
                processed += 1

        return processed

    def flush(self, world, processor: ConnectionProcessor) -> int:
        """Drain in large batches until a batch makes no progress."""
        total = 0
        for _ in range(self.config.flush_max_batches):
            processed = self.drain(world, processor, self.config.flush_batch_size)
            total += processed
            if processed == 0:
                break
        if total:
            print(f"  → Flushed {total} pending connections")
        return total

    def is_processed(self, identity: str) -> bool:
        return identity in self._processed

    def is_pending(self, identity: str) -> bool:
        return identity in self._pending_ids or identity in self._in_flight

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def processed_count(self) -> int:
        return len(self._processed)

    def get_statistics(self):
        return {
            'pending': self.pending_count,
            'processed': self.processed_count,
            'added': self.total_added,
            'failed': self.total_failed,
            'expired': self.total_expired
        }

    def print_stats(self):
        stats = self.get_statistics()
        print(f"Connection queue: {stats['pending']} pending, {stats['processed']} processed, "
              f"{stats['expired']} expired")

    def clear(self):
        with self._lock:
            self._queue.clear()
            self._pending_ids.clear()
            self._in_flight.clear()
            self._processed.clear()

    def _known(self, identity: str) -> bool:
        return identity in self._processed or identity in self._pending_ids or identity in self._in_flight

    def _count_failure(self):
        with self._lock:
            self.total_failed += 1

    def _defer(self, connection: PendingConnection):
        identity = connection.identity
        fresh = connection.age(self.clock()) < self.config.max_age_seconds
        with self._lock:
            self._in_flight.discard(identity)
            if fresh:
                if not self._known(identity):
                    self._queue.append(connection)
                    self._pending_ids.add(identity)
                return
            self.total_expired += 1

        print(f"Warning: Dropping stale connection {identity}")


class BoundaryScanner:
    """
    Finds elevation mismatches between a cell and its materialized neighbors.
    """

    def __init__(self, config: ReconciliationConfig, registry: TrackCellRegistry,
                 queue: ConnectionQueue):
        self.config = config
        self.registry = registry
        self.queue = queue

    @property
    def bands(self) -> List[Tuple[int, int]]:
        return [self.config.primary_band, self.config.upper_band, self.config.lower_band]

    def boundary_height(self, world, coord: CellCoordinate, direction: Direction) -> Optional[int]:
        x, z = boundary_column(coord, direction)
        return find_track_height(world, x, z, self.bands)

    def scan(self, world, coord: CellCoordinate) -> int:
        """
        Queue a connection for every side whose neighbor's track meets this
        cell's track at a different elevation.

        Returns:
            int: Number of connections queued
        """
        if not self.registry.has_track(coord):
            return 0

        queued = 0
        for direction in Direction:
            neighbor = coord.neighbor(direction)
            if not world.cell_is_materialized(neighbor) or not self.registry.has_track(neighbor):
                continue

            height = self.boundary_height(world, coord, direction)
            neighbor_height = self.boundary_height(world, neighbor, direction.opposite)
            if height is None or neighbor_height is None or height == neighbor_height:
                continue

            connection = PendingConnection(
                cell_a=coord,
                cell_b=neighbor,
                direction=direction,
                height_a=height,
                height_b=neighbor_height,
                created_at=self.queue.clock()
            )
            if self.queue.add_pending(connection):
                queued += 1
        return queued
