"""
Network topology module.
Decides, deterministically and independently per cell, which track feature a cell holds.
"""
import random
import threading
from typing import Dict, Set, Tuple, Optional, Callable, FrozenSet
from noise import pnoise2

from ..core.cell_data import (
    CellCoordinate, CellKind, Direction, FlowMask, NetworkCell, Position
)
from ..config.settings import NetworkConfig


SEED_MASK = (1 << 64) - 1

PLATFORM_MIN = 4
PLATFORM_MAX = 11

_N, _S, _E, _W = Direction.NORTH, Direction.SOUTH, Direction.EAST, Direction.WEST

# Connected sides -> derived kind and flow for locally resolved cells
_DERIVED_KINDS: Dict[FrozenSet[Direction], Tuple[CellKind, FlowMask]] = {
    frozenset({_N, _S}): (CellKind.STRAIGHT_NS, FlowMask.NORTH_SOUTH),
    frozenset({_E, _W}): (CellKind.STRAIGHT_EW, FlowMask.EAST_WEST),
    frozenset({_N, _E}): (CellKind.CURVE_NE, FlowMask.ALL),
    frozenset({_N, _W}): (CellKind.CURVE_NW, FlowMask.ALL),
    frozenset({_S, _E}): (CellKind.CURVE_SE, FlowMask.ALL),
    frozenset({_S, _W}): (CellKind.CURVE_SW, FlowMask.ALL),
    frozenset({_S, _E, _W}): (CellKind.JUNCTION_3WAY_N, FlowMask.ALL),
    frozenset({_N, _E, _W}): (CellKind.JUNCTION_3WAY_S, FlowMask.ALL),
    frozenset({_N, _S, _W}): (CellKind.JUNCTION_3WAY_E, FlowMask.ALL),
    frozenset({_N, _S, _E}): (CellKind.JUNCTION_3WAY_W, FlowMask.ALL),
    frozenset({_N, _S, _E, _W}): (CellKind.JUNCTION_4WAY, FlowMask.ALL),
}

_ASCII_SYMBOLS = {
    CellKind.NONE: '.',
    CellKind.STRAIGHT_NS: '|',
    CellKind.STRAIGHT_EW: '-',
    CellKind.CURVE_NE: '\\',
    CellKind.CURVE_SW: '\\',
    CellKind.CURVE_NW: '/',
    CellKind.CURVE_SE: '/',
    CellKind.JUNCTION_4WAY: '+',
    CellKind.STATION: 'S',
    CellKind.BRIDGE_NS: '=',
    CellKind.BRIDGE_EW: '=',
    CellKind.TUNNEL_NS: '#',
    CellKind.TUNNEL_EW: '#',
}


def station_platforms(coord: CellCoordinate, height: int) -> Tuple[Position, ...]:
    """Platform positions for a station cell, one level below the track."""
    origin_x, origin_z = coord.origin()
    return tuple(
        Position(origin_x + lx, height - 1, origin_z + lz)
        for lx in range(PLATFORM_MIN, PLATFORM_MAX + 1)
        for lz in range(PLATFORM_MIN, PLATFORM_MAX + 1)
    )


def derive_cell(connected, height: int) -> NetworkCell:
    """Single-lane cell joining the given sides, or none for fewer than two."""
    derived = _DERIVED_KINDS.get(frozenset(connected))
    if derived is None:
        return NetworkCell.empty(height)
    kind, flow = derived
    return NetworkCell(kind, flow, height, 1)


def ascii_symbol(kind: CellKind) -> str:
    if kind in _ASCII_SYMBOLS:
        return _ASCII_SYMBOLS[kind]
    if kind.is_junction:
        return 'T'
    if kind.is_incline:
        return '^' if kind.value.startswith('incline_up') else 'v'
    return '?'


class TopologyGenerator:
    """
    Generates the base network decision for any cell.

    Decisions depend only on the world seed, the configuration and the
    coordinate. Results are memoized per coordinate.
    """

    def __init__(self, config: NetworkConfig, seed: int,
                 noise_fn: Optional[Callable[[float, float], float]] = None):
        """
        Args:
            config: Network topology configuration
            seed: World seed
            noise_fn: Optional 2D noise function returning values in [-1, 1]
        """
        self.config = config
        self.seed = (seed + config.seed_offset) & SEED_MASK
        self.noise_fn = noise_fn or self._perlin
        self._cells: Dict[CellCoordinate, NetworkCell] = {}
        self._lock = threading.Lock()

    def get_cell(self, coord: CellCoordinate) -> NetworkCell:
        """
        Get the base network decision for a cell.

        Args:
            coord: Cell coordinate

        Returns:
            NetworkCell: Memoized decision
        """
        return self._lookup(coord, set())

    def clear_cache(self):
        """Drop every memoized decision."""
        with self._lock:
            self._cells.clear()

    @property
    def cached_count(self) -> int:
        return len(self._cells)

    def grid_position(self, coord: CellCoordinate) -> Tuple[int, int]:
        spacing = self.config.station_spacing
        return ((coord.x + 1) % spacing, (coord.z + 1) % spacing)

    def is_station_location(self, coord: CellCoordinate) -> bool:
        gx, gz = self.grid_position(coord)
        lines = self._grid_lines()
        return gx in lines and gz in lines

    def is_on_major_route(self, coord: CellCoordinate) -> bool:
        gx, gz = self.grid_position(coord)
        lines = self._grid_lines()
        return gx in lines or gz in lines

    def density_value(self, coord: CellCoordinate) -> float:
        """Noise sample mapped into [0, 1]."""
        period = self.config.density_period
        value = self.noise_fn(coord.x / period, coord.z / period)
        return (value + 1.0) / 2.0

    def render_ascii(self, min_x: int, min_z: int, max_x: int, max_z: int) -> str:
        """Debug map of base decisions, one row per z."""
        rows = []
        for z in range(min_z, max_z + 1):
            row = ''.join(
                ascii_symbol(self.get_cell(CellCoordinate(x, z)).kind)
                for x in range(min_x, max_x + 1)
            )
            rows.append(row)
        return '\n'.join(rows)

    def _grid_lines(self) -> Tuple[int, int]:
        return (0, self.config.station_spacing // 2)

    def _perlin(self, x: float, z: float) -> float:
        return pnoise2(x, z, octaves=self.config.noise_octaves,
                       repeatx=65536, repeaty=65536, base=self.seed % 256)

    def _cell_random(self, coord: CellCoordinate) -> random.Random:
        cell_seed = (self.seed * 31 + coord.x) & SEED_MASK
        cell_seed = (cell_seed * 31 + coord.z) & SEED_MASK
        return random.Random(cell_seed)

    def _lookup(self, coord: CellCoordinate, resolving: Set[CellCoordinate]) -> NetworkCell:
        # Inside a resolution only grid-level decisions are read back, so a
        # neighbor's locally resolved result never leaks into another cell.
        # Off-grid neighbors therefore read as none, and route cells only face
        # along their own line, so with the default grid local resolution
        # never yields track. Branches appear only when a lookup is overridden.
        if not resolving or self.is_on_major_route(coord):
            cached = self._cells.get(coord)
            if cached is not None:
                return cached

        cell, complete = self._compute(coord, resolving)
        if complete:
            with self._lock:
                cell = self._cells.setdefault(coord, cell)
        return cell

    def _compute(self, coord: CellCoordinate,
                 resolving: Set[CellCoordinate]) -> Tuple[NetworkCell, bool]:
        config = self.config
        if not config.enabled:
            return NetworkCell.empty(config.default_track_height), True

        gx, gz = self.grid_position(coord)
        lines = self._grid_lines()
        on_ns_route = gx in lines
        on_ew_route = gz in lines

        if not (on_ns_route or on_ew_route):
            if self.density_value(coord) <= 1.0 - config.network_density:
                return NetworkCell.empty(config.default_track_height), True

        rng = self._cell_random(coord)
        height = config.default_track_height

        if on_ns_route and on_ew_route and config.stations_enabled:
            if rng.random() < config.station_chance:
                return NetworkCell(
                    kind=CellKind.STATION,
                    flow=FlowMask.ALL,
                    placement_height=height,
                    lane_count=config.lanes,
                    platform_positions=station_platforms(coord, height)
                ), True

        if on_ns_route:
            return NetworkCell(CellKind.STRAIGHT_NS, FlowMask.NORTH_SOUTH, height, config.lanes), True
        if on_ew_route:
            return NetworkCell(CellKind.STRAIGHT_EW, FlowMask.EAST_WEST, height, config.lanes), True

        if resolving:
            # Nested lookups never resolve locally; the answer is not final
            return NetworkCell.empty(height), False

        return self._resolve_locally(coord, rng, resolving), True

    def _resolve_locally(self, coord: CellCoordinate, rng: random.Random,
                         resolving: Set[CellCoordinate]) -> NetworkCell:
        height = self.config.default_track_height
        if rng.random() >= self.config.branch_chance:
            return NetworkCell.empty(height)

        resolving.add(coord)
        try:
            connected = set()
            for direction in Direction:
                neighbor = self._lookup(coord.neighbor(direction), resolving)
                if neighbor.connects(direction.opposite):
                    connected.add(direction)
        finally:
            resolving.discard(coord)

        return derive_cell(connected, height)
