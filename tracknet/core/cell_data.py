"""
Core data structures for the track network generator.
Defines cell coordinates, cell decisions, height profiles and geometry segments.
"""
import math
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple, FrozenSet
from dataclasses import dataclass, field
import numpy as np


CELL_SIZE = 16
CELL_AREA = CELL_SIZE * CELL_SIZE


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


class Direction(Enum):
    """Cardinal directions on the cell grid. North is -z."""
    NORTH = (0, -1)
    SOUTH = (0, 1)
    EAST = (1, 0)
    WEST = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dz(self) -> int:
        return self.value[1]

    @property
    def opposite(self) -> 'Direction':
        return _OPPOSITES[self]

    @property
    def axis(self) -> str:
        return 'ns' if self.dx == 0 else 'ew'

    def is_perpendicular(self, other: 'Direction') -> bool:
        return self.axis != other.axis


_OPPOSITES = {
    Direction.NORTH: Direction.SOUTH,
    Direction.SOUTH: Direction.NORTH,
    Direction.EAST: Direction.WEST,
    Direction.WEST: Direction.EAST,
}

ALL_DIRECTIONS: FrozenSet[Direction] = frozenset(Direction)


@dataclass(frozen=True)
class CellCoordinate:
    """Immutable (x, z) cell coordinate."""
    x: int
    z: int

    def neighbor(self, direction: Direction) -> 'CellCoordinate':
        return CellCoordinate(self.x + direction.dx, self.z + direction.dz)

    def origin(self) -> Tuple[int, int]:
        """World x/z of the cell's north-west corner."""
        return (self.x * CELL_SIZE, self.z * CELL_SIZE)

    def key(self) -> str:
        return f"{self.x},{self.z}"

    @classmethod
    def containing(cls, world_x: int, world_z: int) -> 'CellCoordinate':
        return cls(world_x // CELL_SIZE, world_z // CELL_SIZE)


@dataclass(frozen=True)
class Position:
    """Integer world position."""
    x: int
    y: int
    z: int

    def offset(self, dx: int = 0, dy: int = 0, dz: int = 0) -> 'Position':
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def to_tuple(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)


class FlowMask(Enum):
    """Permitted travel directions through a cell."""
    NORTH = frozenset({Direction.NORTH})
    SOUTH = frozenset({Direction.SOUTH})
    EAST = frozenset({Direction.EAST})
    WEST = frozenset({Direction.WEST})
    NORTH_SOUTH = frozenset({Direction.NORTH, Direction.SOUTH})
    EAST_WEST = frozenset({Direction.EAST, Direction.WEST})
    ALL = ALL_DIRECTIONS

    def allows(self, direction: Direction) -> bool:
        return direction in self.value

    @property
    def allows_north(self) -> bool:
        return self.allows(Direction.NORTH)

    @property
    def allows_south(self) -> bool:
        return self.allows(Direction.SOUTH)

    @property
    def allows_east(self) -> bool:
        return self.allows(Direction.EAST)

    @property
    def allows_west(self) -> bool:
        return self.allows(Direction.WEST)

    @property
    def is_bidirectional(self) -> bool:
        return len(self.value) > 1


class CellKind(Enum):
    """Track feature occupying a cell."""
    NONE = 'none'
    STRAIGHT_NS = 'straight_ns'
    STRAIGHT_EW = 'straight_ew'
    CURVE_NE = 'curve_ne'
    CURVE_NW = 'curve_nw'
    CURVE_SE = 'curve_se'
    CURVE_SW = 'curve_sw'
    # 3-way junctions are named for their missing side
    JUNCTION_3WAY_N = 'junction_3way_n'
    JUNCTION_3WAY_S = 'junction_3way_s'
    JUNCTION_3WAY_E = 'junction_3way_e'
    JUNCTION_3WAY_W = 'junction_3way_w'
    JUNCTION_4WAY = 'junction_4way'
    STATION = 'station'
    BRIDGE_NS = 'bridge_ns'
    BRIDGE_EW = 'bridge_ew'
    TUNNEL_NS = 'tunnel_ns'
    TUNNEL_EW = 'tunnel_ew'
    INCLINE_UP_N = 'incline_up_n'
    INCLINE_UP_S = 'incline_up_s'
    INCLINE_UP_E = 'incline_up_e'
    INCLINE_UP_W = 'incline_up_w'
    INCLINE_DOWN_N = 'incline_down_n'
    INCLINE_DOWN_S = 'incline_down_s'
    INCLINE_DOWN_E = 'incline_down_e'
    INCLINE_DOWN_W = 'incline_down_w'

    @property
    def sides(self) -> FrozenSet[Direction]:
        """Sides of the cell the feature's geometry reaches."""
        return _KIND_SIDES[self]

    @property
    def is_straight(self) -> bool:
        return self in (CellKind.STRAIGHT_NS, CellKind.STRAIGHT_EW)

    @property
    def is_curve(self) -> bool:
        return self in _CURVE_KINDS

    @property
    def is_junction(self) -> bool:
        return self.value.startswith('junction')

    @property
    def is_bridge(self) -> bool:
        return self in (CellKind.BRIDGE_NS, CellKind.BRIDGE_EW)

    @property
    def is_tunnel(self) -> bool:
        return self in (CellKind.TUNNEL_NS, CellKind.TUNNEL_EW)

    @property
    def is_incline(self) -> bool:
        return self.value.startswith('incline')

    @property
    def incline_direction(self) -> Optional[Direction]:
        if not self.is_incline:
            return None
        return _SUFFIX_DIRECTIONS[self.value[-1]]


_NS = frozenset({Direction.NORTH, Direction.SOUTH})
_EW = frozenset({Direction.EAST, Direction.WEST})
_SUFFIX_DIRECTIONS = {'n': Direction.NORTH, 's': Direction.SOUTH, 'e': Direction.EAST, 'w': Direction.WEST}

_CURVE_KINDS = {
    CellKind.CURVE_NE: frozenset({Direction.NORTH, Direction.EAST}),
    CellKind.CURVE_NW: frozenset({Direction.NORTH, Direction.WEST}),
    CellKind.CURVE_SE: frozenset({Direction.SOUTH, Direction.EAST}),
    CellKind.CURVE_SW: frozenset({Direction.SOUTH, Direction.WEST}),
}

_KIND_SIDES: Dict[CellKind, FrozenSet[Direction]] = {
    CellKind.NONE: frozenset(),
    CellKind.STRAIGHT_NS: _NS,
    CellKind.STRAIGHT_EW: _EW,
    **_CURVE_KINDS,
    CellKind.JUNCTION_3WAY_N: ALL_DIRECTIONS - {Direction.NORTH},
    CellKind.JUNCTION_3WAY_S: ALL_DIRECTIONS - {Direction.SOUTH},
    CellKind.JUNCTION_3WAY_E: ALL_DIRECTIONS - {Direction.EAST},
    CellKind.JUNCTION_3WAY_W: ALL_DIRECTIONS - {Direction.WEST},
    CellKind.JUNCTION_4WAY: ALL_DIRECTIONS,
    CellKind.STATION: ALL_DIRECTIONS,
    CellKind.BRIDGE_NS: _NS,
    CellKind.BRIDGE_EW: _EW,
    CellKind.TUNNEL_NS: _NS,
    CellKind.TUNNEL_EW: _EW,
    CellKind.INCLINE_UP_N: _NS,
    CellKind.INCLINE_UP_S: _NS,
    CellKind.INCLINE_UP_E: _EW,
    CellKind.INCLINE_UP_W: _EW,
    CellKind.INCLINE_DOWN_N: _NS,
    CellKind.INCLINE_DOWN_S: _NS,
    CellKind.INCLINE_DOWN_E: _EW,
    CellKind.INCLINE_DOWN_W: _EW,
}

_unmapped = set(CellKind) - set(_KIND_SIDES)
if _unmapped:
    raise TypeError(f"Cell kinds without side mapping: {sorted(k.name for k in _unmapped)}")


@dataclass(frozen=True)
class NetworkCell:
    """The network's decision for a single cell."""
    kind: CellKind
    flow: FlowMask = FlowMask.ALL
    placement_height: int = 70
    lane_count: int = 1
    platform_positions: Tuple[Position, ...] = ()

    @classmethod
    def empty(cls, height: int = 70) -> 'NetworkCell':
        return cls(CellKind.NONE, FlowMask.ALL, height, 1, ())

    @property
    def has_track(self) -> bool:
        return self.kind is not CellKind.NONE

    def connects(self, direction: Direction) -> bool:
        return direction in self.kind.sides and self.flow.allows(direction)

    @property
    def connects_north(self) -> bool:
        return self.connects(Direction.NORTH)

    @property
    def connects_south(self) -> bool:
        return self.connects(Direction.SOUTH)

    @property
    def connects_east(self) -> bool:
        return self.connects(Direction.EAST)

    @property
    def connects_west(self) -> bool:
        return self.connects(Direction.WEST)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'flow': self.flow.name,
            'placement_height': self.placement_height,
            'lane_count': self.lane_count,
            'platforms': [p.to_tuple() for p in self.platform_positions],
            'connects': sorted(d.name for d in Direction if self.connects(d))
        }


@dataclass(frozen=True, eq=False)
class HeightProfile:
    """Surface heights of one cell, indexed [local_z, local_x]. Read-only once built."""
    heights: np.ndarray
    minimum: int
    maximum: int
    average: int
    flat_variation: int = 5
    rugged_variation: int = 15

    @classmethod
    def from_heights(cls, heights: np.ndarray, flat_variation: int = 5,
                     rugged_variation: int = 15) -> 'HeightProfile':
        heights = np.array(heights, dtype=np.int64)
        heights.setflags(write=False)
        return cls(
            heights=heights,
            minimum=int(heights.min()),
            maximum=int(heights.max()),
            average=int(heights.sum()) // heights.size,
            flat_variation=flat_variation,
            rugged_variation=rugged_variation
        )

    @property
    def variation(self) -> int:
        return self.maximum - self.minimum

    @property
    def is_flat(self) -> bool:
        return self.variation < self.flat_variation

    @property
    def is_rugged(self) -> bool:
        return self.variation > self.rugged_variation

    def height_at(self, local_x: int, local_z: int) -> int:
        """Height of a column, or the cell average outside the cell."""
        if 0 <= local_x < CELL_SIZE and 0 <= local_z < CELL_SIZE:
            return int(self.heights[local_z, local_x])
        return self.average

    def edge_heights(self, direction: Direction) -> np.ndarray:
        if direction is Direction.NORTH:
            return self.heights[0, :]
        if direction is Direction.SOUTH:
            return self.heights[CELL_SIZE - 1, :]
        if direction is Direction.EAST:
            return self.heights[:, CELL_SIZE - 1]
        return self.heights[:, 0]

    def edge_average(self, direction: Direction) -> int:
        edge = self.edge_heights(direction)
        return int(edge.sum()) // edge.size

    def directional_slope(self, flow: FlowMask) -> float:
        """Average rise per unit along the flow's axis."""
        if flow.allows_north or flow.allows_south:
            first, second = Direction.NORTH, Direction.SOUTH
        else:
            first, second = Direction.EAST, Direction.WEST
        return abs(self.edge_average(first) - self.edge_average(second)) / CELL_SIZE


class SegmentProfile(Enum):
    """Tags carried by geometry segments."""
    STRAIGHT_45 = 'straight45'
    S_CURVE = 'sCurve'
    ARC = 'arc'
    TRACK = 'track'
    DECK = 'deck'
    DECK_SUPPORT = 'deck_support'
    PILLAR = 'pillar'
    PLATFORM = 'platform'


@dataclass(frozen=True)
class GeometrySegment:
    """An ordered geometry point with its elevation and profile tag."""
    position: Position
    elevation: int
    profile: SegmentProfile
    direction: Optional[Direction] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': self.position.to_tuple(),
            'elevation': self.elevation,
            'profile': self.profile.value,
            'direction': self.direction.name if self.direction else None
        }


@dataclass
class PendingConnection:
    """A deferred request to join track across a cell boundary."""
    cell_a: CellCoordinate
    cell_b: CellCoordinate
    direction: Direction
    height_a: int
    height_b: int
    created_at: float = 0.0

    @property
    def identity(self) -> str:
        """Canonical id, lower coordinate first so both sides agree."""
        first, second = sorted((self.cell_a, self.cell_b), key=lambda c: (c.x, c.z))
        return f"{first.key()}->{second.key()}"

    @property
    def elevation_change(self) -> int:
        return abs(self.height_b - self.height_a)

    @property
    def is_ascending(self) -> bool:
        return self.height_b > self.height_a

    def age(self, now: float) -> float:
        return now - self.created_at


@dataclass
class CellPlan:
    """A terrain-adjusted cell decision together with its geometry."""
    coordinate: CellCoordinate
    cell: NetworkCell
    profile: Optional[HeightProfile] = None
    segments: List[GeometrySegment] = field(default_factory=list)

    def track_positions(self) -> List[Position]:
        return [s.position for s in self.segments
                if s.profile in (SegmentProfile.TRACK, SegmentProfile.ARC,
                                 SegmentProfile.STRAIGHT_45, SegmentProfile.S_CURVE)]
