"""
Cell layout module.
Turns a terrain-adjusted cell decision into the geometry a renderer places.
"""
from typing import List

from ..core.cell_data import (
    CellCoordinate, CellKind, Direction, GeometrySegment, NetworkCell, Position,
    SegmentProfile, CELL_SIZE
)
from ..config.settings import GeometryConfig
from .curves import CurveBuilder, CurveQuadrant
from .inclines import InclineBuilder
from .bridges import BridgeBuilder


CENTER = CELL_SIZE // 2
LAST = CELL_SIZE - 1

_CURVE_QUADRANTS = {
    CellKind.CURVE_NE: CurveQuadrant.NORTH_EAST,
    CellKind.CURVE_NW: CurveQuadrant.NORTH_WEST,
    CellKind.CURVE_SE: CurveQuadrant.SOUTH_EAST,
    CellKind.CURVE_SW: CurveQuadrant.SOUTH_WEST,
}


class CellLayoutPlanner:
    """
    Plans per-cell track geometry from a cell decision.
    """

    def __init__(self, config: GeometryConfig, curves: CurveBuilder,
                 inclines: InclineBuilder, bridges: BridgeBuilder):
        self.config = config
        self.curves = curves
        self.inclines = inclines
        self.bridges = bridges

    def plan(self, coord: CellCoordinate, cell: NetworkCell) -> List[GeometrySegment]:
        """
        Plan the geometry of one cell.

        Args:
            coord: Cell coordinate
            cell: Terrain-adjusted decision

        Returns:
            List of geometry segments inside the cell
        """
        kind = cell.kind
        if kind is CellKind.NONE:
            return []
        if kind is CellKind.STATION:
            return self._plan_station(coord, cell)
        if kind.is_curve:
            return self._plan_curve(coord, cell)
        if kind.is_junction:
            return self._plan_junction(coord, cell)
        if kind.is_incline:
            return self._plan_incline(coord, cell)

        axis = 'ns' if Direction.NORTH in kind.sides else 'ew'
        segments = self._plan_straight(coord, cell, axis)
        if kind.is_bridge:
            segments.extend(self._plan_bridge(coord, cell, axis))
        return segments

    def lane_offsets(self, lane_count: int) -> List[int]:
        if lane_count <= 1:
            return [0]
        return [(lane - lane_count // 2) * 2 for lane in range(lane_count)]

    def _plan_straight(self, coord: CellCoordinate, cell: NetworkCell, axis: str) -> List[GeometrySegment]:
        origin_x, origin_z = coord.origin()
        height = cell.placement_height
        direction = Direction.SOUTH if axis == 'ns' else Direction.EAST
        segments = []
        for offset in self.lane_offsets(cell.lane_count):
            for step in range(CELL_SIZE):
                if axis == 'ns':
                    position = Position(origin_x + CENTER + offset, height, origin_z + step)
                else:
                    position = Position(origin_x + step, height, origin_z + CENTER + offset)
                segments.append(GeometrySegment(position, height, SegmentProfile.TRACK, direction))
        return segments

    def _plan_curve(self, coord: CellCoordinate, cell: NetworkCell) -> List[GeometrySegment]:
        origin_x, origin_z = coord.origin()
        quadrant = _CURVE_QUADRANTS[cell.kind]
        first, _ = quadrant.sides
        corner_x = origin_x + (CELL_SIZE if Direction.EAST in quadrant.sides else 0)
        corner_z = origin_z + (CELL_SIZE if Direction.SOUTH in quadrant.sides else 0)
        center = Position(corner_x, cell.placement_height, corner_z)

        # East and south ends fall on the next cell's edge; pull them back in
        points = []
        for p in self.curves.build_arc(center, quadrant, CENTER):
            clamped = Position(min(p.x, origin_x + LAST), p.y, min(p.z, origin_z + LAST))
            if not points or points[-1] != clamped:
                points.append(clamped)
        return [GeometrySegment(p, p.y, SegmentProfile.ARC, first.opposite) for p in points]

    def _plan_junction(self, coord: CellCoordinate, cell: NetworkCell) -> List[GeometrySegment]:
        origin_x, origin_z = coord.origin()
        height = cell.placement_height
        center = Position(origin_x + CENTER, height, origin_z + CENTER)
        segments = [GeometrySegment(center, height, SegmentProfile.TRACK)]
        for direction in Direction:
            if not cell.connects(direction):
                continue
            # Arms run to the edge midpoint: 8 steps north/west, 7 south/east
            length = CENTER if direction in (Direction.NORTH, Direction.WEST) else LAST - CENTER
            for step in range(1, length + 1):
                arm = center.offset(dx=direction.dx * step, dz=direction.dz * step)
                segments.append(GeometrySegment(arm, height, SegmentProfile.TRACK, direction))
        return segments

    def _plan_station(self, coord: CellCoordinate, cell: NetworkCell) -> List[GeometrySegment]:
        segments = [
            GeometrySegment(p, p.y, SegmentProfile.PLATFORM)
            for p in cell.platform_positions
        ]
        segments.extend(self._plan_straight(coord, cell, 'ns'))
        segments.extend(self._plan_straight(coord, cell, 'ew'))
        return segments

    def _plan_bridge(self, coord: CellCoordinate, cell: NetworkCell, axis: str) -> List[GeometrySegment]:
        origin_x, origin_z = coord.origin()
        height = cell.placement_height
        if axis == 'ns':
            start = Position(origin_x + CENTER, height, origin_z)
            end = Position(origin_x + CENTER, height, origin_z + CELL_SIZE - 1)
        else:
            start = Position(origin_x, height, origin_z + CENTER)
            end = Position(origin_x + CELL_SIZE - 1, height, origin_z + CENTER)
        return self.bridges.build_bridge(start, end, height)

    def _plan_incline(self, coord: CellCoordinate, cell: NetworkCell) -> List[GeometrySegment]:
        origin_x, origin_z = coord.origin()
        direction = cell.kind.incline_direction
        rise = self.config.cell_incline_rise
        if cell.kind.value.startswith('incline_down'):
            rise = -rise

        height = cell.placement_height
        if direction.axis == 'ns':
            entry_z = origin_z + (CELL_SIZE - 1 if direction is Direction.NORTH else 0)
            exit_z = origin_z + (0 if direction is Direction.NORTH else CELL_SIZE - 1)
            start = Position(origin_x + CENTER, height, entry_z)
            end = Position(origin_x + CENTER, height + rise, exit_z)
        else:
            entry_x = origin_x + (CELL_SIZE - 1 if direction is Direction.WEST else 0)
            exit_x = origin_x + (0 if direction is Direction.WEST else CELL_SIZE - 1)
            start = Position(entry_x, height, origin_z + CENTER)
            end = Position(exit_x, height + rise, origin_z + CENTER)

        return [s for s in self.inclines.build_incline(start, end, direction)
                if self._inside(coord, s.position)]

    def _inside(self, coord: CellCoordinate, position: Position) -> bool:
        origin_x, origin_z = coord.origin()
        return (origin_x <= position.x < origin_x + CELL_SIZE and
                origin_z <= position.z < origin_z + CELL_SIZE)
