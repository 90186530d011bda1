"""
Curve geometry module.
Builds circular arcs for turns between perpendicular directions.
"""
import math
from enum import Enum
from typing import List, Optional, Tuple

from ..core.cell_data import Direction, Position, round_half_up
from ..config.settings import GeometryConfig


MIN_SEGMENTS = 8


class CurveQuadrant(Enum):
    """
    Quarter circles around a cell corner.

    Angles are measured with x = cx + r*cos(a) and z = cz + r*sin(a), so 90
    degrees points south. Each quadrant joins the edge midpoints of the two
    sides it names when centered on their shared corner.
    """
    NORTH_EAST = (180.0, 90.0)
    NORTH_WEST = (0.0, 90.0)
    SOUTH_EAST = (180.0, 270.0)
    SOUTH_WEST = (360.0, 270.0)

    @property
    def start_angle(self) -> float:
        return self.value[0]

    @property
    def end_angle(self) -> float:
        return self.value[1]

    @property
    def sides(self) -> Tuple[Direction, Direction]:
        return _QUADRANT_SIDES[self]


_QUADRANT_SIDES = {
    CurveQuadrant.NORTH_EAST: (Direction.NORTH, Direction.EAST),
    CurveQuadrant.NORTH_WEST: (Direction.NORTH, Direction.WEST),
    CurveQuadrant.SOUTH_EAST: (Direction.SOUTH, Direction.EAST),
    CurveQuadrant.SOUTH_WEST: (Direction.SOUTH, Direction.WEST),
}


class CurveBuilder:
    """
    Generates arc geometry for curved track.
    """

    def __init__(self, config: GeometryConfig):
        self.config = config

    def is_valid_curve(self, from_direction: Direction, to_direction: Direction) -> bool:
        """Curves only join perpendicular directions."""
        if from_direction == to_direction:
            return False
        return from_direction.is_perpendicular(to_direction)

    def quadrant_for(self, from_direction: Direction, to_direction: Direction) -> Optional[CurveQuadrant]:
        """
        Find the quadrant joining two sides, in either order.

        Returns:
            CurveQuadrant or None when the pair cannot form a curve
        """
        if not self.is_valid_curve(from_direction, to_direction):
            return None
        pair = {from_direction, to_direction}
        for quadrant, sides in _QUADRANT_SIDES.items():
            if pair == set(sides):
                return quadrant
        return None

    def build_arc(self, center: Position, quadrant: CurveQuadrant, radius: int,
                  half: bool = False, reverse: bool = False) -> List[Position]:
        """
        Sample an arc around a center point.

        Args:
            center: Arc center; its y is kept for every point
            quadrant: Quarter circle to sample
            radius: Requested radius, raised to the configured minimum
            half: Sample only the first 45 degrees of the quadrant
            reverse: Walk the quadrant from its end angle back to its start

        Returns:
            List of distinct consecutive positions along the arc
        """
        radius = max(radius, self.config.min_curve_radius)
        segments = max(radius // 2, MIN_SEGMENTS)

        start, end = quadrant.start_angle, quadrant.end_angle
        if reverse:
            start, end = end, start
        if half:
            end = start + (end - start) / 2.0

        points: List[Position] = []
        for i in range(segments + 1):
            angle = math.radians(start + (end - start) * i / segments)
            point = Position(
                round_half_up(center.x + radius * math.cos(angle)),
                center.y,
                round_half_up(center.z + radius * math.sin(angle))
            )
            if not points or points[-1] != point:
                points.append(point)
        return points

    def optimal_radius(self, start: Position, end: Position) -> int:
        """Half the larger horizontal span, clamped to [min, 4 * min]."""
        minimum = self.config.min_curve_radius
        span = max(abs(end.x - start.x), abs(end.z - start.z))
        return max(minimum, min(span // 2, minimum * 4))

    def create_curve_path(self, start: Position, end: Position,
                          from_direction: Direction, to_direction: Direction) -> List[Position]:
        """
        Build a turn that starts at ``start`` on the ``from_direction`` side.

        Returns an empty list when the directions cannot form a curve. Heights
        are interpolated linearly from start to end.
        """
        quadrant = self.quadrant_for(from_direction, to_direction)
        if quadrant is None:
            return []

        radius = self.optimal_radius(start, end)
        reverse = quadrant.sides[0] != from_direction
        angle = quadrant.end_angle if reverse else quadrant.start_angle
        center = Position(
            round_half_up(start.x - radius * math.cos(math.radians(angle))),
            start.y,
            round_half_up(start.z - radius * math.sin(math.radians(angle)))
        )

        half = self.config.max_curve_angle < 90
        points = self.build_arc(center, quadrant, radius, half=half, reverse=reverse)
        return self.interpolate_heights(points, start.y, end.y)

    def interpolate_heights(self, points: List[Position], start_y: int, end_y: int) -> List[Position]:
        """Spread a height change linearly over a list of points."""
        if len(points) < 2:
            return [Position(p.x, start_y, p.z) for p in points]
        last = len(points) - 1
        return [
            Position(p.x, round_half_up(start_y + (end_y - start_y) * i / last), p.z)
            for i, p in enumerate(points)
        ]
