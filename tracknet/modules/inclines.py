"""
Incline geometry module.
Plans elevation changes as 45-degree ramps, smooth S-curves, or stacked S-curves.
"""
import math
from typing import List, Optional

from ..core.cell_data import (
    Direction, GeometrySegment, Position, SegmentProfile, round_half_up
)
from ..config.settings import GeometryConfig


def smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


class InclineBuilder:
    """
    Generates incline geometry between two positions at different heights.
    """

    def __init__(self, config: GeometryConfig):
        self.config = config

    def min_run_for_rise(self, rise: int) -> int:
        """Shortest horizontal run that keeps an S-curve of this rise smooth."""
        rise = abs(rise)
        table = self.config.min_run_by_rise
        if rise in table:
            return table[rise]
        return rise * 3

    def choose_profile(self, start: Position, end: Position) -> Optional[str]:
        """
        Pick how an incline between two points is built.

        Returns:
            'straight45', 'sCurve', 'stacked', or None when no incline is needed
        """
        if start.y == end.y:
            return None
        return self._policy(start, end)

    def build_incline(self, start: Position, end: Position,
                      direction: Optional[Direction] = None) -> List[GeometrySegment]:
        """
        Build an incline from start to end.

        Args:
            start: Lower or upper end of the incline
            end: Other end of the incline
            direction: Travel direction recorded on every segment

        Returns:
            Ordered segments from start to end; empty when both are level
        """
        if start.y == end.y:
            return []
        return self._build(start, end, direction)

    def create_transition(self, level_end: Position, incline_start: Position,
                          direction: Optional[Direction] = None) -> List[GeometrySegment]:
        """Three-point eased join between a level run and an incline."""
        segments = []
        for i in range(3):
            t = i / 2.0
            eased = smoothstep(t)
            position = Position(
                round_half_up(level_end.x + (incline_start.x - level_end.x) * t),
                round_half_up(level_end.y + (incline_start.y - level_end.y) * eased),
                round_half_up(level_end.z + (incline_start.z - level_end.z) * t)
            )
            segments.append(GeometrySegment(position, position.y, SegmentProfile.S_CURVE, direction))
        return segments

    def is_valid_incline(self, segments: List[GeometrySegment]) -> bool:
        """
        Check that the incline only climbs (or only descends) and that no step
        rises more than one unit per unit of horizontal travel.
        """
        if len(segments) < 2:
            return False
        sign = 1 if segments[-1].elevation >= segments[0].elevation else -1
        for previous, current in zip(segments, segments[1:]):
            horizontal = max(abs(current.position.x - previous.position.x),
                             abs(current.position.z - previous.position.z))
            change = (current.elevation - previous.elevation) * sign
            if change < 0 or change > max(horizontal, 1):
                return False
        return True

    def _policy(self, start: Position, end: Position) -> str:
        config = self.config
        rise = abs(end.y - start.y)
        run = self._run(start, end)

        if run < config.short_run:
            return 'straight45'
        if rise > config.max_curve_rise or run > config.max_curve_run:
            return 'stacked'
        if run >= self.min_run_for_rise(rise):
            return 'sCurve'
        return 'straight45'

    def _build(self, start: Position, end: Position,
               direction: Optional[Direction]) -> List[GeometrySegment]:
        profile = self._policy(start, end)
        if profile == 'stacked':
            return self._build_stacked(start, end, direction)
        if profile == 'sCurve':
            return self._build_s_curve(start, end, direction)
        return self._build_straight45(start, end, direction)

    def _run(self, start: Position, end: Position) -> int:
        return max(abs(end.x - start.x), abs(end.z - start.z))

    def _build_straight45(self, start: Position, end: Position,
                          direction: Optional[Direction]) -> List[GeometrySegment]:
        steps = max(self._run(start, end), abs(end.y - start.y))
        if steps == 0:
            return [GeometrySegment(start, start.y, SegmentProfile.STRAIGHT_45, direction)]

        segments = []
        for i in range(steps + 1):
            t = i / steps
            position = Position(
                round_half_up(start.x + (end.x - start.x) * t),
                round_half_up(start.y + (end.y - start.y) * t),
                round_half_up(start.z + (end.z - start.z) * t)
            )
            segments.append(GeometrySegment(position, position.y, SegmentProfile.STRAIGHT_45, direction))
        return segments

    def _build_s_curve(self, start: Position, end: Position,
                       direction: Optional[Direction]) -> List[GeometrySegment]:
        steps = self._run(start, end)
        segments = []
        for i in range(steps + 1):
            t = i / steps
            position = Position(
                round_half_up(start.x + (end.x - start.x) * t),
                round_half_up(start.y + (end.y - start.y) * smoothstep(t)),
                round_half_up(start.z + (end.z - start.z) * t)
            )
            segments.append(GeometrySegment(position, position.y, SegmentProfile.S_CURVE, direction))
        return segments

    def _build_stacked(self, start: Position, end: Position,
                       direction: Optional[Direction]) -> List[GeometrySegment]:
        config = self.config
        rise = abs(end.y - start.y)
        run = self._run(start, end)
        count = max(math.ceil(rise / config.max_curve_rise), math.ceil(run / config.max_curve_run))

        segments: List[GeometrySegment] = []
        previous = start
        for i in range(1, count + 1):
            t = i / count
            boundary = end if i == count else Position(
                round_half_up(start.x + (end.x - start.x) * t),
                round_half_up(start.y + (end.y - start.y) * t),
                round_half_up(start.z + (end.z - start.z) * t)
            )
            part = self._build(previous, boundary, direction)
            # Sub-segments share their joining point
            if segments and part and part[0].position == segments[-1].position:
                part = part[1:]
            segments.extend(part)
            previous = boundary
        return segments
