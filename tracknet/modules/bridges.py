"""
Bridge geometry module.
Decides when track must be carried over the ground and builds decks and pillars.
"""
import math
from typing import List, Optional
from shapely.geometry import LineString

from ..core.cell_data import Direction, GeometrySegment, Position, SegmentProfile, round_half_up
from ..config.settings import GeometryConfig, TerrainConfig


class BridgeBuilder:
    """
    Generates bridge geometry over low ground and liquid.

    The terrain accessor must provide ``sample_surface_height(x, z)`` and
    ``sample_floor_height(x, z)``. Floor height is the first elevation above
    solid, non-liquid, non-replaceable ground.
    """

    def __init__(self, terrain_config: TerrainConfig, geometry_config: GeometryConfig, terrain):
        self.terrain_config = terrain_config
        self.config = geometry_config
        self.terrain = terrain

    def needs_bridge(self, position: Position, track_height: int) -> bool:
        """Track more than the threshold above the ground needs a bridge."""
        if not self.terrain_config.use_bridges:
            return False
        ground = self.terrain.sample_surface_height(position.x, position.z)
        return track_height - ground > self.terrain_config.bridge_threshold

    def crosses_liquid(self, start: Position, end: Position) -> bool:
        """Sample the span evenly and report whether any sample is over liquid."""
        span = self._span(start, end)
        samples = self.config.liquid_samples
        for i in range(samples + 1):
            if span is None:
                x, z = start.x, start.z
            else:
                point = span.interpolate(i / samples, normalized=True)
                x, z = int(point.x), int(point.y)
            if self.terrain.sample_surface_height(x, z) != self.terrain.sample_floor_height(x, z):
                return True
        return False

    def bridge_height(self, start: Position, end: Position) -> int:
        """Deck height that clears the highest sampled ground on the span."""
        span = self._span(start, end)
        heights = [self.terrain.sample_surface_height(start.x, start.z)]
        if span is not None:
            step = self.config.bridge_height_step
            distance = 0.0
            while distance <= span.length:
                point = span.interpolate(distance)
                heights.append(self.terrain.sample_surface_height(int(point.x), int(point.y)))
                distance += step
        return max(heights) + self.terrain_config.bridge_threshold

    def build_bridge(self, start: Position, end: Position, track_height: int) -> List[GeometrySegment]:
        """
        Build a bridge deck with lateral supports and pillars.

        Args:
            start: Start of the span (y ignored)
            end: End of the span (y ignored)
            track_height: Elevation of the track carried by the bridge

        Returns:
            Deck and support segments in span order followed by pillar
            segments; empty for a zero-length span
        """
        if (start.x, start.z) == (end.x, end.z):
            return []

        direction = self._travel_direction(start, end)
        deck_y = track_height - 1
        segments: List[GeometrySegment] = []

        for x, z in self._span_columns(start, end):
            deck = Position(x, deck_y, z)
            segments.append(GeometrySegment(deck, deck_y, SegmentProfile.DECK, direction))
            for side in self._lateral_offsets(direction):
                support = deck.offset(dx=side[0], dz=side[1])
                segments.append(GeometrySegment(support, deck_y, SegmentProfile.DECK_SUPPORT, direction))

        if self.config.use_scaffolding:
            for top in self.pillar_positions(start, end, track_height):
                segments.extend(self._pillar(top, direction))

        return segments

    def pillar_positions(self, start: Position, end: Position, track_height: int) -> List[Position]:
        """Evenly spaced pillar tops, excluding the span's endpoints."""
        span = self._span(start, end)
        if span is None:
            return []
        count = max(1, math.ceil(span.length / self.config.pillar_spacing))
        tops = []
        for i in range(count):
            t = (i + 1) / (count + 1)
            tops.append(Position(
                int(start.x + (end.x - start.x) * t),
                track_height - 1,
                int(start.z + (end.z - start.z) * t)
            ))
        return tops

    def _pillar(self, top: Position, direction: Optional[Direction]) -> List[GeometrySegment]:
        floor = max(self.terrain.sample_floor_height(top.x, top.z), self.terrain_config.min_build_height)
        return [
            GeometrySegment(Position(top.x, y, top.z), y, SegmentProfile.PILLAR, direction)
            for y in range(top.y - 1, floor - 1, -1)
        ]

    def _span(self, start: Position, end: Position) -> Optional[LineString]:
        if (start.x, start.z) == (end.x, end.z):
            return None
        return LineString([(start.x, start.z), (end.x, end.z)])

    def _span_columns(self, start: Position, end: Position):
        steps = max(abs(end.x - start.x), abs(end.z - start.z))
        previous = None
        for i in range(steps + 1):
            t = i / steps
            column = (round_half_up(start.x + (end.x - start.x) * t),
                      round_half_up(start.z + (end.z - start.z) * t))
            if column != previous:
                yield column
            previous = column

    def _travel_direction(self, start: Position, end: Position) -> Direction:
        dx, dz = end.x - start.x, end.z - start.z
        if abs(dx) >= abs(dz):
            return Direction.EAST if dx > 0 else Direction.WEST
        return Direction.SOUTH if dz > 0 else Direction.NORTH

    def _lateral_offsets(self, direction: Direction):
        # One unit either side, perpendicular to travel
        if direction.axis == 'ew':
            return [(0, -1), (0, 1)]
        return [(-1, 0), (1, 0)]
