"""
Terrain adjustment module.
Converts base decisions into bridges or tunnels and picks their placement height.
"""
from dataclasses import replace

from ..core.cell_data import (
    CellCoordinate, CellKind, Direction, FlowMask, HeightProfile, NetworkCell
)
from ..config.settings import TerrainConfig
from .topology import station_platforms


_TUNNEL_OF = {
    CellKind.STRAIGHT_NS: CellKind.TUNNEL_NS,
    CellKind.STRAIGHT_EW: CellKind.TUNNEL_EW,
}

_BRIDGE_OF = {
    CellKind.STRAIGHT_NS: CellKind.BRIDGE_NS,
    CellKind.STRAIGHT_EW: CellKind.BRIDGE_EW,
}


class TerrainAdjuster:
    """
    Adapts network decisions to the terrain they sit on.
    Base decisions are never modified; adjusted copies are returned.
    """

    def __init__(self, config: TerrainConfig):
        self.config = config

    def needs_tunnel(self, cell: NetworkCell, profile: HeightProfile) -> bool:
        """Rugged, too high, or too steep along the direction of travel."""
        if profile.is_rugged:
            return True
        if profile.average > self.config.max_track_height:
            return True
        return profile.directional_slope(cell.flow) > self.config.max_surface_slope

    def placement_height(self, kind: CellKind, profile: HeightProfile) -> int:
        """
        Choose the elevation the track runs at.

        Args:
            kind: Final cell kind
            profile: Height profile of the cell

        Returns:
            int: Placement height
        """
        config = self.config
        if kind.is_tunnel:
            return profile.average - config.tunnel_depth
        if kind.is_bridge:
            return profile.average + config.bridge_threshold
        if config.follow_terrain_closely:
            return profile.average + config.surface_offset
        return self.fixed_height()

    def fixed_height(self) -> int:
        config = self.config
        height = config.fixed_track_height
        if height is None:
            height = (config.min_track_height + config.max_track_height) // 2
        return max(config.min_track_height, min(config.max_track_height, height))

    def adjust(self, coord: CellCoordinate, cell: NetworkCell, profile: HeightProfile) -> NetworkCell:
        """
        Produce the terrain-adjusted decision for a cell.

        Only straight kinds convert to tunnels or bridges.

        Args:
            coord: Cell coordinate, used for station platforms
            cell: Base decision
            profile: Height profile of the cell

        Returns:
            NetworkCell: Adjusted copy with its final placement height
        """
        if not cell.has_track:
            return replace(cell, placement_height=profile.average)

        kind = cell.kind
        if kind.is_straight:
            if self.needs_tunnel(cell, profile):
                kind = _TUNNEL_OF[kind]
            elif self.config.use_bridges:
                height = self.placement_height(kind, profile)
                if height - profile.average > self.config.bridge_threshold:
                    kind = _BRIDGE_OF[kind]

        height = self.placement_height(kind, profile)
        platforms = cell.platform_positions
        if kind is CellKind.STATION:
            platforms = station_platforms(coord, height)

        return replace(cell, kind=kind, placement_height=height, platform_positions=platforms)

    def needs_bridge_between(self, profile_a: HeightProfile, profile_b: HeightProfile,
                             flow: FlowMask) -> bool:
        """Whether track crossing between two adjacent cells must be carried by a bridge."""
        if not self.config.use_bridges:
            return False
        threshold = self.config.bridge_threshold
        if abs(profile_a.average - profile_b.average) > threshold:
            return True

        if flow.allows_north or flow.allows_south:
            leaving, entering = Direction.SOUTH, Direction.NORTH
        else:
            leaving, entering = Direction.EAST, Direction.WEST
        drop = profile_a.edge_average(leaving) - profile_b.edge_average(entering)
        return abs(drop) > threshold

    def smoothed_height(self, current: int, neighbor: int) -> int:
        """Blend a height toward its neighbor's to soften steps between cells."""
        factor = self.config.height_smoothing
        return int(round(current * (1.0 - factor) + neighbor * factor))
