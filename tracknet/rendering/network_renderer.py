"""
Network rendering module.
Handles visualization of generated regions.
"""
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend for web compatibility
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.patches import Patch
import numpy as np
from typing import Optional
import io
import base64

from ..core.cell_data import CELL_SIZE, SegmentProfile
from ..core.region_data import RegionData


SEGMENT_STYLES = {
    SegmentProfile.TRACK: {'color': '#222222', 'size': 1.5},
    SegmentProfile.ARC: {'color': '#222222', 'size': 1.5},
    SegmentProfile.STRAIGHT_45: {'color': '#cc3300', 'size': 2.0},
    SegmentProfile.S_CURVE: {'color': '#ff6600', 'size': 2.0},
    SegmentProfile.DECK: {'color': '#8b5a2b', 'size': 2.5},
    SegmentProfile.DECK_SUPPORT: {'color': '#b08050', 'size': 1.0},
    SegmentProfile.PLATFORM: {'color': '#9999ff', 'size': 1.0},
}

TUNNEL_COLOR = '#555555'
BRIDGE_COLOR = '#8b5a2b'
STATION_COLOR = '#3333cc'


class NetworkRenderer:
    """
    Handles rendering of generated regions as top-down maps.
    """

    def __init__(self):
        self.figure = None
        self.ax = None

    def render_region(
        self,
        region: RegionData,
        save_path: Optional[str] = None,
        show_legend: bool = True,
        dpi: int = 150
    ) -> str:
        """
        Render terrain, track and connections of a region.

        Args:
            region: The region to render
            save_path: Optional path to save the image
            show_legend: Whether to show the legend
            dpi: Image resolution

        Returns:
            Base64 encoded image string
        """
        self.figure, self.ax = plt.subplots(figsize=(12, 12), dpi=dpi)

        self._render_terrain(region)
        self._render_cell_outlines(region)
        self._render_segments(region)
        self._render_connections(region)
        self._configure_appearance(region, show_legend)

        if save_path:
            plt.savefig(save_path, dpi=dpi, bbox_inches='tight',
                        facecolor='white', edgecolor='none')

        buffer = io.BytesIO()
        plt.savefig(buffer, format='png', dpi=dpi, bbox_inches='tight',
                    facecolor='white', edgecolor='none')
        buffer.seek(0)
        image_base64 = base64.b64encode(buffer.getvalue()).decode()
        buffer.close()

        plt.close(self.figure)

        return image_base64

    def _extent(self, region: RegionData):
        west = region.min_x * CELL_SIZE
        north = region.min_z * CELL_SIZE
        return [west, west + region.width * CELL_SIZE, north + region.depth * CELL_SIZE, north]

    def _render_terrain(self, region: RegionData):
        """Render the per-cell average heights as the background."""
        if region.heightmap is None:
            return
        self.ax.imshow(
            region.heightmap,
            extent=self._extent(region),
            cmap=plt.cm.terrain,
            alpha=0.7,
            interpolation='nearest'
        )

    def _render_cell_outlines(self, region: RegionData):
        """Shade bridge, tunnel and station cells."""
        for plan in region.plans.values():
            kind = plan.cell.kind
            if kind.is_tunnel:
                color = TUNNEL_COLOR
            elif kind.is_bridge:
                color = BRIDGE_COLOR
            elif plan.cell.platform_positions:
                color = STATION_COLOR
            else:
                continue
            x, z = plan.coordinate.origin()
            self.ax.add_patch(plt.Rectangle((x, z), CELL_SIZE, CELL_SIZE,
                                            facecolor=color, alpha=0.25, edgecolor=color))

    def _render_segments(self, region: RegionData):
        """Render the planned track geometry as points."""
        by_profile = {}
        for plan in region.plans.values():
            for segment in plan.segments:
                by_profile.setdefault(segment.profile, []).append(segment.position)

        for profile, positions in by_profile.items():
            style = SEGMENT_STYLES.get(profile)
            if style is None:
                continue
            coords = np.array([(p.x + 0.5, p.z + 0.5) for p in positions])
            self.ax.scatter(coords[:, 0], coords[:, 1], s=style['size'],
                            c=style['color'], marker='s', linewidths=0)

    def _render_connections(self, region: RegionData):
        """Render reconciled boundary joins."""
        for anchor_a, anchor_b, _ in region.connections:
            self.ax.plot([anchor_a.x + 0.5, anchor_b.x + 0.5], [anchor_a.z + 0.5, anchor_b.z + 0.5],
                         color='#ff0000', linewidth=1.5)

    def _configure_appearance(self, region: RegionData, show_legend: bool):
        """Configure axes, title and legend."""
        extent = self._extent(region)
        self.ax.set_xlim(extent[0], extent[1])
        self.ax.set_ylim(extent[2], extent[3])
        self.ax.set_aspect('equal')
        self.ax.set_xlabel('x')
        self.ax.set_ylabel('z')
        self.ax.set_title(f"Track network, seed {region.generation_seed}")

        if show_legend:
            handles = [
                Line2D([0], [0], color='#222222', lw=2, label='Track'),
                Line2D([0], [0], color='#ff6600', lw=2, label='Incline'),
                Line2D([0], [0], color='#ff0000', lw=2, label='Boundary connection'),
                Patch(facecolor=STATION_COLOR, alpha=0.25, label='Station'),
                Patch(facecolor=BRIDGE_COLOR, alpha=0.25, label='Bridge'),
                Patch(facecolor=TUNNEL_COLOR, alpha=0.25, label='Tunnel'),
            ]
            self.ax.legend(handles=handles, loc='upper right', fontsize=8)

    def export_data(self, region: RegionData, export_path: str):
        """Write the region as JSON."""
        with open(export_path, 'w') as f:
            f.write(region.to_json())
