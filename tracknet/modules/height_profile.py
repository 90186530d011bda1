"""
Height profile analysis module.
Summarizes the surface of a cell so the network can pick a placement height.
"""
import threading
from typing import Dict
import numpy as np

from ..core.cell_data import CellCoordinate, HeightProfile, CELL_SIZE
from ..config.settings import TerrainConfig


class HeightProfileAnalyzer:
    """
    Samples and caches per-cell height profiles.

    The terrain accessor must provide ``sample_surface_height(x, z)`` and
    ``is_liquid_at(x, y, z)``.
    """

    def __init__(self, config: TerrainConfig, terrain):
        self.config = config
        self.terrain = terrain
        self._profiles: Dict[CellCoordinate, HeightProfile] = {}
        self._lock = threading.Lock()

    def get_profile(self, coord: CellCoordinate) -> HeightProfile:
        """
        Get the height profile of a cell, sampling it on first use.

        Args:
            coord: Cell to analyze

        Returns:
            HeightProfile: Cached profile for the cell
        """
        profile = self._profiles.get(coord)
        if profile is not None:
            return profile

        profile = self._sample(coord)
        with self._lock:
            return self._profiles.setdefault(coord, profile)

    def clear_cache(self):
        """Drop every cached profile."""
        with self._lock:
            self._profiles.clear()

    @property
    def cached_count(self) -> int:
        return len(self._profiles)

    def _sample(self, coord: CellCoordinate) -> HeightProfile:
        origin_x, origin_z = coord.origin()
        heights = np.zeros((CELL_SIZE, CELL_SIZE), dtype=np.int64)

        for local_z in range(CELL_SIZE):
            for local_x in range(CELL_SIZE):
                x = origin_x + local_x
                z = origin_z + local_z
                heights[local_z, local_x] = self._column_height(x, z)

        return HeightProfile.from_heights(
            heights,
            flat_variation=self.config.flat_variation,
            rugged_variation=self.config.rugged_variation
        )

    def _column_height(self, x: int, z: int) -> int:
        height = self.terrain.sample_surface_height(x, z)
        if not self.terrain.is_liquid_at(x, height - 1, z):
            return height

        # Track over liquid sits a fixed clearance above the liquid surface
        liquid_surface = height
        for y in range(height - 1, self.config.max_build_height):
            if not self.terrain.is_liquid_at(x, y, z):
                liquid_surface = y
                break
        return liquid_surface + self.config.liquid_clearance
