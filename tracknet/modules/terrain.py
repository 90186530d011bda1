"""
Synthetic terrain module.
Perlin-noise terrain with a sea level, used to preview and exercise the network.
"""
import math
import threading
from typing import Dict, Tuple
import numpy as np
from noise import pnoise2

from ..config.settings import SyntheticTerrainConfig


class NoiseTerrain:
    """
    Deterministic heightfield answering the terrain queries of the network.

    Surface height is the first elevation above the topmost solid or liquid
    block; floor height is the first elevation above solid ground. They differ
    only where water covers the ground.
    """

    def __init__(self, config: SyntheticTerrainConfig, seed: int):
        self.config = config
        self.seed = seed
        self._base = seed % 256
        self._ground: Dict[Tuple[int, int], int] = {}
        self._lock = threading.Lock()

    def ground_height(self, x: int, z: int) -> int:
        """Elevation of the topmost solid block in a column."""
        key = (x, z)
        height = self._ground.get(key)
        if height is None:
            height = self._generate_height(x, z)
            with self._lock:
                self._ground[key] = height
        return height

    def sample_surface_height(self, x: int, z: int) -> int:
        return max(self.ground_height(x, z), self.config.sea_level) + 1

    def sample_floor_height(self, x: int, z: int) -> int:
        return self.ground_height(x, z) + 1

    def is_liquid_at(self, x: int, y: int, z: int) -> bool:
        return self.ground_height(x, z) < y <= self.config.sea_level

    def heightmap(self, min_x: int, min_z: int, width: int, depth: int, step: int = 1) -> np.ndarray:
        """
        Sample surface heights over a rectangle.

        Args:
            min_x: West edge in world units
            min_z: North edge in world units
            width: Extent along x
            depth: Extent along z
            step: Sampling stride

        Returns:
            Array indexed [row, column] from the north-west corner
        """
        rows = math.ceil(depth / step)
        cols = math.ceil(width / step)
        heights = np.zeros((rows, cols))
        for row in range(rows):
            for col in range(cols):
                heights[row, col] = self.sample_surface_height(min_x + col * step, min_z + row * step)
        return heights

    def _generate_height(self, x: int, z: int) -> int:
        config = self.config
        scale = config.terrain_scale

        # Rolling base terrain
        e = pnoise2(x * scale, z * scale, octaves=config.octaves,
                    persistence=config.persistence, lacunarity=config.lacunarity,
                    repeatx=65536, repeaty=65536, base=self._base)

        # Sharp ridges from folded low-frequency noise
        r = pnoise2(x * scale * 0.5 + 100.0, z * scale * 0.5 + 100.0, octaves=2,
                    repeatx=65536, repeaty=65536, base=self._base)
        ridge = (1.0 - abs(r)) ** 2

        elevation = e + config.ridge_strength * (ridge - 0.5)
        return int(round(config.base_height + config.amplitude * elevation))
