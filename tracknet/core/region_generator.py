"""
Region generator orchestrator.
Coordinates terrain, topology, geometry and reconciliation over a block of cells.
"""
from datetime import datetime
from typing import Dict, Any, Optional
import numpy as np

from ..config.settings import TrackWorldConfig
from .cell_data import CellCoordinate
from .region_data import RegionData


class RegionGenerator:
    """
    Main orchestrator for region generation.
    Drives a track network against a simulated host world.
    """

    def __init__(self, config: TrackWorldConfig):
        self.config = config
        self.region: Optional[RegionData] = None

        # Initialize modules (will be set by dependency injection)
        self.terrain = None
        self.world = None
        self.network = None
        self.connector = None

        # Track generation state
        self._generation_steps = []
        self._current_step = 0

    def set_terrain(self, terrain):
        """Set the terrain accessor."""
        self.terrain = terrain

    def set_world(self, world):
        """Set the simulated host world."""
        self.world = world

    def set_network(self, network):
        """Set the track network entry point."""
        self.network = network

    def set_connector(self, connector):
        """Set the connector that records boundary joins."""
        self.connector = connector

    def generate_region(self, min_x: int, min_z: int, width: int, depth: int,
                        progress_callback=None) -> RegionData:
        """
        Generate every cell of a rectangular region.

        Args:
            min_x: West-most cell x
            min_z: North-most cell z
            width: Number of cells along x
            depth: Number of cells along z
            progress_callback: Optional callback function that receives progress updates

        Returns:
            RegionData: The generated region
        """
        if width <= 0 or depth <= 0:
            raise ValueError(f"Region must contain at least one cell, got {width} x {depth}")
        if not self.network or not self.world:
            raise ValueError("Track network and world not set")

        start_time = datetime.now()
        self.region = RegionData(min_x, min_z, width, depth)
        self.region.generation_seed = self.config.seed
        self.region.generation_timestamp = start_time.isoformat()

        steps = [
            ("Sampling terrain profiles", self._sample_terrain),
            ("Planning track geometry", self._plan_cells),
            ("Placing track in the world", self._place_tracks),
            ("Reconciling cell boundaries", self._reconcile),
        ]

        self._generation_steps = steps
        total_steps = len(steps)

        for i, (step_name, step_function) in enumerate(steps):
            self._current_step = i

            if progress_callback:
                progress_callback(step_name, i, total_steps)

            print(f"Step {i+1}/{total_steps}: {step_name}")
            step_function()
            print(f"✓ {step_name} completed")

        generation_time = (datetime.now() - start_time).total_seconds()
        self.region.metadata.update({
            'generation_time_seconds': generation_time,
            'config': self.config.to_dict(),
            'steps_completed': len(steps),
            'queue': self.network.caches.queue.get_statistics()
        })
        self._current_step = total_steps

        if progress_callback:
            progress_callback("Region generation complete!", total_steps, total_steps)

        print(f"Region generation completed in {generation_time:.2f} seconds!")
        return self.region

    def _sample_terrain(self):
        """Summarize every cell's terrain as its average height."""
        region = self.region
        heights = self.network.caches.heights
        heightmap = np.zeros((region.depth, region.width))
        for coord in region.coordinates():
            profile = heights.get_profile(coord)
            heightmap[coord.z - region.min_z, coord.x - region.min_x] = profile.average
        region.heightmap = heightmap

    def _plan_cells(self):
        """Decide, adjust and lay out every cell."""
        for coord in self.region.coordinates():
            try:
                self.region.add_plan(self.network.plan_cell(coord))
            except Exception as e:
                print(f"Warning: Failed to plan cell {coord.key()}: {e}")
                self.region.failed_cells.append(coord)

        track_cells = sum(1 for p in self.region.plans.values() if p.cell.has_track)
        print(f"  → Planned {track_cells} track cells of {len(self.region.plans)}")

    def _place_tracks(self):
        """Hand every plan to the world and register cells holding track."""
        placed = 0
        for coord in self.region.coordinates():
            plan = self.region.plans.get(coord)
            if plan is None:
                self.world.materialize(coord)
                continue
            placed += self.world.place_plan(plan)
            if plan.cell.has_track:
                self.network.mark_track_placed(coord)
        print(f"  → Placed {placed} track positions")

    def _reconcile(self):
        """Scan boundaries and flush the connection queue."""
        queued = 0
        for coord in self.region.coordinates():
            queued += self.network.on_cell_available(coord)
        print(f"  → Queued {queued} boundary connections")

        self.network.on_world_ready()
        if self.connector is not None and hasattr(self.connector, 'connections'):
            self.region.connections = list(self.connector.connections)

    def get_generation_progress(self) -> Dict[str, Any]:
        """Get current generation progress information."""
        if not self._generation_steps:
            return {"status": "not_started", "progress": 0.0}

        total_steps = len(self._generation_steps)
        current_progress = (self._current_step / total_steps) * 100

        return {
            "status": "generating" if self._current_step < total_steps else "completed",
            "current_step": self._current_step,
            "total_steps": total_steps,
            "progress": current_progress,
            "current_step_name": self._generation_steps[min(self._current_step, total_steps - 1)][0]
        }

    def describe_cell(self, x: int, z: int) -> Dict[str, Any]:
        """Decision and terrain summary for a single cell."""
        coord = CellCoordinate(x, z)
        plan = self.network.plan_cell(coord)
        return {
            'coordinate': coord.key(),
            'base': self.network.base_cell(coord).to_dict(),
            'adjusted': plan.cell.to_dict(),
            'average_height': plan.profile.average if plan.profile else None,
            'segments': len(plan.segments)
        }


class RegionGeneratorFactory:
    """
    Factory class for creating configured region generators.
    Handles dependency injection of the terrain, world and network.
    """

    @staticmethod
    def create_generator(config: TrackWorldConfig) -> RegionGenerator:
        """
        Create a fully configured region generator.

        Args:
            config: Track world configuration

        Returns:
            RegionGenerator: Configured generator ready to use
        """
        from ..modules.terrain import NoiseTerrain
        from ..modules.simulation import SimulatedWorld, RecordingConnector
        from ..modules.inclines import InclineBuilder
        from .world_store import WorldStore
        from .track_network import TrackNetwork

        generator = RegionGenerator(config)

        terrain = NoiseTerrain(config.synthetic, config.seed)
        world = SimulatedWorld(terrain)
        connector = RecordingConnector(world, InclineBuilder(config.geometry))
        store = WorldStore(config)

        generator.set_terrain(terrain)
        generator.set_world(world)
        generator.set_connector(connector)
        generator.set_network(TrackNetwork(store, world, connector))

        return generator

    @staticmethod
    def create_from_preset(preset_name: str, **overrides) -> RegionGenerator:
        """Create a generator from a configuration preset."""
        from ..config.settings import create_preset_config
        config = create_preset_config(preset_name, **overrides)
        return RegionGeneratorFactory.create_generator(config)

    @staticmethod
    def create_default(**overrides) -> RegionGenerator:
        """Create a generator with default configuration."""
        from ..config.settings import create_default_config
        config = create_default_config(**overrides)
        return RegionGeneratorFactory.create_generator(config)


# Convenience functions for easy usage
def generate_region(min_x=0, min_z=0, width=16, depth=16, seed=None, **config_overrides) -> RegionData:
    """
    Convenience function to generate a region with simple parameters.

    Args:
        min_x: West-most cell x
        min_z: North-most cell z
        width: Number of cells along x
        depth: Number of cells along z
        seed: Random seed for reproducibility
        **config_overrides: Additional configuration overrides

    Returns:
        RegionData: Generated region
    """
    generator = RegionGeneratorFactory.create_default(seed=seed, **config_overrides)
    return generator.generate_region(min_x, min_z, width, depth)
