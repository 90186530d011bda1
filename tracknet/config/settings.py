"""
Configuration settings for the track network generator.
Centralized configuration for topology, terrain analysis, geometry and reconciliation.
"""
import random
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field


@dataclass
class NetworkConfig:
    """Configuration for the deterministic network topology."""
    enabled: bool = True
    stations_enabled: bool = True
    seed_offset: int = 0xDEADBEEF
    station_spacing: int = 32
    network_density: float = 0.5
    density_period: float = 25.0
    noise_octaves: int = 1
    station_chance: float = 0.8
    branch_chance: float = 0.3
    lanes: int = 1
    default_track_height: int = 70


@dataclass
class TerrainConfig:
    """Configuration for height profile analysis and terrain adjustment."""
    liquid_clearance: int = 2
    flat_variation: int = 5
    rugged_variation: int = 15
    min_build_height: int = -64
    max_build_height: int = 320

    # Placement height selection
    follow_terrain_closely: bool = True
    surface_offset: int = 0
    fixed_track_height: Optional[int] = None
    min_track_height: int = 60
    max_track_height: int = 90
    height_smoothing: float = 0.7

    # Bridge and tunnel conversion
    use_bridges: bool = True
    bridge_threshold: int = 5
    tunnel_depth: int = 10
    max_surface_slope: float = 0.6


@dataclass
class GeometryConfig:
    """Configuration for curve, incline and bridge geometry."""
    min_curve_radius: int = 8
    max_curve_angle: int = 90
    short_run: int = 8
    max_curve_rise: int = 11
    max_curve_run: int = 31
    min_run_by_rise: Dict[int, int] = field(default_factory=lambda: {
        0: 8, 1: 8, 2: 10, 3: 12, 4: 14, 5: 15,
        6: 16, 7: 18, 8: 20, 9: 22, 10: 24, 11: 26
    })
    pillar_spacing: int = 8
    use_scaffolding: bool = True
    liquid_samples: int = 8
    bridge_height_step: int = 4
    cell_incline_rise: int = 5


@dataclass
class ReconciliationConfig:
    """Configuration for the cross-cell connection queue."""
    tick_batch_size: int = 1
    flush_batch_size: int = 50
    flush_max_batches: int = 100
    max_age_seconds: float = 60.0
    stats_interval: int = 100
    max_scanned_cells: int = 10000

    # Vertical search bands, inclusive and in search order
    primary_band: Tuple[int, int] = (55, 85)
    upper_band: Tuple[int, int] = (86, 150)
    lower_band: Tuple[int, int] = (54, 40)
    anchor_search_depth: int = 2
    anchor_window: int = 3
    min_connection_run: int = 6


@dataclass
class SyntheticTerrainConfig:
    """Configuration for the noise terrain used by previews and tests."""
    base_height: int = 64
    amplitude: float = 28.0
    terrain_scale: float = 0.008
    octaves: int = 4
    persistence: float = 0.5
    lacunarity: float = 2.0
    sea_level: int = 62
    ridge_strength: float = 0.6


@dataclass
class TrackWorldConfig:
    """Main configuration class that combines all other configs."""
    name: str = "Generated Network"
    seed: int = None
    namespace: str = "overworld"

    # Sub-configurations
    network: NetworkConfig = field(default_factory=NetworkConfig)
    terrain: TerrainConfig = field(default_factory=TerrainConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    synthetic: SyntheticTerrainConfig = field(default_factory=SyntheticTerrainConfig)

    def __post_init__(self):
        """Initialize computed properties after creation."""
        if self.seed is None:
            self.seed = random.randint(0, 10000)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'TrackWorldConfig':
        """Create a TrackWorldConfig from a dictionary."""
        main_params = {
            k: v for k, v in config_dict.items()
            if k in ['name', 'seed', 'namespace']
        }

        network = NetworkConfig(**config_dict.get('network', {}))
        terrain = TerrainConfig(**config_dict.get('terrain', {}))
        geometry = _geometry_from_dict(config_dict.get('geometry', {}))
        reconciliation = _reconciliation_from_dict(config_dict.get('reconciliation', {}))
        synthetic = SyntheticTerrainConfig(**config_dict.get('synthetic', {}))

        return cls(
            **main_params,
            network=network,
            terrain=terrain,
            geometry=geometry,
            reconciliation=reconciliation,
            synthetic=synthetic
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert TrackWorldConfig to a dictionary."""
        return {
            'name': self.name,
            'seed': self.seed,
            'namespace': self.namespace,
            'network': dict(self.network.__dict__),
            'terrain': dict(self.terrain.__dict__),
            'geometry': dict(self.geometry.__dict__),
            'reconciliation': {
                k: list(v) if isinstance(v, tuple) else v
                for k, v in self.reconciliation.__dict__.items()
            },
            'synthetic': dict(self.synthetic.__dict__)
        }


def _geometry_from_dict(values: Dict[str, Any]) -> GeometryConfig:
    # JSON turns the rise table keys into strings
    values = dict(values)
    if 'min_run_by_rise' in values:
        values['min_run_by_rise'] = {int(k): int(v) for k, v in values['min_run_by_rise'].items()}
    return GeometryConfig(**values)


def _reconciliation_from_dict(values: Dict[str, Any]) -> ReconciliationConfig:
    values = dict(values)
    for band in ('primary_band', 'upper_band', 'lower_band'):
        if band in values:
            values[band] = tuple(values[band])
    return ReconciliationConfig(**values)


def create_default_config(**overrides) -> TrackWorldConfig:
    """Create a default configuration with optional overrides."""
    return TrackWorldConfig(**overrides)


def create_preset_config(preset_name: str, **overrides) -> TrackWorldConfig:
    """Create predefined configuration presets."""
    presets = {
        'dense_network': {
            'name': 'Dense Network',
            'network': {'station_spacing': 16, 'network_density': 0.8, 'branch_chance': 0.5}
        },
        'sparse_network': {
            'name': 'Sparse Network',
            'network': {'station_spacing': 64, 'network_density': 0.3, 'station_chance': 0.6}
        },
        'mountain_railways': {
            'name': 'Mountain Railways',
            'terrain': {'max_surface_slope': 0.4, 'tunnel_depth': 12},
            'synthetic': {'amplitude': 48.0, 'ridge_strength': 0.9}
        },
        'island_lines': {
            'name': 'Island Lines',
            'network': {'lanes': 2},
            'synthetic': {'base_height': 58, 'sea_level': 63, 'amplitude': 20.0}
        }
    }

    if preset_name not in presets:
        raise ValueError(f"Unknown preset: {preset_name}. Available: {list(presets.keys())}")

    preset_config = dict(presets[preset_name])
    preset_config.update(overrides)

    return TrackWorldConfig.from_dict(preset_config)


def list_presets() -> Dict[str, str]:
    """Describe the available presets."""
    return {
        'dense_network': 'Tight station grid with frequent branches',
        'sparse_network': 'Wide station spacing and thin local lines',
        'mountain_railways': 'Rugged terrain that favours tunnels',
        'island_lines': 'Low coastal terrain with double-track mainlines'
    }
