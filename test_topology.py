#!/usr/bin/env python3
"""
Tests for the deterministic network topology.
"""

from concurrent.futures import ThreadPoolExecutor

from tracknet.config.settings import NetworkConfig
from tracknet.core.cell_data import CellCoordinate, CellKind, Direction, FlowMask, NetworkCell
from tracknet.modules.topology import TopologyGenerator, derive_cell


def constant_noise(value):
    calls = []

    def noise(x, z):
        calls.append((x, z))
        return value

    noise.calls = calls
    return noise


def test_station_at_grid_intersection():
    """Seed 42, spacing 32: cell (-1, -1) is a station when the roll succeeds"""
    generator = TopologyGenerator(NetworkConfig(station_chance=1.0), seed=42)
    cell = generator.get_cell(CellCoordinate(-1, -1))

    assert cell.kind is CellKind.STATION
    assert cell.flow is FlowMask.ALL
    assert cell.lane_count == 1
    assert len(cell.platform_positions) == 64
    assert all(p.y == cell.placement_height - 1 for p in cell.platform_positions)
    assert all(-12 <= p.x <= -5 and -12 <= p.z <= -5 for p in cell.platform_positions)


def test_failed_station_roll_falls_back_to_route():
    generator = TopologyGenerator(NetworkConfig(station_chance=0.0), seed=42)
    assert generator.get_cell(CellCoordinate(-1, -1)).kind is CellKind.STRAIGHT_NS


def test_stations_can_be_disabled():
    config = NetworkConfig(station_chance=1.0, stations_enabled=False)
    generator = TopologyGenerator(config, seed=42)
    assert generator.get_cell(CellCoordinate(15, 15)).kind is CellKind.STRAIGHT_NS


def test_station_locations():
    generator = TopologyGenerator(NetworkConfig(), seed=1)
    assert generator.is_station_location(CellCoordinate(-1, -1))
    assert generator.is_station_location(CellCoordinate(15, 31))
    assert not generator.is_station_location(CellCoordinate(-1, 5))
    assert generator.is_on_major_route(CellCoordinate(-1, 5))


def test_major_routes():
    config = NetworkConfig(lanes=2)
    generator = TopologyGenerator(config, seed=1)

    ns = generator.get_cell(CellCoordinate(-1, 5))
    assert ns.kind is CellKind.STRAIGHT_NS
    assert ns.flow is FlowMask.NORTH_SOUTH
    assert ns.lane_count == 2

    assert generator.get_cell(CellCoordinate(15, 5)).kind is CellKind.STRAIGHT_NS
    ew = generator.get_cell(CellCoordinate(5, 15))
    assert ew.kind is CellKind.STRAIGHT_EW
    assert ew.flow is FlowMask.EAST_WEST
    assert generator.get_cell(CellCoordinate(5, -33)).kind is CellKind.STRAIGHT_EW


def test_disabled_network_is_empty():
    generator = TopologyGenerator(NetworkConfig(enabled=False), seed=1)
    assert generator.get_cell(CellCoordinate(-1, -1)).kind is CellKind.NONE
    assert generator.get_cell(CellCoordinate(-1, 5)).kind is CellKind.NONE


def test_density_gate_rejects_low_noise():
    noise = constant_noise(-1.0)
    generator = TopologyGenerator(NetworkConfig(branch_chance=1.0), seed=3, noise_fn=noise)
    assert generator.get_cell(CellCoordinate(5, 5)).kind is CellKind.NONE
    assert len(noise.calls) == 1


def test_grid_cells_skip_density_gate():
    noise = constant_noise(-1.0)
    generator = TopologyGenerator(NetworkConfig(station_chance=1.0), seed=3, noise_fn=noise)
    assert generator.get_cell(CellCoordinate(-1, -1)).kind is CellKind.STATION
    assert generator.get_cell(CellCoordinate(-1, 4)).kind is CellKind.STRAIGHT_NS
    assert noise.calls == []


def test_memoization_computes_once():
    """Calling get_cell N times performs the computation at most once"""
    noise = constant_noise(0.9)
    generator = TopologyGenerator(NetworkConfig(branch_chance=0.0), seed=7, noise_fn=noise)
    coord = CellCoordinate(5, 5)

    first = generator.get_cell(coord)
    for _ in range(10):
        assert generator.get_cell(coord) is first

    assert len(noise.calls) == 1
    assert generator.cached_count == 1


def test_clear_cache():
    generator = TopologyGenerator(NetworkConfig(), seed=7)
    generator.get_cell(CellCoordinate(0, 0))
    generator.clear_cache()
    assert generator.cached_count == 0


def test_determinism_across_instances_and_order():
    """Decisions depend only on seed, config and coordinate"""
    coords = [CellCoordinate(x, z) for x in range(-4, 20) for z in range(-4, 20)]

    forward = TopologyGenerator(NetworkConfig(), seed=1234)
    backward = TopologyGenerator(NetworkConfig(), seed=1234)

    forward_cells = {c: forward.get_cell(c) for c in coords}
    backward_cells = {c: backward.get_cell(c) for c in reversed(coords)}

    assert forward_cells == backward_cells


def test_different_seeds_can_differ():
    config = NetworkConfig(station_chance=0.5)
    intersections = [CellCoordinate(32 * i - 1, 32 * j - 1) for i in range(6) for j in range(6)]
    first = [TopologyGenerator(config, seed=1).get_cell(c).kind for c in intersections]
    second = [TopologyGenerator(config, seed=2).get_cell(c).kind for c in intersections]
    assert first != second


def test_recursion_terminates():
    """Off-grid cells whose neighbors also resolve locally terminate"""
    noise = constant_noise(0.9)
    config = NetworkConfig(branch_chance=1.0, network_density=1.0)
    generator = TopologyGenerator(config, seed=11, noise_fn=noise)

    cell = generator.get_cell(CellCoordinate(5, 5))
    neighbor = generator.get_cell(CellCoordinate(6, 5))

    assert cell.kind is CellKind.NONE
    assert neighbor.kind is CellKind.NONE


def test_off_grid_cells_stay_empty_on_default_grid():
    """Neighbors seen during local resolution are route cells or none, never a facing side"""
    config = NetworkConfig(branch_chance=1.0, network_density=1.0)
    generator = TopologyGenerator(config, seed=17, noise_fn=constant_noise(0.9))

    off_grid = [CellCoordinate(x, z) for x in range(1, 15) for z in range(1, 15)]
    assert not any(generator.get_cell(c).has_track for c in off_grid)
    # Cells beside a route line only see it running past them
    assert generator.get_cell(CellCoordinate(0, 5)).kind is CellKind.NONE


class ForcedNeighbors(TopologyGenerator):
    """Generator whose neighbor lookups return fixed cells."""

    def __init__(self, forced, **kwargs):
        super().__init__(**kwargs)
        self.forced = forced

    def _lookup(self, coord, resolving):
        if resolving and coord in self.forced:
            return self.forced[coord]
        return super()._lookup(coord, resolving)


def test_local_resolution_builds_curve_from_neighbors():
    station = NetworkCell(CellKind.STATION, FlowMask.ALL)
    forced = {
        CellCoordinate(5, 4): station,
        CellCoordinate(6, 5): station,
    }
    generator = ForcedNeighbors(
        forced,
        config=NetworkConfig(branch_chance=1.0, network_density=1.0),
        seed=5,
        noise_fn=constant_noise(0.9)
    )

    cell = generator.get_cell(CellCoordinate(5, 5))

    assert cell.kind is CellKind.CURVE_NE
    assert cell.lane_count == 1


def test_local_resolution_ignores_non_facing_neighbors():
    """A straight running past a cell does not connect into it"""
    forced = {
        CellCoordinate(5, 4): NetworkCell(CellKind.STRAIGHT_EW, FlowMask.EAST_WEST),
        CellCoordinate(6, 5): NetworkCell(CellKind.STRAIGHT_EW, FlowMask.EAST_WEST),
        CellCoordinate(4, 5): NetworkCell(CellKind.STRAIGHT_EW, FlowMask.EAST_WEST),
    }
    generator = ForcedNeighbors(
        forced,
        config=NetworkConfig(branch_chance=1.0, network_density=1.0),
        seed=5,
        noise_fn=constant_noise(0.9)
    )

    assert generator.get_cell(CellCoordinate(5, 5)).kind is CellKind.STRAIGHT_EW


def test_derivation_table():
    N, S, E, W = Direction.NORTH, Direction.SOUTH, Direction.EAST, Direction.WEST
    assert derive_cell({N, S}, 70).kind is CellKind.STRAIGHT_NS
    assert derive_cell({E, W}, 70).kind is CellKind.STRAIGHT_EW
    assert derive_cell({N, E}, 70).kind is CellKind.CURVE_NE
    assert derive_cell({S, W}, 70).kind is CellKind.CURVE_SW
    assert derive_cell({S, E, W}, 70).kind is CellKind.JUNCTION_3WAY_N
    assert derive_cell({N, S, E}, 70).kind is CellKind.JUNCTION_3WAY_W
    assert derive_cell({N, S, E, W}, 70).kind is CellKind.JUNCTION_4WAY
    assert derive_cell({N}, 70).kind is CellKind.NONE
    assert derive_cell(set(), 70).kind is CellKind.NONE


def test_ascii_map():
    generator = TopologyGenerator(NetworkConfig(station_chance=1.0), seed=42,
                                  noise_fn=constant_noise(-1.0))
    assert generator.render_ascii(-1, -1, 0, 0) == "S-\n|."


def test_concurrent_reads_agree():
    generator = TopologyGenerator(NetworkConfig(), seed=99)
    coords = [CellCoordinate(x, z) for x in range(-8, 8) for z in range(-8, 8)]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(generator.get_cell, coords * 3))

    reference = TopologyGenerator(NetworkConfig(), seed=99)
    for coord, cell in zip(coords * 3, results):
        assert cell == reference.get_cell(coord)
