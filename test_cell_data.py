#!/usr/bin/env python3
"""
Tests for the cell data model: directions, kinds, flow masks and profiles.
"""

import dataclasses

import numpy as np
import pytest

from tracknet.core.cell_data import (
    CellCoordinate, CellKind, Direction, FlowMask, HeightProfile, NetworkCell,
    PendingConnection, Position, round_half_up
)


def test_every_kind_has_sides():
    """Every cell kind maps to a set of sides"""
    for kind in CellKind:
        assert isinstance(kind.sides, frozenset)
    assert CellKind.NONE.sides == frozenset()
    assert len(list(CellKind)) == 25


def test_straight_connectivity():
    cell = NetworkCell(CellKind.STRAIGHT_NS, FlowMask.NORTH_SOUTH)
    assert cell.connects_north and cell.connects_south
    assert not cell.connects_east and not cell.connects_west

    cell = NetworkCell(CellKind.STRAIGHT_EW, FlowMask.EAST_WEST)
    assert cell.connects_east and cell.connects_west
    assert not cell.connects_north


def test_flow_mask_limits_connectivity():
    """A straight with one-way flow only connects the permitted side"""
    cell = NetworkCell(CellKind.STRAIGHT_NS, FlowMask.NORTH)
    assert cell.connects_north
    assert not cell.connects_south


def test_curves_connect_their_two_sides():
    cell = NetworkCell(CellKind.CURVE_SW, FlowMask.ALL)
    assert cell.connects_south and cell.connects_west
    assert not cell.connects_north and not cell.connects_east


def test_three_way_junction_is_named_for_missing_side():
    cell = NetworkCell(CellKind.JUNCTION_3WAY_N, FlowMask.ALL)
    assert not cell.connects_north
    assert cell.connects_south and cell.connects_east and cell.connects_west

    cell = NetworkCell(CellKind.JUNCTION_3WAY_E, FlowMask.ALL)
    assert not cell.connects_east
    assert cell.connects_north and cell.connects_south and cell.connects_west


def test_station_and_four_way_connect_everywhere():
    for kind in (CellKind.STATION, CellKind.JUNCTION_4WAY):
        cell = NetworkCell(kind, FlowMask.ALL)
        assert all(cell.connects(d) for d in Direction)


def test_bridges_tunnels_and_inclines_follow_their_axis():
    assert NetworkCell(CellKind.BRIDGE_NS, FlowMask.NORTH_SOUTH).connects_north
    assert NetworkCell(CellKind.TUNNEL_EW, FlowMask.EAST_WEST).connects_west
    assert not NetworkCell(CellKind.TUNNEL_EW, FlowMask.EAST_WEST).connects_north
    incline = NetworkCell(CellKind.INCLINE_UP_N, FlowMask.NORTH)
    assert incline.connects_north
    assert not incline.connects_south
    assert CellKind.INCLINE_DOWN_W.incline_direction is Direction.WEST


def test_empty_cell_connects_nowhere():
    cell = NetworkCell.empty()
    assert not cell.has_track
    assert not any(cell.connects(d) for d in Direction)


def test_flow_mask_properties():
    assert FlowMask.ALL.is_bidirectional
    assert FlowMask.NORTH_SOUTH.is_bidirectional
    assert not FlowMask.EAST.is_bidirectional
    assert FlowMask.EAST_WEST.allows_east and FlowMask.EAST_WEST.allows_west
    assert not FlowMask.EAST_WEST.allows_north


def test_direction_helpers():
    assert Direction.NORTH.opposite is Direction.SOUTH
    assert Direction.EAST.opposite is Direction.WEST
    assert Direction.NORTH.is_perpendicular(Direction.EAST)
    assert not Direction.NORTH.is_perpendicular(Direction.SOUTH)
    assert CellCoordinate(3, 5).neighbor(Direction.NORTH) == CellCoordinate(3, 4)
    assert CellCoordinate(-1, -1).origin() == (-16, -16)
    assert CellCoordinate.containing(-1, 17) == CellCoordinate(-1, 1)


def test_pending_connection_identity_is_canonical():
    """Both sides of a boundary produce the same identity"""
    forward = PendingConnection(CellCoordinate(3, 5), CellCoordinate(4, 5), Direction.EAST, 64, 70)
    backward = PendingConnection(CellCoordinate(4, 5), CellCoordinate(3, 5), Direction.WEST, 70, 64)
    assert forward.identity == "3,5->4,5"
    assert backward.identity == "3,5->4,5"
    assert forward.elevation_change == 6
    assert forward.is_ascending
    assert not backward.is_ascending


def test_height_profile_statistics():
    heights = np.full((16, 16), 64)
    heights[0, 0] = 60
    heights[15, 15] = 70
    profile = HeightProfile.from_heights(heights)

    assert profile.minimum == 60
    assert profile.maximum == 70
    assert profile.average == 64
    assert profile.variation == 10
    assert not profile.is_flat
    assert not profile.is_rugged
    assert profile.height_at(0, 0) == 60
    assert profile.height_at(-1, 3) == profile.average
    assert profile.height_at(16, 0) == profile.average


def test_height_profile_is_read_only():
    source = np.full((16, 16), 64)
    profile = HeightProfile.from_heights(source)

    with pytest.raises(dataclasses.FrozenInstanceError):
        profile.average = 70
    with pytest.raises(ValueError):
        profile.heights[0, 0] = 99

    # The caller's array is copied, not frozen
    source[0, 0] = 10
    assert profile.height_at(0, 0) == 64


def test_height_profile_flat_and_rugged():
    assert HeightProfile.from_heights(np.full((16, 16), 64)).is_flat
    rugged = np.full((16, 16), 64)
    rugged[4, 4] = 90
    assert HeightProfile.from_heights(rugged).is_rugged


def test_directional_slope():
    rows = np.array([[60 + z] * 16 for z in range(16)])
    profile = HeightProfile.from_heights(rows)
    assert profile.directional_slope(FlowMask.NORTH_SOUTH) == 15 / 16
    assert profile.directional_slope(FlowMask.EAST_WEST) == 0.0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-0.5) == 0
    assert round_half_up(1.49) == 1
    assert Position(1, 2, 3).offset(dy=1) == Position(1, 3, 3)
