"""Segment characteristics and movement-pattern classification."""

from __future__ import annotations

from typing import List, Sequence

import pytest

from conftest import LAT_STEP_PER_M, make_altitude_track, make_point, make_straight_track
from track_optimizer.levels import settings_for_transportation
from track_optimizer.models import MovementPattern, RoutePoint
from track_optimizer.patterns import (
    SegmentCharacteristics,
    characterize,
    classify,
    movement_pattern,
)
from track_optimizer.simplifier import PRESETS

LON_STEP_PER_M = LAT_STEP_PER_M / 0.6157  # cos(52 deg)


def with_speeds(points: List[RoutePoint], speeds: Sequence[float]) -> List[RoutePoint]:
    for point, speed in zip(points, speeds):
        point.speed = speed
    return points


def zigzag_track(count: int, *, leg_m: float = 100.0, swing_m: float = 50.0, speed: float = 25.0):
    """Heading north while swinging east and back on every fix."""

    return [
        make_point(
            52.0 + i * leg_m * LAT_STEP_PER_M,
            13.0 + (i % 2) * swing_m * LON_STEP_PER_M,
            i * 4.0,
            speed=speed,
        )
        for i in range(count)
    ]


def test_fewer_than_two_points_yield_empty_summary():
    assert characterize([]) == SegmentCharacteristics()
    assert characterize([make_point(52.0, 13.0, speed=30.0)]) == SegmentCharacteristics()
    assert movement_pattern([]) is MovementPattern.IRREGULAR_LOW_SPEED


def test_straight_track_characteristics(straight_track):
    c = characterize(straight_track)
    assert c.average_speed_kmh == pytest.approx(18.0)
    assert c.max_speed_kmh == pytest.approx(18.0)
    assert c.speed_variance == pytest.approx(0.0)
    assert c.direction_changes == 0
    assert c.pause_count == 0
    assert c.distance_m == pytest.approx(490.0, rel=1e-4)
    assert c.duration_s == pytest.approx(98.0)
    assert c.straight_line_ratio == pytest.approx(1.0)


def test_corner_counts_one_direction_change(corner_track):
    c = characterize(corner_track)
    assert c.direction_changes == 1
    assert c.straight_line_ratio == pytest.approx(2**0.5 / 2, abs=0.01)


def test_unknown_speeds_are_ignored():
    points = with_speeds(make_straight_track(3), [-1.0, 5.0, 5.0])
    c = characterize(points)
    assert c.average_speed_kmh == pytest.approx(18.0)
    assert c.pause_count == 0


def test_pauses_count_transitions_into_stationary_runs():
    points = with_speeds(make_straight_track(7), [5.0, 0.0, 0.0, 5.0, 0.1, 5.0, 5.0])
    assert characterize(points).pause_count == 2


def test_elevation_change_skips_invalid_altitudes():
    c = characterize(make_altitude_track([0, 10, -200, 30]))
    assert c.elevation_change_m == pytest.approx(30.0)


def test_points_are_ordered_by_time():
    points = make_straight_track(10)
    assert characterize(points[::-1]) == characterize(points)


def test_pause_heavy():
    points = with_speeds(make_straight_track(10), [5.0] * 4 + [0.0] + [5.0] * 5)
    assert movement_pattern(points) is MovementPattern.PAUSE_HEAVY


def test_straight_high_speed():
    points = make_straight_track(20, spacing_m=100.0, interval_s=4.0)
    assert movement_pattern(points) is MovementPattern.STRAIGHT_HIGH_SPEED


def test_highway_with_exits():
    points = zigzag_track(8)
    c = characterize(points)
    assert c.direction_changes == 6
    assert classify(c) is MovementPattern.HIGHWAY_WITH_EXITS


def test_urban_mixed():
    points = with_speeds(make_straight_track(20), [2.0, 14.0] * 10)
    c = characterize(points)
    assert 15.0 < c.average_speed_kmh < 50.0
    assert c.speed_variance > 100.0
    assert classify(c) is MovementPattern.URBAN_MIXED


def test_irregular_low_speed(straight_track):
    assert movement_pattern(straight_track) is MovementPattern.IRREGULAR_LOW_SPEED


def test_pause_rule_wins_over_speed_rules():
    c = SegmentCharacteristics(
        average_speed_kmh=100.0,
        max_speed_kmh=120.0,
        straight_line_ratio=1.0,
        pause_count=2,
        duration_s=600.0,
    )
    assert classify(c) is MovementPattern.PAUSE_HEAVY


@pytest.mark.parametrize(
    "speed_kmh, mode, level",
    [
        (1.0, "walking", 1),
        (10.0, "cycling", 2),
        (40.0, "driving", 3),
        (80.0, "highway", 4),
        (150.0, "train", 5),
    ],
)
def test_transportation_mode(speed_kmh, mode, level):
    c = SegmentCharacteristics(average_speed_kmh=speed_kmh)
    assert c.transportation_mode == mode
    assert settings_for_transportation(c.transportation_mode) is PRESETS[level]
