"""Global pytest fixtures & helpers.

Adds project root to path and provides point/track factories shared by the
simplifier, analytics, storage and editor tests.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Sequence

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from track_optimizer.models import RoutePoint, Trip

BASE_TIME = datetime(2025, 6, 1, 8, 0, 0, tzinfo=timezone.utc)
# Roughly 1.11 m of latitude per 1e-5 degrees.
LAT_STEP_PER_M = 1.0 / 111_195.0


# --- Factory helpers -------------------------------------------------
def make_point(
    lat: float,
    lon: float,
    seconds: float = 0.0,
    *,
    altitude: float = 0.0,
    speed: float = 0.0,
) -> RoutePoint:
    return RoutePoint(
        latitude=lat,
        longitude=lon,
        altitude=altitude,
        speed=speed,
        timestamp=BASE_TIME + timedelta(seconds=seconds),
    )


def make_straight_track(
    count: int,
    *,
    spacing_m: float = 10.0,
    interval_s: float = 2.0,
    start: Sequence[float] = (52.0, 13.0),
) -> List[RoutePoint]:
    """Points heading due north at constant speed."""

    speed = spacing_m / interval_s
    return [
        make_point(
            start[0] + i * spacing_m * LAT_STEP_PER_M,
            start[1],
            i * interval_s,
            speed=speed,
        )
        for i in range(count)
    ]


def make_altitude_track(altitudes: Sequence[float], interval_s: float = 10.0) -> List[RoutePoint]:
    return [
        make_point(52.0 + i * 1e-4, 13.0, i * interval_s, altitude=alt, speed=1.0)
        for i, alt in enumerate(altitudes)
    ]


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def straight_track() -> List[RoutePoint]:
    return make_straight_track(50)


@pytest.fixture
def corner_track() -> List[RoutePoint]:
    """North for 100 m then east for 100 m, one fix every 10 m / 2 s."""

    points = make_straight_track(11)
    corner = points[-1]
    lon_step = 10.0 / (111_195.0 * 0.6157)  # cos(52 deg)
    for i in range(1, 11):
        points.append(
            make_point(
                corner.latitude,
                corner.longitude + i * lon_step,
                (10 + i) * 2.0,
                speed=5.0,
            )
        )
    return points


@pytest.fixture
def trip(straight_track: List[RoutePoint]) -> Trip:
    return Trip(trip_id="trip-1", points=list(straight_track), name="Morning ride")
