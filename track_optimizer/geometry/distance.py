"""Great-circle distance, bearing and deviation helpers.

All functions are total: degenerate input (identical points, empty arrays)
yields zero rather than raising.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from ..config import EARTH_RADIUS_M
from ..models import LatLon

MetricArray = NDArray[np.float64]


def haversine_m(first: LatLon, second: LatLon) -> float:
    """Return the great-circle distance in metres between two (lat, lon) pairs."""

    lat1, lon1 = first
    lat2, lon2 = second
    sin = math.sin
    cos = math.cos
    radians = math.radians
    atan2 = math.atan2
    sqrt = math.sqrt
    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)
    delta_lat = lat2_rad - lat1_rad
    delta_lon = radians(lon2 - lon1)
    sin_half_lat = sin(delta_lat / 2.0)
    sin_half_lon = sin(delta_lon / 2.0)
    a = sin_half_lat**2 + cos(lat1_rad) * cos(lat2_rad) * sin_half_lon**2
    a = min(max(a, 0.0), 1.0)
    c = 2.0 * atan2(sqrt(a), sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def haversine_array_m(lats: Sequence[float], lons: Sequence[float]) -> MetricArray:
    """Return distances between consecutive samples as an array of length n-1."""

    lat = np.radians(np.asarray(lats, dtype=float))
    lon = np.radians(np.asarray(lons, dtype=float))
    if lat.size < 2:
        return np.zeros(0, dtype=float)
    delta_lat = np.diff(lat)
    delta_lon = np.diff(lon)
    a = (
        np.sin(delta_lat / 2.0) ** 2
        + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(delta_lon / 2.0) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_M * 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def path_length_m(points: Sequence[LatLon]) -> float:
    """Sum of great-circle distances along a polyline."""

    if len(points) < 2:
        return 0.0
    lats = [pt[0] for pt in points]
    lons = [pt[1] for pt in points]
    return float(np.sum(haversine_array_m(lats, lons)))


def initial_bearing_deg(first: LatLon, second: LatLon) -> float:
    """Return the initial bearing from ``first`` to ``second`` in [0, 360)."""

    lat1 = math.radians(first[0])
    lat2 = math.radians(second[0])
    delta_lon = math.radians(second[1] - first[1])
    x = math.sin(delta_lon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(
        delta_lon
    )
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


def turn_angle_deg(previous: LatLon, current: LatLon, following: LatLon) -> float:
    """Return the heading change at ``current`` folded into [0, 180].

    A zero-length leg has no heading, so the turn is reported as 0.
    """

    if previous == current or current == following:
        return 0.0
    inbound = initial_bearing_deg(previous, current)
    outbound = initial_bearing_deg(current, following)
    diff = abs(outbound - inbound)
    if diff > 180.0:
        diff = 360.0 - diff
    return diff


def _to_local_plane(origin: LatLon, point: LatLon) -> Tuple[float, float]:
    """Equirectangular projection around ``origin`` in metres."""

    lat0 = math.radians(origin[0])
    x = math.radians(point[1] - origin[1]) * math.cos(lat0) * EARTH_RADIUS_M
    y = math.radians(point[0] - origin[0]) * EARTH_RADIUS_M
    return x, y


def perpendicular_deviation_m(point: LatLon, start: LatLon, end: LatLon) -> float:
    """Distance from ``point`` to the chord ``start``-``end`` in metres.

    The projection is clamped to the chord, so points beyond either end are
    measured against the nearest endpoint. A degenerate chord falls back to
    the distance from ``start``.
    """

    px, py = _to_local_plane(start, point)
    bx, by = _to_local_plane(start, end)
    length_sq = bx * bx + by * by
    if length_sq == 0.0:
        return haversine_m(start, point)
    t = (px * bx + py * by) / length_sq
    t = min(max(t, 0.0), 1.0)
    dx = px - t * bx
    dy = py - t * by
    return math.hypot(dx, dy)


__all__ = [
    "haversine_m",
    "haversine_array_m",
    "path_length_m",
    "initial_bearing_deg",
    "turn_angle_deg",
    "perpendicular_deviation_m",
]
