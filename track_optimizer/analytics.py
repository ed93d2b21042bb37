"""Trip analytics computed from an ordered point collection.

Pure transformation: every function takes the current points and returns
numbers; nothing is cached, so callers simply call again after the
collection changes. Degenerate input (empty, single point, no valid
altitudes) yields zeros rather than errors.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import (
    ELEVATION_HYSTERESIS_M,
    ELEVATION_RESIDUAL_M,
    ELEVATION_SMOOTHING_WINDOW,
    INVALID_ALTITUDE_M,
    MAX_SEGMENT_GAP_S,
    PAUSE_SPEED_THRESHOLD_MPS,
)
from .geometry import haversine_array_m
from .models import RoutePoint, TripAnalyticsSnapshot

FloatArray = NDArray[np.float64]


def segment_distances(points: Sequence[RoutePoint]) -> FloatArray:
    """Great-circle distance of each consecutive pair (length n-1)."""

    return haversine_array_m(
        [pt.latitude for pt in points], [pt.longitude for pt in points]
    )


def segment_durations(points: Sequence[RoutePoint]) -> FloatArray:
    """Elapsed seconds of each consecutive pair (length n-1)."""

    if len(points) < 2:
        return np.zeros(0, dtype=float)
    return np.asarray(
        [
            (current.timestamp - previous.timestamp).total_seconds()
            for previous, current in zip(points, points[1:])
        ],
        dtype=float,
    )


def total_distance_m(points: Sequence[RoutePoint]) -> float:
    return float(np.sum(segment_distances(points)))


def _moving_mask(distances: FloatArray, durations: FloatArray) -> NDArray[np.bool_]:
    """Pairs that count as movement.

    Gaps longer than ``MAX_SEGMENT_GAP_S`` are dropout or a long pause and
    contribute nothing. Pairs with no elapsed time have speed 0.
    """

    speeds = np.divide(
        distances,
        durations,
        out=np.zeros_like(distances),
        where=durations > 0,
    )
    return (durations <= MAX_SEGMENT_GAP_S) & (speeds > PAUSE_SPEED_THRESHOLD_MPS)


def moving_totals(points: Sequence[RoutePoint]) -> Tuple[float, float]:
    """Return ``(moving_time_s, moving_distance_m)``."""

    distances = segment_distances(points)
    durations = segment_durations(points)
    if distances.size == 0:
        return 0.0, 0.0
    mask = _moving_mask(distances, durations)
    return float(np.sum(durations[mask])), float(np.sum(distances[mask]))


def moving_time_s(points: Sequence[RoutePoint]) -> float:
    return moving_totals(points)[0]


def average_moving_speed_mps(points: Sequence[RoutePoint]) -> float:
    moving_time, moving_distance = moving_totals(points)
    return moving_distance / moving_time if moving_time > 0 else 0.0


def valid_altitudes(points: Sequence[RoutePoint]) -> FloatArray:
    """Altitudes of points that carry a real fix."""

    return np.asarray(
        [pt.altitude for pt in points if pt.altitude > INVALID_ALTITUDE_M],
        dtype=float,
    )


def smooth_altitudes(
    altitudes: Sequence[float], window: int = ELEVATION_SMOOTHING_WINDOW
) -> FloatArray:
    """Centered moving average, window clamped at both ends of the series."""

    values = np.asarray(altitudes, dtype=float)
    count = values.size
    if count <= 2 or window <= 1:
        return values.copy()
    half = min(window, count) // 2
    cumulative = np.concatenate(([0.0], np.cumsum(values)))
    index = np.arange(count)
    lower = np.clip(index - half, 0, count)
    upper = np.clip(index + half + 1, 0, count)
    return (cumulative[upper] - cumulative[lower]) / (upper - lower)


def hysteresis_gain_loss(
    series: Sequence[float],
    threshold_m: float = ELEVATION_HYSTERESIS_M,
    residual_m: float = ELEVATION_RESIDUAL_M,
) -> Tuple[float, float]:
    """Accumulate climbs and descents, committing only runs of ``threshold_m``.

    Whatever is left at the end counts when it reaches ``residual_m``.
    """

    gain = 0.0
    loss = 0.0
    cumulative = 0.0
    for change in np.diff(np.asarray(series, dtype=float)):
        cumulative += float(change)
        if abs(cumulative) >= threshold_m:
            if cumulative > 0:
                gain += cumulative
            else:
                loss -= cumulative
            cumulative = 0.0
    if abs(cumulative) >= residual_m:
        if cumulative > 0:
            gain += cumulative
        else:
            loss -= cumulative
    return gain, loss


def elevation_gain_loss(points: Sequence[RoutePoint]) -> Tuple[float, float]:
    """Return ``(gain_m, loss_m)`` from smoothed, valid altitudes."""

    altitudes = valid_altitudes(points)
    if altitudes.size < 2:
        return 0.0, 0.0
    return hysteresis_gain_loss(smooth_altitudes(altitudes))


def analyze(points: Sequence[RoutePoint]) -> TripAnalyticsSnapshot:
    """Compute a full analytics snapshot for ``points`` (assumed time-ordered)."""

    track: List[RoutePoint] = list(points)
    if not track:
        return TripAnalyticsSnapshot()
    distances = segment_distances(track)
    durations = segment_durations(track)
    moving_time = 0.0
    moving_distance = 0.0
    if distances.size:
        mask = _moving_mask(distances, durations)
        moving_time = float(np.sum(durations[mask]))
        moving_distance = float(np.sum(distances[mask]))
    gain, loss = elevation_gain_loss(track)
    altitudes = valid_altitudes(track)
    speeds = [pt.speed for pt in track if pt.speed is not None and pt.speed >= 0]
    duration = (track[-1].timestamp - track[0].timestamp).total_seconds()
    return TripAnalyticsSnapshot(
        total_distance_m=float(np.sum(distances)),
        moving_time_s=moving_time,
        average_moving_speed_mps=(
            moving_distance / moving_time if moving_time > 0 else 0.0
        ),
        elevation_gain_m=gain,
        elevation_loss_m=loss,
        point_count=len(track),
        duration_s=max(duration, 0.0),
        max_speed_mps=max(speeds) if speeds else 0.0,
        min_elevation_m=float(np.min(altitudes)) if altitudes.size else None,
        max_elevation_m=float(np.max(altitudes)) if altitudes.size else None,
    )


__all__ = [
    "analyze",
    "segment_distances",
    "segment_durations",
    "total_distance_m",
    "moving_totals",
    "moving_time_s",
    "average_moving_speed_mps",
    "valid_altitudes",
    "smooth_altitudes",
    "hysteresis_gain_loss",
    "elevation_gain_loss",
]
