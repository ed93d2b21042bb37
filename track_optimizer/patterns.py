"""Movement characteristics of a run of points and the pattern they form.

``characterize`` summarises speed, heading and pause behaviour of a segment;
``classify`` turns that summary into a ``MovementPattern``. Storage records
the pattern of each segment when it is compressed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .config import (
    INVALID_ALTITUDE_M,
    PATTERN_PAUSE_INTERVAL_S,
    PATTERN_PAUSE_SPEED_MPS,
    PATTERN_TURN_THRESHOLD_DEG,
)
from .geometry import haversine_m, path_length_m, turn_angle_deg
from .models import MovementPattern, RoutePoint

MPS_TO_KMH = 3.6


@dataclass(frozen=True, slots=True)
class SegmentCharacteristics:
    """Summary of a segment's movement. Speeds are in km/h."""

    average_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    # Sample variance of the recorded speeds, in (km/h)^2.
    speed_variance: float = 0.0
    direction_changes: int = 0
    pause_count: int = 0
    distance_m: float = 0.0
    duration_s: float = 0.0
    straight_line_ratio: float = 0.0
    elevation_change_m: float = 0.0

    @property
    def transportation_mode(self) -> str:
        """Means of transport suggested by the average speed.

        The names are accepted by ``levels.settings_for_transportation``.
        """

        speed = self.average_speed_kmh
        if speed < 3.0:
            return "walking"
        if speed < 15.0:
            return "cycling"
        if speed < 50.0:
            return "driving"
        if speed < 90.0:
            return "highway"
        return "train"


def _pause_count(speeds: Sequence[float]) -> int:
    """Number of transitions into a stationary run."""

    pauses = 0
    in_pause = False
    for speed in speeds:
        stationary = speed < PATTERN_PAUSE_SPEED_MPS
        if stationary and not in_pause:
            pauses += 1
        in_pause = stationary
    return pauses


def _direction_changes(points: Sequence[RoutePoint]) -> int:
    changes = 0
    for previous, current, following in zip(points, points[1:], points[2:]):
        angle = turn_angle_deg(
            previous.coordinate, current.coordinate, following.coordinate
        )
        if angle > PATTERN_TURN_THRESHOLD_DEG:
            changes += 1
    return changes


def characterize(points: Sequence[RoutePoint]) -> SegmentCharacteristics:
    """Summarise the movement of ``points``.

    Fewer than two points yield an all-zero summary. Negative recorded
    speeds mean "unknown" and are left out of the speed figures and the
    pause count.
    """

    if len(points) < 2:
        return SegmentCharacteristics()
    ordered = sorted(points, key=lambda pt: pt.timestamp)

    speeds = np.asarray([pt.speed for pt in ordered if pt.speed >= 0.0], dtype=float)
    speeds_kmh = speeds * MPS_TO_KMH
    average = float(np.mean(speeds_kmh)) if speeds_kmh.size else 0.0
    maximum = float(np.max(speeds_kmh)) if speeds_kmh.size else 0.0
    variance = float(np.var(speeds_kmh, ddof=1)) if speeds_kmh.size > 1 else 0.0

    distance = path_length_m([pt.coordinate for pt in ordered])
    direct = haversine_m(ordered[0].coordinate, ordered[-1].coordinate)
    ratio = min(1.0, direct / distance) if distance > 0 else 0.0

    altitudes = [pt.altitude for pt in ordered if pt.altitude > INVALID_ALTITUDE_M]
    elevation = max(altitudes) - min(altitudes) if altitudes else 0.0

    return SegmentCharacteristics(
        average_speed_kmh=average,
        max_speed_kmh=maximum,
        speed_variance=variance,
        direction_changes=_direction_changes(ordered),
        pause_count=_pause_count(speeds.tolist()),
        distance_m=distance,
        duration_s=(ordered[-1].timestamp - ordered[0].timestamp).total_seconds(),
        straight_line_ratio=ratio,
        elevation_change_m=elevation,
    )


def classify(characteristics: SegmentCharacteristics) -> MovementPattern:
    """Pick the first matching pattern; irregular low speed is the fallback."""

    c = characteristics
    if c.pause_count > c.duration_s / PATTERN_PAUSE_INTERVAL_S:
        return MovementPattern.PAUSE_HEAVY
    if (
        c.average_speed_kmh > 60.0
        and c.straight_line_ratio > 0.8
        and c.direction_changes < 5
    ):
        return MovementPattern.STRAIGHT_HIGH_SPEED
    if (
        c.average_speed_kmh > 50.0
        and c.max_speed_kmh > 80.0
        and 3 < c.direction_changes < 15
    ):
        return MovementPattern.HIGHWAY_WITH_EXITS
    if 15.0 < c.average_speed_kmh < 50.0 and c.speed_variance > 100.0:
        return MovementPattern.URBAN_MIXED
    return MovementPattern.IRREGULAR_LOW_SPEED


def movement_pattern(points: Sequence[RoutePoint]) -> MovementPattern:
    return classify(characterize(points))


__all__ = [
    "SegmentCharacteristics",
    "characterize",
    "classify",
    "movement_pattern",
]
