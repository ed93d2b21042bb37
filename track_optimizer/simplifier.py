"""Point decimation for recorded and live GPS tracks.

``simplify`` is a greedy single-pass reducer: it walks the track once,
keeping a point whenever dropping it would open a temporal or spatial gap,
cut a corner, or move the route further than ``max_deviation`` from the
chord between its neighbours. Because the decision for a point only needs
the previously retained point and the next fix, the same rule can run live
(see ``StreamingSimplifier``) on an unbounded stream of fixes.

``douglas_peucker`` is the batch counterpart for explicit re-optimization
of a finished track.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import logging
from typing import Callable, Dict, List, Optional, Sequence, Union

from .config import DOUGLAS_PEUCKER_MAX_POINTS
from .geometry import (
    decimate_indices,
    haversine_m,
    path_length_m,
    perpendicular_deviation_m,
    reproject_to_local_crs,
    simplified_indices,
    turn_angle_deg,
)
from .models import RoutePoint

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OptimizationSettings:
    """Thresholds controlling how aggressively points are dropped.

    Attributes:
        max_deviation: Largest perpendicular distance (m) a dropped point may
            have from the chord joining its retained neighbours.
        min_distance: Points closer (m) than this to the last retained point
            are skipped by ``StreamingSimplifier`` when its distance gate is on.
        max_distance: A point further (m) than this from the last retained
            point is always kept, bounding spatial gaps.
        angle_threshold: Heading change (degrees) at which a point is kept
            to preserve corners.
        min_time_interval: A point recorded this many seconds after the last
            retained point is always kept, bounding temporal gaps.
        speed_factor: Scales ``min_distance`` at high speed for that gate.
    """

    max_deviation: float
    min_distance: float
    max_distance: float
    angle_threshold: float
    min_time_interval: float
    speed_factor: float = 1.0

    def is_at_most(self, other: "OptimizationSettings") -> bool:
        """Return True when every threshold is <= the one in ``other``."""

        return all(
            getattr(self, f.name) <= getattr(other, f.name) for f in fields(self)
        )


# Tuned against recorded tracks; each level is >= the previous one field by field.
LEVEL_1 = OptimizationSettings(
    max_deviation=5.0,
    min_distance=30.0,
    max_distance=250.0,
    angle_threshold=15.0,
    min_time_interval=20.0,
    speed_factor=0.5,
)
LEVEL_2 = OptimizationSettings(
    max_deviation=10.0,
    min_distance=50.0,
    max_distance=500.0,
    angle_threshold=25.0,
    min_time_interval=30.0,
    speed_factor=1.2,
)
LEVEL_3 = OptimizationSettings(
    max_deviation=20.0,
    min_distance=100.0,
    max_distance=800.0,
    angle_threshold=35.0,
    min_time_interval=60.0,
    speed_factor=2.0,
)
LEVEL_4 = OptimizationSettings(
    max_deviation=25.0,
    min_distance=150.0,
    max_distance=1000.0,
    angle_threshold=40.0,
    min_time_interval=90.0,
    speed_factor=2.5,
)
LEVEL_5 = OptimizationSettings(
    max_deviation=30.0,
    min_distance=200.0,
    max_distance=1200.0,
    angle_threshold=45.0,
    min_time_interval=120.0,
    speed_factor=3.0,
)

PRESETS: Dict[int, OptimizationSettings] = {
    1: LEVEL_1,
    2: LEVEL_2,
    3: LEVEL_3,
    4: LEVEL_4,
    5: LEVEL_5,
}


def preset(level: int) -> OptimizationSettings:
    """Return the named preset for ``level`` (1-5)."""

    try:
        return PRESETS[int(level)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unknown optimization level: {level!r}") from None


def should_retain(
    previous: RoutePoint,
    candidate: RoutePoint,
    following: RoutePoint,
    settings: OptimizationSettings,
) -> bool:
    """Decide whether ``candidate`` stays between ``previous`` and ``following``.

    ``previous`` is the last retained point, ``following`` the next input fix.
    """

    elapsed = (candidate.timestamp - previous.timestamp).total_seconds()
    if elapsed >= settings.min_time_interval:
        return True
    if haversine_m(previous.coordinate, candidate.coordinate) >= settings.max_distance:
        return True
    angle = turn_angle_deg(
        previous.coordinate, candidate.coordinate, following.coordinate
    )
    if angle >= settings.angle_threshold:
        return True
    deviation = perpendicular_deviation_m(
        candidate.coordinate, previous.coordinate, following.coordinate
    )
    return deviation >= settings.max_deviation


def simplify(
    points: Sequence[RoutePoint], settings: OptimizationSettings
) -> List[RoutePoint]:
    """Return the retained subset of ``points`` under ``settings``.

    Input must already be ordered by timestamp. The first and last point are
    always kept; sequences of two or fewer points come back unchanged.
    """

    track = list(points)
    if len(track) <= 2:
        return track
    retained = [track[0]]
    previous = track[0]
    for index in range(1, len(track) - 1):
        candidate = track[index]
        if should_retain(previous, candidate, track[index + 1], settings):
            retained.append(candidate)
            previous = candidate
    retained.append(track[-1])
    _LOG.debug("Simplified %d points to %d", len(track), len(retained))
    return retained


def adaptive_min_distance(speed_mps: float, settings: OptimizationSettings) -> float:
    """Scale ``min_distance`` with speed: sparser when fast, denser when slow."""

    speed_kmh = max(speed_mps, 0.0) * 3.6
    distance = settings.min_distance
    if speed_kmh > 50.0:
        distance *= 1.0 + (speed_kmh - 50.0) / 50.0 * settings.speed_factor
    elif speed_kmh < 20.0:
        distance *= 0.6
    return distance


SettingsProvider = Union[
    OptimizationSettings, Callable[[RoutePoint], OptimizationSettings]
]


class StreamingSimplifier:
    """Incremental form of ``simplify`` for live tracking.

    Each fix is held as a pending candidate until the next one arrives, at
    which point it is decided with the same rule as ``simplify``. Feeding a
    whole track through ``push`` and then ``flush`` yields exactly what
    ``simplify`` returns for the same settings.

    ``settings`` may be a fixed ``OptimizationSettings`` or a callable that
    receives the candidate being decided, so the level can follow the
    current speed.

    With ``distance_gate`` enabled, a fix that arrives within
    ``min_time_interval`` of the previous accepted fix and closer than
    ``adaptive_min_distance`` to it is discarded before it becomes a
    candidate. That trades the equivalence with ``simplify`` for fewer
    decisions on dense, slow streams.
    """

    def __init__(self, settings: SettingsProvider, *, distance_gate: bool = False) -> None:
        self._settings = settings
        self._distance_gate = distance_gate
        self._last_retained: Optional[RoutePoint] = None
        self._pending: Optional[RoutePoint] = None
        self.received = 0
        self.retained = 0
        self.gated = 0

    @property
    def last_retained(self) -> Optional[RoutePoint]:
        return self._last_retained

    def _settings_for(self, candidate: RoutePoint) -> OptimizationSettings:
        if isinstance(self._settings, OptimizationSettings):
            return self._settings
        return self._settings(candidate)

    def push(self, point: RoutePoint) -> List[RoutePoint]:
        """Feed one fix; return the points committed as a result."""

        self.received += 1
        if self._last_retained is None:
            self._last_retained = point
            self.retained += 1
            return [point]
        if self._distance_gate and self._is_gated(point):
            self.gated += 1
            return []
        if self._pending is None:
            self._pending = point
            return []
        committed: List[RoutePoint] = []
        candidate = self._pending
        if should_retain(
            self._last_retained, candidate, point, self._settings_for(candidate)
        ):
            committed.append(candidate)
            self._last_retained = candidate
            self.retained += 1
        self._pending = point
        return committed

    def _is_gated(self, point: RoutePoint) -> bool:
        anchor = self._pending or self._last_retained
        if anchor is None:
            return False
        settings = self._settings_for(point)
        elapsed = (point.timestamp - anchor.timestamp).total_seconds()
        if elapsed >= settings.min_time_interval:
            return False
        distance = haversine_m(anchor.coordinate, point.coordinate)
        return distance < adaptive_min_distance(point.speed, settings)

    def flush(self) -> List[RoutePoint]:
        """Commit the pending fix (the track end); call when recording stops."""

        if self._pending is None:
            return []
        point = self._pending
        self._pending = None
        self._last_retained = point
        self.retained += 1
        return [point]

    def reset(self) -> None:
        self._last_retained = None
        self._pending = None
        self.received = 0
        self.retained = 0
        self.gated = 0


def douglas_peucker(
    points: Sequence[RoutePoint],
    tolerance_m: float,
    *,
    max_points: int = DOUGLAS_PEUCKER_MAX_POINTS,
) -> List[RoutePoint]:
    """Batch Douglas-Peucker reduction returning the original point objects.

    Tracks longer than ``max_points`` are thinned evenly first so the
    projection and simplification stay bounded.
    """

    track = list(points)
    if len(track) <= 2 or tolerance_m <= 0:
        return track
    if len(track) > max_points:
        track = [track[i] for i in decimate_indices(len(track), max_points)]
    metric, _ = reproject_to_local_crs([pt.coordinate for pt in track])
    kept = simplified_indices(metric, tolerance_m)
    return [track[i] for i in kept]


@dataclass(frozen=True, slots=True)
class OptimizationStats:
    """Before/after comparison of an optimization pass."""

    original_points: int
    optimized_points: int
    saved_points: int
    reduction_percentage: float
    original_distance_m: float
    optimized_distance_m: float


def optimization_stats(
    original: Sequence[RoutePoint], optimized: Sequence[RoutePoint]
) -> OptimizationStats:
    original_count = len(original)
    optimized_count = len(optimized)
    saved = original_count - optimized_count
    reduction = saved / original_count * 100.0 if original_count else 0.0
    return OptimizationStats(
        original_points=original_count,
        optimized_points=optimized_count,
        saved_points=saved,
        reduction_percentage=reduction,
        original_distance_m=path_length_m([pt.coordinate for pt in original]),
        optimized_distance_m=path_length_m([pt.coordinate for pt in optimized]),
    )


__all__ = [
    "OptimizationSettings",
    "LEVEL_1",
    "LEVEL_2",
    "LEVEL_3",
    "LEVEL_4",
    "LEVEL_5",
    "PRESETS",
    "preset",
    "should_retain",
    "simplify",
    "adaptive_min_distance",
    "StreamingSimplifier",
    "douglas_peucker",
    "OptimizationStats",
    "optimization_stats",
]
