"""Manual editing of a trip's point collection.

Every mutation either succeeds completely and returns a fresh analytics
snapshot, or raises and leaves the trip untouched. User feedback (haptics,
messages) is left to the caller, which inspects the returned result or the
raised error.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
import logging
import math
import threading
from typing import Iterable, Iterator, List, Optional, Sequence

from .analytics import analyze
from .config import EDIT_MAX_LATITUDE, EDIT_MAX_LONGITUDE, INSERTED_POINT_OFFSET_S
from .errors import NotAdjacentError, OutOfRangeError, PointNotFoundError
from .models import RoutePoint, TrackSegment, Trip, TripAnalyticsSnapshot
from .simplifier import OptimizationSettings, douglas_peucker, simplify
from .storage import TrackStorageManager


@dataclass(frozen=True, slots=True)
class EditResult:
    """Outcome of a successful edit plus the analytics taken under the same lock."""

    snapshot: TripAnalyticsSnapshot
    point: Optional[RoutePoint] = None
    removed: int = 0


def is_editable_coordinate(latitude: float, longitude: float) -> bool:
    """True when the coordinate lies inside the map surface's supported range."""

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return (
        -EDIT_MAX_LATITUDE <= latitude <= EDIT_MAX_LATITUDE
        and -EDIT_MAX_LONGITUDE <= longitude <= EDIT_MAX_LONGITUDE
    )


class TrackEditor:
    """Insert, delete and move points of one explicit trip.

    When a ``TrackStorageManager`` is supplied, edits also take the locks of
    the segments holding the touched points, keep those segments in step
    with the trip, and hide them from compression for the duration.
    """

    def __init__(self, trip: Trip, storage: TrackStorageManager | None = None) -> None:
        self.trip = trip
        self._storage = storage
        self._lock = threading.RLock()
        self._log = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def insert_between(self, first: RoutePoint, second: RoutePoint) -> EditResult:
        """Insert the midpoint of two timestamp-adjacent points.

        The new point sits one second after the earlier point, or halfway
        through the interval when the two are less than a second apart
        (or exactly one), so the trip stays ordered.
        """

        with self._guard([first, second]) as segments:
            first_index = self._index_of(first)
            second_index = self._index_of(second)
            if (
                first_index is None
                or second_index is None
                or abs(first_index - second_index) != 1
            ):
                raise NotAdjacentError(
                    "Points must be consecutive in the current track to insert between them"
                )
            if first_index > second_index:
                first, second = second, first
                first_index, second_index = second_index, first_index

            gap = second.timestamp - first.timestamp
            offset = timedelta(seconds=INSERTED_POINT_OFFSET_S)
            timestamp = first.timestamp + offset if gap > offset else first.timestamp + gap / 2
            point = RoutePoint(
                latitude=(first.latitude + second.latitude) / 2.0,
                longitude=(first.longitude + second.longitude) / 2.0,
                altitude=(first.altitude + second.altitude) / 2.0,
                speed=0.0,
                timestamp=timestamp,
            )
            self.trip.points.insert(second_index, point)
            if self._storage is not None:
                self._attach_to_segment(segments, first, second, point)
            snapshot = analyze(list(self.trip.points))
        self._log.debug(
            "Inserted point between indices %d and %d of trip %s",
            first_index,
            second_index,
            self.trip.trip_id,
        )
        return EditResult(snapshot=snapshot, point=point)

    def delete(self, point: RoutePoint) -> EditResult:
        """Remove ``point``; a point that is not in the trip is ignored."""

        return self.delete_many([point])

    def delete_many(self, points: Iterable[RoutePoint]) -> EditResult:
        targets = list(points)
        with self._guard(targets) as segments:
            doomed = {id(pt) for pt in targets}
            before = len(self.trip.points)
            self.trip.points[:] = [pt for pt in self.trip.points if id(pt) not in doomed]
            removed = before - len(self.trip.points)
            if self._storage is not None:
                for segment in segments:
                    self._storage.remove_points(segment, targets)
            snapshot = analyze(list(self.trip.points))
        self._log.debug("Deleted %d points from trip %s", removed, self.trip.trip_id)
        return EditResult(snapshot=snapshot, removed=removed)

    def move(self, point: RoutePoint, latitude: float, longitude: float) -> EditResult:
        """Move ``point`` to new coordinates without re-running simplification."""

        if not is_editable_coordinate(latitude, longitude):
            raise OutOfRangeError(latitude, longitude)
        with self._guard([point]) as segments:
            if self._index_of(point) is None:
                raise PointNotFoundError(
                    f"Point is not part of trip {self.trip.trip_id}"
                )
            point.latitude = latitude
            point.longitude = longitude
            if self._storage is not None:
                for segment in segments:
                    self._storage.refresh(segment)
            snapshot = analyze(list(self.trip.points))
        return EditResult(snapshot=snapshot, point=point)

    # ------------------------------------------------------------------
    # Non-mutating helpers
    # ------------------------------------------------------------------
    def optimize(
        self,
        points: Sequence[RoutePoint],
        settings: OptimizationSettings,
        *,
        batch: bool = False,
    ) -> List[RoutePoint]:
        """Return the reduced point set; the caller applies any deletions.

        ``batch`` switches from the streaming rule to Douglas-Peucker with
        ``settings.max_deviation`` as tolerance.
        """

        if batch:
            return douglas_peucker(points, settings.max_deviation)
        return simplify(points, settings)

    def snapshot(self) -> TripAnalyticsSnapshot:
        with self._lock:
            return analyze(list(self.trip.points))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @contextmanager
    def _guard(self, points: Sequence[RoutePoint]) -> Iterator[List[TrackSegment]]:
        with self._lock:
            if self._storage is None:
                yield []
                return
            segments = self._storage.segments_containing(self.trip.trip_id, points)
            with self._storage.editing(segments):
                yield segments

    def _index_of(self, point: RoutePoint) -> Optional[int]:
        for index, existing in enumerate(self.trip.points):
            if existing is point:
                return index
        return None

    def _attach_to_segment(
        self,
        segments: Sequence[TrackSegment],
        first: RoutePoint,
        second: RoutePoint,
        point: RoutePoint,
    ) -> None:
        assert self._storage is not None
        for segment in segments:
            if any(existing is first for existing in segment.points):
                self._storage.insert_after(segment, first, point)
                return
        for segment in segments:
            if any(existing is second for existing in segment.points):
                self._storage.insert_after(segment, None, point)
                return


__all__ = ["TrackEditor", "EditResult", "is_editable_coordinate"]
