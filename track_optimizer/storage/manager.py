"""Segment-based storage and compression bookkeeping.

A trip's points are partitioned into time-bounded segments. Closed segments
that have aged past a cutoff are compressed by running the simplifier with
an archival level; compression is one-way and keeps both endpoints, so a
segment's start and end never move. Statistics report the estimated space
saved across compressed segments.

Each segment has its own re-entrant lock. Compression and track edits take
that lock, and segments being edited are left out of the eligible set.
"""

from __future__ import annotations

from collections import Counter
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
import threading
import time
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from ..config import (
    ARCHIVE_OPTIMIZATION_LEVEL,
    COMPRESSION_DELAY_HOURS,
    COMPRESSION_ENCODE_POLYLINE,
    ESTIMATED_POINT_SIZE_BYTES,
    SEGMENT_SIZE_THRESHOLD,
)
from ..errors import CompressionError
from ..geometry import path_length_m
from ..models import LatLon, MovementPattern, RoutePoint, SegmentStatus, TrackSegment
from ..patterns import movement_pattern
from ..simplifier import OptimizationSettings, preset, simplify
from .encoding import decode_polyline, encode_points

Simplifier = Callable[[Sequence[RoutePoint], OptimizationSettings], List[RoutePoint]]
SegmentRef = Union[TrackSegment, str]
TripListener = Callable[[str], None]


def _default_archive_settings() -> OptimizationSettings:
    return preset(ARCHIVE_OPTIMIZATION_LEVEL)


@dataclass(slots=True)
class TrackStorageConfig:
    archive_settings: OptimizationSettings = field(
        default_factory=_default_archive_settings
    )
    point_size_bytes: int = ESTIMATED_POINT_SIZE_BYTES
    segment_size_threshold: int = SEGMENT_SIZE_THRESHOLD
    compression_delay: timedelta = timedelta(hours=COMPRESSION_DELAY_HOURS)
    encode_polyline: bool = COMPRESSION_ENCODE_POLYLINE
    simplifier: Simplifier = simplify
    logger: logging.Logger | None = None


@dataclass(frozen=True, slots=True)
class CompressionOutcome:
    """Result of a single ``compress`` call."""

    segment_id: str
    original_point_count: int
    retained_point_count: int
    saved_points: int
    saved_bytes: int
    already_compressed: bool = False
    duration_s: float = 0.0
    dropped_points: Tuple[RoutePoint, ...] = ()
    movement_pattern: Optional[MovementPattern] = None

    @property
    def compression_ratio(self) -> float:
        if self.original_point_count <= 0:
            return 1.0
        return self.retained_point_count / self.original_point_count


@dataclass(frozen=True, slots=True)
class StorageStatistics:
    total_segments: int = 0
    compressed_segments: int = 0
    original_points: int = 0
    retained_points: int = 0
    saved_space_bytes: int = 0
    compression_ratio: float = 1.0

    @property
    def saved_space_formatted(self) -> str:
        return format_bytes(self.saved_space_bytes)


def format_bytes(count: int) -> str:
    """Human readable byte count using decimal (file-style) units."""

    value = float(count)
    for unit in ("bytes", "KB", "MB", "GB"):
        if abs(value) < 1000.0 or unit == "GB":
            if unit == "bytes":
                return f"{int(value)} bytes"
            return f"{value:.1f} {unit}"
        value /= 1000.0
    return f"{value:.1f} GB"  # pragma: no cover - loop always returns


class TrackStorageManager:
    """Owns segment metadata and compression state for any number of trips.

    Construct one instance and pass it to the components that need it;
    there is no module-level shared instance.
    """

    def __init__(self, config: TrackStorageConfig | None = None) -> None:
        self.config = config or TrackStorageConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)
        self._segments: Dict[str, TrackSegment] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._editing: Counter[str] = Counter()
        self._registry_lock = threading.RLock()
        self._trip_listeners: List[TripListener] = []

    # ------------------------------------------------------------------
    # Segment lifecycle
    # ------------------------------------------------------------------
    def start_live_segment(self, trip_id: str) -> TrackSegment:
        """Open a new live segment for ``trip_id``."""

        segment = TrackSegment(trip_id=trip_id, status=SegmentStatus.LIVE)
        self._add(segment)
        self._log.debug(
            "Started live segment %s for trip %s", segment.segment_id, trip_id
        )
        return segment

    def append_point(self, segment: TrackSegment, point: RoutePoint) -> TrackSegment:
        """Append a fix to a live segment and return the segment to use next.

        Once the segment reaches the size threshold it is closed and a fresh
        live segment is opened for the same trip, which is returned.
        """

        with self.segment_lock(segment):
            if segment.status is not SegmentStatus.LIVE:
                raise ValueError(f"Segment {segment.segment_id} is not live")
            segment.points.append(point)
            segment.original_point_count += 1
            segment.retained_point_count = len(segment.points)
            self._refresh_metadata(segment)
            if segment.original_point_count < self.config.segment_size_threshold:
                return segment
            self.close_segment(segment)
        return self.start_live_segment(segment.trip_id)

    def close_segment(self, segment: TrackSegment) -> None:
        """Mark a live segment as finished so it can age toward compression."""

        with self.segment_lock(segment):
            if segment.status is not SegmentStatus.LIVE:
                return
            segment.status = SegmentStatus.RECENT
            self._refresh_metadata(segment)
        self._log.debug(
            "Closed segment %s with %d points",
            segment.segment_id,
            segment.original_point_count,
        )

    def register_segment(
        self,
        trip_id: str,
        points: Sequence[RoutePoint],
        *,
        status: SegmentStatus = SegmentStatus.RECENT,
    ) -> TrackSegment:
        """Track an already-recorded, time-ordered slice of a trip."""

        segment = TrackSegment(
            trip_id=trip_id,
            points=list(points),
            status=status,
            original_point_count=len(points),
            retained_point_count=len(points),
        )
        self._refresh_metadata(segment)
        self._add(segment)
        return segment

    def partition_trip(
        self, trip_id: str, points: Sequence[RoutePoint]
    ) -> List[TrackSegment]:
        """Split a recorded track into closed segments of at most the size threshold."""

        size = max(1, self.config.segment_size_threshold)
        track = list(points)
        return [
            self.register_segment(trip_id, track[start : start + size])
            for start in range(0, len(track), size)
        ]

    def delete_trip(self, trip_id: str) -> int:
        """Drop every segment of ``trip_id``; returns how many were removed."""

        with self._registry_lock:
            doomed = [
                seg_id
                for seg_id, seg in self._segments.items()
                if seg.trip_id == trip_id
            ]
            for seg_id in doomed:
                del self._segments[seg_id]
                self._locks.pop(seg_id, None)
                self._editing.pop(seg_id, None)
            listeners = list(self._trip_listeners)
        for listener in listeners:
            try:
                listener(trip_id)
            except Exception:
                self._log.debug(
                    "Trip deletion listener failed for trip %s", trip_id, exc_info=True
                )
        self._log.info("Deleted %d segments for trip %s", len(doomed), trip_id)
        return len(doomed)

    def add_trip_deleted_listener(self, listener: TripListener) -> None:
        with self._registry_lock:
            self._trip_listeners.append(listener)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_segment(self, segment_id: str) -> Optional[TrackSegment]:
        with self._registry_lock:
            return self._segments.get(segment_id)

    def segments_for_trip(self, trip_id: str) -> List[TrackSegment]:
        with self._registry_lock:
            segments = [s for s in self._segments.values() if s.trip_id == trip_id]
        return sorted(segments, key=_segment_sort_key)

    def live_segment(self, trip_id: str) -> Optional[TrackSegment]:
        for segment in self.segments_for_trip(trip_id):
            if segment.status is SegmentStatus.LIVE:
                return segment
        return None

    def segments_containing(
        self, trip_id: str, points: Iterable[RoutePoint]
    ) -> List[TrackSegment]:
        """Segments of ``trip_id`` holding any of ``points`` (identity match)."""

        wanted = {id(pt) for pt in points}
        return [
            segment
            for segment in self.segments_for_trip(trip_id)
            if any(id(pt) in wanted for pt in segment.points)
        ]

    def segments_eligible_for_compression(
        self, older_than: datetime
    ) -> List[TrackSegment]:
        """Closed, uncompressed segments whose last point predates ``older_than``.

        Segments currently held by an editor are skipped.
        """

        with self._registry_lock:
            candidates = [
                segment
                for segment in self._segments.values()
                if not segment.is_compressed
                and segment.status is not SegmentStatus.LIVE
                and segment.points
                and self._editing[segment.segment_id] == 0
            ]
        eligible = [
            segment
            for segment in candidates
            if segment.last_timestamp is not None
            and segment.last_timestamp < older_than
        ]
        return sorted(eligible, key=_segment_sort_key)

    def segments_due(self, now: datetime) -> List[TrackSegment]:
        """Eligible segments older than the configured compression delay."""

        return self.segments_eligible_for_compression(
            now - self.config.compression_delay
        )

    def reconstruct_coordinates(self, segment: TrackSegment) -> List[LatLon]:
        """Coordinates of a segment, decoded from its polyline when compressed."""

        if segment.is_compressed and segment.encoded_polyline:
            return decode_polyline(segment.encoded_polyline)
        return [pt.coordinate for pt in segment.points]

    # ------------------------------------------------------------------
    # Compression
    # ------------------------------------------------------------------
    def compress(self, segment: SegmentRef) -> CompressionOutcome:
        """Compress a segment with the archival settings.

        Already-compressed segments return an outcome with zero savings.
        Any failure raises ``CompressionError`` and leaves the segment as it
        was.
        """

        segment_id = segment.segment_id if isinstance(segment, TrackSegment) else segment
        stored = self.get_segment(segment_id)
        if stored is None:
            raise CompressionError(f"Segment {segment_id} not found", segment_id)
        with self.segment_lock(stored):
            if self.get_segment(segment_id) is None:
                raise CompressionError(
                    f"Segment {segment_id} was deleted", segment_id
                )
            if stored.is_compressed:
                self._log.debug("Segment %s already compressed", segment_id)
                return CompressionOutcome(
                    segment_id=segment_id,
                    original_point_count=stored.original_point_count,
                    retained_point_count=stored.retained_point_count,
                    saved_points=0,
                    saved_bytes=0,
                    already_compressed=True,
                    movement_pattern=stored.movement_pattern,
                )
            points = list(stored.points)
            if not points:
                raise CompressionError(
                    f"Segment {segment_id} has no points", segment_id
                )
            started = time.perf_counter()
            retained, encoded, pattern = self._build_compressed(segment_id, points)
            kept = {id(pt) for pt in retained}
            dropped = tuple(pt for pt in points if id(pt) not in kept)

            stored.points = retained
            stored.original_point_count = len(points)
            stored.retained_point_count = len(retained)
            stored.encoded_polyline = encoded
            stored.movement_pattern = pattern
            stored.is_compressed = True
            stored.status = SegmentStatus.COMPRESSED
            self._refresh_metadata(stored)
            duration = time.perf_counter() - started

        saved = len(points) - len(retained)
        outcome = CompressionOutcome(
            segment_id=segment_id,
            original_point_count=len(points),
            retained_point_count=len(retained),
            saved_points=saved,
            saved_bytes=saved * self.config.point_size_bytes,
            duration_s=duration,
            dropped_points=dropped,
            movement_pattern=pattern,
        )
        self._log.info(
            "Compressed segment %s (%s): %d -> %d points (%.0f%% saved) in %.3fs",
            segment_id,
            pattern.value,
            outcome.original_point_count,
            outcome.retained_point_count,
            (1.0 - outcome.compression_ratio) * 100.0,
            duration,
        )
        return outcome

    def _build_compressed(
        self, segment_id: str, points: List[RoutePoint]
    ) -> Tuple[List[RoutePoint], Optional[str], MovementPattern]:
        """Classify, simplify and encode without touching the segment."""

        try:
            pattern = movement_pattern(points)
            retained = list(
                self.config.simplifier(points, self.config.archive_settings)
            )
            encoded = encode_points(retained) if self.config.encode_polyline else None
        except Exception as exc:
            raise CompressionError(
                f"Compression of segment {segment_id} failed: {exc}", segment_id
            ) from exc
        if not retained or retained[0] is not points[0] or retained[-1] is not points[-1]:
            raise CompressionError(
                f"Compression of segment {segment_id} would drop its endpoints",
                segment_id,
            )
        return retained, encoded, pattern

    def statistics(self) -> StorageStatistics:
        """Aggregate segment counts and estimated savings."""

        with self._registry_lock:
            segments = list(self._segments.values())
        compressed = [s for s in segments if s.is_compressed]
        original = sum(s.original_point_count for s in compressed)
        retained = sum(s.retained_point_count for s in compressed)
        return StorageStatistics(
            total_segments=len(segments),
            compressed_segments=len(compressed),
            original_points=original,
            retained_points=retained,
            saved_space_bytes=(original - retained) * self.config.point_size_bytes,
            compression_ratio=retained / original if original > 0 else 1.0,
        )

    # ------------------------------------------------------------------
    # Locking and edit support
    # ------------------------------------------------------------------
    def segment_lock(self, segment: SegmentRef) -> threading.RLock:
        segment_id = segment.segment_id if isinstance(segment, TrackSegment) else segment
        with self._registry_lock:
            lock = self._locks.get(segment_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[segment_id] = lock
            return lock

    @contextmanager
    def editing(self, segments: Iterable[TrackSegment]) -> Iterator[None]:
        """Hold the locks of ``segments`` and hide them from compression."""

        ids = sorted({segment.segment_id for segment in segments})
        with ExitStack() as stack:
            for segment_id in ids:
                stack.enter_context(self.segment_lock(segment_id))
            with self._registry_lock:
                self._editing.update(ids)
            try:
                yield
            finally:
                with self._registry_lock:
                    self._editing.subtract(ids)
                    for segment_id in ids:
                        if self._editing[segment_id] <= 0:
                            del self._editing[segment_id]

    def insert_after(
        self,
        segment: TrackSegment,
        anchor: Optional[RoutePoint],
        point: RoutePoint,
    ) -> None:
        """Place an edited-in point right after ``anchor`` (first when None).

        The caller must hold the segment lock.
        """

        index = 0
        if anchor is not None:
            index = len(segment.points)
            for position, existing in enumerate(segment.points):
                if existing is anchor:
                    index = position + 1
                    break
        segment.points.insert(index, point)
        if not segment.is_compressed:
            segment.original_point_count += 1
        segment.retained_point_count = len(segment.points)
        self._refresh_after_edit(segment)

    def remove_points(
        self, segment: TrackSegment, points: Iterable[RoutePoint]
    ) -> int:
        """Remove ``points`` from ``segment`` by identity; caller holds the lock."""

        doomed = {id(pt) for pt in points}
        before = len(segment.points)
        segment.points = [pt for pt in segment.points if id(pt) not in doomed]
        removed = before - len(segment.points)
        if removed:
            if not segment.is_compressed:
                segment.original_point_count = max(
                    segment.original_point_count - removed, len(segment.points)
                )
            segment.retained_point_count = len(segment.points)
            self._refresh_after_edit(segment)
        return removed

    def refresh(self, segment: TrackSegment) -> None:
        """Recompute derived data after points were changed in place."""

        self._refresh_after_edit(segment)

    def _refresh_after_edit(self, segment: TrackSegment) -> None:
        # Compressed segments keep their original count; the stored polyline
        # must follow the edited points.
        self._refresh_metadata(segment)
        if segment.is_compressed and segment.encoded_polyline is not None:
            segment.encoded_polyline = encode_points(segment.points)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _add(self, segment: TrackSegment) -> None:
        with self._registry_lock:
            self._segments[segment.segment_id] = segment
            self._locks.setdefault(segment.segment_id, threading.RLock())

    def _refresh_metadata(self, segment: TrackSegment) -> None:
        points = segment.points
        if not points:
            segment.distance_m = 0.0
            segment.average_speed_mps = 0.0
            segment.max_speed_mps = 0.0
            return
        speeds = [pt.speed for pt in points if pt.speed >= 0]
        segment.distance_m = path_length_m([pt.coordinate for pt in points])
        segment.average_speed_mps = sum(speeds) / len(speeds) if speeds else 0.0
        segment.max_speed_mps = max(speeds) if speeds else 0.0
        segment.start_time = points[0].timestamp
        segment.end_time = points[-1].timestamp


def _segment_sort_key(segment: TrackSegment) -> Tuple[int, float]:
    start = segment.start_time
    if start is None:
        return (1, 0.0)
    return (0, start.timestamp())


__all__ = [
    "TrackStorageConfig",
    "TrackStorageManager",
    "CompressionOutcome",
    "StorageStatistics",
    "format_bytes",
]
