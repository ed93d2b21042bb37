"""Background compression queue with at most one task in flight per segment."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from functools import partial
import logging
import threading
from typing import Dict, List

from ..config import COMPRESSION_MAX_WORKERS
from ..errors import CompressionError
from ..models import TrackSegment
from .manager import CompressionOutcome, TrackStorageManager


class CompressionWorker:
    """Runs ``TrackStorageManager.compress`` off the ingestion path.

    Submitting a segment that already has a pending or running task returns
    that task's future instead of queueing a second one. Deleting a trip in
    the manager cancels its queued tasks.
    """

    def __init__(
        self,
        manager: TrackStorageManager,
        max_workers: int = COMPRESSION_MAX_WORKERS,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self._manager = manager
        self._log = logging.getLogger(self.__class__.__name__)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="track-compress"
        )
        self._lock = threading.Lock()
        self._inflight: Dict[str, Future[CompressionOutcome]] = {}
        self._trip_of: Dict[str, str] = {}
        self._closed = False
        manager.add_trip_deleted_listener(self.cancel_trip)

    def submit(self, segment: TrackSegment) -> Future[CompressionOutcome]:
        segment_id = segment.segment_id
        with self._lock:
            if self._closed:
                raise RuntimeError("CompressionWorker has been shut down")
            existing = self._inflight.get(segment_id)
            if existing is not None and not existing.done():
                return existing
            future = self._executor.submit(self._run, segment_id)
            self._inflight[segment_id] = future
            self._trip_of[segment_id] = segment.trip_id
        future.add_done_callback(partial(self._forget, segment_id))
        return future

    def submit_due(self, now: datetime) -> List[Future[CompressionOutcome]]:
        """Queue every segment the manager reports as due at ``now``."""

        due = self._manager.segments_due(now)
        if due:
            self._log.info("Queueing %d segments for compression", len(due))
        return [self.submit(segment) for segment in due]

    def cancel_trip(self, trip_id: str) -> int:
        """Cancel queued tasks for ``trip_id``; running tasks finish normally."""

        with self._lock:
            futures = [
                self._inflight[seg_id]
                for seg_id, owner in self._trip_of.items()
                if owner == trip_id and seg_id in self._inflight
            ]
        cancelled = sum(1 for future in futures if future.cancel())
        if cancelled:
            self._log.info(
                "Cancelled %d queued compressions for trip %s", cancelled, trip_id
            )
        return cancelled

    def pending(self) -> int:
        with self._lock:
            return sum(1 for future in self._inflight.values() if not future.done())

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> "CompressionWorker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _run(self, segment_id: str) -> CompressionOutcome:
        try:
            return self._manager.compress(segment_id)
        except CompressionError:
            self._log.error(
                "Background compression of segment %s failed",
                segment_id,
                exc_info=True,
            )
            raise

    def _forget(self, segment_id: str, future: Future[CompressionOutcome]) -> None:
        with self._lock:
            if self._inflight.get(segment_id) is future:
                del self._inflight[segment_id]
                self._trip_of.pop(segment_id, None)


__all__ = ["CompressionWorker"]
