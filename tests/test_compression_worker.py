"""Background compression: single flight per segment and trip cancellation."""

from __future__ import annotations

from datetime import timedelta
import threading

import pytest

from conftest import BASE_TIME, make_straight_track
from track_optimizer.errors import CompressionError
from track_optimizer.simplifier import simplify
from track_optimizer.storage import (
    CompressionWorker,
    TrackStorageConfig,
    TrackStorageManager,
)


class GatedSimplifier:
    """Simplifier that blocks until released so tests can observe queued work."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, points, settings):
        with self._lock:
            self.calls += 1
        self.started.set()
        self.release.wait(2.0)
        return simplify(points, settings)


def test_submit_compresses_segment():
    manager = TrackStorageManager()
    segment = manager.register_segment("trip", make_straight_track(50))
    with CompressionWorker(manager) as worker:
        outcome = worker.submit(segment).result(timeout=5)
    assert outcome.segment_id == segment.segment_id
    assert segment.is_compressed


def test_duplicate_submission_shares_one_task():
    gate = GatedSimplifier()
    manager = TrackStorageManager(TrackStorageConfig(simplifier=gate))
    segment = manager.register_segment("trip", make_straight_track(50))
    worker = CompressionWorker(manager, max_workers=2)
    try:
        first = worker.submit(segment)
        assert gate.started.wait(1.0)
        second = worker.submit(segment)
        assert second is first
        gate.release.set()
        first.result(timeout=5)
    finally:
        gate.release.set()
        worker.shutdown()
    assert gate.calls == 1


def test_submit_due_queues_aged_segments():
    manager = TrackStorageManager()
    old = manager.register_segment("trip", make_straight_track(20))
    live = manager.start_live_segment("trip")
    with CompressionWorker(manager) as worker:
        futures = worker.submit_due(BASE_TIME + timedelta(days=2))
        for future in futures:
            future.result(timeout=5)
    assert len(futures) == 1
    assert old.is_compressed
    assert not live.is_compressed


def test_deleting_trip_cancels_queued_tasks():
    gate = GatedSimplifier()
    manager = TrackStorageManager(TrackStorageConfig(simplifier=gate))
    blocker = manager.register_segment("busy", make_straight_track(20))
    queued = manager.register_segment("doomed", make_straight_track(20))
    worker = CompressionWorker(manager, max_workers=1)
    try:
        running = worker.submit(blocker)
        assert gate.started.wait(1.0)
        waiting = worker.submit(queued)
        assert worker.pending() == 2

        manager.delete_trip("doomed")
        assert waiting.cancelled()

        gate.release.set()
        running.result(timeout=5)
    finally:
        gate.release.set()
        worker.shutdown()
    assert gate.calls == 1


def test_failed_compression_surfaces_error():
    def exploding(points, settings):
        raise MemoryError("boom")

    manager = TrackStorageManager(TrackStorageConfig(simplifier=exploding))
    segment = manager.register_segment("trip", make_straight_track(10))
    with CompressionWorker(manager) as worker:
        future = worker.submit(segment)
        with pytest.raises(CompressionError):
            future.result(timeout=5)
    assert not segment.is_compressed


def test_submit_after_shutdown_raises():
    manager = TrackStorageManager()
    worker = CompressionWorker(manager)
    worker.shutdown()
    with pytest.raises(RuntimeError):
        worker.submit(manager.register_segment("trip", make_straight_track(3)))


def test_invalid_worker_count():
    with pytest.raises(ValueError):
        CompressionWorker(TrackStorageManager(), max_workers=0)
