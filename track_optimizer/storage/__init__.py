"""Segment storage, compression and the background compression worker."""

from .encoding import decode_polyline, encode_points
from .manager import (
    CompressionOutcome,
    StorageStatistics,
    TrackStorageConfig,
    TrackStorageManager,
    format_bytes,
)
from .worker import CompressionWorker

__all__ = [
    "TrackStorageManager",
    "TrackStorageConfig",
    "CompressionOutcome",
    "StorageStatistics",
    "CompressionWorker",
    "format_bytes",
    "encode_points",
    "decode_polyline",
]
