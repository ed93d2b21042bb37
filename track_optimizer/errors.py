"""Central error types used across the package."""

from __future__ import annotations


class TrackOptimizerError(RuntimeError):
    """Base error for recoverable track processing failures."""


class OutOfRangeError(TrackOptimizerError, ValueError):
    """Raised when a coordinate edit falls outside the supported map bounds."""

    def __init__(self, latitude: float, longitude: float) -> None:
        super().__init__(
            f"Coordinate ({latitude}, {longitude}) is outside the editable range"
        )
        self.latitude = latitude
        self.longitude = longitude


class NotAdjacentError(TrackOptimizerError):
    """Raised when an insertion targets two points that are not consecutive."""


class PointNotFoundError(TrackOptimizerError, LookupError):
    """Raised when an edit references a point missing from the trip."""


class CompressionError(TrackOptimizerError):
    """Raised when a segment cannot be compressed; the segment is left untouched."""

    def __init__(self, message: str, segment_id: str | None = None) -> None:
        super().__init__(message)
        self.segment_id = segment_id


class MalformedThresholdsError(TrackOptimizerError, ValueError):
    """Raised when a speed threshold table is not strictly increasing."""


__all__ = [
    "TrackOptimizerError",
    "OutOfRangeError",
    "NotAdjacentError",
    "PointNotFoundError",
    "CompressionError",
    "MalformedThresholdsError",
]
