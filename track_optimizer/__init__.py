"""GPS track optimization, analytics and segment compression."""

from .analytics import analyze
from .editor import EditResult, TrackEditor
from .errors import (
    CompressionError,
    MalformedThresholdsError,
    NotAdjacentError,
    OutOfRangeError,
    PointNotFoundError,
    TrackOptimizerError,
)
from .levels import (
    AutomaticMode,
    CustomMode,
    FixedMode,
    OptimizationLevel,
    SpeedThresholds,
    select_level,
    select_settings,
)
from .models import (
    MovementPattern,
    RoutePoint,
    SegmentStatus,
    TrackSegment,
    Trip,
    TripAnalyticsSnapshot,
)
from .patterns import SegmentCharacteristics, characterize, classify
from .simplifier import (
    OptimizationSettings,
    StreamingSimplifier,
    douglas_peucker,
    preset,
    simplify,
)
from .storage import CompressionWorker, TrackStorageConfig, TrackStorageManager

__all__ = [
    "analyze",
    "TrackEditor",
    "EditResult",
    "TrackOptimizerError",
    "OutOfRangeError",
    "NotAdjacentError",
    "PointNotFoundError",
    "CompressionError",
    "MalformedThresholdsError",
    "OptimizationLevel",
    "SpeedThresholds",
    "FixedMode",
    "AutomaticMode",
    "CustomMode",
    "select_level",
    "select_settings",
    "RoutePoint",
    "Trip",
    "TrackSegment",
    "SegmentStatus",
    "TripAnalyticsSnapshot",
    "MovementPattern",
    "SegmentCharacteristics",
    "characterize",
    "classify",
    "OptimizationSettings",
    "StreamingSimplifier",
    "simplify",
    "douglas_peucker",
    "preset",
    "TrackStorageManager",
    "TrackStorageConfig",
    "CompressionWorker",
]
