"""Central configuration for the track optimizer.

All values are constants imported by the rest of the package. Most can be
overridden through environment variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os
from typing import Tuple


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_float_tuple(
    key: str, default: Tuple[float, ...], *, increasing: bool = False
) -> Tuple[float, ...]:
    """Comma separated floats; falls back to ``default`` on any malformed value.

    With ``increasing`` the parsed values must also be strictly increasing.
    """
    value = os.getenv(key)
    if value is None:
        return default
    try:
        parsed = tuple(float(part) for part in value.split(",") if part.strip())
    except ValueError:
        return default
    if len(parsed) != len(default):
        return default
    if increasing and not all(lo < hi for lo, hi in zip(parsed, parsed[1:])):
        return default
    return parsed


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------
# Mean Earth radius used for great-circle distances.
EARTH_RADIUS_M = 6_371_000.0

# Altitudes at or below this value are treated as "no fix".
INVALID_ALTITUDE_M = _env_float("INVALID_ALTITUDE_M", -100.0)


# ---------------------------------------------------------------------------
# Trip analytics
# ---------------------------------------------------------------------------
# Segment speed (m/s) at or below which the device is considered paused.
# 0.5 m/s is roughly 1.8 km/h.
PAUSE_SPEED_THRESHOLD_MPS = _env_float("PAUSE_SPEED_THRESHOLD_MPS", 0.5)

# Consecutive fixes further apart than this (seconds) are a gap and ignored
# for moving time.
MAX_SEGMENT_GAP_S = _env_float("MAX_SEGMENT_GAP_S", 300.0)

# Cumulative altitude change (metres) required before it counts as gain/loss.
ELEVATION_HYSTERESIS_M = _env_float("ELEVATION_HYSTERESIS_M", 2.5)

# Lower bar applied to whatever is left over at the end of a track.
ELEVATION_RESIDUAL_M = _env_float("ELEVATION_RESIDUAL_M", 1.0)

# Centered moving-average window for altitude smoothing.
ELEVATION_SMOOTHING_WINDOW = _env_int("ELEVATION_SMOOTHING_WINDOW", 3)


# ---------------------------------------------------------------------------
# Movement patterns
# ---------------------------------------------------------------------------
# Recorded speed (m/s) below which a fix counts as stationary (~1 km/h).
PATTERN_PAUSE_SPEED_MPS = _env_float("PATTERN_PAUSE_SPEED_MPS", 0.28)

# Heading change (degrees) that counts as a direction change.
PATTERN_TURN_THRESHOLD_DEG = _env_float("PATTERN_TURN_THRESHOLD_DEG", 15.0)

# More than one pause per this many seconds makes a segment pause heavy.
PATTERN_PAUSE_INTERVAL_S = _env_float("PATTERN_PAUSE_INTERVAL_S", 600.0)


# ---------------------------------------------------------------------------
# Optimization level selection
# ---------------------------------------------------------------------------
# Walking, cycling, moped and driving upper bounds in km/h. Anything faster
# than the last value maps to the highway level.
DEFAULT_SPEED_THRESHOLDS_KMH = _env_float_tuple(
    "DEFAULT_SPEED_THRESHOLDS_KMH", (20.0, 35.0, 60.0, 87.0), increasing=True
)

# Level used by the custom selector when the user's table is malformed.
CUSTOM_FALLBACK_LEVEL = 2

# Level returned for unknown transportation modes.
DEFAULT_TRANSPORTATION_LEVEL = 2


# ---------------------------------------------------------------------------
# Segment storage / compression
# ---------------------------------------------------------------------------
# Live segments are closed once they hold this many points.
SEGMENT_SIZE_THRESHOLD = _env_int("SEGMENT_SIZE_THRESHOLD", 500)

# Hours a closed segment must age before it is due for compression.
COMPRESSION_DELAY_HOURS = _env_float("COMPRESSION_DELAY_HOURS", 24.0)

# Rough in-store size of one route point:
# lat(8) + lon(8) + timestamp(8) + altitude(8) + speed(8) + overhead.
ESTIMATED_POINT_SIZE_BYTES = _env_int("ESTIMATED_POINT_SIZE_BYTES", 50)

# Archived segments are no longer viewed live, so they use a more aggressive
# level than the live-tracking default.
ARCHIVE_OPTIMIZATION_LEVEL = _env_int("ARCHIVE_OPTIMIZATION_LEVEL", 4)

# Threads used by the background compression worker.
COMPRESSION_MAX_WORKERS = _env_int("COMPRESSION_MAX_WORKERS", 2)

# Store an encoded polyline of the retained coordinates on compression.
COMPRESSION_ENCODE_POLYLINE = _env_bool("COMPRESSION_ENCODE_POLYLINE", True)

# Decimal precision of the encoded polyline (6 keeps ~0.1 m).
POLYLINE_PRECISION = _env_int("POLYLINE_PRECISION", 6)


# ---------------------------------------------------------------------------
# Track editing
# ---------------------------------------------------------------------------
# Web-Mercator style bounds used by the map surface, not the geodetic range.
EDIT_MAX_LATITUDE = 85.0
EDIT_MAX_LONGITUDE = 180.0

# Synthetic offset applied to points inserted between two fixes.
INSERTED_POINT_OFFSET_S = 1.0


# ---------------------------------------------------------------------------
# Batch simplification
# ---------------------------------------------------------------------------
# Safety cap on the number of points handed to the Douglas-Peucker pass.
# Longer tracks are decimated evenly first (endpoints preserved).
DOUGLAS_PEUCKER_MAX_POINTS = _env_int("DOUGLAS_PEUCKER_MAX_POINTS", 5000)
