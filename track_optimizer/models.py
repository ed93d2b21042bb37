"""Dataclasses describing recorded trips, their points and derived results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
import uuid

LatLon = Tuple[float, float]


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class RoutePoint:
    """Single GPS fix belonging to one trip.

    Points compare and hash by identity: two fixes with identical readings
    are still distinct points of the track.
    """

    latitude: float
    longitude: float
    altitude: float
    speed: float
    timestamp: datetime

    @property
    def coordinate(self) -> LatLon:
        return (self.latitude, self.longitude)


@dataclass(eq=False)
class Trip:
    """Explicit handle for a trip and its ordered point collection."""

    trip_id: str = field(default_factory=_new_id)
    points: List[RoutePoint] = field(default_factory=list)
    name: str = ""


class SegmentStatus(str, Enum):
    LIVE = "live"  # currently being recorded
    RECENT = "recent"  # closed, waiting for compression
    COMPRESSED = "compressed"


class MovementPattern(str, Enum):
    STRAIGHT_HIGH_SPEED = "straight_high_speed"
    URBAN_MIXED = "urban_mixed"
    IRREGULAR_LOW_SPEED = "irregular_low_speed"
    PAUSE_HEAVY = "pause_heavy"
    HIGHWAY_WITH_EXITS = "highway_with_exits"


@dataclass(eq=False)
class TrackSegment:
    """Contiguous, time-bounded slice of a trip's points; the unit of compression."""

    trip_id: str
    points: List[RoutePoint] = field(default_factory=list)
    segment_id: str = field(default_factory=_new_id)
    status: SegmentStatus = SegmentStatus.LIVE
    is_compressed: bool = False
    original_point_count: int = 0
    retained_point_count: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    encoded_polyline: Optional[str] = None
    distance_m: float = 0.0
    average_speed_mps: float = 0.0
    max_speed_mps: float = 0.0
    movement_pattern: Optional[MovementPattern] = None

    @property
    def last_timestamp(self) -> Optional[datetime]:
        if not self.points:
            return None
        return self.points[-1].timestamp


@dataclass(frozen=True, slots=True)
class TripAnalyticsSnapshot:
    """Derived trip statistics; always recomputed from the current points."""

    total_distance_m: float = 0.0
    moving_time_s: float = 0.0
    average_moving_speed_mps: float = 0.0
    elevation_gain_m: float = 0.0
    elevation_loss_m: float = 0.0
    point_count: int = 0
    duration_s: float = 0.0
    max_speed_mps: float = 0.0
    min_elevation_m: Optional[float] = None
    max_elevation_m: Optional[float] = None
