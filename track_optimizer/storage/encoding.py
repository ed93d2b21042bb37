"""Encoded polyline representation of compressed segment coordinates."""

from __future__ import annotations

from typing import List, Sequence

from polyline import decode as polyline_decode
from polyline import encode as polyline_encode

from ..config import POLYLINE_PRECISION
from ..models import LatLon, RoutePoint


def encode_points(
    points: Sequence[RoutePoint], precision: int = POLYLINE_PRECISION
) -> str:
    """Encode the coordinates of ``points`` as a Google polyline string."""

    if not points:
        return ""
    return polyline_encode([pt.coordinate for pt in points], precision)


def decode_polyline(encoded: str, precision: int = POLYLINE_PRECISION) -> List[LatLon]:
    """Decode an encoded polyline string into a list of (lat, lon) tuples."""

    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded, precision)
    except (ValueError, TypeError, IndexError) as exc:
        raise ValueError("Unable to decode polyline") from exc
    return [(float(lat), float(lon)) for lat, lon in decoded]


__all__ = ["encode_points", "decode_polyline"]
