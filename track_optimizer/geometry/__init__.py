"""Geometry primitives for GPS tracks.

Great-circle distances and headings for streaming decisions, plus a local
metric projection for batch simplification.
"""

from .distance import (
    haversine_array_m,
    haversine_m,
    initial_bearing_deg,
    path_length_m,
    perpendicular_deviation_m,
    turn_angle_deg,
)
from .projection import (
    LocalProjection,
    decimate_indices,
    reproject_to_local_crs,
    simplified_indices,
    utm_epsg,
)

__all__ = [
    "haversine_m",
    "haversine_array_m",
    "path_length_m",
    "initial_bearing_deg",
    "turn_angle_deg",
    "perpendicular_deviation_m",
    "LocalProjection",
    "utm_epsg",
    "reproject_to_local_crs",
    "simplified_indices",
    "decimate_indices",
]
