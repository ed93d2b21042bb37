"""Local metric projection for batch line simplification.

Tracks are projected into the UTM zone around their mean position, where
planar distances are metres and shapely's Douglas-Peucker applies directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer
from shapely.geometry import LineString

from ..models import LatLon

MetricArray = NDArray[np.float64]

WGS84 = CRS.from_epsg(4326)


def utm_epsg(latitude: float, longitude: float) -> int:
    """EPSG code of the WGS84 UTM zone containing the position."""

    zone = min(max(int((longitude + 180.0) // 6.0) + 1, 1), 60)
    return (32600 if latitude >= 0 else 32700) + zone


@dataclass(frozen=True, slots=True)
class LocalProjection:
    """Two-way transform between WGS84 and one UTM zone."""

    epsg: int
    forward: Transformer
    inverse: Transformer

    @classmethod
    def centred_on(cls, coords: Sequence[LatLon]) -> "LocalProjection":
        if not coords:
            raise ValueError("Cannot choose a projection for an empty track")
        latlon = np.asarray(coords, dtype=float)
        epsg = utm_epsg(*latlon.mean(axis=0))
        target = CRS.from_epsg(epsg)
        return cls(
            epsg=epsg,
            forward=Transformer.from_crs(WGS84, target, always_xy=True),
            inverse=Transformer.from_crs(target, WGS84, always_xy=True),
        )

    def to_metric(self, coords: Sequence[LatLon]) -> MetricArray:
        """``(lat, lon)`` pairs to an ``(n, 2)`` array of easting/northing."""

        if not coords:
            return np.empty((0, 2), dtype=float)
        latlon = np.asarray(coords, dtype=float)
        easting, northing = self.forward.transform(latlon[:, 1], latlon[:, 0])
        return np.column_stack((easting, northing)).astype(float, copy=False)

    def to_latlon(self, metric: MetricArray) -> List[LatLon]:
        if len(metric) == 0:
            return []
        lons, lats = self.inverse.transform(metric[:, 0], metric[:, 1])
        return [(float(lat), float(lon)) for lat, lon in zip(lats, lons)]


def reproject_to_local_crs(
    coords: Sequence[LatLon],
) -> Tuple[MetricArray, LocalProjection]:
    """Project a track into its local UTM zone; raises on an empty track."""

    projection = LocalProjection.centred_on(coords)
    return projection.to_metric(coords), projection


def simplified_indices(metric_points: MetricArray, tolerance_m: float) -> List[int]:
    """Positions in ``metric_points`` that survive Douglas-Peucker.

    Shapely hands back vertices, not positions, so each surviving vertex is
    looked up by scanning forward from the previous match. The first and
    last positions are always kept.
    """

    metric = np.asarray(metric_points, dtype=float)
    count = len(metric)
    if count <= 2 or tolerance_m <= 0:
        return list(range(count))
    reduced = LineString(metric).simplify(tolerance_m, preserve_topology=False)
    vertices = np.asarray(reduced.coords, dtype=float) if not reduced.is_empty else ()
    kept = [0]
    position = 1
    for vertex in vertices[1:-1]:
        matches = np.flatnonzero(np.all(metric[position : count - 1] == vertex, axis=1))
        if matches.size == 0:
            break
        position += int(matches[0])
        kept.append(position)
        position += 1
    kept.append(count - 1)
    return kept


def decimate_indices(count: int, max_points: int) -> List[int]:
    """Evenly spaced positions that keep both endpoints."""

    max_points = max(2, max_points)
    if count <= max_points:
        return list(range(count))
    spaced = np.linspace(0, count - 1, num=max_points, dtype=int)
    return np.unique(spaced).tolist()


__all__ = [
    "LocalProjection",
    "utm_epsg",
    "reproject_to_local_crs",
    "simplified_indices",
    "decimate_indices",
]
