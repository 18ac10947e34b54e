"""Spherical distance, bearing and point-in-polygon helpers.

All coordinates are decimal degrees and polygons are ordered ``(lat, lon)``
vertex sequences. The closing vertex may or may not repeat the first one.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

EARTH_RADIUS_M = 6_371_000.0

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

LatLon = tuple[float, float]
Polygon = Sequence[Sequence[float]]


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points.

    Args:
        lat1: Latitude of the first point.
        lon1: Longitude of the first point.
        lat2: Latitude of the second point.
        lon2: Longitude of the second point.

    Returns:
        Distance in meters.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, max(a, 0.0))))


def haversine_array(
    lat1: NDArray[np.float64] | float,
    lon1: NDArray[np.float64] | float,
    lat2: NDArray[np.float64] | float,
    lon2: NDArray[np.float64] | float,
) -> NDArray[np.float64]:
    """Vectorised haversine distance with NumPy broadcasting.

    Returns:
        Array of distances in meters.
    """
    lat1_rad = np.deg2rad(lat1)
    lat2_rad = np.deg2rad(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = np.deg2rad(np.asarray(lon2) - np.asarray(lon1))
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from the first point towards the second.

    Returns:
        Bearing in degrees, in [0, 360).
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlmb = math.radians(lon2 - lon1)
    y = math.sin(dlmb) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlmb)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def direction8(degrees: float | None) -> str | None:
    """Map a bearing to one of the eight compass points."""
    if degrees is None or not math.isfinite(degrees):
        return None
    idx = int(round((degrees % 360.0) / 45.0)) % 8
    return COMPASS_POINTS[idx]


def point_in_polygon(lat: float, lon: float, polygon: Polygon) -> bool:
    """Ray-casting point-in-polygon test.

    Args:
        lat: Point latitude.
        lon: Point longitude.
        polygon: Ordered ``(lat, lon)`` vertices.

    Returns:
        True if the point lies inside the polygon. Points exactly on an edge
        may fall either way.
    """
    n = len(polygon)
    if n < 3:
        return False

    inside = False
    j = n - 1
    for i in range(n):
        lat_i, lon_i = polygon[i][0], polygon[i][1]
        lat_j, lon_j = polygon[j][0], polygon[j][1]
        if (lon_i > lon) != (lon_j > lon):
            lat_cross = (lat_j - lat_i) * (lon - lon_i) / (lon_j - lon_i) + lat_i
            if lat < lat_cross:
                inside = not inside
        j = i
    return inside


def point_in_any(lat: float, lon: float, polygons: Sequence[Polygon]) -> bool:
    """True if the point lies inside at least one polygon."""
    return any(point_in_polygon(lat, lon, poly) for poly in polygons)


def circular_mean(degrees: Sequence[float], weights: Sequence[float] | None = None) -> float | None:
    """Weighted circular mean of angles.

    Args:
        degrees: Angles in degrees.
        weights: Optional weights (defaults to uniform).

    Returns:
        Mean angle in [0, 360), or None if there is no usable direction.
    """
    if len(degrees) == 0:
        return None
    angles = np.deg2rad(np.asarray(degrees, dtype=np.float64))
    w = np.ones_like(angles) if weights is None else np.asarray(weights, dtype=np.float64)
    sin_sum = float(np.sum(w * np.sin(angles)))
    cos_sum = float(np.sum(w * np.cos(angles)))
    if abs(sin_sum) < 1e-12 and abs(cos_sum) < 1e-12:
        return None
    return (math.degrees(math.atan2(sin_sum, cos_sum)) + 360.0) % 360.0
