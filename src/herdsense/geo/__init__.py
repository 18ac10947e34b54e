"""Geodesy and facility geometry for HerdSense."""

from herdsense.geo.geometry import (
    EARTH_RADIUS_M,
    bearing,
    circular_mean,
    direction8,
    haversine,
    haversine_array,
    point_in_any,
    point_in_polygon,
)
from herdsense.geo.zones import REST_ZONE_LABEL, Facility, compute_red_zones

__all__ = [
    # Geometry
    "EARTH_RADIUS_M",
    "haversine",
    "haversine_array",
    "bearing",
    "direction8",
    "circular_mean",
    "point_in_polygon",
    "point_in_any",
    # Zones
    "Facility",
    "REST_ZONE_LABEL",
    "compute_red_zones",
]
