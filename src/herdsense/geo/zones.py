"""Facility geometry: fences, rest zone, green zones and derived RED zones.

The facility is static configuration. RED zones (fenced area not covered by
any green zone) are derived with shapely and cached on the ``Facility``
instance, so they are computed once per geometry rather than once per sample.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Sequence

from shapely.geometry import MultiPolygon, Polygon as ShapelyPolygon
from shapely.ops import unary_union

from herdsense.errors import ConfigurationError
from herdsense.geo.geometry import LatLon, Polygon, haversine, point_in_any, point_in_polygon

REST_ZONE_LABEL = "rest_zone"


def _to_shapely(polygon: Polygon) -> ShapelyPolygon:
    # shapely works in (x, y) = (lon, lat)
    return ShapelyPolygon([(float(v[1]), float(v[0])) for v in polygon])


def _from_shapely(geom: ShapelyPolygon) -> list[LatLon]:
    return [(float(y), float(x)) for x, y in geom.exterior.coords]


def compute_red_zones(fence: Polygon, green_zones: Sequence[Polygon]) -> list[list[LatLon]]:
    """Subtract the union of green zones from a fence polygon.

    Args:
        fence: Fence polygon as ``(lat, lon)`` vertices.
        green_zones: Green polygons to remove from the fence area.

    Returns:
        List of RED polygons (exterior rings, ``(lat, lon)`` vertices, closed).
        Empty if the green zones cover the whole fence.
    """
    fence_geom = _to_shapely(fence).buffer(0)
    greens = [_to_shapely(g).buffer(0) for g in green_zones if len(g) >= 3]
    if not greens:
        return [_from_shapely(fence_geom)] if not fence_geom.is_empty else []

    red = fence_geom.difference(unary_union(greens))
    if red.is_empty:
        return []
    if isinstance(red, ShapelyPolygon):
        parts = [red]
    elif isinstance(red, MultiPolygon):
        parts = list(red.geoms)
    else:
        parts = [g for g in getattr(red, "geoms", []) if isinstance(g, ShapelyPolygon)]
    return [_from_shapely(p) for p in parts if p.area > 0]


@dataclass
class Facility:
    """Static geometry of one deployment.

    Attributes:
        center: Facility center ``(lat, lon)``.
        fences: Fence polygons defining the valid operating perimeter.
        rest_zone: Polygon where lying is accepted (None disables the check).
        green_zones: Named green polygons used for RED-zone derivation.
    """

    center: LatLon
    fences: list[list[LatLon]] = field(default_factory=list)
    rest_zone: list[LatLon] | None = None
    green_zones: dict[str, list[LatLon]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Facility:
        """Build a facility from a plain mapping (e.g. loaded YAML).

        Raises:
            ConfigurationError: If the center is missing or a polygon is degenerate.
        """
        center = data.get("center")
        if center is None or len(center) != 2:
            raise ConfigurationError("facility.center must be a [lat, lon] pair")

        def _poly(raw: Sequence[Sequence[float]], name: str) -> list[LatLon]:
            verts = [(float(v[0]), float(v[1])) for v in raw]
            if len(verts) < 3:
                raise ConfigurationError(f"Polygon '{name}' needs at least 3 vertices")
            return verts

        fences = [_poly(f, f"fence[{i}]") for i, f in enumerate(data.get("fences") or [])]
        rest = data.get("rest_zone")
        greens = {name: _poly(poly, name) for name, poly in (data.get("green_zones") or {}).items()}
        return cls(
            center=(float(center[0]), float(center[1])),
            fences=fences,
            rest_zone=_poly(rest, "rest_zone") if rest else None,
            green_zones=greens,
        )

    def in_fence(self, lat: float, lon: float) -> bool:
        """True if the point lies inside any fence, or if no fence is configured."""
        if not self.fences:
            return True
        return point_in_any(lat, lon, self.fences)

    def fence_index(self, lat: float, lon: float) -> int | None:
        """Index of the first fence containing the point."""
        for idx, fence in enumerate(self.fences):
            if point_in_polygon(lat, lon, fence):
                return idx
        return None

    def in_rest_zone(self, lat: float, lon: float) -> bool:
        if self.rest_zone is None:
            return True
        return point_in_polygon(lat, lon, self.rest_zone)

    def distance_from_center(self, lat: float, lon: float) -> float:
        return haversine(self.center[0], self.center[1], lat, lon)

    def zone_label(self, lat: float, lon: float) -> str | None:
        """Name of the most specific zone containing the point.

        Returns:
            ``"rest_zone"``, a green-zone name, ``"fence_<n>"`` or None outside.
        """
        if self.rest_zone is not None and point_in_polygon(lat, lon, self.rest_zone):
            return REST_ZONE_LABEL
        for name, poly in self.green_zones.items():
            if point_in_polygon(lat, lon, poly):
                return name
        idx = self.fence_index(lat, lon)
        return None if idx is None else f"fence_{idx}"

    @cached_property
    def red_zones(self) -> list[list[LatLon]]:
        """RED zones of the primary fence (fence 0 minus all green zones)."""
        if not self.fences:
            return []
        return compute_red_zones(self.fences[0], list(self.green_zones.values()))

    def in_red_zone(self, lat: float, lon: float) -> bool:
        """True inside the primary fence but outside every green zone."""
        if not self.fences or not point_in_polygon(lat, lon, self.fences[0]):
            return False
        return not point_in_any(lat, lon, list(self.green_zones.values()))
