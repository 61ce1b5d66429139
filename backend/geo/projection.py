from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache

from pyproj import Transformer


# Web Mercator is undefined at the poles; this is the latitude where the
# projected square world ends (same clamp slippy tiles use).
MAX_MERCATOR_LAT = 85.05112878

# Sphere radius of EPSG:3857.
EARTH_RADIUS_M = 6_378_137.0
METERS_PER_DEGREE = math.pi * EARTH_RADIUS_M / 180.0

_MIN_COS_LAT = 1e-6


@dataclass(frozen=True)
class GeoPoint:
    """
    WGS84 position in degrees.

    Transforms never mutate a point; they return new ones.
    """

    latitude: float
    longitude: float


@dataclass(frozen=True)
class PlanarPoint:
    """
    EPSG:3857 position in meters.

    Only meaningful relative to another planar point (e.g. the observer).
    """

    x: float
    y: float

    def offset_from(self, origin: "PlanarPoint") -> tuple[float, float]:
        return (self.x - origin.x, self.y - origin.y)


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@lru_cache(maxsize=1)
def transformer_3857_to_4326() -> Transformer:
    return Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def validate_geo_point(geo: GeoPoint) -> GeoPoint:
    lat = float(geo.latitude)
    lon = float(geo.longitude)
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"Non-finite coordinate: lat={lat!r}, lon={lon!r}")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude out of range [-90, 90]: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"Longitude out of range [-180, 180]: {lon}")
    return geo


def to_planar(geo: GeoPoint) -> PlanarPoint:
    """
    Project a geographic point onto spherical Mercator (EPSG:3857).

    Latitudes past the Mercator limit are clamped to it, so the poles land on
    the top/bottom edge of the projected world instead of at infinity.
    """
    validate_geo_point(geo)
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, float(geo.latitude)))
    x, y = transformer_4326_to_3857().transform(float(geo.longitude), lat)
    return PlanarPoint(x=float(x), y=float(y))


def to_geo(p: PlanarPoint) -> GeoPoint:
    x = float(p.x)
    y = float(p.y)
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"Non-finite planar coordinate: x={x!r}, y={y!r}")
    lon, lat = transformer_3857_to_4326().transform(x, y)
    return GeoPoint(latitude=float(lat), longitude=float(lon))


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """
    Euclidean distance between the EPSG:3857 projections of `a` and `b`.

    Latitudes are clamped to +-MAX_MERCATOR_LAT first, so two points that
    differ only in latitude above that limit are 0m apart.
    """
    pa = to_planar(a)
    pb = to_planar(b)
    dx, dy = pb.offset_from(pa)
    return math.hypot(dx, dy)


def meters_per_degree_at(latitude: float) -> float:
    """
    East-west meters per degree of longitude at `latitude`.

    Shrinks with cos(latitude) toward the poles; floored so it never reaches zero.
    """
    lat = float(latitude)
    if not math.isfinite(lat) or not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude out of range [-90, 90]: {latitude!r}")
    return METERS_PER_DEGREE * max(math.cos(math.radians(lat)), _MIN_COS_LAT)


def latitude_degrees_for(meters: float) -> float:
    return float(meters) / METERS_PER_DEGREE


def longitude_degrees_for(meters: float, latitude: float) -> float:
    return float(meters) / meters_per_degree_at(latitude)
