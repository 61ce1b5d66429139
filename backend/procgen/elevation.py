from __future__ import annotations

import math

from geo.bounds import TileBounds
from procgen.config import ElevationNoiseParams
from tiles.types import Heightfield


def raw_elevation(
    lat: float,
    lon: float,
    grid_lat: float,
    grid_lon: float,
    noise: ElevationNoiseParams,
) -> float:
    """
    Unclamped elevation at (lat, lon) inside the tile keyed by (grid_lat, grid_lon).

    A hand-rolled sum of sinusoids: smooth, bounded and deterministic. Not Perlin.
    """
    n = noise
    base = (
        n.base_offset
        + math.sin(grid_lat * n.base_lat_freq) * n.base_lat_amp
        + math.cos(grid_lon * n.base_lon_freq) * n.base_lon_amp
    )
    hills = math.sin(lat * n.hill_lat_freq) * math.cos(lon * n.hill_lon_freq) * n.hill_amp
    ridges = math.sin((lat + lon) * n.ridge_freq) * n.ridge_amp
    medium = math.sin(lat * n.medium_lat_freq) * math.cos(lon * n.medium_lon_freq) * n.medium_amp
    detail = math.sin((lat - lon) * n.detail_freq) * n.detail_amp
    fine = math.sin(lat * n.fine_lat_freq) * math.cos(lon * n.fine_lon_freq) * n.fine_amp
    return base + hills + ridges + medium + detail + fine


def generate_heightfield(
    *,
    grid_lat: float,
    grid_lon: float,
    bounds: TileBounds,
    resolution: int,
    elevation_min: float,
    elevation_max: float,
    noise: ElevationNoiseParams,
) -> Heightfield:
    """
    Sample `resolution x resolution` elevations spanning `bounds` edge to edge.
    """
    res = int(resolution)
    lat_step = bounds.lat_span / (res - 1)
    lon_step = bounds.lon_span / (res - 1)

    data: list[float] = []
    lo = math.inf
    hi = -math.inf
    for row in range(res):
        lat = bounds.south + row * lat_step
        for col in range(res):
            lon = bounds.west + col * lon_step
            e = raw_elevation(lat, lon, grid_lat, grid_lon, noise)
            e = max(elevation_min, min(elevation_max, e))
            data.append(e)
            lo = min(lo, e)
            hi = max(hi, e)

    return Heightfield(
        width=res,
        height=res,
        min_elevation=lo,
        max_elevation=hi,
        data=tuple(data),
    )
