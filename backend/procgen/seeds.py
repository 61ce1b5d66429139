from __future__ import annotations

import math

from procgen.config import ItemParams


_MASK_32 = 0xFFFFFFFF


def hash_coordinates(grid_latitude: float, grid_longitude: float, params: ItemParams) -> int:
    """
    Order-sensitive FNV-1a style mix of a tile's grid coordinate.

    Coordinates are quantized first (`coordinate_hash_mult` per degree), so
    keys one grid step apart always feed different integers into the mix.
    """
    lat_int = int(math.floor(grid_latitude * params.coordinate_hash_mult))
    lon_int = int(math.floor(grid_longitude * params.coordinate_hash_mult))
    h = params.hash_initial_value & _MASK_32
    for v in (lat_int, lon_int):
        h = ((h ^ (v & _MASK_32)) * params.hash_prime) & _MASK_32
    return h


def seeded_random(seed: int | float, mult: float = 10000.0) -> float:
    """Deterministic value in [0, 1): frac(sin(seed) * mult)."""
    x = math.sin(seed) * mult
    r = x - math.floor(x)
    # frac() of a float can round up to exactly 1.0.
    return r if r < 1.0 else 0.0
