from __future__ import annotations

import math

from geo.bounds import TileBounds
from geo.grid import TileKey
from procgen.config import ItemParams
from procgen.seeds import hash_coordinates, seeded_random
from tiles.types import ContextualItem, Heightfield, ItemType


def item_count(seed: int, params: ItemParams) -> int:
    span = params.items_per_tile_max - params.items_per_tile_min + 1
    n = params.items_per_tile_min + int(math.floor(seeded_random(seed, params.random_mult) * span))
    return min(n, params.items_per_tile_max)


def classify(r: float, params: ItemParams) -> ItemType:
    for item_type, threshold in params.type_thresholds():
        if r < threshold:
            return item_type  # type: ignore[return-value]
    return "tree"


def _height_range(item_type: ItemType, params: ItemParams) -> tuple[float, float]:
    if item_type == "landmark":
        return params.landmark_height_min, params.landmark_height_range
    if item_type == "building":
        return params.building_height_min, params.building_height_range
    if item_type == "structure":
        return params.structure_height_min, params.structure_height_range
    return params.tree_height_min, params.tree_height_range


def generate_items(
    key: TileKey,
    bounds: TileBounds,
    heightfield: Heightfield,
    params: ItemParams,
) -> tuple[ContextualItem, ...]:
    """
    Place contextual items inside a tile.

    Every draw is `seeded_random(item_seed + k)` for a fixed k per attribute,
    so items (and their ids) are identical on every regeneration of `key`.
    """
    seed = hash_coordinates(key.grid_latitude, key.grid_longitude, params)
    rnd = params.random_mult

    out: list[ContextualItem] = []
    for i in range(item_count(seed, params)):
        s = seed + i * params.seed_increment
        lat = bounds.south + seeded_random(s, rnd) * bounds.lat_span
        lon = bounds.west + seeded_random(s + 1, rnd) * bounds.lon_span
        item_type = classify(seeded_random(s + 2, rnd), params)
        h_min, h_range = _height_range(item_type, params)
        out.append(
            ContextualItem(
                id=f"item_{key.token}_{i}",
                type=item_type,
                latitude=lat,
                longitude=lon,
                elevation=heightfield.elevation_at(lat, lon, bounds),
                height=h_min + seeded_random(s + 3, rnd) * h_range,
                width=params.width_min + seeded_random(s + 4, rnd) * params.width_range,
                depth=params.depth_min + seeded_random(s + 5, rnd) * params.depth_range,
            )
        )
    return tuple(out)
