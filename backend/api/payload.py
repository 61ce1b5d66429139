from __future__ import annotations

from typing import Any

from geo.bounds import TileBounds
from tiles.types import ContextualItem, Tile, TileEvent


def bounds_payload(b: TileBounds) -> dict[str, float]:
    return {"north": b.north, "south": b.south, "east": b.east, "west": b.west}


def item_payload(item: ContextualItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "type": item.type,
        "lat": item.latitude,
        "lon": item.longitude,
        "elevation": item.elevation,
        "height": item.height,
        "width": item.width,
        "depth": item.depth,
    }


def tile_summary(tile: Tile) -> dict[str, Any]:
    """
    Small per-tile record for listings and event streams (no heightfield data).
    """
    return {
        "id": tile.id,
        "gridLat": tile.key.grid_latitude,
        "gridLon": tile.key.grid_longitude,
        "bounds": bounds_payload(tile.bounds),
        "minElevation": tile.elevation.min_elevation,
        "maxElevation": tile.elevation.max_elevation,
        "itemCount": len(tile.items),
        "loadedAtMs": int(tile.loaded_at * 1000),
    }


def tile_payload(tile: Tile) -> dict[str, Any]:
    hf = tile.elevation
    out = tile_summary(tile)
    out["heightfield"] = {
        "width": hf.width,
        "height": hf.height,
        "minElevation": hf.min_elevation,
        "maxElevation": hf.max_elevation,
        "data": list(hf.data),
    }
    out["items"] = [item_payload(i) for i in tile.items]
    return out


def event_payload(event: TileEvent) -> dict[str, Any]:
    return {"type": event.type, "tiles": [tile_summary(t) for t in event.tiles]}
