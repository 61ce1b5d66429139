from __future__ import annotations

from typing import Iterator

from geo.grid import TileKey
from tiles.types import Tile


class ResidentCache:
    """
    In-memory set of resident tiles, keyed by TileKey.

    Insertion order is preserved; a key can only be present once.
    """

    def __init__(self) -> None:
        self._tiles: dict[TileKey, Tile] = {}

    def get(self, key: TileKey) -> Tile | None:
        return self._tiles.get(key)

    def has(self, key: TileKey) -> bool:
        return key in self._tiles

    def insert(self, tile: Tile) -> None:
        if tile.key in self._tiles:
            raise KeyError(f"Tile already resident: {tile.key.tile_id}")
        self._tiles[tile.key] = tile

    def remove(self, key: TileKey) -> Tile | None:
        return self._tiles.pop(key, None)

    def values(self) -> list[Tile]:
        return list(self._tiles.values())

    def keys(self) -> list[TileKey]:
        return list(self._tiles.keys())

    def clear(self) -> None:
        self._tiles.clear()

    def __len__(self) -> int:
        return len(self._tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self.values())
