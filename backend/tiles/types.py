from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Literal, TypeAlias

from geo.bounds import TileBounds
from geo.grid import TileKey


ItemType = Literal["landmark", "building", "tree", "structure"]
ITEM_TYPES: tuple[ItemType, ...] = ("landmark", "building", "tree", "structure")

TileEventType = Literal["load", "unload"]


@dataclass(frozen=True)
class Heightfield:
    """
    Regular grid of elevation samples covering one tile.

    `data` is row-major; row 0 is the southern edge, column 0 the western edge.
    """

    width: int
    height: int
    min_elevation: float
    max_elevation: float
    data: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.data) != self.width * self.height:
            raise ValueError(
                f"Heightfield data has {len(self.data)} samples, expected {self.width * self.height}"
            )

    def sample(self, row: int, col: int) -> float:
        r = max(0, min(self.height - 1, int(row)))
        c = max(0, min(self.width - 1, int(col)))
        return self.data[r * self.width + c]

    def elevation_at(self, latitude: float, longitude: float, bounds: TileBounds) -> float:
        """
        Nearest-sample lookup; points outside `bounds` clamp to the grid edge.
        """
        u = (longitude - bounds.west) / bounds.lon_span if bounds.lon_span else 0.0
        v = (latitude - bounds.south) / bounds.lat_span if bounds.lat_span else 0.0
        u = max(0.0, min(1.0, u))
        v = max(0.0, min(1.0, v))
        col = int(math.floor(u * (self.width - 1) + 0.5))
        row = int(math.floor(v * (self.height - 1) + 0.5))
        return self.sample(row, col)


@dataclass(frozen=True)
class ContextualItem:
    id: str
    type: ItemType
    latitude: float
    longitude: float
    elevation: float  # ground height under the item
    height: float
    width: float
    depth: float


@dataclass(frozen=True)
class Tile:
    """
    One resident block of terrain.

    Only the TileManager load path creates tiles that reach subscribers;
    subscribers get them by reference and must treat them as read-only.
    """

    key: TileKey
    bounds: TileBounds
    elevation: Heightfield
    items: tuple[ContextualItem, ...]
    loaded_at: float = field(compare=False)  # epoch seconds

    @property
    def id(self) -> str:
        return self.key.tile_id


@dataclass(frozen=True)
class TileEvent:
    type: TileEventType
    tiles: tuple[Tile, ...]


TileListener: TypeAlias = Callable[[TileEvent], None]
