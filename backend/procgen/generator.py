"""Deterministic tile synthesis: bounds, heightfield, contextual items."""

from __future__ import annotations

import logging
import time

from geo.grid import TileGrid, TileKey
from procgen.config import GeneratorConfig
from procgen.elevation import generate_heightfield
from procgen.items import generate_items
from tiles.types import Tile

logger = logging.getLogger(__name__)


class TileGenerator:
    """Pure function of (grid coordinate, config) -> tile content. No I/O, no hidden state."""

    def __init__(self, config: GeneratorConfig | None = None, *, clock=time.time) -> None:
        self.config = config or GeneratorConfig()
        self.grid = TileGrid(block_size_m=self.config.block_size_m)
        self._clock = clock

    def generate(self, grid_latitude: float, grid_longitude: float) -> Tile:
        """
        Generate the tile whose cell is centered at (grid_latitude, grid_longitude).

        Coordinates are rounded to a `TileKey` first; only `loaded_at` differs
        between calls.
        """
        return self.generate_key(TileKey.from_coordinates(grid_latitude, grid_longitude))

    def generate_key(self, key: TileKey) -> Tile:
        cfg = self.config
        t0 = time.perf_counter()

        bounds = self.grid.bounds_for(key)
        heightfield = generate_heightfield(
            grid_lat=key.grid_latitude,
            grid_lon=key.grid_longitude,
            bounds=bounds,
            resolution=cfg.heightfield_resolution,
            elevation_min=cfg.elevation_min,
            elevation_max=cfg.elevation_max,
            noise=cfg.noise,
        )
        items = generate_items(key, bounds, heightfield, cfg.items)

        logger.debug(
            "[Generator] %s: %d items, elevation %.1f..%.1fm in %.2fms",
            key.tile_id,
            len(items),
            heightfield.min_elevation,
            heightfield.max_elevation,
            (time.perf_counter() - t0) * 1000,
        )

        return Tile(
            key=key,
            bounds=bounds,
            elevation=heightfield,
            items=items,
            loaded_at=self._clock(),
        )
