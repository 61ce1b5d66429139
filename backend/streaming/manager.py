"""Resident tile set around a moving observer."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from geo.grid import TileGrid, TileKey
from geo.projection import GeoPoint, distance_meters, validate_geo_point
from procgen.generator import TileGenerator
from streaming.cache import ResidentCache
from streaming.config import StreamingConfig
from streaming.events import ListenerRegistry
from tiles.types import Tile, TileListener

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateStats:
    """What one processed `update_position` call did (used by telemetry)."""

    observer: GeoPoint
    loaded: int
    unloaded: int
    resident: int
    generate_ms: float
    total_ms: float


UpdateRecorder = Callable[[UpdateStats], None]


class TileManager:
    """Keeps the tiles around the observer resident and tells subscribers what changed.

    Single-threaded and synchronous: `update_position` generates tiles and
    notifies listeners before it returns.
    """

    def __init__(
        self,
        config: StreamingConfig | None = None,
        *,
        generator: TileGenerator | None = None,
        recorder: UpdateRecorder | None = None,
    ) -> None:
        self.config = config or StreamingConfig()
        self._generator = generator or TileGenerator(self.config.generator)
        if self._generator.config.block_size_m != self.config.block_size_m:
            raise ValueError(
                "generator block size does not match the streaming config "
                f"({self._generator.config.block_size_m} != {self.config.block_size_m})"
            )
        self.grid = TileGrid(block_size_m=self.config.block_size_m)
        self._cache = ResidentCache()
        self._listeners = ListenerRegistry()
        self._recorder = recorder
        self._last_position: GeoPoint | None = None
        self._disposed = False

    @property
    def last_position(self) -> GeoPoint | None:
        return self._last_position

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        return len(self._cache)

    def update_position(self, observer: GeoPoint) -> None:
        """Move the observer and bring the resident set up to date.

        Ignored when the observer moved less than `movement_threshold_m` since
        the last processed position. Otherwise loads every cell whose center is
        within `load_radius_m`, evicts resident tiles whose cell center is beyond
        `unload_distance_m`, then emits one "load" and one "unload" event
        (each only if non-empty, load first).
        """
        self._ensure_live()
        validate_geo_point(observer)
        cfg = self.config

        if self._last_position is not None:
            moved = distance_meters(self._last_position, observer)
            if moved < cfg.movement_threshold_m:
                logger.debug(
                    "[Streaming] observer moved %.1fm (< %.1fm), skipping update",
                    moved,
                    cfg.movement_threshold_m,
                )
                return

        t_start = time.perf_counter()

        # Candidate cells, filtered by projected center distance.
        cells = int(math.ceil(cfg.load_radius_m / cfg.block_size_m)) + 1
        wanted = [
            key
            for key in self.grid.neighborhood(observer, cells)
            if distance_meters(observer, key.center) <= cfg.load_radius_m
        ]

        # Generate and insert what is missing.
        t_gen = time.perf_counter()
        loaded: list[Tile] = []
        for key in wanted:
            if self._cache.has(key):
                continue
            tile = self._generator.generate_key(key)
            self._cache.insert(tile)
            loaded.append(tile)
        generate_ms = (time.perf_counter() - t_gen) * 1000

        # Evict tiles that drifted past the unload distance.
        unloaded: list[Tile] = []
        for tile in self._cache.values():
            if distance_meters(observer, tile.key.center) > cfg.unload_distance_m:
                self._cache.remove(tile.key)
                unloaded.append(tile)

        # New debounce baseline, set before notifying so re-entrant calls see it.
        self._last_position = observer

        # Cache is committed; now tell subscribers.
        if loaded:
            self._listeners.emit("load", loaded)
        if unloaded:
            self._listeners.emit("unload", unloaded)

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info(
            "[Streaming] update at (%.5f, %.5f): +%d -%d tiles, %d resident in %.1fms",
            observer.latitude,
            observer.longitude,
            len(loaded),
            len(unloaded),
            len(self._cache),
            total_ms,
        )
        self._record(
            UpdateStats(
                observer=observer,
                loaded=len(loaded),
                unloaded=len(unloaded),
                resident=len(self._cache),
                generate_ms=generate_ms,
                total_ms=total_ms,
            )
        )

    def resident_tiles(self) -> list[Tile]:
        return self._cache.values()

    def get_tile(self, key: TileKey | str) -> Tile | None:
        if isinstance(key, str):
            try:
                key = TileKey.from_id(key)
            except ValueError:
                return None
        return self._cache.get(key)

    def tile_at(self, geo: GeoPoint) -> Tile | None:
        """Resident tile whose cell contains `geo`, if any."""
        validate_geo_point(geo)
        return self._cache.get(self.grid.snap(geo))

    def subscribe(self, listener: TileListener) -> Callable[[], None]:
        self._ensure_live()
        return self._listeners.subscribe(listener)

    def dispose(self) -> None:
        """Drop every tile and listener. The manager cannot be used afterwards."""
        self._cache.clear()
        self._listeners.clear()
        self._recorder = None
        self._last_position = None
        self._disposed = True

    def _ensure_live(self) -> None:
        if self._disposed:
            raise RuntimeError("TileManager has been disposed")

    def _record(self, stats: UpdateStats) -> None:
        if self._recorder is None:
            return
        try:
            self._recorder(stats)
        except Exception:
            # Telemetry is best-effort; streaming state is already committed.
            logger.exception("[Streaming] update recorder failed")
