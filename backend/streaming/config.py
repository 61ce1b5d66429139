from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, replace

from procgen.config import ConfigError, GeneratorConfig, ItemParams


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if raw:
        try:
            return float(raw)
        except Exception:
            pass
    return default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if raw:
        try:
            return int(raw)
        except Exception:
            pass
    return default


@dataclass(frozen=True)
class StreamingConfig:
    """
    Tile manager tuning, captured once at construction.

    Block size, heightfield and item settings live on `generator` so a manager
    and the generator it drives can never disagree about the grid.
    """

    load_radius_m: float = 2000.0
    unload_distance_m: float = 2500.0
    movement_threshold_m: float = 100.0
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)

    def __post_init__(self) -> None:
        self.validate()

    @property
    def block_size_m(self) -> float:
        return self.generator.block_size_m

    def validate(self) -> None:
        if not math.isfinite(self.load_radius_m) or self.load_radius_m <= 0:
            raise ConfigError(f"load_radius_m must be positive, got {self.load_radius_m}")
        if not math.isfinite(self.unload_distance_m) or self.unload_distance_m < self.load_radius_m:
            # Otherwise freshly loaded tiles would be evicted in the same update.
            raise ConfigError(
                f"unload_distance_m ({self.unload_distance_m}) must be >= load_radius_m ({self.load_radius_m})"
            )
        if not math.isfinite(self.movement_threshold_m) or self.movement_threshold_m < 0:
            raise ConfigError(
                f"movement_threshold_m must be >= 0, got {self.movement_threshold_m}"
            )

    @classmethod
    def from_env(cls, prefix: str = "TILESTREAM") -> "StreamingConfig":
        base = cls()
        gen = base.generator
        items = replace(
            gen.items,
            items_per_tile_min=_env_int(f"{prefix}_ITEMS_PER_TILE_MIN", gen.items.items_per_tile_min),
            items_per_tile_max=_env_int(f"{prefix}_ITEMS_PER_TILE_MAX", gen.items.items_per_tile_max),
        )
        generator = GeneratorConfig(
            block_size_m=_env_float(f"{prefix}_BLOCK_SIZE_M", gen.block_size_m),
            heightfield_resolution=_env_int(
                f"{prefix}_HEIGHTFIELD_RESOLUTION", gen.heightfield_resolution
            ),
            elevation_min=_env_float(f"{prefix}_ELEVATION_MIN", gen.elevation_min),
            elevation_max=_env_float(f"{prefix}_ELEVATION_MAX", gen.elevation_max),
            noise=gen.noise,
            items=items,
        )
        return cls(
            load_radius_m=_env_float(f"{prefix}_LOAD_RADIUS_M", base.load_radius_m),
            unload_distance_m=_env_float(f"{prefix}_UNLOAD_DISTANCE_M", base.unload_distance_m),
            movement_threshold_m=_env_float(
                f"{prefix}_MOVEMENT_THRESHOLD_M", base.movement_threshold_m
            ),
            generator=generator,
        )


def small_config(
    *,
    block_size_m: float = 100.0,
    load_radius_m: float = 200.0,
    unload_distance_m: float = 250.0,
    movement_threshold_m: float = 10.0,
    heightfield_resolution: int = 4,
    items_per_tile_min: int = 1,
    items_per_tile_max: int = 3,
) -> StreamingConfig:
    """Compact config with synthetic values, handy for demos and tests."""
    return StreamingConfig(
        load_radius_m=load_radius_m,
        unload_distance_m=unload_distance_m,
        movement_threshold_m=movement_threshold_m,
        generator=GeneratorConfig(
            block_size_m=block_size_m,
            heightfield_resolution=heightfield_resolution,
            items=ItemParams(
                items_per_tile_min=items_per_tile_min,
                items_per_tile_max=items_per_tile_max,
            ),
        ),
    )
