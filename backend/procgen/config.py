from __future__ import annotations

import math
from dataclasses import dataclass, field


class ConfigError(ValueError):
    """Raised at construction time for nonsensical tuning parameters."""


@dataclass(frozen=True)
class ElevationNoiseParams:
    """
    Octaves of the sinusoidal elevation field.

    Frequencies are radians per degree; amplitudes are meters. The base octave
    is keyed by the tile's grid coordinate, the rest by each sample's position.
    """

    base_offset: float = 50.0
    base_lat_freq: float = 0.05
    base_lat_amp: float = 100.0
    base_lon_freq: float = 0.05
    base_lon_amp: float = 80.0

    hill_lat_freq: float = 2.0
    hill_lon_freq: float = 2.0
    hill_amp: float = 60.0

    ridge_freq: float = 1.5
    ridge_amp: float = 40.0

    medium_lat_freq: float = 5.0
    medium_lon_freq: float = 5.0
    medium_amp: float = 20.0

    detail_freq: float = 3.0
    detail_amp: float = 15.0

    fine_lat_freq: float = 13.0
    fine_lon_freq: float = 11.0
    fine_amp: float = 5.0


@dataclass(frozen=True)
class ItemParams:
    items_per_tile_min: int = 5
    items_per_tile_max: int = 15

    # Per-type share of items; tree takes whatever remains.
    landmark_probability: float = 0.10
    building_probability: float = 0.20
    structure_probability: float = 0.0

    landmark_height_min: float = 30.0
    landmark_height_range: float = 40.0
    building_height_min: float = 10.0
    building_height_range: float = 20.0
    structure_height_min: float = 8.0
    structure_height_range: float = 14.0
    tree_height_min: float = 15.0
    tree_height_range: float = 20.0

    width_min: float = 5.0
    width_range: float = 10.0
    depth_min: float = 5.0
    depth_range: float = 10.0

    # Seed mixing.
    seed_increment: int = 12345
    coordinate_hash_mult: float = 1000.0
    hash_initial_value: int = 2166136261
    hash_prime: int = 16777619
    random_mult: float = 10000.0

    def type_thresholds(self) -> tuple[tuple[str, float], ...]:
        """
        Cumulative classification thresholds, checked in order.

        A draw `r` below the first threshold is a landmark, below the second a
        building, below the third a structure; anything else is a tree.
        """
        # Rounded so 0.1 + 0.2 compares as 0.3.
        landmark = round(self.landmark_probability, 12)
        building = round(landmark + self.building_probability, 12)
        structure = round(building + self.structure_probability, 12)
        return (("landmark", landmark), ("building", building), ("structure", structure))


@dataclass(frozen=True)
class GeneratorConfig:
    block_size_m: float = 1000.0
    heightfield_resolution: int = 32
    elevation_min: float = 0.0
    elevation_max: float = 500.0
    noise: ElevationNoiseParams = field(default_factory=ElevationNoiseParams)
    items: ItemParams = field(default_factory=ItemParams)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not math.isfinite(self.block_size_m) or self.block_size_m <= 0:
            raise ConfigError(f"block_size_m must be positive, got {self.block_size_m}")
        if int(self.heightfield_resolution) != self.heightfield_resolution or self.heightfield_resolution < 2:
            raise ConfigError(
                f"heightfield_resolution must be an integer >= 2, got {self.heightfield_resolution}"
            )
        if not self.elevation_min < self.elevation_max:
            raise ConfigError(
                f"elevation_min ({self.elevation_min}) must be below elevation_max ({self.elevation_max})"
            )

        it = self.items
        if it.items_per_tile_min < 0:
            raise ConfigError("items_per_tile_min must be >= 0")
        if it.items_per_tile_max < it.items_per_tile_min:
            raise ConfigError(
                f"items_per_tile_max ({it.items_per_tile_max}) must be >= items_per_tile_min ({it.items_per_tile_min})"
            )
        probs = (it.landmark_probability, it.building_probability, it.structure_probability)
        if any(p < 0.0 or p > 1.0 for p in probs):
            raise ConfigError(f"type probabilities must lie in [0, 1], got {probs}")
        if sum(probs) > 1.0 + 1e-9:
            raise ConfigError(f"type probabilities must sum to <= 1, got {sum(probs)}")
        ranges = (
            it.landmark_height_min,
            it.landmark_height_range,
            it.building_height_min,
            it.building_height_range,
            it.structure_height_min,
            it.structure_height_range,
            it.tree_height_min,
            it.tree_height_range,
            it.width_min,
            it.width_range,
            it.depth_min,
            it.depth_range,
        )
        if any(v < 0 for v in ranges):
            raise ConfigError("item size ranges must be non-negative")
        if it.seed_increment <= 0:
            raise ConfigError("seed_increment must be positive")
        if it.hash_prime % 2 == 0:
            raise ConfigError("hash_prime must be odd")
