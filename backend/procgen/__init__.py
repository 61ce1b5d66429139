from .config import ConfigError, ElevationNoiseParams, GeneratorConfig, ItemParams
from .generator import TileGenerator
from .seeds import hash_coordinates, seeded_random

__all__ = [
    "ConfigError",
    "ElevationNoiseParams",
    "GeneratorConfig",
    "ItemParams",
    "TileGenerator",
    "hash_coordinates",
    "seeded_random",
]
