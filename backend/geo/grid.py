from __future__ import annotations

import math
from dataclasses import dataclass

from geo.bounds import TileBounds
from geo.projection import GeoPoint, latitude_degrees_for, longitude_degrees_for


# Keys are rounded so they stay reproducible from (grid_lat, grid_lon) alone.
# 7 decimals is ~1cm in latitude, far below any sane block size.
KEY_DECIMALS = 7

_ID_PREFIX = "tile_"


def _round_coord(value: float) -> float:
    # `+ 0.0` folds -0.0 into 0.0 so ids never read "-0.0000000".
    return round(float(value), KEY_DECIMALS) + 0.0


@dataclass(frozen=True, order=True)
class TileKey:
    """
    Grid coordinate of a tile (its cell center), in degrees.

    Not a random or incrementing id: the same cell always produces the same key.
    """

    grid_latitude: float
    grid_longitude: float

    @classmethod
    def from_coordinates(cls, grid_latitude: float, grid_longitude: float) -> "TileKey":
        return cls(
            grid_latitude=_round_coord(grid_latitude),
            grid_longitude=_round_coord(grid_longitude),
        )

    @classmethod
    def from_id(cls, tile_id: str) -> "TileKey":
        raw = (tile_id or "").strip()
        if not raw.startswith(_ID_PREFIX):
            raise ValueError(f"Not a tile id: {tile_id!r}")
        lat_s, sep, lon_s = raw[len(_ID_PREFIX):].partition("_")
        if not sep:
            raise ValueError(f"Not a tile id: {tile_id!r}")
        return cls.from_coordinates(float(lat_s), float(lon_s))

    @property
    def token(self) -> str:
        return f"{self.grid_latitude:.{KEY_DECIMALS}f}_{self.grid_longitude:.{KEY_DECIMALS}f}"

    @property
    def tile_id(self) -> str:
        return f"{_ID_PREFIX}{self.token}"

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(latitude=self.grid_latitude, longitude=self.grid_longitude)

    def __str__(self) -> str:
        return self.tile_id


@dataclass(frozen=True)
class TileGrid:
    """
    Square-ish grid of `block_size_m` cells.

    Rows are spaced evenly in latitude. Within a row, columns are spaced by the
    east-west degree width of `block_size_m` at that row's latitude, so every
    cell has the same metric footprint regardless of latitude.
    """

    block_size_m: float = 1000.0

    @property
    def latitude_step(self) -> float:
        return latitude_degrees_for(self.block_size_m)

    def longitude_step(self, grid_latitude: float) -> float:
        return longitude_degrees_for(self.block_size_m, grid_latitude)

    def row_for(self, latitude: float) -> int:
        return int(math.floor(float(latitude) / self.latitude_step + 0.5))

    def col_for(self, longitude: float, grid_latitude: float) -> int:
        return int(math.floor(float(longitude) / self.longitude_step(grid_latitude) + 0.5))

    def row_latitude(self, row: int) -> float:
        return row * self.latitude_step

    def key_at(self, row: int, col: int) -> TileKey | None:
        """
        Key of cell (row, col), or None when its center falls off the world.

        The grid does not wrap at the antimeridian.
        """
        lat = self.row_latitude(row)
        if not -90.0 <= lat <= 90.0:
            return None
        lon = col * self.longitude_step(lat)
        if not -180.0 <= lon <= 180.0:
            return None
        return TileKey.from_coordinates(lat, lon)

    def snap(self, geo: GeoPoint) -> TileKey:
        row = self.row_for(geo.latitude)
        # Rows at the very poles would put the center past +-90.
        lat = max(-90.0, min(90.0, self.row_latitude(row)))
        col = self.col_for(geo.longitude, lat)
        lon = max(-180.0, min(180.0, col * self.longitude_step(lat)))
        return TileKey.from_coordinates(lat, lon)

    def cell_bounds(self, grid_latitude: float, grid_longitude: float) -> TileBounds:
        """
        Extent of the cell centered at (grid_latitude, grid_longitude).

        Clipped to the world, so cells at the poles or the antimeridian are
        smaller than `block_size_m`.
        """
        half_lat = self.latitude_step / 2.0
        half_lon = self.longitude_step(grid_latitude) / 2.0
        return TileBounds(
            north=min(90.0, grid_latitude + half_lat),
            south=max(-90.0, grid_latitude - half_lat),
            east=min(180.0, grid_longitude + half_lon),
            west=max(-180.0, grid_longitude - half_lon),
        )

    def bounds_for(self, key: TileKey) -> TileBounds:
        return self.cell_bounds(key.grid_latitude, key.grid_longitude)

    def neighborhood(self, geo: GeoPoint, cells: int) -> list[TileKey]:
        """
        Keys of the (2*cells+1)^2 cells around the cell containing `geo`.

        Column indices are re-derived per row because the longitude step
        depends on the row's latitude.
        """
        n = max(0, int(cells))
        center_row = self.row_for(geo.latitude)
        out: list[TileKey] = []
        for row in range(center_row - n, center_row + n + 1):
            lat = self.row_latitude(row)
            if not -90.0 <= lat <= 90.0:
                continue
            center_col = self.col_for(geo.longitude, lat)
            for col in range(center_col - n, center_col + n + 1):
                key = self.key_at(row, col)
                if key is not None:
                    out.append(key)
        return out
