from __future__ import annotations

from dataclasses import dataclass

from geo.projection import GeoPoint


@dataclass(frozen=True)
class TileBounds:
    """
    WGS84 bounding box of a tile in degrees.

    Convention used throughout this repo:
    - north, south, east, west (north >= south, east >= west)
    """

    north: float
    south: float
    east: float
    west: float

    def normalized(self) -> "TileBounds":
        return TileBounds(
            north=max(self.north, self.south),
            south=min(self.north, self.south),
            east=max(self.east, self.west),
            west=min(self.east, self.west),
        )

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            latitude=(self.north + self.south) / 2.0,
            longitude=(self.east + self.west) / 2.0,
        )

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lon_span(self) -> float:
        return self.east - self.west

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east

    def contains_bounds(self, other: "TileBounds") -> bool:
        return (
            self.south <= other.south
            and other.north <= self.north
            and self.west <= other.west
            and other.east <= self.east
        )
