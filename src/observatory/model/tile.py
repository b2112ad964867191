from typing import Iterator, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from observatory.model.models import Location
from observatory.utils.geo import tile_to_location


class Tile(BaseModel):
    """
    Slippy map tile.

    0 <= x, y < 2**zoom. See https://en.wikipedia.org/wiki/Tiled_web_map
    """
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    zoom: int

    def __init__(self, x: int, y: int, zoom: int, **data):
        super().__init__(x=x, y=y, zoom=zoom, **data)

    @property
    def location(self) -> Location:
        """Latitude and longitude of the top-left corner of the tile."""
        lat, lon = tile_to_location(self.x, self.y, self.zoom)
        return Location(lat, lon)

    def file_name(self) -> str:
        """Relative PNG path for this tile: {zoom}/{x}-{y}.png"""
        return f"{self.zoom}/{self.x}-{self.y}.png"


class Pixel(BaseModel):
    """Pixel inside a tile set, x left-to-right, y top-to-bottom."""
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    size: int

    @property
    def array_index(self) -> int:
        return self.y * self.size + self.x


class TileSet(BaseModel):
    """
    Division of a tile into 2**delta_zoom x 2**delta_zoom sub-tiles.

    Each sub-tile lives at zoom + delta_zoom and maps to exactly one pixel of
    the parent tile, so delta_zoom=8 gives a 256x256 image.
    """
    model_config = ConfigDict(frozen=True)

    tile: Tile
    delta_zoom: int = Field(ge=0)

    def __init__(self, tile: Tile, delta_zoom: int, **data):
        if delta_zoom < 0:
            raise ValueError(f"delta_zoom must be non-negative, got {delta_zoom}")
        super().__init__(tile=tile, delta_zoom=delta_zoom, **data)

    @property
    def size(self) -> int:
        return 1 << self.delta_zoom

    def subtiles(self) -> Iterator[Tuple[Tile, Pixel]]:
        """Yield (sub-tile, pixel) pairs in row-major order."""
        n = self.size
        zoom = self.tile.zoom + self.delta_zoom
        for py in range(n):
            for px in range(n):
                yield (
                    Tile(n * self.tile.x + px, n * self.tile.y + py, zoom),
                    Pixel(x=px, y=py, size=n),
                )

    def locations(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Top-left corners of all sub-tiles as (lats, lons) arrays.

        Both arrays have shape (size, size), indexed [py, px], and agree with
        `Tile.location` of the matching sub-tile.
        """
        n = self.size
        offsets = np.arange(n)
        px, py = np.meshgrid(offsets, offsets)  # (rows, cols) = (y, x)
        return tile_to_location(n * self.tile.x + px, n * self.tile.y + py, self.tile.zoom + self.delta_zoom)
