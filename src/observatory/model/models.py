from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    """
    A point on the globe.

    lat in [-90, 90], lon in [-180, 180], both degrees. Two locations are
    equal only if both coordinates are exactly equal.
    """
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float

    def __init__(self, lat: float, lon: float, **data):
        super().__init__(lat=lat, lon=lon, **data)


class GridLocation(BaseModel):
    """
    Integer lattice point of the one-degree global grid.

    lat in [-89, 90], lon in [-180, 179].
    """
    model_config = ConfigDict(frozen=True)

    lat: int
    lon: int

    def __init__(self, lat: int, lon: int, **data):
        super().__init__(lat=lat, lon=lon, **data)

    @property
    def location(self) -> Location:
        return Location(float(self.lat), float(self.lon))


class CellPoint(BaseModel):
    """Fractional position inside a grid cell, (0, 0) being the top-left corner."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def __init__(self, x: float, y: float, **data):
        super().__init__(x=x, y=y, **data)

    def bilinear_interpolation(self, d00: float, d01: float, d10: float, d11: float) -> float:
        """
        Args:
            d00: Top-left value
            d01: Bottom-left value
            d10: Top-right value
            d11: Bottom-right value
        """
        x, y = self.x, self.y
        return d00 * (1 - x) * (1 - y) + d01 * (1 - x) * y + d10 * x * (1 - y) + d11 * x * y


class Color(BaseModel):
    """RGB color. Channels are not range checked."""
    model_config = ConfigDict(frozen=True)

    red: int
    green: int
    blue: int

    def __init__(self, red: int, green: int, blue: int, **data):
        super().__init__(red=red, green=green, blue=blue, **data)

    def argb(self, alpha: int = 255) -> int:
        """Pack into a single ARGB integer."""
        return (alpha << 24) + (self.red << 16) + (self.green << 8) + self.blue


BLACK = Color(0, 0, 0)

Observation = Tuple[Location, float]
ColorStop = Tuple[float, Color]


class RenderConfig(BaseModel):
    """Settings used by the tile renderer and the tile pyramid."""
    tile_alpha: int = Field(default=127, ge=0, le=255)
    globe_alpha: int = Field(default=255, ge=0, le=255)
    globe_width: int = Field(default=360, ge=1)
    globe_height: int = Field(default=180, ge=1)
    delta_zoom: int = Field(default=8, ge=0, le=12)
    max_workers: int = Field(default=4, ge=1, le=64)
    max_zoom: int = Field(default=3, ge=0, le=19)

    @classmethod
    def from_config(cls, config) -> "RenderConfig":
        """Build from an iConfig instance (any callable `config(key, default=...)` works)."""
        defaults = cls()
        return cls(
            tile_alpha=config("renderer.tile_alpha", default=defaults.tile_alpha),
            globe_alpha=config("renderer.globe_alpha", default=defaults.globe_alpha),
            globe_width=config("renderer.globe_width", default=defaults.globe_width),
            globe_height=config("renderer.globe_height", default=defaults.globe_height),
            delta_zoom=config("renderer.delta_zoom", default=defaults.delta_zoom),
            max_workers=config("renderer.max_workers", default=defaults.max_workers),
            max_zoom=config("tiler.max_zoom", default=defaults.max_zoom),
        )
