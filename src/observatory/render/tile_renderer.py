"""Tile renderer: turns observations or grids into ARGB pixel buffers.

Buffers are 2D int64 numpy arrays indexed [row, column], row 0 being the
north edge, holding packed ARGB values (see Color.argb).
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional, Tuple

import numpy as np
from PIL import Image
from loguru import logger

from observatory.model.models import GridLocation, Observation, RenderConfig
from observatory.model.tile import Tile, TileSet
from observatory.render.bilinear import BilinearGridSampler, cell_corners
from observatory.render.color_scale import ColorScale
from observatory.render.grid import GridField
from observatory.render.predictor import SpatialPredictor

Evaluator = Callable[[np.ndarray, np.ndarray], np.ndarray]


class TileRenderer:
    """Render slippy map tiles and whole-globe images."""

    ROWS_PER_BAND = 16

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()

    @property
    def tile_size(self) -> int:
        return 1 << self.config.delta_zoom

    def render_tile(self, observations: Iterable[Observation], scale: ColorScale, tile: Tile) -> np.ndarray:
        """
        Args:
            observations: Known (location, value) pairs
            scale: Color scale
            tile: Tile coordinates

        Returns:
            A tile_size x tile_size buffer showing the predicted field over the tile
        """
        predictor = SpatialPredictor(observations)
        if not len(predictor):
            logger.warning(f"Rendering tile {tile} without observations")
        lats, lons = TileSet(tile, self.config.delta_zoom).locations()
        return self._render(lats, lons, predictor.predict_many, scale, self.config.tile_alpha)

    def render_grid_tile(self, grid: Callable[[GridLocation], float], scale: ColorScale, tile: Tile) -> np.ndarray:
        """
        Args:
            grid: Grid to visualize
            scale: Color scale
            tile: Tile coordinates

        Returns:
            A tile_size x tile_size buffer showing the grid, bilinearly interpolated
        """
        sampler = BilinearGridSampler(grid)
        lats, lons = TileSet(tile, self.config.delta_zoom).locations()
        if isinstance(grid, GridField):
            # Fill the cache for the whole tile in one batch before splitting into bands
            grid.values_at(*cell_corners(lats, lons))
        return self._render(lats, lons, sampler.sample_many, scale, self.config.tile_alpha)

    def render_globe(
        self,
        observations: Iterable[Observation],
        scale: ColorScale,
        width: Optional[int] = None,
        height: Optional[int] = None,
        alpha: Optional[int] = None,
    ) -> np.ndarray:
        """
        Equirectangular render of the whole globe.

        Pixel (x, y) shows the prediction at Location(90 - y * 180 / height, x * 360 / width - 180).

        Returns:
            A height x width buffer
        """
        width = self.config.globe_width if width is None else width
        height = self.config.globe_height if height is None else height
        alpha = self.config.globe_alpha if alpha is None else alpha
        if width < 1 or height < 1:
            raise ValueError(f"Image size must be positive, got {width}x{height}")

        predictor = SpatialPredictor(observations)
        logger.info(f"Rendering {width}x{height} globe from {len(predictor)} observations")
        lats, lons = globe_locations(width, height)
        return self._render(lats, lons, predictor.predict_many, scale, alpha)

    def _render(self, lats: np.ndarray, lons: np.ndarray, evaluate: Evaluator, scale: ColorScale, alpha: int) -> np.ndarray:
        """Evaluate, color and pack every pixel, one band of rows per task."""
        if not len(scale):
            logger.warning("Empty color scale, every pixel will be black")

        height, width = lats.shape
        pixels = np.zeros((height, width), dtype=np.int64)

        def render_band(rows: Tuple[int, int]) -> None:
            start, stop = rows
            values = evaluate(lats[start:stop], lons[start:stop])
            # Each band writes only its own rows
            pixels[start:stop] = scale.argb_many(values, alpha)

        bands = [(start, min(start + self.ROWS_PER_BAND, height)) for start in range(0, height, self.ROWS_PER_BAND)]
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            # list() re-raises the first failure
            list(executor.map(render_band, bands))

        return pixels


def globe_locations(width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """(lats, lons) arrays of shape (height, width) for an equirectangular image."""
    xs, ys = np.meshgrid(np.arange(width), np.arange(height))
    lats = 90 - ys * (180.0 / height)
    lons = xs * (360.0 / width) - 180
    return lats, lons


def to_image(pixels: np.ndarray) -> Image.Image:
    """Convert an ARGB buffer to an RGBA Pillow image of the same size."""
    argb = np.asarray(pixels, dtype=np.int64)
    rgba = np.stack(
        [(argb >> 16) & 0xFF, (argb >> 8) & 0xFF, argb & 0xFF, (argb >> 24) & 0xFF],
        axis=-1,
    ).astype(np.uint8)
    return Image.fromarray(rgba)
