"""Tile pyramid generation: renders every tile of zoom levels 0..max_zoom per year."""

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from PIL import Image
from loguru import logger

from observatory.model.models import GridLocation, Observation, RenderConfig
from observatory.model.tile import Tile
from observatory.render.color_scale import ColorScale
from observatory.render.grid import average, deviation
from observatory.render.tile_renderer import TileRenderer, to_image

Data = TypeVar("Data")


def generate_tiles(
    yearly_data: Iterable[Tuple[int, Data]],
    generate_image: Callable[[int, Tile, Data], None],
    max_zoom: int = 3,
) -> None:
    """
    Call `generate_image` for every tile of zoom levels 0 to max_zoom (included), for every year.

    Args:
        yearly_data: (year, data) pairs; data can be anything generate_image understands
        generate_image: Called as generate_image(year, tile, data)
        max_zoom: Deepest zoom level
    """
    for year, data in yearly_data:
        for zoom in range(max_zoom + 1):
            n_tiles = 1 << zoom
            for y in range(n_tiles):
                for x in range(n_tiles):
                    generate_image(year, Tile(x, y, zoom), data)


def save_tile(image: Image.Image, output_dir: Path, year: int, tile: Tile) -> Path:
    """Save as {output_dir}/{year}/{zoom}/{x}-{y}.png and return the path."""
    tile_file = Path(output_dir) / str(year) / tile.file_name()
    tile_file.parent.mkdir(parents=True, exist_ok=True)
    image.save(tile_file, "png", compress_level=6)
    return tile_file


class TilePyramidBuilder:
    """Render tile pyramids and write them out as PNG files, saving in the background."""

    def __init__(self, output_dir: Path, scale: ColorScale, config: Optional[RenderConfig] = None):
        self.output_dir = Path(output_dir)
        self.scale = scale
        self.config = config or RenderConfig()
        self.renderer = TileRenderer(self.config)
        self.pending_tiles: List[Future] = []
        self.executor: Optional[ThreadPoolExecutor] = None

    def build(self, yearly_observations: Iterable[Tuple[int, List[Observation]]]) -> None:
        """Tiles of the predicted field, one pyramid per year."""
        self._build(yearly_observations, self._temperature_tile)

    def build_grids(self, yearly_grids: Iterable[Tuple[int, Callable[[GridLocation], float]]]) -> None:
        """Tiles of precomputed grids (e.g. deviations), one pyramid per year."""
        self._build(yearly_grids, self._grid_tile)

    def _build(self, yearly_data, generate_image) -> None:
        logger.info(f"Building tile pyramid (z0-{self.config.max_zoom}) into {self.output_dir}")
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            self.executor = executor
            self.pending_tiles = []
            generate_tiles(yearly_data, generate_image, max_zoom=self.config.max_zoom)
            self._wait_for_pending_tiles()
        self.executor = None
        logger.info("Tile pyramid complete")

    def _temperature_tile(self, year: int, tile: Tile, observations: List[Observation]) -> None:
        logger.debug(f"  Rendering {year} tile {tile.file_name()}")
        pixels = self.renderer.render_tile(observations, self.scale, tile)
        self._queue_tile_save(to_image(pixels), year, tile)

    def _grid_tile(self, year: int, tile: Tile, grid: Callable[[GridLocation], float]) -> None:
        logger.debug(f"  Rendering {year} grid tile {tile.file_name()}")
        pixels = self.renderer.render_grid_tile(grid, self.scale, tile)
        self._queue_tile_save(to_image(pixels), year, tile)

    def _queue_tile_save(self, image: Image.Image, year: int, tile: Tile) -> None:
        future = self.executor.submit(save_tile, image, self.output_dir, year, tile)
        self.pending_tiles.append(future)

    def _wait_for_pending_tiles(self) -> None:
        """Wait for all pending saves, then re-raise the first failure if any."""
        errors = []
        for future in self.pending_tiles:
            try:
                future.result()
            except Exception as e:
                logger.error(f"Tile save failed: {e}")
                errors.append(e)
        self.pending_tiles.clear()
        if errors:
            raise errors[0]


def deviation_grids(
    yearly_observations: Dict[int, List[Observation]],
    normal_years: Iterable[int],
    years: Optional[Iterable[int]] = None,
) -> List[Tuple[int, Callable[[GridLocation], float]]]:
    """
    Deviation grids of every year against the normals averaged over `normal_years`.

    Args:
        yearly_observations: Observations per year, must contain every normal year
        normal_years: Years whose average is taken as "normal"
        years: Years to compute deviations for, normal years included; defaults
            to every year that is not a normal year

    Returns:
        (year, deviation grid) pairs sorted by year
    """
    normal_years = list(normal_years)
    if years is None:
        years = [year for year in yearly_observations if year not in normal_years]
    years = sorted(set(years))
    missing = [year for year in normal_years + years if year not in yearly_observations]
    if missing:
        logger.error(f"No observations for years {missing}")
        raise ValueError(f"No observations for years {missing}")

    normals = average(yearly_observations[year] for year in normal_years)
    return [(year, deviation(yearly_observations[year], normals)) for year in years]
