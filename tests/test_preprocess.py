"""Tests for tile pyramid generation."""

from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from observatory.model.models import Color, GridLocation, Location, RenderConfig
from observatory.model.tile import Tile
from observatory.preprocess.preprocess import (
    TilePyramidBuilder,
    deviation_grids,
    generate_tiles,
    save_tile,
)
from observatory.render.color_scale import ColorScale


@pytest.fixture
def small_config() -> RenderConfig:
    """4x4 pixel tiles, zoom levels 0 and 1."""
    return RenderConfig(delta_zoom=2, max_zoom=1, max_workers=2)


@pytest.fixture
def scale() -> ColorScale:
    return ColorScale([(-10, Color(0, 0, 255)), (10, Color(255, 0, 0))])


class TestGenerateTiles:
    """Test tile enumeration."""

    def test_enumerates_all_tiles(self) -> None:
        calls = []
        generate_tiles([(2000, "a"), (2001, "b")], lambda year, tile, data: calls.append((year, tile, data)))

        # 1 + 4 + 16 + 64 tiles per year
        assert len(calls) == 2 * 85
        assert calls[0] == (2000, Tile(0, 0, 0), "a")
        assert calls[85] == (2001, Tile(0, 0, 0), "b")
        assert len({tile for year, tile, _ in calls if year == 2000}) == 85

    def test_row_order_within_zoom(self) -> None:
        tiles = []
        generate_tiles([(2000, None)], lambda year, tile, data: tiles.append(tile), max_zoom=1)
        assert tiles == [Tile(0, 0, 0), Tile(0, 0, 1), Tile(1, 0, 1), Tile(0, 1, 1), Tile(1, 1, 1)]

    def test_tiles_are_in_range(self) -> None:
        tiles = []
        generate_tiles([(2000, None)], lambda year, tile, data: tiles.append(tile))
        assert all(0 <= t.x < 2 ** t.zoom and 0 <= t.y < 2 ** t.zoom for t in tiles)
        assert max(t.zoom for t in tiles) == 3


class TestSaveTile:
    """Test PNG output."""

    def test_path_layout(self, tmp_path: Path) -> None:
        image = Image.new("RGBA", (4, 4), (1, 2, 3, 127))
        path = save_tile(image, tmp_path, 2015, Tile(1, 0, 1))

        assert path == tmp_path / "2015" / "1" / "1-0.png"
        assert path.exists()
        with Image.open(path) as saved:
            assert saved.size == (4, 4)
            assert saved.getpixel((0, 0)) == (1, 2, 3, 127)


class TestTilePyramidBuilder:
    """Test building whole pyramids."""

    def test_build(self, tmp_path: Path, small_config: RenderConfig, scale: ColorScale) -> None:
        builder = TilePyramidBuilder(tmp_path / "tiles", scale, small_config)
        builder.build([(2015, [(Location(0, 0), 5.0)])])

        files = sorted((tmp_path / "tiles").glob("**/*.png"))
        assert len(files) == 5
        assert (tmp_path / "tiles" / "2015" / "0" / "0-0.png").exists()
        assert (tmp_path / "tiles" / "2015" / "1" / "1-1.png").exists()
        with Image.open(files[0]) as image:
            assert image.size == (4, 4)
            assert image.getpixel((0, 0)) == (191, 0, 64, 127)

    def test_build_grids(self, tmp_path: Path, small_config: RenderConfig, scale: ColorScale) -> None:
        builder = TilePyramidBuilder(tmp_path, scale, small_config)
        builder.build_grids([(2016, lambda grid_location: -10.0), (2017, lambda grid_location: 10.0)])

        assert len(list(tmp_path.glob("2016/**/*.png"))) == 5
        assert len(list(tmp_path.glob("2017/**/*.png"))) == 5
        with Image.open(tmp_path / "2017" / "1" / "0-1.png") as image:
            assert image.getpixel((3, 3)) == (255, 0, 0, 127)

    def test_save_failure_is_raised(self, tmp_path: Path, small_config: RenderConfig, scale: ColorScale) -> None:
        builder = TilePyramidBuilder(tmp_path, scale, small_config)
        with patch("observatory.preprocess.preprocess.save_tile", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                builder.build([(2015, [(Location(0, 0), 5.0)])])
        assert builder.pending_tiles == []


class TestDeviationGrids:
    """Test deviation grids against averaged normals."""

    def test_deviation_of_remaining_years(self) -> None:
        yearly = {
            2000: [(Location(0, 0), 10.0)],
            2001: [(Location(0, 0), 14.0)],
            2002: [(Location(0, 0), 20.0)],
        }
        grids = deviation_grids(yearly, [2000, 2001])

        assert [year for year, _ in grids] == [2002]
        assert grids[0][1](GridLocation(40, -100)) == pytest.approx(8.0)

    def test_missing_normal_year(self) -> None:
        with pytest.raises(ValueError):
            deviation_grids({2000: [(Location(0, 0), 10.0)]}, [1999, 2000])

    def test_requested_years_include_normal_years(self) -> None:
        yearly = {
            2000: [(Location(0, 0), 10.0)],
            2001: [(Location(0, 0), 14.0)],
            2002: [(Location(0, 0), 20.0)],
        }
        grids = dict(deviation_grids(yearly, [2000, 2001], years=[2002, 2001]))

        assert sorted(grids) == [2001, 2002]
        assert grids[2001](GridLocation(10, 10)) == pytest.approx(2.0)
        assert grids[2002](GridLocation(10, 10)) == pytest.approx(8.0)

    def test_missing_requested_year(self) -> None:
        with pytest.raises(ValueError):
            deviation_grids({2000: [(Location(0, 0), 10.0)]}, [2000], years=[2003])
