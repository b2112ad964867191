"""Shared pytest fixtures for observatory tests."""

from pathlib import Path
from typing import List
from unittest.mock import MagicMock

import pytest

from observatory.model.models import Color, ColorStop, Location, Observation


@pytest.fixture
def sample_observations() -> List[Observation]:
    """Two observations with known IDW predictions."""
    return [
        (Location(10, 10), 20.0),
        (Location(20, 20), 10.0),
    ]


@pytest.fixture
def sample_colors() -> List[ColorStop]:
    """Unsorted temperature scale."""
    return [
        (60, Color(255, 255, 255)),
        (32, Color(255, 0, 0)),
        (12, Color(255, 255, 0)),
        (0, Color(0, 0, 255)),
        (-15, Color(0, 0, 255)),
        (-27, Color(255, 0, 255)),
        (-50, Color(33, 0, 107)),
        (-60, Color(0, 0, 5)),
    ]


@pytest.fixture
def test_config():
    """Config mock answering every key with its default, except a few renderer settings."""
    config = MagicMock()

    def config_call(key, default=None):
        if key == "renderer.delta_zoom":
            return 2
        if key == "tiler.max_zoom":
            return 1
        if key == "renderer.max_workers":
            return 2
        return default

    config.side_effect = config_call
    return config


@pytest.fixture
def station_files(tmp_path: Path) -> dict:
    """Stations file and a 2015 temperatures file."""
    stations = tmp_path / "stations.csv"
    stations.write_text(
        "010010,,70.933,-008.667\n"
        "010013,,,\n"
        "010014,,59.792,005.341\n"
        ",03005,39.4,-85.7\n"
    )
    temperatures = tmp_path / "2015.csv"
    temperatures.write_text(
        "010010,,01,01,32.0\n"
        "010010,,01,02,50.0\n"
        "010014,,12,31,212.0\n"
        ",03005,06,15,41.0\n"
        "999999,,01,01,10.0\n"
        "010013,,01,01,10.0\n"
    )
    return {"stations": stations, "temperatures": temperatures, "template": tmp_path / "{year}.csv"}
