import orjson
from pathlib import Path
from typing import Any, List

from loguru import logger

from observatory.model.models import Color, ColorStop
from observatory.render.color_scale import ColorScale


def read_json(path: str|Path) -> Any:
    """
    Reads a JSON file from the specified path.

    Args:
        path (str | Path): The path to the JSON file.
    Returns:
        The decoded JSON document.
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"JSON file '{path}' does not exist.")
        raise FileNotFoundError(f"JSON file '{path}' does not exist.")
    with open(path, 'rb') as f:
        return orjson.loads(f.read())


def parse_color_stops(data: List) -> List[ColorStop]:
    """
    Turn [[key, [r, g, b]], ...] (or [{"value": key, "color": [r, g, b]}, ...]) into color stops.
    """
    stops = []
    for entry in data:
        if isinstance(entry, dict):
            key, rgb = entry["value"], entry["color"]
        else:
            key, rgb = entry
        stops.append((float(key), Color(*rgb)))
    return stops


def load_color_scale(path: str|Path) -> ColorScale:
    """
    Load a color scale from a JSON file.

    Example file:
        [[60, [255, 255, 255]], [32, [255, 0, 0]], [-60, [0, 0, 0]]]
    """
    stops = parse_color_stops(read_json(path))
    logger.info(f"Loaded color scale with {len(stops)} stops from {path}")
    return ColorScale(stops)
