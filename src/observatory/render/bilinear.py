"""Bilinear sampling of one-degree grids."""

import math
from typing import Callable, Tuple

import numpy as np

from observatory.model.models import CellPoint, GridLocation, Location
from observatory.render.grid import grid_values


def bilinear_interpolation(point: CellPoint, d00: float, d01: float, d10: float, d11: float) -> float:
    """
    Guess the value at `point` from the four corners of its cell.

    See https://en.wikipedia.org/wiki/Bilinear_interpolation#Unit_Square
    """
    return point.bilinear_interpolation(d00, d01, d10, d11)


def cell_corners(lats: np.ndarray, lons: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Lattice corners of the cells holding (lats, lons).

    Returns:
        (corner_lats, corner_lons), each of shape (4, *lats.shape), corners in
        the order top-left, bottom-left, top-right, bottom-right
    """
    lat0, lat1 = np.floor(lats), np.ceil(lats)
    lon0, lon1 = np.floor(lons), np.ceil(lons)
    return np.stack([lat1, lat0, lat1, lat0]), np.stack([lon0, lon0, lon1, lon1])


class BilinearGridSampler:
    """Continuous view of a grid, interpolating between the four surrounding lattice points."""

    def __init__(self, grid: Callable[[GridLocation], float]):
        self.grid = grid

    def sample(self, location: Location) -> float:
        return self.sample_at(location.lat, location.lon)

    def sample_at(self, lat: float, lon: float) -> float:
        lat0, lat1 = math.floor(lat), math.ceil(lat)
        lon0, lon1 = math.floor(lon), math.ceil(lon)

        # y grows southwards so (0, 0) is the top-left (north-west) corner
        point = CellPoint(lon - lon0, lat1 - lat)
        return point.bilinear_interpolation(
            self.grid(GridLocation(lat1, lon0)),
            self.grid(GridLocation(lat0, lon0)),
            self.grid(GridLocation(lat1, lon1)),
            self.grid(GridLocation(lat0, lon1)),
        )

    def sample_many(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        """Sample every (lat, lon) pair, returning an array with the shape of lats."""
        lats = np.asarray(lats, dtype=np.float64)
        lons = np.asarray(lons, dtype=np.float64)

        corner_lats, corner_lons = cell_corners(lats, lons)
        d00, d01, d10, d11 = grid_values(self.grid, corner_lats, corner_lons)
        x = lons - corner_lons[0]
        y = corner_lats[0] - lats
        return d00 * (1 - x) * (1 - y) + d01 * (1 - x) * y + d10 * x * (1 - y) + d11 * x * y
