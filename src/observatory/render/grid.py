"""Memoized one-degree grids built from observations."""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
from loguru import logger

from observatory.model.models import GridLocation, Observation
from observatory.render.predictor import SpatialPredictor

BatchFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


def lattice_points(lats: np.ndarray, lons: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Distinct lattice points among integer (lats, lons) arrays.

    Returns:
        (points, inverse): points is an (n, 2) int array of (lat, lon) rows,
        points[inverse] rebuilds the flattened input
    """
    pairs = np.stack([np.ravel(lats), np.ravel(lons)], axis=1).astype(np.int64)
    if not len(pairs):
        return pairs, np.zeros(0, dtype=np.int64)
    points, inverse = np.unique(pairs, axis=0, return_inverse=True)
    return points, np.ravel(inverse)


class GridField:
    """
    Memoized function GridLocation -> value.

    Every instance owns its cache. Lookups are safe from several threads: two
    threads racing on the same missing key may both compute it, but both get
    the value that was stored first.

    An optional batch function computes many lattice points at once from
    integer (lats, lons) arrays; `values_at` uses it to fill the cache.
    """

    def __init__(self, function: Callable[[GridLocation], float], batch: Optional[BatchFunction] = None):
        self._function = function
        self._batch = batch
        self._cache: Dict[GridLocation, float] = {}

    def __call__(self, grid_location: GridLocation) -> float:
        value = self._cache.get(grid_location)
        if value is None:
            value = self._cache.setdefault(grid_location, self._function(grid_location))
        return value

    def __contains__(self, grid_location: GridLocation) -> bool:
        return grid_location in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def values_at(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        """
        Grid values at integer (lats, lons) arrays.

        Missing lattice points are computed together, with the batch function
        when there is one, and cached like single lookups.

        Returns:
            Array with the shape of lats
        """
        points, inverse = lattice_points(lats, lons)
        keys = [GridLocation(int(lat), int(lon)) for lat, lon in points]
        missing = [i for i, key in enumerate(keys) if key not in self._cache]
        if missing:
            if self._batch is not None:
                computed = self._batch(points[missing, 0], points[missing, 1])
            else:
                computed = [self._function(keys[i]) for i in missing]
            for i, value in zip(missing, computed):
                self._cache.setdefault(keys[i], float(value))

        values = np.array([self._cache[key] for key in keys], dtype=np.float64)
        return values[inverse].reshape(np.shape(lats))


def grid_values(grid: Callable[[GridLocation], float], lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Values of any grid at integer (lats, lons) arrays, each distinct lattice point looked up once."""
    if isinstance(grid, GridField):
        return grid.values_at(lats, lons)
    points, inverse = lattice_points(lats, lons)
    values = np.array([grid(GridLocation(int(lat), int(lon))) for lat, lon in points], dtype=np.float64)
    return values[inverse].reshape(np.shape(lats))


def build_grid(observations: Iterable[Observation]) -> GridField:
    """
    Args:
        observations: Known (location, value) pairs

    Returns:
        A grid that, given a latitude in [-89, 90] and a longitude in [-180, 179],
        returns the predicted value at that lattice point
    """
    predictor = SpatialPredictor(observations)
    return GridField(lambda grid_location: predictor.predict(grid_location.location), batch=predictor.predict_many)


def average(observation_sets: Iterable[Iterable[Observation]]) -> GridField:
    """
    Args:
        observation_sets: One observation collection per period (e.g. per year)

    Returns:
        A grid with the mean of the per-period grids at each lattice point
    """
    grids: List[GridField] = [build_grid(observations) for observations in observation_sets]
    logger.debug(f"Averaging {len(grids)} period grids")
    if not grids:
        logger.warning("No periods to average, grid is 0 everywhere")

    def mean(grid_location: GridLocation) -> float:
        if not grids:
            return 0.0
        return sum(grid(grid_location) for grid in grids) / len(grids)

    def mean_many(lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        if not grids:
            return np.zeros(np.shape(lats), dtype=np.float64)
        return sum(grid.values_at(lats, lons) for grid in grids) / len(grids)

    return GridField(mean, batch=mean_many)


def deviation(observations: Iterable[Observation], normals: Callable[[GridLocation], float]) -> GridField:
    """
    Args:
        observations: Known (location, value) pairs
        normals: Grid with the "normal" values

    Returns:
        A grid with the deviation of the observations from the normals
    """
    grid = build_grid(observations)
    return GridField(
        lambda grid_location: grid(grid_location) - normals(grid_location),
        batch=lambda lats, lons: grid.values_at(lats, lons) - grid_values(normals, lats, lons),
    )
