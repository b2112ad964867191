"""Inverse distance weighting (IDW) over scattered observations.

Observations closer than EXACT_DISTANCE radians to the query location carry
an "infinite" weight: when any exist, the prediction is the plain mean of
those observations and every other observation is ignored. Otherwise the
prediction is the usual IDW mean with weights 1 / distance**P.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

import numpy as np

from observatory.model.models import Location, Observation
from observatory.utils.geo import great_circle_distance, great_circle_distances

P = 2
EXACT_DISTANCE = 1e-6


@dataclass(frozen=True)
class IDWAccumulator:
    """
    Partial IDW reduction.

    Two states: finite (exact=False, weighted_sum and weight are running IDW
    sums) or exact (exact=True, weighted_sum is the sum of the exact-match
    values and count their number). `add` and `combine` are associative and
    commutative, so observations can be folded in any order or chunking.
    """
    exact: bool = False
    weighted_sum: float = 0.0
    weight: float = 0.0
    count: int = 0

    def add(self, distance: float, value: float) -> "IDWAccumulator":
        if abs(distance) < EXACT_DISTANCE:
            if self.exact:
                return IDWAccumulator(True, self.weighted_sum + value, 0.0, self.count + 1)
            return IDWAccumulator(True, value, 0.0, 1)
        if self.exact:
            return self

        w = 1.0 / distance ** P
        return IDWAccumulator(False, self.weighted_sum + w * value, self.weight + w, self.count + 1)

    def combine(self, other: "IDWAccumulator") -> "IDWAccumulator":
        if self.exact and other.exact:
            return IDWAccumulator(True, self.weighted_sum + other.weighted_sum, 0.0, self.count + other.count)
        if self.exact:
            return self
        if other.exact:
            return other
        return IDWAccumulator(
            False,
            self.weighted_sum + other.weighted_sum,
            self.weight + other.weight,
            self.count + other.count,
        )

    def result(self) -> float:
        if self.exact:
            return self.weighted_sum / self.count
        if self.weight != 0:
            return self.weighted_sum / self.weight
        return 0.0


def accumulate(observations: Iterable[Observation], location: Location) -> IDWAccumulator:
    acc = IDWAccumulator()
    for obs_location, value in observations:
        acc = acc.add(great_circle_distance(obs_location, location), value)
    return acc


def predict(observations: Iterable[Observation], location: Location) -> float:
    """
    Predicted value at `location` from the known observations.

    Args:
        observations: (location, value) pairs, in any order, duplicates allowed
        location: Location to predict at

    Returns:
        IDW estimate, the mean of the exact matches if any, 0.0 for no observations
    """
    return accumulate(observations, location).result()


def predict_chunked(observations: Sequence[Observation], location: Location, chunk_size: int = 1024) -> float:
    """Same as `predict`, folding fixed-size chunks separately and combining them."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    acc = IDWAccumulator()
    for start in range(0, len(observations), chunk_size):
        acc = acc.combine(accumulate(observations[start:start + chunk_size], location))
    return acc.result()


class SpatialPredictor:
    """
    IDW predictor bound to one observation set.

    Holds the observations as numpy arrays so a whole block of query points
    can be evaluated at once with `predict_many`.
    """

    def __init__(self, observations: Iterable[Observation]):
        self.observations: List[Observation] = list(observations)
        self.lats = np.array([loc.lat for loc, _ in self.observations], dtype=np.float64)
        self.lons = np.array([loc.lon for loc, _ in self.observations], dtype=np.float64)
        self.values = np.array([value for _, value in self.observations], dtype=np.float64)

    def __len__(self) -> int:
        return len(self.observations)

    def predict(self, location: Location) -> float:
        return predict(self.observations, location)

    def predict_many(self, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
        """
        Vectorized `predict` over query points.

        Args:
            lats: Query latitudes, any shape
            lons: Query longitudes, same shape as lats

        Returns:
            Array of predictions with the shape of lats
        """
        lats = np.asarray(lats, dtype=np.float64)
        lons = np.asarray(lons, dtype=np.float64)
        if not self.observations:
            return np.zeros(lats.shape, dtype=np.float64)

        flat_lats, flat_lons = lats.ravel(), lons.ravel()
        # (queries, observations)
        distances = np.stack(
            [great_circle_distances(loc, flat_lats, flat_lons) for loc, _ in self.observations],
            axis=1,
        )

        exact = np.abs(distances) < EXACT_DISTANCE
        exact_count = exact.sum(axis=1)
        exact_sum = np.where(exact, self.values, 0.0).sum(axis=1)

        with np.errstate(divide="ignore", invalid="ignore"):
            weights = np.where(exact, 0.0, 1.0 / np.where(exact, 1.0, distances) ** P)
            idw = (weights * self.values).sum(axis=1) / weights.sum(axis=1)
            result = np.where(exact_count > 0, exact_sum / np.maximum(exact_count, 1), idw)

        return result.reshape(lats.shape)
