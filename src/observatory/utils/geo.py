"""Great-circle distance and slippy-map tile geometry."""

import math
from typing import Tuple, Union

import numpy as np

from observatory.model.models import Location

ArrayLike = Union[float, np.ndarray]


def great_circle_distance(a: Location, b: Location) -> float:
    """
    Angular distance between two locations on the unit sphere, in radians.

    0 if a == b, pi if a and b are antipodes, otherwise
    acos(sin p1 * sin p2 + cos p1 * cos p2 * cos(l1 - l2)).
    """
    if a == b:
        return 0.0
    if a.lat + b.lat == 0 and abs(a.lon - b.lon) % 360 == 180:
        return math.pi

    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_lambda = math.radians(a.lon - b.lon)
    cosine = math.sin(phi1) * math.sin(phi2) + math.cos(phi1) * math.cos(phi2) * math.cos(d_lambda)
    # rounding can push the argument just outside [-1, 1]
    return math.acos(min(1.0, max(-1.0, cosine)))


def great_circle_distances(location: Location, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """
    Vectorized great_circle_distance from one location to arrays of points.

    lats and lons must broadcast against each other.
    """
    lats = np.asarray(lats, dtype=np.float64)
    lons = np.asarray(lons, dtype=np.float64)

    phi1 = np.radians(location.lat)
    phi2 = np.radians(lats)
    d_lambda = np.radians(location.lon - lons)
    cosine = np.sin(phi1) * np.sin(phi2) + np.cos(phi1) * np.cos(phi2) * np.cos(d_lambda)
    distances = np.arccos(np.clip(cosine, -1.0, 1.0))

    same = (lats == location.lat) & (lons == location.lon)
    antipode = (lats + location.lat == 0) & (np.mod(np.abs(location.lon - lons), 360) == 180)
    distances = np.where(antipode, np.pi, distances)
    return np.where(same, 0.0, distances)


def tile_to_location(x: ArrayLike, y: ArrayLike, zoom: int) -> Tuple[ArrayLike, ArrayLike]:
    """
    Top-left corner (lat, lon) of a tile, inverse Web Mercator.

    See http://wiki.openstreetmap.org/wiki/Slippy_map_tilenames
    Works with scalars and numpy arrays alike.
    """
    n = float(1 << zoom)
    lon = np.asarray(x, dtype=np.float64) / n * 360 - 180
    lat = np.arctan(np.sinh(np.pi * (1 - 2 * np.asarray(y, dtype=np.float64) / n))) * 180 / np.pi
    if lon.ndim == 0:
        return float(lat), float(lon)
    return lat, lon
