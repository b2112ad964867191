"""Piecewise-linear color scales."""

import math
from bisect import bisect_left
from typing import Iterable, List

import numpy as np

from observatory.model.models import BLACK, Color, ColorStop


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    # abs(value) + 0.5 is inexact just below a half
    magnitude = abs(value)
    whole = math.trunc(magnitude)
    return int(math.copysign(whole + (magnitude - whole >= 0.5), value))


def round_half_away_many(values: np.ndarray) -> np.ndarray:
    """Array version of round_half_away, returning int64."""
    magnitude = np.abs(values)
    whole = np.trunc(magnitude)
    return np.copysign(whole + (magnitude - whole >= 0.5), values).astype(np.int64)


class ColorScale:
    """
    Color scale defined by (key, color) stops.

    Stops are sorted by key on construction (stable, so equal keys keep their
    input order). Values between two stops are interpolated per channel,
    values outside the scale take the color of the nearest end.
    """

    def __init__(self, stops: Iterable[ColorStop]):
        ordered = sorted(stops, key=lambda stop: stop[0])
        self.keys: List[float] = [float(key) for key, _ in ordered]
        self.colors: List[Color] = [color for _, color in ordered]

    def __len__(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        return f"ColorScale({list(zip(self.keys, self.colors))})"

    def color_at(self, value: float) -> Color:
        idx = bisect_left(self.keys, value)
        if idx < len(self.keys) and self.keys[idx] == value:
            return self.colors[idx]

        if not self.keys:
            return BLACK
        if idx == 0:
            return self.colors[0]
        if idx == len(self.keys):
            return self.colors[-1]

        key0, key1 = self.keys[idx - 1], self.keys[idx]
        color0, color1 = self.colors[idx - 1], self.colors[idx]
        alpha = (value - key0) / (key1 - key0)

        def interpolate(c0: int, c1: int) -> int:
            return round_half_away(c0 + alpha * (c1 - c0))

        return Color(
            interpolate(color0.red, color1.red),
            interpolate(color0.green, color1.green),
            interpolate(color0.blue, color1.blue),
        )

    def argb_many(self, values: np.ndarray, alpha: int = 255) -> np.ndarray:
        """
        Packed ARGB colors of a whole array of values, same rules as color_at.

        Args:
            values: Values to color, any shape
            alpha: Alpha channel of every pixel

        Returns:
            int64 array with the shape of values
        """
        values = np.asarray(values, dtype=np.float64)
        if not self.keys:
            return np.full(values.shape, BLACK.argb(alpha), dtype=np.int64)

        keys = np.array(self.keys, dtype=np.float64)
        rgb = np.array([[c.red, c.green, c.blue] for c in self.colors], dtype=np.int64)

        idx = np.searchsorted(keys, values, side="left")
        upper = np.minimum(idx, len(keys) - 1)
        lower = np.maximum(idx - 1, 0)
        key0, key1 = keys[lower], keys[upper]
        with np.errstate(divide="ignore", invalid="ignore"):
            fraction = np.where(key1 > key0, (values - key0) / (key1 - key0), 0.0)[..., np.newaxis]
        channels = round_half_away_many(rgb[lower] + fraction * (rgb[upper] - rgb[lower]))

        exact = (idx < len(keys)) & (key1 == values)
        channels = np.where((exact | (idx == 0))[..., np.newaxis], rgb[upper], channels)
        channels = np.where((idx == len(keys))[..., np.newaxis], rgb[lower], channels)

        red, green, blue = channels[..., 0], channels[..., 1], channels[..., 2]
        return alpha * (1 << 24) + red * (1 << 16) + green * (1 << 8) + blue


def interpolate_color(stops: Iterable[ColorStop], value: float) -> Color:
    """Color for `value` on the scale defined by `stops`."""
    return ColorScale(stops).color_at(value)


TEMPERATURE_COLORS: List[ColorStop] = [
    (60, Color(255, 255, 255)),
    (32, Color(255, 0, 0)),
    (12, Color(255, 255, 0)),
    (0, Color(0, 255, 255)),
    (-15, Color(0, 0, 255)),
    (-27, Color(255, 0, 255)),
    (-50, Color(33, 0, 107)),
    (-60, Color(0, 0, 0)),
]

DEVIATION_COLORS: List[ColorStop] = [
    (7, Color(0, 0, 0)),
    (4, Color(255, 0, 0)),
    (2, Color(255, 255, 0)),
    (0, Color(255, 255, 255)),
    (-2, Color(0, 255, 255)),
    (-7, Color(0, 0, 255)),
]
