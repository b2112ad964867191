"""Tests for great-circle distances and tile geometry."""

import math

import numpy as np
import pytest

from observatory.model.models import Location
from observatory.utils.geo import great_circle_distance, great_circle_distances, tile_to_location


class TestGreatCircleDistance:
    """Test the scalar great_circle_distance."""

    @pytest.mark.parametrize("location", [Location(0, 0), Location(45.5, -120.25), Location(-90, 180)])
    def test_same_location_is_zero(self, location: Location) -> None:
        assert great_circle_distance(location, location) == 0.0

    @pytest.mark.parametrize(
        "a, b",
        [
            (Location(10, 20), Location(-10, -160)),
            (Location(0, 0), Location(0, 180)),
            (Location(0, -90), Location(0, 90)),
            (Location(-33.5, 170), Location(33.5, -10)),
        ],
    )
    def test_antipodes_are_pi(self, a: Location, b: Location) -> None:
        assert great_circle_distance(a, b) == pytest.approx(math.pi)
        assert great_circle_distance(b, a) == pytest.approx(math.pi)

    def test_quarter_circle(self) -> None:
        """Equator to pole and 90 degrees along the equator are both pi/2."""
        assert great_circle_distance(Location(0, 0), Location(90, 0)) == pytest.approx(math.pi / 2)
        assert great_circle_distance(Location(0, 0), Location(0, 90)) == pytest.approx(math.pi / 2)

    def test_symmetric(self) -> None:
        a, b = Location(12.3, -45.6), Location(-7.8, 99.1)
        assert great_circle_distance(a, b) == pytest.approx(great_circle_distance(b, a))

    def test_near_coincident_points_do_not_raise(self) -> None:
        """Rounding can push the acos argument above 1; it must not raise."""
        a = Location(10.0, 10.0)
        b = Location(10.0, 10.0 + 1e-12)
        distance = great_circle_distance(a, b)
        assert 0.0 <= distance < 1e-6


class TestGreatCircleDistances:
    """Test the vectorized great_circle_distances."""

    def test_matches_scalar_version(self) -> None:
        origin = Location(10, 20)
        points = [Location(10, 20), Location(-10, -160), Location(0, 0), Location(55.5, -3.25), Location(-89, 179)]
        lats = np.array([p.lat for p in points])
        lons = np.array([p.lon for p in points])

        distances = great_circle_distances(origin, lats, lons)

        assert distances.shape == (5,)
        assert distances[0] == 0.0
        assert distances[1] == pytest.approx(math.pi)
        for point, distance in zip(points, distances):
            assert distance == pytest.approx(great_circle_distance(origin, point), abs=1e-12)

    def test_keeps_shape(self) -> None:
        lats = np.zeros((3, 4))
        lons = np.linspace(-180, 180, 12).reshape(3, 4)
        assert great_circle_distances(Location(0, 0), lats, lons).shape == (3, 4)


class TestTileToLocation:
    """Test the inverse Web Mercator conversion."""

    def test_world_tile_top_left(self) -> None:
        lat, lon = tile_to_location(0, 0, 0)
        assert lon == pytest.approx(-180.0)
        assert lat == pytest.approx(85.0511287798066)

    def test_bottom_right_corner(self) -> None:
        lat, lon = tile_to_location(1, 1, 0)
        assert lon == pytest.approx(180.0)
        assert lat == pytest.approx(-85.0511287798066)

    def test_center_of_the_world(self) -> None:
        lat, lon = tile_to_location(1, 1, 1)
        assert lat == pytest.approx(0.0)
        assert lon == pytest.approx(0.0)

    def test_returns_floats_for_scalars(self) -> None:
        lat, lon = tile_to_location(3, 5, 4)
        assert isinstance(lat, float)
        assert isinstance(lon, float)

    def test_arrays(self) -> None:
        lat, lon = tile_to_location(np.array([0, 1, 2]), np.array([0, 1, 2]), 1)
        assert lon.tolist() == pytest.approx([-180.0, 0.0, 180.0])
        assert lat[1] == pytest.approx(0.0)
        assert lat[0] == pytest.approx(-lat[2])
