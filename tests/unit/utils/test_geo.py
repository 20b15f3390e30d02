"""
Unit tests for utils.geo module.

Tests:
- decode_center() against known cell centers, case folding, invalid input
- haversine_km() identity, symmetry and a known distance
- enumerate_regions() size, order and validation
"""

import pytest

from geofeed.models import Coordinate
from geofeed.utils.geo import (
    GEOHASH_ALPHABET,
    decode_center,
    enumerate_regions,
    haversine_km,
    is_region,
)


class TestDecodeCenter:
    """decode_center()."""

    def test_single_character_cells(self):
        assert decode_center("u") == Coordinate(67.5, 22.5)
        assert decode_center("9") == Coordinate(22.5, -112.5)
        assert decode_center("0") == Coordinate(-67.5, -157.5)

    def test_two_characters(self):
        center = decode_center("u4")
        assert center.latitude == pytest.approx(59.0625)
        assert center.longitude == pytest.approx(5.625)

    def test_center_inside_parent_cell(self):
        parent = decode_center("9")
        child = decode_center("9q")
        assert abs(child.latitude - parent.latitude) <= 22.5
        assert abs(child.longitude - parent.longitude) <= 22.5

    def test_upper_case_accepted(self):
        assert decode_center("U4") == decode_center("u4")

    @pytest.mark.parametrize("bad", ["", "a", "ui", "l0", "o"])
    def test_invalid_region(self, bad):
        with pytest.raises(ValueError):
            decode_center(bad)


class TestIsRegion:
    """is_region()."""

    def test_valid(self):
        assert is_region("u4pru")

    @pytest.mark.parametrize("bad", ["", "U4", "a1", "hello world"])
    def test_invalid(self, bad):
        assert not is_region(bad)


class TestHaversine:
    """haversine_km()."""

    def test_zero_for_same_point(self):
        p = Coordinate(52.52, 13.405)
        assert haversine_km(p, p) == 0.0

    def test_symmetric(self):
        a = Coordinate(52.52, 13.405)
        b = Coordinate(40.7128, -74.006)
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))

    def test_berlin_new_york(self):
        berlin = Coordinate(52.52, 13.405)
        new_york = Coordinate(40.7128, -74.006)
        assert haversine_km(berlin, new_york) == pytest.approx(6385, rel=0.01)

    def test_antipodal(self):
        distance = haversine_km(Coordinate(0, 0), Coordinate(0, 180))
        assert distance == pytest.approx(20015.1, rel=0.001)


class TestEnumerateRegions:
    """enumerate_regions()."""

    def test_depth_one(self):
        assert enumerate_regions(1) == tuple(GEOHASH_ALPHABET)

    def test_depth_two_size_and_order(self):
        regions = enumerate_regions(2)
        assert len(regions) == 1056
        assert regions[:32] == tuple(GEOHASH_ALPHABET)
        assert regions[32] == "00"
        assert regions[33] == "01"
        assert regions[-1] == "zz"

    def test_no_duplicates(self):
        regions = enumerate_regions(2)
        assert len(set(regions)) == len(regions)

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            enumerate_regions(0)
