"""
Unit tests for models.coordinate module.

Tests:
- Construction within range, int coercion
- Out-of-range, NaN and non-numeric rejection
- Immutability and hashing
"""

import dataclasses
import math

import pytest

from geofeed.models import Coordinate


class TestCoordinate:
    """Coordinate construction and validation."""

    def test_valid(self):
        c = Coordinate(52.52, 13.405)
        assert c.latitude == 52.52
        assert c.longitude == 13.405

    def test_int_coerced_to_float(self):
        c = Coordinate(10, -20)
        assert isinstance(c.latitude, float)
        assert isinstance(c.longitude, float)

    def test_bounds_inclusive(self):
        Coordinate(-90, -180)
        Coordinate(90, 180)

    @pytest.mark.parametrize(("lat", "lon"), [(90.1, 0), (-91, 0), (0, 180.5), (0, -181)])
    def test_out_of_range(self, lat, lon):
        with pytest.raises(ValueError):
            Coordinate(lat, lon)

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            Coordinate(math.nan, 0)

    @pytest.mark.parametrize("bad", ["52.5", None, True])
    def test_non_numeric_rejected(self, bad):
        with pytest.raises(TypeError):
            Coordinate(bad, 0)

    def test_frozen(self):
        c = Coordinate(1, 2)
        with pytest.raises(dataclasses.FrozenInstanceError):
            c.latitude = 3.0  # type: ignore[misc]

    def test_hashable(self):
        assert len({Coordinate(1, 2), Coordinate(1.0, 2.0)}) == 1
