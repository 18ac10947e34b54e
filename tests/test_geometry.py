"""Tests for geodesic helpers and facility geometry."""

from __future__ import annotations

import numpy as np
import pytest

from herdsense.errors import ConfigurationError
from herdsense.geo import (
    Facility,
    bearing,
    circular_mean,
    compute_red_zones,
    direction8,
    haversine,
    haversine_array,
    point_in_polygon,
)


class TestHaversine:
    """Tests for great-circle distances."""

    def test_zero_for_identical_points(self):
        """Test distance from a point to itself."""
        assert haversine(50.95, 14.57, 50.95, 14.57) == 0.0

    def test_symmetric(self):
        """Test distance does not depend on argument order."""
        d1 = haversine(50.95, 14.57, 50.96, 14.58)
        d2 = haversine(50.96, 14.58, 50.95, 14.57)
        assert d1 == pytest.approx(d2)

    def test_one_degree_latitude(self):
        """Test one degree of latitude on the 6371 km sphere."""
        assert haversine(50.0, 14.0, 51.0, 14.0) == pytest.approx(111_194.93, abs=1.0)

    def test_array_matches_scalar(self):
        """Test vectorized version agrees with the scalar one."""
        lats = np.array([50.0, 50.001, 50.01])
        lons = np.array([14.0, 14.002, 13.99])
        expected = [haversine(50.0, 14.0, la, lo) for la, lo in zip(lats, lons)]
        np.testing.assert_allclose(haversine_array(50.0, 14.0, lats, lons), expected)


class TestBearing:
    """Tests for bearings and compass directions."""

    def test_cardinal_bearings(self):
        """Test north and east bearings."""
        assert bearing(0.0, 0.0, 1.0, 0.0) == pytest.approx(0.0, abs=1e-9)
        assert bearing(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0)

    def test_bearing_range(self):
        """Test bearings are normalized to [0, 360)."""
        b = bearing(50.0, 14.0, 49.99, 13.99)
        assert 0.0 <= b < 360.0
        assert b > 180.0

    def test_direction8(self):
        """Test compass point mapping with wrap-around."""
        assert direction8(0.0) == "N"
        assert direction8(90.0) == "E"
        assert direction8(200.0) == "S"
        assert direction8(359.0) == "N"
        assert direction8(None) is None


class TestPointInPolygon:
    """Tests for ray-casting containment."""

    @pytest.fixture
    def square(self):
        return [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)]

    def test_inside_and_outside(self, square):
        """Test points clearly inside and outside the square."""
        assert point_in_polygon(0.5, 0.5, square)
        assert not point_in_polygon(1.5, 0.5, square)
        assert not point_in_polygon(0.5, -0.1, square)

    def test_degenerate_polygon(self):
        """Test polygons with fewer than three vertices contain nothing."""
        assert not point_in_polygon(0.0, 0.0, [(0.0, 0.0), (1.0, 1.0)])
        assert not point_in_polygon(0.0, 0.0, [])


class TestCircularMean:
    """Tests for the circular mean."""

    def test_wraps_around_north(self):
        """Test mean of 350 and 10 degrees is north, not south."""
        result = circular_mean([350.0, 10.0])
        assert min(result, 360.0 - result) < 1e-6

    def test_opposite_angles_have_no_mean(self):
        """Test the mean is undefined for cancelling directions."""
        assert circular_mean([0.0, 180.0]) is None

    def test_empty(self):
        """Test empty input."""
        assert circular_mean([]) is None


class TestFacility:
    """Tests for facility geometry."""

    def test_fence_and_rest_zone(self, square_facility):
        """Test fence and rest zone membership."""
        assert square_facility.in_fence(50.0, 14.0)
        assert square_facility.fence_index(50.0, 14.0) == 0
        assert not square_facility.in_fence(50.01, 14.0)
        assert square_facility.fence_index(50.01, 14.0) is None
        assert square_facility.in_rest_zone(50.0, 14.0)
        assert not square_facility.in_rest_zone(50.0009, 14.0009)

    def test_zone_label(self, square_facility):
        """Test the most specific zone is reported."""
        assert square_facility.zone_label(50.0, 14.0) == "rest_zone"
        assert square_facility.zone_label(50.0009, 14.0009) == "fence_0"
        assert square_facility.zone_label(50.01, 14.0) is None

    def test_without_fences_everything_is_inside(self):
        """Test a facility without fences or rest zone accepts every point."""
        facility = Facility(center=(50.0, 14.0))
        assert facility.in_fence(10.0, 10.0)
        assert facility.in_rest_zone(10.0, 10.0)
        assert facility.red_zones == []
        assert not facility.in_red_zone(10.0, 10.0)

    def test_distance_from_center(self, square_facility):
        """Test distance from the facility center."""
        assert square_facility.distance_from_center(50.0, 14.0) == 0.0
        assert square_facility.distance_from_center(50.001, 14.0) == pytest.approx(111.19, abs=0.1)

    def test_red_zone_excludes_green_area(self, square_facility):
        """Test RED membership inside the fence but outside green zones."""
        assert not square_facility.in_red_zone(50.0, 14.0)
        assert square_facility.in_red_zone(50.0009, 14.0009)
        assert not square_facility.in_red_zone(50.01, 14.0)

    def test_from_dict(self):
        """Test building a facility from a plain mapping."""
        facility = Facility.from_dict(
            {
                "center": [50.0, 14.0],
                "fences": [[[0, 0], [0, 1], [1, 1]]],
                "rest_zone": [[0, 0], [0, 1], [1, 1]],
                "green_zones": {"G": [[0, 0], [0, 1], [1, 1]]},
            }
        )
        assert facility.center == (50.0, 14.0)
        assert len(facility.fences) == 1
        assert facility.fences[0][1] == (0.0, 1.0)
        assert "G" in facility.green_zones

    def test_from_dict_requires_center(self):
        """Test missing center is a configuration error."""
        with pytest.raises(ConfigurationError):
            Facility.from_dict({"fences": []})

    def test_from_dict_rejects_degenerate_polygon(self):
        """Test polygons need at least three vertices."""
        with pytest.raises(ConfigurationError):
            Facility.from_dict({"center": [50.0, 14.0], "fences": [[[0, 0], [1, 1]]]})


class TestRedZones:
    """Tests for RED-zone derivation."""

    @pytest.fixture
    def fence(self):
        return [(0.0, 0.0), (0.0, 2.0), (2.0, 2.0), (2.0, 0.0)]

    def test_no_green_zones_returns_fence(self, fence):
        """Test the whole fence is RED without green zones."""
        red = compute_red_zones(fence, [])
        assert len(red) == 1
        assert point_in_polygon(1.0, 1.0, red[0])

    def test_fully_covered_fence(self, fence):
        """Test nothing is RED when a green zone covers the fence."""
        cover = [(-1.0, -1.0), (-1.0, 3.0), (3.0, 3.0), (3.0, -1.0)]
        assert compute_red_zones(fence, [cover]) == []

    def test_split_by_green_strip(self, fence):
        """Test a green strip across the fence leaves two RED parts."""
        strip = [(0.9, -1.0), (0.9, 3.0), (1.1, 3.0), (1.1, -1.0)]
        red = compute_red_zones(fence, [strip])
        assert len(red) == 2
