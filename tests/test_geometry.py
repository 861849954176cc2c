"""
Tests for coordinate normalization, bounding boxes and area computation.
"""
import math
import pytest

from fieldlens.domain.exceptions import InvalidGeometry, UnsupportedCoordinateFormat
from fieldlens.domain.models import Boundary, BoundingBox, GeoPoint
from fieldlens.utils.geometry import (
    area_hectares,
    bounding_box_of,
    extent_km,
    is_degenerate,
    normalize_ring,
    parse_ring,
    signed_area_m2,
)
from fieldlens.utils.geo_projection import geodesic_area_hectares, planar_area_is_reliable

from conftest import square_lnglat, to_points


# ============================================================
# Coordinate Normalization
# ============================================================

class TestNormalizeRing:
    """Test suite for normalize_ring."""

    def test_lnglat_arrays(self):
        """[lng, lat] arrays map lng first, lat second."""
        points = normalize_ring([[-56.1, -15.6], [-56.0, -15.6], [-56.0, -15.5]])

        assert points[0] == GeoPoint(lat=-15.6, lng=-56.1)
        assert len(points) == 3

    def test_extra_array_elements_ignored(self):
        """Altitude and other trailing elements are dropped."""
        points = normalize_ring([[-56.1, -15.6, 312.0]])

        assert points == [GeoPoint(lat=-15.6, lng=-56.1)]

    @pytest.mark.parametrize("entry", [
        {"lat": -15.6, "lng": -56.1},
        {"lat": -15.6, "lon": -56.1},
        {"latitude": -15.6, "longitude": -56.1},
    ])
    def test_mapping_encodings(self, entry):
        """All mapping encodings produce the same point."""
        assert normalize_ring([entry]) == [GeoPoint(lat=-15.6, lng=-56.1)]

    def test_mixed_encodings(self):
        """Entries in different encodings can share a ring."""
        points = normalize_ring([
            [-56.1, -15.6],
            {"lat": -15.6, "lng": -56.0},
            {"latitude": -15.5, "longitude": -56.0},
        ])

        assert [p.lng for p in points] == [-56.1, -56.0, -56.0]

    @pytest.mark.parametrize("entry", [
        "-56.1,-15.6",
        [-56.1],
        {"x": 1, "y": 2},
        [None, -15.6],
        [True, False],
        [float("nan"), 1.0],
        [10 ** 400, -15.6],
    ])
    def test_unsupported_entry_strict(self, entry):
        """Strict mode rejects any malformed entry."""
        with pytest.raises(UnsupportedCoordinateFormat):
            normalize_ring([[-56.1, -15.6], entry, [-56.0, -15.5]])

    def test_unsupported_entry_lenient(self):
        """Lenient mode defaults malformed entries to (0, 0) and counts them."""
        points, defaulted = parse_ring(
            [[-56.1, -15.6], "garbage", [-56.0, -15.5]],
            lenient=True,
        )

        assert defaulted == 1
        assert points[1] == GeoPoint(lat=0.0, lng=0.0)
        assert points[2] == GeoPoint(lat=-15.5, lng=-56.0)

    def test_all_entries_unsupported(self):
        """A ring without a single readable entry fails even in lenient mode."""
        with pytest.raises(UnsupportedCoordinateFormat):
            normalize_ring(["a", "b", "c"], lenient=True)

    @pytest.mark.parametrize("ring", ["not a ring", {"lat": 1, "lng": 2}, 42, None])
    def test_ring_not_a_list(self, ring):
        with pytest.raises(UnsupportedCoordinateFormat):
            normalize_ring(ring, lenient=True)


# ============================================================
# Boundary Model
# ============================================================

class TestBoundary:
    """Test suite for the Boundary closure and validity rules."""

    def test_closing_point_dropped(self):
        """A trailing point equal to the first is removed."""
        boundary = Boundary(points=tuple(to_points(square_lnglat(-15.6, -56.1, 100.0))))

        assert len(boundary) == 4
        assert boundary.points[0] != boundary.points[-1]

    def test_closed_lnglat_repeats_first_vertex(self):
        boundary = Boundary(points=tuple(to_points(square_lnglat(-15.6, -56.1, 100.0))))
        ring = boundary.closed_lnglat()

        assert ring[0] == ring[-1]
        assert len(ring) == 5

    def test_too_few_points(self):
        with pytest.raises(InvalidGeometry):
            Boundary(points=(GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)))

    def test_closed_triangle_of_two_points(self):
        """Two distinct points plus closure are still only two vertices."""
        a, b = GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)
        with pytest.raises(InvalidGeometry):
            Boundary(points=(a, b, a))

    def test_collinear_points(self):
        with pytest.raises(InvalidGeometry):
            Boundary(points=(
                GeoPoint(lat=0, lng=0),
                GeoPoint(lat=1, lng=1),
                GeoPoint(lat=2, lng=2),
            ))


# ============================================================
# Bounding Box
# ============================================================

class TestBoundingBox:
    """Test suite for bounding_box_of and BoundingBox helpers."""

    @pytest.mark.parametrize("ring", [
        square_lnglat(-15.6, -56.1, 1000.0),
        [[10.0, 45.0], [10.5, 45.2], [10.1, 45.9], [9.7, 45.4]],
        [[-0.01, -0.01], [0.02, -0.005], [0.0, 0.03]],
    ])
    def test_contains_every_vertex(self, ring):
        points = to_points(ring)
        bbox = bounding_box_of(points)

        for p in points:
            assert bbox.min_lng <= p.lng <= bbox.max_lng
            assert bbox.min_lat <= p.lat <= bbox.max_lat

    def test_is_tight(self, triangle_points, triangle_bbox):
        assert bounding_box_of(triangle_points) == triangle_bbox

    def test_accepts_boundary(self, triangle_points, triangle_bbox):
        assert bounding_box_of(Boundary(points=tuple(triangle_points))) == triangle_bbox

    def test_fewer_than_three_points(self):
        with pytest.raises(InvalidGeometry):
            bounding_box_of([GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)])

    def test_with_min_span_widens_zero_extent(self):
        """Zero-width sides are widened around their center."""
        bbox = BoundingBox(min_lng=10.0, max_lng=10.0, min_lat=5.0, max_lat=6.0)
        widened = bbox.with_min_span(0.002)

        assert bbox.is_degenerate
        assert not widened.is_degenerate
        assert widened.width == pytest.approx(0.002)
        assert (widened.min_lng + widened.max_lng) / 2 == pytest.approx(10.0)
        assert widened.min_lat == 5.0 and widened.max_lat == 6.0

    def test_with_min_span_keeps_normal_box(self, triangle_bbox):
        assert triangle_bbox.with_min_span() == triangle_bbox

    def test_corners_order(self, triangle_bbox):
        """Corners run top-left, top-right, bottom-right, bottom-left."""
        assert triangle_bbox.corners() == [
            [-56.10, -15.60],
            [-56.09, -15.60],
            [-56.09, -15.61],
            [-56.10, -15.61],
        ]


# ============================================================
# Area
# ============================================================

class TestArea:
    """Test suite for the planar area approximation."""

    def test_one_kilometer_square(self, square_points):
        """A 1000m x 1000m square is 100 ha within 1%."""
        assert area_hectares(square_points) == pytest.approx(100.0, rel=0.01)

    def test_closing_vertex_does_not_change_area(self, square_points):
        assert area_hectares(square_points) == pytest.approx(
            area_hectares(square_points[:-1]), rel=1e-12
        )

    def test_winding_invariance(self, square_points):
        """Reversing the winding keeps the absolute area and flips the sign."""
        ring = square_points[:-1]
        reversed_ring = [ring[0]] + ring[:0:-1]

        assert area_hectares(reversed_ring) == pytest.approx(area_hectares(ring), rel=1e-12)
        assert signed_area_m2(reversed_ring) == pytest.approx(-signed_area_m2(ring), rel=1e-12)

    def test_area_is_non_negative(self):
        clockwise = to_points([[0.0, 0.0], [0.0, 0.01], [0.01, 0.01], [0.01, 0.0]])

        assert signed_area_m2(clockwise) < 0
        assert area_hectares(clockwise) > 0

    @pytest.mark.parametrize("ring", [
        [],
        [[0.0, 0.0]],
        [[0.0, 0.0], [1.0, 1.0]],
        [[0.0, 0.0], [0.001, 0.001], [0.002, 0.002]],
        [[0.5, 0.5], [0.5, 0.5], [0.5, 0.5]],
    ])
    def test_degenerate_rings_have_zero_area(self, ring):
        points = to_points(ring)

        assert area_hectares(points) == pytest.approx(0.0, abs=1e-9)
        assert is_degenerate(points)

    def test_extent(self, square_points):
        assert extent_km(square_points) == pytest.approx(1.0, rel=0.01)


# ============================================================
# Geodesic Cross-check
# ============================================================

class TestGeodesicArea:
    """Test suite for the pyproj-backed geodesic helpers."""

    def test_matches_planar_for_field_sized_polygon(self, square_points):
        planar = area_hectares(square_points)
        geodesic = geodesic_area_hectares(square_points)

        assert geodesic == pytest.approx(planar, rel=0.01)

    def test_accepts_boundary(self, square_points):
        boundary = Boundary(points=tuple(square_points))

        assert geodesic_area_hectares(boundary) == pytest.approx(100.0, rel=0.01)

    def test_fewer_than_three_points(self):
        assert geodesic_area_hectares([GeoPoint(lat=0, lng=0)]) == 0.0

    def test_reliable_for_small_field(self, square_points):
        assert planar_area_is_reliable(square_points, max_extent_km=10.0, max_latitude=60.0)

    def test_unreliable_for_large_extent(self):
        points = to_points(square_lnglat(-15.6, -56.1, 25000.0))

        assert not planar_area_is_reliable(points, max_extent_km=10.0, max_latitude=60.0)

    def test_unreliable_at_high_latitude(self):
        points = to_points(square_lnglat(68.0, 20.0, 500.0))

        assert not planar_area_is_reliable(points, max_extent_km=10.0, max_latitude=60.0)
        assert math.isfinite(geodesic_area_hectares(points))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
