"""Tests for the geometry kernel."""

import pytest
from py_fourcolor.config.tolerances import GeometryTolerances
from py_fourcolor.core.geometry import (
    Point, bounds_overlap, clamp_point, collinear_overlap_length, dedupe_consecutive,
    distance, edge_key, normalize_polygon, point_line_distance, polygon_bounds,
    project_point_to_segment, quantize, quantize_point, segments_collinear, signed_area
)


class TestProjection:
    """Test point to segment projection."""

    def test_projection_inside_segment(self):
        """Test projection that falls between the endpoints."""
        proj = project_point_to_segment((5, 5), (0, 0), (10, 0))

        assert proj.point == Point(5.0, 0.0)
        assert proj.t == pytest.approx(0.5)
        assert proj.distance == pytest.approx(5.0)

    def test_projection_clamped_to_end(self):
        """Test that projection beyond the segment clamps to the endpoint."""
        proj = project_point_to_segment((15, 3), (0, 0), (10, 0))

        assert proj.point == Point(10.0, 0.0)
        assert proj.t == 1.0
        assert proj.distance == pytest.approx(distance((15, 3), (10, 0)))

    def test_zero_length_segment(self):
        """Test that a degenerate segment projects onto its start."""
        proj = project_point_to_segment((3, 4), (0, 0), (0, 0))

        assert proj.point == Point(0.0, 0.0)
        assert proj.distance == pytest.approx(5.0)

    def test_line_distance_ignores_segment_extent(self):
        """Test distance to the infinite supporting line."""
        assert point_line_distance((50, 2), (0, 0), (10, 0)) == pytest.approx(2.0)
        assert point_line_distance((3, 4), (0, 0), (0, 0)) == pytest.approx(5.0)


class TestSignedArea:
    """Test shoelace area."""

    def test_counter_clockwise_positive(self):
        square = [(0, 0), (10, 0), (10, 10), (0, 10)]
        assert signed_area(square) == pytest.approx(100.0)

    def test_clockwise_negative(self):
        square = [(0, 0), (0, 10), (10, 10), (10, 0)]
        assert signed_area(square) == pytest.approx(-100.0)

    def test_degenerate(self):
        """Test that fewer than three vertices have no area."""
        assert signed_area([(0, 0), (10, 0)]) == 0.0
        assert signed_area([]) == 0.0


class TestCollinearOverlap:
    """Test shared length of collinear segments."""

    def test_identical_segments(self):
        seg = ((0, 0), (10, 0))
        assert collinear_overlap_length(seg, seg) == pytest.approx(10.0)

    def test_partial_overlap(self):
        """Test segments sharing half their length."""
        assert collinear_overlap_length(((0, 0), (10, 0)), ((5, 0), (15, 0))) == pytest.approx(5.0)

    def test_opposite_orientation(self):
        """Test that direction does not matter."""
        assert collinear_overlap_length(((10, 0), (0, 0)), ((5, 0), (15, 0))) == pytest.approx(5.0)

    def test_contained_segment(self):
        assert collinear_overlap_length(((0, 0), (0, 20)), ((0, 5), (0, 8))) == pytest.approx(3.0)

    def test_disjoint_collinear(self):
        assert collinear_overlap_length(((0, 0), (10, 0)), ((12, 0), (20, 0))) == 0.0

    def test_touching_at_point(self):
        """Test that sharing one endpoint is not an overlap."""
        assert collinear_overlap_length(((0, 0), (10, 0)), ((10, 0), (20, 0))) == 0.0

    def test_parallel_far_apart(self):
        """Test that parallel segments beyond the distance tolerance do not overlap."""
        assert collinear_overlap_length(((0, 0), (10, 0)), ((0, 5), (10, 5))) == 0.0

    def test_parallel_within_tolerance(self):
        """Test that a small offset still counts as collinear."""
        assert collinear_overlap_length(((0, 0), (10, 0)), ((0, 1), (10, 1))) == pytest.approx(10.0)

    def test_perpendicular(self):
        assert not segments_collinear(((0, 0), (10, 0)), ((5, -5), (5, 5)))
        assert collinear_overlap_length(((0, 0), (10, 0)), ((5, -5), (5, 5))) == 0.0

    def test_zero_length_never_collinear(self):
        assert not segments_collinear(((0, 0), (0, 0)), ((0, 0), (10, 0)))

    def test_symmetric(self):
        """Test that argument order does not change the result."""
        a = ((0, 0), (10, 0.5))
        b = ((4, 0.2), (20, 1.1))
        assert segments_collinear(a, b) == segments_collinear(b, a)
        assert collinear_overlap_length(a, b) == pytest.approx(collinear_overlap_length(b, a))

    def test_custom_tolerances(self):
        """Test that tighter distance tolerance rejects offset segments."""
        tight = GeometryTolerances(collinear_distance_tolerance=0.5)
        assert collinear_overlap_length(((0, 0), (10, 0)), ((0, 1), (10, 1)), tight) == 0.0


class TestPolygonHelpers:
    """Test polygon and key helpers."""

    def test_dedupe_closed(self):
        """Test removal of repeated and closing vertices."""
        ring = [(0, 0), (0, 0), (1, 0), (1, 1), (0, 0)]
        assert dedupe_consecutive(ring) == [Point(0, 0), Point(1, 0), Point(1, 1)]

    def test_dedupe_open_keeps_closing_vertex(self):
        path = [(0, 0), (1, 0), (1, 0), (0, 0)]
        assert dedupe_consecutive(path, closed=False) == [Point(0, 0), Point(1, 0), Point(0, 0)]

    def test_normalize_polygon(self):
        assert normalize_polygon([(0, 0), (1, 0), (1, 1), (0, 0)]) == [Point(0, 0), Point(1, 0), Point(1, 1)]

    def test_clamp_point(self):
        assert clamp_point((-1, 700), 900, 620) == Point(0.0, 620.0)

    def test_quantize_rounds_half_up(self):
        assert quantize(0.25, 0.5) == 0.5
        assert quantize(0.24, 0.5) == 0.0
        assert quantize(-0.25, 0.5) == 0.0
        assert quantize_point((10.2, 9.8), 0.5) == Point(10.0, 10.0)

    def test_edge_key_orientation_independent(self):
        a, b = Point(5, 1), Point(0, 3)
        assert edge_key(a, b) == edge_key(b, a) == (b, a)

    def test_bounds(self):
        assert polygon_bounds([(0, 5), (10, 0), (3, 8)]) == (0, 0, 10, 8)
        assert bounds_overlap((0, 0, 10, 10), (10, 0, 20, 10))
        assert not bounds_overlap((0, 0, 10, 10), (12, 0, 20, 10))
        assert bounds_overlap((0, 0, 10, 10), (12, 0, 20, 10), margin=3)
