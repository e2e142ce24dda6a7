"""
Tests for the auto-road post-processing passes.
"""

import numpy as np
import pytest

from roadsmith.core.roads.post_processing import (
    apply_hairpin_widening,
    relax_to_terrain,
    resample_path,
    simplify_path,
    snap_to_slope_envelope,
)
from roadsmith.core.terrain.sampler import HeightGridTerrain

CORNER = np.array([[0.0, 0.0, 0.0], [10.0, 0.0, 0.0], [10.0, 10.0, 0.0]])


def make_terrain(height: float) -> HeightGridTerrain:
    """Level terrain at ``height`` covering 120 x 20 m."""
    return HeightGridTerrain.from_origin(np.full((21, 121), height), cell_size=1.0)


class TestSimplifyPath:
    """Tests for simplify_path."""

    def test_drops_collinear_points(self) -> None:
        """Test collinear interior points are removed along with their widths."""
        points = np.array([[0, 0, 0], [5, 0, 0], [10, 0, 0], [15, 0, 0]], dtype=float)
        widths = np.array([1.0, 2.0, 3.0, 4.0])

        simplified, kept = simplify_path(points, widths, 1.0)

        np.testing.assert_allclose(simplified, [[0, 0, 0], [15, 0, 0]])
        np.testing.assert_allclose(kept, [1.0, 4.0])

    def test_short_path_unchanged(self) -> None:
        """Test paths with fewer than three points pass through."""
        simplified, kept = simplify_path([[0, 0, 0], [1, 0, 0]], [3.0, 3.0], 1.0)

        assert simplified.shape == (2, 3)
        np.testing.assert_allclose(kept, [3.0, 3.0])


class TestHairpinWidening:
    """Tests for apply_hairpin_widening."""

    def test_widens_tight_corner(self) -> None:
        """Test a tight corner is widened by the capped factor and blended."""
        widths = apply_hairpin_widening(CORNER, np.full(3, 10.0), 1.0, 0.5)

        np.testing.assert_allclose(widths, [10.0, 14.0, 10.0])

    def test_gradient_limits_widening(self) -> None:
        """Test the width gradient caps the change relative to neighbours."""
        widths = apply_hairpin_widening(CORNER, np.full(3, 10.0), 0.05, 0.5)

        assert widths[1] == pytest.approx(10.25, abs=1e-6)

    def test_zero_blend(self) -> None:
        """Test a zero blend keeps the original widths."""
        widths = apply_hairpin_widening(CORNER, np.full(3, 10.0), 1.0, 0.0)

        np.testing.assert_allclose(widths, 10.0)

    def test_straight_path_unchanged(self) -> None:
        """Test a straight path gets no extra width."""
        points = np.array([[0, 0, 0], [10, 0, 0], [20, 0, 0]], dtype=float)

        widths = apply_hairpin_widening(points, np.full(3, 10.0), 1.0, 1.0)

        np.testing.assert_allclose(widths, 10.0)

    def test_input_not_modified(self) -> None:
        """Test the input width array is left untouched."""
        original = np.full(3, 10.0)

        apply_hairpin_widening(CORNER, original, 1.0, 1.0)

        np.testing.assert_allclose(original, 10.0)


class TestSlopeEnvelope:
    """Tests for snap_to_slope_envelope."""

    def test_clamps_peak(self) -> None:
        """Test an interior spike is pulled into the funnel."""
        points = np.array([[0, 0, 0], [10, 0, 50], [20, 0, 0]], dtype=float)

        snapped = snap_to_slope_envelope(points, 0.1)

        assert snapped[1, 2] == pytest.approx(0.1 * np.sqrt(2600.0), rel=1e-5)
        assert points[1, 2] == 50.0

    def test_points_inside_unchanged(self) -> None:
        """Test points already inside the funnel keep their heights."""
        points = np.array([[0, 0, 0], [10, 0, 0.5], [20, 0, 1.0]], dtype=float)

        snapped = snap_to_slope_envelope(points, 0.1)

        np.testing.assert_allclose(snapped, points)


class TestRelaxToTerrain:
    """Tests for relax_to_terrain."""

    def test_pulls_toward_terrain(self) -> None:
        """Test each iteration halves the gap to level ground."""
        points = np.array([[0, 0, 0], [10, 0, 4], [20, 0, 0]], dtype=float)

        relaxed = relax_to_terrain(points, make_terrain(0.0), 1.0, iterations=10)

        assert relaxed[1, 2] == pytest.approx(4.0 / 2 ** 10)
        np.testing.assert_allclose(relaxed[[0, 2], 2], 0.0)

    def test_grade_limits_relaxation(self) -> None:
        """Test the neighbours' grade band caps how far a point follows the terrain."""
        points = np.array([[0, 0, 0], [10, 0, 0], [20, 0, 0]], dtype=float)

        relaxed = relax_to_terrain(points, make_terrain(100.0), 0.1, iterations=10)

        assert 0.9 < relaxed[1, 2] < 1.01

    def test_zero_iterations(self) -> None:
        """Test no iterations leaves the path unchanged."""
        points = np.array([[0, 0, 0], [10, 0, 4], [20, 0, 0]], dtype=float)

        relaxed = relax_to_terrain(points, make_terrain(0.0), 1.0, iterations=0)

        np.testing.assert_allclose(relaxed, points)


class TestResamplePath:
    """Tests for resample_path."""

    def test_even_spacing(self) -> None:
        """Test a straight segment is split at roughly the requested spacing."""
        points, widths = resample_path(
            np.array([[0, 0, 0], [25, 0, 0]], dtype=float), np.array([4.0, 8.0]), 10.0
        )

        np.testing.assert_allclose(points[:, 0], [0.0, 25 / 3, 50 / 3, 25.0], atol=1e-9)
        np.testing.assert_allclose(points[:, 1:], 0.0, atol=1e-9)
        np.testing.assert_allclose(widths, [4.0, 16 / 3, 20 / 3, 8.0])

    def test_keeps_nodes(self) -> None:
        """Test input points survive resampling."""
        source = np.array([[0, 0, 0], [10, 5, 1], [20, 0, 2]], dtype=float)

        points, _ = resample_path(source, np.full(3, 5.0), 4.0)

        for point in source:
            assert np.min(np.linalg.norm(points - point, axis=1)) < 1e-9

    def test_single_point(self) -> None:
        """Test a single point passes through."""
        points, widths = resample_path(np.array([[1.0, 2.0, 3.0]]), np.array([5.0]), 10.0)

        np.testing.assert_allclose(points, [[1, 2, 3]])
        np.testing.assert_allclose(widths, [5.0])
