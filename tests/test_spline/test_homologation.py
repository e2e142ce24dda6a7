"""
Tests for homologation analysis.
"""

import math

import numpy as np
import pytest

from roadsmith.core.spline.discretizer import CurveDiscretizer, DiscretizerConfig
from roadsmith.core.spline.homologation import HomologationAnalyzer, signed_bank_angle_deg
from roadsmith.models.presets import RoadDesignPreset
from roadsmith.models.spline import AnalysisMode, Curve

UP = [0.0, 0.0, 1.0]


def build(positions, widths=None, normals=None, mode=AnalysisMode.SLOPE, **kwargs) -> Curve:
    """Discretized curve with the given analysis mode."""
    positions = np.array(positions, dtype=float)
    n = len(positions)
    curve = Curve(
        positions=positions,
        widths=np.full(n, 10.0) if widths is None else widths,
        normals=np.tile(UP, (n, 1)) if normals is None else normals,
        **kwargs,
    )
    curve.analysis.mode = mode
    CurveDiscretizer(config=DiscretizerConfig()).discretize(curve)
    return curve


@pytest.fixture
def analyzer() -> HomologationAnalyzer:
    """Analyzer over the default presets."""
    return HomologationAnalyzer()


class TestSlope:
    """Tests for slope scoring."""

    def test_flat_is_compliant(self, analyzer) -> None:
        """Test a level curve scores zero everywhere."""
        curve = build([[0, 0, 0], [10, 0, 0], [20, 0, 0]])
        state = analyzer.analyse(curve)

        assert state.mode is AnalysisMode.SLOPE
        assert state.is_compliant
        assert state.worst_index is None
        assert np.all(state.scores == 0.0)

    def test_steep_grade(self, analyzer) -> None:
        """Test a 12% grade against an 8% limit scores 0.5 on interior samples."""
        curve = build([[0, 0, 0], [10, 0, 1.2], [20, 0, 2.4]])
        state = analyzer.analyse(curve)

        assert state.scores[0] == 0.0
        assert state.scores[-1] == 0.0
        np.testing.assert_allclose(state.scores[1:-1], 0.5, atol=1e-4)
        assert state.worst_score == pytest.approx(0.5, abs=1e-4)
        assert 0 < state.worst_index < len(state.scores) - 1

    def test_slope_score_not_clipped(self, analyzer) -> None:
        """Test a 24% grade against an 8% limit scores the full normalised excess of 2."""
        curve = build([[0, 0, 0], [10, 0, 2.4], [20, 0, 4.8]])
        state = analyzer.analyse(curve)

        np.testing.assert_allclose(state.scores[1:-1], 2.0, atol=1e-3)
        assert state.worst_score > 1.0

    def test_preset_changes_limit(self, analyzer) -> None:
        """Test a steeper preset accepts the same grade."""
        curve = build([[0, 0, 0], [10, 0, 1.2], [20, 0, 2.4]], preset_name="Forest Track")

        assert analyzer.analyse(curve).is_compliant


class TestRadius:
    """Tests for radius scoring."""

    def test_straight_is_compliant(self, analyzer) -> None:
        """Test a straight curve has no radius violations."""
        curve = build([[0, 0, 0], [50, 0, 0], [100, 0, 0]], mode=AnalysisMode.RADIUS)

        assert analyzer.analyse(curve).is_compliant

    def test_tight_corner(self, analyzer) -> None:
        """Test a corner far tighter than the minimum radius scores 1."""
        curve = build(
            [[0, 0, 0], [10, 0, 0], [10, 10, 0], [0, 10, 0]], mode=AnalysisMode.RADIUS, is_loop=True
        )
        state = analyzer.analyse(curve)

        assert state.worst_score == 1.0
        assert state.scores[:5].sum() == 0.0

    def test_linear_ramp(self, analyzer) -> None:
        """Test radii between one and two minimums ramp down linearly."""
        curve = build([[0, 0, 0], [10, 0, 0], [20, 0, 0]], mode=AnalysisMode.RADIUS)
        preset = analyzer.preset_for(curve)
        radius = 1.5 * preset.min_radius
        # Samples on a circle of the chosen radius, 1 m apart
        angles = np.arange(21) / radius
        curve.discretization.points = np.column_stack(
            [radius * np.sin(angles), radius * (1 - np.cos(angles)), np.zeros(21)]
        )

        state = analyzer.analyse_radius(curve)

        np.testing.assert_allclose(state.scores[5:16], 0.5, atol=1e-6)


class TestBanking:
    """Tests for banking scoring."""

    def test_level_is_compliant(self, analyzer) -> None:
        """Test up normals do not bank."""
        curve = build([[0, 0, 0], [10, 0, 0], [20, 0, 0]], mode=AnalysisMode.BANKING)

        assert analyzer.analyse(curve).is_compliant

    def test_over_banked(self, analyzer) -> None:
        """Test a 10 degree bank against a 6 degree limit scores 4/6."""
        tilt = math.radians(10.0)
        normal = [0.0, math.sin(tilt), math.cos(tilt)]
        curve = build(
            [[0, 0, 0], [10, 0, 0], [20, 0, 0]],
            normals=np.tile(normal, (3, 1)),
            mode=AnalysisMode.BANKING,
        )

        state = analyzer.analyse(curve)

        np.testing.assert_allclose(state.scores, 4.0 / 6.0, atol=1e-6)

    def test_signed_bank_angle(self) -> None:
        """Test bank angles are signed about the tangent."""
        tangent = np.array([1.0, 0.0, 0.0])
        left_tilt = np.array([0.0, math.sin(0.1), math.cos(0.1)])

        assert signed_bank_angle_deg(left_tilt, tangent) == pytest.approx(-math.degrees(0.1))
        assert signed_bank_angle_deg(np.array(UP), tangent) == pytest.approx(0.0)


class TestWidth:
    """Tests for width-gradient scoring."""

    @pytest.fixture
    def presets(self):
        """Registry with a lenient width gradient."""
        return {"Test": RoadDesignPreset("Test", 0.08, 120.0, 6.0, 0.5)}

    def test_width_jump(self, presets) -> None:
        """Test only samples on the widening segments are scored."""
        analyzer = HomologationAnalyzer(presets)
        curve = build(
            [[0, 0, 0], [10, 0, 0], [20, 0, 0], [30, 0, 0]],
            widths=[6.0, 6.0, 20.0, 6.0],
            mode=AnalysisMode.WIDTH,
            preset_name="Test",
        )

        state = analyzer.analyse(curve)
        peak = int(curve.discretization.disc_map[2])

        assert state.scores[peak - 1] > 0.0
        assert state.scores[peak] > 0.0
        assert state.scores[5] == 0.0
        assert state.scores[-1] == state.scores[-2]
        assert state.worst_score == 1.0

    def test_gentle_widening(self, presets) -> None:
        """Test widening within the gradient is compliant."""
        analyzer = HomologationAnalyzer(presets)
        curve = build(
            [[0, 0, 0], [10, 0, 0], [20, 0, 0]],
            widths=[6.0, 9.0, 6.0],
            mode=AnalysisMode.WIDTH,
            preset_name="Test",
        )

        assert analyzer.analyse(curve).is_compliant


class TestDispatch:
    """Tests for mode dispatch."""

    def test_undiscretized_curve_cleared(self, analyzer) -> None:
        """Test a curve without samples has its analysis cleared."""
        curve = Curve(positions=[[0.0, 0.0, 0.0]], widths=[1.0], normals=[UP])
        curve.analysis.worst_score = 1.0

        state = analyzer.analyse(curve)

        assert state.is_compliant
        assert len(state.scores) == 0

    def test_unknown_preset_uses_default(self, analyzer, caplog) -> None:
        """Test an unknown preset name falls back to the default preset."""
        curve = build([[0, 0, 0], [10, 0, 0]], preset_name="Nowhere")

        assert analyzer.preset_for(curve).name == "Rural Road"
