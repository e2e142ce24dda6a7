"""
Tests for the homologation optimizer.
"""

import math

import numpy as np
import pytest

from roadsmith.core.spline.discretizer import CurveDiscretizer, DiscretizerConfig
from roadsmith.core.spline.homologation import HomologationAnalyzer, signed_bank_angle_deg
from roadsmith.core.spline.optimizer import HomologationOptimizer, OptimizerConfig
from roadsmith.models.presets import DEFAULT_PRESETS, RoadDesignPreset
from roadsmith.models.spline import AnalysisMode, Curve

UP = [0.0, 0.0, 1.0]


def make_curve(positions, widths=None, normals=None, mode=AnalysisMode.SLOPE, **kwargs) -> Curve:
    """Curve with the given analysis mode."""
    positions = np.array(positions, dtype=float)
    n = len(positions)
    curve = Curve(
        positions=positions,
        widths=np.full(n, 10.0) if widths is None else widths,
        normals=np.tile(UP, (n, 1)) if normals is None else normals,
        **kwargs,
    )
    curve.analysis.mode = mode
    return curve


def make_optimizer(presets=None, seed: int = 42) -> HomologationOptimizer:
    """Optimizer over a default discretizer."""
    return HomologationOptimizer(
        CurveDiscretizer(config=DiscretizerConfig()),
        HomologationAnalyzer(presets),
        OptimizerConfig(iterations_per_frame=5),
        random_seed=seed,
    )


class TestOptimizerConfig:
    """Tests for OptimizerConfig validation."""

    def test_defaults(self) -> None:
        """Test default step sizes."""
        config = OptimizerConfig()
        assert config.slope_ease_factor == 0.1
        assert config.radius_smoothing_alpha == 0.2
        assert config.bank_step_deg == 1.0

    def test_invalid_values(self) -> None:
        """Test out-of-range values raise ValueError."""
        with pytest.raises(ValueError, match="iterations_per_frame"):
            OptimizerConfig(iterations_per_frame=0)
        with pytest.raises(ValueError, match="slope_ease_factor"):
            OptimizerConfig(slope_ease_factor=0.0)
        with pytest.raises(ValueError, match="radius_smoothing_alpha"):
            OptimizerConfig(radius_smoothing_alpha=1.5)


class TestCompliantCurves:
    """Tests that compliant curves are never modified."""

    @pytest.mark.parametrize("mode", list(AnalysisMode))
    def test_no_change(self, mode) -> None:
        """Test a level, straight, uniform curve is left untouched in every mode."""
        curve = make_curve([[0, 0, 0], [50, 0, 0], [100, 0, 0], [150, 0, 0]], mode=mode)
        before = (curve.positions.copy(), curve.widths.copy(), curve.normals.copy())

        make_optimizer().optimise(curve, 20)

        np.testing.assert_array_equal(curve.positions, before[0])
        np.testing.assert_array_equal(curve.widths, before[1])
        np.testing.assert_array_equal(curve.normals, before[2])

    def test_short_curve_ignored(self) -> None:
        """Test curves with fewer than two nodes are skipped."""
        curve = make_curve([[0, 0, 0]])
        make_optimizer().optimise(curve)

        assert curve.discretization.is_empty


class TestSlopeStep:
    """Tests for slope optimisation."""

    def test_eases_toward_ramp(self) -> None:
        """Test the interior node moves 10% toward the endpoint ramp."""
        curve = make_curve([[0, 0, 0], [10, 0, 5], [20, 0, 0]])

        make_optimizer().optimise(curve, 1)

        assert curve.positions[1, 2] == pytest.approx(4.5)
        assert curve.positions[0, 2] == 0.0
        assert curve.positions[2, 2] == 0.0
        assert curve.dirty

    def test_repeated_steps_reduce_violation(self) -> None:
        """Test the worst slope score shrinks over iterations."""
        curve = make_curve([[0, 0, 0], [10, 0, 5], [20, 0, 0]])
        optimizer = make_optimizer()

        optimizer.optimise(curve, 1)
        first = curve.analysis.worst_score
        optimizer.optimise(curve, 10)

        assert curve.analysis.worst_score < first


class TestRadiusStep:
    """Tests for radius optimisation."""

    def test_smooths_zigzag(self) -> None:
        """Test interior nodes move toward their neighbours' midpoints in XY only."""
        curve = make_curve(
            [[0, 0, 1], [10, 10, 2], [20, 0, 3], [30, 10, 4], [40, 0, 5]], mode=AnalysisMode.RADIUS
        )

        make_optimizer().optimise(curve, 1)

        assert curve.positions[1, 1] == pytest.approx(8.0)
        assert curve.positions[1, 0] == pytest.approx(10.0)
        np.testing.assert_allclose(curve.positions[:, 2], [1, 2, 3, 4, 5])
        np.testing.assert_allclose(curve.positions[0], [0, 0, 1])
        np.testing.assert_allclose(curve.positions[4], [40, 0, 5])


class TestBankingStep:
    """Tests for banking optimisation."""

    @pytest.fixture
    def banked(self) -> Curve:
        """Straight curve with every node banked 10 degrees."""
        tilt = math.radians(10.0)
        return make_curve(
            [[0, 0, 0], [10, 0, 0], [20, 0, 0]],
            normals=np.tile([0.0, math.sin(tilt), math.cos(tilt)], (3, 1)),
            mode=AnalysisMode.BANKING,
        )

    @staticmethod
    def bank_angles(curve: Curve) -> np.ndarray:
        tangent = np.array([1.0, 0.0, 0.0])
        return np.array([abs(signed_bank_angle_deg(n, tangent)) for n in curve.normals])

    def test_single_step(self, banked) -> None:
        """Test one iteration rotates exactly one node by one degree."""
        make_optimizer().optimise(banked, 1)

        angles = np.sort(self.bank_angles(banked))
        np.testing.assert_allclose(angles, [9.0, 10.0, 10.0], atol=1e-6)

    def test_converges_to_limit(self, banked) -> None:
        """Test repeated steps bring every node within the preset limit."""
        make_optimizer().optimise(banked, 300)

        max_bank = DEFAULT_PRESETS["Rural Road"].max_banking
        assert np.all(self.bank_angles(banked) <= max_bank + 1e-6)


class TestWidthStep:
    """Tests for width optimisation."""

    @pytest.fixture
    def presets(self):
        """Registry with a lenient width gradient."""
        return {"Test": RoadDesignPreset("Test", 0.08, 120.0, 6.0, 0.5)}

    def test_reaches_compliance_with_fixed_ends(self, presets) -> None:
        """Test a width spike is flattened while the end widths stay put."""
        curve = make_curve(
            [[0, 0, 0], [10, 0, 0], [20, 0, 0], [30, 0, 0]],
            widths=[6.0, 6.0, 20.0, 6.0],
            mode=AnalysisMode.WIDTH,
            preset_name="Test",
        )
        optimizer = make_optimizer(presets)

        for _ in range(5000):
            optimizer.optimise(curve, 1)
            if curve.analysis.is_compliant:
                break

        assert curve.analysis.is_compliant
        assert curve.widths[0] == 6.0
        assert curve.widths[3] == 6.0
        assert np.all(np.abs(np.diff(curve.widths)) <= 5.0 + 1e-6)

    def test_step_is_bounded(self, presets) -> None:
        """Test a single step changes widths by at most the nudge amount."""
        curve = make_curve(
            [[0, 0, 0], [10, 0, 0], [20, 0, 0], [30, 0, 0]],
            widths=[6.0, 6.0, 20.0, 6.0],
            mode=AnalysisMode.WIDTH,
            preset_name="Test",
        )
        before = curve.widths.copy()

        make_optimizer(presets).optimise(curve, 1)

        assert np.abs(curve.widths - before).sum() <= 0.05 + 1e-12
