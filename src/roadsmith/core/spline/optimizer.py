"""
Local-search homologation optimizer.

Each iteration applies one small, targeted mutation to the control nodes
for the curve's active metric, then rebuilds and re-scores the curve. The
optimizer runs a few iterations per frame while live optimisation is on;
it makes no convergence promise, but never touches parts of a curve that
are already within the preset envelope.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from roadsmith.core.config import settings
from roadsmith.core.geometry.vectors import EPSILON, UP, normalize, rotate_about_axis
from roadsmith.core.spline.discretizer import CurveDiscretizer
from roadsmith.core.spline.homologation import HomologationAnalyzer, signed_bank_angle_deg
from roadsmith.models.spline import AnalysisMode, ConformanceMode, Curve

logger = logging.getLogger(__name__)


@dataclass
class OptimizerConfig:
    """
    Configuration for the homologation optimizer.

    Attributes:
        iterations_per_frame: Mutations applied per live frame
        slope_ease_factor: Fraction of the way a node moves toward the endpoint ramp
        radius_violation_tolerance: Radius score above which smoothing runs
        radius_smoothing_alpha: Laplacian smoothing strength
        bank_step_deg: Maximum normal rotation per banking step (degrees)
        width_nudge_amount: Maximum width change per width step
    """

    iterations_per_frame: int = 5
    slope_ease_factor: float = 0.1
    radius_violation_tolerance: float = 0.01
    radius_smoothing_alpha: float = 0.2
    bank_step_deg: float = 1.0
    width_nudge_amount: float = 0.05

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.iterations_per_frame < 1:
            raise ValueError("iterations_per_frame must be at least 1")
        if not 0 < self.slope_ease_factor <= 1:
            raise ValueError("slope_ease_factor must be in (0, 1]")
        if self.radius_violation_tolerance < 0:
            raise ValueError("radius_violation_tolerance must be non-negative")
        if not 0 < self.radius_smoothing_alpha <= 1:
            raise ValueError("radius_smoothing_alpha must be in (0, 1]")
        if self.bank_step_deg <= 0:
            raise ValueError("bank_step_deg must be positive")
        if self.width_nudge_amount <= 0:
            raise ValueError("width_nudge_amount must be positive")

    @classmethod
    def from_settings(cls) -> "OptimizerConfig":
        return cls(iterations_per_frame=settings.optimise_iterations_per_frame)


class HomologationOptimizer:
    """
    Stochastic local search toward preset compliance.

    Example:
        optimizer = HomologationOptimizer(discretizer, analyzer, random_seed=42)
        curve.analysis.mode = AnalysisMode.WIDTH
        optimizer.optimise(curve, optimizer.config.iterations_per_frame)
    """

    def __init__(
        self,
        discretizer: CurveDiscretizer,
        analyzer: HomologationAnalyzer,
        config: Optional[OptimizerConfig] = None,
        random_seed: Optional[int] = None,
    ):
        """
        Initialize the optimizer.

        Args:
            discretizer: Discretizer used to rebuild curves after each mutation
            analyzer: Analyzer used to re-score curves
            config: Optimizer configuration (uses settings if not provided)
            random_seed: Seed for node selection, for reproducible runs
        """
        self.discretizer = discretizer
        self.analyzer = analyzer
        self.config = config or OptimizerConfig.from_settings()
        self.rng = random.Random(random_seed)
        self._dispatch: Dict[AnalysisMode, Callable[[Curve], None]] = {
            AnalysisMode.SLOPE: self.optimise_slope,
            AnalysisMode.RADIUS: self.optimise_radius,
            AnalysisMode.BANKING: self.optimise_banking,
            AnalysisMode.WIDTH: self.optimise_width,
        }

    def optimise(self, curve: Curve, iterations: Optional[int] = None) -> None:
        """
        Run optimisation iterations on the curve's active metric.

        The curve is rebuilt with free interpolation and scored before the
        first iteration, and is left dirty so the next update pass refreshes
        layers with the curve's own conformance mode.

        Args:
            curve: Curve to optimise
            iterations: Number of mutations (defaults to iterations_per_frame)
        """
        if len(curve) < 2:
            return
        iterations = self.config.iterations_per_frame if iterations is None else iterations

        self._rebuild(curve)
        self.analyzer.analyse(curve)
        curve.mark_dirty()

        step = self._dispatch[AnalysisMode(curve.analysis.mode)]
        for _ in range(iterations):
            step(curve)

    def optimise_slope(self, curve: Curve) -> None:
        """
        Ease one over-steep interior node toward the straight endpoint ramp.

        The ramp height at a node is the endpoint heights interpolated by
        the node's share of the total horizontal length.
        """
        positions = curve.positions
        n = len(positions)
        if n < 3:
            return

        steps = np.linalg.norm(np.diff(positions[:, :2], axis=0), axis=1)
        distances = np.concatenate([[0.0], np.cumsum(steps)])
        total = float(distances[-1])
        if total == 0.0:
            return

        i = self.rng.randint(1, n - 2)
        max_slope = self.analyzer.preset_for(curve).max_slope
        slope_back = abs(positions[i, 2] - positions[i - 1, 2]) / (steps[i - 1] + EPSILON)
        slope_fwd = abs(positions[i + 1, 2] - positions[i, 2]) / (steps[i] + EPSILON)
        if slope_back <= max_slope and slope_fwd <= max_slope:
            return

        t = distances[i] / total
        target_z = positions[0, 2] + t * (positions[-1, 2] - positions[0, 2])
        positions[i, 2] += (target_z - positions[i, 2]) * self.config.slope_ease_factor

        self._rebuild(curve)
        self.analyzer.analyse(curve)

    def optimise_radius(self, curve: Curve) -> None:
        """Laplacian-smooth interior nodes in XY while any corner is too tight."""
        n = len(curve)
        if n < 3:
            return

        state = self.analyzer.analyse_radius(curve)
        if not np.any(state.scores > self.config.radius_violation_tolerance):
            return

        alpha = self.config.radius_smoothing_alpha
        positions = curve.positions
        # Sequential sweep: each node sees its already-smoothed predecessor
        for i in range(1, n - 1):
            midpoint = (positions[i - 1, :2] + positions[i + 1, :2]) * 0.5
            positions[i, :2] += (midpoint - positions[i, :2]) * alpha

        self._rebuild(curve)
        self.analyzer.analyse_radius(curve)

    def optimise_banking(self, curve: Curve) -> None:
        """Rotate one over-banked node normal a fixed step toward the bank limit."""
        n = len(curve)
        disc = curve.discretization
        if n < 2 or disc.is_empty:
            return

        i = self.rng.randint(0, n - 1)
        sample = int(disc.disc_map[i]) if i < len(disc.disc_map) else 0
        tangent = disc.tangents[sample]
        normal = curve.normals[i]

        max_bank = self.analyzer.preset_for(curve).max_banking
        bank_deg = signed_bank_angle_deg(normal, tangent)
        if abs(bank_deg) <= max_bank + EPSILON:
            return

        target = max_bank if bank_deg > 0 else -max_bank
        step = max(-self.config.bank_step_deg, min(self.config.bank_step_deg, target - bank_deg))
        curve.normals[i] = normalize(rotate_about_axis(normal, tangent, math.radians(step)), fallback=UP)

        self._rebuild(curve)
        self.analyzer.analyse(curve)

    def optimise_width(self, curve: Curve) -> None:
        """
        Shrink one over-steep width step between neighbouring nodes.

        End widths are fixed. When both widths of the pair are free the
        nudge is split evenly between them.
        """
        positions, widths = curve.positions, curve.widths
        n = len(positions)
        if n < 3:
            return

        idx = self.rng.randint(0, n - 2)
        segment = float(np.linalg.norm(positions[idx + 1, :2] - positions[idx, :2]))
        allowed = self.analyzer.preset_for(curve).max_width_gradient * segment
        delta = float(widths[idx + 1] - widths[idx])
        if abs(delta) <= allowed + EPSILON:
            return

        nudge = min(abs(delta) - allowed, self.config.width_nudge_amount)
        direction = 1.0 if delta > 0 else -1.0
        first_fixed = idx == 0
        second_fixed = idx + 1 == n - 1

        if not first_fixed and not second_fixed:
            widths[idx] += 0.5 * nudge * direction
            widths[idx + 1] -= 0.5 * nudge * direction
        elif not first_fixed:
            widths[idx] += nudge * direction
        elif not second_fixed:
            widths[idx + 1] -= nudge * direction

        self._rebuild(curve)
        self.analyzer.analyse_width(curve)

    def _rebuild(self, curve: Curve) -> None:
        self.discretizer.discretize(curve, ConformanceMode.FREE)
