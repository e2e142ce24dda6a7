"""
Homologation analysis.

Scores every discretized sample of a curve against the limits of its road
design preset. Scores are normalised to [0, 1]: 0 means compliant, 1 means
at or beyond the worst violation the metric distinguishes. Only the metric
selected by the curve's analysis mode is evaluated.
"""

import logging
import math
from typing import Callable, Dict, Optional

import numpy as np

from roadsmith.core.geometry.vectors import (
    EPSILON,
    UP,
    horizontal_tangent,
    signed_angle_between,
    turning_radius_2d,
)
from roadsmith.models.presets import RoadDesignPreset, resolve_preset
from roadsmith.models.spline import AnalysisMode, AnalysisState, Curve

logger = logging.getLogger(__name__)

# Samples looked ahead and behind when fitting a turning circle
RADIUS_LOOKAHEAD = 5


def signed_bank_angle_deg(normal: np.ndarray, tangent: np.ndarray) -> float:
    """Signed angle (degrees) from world up to ``normal`` about ``tangent``."""
    return math.degrees(signed_angle_between(UP, normal, tangent))


class HomologationAnalyzer:
    """
    Evaluates curves against road design presets.

    Example:
        analyzer = HomologationAnalyzer()
        curve.analysis.mode = AnalysisMode.SLOPE
        state = analyzer.analyse(curve)
        if not state.is_compliant:
            print(state.worst_index, state.worst_score)
    """

    def __init__(self, presets: Optional[Dict[str, RoadDesignPreset]] = None):
        """
        Initialize the analyzer.

        Args:
            presets: Preset registry (uses DEFAULT_PRESETS if not provided)
        """
        self.presets = presets
        self._dispatch: Dict[AnalysisMode, Callable[[Curve], AnalysisState]] = {
            AnalysisMode.SLOPE: self.analyse_slope,
            AnalysisMode.RADIUS: self.analyse_radius,
            AnalysisMode.BANKING: self.analyse_banking,
            AnalysisMode.WIDTH: self.analyse_width,
        }

    def preset_for(self, curve: Curve) -> RoadDesignPreset:
        return resolve_preset(curve.preset_name, self.presets)

    def analyse(self, curve: Curve) -> AnalysisState:
        """
        Score the curve on its active metric.

        Args:
            curve: Curve with an up-to-date discretization

        Returns:
            The curve's (updated) AnalysisState
        """
        if len(curve.discretization) < 2:
            curve.analysis.clear()
            return curve.analysis
        return self._dispatch[AnalysisMode(curve.analysis.mode)](curve)

    def analyse_slope(self, curve: Curve) -> AnalysisState:
        """
        Longitudinal slope score per interior sample.

        The steeper of the backward and forward slopes is compared with the
        preset maximum; the excess is normalised by the maximum itself.
        Endpoints always score 0.
        """
        points = curve.discretization.points
        max_slope = self.preset_for(curve).max_slope
        m = len(points)
        scores = np.zeros(m)

        if m >= 3:
            horizontal = np.linalg.norm(np.diff(points[:, :2], axis=0), axis=1) + EPSILON
            slopes = np.abs(np.diff(points[:, 2])) / horizontal
            steepest = np.maximum(slopes[:-1], slopes[1:])
            scores[1:-1] = np.maximum(0.0, steepest - max_slope) / (max_slope + EPSILON)

        return self._store(curve, AnalysisMode.SLOPE, scores)

    def analyse_radius(self, curve: Curve) -> AnalysisState:
        """
        Horizontal corner radius score per sample.

        Fits a circle through the samples five places behind and ahead.
        Radii below the minimum score 1, radii between one and two minimums
        ramp down linearly, anything wider scores 0.
        """
        points = curve.discretization.points
        min_radius = self.preset_for(curve).min_radius
        m = len(points)
        scores = np.zeros(m)

        for i in range(RADIUS_LOOKAHEAD, m - RADIUS_LOOKAHEAD):
            radius = turning_radius_2d(
                points[i - RADIUS_LOOKAHEAD], points[i], points[i + RADIUS_LOOKAHEAD]
            )
            if math.isnan(radius) or radius <= 0.0:
                continue
            if radius < min_radius:
                scores[i] = 1.0
            elif radius < 2.0 * min_radius:
                scores[i] = 1.0 - (radius - min_radius) / min_radius

        return self._store(curve, AnalysisMode.RADIUS, scores)

    def analyse_banking(self, curve: Curve) -> AnalysisState:
        """
        Bank angle score per sample.

        The node normals bracketing each sample are interpolated by the
        sample's position between the two nodes; the bank angle is the
        lateral tilt of that normal against the horizontal side axis.
        """
        disc = curve.discretization
        max_bank = self.preset_for(curve).max_banking
        m = len(disc)
        n = len(curve)
        scores = np.zeros(m)
        if n < 2:
            return self._store(curve, AnalysisMode.BANKING, scores)

        node_samples = np.asarray(disc.disc_map, dtype=float)
        node_normals = curve.normals
        if curve.is_loop and n >= 3:
            # Close the cycle so samples after the last node blend back to the first
            node_samples = np.append(node_samples, float(m))
            node_normals = np.vstack([node_normals, node_normals[:1]])

        for i in range(m):
            seg = int(np.searchsorted(node_samples, i, side="right")) - 1
            seg = min(max(seg, 0), len(node_samples) - 2)
            start, end = node_samples[seg], node_samples[seg + 1]
            alpha = (i - start) / max(end - start, EPSILON)
            normal = node_normals[seg] + (node_normals[seg + 1] - node_normals[seg]) * alpha
            length = float(np.linalg.norm(normal))
            if length < EPSILON:
                continue
            normal = normal / length

            side = np.cross(UP, horizontal_tangent(disc.tangents[i]))
            side = side / np.linalg.norm(side)
            lateral = float(np.clip(np.dot(normal, side), -1.0, 1.0))
            bank_deg = math.degrees(math.asin(lateral))

            excess = max(0.0, abs(bank_deg) - max_bank)
            scores[i] = min(max(excess / max_bank, 0.0), 1.0)

        return self._store(curve, AnalysisMode.BANKING, scores)

    def analyse_width(self, curve: Curve) -> AnalysisState:
        """
        Width gradient score per sample.

        Compares the width change between consecutive samples, per meter of
        horizontal travel, against the preset maximum. The last sample
        repeats the score of the one before it.
        """
        disc = curve.discretization
        max_gradient = self.preset_for(curve).max_width_gradient
        m = len(disc)
        scores = np.zeros(m)

        if m >= 2:
            distance = np.linalg.norm(np.diff(disc.points[:, :2], axis=0), axis=1) + EPSILON
            gradient = np.abs(np.diff(disc.widths)) / distance
            scores[:-1] = np.clip((gradient - max_gradient) / max_gradient, 0.0, 1.0)
            scores[-1] = scores[-2]

        return self._store(curve, AnalysisMode.WIDTH, scores)

    def _store(self, curve: Curve, mode: AnalysisMode, scores: np.ndarray) -> AnalysisState:
        state = curve.analysis
        state.mode = mode
        state.scores = scores
        if len(scores) and float(scores.max()) > 0.0:
            state.worst_index = int(np.argmax(scores))
            state.worst_score = float(scores[state.worst_index])
        else:
            state.worst_index = None
            state.worst_score = 0.0
        return state
