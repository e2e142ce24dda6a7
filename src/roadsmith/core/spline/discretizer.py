"""
Curve discretization.

Control nodes are interpolated with a uniform Catmull-Rom spline into dense
samples carrying width and an orthonormal frame. Three conformance modes are
supported:

- Free: plain interpolation
- AutoBanking: free interpolation with the up vector rolled into turns
- ConformToTerrain: nodes and samples snapped to the terrain surface
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from roadsmith.core.config import settings
from roadsmith.core.geometry.catmull_rom import (
    catmull_rom_derivative,
    catmull_rom_point,
    segment_control_points,
)
from roadsmith.core.geometry.vectors import (
    UP,
    X_AXIS,
    horizontal_tangent,
    normalize,
    rotate_about_axis,
    signed_angle_between,
)
from roadsmith.core.terrain.sampler import TerrainSampler
from roadsmith.models.spline import ConformanceMode, Curve, Discretization

logger = logging.getLogger(__name__)


@dataclass
class DiscretizerConfig:
    """
    Configuration for curve discretization.

    Attributes:
        min_divisions: Minimum samples per segment
        max_sample_spacing: Target distance between samples (meters)
        bank_curvature_scale: Multiplier applied to curvature before the bank angle is taken
        max_auto_bank_deg: Upper bound on the automatic bank angle (degrees)
    """

    min_divisions: int = 10
    max_sample_spacing: float = 2.0
    bank_curvature_scale: float = 10.0
    max_auto_bank_deg: float = 20.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.min_divisions < 1:
            raise ValueError("min_divisions must be at least 1")
        if self.max_sample_spacing <= 0:
            raise ValueError("max_sample_spacing must be positive")
        if self.bank_curvature_scale < 0:
            raise ValueError("bank_curvature_scale must be non-negative")
        if not 0 <= self.max_auto_bank_deg < 90:
            raise ValueError("max_auto_bank_deg must be in [0, 90)")

    @classmethod
    def from_settings(cls) -> "DiscretizerConfig":
        return cls(
            min_divisions=settings.min_spline_divisions,
            max_sample_spacing=settings.max_sample_spacing,
        )


class CurveDiscretizer:
    """
    Turns a curve's control nodes into dense samples.

    Output is deterministic: the same nodes, flags and terrain always give
    the same samples.
    """

    def __init__(
        self,
        terrain: Optional[TerrainSampler] = None,
        config: Optional[DiscretizerConfig] = None,
    ):
        """
        Initialize the discretizer.

        Args:
            terrain: Height field used by ConformToTerrain
            config: Discretization configuration (uses settings if not provided)
        """
        self.terrain = terrain
        self.config = config or DiscretizerConfig.from_settings()

    def discretize(self, curve: Curve, mode: Optional[ConformanceMode] = None) -> Discretization:
        """
        Rebuild ``curve.discretization``.

        Args:
            curve: Curve to discretize
            mode: Override the curve's own conformance mode

        Returns:
            The curve's (updated) Discretization
        """
        disc = curve.discretization
        if len(curve) < 2:
            disc.clear()
            return disc

        mode = mode or curve.conformance_mode
        if mode == ConformanceMode.CONFORM_TO_TERRAIN and self.terrain is None:
            logger.warning(f"Curve '{curve.name}' conforms to terrain but no terrain is set")
            mode = ConformanceMode.FREE

        if mode == ConformanceMode.CONFORM_TO_TERRAIN:
            self._snap_nodes_to_terrain(curve)

        points, widths, tangents, up, disc_map, node_distance = self._interpolate(curve)

        if mode == ConformanceMode.CONFORM_TO_TERRAIN:
            points, tangents, up = self._conform_samples(points, up, node_distance, curve.is_loop)

        normals, binormals = _orthonormal_frames(tangents, up)

        if mode == ConformanceMode.AUTO_BANKING:
            normals, binormals = self._apply_auto_banking(
                curve, points, tangents, normals, node_distance
            )

        disc.points = points
        disc.widths = widths
        disc.tangents = tangents
        disc.normals = normals
        disc.binormals = binormals
        disc.disc_map = disc_map
        return disc

    def segment_divisions(self, p1: np.ndarray, p2: np.ndarray) -> int:
        """Number of samples emitted for the segment p1 -> p2."""
        chord = float(np.linalg.norm(p2 - p1))
        return max(self.config.min_divisions, int(math.ceil(chord / self.config.max_sample_spacing)))

    def _interpolate(
        self, curve: Curve
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Catmull-Rom interpolation of positions and normals, linear widths.

        Returns:
            Tuple (points, widths, tangents, up, disc_map, node_distance) where
            node_distance is each sample's distance to its nearest node as a
            fraction of its segment, in [0, 0.5]
        """
        positions, normals, widths = curve.positions, curve.normals, curve.widths
        n = len(positions)
        is_loop = curve.is_loop and n >= 3
        segment_count = n if is_loop else n - 1

        pts: List[np.ndarray] = []
        ders: List[np.ndarray] = []
        ups: List[np.ndarray] = []
        wids: List[np.ndarray] = []
        dist: List[np.ndarray] = []
        disc_map = np.zeros(n, dtype=int)
        count = 0

        for seg in range(segment_count):
            p0, p1, p2, p3 = segment_control_points(positions, seg, is_loop)
            n0, n1, n2, n3 = segment_control_points(normals, seg, is_loop)
            divisions = self.segment_divisions(p1, p2)
            t = np.arange(divisions) / divisions

            disc_map[seg] = count
            pts.append(catmull_rom_point(p0, p1, p2, p3, t))
            ders.append(catmull_rom_derivative(p0, p1, p2, p3, t))
            ups.append(catmull_rom_point(n0, n1, n2, n3, t))
            w1 = widths[seg]
            w2 = widths[(seg + 1) % n]
            wids.append(w1 + (w2 - w1) * t)
            dist.append(np.minimum(t, 1.0 - t))
            count += divisions

        if not is_loop:
            last = n - 1
            p0, p1, p2, p3 = segment_control_points(positions, last - 1, False)
            disc_map[last] = count
            pts.append(positions[last][None, :].copy())
            ders.append(catmull_rom_derivative(p0, p1, p2, p3, np.array([1.0])))
            ups.append(normals[last][None, :].copy())
            wids.append(np.array([widths[last]]))
            dist.append(np.zeros(1))

        points = np.vstack(pts)
        tangents = _unit_tangents(np.vstack(ders), points, is_loop)
        return points, np.concatenate(wids), tangents, np.vstack(ups), disc_map, np.concatenate(dist)

    def _snap_nodes_to_terrain(self, curve: Curve) -> None:
        for i in range(len(curve)):
            curve.positions[i, 2] = self.terrain.get_height_at(curve.positions[i])
            curve.normals[i] = self.terrain.get_normal_at(curve.positions[i])

    def _conform_samples(
        self, points: np.ndarray, up: np.ndarray, node_distance: np.ndarray, is_loop: bool
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Snap sample heights to the terrain and ease normals toward the surface."""
        points = points.copy()
        terrain_normals = np.empty_like(up)
        for i in range(len(points)):
            points[i, 2] = self.terrain.get_height_at(points[i])
            terrain_normals[i] = self.terrain.get_normal_at(points[i])

        # 0 at a node, 1 at mid-segment
        s = np.clip(node_distance * 2.0, 0.0, 1.0)
        blend = (s * s * (3.0 - 2.0 * s))[:, None]
        up = up * (1.0 - blend) + terrain_normals * blend

        tangents = _unit_tangents(_finite_differences(points, is_loop), points, is_loop)
        return points, tangents, up

    def _apply_auto_banking(
        self,
        curve: Curve,
        points: np.ndarray,
        tangents: np.ndarray,
        normals: np.ndarray,
        node_distance: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Roll each sample's frame about its tangent, leaning into the turn."""
        curvature = _signed_horizontal_curvature(points, tangents, curve.is_loop and len(curve) >= 3)
        max_bank = math.radians(self.config.max_auto_bank_deg)
        attenuation = np.power(1.0 - node_distance, max(curve.auto_bank_falloff, 0.0))

        banked = np.empty_like(normals)
        for i in range(len(points)):
            bank = math.atan(curve.bank_strength * curvature[i] * self.config.bank_curvature_scale)
            bank = max(-max_bank, min(max_bank, bank)) * attenuation[i]
            # Positive rotation about the tangent rolls the up vector to the right
            banked[i] = normalize(rotate_about_axis(normals[i], tangents[i], -bank), fallback=UP)

        return _orthonormal_frames(tangents, banked)


def _finite_differences(points: np.ndarray, is_loop: bool) -> np.ndarray:
    if is_loop:
        return np.roll(points, -1, axis=0) - np.roll(points, 1, axis=0)
    return np.gradient(points, axis=0)


def _unit_tangents(derivatives: np.ndarray, points: np.ndarray, is_loop: bool) -> np.ndarray:
    """Normalise derivatives, falling back to the chord direction then +X."""
    tangents = np.empty_like(derivatives)
    chords = _finite_differences(points, is_loop) if len(points) > 1 else derivatives
    for i, derivative in enumerate(derivatives):
        tangents[i] = normalize(derivative, fallback=normalize(chords[i], fallback=X_AXIS))
    return tangents


def _orthonormal_frames(tangents: np.ndarray, up: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build (normals, binormals) orthogonal to the tangents.

    binormal = tangent x up points to the right of travel; the normal is
    rebuilt as binormal x tangent.
    """
    normals = np.empty_like(tangents)
    binormals = np.empty_like(tangents)
    for i, (t, u) in enumerate(zip(tangents, up)):
        b = np.cross(t, u)
        if np.linalg.norm(b) < 1e-9:
            b = np.cross(t, UP)
            if np.linalg.norm(b) < 1e-9:
                b = np.cross(t, X_AXIS)
        b = normalize(b)
        binormals[i] = b
        normals[i] = normalize(np.cross(b, t), fallback=UP)
    return normals, binormals


def _signed_horizontal_curvature(points: np.ndarray, tangents: np.ndarray, is_loop: bool) -> np.ndarray:
    """Signed XY curvature per sample, positive for left (counter-clockwise) turns."""
    m = len(points)
    curvature = np.zeros(m)
    if m < 3:
        return curvature
    for i in range(m):
        if is_loop:
            a, b = (i - 1) % m, (i + 1) % m
        else:
            a, b = max(i - 1, 0), min(i + 1, m - 1)
        if a == b:
            continue
        angle = signed_angle_between(horizontal_tangent(tangents[a]), horizontal_tangent(tangents[b]), UP)
        arc = float(np.linalg.norm(points[b, :2] - points[a, :2]))
        if arc > 1e-9:
            curvature[i] = angle / arc
    return curvature
