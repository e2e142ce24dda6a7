"""
Post-processing passes applied to a raw grid path.

Each pass takes and returns plain arrays; inputs are never modified.
"""

import logging
import math
from typing import Tuple

import numpy as np

from roadsmith.core.geometry.catmull_rom import catmull_rom_point, segment_control_points
from roadsmith.core.geometry.rdp import simplify_polyline
from roadsmith.core.geometry.vectors import EPSILON, turning_radius_2d
from roadsmith.core.terrain.sampler import TerrainSampler

logger = logging.getLogger(__name__)

# Curvature (1/m) is scaled by this before it becomes extra width
HAIRPIN_CURVATURE_SCALE = 100.0


def simplify_path(
    points: np.ndarray, widths: np.ndarray, tolerance: float
) -> Tuple[np.ndarray, np.ndarray]:
    """RDP-simplify a path, carrying widths along."""
    if len(points) < 3:
        return np.array(points, dtype=float).reshape(-1, 3), np.array(widths, dtype=float)
    simplified, kept_widths = simplify_polyline(points, widths, tolerance=tolerance)
    return simplified, kept_widths


def apply_hairpin_widening(
    points: np.ndarray,
    widths: np.ndarray,
    max_width_gradient: float,
    blend: float,
    max_extra_width_factor: float = 0.8,
) -> np.ndarray:
    """
    Widen the path at tight turns.

    Each interior width is scaled by a curvature-derived factor capped at
    ``1 + max_extra_width_factor``, clamped so it differs from both
    neighbours by no more than the preset gradient allows, then blended
    with the unwidened width. Samples are processed in order, so each
    clamp sees the already-widened previous width.

    Args:
        points: (k, 3) path points
        widths: (k,) path widths
        max_width_gradient: Preset maximum width change per meter
        blend: 0 keeps the original widths, 1 applies full widening
        max_extra_width_factor: Maximum relative widening

    Returns:
        New width array
    """
    result = np.array(widths, dtype=float)
    n = len(points)
    if n < 3 or blend == 0:
        return result

    flat = np.array(points, dtype=float)[:, :2]
    for i in range(1, n - 1):
        p0, p1, p2 = flat[i - 1], flat[i], flat[i + 1]
        radius = turning_radius_2d(p0, p1, p2)
        curvature = 1.0 / radius if 0 < radius < math.inf else 0.0
        factor = min(
            1.0 + max_extra_width_factor * curvature * HAIRPIN_CURVATURE_SCALE,
            1.0 + max_extra_width_factor,
        )

        prev_width, next_width = result[i - 1], result[i + 1]
        max_delta_prev = max_width_gradient * (float(np.linalg.norm(p1 - p0)) + EPSILON)
        max_delta_next = max_width_gradient * (float(np.linalg.norm(p1 - p2)) + EPSILON)

        original = result[i]
        widened = original * factor
        widened = min(max(widened, prev_width - max_delta_prev), prev_width + max_delta_prev)
        widened = min(max(widened, next_width - max_delta_next), next_width + max_delta_next)
        result[i] = original * (1.0 - blend) + widened * blend

    return result


def snap_to_slope_envelope(points: np.ndarray, max_slope: float) -> np.ndarray:
    """
    Clamp interior heights to the funnel reachable from both endpoints.

    The funnel is centred on the straight grade between the endpoints and
    opens by ``max_slope`` times the distance to the nearer endpoint.
    """
    result = np.array(points, dtype=float).reshape(-1, 3)
    if len(result) < 3:
        return result

    start, end = result[0].copy(), result[-1].copy()
    for i in range(1, len(result) - 1):
        p = result[i]
        to_start = float(np.linalg.norm(p - start))
        to_end = float(np.linalg.norm(p - end))
        centre = start[2] + (end[2] - start[2]) * (to_start / (to_start + to_end + EPSILON))
        spread = max_slope * min(to_start, to_end)
        p[2] = min(max(p[2], centre - spread), centre + spread)
    return result


def relax_to_terrain(
    points: np.ndarray, terrain: TerrainSampler, max_slope: float, iterations: int = 10
) -> np.ndarray:
    """
    Pull interior heights toward the terrain as far as the grade limit allows.

    Each iteration moves every interior point halfway toward the terrain
    height at its grid cell, clamped to the band its neighbours permit.
    """
    result = np.array(points, dtype=float).reshape(-1, 3)
    n = len(result)
    if n < 3:
        return result

    terrain_z = np.array([terrain.grid_to_world(terrain.world_to_grid(p))[2] for p in result])
    for _ in range(iterations):
        for i in range(1, n - 1):
            prev, cur, nxt = result[i - 1], result[i], result[i + 1]
            f_prev = max_slope * float(np.linalg.norm(cur - prev))
            f_next = max_slope * float(np.linalg.norm(cur - nxt))
            min_z = max(prev[2] - f_prev, nxt[2] - f_next)
            max_z = min(prev[2] + f_prev, nxt[2] + f_next)
            target = min(max(terrain_z[i], min_z), max_z)
            cur[2] = cur[2] * 0.5 + target * 0.5
    return result


def resample_path(
    points: np.ndarray, widths: np.ndarray, granularity: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reinterpolate an open path at roughly ``granularity`` spacing.

    Positions follow a Catmull-Rom spline through the input points; widths
    are interpolated linearly per segment. The input endpoints are kept.
    """
    points = np.array(points, dtype=float).reshape(-1, 3)
    widths = np.array(widths, dtype=float).reshape(-1)
    n = len(points)
    if n < 2:
        return points, widths

    out_points = []
    out_widths = []
    for seg in range(n - 1):
        p0, p1, p2, p3 = segment_control_points(points, seg, False)
        chord = float(np.linalg.norm(p2 - p1))
        divisions = max(1, int(math.ceil(chord / granularity)))
        t = np.arange(divisions) / divisions
        out_points.append(catmull_rom_point(p0, p1, p2, p3, t))
        out_widths.append(widths[seg] + (widths[seg + 1] - widths[seg]) * t)

    out_points.append(points[-1:].copy())
    out_widths.append(widths[-1:].copy())
    return np.vstack(out_points), np.concatenate(out_widths)
