"""
Uniform Catmull-Rom evaluation.

Positions and their parametric derivatives are evaluated for a batch of
parameter values at once. Open curves use reflected phantom end points so
the curve starts and ends exactly on the first and last control point.
"""

from typing import Tuple

import numpy as np


def segment_control_points(
    values: np.ndarray, segment: int, is_loop: bool
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Get the four control values that drive one segment.

    Args:
        values: (n, k) array of control values (positions, normals, ...)
        segment: Segment index, running from node ``segment`` to the next node
        is_loop: Whether the last node connects back to the first

    Returns:
        Tuple (p0, p1, p2, p3)
    """
    n = len(values)
    if is_loop:
        return (
            values[(segment - 1) % n],
            values[segment % n],
            values[(segment + 1) % n],
            values[(segment + 2) % n],
        )

    p1 = values[segment]
    p2 = values[segment + 1]
    p0 = values[segment - 1] if segment > 0 else 2.0 * p1 - p2
    p3 = values[segment + 2] if segment + 2 < n else 2.0 * p2 - p1
    return p0, p1, p2, p3


def catmull_rom_point(
    p0: np.ndarray, p1: np.ndarray, p2: np.ndarray, p3: np.ndarray, t: np.ndarray
) -> np.ndarray:
    """
    Evaluate a uniform Catmull-Rom segment.

    Args:
        p0, p1, p2, p3: Control values, each of shape (k,)
        t: Parameter values in [0, 1], shape (m,)

    Returns:
        (m, k) array of interpolated values
    """
    t = np.asarray(t, dtype=float)[:, None]
    t2 = t * t
    t3 = t2 * t
    return 0.5 * (
        2.0 * p1
        + (-p0 + p2) * t
        + (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3) * t2
        + (-p0 + 3.0 * p1 - 3.0 * p2 + p3) * t3
    )


def catmull_rom_derivative(
    p0: np.ndarray, p1: np.ndarray, p2: np.ndarray, p3: np.ndarray, t: np.ndarray
) -> np.ndarray:
    """First derivative of :func:`catmull_rom_point` with respect to ``t``."""
    t = np.asarray(t, dtype=float)[:, None]
    t2 = t * t
    return 0.5 * (
        (-p0 + p2)
        + 2.0 * (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3) * t
        + 3.0 * (-p0 + 3.0 * p1 - 3.0 * p2 + p3) * t2
    )
