"""
Vector utilities for 3D curve geometry.

All functions accept array-likes of shape (3,) and return numpy arrays.
"""

import math
from typing import Optional

import numpy as np

EPSILON = 1e-6

UP = np.array([0.0, 0.0, 1.0])
X_AXIS = np.array([1.0, 0.0, 0.0])


def normalize(vector: np.ndarray, fallback: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Return a unit vector in the direction of ``vector``.

    Args:
        vector: Vector to normalise
        fallback: Returned (copied) when ``vector`` has near-zero length

    Returns:
        Unit vector, or the fallback / zero vector for degenerate input
    """
    vector = np.asarray(vector, dtype=float)
    length = float(np.linalg.norm(vector))
    if length < 1e-12:
        if fallback is None:
            return np.zeros_like(vector)
        return np.array(fallback, dtype=float)
    return vector / length


def horizontal_tangent(tangent: np.ndarray) -> np.ndarray:
    """Project a tangent onto the XY plane, falling back to +X."""
    flat = np.array([tangent[0], tangent[1], 0.0])
    return normalize(flat, fallback=X_AXIS)


def rotate_about_axis(vector: np.ndarray, axis: np.ndarray, angle_rad: float) -> np.ndarray:
    """
    Rotate ``vector`` about ``axis`` by ``angle_rad`` (Rodrigues' formula).

    Args:
        vector: Vector to rotate
        axis: Rotation axis (need not be unit length)
        angle_rad: Rotation angle in radians, right-handed

    Returns:
        Rotated vector
    """
    k = normalize(axis)
    v = np.asarray(vector, dtype=float)
    cos_a = math.cos(angle_rad)
    sin_a = math.sin(angle_rad)
    return v * cos_a + np.cross(k, v) * sin_a + k * float(np.dot(k, v)) * (1.0 - cos_a)


def signed_angle_between(a: np.ndarray, b: np.ndarray, axis: np.ndarray) -> float:
    """
    Signed angle in radians rotating ``a`` onto ``b`` about ``axis``.

    Positive when the rotation is counter-clockwise looking down ``axis``.
    """
    a = normalize(a)
    b = normalize(b)
    cross = np.cross(a, b)
    angle = math.atan2(float(np.linalg.norm(cross)), float(np.dot(a, b)))
    if float(np.dot(cross, axis)) < 0.0:
        angle = -angle
    return angle


def turning_radius_2d(p0: np.ndarray, p1: np.ndarray, p2: np.ndarray) -> float:
    """
    Radius of the circle through three points, projected to XY.

    Returns ``math.inf`` for collinear or coincident points.
    """
    a = math.hypot(p1[0] - p0[0], p1[1] - p0[1])
    b = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
    c = math.hypot(p2[0] - p0[0], p2[1] - p0[1])
    cross = (p1[0] - p0[0]) * (p2[1] - p0[1]) - (p1[1] - p0[1]) * (p2[0] - p0[0])
    area2 = abs(cross)
    if area2 < 1e-9 or a < EPSILON or b < EPSILON:
        return math.inf
    return (a * b * c) / (2.0 * area2)


def polyline_length(points: np.ndarray) -> float:
    """Sum of 3D segment lengths of an (n, 3) polyline."""
    points = np.asarray(points, dtype=float)
    if len(points) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())
