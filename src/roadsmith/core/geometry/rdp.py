"""
Ramer-Douglas-Peucker polyline simplification.

Simplification always keeps the first and last point. Per-point attributes
(widths, normals) are filtered with the same index set so they stay aligned
with the surviving points.
"""

from typing import List, Tuple

import numpy as np


def _point_segment_distance(points: np.ndarray, start: np.ndarray, end: np.ndarray) -> np.ndarray:
    """Distance from each of ``points`` to the 3D segment start-end."""
    segment = end - start
    length_sq = float(np.dot(segment, segment))
    if length_sq < 1e-12:
        return np.linalg.norm(points - start, axis=1)
    t = np.clip((points - start) @ segment / length_sq, 0.0, 1.0)
    projected = start + t[:, None] * segment
    return np.linalg.norm(points - projected, axis=1)


def rdp_indices(points: np.ndarray, tolerance: float) -> List[int]:
    """
    Douglas-Peucker simplification, returns sorted indices of points to keep.

    Args:
        points: (n, 3) polyline
        tolerance: Maximum allowed deviation of a dropped point

    Returns:
        Sorted list of kept indices
    """
    points = np.asarray(points, dtype=float)
    n = len(points)
    if n <= 2:
        return list(range(n))

    keep = np.zeros(n, dtype=bool)
    keep[0] = True
    keep[-1] = True

    # Iterative to avoid recursion limits on long generated paths
    stack: List[Tuple[int, int]] = [(0, n - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue
        interior = points[first + 1 : last]
        distances = _point_segment_distance(interior, points[first], points[last])
        local = int(np.argmax(distances))
        if distances[local] > tolerance:
            split = first + 1 + local
            keep[split] = True
            stack.append((first, split))
            stack.append((split, last))

    return [int(i) for i in np.flatnonzero(keep)]


def simplify_polyline(
    points: np.ndarray, *attributes: np.ndarray, tolerance: float
) -> Tuple[np.ndarray, ...]:
    """
    Simplify a polyline and filter aligned per-point attribute arrays.

    Args:
        points: (n, 3) polyline
        *attributes: Arrays whose first axis has length n
        tolerance: RDP tolerance

    Returns:
        Tuple of (points, *attributes) restricted to the kept indices
    """
    points = np.asarray(points, dtype=float)
    indices = rdp_indices(points, tolerance)
    result = [points[indices]]
    for values in attributes:
        result.append(np.asarray(values)[indices])
    return tuple(result)
