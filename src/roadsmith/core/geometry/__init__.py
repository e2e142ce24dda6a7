"""
Geometry helpers shared by the spline and road modules.

This module provides:
- Small vector utilities (normalisation, rotation, signed angles)
- Uniform Catmull-Rom evaluation with analytic derivatives
- Ramer-Douglas-Peucker simplification carrying per-point attributes
"""

from roadsmith.core.geometry.catmull_rom import (
    catmull_rom_derivative,
    catmull_rom_point,
    segment_control_points,
)
from roadsmith.core.geometry.rdp import rdp_indices, simplify_polyline
from roadsmith.core.geometry.vectors import (
    EPSILON,
    UP,
    horizontal_tangent,
    normalize,
    polyline_length,
    rotate_about_axis,
    signed_angle_between,
    turning_radius_2d,
)

__all__ = [
    "catmull_rom_derivative",
    "catmull_rom_point",
    "segment_control_points",
    "rdp_indices",
    "simplify_polyline",
    "EPSILON",
    "UP",
    "horizontal_tangent",
    "normalize",
    "polyline_length",
    "rotate_about_axis",
    "signed_angle_between",
    "turning_radius_2d",
]
