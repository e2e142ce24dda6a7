"""
Terrain-aware automatic road generation.

This module provides:
- Grid search between waypoints with slope and radius penalties
- Post-processing passes (simplification, hairpin widening, elevation shaping, resampling)
- A preview/commit generator that writes generated roads onto curves
"""

from roadsmith.core.roads.auto_road import (
    AutoRoadConfig,
    AutoRoadGenerator,
    AutoRoadParams,
    PreviewPath,
)
from roadsmith.core.roads.pathfinding import (
    GridPathfinder,
    GridSearch,
    PathfinderConfig,
    SearchStatus,
    SegmentPath,
)
from roadsmith.core.roads.post_processing import (
    apply_hairpin_widening,
    relax_to_terrain,
    resample_path,
    simplify_path,
    snap_to_slope_envelope,
)

__all__ = [
    "AutoRoadConfig",
    "AutoRoadGenerator",
    "AutoRoadParams",
    "PreviewPath",
    "GridPathfinder",
    "GridSearch",
    "PathfinderConfig",
    "SearchStatus",
    "SegmentPath",
    "apply_hairpin_widening",
    "relax_to_terrain",
    "resample_path",
    "simplify_path",
    "snap_to_slope_envelope",
]
