"""
Automatic road generation between the nodes of a rough curve.

The generator searches a terrain-aware path for every consecutive node
pair, stitches the segments and runs a fixed post-processing pipeline. The
result is a preview that leaves the curve untouched until it is committed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from shapely.geometry import LineString

from roadsmith.core.config import settings
from roadsmith.core.geometry.vectors import polyline_length
from roadsmith.core.roads.pathfinding import (
    GridPathfinder,
    GridSearch,
    PathfinderConfig,
    SearchStatus,
)
from roadsmith.core.roads.post_processing import (
    apply_hairpin_widening,
    relax_to_terrain,
    resample_path,
    simplify_path,
    snap_to_slope_envelope,
)
from roadsmith.core.terrain.sampler import TerrainSampler
from roadsmith.models.presets import RoadDesignPreset
from roadsmith.models.spline import Curve
from roadsmith.utils.logging import PerformanceTimer

logger = logging.getLogger(__name__)


@dataclass
class AutoRoadConfig:
    """
    Fixed tuning of the generation pipeline.

    Attributes:
        simplify_tolerance: RDP tolerance of the first simplification and of commit
        post_simplify_tolerance: RDP tolerance after resampling
        relax_iterations: Terrain relaxation passes
        push_off_distance: Distance each later segment start moves toward its goal
        duplicate_tolerance_sq: Squared distance under which junction points merge
        max_extra_width_factor: Maximum relative hairpin widening
        resample_granularity: Spacing of the resampled path (meters)
        expansions_per_frame: Search budget per :meth:`AutoRoadGenerator.advance`
    """

    simplify_tolerance: float = 9.0
    post_simplify_tolerance: float = 2.5
    relax_iterations: int = 10
    push_off_distance: float = 10.0
    duplicate_tolerance_sq: float = 0.1
    max_extra_width_factor: float = 0.8
    resample_granularity: float = 10.0
    expansions_per_frame: int = field(default_factory=lambda: settings.search_expansions_per_frame)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.simplify_tolerance < 0 or self.post_simplify_tolerance < 0:
            raise ValueError("Simplify tolerances must be non-negative")
        if self.relax_iterations < 0:
            raise ValueError("relax_iterations must be non-negative")
        if self.push_off_distance < 0:
            raise ValueError("push_off_distance must be non-negative")
        if self.resample_granularity <= 0:
            raise ValueError("resample_granularity must be positive")
        if self.expansions_per_frame < 1:
            raise ValueError("expansions_per_frame must be at least 1")


@dataclass
class AutoRoadParams:
    """
    User-facing generation parameters.

    Attributes:
        base_width: Width of every generated sample before widening
        slope_avoidance: Multiplier on the search slope penalty
        banking_strength: Auto-banking strength applied on commit (0 disables)
        width_blend: Blend between original and hairpin-widened widths
        auto_bank_falloff: Auto-banking falloff applied on commit
    """

    base_width: float = 10.0
    slope_avoidance: float = 1.0
    banking_strength: float = 0.35
    width_blend: float = 0.5
    auto_bank_falloff: float = 0.6

    def __post_init__(self) -> None:
        """Validate parameters."""
        if self.base_width < 0:
            raise ValueError("base_width must be non-negative")
        if self.slope_avoidance < 0:
            raise ValueError("slope_avoidance must be non-negative")
        if self.banking_strength < 0:
            raise ValueError("banking_strength must be non-negative")
        if not 0.0 <= self.width_blend <= 1.0:
            raise ValueError("width_blend must be between 0 and 1")


@dataclass
class PreviewPath:
    """
    Generated path awaiting commit.

    Attributes:
        points: (k, 3) path points
        widths: (k,) path widths
        metadata: Generation statistics
    """

    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    widths: np.ndarray = field(default_factory=lambda: np.zeros(0))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def length(self) -> float:
        return polyline_length(self.points)

    def get_geometry(self) -> LineString:
        """
        Get path as Shapely LineString.

        Returns:
            LineString geometry (empty for fewer than two points)
        """
        if len(self.points) < 2:
            return LineString()
        return LineString(self.points.tolist())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_points": len(self.points),
            "length": self.length,
            "points": self.points.tolist(),
            "widths": self.widths.tolist(),
            "metadata": self.metadata,
        }


class AutoRoadGenerator:
    """
    Builds preview roads over a terrain and commits them onto curves.

    A preview can be generated in one call with :meth:`generate_preview`, or
    spread over frames with :meth:`begin_preview` followed by repeated
    :meth:`advance` calls.
    """

    def __init__(self, terrain: TerrainSampler, config: Optional[AutoRoadConfig] = None):
        """
        Initialize the generator.

        Args:
            terrain: Terrain to route over
            config: Pipeline tuning (uses defaults if not provided)
        """
        self.terrain = terrain
        self.config = config or AutoRoadConfig()
        self.pathfinder = GridPathfinder(terrain, self.config.expansions_per_frame)
        self.preview: Optional[PreviewPath] = None

        self._waypoints: Optional[np.ndarray] = None
        self._params: Optional[AutoRoadParams] = None
        self._preset: Optional[RoadDesignPreset] = None
        self._segment = 0
        self._search: Optional[GridSearch] = None
        self._points: List[np.ndarray] = []
        self._widths: List[float] = []
        self._unreachable = 0

    @property
    def is_generating(self) -> bool:
        return self._waypoints is not None

    def is_preview(self) -> bool:
        """Whether a non-empty preview exists."""
        return self.preview is not None and len(self.preview) > 0

    def clear_preview(self) -> None:
        self.preview = None

    def cancel(self) -> None:
        """Abandon an in-progress generation."""
        self._waypoints = None
        self._search = None
        self._points = []
        self._widths = []

    def begin_preview(
        self, curve: Curve, params: AutoRoadParams, preset: RoadDesignPreset
    ) -> bool:
        """
        Start generating a preview through the curve's nodes.

        Any previous preview or in-progress generation is discarded.

        Returns:
            False if the curve has fewer than two nodes
        """
        self.cancel()
        self.clear_preview()
        if len(curve) < 2:
            logger.warning(f"Auto road needs at least 2 nodes, '{curve.name}' has {len(curve)}")
            return False

        self._waypoints = curve.positions.copy()
        self._params = params
        self._preset = preset
        self._segment = 0
        self._unreachable = 0
        self._search = self._start_segment(0)
        logger.info(
            f"Generating auto road for '{curve.name}' over {len(curve) - 1} segments "
            f"with preset '{preset.name}'"
        )
        return True

    def advance(self, max_expansions: Optional[int] = None) -> SearchStatus:
        """
        Continue the generation.

        Args:
            max_expansions: Search budget for this call (defaults to the configured
                per-frame budget)

        Returns:
            RUNNING while segments remain, FOUND once a preview is ready,
            UNREACHABLE if no segment produced a path
        """
        if not self.is_generating:
            return SearchStatus.FOUND if self.is_preview() else SearchStatus.UNREACHABLE

        budget = max_expansions or self.config.expansions_per_frame
        while self._search is not None:
            before = self._search.expansions
            status = self._search.advance(budget)
            budget -= max(self._search.expansions - before, 1)
            if status is SearchStatus.RUNNING:
                return SearchStatus.RUNNING

            self._append_segment(self._search)
            self._segment += 1
            self._search = self._start_segment(self._segment)
            if budget <= 0 and self._search is not None:
                return SearchStatus.RUNNING

        return self._finish()

    def generate_preview(
        self, curve: Curve, params: AutoRoadParams, preset: RoadDesignPreset
    ) -> Optional[PreviewPath]:
        """
        Generate a preview in one call.

        Returns:
            The preview, or None if the curve is degenerate or nothing was reachable
        """
        if not self.begin_preview(curve, params, preset):
            return None
        status = SearchStatus.RUNNING
        while status is SearchStatus.RUNNING:
            status = self.advance()
        return self.preview

    def commit(
        self,
        curve: Curve,
        banking_strength: Optional[float] = None,
        auto_bank_falloff: Optional[float] = None,
    ) -> bool:
        """
        Overwrite the curve's nodes with the preview.

        Node normals are reset to straight up. When ``banking_strength`` is
        positive the curve switches to auto-banking with that strength. The
        preview is cleared either way.

        Args:
            curve: Target curve
            banking_strength: Auto-banking strength (defaults to the preview's params)
            auto_bank_falloff: Auto-banking falloff (defaults to the preview's params)

        Returns:
            True if the curve was modified
        """
        preview = self.preview
        self.clear_preview()
        if preview is None or len(preview) < 2:
            logger.warning(f"No usable auto road preview to commit onto '{curve.name}'")
            return False

        params = self._params or AutoRoadParams()
        strength = params.banking_strength if banking_strength is None else banking_strength
        falloff = params.auto_bank_falloff if auto_bank_falloff is None else auto_bank_falloff

        points, widths = simplify_path(preview.points, preview.widths, self.config.simplify_tolerance)
        curve.set_nodes(points, widths, np.tile([0.0, 0.0, 1.0], (len(points), 1)))
        if strength > 0.0:
            curve.is_auto_banking = True
            curve.bank_strength = strength
            curve.auto_bank_falloff = falloff

        logger.info(f"Committed auto road onto '{curve.name}': {len(points)} nodes")
        return True

    def _start_segment(self, segment: int) -> Optional[GridSearch]:
        waypoints = self._waypoints
        if waypoints is None or segment >= len(waypoints) - 1:
            return None

        start = waypoints[segment].copy()
        goal = waypoints[segment + 1]
        if segment > 0:
            # Nudge later starts forward so segments overlap less
            direction = np.array([goal[0] - start[0], goal[1] - start[1], 0.0])
            length = float(np.linalg.norm(direction))
            if length > 1e-4:
                start += direction / length * self.config.push_off_distance

        config = PathfinderConfig(
            max_slope=self._preset.max_slope,
            min_radius=self._preset.min_radius,
            slope_avoidance=self._params.slope_avoidance,
            base_width=self._params.base_width,
        )
        return self.pathfinder.begin_segment(start, goal, config)

    def _append_segment(self, search: GridSearch) -> None:
        path = search.result()
        if path.is_empty:
            self._unreachable += 1
            logger.warning(f"Auto road segment {self._segment} unreachable, skipping")
            return

        points, widths = list(path.points), list(path.widths)
        if self._points:
            gap = self._points[-1] - points[0]
            if float(np.dot(gap, gap)) < self.config.duplicate_tolerance_sq:
                points, widths = points[1:], widths[1:]
        self._points.extend(points)
        self._widths.extend(widths)

    def _finish(self) -> SearchStatus:
        raw_count = len(self._points)
        points = np.array(self._points, dtype=float).reshape(-1, 3)
        widths = np.array(self._widths, dtype=float)
        segments = len(self._waypoints) - 1
        unreachable = self._unreachable
        self.cancel()

        if raw_count == 0:
            logger.warning("Auto road generation produced no path")
            return SearchStatus.UNREACHABLE

        preset, params, config = self._preset, self._params, self.config
        with PerformanceTimer("auto_road_post_processing"):
            points, widths = simplify_path(points, widths, config.simplify_tolerance)
            widths = apply_hairpin_widening(
                points,
                widths,
                preset.max_width_gradient,
                params.width_blend,
                config.max_extra_width_factor,
            )
            points = snap_to_slope_envelope(points, preset.max_slope)
            points = relax_to_terrain(points, self.terrain, preset.max_slope, config.relax_iterations)
            points, widths = resample_path(points, widths, config.resample_granularity)
            points, widths = simplify_path(points, widths, config.post_simplify_tolerance)

        self.preview = PreviewPath(
            points=points,
            widths=widths,
            metadata={
                "segments": segments,
                "unreachable_segments": unreachable,
                "raw_points": raw_count,
                "preset": preset.name,
            },
        )
        logger.info(
            f"Auto road preview ready: {len(points)} points, length {self.preview.length:.1f}m"
        )
        return SearchStatus.FOUND
