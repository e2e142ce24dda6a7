"""
Grid search over a terrain height field for road planning.

This module implements a uniform-cost search over the terrain grid, including:
- Slope penalties above the preset's maximum grade
- Turning-radius and direction-change penalties
- Frame-budgeted expansion so a search can be spread over many updates
"""

import heapq
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry import LineString

from roadsmith.core.config import settings
from roadsmith.core.geometry.vectors import EPSILON
from roadsmith.core.terrain.sampler import TerrainSampler

logger = logging.getLogger(__name__)

# Eight-connected neighbourhood, axis moves first
SEARCH_DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (-1, 1), (-1, -1), (1, -1),
)
_DIRECTION_LENGTHS = tuple(math.hypot(dx, dy) for dx, dy in SEARCH_DIRECTIONS)
_UNIT_DIRECTIONS = tuple(
    (dx / length, dy / length) for (dx, dy), length in zip(SEARCH_DIRECTIONS, _DIRECTION_LENGTHS)
)

SLOPE_PENALTY_SCALE = 300.0
RADIUS_PENALTY_SCALE = 50.0
DIRECTION_CHANGE_PENALTY_SCALE = 20.0


class SearchStatus(str, Enum):
    """State of a grid search."""

    RUNNING = "running"
    FOUND = "found"
    UNREACHABLE = "unreachable"


@dataclass
class PathfinderConfig:
    """
    Constraints applied to a segment search.

    Attributes:
        max_slope: Grade above which moves are penalised (rise over run)
        min_radius: Turning radius below which moves are penalised (meters)
        slope_avoidance: Multiplier on the slope penalty (applied squared)
        base_width: Width assigned to every reconstructed sample
    """

    max_slope: float = 0.08
    min_radius: float = 120.0
    slope_avoidance: float = 1.0
    base_width: float = 10.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_slope < 0:
            raise ValueError("max_slope must be non-negative")
        if self.min_radius <= 0:
            raise ValueError("min_radius must be positive")
        if self.slope_avoidance < 0:
            raise ValueError("slope_avoidance must be non-negative")
        if self.base_width < 0:
            raise ValueError("base_width must be non-negative")


@dataclass
class SegmentPath:
    """
    Result of one segment search.

    Attributes:
        points: (k, 3) world positions, start to goal, z on the terrain
        widths: (k,) sample widths
        total_cost: Accumulated search cost at the goal
        metadata: Search statistics
    """

    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    widths: np.ndarray = field(default_factory=lambda: np.zeros(0))
    total_cost: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def get_geometry(self) -> LineString:
        """
        Get path as Shapely LineString.

        Returns:
            LineString geometry (empty for fewer than two points)
        """
        if len(self.points) < 2:
            return LineString()
        return LineString(self.points.tolist())


def slope_penalty(dz: float, dist: float, max_slope: float, slope_avoidance: float) -> float:
    """Cubic penalty on the grade in excess of ``max_slope``."""
    excess = max(0.0, abs(dz) / (dist + EPSILON) - max_slope)
    return excess ** 3 * SLOPE_PENALTY_SCALE * slope_avoidance * slope_avoidance


def radius_penalty(
    prev_dir: Optional[Tuple[float, float]],
    next_dir: Tuple[float, float],
    dist: float,
    min_radius: float,
    last_angle: Optional[float],
) -> Tuple[float, Optional[float]]:
    """
    Penalty for turning tighter than ``min_radius`` and for changing turn rate.

    Args:
        prev_dir: Unit direction of the move into the current cell, None at the start
        next_dir: Unit direction of the candidate move
        dist: Length of the candidate move
        min_radius: Preset minimum radius
        last_angle: Turn angle of the previous move, None if there was none

    Returns:
        Tuple (penalty, turn angle of the candidate move); the first move
        of a search counts as a straight move with angle 0
    """
    if prev_dir is None:
        return 0.0, 0.0

    dot = prev_dir[0] * next_dir[0] + prev_dir[1] * next_dir[1]
    angle = math.acos(max(-1.0, min(1.0, dot)))
    radius = dist / (angle + EPSILON)
    shortfall = max(0.0, (min_radius - radius) / min_radius)
    delta_angle = angle - last_angle if last_angle is not None else 0.0
    penalty = shortfall * shortfall * RADIUS_PENALTY_SCALE + delta_angle * delta_angle * DIRECTION_CHANGE_PENALTY_SCALE
    return penalty, angle


def move_cost(
    prev_dir: Optional[Tuple[float, float]],
    next_dir: Tuple[float, float],
    dz: float,
    dist: float,
    config: PathfinderConfig,
    last_angle: Optional[float],
) -> Tuple[float, Optional[float]]:
    """Distance plus slope and radius penalties for one move."""
    slope = slope_penalty(dz, dist, config.max_slope, config.slope_avoidance)
    radius, angle = radius_penalty(prev_dir, next_dir, dist, config.min_radius, last_angle)
    return dist + slope + radius, angle


def grid_resolution(terrain: TerrainSampler) -> Tuple[int, int]:
    """Number of (x, y) grid cells covered by the terrain."""
    half_x, half_y = terrain.extents()
    cell_inv = 1.0 / terrain.cell_size()
    x_res = int(math.floor(2.0 * half_x * cell_inv + 1.0))
    y_res = int(math.floor(2.0 * half_y * cell_inv + 1.0))
    rows, cols = terrain.height_grid().shape
    return min(x_res, cols), min(y_res, rows)


class GridSearch:
    """
    Uniform-cost search between two terrain cells.

    The search is resumable: :meth:`advance` pops at most a given number of
    open-set entries and returns, so a host can spread one search over
    several frames.
    """

    def __init__(
        self,
        terrain: TerrainSampler,
        start: Sequence[float],
        goal: Sequence[float],
        config: Optional[PathfinderConfig] = None,
    ):
        """
        Initialize the search.

        Args:
            terrain: Terrain to search over
            start: World start position
            goal: World goal position
            config: Search constraints (uses defaults if not provided)
        """
        self.terrain = terrain
        self.config = config or PathfinderConfig()
        self.heights = terrain.height_grid()
        self.cell_size = terrain.cell_size()
        self.x_res, self.y_res = grid_resolution(terrain)

        sx, sy = terrain.world_to_grid(start)
        gx, gy = terrain.world_to_grid(goal)
        self.start_index = sy * self.x_res + sx
        self.goal_index = gy * self.x_res + gx

        size = self.x_res * self.y_res
        self._visited = np.zeros(size, dtype=bool)
        self._cost = np.full(size, np.inf)
        self._came_from = np.full(size, -1, dtype=np.int64)
        self._open: List[Tuple[float, int, int, int, Optional[int], Optional[float]]] = []
        self._counter = 0
        self.expansions = 0
        self.status = SearchStatus.RUNNING

        self._cost[self.start_index] = 0.0
        self._push(0.0, self.start_index, -1, None, None)

    def _push(
        self, cost: float, index: int, prev: int, direction: Optional[int], angle: Optional[float]
    ) -> None:
        # Counter keeps equal-cost entries in insertion order
        heapq.heappush(self._open, (cost, self._counter, index, prev, direction, angle))
        self._counter += 1

    def advance(self, max_expansions: Optional[int] = None) -> SearchStatus:
        """
        Continue the search.

        Args:
            max_expansions: Maximum open-set pops for this call (unbounded if None)

        Returns:
            Search status after this call
        """
        if self.status is not SearchStatus.RUNNING:
            return self.status

        heights, cell, x_res, y_res = self.heights, self.cell_size, self.x_res, self.y_res
        budget = math.inf if max_expansions is None else max_expansions
        popped = 0

        while self._open and popped < budget:
            _, _, index, prev, direction, angle = heapq.heappop(self._open)
            popped += 1
            if self._visited[index]:
                continue

            self._visited[index] = True
            self._came_from[index] = prev
            self.expansions += 1
            if index == self.goal_index:
                self.status = SearchStatus.FOUND
                return self.status

            cx, cy = index % x_res, index // x_res
            cz = heights[cy, cx]
            prev_dir = _UNIT_DIRECTIONS[direction] if direction is not None else None
            current_cost = self._cost[index]

            for d, (dx, dy) in enumerate(SEARCH_DIRECTIONS):
                nx, ny = cx + dx, cy + dy
                if not (0 <= nx < x_res and 0 <= ny < y_res):
                    continue
                n_index = ny * x_res + nx
                if self._visited[n_index]:
                    continue

                dist = _DIRECTION_LENGTHS[d] * cell
                cost, n_angle = move_cost(
                    prev_dir, _UNIT_DIRECTIONS[d], heights[ny, nx] - cz, dist, self.config, angle
                )
                total = current_cost + cost
                if total < self._cost[n_index]:
                    self._cost[n_index] = total
                    self._push(total, n_index, index, d, n_angle)

        if not self._open:
            self.status = SearchStatus.UNREACHABLE
            logger.warning(
                f"Goal cell {self.goal_index} unreachable after {self.expansions} expansions"
            )
        return self.status

    def run(self) -> SearchStatus:
        """Run the search to completion."""
        return self.advance(None)

    def result(self) -> SegmentPath:
        """
        Reconstructed path, start to goal.

        Returns:
            The path if the goal was found, otherwise an empty path
        """
        if self.status is not SearchStatus.FOUND:
            return SegmentPath(metadata={"status": self.status.value, "expansions": self.expansions})

        cells = []
        current = self.goal_index
        while current >= 0:
            cells.append((current % self.x_res, current // self.x_res))
            current = int(self._came_from[current])
        cells.reverse()

        points = np.array([self.terrain.grid_to_world(cell) for cell in cells], dtype=float)
        return SegmentPath(
            points=points,
            widths=np.full(len(points), self.config.base_width),
            total_cost=float(self._cost[self.goal_index]),
            metadata={"status": self.status.value, "expansions": self.expansions},
        )


class GridPathfinder:
    """Finds terrain-aware paths between waypoints on a height grid."""

    def __init__(self, terrain: TerrainSampler, expansions_per_frame: Optional[int] = None):
        """
        Initialize the pathfinder.

        Args:
            terrain: Terrain to search over
            expansions_per_frame: Default budget for :meth:`advance` style use
                (defaults to settings.search_expansions_per_frame)
        """
        self.terrain = terrain
        self.expansions_per_frame = expansions_per_frame or settings.search_expansions_per_frame

    def begin_segment(
        self, start: Sequence[float], goal: Sequence[float], config: Optional[PathfinderConfig] = None
    ) -> GridSearch:
        """Create a resumable search for one segment."""
        return GridSearch(self.terrain, start, goal, config)

    def find_segment(
        self,
        start: Sequence[float],
        goal: Sequence[float],
        base_width: float = 10.0,
        max_slope: float = 0.08,
        min_radius: float = 120.0,
        slope_avoidance: float = 1.0,
    ) -> SegmentPath:
        """
        Find a path between two world positions.

        Args:
            start: World start position
            goal: World goal position
            base_width: Width assigned to every sample
            max_slope: Preset maximum grade
            min_radius: Preset minimum radius
            slope_avoidance: Slope penalty multiplier

        Returns:
            SegmentPath; empty if the goal is unreachable, a single point if
            start and goal fall in the same cell
        """
        config = PathfinderConfig(
            max_slope=max_slope,
            min_radius=min_radius,
            slope_avoidance=slope_avoidance,
            base_width=base_width,
        )
        search = self.begin_segment(start, goal, config)
        search.run()
        path = search.result()
        logger.debug(
            f"Segment search {search.status.value}: {len(path)} points, "
            f"{search.expansions} expansions"
        )
        return path
