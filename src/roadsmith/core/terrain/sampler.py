"""
Height-field sampling.

The engine reads terrain through the :class:`TerrainSampler` protocol so a
host can plug in its own height field. :class:`HeightGridTerrain` covers the
common case of a regular raster with a rasterio affine transform; grid
indices address raster samples, so ``grid_to_world((0, 0))`` is the
position of ``heights[0, 0]``.
"""

import logging
import math
from typing import Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from rasterio.transform import Affine
from scipy import ndimage

logger = logging.getLogger(__name__)


@runtime_checkable
class TerrainSampler(Protocol):
    """Height field queried by the discretizer and the road generator."""

    def get_height_at(self, point: Sequence[float]) -> float:
        """Terrain height under a world XY position."""
        ...

    def get_normal_at(self, point: Sequence[float]) -> np.ndarray:
        """Unit surface normal under a world XY position."""
        ...

    def world_to_grid(self, point: Sequence[float]) -> Tuple[int, int]:
        """Nearest grid cell (ix, iy) for a world position."""
        ...

    def grid_to_world(self, cell: Tuple[int, int]) -> np.ndarray:
        """World position (x, y, height) of a grid cell."""
        ...

    def cell_size(self) -> float:
        """Edge length of one grid cell in world units."""
        ...

    def extents(self) -> Tuple[float, float]:
        """Half extents of the height field along X and Y."""
        ...

    def height_grid(self) -> np.ndarray:
        """Raw height samples indexed ``[iy, ix]``."""
        ...


class HeightGridTerrain:
    """
    Raster height field with bilinear sampling.

    Attributes:
        heights: 2D array of heights indexed [row, col]
        transform: Affine mapping (col, row) to world (x, y)
    """

    def __init__(self, heights: np.ndarray, transform: Affine):
        """
        Initialize the terrain.

        Args:
            heights: 2D array of heights, rows along grid Y
            transform: Affine transform from grid (col, row) to world (x, y)
        """
        heights = np.asarray(heights, dtype=float)
        if heights.ndim != 2 or heights.shape[0] < 2 or heights.shape[1] < 2:
            raise ValueError("heights must be a 2D array with at least 2x2 samples")
        if not math.isclose(abs(transform.a), abs(transform.e), rel_tol=1e-6):
            raise ValueError("HeightGridTerrain requires square cells")

        self.heights = heights
        self.transform = transform
        self._inverse = ~transform
        self._cell = abs(transform.a)

        logger.debug(
            f"HeightGridTerrain created: shape={heights.shape}, cell_size={self._cell}"
        )

    @classmethod
    def from_origin(
        cls, heights: np.ndarray, cell_size: float, origin: Tuple[float, float] = (0.0, 0.0)
    ) -> "HeightGridTerrain":
        """
        Build a terrain whose grid Y axis runs along world +Y.

        Args:
            heights: 2D array of heights indexed [iy, ix]
            cell_size: Grid spacing in world units
            origin: World position of ``heights[0, 0]``

        Returns:
            HeightGridTerrain instance
        """
        transform = Affine.translation(origin[0], origin[1]) * Affine.scale(cell_size, cell_size)
        return cls(heights, transform)

    @property
    def shape(self) -> Tuple[int, int]:
        """Number of (rows, cols) samples."""
        return self.heights.shape

    def _fractional_grid(self, point: Sequence[float]) -> Tuple[float, float]:
        col, row = self._inverse * (float(point[0]), float(point[1]))
        return col, row

    def get_height_at(self, point: Sequence[float]) -> float:
        col, row = self._fractional_grid(point)
        value = ndimage.map_coordinates(
            self.heights, [[row], [col]], order=1, mode="nearest"
        )
        return float(value[0])

    def get_normal_at(self, point: Sequence[float]) -> np.ndarray:
        """
        Surface normal from central differences one cell apart.

        Args:
            point: World position (only x and y are used)

        Returns:
            Unit normal with a positive z component
        """
        x, y = float(point[0]), float(point[1])
        d = self._cell
        dz_dx = (self.get_height_at((x + d, y)) - self.get_height_at((x - d, y))) / (2.0 * d)
        dz_dy = (self.get_height_at((x, y + d)) - self.get_height_at((x, y - d))) / (2.0 * d)
        normal = np.array([-dz_dx, -dz_dy, 1.0])
        return normal / np.linalg.norm(normal)

    def world_to_grid(self, point: Sequence[float]) -> Tuple[int, int]:
        col, row = self._fractional_grid(point)
        rows, cols = self.heights.shape
        ix = min(max(int(round(col)), 0), cols - 1)
        iy = min(max(int(round(row)), 0), rows - 1)
        return ix, iy

    def grid_to_world(self, cell: Tuple[int, int]) -> np.ndarray:
        ix, iy = int(cell[0]), int(cell[1])
        x, y = self.transform * (ix, iy)
        return np.array([x, y, self.heights[iy, ix]], dtype=float)

    def cell_size(self) -> float:
        return self._cell

    def extents(self) -> Tuple[float, float]:
        rows, cols = self.heights.shape
        return (cols - 1) * self._cell * 0.5, (rows - 1) * self._cell * 0.5

    def height_grid(self) -> np.ndarray:
        return self.heights
