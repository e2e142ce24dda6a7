"""
Tests for height-field sampling.
"""

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal
from rasterio.transform import from_bounds

from roadsmith.core.terrain.sampler import HeightGridTerrain, TerrainSampler


@pytest.fixture
def ramp() -> HeightGridTerrain:
    """11x21 grid, 2 m cells, rising 0.1 per meter along +X."""
    cols = np.arange(21) * 2.0
    heights = np.tile(cols * 0.1, (11, 1))
    return HeightGridTerrain.from_origin(heights, cell_size=2.0)


class TestHeightGridTerrain:
    """Test suite for HeightGridTerrain."""

    def test_satisfies_protocol(self, ramp) -> None:
        """Test the raster terrain implements the sampler protocol."""
        assert isinstance(ramp, TerrainSampler)

    def test_rejects_non_grid(self) -> None:
        """Test 1D or tiny inputs raise ValueError."""
        with pytest.raises(ValueError, match="2D array"):
            HeightGridTerrain.from_origin(np.zeros(5), cell_size=1.0)
        with pytest.raises(ValueError, match="2D array"):
            HeightGridTerrain.from_origin(np.zeros((1, 5)), cell_size=1.0)

    def test_rejects_non_square_cells(self) -> None:
        """Test rectangular cells raise ValueError."""
        transform = from_bounds(0, 0, 100, 50, 10, 10)
        with pytest.raises(ValueError, match="square cells"):
            HeightGridTerrain(np.zeros((10, 10)), transform)

    def test_height_bilinear(self, ramp) -> None:
        """Test heights between samples are interpolated."""
        assert ramp.get_height_at((3.0, 5.0)) == pytest.approx(0.3)
        assert ramp.get_height_at((10.0, 7.5, 99.0)) == pytest.approx(1.0)

    def test_height_clamps_outside(self, ramp) -> None:
        """Test positions beyond the raster use the nearest edge sample."""
        assert ramp.get_height_at((-50.0, 5.0)) == pytest.approx(0.0)
        assert ramp.get_height_at((500.0, 5.0)) == pytest.approx(4.0)

    def test_normal_of_ramp(self, ramp) -> None:
        """Test the normal tilts against the slope direction."""
        normal = ramp.get_normal_at((20.0, 10.0))
        expected = np.array([-0.1, 0.0, 1.0]) / np.linalg.norm([-0.1, 0.0, 1.0])

        assert_array_almost_equal(normal, expected)

    def test_grid_round_trip(self, ramp) -> None:
        """Test world_to_grid picks the nearest cell and grid_to_world inverts it."""
        assert ramp.world_to_grid((4.9, 3.1)) == (2, 2)
        assert_array_almost_equal(ramp.grid_to_world((2, 2)), [4.0, 4.0, 0.4])

    def test_world_to_grid_clamps(self, ramp) -> None:
        """Test positions outside the raster clamp to its edge."""
        assert ramp.world_to_grid((-10.0, 1000.0)) == (0, 10)

    def test_dimensions(self, ramp) -> None:
        """Test cell size, shape and extents."""
        assert ramp.cell_size() == 2.0
        assert ramp.shape == (11, 21)
        assert ramp.extents() == (20.0, 10.0)
        assert ramp.height_grid() is ramp.heights

    def test_origin_offset(self) -> None:
        """Test from_origin places heights[0, 0] at the origin."""
        terrain = HeightGridTerrain.from_origin(np.zeros((3, 3)), 5.0, origin=(100.0, 200.0))

        assert_array_almost_equal(terrain.grid_to_world((1, 2)), [105.0, 210.0, 0.0])
        assert terrain.world_to_grid((104.0, 211.0)) == (1, 2)
