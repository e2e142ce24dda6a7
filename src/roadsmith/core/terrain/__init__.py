"""
Terrain sampling for road authoring.

This module provides:
- The TerrainSampler protocol the engine expects from a host height field
- HeightGridTerrain, a raster-backed implementation using an affine transform
"""

from roadsmith.core.terrain.sampler import HeightGridTerrain, TerrainSampler

__all__ = [
    "HeightGridTerrain",
    "TerrainSampler",
]
