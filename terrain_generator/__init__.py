# terrain_generator/__init__.py

# This file makes the 'terrain_generator' directory a Python package.
# We also use it to define the public API of the package.

from .errors import InvalidConfigurationError, MeshBuildIncompleteError
from .field import NoiseConfig, NoiseField, build_permutation_table
from .mesh import (
    IncrementalMeshBuild,
    RowProgress,
    TerrainMesh,
    TerrainMeshBuilder,
    build_terrain_mesh,
)
from .heightmap import generate_heightmap, get_heightmap_rgb_array, heights_to_luminance
from .generator import TerrainGenerator, TerrainResult

__all__ = [
    "InvalidConfigurationError",
    "MeshBuildIncompleteError",
    "NoiseConfig",
    "NoiseField",
    "build_permutation_table",
    "IncrementalMeshBuild",
    "RowProgress",
    "TerrainMesh",
    "TerrainMeshBuilder",
    "build_terrain_mesh",
    "generate_heightmap",
    "get_heightmap_rgb_array",
    "heights_to_luminance",
    "TerrainGenerator",
    "TerrainResult",
]
