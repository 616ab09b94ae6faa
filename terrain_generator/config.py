# terrain_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the terrain
generator. These values are used if they are not explicitly provided by the
user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC TERRAIN.
Instead, pass a configuration dictionary to the TerrainGenerator instance.
================================================================================
"""

# --- Noise Generation ---
DEFAULT_SEED = 1337
# Passing this value (or None) as the seed draws a fresh one for the run.
RANDOM_SEED = "random"
# Random seeds are drawn from [0, RANDOM_SEED_MAX).
RANDOM_SEED_MAX = 10000

DEFAULT_OCTAVES = 4          # Number of layers of noise
DEFAULT_PERSISTENCE = 0.5    # How much each octave contributes
DEFAULT_LACUNARITY = 2.0     # How much the frequency increases per octave

# The noise scale is the number of grid cells covered by one noise lattice
# cell. Larger values give broader hills.
DEFAULT_NOISE_SCALE = 20.0

# --- Permutation Table ---
# 256 shuffled entries, duplicated so that perm[perm[X] + Y] never overflows.
PERMUTATION_SIZE = 256
PERMUTATION_TABLE_LENGTH = PERMUTATION_SIZE * 2

# --- Grid ---
DEFAULT_GRID_WIDTH = 256
DEFAULT_GRID_DEPTH = 256

# Vertex heights are noise values [-1, 1] multiplied by this factor.
DEFAULT_VERTICAL_SCALE = 10.0

# --- Mesh Building & Performance ---
# Number of worker threads for the eager mesh build. None uses os.cpu_count().
DEFAULT_MESH_WORKERS = None
# Grids with fewer vertices than this are built on the calling thread,
# since the executor overhead outweighs the work.
PARALLEL_MIN_VERTICES = 64 * 64
# Every index must fit the index dtype handed to renderers.
MAX_INDEXED_VERTICES = 2**31 - 1

# --- Heightmap ---
LUMINANCE_MAX = 255

# --- Export ---
DEFAULT_OUTPUT_DIR = "baked_terrains"
HEIGHTMAP_FILENAME = "heightmap.png"
MESH_OBJ_FILENAME = "terrain.obj"
MESH_NPZ_FILENAME = "terrain.npz"
GENERATION_CONFIG_FILENAME = "generation_config.json"
