# terrain_generator/generator.py

"""
================================================================================
CORE TERRAIN GENERATOR
================================================================================
This module contains the main TerrainGenerator class, which turns a flat
configuration dictionary into one generation run: a NoiseField plus the mesh
and heightmap sampled from it.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): A dictionary of generation parameters which can override
      the internal defaults. Expected keys include 'seed', 'octaves',
      'noise_scale', 'grid_width', etc.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - TerrainMesh and a uint8 luminance heightmap, both derived from the same
      NoiseField with the same sampling coordinates.
- Side Effects: Logs messages using the provided logger.
- Invariants: Given the same seed and configuration, the output is deterministic.
  A generator is fixed once created; changing a parameter means creating a new
  generator (see with_settings), so mesh and heightmap can never go stale
  independently of each other.
================================================================================
"""

import logging
import time
from typing import NamedTuple

import numpy as np

from . import config as DEFAULTS
from . import heightmap
from .errors import InvalidConfigurationError
from .field import NoiseConfig, NoiseField
from .mesh import IncrementalMeshBuild, TerrainMesh, TerrainMeshBuilder

SETTINGS_KEYS = (
    'seed', 'octaves', 'persistence', 'lacunarity', 'noise_scale',
    'sample_scale', 'grid_width', 'grid_depth', 'vertical_scale', 'mesh_workers',
)

class TerrainResult(NamedTuple):
    mesh: TerrainMesh
    heightmap: np.ndarray

def resolve_seed(seed, logger: logging.Logger = None) -> int:
    """Returns `seed`, or a freshly drawn one if it is None or "random"."""
    if seed is None or seed == DEFAULTS.RANDOM_SEED:
        seed = int(np.random.default_rng().integers(0, DEFAULTS.RANDOM_SEED_MAX))
        if logger:
            logger.info(f"Derived random seed: {seed}")
    return seed

class TerrainGenerator:
    """
    Generates the mesh and heightmap of one procedurally generated terrain.
    This class is backend-only and does not handle any visualization.
    """
    def __init__(self, config: dict, logger: logging.Logger, permutation_table: np.ndarray = None):
        """
        Initializes the terrain generator.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
            permutation_table (np.ndarray, optional): A pre-computed noise
                permutation table. If None, one will be generated from the seed.

        Raises:
            InvalidConfigurationError: If any parameter is out of range.
        """
        self.logger = logger
        self.user_config = config
        self.logger.info("TerrainGenerator initializing...")

        unknown_keys = sorted(set(self.user_config) - set(SETTINGS_KEYS))
        if unknown_keys:
            self.logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown_keys)}")

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'octaves': self.user_config.get('octaves', DEFAULTS.DEFAULT_OCTAVES),
            'persistence': self.user_config.get('persistence', DEFAULTS.DEFAULT_PERSISTENCE),
            'lacunarity': self.user_config.get('lacunarity', DEFAULTS.DEFAULT_LACUNARITY),
            'noise_scale': self.user_config.get('noise_scale', DEFAULTS.DEFAULT_NOISE_SCALE),
            'sample_scale': self.user_config.get('sample_scale'),
            'grid_width': self.user_config.get('grid_width', DEFAULTS.DEFAULT_GRID_WIDTH),
            'grid_depth': self.user_config.get('grid_depth', DEFAULTS.DEFAULT_GRID_DEPTH),
            'vertical_scale': self.user_config.get('vertical_scale', DEFAULTS.DEFAULT_VERTICAL_SCALE),
            'mesh_workers': self.user_config.get('mesh_workers', DEFAULTS.DEFAULT_MESH_WORKERS),
        }

        # Record the drawn seed so the settings reproduce this exact run.
        self.settings['seed'] = resolve_seed(self.settings['seed'], self.logger)
        # The grid is sampled at the noise scale unless told otherwise.
        if self.settings['sample_scale'] is None:
            self.settings['sample_scale'] = self.settings['noise_scale']

        # --- Validate everything before any sampling happens ---
        self.noise_config = NoiseConfig.from_settings(self.settings)

        # --- Initialize Noise ---
        if permutation_table is not None:
            self.field = NoiseField.from_table(self.noise_config, permutation_table)
            self.logger.debug("Initialized with injected permutation table.")
        else:
            self.logger.debug("No permutation table provided, generating new one from seed.")
            self.field = NoiseField.build(self.noise_config)

        self.permutation_table = self.field.permutation_table

        self._builder = TerrainMeshBuilder(
            self.settings['grid_width'],
            self.settings['grid_depth'],
            self.field,
            vertical_scale=self.settings['vertical_scale'],
            sample_scale=self.settings['sample_scale'],
            logger=self.logger,
        )

        # --- Public Properties for easy access ---
        self.seed = self.settings['seed']
        self.width = self._builder.width
        self.depth = self._builder.depth

        self.logger.info(f"TerrainGenerator initialized with seed: {self.seed}")
        self.logger.info(
            f"Grid: {self.width}x{self.depth} cells, {self.noise_config.octaves} octave(s), "
            f"persistence {self.noise_config.persistence}, lacunarity {self.noise_config.lacunarity}, "
            f"sample scale {self._builder.sample_scale}"
        )
        if self.noise_config.persistence == 0 and self.noise_config.octaves > 1:
            self.logger.debug("Persistence is 0: only the first octave contributes to the height.")

    def with_settings(self, **overrides) -> "TerrainGenerator":
        """Returns a new generator for a changed configuration. This one is unaffected."""
        unknown = sorted(set(overrides) - set(SETTINGS_KEYS))
        if unknown:
            raise InvalidConfigurationError(f"Unknown settings: {', '.join(unknown)}")
        config = dict(self.settings)
        config.update(overrides)
        if 'noise_scale' in overrides and 'sample_scale' not in overrides:
            config['sample_scale'] = None
        return TerrainGenerator(config=config, logger=self.logger)

    def sample(self, x: float, y: float) -> float:
        """The height function in [-1, 1] at noise-space coordinates (x, y)."""
        return self.field.sample(x, y)

    def build_mesh(self, workers: int = None) -> TerrainMesh:
        """Builds the full mesh in one call, in parallel for larger grids."""
        if workers is None:
            workers = self.settings['mesh_workers']
        return self._builder.build(workers=workers)

    def iter_mesh_rows(self) -> IncrementalMeshBuild:
        """Returns a row-by-row build producing the same mesh as build_mesh()."""
        return self._builder.iter_rows()

    def generate_heightmap(self) -> np.ndarray:
        """Returns the (depth, width) uint8 luminance heightmap."""
        start_time = time.perf_counter()
        luminance = heightmap.generate_heightmap(self.field, self.width, self.depth, self._builder.sample_scale)
        self.logger.info(
            f"Generated {self.width}x{self.depth} heightmap in {time.perf_counter() - start_time:.3f} seconds."
        )
        return luminance

    def generate(self, workers: int = None) -> TerrainResult:
        """Builds both outputs from the same field."""
        return TerrainResult(mesh=self.build_mesh(workers=workers), heightmap=self.generate_heightmap())
