# terrain_generator/field.py

"""
================================================================================
NOISE FIELD
================================================================================
This module defines the immutable noise configuration and the NoiseField,
which owns the permutation table for one generation run and exposes the
height function consumed by the mesh builder and the heightmap.

Data Contract:
---------------
- Inputs:
    - NoiseConfig: octaves, persistence, lacunarity, scale, seed.
- Outputs:
    - sample(x, y): fractal noise in [-1, 1].
    - sample_grid(xs, ys): the same values for whole coordinate arrays.
- Side Effects: None. The permutation table is read-only once built, so a
  NoiseField may be shared between threads without locking.
- Invariants: Given the same configuration, every sample is deterministic.
================================================================================
"""

import math
from dataclasses import dataclass
from numbers import Integral, Real

import numpy as np

from . import config as DEFAULTS
from . import noise
from .errors import InvalidConfigurationError


def _is_integer(value) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class NoiseConfig:
    """Octave noise parameters. Validated on creation and immutable afterwards."""
    octaves: int = DEFAULTS.DEFAULT_OCTAVES
    persistence: float = DEFAULTS.DEFAULT_PERSISTENCE
    lacunarity: float = DEFAULTS.DEFAULT_LACUNARITY
    scale: float = DEFAULTS.DEFAULT_NOISE_SCALE
    seed: int = DEFAULTS.DEFAULT_SEED

    def __post_init__(self):
        if not _is_integer(self.octaves) or self.octaves < 1:
            raise InvalidConfigurationError(f"octaves must be an integer >= 1, got {self.octaves!r}")
        if not _is_integer(self.seed):
            raise InvalidConfigurationError(f"seed must be an integer, got {self.seed!r}")
        for name in ("persistence", "lacunarity", "scale"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
                raise InvalidConfigurationError(f"{name} must be a finite number, got {value!r}")
        if not 0.0 <= self.persistence <= 1.0:
            raise InvalidConfigurationError(f"persistence must be in [0, 1], got {self.persistence}")
        if self.lacunarity <= 0:
            raise InvalidConfigurationError(f"lacunarity must be > 0, got {self.lacunarity}")
        if self.scale <= 0:
            raise InvalidConfigurationError(f"scale must be > 0, got {self.scale}")
        # The top octave samples at lacunarity ** (octaves - 1); it must stay finite.
        try:
            top_frequency = math.pow(self.lacunarity, self.octaves - 1)
        except OverflowError:
            top_frequency = math.inf
        if not math.isfinite(top_frequency):
            raise InvalidConfigurationError(
                f"lacunarity {self.lacunarity} over {self.octaves} octaves overflows the sampling frequency"
            )

    @classmethod
    def from_settings(cls, settings: dict) -> "NoiseConfig":
        """Builds a config from a consolidated settings dictionary."""
        return cls(
            octaves=settings.get('octaves', DEFAULTS.DEFAULT_OCTAVES),
            persistence=settings.get('persistence', DEFAULTS.DEFAULT_PERSISTENCE),
            lacunarity=settings.get('lacunarity', DEFAULTS.DEFAULT_LACUNARITY),
            scale=settings.get('noise_scale', DEFAULTS.DEFAULT_NOISE_SCALE),
            seed=settings.get('seed', DEFAULTS.DEFAULT_SEED),
        )


def build_permutation_table(seed: int) -> np.ndarray:
    """
    Shuffles the identity permutation of [0, 256) with a generator seeded from
    `seed` and duplicates it into a 512-entry, read-only table.
    """
    p = np.arange(DEFAULTS.PERMUTATION_SIZE, dtype=np.int64)
    # default_rng only accepts non-negative seeds; negative ones wrap to uint64.
    rng = np.random.default_rng(int(seed) % 2**64)
    rng.shuffle(p)
    table = np.stack([p, p]).flatten()
    table.flags.writeable = False
    return table


def validate_permutation_table(table) -> np.ndarray:
    """Returns a read-only int64 copy of `table`, or raises if it is malformed."""
    table = np.array(table, dtype=np.int64)
    size = DEFAULTS.PERMUTATION_SIZE
    if table.shape != (DEFAULTS.PERMUTATION_TABLE_LENGTH,):
        raise InvalidConfigurationError(
            f"permutation table must have {DEFAULTS.PERMUTATION_TABLE_LENGTH} entries, got shape {table.shape}"
        )
    first_half = table[:size]
    if not np.array_equal(np.sort(first_half), np.arange(size)):
        raise InvalidConfigurationError("permutation table must contain each value in [0, 255] once per half")
    if not np.array_equal(first_half, table[size:]):
        raise InvalidConfigurationError("permutation table halves must be identical")
    table.flags.writeable = False
    return table


class NoiseField:
    """
    A deterministic fractal noise function bound to one permutation table.
    Use NoiseField.build() rather than the constructor.
    """
    def __init__(self, config: NoiseConfig, permutation_table: np.ndarray):
        self.config = config
        self._p = permutation_table

    @classmethod
    def build(cls, config: NoiseConfig) -> "NoiseField":
        """Derives the permutation table from config.seed."""
        if not isinstance(config, NoiseConfig):
            raise InvalidConfigurationError(f"expected a NoiseConfig, got {type(config).__name__}")
        return cls(config, build_permutation_table(config.seed))

    @classmethod
    def from_table(cls, config: NoiseConfig, permutation_table) -> "NoiseField":
        """Binds a pre-computed permutation table, e.g. one loaded from a bake."""
        return cls(config, validate_permutation_table(permutation_table))

    @property
    def permutation_table(self) -> np.ndarray:
        return self._p

    def base(self, x: float, y: float) -> float:
        """Single-octave gradient noise, without the octave sum."""
        return float(noise.base_noise_2d(self._p, float(x), float(y)))

    def sample(self, x: float, y: float) -> float:
        """Fractal noise at (x, y), normalized to [-1, 1]."""
        c = self.config
        return float(noise.fractal_noise_2d(
            self._p, float(x), float(y), int(c.octaves), float(c.persistence), float(c.lacunarity)
        ))

    def sample_grid(self, xs, ys) -> np.ndarray:
        """
        Samples the field at every coordinate pair of two broadcastable arrays.
        Values are bit-identical to calling sample() on each pair.
        """
        xs, ys = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
        shape = xs.shape
        c = self.config
        values = noise.perlin_noise_2d(
            self._p,
            np.ascontiguousarray(xs).ravel(),
            np.ascontiguousarray(ys).ravel(),
            int(c.octaves), float(c.persistence), float(c.lacunarity)
        )
        return values.reshape(shape)

    def fill_height_rows(self, width: int, z_start: int, z_stop: int, sample_scale: float, out: np.ndarray):
        """Writes grid heights for rows [z_start, z_stop) into `out`."""
        c = self.config
        noise.fill_height_rows(
            self._p, int(c.octaves), float(c.persistence), float(c.lacunarity),
            width, z_start, z_stop, float(sample_scale), out
        )

    def __repr__(self):
        return f"NoiseField({self.config!r})"
