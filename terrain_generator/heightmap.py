# terrain_generator/heightmap.py

"""
================================================================================
HEIGHTMAP UTILITIES
================================================================================
This module converts sampled terrain heights into greyscale luminance buffers.

It samples the grid with the same (x / sample_scale, z / sample_scale)
coordinates and the same signed [-1, 1] convention as the mesh builder, so a
bright pixel always sits under a high vertex.
================================================================================
"""
import math
from numbers import Integral, Real

import numpy as np

from . import config as DEFAULTS
from .errors import InvalidConfigurationError
from .field import NoiseField

def generate_height_grid(field: NoiseField, width: int, depth: int, sample_scale: float = None) -> np.ndarray:
    """Samples the field into a (depth, width) float array of heights in [-1, 1]."""
    for name, value in (("width", width), ("depth", depth)):
        if not isinstance(value, Integral) or isinstance(value, bool) or value <= 0:
            raise InvalidConfigurationError(f"{name} must be a positive integer, got {value!r}")
    if sample_scale is None:
        sample_scale = field.config.scale
    if isinstance(sample_scale, bool) or not isinstance(sample_scale, Real) or not math.isfinite(sample_scale):
        raise InvalidConfigurationError(f"sample_scale must be a finite number, got {sample_scale!r}")
    if sample_scale == 0:
        raise InvalidConfigurationError("sample_scale must not be 0")

    heights = np.empty((int(depth), int(width)))
    field.fill_height_rows(int(width), 0, int(depth), float(sample_scale), heights)
    return heights

def heights_to_luminance(heights: np.ndarray) -> np.ndarray:
    """Maps signed heights [-1, 1] to 8-bit luminance [0, 255]."""
    normalized = np.clip((np.asarray(heights) + 1.0) / 2.0, 0.0, 1.0)
    return (normalized * DEFAULTS.LUMINANCE_MAX).astype(np.uint8)

def generate_heightmap(field: NoiseField, width: int, depth: int, sample_scale: float = None) -> np.ndarray:
    """
    Returns a (depth, width) uint8 luminance buffer; row z, column x holds
    the pixel for grid cell (x, z).
    """
    return heights_to_luminance(generate_height_grid(field, width, depth, sample_scale))

def get_heightmap_rgb_array(luminance: np.ndarray) -> np.ndarray:
    """Converts a luminance buffer into a greyscale (width, depth, 3) RGB array."""
    colors = np.stack([luminance] * 3, axis=-1)
    return np.transpose(colors, (1, 0, 2))
