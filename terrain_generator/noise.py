# terrain_generator/noise.py

"""
================================================================================
NOISE GENERATION KERNELS
================================================================================
This module provides the JIT-compiled kernels for 2D Perlin gradient noise and
its fractal (octave) sum. It is designed to be a pure, stateless utility: the
permutation table is always passed in by the caller and never stored here.

Data Contract:
---------------
- Inputs:
    - p: A 512-entry permutation table (int array), see field.py.
    - x, y: Scalar coordinates or flat NumPy arrays of coordinates.
    - octaves, persistence, lacunarity: Standard noise parameters.
- Outputs:
    - Noise values in the signed range [-1, 1].
- Side Effects: None.
- Invariants:
    - base_noise_2d is exactly 0 at integer lattice points.
    - The array kernel returns bit-identical values to the scalar kernel.
================================================================================
"""

import numpy as np
from numba import njit

# Kernels are compiled with nogil so row bands can run on worker threads.

@njit(nogil=True)
def _lerp(a, b, t):
    "Linear interpolation."
    return a + t * (b - a)

@njit(nogil=True)
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)

@njit(nogil=True)
def _gradient(hash_value, x, y):
    """
    Dot product between one of the fixed gradient directions and (x, y).
    The low 4 bits of the hash pick the primary axis, the secondary axis
    (y, x or nothing) and the two signs.
    """
    h = hash_value & 15
    u = x if h < 8 else y
    if h < 4:
        v = y
    elif h == 12 or h == 14:
        v = x
    else:
        v = 0.0
    return (u if (h & 1) == 0 else -u) + (v if (h & 2) == 0 else -v)

@njit(nogil=True)
def base_noise_2d(p, x, y):
    """Single-octave gradient noise at (x, y)."""
    x_floor = np.floor(x)
    y_floor = np.floor(y)

    xi = int(x_floor) & 255
    yi = int(y_floor) & 255
    xi1 = (xi + 1) & 255
    yi1 = (yi + 1) & 255

    xf = x - x_floor
    yf = y - y_floor

    u = _fade(xf)
    v = _fade(yf)

    # Two table lookups per corner; the duplicated upper half keeps
    # p[xi] + yi in range without a modulo.
    h00 = p[p[xi] + yi]
    h01 = p[p[xi] + yi1]
    h10 = p[p[xi1] + yi]
    h11 = p[p[xi1] + yi1]

    g00 = _gradient(h00, xf, yf)
    g10 = _gradient(h10, xf - 1.0, yf)
    g01 = _gradient(h01, xf, yf - 1.0)
    g11 = _gradient(h11, xf - 1.0, yf - 1.0)

    x1 = _lerp(g00, g10, u)
    x2 = _lerp(g01, g11, u)
    return _lerp(x1, x2, v)

@njit(nogil=True)
def fractal_noise_2d(p, x, y, octaves, persistence, lacunarity):
    """
    Sums `octaves` layers of base noise and divides by the summed amplitudes,
    which keeps the result in [-1, 1] regardless of the octave count.
    """
    total = 0.0
    frequency = 1.0
    amplitude = 1.0
    max_value = 0.0

    for _ in range(octaves):
        total += base_noise_2d(p, x * frequency, y * frequency) * amplitude
        max_value += amplitude
        amplitude *= persistence
        frequency *= lacunarity

    return total / max_value

@njit(nogil=True)
def perlin_noise_2d(p, x, y, octaves=1, persistence=0.5, lacunarity=2.0):
    """
    Generate fractal noise for flat coordinate arrays.
    This function is JIT-compiled with Numba for maximum performance.
    It uses explicit loops, which Numba compiles to efficient machine code.
    """
    n = x.shape[0]
    total_noise = np.empty(n)
    for i in range(n):
        total_noise[i] = fractal_noise_2d(p, x[i], y[i], octaves, persistence, lacunarity)
    return total_noise

@njit(nogil=True)
def fill_height_rows(p, octaves, persistence, lacunarity, width, z_start, z_stop, sample_scale, out):
    """
    Writes the heights of grid rows [z_start, z_stop) into `out`, a
    (rows, width) array. Pixel (x, z) is sampled at
    (x / sample_scale, z / sample_scale), the same expression the mesh
    vertex pass uses.
    """
    for z in range(z_start, z_stop):
        row = z - z_start
        for x in range(width):
            out[row, x] = fractal_noise_2d(
                p, x / sample_scale, z / sample_scale, octaves, persistence, lacunarity
            )
