# terrain_generator/exporters.py

"""
================================================================================
TERRAIN EXPORTERS
================================================================================
Writes generated terrain to disk. Nothing in the core generator depends on
this module; it is used by the bake script and by callers that want to keep
a run's output.

- Heightmap: 8-bit greyscale PNG (Pillow, mode 'L').
- Mesh: Wavefront OBJ (1-based faces) or a compressed NumPy archive.
- Settings: generation_config.json, enough to regenerate the same terrain.
================================================================================
"""
import json
import logging
import os

import numpy as np
from PIL import Image

from .mesh import TerrainMesh

def _ensure_parent_dir(path: str):
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

def save_heightmap_png(luminance: np.ndarray, path: str, logger: logging.Logger = None) -> str:
    """Saves a (depth, width) uint8 buffer as a greyscale PNG."""
    if luminance.dtype != np.uint8 or luminance.ndim != 2:
        raise ValueError(f"expected a 2D uint8 luminance buffer, got {luminance.dtype} with shape {luminance.shape}")
    _ensure_parent_dir(path)
    img = Image.fromarray(luminance, 'L')
    img.save(path, 'PNG', optimize=True)
    if logger:
        logger.info(f"Saved heightmap ({luminance.shape[1]}x{luminance.shape[0]} pixels) to '{path}'")
    return path

def save_mesh_obj(mesh: TerrainMesh, path: str, logger: logging.Logger = None) -> str:
    """Writes the mesh as a Wavefront OBJ with per-vertex normals."""
    _ensure_parent_dir(path)
    normals = mesh.compute_normals()
    with open(path, 'w') as f:
        f.write(f"# terrain {mesh.width}x{mesh.depth}\n")
        for x, y, z in mesh.vertices:
            f.write(f"v {x:.6f} {y:.6f} {z:.6f}\n")
        for nx, ny, nz in normals:
            f.write(f"vn {nx:.6f} {ny:.6f} {nz:.6f}\n")
        # OBJ indices are 1-based.
        for a, b, c in mesh.triangles + 1:
            f.write(f"f {a}//{a} {b}//{b} {c}//{c}\n")
    if logger:
        logger.info(f"Saved mesh ({mesh.vertex_count} vertices, {len(mesh.triangles)} triangles) to '{path}'")
    return path

def save_mesh_npz(mesh: TerrainMesh, path: str, logger: logging.Logger = None) -> str:
    """Saves the raw vertex and index arrays, bit-exact."""
    _ensure_parent_dir(path)
    np.savez_compressed(
        path,
        vertices=mesh.vertices,
        indices=mesh.indices,
        grid=np.array([mesh.width, mesh.depth]),
    )
    if logger:
        logger.info(f"Saved mesh arrays to '{path}'")
    return path

def load_mesh_npz(path: str) -> TerrainMesh:
    """Loads a mesh written by save_mesh_npz."""
    with np.load(path) as data:
        width, depth = (int(v) for v in data['grid'])
        return TerrainMesh(data['vertices'].copy(), data['indices'].copy(), width, depth)

def save_generation_config(settings: dict, path: str, logger: logging.Logger = None) -> str:
    """Saves the "birth certificate" of a run: the consolidated settings."""
    _ensure_parent_dir(path)
    with open(path, 'w') as f:
        json.dump(settings, f, indent=4)
    if logger:
        logger.info(f"Saved generation config to '{path}'")
    return path
