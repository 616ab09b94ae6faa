# terrain_generator/mesh.py

"""
================================================================================
TERRAIN MESH BUILDER
================================================================================
This module samples a NoiseField over a regular grid and assembles a
two-triangles-per-quad mesh from it.

Data Contract:
---------------
- Inputs:
    - width, depth: Number of grid cells along x and z (positive integers).
    - field: A NoiseField. Its permutation table is read-only, so row bands
      can be sampled on worker threads without locking.
    - vertical_scale: Multiplier applied to the [-1, 1] noise height.
    - sample_scale: Grid coordinates are divided by this before sampling.
- Outputs:
    - TerrainMesh with (width+1)*(depth+1) vertices laid out row-major
      (z outer, x inner) and width*depth*6 triangle indices.
- Side Effects: Logs build milestones using the provided logger.
- Invariants:
    - Vertices and indices are produced by the same build and never
      replaced independently.
    - The output is identical for any worker count and for eager vs.
      row-by-row builds.
================================================================================
"""

import logging
import math
import os
import time
from concurrent.futures import ThreadPoolExecutor
from numbers import Integral, Real
from typing import Iterator, NamedTuple

import numpy as np
from numba import njit

from . import config as DEFAULTS
from .errors import InvalidConfigurationError, MeshBuildIncompleteError
from .field import NoiseField

VERTEX_DTYPE = np.float32
INDEX_DTYPE = np.int32

@njit(nogil=True)
def _fill_vertex_rows(heights, width, z_start, vertical_scale, vertices):
    """Writes (x, h * vertical_scale, z) for each row of pre-sampled heights."""
    i = z_start * (width + 1)
    for row in range(heights.shape[0]):
        z = z_start + row
        for x in range(width + 1):
            vertices[i, 0] = x
            vertices[i, 1] = heights[row, x] * vertical_scale
            vertices[i, 2] = z
            i += 1

@njit(nogil=True)
def _fill_index_rows(width, y_start, y_stop, triangles):
    """Writes the two triangles of every cell in rows [y_start, y_stop)."""
    tri_index = y_start * width * 6
    vert_index = y_start * (width + 1)

    for y in range(y_start, y_stop):
        for x in range(width):
            triangles[tri_index + 0] = vert_index + 0
            triangles[tri_index + 1] = vert_index + width + 1
            triangles[tri_index + 2] = vert_index + 1
            triangles[tri_index + 3] = vert_index + 1
            triangles[tri_index + 4] = vert_index + width + 1
            triangles[tri_index + 5] = vert_index + width + 2

            vert_index += 1
            tri_index += 6

        # Skip the last vertex of the row; it starts no cell.
        vert_index += 1

def _row_bands(rows: int, parts: int) -> list[tuple[int, int]]:
    """Splits [0, rows) into at most `parts` contiguous, disjoint bands."""
    edges = np.linspace(0, rows, parts + 1).astype(int)
    return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]


class TerrainMesh:
    """
    A finished terrain mesh. It exposes read-only views of the arrays it is
    given; the caller's own references stay writable.
    """
    def __init__(self, vertices: np.ndarray, indices: np.ndarray, width: int, depth: int):
        self.vertices = vertices.view()
        self.indices = indices.view()
        self.vertices.flags.writeable = False
        self.indices.flags.writeable = False
        self.width = width
        self.depth = depth

    @property
    def vertex_count(self) -> int:
        return self.vertices.shape[0]

    @property
    def index_count(self) -> int:
        return self.indices.shape[0]

    @property
    def triangles(self) -> np.ndarray:
        """The index list viewed as (triangle_count, 3)."""
        return self.indices.reshape(-1, 3)

    def heights(self) -> np.ndarray:
        """Vertex heights as a (depth + 1, width + 1) grid."""
        return self.vertices[:, 1].reshape(self.depth + 1, self.width + 1)

    def uvs(self) -> np.ndarray:
        """Texture coordinates (x / width, z / depth) for draping the heightmap."""
        scale = np.array([self.width, self.depth], dtype=np.float64)
        return (self.vertices[:, [0, 2]] / scale).astype(VERTEX_DTYPE)

    def compute_normals(self) -> np.ndarray:
        """
        Per-vertex normals, accumulated from the unnormalized face normals so
        that larger triangles weigh more. A flat grid yields (0, 1, 0).
        """
        v = self.vertices.astype(np.float64)
        tris = self.triangles
        a, b, c = v[tris[:, 0]], v[tris[:, 1]], v[tris[:, 2]]
        face_normals = np.cross(b - a, c - a)

        normals = np.zeros_like(v)
        for corner in range(3):
            np.add.at(normals, tris[:, corner], face_normals)

        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        np.divide(normals, lengths, out=normals, where=lengths > 0)
        return normals.astype(VERTEX_DTYPE)

    def __repr__(self):
        return f"TerrainMesh({self.width}x{self.depth}, {self.vertex_count} vertices, {self.index_count} indices)"


class RowProgress(NamedTuple):
    """Emitted by an incremental build after each vertex row is complete."""
    row: int
    rows_completed: int
    total_rows: int


class TerrainMeshBuilder:
    """
    Builds a TerrainMesh from a NoiseField, either as one (optionally
    parallel) batch or row by row.
    """
    def __init__(
        self,
        width: int,
        depth: int,
        field: NoiseField,
        vertical_scale: float = DEFAULTS.DEFAULT_VERTICAL_SCALE,
        sample_scale: float = None,
        logger: logging.Logger = None,
    ):
        """
        Validates the grid before any sampling happens.

        Args:
            width (int): Number of cells along x.
            depth (int): Number of cells along z.
            field (NoiseField): The height function.
            vertical_scale (float): Multiplier for the noise height.
            sample_scale (float, optional): Divisor for grid coordinates.
                Defaults to the field's noise scale.
            logger (logging.Logger, optional): Logger for build messages.
        """
        self.logger = logger or logging.getLogger(__name__)

        for name, value in (("width", width), ("depth", depth)):
            if not isinstance(value, Integral) or isinstance(value, bool) or value <= 0:
                raise InvalidConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(field, NoiseField):
            raise InvalidConfigurationError(f"field must be a NoiseField, got {type(field).__name__}")
        if sample_scale is None:
            sample_scale = field.config.scale
        for name, value in (("vertical_scale", vertical_scale), ("sample_scale", sample_scale)):
            if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
                raise InvalidConfigurationError(f"{name} must be a finite number, got {value!r}")
        if sample_scale == 0:
            raise InvalidConfigurationError("sample_scale must not be 0")

        vertex_count = (int(width) + 1) * (int(depth) + 1)
        if vertex_count > DEFAULTS.MAX_INDEXED_VERTICES:
            raise InvalidConfigurationError(
                f"a {width}x{depth} grid has {vertex_count} vertices, more than 32-bit indices can address"
            )

        self.width = int(width)
        self.depth = int(depth)
        self.field = field
        self.vertical_scale = float(vertical_scale)
        self.sample_scale = float(sample_scale)

    @property
    def vertex_count(self) -> int:
        return (self.width + 1) * (self.depth + 1)

    @property
    def index_count(self) -> int:
        return self.width * self.depth * 6

    def _allocate(self) -> tuple[np.ndarray, np.ndarray]:
        vertices = np.empty((self.vertex_count, 3), dtype=VERTEX_DTYPE)
        indices = np.empty(self.index_count, dtype=INDEX_DTYPE)
        return vertices, indices

    def _fill_vertices(self, vertices: np.ndarray, z_start: int, z_stop: int):
        heights = np.empty((z_stop - z_start, self.width + 1))
        self.field.fill_height_rows(self.width + 1, z_start, z_stop, self.sample_scale, heights)
        _fill_vertex_rows(heights, self.width, z_start, self.vertical_scale, vertices)

    def _fill_indices(self, indices: np.ndarray, y_start: int, y_stop: int):
        _fill_index_rows(self.width, y_start, y_stop, indices)

    def build(self, workers: int = DEFAULTS.DEFAULT_MESH_WORKERS) -> TerrainMesh:
        """
        Builds the whole mesh in one call. Grids of at least
        PARALLEL_MIN_VERTICES vertices are split into row bands and built on
        `workers` threads; each band writes a disjoint slice of the output.
        """
        if workers is None:
            workers = os.cpu_count() or 1
        if not isinstance(workers, Integral) or workers < 1:
            raise InvalidConfigurationError(f"workers must be a positive integer, got {workers!r}")

        start_time = time.perf_counter()
        vertices, indices = self._allocate()
        vertex_rows = self.depth + 1

        if workers == 1 or self.vertex_count < DEFAULTS.PARALLEL_MIN_VERTICES:
            self._fill_vertices(vertices, 0, vertex_rows)
            self._fill_indices(indices, 0, self.depth)
            used_workers = 1
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._fill_vertices, vertices, z_start, z_stop)
                    for z_start, z_stop in _row_bands(vertex_rows, workers)
                ]
                futures += [
                    executor.submit(self._fill_indices, indices, y_start, y_stop)
                    for y_start, y_stop in _row_bands(self.depth, workers)
                ]
                # Re-raises the first worker exception, if any.
                for future in futures:
                    future.result()
            used_workers = workers

        mesh = TerrainMesh(vertices, indices, self.width, self.depth)
        self.logger.info(
            f"Built {self.width}x{self.depth} terrain mesh ({mesh.vertex_count} vertices, "
            f"{mesh.index_count} indices) on {used_workers} thread(s) in "
            f"{time.perf_counter() - start_time:.3f} seconds."
        )
        return mesh

    def iter_rows(self) -> "IncrementalMeshBuild":
        """Returns a lazy, cancellable row-by-row build of the same mesh."""
        return IncrementalMeshBuild(self)


class IncrementalMeshBuild:
    """
    Produces the mesh one vertex row at a time. Iterating yields a RowProgress
    per row. Calling cancel() or abandoning the iteration (break, close())
    before the last row cancels the build for good.
    The mesh is only available from result() once every row is built.
    """
    def __init__(self, builder: TerrainMeshBuilder):
        self._builder = builder
        self._vertices, self._indices = builder._allocate()
        self._next_row = 0
        self._cancelled = False
        self._mesh = None

    @property
    def total_rows(self) -> int:
        return self._builder.depth + 1

    @property
    def rows_completed(self) -> int:
        return self._next_row

    @property
    def done(self) -> bool:
        return self._mesh is not None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Stops the build. The partial arrays are discarded."""
        if self._mesh is None:
            self._cancelled = True
            self._builder.logger.info(
                f"Incremental mesh build cancelled after {self._next_row}/{self.total_rows} rows."
            )

    def completed_vertices(self) -> np.ndarray:
        """Read-only view of the vertices of the rows built so far, for previews."""
        view = self._vertices[:self._next_row * (self._builder.width + 1)]
        view.flags.writeable = False
        return view

    def completed_indices(self) -> np.ndarray:
        """Read-only view of the indices whose vertices are all built."""
        finished_cell_rows = max(self._next_row - 1, 0)
        view = self._indices[:finished_cell_rows * self._builder.width * 6]
        view.flags.writeable = False
        return view

    def __iter__(self) -> Iterator[RowProgress]:
        builder = self._builder
        while not self._cancelled and self._next_row < self.total_rows:
            z = self._next_row
            builder._fill_vertices(self._vertices, z, z + 1)
            if z > 0:
                # Cell row z-1 is complete once both of its vertex rows exist.
                builder._fill_indices(self._indices, z - 1, z)
            self._next_row += 1
            if self._next_row == self.total_rows:
                self._mesh = TerrainMesh(self._vertices, self._indices, builder.width, builder.depth)
                builder.logger.info(f"Incremental mesh build complete: {self._mesh!r}")
            try:
                yield RowProgress(z, self._next_row, self.total_rows)
            except GeneratorExit:
                # Abandoned by the caller; cancel() keeps a finished mesh.
                self.cancel()
                raise

    def run(self) -> TerrainMesh:
        """Drains the remaining rows and returns the mesh."""
        for _ in self:
            pass
        return self.result()

    def result(self) -> TerrainMesh:
        if self._mesh is None:
            state = "cancelled" if self._cancelled else "unfinished"
            raise MeshBuildIncompleteError(
                f"mesh build is {state} ({self._next_row}/{self.total_rows} rows built)"
            )
        return self._mesh


def build_terrain_mesh(
    width: int,
    depth: int,
    field: NoiseField,
    vertical_scale: float = DEFAULTS.DEFAULT_VERTICAL_SCALE,
    sample_scale: float = None,
    workers: int = DEFAULTS.DEFAULT_MESH_WORKERS,
    logger: logging.Logger = None,
) -> TerrainMesh:
    """Convenience wrapper: validate, then build eagerly."""
    builder = TerrainMeshBuilder(width, depth, field, vertical_scale, sample_scale, logger)
    return builder.build(workers=workers)
