import numpy as np
import pytest

from terrain_generator import (
    InvalidConfigurationError,
    MeshBuildIncompleteError,
    NoiseConfig,
    NoiseField,
    RowProgress,
    TerrainMesh,
    TerrainMeshBuilder,
    build_terrain_mesh,
)


def test_scenario_seed_42_four_by_four(scenario_field):
    mesh = build_terrain_mesh(4, 4, scenario_field, vertical_scale=10.0, sample_scale=20.0)
    assert mesh.vertex_count == 25
    assert mesh.index_count == 96
    assert tuple(mesh.vertices[0]) == (0.0, 0.0, 0.0)


def test_origin_vertex_is_zero_for_any_vertical_scale(scenario_field):
    for vertical_scale in (0.0, 1.0, 250.0, -3.0):
        mesh = build_terrain_mesh(2, 3, scenario_field, vertical_scale=vertical_scale, sample_scale=20.0)
        assert tuple(mesh.vertices[0]) == (0.0, 0.0, 0.0)


@pytest.mark.parametrize("width, depth", [(1, 1), (3, 7), (10, 2), (16, 16)])
def test_mesh_size_invariants(field, width, depth):
    mesh = build_terrain_mesh(width, depth, field)
    assert mesh.vertex_count == (width + 1) * (depth + 1)
    assert mesh.index_count == width * depth * 6
    assert mesh.indices.min() >= 0
    assert mesh.indices.max() < mesh.vertex_count
    assert mesh.triangles.shape == (width * depth * 2, 3)


def test_index_winding_matches_cell_formula(field):
    width, depth = 5, 3
    mesh = build_terrain_mesh(width, depth, field)
    expected = []
    for y in range(depth):
        for x in range(width):
            v = y * (width + 1) + x
            expected += [v, v + width + 1, v + 1, v + 1, v + width + 1, v + width + 2]
    np.testing.assert_array_equal(mesh.indices, expected)
    assert list(mesh.indices[:6]) == [0, 6, 1, 1, 6, 7]


def test_vertices_are_row_major_grid_with_sampled_heights(field):
    width, depth, vertical_scale, sample_scale = 6, 4, 12.5, 3.0
    mesh = build_terrain_mesh(width, depth, field, vertical_scale=vertical_scale, sample_scale=sample_scale)
    np.testing.assert_array_equal(mesh.vertices[:, 0], np.tile(np.arange(width + 1), depth + 1))
    np.testing.assert_array_equal(mesh.vertices[:, 2], np.repeat(np.arange(depth + 1), width + 1))
    heights = mesh.heights()
    for z in range(depth + 1):
        for x in range(width + 1):
            expected = field.sample(x / sample_scale, z / sample_scale) * vertical_scale
            assert heights[z, x] == np.float32(expected)


def test_sample_scale_defaults_to_noise_scale(field):
    builder = TerrainMeshBuilder(3, 3, field)
    assert builder.sample_scale == field.config.scale


@pytest.mark.parametrize("width, depth, sample_scale", [
    (0, 4, 20.0),
    (4, 0, 20.0),
    (-1, 4, 20.0),
    (2.5, 4, 20.0),
    (4, 4, 0.0),
    (4, 4, float("nan")),
])
def test_invalid_grid_is_rejected(scenario_field, width, depth, sample_scale):
    with pytest.raises(InvalidConfigurationError):
        build_terrain_mesh(width, depth, scenario_field, sample_scale=sample_scale)


def test_builder_requires_a_noise_field():
    with pytest.raises(InvalidConfigurationError):
        TerrainMeshBuilder(4, 4, field=lambda x, y: 0.0)


def test_invalid_worker_count_is_rejected(field):
    with pytest.raises(InvalidConfigurationError):
        TerrainMeshBuilder(4, 4, field).build(workers=0)


def test_thread_count_does_not_change_output(field):
    # 81 x 81 vertices is above the parallel threshold.
    builder = TerrainMeshBuilder(80, 80, field, vertical_scale=7.0, sample_scale=9.0)
    reference = builder.build(workers=1)
    for workers in (2, 3, 8):
        mesh = builder.build(workers=workers)
        np.testing.assert_array_equal(mesh.vertices, reference.vertices)
        np.testing.assert_array_equal(mesh.indices, reference.indices)


def test_incremental_build_matches_eager_build(field):
    builder = TerrainMeshBuilder(80, 70, field, vertical_scale=4.0, sample_scale=11.0)
    eager = builder.build(workers=4)
    incremental = builder.iter_rows().run()
    assert incremental.vertices.tobytes() == eager.vertices.tobytes()
    assert incremental.indices.tobytes() == eager.indices.tobytes()


def test_incremental_build_yields_one_event_per_row(field):
    build = TerrainMeshBuilder(5, 3, field).iter_rows()
    events = list(build)
    assert events == [RowProgress(z, z + 1, 4) for z in range(4)]
    assert build.done
    assert build.result().vertex_count == 24


def test_incremental_build_exposes_only_finished_rows(field):
    width = 5
    build = TerrainMeshBuilder(width, 3, field).iter_rows()
    rows = iter(build)
    next(rows)
    assert len(build.completed_vertices()) == width + 1
    assert len(build.completed_indices()) == 0
    next(rows)
    assert len(build.completed_vertices()) == 2 * (width + 1)
    assert len(build.completed_indices()) == width * 6
    with pytest.raises(MeshBuildIncompleteError):
        build.result()


def test_cancelled_build_returns_no_mesh(field):
    build = TerrainMeshBuilder(4, 10, field).iter_rows()
    for progress in build:
        if progress.rows_completed == 3:
            build.cancel()
    assert build.cancelled
    assert build.rows_completed == 3
    assert not build.done
    with pytest.raises(MeshBuildIncompleteError):
        build.result()


def test_breaking_out_of_the_rows_cancels_the_build(field):
    build = TerrainMeshBuilder(4, 10, field).iter_rows()
    for progress in build:
        if progress.rows_completed == 2:
            break
    assert build.cancelled
    assert list(build) == []
    assert build.rows_completed == 2
    with pytest.raises(MeshBuildIncompleteError):
        build.result()


def test_closing_the_row_iterator_cancels_the_build(field):
    build = TerrainMeshBuilder(4, 10, field).iter_rows()
    rows = iter(build)
    next(rows)
    rows.close()
    assert build.cancelled
    assert not build.done


def test_closing_after_the_last_row_keeps_the_mesh(field):
    build = TerrainMeshBuilder(2, 2, field).iter_rows()
    rows = iter(build)
    for _ in range(build.total_rows):
        next(rows)
    rows.close()
    assert not build.cancelled
    assert build.result().vertex_count == 9


def test_mesh_arrays_are_read_only(field):
    mesh = build_terrain_mesh(3, 3, field)
    with pytest.raises(ValueError):
        mesh.vertices[0, 1] = 5.0
    with pytest.raises(ValueError):
        mesh.indices[0] = 2


def test_mesh_does_not_lock_the_callers_arrays():
    vertices = np.zeros((4, 3), dtype=np.float32)
    indices = np.array([0, 2, 1, 1, 2, 3], dtype=np.int32)
    mesh = TerrainMesh(vertices, indices, 1, 1)
    assert vertices.flags.writeable
    assert indices.flags.writeable
    assert not mesh.vertices.flags.writeable
    assert not mesh.indices.flags.writeable


def test_flat_terrain_normals_point_up(field):
    mesh = build_terrain_mesh(4, 3, field, vertical_scale=0.0)
    np.testing.assert_allclose(mesh.compute_normals(), np.tile([0.0, 1.0, 0.0], (mesh.vertex_count, 1)))


def test_normals_are_unit_length(field):
    mesh = build_terrain_mesh(12, 9, field, vertical_scale=30.0, sample_scale=4.0)
    normals = mesh.compute_normals()
    np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0, rtol=1e-5)
    assert (normals[:, 1] > 0).all()


def test_uvs_span_the_unit_square(field):
    mesh = build_terrain_mesh(4, 2, field)
    uvs = mesh.uvs()
    assert uvs.shape == (mesh.vertex_count, 2)
    np.testing.assert_allclose(uvs[0], [0.0, 0.0])
    np.testing.assert_allclose(uvs[-1], [1.0, 1.0])
    np.testing.assert_allclose(uvs[4], [1.0, 0.0])


def test_zero_persistence_mesh_matches_single_octave():
    single = NoiseField.build(NoiseConfig(octaves=1, persistence=0.0, seed=8))
    many = NoiseField.build(NoiseConfig(octaves=8, persistence=0.0, seed=8))
    a = build_terrain_mesh(10, 10, single, sample_scale=3.5)
    b = build_terrain_mesh(10, 10, many, sample_scale=3.5)
    np.testing.assert_array_equal(a.vertices, b.vertices)
