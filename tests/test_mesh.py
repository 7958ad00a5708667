import logging
import pytest
import numpy as np
from numpy import array, float32, sqrt
from numpy.random import rand
from numpy.linalg import norm

from topomesh import mesh as mesh_module
from topomesh.errors import MeshInputError, InvalidDimension, InvalidTessellation, InputLengthMismatch
from topomesh.mesh import ComputeMethod, MeshBuffers, MeshGenerator, mesh_compute, expected_vertex_count
from topomesh.normals import calculate_normal
from topomesh.color_ramp import terrain_color_ramp


@pytest.fixture
def single_cell():
    return array([0, 0, 0, 1], dtype=float32), 2, 2


@pytest.fixture
def terrain():
    width, height = 7, 5
    x, y = np.meshgrid(np.linspace(0, 1, width), np.linspace(0, 1, height))
    elevations = 0.5 + 0.4*np.sin(3*x)*np.cos(2*y)
    return elevations.astype(float32).reshape(-1), width, height


@pytest.mark.parametrize("method", list(ComputeMethod))
def test_single_cell(single_cell, method):
    elevations, width, height = single_cell
    buffers = mesh_compute(elevations, width, height, 1, compute_method=method)

    assert buffers.vertex_count == 6
    assert buffers.compute_method == method

    tl, tr, bl, br = (-1, -1, 0), (1, -1, 0), (-1, 1, 0), (1, 1, 1)
    assert np.allclose(buffers.points, [tl, tr, bl, tr, br, bl])

    n1 = [0, 0, 1]
    n2 = array([-1, -1, 2])/sqrt(6)
    assert np.allclose(buffers.vertex_normals, [n1, n1, n1, n2, n2, n2])
    assert np.allclose(n2, calculate_normal(tr, br, bl))

    low, high = (0.6, 0.6, 0.95), (1.0, 1.0, 1.0)
    assert np.allclose(buffers.vertex_colors, [low, low, low, low, high, low])


@pytest.mark.parametrize("method", list(ComputeMethod))
@pytest.mark.parametrize("width, height, factor", [(2, 2, 1), (3, 4, 2), (5, 2, 3)])
def test_cardinality(width, height, factor, method):
    buffers = mesh_compute(rand(width*height), width, height, factor, compute_method=method)
    n = (width*factor - 1)*(height*factor - 1)*6
    assert buffers.vertex_count == n == expected_vertex_count(width=width, height=height, tessellation_factor=factor)
    assert len(buffers.vertices) == len(buffers.colors) == len(buffers.normals) == 3*n
    assert buffers.vertices.dtype == buffers.colors.dtype == buffers.normals.dtype == float32
    assert buffers.num_faces == n//3
    assert buffers.faces.shape == (n//3, 3)


def test_flat_normals(terrain):
    buffers = mesh_compute(*terrain, tessellation_factor=2)
    normals = buffers.vertex_normals.reshape(-1, 3, 3)
    assert np.allclose(normals[:, 0], normals[:, 1])
    assert np.allclose(normals[:, 0], normals[:, 2])
    assert np.allclose(norm(buffers.vertex_normals, axis=1), 1, atol=1e-6)

    points = buffers.points.astype('d')
    for face, normal in zip(buffers.faces[:20], normals[:20, 0]):
        assert np.allclose(normal, calculate_normal(*points[face]), atol=1e-6)


def test_positions_and_colors(terrain):
    elevations, width, height = terrain
    buffers = mesh_compute(elevations, width, height)
    x, y, z = buffers.points.T
    assert x.min() == y.min() == -1
    assert x.max() == y.max() == 1
    assert np.isclose(z.min(), elevations.min())
    assert np.isclose(z.max(), elevations.max())

    ramp = terrain_color_ramp()
    for point, color in zip(buffers.points[:30], buffers.vertex_colors[:30]):
        assert np.allclose(color, ramp(float(point[2])), atol=1e-6)


def test_compute_methods_agree(terrain):
    numpy_buffers = mesh_compute(*terrain, tessellation_factor=3, compute_method=ComputeMethod.NUMPY)
    python_buffers = mesh_compute(*terrain, tessellation_factor=3, compute_method="python")
    assert numpy_buffers.vertex_count == python_buffers.vertex_count
    assert np.allclose(numpy_buffers.vertices, python_buffers.vertices, atol=1e-6)
    assert np.allclose(numpy_buffers.normals, python_buffers.normals, atol=1e-6)
    assert np.allclose(numpy_buffers.colors, python_buffers.colors, atol=1e-6)


def test_raw_elevations_outside_unit_range():
    buffers = mesh_compute([-1.0, -1.0, 2.0, 2.0], 2, 2)
    # Unbracketed values fall through to the top colour at both ends
    assert np.allclose(buffers.vertex_colors, 1.0)


@pytest.mark.parametrize("kwargs, error", [
    (dict(elevations=[0, 0], width=1, height=2), InvalidDimension),
    (dict(elevations=[0, 0], width=2, height=1), InvalidDimension),
    (dict(elevations=[0, 0, 0, 1], width=2.0, height=2), InvalidDimension),
    (dict(elevations=[0, 0, 0, 1], width=2, height=True), InvalidDimension),
    (dict(elevations=[0, 0, 0, 0], width=2, height=2, tessellation_factor=0), InvalidTessellation),
    (dict(elevations=[0, 0, 0, 0], width=2, height=2, tessellation_factor=-2), InvalidTessellation),
    (dict(elevations=[0, 0, 0, 0], width=2, height=2, tessellation_factor=1.5), InvalidTessellation),
    (dict(elevations=[0, 0, 0], width=2, height=2), InputLengthMismatch),
])
def test_invalid_input(kwargs, error, monkeypatch):
    def fail(**kwargs):
        raise AssertionError("Interpolation started on invalid input")

    monkeypatch.setattr(mesh_module, "interpolate_elevations", fail)
    monkeypatch.setattr(mesh_module, "interpolate_elevations_per_cell", fail)
    with pytest.raises(error):
        mesh_compute(**kwargs)
    assert issubclass(error, MeshInputError) and issubclass(error, ValueError)


def test_unknown_compute_method(single_cell):
    with pytest.raises(ValueError):
        mesh_compute(*single_cell, compute_method="gpu")


def test_mesh_buffers_invariant():
    with pytest.raises(AssertionError):
        MeshBuffers(vertices=np.zeros(9), colors=np.zeros(9), normals=np.zeros(6), vertex_count=3)


def test_read_only_views(single_cell):
    buffers = mesh_compute(*single_cell)
    with pytest.raises(ValueError):
        buffers.points[0, 0] = 2.0
    assert buffers.vertices[0] == -1


def test_mesh_generator(terrain, caplog):
    generator = MeshGenerator(tessellation_factor=2, compute_method="python")
    with caplog.at_level(logging.INFO):
        buffers = generator.generate_mesh(*terrain)
    assert buffers.compute_method == ComputeMethod.PYTHON
    assert buffers.vertex_count == expected_vertex_count(width=7, height=5, tessellation_factor=2)
    assert "python" in caplog.text
