from typing import Sequence, Tuple
import math
import numpy as np

Vec3 = Tuple[float, float, float]


def calculate_normal(v1: Sequence[float], v2: Sequence[float], v3: Sequence[float]) -> Vec3:
    """
    Unit normal of the triangle (v1, v2, v3), oriented by the right hand rule.
    A degenerate triangle gives the zero vector.
    """
    e1 = (v2[0] - v1[0], v2[1] - v1[1], v2[2] - v1[2])
    e2 = (v3[0] - v1[0], v3[1] - v1[1], v3[2] - v1[2])

    nx = e1[1]*e2[2] - e1[2]*e2[1]
    ny = e1[2]*e2[0] - e1[0]*e2[2]
    nz = e1[0]*e2[1] - e1[1]*e2[0]

    length = math.sqrt(nx*nx + ny*ny + nz*nz)
    if length == 0.0:
        return (0.0, 0.0, 0.0)
    return (nx/length, ny/length, nz/length)


def surface_normals(points: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """
    Flat normals for a batch of triangles.

    :param points: (n, 3) array of vertex positions
    :param faces: (m, 3) array of indices into points
    :return: (m, 3) array of unit normals, zero rows for degenerate faces
    """
    points = np.asarray(points, dtype="d")
    faces = np.asarray(faces)
    v1, v2, v3 = (points[faces[:, i]] for i in range(3))
    normals = np.cross(v2 - v1, v3 - v1)
    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths != 0.0
    normals[nonzero] /= lengths[nonzero, None]
    normals[~nonzero] = 0.0
    return normals
