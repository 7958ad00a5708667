from dataclasses import dataclass
from enum import Enum
from logging import getLogger
from numbers import Integral
from pathlib import Path
from typing import List, Optional, Sequence, Union
import time
import numpy as np

from topomesh.color_ramp import ColorRamp, terrain_color_ramp
from topomesh.errors import InvalidDimension, InvalidTessellation, InputLengthMismatch
from topomesh.interpolate import interpolate_elevations, interpolate_elevations_per_cell
from topomesh.normals import calculate_normal, surface_normals

# Corner order in a cell is top-left, top-right, bottom-left, bottom-right
QUAD_TRIANGLES = ((0, 1, 2), (1, 3, 2))
VERTICES_PER_CELL = 3*len(QUAD_TRIANGLES)


class ComputeMethod(Enum):
    NUMPY = "numpy"
    PYTHON = "python"


@dataclass
class MeshBuffers:
    vertices: np.ndarray
    colors: np.ndarray
    normals: np.ndarray
    vertex_count: int
    compute_method: ComputeMethod = ComputeMethod.NUMPY

    def __post_init__(self):
        n = 3*self.vertex_count
        lengths = len(self.vertices), len(self.colors), len(self.normals)
        assert lengths == (n, n, n), f"Expected buffers of length {n}, got {lengths}"

    @staticmethod
    def _as_triples(buffer: np.ndarray) -> np.ndarray:
        array = buffer.reshape(-1, 3)
        array.flags.writeable = False
        return array

    @property
    def points(self) -> np.ndarray:
        return self._as_triples(self.vertices)

    @property
    def vertex_colors(self) -> np.ndarray:
        return self._as_triples(self.colors)

    @property
    def vertex_normals(self) -> np.ndarray:
        return self._as_triples(self.normals)

    @property
    def faces(self) -> np.ndarray:
        # Vertices are not shared, so triangle i is made of vertices 3i, 3i+1, 3i+2
        return np.arange(self.vertex_count, dtype="i").reshape(-1, 3)

    @property
    def num_faces(self) -> int:
        return self.vertex_count//3

    def write(self, filename: Union[str, Path]) -> None:
        """
        Write mesh to file, see topomesh.writer.write_mesh.
        """
        from topomesh.writer import write_mesh
        write_mesh(buffers=self, filepath=Path(filename))


def expected_vertex_count(*, width: int, height: int, tessellation_factor: int) -> int:
    return (width*tessellation_factor - 1)*(height*tessellation_factor - 1)*VERTICES_PER_CELL


def _is_integer(value) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def validate_input(*,
                   num_elevations: int,
                   width: int,
                   height: int,
                   tessellation_factor: int) -> None:
    if not (_is_integer(width) and _is_integer(height)) or width < 2 or height < 2:
        raise InvalidDimension(f"Elevation grid must be at least 2x2, got {width!r}x{height!r}")
    if not _is_integer(tessellation_factor) or tessellation_factor < 1:
        raise InvalidTessellation(f"Tessellation factor must be a positive integer, got {tessellation_factor!r}")
    if num_elevations != width*height:
        raise InputLengthMismatch(f"Expected {width}x{height}={width*height} elevations, got {num_elevations}")


def _normalized_coordinates(size: int) -> np.ndarray:
    return np.arange(size)/(size - 1)*2 - 1


def tessellate(*,
               grid: np.ndarray,
               width: int,
               height: int,
               color_ramp: ColorRamp) -> MeshBuffers:
    """
    Split every cell of a row-major width x height grid into two triangles with flat
    normals and elevation colours.

    Each cell owns a fixed slice of VERTICES_PER_CELL vertices in the output, so the
    buffers are filled in one pass without appending.
    """
    z = np.asarray(grid, dtype="d").reshape(height, width)
    xs = _normalized_coordinates(width)
    ys = _normalized_coordinates(height)
    num_cells = (width - 1)*(height - 1)

    corners = np.empty((height - 1, width - 1, 4, 3))
    corners[:, :, 0] = np.stack(np.broadcast_arrays(xs[None, :-1], ys[:-1, None], z[:-1, :-1]), axis=-1)
    corners[:, :, 1] = np.stack(np.broadcast_arrays(xs[None, 1:], ys[:-1, None], z[:-1, 1:]), axis=-1)
    corners[:, :, 2] = np.stack(np.broadcast_arrays(xs[None, :-1], ys[1:, None], z[1:, :-1]), axis=-1)
    corners[:, :, 3] = np.stack(np.broadcast_arrays(xs[None, 1:], ys[1:, None], z[1:, 1:]), axis=-1)
    points = corners.reshape(-1, 3)

    faces = (4*np.arange(num_cells)[:, None, None] + np.array(QUAD_TRIANGLES)[None, :, :]).reshape(-1, 3)
    face_normals = surface_normals(points, faces)

    positions = points[faces]
    normals = np.repeat(face_normals[:, None, :], 3, axis=1)
    colors = color_ramp.colors(positions[:, :, 2])

    vertex_count = num_cells*VERTICES_PER_CELL
    return MeshBuffers(vertices=positions.astype(np.float32).reshape(-1),
                       colors=colors.astype(np.float32).reshape(-1),
                       normals=normals.astype(np.float32).reshape(-1),
                       vertex_count=vertex_count,
                       compute_method=ComputeMethod.NUMPY)


def tessellate_per_cell(*,
                        grid: Sequence[float],
                        width: int,
                        height: int,
                        color_ramp: ColorRamp) -> MeshBuffers:
    """ Same as tessellate, one cell at a time in plain Python. """
    vertices: List[float] = []
    colors: List[float] = []
    normals: List[float] = []

    for y in range(height - 1):
        for x in range(width - 1):
            x1 = x/(width - 1)*2 - 1
            x2 = (x + 1)/(width - 1)*2 - 1
            y1 = y/(height - 1)*2 - 1
            y2 = (y + 1)/(height - 1)*2 - 1

            z1 = grid[y*width + x]
            z2 = grid[y*width + x + 1]
            z3 = grid[(y + 1)*width + x]
            z4 = grid[(y + 1)*width + x + 1]

            quad = ((x1, y1, z1), (x2, y1, z2), (x1, y2, z3), (x2, y2, z4))

            for indices in QUAD_TRIANGLES:
                normal = calculate_normal(*(quad[i] for i in indices))
                for i in indices:
                    vertex = quad[i]
                    vertices.extend(vertex)
                    normals.extend(normal)
                    colors.extend(color_ramp.color(vertex[2]))

    return MeshBuffers(vertices=np.array(vertices, dtype=np.float32),
                       colors=np.array(colors, dtype=np.float32),
                       normals=np.array(normals, dtype=np.float32),
                       vertex_count=len(vertices)//3,
                       compute_method=ComputeMethod.PYTHON)


def mesh_compute(elevations: Union[np.ndarray, Sequence[float]],
                 width: int,
                 height: int,
                 tessellation_factor: int = 1,
                 compute_method: ComputeMethod = ComputeMethod.NUMPY,
                 color_ramp: Optional[ColorRamp] = None) -> MeshBuffers:
    """
    Build a flat shaded, vertex coloured triangle mesh from an elevation grid.

    The grid is upsampled by tessellation_factor in both directions with bilinear
    interpolation, mapped onto [-1, 1]x[-1, 1] and split into two triangles per cell.
    Elevations are used as z and as the colour ramp argument without rescaling.

    :param elevations: row-major samples, width*height values
    :param width: number of samples per row, at least 2
    :param height: number of rows, at least 2
    :param tessellation_factor: positive integer upsampling factor
    :param compute_method: numpy (vectorised) or python (per cell)
    :param color_ramp: defaults to the terrain colour ramp
    :return: MeshBuffers with (width*f - 1)*(height*f - 1)*6 vertices
    """
    elevations = np.asarray(elevations)
    validate_input(num_elevations=elevations.size,
                   width=width,
                   height=height,
                   tessellation_factor=tessellation_factor)
    compute_method = ComputeMethod(compute_method)
    color_ramp = color_ramp or terrain_color_ramp()

    new_width = width*tessellation_factor
    new_height = height*tessellation_factor

    if compute_method == ComputeMethod.NUMPY:
        grid = interpolate_elevations(elevations=elevations.reshape(-1),
                                      width=width,
                                      height=height,
                                      new_width=new_width,
                                      new_height=new_height)
        return tessellate(grid=grid, width=new_width, height=new_height, color_ramp=color_ramp)

    grid = interpolate_elevations_per_cell(elevations=elevations.reshape(-1).tolist(),
                                           width=width,
                                           height=height,
                                           new_width=new_width,
                                           new_height=new_height)
    return tessellate_per_cell(grid=grid, width=new_width, height=new_height, color_ramp=color_ramp)


class MeshGenerator:

    def __init__(self,
                 tessellation_factor: int = 1,
                 compute_method: ComputeMethod = ComputeMethod.NUMPY,
                 color_ramp: Optional[ColorRamp] = None) -> None:
        self.tessellation_factor = tessellation_factor
        self.compute_method = ComputeMethod(compute_method)
        self.color_ramp = color_ramp or terrain_color_ramp()

    def generate_mesh(self,
                      elevations: Union[np.ndarray, Sequence[float]],
                      width: int,
                      height: int) -> MeshBuffers:
        logger = getLogger()
        start = time.perf_counter()
        buffers = mesh_compute(elevations,
                               width,
                               height,
                               tessellation_factor=self.tessellation_factor,
                               compute_method=self.compute_method,
                               color_ramp=self.color_ramp)
        elapsed = 1000*(time.perf_counter() - start)
        logger.info(f"Generated {buffers.vertex_count} vertices from a {width}x{height} grid "
                    f"using {self.compute_method.value} in {elapsed:.4f}ms")
        return buffers
