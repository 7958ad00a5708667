from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Iterator
import numpy as np
import meshio

if TYPE_CHECKING:
    from topomesh.mesh import MeshBuffers


def float32_array_lines(*, name: str, triples: np.ndarray) -> Iterator[str]:
    """Declare name as a Float32Array holding the (n, 3) triples, one per line."""
    yield f"const {name} = new Float32Array( ["
    for x, y, z in np.asarray(triples, dtype="d").tolist():
        yield f"    {x!r}, {y!r}, {z!r},"
    yield "] );"


def write_mesh_javascript(*, buffers: "MeshBuffers", filepath: Path) -> None:
    """
    Write the buffers as an ES module exporting a meshData object with
    vertices, colors, normals and vertexCount, ready for a WebGL/WebGPU upload.
    """
    with filepath.open("w") as js_file:
        for name, field in (("vertices", buffers.points),
                            ("colors", buffers.vertex_colors),
                            ("normals", buffers.vertex_normals)):
            js_file.writelines(f"{line}\n" for line in float32_array_lines(name=name, triples=field))
        js_file.write(f"const vertexCount = {buffers.vertex_count};\n")
        js_file.write("export const meshData = {vertices, colors, normals, vertexCount};\n")


def write_mesh(*, buffers: "MeshBuffers", filepath: Path) -> None:
    """Write mesh buffers to file.

    A .js suffix gives a JavaScript module, anything else is handed to meshio
    (e.g. .vtk, .vtu, .ply, .obj) with normals and colors as point data.

    :param buffers: mesh to write
    :param filepath: output file
    """
    logger = getLogger()
    if filepath.suffix.lower() == ".js":
        write_mesh_javascript(buffers=buffers, filepath=filepath)
    else:
        mesh = meshio.Mesh(points=buffers.points,
                           cells=[("triangle", buffers.faces)],
                           point_data={"normals": buffers.vertex_normals,
                                       "colors": buffers.vertex_colors})
        try:
            mesh.write(str(filepath))
        except (meshio.ReadError, meshio.WriteError) as err:
            raise ValueError(f"Cannot write mesh to {filepath}: {err}") from err
    logger.info(f"Wrote {buffers.vertex_count} vertices to {filepath.absolute()}")
