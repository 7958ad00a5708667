import os
from pathlib import Path

topomesh_data_dir = Path(os.environ.get("TOPOMESH_DATA_DIR", "."))

from topomesh.errors import MeshInputError, InvalidDimension, InvalidTessellation, InputLengthMismatch
from topomesh.color_ramp import ColorRamp, ColorStop, terrain_color_ramp
from topomesh.mesh import ComputeMethod, MeshBuffers, MeshGenerator, mesh_compute
