import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional, Tuple
import numpy as np

from topomesh import topomesh_data_dir
from topomesh.color_ramp import ColorRamp, terrain_color_ramp
from topomesh.elevation import GeographicBounds, process_elevation_data
from topomesh.mesh import ComputeMethod, MeshGenerator
from topomesh.reader import read_raster_file


def _data_path(name: str) -> Path:
    path = Path(name)
    return path if path.is_absolute() else topomesh_data_dir / path


def load_elevations(*, filepath: Path) -> Tuple[np.ndarray, int, int, Optional[GeographicBounds]]:
    """
    Read an elevation grid from a GeoTIFF or a 2-D .npy array.

    :return: row-major elevations, width, height and geographic bounds (if known)
    """
    suffix = filepath.suffix.lower()
    if suffix in (".tif", ".tiff"):
        raster = read_raster_file(filepath=filepath)
        return raster.elevations, raster.width, raster.height, raster.geographic_bounds
    if suffix == ".npy":
        if not filepath.exists():
            raise FileNotFoundError(f"Elevation file {filepath.absolute()} not found.")
        array = np.load(filepath)
        if array.ndim != 2:
            raise ValueError(f"Expected a two-dimensional array in {filepath}, got shape {array.shape}")
        height, width = array.shape
        return array.astype(np.float32).reshape(-1), width, height, None
    raise ValueError(f"Cannot determine elevation file type of {filepath}")


def generate_mesh(argv: Optional[List[str]] = None) -> None:
    """
    Terrain mesh generation.

    Reads an elevation grid, rescales it to [0, 1] unless -raw is given, builds the
    flat shaded terrain mesh and writes it to -output (.js for a JavaScript module,
    otherwise any format meshio can write).
    """
    logging.basicConfig(level=logging.CRITICAL, format='Topomesh[%(levelname)s]: %(message)s')
    logger = logging.getLogger()

    arg_parser = argparse.ArgumentParser(description="Generate a colored terrain mesh from an elevation grid")
    arg_parser.add_argument("input", type=str, metavar="FILENAME", help="GeoTIFF (.tif) or numpy (.npy) elevation grid")
    arg_parser.add_argument("-output", type=str, default="terrain.vtu", help="Mesh file name")
    arg_parser.add_argument("-tessellation", type=int, default=2, help="Upsampling factor for the grid")
    arg_parser.add_argument("-method",
                            type=str,
                            default=ComputeMethod.NUMPY.value,
                            choices=[m.value for m in ComputeMethod],
                            help="Mesh computation backend")
    arg_parser.add_argument("-ramp", type=str, default="", help="Optional color ramp spec in yaml")
    arg_parser.add_argument("-raw", action="store_true", help="Use elevations as is instead of rescaling to [0, 1]")
    arg_parser.add_argument("-silent", action="store_true", help="Run in silent mode")
    res = arg_parser.parse_args(sys.argv[1:] if argv is None else argv)
    if not res.silent:
        logger.setLevel(logging.INFO)

    elevations, width, height, bounds = load_elevations(filepath=_data_path(res.input))
    processed = process_elevation_data(elevations=elevations,
                                       width=width,
                                       height=height,
                                       geographic_bounds=bounds)
    logger.info(f"Read {width}x{height} grid, elevations in [{processed.min_elevation}, {processed.max_elevation}]")
    if bounds is not None:
        logger.info(f"Geographic bounds: {bounds}")

    color_ramp = ColorRamp.from_yaml(_data_path(res.ramp)) if res.ramp else terrain_color_ramp()
    generator = MeshGenerator(tessellation_factor=res.tessellation,
                              compute_method=ComputeMethod(res.method),
                              color_ramp=color_ramp)
    source = processed.raw_elevations if res.raw else processed.normalized_elevations
    buffers = generator.generate_mesh(source, width, height)

    output = _data_path(res.output)
    buffers.write(output)
    logger.info(f"Successfully wrote terrain mesh with {buffers.num_faces} triangles to {output.absolute()}")
