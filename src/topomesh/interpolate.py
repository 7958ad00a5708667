from typing import List, Sequence, Union
import math
import numpy as np

from topomesh.errors import InvalidDimension


def _check_target_shape(new_width: int, new_height: int) -> None:
    if new_width < 2 or new_height < 2:
        raise InvalidDimension(f"Interpolated grid must be at least 2x2, got {new_width}x{new_height}")


def interpolate_elevations(*,
                           elevations: Union[np.ndarray, Sequence[float]],
                           width: int,
                           height: int,
                           new_width: int,
                           new_height: int) -> np.ndarray:
    """
    Bilinear resampling of a row-major width x height grid onto new_width x new_height
    samples spanning the same extent.

    :param elevations: row-major source samples, length width*height
    :return: row-major float64 array of length new_width*new_height
    """
    _check_target_shape(new_width, new_height)
    grid = np.asarray(elevations, dtype="d").reshape(height, width)

    orig_x = np.arange(new_width)*(width - 1)/(new_width - 1)
    orig_y = np.arange(new_height)*(height - 1)/(new_height - 1)
    x1 = np.floor(orig_x).astype(int)
    y1 = np.floor(orig_y).astype(int)
    x2 = np.minimum(x1 + 1, width - 1)
    y2 = np.minimum(y1 + 1, height - 1)
    dx = (orig_x - x1)[None, :]
    dy = (orig_y - y1)[:, None]

    z1 = grid[np.ix_(y1, x1)]
    z2 = grid[np.ix_(y1, x2)]
    z3 = grid[np.ix_(y2, x1)]
    z4 = grid[np.ix_(y2, x2)]

    result = (z1*(1 - dx)*(1 - dy)
              + z2*dx*(1 - dy)
              + z3*(1 - dx)*dy
              + z4*dx*dy)
    return result.reshape(-1)


def interpolate_elevations_per_cell(*,
                                    elevations: Sequence[float],
                                    width: int,
                                    height: int,
                                    new_width: int,
                                    new_height: int) -> List[float]:
    """ Same as interpolate_elevations, one target sample at a time in plain Python. """
    _check_target_shape(new_width, new_height)
    elevations = [float(e) for e in elevations]
    interpolated = []
    for y in range(new_height):
        for x in range(new_width):
            orig_x = x*(width - 1)/(new_width - 1)
            orig_y = y*(height - 1)/(new_height - 1)

            x1 = math.floor(orig_x)
            x2 = min(x1 + 1, width - 1)
            y1 = math.floor(orig_y)
            y2 = min(y1 + 1, height - 1)

            dx = orig_x - x1
            dy = orig_y - y1

            z1 = elevations[y1*width + x1]
            z2 = elevations[y1*width + x2]
            z3 = elevations[y2*width + x1]
            z4 = elevations[y2*width + x2]

            interpolated.append(z1*(1 - dx)*(1 - dy)
                                + z2*dx*(1 - dy)
                                + z3*(1 - dx)*dy
                                + z4*dx*dy)
    return interpolated
