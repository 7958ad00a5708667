import pytest
import numpy as np
from numpy.random import rand

from topomesh.errors import InvalidDimension
from topomesh.interpolate import interpolate_elevations, interpolate_elevations_per_cell


@pytest.fixture
def grid():
    width, height = 5, 4
    return rand(width*height), width, height


def bilinear(x, y):
    return 1.5 + 2*x - 3*y + 0.5*x*y


@pytest.mark.parametrize("interpolate", [interpolate_elevations, interpolate_elevations_per_cell])
def test_identity(grid, interpolate):
    elevations, width, height = grid
    result = interpolate(elevations=elevations, width=width, height=height, new_width=width, new_height=height)
    assert np.array_equal(np.asarray(result), elevations)


@pytest.mark.parametrize("interpolate", [interpolate_elevations, interpolate_elevations_per_cell])
def test_original_samples_preserved(interpolate):
    width, height, factor = 3, 3, 3
    elevations = rand(width*height)
    new_width, new_height = width*factor, height*factor
    result = np.asarray(interpolate(elevations=elevations, width=width, height=height,
                                    new_width=new_width, new_height=new_height))
    assert len(result) == new_width*new_height

    # orig = x*(width - 1)/(new_width - 1) is integral for x = 0, 4, 8
    step = (new_width - 1)//(width - 1)
    for j in range(height):
        for i in range(width):
            assert result[j*step*new_width + i*step] == elevations[j*width + i]


def test_bilinear_function_reproduced():
    width, height, factor = 4, 3, 2
    x, y = np.meshgrid(np.arange(width), np.arange(height))
    elevations = bilinear(x, y).reshape(-1)
    new_width, new_height = width*factor, height*factor

    result = interpolate_elevations(elevations=elevations, width=width, height=height,
                                    new_width=new_width, new_height=new_height)

    xs = np.arange(new_width)*(width - 1)/(new_width - 1)
    ys = np.arange(new_height)*(height - 1)/(new_height - 1)
    X, Y = np.meshgrid(xs, ys)
    assert np.allclose(result, bilinear(X, Y).reshape(-1))


def test_vectorised_matches_per_cell(grid):
    elevations, width, height = grid
    kwargs = dict(elevations=elevations, width=width, height=height, new_width=13, new_height=7)
    assert np.allclose(interpolate_elevations(**kwargs), interpolate_elevations_per_cell(**kwargs))


@pytest.mark.parametrize("interpolate", [interpolate_elevations, interpolate_elevations_per_cell])
def test_degenerate_target(grid, interpolate):
    elevations, width, height = grid
    with pytest.raises(InvalidDimension):
        interpolate(elevations=elevations, width=width, height=height, new_width=1, new_height=4)
    with pytest.raises(InvalidDimension):
        interpolate(elevations=elevations, width=width, height=height, new_width=4, new_height=1)
