""" Input validation errors raised by the mesh pipeline."""


class MeshInputError(ValueError):
    pass


class InvalidDimension(MeshInputError):
    """ Grid width or height is smaller than two samples. """


class InvalidTessellation(MeshInputError):
    """ Tessellation factor is not a positive integer. """


class InputLengthMismatch(MeshInputError):
    """ Number of elevation samples differs from width*height. """
