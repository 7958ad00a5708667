from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union
import math
import numpy as np

from topomesh.errors import InputLengthMismatch


@dataclass
class GeographicBounds:
    min_long: float
    min_lat: float
    max_long: float
    max_lat: float

    def contains(self, longitude: float, latitude: float) -> bool:
        return (self.min_long <= longitude <= self.max_long
                and self.min_lat <= latitude <= self.max_lat)


@dataclass
class ProcessedElevationData:
    normalized_elevations: np.ndarray
    raw_elevations: np.ndarray
    width: int
    height: int
    min_elevation: float
    max_elevation: float
    geographic_bounds: Optional[GeographicBounds] = None

    def __post_init__(self):
        n = self.width*self.height
        assert len(self.raw_elevations) == len(self.normalized_elevations) == n

    @property
    def elevation_range(self) -> float:
        return self.max_elevation - self.min_elevation

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> int:
        return y*self.width + x


def process_elevation_data(*,
                           elevations: Union[np.ndarray, Sequence[float]],
                           width: int,
                           height: int,
                           geographic_bounds: Optional[GeographicBounds] = None) -> ProcessedElevationData:
    """
    Rescale elevations linearly to [0, 1] using the grid's own minimum and maximum.

    A flat grid has no range to rescale by and maps to all zeros.
    """
    raw = np.asarray(elevations, dtype=np.float32).reshape(-1)
    if len(raw) != width*height:
        raise InputLengthMismatch(f"Expected {width}x{height}={width*height} elevations, got {len(raw)}")
    min_elevation = float(raw.min())
    max_elevation = float(raw.max())
    elevation_range = max_elevation - min_elevation
    if elevation_range > 0:
        normalized = ((raw - min_elevation)/elevation_range).astype(np.float32)
    else:
        normalized = np.zeros_like(raw)
    return ProcessedElevationData(normalized_elevations=normalized,
                                  raw_elevations=raw,
                                  width=width,
                                  height=height,
                                  min_elevation=min_elevation,
                                  max_elevation=max_elevation,
                                  geographic_bounds=geographic_bounds)


def get_elevation_at_point(processed: ProcessedElevationData, x: int, y: int) -> Optional[float]:
    if not processed.contains(x, y):
        return None
    return float(processed.raw_elevations[processed.index(x, y)])


def get_normalized_elevation_at_point(processed: ProcessedElevationData, x: int, y: int) -> Optional[float]:
    if not processed.contains(x, y):
        return None
    return float(processed.normalized_elevations[processed.index(x, y)])


def _bounds(processed: ProcessedElevationData) -> GeographicBounds:
    if processed.geographic_bounds is None:
        raise ValueError("Elevation data has no geographic bounds.")
    return processed.geographic_bounds


def geo_to_pixel(processed: ProcessedElevationData,
                 longitude: float,
                 latitude: float) -> Optional[Tuple[int, int]]:
    """ Pixel (x, y) containing the geographic coordinate, or None if outside the bounds. """
    bounds = _bounds(processed)
    if not bounds.contains(longitude, latitude):
        return None

    x = math.floor((longitude - bounds.min_long)/(bounds.max_long - bounds.min_long)*(processed.width - 1))
    y = math.floor((latitude - bounds.min_lat)/(bounds.max_lat - bounds.min_lat)*(processed.height - 1))
    return x, y


def pixel_to_geo(processed: ProcessedElevationData, x: int, y: int) -> Optional[Tuple[float, float]]:
    """ Geographic (longitude, latitude) of a pixel, or None if outside the grid. """
    if not processed.contains(x, y):
        return None
    bounds = _bounds(processed)

    longitude = bounds.min_long + x/(processed.width - 1)*(bounds.max_long - bounds.min_long)
    latitude = bounds.min_lat + y/(processed.height - 1)*(bounds.max_lat - bounds.min_lat)
    return longitude, latitude
