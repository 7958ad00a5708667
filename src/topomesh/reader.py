from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from pathlib import Path
import re

import numpy as np
import pyproj
from PIL import Image
from PIL.TiffImagePlugin import TiffImageFile

from topomesh.elevation import GeographicBounds


class GeoTiffTags(Enum):
    ModelTiePointTag = 33922
    ModelPixelScaleTag = 33550
    GeoKeyDirectoryTag = 34735


class KeyValueTags(Enum):
    # Where a GeoKey keeps its value:
    #    'short'  in the key directory itself
    #    'double' in tag 34736 at given offset
    #    'ascii'  in tag 34737 at offset:offset+count
    GeoShortParamsTag = 0
    GeoDoubleParamsTag = 34736
    GeoAsciiParamsTag = 34737


class GeoKeys(Enum):
    GTModelTypeGeoKey = 1024
    GTRasterTypeGeoKey = 1025
    GTCitationGeoKey = 1026

    GeographicTypeGeoKey = 2048
    GeogCitationGeoKey = 2049
    GeogGeodeticDatumGeoKey = 2050
    GeogPrimeMeridianGeoKey = 2051
    GeogAngularUnitsGeoKey = 2054
    GeogEllipsoidGeoKey = 2056
    GeogSemiMajorAxisGeoKey = 2057
    GeogSemiMinorAxisGeoKey = 2058
    GeogInvFlatteningGeoKey = 2059
    GeogPrimeMeridianLongGeoKey = 2061

    ProjectedCSTypeGeoKey = 3072
    PCSCitationGeoKey = 3073
    ProjectionGeoKey = 3074
    ProjCoordTransGeoKey = 3075
    ProjLinearUnitsGeoKey = 3076

    VerticalCSTypeGeoKey = 4096
    VerticalCitationGeoKey = 4097
    VerticalDatumGeoKey = 4098
    VerticalUnitsGeoKey = 4099


def _isinteger(obj: Any) -> bool:
    return np.issubdtype(type(obj), np.integer)


def extract_geo_keys(*, image: TiffImageFile) -> Dict[str, Any]:
    """ Extract GeoKeys from image and return as Python dictionary. """
    logger = getLogger()
    image_tags = image.tag_v2
    try:
        directory = np.asarray(image_tags[GeoTiffTags.GeoKeyDirectoryTag.value],
                               dtype="ushort").reshape((-1, 4))
    except KeyError:
        raise RuntimeError("Image is missing GeoKeyDirectory required by GeoTiff v1.0.")

    version, _, _, number_of_keys = directory[0, :]
    if version != 1:
        raise RuntimeError(f"Unsupported GeoKeyDirectory version {version}")

    geo_keys = {}
    for (key_id, location, count, value_offset) in directory[1:]:
        try:
            key_name = GeoKeys(key_id).name
        except ValueError:
            logger.debug(f"Skipping unknown GeoKey {key_id}")
            continue

        location = KeyValueTags(location)
        if location == KeyValueTags.GeoShortParamsTag:
            key_value = value_offset
            # Special integer values
            if key_value == 0:
                key_value = "undefined"
            elif key_value == 32767:
                key_value = "user-defined"
        elif location == KeyValueTags.GeoDoubleParamsTag:
            key_value = image_tags[location.value][value_offset]
        else:
            ascii_val = image_tags[location.value][value_offset:value_offset + count]
            key_value = ascii_val.replace("|", "\n").strip()

        geo_keys[key_name] = key_value

    if len(geo_keys) > number_of_keys:
        raise RuntimeError(f"GeoKeyDirectory declares {number_of_keys} keys but holds {len(geo_keys)}")
    return geo_keys


class GeoKeysInterpreter:
    """
    Converts a dict of GeoTIFF keys into a projection string accepted by
    pyproj.CRS.from_user_input.

    Only the keys needed for EPSG coded and UTM rasters are handled; others are
    ignored and reported at debug level.
    """
    def __init__(self, geokeys: Dict[str, Any]) -> None:
        self.geokeys = geokeys
        self.dict = dict()
        self.flags = set()
        self.interpret()

    def interpret(self) -> None:
        ignored_keys = []
        for (geokey_name, geokey_value) in self.geokeys.items():
            handler = getattr(self, f"_{geokey_name}", None)
            if handler is None:
                ignored_keys.append(geokey_name)
                continue

            update = handler(geokey_value)
            if update is None:
                continue

            for (name, val) in update.items():
                if name in self.dict and self.dict[name] != val:
                    raise ValueError(f"Conflicting values for {name}: {self.dict[name]} and {val}")
                self.dict.setdefault(name, val)

        if self.dict.pop("south", False):
            self.flags.add("south")
        getLogger().debug(f"Ignored GeoKeys: {ignored_keys}")

    def to_proj4(self) -> str:
        epsg = self.dict.get("EPSG")
        if epsg is not None:
            # The EPSG code completely specifies the projection
            return f"EPSG:{epsg}"

        parts = [f"+{name}={value}" for (name, value) in self.dict.items()]
        parts.extend([f"+{name}" for name in sorted(self.flags)])
        parts.append("+no_defs")
        return " ".join(parts)

    @staticmethod
    def _ProjectedCSTypeGeoKey(value):
        if _isinteger(value) and 20000 <= value <= 32760:
            return {"EPSG": int(value)}

    @staticmethod
    def _GeographicTypeGeoKey(value):
        if _isinteger(value) and 4000 <= value < 5000:
            return {"EPSG": int(value)}

    @staticmethod
    def _GeogInvFlatteningGeoKey(value):
        if np.isscalar(value):
            return {"rf": float(value)}

    @staticmethod
    def _GeogSemiMajorAxisGeoKey(value):
        if np.isscalar(value):
            return {"a": float(value)}

    @staticmethod
    def _ProjectionGeoKey(value):
        if _isinteger(value) and 16000 <= value < 16200:
            # UTM zones are coded 160zz (north) and 161zz (south)
            zone = int(value) % 16000
            south = bool(zone // 100)
            return dict(proj="utm", zone=zone % 100, south=south)

    @staticmethod
    def _ProjLinearUnitsGeoKey(value):
        if value == 9001:
            return {"units": "m"}

    @staticmethod
    def _GeogCitationGeoKey(value):
        for (name, pattern) in (("GRS80", "GRS[ ,_]?(19)?80"),
                                ("WGS84", "WGS[ ,_]?(19)?84")):
            if re.search(pattern, str(value), flags=re.IGNORECASE):
                return {"ellps": name}


@dataclass
class ImageExtents:
    shape: Tuple[int, int]
    delta_x: float
    delta_y: float
    x_min: float
    y_max: float

    @property
    def x_max(self) -> float:
        return self.x_min + self.delta_x*(self.shape[1] - 1)

    @property
    def y_min(self) -> float:
        return self.y_max - self.delta_y*(self.shape[0] - 1)

    @property
    def box(self) -> Tuple[float, float, float, float]:
        return (self.x_min, self.y_min, self.x_max, self.y_max)

    def __post_init__(self):
        assert len(self.shape) == 2 and min(*self.shape) > 0, "Shape is not two-dimensional."
        assert min(self.delta_x, self.delta_y) > 0, "Step sizes must be strictly positive."


@dataclass
class Rasterdata(ImageExtents):
    array: np.ndarray
    coordinate_system: str
    info: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        shapes = tuple(self.shape), self.array.shape
        assert shapes[0] == shapes[1], f"Unexpected array shape: expected {shapes[0]} but got {shapes[1]}"
        super().__post_init__()

    @property
    def width(self) -> int:
        return self.shape[1]

    @property
    def height(self) -> int:
        return self.shape[0]

    @property
    def elevations(self) -> np.ndarray:
        """ Row-major float32 samples, first row is the northernmost. """
        return np.ascontiguousarray(self.array, dtype=np.float32).reshape(-1)

    @property
    def geographic_bounds(self) -> Optional[GeographicBounds]:
        if not self.coordinate_system:
            return None
        crs = pyproj.CRS.from_user_input(self.coordinate_system)
        if crs.is_geographic:
            # Assume longitude/latitude axis order, as stored in GeoTIFF model space
            return GeographicBounds(*self.box)
        transformer = pyproj.Transformer.from_crs(crs, "EPSG:4326", always_xy=True)
        return GeographicBounds(*transformer.transform_bounds(*self.box))


def get_image_extents(image: Image.Image) -> ImageExtents:
    tiepoint_idx = GeoTiffTags.ModelTiePointTag.value
    j_tag, i_tag, _, x_tag, y_tag, _ = image.tag_v2.get(tiepoint_idx, (0, 0, 0, 0, 0, 0))

    scale_idx = GeoTiffTags.ModelPixelScaleTag.value
    delta_x, delta_y, _ = image.tag_v2.get(scale_idx, (1.0, 1.0, 0.0))

    n, m = image.size
    return ImageExtents(shape=(m, n),
                        delta_x=delta_x, delta_y=delta_y,
                        x_min=x_tag - delta_x*j_tag,
                        y_max=y_tag + delta_y*i_tag)


def read_raster_file(*, filepath: Path) -> Rasterdata:
    logger = getLogger()
    logger.debug(f"Reading raster file {filepath}")
    if not filepath.exists():
        raise FileNotFoundError(f"Raster file {filepath.absolute()} not found.")

    with Image.open(filepath) as image:
        info = extract_geo_keys(image=image)
        coordinate_system = GeoKeysInterpreter(info).to_proj4()
        extents = get_image_extents(image)
        image_array = np.array(image)

    logger.debug(f"Read {extents.shape[1]}x{extents.shape[0]} raster in {coordinate_system}")
    return Rasterdata(array=image_array, shape=extents.shape,
                      x_min=extents.x_min, y_max=extents.y_max,
                      delta_x=extents.delta_x, delta_y=extents.delta_y,
                      info=info, coordinate_system=coordinate_system)
