from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union
import numpy as np
import yaml

RGB = Tuple[float, float, float]


@dataclass(frozen=True)
class ColorStop:
    threshold: float
    color: RGB


# Classic terrain colours, lowlands to peaks
TERRAIN_COLOR_STOPS = (
    ColorStop(0.0, (0.6, 0.6, 0.95)),
    ColorStop(0.1, (0.4, 0.8, 0.4)),
    ColorStop(0.3, (0.2, 0.6, 0.2)),
    ColorStop(0.5, (0.8, 0.7, 0.5)),
    ColorStop(0.7, (0.7, 0.55, 0.4)),
    ColorStop(0.9, (0.75, 0.75, 0.75)),
    ColorStop(1.0, (1.0, 1.0, 1.0)),
)


class ColorRamp:
    """
    Piecewise linear map from a scalar to an RGB triple.

    The first pair of adjacent stops bracketing the value (inclusive at both
    ends) is used for the blend. Values not bracketed by any pair, including
    values below the first stop, get the colour of the last stop.
    """

    def __init__(self, stops: Sequence[ColorStop]) -> None:
        stops = tuple(stops)
        if len(stops) < 2:
            raise ValueError("A color ramp needs at least two stops.")
        thresholds = [s.threshold for s in stops]
        if any(t1 >= t2 for t1, t2 in zip(thresholds[:-1], thresholds[1:])):
            raise ValueError(f"Color stop thresholds must be strictly increasing, got {thresholds}")
        self.stops = stops
        self._thresholds = np.array(thresholds, dtype="d")
        self._colors = np.array([s.color for s in stops], dtype="d")

    @classmethod
    def from_yaml(cls, filepath: Path) -> "ColorRamp":
        """
        Read stops from a YAML list of mappings, e.g.

            - threshold: 0.0
              color: [0.6, 0.6, 0.95]
            - threshold: 1.0
              color: [1.0, 1.0, 1.0]
        """
        if not filepath.exists():
            raise FileNotFoundError(f"Color ramp file {filepath.absolute()} not found.")
        with filepath.open("r") as ramp_file:
            spec = yaml.safe_load(ramp_file)
        if not isinstance(spec, list):
            raise ValueError(f"Expected a list of color stops in {filepath}")
        stops = []
        for item in spec:
            try:
                threshold = float(item["threshold"])
                r, g, b = (float(c) for c in item["color"])
            except (KeyError, TypeError, ValueError) as err:
                raise ValueError(f"Invalid color stop {item!r} in {filepath}") from err
            stops.append(ColorStop(threshold, (r, g, b)))
        return cls(stops)

    def color(self, value: float) -> RGB:
        for stop1, stop2 in zip(self.stops[:-1], self.stops[1:]):
            if stop1.threshold <= value <= stop2.threshold:
                t = (value - stop1.threshold)/(stop2.threshold - stop1.threshold)
                return tuple(c1*(1 - t) + c2*t for c1, c2 in zip(stop1.color, stop2.color))

        # Fall through to the top colour
        return self.stops[-1].color

    def __call__(self, value: float) -> RGB:
        return self.color(value)

    def colors(self, values: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
        """
        Vectorised version of color.

        :param values: array of scalars
        :return: array of shape values.shape + (3,)
        """
        values = np.asarray(values, dtype="d")
        flat = values.reshape(-1)
        result = np.empty((len(flat), 3))
        result[:] = self._colors[-1]
        unmatched = np.ones(len(flat), dtype=bool)
        thresholds, colors = self._thresholds, self._colors
        for i in range(len(thresholds) - 1):
            in_range = unmatched & (thresholds[i] <= flat) & (flat <= thresholds[i + 1])
            if not in_range.any():
                continue
            t = (flat[in_range] - thresholds[i])/(thresholds[i + 1] - thresholds[i])
            t = t[:, None]
            result[in_range] = colors[i]*(1 - t) + colors[i + 1]*t
            unmatched &= ~in_range
        return result.reshape(values.shape + (3,))


def terrain_color_ramp() -> ColorRamp:
    return ColorRamp(TERRAIN_COLOR_STOPS)


def create_color_buffer(values: Union[np.ndarray, Sequence[float]],
                        color_ramp: Optional[ColorRamp] = None) -> np.ndarray:
    """ Flat float32 (r, g, b) buffer with one triple per value. """
    ramp = color_ramp or terrain_color_ramp()
    return ramp.colors(np.asarray(values).reshape(-1)).astype(np.float32).reshape(-1)
