"""
LAB color helpers.

sRGB (0-255) -> linear -> XYZ (D65) -> CIE L*a*b* via scikit-image, and the
CIE76 color difference.
L*: Lightness (0-100)
a*: Green(-) to Red(+)
b*: Blue(-) to Yellow(+)
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from skimage import color as skcolor


@dataclass(frozen=True)
class RGBColor:
    r: float
    g: float
    b: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)


@dataclass(frozen=True)
class LabColor:
    L: float
    a: float
    b: float

    def as_array(self) -> NDArray:
        return np.array([self.L, self.a, self.b], dtype=np.float64)


def _validate_rgb(rgb: NDArray) -> None:
    if not np.all(np.isfinite(rgb)) or np.any(rgb < 0) or np.any(rgb > 255):
        raise ValueError("RGB values out of range [0,255]")


def rgb_to_lab(r: float, g: float, b: float) -> LabColor:
    """
    Convert one RGB color (0-255 per channel) to LAB.

    Raises:
        ValueError: If a channel is outside [0, 255] or not finite
    """
    rgb = np.array([r, g, b], dtype=np.float64)
    _validate_rgb(rgb)
    lab = skcolor.rgb2lab((rgb / 255.0).reshape(1, 1, 3))[0, 0]
    return LabColor(float(lab[0]), float(lab[1]), float(lab[2]))


def rgb_array_to_lab(colors: NDArray | Sequence[Sequence[float]]) -> NDArray:
    """
    Convert an (N, 3) array of RGB colors to an (N, 3) LAB array.

    Raises:
        ValueError: If any channel is outside [0, 255]
    """
    rgb = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
    if rgb.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    _validate_rgb(rgb)
    return skcolor.rgb2lab((rgb / 255.0).reshape(1, -1, 3))[0]


def labs_to_array(labs: Sequence[LabColor] | NDArray) -> NDArray:
    """Stack LabColor objects (or pass through an array) as (N, 3)."""
    if isinstance(labs, np.ndarray):
        return labs.astype(np.float64).reshape(-1, 3)
    if len(labs) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([[lab.L, lab.a, lab.b] for lab in labs], dtype=np.float64)


def cie76(lab1: LabColor, lab2: LabColor) -> float:
    """Euclidean distance in LAB space (Delta E 1976)."""
    return float(skcolor.deltaE_cie76(lab1.as_array(), lab2.as_array()))


def consecutive_delta_e(labs: NDArray) -> NDArray:
    """CIE76 difference between each pair of consecutive LAB rows."""
    if len(labs) < 2:
        return np.zeros(0, dtype=np.float64)
    return np.asarray(skcolor.deltaE_cie76(labs[:-1], labs[1:]), dtype=np.float64)
