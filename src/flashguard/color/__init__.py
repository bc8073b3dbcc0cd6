"""
Color-Modul

- LAB-Konvertierung und CIE76 Delta E (scikit-image)
- Kontrast-Sensitivität (rein statistisch und als gleitendes Zeitfenster)
"""

from .contrast_sensitivity import (
    ColorSample,
    ContrastSensitivityOptions,
    ContrastSensitivityResult,
    ContrastWindow,
    TemporalContrastAnalyzer,
    analyze_temporal_series,
    calculate_contrast_sensitivity,
    calculate_contrast_sensitivity_rgb,
)
from .lab import LabColor, RGBColor, cie76, rgb_array_to_lab, rgb_to_lab

__all__ = [
    "LabColor",
    "RGBColor",
    "rgb_to_lab",
    "rgb_array_to_lab",
    "cie76",
    "ContrastSensitivityOptions",
    "ContrastSensitivityResult",
    "calculate_contrast_sensitivity",
    "calculate_contrast_sensitivity_rgb",
    "ColorSample",
    "ContrastWindow",
    "TemporalContrastAnalyzer",
    "analyze_temporal_series",
]
