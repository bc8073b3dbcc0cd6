"""Flicker frequency from brightness-change intervals.

Time-domain complement to the FFT: the median interval between successive
significant brightness changes, converted to Hz.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from ..core.constants import FLICKER_MAX_HZ, FLICKER_MAX_INTERVAL


@dataclass(frozen=True)
class BrightnessChange:
    timestamp: float  # Sekunden
    brightness: float
    change: float


def estimate_flicker_frequency(
    changes: Iterable[BrightnessChange], change_threshold: float
) -> float:
    """
    Estimate flicker frequency in Hz.

    Uses the median rather than the mean interval; the median is less
    sensitive to a single dropped frame or timing hiccup.

    Args:
        changes: Brightness changes in timestamp order
        change_threshold: Minimum absolute change counted as an event

    Returns:
        Frequency in Hz capped at 100, or 0.0 with fewer than two events
    """
    intervals = []
    prev_timestamp = None
    for entry in changes:
        if not np.isfinite(entry.timestamp) or entry.change <= change_threshold:
            continue
        if prev_timestamp is not None:
            diff = entry.timestamp - prev_timestamp
            if 0 < diff < FLICKER_MAX_INTERVAL:
                intervals.append(diff)
        prev_timestamp = entry.timestamp

    if not intervals:
        return 0.0

    median_interval = float(np.median(intervals))
    if median_interval <= 0:
        return 0.0
    return min(1.0 / median_interval, FLICKER_MAX_HZ)
