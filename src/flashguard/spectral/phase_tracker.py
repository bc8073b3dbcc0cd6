"""Phase history for instantaneous frequency estimation."""

import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

TWO_PI = 2.0 * math.pi


def wrap_phase(phi: NDArray) -> NDArray:
    """Wrap radians to [-pi, pi)."""
    return (phi + np.pi) % TWO_PI - np.pi


@dataclass
class PhaseTracker:
    """
    Last observed phase per FFT bin.

    The history is only meaningful for a fixed transform length ``M`` and
    sample rate ``fs``; it is cleared whenever either changes.
    """

    last_m: int | None = None
    last_fs: float | None = None
    phases: dict[int, float] = field(default_factory=dict)

    def reset(self) -> None:
        self.last_m = None
        self.last_fs = None
        self.phases.clear()

    def update(
        self,
        m: int,
        fs: float,
        phases: NDArray,
        bin_frequencies: NDArray,
        dt: float,
    ) -> NDArray:
        """
        Store the new phases and return instantaneous frequency per bin.

        The instantaneous frequency is the bin centre plus the wrapped deviation
        of the observed phase advance from the advance expected for that centre
        frequency over ``dt``. Bins without history report their centre.
        This is the phase-vocoder form, not the bare ``wrap(dphi) / (2*pi*dt)``
        offset, which only holds when the expected advance is a multiple of 2*pi.

        Args:
            m: FFT length
            fs: Sample rate in Hz
            phases: Phase per bin (radians)
            bin_frequencies: Centre frequency per bin (Hz)
            dt: Seconds elapsed since the previous call

        Returns:
            Instantaneous frequency per bin (Hz)
        """
        if m != self.last_m or fs != self.last_fs:
            self.phases.clear()
            self.last_m = m
            self.last_fs = fs

        inst = np.asarray(bin_frequencies, dtype=np.float64).copy()
        if dt > 0 and self.phases:
            prev = np.array([self.phases.get(k, np.nan) for k in range(len(phases))])
            known = np.isfinite(prev)
            expected = TWO_PI * bin_frequencies[known] * dt
            deviation = wrap_phase(phases[known] - prev[known] - expected)
            inst[known] = bin_frequencies[known] + deviation / (TWO_PI * dt)

        self.phases = {k: float(p) for k, p in enumerate(phases)}
        return inst
