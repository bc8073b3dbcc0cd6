"""Spectral Analyse der Helligkeit.

Streaming frequency-domain analysis of per-frame brightness: ring buffer,
median DC removal, Hann window, zero-padded radix-2 FFT, phase tracking for
instantaneous frequency, dominant flicker frequency with SNR confidence and
spectral flatness.
"""

import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray
from scipy.signal import windows

from ..core.constants import (
    CONFIDENCE_NEIGHBOR_BINS,
    DEFAULT_BUFFER_LENGTH,
    DEFAULT_FFT_LENGTH,
    DEFAULT_SAMPLE_RATE,
    EPSILON,
    MIN_SPECTRAL_SAMPLES,
    SPECTRAL_BAND_MAX_HZ,
    SPECTRAL_BAND_MIN_HZ,
)
from ..core.exceptions import AnalysisError
from ..utils.logger import get_logger
from ..utils.ring_buffer import RingBuffer
from .fft import FFTPlan, pad_to_power_of_two
from .phase_tracker import PhaseTracker

logger = get_logger(__name__)


@dataclass(frozen=True)
class SpectralBin:
    frequency: float
    amplitude: float
    phase: float
    instantaneous_frequency: float


@dataclass(frozen=True)
class SpectralResult:
    """Ergebnis einer Spektralanalyse (fresh per call)."""

    dominant_frequency: float = 0.0
    dominant_instantaneous_frequency: float = 0.0
    spectrum: tuple[SpectralBin, ...] = field(default_factory=tuple)
    spectral_flatness: float = 0.0
    confidence_db: float = 0.0
    bin_resolution_hz: float = 0.0
    window_size: int = 0

    @classmethod
    def empty(cls, window_size: int = 0) -> "SpectralResult":
        return cls(window_size=window_size)

    @property
    def amplitudes(self) -> NDArray:
        return np.array([b.amplitude for b in self.spectrum], dtype=np.float64)

    def to_dict(self) -> dict:
        return {
            "dominant_frequency": self.dominant_frequency,
            "dominant_instantaneous_frequency": self.dominant_instantaneous_frequency,
            "spectral_flatness": self.spectral_flatness,
            "confidence_db": self.confidence_db,
            "bin_resolution_hz": self.bin_resolution_hz,
            "window_size": self.window_size,
            "spectrum": [
                {
                    "frequency": b.frequency,
                    "amplitude": b.amplitude,
                    "phase": b.phase,
                    "instantaneous_frequency": b.instantaneous_frequency,
                }
                for b in self.spectrum
            ],
        }


def compute_spectral_flatness(
    amplitudes: NDArray, k_min: int | None = None, k_max: int | None = None
) -> float:
    """
    Geometric mean / arithmetic mean of the positive amplitudes in [k_min, k_max].

    Returns 0 when no amplitude is positive. 1.0 means white, values near 0 tonal.
    """
    amplitudes = np.asarray(amplitudes, dtype=np.float64)
    n = len(amplitudes)
    if n == 0:
        return 0.0
    start = 0 if k_min is None else max(0, min(n - 1, int(k_min)))
    end = n - 1 if k_max is None else max(start, min(n - 1, int(k_max)))

    band = amplitudes[start : end + 1]
    positive = band[band > 0]
    if positive.size == 0:
        return 0.0
    arith_mean = float(np.mean(positive))
    if arith_mean == 0:
        return 0.0
    geo_mean = float(np.exp(np.mean(np.log(positive))))
    return min(1.0, geo_mean / arith_mean)


class SpectralEngine:
    """
    Frequency analysis over a rolling brightness window.

    Stateful: owns the ring buffer, the phase history and the timestamp of
    the previous call. One instance per analysis session.
    """

    def __init__(
        self,
        buffer_len: int = DEFAULT_BUFFER_LENGTH,
        fft_len: int = DEFAULT_FFT_LENGTH,
        sample_rate_hz: float = DEFAULT_SAMPLE_RATE,
        band: tuple[float, float] = (SPECTRAL_BAND_MIN_HZ, SPECTRAL_BAND_MAX_HZ),
    ) -> None:
        """
        Args:
            buffer_len: Default ring buffer length
            fft_len: Default number of most recent samples transformed
            sample_rate_hz: Default sampling rate of the brightness signal
            band: Frequency band searched for the dominant frequency
        """
        self.buffer_len = buffer_len
        self.fft_len = fft_len
        self.sample_rate_hz = sample_rate_hz
        self.band = band

        self.ring = RingBuffer(buffer_len)
        self.phase_tracker = PhaseTracker()
        self._plan: FFTPlan | None = None
        self._last_timestamp: float | None = None

    def reset(self) -> None:
        """Clear buffered samples, phase history and timing."""
        self.ring.clear()
        self.phase_tracker.reset()
        self._last_timestamp = None

    def analyze(
        self,
        brightness: float,
        buffer_len: int | None = None,
        fft_len: int | None = None,
        sample_rate_hz: float | None = None,
        timestamp: float | None = None,
    ) -> SpectralResult:
        """
        Push one brightness sample and analyze the most recent window.

        Args:
            brightness: Normalized brightness in [0, 1]; anything else counts as 0
            buffer_len: Ring buffer length (default: engine setting)
            fft_len: Window length (default: engine setting)
            sample_rate_hz: Sampling rate (default: engine setting)
            timestamp: Optional capture time in seconds for real elapsed time

        Returns:
            SpectralResult; zeroed while fewer than max(32, fft_len) samples exist
        """
        blen = buffer_len if buffer_len and buffer_len > 0 else self.buffer_len
        flen = fft_len if fft_len and fft_len > 0 else self.fft_len
        fs = sample_rate_hz if sample_rate_hz and sample_rate_hz > 0 else self.sample_rate_hz
        if not math.isfinite(fs) or fs <= 0:
            fs = DEFAULT_SAMPLE_RATE

        x = self._coerce_sample(brightness)

        if self.ring.capacity != blen:
            logger.debug(f"Ring buffer resized {self.ring.capacity} -> {blen}")
            self.ring = RingBuffer(blen)
            self.phase_tracker.reset()
        self.ring.push(x)

        dt = 1.0 / fs
        if timestamp is not None and math.isfinite(timestamp):
            if self._last_timestamp is not None and timestamp > self._last_timestamp:
                dt = timestamp - self._last_timestamp
            self._last_timestamp = timestamp

        if self.ring.count < max(MIN_SPECTRAL_SAMPLES, flen):
            return SpectralResult.empty(self.ring.count)

        n = min(flen, self.ring.count)
        try:
            return self._analyze_window(self.ring.latest(n), fs, dt)
        except (AnalysisError, ValueError, FloatingPointError) as e:
            logger.warning(f"Spectral analysis failed, returning zeroed result: {e}")
            return SpectralResult.empty(n)

    def _coerce_sample(self, brightness) -> float:
        if isinstance(brightness, (int, float)) and not isinstance(brightness, bool):
            if math.isfinite(brightness) and 0.0 <= brightness <= 1.0:
                return float(brightness)
        logger.debug(f"Brightness {brightness!r} out of range, using 0")
        return 0.0

    def _analyze_window(self, samples: NDArray, fs: float, dt: float) -> SpectralResult:
        n = len(samples)

        # Median statt Mittelwert: robust gegen einzelne Spikes
        signal = samples - np.median(samples)
        window = windows.hann(n, sym=True)
        window_sum = float(np.sum(window))
        if window_sum <= EPSILON:
            return SpectralResult.empty(n)
        signal = signal * window

        padded = pad_to_power_of_two(signal)
        m = len(padded)
        if self._plan is None or self._plan.size != m:
            self._plan = FFTPlan(m)
        real, imag = self._plan.forward(padded)

        nyquist = m // 2
        k = np.arange(nyquist + 1)
        scale = np.full(nyquist + 1, 2.0 / window_sum)
        scale[0] = 1.0 / window_sum
        scale[nyquist] = 1.0 / window_sum

        amplitudes = np.hypot(real[: nyquist + 1], imag[: nyquist + 1]) * scale
        phases = np.arctan2(imag[: nyquist + 1], real[: nyquist + 1])
        frequencies = k * fs / m
        inst_freqs = self.phase_tracker.update(m, fs, phases, frequencies, dt)

        f_min, f_max = self.band
        k_min = max(1, int(math.floor(f_min * m / fs)))
        k_max = min(nyquist, int(math.ceil(f_max * m / fs)))

        dom_k = 0
        if k_min <= k_max:
            in_band = amplitudes[k_min : k_max + 1]
            candidate = k_min + int(np.argmax(in_band))
            if amplitudes[candidate] > 0:
                dom_k = candidate

        confidence_db = 0.0
        if dom_k > 0:
            lo = max(k_min, dom_k - CONFIDENCE_NEIGHBOR_BINS)
            hi = min(k_max, dom_k + CONFIDENCE_NEIGHBOR_BINS)
            neighbors = np.concatenate([amplitudes[lo:dom_k], amplitudes[dom_k + 1 : hi + 1]])
            if neighbors.size:
                signal_power = float(amplitudes[dom_k] ** 2)
                noise_power = float(np.mean(neighbors**2))
                confidence_db = 10.0 * math.log10(
                    max(signal_power, EPSILON) / max(noise_power, EPSILON)
                )

        flatness = compute_spectral_flatness(amplitudes, k_min, k_max) if k_min <= k_max else 0.0

        spectrum = tuple(
            SpectralBin(
                frequency=float(frequencies[i]),
                amplitude=float(amplitudes[i]),
                phase=float(phases[i]),
                instantaneous_frequency=float(inst_freqs[i]),
            )
            for i in range(nyquist + 1)
        )

        return SpectralResult(
            dominant_frequency=float(frequencies[dom_k]) if dom_k > 0 else 0.0,
            dominant_instantaneous_frequency=float(inst_freqs[dom_k]) if dom_k > 0 else 0.0,
            spectrum=spectrum,
            spectral_flatness=flatness,
            confidence_db=confidence_db,
            bin_resolution_hz=fs / m,
            window_size=n,
        )
