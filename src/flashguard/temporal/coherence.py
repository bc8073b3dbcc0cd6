"""
Temporal Coherence - lag autocorrelation of the brightness stream.

Two scalar measures over the most recent ``window_size`` brightness samples:

- coherence score: mean |autocorrelation| over lags 1..max_lag, normalized
  by the window variance. Strictly repeating content scores high, noise
  and steady content score low.
- periodicity: the highest local maximum of the normalized autocorrelation
  for lags in [min_lag, n/2). Above ``threshold`` the signal counts as
  periodic with that lag as its period (in frames).

Usage:
    analyzer = TemporalCoherenceAnalyzer(window_size=30)
    result = analyzer.update(0.8)
    if result.periodicity.is_periodic:
        print(result.periodicity.period)
"""

import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from ..core.constants import (
    COHERENCE_VARIANCE_FLOOR,
    DEFAULT_COHERENCE_MAX_LAG,
    DEFAULT_COHERENCE_WINDOW,
    PERIODICITY_MIN_LAG,
    PERIODICITY_THRESHOLD,
    PERIODICITY_TIE_TOLERANCE,
)
from ..core.exceptions import ConfigurationError
from ..utils.ring_buffer import RingBuffer


@dataclass(frozen=True)
class PeriodicityResult:
    is_periodic: bool = False
    period: int = 0  # Frames
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {"is_periodic": self.is_periodic, "period": self.period, "confidence": self.confidence}


@dataclass(frozen=True)
class CoherenceResult:
    coherence_score: float = 0.0
    periodicity: PeriodicityResult = field(default_factory=PeriodicityResult)
    lags: tuple[tuple[int, float], ...] = ()  # (lag, correlation)

    def to_dict(self) -> dict:
        return {
            "coherence_score": self.coherence_score,
            "periodicity": self.periodicity.to_dict(),
        }


def detect_periodicity(
    signal: NDArray,
    min_lag: int = PERIODICITY_MIN_LAG,
    threshold: float = PERIODICITY_THRESHOLD,
) -> PeriodicityResult:
    """
    Find the dominant period of a signal from its autocorrelation peaks.

    Args:
        signal: Samples, oldest first; non-finite values count as 0
        min_lag: Smallest lag considered
        threshold: Minimum peak correlation for a periodic verdict

    Returns:
        PeriodicityResult; not periodic if the signal is too short or flat
    """
    x = np.nan_to_num(np.asarray(signal, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    n = len(x)
    if n < min_lag + 2:
        return PeriodicityResult()

    x = x - x.mean()
    max_lag = n // 2
    autocorr = np.zeros(max(max_lag, 0))
    for lag in range(min_lag, max_lag):
        a, b = x[: n - lag], x[lag:]
        norm = math.sqrt(float(np.dot(a, a)) * float(np.dot(b, b)))
        autocorr[lag] = float(np.dot(a, b)) / norm if norm > 0 else 0.0

    best_value = -math.inf
    best_lag = min_lag
    # Local maxima only; both neighbours must be computed lags
    for lag in range(min_lag + 1, max_lag - 1):
        if autocorr[lag] > autocorr[lag - 1] and autocorr[lag] > autocorr[lag + 1]:
            if autocorr[lag] > best_value + PERIODICITY_TIE_TOLERANCE:
                best_value = float(autocorr[lag])
                best_lag = lag

    if best_value > threshold:
        return PeriodicityResult(is_periodic=True, period=best_lag, confidence=best_value)
    return PeriodicityResult()


def coherence_score(signal: NDArray, max_lag: int = DEFAULT_COHERENCE_MAX_LAG) -> tuple[float, list]:
    """
    Mean absolute lag autocorrelation.

    Returns:
        (score, [(lag, correlation), ...])
    """
    x = np.asarray(signal, dtype=np.float64)
    n = len(x)
    if n < 2:
        return 0.0, []

    centered = x - x.mean()
    variance = max(float(np.dot(centered, centered)) / n, COHERENCE_VARIANCE_FLOOR)
    used_max_lag = min(max_lag, n - 1)

    lags = []
    total = 0.0
    for lag in range(1, used_max_lag + 1):
        m = n - lag
        corr = float(np.dot(centered[:m], centered[lag:])) / (m * variance)
        total += abs(corr)
        lags.append((lag, corr))
    score = total / used_max_lag if used_max_lag > 0 else 0.0
    return score, lags


class TemporalCoherenceAnalyzer:
    """Rolling coherence and periodicity over recent brightness samples."""

    def __init__(
        self,
        window_size: int = DEFAULT_COHERENCE_WINDOW,
        max_lag: int = DEFAULT_COHERENCE_MAX_LAG,
        min_lag: int = PERIODICITY_MIN_LAG,
        threshold: float = PERIODICITY_THRESHOLD,
    ) -> None:
        if window_size < 2:
            raise ConfigurationError(
                "coherence window_size must be at least 2", option="window_size", value=window_size
            )
        if max_lag < 1:
            raise ConfigurationError("max_lag must be positive", option="max_lag", value=max_lag)
        self.max_lag = max_lag
        self.min_lag = min_lag
        self.threshold = threshold
        self.ring = RingBuffer(window_size)

    def reset(self) -> None:
        self.ring.clear()

    def update(self, brightness: float) -> CoherenceResult:
        """
        Push one brightness sample and analyze the window.

        Args:
            brightness: Normalized brightness; anything outside [0, 1] counts as 0
        """
        if not isinstance(brightness, (int, float)) or not 0.0 <= brightness <= 1.0:
            brightness = 0.0
        self.ring.push(brightness)

        if len(self.ring) < 2:
            return CoherenceResult()

        samples = self.ring.to_array()
        score, lags = coherence_score(samples, self.max_lag)
        periodicity = detect_periodicity(samples, self.min_lag, self.threshold)
        return CoherenceResult(coherence_score=score, periodicity=periodicity, lags=tuple(lags))
