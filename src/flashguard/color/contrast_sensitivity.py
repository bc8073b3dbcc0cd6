"""
Contrast Sensitivity - perceptual color change between consecutive frames.

Two layers:
- ``calculate_contrast_sensitivity``: pure statistics over an ordered LAB
  sequence (Welford mean/variance of CIE76 deltas, JND counting, index- or
  time-weighted averages, percentiles from a PercentileTree).
- ``TemporalContrastAnalyzer``: stateful sliding time window that calls the
  pure function on the materialized window each tick, plus an exponentially
  weighted Delta E average over the whole series.
"""

import math
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

from ..core.constants import (
    DEFAULT_ANALYSIS_INTERVAL,
    DEFAULT_INDEX_WINDOW,
    DEFAULT_TEMPORAL_WINDOW_MS,
    JND_CIE76,
    LN2,
    MIN_HALF_LIFE_MS,
    MIN_INDEX_WINDOW_TEMPORAL,
    MIN_TEMPORAL_SAMPLES,
)
from ..stats.percentile_tree import PercentileTree
from ..utils.logger import get_logger
from .lab import (
    LabColor,
    RGBColor,
    cie76,
    consecutive_delta_e,
    labs_to_array,
    rgb_array_to_lab,
)

logger = get_logger(__name__)

INSUFFICIENT_COLORS = "Insufficient valid colors"


@dataclass(frozen=True)
class ContrastSensitivityOptions:
    """
    Attributes:
        threshold: JND for CIE76 (changes >= threshold are significant)
        use_weighting: Compute weighted_average_delta_e
        window_size: Number of most recent deltas for index weighting
        weight_decay: Per-sample decay rate (overrides half_life_samples)
        half_life_samples: Half-life in samples for index weighting
        timestamps_ms: Timestamps aligned with the LAB sequence
        half_life_ms: Half-life for time weighting; enables it with timestamps
        sample_std_dev: Use n-1 in the variance
        compute_percentiles: Build a PercentileTree for median/p90/p95
    """

    threshold: float = JND_CIE76
    use_weighting: bool = True
    window_size: int = DEFAULT_INDEX_WINDOW
    weight_decay: float | None = None
    half_life_samples: float | None = None
    timestamps_ms: Sequence[float] | None = None
    half_life_ms: float | None = None
    sample_std_dev: bool = False
    compute_percentiles: bool = True

    @property
    def effective_threshold(self) -> float:
        if self.threshold is None or not math.isfinite(self.threshold) or self.threshold <= 0:
            return JND_CIE76
        return float(self.threshold)

    @property
    def effective_window_size(self) -> int:
        if self.window_size is None or self.window_size <= 1:
            return DEFAULT_INDEX_WINDOW
        return int(self.window_size)

    @property
    def effective_weight_decay(self) -> float:
        if self.weight_decay is not None and math.isfinite(self.weight_decay):
            return max(0.0, float(self.weight_decay))
        if self.half_life_samples is not None and self.half_life_samples > 0:
            return LN2 / self.half_life_samples
        return LN2 / self.effective_window_size


@dataclass(frozen=True)
class ContrastSensitivityResult:
    """Ergebnis der Kontrast-Sensitivitaets-Analyse."""

    sensitivity: float = 0.0
    fluctuations: float = 0.0
    average_delta_e: float = 0.0
    max_delta_e: float = 0.0
    significant_changes: int = 0
    total_samples: int = 0
    fluctuation_rate: float = 0.0
    weighted_average_delta_e: float | None = None
    median_delta_e: float = 0.0
    p90_delta_e: float = 0.0
    p95_delta_e: float = 0.0
    coefficient_of_variation: float = 0.0
    window_size: int = DEFAULT_INDEX_WINDOW
    weight_decay: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "sensitivity": self.sensitivity,
            "fluctuations": self.fluctuations,
            "average_delta_e": self.average_delta_e,
            "max_delta_e": self.max_delta_e,
            "significant_changes": self.significant_changes,
            "total_samples": self.total_samples,
            "fluctuation_rate": self.fluctuation_rate,
            "weighted_average_delta_e": self.weighted_average_delta_e,
            "median_delta_e": self.median_delta_e,
            "p90_delta_e": self.p90_delta_e,
            "p95_delta_e": self.p95_delta_e,
            "coefficient_of_variation": self.coefficient_of_variation,
            "error": self.error,
        }


def _round2(value: float) -> float:
    return round(value * 100) / 100


def calculate_contrast_sensitivity(
    labs: Sequence[LabColor] | NDArray,
    options: ContrastSensitivityOptions | None = None,
) -> ContrastSensitivityResult:
    """
    Contrast sensitivity of an ordered LAB sequence.

    Args:
        labs: LAB colors in time order (LabColor objects or an (N, 3) array)
        options: Thresholds and weighting; defaults to JND 2.3, index weighting

    Returns:
        ContrastSensitivityResult; zeroed with ``error`` set for < 2 samples
    """
    options = options or ContrastSensitivityOptions()
    lab_array = labs_to_array(labs)
    segment_length = len(lab_array)
    if segment_length < 2:
        return ContrastSensitivityResult(total_samples=segment_length, error=INSUFFICIENT_COLORS)

    threshold = options.effective_threshold
    window_size = options.effective_window_size
    weight_decay = options.effective_weight_decay

    timestamps = options.timestamps_ms
    use_time_weighting = (
        timestamps is not None
        and options.half_life_ms is not None
        and options.half_life_ms > 0
        and len(timestamps) >= segment_length
    )

    deltas = consecutive_delta_e(lab_array)

    # Welford
    count = 0
    mean = 0.0
    m2 = 0.0
    max_delta = 0.0
    significant = 0
    for delta_e in deltas:
        count += 1
        diff = delta_e - mean
        mean += diff / count
        m2 += diff * (delta_e - mean)
        if delta_e > max_delta:
            max_delta = float(delta_e)
        if delta_e >= threshold:
            significant += 1

    divisor = count - 1 if options.sample_std_dev and count > 1 else count
    variance = max(0.0, m2 / divisor) if divisor else 0.0
    fluctuation = math.sqrt(variance)
    average = mean if count else 0.0
    cov = fluctuation / average if average != 0 else 0.0

    weighted_average = None
    if options.use_weighting:
        if use_time_weighting:
            weighted_average = _time_weighted_average(
                deltas, timestamps, segment_length, options.half_life_ms
            )
        else:
            weighted_average = _index_weighted_average(deltas, window_size, weight_decay)

    median = p90 = p95 = 0.0
    if options.compute_percentiles and count:
        tree = PercentileTree.from_values(deltas.tolist())
        median = tree.quantile(50) or 0.0
        p90 = tree.quantile(90) or 0.0
        p95 = tree.quantile(95) or 0.0

    sensitivity = min(100.0, average / threshold * 100.0)

    return ContrastSensitivityResult(
        sensitivity=_round2(sensitivity),
        fluctuations=_round2(fluctuation),
        average_delta_e=_round2(average),
        max_delta_e=_round2(max_delta),
        significant_changes=significant,
        total_samples=segment_length,
        fluctuation_rate=round(significant / count * 10000) / 100 if count else 0.0,
        weighted_average_delta_e=(
            _round2(weighted_average) if weighted_average is not None else None
        ),
        median_delta_e=_round2(median),
        p90_delta_e=_round2(p90),
        p95_delta_e=_round2(p95),
        coefficient_of_variation=round(cov * 1000) / 1000,
        window_size=window_size,
        weight_decay=weight_decay,
    )


def calculate_contrast_sensitivity_rgb(
    colors: Iterable[RGBColor | Sequence[float]],
    options: ContrastSensitivityOptions | None = None,
) -> ContrastSensitivityResult:
    """
    RGB front end: drops invalid colors, converts the rest to LAB.
    """
    valid = []
    for c in colors:
        rgb = c.as_tuple() if isinstance(c, RGBColor) else c
        if rgb is None or len(rgb) != 3:
            continue
        try:
            values = [float(v) for v in rgb]
        except (TypeError, ValueError):
            continue
        if all(math.isfinite(v) and 0 <= v <= 255 for v in values):
            valid.append(values)
    if len(valid) < 2:
        return ContrastSensitivityResult(total_samples=len(valid), error=INSUFFICIENT_COLORS)
    return calculate_contrast_sensitivity(rgb_array_to_lab(valid), options)


def _index_weighted_average(deltas: NDArray, window_size: int, weight_decay: float) -> float:
    """Newest delta has weight 1, each older one base**age, over the last window_size."""
    if len(deltas) == 0:
        return 0.0
    recent = deltas[-window_size:][::-1]
    base = math.exp(-weight_decay)
    weights = base ** np.arange(len(recent))
    total = float(np.sum(weights))
    return float(np.dot(recent, weights) / total) if total else 0.0


def _time_weighted_average(
    deltas: NDArray, timestamps: Sequence[float], segment_length: int, half_life_ms: float
) -> float:
    """Weight of the delta ending at t_i is exp(-(t_now - t_i) * ln2 / half_life)."""
    ts = np.asarray(timestamps[:segment_length], dtype=np.float64)
    lam = LN2 / half_life_ms
    age = ts[-1] - ts[1:]
    weights = np.exp(-age * lam)
    total = float(np.sum(weights))
    return float(np.dot(deltas, weights) / total) if total else 0.0


# =============================================================================
# Streaming / temporal windows
# =============================================================================


@dataclass(frozen=True)
class ColorSample:
    timestamp_ms: float
    color: RGBColor | LabColor


@dataclass(frozen=True)
class ContrastWindow:
    """One sliding-window evaluation."""

    start_time: float
    end_time: float
    duration: float
    sample_count: int
    result: ContrastSensitivityResult
    stream_weighted_average_delta_e: float | None
    analysis_interval: float
    effective_fps: float
    adaptive_window_size: float


@dataclass
class _StreamState:
    weighted_sum: float = 0.0
    weight_total: float = 0.0
    last_lab: LabColor | None = None
    last_timestamp: float | None = None
    samples: deque = field(default_factory=deque)


class TemporalContrastAnalyzer:
    """
    Sliding time-window contrast sensitivity.

    The window keeps at least ``min_samples_per_window`` samples worth of
    duration, so sparse sampling still produces meaningful statistics. The
    window start only ever moves forward; dropped samples are never
    revisited.
    """

    def __init__(
        self,
        window_size_ms: float = DEFAULT_TEMPORAL_WINDOW_MS,
        analysis_interval: float | None = None,
        options: ContrastSensitivityOptions | None = None,
        effective_fps: float | None = None,
        index_window: int | None = None,
    ) -> None:
        """
        Args:
            window_size_ms: Requested window duration
            analysis_interval: Seconds between samples (default 1/30)
            options: Base options; half_life_ms and window_size are derived if unset
            effective_fps: Reported frame rate (default 1/analysis_interval)
            index_window: Deltas used for index weighting (default: one window of samples)
        """
        interval = analysis_interval if analysis_interval and analysis_interval > 0 else None
        self.analysis_interval = interval or DEFAULT_ANALYSIS_INTERVAL
        self.effective_fps = effective_fps or 1.0 / self.analysis_interval

        self.min_samples_per_window = max(
            MIN_TEMPORAL_SAMPLES, math.ceil(1.0 / self.analysis_interval)
        )
        self.adaptive_window_size = max(
            window_size_ms, self.min_samples_per_window * self.analysis_interval * 1000.0
        )

        base = options or ContrastSensitivityOptions()
        half_life_ms = base.half_life_ms or max(MIN_HALF_LIFE_MS, self.adaptive_window_size / 4)
        if not index_window or index_window <= 1:
            index_window = max(
                MIN_INDEX_WINDOW_TEMPORAL,
                round(self.adaptive_window_size / (self.analysis_interval * 1000.0)),
            )
        self.half_life_ms = half_life_ms
        self._lambda_ms = LN2 / half_life_ms
        self.options = replace(
            base,
            half_life_ms=half_life_ms,
            window_size=index_window,
            weight_decay=(
                base.weight_decay if base.weight_decay is not None else LN2 / index_window
            ),
            timestamps_ms=None,
        )
        self._state = _StreamState()

        logger.debug(
            f"TemporalContrastAnalyzer: window={self.adaptive_window_size:.0f}ms, "
            f"min_samples={self.min_samples_per_window}, half_life={half_life_ms:.0f}ms"
        )

    def reset(self) -> None:
        self._state = _StreamState()

    @property
    def stream_weighted_average(self) -> float | None:
        s = self._state
        if s.weight_total <= 0:
            return None
        return s.weighted_sum / s.weight_total

    def push(self, timestamp_ms: float, lab: LabColor) -> ContrastWindow | None:
        """
        Add a sample and evaluate the current window.

        Args:
            timestamp_ms: Sample time in milliseconds (non-decreasing)
            lab: LAB color of the sample

        Returns:
            ContrastWindow once the window holds enough samples, else None
        """
        s = self._state
        if s.last_lab is not None:
            delta_e = cie76(s.last_lab, lab)
            dt = timestamp_ms - s.last_timestamp if s.last_timestamp is not None else 0.0
            decay = math.exp(-dt * self._lambda_ms)
            s.weighted_sum = s.weighted_sum * decay + delta_e
            s.weight_total = s.weight_total * decay + 1.0
        s.last_lab = lab
        s.last_timestamp = timestamp_ms

        s.samples.append((timestamp_ms, lab.as_array()))
        while len(s.samples) > 1 and timestamp_ms - s.samples[0][0] > self.adaptive_window_size:
            s.samples.popleft()

        if len(s.samples) < self.min_samples_per_window:
            return None

        timestamps = [t for t, _ in s.samples]
        labs = np.array([v for _, v in s.samples])
        result = calculate_contrast_sensitivity(
            labs, replace(self.options, timestamps_ms=timestamps)
        )
        stream_avg = self.stream_weighted_average
        return ContrastWindow(
            start_time=timestamps[0],
            end_time=timestamps[-1],
            duration=timestamps[-1] - timestamps[0],
            sample_count=len(timestamps),
            result=result,
            stream_weighted_average_delta_e=(
                _round2(stream_avg) if stream_avg is not None else None
            ),
            analysis_interval=self.analysis_interval,
            effective_fps=self.effective_fps,
            adaptive_window_size=self.adaptive_window_size,
        )


def analyze_temporal_series(
    samples: Iterable[ColorSample],
    window_size_ms: float = DEFAULT_TEMPORAL_WINDOW_MS,
    analysis_interval: float | None = None,
    options: ContrastSensitivityOptions | None = None,
    presorted: bool = False,
) -> list[ContrastWindow]:
    """
    Contrast sensitivity over a whole session via a sliding time window.

    Args:
        samples: Color samples with millisecond timestamps
        window_size_ms: Requested window duration
        analysis_interval: Seconds between samples (adapts window and decay)
        options: Base ContrastSensitivityOptions
        presorted: Skip sorting when samples are already in time order

    Returns:
        One ContrastWindow per sample once the window is populated
    """
    valid = [
        s
        for s in samples
        if s is not None
        and s.color is not None
        and isinstance(s.timestamp_ms, (int, float))
        and math.isfinite(s.timestamp_ms)
    ]
    if not valid:
        logger.warning("No valid samples with timestamps in color time series.")
        return []
    if not presorted:
        valid.sort(key=lambda s: s.timestamp_ms)

    rgb_rows = [i for i, s in enumerate(valid) if isinstance(s.color, RGBColor)]
    labs: list[LabColor] = [s.color for s in valid]
    if rgb_rows:
        converted = rgb_array_to_lab([valid[i].color.as_tuple() for i in rgb_rows])
        for row, lab in zip(rgb_rows, converted):
            labs[row] = LabColor(float(lab[0]), float(lab[1]), float(lab[2]))

    analyzer = TemporalContrastAnalyzer(window_size_ms, analysis_interval, options)
    windows = []
    for sample, lab in zip(valid, labs):
        window = analyzer.push(sample.timestamp_ms, lab)
        if window is not None:
            windows.append(window)
    return windows
