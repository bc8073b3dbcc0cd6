"""
Analysis Session - per-frame pipeline for one video.

Wires the analyzers in frame order:

    FrameFeatures -> SpectralEngine / flicker estimate
                  -> TemporalCoherenceAnalyzer
                  -> TemporalContrastAnalyzer
                  -> PSICalculator
                  -> FlashViolationTracker
                  -> RiskEscalationEngine
                  -> FrameResult

Timestamps arrive in the unit declared by SessionConfig.timestamp_unit and
are converted to seconds once, here. A timestamp earlier than the previous
one is treated as a seek: every buffer, window and counter restarts, while
the sticky risk level survives until new_session().
"""

import math
from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .color.contrast_sensitivity import (
    ContrastSensitivityOptions,
    ContrastWindow,
    TemporalContrastAnalyzer,
)
from .color.lab import RGBColor, rgb_to_lab
from .core.config import SessionConfig
from .core.constants import RISK_HISTORY_LENGTH
from .risk.psi import PSICalculator, PSIResult
from .risk.risk_engine import RiskAssessment, RiskEscalationEngine, RiskInputs, level_rank
from .spectral.flicker import BrightnessChange, estimate_flicker_frequency
from .spectral.spectral_engine import SpectralEngine, SpectralResult
from .temporal.coherence import CoherenceResult, TemporalCoherenceAnalyzer
from .temporal.flash_violation import (
    FlashCluster,
    FlashViolationTracker,
    FlashViolationUpdate,
    ViolationWindow,
)
from .utils.logger import get_logger

logger = get_logger(__name__)


def _finite_or(value, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return default


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _coerce_rgb(color) -> tuple[float, float, float] | None:
    """
    Normalize an upstream dominant color to clamped (r, g, b).

    Accepts an RGBColor, a mapping with ``r``/``g``/``b`` keys or a sequence
    of three channels. Anything else, including non-numeric channels, gives
    None so the frame is skipped by the contrast analyzer.
    """
    if color is None:
        return None
    if isinstance(color, RGBColor):
        channels = color.as_tuple()
    elif isinstance(color, Mapping):
        channels = tuple(color.get(k) for k in ("r", "g", "b"))
    elif isinstance(color, Sequence) and not isinstance(color, str) and len(color) == 3:
        channels = tuple(color)
    else:
        logger.debug(f"Unbrauchbare Farbe verworfen: {color!r}")
        return None

    values = tuple(_finite_or(c, math.nan) for c in channels)
    if any(math.isnan(v) for v in values):
        logger.debug(f"Farbe mit ungültigen Kanälen verworfen: {color!r}")
        return None
    return tuple(_clamp(v, 0.0, 255.0) for v in values)


@dataclass
class FrameFeatures:
    """
    Upstream per-frame measurements.

    ``is_flash`` None means: derive it from the brightness change against
    the session's intensity threshold. ``dominant_color`` is an RGBColor,
    a ``{"r", "g", "b"}`` mapping or an (r, g, b) sequence, 0-255.
    """

    timestamp: float
    brightness: float
    dominant_color: RGBColor | Mapping | Sequence[float] | None = None
    is_flash: bool | None = None
    red_intensity: float | None = None
    coverage: float = 0.0
    pattern_score: float = 0.0
    red_green: float = 0.0
    blue_yellow: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "FrameFeatures":
        """Build from an upstream record; camelCase keys are accepted too."""
        renamed = {_UPSTREAM_KEYS.get(k, k): v for k, v in data.items()}
        known = {k: renamed[k] for k in cls.__dataclass_fields__ if k in renamed}
        return cls(**known)


# Feature-extractor record keys -> FrameFeatures fields
_UPSTREAM_KEYS = {
    "brightnessNormalized": "brightness",
    "dominantColor": "dominant_color",
    "isFlash": "is_flash",
    "redIntensity": "red_intensity",
    "patternScore": "pattern_score",
    "redGreen": "red_green",
    "blueYellow": "blue_yellow",
}


@dataclass(frozen=True)
class FrameResult:
    frame_index: int  # restarts after a seek
    session_frame_index: int
    timestamp: float  # Sekunden
    brightness: float
    brightness_diff: float
    is_flash: bool
    seek: bool
    spectral: SpectralResult
    flicker_hz: float
    coherence: CoherenceResult
    psi: PSIResult
    flash: FlashViolationUpdate
    contrast: ContrastWindow | None
    risk: RiskAssessment

    def to_dict(self) -> dict:
        return {
            "frame_index": self.frame_index,
            "session_frame_index": self.session_frame_index,
            "timestamp": self.timestamp,
            "brightness": self.brightness,
            "brightness_diff": self.brightness_diff,
            "is_flash": self.is_flash,
            "seek": self.seek,
            "dominant_frequency": self.spectral.dominant_frequency,
            "spectral_confidence_db": self.spectral.confidence_db,
            "spectral_flatness": self.spectral.spectral_flatness,
            "flicker_hz": self.flicker_hz,
            "coherence": self.coherence.to_dict(),
            "psi": self.psi.to_dict(),
            "flashes_in_window": self.flash.flashes_in_window,
            "violation_windows": self.flash.violation_window_count,
            "contrast_sensitivity": self.contrast.result.sensitivity if self.contrast else None,
            "risk_level": self.risk.level,
            "risk_debt": self.risk.risk_debt,
        }


@dataclass(frozen=True)
class SessionSummary:
    frame_count: int
    flash_count: int
    seek_count: int
    risk_level: str
    peak_psi: float
    violations: tuple[ViolationWindow, ...] = ()
    clusters: tuple[FlashCluster, ...] = ()
    violation_frame_count: int = 0
    last_contrast: ContrastWindow | None = None

    def to_dict(self) -> dict:
        return {
            "frame_count": self.frame_count,
            "flash_count": self.flash_count,
            "seek_count": self.seek_count,
            "risk_level": self.risk_level,
            "peak_psi": self.peak_psi,
            "violation_frame_count": self.violation_frame_count,
            "violations": [
                {
                    "start_time": v.start_time,
                    "end_time": v.end_time,
                    "start_frame": v.start_frame,
                    "end_frame": v.end_frame,
                    "frame_count": v.frame_count,
                    "flash_count": v.flash_count,
                    "clusters": len(v.associated_clusters),
                }
                for v in self.violations
            ],
            "clusters": [
                {
                    "start_time": c.start_time,
                    "end_time": c.end_time,
                    "start_frame": c.start_frame,
                    "end_frame": c.end_frame,
                    "count": c.count,
                }
                for c in self.clusters
            ],
            "contrast": self.last_contrast.result.to_dict() if self.last_contrast else None,
        }


@dataclass
class _SegmentState:
    """Everything that restarts on a seek."""

    frame_index: int = 0
    last_timestamp: float | None = None
    last_brightness: float | None = None
    last_red: float | None = None
    flash_intensities: list[float] = field(default_factory=list)
    flash_timestamps: deque = field(default_factory=lambda: deque(maxlen=RISK_HISTORY_LENGTH))
    pattern_history: deque = field(default_factory=lambda: deque(maxlen=RISK_HISTORY_LENGTH))
    brightness_changes: deque = field(default_factory=lambda: deque(maxlen=RISK_HISTORY_LENGTH))


class AnalysisSession:
    """
    One analysis session (one video).

    Not thread-safe; each concurrently analyzed video needs its own instance.
    """

    def __init__(self, config: SessionConfig):
        """
        Args:
            config: Validated settings (timestamp unit is mandatory)
        """
        self.config = config
        self.spectral = SpectralEngine(
            buffer_len=config.buffer_length,
            fft_len=config.fft_length,
            sample_rate_hz=config.sample_rate,
        )
        self.contrast = TemporalContrastAnalyzer(
            window_size_ms=config.window_size_ms,
            analysis_interval=config.analysis_interval,
            options=ContrastSensitivityOptions(
                threshold=config.jnd_threshold, half_life_ms=config.half_life_ms
            ),
        )
        self.coherence = TemporalCoherenceAnalyzer()
        self.psi = PSICalculator(config.analysis_interval)
        self.flashes = FlashViolationTracker(
            flash_threshold=config.flash_threshold,
            cluster_gap_threshold=config.cluster_gap_threshold,
        )
        self.risk = RiskEscalationEngine()

        self._segment = _SegmentState()
        self._total_frames = 0
        self._total_flashes = 0
        self._seek_count = 0
        self._peak_psi = 0.0
        self._violations: list[ViolationWindow] = []
        self._clusters: list[FlashCluster] = []
        self._last_contrast: ContrastWindow | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def new_session(self) -> None:
        """Start over completely, including the sticky risk level."""
        self._reset_segment()
        self.risk.reset()
        self._total_frames = 0
        self._total_flashes = 0
        self._seek_count = 0
        self._peak_psi = 0.0
        self._violations = []
        self._clusters = []
        self._last_contrast = None
        logger.info("Neue Analyse-Session gestartet")

    def _reset_segment(self) -> None:
        # Closed windows and clusters of the previous segment stay in the summary
        self._collect_flash_history()
        self.spectral.reset()
        self.coherence.reset()
        self.contrast.reset()
        self.psi.reset()
        self.flashes.reset()
        self._segment = _SegmentState()

    def _collect_flash_history(self) -> None:
        self._violations.extend(self.flashes.violations)
        self._clusters.extend(self.flashes.finalize())

    # ------------------------------------------------------------------
    # Per frame
    # ------------------------------------------------------------------

    def process_frame(self, features: FrameFeatures) -> FrameResult:
        """
        Run one frame through the pipeline.

        Args:
            features: Upstream measurements; timestamp in the configured unit

        Returns:
            FrameResult for this frame
        """
        raw_ts = _finite_or(features.timestamp, math.nan)
        seg = self._segment
        if math.isnan(raw_ts):
            # Ohne gültigen Zeitstempel: nominelles Intervall fortschreiben
            t = (
                seg.last_timestamp + self.config.analysis_interval
                if seg.last_timestamp is not None
                else 0.0
            )
            logger.debug(f"Frame without valid timestamp, using {t:.3f}s")
        else:
            t = self.config.to_seconds(raw_ts)

        seek = seg.last_timestamp is not None and t < seg.last_timestamp
        if seek:
            logger.info(f"Seek erkannt ({seg.last_timestamp:.3f}s -> {t:.3f}s), Puffer zurückgesetzt")
            self._seek_count += 1
            self._reset_segment()
            seg = self._segment

        frame_index = seg.frame_index
        brightness = _clamp(_finite_or(features.brightness, 0.0), 0.0, 1.0)
        brightness_diff = (
            abs(brightness - seg.last_brightness) if seg.last_brightness is not None else 0.0
        )
        if features.is_flash is None:
            is_flash = brightness_diff > self.config.intensity_threshold
        else:
            is_flash = bool(features.is_flash)

        # Spectral + interval-based flicker
        spectral = self.spectral.analyze(features.brightness, timestamp=t)
        seg.brightness_changes.append(BrightnessChange(t, brightness, brightness_diff))
        interval_hz = estimate_flicker_frequency(
            seg.brightness_changes, self.config.brightness_change_threshold
        )
        flicker_hz = spectral.dominant_frequency or interval_hz
        coherence = self.coherence.update(brightness)

        # Color
        contrast = None
        rgb = _coerce_rgb(features.dominant_color)
        if rgb is not None:
            contrast = self.contrast.push(t * 1000.0, rgb_to_lab(*rgb))
            if contrast is not None:
                self._last_contrast = contrast

        coverage = _clamp(_finite_or(features.coverage, 0.0), 0.0, 1.0)
        psi = self.psi.update(brightness, brightness_diff, coverage, t, is_flash)
        self._peak_psi = max(self._peak_psi, psi.score)

        flash_update = self.flashes.update(t, is_flash, frame_index)
        if is_flash:
            self._total_flashes += 1
            seg.flash_timestamps.append(t)
            if 0.0 <= brightness_diff <= 1.0:
                seg.flash_intensities.append(brightness_diff)

        seg.pattern_history.append(_clamp(_finite_or(features.pattern_score, 0.0), 0.0, 1.0))
        red_raw = _finite_or(features.red_intensity, math.nan)
        red = None if math.isnan(red_raw) else _clamp(red_raw, 0.0, 1.0)

        intensities = seg.flash_intensities
        risk = self.risk.assess(
            RiskInputs(
                flash_timestamps=tuple(seg.flash_timestamps),
                pattern_history=tuple(seg.pattern_history),
                average_intensity=sum(intensities) / len(intensities) if intensities else 0.0,
                coverage=coverage,
                psi_score=psi.score,
                red_intensity=red,
                previous_red_intensity=seg.last_red,
                red_green=_clamp(_finite_or(features.red_green, 0.0), 0.0, 1.0),
                blue_yellow=_clamp(_finite_or(features.blue_yellow, 0.0), 0.0, 1.0),
                flicker_hz=flicker_hz,
            )
        )

        seg.frame_index += 1
        seg.last_timestamp = t
        seg.last_brightness = brightness
        if red is not None:
            seg.last_red = red
        self._total_frames += 1

        return FrameResult(
            frame_index=frame_index,
            session_frame_index=self._total_frames - 1,
            timestamp=t,
            brightness=brightness,
            brightness_diff=brightness_diff,
            is_flash=is_flash,
            seek=seek,
            spectral=spectral,
            flicker_hz=flicker_hz,
            coherence=coherence,
            psi=psi,
            flash=flash_update,
            contrast=contrast,
            risk=risk,
        )

    def process(self, frames: Iterable[FrameFeatures]) -> list[FrameResult]:
        return [self.process_frame(f) for f in frames]

    def finish(self) -> SessionSummary:
        """
        Close open clusters and summarize the session.

        The session stays usable; further frames start a fresh segment of
        flash history.
        """
        self._collect_flash_history()
        self.flashes.reset()
        summary = SessionSummary(
            frame_count=self._total_frames,
            flash_count=self._total_flashes,
            seek_count=self._seek_count,
            risk_level=self.risk.highest_level,
            peak_psi=self._peak_psi,
            violations=tuple(self._violations),
            clusters=tuple(self._clusters),
            violation_frame_count=sum(v.frame_count for v in self._violations),
            last_contrast=self._last_contrast,
        )
        logger.info(
            f"Session beendet: {summary.frame_count} Frames, {summary.flash_count} Flashes, "
            f"{len(summary.violations)} Verstöße, Risiko {summary.risk_level}"
        )
        return summary

    @property
    def risk_level(self) -> str:
        return self.risk.highest_level

    def is_at_least(self, level: str) -> bool:
        return level_rank(self.risk.highest_level) >= level_rank(level)
