"""
Risk Escalation Engine

Combines flash, spatial, PSI, color, pattern and flicker signals into a
low/medium/high classification. The reported level is sticky: it never drops
below the highest level seen since the last reset().

A risk-debt integrator accumulates sustained near-threshold exposure and can
promote the level on its own (medium at 0.60, high at 0.85).
"""

from collections.abc import Sequence
from dataclasses import asdict, dataclass

from ..core.constants import RISK_LEVELS, RISK_THRESHOLDS
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = RISK_THRESHOLDS

_RANK = {level: rank for rank, level in enumerate(RISK_LEVELS)}


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def level_rank(level: str) -> int:
    return _RANK.get(level, 0)


def max_flashes_in_window(timestamps: Sequence[float], window: float = 1.0) -> tuple[int, int]:
    """
    Peak flash count in any rolling window (two-pointer sweep).

    Args:
        timestamps: Flash timestamps in seconds, any order
        window: Window length in seconds

    Returns:
        (max_count, sequence_violations) where a violation is a window end
        with more than FLASHES_HIGH flashes
    """
    ts = sorted(timestamps)
    best = 0
    violations = 0
    start = 0
    for end in range(len(ts)):
        while ts[end] - ts[start] > window:
            start += 1
        count = end - start + 1
        best = max(best, count)
        if count > T["FLASHES_HIGH"]:
            violations += 1
    return best, violations


def near_score(value: float, start: float, end: float) -> float:
    """0 below start, 1 at end, linear in between."""
    if end <= start:
        return 1.0 if value >= end else 0.0
    return _clamp01((value - start) / (end - start))


def flicker_hazard_score(hz: float) -> float:
    """Triangular hazard weight, 1 at the 18 Hz peak, 0 outside 3-30 Hz."""
    lo, peak, hi = T["FLICKER_MIN"], T["FLICKER_PEAK"], T["FLICKER_MAX"]
    if hz < lo or hz > hi:
        return 0.0
    if hz == peak:
        return 1.0
    if hz < peak:
        return _clamp01(1.0 - (peak - hz) / (peak - lo))
    return _clamp01(1.0 - (hz - peak) / (hi - peak))


@dataclass
class RiskInputs:
    """Aggregated per-frame signals for one assessment."""

    flash_timestamps: Sequence[float] = ()  # Sekunden
    pattern_history: Sequence[float] = ()
    average_intensity: float = 0.0
    coverage: float = 0.0
    psi_score: float = 0.0
    red_intensity: float | None = None
    previous_red_intensity: float | None = None
    red_green: float = 0.0
    blue_yellow: float = 0.0
    flicker_hz: float = 0.0


@dataclass(frozen=True)
class RiskAssessment:
    level: str
    raw_level: str
    max_flashes_in_1s: int
    sequence_violations: int
    average_intensity: float
    coverage: float
    psi_score: float
    red_intensity: float
    red_delta: float
    color_risk: float
    pattern_score: float
    flicker_hz: float
    weighted_score: float
    risk_debt: float
    sufficient_history: bool

    def to_dict(self) -> dict:
        return asdict(self)


class RiskEscalationEngine:
    """Sticky risk classification, one instance per analysis session."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Start a new session: level back to low, debt cleared."""
        self.highest_level = RISK_LEVELS[0]
        self.risk_debt = 0.0

    @staticmethod
    def has_sufficient_history(inputs: RiskInputs) -> bool:
        return (
            len(inputs.flash_timestamps) > 1
            and len(inputs.pattern_history) > 1
            and inputs.red_intensity is not None
            and inputs.previous_red_intensity is not None
        )

    def assess(self, inputs: RiskInputs) -> RiskAssessment:
        """
        Classify the current frame and update the sticky level.

        Args:
            inputs: Aggregated signals

        Returns:
            RiskAssessment; ``level`` is max(current, highest so far)
        """
        max_flashes, violations = max_flashes_in_window(inputs.flash_timestamps)

        intensity = _clamp01(inputs.average_intensity)
        coverage = _clamp01(inputs.coverage)
        psi = _clamp01(inputs.psi_score)
        red = inputs.red_intensity if inputs.red_intensity is not None else 0.0
        red_delta = (
            abs(red - inputs.previous_red_intensity)
            if inputs.previous_red_intensity is not None
            else 0.0
        )
        rg, by = inputs.red_green, inputs.blue_yellow
        pattern = _clamp01(inputs.pattern_history[-1]) if len(inputs.pattern_history) else 0.0
        flicker_hz = inputs.flicker_hz or 0.0
        flicker_risk = T["FLICKER_MIN"] <= flicker_hz <= T["FLICKER_MAX"]

        color_risk = _clamp01(max(red_delta * T["RED_DELTA_MULTIPLIER"], red, rg, by))
        weighted = T["WEIGHT_PSI"] * psi + T["WEIGHT_COLOR"] * color_risk + T["WEIGHT_PATTERN"] * pattern

        self._accumulate_debt(intensity, coverage, psi, max_flashes, flicker_hz if flicker_risk else None)

        sufficient = self.has_sufficient_history(inputs)
        level = RISK_LEVELS[0]
        if sufficient:
            if (
                psi >= T["PSI_HIGH"]
                or max_flashes > T["FLASHES_HIGH"]
                or violations > 0
                or intensity >= T["INTENSITY_HIGH"]
                or coverage >= T["COVERAGE_HIGH"]
                or red >= T["RED_HIGH"]
                or red_delta >= T["RED_DELTA_HIGH"]
                or rg >= T["CHROMA_HIGH"]
                or by >= T["CHROMA_HIGH"]
                or (flicker_risk and (intensity >= T["INTENSITY_HIGH"] or coverage >= T["COVERAGE_HIGH"]))
                or pattern >= T["PATTERN_HIGH"]
            ):
                level = "high"
            elif (
                psi >= T["PSI_MEDIUM"]
                or intensity >= T["INTENSITY_MEDIUM"]
                or coverage >= T["COVERAGE_MEDIUM"]
                or red >= T["RED_MEDIUM"]
                or red_delta >= T["RED_DELTA_MEDIUM"]
                or rg >= T["CHROMA_MEDIUM"]
                or by >= T["CHROMA_MEDIUM"]
                or (flicker_risk and (intensity >= T["INTENSITY_MEDIUM"] or coverage >= T["COVERAGE_MEDIUM"]))
                or pattern >= T["PATTERN_MEDIUM"]
            ):
                level = "medium"
            elif weighted >= T["WEIGHT_HIGH"]:
                level = "high"
            elif weighted >= T["WEIGHT_MEDIUM"]:
                level = "medium"

        # Risk debt can only raise the level
        if self.risk_debt >= T["RISK_DEBT_HIGH"]:
            level = "high"
        elif self.risk_debt >= T["RISK_DEBT_MEDIUM"] and level == "low":
            level = "medium"

        raw_level = level
        if level_rank(level) > level_rank(self.highest_level):
            logger.info(f"Risk escalated: {self.highest_level} -> {level}")
            self.highest_level = level

        return RiskAssessment(
            level=self.highest_level,
            raw_level=raw_level,
            max_flashes_in_1s=max_flashes,
            sequence_violations=violations,
            average_intensity=intensity,
            coverage=coverage,
            psi_score=psi,
            red_intensity=red,
            red_delta=red_delta,
            color_risk=color_risk,
            pattern_score=pattern,
            flicker_hz=flicker_hz,
            weighted_score=weighted,
            risk_debt=self.risk_debt,
            sufficient_history=sufficient,
        )

    def _accumulate_debt(
        self,
        intensity: float,
        coverage: float,
        psi: float,
        max_flashes: int,
        flicker_hz: float | None,
    ) -> None:
        frac = T["RISK_NEAR_START_FRAC"]
        spatial_near = max(
            near_score(intensity, frac * T["INTENSITY_HIGH"], T["INTENSITY_HIGH"]),
            near_score(coverage, frac * T["COVERAGE_HIGH"], T["COVERAGE_HIGH"]),
        )
        psi_near = near_score(psi, frac * T["PSI_HIGH"], T["PSI_HIGH"])
        flashes_near = _clamp01((max_flashes - 1) / 2.0)
        flicker_near = flicker_hazard_score(flicker_hz) if flicker_hz is not None else 0.0

        add = 0.40 * spatial_near + 0.25 * psi_near + 0.25 * flashes_near + 0.10 * flicker_near
        decay = T["RISK_DEBT_DECAY"]
        self.risk_debt = _clamp01(self.risk_debt * decay + (1.0 - decay) * _clamp01(add))
