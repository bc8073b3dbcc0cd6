"""
Photosensitive Seizure Index (PSI).

Composite 0..1 score per frame from five components:
    frequency  - flashes per second so far, relative to 3/s
    intensity  - brightness change vs. previous frame, relative to 0.2
    coverage   - bright-area fraction of the frame
    duration   - frame duration of the most recent flash, relative to 50 ms
    brightness - current normalized brightness
"""

from dataclasses import asdict, dataclass

from ..core.constants import (
    DEFAULT_ANALYSIS_INTERVAL,
    PSI_DURATION_REFERENCE_MS,
    PSI_FREQUENCY_REFERENCE,
    PSI_INTENSITY_REFERENCE,
    PSI_WEIGHTS,
)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class PSIResult:
    score: float
    frequency: float
    intensity: float
    coverage: float
    duration: float
    brightness: float

    def to_dict(self) -> dict:
        return asdict(self)


class PSICalculator:
    """Running PSI over one session."""

    def __init__(self, analysis_interval: float = DEFAULT_ANALYSIS_INTERVAL):
        """
        Args:
            analysis_interval: Nominal seconds between frames, used for the
                elapsed time before the second timestamp arrives
        """
        self.analysis_interval = analysis_interval
        self.reset()

    def reset(self) -> None:
        self.flash_count = 0
        self.frame_count = 0
        self.first_timestamp: float | None = None
        self.last_timestamp: float | None = None
        self.last_flash_duration_ms = 0.0

    def flashes_per_second(self) -> float:
        if self.frame_count == 0 or self.first_timestamp is None:
            return 0.0
        # Elapsed time covers frame_count frames, one interval each
        elapsed = max(
            self.last_timestamp - self.first_timestamp + self.analysis_interval,
            self.analysis_interval,
        )
        return self.flash_count / elapsed

    def update(
        self,
        brightness: float,
        brightness_diff: float,
        coverage: float,
        timestamp: float,
        is_flash: bool,
    ) -> PSIResult:
        """
        Register one frame and compute its PSI.

        Args:
            brightness: Normalized brightness (0..1)
            brightness_diff: Absolute brightness change vs. previous frame
            coverage: Bright-area fraction (0..1)
            timestamp: Frame time in seconds
            is_flash: Flash detected on this frame

        Returns:
            PSIResult with score and components
        """
        if is_flash:
            self.flash_count += 1
            if self.last_timestamp is not None:
                self.last_flash_duration_ms = max(0.0, (timestamp - self.last_timestamp) * 1000.0)
            else:
                self.last_flash_duration_ms = self.analysis_interval * 1000.0

        self.frame_count += 1
        if self.first_timestamp is None:
            self.first_timestamp = timestamp
        self.last_timestamp = timestamp

        components = {
            "frequency": min(self.flashes_per_second() / PSI_FREQUENCY_REFERENCE, 1.0),
            "intensity": _clamp01(abs(brightness_diff) / PSI_INTENSITY_REFERENCE),
            "coverage": _clamp01(coverage),
            "duration": min(self.last_flash_duration_ms / PSI_DURATION_REFERENCE_MS, 1.0),
            "brightness": _clamp01(brightness),
        }
        score = sum(components[name] * weight for name, weight in PSI_WEIGHTS.items())
        return PSIResult(score=score, **components)
