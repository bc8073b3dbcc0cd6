"""
flashguard - Photosensitivity risk analysis of video frame features.

Streaming engine between per-frame measurements and the final report:
spectral brightness analysis, percentile statistics, perceptual contrast
sensitivity, WCAG-style flash windows and sticky risk escalation.
"""

from .core.config import Config, SessionConfig
from .core.exceptions import (
    AnalysisError,
    ConfigurationError,
    FlashGuardError,
    InvariantViolationError,
    SignalError,
)
from .session import AnalysisSession, FrameFeatures, FrameResult, SessionSummary

__version__ = "0.1.0"

__all__ = [
    "AnalysisSession",
    "FrameFeatures",
    "FrameResult",
    "SessionSummary",
    "Config",
    "SessionConfig",
    "FlashGuardError",
    "ConfigurationError",
    "AnalysisError",
    "SignalError",
    "InvariantViolationError",
]
