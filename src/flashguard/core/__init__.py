"""
Core-Modul: Konfiguration, Konstanten und Exceptions.
"""

from .config import Config, SessionConfig
from .exceptions import (
    AnalysisError,
    ConfigurationError,
    FlashGuardError,
    InvariantViolationError,
    SignalError,
    wrap_exception,
)

__all__ = [
    "Config",
    "SessionConfig",
    "FlashGuardError",
    "ConfigurationError",
    "AnalysisError",
    "SignalError",
    "InvariantViolationError",
    "wrap_exception",
]
