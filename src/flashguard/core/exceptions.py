"""
Custom Exceptions für flashguard.

Hierarchie:
    FlashGuardError (Base)
    ├── ConfigurationError
    ├── AnalysisError
    │   └── SignalError
    └── InvariantViolationError

Insufficient data is never an exception: analyzers return zeroed results.
"""


class FlashGuardError(Exception):
    """
    Base exception für alle flashguard Fehler.

    Alle custom exceptions erben von dieser Klasse.
    """

    def __init__(self, message: str = "", details: dict = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dict with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(FlashGuardError):
    """
    Konfigurations-Fehler.

    Raised when:
    - Config file is invalid
    - Required settings are not set (e.g. timestamp unit)
    - Values are outside their valid range
    """

    def __init__(
        self, message: str = "", option: str = None, value=None, details: dict = None, **kwargs
    ):
        details = {**(details or {}), **kwargs}
        if option is not None:
            details["option"] = option
        if value is not None:
            details["value"] = value
        super().__init__(message, details=details)


# =============================================================================
# Analysis Errors
# =============================================================================


class AnalysisError(FlashGuardError):
    """
    Analyse-Fehler.

    Base class for recoverable numeric errors inside the engine.
    """

    pass


class SignalError(AnalysisError):
    """
    Ungültiges Signal für die FFT.

    Raised when:
    - Signal is empty or too long
    - Length is not a power of two
    - Signal contains NaN/inf
    """

    def __init__(self, message: str = "", length: int = None, details: dict = None, **kwargs):
        super().__init__(message, details={"length": length, **(details or {}), **kwargs})


# =============================================================================
# Programmer Errors
# =============================================================================


class InvariantViolationError(FlashGuardError):
    """
    Interne Invariante verletzt.

    Indicates a bug, not bad input. Never caught inside the engine.

    Raised when:
    - Percentile tree size/height/balance bookkeeping is corrupt
    - FFT buffer length does not match the plan
    """

    pass


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(original: Exception, wrapper_class: type) -> FlashGuardError:
    """
    Wrap a standard exception in a flashguard exception.

    Args:
        original: The original exception
        wrapper_class: The FlashGuardError class to use

    Returns:
        Wrapped FlashGuardError instance

    Example:
        try:
            value = parser.getfloat("Flash", "cluster_gap_threshold")
        except ValueError as e:
            raise wrap_exception(e, ConfigurationError) from e
    """
    return wrapper_class(
        message=str(original),
        details={
            "original_type": type(original).__name__,
            "original_args": original.args,
        },
    )
