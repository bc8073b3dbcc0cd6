"""Utilities: Logging und Ring-Buffer."""

from .logger import get_logger, setup_logging
from .ring_buffer import RingBuffer

__all__ = ["get_logger", "setup_logging", "RingBuffer"]
