"""Temporal flash and brightness-coherence analysis."""

from .coherence import (
    CoherenceResult,
    PeriodicityResult,
    TemporalCoherenceAnalyzer,
    coherence_score,
    detect_periodicity,
)
from .flash_violation import (
    FlashCluster,
    FlashEvent,
    FlashViolationTracker,
    FlashViolationUpdate,
    ViolationWindow,
    recommended_cluster_gap,
)

__all__ = [
    "FlashEvent",
    "FlashCluster",
    "ViolationWindow",
    "FlashViolationUpdate",
    "FlashViolationTracker",
    "recommended_cluster_gap",
    "CoherenceResult",
    "PeriodicityResult",
    "TemporalCoherenceAnalyzer",
    "coherence_score",
    "detect_periodicity",
]
