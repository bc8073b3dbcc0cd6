"""
Risk-Modul

- PSI: Photosensitive Seizure Index pro Frame
- RiskEscalationEngine: Sticky low/medium/high Klassifikation mit Risk-Debt
"""

from .psi import PSICalculator, PSIResult
from .risk_engine import (
    RiskAssessment,
    RiskEscalationEngine,
    RiskInputs,
    flicker_hazard_score,
    max_flashes_in_window,
)

__all__ = [
    "PSICalculator",
    "PSIResult",
    "RiskInputs",
    "RiskAssessment",
    "RiskEscalationEngine",
    "max_flashes_in_window",
    "flicker_hazard_score",
]
