"""
Spectral-Modul

Komponenten:
- FFT: radix-2 Cooley-Tukey mit Bit-Reversal und Twiddle-Tabellen
- PhaseTracker: Instantane Frequenz aus Phasenfortschritt
- SpectralEngine: Dominante Flackerfrequenz, Konfidenz, spektrale Flachheit
- Flicker: Frequenzschätzung aus Helligkeitsänderungs-Intervallen
"""

from .fft import FFTPlan, is_power_of_two, next_power_of_two, pad_to_power_of_two, perform_fft
from .flicker import BrightnessChange, estimate_flicker_frequency
from .phase_tracker import PhaseTracker, wrap_phase
from .spectral_engine import SpectralBin, SpectralEngine, SpectralResult, compute_spectral_flatness

__all__ = [
    "FFTPlan",
    "perform_fft",
    "is_power_of_two",
    "next_power_of_two",
    "pad_to_power_of_two",
    "PhaseTracker",
    "wrap_phase",
    "SpectralEngine",
    "SpectralResult",
    "SpectralBin",
    "compute_spectral_flatness",
    "BrightnessChange",
    "estimate_flicker_frequency",
]
