"""
Zentrale Konstanten für flashguard

Thresholds and defaults shared by the analyzers, grouped by component.
"""

import math

# =============================================================================
# GENERAL
# =============================================================================

EPSILON = 1e-10

TIMESTAMP_UNIT_SECONDS = "seconds"
TIMESTAMP_UNIT_MILLISECONDS = "milliseconds"
TIMESTAMP_UNITS = (TIMESTAMP_UNIT_SECONDS, TIMESTAMP_UNIT_MILLISECONDS)

DEFAULT_ANALYSIS_INTERVAL = 1.0 / 30.0  # Sekunden zwischen Samples

# =============================================================================
# SPECTRAL
# =============================================================================

DEFAULT_BUFFER_LENGTH = 128
DEFAULT_FFT_LENGTH = 64
DEFAULT_SAMPLE_RATE = 60.0  # Hz
MIN_SPECTRAL_SAMPLES = 32
MAX_SIGNAL_LENGTH = 4096

# Band for the dominant flicker frequency
SPECTRAL_BAND_MIN_HZ = 3.0
SPECTRAL_BAND_MAX_HZ = 50.0
CONFIDENCE_NEIGHBOR_BINS = 4

# Flicker estimate from brightness-change intervals
FLICKER_MAX_INTERVAL = 10.0  # Sekunden
FLICKER_MAX_HZ = 100.0
BRIGHTNESS_CHANGE_THRESHOLD = 0.1  # change counted as a flicker event

# =============================================================================
# PERCENTILES / CONTRAST SENSITIVITY
# =============================================================================

JND_CIE76 = 2.3  # Just noticeable difference for CIE76
DEFAULT_INDEX_WINDOW = 50
MIN_TEMPORAL_SAMPLES = 5
MIN_HALF_LIFE_MS = 250.0
DEFAULT_TEMPORAL_WINDOW_MS = 1000.0
MIN_INDEX_WINDOW_TEMPORAL = 10
LN2 = math.log(2.0)

# =============================================================================
# FLASH VIOLATION
# =============================================================================

VIOLATION_WINDOW_SECONDS = 1.0
DEFAULT_FLASH_THRESHOLD = 3  # more than 3 flashes per second is a violation
DEFAULT_CLUSTER_GAP = 0.3  # Sekunden
MIN_CLUSTER_GAP = 0.05
MAX_CLUSTER_GAP = 2.0
CLUSTER_GAP_INTERVAL_FACTOR = 3.5

DEFAULT_INTENSITY_THRESHOLD = 0.2
MAX_INTENSITY_THRESHOLD = 2.0

# =============================================================================
# TEMPORAL COHERENCE
# =============================================================================

DEFAULT_COHERENCE_WINDOW = 30  # Frames
DEFAULT_COHERENCE_MAX_LAG = 10
PERIODICITY_MIN_LAG = 2
PERIODICITY_THRESHOLD = 0.5
PERIODICITY_TIE_TOLERANCE = 1e-9  # equal peaks resolve to the shorter period
COHERENCE_VARIANCE_FLOOR = 1e-8

# =============================================================================
# PSI
# =============================================================================

PSI_FREQUENCY_REFERENCE = 3.0  # flashes per second
PSI_INTENSITY_REFERENCE = 0.2
PSI_DURATION_REFERENCE_MS = 50.0
PSI_WEIGHTS = {
    "frequency": 0.3,
    "intensity": 0.25,
    "coverage": 0.2,
    "duration": 0.15,
    "brightness": 0.1,
}

# =============================================================================
# RISK
# =============================================================================

# FLASHES_HIGH = 3 means more than 3 per second is high risk; exactly 3 is allowed.
RISK_THRESHOLDS = {
    "PSI_HIGH": 0.8,
    "PSI_MEDIUM": 0.65,
    "INTENSITY_HIGH": 0.8,
    "INTENSITY_MEDIUM": 0.6,
    "COVERAGE_HIGH": 0.25,
    "COVERAGE_MEDIUM": 0.15,
    "RED_HIGH": 0.8,
    "RED_MEDIUM": 0.5,
    "RED_DELTA_HIGH": 0.6,
    "RED_DELTA_MEDIUM": 0.4,
    "CHROMA_HIGH": 0.8,
    "CHROMA_MEDIUM": 0.5,
    "PATTERN_HIGH": 0.8,
    "PATTERN_MEDIUM": 0.5,
    "FLASHES_HIGH": 3,
    "WEIGHT_PSI": 0.7,
    "WEIGHT_COLOR": 0.2,
    "WEIGHT_PATTERN": 0.1,
    "WEIGHT_HIGH": 0.75,
    "WEIGHT_MEDIUM": 0.5,
    "FLICKER_MIN": 3.0,
    "FLICKER_MAX": 30.0,
    "FLICKER_PEAK": 18.0,
    "RED_DELTA_MULTIPLIER": 1.5,
    "RISK_DEBT_DECAY": 0.95,
    "RISK_NEAR_START_FRAC": 0.8,
    "RISK_DEBT_MEDIUM": 0.60,
    "RISK_DEBT_HIGH": 0.85,
}

RISK_LEVELS = ("low", "medium", "high")
RISK_HISTORY_LENGTH = 128  # recent flash timestamps and pattern scores kept for assessment
