import sys
from pathlib import Path

import pytest

# Add src to the Python path so that flashguard can be imported without installing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


@pytest.fixture
def sine_samples():
    """Factory for brightness sinusoids around 0.5."""
    import numpy as np

    def make(freq_hz: float, fs: float, n: int, amplitude: float = 0.3):
        t = np.arange(n) / fs
        return 0.5 + amplitude * np.sin(2 * np.pi * freq_hz * t)

    return make
