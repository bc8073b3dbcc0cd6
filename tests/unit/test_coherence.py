"""Tests for brightness coherence and periodicity."""

import numpy as np
import pytest

from flashguard.core.exceptions import ConfigurationError
from flashguard.temporal.coherence import (
    TemporalCoherenceAnalyzer,
    coherence_score,
    detect_periodicity,
)


def square_wave(n, period=6):
    half = period // 2
    return np.array([1.0 if (i // half) % 2 else 0.0 for i in range(n)])


class TestDetectPeriodicity:
    def test_square_wave_period(self):
        result = detect_periodicity(square_wave(30, period=6))
        assert result.is_periodic
        assert result.period == 6
        assert result.confidence == pytest.approx(1.0)

    def test_constant_signal_not_periodic(self):
        result = detect_periodicity(np.full(30, 0.5))
        assert not result.is_periodic
        assert result.period == 0
        assert result.confidence == 0.0

    def test_short_signal(self):
        assert not detect_periodicity(np.array([0.0, 1.0, 0.0])).is_periodic

    def test_non_finite_samples_count_as_zero(self):
        signal = square_wave(30, period=6)
        signal[0] = np.nan
        result = detect_periodicity(signal)
        assert result.is_periodic
        assert result.period == 6


class TestCoherenceScore:
    def test_flat_signal_scores_zero(self):
        score, lags = coherence_score(np.full(20, 0.5))
        assert score == 0.0
        assert len(lags) == 10

    def test_repeating_beats_noise(self):
        rng = np.random.default_rng(7)
        periodic, _ = coherence_score(square_wave(30, period=6))
        noisy, _ = coherence_score(rng.random(30))
        assert periodic > 0.45
        assert noisy < periodic

    def test_max_lag_limited_by_length(self):
        _, lags = coherence_score(np.array([0.0, 1.0, 0.0]), max_lag=10)
        assert [lag for lag, _ in lags] == [1, 2]


class TestTemporalCoherenceAnalyzer:
    def test_single_sample_is_empty(self):
        result = TemporalCoherenceAnalyzer().update(0.5)
        assert result.coherence_score == 0.0
        assert not result.periodicity.is_periodic
        assert result.lags == ()

    def test_window_keeps_latest_samples(self):
        analyzer = TemporalCoherenceAnalyzer(window_size=30)
        for _ in range(40):
            analyzer.update(0.2)
        for value in square_wave(30, period=6):
            result = analyzer.update(float(value))
        assert len(analyzer.ring) == 30
        assert result.periodicity.is_periodic
        assert result.periodicity.period == 6

    @pytest.mark.parametrize("bad", [float("nan"), -0.5, 1.5, None])
    def test_invalid_brightness_counts_as_zero(self, bad):
        analyzer = TemporalCoherenceAnalyzer()
        analyzer.update(bad)
        assert analyzer.ring.to_array()[-1] == 0.0

    def test_reset(self):
        analyzer = TemporalCoherenceAnalyzer()
        analyzer.update(0.1)
        analyzer.update(0.9)
        analyzer.reset()
        assert len(analyzer.ring) == 0

    @pytest.mark.parametrize("kwargs", [{"window_size": 1}, {"max_lag": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ConfigurationError):
            TemporalCoherenceAnalyzer(**kwargs)
