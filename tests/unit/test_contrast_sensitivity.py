"""Tests for contrast sensitivity (pure and streaming)."""

import random

import pytest

from flashguard.color.contrast_sensitivity import (
    INSUFFICIENT_COLORS,
    ColorSample,
    ContrastSensitivityOptions,
    TemporalContrastAnalyzer,
    analyze_temporal_series,
    calculate_contrast_sensitivity,
    calculate_contrast_sensitivity_rgb,
)
from flashguard.color.lab import LabColor, RGBColor, cie76, rgb_to_lab

GREY = LabColor(50.0, 0.0, 0.0)
JUMP = LabColor(50.0, 50.0, 0.0)


class TestLab:
    def test_white_and_black(self):
        white = rgb_to_lab(255, 255, 255)
        black = rgb_to_lab(0, 0, 0)
        assert white.L == pytest.approx(100.0, abs=0.01)
        assert black.L == pytest.approx(0.0, abs=0.01)
        assert cie76(white, black) == pytest.approx(100.0, abs=0.1)

    def test_out_of_range_rgb(self):
        with pytest.raises(ValueError):
            rgb_to_lab(256, 0, 0)


class TestPureAnalyzer:
    def test_identical_colors(self):
        result = calculate_contrast_sensitivity([GREY] * 10)
        assert result.average_delta_e == 0.0
        assert result.significant_changes == 0
        assert result.sensitivity == 0.0
        assert result.error is None

    def test_insufficient_samples(self):
        result = calculate_contrast_sensitivity([GREY])
        assert result.error == INSUFFICIENT_COLORS
        assert result.total_samples == 1
        assert result.sensitivity == 0.0

    def test_single_jump(self):
        result = calculate_contrast_sensitivity([GREY, GREY, JUMP])
        assert result.significant_changes == 1
        assert result.max_delta_e == 50.0
        assert result.average_delta_e == 25.0
        assert result.fluctuations == 25.0
        assert result.fluctuation_rate == 50.0
        assert result.coefficient_of_variation == 1.0
        assert result.sensitivity == 100.0
        assert result.total_samples == 3

    def test_percentiles(self):
        result = calculate_contrast_sensitivity([GREY, GREY, JUMP])
        assert result.median_delta_e == 25.0
        assert result.p90_delta_e == 45.0
        assert result.p95_delta_e == 47.5

    def test_sample_std_dev(self):
        options = ContrastSensitivityOptions(sample_std_dev=True)
        result = calculate_contrast_sensitivity([GREY, GREY, JUMP], options)
        assert result.fluctuations == 35.36

    def test_idempotent(self):
        rng = random.Random(3)
        labs = [LabColor(rng.uniform(0, 100), rng.uniform(-50, 50), rng.uniform(-50, 50)) for _ in range(40)]
        assert calculate_contrast_sensitivity(labs) == calculate_contrast_sensitivity(labs)

    def test_invalid_threshold_falls_back_to_jnd(self):
        options = ContrastSensitivityOptions(threshold=0)
        result = calculate_contrast_sensitivity([GREY, LabColor(52.0, 0.0, 0.0)], options)
        # Delta E 2.0 is below the 2.3 JND
        assert result.significant_changes == 0


class TestWeighting:
    LABS = [LabColor(0.0, 0.0, 0.0), LabColor(10.0, 0.0, 0.0), LabColor(10.0, 0.0, 0.0)]

    def test_no_decay_is_plain_mean(self):
        options = ContrastSensitivityOptions(weight_decay=0.0)
        assert calculate_contrast_sensitivity(self.LABS, options).weighted_average_delta_e == 5.0

    def test_strong_decay_favours_newest(self):
        options = ContrastSensitivityOptions(weight_decay=50.0)
        assert calculate_contrast_sensitivity(self.LABS, options).weighted_average_delta_e == 0.0

    def test_newest_jump_weighs_more(self):
        result = calculate_contrast_sensitivity([GREY, GREY, JUMP])
        assert result.weighted_average_delta_e > result.average_delta_e

    def test_time_weighting(self):
        options = ContrastSensitivityOptions(timestamps_ms=[0, 1000, 2000], half_life_ms=1000)
        # ages 1000 ms and 0 ms -> weights 0.5 and 1
        assert calculate_contrast_sensitivity(self.LABS, options).weighted_average_delta_e == 3.33

    def test_weighting_disabled(self):
        options = ContrastSensitivityOptions(use_weighting=False)
        assert calculate_contrast_sensitivity(self.LABS, options).weighted_average_delta_e is None


class TestRGBFrontEnd:
    def test_black_white(self):
        result = calculate_contrast_sensitivity_rgb([(0, 0, 0), RGBColor(255, 255, 255)])
        assert result.max_delta_e == pytest.approx(100.0, abs=0.1)

    def test_invalid_colors_dropped(self):
        result = calculate_contrast_sensitivity_rgb([(0, 0, 0), (300, 0, 0), None, (1, 2)])
        assert result.error == INSUFFICIENT_COLORS
        assert result.total_samples == 1


class TestTemporalAnalyzer:
    def test_adaptive_parameters(self):
        analyzer = TemporalContrastAnalyzer(window_size_ms=1000, analysis_interval=0.5)
        assert analyzer.min_samples_per_window == 5
        assert analyzer.adaptive_window_size == 2500
        assert analyzer.half_life_ms == 625
        assert analyzer.effective_fps == 2.0

    def test_dense_sampling(self):
        analyzer = TemporalContrastAnalyzer(window_size_ms=1000, analysis_interval=0.125)
        assert analyzer.min_samples_per_window == 8
        assert analyzer.adaptive_window_size == 1000
        assert analyzer.half_life_ms == 250
        assert analyzer.options.window_size == 10

    def test_window_only_moves_forward(self):
        analyzer = TemporalContrastAnalyzer(window_size_ms=1000, analysis_interval=0.125)
        windows = []
        for i in range(24):
            lab = GREY if i % 2 else JUMP
            window = analyzer.push(i * 125.0, lab)
            if i < 7:
                assert window is None
            else:
                windows.append(window)

        assert len(windows) == 17
        starts = [w.start_time for w in windows]
        assert starts == sorted(starts)
        assert all(w.duration <= 1000 for w in windows)
        assert all(w.result.significant_changes > 0 for w in windows)

    def test_stream_average_for_constant_color(self):
        analyzer = TemporalContrastAnalyzer(analysis_interval=0.125)
        window = None
        for i in range(10):
            window = analyzer.push(i * 125.0, GREY)
        assert window.stream_weighted_average_delta_e == 0.0

    def test_reset(self):
        analyzer = TemporalContrastAnalyzer(analysis_interval=0.125)
        for i in range(10):
            analyzer.push(i * 125.0, GREY)
        analyzer.reset()
        assert analyzer.stream_weighted_average is None
        assert analyzer.push(0.0, GREY) is None


def test_analyze_temporal_series_sorts_and_converts():
    samples = [
        ColorSample(i * 125.0, RGBColor(255, 0, 0) if i % 2 else RGBColor(0, 0, 255))
        for i in range(24)
    ]
    random.Random(1).shuffle(samples)
    windows = analyze_temporal_series(samples, window_size_ms=1000, analysis_interval=0.125)

    assert len(windows) == 17
    ends = [w.end_time for w in windows]
    assert ends == sorted(ends)
    assert windows[-1].result.average_delta_e > 100


def test_analyze_temporal_series_empty():
    assert analyze_temporal_series([]) == []
