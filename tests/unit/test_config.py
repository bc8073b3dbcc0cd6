"""Tests for the .ini configuration layer."""

import logging

import pytest

from flashguard.core.config import Config, SessionConfig
from flashguard.core.constants import DEFAULT_CLUSTER_GAP, DEFAULT_FFT_LENGTH
from flashguard.core.exceptions import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "flashguard.ini"
    path.write_text(
        "[Session]\n"
        "timestamp_unit = milliseconds\n"
        "analysis_interval = 0.02\n"
        "[Spectral]\n"
        "fft_length = 128\n"
        "buffer_length = 256\n"
        "[Logging]\n"
        "console_level = WARNING\n",
        encoding="utf-8",
    )
    return path


def test_timestamp_unit_is_required():
    with pytest.raises(ConfigurationError) as exc:
        Config().to_session_config()
    assert exc.value.details["option"] == "timestamp_unit"


def test_defaults_once_unit_is_set():
    config = Config()
    config.set("Session", "timestamp_unit", "seconds")
    session = config.to_session_config()
    assert session.timestamp_unit == "seconds"
    assert session.fft_length == DEFAULT_FFT_LENGTH
    assert session.cluster_gap_threshold == DEFAULT_CLUSTER_GAP
    assert session.half_life_ms is None


def test_load_from_file(config_file):
    config = Config(config_file)
    session = config.to_session_config()
    assert session.timestamp_unit == "milliseconds"
    assert session.analysis_interval == 0.02
    assert session.fft_length == 128
    assert session.buffer_length == 256
    assert config.log_levels() == (logging.WARNING, logging.DEBUG)
    assert config.log_file() is None


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        Config(tmp_path / "nope.ini")


def test_save_round_trip(tmp_path, config_file):
    config = Config(config_file)
    config.set("Flash", "cluster_gap_threshold", 0.5)
    target = tmp_path / "out" / "saved.ini"
    config.save(target)
    assert Config(target).to_session_config().cluster_gap_threshold == 0.5


@pytest.mark.parametrize(
    "section, option, value",
    [
        ("Flash", "intensity_threshold", "3.0"),
        ("Flash", "intensity_threshold", "0"),
        ("Flash", "cluster_gap_threshold", "2.5"),
        ("Spectral", "buffer_length", "16"),
        ("Spectral", "fft_length", "8192"),
        ("Spectral", "sample_rate", "0"),
        ("Session", "timestamp_unit", "frames"),
        ("Contrast", "half_life_ms", "-1"),
    ],
)
def test_out_of_range_values(section, option, value):
    config = Config()
    config.set("Session", "timestamp_unit", "seconds")
    config.set(section, option, value)
    with pytest.raises(ConfigurationError):
        config.to_session_config()


def test_non_numeric_value():
    config = Config()
    config.set("Session", "timestamp_unit", "seconds")
    config.set("Spectral", "fft_length", "lots")
    with pytest.raises(ConfigurationError):
        config.to_session_config()


def test_broken_ini_is_wrapped():
    config = Config()
    with pytest.raises(ConfigurationError):
        config.read_string("no section header here")


def test_session_config_converts_units():
    assert SessionConfig(timestamp_unit="milliseconds").to_seconds(1500) == 1.5
    assert SessionConfig(timestamp_unit="seconds").to_seconds(1.5) == 1.5


def test_buffer_must_hold_fft_window():
    with pytest.raises(ConfigurationError):
        SessionConfig(timestamp_unit="seconds", fft_length=256, buffer_length=128)
