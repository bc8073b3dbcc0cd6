"""
Zentrales Konfigurations-Management für flashguard

Verwendet configparser für .ini-Dateien. Der Config-Wrapper liefert typisierte
Werte mit Defaults; to_session_config() validiert alles an der Grenze und
erzeugt eine unveränderliche SessionConfig.
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..utils.logger import get_logger
from .constants import (
    BRIGHTNESS_CHANGE_THRESHOLD,
    DEFAULT_ANALYSIS_INTERVAL,
    DEFAULT_BUFFER_LENGTH,
    DEFAULT_CLUSTER_GAP,
    DEFAULT_FFT_LENGTH,
    DEFAULT_FLASH_THRESHOLD,
    DEFAULT_INTENSITY_THRESHOLD,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_TEMPORAL_WINDOW_MS,
    JND_CIE76,
    MAX_CLUSTER_GAP,
    MAX_INTENSITY_THRESHOLD,
    MAX_SIGNAL_LENGTH,
    MIN_SPECTRAL_SAMPLES,
    TIMESTAMP_UNITS,
)
from .exceptions import ConfigurationError, wrap_exception

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    """Validated settings for one AnalysisSession."""

    timestamp_unit: str
    analysis_interval: float = DEFAULT_ANALYSIS_INTERVAL
    buffer_length: int = DEFAULT_BUFFER_LENGTH
    fft_length: int = DEFAULT_FFT_LENGTH
    sample_rate: float = DEFAULT_SAMPLE_RATE
    flash_threshold: int = DEFAULT_FLASH_THRESHOLD
    intensity_threshold: float = DEFAULT_INTENSITY_THRESHOLD
    cluster_gap_threshold: float = DEFAULT_CLUSTER_GAP
    brightness_change_threshold: float = BRIGHTNESS_CHANGE_THRESHOLD
    jnd_threshold: float = JND_CIE76
    half_life_ms: float | None = None
    window_size_ms: float = DEFAULT_TEMPORAL_WINDOW_MS

    def __post_init__(self):
        if self.timestamp_unit not in TIMESTAMP_UNITS:
            raise ConfigurationError(
                f"timestamp_unit must be one of {TIMESTAMP_UNITS}",
                option="timestamp_unit",
                value=self.timestamp_unit,
            )
        if not self.analysis_interval > 0:
            raise ConfigurationError(
                "analysis_interval must be positive",
                option="analysis_interval",
                value=self.analysis_interval,
            )
        if not 1 < self.fft_length <= MAX_SIGNAL_LENGTH:
            raise ConfigurationError(
                f"fft_length must be in (1, {MAX_SIGNAL_LENGTH}]",
                option="fft_length",
                value=self.fft_length,
            )
        min_buffer = max(MIN_SPECTRAL_SAMPLES, self.fft_length)
        if self.buffer_length < min_buffer:
            raise ConfigurationError(
                f"buffer_length must be at least {min_buffer}",
                option="buffer_length",
                value=self.buffer_length,
            )
        if not self.sample_rate > 0:
            raise ConfigurationError(
                "sample_rate must be positive", option="sample_rate", value=self.sample_rate
            )
        if self.flash_threshold < 0:
            raise ConfigurationError(
                "flash_threshold must be non-negative",
                option="flash_threshold",
                value=self.flash_threshold,
            )
        if not 0 < self.intensity_threshold <= MAX_INTENSITY_THRESHOLD:
            raise ConfigurationError(
                f"intensity_threshold must be in (0, {MAX_INTENSITY_THRESHOLD}]",
                option="intensity_threshold",
                value=self.intensity_threshold,
            )
        if not 0 < self.cluster_gap_threshold <= MAX_CLUSTER_GAP:
            raise ConfigurationError(
                f"cluster_gap_threshold must be in (0, {MAX_CLUSTER_GAP}]",
                option="cluster_gap_threshold",
                value=self.cluster_gap_threshold,
            )
        if not 0 < self.brightness_change_threshold <= 1:
            raise ConfigurationError(
                "brightness_change_threshold must be in (0, 1]",
                option="brightness_change_threshold",
                value=self.brightness_change_threshold,
            )
        if not self.jnd_threshold > 0:
            raise ConfigurationError(
                "jnd_threshold must be positive", option="jnd_threshold", value=self.jnd_threshold
            )
        if self.half_life_ms is not None and not self.half_life_ms > 0:
            raise ConfigurationError(
                "half_life_ms must be positive", option="half_life_ms", value=self.half_life_ms
            )
        if not self.window_size_ms > 0:
            raise ConfigurationError(
                "window_size_ms must be positive",
                option="window_size_ms",
                value=self.window_size_ms,
            )

    def to_seconds(self, timestamp: float) -> float:
        """Convert a raw frame timestamp in the declared unit to seconds."""
        if self.timestamp_unit == "milliseconds":
            return timestamp / 1000.0
        return timestamp


class Config:
    """Zentrale Konfigurationsklasse für flashguard."""

    def __init__(self, config_file: str | Path | None = None):
        """
        Initialisiert die Konfiguration.

        Args:
            config_file: Pfad zur .ini-Datei; None liefert die Standardwerte
        """
        self.config_file = Path(config_file) if config_file else None
        self.config = configparser.ConfigParser()
        self._create_default_config()
        if self.config_file is not None:
            self.load()

    def load(self) -> None:
        """
        Lädt die Konfiguration aus der Datei.

        Raises:
            ConfigurationError: Datei fehlt oder ist nicht parsebar
        """
        if not self.config_file.exists():
            raise ConfigurationError(
                f"Konfigurationsdatei {self.config_file} nicht gefunden",
                option="config_file",
                value=str(self.config_file),
            )
        try:
            self.config.read(self.config_file, encoding="utf-8")
        except configparser.Error as e:
            raise wrap_exception(e, ConfigurationError) from e
        logger.info(f"Konfiguration aus {self.config_file} geladen")

    def read_string(self, text: str) -> None:
        """Merge settings from an .ini string."""
        try:
            self.config.read_string(text)
        except configparser.Error as e:
            raise wrap_exception(e, ConfigurationError) from e

    def _create_default_config(self) -> None:
        """Erstellt die Standardkonfiguration (ohne timestamp_unit)."""
        self.config["Session"] = {
            "analysis_interval": str(DEFAULT_ANALYSIS_INTERVAL),
        }

        self.config["Spectral"] = {
            "buffer_length": str(DEFAULT_BUFFER_LENGTH),
            "fft_length": str(DEFAULT_FFT_LENGTH),
            "sample_rate": str(DEFAULT_SAMPLE_RATE),
        }

        self.config["Flash"] = {
            "flash_threshold": str(DEFAULT_FLASH_THRESHOLD),
            "intensity_threshold": str(DEFAULT_INTENSITY_THRESHOLD),
            "cluster_gap_threshold": str(DEFAULT_CLUSTER_GAP),
            "brightness_change_threshold": str(BRIGHTNESS_CHANGE_THRESHOLD),
        }

        self.config["Contrast"] = {
            "jnd_threshold": str(JND_CIE76),
            "window_size_ms": str(DEFAULT_TEMPORAL_WINDOW_MS),
        }

        self.config["Logging"] = {
            "console_level": "INFO",
            "file_level": "DEBUG",
        }

    def save(self, path: str | Path | None = None) -> None:
        """Speichert die Konfiguration in die Datei."""
        target = Path(path) if path else self.config_file
        if target is None:
            raise ConfigurationError("Kein Zielpfad für die Konfiguration angegeben")
        target.parent.mkdir(parents=True, exist_ok=True)

        with open(target, "w", encoding="utf-8") as f:
            self.config.write(f)
        logger.info(f"Konfiguration in {target} gespeichert")

    def get(self, section: str, option: str, default: Any | None = None) -> str | None:
        """
        Holt einen Konfigurationswert.

        Args:
            section: Section-Name
            option: Option-Name
            default: Default-Wert falls nicht gefunden

        Returns:
            Konfigurationswert oder default
        """
        try:
            return self.config.get(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            logger.warning(
                f"Konfigurationswert [{section}] {option} nicht gefunden. "
                f"Verwende Default: {default}"
            )
            return default

    def get_int(self, section: str, option: str, default: int | None = None) -> int | None:
        """
        Holt einen Integer-Konfigurationswert.

        Raises:
            ConfigurationError: Wert vorhanden, aber kein Integer
        """
        try:
            return self.config.getint(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default
        except ValueError as e:
            raise ConfigurationError(
                f"[{section}] {option} ist kein Integer", option=option, value=self.get(section, option)
            ) from e

    def get_float(self, section: str, option: str, default: float | None = None) -> float | None:
        """
        Holt einen Float-Konfigurationswert.

        Raises:
            ConfigurationError: Wert vorhanden, aber keine Zahl
        """
        try:
            return self.config.getfloat(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default
        except ValueError as e:
            raise ConfigurationError(
                f"[{section}] {option} ist keine Zahl", option=option, value=self.get(section, option)
            ) from e

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Setzt einen Konfigurationswert.

        Args:
            section: Section-Name
            option: Option-Name
            value: Zu setzender Wert
        """
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, str(value))
        logger.debug(f"Konfiguration gesetzt: [{section}] {option} = {value}")

    def log_levels(self) -> tuple[int, int]:
        """(console_level, file_level) as logging constants."""
        levels = logging.getLevelNamesMapping()
        console = self.get("Logging", "console_level", "INFO").strip().upper()
        file_level = self.get("Logging", "file_level", "DEBUG").strip().upper()
        return levels.get(console, logging.INFO), levels.get(file_level, logging.DEBUG)

    def log_file(self) -> str | None:
        value = self.get("Logging", "log_file", None)
        return value.strip() or None if value is not None else None

    def to_session_config(self) -> SessionConfig:
        """
        Build the validated session settings.

        Raises:
            ConfigurationError: timestamp_unit fehlt oder ein Wert ist ungültig
        """
        unit = self.get("Session", "timestamp_unit")
        if unit is None:
            raise ConfigurationError(
                "timestamp_unit muss explizit gesetzt werden (seconds oder milliseconds)",
                option="timestamp_unit",
            )
        return SessionConfig(
            timestamp_unit=unit.strip().lower(),
            analysis_interval=self.get_float("Session", "analysis_interval", DEFAULT_ANALYSIS_INTERVAL),
            buffer_length=self.get_int("Spectral", "buffer_length", DEFAULT_BUFFER_LENGTH),
            fft_length=self.get_int("Spectral", "fft_length", DEFAULT_FFT_LENGTH),
            sample_rate=self.get_float("Spectral", "sample_rate", DEFAULT_SAMPLE_RATE),
            flash_threshold=self.get_int("Flash", "flash_threshold", DEFAULT_FLASH_THRESHOLD),
            intensity_threshold=self.get_float(
                "Flash", "intensity_threshold", DEFAULT_INTENSITY_THRESHOLD
            ),
            cluster_gap_threshold=self.get_float(
                "Flash", "cluster_gap_threshold", DEFAULT_CLUSTER_GAP
            ),
            brightness_change_threshold=self.get_float(
                "Flash", "brightness_change_threshold", BRIGHTNESS_CHANGE_THRESHOLD
            ),
            jnd_threshold=self.get_float("Contrast", "jnd_threshold", JND_CIE76),
            half_life_ms=self.get_float("Contrast", "half_life_ms", None),
            window_size_ms=self.get_float("Contrast", "window_size_ms", DEFAULT_TEMPORAL_WINDOW_MS),
        )

    def __repr__(self) -> str:
        """String-Repräsentation."""
        sections = ", ".join(self.config.sections())
        return f"Config(file='{self.config_file}', sections=[{sections}])"
