"""
flashguard Entry Point

Reads per-frame features from a JSON-lines file (one object per frame with
the FrameFeatures fields), runs one AnalysisSession over them and writes the
session summary as JSON.

Usage:
    flashguard frames.jsonl --timestamp-unit milliseconds
    python -m flashguard frames.jsonl --config flashguard.ini --frames out.jsonl
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .core.config import Config
from .core.exceptions import FlashGuardError
from .session import AnalysisSession, FrameFeatures
from .utils.logger import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flashguard", description="Photosensitivity risk analysis of per-frame features"
    )
    parser.add_argument("input", help="JSON-lines Datei mit Frame-Features")
    parser.add_argument("--config", default=None, help="Pfad zur .ini-Konfiguration")
    parser.add_argument(
        "--timestamp-unit",
        choices=("seconds", "milliseconds"),
        default=None,
        help="Einheit der Zeitstempel (überschreibt [Session] timestamp_unit)",
    )
    parser.add_argument("--frames", default=None, help="Per-Frame-Ergebnisse als JSON-lines schreiben")
    parser.add_argument("--output", default=None, help="Zusammenfassung in Datei statt stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug-Ausgabe")
    return parser


def read_frames(path: Path):
    """Yield FrameFeatures from a JSON-lines file, skipping blank lines."""
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield FrameFeatures.from_dict(json.loads(line))
            except (json.JSONDecodeError, TypeError) as e:
                raise FlashGuardError(
                    f"Ungültige Zeile {line_no} in {path}", details={"error": str(e)}
                ) from e


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    args = build_parser().parse_args(argv)

    try:
        config = Config(args.config)
        if args.timestamp_unit:
            config.set("Session", "timestamp_unit", args.timestamp_unit)
        console_level, file_level = config.log_levels()
        if args.verbose:
            console_level = logging.DEBUG
        setup_logging(log_file=config.log_file(), console_level=console_level, file_level=file_level)
        logger = get_logger(__name__)

        session = AnalysisSession(config.to_session_config())
        frames_out = open(args.frames, "w", encoding="utf-8") if args.frames else None
        try:
            for features in read_frames(Path(args.input)):
                result = session.process_frame(features)
                if frames_out is not None:
                    frames_out.write(json.dumps(result.to_dict()) + "\n")
        finally:
            if frames_out is not None:
                frames_out.close()

        summary = json.dumps(session.finish().to_dict(), indent=2)
        if args.output:
            Path(args.output).write_text(summary, encoding="utf-8")
            logger.info(f"Zusammenfassung geschrieben: {args.output}")
        else:
            print(summary)
        return 0

    except FlashGuardError as e:
        get_logger(__name__).error(f"Analyse fehlgeschlagen: {e}")
        return 1
    except OSError as e:
        get_logger(__name__).error(f"Datei-Fehler: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
