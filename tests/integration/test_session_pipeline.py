"""End-to-end tests: frame features through AnalysisSession and the CLI."""

import json

import pytest

from flashguard.__main__ import main
from flashguard.color.lab import RGBColor
from flashguard.core.config import SessionConfig
from flashguard.session import AnalysisSession, FrameFeatures

FPS = 60


def steady_frames(n, start=0, unit_ms=True):
    scale = 1000.0 / FPS if unit_ms else 1.0 / FPS
    return [
        FrameFeatures(
            timestamp=(start + i) * scale,
            brightness=0.3,
            dominant_color=(128, 128, 128),
            red_intensity=0.1,
        )
        for i in range(n)
    ]


def flashing_frames(n, start=0, unit_ms=True):
    """Black/white every 3 frames at 60 fps: a flash every 50 ms."""
    scale = 1000.0 / FPS if unit_ms else 1.0 / FPS
    frames = []
    for i in range(n):
        bright = (i // 3) % 2 == 1
        frames.append(
            FrameFeatures(
                timestamp=(start + i) * scale,
                brightness=0.9 if bright else 0.1,
                dominant_color=(255, 255, 255) if bright else (0, 0, 0),
                red_intensity=0.1,
                coverage=0.5,
            )
        )
    return frames


@pytest.fixture
def session():
    return AnalysisSession(SessionConfig(timestamp_unit="milliseconds", analysis_interval=1 / FPS))


@pytest.mark.integration
class TestSessionPipeline:
    def test_steady_content_stays_low(self, session):
        results = session.process(steady_frames(200))
        summary = session.finish()

        assert all(r.risk.level == "low" for r in results)
        assert not any(r.is_flash for r in results)
        assert results[-1].spectral.dominant_frequency == 0.0
        assert results[-1].contrast is not None
        assert results[-1].contrast.result.significant_changes == 0
        assert summary.violations == ()
        assert summary.flash_count == 0
        assert summary.frame_count == 200

    def test_flashing_content_escalates(self, session):
        results = session.process(flashing_frames(200))
        summary = session.finish()

        assert results[-1].risk.level == "high"
        assert summary.risk_level == "high"
        assert len(summary.violations) >= 2
        assert summary.violations[0].flash_count > 3
        assert summary.clusters
        assert summary.violation_frame_count == sum(v.frame_count for v in summary.violations)
        # square wave with a 6-frame period: 10 Hz fundamental
        assert results[-1].spectral.dominant_frequency == pytest.approx(10.0, abs=60 / 64)
        assert results[-1].contrast.result.significant_changes > 0

    def test_flash_flag_from_upstream_wins(self, session):
        frames = steady_frames(5)
        frames[2].is_flash = True
        results = session.process(frames)
        assert [r.is_flash for r in results] == [False, False, True, False, False]

    def test_seek_resets_buffers_but_keeps_risk(self, session):
        session.process(flashing_frames(120))
        assert session.risk_level == "high"

        result = session.process_frame(steady_frames(1)[0])
        assert result.seek
        assert result.frame_index == 0
        assert result.risk.level == "high"
        assert len(session.spectral.ring) == 1
        assert session.flashes.all_flashes == []

        later = session.process(steady_frames(50, start=1))
        assert not any(r.seek for r in later)
        assert later[-1].risk.level == "high"

        summary = session.finish()
        assert summary.seek_count == 1
        assert summary.frame_count == 171
        assert len(summary.violations) >= 1

    def test_new_session_resets_risk(self, session):
        session.process(flashing_frames(120))
        session.new_session()
        assert session.risk_level == "low"
        result = session.process_frame(steady_frames(1)[0])
        assert not result.seek
        assert result.risk.level == "low"
        assert session.finish().frame_count == 1

    def test_timestamp_units_are_equivalent(self):
        ms = AnalysisSession(SessionConfig(timestamp_unit="milliseconds"))
        s = AnalysisSession(SessionConfig(timestamp_unit="seconds"))
        ms.process(flashing_frames(150, unit_ms=True))
        s.process(flashing_frames(150, unit_ms=False))
        a, b = ms.finish(), s.finish()
        assert a.flash_count == b.flash_count
        assert len(a.violations) == len(b.violations) == 2
        assert a.violations[0].start_frame == b.violations[0].start_frame == 3

    def test_degraded_inputs_are_clamped(self, session):
        frame = FrameFeatures(
            timestamp=0.0,
            brightness=float("nan"),
            dominant_color=(300, -5, 128),
            red_intensity=float("inf"),
            coverage=4.0,
        )
        result = session.process_frame(frame)
        assert result.brightness == 0.0
        assert result.psi.coverage == 1.0
        assert not result.risk.sufficient_history

    def test_upstream_record_with_color_mapping(self):
        session = AnalysisSession(SessionConfig(timestamp_unit="milliseconds", analysis_interval=0.125))
        colors = [{"r": 255, "g": 0, "b": 0}, {"r": 0, "g": 0, "b": 255}]
        results = [
            session.process_frame(
                FrameFeatures.from_dict(
                    {
                        "timestamp": i * 125,
                        "brightnessNormalized": 0.5,
                        "dominantColor": colors[i % 2],
                        "isFlash": False,
                    }
                )
            )
            for i in range(10)
        ]
        contrast = results[-1].contrast
        assert contrast is not None
        assert contrast.result.average_delta_e > 150
        assert contrast.result.significant_changes == contrast.result.total_samples - 1
        assert results[-1].brightness == 0.5

    def test_color_variants_are_equivalent(self, session):
        session.process_frame(
            FrameFeatures(timestamp=0.0, brightness=0.5, dominant_color=RGBColor(10, 200, 30))
        )
        other = AnalysisSession(SessionConfig(timestamp_unit="milliseconds", analysis_interval=1 / FPS))
        other.process_frame(
            FrameFeatures(timestamp=0.0, brightness=0.5, dominant_color={"r": 10, "g": 200, "b": 30})
        )
        assert session.contrast._state.last_lab == other.contrast._state.last_lab

    @pytest.mark.parametrize(
        "color", [{"r": 255, "g": 0}, {"r": "x", "g": 0, "b": 0}, "red", (1, 2), 42]
    )
    def test_unusable_color_is_skipped(self, session, color):
        result = session.process_frame(FrameFeatures(timestamp=0.0, brightness=0.5, dominant_color=color))
        assert result.contrast is None
        assert session.contrast._state.last_lab is None

    def test_coherence_reports_periodic_flashing(self, session):
        results = session.process(flashing_frames(60))
        coherence = results[-1].coherence
        assert coherence.periodicity.is_periodic
        assert coherence.periodicity.period == 6
        assert coherence.coherence_score > 0.45
        assert results[-1].to_dict()["coherence"]["periodicity"]["period"] == 6

    def test_session_frame_index_survives_seek(self, session):
        session.process(steady_frames(10, start=5))
        result = session.process_frame(steady_frames(1)[0])
        assert result.seek
        assert result.frame_index == 0
        assert result.session_frame_index == 10
        assert len(session.coherence.ring) == 1

    def test_summary_is_json_serializable(self, session):
        session.process(flashing_frames(120))
        text = json.dumps(session.finish().to_dict())
        assert '"risk_level": "high"' in text


@pytest.mark.integration
class TestCLI:
    def write_frames(self, path, frames):
        with open(path, "w", encoding="utf-8") as f:
            for frame in frames:
                f.write(json.dumps(frame.__dict__) + "\n")
            f.write("\n")

    def test_run_writes_summary_and_frames(self, tmp_path):
        src = tmp_path / "frames.jsonl"
        self.write_frames(src, flashing_frames(90))
        out = tmp_path / "summary.json"
        frames_out = tmp_path / "results.jsonl"

        code = main(
            [str(src), "--timestamp-unit", "milliseconds", "--output", str(out), "--frames", str(frames_out)]
        )

        assert code == 0
        summary = json.loads(out.read_text(encoding="utf-8"))
        assert summary["frame_count"] == 90
        assert summary["risk_level"] == "high"
        assert len(frames_out.read_text(encoding="utf-8").splitlines()) == 90

    def test_missing_timestamp_unit_fails(self, tmp_path):
        src = tmp_path / "frames.jsonl"
        self.write_frames(src, steady_frames(3))
        assert main([str(src)]) == 1

    def test_bad_line_fails(self, tmp_path):
        src = tmp_path / "frames.jsonl"
        src.write_text('{"timestamp": 0, "brightness": 0.5}\nnot json\n', encoding="utf-8")
        assert main([str(src), "--timestamp-unit", "seconds"]) == 1
