"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from shorts_generator import __version__
from shorts_generator.cli import app
from shorts_generator.config import AppConfig
from shorts_generator.errors import ExternalToolError
from shorts_generator.pipeline import PipelineResult, SubtitleStatus
from shorts_generator.window import resolve_window


runner = CliRunner()


def make_result(output_path, subtitles=SubtitleStatus.BURNED, cue_count=3, reason=None):
    return PipelineResult(
        output_path=Path(output_path),
        window=resolve_window(600.0, 30.0, start=10.0),
        cue_count=cue_count,
        subtitles=subtitles,
        degraded_reason=reason,
    )


def subtitle_args(tmp_path):
    return ["--whisper-model", "base", "--font", str(tmp_path / "Inter.ttf")]


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestGenerateCommand:
    """Tests for 'shorts-generator generate'."""

    def test_generate(self, tmp_path):
        output = tmp_path / "short.mp4"

        with patch("shorts_generator.cli.ShortsPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_result(output)
            result = runner.invoke(
                app,
                [
                    "generate", "-i", str(tmp_path / "talk.mp4"), "-o", str(output),
                    "--duration", "30", "--start", "10", "--font-color", "#FFCC00",
                    "--vertical-alignment", "top", *subtitle_args(tmp_path),
                ],
            )

        assert result.exit_code == 0, result.output
        assert "Short created" in result.output
        assert "3 cues burned in" in result.output

        config = pipeline_cls.call_args[0][0]
        assert isinstance(config, AppConfig)
        assert config.video.short_duration_secs == 30.0
        assert config.video.start_offset_secs == 10.0
        assert config.subtitles.whisper_model_path == "base"
        assert config.subtitles.vertical_alignment.value == "top"

    def test_generate_without_subtitles(self, tmp_path):
        output = tmp_path / "short.mp4"

        with patch("shorts_generator.cli.ShortsPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_result(
                output, SubtitleStatus.DISABLED, cue_count=0
            )
            result = runner.invoke(
                app, ["generate", "-i", str(tmp_path / "talk.mp4"), "-o", str(output), "--no-subtitles"]
            )

        assert result.exit_code == 0, result.output
        assert "disabled" in result.output
        assert pipeline_cls.call_args[0][0].subtitles.use_subtitles is False

    def test_degraded_subtitles_reported(self, tmp_path):
        output = tmp_path / "short.mp4"

        with patch("shorts_generator.cli.ShortsPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_result(
                output, SubtitleStatus.DEGRADED, cue_count=0, reason="no speech"
            )
            result = runner.invoke(
                app,
                ["generate", "-i", str(tmp_path / "talk.mp4"), "-o", str(output), *subtitle_args(tmp_path)],
            )

        assert result.exit_code == 0
        assert "Subtitles skipped" in result.output

    def test_missing_model_rejected(self, tmp_path):
        with patch("shorts_generator.cli.ShortsPipeline") as pipeline_cls:
            result = runner.invoke(
                app,
                ["generate", "-i", "talk.mp4", "-o", "short.mp4", "--font", str(tmp_path / "Inter.ttf")],
            )

        assert result.exit_code == 1
        assert "[configuration]" in result.output
        pipeline_cls.assert_not_called()

    def test_bad_color_rejected(self, tmp_path):
        result = runner.invoke(
            app,
            [
                "generate", "-i", "talk.mp4", "-o", "short.mp4",
                "--font-color", "chartreuse-ish", *subtitle_args(tmp_path),
            ],
        )

        assert result.exit_code == 1
        assert "[configuration]" in result.output

    def test_pipeline_error(self, tmp_path):
        error = ExternalToolError("whisper", "whisper CLI not found")
        error.stage = "transcribe"

        with patch("shorts_generator.cli.ShortsPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.side_effect = error
            result = runner.invoke(
                app,
                ["generate", "-i", "talk.mp4", "-o", "short.mp4", *subtitle_args(tmp_path)],
            )

        assert result.exit_code == 1
        assert "[external] transcribe:" in result.output
        assert "whisper CLI not found" in result.output


class TestConfigureAndRunFromFile:
    """Tests for 'configure' and 'run-from-file'."""

    def test_configure_writes_json(self, tmp_path):
        config_path = tmp_path / "short.json"

        result = runner.invoke(
            app,
            [
                "configure", "--output-config-path", str(config_path),
                "-i", "talk.mp4", "-o", "short.mp4", "-d", "45", "--srt",
                *subtitle_args(tmp_path),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Configuration saved" in result.output
        data = json.loads(config_path.read_text(encoding="utf-8"))
        assert data["video"]["short_duration_secs"] == 45.0
        assert data["subtitles"]["write_srt"] is True
        assert data["subtitles"]["transcription_backend"] == "cli"

    def test_configure_then_run(self, tmp_path):
        config_path = tmp_path / "short.json"
        runner.invoke(
            app,
            [
                "configure", "--output-config-path", str(config_path),
                "-i", "talk.mp4", "-o", "short.mp4", "--no-subtitles",
            ],
        )

        with patch("shorts_generator.cli.ShortsPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_result(
                "short.mp4", SubtitleStatus.DISABLED, cue_count=0
            )
            result = runner.invoke(app, ["run-from-file", "--config-path", str(config_path)])

        assert result.exit_code == 0, result.output
        config = pipeline_cls.call_args[0][0]
        assert config.video.input_path == Path("talk.mp4")
        assert config.subtitles.use_subtitles is False

    def test_run_from_missing_file(self, tmp_path):
        result = runner.invoke(app, ["run-from-file", "-c", str(tmp_path / "missing.json")])

        assert result.exit_code == 1
        assert "[configuration]" in result.output

    def test_run_from_invalid_json(self, tmp_path):
        config_path = tmp_path / "broken.json"
        config_path.write_text("{not json", encoding="utf-8")

        result = runner.invoke(app, ["run-from-file", "-c", str(config_path)])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_run_from_binary_file(self, tmp_path):
        config_path = tmp_path / "binary.json"
        config_path.write_bytes(b"\xff\xfe\x00garbage")

        result = runner.invoke(app, ["run-from-file", "-c", str(config_path)])

        assert result.exit_code == 1
        assert "[configuration]" in result.output


class TestLogFileOption:
    """Tests for the --log-file option."""

    def test_log_file_created(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        report = TestCheckDepsCommand.report()

        with patch("shorts_generator.cli.get_dependency_report", return_value=report):
            result = runner.invoke(app, ["--log-file", str(log_file), "check-deps"])

        assert result.exit_code == 0
        assert log_file.exists()

    def test_log_file_unwritable(self, tmp_path):
        blocker = tmp_path / "logs"
        blocker.write_text("not a directory")

        result = runner.invoke(app, ["--log-file", str(blocker / "run.log"), "check-deps"])

        assert result.exit_code == 1
        assert "Cannot open log file" in result.output


class TestCheckDepsCommand:
    """Tests for 'shorts-generator check-deps'."""

    @staticmethod
    def report(ffmpeg=True, whisper=True):
        def tool(name, available):
            return {
                "available": available,
                "path": f"/usr/bin/{name}" if available else None,
                "version": "6.1" if available else None,
                "source": "system" if available else "not_found",
            }

        return {
            "ffmpeg": tool("ffmpeg", ffmpeg),
            "ffprobe": tool("ffprobe", ffmpeg),
            "whisper": tool("whisper", whisper),
            "imageio_ffmpeg": {"available": True, "version": "0.5.1"},
            "platform": {"system": "Linux", "machine": "x86_64", "python": "3.12.1"},
        }

    def test_all_available(self):
        with patch("shorts_generator.cli.get_dependency_report", return_value=self.report()):
            result = runner.invoke(app, ["check-deps"])

        assert result.exit_code == 0
        assert "Dependency Status" in result.output
        assert "Available" in result.output

    def test_missing_whisper_is_not_fatal(self):
        with patch("shorts_generator.cli.get_dependency_report", return_value=self.report(whisper=False)):
            result = runner.invoke(app, ["check-deps"])

        assert result.exit_code == 0
        assert "Not Found" in result.output

    def test_missing_ffmpeg_fails(self):
        with patch("shorts_generator.cli.get_dependency_report", return_value=self.report(ffmpeg=False)):
            result = runner.invoke(app, ["check-deps"])

        assert result.exit_code == 1
