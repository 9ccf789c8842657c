"""Tests for render planning, the FFmpeg compositor and SRT export."""

import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from shorts_generator.captions.builder import Cue
from shorts_generator.captions.layout import TextLayout
from shorts_generator.captions.styles import CueStyle
from shorts_generator.errors import MediaIOError, RenderError
from shorts_generator.media.extractor import ExtractedMedia
from shorts_generator.media.ffmpeg import VideoInfo
from shorts_generator.render.compositor import (
    FFmpegCompositor,
    build_drawtext_filters,
    build_render_plan,
    escape_filter_value,
)
from shorts_generator.render.srt import cues_to_srt, format_srt_time, write_srt
from shorts_generator.window import ClipSeconds


def completed(returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


def cue(start, end, *lines, style):
    return Cue(ClipSeconds(start), ClipSeconds(end), tuple(lines), style)


@pytest.fixture
def font(tmp_path):
    path = tmp_path / "Inter.ttf"
    path.write_bytes(b"font")
    return path


@pytest.fixture
def style(font):
    return CueStyle.create(font, font_size=20, color="yellow")


@pytest.fixture
def media(tmp_path):
    clip = tmp_path / "talk_clip.mp4"
    clip.write_bytes(b"clip")
    return ExtractedMedia(
        clip_path=clip,
        audio_path=None,
        width=1080,
        height=1920,
        fps=30.0,
        duration=60.0,
    )


def make_ffmpeg(rendered_duration=60.0, returncode=0):
    ffmpeg = Mock()

    def run(args, timeout=None):
        if returncode == 0:
            Path(args[-1]).write_bytes(b"rendered")
        return completed(returncode, stderr="" if returncode == 0 else "Error parsing filterchain")

    ffmpeg.run_ffmpeg.side_effect = run
    ffmpeg.get_video_info.return_value = VideoInfo(
        duration=rendered_duration + 0.02,
        width=1080,
        height=1920,
        fps=30.0,
        video_codec="h264",
        audio_codec="aac",
        has_audio=True,
        video_duration=rendered_duration,
    )
    return ffmpeg


class TestBuildRenderPlan:
    """Tests for build_render_plan."""

    def test_one_overlay_per_cue(self, style):
        layout = TextLayout(1080, 1920, margin=40, glyph_width_ratio=0.5)
        cues = [cue(2.0, 4.25, "first", style=style), cue(4.25, 6.0, "second", "line", style=style)]

        plan = build_render_plan(cues, layout, 60.0)

        assert len(plan.overlays) == 2
        assert (plan.overlays[0].start, plan.overlays[0].end) == (2.0, 4.25)
        assert plan.overlays[1].lines == ("second", "line")
        assert not plan.is_passthrough

    def test_bottom_center_positions(self, style):
        """Bottom/center on 1080x1920: centred with the margin below the block."""
        layout = TextLayout(1080, 1920, margin=40, glyph_width_ratio=0.5)

        plan = build_render_plan([cue(0.0, 1.0, "hello world", "hi", style=style)], layout, 60.0)
        positions = plan.overlays[0].positions

        # Block is 110px wide and 40px tall; each line is 20px tall
        assert positions[0] == ((1080 - 110) // 2, 1920 - 40 - 40)
        assert positions[1] == ((1080 - 20) // 2, 1920 - 40 - 20)

    def test_clamped_to_duration(self, style):
        layout = TextLayout(1080, 1920)
        cues = [
            cue(58.0, 61.0, "overruns", style=style),
            cue(60.0, 62.0, "after the end", style=style),
        ]

        plan = build_render_plan(cues, layout, 60.0)

        assert len(plan.overlays) == 1
        assert plan.overlays[0].end == 60.0

    def test_empty(self):
        plan = build_render_plan([], TextLayout(1080, 1920), 30.0)
        assert plan.is_passthrough
        assert plan.duration == 30.0

    def test_enable_expression_is_half_open(self, style):
        plan = build_render_plan([cue(2.0, 4.25, "x", style=style)], TextLayout(1080, 1920), 60.0)
        assert plan.overlays[0].enable_expression() == "gte(t,2.000)*lt(t,4.250)"


class TestDrawtextFilters:
    """Tests for drawtext filter generation."""

    def test_escape_filter_value(self):
        """Quotes, colons and commas survive both FFmpeg unescaping passes."""
        assert escape_filter_value("It's 5:00, ok") == "It\\\\\\'s 5\\\\:00\\, ok"
        assert escape_filter_value("[a];b") == "\\[a\\]\\;b"
        assert escape_filter_value("100%") == "100%"

    def test_filter_per_line(self, style, font):
        layout = TextLayout(1080, 1920, margin=40, glyph_width_ratio=0.5)
        plan = build_render_plan([cue(1.0, 2.5, "one", "two", style=style)], layout, 60.0)

        filters = build_drawtext_filters(plan)

        assert len(filters) == 2
        first = filters[0]
        assert first.startswith("drawtext=")
        assert "text=one" in first
        assert "fontsize=20" in first
        assert "fontcolor=0xFFFF00FF" in first
        assert "expansion=none" in first
        assert "enable='gte(t,1.000)*lt(t,2.500)'" in first
        assert f"fontfile={escape_filter_value(font.as_posix())}" in first
        assert "y=1840" in first
        assert "y=1860" in filters[1]


class TestFFmpegCompositor:
    """Tests for FFmpegCompositor."""

    def test_render_with_cues(self, media, style, tmp_path):
        ffmpeg = make_ffmpeg()
        output = tmp_path / "out.mp4"

        result = FFmpegCompositor(ffmpeg).render(media, [cue(1.0, 2.0, "hello", style=style)], output)

        args = ffmpeg.run_ffmpeg.call_args[0][0]
        assert result == output
        assert args[args.index("-i") + 1] == str(media.clip_path)
        assert "drawtext=" in args[args.index("-vf") + 1]
        assert args[args.index("-c:a") + 1] == "copy"
        assert args[args.index("-t") + 1] == "60.000"
        assert "+faststart" in args

    def test_passthrough_without_cues(self, media, tmp_path):
        """No cues: stream copy, no filters."""
        ffmpeg = make_ffmpeg()

        FFmpegCompositor(ffmpeg).render(media, [], tmp_path / "out.mp4")

        args = ffmpeg.run_ffmpeg.call_args[0][0]
        assert "-vf" not in args
        assert args[args.index("-c") + 1] == "copy"

    def test_missing_font(self, media, tmp_path):
        style = CueStyle.create(tmp_path / "missing.ttf")
        ffmpeg = make_ffmpeg()

        with pytest.raises(RenderError, match="Font file not found"):
            FFmpegCompositor(ffmpeg).render(media, [cue(1.0, 2.0, "x", style=style)], tmp_path / "out.mp4")

        ffmpeg.run_ffmpeg.assert_not_called()

    def test_ffmpeg_rejects_filters(self, media, style, tmp_path):
        ffmpeg = make_ffmpeg(returncode=1)

        with pytest.raises(RenderError) as exc_info:
            FFmpegCompositor(ffmpeg).render(media, [cue(1.0, 2.0, "x", style=style)], tmp_path / "out.mp4")

        assert "filterchain" in exc_info.value.context["stderr"]

    def test_empty_output(self, media, tmp_path):
        ffmpeg = make_ffmpeg()
        ffmpeg.run_ffmpeg.side_effect = lambda args, timeout=None: completed()

        with pytest.raises(RenderError, match="no output"):
            FFmpegCompositor(ffmpeg).render(media, [], tmp_path / "out.mp4")

    def test_duration_within_one_frame(self, media, tmp_path):
        ffmpeg = make_ffmpeg(rendered_duration=60.0 + 1 / 30)
        FFmpegCompositor(ffmpeg).render(media, [], tmp_path / "out.mp4")

    def test_duration_mismatch(self, media, tmp_path):
        ffmpeg = make_ffmpeg(rendered_duration=58.0)

        with pytest.raises(RenderError, match="duration") as exc_info:
            FFmpegCompositor(ffmpeg).render(media, [], tmp_path / "out.mp4")

        assert exc_info.value.context["actual"] == 58.0

    def test_unreadable_output(self, media, tmp_path):
        ffmpeg = make_ffmpeg()
        ffmpeg.get_video_info.side_effect = MediaIOError("Failed to read video file")

        with pytest.raises(RenderError, match="unreadable"):
            FFmpegCompositor(ffmpeg).render(media, [], tmp_path / "out.mp4")


class TestSrtExport:
    """Tests for SRT export."""

    def test_format_srt_time(self):
        assert format_srt_time(0.0) == "00:00:00,000"
        assert format_srt_time(4.25) == "00:00:04,250"
        assert format_srt_time(3723.004) == "01:02:03,004"

    def test_cues_to_srt(self, style):
        text = cues_to_srt([cue(2.0, 4.25, "first", style=style), cue(4.25, 6.0, "a", "b", style=style)])

        assert text == (
            "1\n00:00:02,000 --> 00:00:04,250\nfirst\n\n"
            "2\n00:00:04,250 --> 00:00:06,000\na\nb\n"
        )

    def test_write_srt(self, style, tmp_path):
        path = write_srt([cue(0.0, 1.0, "hi", style=style)], tmp_path / "out.srt")

        assert path.read_text(encoding="utf-8").startswith("1\n00:00:00,000 --> 00:00:01,000\nhi")
        assert not (tmp_path / "out.srt.tmp").exists()

    def test_write_failure_leaves_no_temp(self, style, tmp_path):
        target = tmp_path / "out.srt"
        target.mkdir()

        with pytest.raises(MediaIOError, match="subtitle file"):
            write_srt([cue(0.0, 1.0, "hi", style=style)], target)

        assert not (tmp_path / "out.srt.tmp").exists()

    def test_empty(self):
        assert cues_to_srt([]) == ""
