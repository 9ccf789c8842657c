"""Burning subtitle cues into the extracted clip.

Cues become a ``RenderPlan`` of timed overlay instructions in pixel
coordinates, which ``FFmpegCompositor`` turns into one ``drawtext`` filter
per line.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from shorts_generator.captions.builder import Cue
from shorts_generator.captions.layout import TextLayout
from shorts_generator.captions.styles import CueStyle
from shorts_generator.config import PipelineSettings
from shorts_generator.errors import MediaIOError, RenderError
from shorts_generator.logging import get_logger
from shorts_generator.media.extractor import FASTSTART_SUFFIXES, ExtractedMedia
from shorts_generator.media.ffmpeg import FFmpegWrapper, stderr_tail
from shorts_generator.window import ClipSeconds

logger = get_logger(__name__)

# Characters with meaning to the drawtext option parser, then to the filtergraph parser
_OPTION_SPECIAL = "\\':"
_GRAPH_SPECIAL = "\\'[],;"


@dataclass(frozen=True)
class OverlayInstruction:
    """One cue positioned on the frame.

    Attributes:
        start: First instant the text is shown (clip time)
        end: First instant the text is hidden again (clip time)
        lines: Display lines, top to bottom
        positions: Top-left pixel position of each line
        style: Font, size and colour
    """

    start: ClipSeconds
    end: ClipSeconds
    lines: tuple[str, ...]
    positions: tuple[tuple[int, int], ...]
    style: CueStyle

    def enable_expression(self) -> str:
        """FFmpeg timeline expression true exactly on ``[start, end)``."""
        return f"gte(t,{self.start:.3f})*lt(t,{self.end:.3f})"


@dataclass(frozen=True)
class RenderPlan:
    """Everything the compositor needs to draw the subtitles."""

    width: int
    height: int
    duration: float
    overlays: tuple[OverlayInstruction, ...] = ()

    @property
    def is_passthrough(self) -> bool:
        return not self.overlays


def build_render_plan(cues: Sequence[Cue], layout: TextLayout, duration: float) -> RenderPlan:
    """Position cues on the frame.

    Cues starting at or after ``duration`` are dropped and the rest end no
    later than ``duration``.

    Args:
        cues: Ordered cue sequence
        layout: Frame geometry and margins
        duration: Clip duration in seconds

    Returns:
        RenderPlan with one overlay per cue
    """
    overlays = []
    for cue in cues:
        if cue.start >= duration:
            continue
        end = min(cue.end, duration)
        if end <= cue.start:
            continue

        placement = layout.place(cue.lines, cue.style)
        positions = tuple(
            (x, placement.y + i * cue.style.font_size)
            for i, x in enumerate(placement.line_xs)
        )
        overlays.append(
            OverlayInstruction(
                start=cue.start,
                end=ClipSeconds(end),
                lines=cue.lines,
                positions=positions,
                style=cue.style,
            )
        )

    return RenderPlan(
        width=layout.frame_width,
        height=layout.frame_height,
        duration=duration,
        overlays=tuple(overlays),
    )


def escape_filter_value(value: str) -> str:
    """Escape a value for a drawtext option inside an ``-vf`` filtergraph.

    FFmpeg unescapes twice: once when splitting the graph into filters and
    once when splitting a filter's options.
    """
    for ch in _OPTION_SPECIAL:
        value = value.replace(ch, "\\" + ch)
    for ch in _GRAPH_SPECIAL:
        value = value.replace(ch, "\\" + ch)
    return value


def build_drawtext_filters(plan: RenderPlan) -> list[str]:
    """Build one drawtext filter per line of every overlay."""
    filters = []
    for overlay in plan.overlays:
        style = overlay.style
        fontfile = escape_filter_value(style.get_ffmpeg_fontfile())
        enable = overlay.enable_expression()

        for line, (x, y) in zip(overlay.lines, overlay.positions):
            params = [
                f"fontfile={fontfile}",
                f"text={escape_filter_value(line)}",
                "expansion=none",
                f"fontsize={style.font_size}",
                f"fontcolor={style.color.to_ffmpeg()}",
                f"x={x}",
                f"y={y}",
                f"enable='{enable}'",
            ]
            filters.append("drawtext=" + ":".join(params))
    return filters


class RenderCompositor(ABC):
    """Video-processing capability that draws cues onto a clip."""

    @abstractmethod
    def render(self, media: ExtractedMedia, cues: Sequence[Cue], output_path: Path) -> Path:
        """Render ``media.clip_path`` with ``cues`` burned in to ``output_path``."""


class FFmpegCompositor(RenderCompositor):
    """Renders subtitles with FFmpeg's drawtext filter."""

    def __init__(self, ffmpeg: FFmpegWrapper, settings: PipelineSettings | None = None) -> None:
        self.ffmpeg = ffmpeg
        self.settings = settings or PipelineSettings()

    def plan(self, media: ExtractedMedia, cues: Sequence[Cue]) -> RenderPlan:
        layout = self.settings.layout_for(media.width, media.height)
        return build_render_plan(cues, layout, media.duration)

    def build_args(self, clip_path: Path, plan: RenderPlan, output_path: Path) -> list[str]:
        """Build FFmpeg arguments for the final render."""
        args = ["-y", "-i", str(clip_path), "-map", "0:v:0", "-map", "0:a?"]

        if plan.is_passthrough:
            args.extend(["-c", "copy"])
        else:
            settings = self.settings
            args.extend([
                "-vf", ",".join(build_drawtext_filters(plan)),
                "-c:v", settings.video_codec,
                "-crf", str(settings.video_crf),
                "-preset", settings.video_preset,
                "-pix_fmt", "yuv420p",
                "-c:a", "copy",
            ])

        args.extend(["-t", f"{plan.duration:.3f}"])
        if output_path.suffix.lower() in FASTSTART_SUFFIXES:
            args.extend(["-movflags", "+faststart"])
        args.append(str(output_path))
        return args

    def _check_fonts(self, plan: RenderPlan) -> None:
        for font_path in {o.style.font_path for o in plan.overlays}:
            if not Path(font_path).is_file():
                raise RenderError(f"Font file not found: {font_path}")

    def _check_output(self, output_path: Path, plan: RenderPlan, frame_duration: float) -> None:
        if not output_path.exists() or output_path.stat().st_size == 0:
            raise RenderError(f"Renderer produced no output: {output_path}")

        try:
            info = self.ffmpeg.get_video_info(output_path)
        except MediaIOError as e:
            raise RenderError(f"Rendered file is unreadable: {e.message}", context=e.context) from e

        actual = info.video_duration if info.video_duration is not None else info.duration
        # Timestamps are written with millisecond precision
        tolerance = frame_duration + 0.001
        if abs(actual - plan.duration) > tolerance:
            raise RenderError(
                "Rendered duration does not match the clip",
                context={"expected": round(plan.duration, 3), "actual": round(actual, 3)},
            )

    def render(self, media: ExtractedMedia, cues: Sequence[Cue], output_path: Path) -> Path:
        """Render the clip with subtitles.

        Args:
            media: Extracted clip
            cues: Cues on the clip timeline; empty for a plain copy
            output_path: File to write

        Returns:
            Path to the rendered file

        Raises:
            RenderError: If a font is missing, FFmpeg rejects the filters,
                or the output is missing or has the wrong duration
            ExternalToolError: If FFmpeg is missing or times out
        """
        output_path = Path(output_path)
        plan = self.plan(media, cues)
        self._check_fonts(plan)

        if plan.is_passthrough:
            logger.info("No subtitles to burn; copying clip")
        else:
            logger.info(
                f"Burning {len(plan.overlays)} subtitle cues",
                extra={"width": plan.width, "height": plan.height},
            )

        result = self.ffmpeg.run_ffmpeg(self.build_args(media.clip_path, plan, output_path))
        if result.returncode != 0:
            raise RenderError(
                "FFmpeg failed to render the output",
                context={"stderr": stderr_tail(result, 5)},
            )

        self._check_output(output_path, plan, media.frame_duration)
        return output_path
