"""Pipeline orchestrator.

Runs one short from source video to published output:

    probe -> window -> extract -> transcribe -> cues -> render -> publish

Stages run strictly in order and each consumes only the previous stage's
output. The orchestrator owns the per-run temporary directory and removes
it on every exit path.
"""

from __future__ import annotations

import shutil
import tempfile
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from shorts_generator.binaries import ToolConfig
from shorts_generator.captions.builder import Cue, build_cues
from shorts_generator.config import AppConfig
from shorts_generator.errors import MediaIOError, ShortsGeneratorError, StageContext
from shorts_generator.logging import (
    LogContext,
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
)
from shorts_generator.media.extractor import FFmpegExtractor, MediaExtractor
from shorts_generator.media.ffmpeg import FFmpegWrapper
from shorts_generator.render.compositor import FFmpegCompositor, RenderCompositor
from shorts_generator.render.srt import write_srt
from shorts_generator.transcription.adapter import TranscriptionAdapter, create_provider
from shorts_generator.transcription.base import OutcomeStatus
from shorts_generator.window import ClipWindow, resolve_window

logger = get_logger(__name__)

STAGES = ("probe", "window", "extract", "transcribe", "cues", "render", "publish")


class SubtitleStatus(str, Enum):
    """What happened to the subtitles of a run."""

    BURNED = "burned"
    DISABLED = "disabled"
    DEGRADED = "degraded"  # Transcription heard nothing usable
    EMPTY = "empty"  # Transcript had no text inside the window


@dataclass
class PipelineResult:
    """Outcome of a successful run."""

    output_path: Path
    window: ClipWindow
    cue_count: int
    subtitles: SubtitleStatus
    degraded_reason: str | None = None
    sidecar_path: Path | None = None


class ShortsPipeline:
    """Produces one short from an ``AppConfig``.

    Capabilities default to the FFmpeg and Whisper implementations and can
    be replaced, e.g. with fakes in tests.
    """

    def __init__(
        self,
        config: AppConfig,
        extractor: MediaExtractor | None = None,
        transcriber: TranscriptionAdapter | None = None,
        compositor: RenderCompositor | None = None,
        tools: ToolConfig | None = None,
        on_stage: Callable[[str], None] | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Immutable run configuration
            extractor: Probing and cutting capability
            transcriber: Transcription adapter (only used with subtitles)
            compositor: Subtitle rendering capability
            tools: Custom tool locations for the default capabilities
            on_stage: Called with each stage name as it starts
        """
        self.config = config
        self.settings = config.pipeline
        self.on_stage = on_stage

        if extractor is None or compositor is None:
            ffmpeg = FFmpegWrapper(
                tools,
                ffmpeg_timeout=self.settings.ffmpeg_timeout,
                ffprobe_timeout=self.settings.ffprobe_timeout,
            )
            extractor = extractor or FFmpegExtractor(ffmpeg, self.settings)
            compositor = compositor or FFmpegCompositor(ffmpeg, self.settings)

        if transcriber is None and config.subtitles.use_subtitles:
            transcriber = TranscriptionAdapter(
                create_provider(config.subtitles, self.settings, tools)
            )

        self.extractor = extractor
        self.transcriber = transcriber
        self.compositor = compositor

    def _stage(self, name: str, **context) -> StageContext:
        if self.on_stage:
            self.on_stage(name)
        return StageContext(name, context)

    def _make_workdir(self, output_path: Path) -> Path:
        # Next to the output so the final rename stays on one filesystem
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=".shorts-", dir=output_path.parent))
        except OSError as e:
            raise MediaIOError(
                f"Cannot create a working directory: {e}",
                context={"output": str(output_path)},
            ) from e

    def _cleanup(self, workdir: Path) -> None:
        if self.settings.keep_temp:
            logger.info(f"Keeping temporary files in {workdir}")
        else:
            shutil.rmtree(workdir, ignore_errors=True)

    def run(self) -> PipelineResult:
        """Run the pipeline.

        Returns:
            PipelineResult describing the published short

        Raises:
            InvalidWindowError: If the clip window cannot be satisfied
            MediaIOError: If the source cannot be read or cut, or the output
                cannot be written
            ExternalToolError: If a tool is missing, fails or times out
            RenderError: If the subtitles cannot be rendered
        """
        video = self.config.video
        run_id = uuid.uuid4().hex[:8]

        with LogContext(run_id=run_id):
            log_operation_start(
                logger, "generate", input=str(video.input_path), output=str(video.output_path)
            )
            started = time.monotonic()
            try:
                result = self._run()
            except ShortsGeneratorError as e:
                log_operation_failed(logger, "generate", e, stage=e.stage)
                raise
            log_operation_complete(
                logger,
                "generate",
                duration=time.monotonic() - started,
                subtitles=result.subtitles.value,
                cues=result.cue_count,
            )
            return result

    def _run(self) -> PipelineResult:
        video = self.config.video
        subtitles = self.config.subtitles
        source = Path(video.input_path)
        output_path = Path(video.output_path)

        with self._stage("probe", input=str(source)):
            info = self.extractor.probe(source)

        with self._stage("window"):
            window = resolve_window(
                info.duration,
                video.short_duration_secs,
                start=video.start_offset_secs,
                min_duration=self.settings.min_clip_secs,
            )

        workdir = None
        try:
            with self._stage("extract", start=window.start, end=window.end):
                workdir = self._make_workdir(output_path)
                logger.debug(f"Working directory: {workdir}")
                media = self.extractor.extract(
                    source,
                    window,
                    workdir,
                    output_width=video.output_width,
                    output_height=video.output_height,
                    with_audio=subtitles.use_subtitles,
                    container_suffix=output_path.suffix or ".mp4",
                )

            cues: list[Cue] = []
            degraded_reason = None
            if not subtitles.use_subtitles:
                status = SubtitleStatus.DISABLED
            else:
                with self._stage("transcribe"):
                    outcome = self.transcriber.transcribe(media.audio_path, window)
                    if outcome.status == OutcomeStatus.FATAL:
                        raise outcome.error

                if outcome.status == OutcomeStatus.DEGRADED:
                    logger.warning(f"Continuing without subtitles: {outcome.reason}")
                    status = SubtitleStatus.DEGRADED
                    degraded_reason = outcome.reason
                else:
                    with self._stage("cues", segments=len(outcome.segments)):
                        layout = self.settings.layout_for(media.width, media.height)
                        cues = build_cues(
                            outcome.segments, window, subtitles.to_cue_style(), layout
                        )
                    status = SubtitleStatus.BURNED if cues else SubtitleStatus.EMPTY

            rendered = workdir / f"render{output_path.suffix or '.mp4'}"
            with self._stage("render", cues=len(cues)):
                self.compositor.render(media, cues, rendered)

            with self._stage("publish", output=str(output_path)):
                try:
                    rendered.replace(output_path)
                except OSError as e:
                    raise MediaIOError(
                        f"Cannot publish the rendered short: {e}",
                        context={"output": str(output_path)},
                    ) from e
                sidecar = None
                if subtitles.write_srt and cues:
                    sidecar = write_srt(cues, output_path.with_suffix(".srt"))

        finally:
            if workdir is not None:
                self._cleanup(workdir)

        return PipelineResult(
            output_path=output_path,
            window=window,
            cue_count=len(cues),
            subtitles=status,
            degraded_reason=degraded_reason,
            sidecar_path=sidecar,
        )
