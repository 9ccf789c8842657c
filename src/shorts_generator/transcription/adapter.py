"""Bridges a transcription provider to the pipeline.

Rebases segments from audio-local time onto the source timeline and turns
provider errors into an explicit ``TranscriptionOutcome``.
"""

from __future__ import annotations

from pathlib import Path

from shorts_generator.binaries import ToolConfig
from shorts_generator.config import PipelineSettings, SubtitleConfig, TranscriptionBackend
from shorts_generator.errors import ExternalToolError
from shorts_generator.logging import get_logger
from shorts_generator.transcription.base import (
    TranscriptionOutcome,
    TranscriptionProvider,
    TranscriptSegment,
)
from shorts_generator.transcription.whisper_cli import WhisperCLIProvider
from shorts_generator.transcription.whisper_local import WhisperLocalProvider
from shorts_generator.window import ClipWindow

logger = get_logger(__name__)


class TranscriptionAdapter:
    """Runs a provider and reports the result as an outcome."""

    def __init__(self, provider: TranscriptionProvider):
        self.provider = provider

    def transcribe(self, audio_path: Path, window: ClipWindow) -> TranscriptionOutcome:
        """Transcribe the window's audio.

        Args:
            audio_path: WAV decoded from the clip; t=0 is ``window.start``
            window: The resolved clip window

        Returns:
            OK with source-timeline segments, DEGRADED when nothing usable was
            heard, or FATAL carrying the tool error.
        """
        log = logger.with_context(provider=self.provider.name)
        try:
            raw = self.provider.transcribe(audio_path)
        except ExternalToolError as e:
            # Recoverable tool errors (an empty transcript) only cost the subtitles
            if e.recoverable:
                log.warning(f"No subtitles: {e.message}")
                return TranscriptionOutcome.degraded(e.message)
            log.error(f"Transcription failed: {e.message}")
            return TranscriptionOutcome.fatal(e)

        segments = [
            TranscriptSegment(
                start=window.audio_to_source(seg.start),
                end=window.audio_to_source(seg.end),
                text=seg.text,
            )
            for seg in raw
        ]
        log.info(f"Transcribed {len(segments)} segments")
        return TranscriptionOutcome.ok(segments)


def create_provider(
    subtitles: SubtitleConfig,
    settings: PipelineSettings | None = None,
    tools: ToolConfig | None = None,
    output_dir: Path | None = None,
) -> TranscriptionProvider:
    """Create the provider selected by the subtitle configuration."""
    settings = settings or PipelineSettings()
    model = subtitles.whisper_model_path or ""

    if subtitles.transcription_backend == TranscriptionBackend.CLI:
        return WhisperCLIProvider(
            model=model,
            config=tools,
            language=subtitles.language,
            timeout=settings.transcription_timeout,
            output_dir=output_dir,
        )

    return WhisperLocalProvider(
        model=model,
        backend=subtitles.transcription_backend.value,
        language=subtitles.language,
        timeout=settings.transcription_timeout,
    )
