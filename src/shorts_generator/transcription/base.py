"""Base classes for transcription providers.

Defines the provider interface, the segment types for each time base, and
the outcome returned to the pipeline.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from shorts_generator.errors import ExternalToolError
from shorts_generator.window import AudioSeconds, SourceSeconds


@dataclass(frozen=True)
class RawSegment:
    """A timed piece of text as the tool emitted it, in audio-local seconds."""

    start: AudioSeconds
    end: AudioSeconds
    text: str


@dataclass(frozen=True)
class TranscriptSegment:
    """A timed piece of text on the source timeline."""

    start: SourceSeconds
    end: SourceSeconds
    text: str

    @property
    def duration(self) -> float:
        return self.end - self.start


class OutcomeStatus(str, Enum):
    """How transcription ended."""

    OK = "ok"
    DEGRADED = "degraded"  # Finished without usable text; run continues
    FATAL = "fatal"  # Tool failed; run aborts


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Result of the transcription stage.

    Attributes:
        status: OK, DEGRADED or FATAL
        segments: Source-timeline segments (OK only)
        reason: Why subtitles were dropped (DEGRADED only)
        error: Originating tool error (FATAL only)
    """

    status: OutcomeStatus
    segments: tuple[TranscriptSegment, ...] = ()
    reason: str | None = None
    error: ExternalToolError | None = None

    @classmethod
    def ok(cls, segments: list[TranscriptSegment]) -> "TranscriptionOutcome":
        return cls(status=OutcomeStatus.OK, segments=tuple(segments))

    @classmethod
    def degraded(cls, reason: str) -> "TranscriptionOutcome":
        return cls(status=OutcomeStatus.DEGRADED, reason=reason)

    @classmethod
    def fatal(cls, error: ExternalToolError) -> "TranscriptionOutcome":
        return cls(status=OutcomeStatus.FATAL, reason=error.message, error=error)


class TranscriptionProvider(ABC):
    """Abstract base class for transcription providers.

    Providers return segments in audio-local seconds; rebasing onto the
    source timeline is the adapter's job.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider (tool) name."""

    @abstractmethod
    def transcribe(self, audio_path: Path) -> list[RawSegment]:
        """Transcribe an audio file.

        Args:
            audio_path: Path to a WAV file

        Returns:
            Segments sorted by start, in audio-local seconds

        Raises:
            TranscriptionEmptyError: If no usable segment was produced
            ExternalToolError: If the tool is missing, fails, or times out
        """

    def is_available(self) -> bool:
        """Check if the provider can be used."""
        return True


def looks_like_path(model_ref: str) -> bool:
    """Tell a model path apart from a model name such as ``base.en``."""
    if os.sep in model_ref or "/" in model_ref:
        return True
    return Path(model_ref).suffix.lower() in {".pt", ".bin", ".ckpt"}


def check_model_reference(model_ref: str, tool: str) -> str:
    """Validate a Whisper model name or path.

    Raises:
        ExternalToolError: If a model path does not exist or is unreadable
    """
    if not model_ref or not model_ref.strip():
        raise ExternalToolError(tool, "No Whisper model configured")

    if looks_like_path(model_ref):
        path = Path(model_ref).expanduser()
        if not path.exists() or not os.access(path, os.R_OK):
            raise ExternalToolError(
                tool, f"Whisper model path is missing or unreadable: {model_ref}"
            )
        return str(path)

    return model_ref
