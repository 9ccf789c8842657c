"""Transcription module for speech-to-text conversion.

Provides the provider interface and Whisper implementations (command
line tool or in-process library).
"""

from shorts_generator.transcription.base import (
    OutcomeStatus,
    RawSegment,
    TranscriptionOutcome,
    TranscriptionProvider,
    TranscriptSegment,
)
from shorts_generator.transcription.whisper_cli import WhisperCLIProvider
from shorts_generator.transcription.whisper_local import WhisperLocalProvider

__all__ = [
    "OutcomeStatus",
    "RawSegment",
    "TranscriptionOutcome",
    "TranscriptionProvider",
    "TranscriptSegment",
    "WhisperCLIProvider",
    "WhisperLocalProvider",
]
