"""Run configuration for shorts-generator.

Handles validating, loading and saving the JSON configuration of a run.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from shorts_generator.captions.layout import TextLayout
from shorts_generator.captions.styles import (
    CueStyle,
    HorizontalAnchor,
    VerticalAnchor,
    parse_color,
)
from shorts_generator.errors import ConfigurationError


class TranscriptionBackend(str, Enum):
    """Which Whisper implementation produces the transcript."""

    CLI = "cli"  # `whisper` executable in a subprocess
    FASTER_WHISPER = "faster-whisper"
    OPENAI_WHISPER = "openai-whisper"


class VideoConfig(BaseModel):
    """Source, destination and clip length."""

    model_config = ConfigDict(frozen=True)

    input_path: Path
    output_path: Path
    short_duration_secs: float = Field(default=60.0, gt=0, description="Length of the short in seconds")
    start_offset_secs: float = Field(default=0.0, ge=0, description="Where the short starts in the source")
    output_width: int | None = Field(default=None, gt=0)
    output_height: int | None = Field(default=None, gt=0)


class SubtitleConfig(BaseModel):
    """Transcription and subtitle styling settings."""

    model_config = ConfigDict(frozen=True)

    use_subtitles: bool = True
    # Whisper model name (tiny, base, ...) or path to a model file/directory
    whisper_model_path: str | None = None
    font_path: Path | None = None
    font_size: int = Field(default=24, gt=0)
    font_color: str = "white"
    vertical_alignment: VerticalAnchor = VerticalAnchor.BOTTOM
    horizontal_alignment: HorizontalAnchor = HorizontalAnchor.CENTER
    transcription_backend: TranscriptionBackend = TranscriptionBackend.CLI
    language: str | None = None
    # Also write the cues as an .srt next to the output
    write_srt: bool = False

    @field_validator("vertical_alignment", mode="before")
    @classmethod
    def _parse_vertical(cls, value: Any) -> VerticalAnchor:
        try:
            return VerticalAnchor.parse(value)
        except ConfigurationError as e:
            raise ValueError(e.message) from None

    @field_validator("horizontal_alignment", mode="before")
    @classmethod
    def _parse_horizontal(cls, value: Any) -> HorizontalAnchor:
        try:
            return HorizontalAnchor.parse(value)
        except ConfigurationError as e:
            raise ValueError(e.message) from None

    @field_validator("font_color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        try:
            parse_color(value)
        except ConfigurationError as e:
            raise ValueError(e.message) from None
        return value

    @model_validator(mode="after")
    def _require_subtitle_inputs(self) -> "SubtitleConfig":
        if self.use_subtitles:
            if not self.whisper_model_path:
                raise ValueError("whisper_model_path is required when subtitles are enabled")
            if self.font_path is None:
                raise ValueError("font_path is required when subtitles are enabled")
        return self

    def to_cue_style(self) -> CueStyle:
        """Build the run-wide cue style."""
        if self.font_path is None:
            raise ConfigurationError("font_path is required to style subtitles")
        return CueStyle.create(
            font_path=self.font_path,
            font_size=self.font_size,
            color=self.font_color,
            vertical=self.vertical_alignment,
            horizontal=self.horizontal_alignment,
        )


class PipelineSettings(BaseModel):
    """Policy defaults, timeouts and encoder settings."""

    model_config = ConfigDict(frozen=True)

    # Shortest clip worth producing
    min_clip_secs: float = Field(default=1.0, gt=0)
    # Subtitle layout
    max_lines: int = Field(default=2, ge=1)
    margin_px: int = Field(default=40, ge=0)
    glyph_width_ratio: float = Field(default=0.6, gt=0)
    max_text_width_ratio: float = Field(default=0.9, gt=0, le=1)
    # Timeouts in seconds
    ffmpeg_timeout: int = Field(default=600, gt=0)
    ffprobe_timeout: int = Field(default=30, gt=0)
    transcription_timeout: int = Field(default=1800, gt=0)
    # Encoding
    video_codec: str = "libx264"
    video_crf: int = 23  # Lower = better, 18-28 typical
    video_preset: str = "medium"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    # Leave the per-run temp directory behind for debugging
    keep_temp: bool = False

    def layout_for(self, frame_width: int, frame_height: int) -> TextLayout:
        """Text layout for a frame of the given size."""
        return TextLayout(
            frame_width=frame_width,
            frame_height=frame_height,
            margin=self.margin_px,
            max_lines=self.max_lines,
            glyph_width_ratio=self.glyph_width_ratio,
            max_width_ratio=self.max_text_width_ratio,
        )


class AppConfig(BaseModel):
    """Complete configuration of one run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    video: VideoConfig
    subtitles: SubtitleConfig
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    def save(self, path: str | Path) -> Path:
        """Save configuration to a JSON file with atomic write.

        Args:
            path: Destination file

        Returns:
            Path to the saved config file

        Raises:
            ConfigurationError: If the file cannot be written
        """
        path = Path(path)
        temp_path = path.with_name(path.name + ".tmp")

        # Atomic write: write to temp file, then rename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self.model_dump(mode="json"), f, indent=2)
            temp_path.replace(path)
        except OSError as e:
            raise ConfigurationError(f"Cannot write config file {path}: {e}") from e
        finally:
            if temp_path.exists():
                temp_path.unlink()
        return path

    @classmethod
    def load(cls, path: str | Path) -> "AppConfig":
        """Load and validate configuration from a JSON file.

        Args:
            path: Config file to read

        Returns:
            Validated AppConfig

        Raises:
            ConfigurationError: If the file is missing, not JSON, or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file is not valid JSON: {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ConfigurationError(f"Config file is not UTF-8 text: {path}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e
