"""Clip window extraction.

Cuts the resolved window out of the source video with frame accuracy,
optionally scales it, and decodes the clip's audio for transcription.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from shorts_generator.config import PipelineSettings
from shorts_generator.errors import MediaIOError
from shorts_generator.logging import get_logger
from shorts_generator.media.ffmpeg import FFmpegWrapper, VideoInfo, stderr_tail
from shorts_generator.window import ClipWindow

logger = get_logger(__name__)

# Whisper models are trained on 16 kHz mono audio
AUDIO_SAMPLE_RATE = 16000

FASTSTART_SUFFIXES = {".mp4", ".m4v", ".mov"}


@dataclass
class ExtractedMedia:
    """Artifacts written by the extractor.

    Attributes:
        clip_path: Re-encoded clip covering exactly the window
        audio_path: Decoded WAV of the clip's audio, if requested
        width: Frame width of the clip
        height: Frame height of the clip
        fps: Frame rate of the clip
        duration: Clip duration in seconds (the window duration)
    """

    clip_path: Path
    audio_path: Path | None
    width: int
    height: int
    fps: float
    duration: float

    @property
    def frame_duration(self) -> float:
        return 1.0 / self.fps if self.fps > 0 else 1.0 / 30


class MediaExtractor(ABC):
    """Video-processing capability used for probing and cutting."""

    @abstractmethod
    def probe(self, path: Path) -> VideoInfo:
        """Read duration, geometry and streams of a media file."""

    @abstractmethod
    def extract(
        self,
        source: Path,
        window: ClipWindow,
        workdir: Path,
        output_width: int | None = None,
        output_height: int | None = None,
        with_audio: bool = True,
        container_suffix: str = ".mp4",
    ) -> ExtractedMedia:
        """Cut ``window`` from ``source`` into ``workdir``."""


def build_scale_filter(width: int | None, height: int | None) -> str | None:
    """Build an FFmpeg scale filter.

    Both dimensions given scales exactly; one dimension keeps the aspect
    ratio, with ``-2`` keeping the other side even for H.264.

    Args:
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        Filter string, or None if no scaling was requested
    """
    if width and height:
        return f"scale={width}:{height}"
    if width:
        return f"scale={width}:-2"
    if height:
        return f"scale=-2:{height}"
    return None


def require_artifact(path: Path, what: str) -> Path:
    """Ensure an output file exists and is non-empty.

    Raises:
        MediaIOError: If the file is missing or empty
    """
    if not path.exists():
        raise MediaIOError(f"{what} was not created: {path}")
    if path.stat().st_size == 0:
        raise MediaIOError(f"{what} is empty: {path}")
    return path


class FFmpegExtractor(MediaExtractor):
    """Extracts clips and audio with FFmpeg."""

    def __init__(self, ffmpeg: FFmpegWrapper, settings: PipelineSettings | None = None) -> None:
        self.ffmpeg = ffmpeg
        self.settings = settings or PipelineSettings()

    def probe(self, path: Path) -> VideoInfo:
        return self.ffmpeg.get_video_info(path)

    def build_cut_args(
        self,
        source: Path,
        output: Path,
        window: ClipWindow,
        scale_filter: str | None,
        include_audio: bool,
    ) -> list[str]:
        """Build FFmpeg arguments for the window cut.

        Seeking before ``-i`` with re-encoding gives frame-accurate cuts.
        """
        settings = self.settings
        args = [
            "-y",
            "-ss", f"{window.start:.3f}",
            "-i", str(source),
            "-t", f"{window.duration:.3f}",
            "-map", "0:v:0",
        ]
        if include_audio:
            args.extend(["-map", "0:a:0"])

        args.extend([
            "-c:v", settings.video_codec,
            "-crf", str(settings.video_crf),
            "-preset", settings.video_preset,
            "-pix_fmt", "yuv420p",
        ])

        if scale_filter:
            args.extend(["-vf", scale_filter])

        if include_audio:
            args.extend(["-c:a", settings.audio_codec, "-b:a", settings.audio_bitrate])

        if output.suffix.lower() in FASTSTART_SUFFIXES:
            args.extend(["-movflags", "+faststart"])

        args.append(str(output))
        return args

    @staticmethod
    def build_audio_args(clip: Path, output: Path) -> list[str]:
        """Build FFmpeg arguments to decode the clip's audio to 16 kHz mono WAV."""
        return [
            "-y",
            "-i", str(clip),
            "-vn",
            "-ac", "1",
            "-ar", str(AUDIO_SAMPLE_RATE),
            "-c:a", "pcm_s16le",
            str(output),
        ]

    def extract(
        self,
        source: Path,
        window: ClipWindow,
        workdir: Path,
        output_width: int | None = None,
        output_height: int | None = None,
        with_audio: bool = True,
        container_suffix: str = ".mp4",
        source_info: VideoInfo | None = None,
    ) -> ExtractedMedia:
        """Cut the window and optionally decode its audio.

        Args:
            source: Source video
            window: Resolved clip window
            workdir: Directory for temporary artifacts
            output_width: Optional output width
            output_height: Optional output height
            with_audio: Also write a WAV for transcription
            container_suffix: Suffix (container) of the clip file
            source_info: Probe result for ``source`` if already known

        Returns:
            ExtractedMedia describing the written artifacts

        Raises:
            MediaIOError: If the source is unreadable or an artifact is missing
            ExternalToolError: If FFmpeg is missing or times out
        """
        source = Path(source)
        workdir = Path(workdir)
        info = source_info or self.probe(source)

        if with_audio and not info.has_audio:
            raise MediaIOError(f"No audio stream found in input: {source}")

        try:
            workdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MediaIOError(
                f"Cannot create working directory: {e}", context={"workdir": str(workdir)}
            ) from e
        stem = source.stem or "video"
        clip_path = workdir / f"{stem}_clip{container_suffix}"

        logger.info(
            f"Cutting {window.duration:.3f}s from {source.name}",
            extra={"start": window.start, "end": window.end},
        )
        args = self.build_cut_args(
            source,
            clip_path,
            window,
            build_scale_filter(output_width, output_height),
            include_audio=info.has_audio,
        )
        result = self.ffmpeg.run_ffmpeg(args)
        if result.returncode != 0:
            raise MediaIOError(
                f"Failed to cut clip from {source}",
                context={"stderr": stderr_tail(result, 3)},
            )
        require_artifact(clip_path, "Clip")

        clip_info = self.probe(clip_path)

        audio_path = None
        if with_audio:
            audio_path = workdir / f"{stem}_audio.wav"
            result = self.ffmpeg.run_ffmpeg(self.build_audio_args(clip_path, audio_path))
            if result.returncode != 0:
                raise MediaIOError(
                    f"Failed to extract audio from {clip_path}",
                    context={"stderr": stderr_tail(result, 3)},
                )
            require_artifact(audio_path, "Audio track")

        return ExtractedMedia(
            clip_path=clip_path,
            audio_path=audio_path,
            width=clip_info.width,
            height=clip_info.height,
            fps=clip_info.fps,
            duration=window.duration,
        )
