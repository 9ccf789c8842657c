"""FFmpeg and FFprobe invocation.

Runs the tools as subprocesses with timeouts and parses FFprobe's JSON
output into ``VideoInfo``.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path

from shorts_generator.binaries import FFMPEG, FFPROBE, ToolConfig, get_ffmpeg_path, get_ffprobe_path, subprocess_flags
from shorts_generator.errors import ExternalToolError, MediaIOError
from shorts_generator.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FFMPEG_TIMEOUT = 600
DEFAULT_FFPROBE_TIMEOUT = 30


@dataclass
class VideoInfo:
    """Information about a video file."""

    duration: float  # Container duration in seconds
    width: int
    height: int
    fps: float
    video_codec: str
    audio_codec: str | None
    has_audio: bool
    video_duration: float | None = None  # Video stream duration, when reported

    @property
    def frame_duration(self) -> float:
        """Length of one frame in seconds (assumes 30 fps when unknown)."""
        return 1.0 / self.fps if self.fps > 0 else 1.0 / 30


def stderr_tail(result: subprocess.CompletedProcess, lines: int = 15) -> str:
    """Last lines of a process's diagnostic output."""
    output = result.stderr or result.stdout or ""
    tail = output.strip().splitlines()[-lines:]
    return "\n".join(tail) or "no output"


def _parse_rate(rate: str) -> float:
    """Parse an FFprobe frame rate fraction such as ``30000/1001``."""
    try:
        num, den = rate.split("/")
        return float(num) / float(den) if float(den) != 0 else 0.0
    except (ValueError, ZeroDivisionError):
        return 0.0


class FFmpegWrapper:
    """Runs FFmpeg and FFprobe.

    Missing executables and timeouts raise ``ExternalToolError``; callers
    decide what a non-zero exit means for their stage.
    """

    def __init__(
        self,
        config: ToolConfig | None = None,
        ffmpeg_timeout: int = DEFAULT_FFMPEG_TIMEOUT,
        ffprobe_timeout: int = DEFAULT_FFPROBE_TIMEOUT,
    ) -> None:
        """Initialize FFmpeg wrapper.

        Args:
            config: Optional custom tool locations.
            ffmpeg_timeout: Timeout for each FFmpeg run in seconds.
            ffprobe_timeout: Timeout for each FFprobe run in seconds.

        Raises:
            ExternalToolError: If FFmpeg is not available.
        """
        self._config = config or ToolConfig()
        self._ffmpeg_path = get_ffmpeg_path(self._config)
        self._ffprobe_path = get_ffprobe_path(self._config)
        self.ffmpeg_timeout = ffmpeg_timeout
        self.ffprobe_timeout = ffprobe_timeout

        if self._ffmpeg_path is None:
            raise ExternalToolError(
                FFMPEG,
                "FFmpeg not found. Please install imageio-ffmpeg or add FFmpeg to PATH.",
            )

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg_path

    @property
    def ffprobe_path(self) -> str | None:
        return self._ffprobe_path

    def _run(self, tool: str, executable: str, args: list[str], timeout: int) -> subprocess.CompletedProcess:
        cmd = [executable] + args
        logger.debug(f"Running {tool}: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                tool, f"{tool} timed out after {timeout} seconds", timed_out=True
            ) from e
        except FileNotFoundError as e:
            raise ExternalToolError(tool, f"{tool} not found at {executable}") from e
        except OSError as e:
            raise ExternalToolError(tool, f"Failed to run {tool}: {e}") from e

    def run_ffmpeg(self, args: list[str], timeout: int | None = None) -> subprocess.CompletedProcess:
        """Run FFmpeg with the given arguments (excluding the executable)."""
        return self._run(FFMPEG, self._ffmpeg_path, args, timeout or self.ffmpeg_timeout)

    def run_ffprobe(self, args: list[str], timeout: int | None = None) -> subprocess.CompletedProcess:
        """Run FFprobe with the given arguments (excluding the executable).

        Raises:
            ExternalToolError: If FFprobe is not available or times out.
        """
        if self._ffprobe_path is None:
            raise ExternalToolError(
                FFPROBE, "FFprobe not found. Please install FFprobe to enable video inspection."
            )
        return self._run(FFPROBE, self._ffprobe_path, args, timeout or self.ffprobe_timeout)

    def get_video_info(self, video_path: str | Path) -> VideoInfo:
        """Get information about a video file.

        Args:
            video_path: Path to video file.

        Returns:
            VideoInfo with duration, dimensions, fps, and codecs.

        Raises:
            MediaIOError: If the file is missing or not a readable video.
            ExternalToolError: If FFprobe is unavailable or times out.
        """
        video_path = Path(video_path)

        if not video_path.exists():
            raise MediaIOError(f"Video file not found: {video_path}")

        result = self.run_ffprobe([
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(video_path),
        ])

        if result.returncode != 0:
            raise MediaIOError(
                f"Failed to read video file: {video_path}",
                context={"stderr": stderr_tail(result, 3)},
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MediaIOError(f"Failed to parse video info for {video_path}: {e}") from e

        video_stream = None
        audio_stream = None
        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and video_stream is None:
                video_stream = stream
            elif stream.get("codec_type") == "audio" and audio_stream is None:
                audio_stream = stream

        if video_stream is None:
            raise MediaIOError(f"No video stream found in: {video_path}")

        try:
            duration = float(data.get("format", {}).get("duration", 0))
        except (TypeError, ValueError):
            duration = 0.0

        try:
            video_duration = float(video_stream["duration"])
        except (KeyError, TypeError, ValueError):
            video_duration = None

        return VideoInfo(
            duration=duration,
            width=int(video_stream.get("width", 0)),
            height=int(video_stream.get("height", 0)),
            fps=_parse_rate(video_stream.get("r_frame_rate", "0/1")),
            video_codec=video_stream.get("codec_name", "unknown"),
            audio_codec=audio_stream.get("codec_name") if audio_stream else None,
            has_audio=audio_stream is not None,
            video_duration=video_duration,
        )
