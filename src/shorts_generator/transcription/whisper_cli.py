"""Transcription through the ``whisper`` command line tool.

Runs ``whisper <audio> --model <model> --output_dir <dir> --output_format srt``
and reads back the SRT it writes. If no SRT appears, the segment lines the
tool prints to stdout are used instead.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from shorts_generator.binaries import WHISPER, ToolConfig, get_whisper_path, subprocess_flags
from shorts_generator.errors import ExternalToolError, MediaIOError, TranscriptionEmptyError
from shorts_generator.logging import get_logger
from shorts_generator.transcription.base import RawSegment, TranscriptionProvider, check_model_reference
from shorts_generator.transcription.srt import parse_srt, parse_whisper_log

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 1800


class WhisperCLIProvider(TranscriptionProvider):
    """Runs the openai-whisper CLI in a subprocess."""

    def __init__(
        self,
        model: str,
        config: ToolConfig | None = None,
        language: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        output_dir: Path | None = None,
    ):
        """Initialize the CLI provider.

        Args:
            model: Model name (``base``, ``small``...) or path to a model file
            config: Optional custom tool locations
            language: Language code, or None to let Whisper detect it
            timeout: Seconds before the run is killed
            output_dir: Where Whisper writes its SRT (defaults to the audio's directory)
        """
        self.model = model
        self.language = language
        self.timeout = timeout
        self.output_dir = output_dir
        self._whisper_path = get_whisper_path(config)

    @property
    def name(self) -> str:
        return WHISPER

    def is_available(self) -> bool:
        return self._whisper_path is not None

    def build_command(self, audio_path: Path, model_ref: str, output_dir: Path) -> list[str]:
        cmd = [
            self._whisper_path or WHISPER,
            str(audio_path),
            "--model", model_ref,
            "--output_dir", str(output_dir),
            "--output_format", "srt",
        ]
        if self.language:
            cmd.extend(["--language", self.language])
        return cmd

    def transcribe(self, audio_path: Path) -> list[RawSegment]:
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise MediaIOError(f"Audio file not found: {audio_path}")

        model_ref = check_model_reference(self.model, WHISPER)

        if self._whisper_path is None:
            raise ExternalToolError(
                WHISPER,
                "whisper CLI not found. Install it with: pip install openai-whisper",
            )

        output_dir = Path(self.output_dir or audio_path.parent)
        output_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(audio_path, model_ref, output_dir)

        logger.info(f"Transcribing {audio_path.name} with whisper ({model_ref})")
        logger.debug(f"Running whisper: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                creationflags=subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                WHISPER, f"whisper timed out after {self.timeout} seconds", timed_out=True
            ) from e
        except OSError as e:
            raise ExternalToolError(WHISPER, f"Failed to run whisper: {e}") from e

        if result.returncode != 0:
            tail = "\n".join((result.stderr or "").strip().splitlines()[-5:])
            raise ExternalToolError(
                WHISPER,
                f"whisper exited with code {result.returncode}",
                context={"stderr": tail or "no output"},
            )

        segments = []
        srt_path = self._find_srt(audio_path, output_dir)
        if srt_path is not None:
            segments = parse_srt(srt_path.read_text(encoding="utf-8", errors="replace"))
            logger.debug(f"Read {len(segments)} segments from {srt_path.name}")

        if not segments and result.stdout:
            segments = parse_whisper_log(result.stdout)
            if segments:
                logger.debug(f"Recovered {len(segments)} segments from whisper output")

        if not segments:
            raise TranscriptionEmptyError(
                WHISPER, "whisper produced no usable segments", context={"audio": audio_path.name}
            )

        return segments

    @staticmethod
    def _find_srt(audio_path: Path, output_dir: Path) -> Path | None:
        expected = output_dir / f"{audio_path.stem}.srt"
        if expected.exists():
            return expected

        candidates = sorted(output_dir.glob("*.srt"))
        if candidates:
            logger.warning(f"Expected {expected.name}, using {candidates[0].name}")
            return candidates[0]
        return None
