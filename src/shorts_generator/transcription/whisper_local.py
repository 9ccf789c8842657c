"""In-process Whisper transcription.

Supports two Python backends:
- faster-whisper: CTranslate2-based implementation, fast on CPU
- openai-whisper: Original OpenAI Whisper (PyTorch)

Both are optional extras; a missing package surfaces as an
``ExternalToolError`` when transcription is attempted.
"""

from __future__ import annotations

import concurrent.futures
from pathlib import Path
from typing import Any

from shorts_generator.errors import ExternalToolError, MediaIOError, TranscriptionEmptyError
from shorts_generator.logging import get_logger
from shorts_generator.transcription.base import RawSegment, TranscriptionProvider, check_model_reference
from shorts_generator.window import AudioSeconds

logger = get_logger(__name__)

FASTER_WHISPER = "faster-whisper"
OPENAI_WHISPER = "openai-whisper"


def _segment(start: Any, end: Any, text: Any) -> RawSegment | None:
    text = " ".join(str(text or "").split())
    try:
        start_s = float(start)
        end_s = float(end)
    except (TypeError, ValueError):
        return None
    if not text or end_s < start_s:
        return None
    return RawSegment(start=AudioSeconds(start_s), end=AudioSeconds(end_s), text=text)


class WhisperLocalProvider(TranscriptionProvider):
    """Transcription provider using an installed Whisper package.

    The model is loaded on first use and reused for later calls.
    """

    AVAILABLE_BACKENDS = [FASTER_WHISPER, OPENAI_WHISPER]

    def __init__(
        self,
        model: str,
        backend: str = FASTER_WHISPER,
        language: str | None = None,
        device: str = "auto",
        compute_type: str = "auto",
        timeout: float | None = None,
    ):
        """Initialize the local Whisper provider.

        Args:
            model: Model name or path to a model file/directory
            backend: ``faster-whisper`` or ``openai-whisper``
            language: Language code, or None to detect
            device: Device to use ("auto", "cpu", "cuda")
            compute_type: Compute type for faster-whisper ("auto", "int8", "float16", "float32")
            timeout: Seconds to wait for the transcription, or None to wait forever
        """
        if backend not in self.AVAILABLE_BACKENDS:
            raise ValueError(f"Unknown Whisper backend: {backend}")
        self._model_name = model
        self._backend = backend
        self._language = language
        self._device = device
        self._compute_type = compute_type
        self._timeout = timeout
        self._model: Any = None

    @property
    def name(self) -> str:
        return self._backend

    def is_available(self) -> bool:
        try:
            if self._backend == FASTER_WHISPER:
                import faster_whisper  # noqa: F401
            else:
                import whisper  # noqa: F401
        except ImportError:
            return False
        return True

    def _get_device(self) -> str:
        device = self._device
        if device == "auto":
            try:
                import torch
                device = "cuda" if torch.cuda.is_available() else "cpu"
            except ImportError:
                device = "cpu"
        return device

    def _load_model(self, model_ref: str) -> Any:
        if self._model is not None:
            return self._model

        device = self._get_device()

        if self._backend == FASTER_WHISPER:
            try:
                from faster_whisper import WhisperModel
            except ImportError as e:
                raise ExternalToolError(
                    FASTER_WHISPER,
                    "faster-whisper package is required. Install it with: pip install faster-whisper",
                ) from e

            compute_type = self._compute_type
            if compute_type == "auto":
                compute_type = "float16" if device == "cuda" else "int8"
            loader = lambda: WhisperModel(model_ref, device=device, compute_type=compute_type)  # noqa: E731
        else:
            try:
                import whisper
            except ImportError as e:
                raise ExternalToolError(
                    OPENAI_WHISPER,
                    "openai-whisper package is required. Install it with: pip install openai-whisper",
                ) from e
            loader = lambda: whisper.load_model(model_ref, device=device)  # noqa: E731

        logger.info(f"Loading Whisper model {model_ref} ({self._backend}, {device})")
        try:
            self._model = loader()
        except Exception as e:
            raise ExternalToolError(self._backend, f"Failed to load Whisper model {model_ref}: {e}") from e
        return self._model

    def _transcribe_faster_whisper(self, model: Any, audio_path: Path) -> list[RawSegment]:
        segments_iter, _info = model.transcribe(
            str(audio_path),
            language=self._language,
            vad_filter=True,
        )
        return [s for s in (_segment(seg.start, seg.end, seg.text) for seg in segments_iter) if s]

    def _transcribe_openai_whisper(self, model: Any, audio_path: Path) -> list[RawSegment]:
        result = model.transcribe(str(audio_path), language=self._language, verbose=False)
        return [
            s
            for s in (
                _segment(seg.get("start"), seg.get("end"), seg.get("text"))
                for seg in result.get("segments", [])
            )
            if s
        ]

    def transcribe(self, audio_path: Path) -> list[RawSegment]:
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise MediaIOError(f"Audio file not found: {audio_path}")

        model_ref = check_model_reference(self._model_name, self._backend)
        model = self._load_model(model_ref)

        if self._backend == FASTER_WHISPER:
            run = self._transcribe_faster_whisper
        else:
            run = self._transcribe_openai_whisper

        # The worker thread cannot be killed; on timeout it is abandoned
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(run, model, audio_path)
            segments = future.result(timeout=self._timeout)
        except concurrent.futures.TimeoutError as e:
            raise ExternalToolError(
                self._backend,
                f"Transcription timed out after {self._timeout} seconds",
                timed_out=True,
            ) from e
        except Exception as e:
            raise ExternalToolError(self._backend, f"Transcription failed: {e}") from e
        finally:
            executor.shutdown(wait=False)

        if not segments:
            raise TranscriptionEmptyError(self._backend, "Whisper produced no usable segments")

        return sorted(segments, key=lambda s: s.start)
