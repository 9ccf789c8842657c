"""Error types for shorts-generator.

Provides:
- Custom exception hierarchy with handling categories
- Stage tagging so failures name the pipeline stage that raised them
- Display formatting for the CLI
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from shorts_generator.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    VALIDATION = "validation"  # Bad window arithmetic or input
    CONFIGURATION = "configuration"  # Bad config value
    RESOURCE = "resource"  # Unreadable media, failed write
    EXTERNAL = "external"  # External tool failed
    INTERNAL = "internal"  # Bug in code


class ShortsGeneratorError(Exception):
    """Base exception for shorts-generator errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether the pipeline may continue without the failed feature
        stage: Pipeline stage that raised the error, once known
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable
        self.stage: str | None = None

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class InvalidWindowError(ShortsGeneratorError):
    """Requested clip window cannot be satisfied.

    Raised before any extraction subprocess runs.
    """

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ConfigurationError(ShortsGeneratorError):
    """Configuration error.

    Examples: unknown colour name, invalid alignment.
    """

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class MediaIOError(ShortsGeneratorError):
    """Source unreadable or an extraction artifact could not be written.

    Examples: corrupt container, no audio stream, empty output file.
    """

    category = ErrorCategory.RESOURCE

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ExternalToolError(ShortsGeneratorError):
    """An external tool is missing, exited non-zero or timed out.

    Attributes:
        tool: Name of the tool (ffmpeg, ffprobe, whisper, ...)
        timed_out: True when the invocation exceeded its timeout
    """

    category = ErrorCategory.EXTERNAL

    def __init__(
        self,
        tool: str,
        message: str,
        context: dict | None = None,
        timed_out: bool = False,
        recoverable: bool = False,
    ):
        super().__init__(message, {"tool": tool, **(context or {})}, recoverable=recoverable)
        self.tool = tool
        self.timed_out = timed_out


class TranscriptionEmptyError(ExternalToolError):
    """Transcription finished but yielded no usable segments.

    The only transcription failure the pipeline recovers from.
    """

    def __init__(self, tool: str, message: str, context: dict | None = None):
        super().__init__(tool, message, context, recoverable=True)


class RenderError(ShortsGeneratorError):
    """Compositor rejected the overlay instructions or produced bad output."""

    category = ErrorCategory.EXTERNAL

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class StageContext:
    """Context manager that brackets one pipeline stage.

    Logs start and completion, tags any ShortsGeneratorError raised inside
    with the stage name, and always re-raises.
    """

    def __init__(self, stage: str, context: dict | None = None):
        """Initialize stage context.

        Args:
            stage: Name of the pipeline stage
            context: Additional context to include in log records
        """
        self.stage = stage
        self.context = context or {}
        self.error: BaseException | None = None

    def __enter__(self) -> "StageContext":
        logger.debug(f"Starting stage: {self.stage}", extra=self.context)
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        if exc_val is not None:
            self.error = exc_val

            if isinstance(exc_val, ShortsGeneratorError) and exc_val.stage is None:
                exc_val.stage = self.stage

            logger.error(
                f"Stage {self.stage} failed: {exc_val}",
                extra={
                    "stage": self.stage,
                    "error_type": type(exc_val).__name__,
                    **self.context,
                },
            )
        else:
            logger.debug(f"Completed stage: {self.stage}")

        return False


def format_error_for_display(error: Exception) -> str:
    """Format an error message for user display.

    Args:
        error: Error to format

    Returns:
        Human-readable error message
    """
    if isinstance(error, ShortsGeneratorError):
        prefix = f"[{error.category.value}]"
        if error.stage:
            prefix += f" {error.stage}:"

        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            return f"{prefix} {error.message} ({context_str})"

        return f"{prefix} {error.message}"

    return f"[error] {type(error).__name__}: {error}"
