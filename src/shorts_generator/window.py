"""Clip window resolution and time-base conversion.

Three timelines meet in this pipeline:

- source time: seconds from the start of the input video
- audio time: seconds from the start of the extracted audio track, which
  begins at the window start
- clip time: seconds from the start of the output short

Each has its own ``NewType`` so conversions go through ``ClipWindow``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NewType

from shorts_generator.errors import InvalidWindowError
from shorts_generator.logging import get_logger

logger = get_logger(__name__)

SourceSeconds = NewType("SourceSeconds", float)
AudioSeconds = NewType("AudioSeconds", float)
ClipSeconds = NewType("ClipSeconds", float)

DEFAULT_MIN_DURATION = 1.0


@dataclass(frozen=True)
class ClipWindow:
    """The ``[start, end)`` range cut from the source video.

    Attributes:
        start: Window start on the source timeline
        end: Window end on the source timeline (exclusive)
        duration: Window length in seconds
        requested_duration: Length that was asked for
        clamped: True when the source was too short for the requested length
    """

    start: SourceSeconds
    end: SourceSeconds
    duration: float
    requested_duration: float
    clamped: bool = False

    def __post_init__(self) -> None:
        if self.start < 0:
            raise InvalidWindowError(f"Window start cannot be negative: {self.start}")
        if self.end <= self.start:
            raise InvalidWindowError(
                f"Window end must be after start: {self.start} -> {self.end}"
            )

    def audio_to_source(self, t: AudioSeconds) -> SourceSeconds:
        """Rebase a timestamp from the extracted audio onto the source timeline."""
        return SourceSeconds(t + self.start)

    def source_to_clip(self, t: SourceSeconds) -> ClipSeconds:
        """Rebase a source timestamp onto the output clip timeline."""
        return ClipSeconds(t - self.start)


def resolve_window(
    source_duration: float,
    requested_duration: float,
    start: float = 0.0,
    min_duration: float = DEFAULT_MIN_DURATION,
) -> ClipWindow:
    """Compute the clip window for a short.

    Args:
        source_duration: Probed duration of the source video in seconds
        requested_duration: Desired short length in seconds
        start: Offset into the source where the short begins
        min_duration: Shortest window worth producing

    Returns:
        ClipWindow of exactly ``requested_duration`` seconds, or clamped to
        the end of the source when it is shorter.

    Raises:
        InvalidWindowError: If the arithmetic cannot produce a usable window
    """
    context = {
        "source_duration": source_duration,
        "requested_duration": requested_duration,
        "start": start,
    }

    if requested_duration <= 0:
        raise InvalidWindowError(
            f"Requested duration must be positive: {requested_duration}", context
        )
    if start < 0:
        raise InvalidWindowError(f"Start offset cannot be negative: {start}", context)
    if source_duration <= 0:
        raise InvalidWindowError(
            f"Source has no usable duration: {source_duration}", context
        )
    if start >= source_duration:
        raise InvalidWindowError(
            f"Start offset {start}s is beyond the end of the source ({source_duration}s)",
            context,
        )

    if start + requested_duration <= source_duration:
        end = start + requested_duration
        duration = requested_duration
        clamped = False
    else:
        end = source_duration
        duration = source_duration - start
        clamped = True

    if duration < min_duration:
        raise InvalidWindowError(
            f"Clip window of {duration:.3f}s is shorter than the minimum {min_duration:.3f}s",
            context,
        )

    if clamped:
        logger.warning(
            f"Source is shorter than requested; clip clamped to {duration:.3f}s",
            extra=context,
        )

    return ClipWindow(
        start=SourceSeconds(start),
        end=SourceSeconds(end),
        duration=duration,
        requested_duration=requested_duration,
        clamped=clamped,
    )
