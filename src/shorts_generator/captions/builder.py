"""Turns transcript segments into timed, styled subtitle cues.

Segments arrive on the source timeline and may overlap, be empty, or run
past the window. Cues leave on the clip timeline, ordered, disjoint and
wrapped to the layout's line limit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from shorts_generator.captions.layout import TextLayout
from shorts_generator.captions.styles import CueStyle
from shorts_generator.logging import get_logger
from shorts_generator.transcription.base import TranscriptSegment
from shorts_generator.window import ClipSeconds, ClipWindow

logger = get_logger(__name__)


@dataclass(frozen=True)
class Cue:
    """One subtitle shown on ``[start, end)`` of the output clip."""

    start: ClipSeconds
    end: ClipSeconds
    lines: tuple[str, ...]
    style: CueStyle

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def text(self) -> str:
        return " ".join(self.lines)


@dataclass
class _Span:
    start: float
    end: float
    text: str


def rebase_segments(segments: Iterable[TranscriptSegment], window: ClipWindow) -> list[_Span]:
    """Move segments onto the clip timeline and clip them to the window.

    Segments entirely outside ``[0, window.duration)`` are dropped, partial
    ones are clamped, and blank or zero-length ones are skipped.
    """
    spans = []
    for segment in segments:
        text = " ".join(segment.text.split())
        if not text:
            logger.debug(f"Skipping blank segment at {segment.start:.3f}s")
            continue

        start = window.source_to_clip(segment.start)
        end = window.source_to_clip(segment.end)
        if end <= 0 or start >= window.duration:
            continue

        start = max(0.0, start)
        end = min(window.duration, end)
        if end <= start:
            logger.debug(f"Skipping zero-length segment at {start:.3f}s: {text!r}")
            continue

        spans.append(_Span(start, end, text))
    return spans


def resolve_overlaps(spans: Sequence[_Span]) -> list[_Span]:
    """Make spans disjoint.

    Where two spans intersect, the overlap is split at its midpoint. A span
    that ends before its (already shifted) predecessor begins is folded
    into that predecessor so no text is lost.
    """
    resolved: list[_Span] = []
    for span in sorted(spans, key=lambda s: (s.start, s.end)):
        span = _Span(span.start, span.end, span.text)
        if resolved and span.start < resolved[-1].end:
            prev = resolved[-1]
            lo = max(prev.start, span.start)
            hi = min(prev.end, span.end)
            if hi > lo:
                mid = (lo + hi) / 2
                prev.end = mid
                span.start = mid
            else:
                prev.text = f"{prev.text} {span.text}"
                continue
        resolved.append(span)
    return resolved


def wrap_text(text: str, width: int) -> list[str]:
    """Greedy word wrap; words longer than ``width`` are hard-split."""
    width = max(1, width)
    lines: list[str] = []
    current = ""

    for word in text.split():
        while len(word) > width:
            if current:
                lines.append(current)
                current = ""
            lines.append(word[:width])
            word = word[width:]

        if not current:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)
    return lines


def split_span(span: _Span, lines: list[str], max_lines: int, style: CueStyle) -> list[Cue]:
    """Split a wrapped span into cues of at most ``max_lines`` lines.

    Time is divided in proportion to each chunk's character count and the
    last chunk ends exactly at the span end.
    """
    chunks = [tuple(lines[i:i + max_lines]) for i in range(0, len(lines), max_lines)]
    weights = [sum(len(line) for line in chunk) for chunk in chunks]
    total = sum(weights)
    duration = span.end - span.start

    cues = []
    start = span.start
    consumed = 0
    for i, chunk in enumerate(chunks):
        consumed += weights[i]
        if i == len(chunks) - 1:
            end = span.end
        else:
            end = span.start + duration * consumed / total
        cues.append(Cue(ClipSeconds(start), ClipSeconds(end), chunk, style))
        start = end
    return cues


def build_cues(
    segments: Iterable[TranscriptSegment],
    window: ClipWindow,
    style: CueStyle,
    layout: TextLayout,
) -> list[Cue]:
    """Build the cue sequence for a clip.

    Args:
        segments: Transcript segments on the source timeline
        window: Resolved clip window
        style: Style shared by every cue
        layout: Frame layout used to size lines

    Returns:
        Start-ordered cues with ``c1.end <= c2.start`` for neighbours.
        Empty when no segment falls inside the window.
    """
    spans = resolve_overlaps(rebase_segments(segments, window))
    width = layout.chars_per_line(style.font_size)

    cues: list[Cue] = []
    for span in spans:
        lines = wrap_text(span.text, width)
        cues.extend(split_span(span, lines, layout.max_lines, style))

    logger.debug(
        f"Built {len(cues)} cues from {len(spans)} segments",
        extra={"chars_per_line": width, "max_lines": layout.max_lines},
    )
    return cues
