"""Defensive parsers for Whisper's textual output.

Whisper writes SRT files and, in verbose mode, prints one
``[mm:ss.mmm --> mm:ss.mmm]  text`` line per segment. Both parsers skip
anything they cannot read instead of failing.
"""

from __future__ import annotations

import re

from shorts_generator.logging import get_logger
from shorts_generator.transcription.base import RawSegment
from shorts_generator.window import AudioSeconds

logger = get_logger(__name__)

# [hh:]mm:ss(,|.)fff
_TS = r"(?:\d+:)?\d{1,2}:\d{1,2}[,.]\d{1,3}"

SRT_TIMING = re.compile(rf"^\s*({_TS})\s*-->\s*({_TS})(?:\s+.*)?$")
WHISPER_LOG_LINE = re.compile(rf"^\s*\[\s*({_TS})\s*-->\s*({_TS})\s*\]\s*(.*?)\s*$")


def parse_timestamp(value: str) -> float:
    """Parse ``hh:mm:ss,fff`` / ``mm:ss.fff`` into seconds.

    Raises:
        ValueError: If the value is not a timestamp
    """
    clock, _, fraction = value.strip().replace(",", ".").partition(".")
    parts = clock.split(":")
    if len(parts) not in (2, 3) or not fraction.isdigit():
        raise ValueError(f"Not a timestamp: {value!r}")

    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        numbers.insert(0, 0)
    hours, minutes, seconds = numbers
    if minutes >= 60 or seconds >= 60:
        raise ValueError(f"Timestamp out of range: {value!r}")

    millis = int(fraction[:3].ljust(3, "0"))
    return hours * 3600 + minutes * 60 + seconds + millis / 1000


def _make_segment(start: str, end: str, text: str) -> RawSegment | None:
    try:
        start_s = parse_timestamp(start)
        end_s = parse_timestamp(end)
    except ValueError:
        logger.debug(f"Skipping segment with bad timestamps: {start} --> {end}")
        return None

    text = " ".join(text.split())
    if not text:
        return None
    if end_s < start_s:
        logger.debug(f"Skipping segment that ends before it starts: {start} --> {end}")
        return None

    return RawSegment(start=AudioSeconds(start_s), end=AudioSeconds(end_s), text=text)


def _sorted(segments: list[RawSegment]) -> list[RawSegment]:
    # Stable, so equal starts keep their emitted order
    return sorted(segments, key=lambda s: s.start)


def parse_srt(content: str) -> list[RawSegment]:
    """Parse SRT text into segments.

    Index lines, blank lines and unreadable blocks are skipped. A block's
    text runs until a blank line or the next timing line.

    Args:
        content: SRT file content

    Returns:
        Segments sorted by start time
    """
    lines = content.lstrip("\ufeff").splitlines()
    segments: list[RawSegment] = []
    i = 0

    while i < len(lines):
        match = SRT_TIMING.match(lines[i])
        if match is None:
            i += 1
            continue

        i += 1
        text_lines = []
        while i < len(lines) and lines[i].strip():
            if SRT_TIMING.match(lines[i]):
                break
            # A bare index right before the next timing line is not text
            if (
                lines[i].strip().isdigit()
                and i + 1 < len(lines)
                and SRT_TIMING.match(lines[i + 1])
            ):
                break
            text_lines.append(lines[i].strip())
            i += 1

        segment = _make_segment(match.group(1), match.group(2), " ".join(text_lines))
        if segment is not None:
            segments.append(segment)

    return _sorted(segments)


def parse_whisper_log(content: str) -> list[RawSegment]:
    """Parse Whisper's verbose console output into segments.

    Args:
        content: Captured stdout of the whisper CLI

    Returns:
        Segments sorted by start time
    """
    segments = []
    for line in content.splitlines():
        match = WHISPER_LOG_LINE.match(line)
        if match is None:
            continue
        segment = _make_segment(*match.groups())
        if segment is not None:
            segments.append(segment)

    return _sorted(segments)
