"""SRT export of the final cues."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from shorts_generator.captions.builder import Cue
from shorts_generator.errors import MediaIOError


def format_srt_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm``."""
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def cues_to_srt(cues: Sequence[Cue]) -> str:
    blocks = []
    for index, cue in enumerate(cues, start=1):
        blocks.append(
            f"{index}\n"
            f"{format_srt_time(cue.start)} --> {format_srt_time(cue.end)}\n"
            + "\n".join(cue.lines)
        )
    return "\n\n".join(blocks) + "\n" if blocks else ""


def write_srt(cues: Sequence[Cue], path: str | Path) -> Path:
    """Write cues as an SRT file with atomic write.

    Args:
        cues: Cues on the clip timeline
        path: Destination file

    Returns:
        Path to the written file

    Raises:
        MediaIOError: If the file cannot be written
    """
    path = Path(path)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(cues_to_srt(cues))
        temp_path.replace(path)
    except OSError as e:
        raise MediaIOError(f"Cannot write subtitle file: {e}", context={"path": str(path)}) from e
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return path
