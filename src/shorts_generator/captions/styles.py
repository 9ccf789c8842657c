"""Subtitle styling.

Defines the run-wide cue style: font, size, colour and screen anchors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from shorts_generator.errors import ConfigurationError


class VerticalAnchor(str, Enum):
    """Vertical position for subtitles."""

    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"

    @classmethod
    def parse(cls, value: "str | VerticalAnchor") -> "VerticalAnchor":
        """Parse a case-insensitive name; ``middle`` is accepted for center."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "middle":
            name = "center"
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(
                f"Invalid vertical alignment '{value}'. Use top, center or bottom."
            ) from None


class HorizontalAnchor(str, Enum):
    """Horizontal position for subtitles."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: "str | HorizontalAnchor") -> "HorizontalAnchor":
        """Parse a case-insensitive name; ``middle`` is accepted for center."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "middle":
            name = "center"
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(
                f"Invalid horizontal alignment '{value}'. Use left, center or right."
            ) from None


class RGBA(NamedTuple):
    """Colour with 8-bit channels."""

    r: int
    g: int
    b: int
    a: int = 255

    def to_ffmpeg(self) -> str:
        """Format as FFmpeg ``0xRRGGBBAA``."""
        return f"0x{self.r:02X}{self.g:02X}{self.b:02X}{self.a:02X}"


NAMED_COLORS = {
    "white": RGBA(255, 255, 255),
    "black": RGBA(0, 0, 0),
    "red": RGBA(255, 0, 0),
    "green": RGBA(0, 255, 0),
    "blue": RGBA(0, 0, 255),
    "yellow": RGBA(255, 255, 0),
    "cyan": RGBA(0, 255, 255),
    "magenta": RGBA(255, 0, 255),
}

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})([0-9a-fA-F]{2})?$")


def parse_color(value: str) -> RGBA:
    """Parse a colour name, ``#RRGGBB`` or ``#RRGGBBAA``.

    Args:
        value: Colour string

    Returns:
        Parsed RGBA colour

    Raises:
        ConfigurationError: If the colour is not recognised
    """
    name = value.strip().lower()
    if name in NAMED_COLORS:
        return NAMED_COLORS[name]

    match = _HEX_COLOR.match(value.strip())
    if match is None:
        raise ConfigurationError(
            f"Unsupported colour '{value}'. Use a common name, #RRGGBB or #RRGGBBAA."
        )

    rgb, alpha = match.groups()
    return RGBA(
        int(rgb[0:2], 16),
        int(rgb[2:4], 16),
        int(rgb[4:6], 16),
        int(alpha, 16) if alpha else 255,
    )


@dataclass(frozen=True)
class CueStyle:
    """Appearance shared by every cue of a run.

    Attributes:
        font_path: Path to a .ttf/.otf font file
        font_size: Font size in pixels
        color: Text colour
        vertical_anchor: Vertical screen anchor
        horizontal_anchor: Horizontal screen anchor
    """

    font_path: Path
    font_size: int
    color: RGBA
    vertical_anchor: VerticalAnchor = VerticalAnchor.BOTTOM
    horizontal_anchor: HorizontalAnchor = HorizontalAnchor.CENTER

    def __post_init__(self) -> None:
        if self.font_size <= 0:
            raise ConfigurationError(f"Font size must be positive: {self.font_size}")

    @classmethod
    def create(
        cls,
        font_path: str | Path,
        font_size: int = 24,
        color: str = "white",
        vertical: str | VerticalAnchor = VerticalAnchor.BOTTOM,
        horizontal: str | HorizontalAnchor = HorizontalAnchor.CENTER,
    ) -> "CueStyle":
        """Build a style from user-facing strings."""
        return cls(
            font_path=Path(font_path),
            font_size=font_size,
            color=parse_color(color),
            vertical_anchor=VerticalAnchor.parse(vertical),
            horizontal_anchor=HorizontalAnchor.parse(horizontal),
        )

    def get_ffmpeg_fontfile(self) -> str:
        """Font path with forward slashes, as FFmpeg expects on every platform."""
        return str(self.font_path).replace("\\", "/")
