"""Text box estimation and screen placement for subtitles.

FFmpeg reports no text metrics before rendering, so sizes are estimated
from the font size: each line is ``font_size`` tall and each character
``font_size * glyph_width_ratio`` wide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from shorts_generator.captions.styles import CueStyle, HorizontalAnchor, VerticalAnchor


@dataclass(frozen=True)
class TextBox:
    """Estimated bounding box of a block of subtitle lines."""

    width: float
    height: float


@dataclass(frozen=True)
class Placement:
    """Pixel position of a subtitle block.

    Attributes:
        x: Left edge of the block
        y: Top edge of the block
        line_xs: Left edge of each line, aligned within the block
        box: Estimated block size
    """

    x: int
    y: int
    line_xs: tuple[int, ...]
    box: TextBox


@dataclass(frozen=True)
class TextLayout:
    """Frame geometry and layout policy for subtitle placement.

    Attributes:
        frame_width: Output frame width in pixels
        frame_height: Output frame height in pixels
        margin: Distance kept from the frame edge in pixels
        max_lines: Soft limit of lines shown at once
        glyph_width_ratio: Average glyph width as a fraction of font size
        max_width_ratio: Widest a line may be as a fraction of frame width
    """

    frame_width: int
    frame_height: int
    margin: int = 40
    max_lines: int = 2
    glyph_width_ratio: float = 0.6
    max_width_ratio: float = 0.9

    @property
    def max_text_width(self) -> float:
        """Widest line in pixels."""
        usable = min(self.frame_width * self.max_width_ratio, self.frame_width - 2 * self.margin)
        return max(1.0, usable)

    def glyph_width(self, font_size: int) -> float:
        return font_size * self.glyph_width_ratio

    def chars_per_line(self, font_size: int) -> int:
        """Number of characters that fit on one line at this font size."""
        return max(1, int(self.max_text_width // self.glyph_width(font_size)))

    def line_width(self, line: str, font_size: int) -> float:
        return len(line) * self.glyph_width(font_size)

    def estimate_box(self, lines: Sequence[str], font_size: int) -> TextBox:
        """Estimate the bounding box of a block of lines."""
        if not lines:
            return TextBox(0.0, 0.0)
        longest = max(len(line) for line in lines)
        return TextBox(
            width=longest * self.glyph_width(font_size),
            height=len(lines) * font_size,
        )

    def place(self, lines: Sequence[str], style: CueStyle) -> Placement:
        """Compute the block and per-line positions for a cue.

        Args:
            lines: Display lines of the cue
            style: Run-wide cue style

        Returns:
            Placement in pixel coordinates, clamped inside the frame
        """
        box = self.estimate_box(lines, style.font_size)

        if style.horizontal_anchor == HorizontalAnchor.LEFT:
            x = self.margin
        elif style.horizontal_anchor == HorizontalAnchor.RIGHT:
            x = self.frame_width - self.margin - box.width
        else:
            x = (self.frame_width - box.width) / 2

        if style.vertical_anchor == VerticalAnchor.TOP:
            y = self.margin
        elif style.vertical_anchor == VerticalAnchor.CENTER:
            y = (self.frame_height - box.height) / 2
        else:
            y = self.frame_height - self.margin - box.height

        x = max(0.0, x)
        y = max(0.0, y)

        line_xs = []
        for line in lines:
            slack = box.width - self.line_width(line, style.font_size)
            if style.horizontal_anchor == HorizontalAnchor.LEFT:
                line_x = x
            elif style.horizontal_anchor == HorizontalAnchor.RIGHT:
                line_x = x + slack
            else:
                line_x = x + slack / 2
            line_xs.append(int(round(line_x)))

        return Placement(
            x=int(round(x)),
            y=int(round(y)),
            line_xs=tuple(line_xs),
            box=box,
        )
