"""Subtitle cues: styling, layout and timing.

Turns transcript segments into timed cues and positions them on the frame.
"""

from shorts_generator.captions.styles import (
    RGBA,
    CueStyle,
    HorizontalAnchor,
    VerticalAnchor,
    parse_color,
)
from shorts_generator.captions.layout import Placement, TextBox, TextLayout
from shorts_generator.captions.builder import Cue, build_cues

__all__ = [
    "RGBA",
    "CueStyle",
    "HorizontalAnchor",
    "VerticalAnchor",
    "parse_color",
    "Placement",
    "TextBox",
    "TextLayout",
    "Cue",
    "build_cues",
]
