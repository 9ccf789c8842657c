"""Tests for subtitle styling and layout."""

from pathlib import Path

import pytest

from shorts_generator.captions.layout import TextLayout
from shorts_generator.captions.styles import (
    RGBA,
    CueStyle,
    HorizontalAnchor,
    VerticalAnchor,
    parse_color,
)
from shorts_generator.errors import ConfigurationError


def make_style(vertical="bottom", horizontal="center", font_size=24):
    return CueStyle.create(
        font_path=Path("/fonts/Inter.ttf"),
        font_size=font_size,
        color="white",
        vertical=vertical,
        horizontal=horizontal,
    )


class TestAnchors:
    """Tests for anchor parsing."""

    def test_parse_case_insensitive(self):
        assert VerticalAnchor.parse("TOP") == VerticalAnchor.TOP
        assert HorizontalAnchor.parse(" Left ") == HorizontalAnchor.LEFT

    def test_middle_alias(self):
        """'middle' is accepted as center on both axes."""
        assert VerticalAnchor.parse("middle") == VerticalAnchor.CENTER
        assert HorizontalAnchor.parse("middle") == HorizontalAnchor.CENTER

    def test_passthrough(self):
        assert VerticalAnchor.parse(VerticalAnchor.BOTTOM) is VerticalAnchor.BOTTOM

    def test_invalid(self):
        with pytest.raises(ConfigurationError):
            VerticalAnchor.parse("left")
        with pytest.raises(ConfigurationError):
            HorizontalAnchor.parse("bottom")


class TestParseColor:
    """Tests for parse_color."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("white", RGBA(255, 255, 255)),
            ("black", RGBA(0, 0, 0)),
            ("red", RGBA(255, 0, 0)),
            ("green", RGBA(0, 255, 0)),
            ("blue", RGBA(0, 0, 255)),
            ("Yellow", RGBA(255, 255, 0)),
        ],
    )
    def test_named_colors(self, name, expected):
        assert parse_color(name) == expected

    def test_hex(self):
        assert parse_color("#1A2B3C") == RGBA(0x1A, 0x2B, 0x3C, 255)
        assert parse_color("1a2b3c") == RGBA(0x1A, 0x2B, 0x3C, 255)

    def test_hex_with_alpha(self):
        assert parse_color("#FFFFFF80") == RGBA(255, 255, 255, 0x80)

    @pytest.mark.parametrize("value", ["plaid", "#12345", "#GGGGGG", ""])
    def test_invalid(self, value):
        with pytest.raises(ConfigurationError):
            parse_color(value)

    def test_to_ffmpeg(self):
        """Colours are emitted as 0xRRGGBBAA."""
        assert RGBA(255, 136, 0).to_ffmpeg() == "0xFF8800FF"
        assert parse_color("black").to_ffmpeg() == "0x000000FF"


class TestCueStyle:
    """Tests for CueStyle."""

    def test_create(self):
        style = CueStyle.create("/fonts/Inter.ttf", font_size=32, color="red", vertical="top")

        assert style.font_path == Path("/fonts/Inter.ttf")
        assert style.font_size == 32
        assert style.color == RGBA(255, 0, 0)
        assert style.vertical_anchor == VerticalAnchor.TOP
        assert style.horizontal_anchor == HorizontalAnchor.CENTER

    def test_non_positive_font_size(self):
        with pytest.raises(ConfigurationError):
            CueStyle.create("/fonts/Inter.ttf", font_size=0)

    def test_fontfile_uses_forward_slashes(self):
        style = CueStyle(Path("fonts") / "Inter.ttf", 24, RGBA(255, 255, 255))
        assert "\\" not in style.get_ffmpeg_fontfile()
        assert style.get_ffmpeg_fontfile().endswith("fonts/Inter.ttf")


class TestTextLayout:
    """Tests for TextLayout estimation and placement."""

    def test_estimate_box(self):
        """Height is lines x font size, width is longest line x glyph width."""
        layout = TextLayout(1080, 1920, glyph_width_ratio=0.5)
        box = layout.estimate_box(["hello", "hi"], 20)

        assert box.width == 50.0
        assert box.height == 40.0

    def test_empty_box(self):
        box = TextLayout(1080, 1920).estimate_box([], 24)
        assert box.width == 0.0
        assert box.height == 0.0

    def test_chars_per_line(self):
        layout = TextLayout(200, 400, margin=10, glyph_width_ratio=0.5)
        # usable width 180, glyph width 10
        assert layout.chars_per_line(20) == 18

    def test_chars_per_line_never_zero(self):
        layout = TextLayout(50, 50, margin=40)
        assert layout.chars_per_line(200) == 1

    def test_bottom_center_on_vertical_frame(self):
        """Bottom/center on 1080x1920: centred horizontally, margin above the bottom edge."""
        layout = TextLayout(1080, 1920, margin=40, glyph_width_ratio=0.5)
        placement = layout.place(["hello world"], make_style(font_size=20))

        # 11 chars x 10px = 110px wide, 20px tall
        assert placement.x == (1080 - 110) // 2
        assert placement.y == 1920 - 40 - 20
        assert placement.line_xs == (placement.x,)

    @pytest.mark.parametrize(
        "vertical,horizontal,expected",
        [
            ("top", "left", (40, 40)),
            ("top", "right", (1080 - 40 - 100, 40)),
            ("center", "center", ((1080 - 100) // 2, (1920 - 40) // 2)),
            ("bottom", "left", (40, 1920 - 40 - 40)),
        ],
    )
    def test_anchor_positions(self, vertical, horizontal, expected):
        layout = TextLayout(1080, 1920, margin=40, glyph_width_ratio=0.5)
        placement = layout.place(["0123456789", "abc"], make_style(vertical, horizontal, font_size=20))

        assert (placement.x, placement.y) == expected

    def test_lines_aligned_within_block(self):
        """Shorter lines follow the horizontal anchor inside the block."""
        layout = TextLayout(1000, 1000, margin=0, glyph_width_ratio=0.5)
        lines = ["0123456789", "abcd"]

        centre = layout.place(lines, make_style("top", "center", font_size=20))
        right = layout.place(lines, make_style("top", "right", font_size=20))
        left = layout.place(lines, make_style("top", "left", font_size=20))

        assert centre.line_xs == (450, 480)
        assert right.line_xs == (900, 960)
        assert left.line_xs == (0, 0)

    def test_oversized_block_clamped_inside_frame(self):
        layout = TextLayout(100, 100, margin=10, glyph_width_ratio=1.0)
        placement = layout.place(["x" * 50], make_style("bottom", "right", font_size=40))

        assert placement.x >= 0
        assert placement.y >= 0
