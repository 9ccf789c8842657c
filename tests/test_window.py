"""Tests for clip window resolution."""

import pytest

from shorts_generator.errors import InvalidWindowError
from shorts_generator.window import (
    AudioSeconds,
    ClipWindow,
    SourceSeconds,
    resolve_window,
)


class TestResolveWindow:
    """Tests for resolve_window."""

    def test_exact_window(self):
        """Source long enough: window has the requested length."""
        window = resolve_window(600.0, 60.0)

        assert window.start == 0.0
        assert window.end == 60.0
        assert window.duration == 60.0
        assert window.clamped is False

    @pytest.mark.parametrize(
        "source,requested,start",
        [(600.0, 60.0, 0.0), (600.0, 60.0, 540.0), (120.5, 30.25, 10.0), (10.0, 1.0, 9.0)],
    )
    def test_requested_length_when_it_fits(self, source, requested, start):
        """Any window that fits keeps exactly the requested duration."""
        window = resolve_window(source, requested, start=start)

        assert window.duration == requested
        assert window.start == start
        assert window.end == start + requested

    def test_clamped_to_source(self):
        """Short source: window is clamped to its end."""
        window = resolve_window(30.0, 60.0)

        assert window.start == 0.0
        assert window.end == 30.0
        assert window.duration == 30.0
        assert window.requested_duration == 60.0
        assert window.clamped is True

    def test_clamped_with_offset(self):
        """Offset plus duration past the end is clamped."""
        window = resolve_window(100.0, 60.0, start=70.0)

        assert window.end == 100.0
        assert window.duration == 30.0
        assert window.clamped is True

    def test_below_minimum_after_clamp(self):
        """A clamped window shorter than the minimum is rejected."""
        with pytest.raises(InvalidWindowError) as exc_info:
            resolve_window(10.0, 60.0, start=9.5)

        assert "minimum" in exc_info.value.message

    def test_custom_minimum(self):
        """The minimum duration is configurable."""
        window = resolve_window(10.0, 60.0, start=9.5, min_duration=0.5)
        assert window.duration == 0.5

        with pytest.raises(InvalidWindowError):
            resolve_window(100.0, 3.0, min_duration=5.0)

    @pytest.mark.parametrize("requested", [0.0, -5.0])
    def test_non_positive_duration(self, requested):
        """Requested duration must be positive."""
        with pytest.raises(InvalidWindowError):
            resolve_window(600.0, requested)

    def test_negative_start(self):
        """Start offset cannot be negative."""
        with pytest.raises(InvalidWindowError):
            resolve_window(600.0, 60.0, start=-1.0)

    def test_start_beyond_source(self):
        """Start offset at or after the end of the source is rejected."""
        with pytest.raises(InvalidWindowError):
            resolve_window(600.0, 60.0, start=600.0)

    def test_zero_source_duration(self):
        """A source with no duration is rejected."""
        with pytest.raises(InvalidWindowError) as exc_info:
            resolve_window(0.0, 60.0)

        assert exc_info.value.context["source_duration"] == 0.0


class TestClipWindow:
    """Tests for ClipWindow conversions."""

    def test_audio_to_source(self):
        """Audio time is offset by the window start."""
        window = ClipWindow(SourceSeconds(5.0), SourceSeconds(65.0), 60.0, 60.0)
        assert window.audio_to_source(AudioSeconds(5.0)) == 10.0

    def test_rebasing_round_trip(self):
        """Source [10, 12) with start=5 lands on clip [5, 7)."""
        window = ClipWindow(SourceSeconds(5.0), SourceSeconds(65.0), 60.0, 60.0)

        assert window.source_to_clip(SourceSeconds(10.0)) == 5.0
        assert window.source_to_clip(SourceSeconds(12.0)) == 7.0

    def test_invalid_bounds(self):
        """End must be after start."""
        with pytest.raises(InvalidWindowError):
            ClipWindow(SourceSeconds(10.0), SourceSeconds(10.0), 0.0, 0.0)

        with pytest.raises(InvalidWindowError):
            ClipWindow(SourceSeconds(-1.0), SourceSeconds(10.0), 11.0, 11.0)

    def test_frozen(self):
        """Windows are immutable."""
        window = resolve_window(600.0, 60.0)
        with pytest.raises(AttributeError):
            window.start = 5.0
