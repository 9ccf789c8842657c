"""Shorts Generator - Turn long-form video into short clips.

Cuts a time window out of a source video, transcribes its audio with
Whisper, and burns styled subtitles into the clip using FFmpeg.
"""

__version__ = "0.1.0"
