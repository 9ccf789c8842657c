"""Media probing and clip extraction with FFmpeg."""

from shorts_generator.media.ffmpeg import FFmpegWrapper, VideoInfo
from shorts_generator.media.extractor import ExtractedMedia, FFmpegExtractor, MediaExtractor

__all__ = [
    "FFmpegWrapper",
    "VideoInfo",
    "ExtractedMedia",
    "FFmpegExtractor",
    "MediaExtractor",
]
