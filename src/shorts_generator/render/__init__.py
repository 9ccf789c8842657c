"""Rendering of subtitle cues onto the clip and SRT export."""

from shorts_generator.render.compositor import (
    FFmpegCompositor,
    OverlayInstruction,
    RenderCompositor,
    RenderPlan,
    build_render_plan,
)
from shorts_generator.render.srt import write_srt

__all__ = [
    "FFmpegCompositor",
    "OverlayInstruction",
    "RenderCompositor",
    "RenderPlan",
    "build_render_plan",
    "write_srt",
]
