"""Locating the external tools the pipeline drives.

FFmpeg comes from a configured path, the binary bundled with
imageio-ffmpeg, or the system PATH. FFprobe is looked up next to that
FFmpeg or on PATH. The Whisper CLI comes from a configured path or PATH.
"""

from __future__ import annotations

import os
import platform
import shutil
import subprocess
import sys
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, Field

FFMPEG = "ffmpeg"
FFPROBE = "ffprobe"
WHISPER = "whisper"

ENV_OVERRIDES = {
    FFMPEG: "SHORTS_GENERATOR_FFMPEG",
    FFPROBE: "SHORTS_GENERATOR_FFPROBE",
    WHISPER: "SHORTS_GENERATOR_WHISPER",
}


class ToolInfo(NamedTuple):
    """Information about an external tool."""

    name: str
    path: str
    version: str
    available: bool
    source: str  # "custom", "imageio", "system", or "not_found"


class ToolConfig(BaseModel):
    """Custom locations for external tools."""

    ffmpeg_path: str | None = Field(default=None, description="Custom path to FFmpeg executable")
    ffprobe_path: str | None = Field(default=None, description="Custom path to FFprobe executable")
    whisper_path: str | None = Field(default=None, description="Custom path to the whisper CLI")
    prefer_system: bool = Field(default=False, description="Prefer PATH over the bundled FFmpeg")

    @classmethod
    def from_env(cls, prefer_system: bool = False) -> "ToolConfig":
        """Build from SHORTS_GENERATOR_* environment variables."""
        return cls(
            ffmpeg_path=os.environ.get(ENV_OVERRIDES[FFMPEG]) or None,
            ffprobe_path=os.environ.get(ENV_OVERRIDES[FFPROBE]) or None,
            whisper_path=os.environ.get(ENV_OVERRIDES[WHISPER]) or None,
            prefer_system=prefer_system,
        )

    def custom_path(self, tool: str) -> str | None:
        return {
            FFMPEG: self.ffmpeg_path,
            FFPROBE: self.ffprobe_path,
            WHISPER: self.whisper_path,
        }.get(tool)


def subprocess_flags() -> int:
    """Platform-specific subprocess creation flags (no console window on Windows)."""
    if platform.system() == "Windows":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _ffmpeg_from_imageio() -> str | None:
    try:
        import imageio_ffmpeg
        return imageio_ffmpeg.get_ffmpeg_exe()
    except (ImportError, RuntimeError):
        return None


def _ffprobe_beside(ffmpeg_path: str | None) -> str | None:
    """imageio-ffmpeg does not bundle ffprobe; look next to the ffmpeg binary."""
    if ffmpeg_path is None:
        return None

    names = ["ffprobe.exe", "ffprobe"] if platform.system() == "Windows" else ["ffprobe"]
    for name in names:
        candidate = Path(ffmpeg_path).parent / name
        if candidate.exists():
            return str(candidate)
    return None


def _locate(tool: str, config: ToolConfig) -> tuple[str | None, str]:
    """Find a tool and report where it came from."""
    custom = config.custom_path(tool)
    if custom and Path(custom).exists():
        return custom, "custom"

    system = shutil.which(tool)

    if tool == WHISPER:
        return (system, "system") if system else (None, "not_found")

    if config.prefer_system and system:
        return system, "system"

    if tool == FFMPEG:
        bundled = _ffmpeg_from_imageio()
    else:
        bundled = _ffprobe_beside(_ffmpeg_from_imageio())
    if bundled:
        return bundled, "imageio"

    if system:
        return system, "system"
    return None, "not_found"


def get_tool_path(tool: str, config: ToolConfig | None = None) -> str | None:
    """Get the path to an external tool.

    Searches in order: custom path, bundled binary (FFmpeg only), PATH.

    Args:
        tool: One of ``ffmpeg``, ``ffprobe``, ``whisper``
        config: Optional custom locations

    Returns:
        Path to the executable, or None if not found
    """
    path, _ = _locate(tool, config or ToolConfig())
    return path


def get_ffmpeg_path(config: ToolConfig | None = None) -> str | None:
    return get_tool_path(FFMPEG, config)


def get_ffprobe_path(config: ToolConfig | None = None) -> str | None:
    return get_tool_path(FFPROBE, config)


def get_whisper_path(config: ToolConfig | None = None) -> str | None:
    return get_tool_path(WHISPER, config)


def _get_version(path: str, flag: str) -> str | None:
    """Get the version string printed by an executable.

    Args:
        path: Path to the executable
        flag: Version flag (``-version`` for FFmpeg tools)

    Returns:
        Version string, or None if unable to determine
    """
    try:
        result = subprocess.run(
            [path, flag],
            capture_output=True,
            text=True,
            timeout=10,
            creationflags=subprocess_flags(),
        )
    except (subprocess.TimeoutExpired, OSError):
        return None

    if result.returncode != 0:
        return None

    first_line = (result.stdout or result.stderr).strip().split("\n")[0]
    # e.g. "ffmpeg version 6.0-full_build-www.gyan.dev Copyright ..."
    if "version" in first_line.lower():
        parts = first_line.split("version")
        if len(parts) > 1 and parts[1].strip():
            return parts[1].strip().split()[0]
    return first_line or None


def get_tool_info(tool: str, config: ToolConfig | None = None) -> ToolInfo:
    """Get path, version and source of an external tool.

    Args:
        tool: One of ``ffmpeg``, ``ffprobe``, ``whisper``
        config: Optional custom locations

    Returns:
        ToolInfo describing the tool
    """
    path, source = _locate(tool, config or ToolConfig())

    if path is None:
        return ToolInfo(name=tool, path="", version="", available=False, source="not_found")

    # whisper has no version flag; --help proves it starts
    flag = "--help" if tool == WHISPER else "-version"
    version = _get_version(path, flag)
    if tool == WHISPER:
        version = "installed" if version is not None else None

    return ToolInfo(
        name=tool,
        path=path,
        version=version or "unknown",
        available=version is not None,
        source=source,
    )


def get_dependency_report(config: ToolConfig | None = None) -> dict[str, dict[str, str | bool]]:
    """Generate a dependency report for ``check-deps``.

    Returns:
        Dictionary keyed by tool with availability information.
    """
    report: dict[str, dict[str, str | bool]] = {}

    for tool in (FFMPEG, FFPROBE, WHISPER):
        info = get_tool_info(tool, config)
        report[tool] = {
            "available": info.available,
            "path": info.path,
            "version": info.version,
            "source": info.source,
        }

    try:
        import imageio_ffmpeg
        report["imageio_ffmpeg"] = {
            "available": True,
            "version": getattr(imageio_ffmpeg, "__version__", "unknown"),
        }
    except ImportError:
        report["imageio_ffmpeg"] = {"available": False, "version": ""}

    report["platform"] = {
        "system": platform.system(),
        "machine": platform.machine(),
        "python": sys.version.split()[0],
    }

    return report
