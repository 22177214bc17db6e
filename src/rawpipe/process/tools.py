"""Tool resolution for the transcoder and prober executables.

Paths come from configuration (file, RAWPIPE_*_PATH variables or explicit
overrides) and fall back to a PATH lookup.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from rawpipe.config import get_config
from rawpipe.exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"
FFPROBE = "ffprobe"

_INSTALL_HINTS: dict[str, str] = {
    FFMPEG: (
        "Install FFmpeg (https://ffmpeg.org/download.html) or set "
        "RAWPIPE_FFMPEG_PATH."
    ),
    FFPROBE: (
        "ffprobe ships with FFmpeg (https://ffmpeg.org/download.html); "
        "install it or set RAWPIPE_FFPROBE_PATH."
    ),
}


def _configured_path(tool_name: str) -> Path | None:
    tools = get_config().tools
    if tool_name == FFMPEG:
        return tools.ffmpeg
    if tool_name == FFPROBE:
        return tools.ffprobe
    return None


def get_tool_path(tool_name: str) -> Path | None:
    """Get path to a tool, or None if not available.

    Unlike require_tool, this doesn't raise an error.

    Args:
        tool_name: Name of the tool ("ffmpeg" or "ffprobe").

    Returns:
        Path to the tool or None if not available.
    """
    configured = _configured_path(tool_name)
    if configured is not None:
        if configured.is_file() and os.access(configured, os.X_OK):
            return configured
        logger.warning(
            "Configured %s path is not an executable file: %s",
            tool_name,
            configured,
        )
        return None

    found = shutil.which(tool_name)
    return Path(found) if found else None


def require_tool(tool_name: str) -> Path:
    """Get path to a required tool, raising an error if not available.

    Args:
        tool_name: Name of the tool to find.

    Returns:
        Path to the tool executable.

    Raises:
        ToolNotFoundError: If the tool is not available.
    """
    path = get_tool_path(tool_name)
    if path is None:
        hint = _INSTALL_HINTS.get(tool_name, "")
        raise ToolNotFoundError(
            f"Required tool not available: {tool_name}. {hint}".rstrip(),
            program=tool_name,
        )
    return path
