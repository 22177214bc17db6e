"""Process hosting: spawning ffmpeg/ffprobe and resolving their paths."""

from rawpipe.process.host import (
    IOMode,
    ProcessHandle,
    SpawnOptions,
    default_spawn_options,
    spawn,
    split_arguments,
)
from rawpipe.process.tools import FFMPEG, FFPROBE, get_tool_path, require_tool

__all__ = [
    "FFMPEG",
    "FFPROBE",
    "IOMode",
    "ProcessHandle",
    "SpawnOptions",
    "default_spawn_options",
    "get_tool_path",
    "require_tool",
    "spawn",
    "split_arguments",
]
