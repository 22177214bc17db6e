"""One-shot file-to-file conversion."""

from __future__ import annotations

import logging
from pathlib import Path

from rawpipe.encoding import EncoderOptions, VideoEncoderOptions
from rawpipe.probe import MediaKind
from rawpipe.process import (
    FFMPEG,
    IOMode,
    ProcessHandle,
    SpawnOptions,
    require_tool,
    spawn,
    split_arguments,
)

logger = logging.getLogger(__name__)

_CODEC_FLAGS = {
    MediaKind.VIDEO: "-c:v",
    MediaKind.AUDIO: "-c:a",
}


def build_convert_args(
    input_path: Path,
    output_path: Path,
    options: EncoderOptions,
    input_arguments: str = "",
    kind: MediaKind = MediaKind.VIDEO,
) -> list[str]:
    """Build ffmpeg arguments for a file-to-file conversion."""
    args = ["-y"]
    args.extend(split_arguments(input_arguments))
    args.extend(["-i", str(input_path)])
    args.extend([_CODEC_FLAGS[kind], options.encoder_name])
    args.extend(options.argument_list())
    args.extend(["-f", options.format, str(output_path)])
    return args


def convert_file(
    input_path: Path | str,
    output_path: Path | str,
    options: EncoderOptions | None = None,
    input_arguments: str = "",
    *,
    kind: MediaKind = MediaKind.VIDEO,
    spawn_options: SpawnOptions | None = None,
    ffmpeg_path: Path | None = None,
) -> ProcessHandle:
    """Start converting ``input_path`` into ``output_path``.

    The call returns as soon as ffmpeg is running. Attach a progress
    subscription to the returned handle, then call ``wait_exit()`` on it.

    Args:
        input_path: Source media file.
        output_path: Destination file. Replaced if it exists.
        options: Encoder options; H.264 in MP4 by default.
        input_arguments: Extra options placed before ``-i``.
        kind: Which stream the encoder applies to.
        spawn_options: Spawn options.
        ffmpeg_path: Explicit ffmpeg path; defaults to configuration/PATH.

    Returns:
        Handle on the running ffmpeg process.

    Raises:
        FileNotFoundError: If ``input_path`` does not exist.
        ToolNotFoundError: If ffmpeg is not available.
        SpawnFailure: If ffmpeg cannot be started.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    if not input_path.exists():
        raise FileNotFoundError(f"File not found: {input_path}")

    options = options or VideoEncoderOptions()
    executable = ffmpeg_path or require_tool(FFMPEG)
    args = build_convert_args(input_path, output_path, options, input_arguments, kind)

    handle = spawn(executable, args, IOMode.STDERR, spawn_options)
    logger.info(
        "Converting %s -> %s (%s, pid %d)",
        input_path.name,
        output_path.name,
        options.encoder_name,
        handle.pid,
    )
    return handle
