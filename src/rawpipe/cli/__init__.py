"""Command-line entry point: re-encode a video through raw frames."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from rawpipe.cli.exit_codes import ExitCode
from rawpipe.config import get_config
from rawpipe.encoding import H264Encoder
from rawpipe.exceptions import (
    ConfigurationError,
    MetadataParseFailure,
    ProbeOutputUnparseable,
    RawpipeError,
    ToolNotFoundError,
    UsageError,
)
from rawpipe.frames import BYTES_PER_PIXEL
from rawpipe.logging import configure_logging
from rawpipe.media import VideoReader, VideoWriter

logger = logging.getLogger(__name__)

# Output suffixes that select a container; anything else is written as MP4
CONTAINER_FORMATS = {
    ".mp4": "mp4",
    ".m4v": "mp4",
    ".mov": "mov",
    ".mkv": "matroska",
    ".avi": "avi",
    ".ts": "mpegts",
    ".flv": "flv",
}


def container_for(path: Path) -> str:
    """Container format for an output path, from its suffix."""
    return CONTAINER_FORMATS.get(path.suffix.casefold(), "mp4")


def _fail(message: str, code: ExitCode, reason: object = None) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    if reason is not None:
        click.echo(f"Reason: {reason}", err=True)
    sys.exit(code)


@click.command("rawpipe")
@click.argument("input_file", metavar="INPUT", type=click.Path(path_type=Path))
@click.argument("output_file", metavar="OUTPUT", type=click.Path(path_type=Path))
def main(input_file: Path, output_file: Path) -> None:
    """Decode INPUT to raw RGB frames and re-encode them into OUTPUT.

    OUTPUT is encoded with H.264. Its container follows the file suffix
    (.mp4, .mov, .mkv, .avi, .ts, .flv) and defaults to MP4.
    """
    try:
        config = get_config(strict=True)
    except ConfigurationError as e:
        _fail("Invalid configuration", ExitCode.CONFIG_ERROR, e)
    configure_logging(config.logging)

    if not input_file.exists():
        _fail(f"File not found: {input_file}", ExitCode.INPUT_NOT_FOUND)

    reader = VideoReader(input_file)

    # Phase 1: probe
    try:
        metadata = reader.load_metadata(ignore_stream_errors=False)
    except ToolNotFoundError as e:
        _fail(str(e), ExitCode.TOOL_NOT_AVAILABLE)
    except (ProbeOutputUnparseable, MetadataParseFailure) as e:
        _fail(f"Could not probe {input_file}", ExitCode.PROBE_ERROR, e)
    except RawpipeError as e:
        _fail(f"Could not probe {input_file}", ExitCode.OPERATION_FAILED, e)

    if metadata.avg_frame_rate <= 0:
        _fail(
            f"Could not probe {input_file}",
            ExitCode.PROBE_ERROR,
            "no usable frame rate",
        )
    logger.info(
        "%s: %dx%d @ %s fps, %d frames expected",
        input_file.name,
        metadata.width,
        metadata.height,
        metadata.avg_frame_rate_text,
        metadata.predicted_frame_count,
    )

    encoder = H264Encoder(format=container_for(output_file)).create()
    writer = VideoWriter(
        output_file,
        metadata.width,
        metadata.height,
        metadata.avg_frame_rate,
        encoder,
    )

    try:
        # Phase 2: open
        try:
            reader.open_read()
            writer.open_write()
        except ToolNotFoundError as e:
            _fail(str(e), ExitCode.TOOL_NOT_AVAILABLE)
        except (RawpipeError, UsageError) as e:
            _fail(
                f"Could not open {input_file} -> {output_file}",
                ExitCode.OPERATION_FAILED,
                e,
            )

        # Phase 3: copy
        try:
            copied = reader.copy_to(writer)
            reader.close()
            status = writer.close()
        except KeyboardInterrupt:
            # Output is left incomplete; the finally block stops both processes
            _fail(f"Interrupted while writing {output_file}", ExitCode.INTERRUPTED)
        except RawpipeError as e:
            _fail(
                f"Copy from {input_file} to {output_file} failed",
                ExitCode.OPERATION_FAILED,
                e,
            )
    finally:
        reader.close()
        writer.close()

    if status != 0:
        _fail(
            f"Copy from {input_file} to {output_file} failed",
            ExitCode.OPERATION_FAILED,
            f"encoder exited with status {status}",
        )

    frame_bytes = metadata.width * metadata.height * BYTES_PER_PIXEL
    click.echo(f"Wrote {copied // frame_bytes} frames to {output_file}")
