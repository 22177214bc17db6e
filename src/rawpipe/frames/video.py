"""RGB24 video frames."""

from __future__ import annotations

import logging
from pathlib import Path

from rawpipe.config import get_config
from rawpipe.exceptions import ConfigurationError, IOFailure
from rawpipe.frames.buffer import FrameBuffer, LoadPolicy
from rawpipe.process import FFMPEG, IOMode, require_tool, spawn, split_arguments

logger = logging.getLogger(__name__)

BYTES_PER_PIXEL = 3
PIXEL_FORMAT = "rgb24"


class VideoFrame(FrameBuffer):
    """One video frame of interleaved 24-bit RGB pixels.

    Capacity is ``width * height * 3``. Frames default to the tolerant
    short-read policy so a trailing partial frame is still delivered.
    """

    def __init__(
        self,
        width: int,
        height: int,
        policy: LoadPolicy = LoadPolicy.TOLERANT,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ConfigurationError(
                f"Video frame dimensions must be positive, got {width}x{height}"
            )
        self.width = width
        self.height = height
        super().__init__(width * height * BYTES_PER_PIXEL, policy=policy)

    def get_pixels(self, x: int, y: int, length: int = 1) -> memoryview:
        """Return the RGB bytes of ``length`` pixels starting at (x, y).

        Raises:
            IndexError: If the range falls outside the loaded payload.
        """
        index = (x + y * self.width) * BYTES_PER_PIXEL
        end = index + length * BYTES_PER_PIXEL
        if x < 0 or y < 0 or length < 1 or end > self.length:
            raise IndexError(
                f"pixels ({x}, {y}) + {length} outside loaded frame data"
            )
        return self.raw_data[index:end]

    def save(
        self,
        path: Path | str,
        encoder: str = "png",
        extra_arguments: str = "",
    ) -> None:
        """Encode the frame to an image file.

        Args:
            path: Output image path. Replaced if it exists.
            encoder: Image encoder, e.g. "png" or "libwebp".
            extra_arguments: Additional encoder arguments.

        Raises:
            ToolNotFoundError: If ffmpeg is not available.
            IOFailure: If ffmpeg fails to write the image.
        """
        args = ["-y", "-f", "rawvideo"]
        args.extend(["-video_size", f"{self.width}:{self.height}"])
        args.extend(["-pixel_format", PIXEL_FORMAT, "-i", "-"])
        args.extend(["-c:v", encoder])
        args.extend(split_arguments(extra_arguments))
        args.extend(["-f", "image2pipe", str(path)])

        handle = spawn(require_tool(FFMPEG), args, IOMode.STDIN | IOMode.STDERR)
        assert handle.stdin is not None
        try:
            self.write_to(handle.stdin)
            handle.stdin.close()
        except OSError as e:
            handle.terminate()
            handle.wait_exit()
            raise IOFailure(
                f"Failed to write frame to {path}: {e}",
                diagnostics=handle.diagnostic_tail(),
            ) from e

        returncode = handle.wait_exit(get_config().process.close_timeout)
        if returncode is None:
            handle.terminate()
            handle.wait_exit()
        handle.join_drain_thread(timeout=5.0)
        if returncode != 0:
            raise IOFailure(
                f"ffmpeg could not save frame to {path} (exit {returncode})",
                diagnostics=handle.diagnostic_tail(),
            )
        logger.debug("Saved %dx%d frame to %s", self.width, self.height, path)
