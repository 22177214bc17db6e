"""ffprobe-based implementation of the MetadataProbe protocol."""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - only for TimeoutExpired
from pathlib import Path

from rawpipe.exceptions import IOFailure
from rawpipe.probe.models import MediaKind, MediaMetadata
from rawpipe.probe.parsers import parse_ffprobe_output
from rawpipe.process import FFPROBE, IOMode, SpawnOptions, require_tool, spawn

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60.0


def build_probe_args(path: Path | str) -> list[str]:
    """Arguments asking ffprobe for a compact JSON format+streams report."""
    return [
        "-i",
        str(path),
        "-v",
        "quiet",
        "-print_format",
        "json=c=1",
        "-show_format",
        "-show_streams",
    ]


class FFprobeProber:
    """ffprobe-based implementation of the MetadataProbe protocol.

    Supports configured ffprobe paths via the rawpipe configuration system.
    """

    def __init__(
        self,
        ffprobe_path: Path | None = None,
        timeout: float = PROBE_TIMEOUT,
    ) -> None:
        """Initialize the prober.

        Args:
            ffprobe_path: Optional explicit path to ffprobe. If not provided,
                it is resolved from configuration or PATH on first use.
            timeout: Seconds to allow ffprobe to run.
        """
        self._ffprobe_path = ffprobe_path
        self._timeout = timeout

    @property
    def tool_path(self) -> Path:
        """Path to ffprobe.

        Raises:
            ToolNotFoundError: If ffprobe is not available.
        """
        if self._ffprobe_path is None:
            self._ffprobe_path = require_tool(FFPROBE)
        return self._ffprobe_path

    def probe(
        self,
        path: Path | str,
        kind: MediaKind,
        *,
        ignore_stream_errors: bool = True,
    ) -> MediaMetadata:
        """Extract metadata from a media file.

        Args:
            path: File to probe.
            kind: Media kind whose first stream drives the derived fields.
            ignore_stream_errors: Keep defaults instead of raising when that
                stream is missing or malformed.

        Returns:
            VideoMetadata or AudioMetadata.

        Raises:
            FileNotFoundError: If the file does not exist.
            ProbeOutputUnparseable: If ffprobe's output is not valid JSON.
            MetadataParseFailure: See ``ignore_stream_errors``.
            IOFailure: If ffprobe times out.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        output = self._run_ffprobe(path)
        metadata = parse_ffprobe_output(
            path, output, kind, ignore_stream_errors=ignore_stream_errors
        )
        logger.debug(
            "Probed %s: %d stream(s), duration %.3fs",
            path,
            len(metadata.streams),
            metadata.duration,
        )
        return metadata

    def _run_ffprobe(self, path: Path) -> bytes:
        handle = spawn(
            self.tool_path,
            build_probe_args(path),
            IOMode.STDOUT,
            SpawnOptions(),
        )
        try:
            output = handle.read_output(timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            raise IOFailure(
                f"ffprobe timed out for {path} after {self._timeout}s"
            ) from e

        if handle.returncode:
            logger.warning(
                "ffprobe exited with status %d for %s", handle.returncode, path
            )
        return output


def probe(
    path: Path | str,
    kind: MediaKind,
    *,
    ignore_stream_errors: bool = True,
    ffprobe_path: Path | None = None,
) -> MediaMetadata:
    """Probe ``path`` with a one-off FFprobeProber."""
    return FFprobeProber(ffprobe_path).probe(
        path, kind, ignore_stream_errors=ignore_stream_errors
    )
