"""Readers: probe a file, then decode it to raw units through a pipe."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Generic, TypeVar

from rawpipe.exceptions import (
    AlreadyLoaded,
    InvalidSessionState,
    MetadataParseFailure,
)
from rawpipe.frames import (
    DEFAULT_FRAME_SAMPLES,
    PIXEL_FORMAT,
    AudioFrame,
    VideoFrame,
    pcm_format,
    validate_bit_depth,
)
from rawpipe.probe import (
    AudioMetadata,
    FFprobeProber,
    MediaKind,
    MediaMetadata,
    MetadataProbe,
    VideoMetadata,
)
from rawpipe.process import FFMPEG, ProcessHandle, SpawnOptions, require_tool
from rawpipe.session import MediaSession, SessionState

if TYPE_CHECKING:
    from rawpipe.media.writer import MediaWriter

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024

MetadataT = TypeVar("MetadataT", bound=MediaMetadata)
FrameT = TypeVar("FrameT", VideoFrame, AudioFrame)


class MediaReader(Generic[MetadataT, FrameT]):
    """Common reader plumbing: metadata loading and the decode session.

    Args:
        path: Media file to read.
        prober: Metadata probe; defaults to ffprobe.
        ffmpeg_path: Explicit ffmpeg path; defaults to configuration/PATH.
        close_timeout: Seconds close() waits for ffmpeg to exit.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """

    kind: MediaKind

    def __init__(
        self,
        path: Path | str,
        *,
        prober: MetadataProbe | None = None,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"File not found: {self.path}")
        self._prober = prober if prober is not None else FFprobeProber()
        self._ffmpeg_path = ffmpeg_path
        self._session: MediaSession[FrameT] = MediaSession(self.path, close_timeout)
        self._metadata: MetadataT | None = None

    @property
    def metadata(self) -> MetadataT | None:
        """Probe result, or None until load_metadata() ran."""
        return self._metadata

    @property
    def metadata_loaded(self) -> bool:
        return self._metadata is not None

    @property
    def session(self) -> MediaSession[FrameT]:
        return self._session

    @property
    def process(self) -> ProcessHandle | None:
        return self._session.process

    @property
    def is_open(self) -> bool:
        return self._session.state is SessionState.OPEN_FOR_READING

    def load_metadata(self, ignore_stream_errors: bool = True) -> MetadataT:
        """Probe the file.

        Raises:
            AlreadyLoaded: If metadata was already loaded.
            ProbeOutputUnparseable: If ffprobe output is not valid JSON.
            MetadataParseFailure: If ``ignore_stream_errors`` is False and the
                first stream of this reader's kind is missing or malformed.
        """
        if self._metadata is not None:
            raise AlreadyLoaded(
                f"Metadata for {self.path} is already loaded",
                state="loaded",
                operation="load_metadata",
            )
        self._metadata = self._prober.probe(  # type: ignore[assignment]
            self.path, self.kind, ignore_stream_errors=ignore_stream_errors
        )
        return self._metadata  # type: ignore[return-value]

    def _require_metadata(self, operation: str) -> MetadataT:
        if self._metadata is None:
            raise InvalidSessionState(
                f"Cannot {operation}: metadata for {self.path} is not loaded",
                state=self._session.state.value,
                operation=operation,
            )
        return self._metadata

    def _executable(self) -> Path:
        if self._ffmpeg_path is None:
            self._ffmpeg_path = require_tool(FFMPEG)
        return self._ffmpeg_path

    def copy_to(self, writer: MediaWriter) -> int:
        """Copy the decoded stream straight into an open writer.

        Returns:
            Number of bytes copied.

        Raises:
            InvalidSessionState: If this reader is not open for reading or
                the writer is not open for writing.
            IOFailure: If the writer's pipe broke.
        """
        self._session.require(SessionState.OPEN_FOR_READING, "copy")
        if not writer.is_open:
            raise InvalidSessionState(
                "Cannot copy: writer is not open for writing",
                state=writer.session.state.value,
                operation="copy",
            )
        source = self._session.output_stream
        assert source is not None
        read = getattr(source, "read1", source.read)
        copied = 0
        while True:
            chunk = read(COPY_CHUNK_SIZE)
            if not chunk:
                break
            writer.write_raw(chunk)
            copied += len(chunk)
        logger.debug("Copied %d bytes from %s", copied, self.path)
        return copied

    def close(self) -> int | None:
        """Stop decoding. A reader that is not open is left alone."""
        return self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class VideoReader(MediaReader[VideoMetadata, VideoFrame]):
    """Decode a video file into RGB24 frames."""

    kind = MediaKind.VIDEO

    def __init__(
        self,
        path: Path | str,
        *,
        prober: MetadataProbe | None = None,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        super().__init__(
            path, prober=prober, ffmpeg_path=ffmpeg_path, close_timeout=close_timeout
        )
        self.current_frame_offset = 0

    def build_arguments(self, offset_seconds: float = 0.0) -> list[str]:
        args: list[str] = []
        if offset_seconds > 0:
            args.extend(["-ss", f"{offset_seconds:.2f}"])
        args.extend(["-i", str(self.path)])
        args.extend(["-pix_fmt", PIXEL_FORMAT, "-f", "rawvideo", "-"])
        return args

    def open_read(
        self,
        offset_seconds: float = 0.0,
        options: SpawnOptions | None = None,
    ) -> ProcessHandle:
        """Start decoding, optionally seeking to ``offset_seconds`` first.

        Raises:
            InvalidSessionState: If metadata is not loaded or the reader is
                already open.
            MetadataParseFailure: If the metadata has no frame size.
        """
        metadata = self._require_metadata("open_read")
        if metadata.width <= 0 or metadata.height <= 0:
            raise MetadataParseFailure(
                f"Metadata for {self.path} has no video frame size", path=self.path
            )
        handle = self._session.open_read(
            self._executable(), self.build_arguments(offset_seconds), options
        )
        self.current_frame_offset = 0
        return handle

    def new_frame(self) -> VideoFrame:
        """Allocate a frame sized for this video."""
        metadata = self._require_metadata("new_frame")
        return VideoFrame(metadata.width, metadata.height)

    def next_frame(self, frame: VideoFrame | None = None) -> VideoFrame | None:
        """Refill ``frame`` (or a new one) with the next decoded frame.

        Returns:
            The frame, or None at end of stream.
        """
        if frame is None:
            frame = self.new_frame()
        if not self._session.read_unit(frame):
            return None
        self.current_frame_offset += 1
        return frame

    def frames(self) -> Iterator[VideoFrame]:
        """Yield every remaining frame, reusing one buffer."""
        frame = self.new_frame()
        while self.next_frame(frame) is not None:
            yield frame


class AudioReader(MediaReader[AudioMetadata, AudioFrame]):
    """Decode an audio file into signed little-endian PCM blocks."""

    kind = MediaKind.AUDIO

    def __init__(
        self,
        path: Path | str,
        *,
        prober: MetadataProbe | None = None,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        super().__init__(
            path, prober=prober, ffmpeg_path=ffmpeg_path, close_timeout=close_timeout
        )
        self.current_sample_offset = 0
        self.bit_depth = 16

    def build_arguments(self, bit_depth: int = 16) -> list[str]:
        return ["-i", str(self.path), "-f", pcm_format(bit_depth), "-"]

    def open_read(
        self,
        bit_depth: int = 16,
        options: SpawnOptions | None = None,
    ) -> ProcessHandle:
        """Start decoding to ``bit_depth``-bit PCM (16, 24 or 32).

        Raises:
            ConfigurationError: If the bit depth is not supported.
            InvalidSessionState: If metadata is not loaded or the reader is
                already open.
            MetadataParseFailure: If the metadata has no channel count.
        """
        validate_bit_depth(bit_depth)
        metadata = self._require_metadata("open_read")
        if metadata.channels <= 0:
            raise MetadataParseFailure(
                f"Metadata for {self.path} has no audio channels", path=self.path
            )
        handle = self._session.open_read(
            self._executable(), self.build_arguments(bit_depth), options
        )
        self.bit_depth = bit_depth
        self.current_sample_offset = 0
        return handle

    def new_frame(self, samples: int = DEFAULT_FRAME_SAMPLES) -> AudioFrame:
        """Allocate a block of ``samples`` samples per channel."""
        metadata = self._require_metadata("new_frame")
        return AudioFrame(samples, metadata.channels, self.bit_depth)

    def next_frame(
        self,
        frame: AudioFrame | None = None,
        samples: int = DEFAULT_FRAME_SAMPLES,
    ) -> AudioFrame | None:
        """Refill ``frame`` (or a new block) with the next decoded samples.

        Returns:
            The frame, or None at end of stream.
        """
        if frame is None:
            frame = self.new_frame(samples)
        if not self._session.read_unit(frame):
            return None
        self.current_sample_offset += frame.loaded_samples
        return frame

    def frames(self, samples: int = DEFAULT_FRAME_SAMPLES) -> Iterator[AudioFrame]:
        """Yield every remaining block, reusing one buffer."""
        frame = self.new_frame(samples)
        while self.next_frame(frame) is not None:
            yield frame
