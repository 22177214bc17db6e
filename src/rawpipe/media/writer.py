"""Writers: encode raw units pushed through a pipe into a container."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Generic, TypeVar, Union

from rawpipe.encoding import AudioEncoderOptions, EncoderOptions, VideoEncoderOptions
from rawpipe.exceptions import ConfigurationError
from rawpipe.frames import (
    DEFAULT_FRAME_SAMPLES,
    PIXEL_FORMAT,
    AudioFrame,
    VideoFrame,
    pcm_format,
    validate_bit_depth,
)
from rawpipe.process import FFMPEG, ProcessHandle, SpawnOptions, require_tool
from rawpipe.session import MediaSession, SessionState

logger = logging.getLogger(__name__)

Destination = Union[Path, str, BinaryIO]

FrameT = TypeVar("FrameT", VideoFrame, AudioFrame)


def format_rate(rate: float) -> str:
    """Frame rate as ffmpeg expects it: "30", "29.97"."""
    return f"{rate:g}"


def video_input_arguments(width: int, height: int, framerate: float) -> list[str]:
    """Input options describing raw RGB24 frames."""
    return [
        "-f",
        "rawvideo",
        "-video_size",
        f"{width}:{height}",
        "-r",
        format_rate(framerate),
        "-pixel_format",
        PIXEL_FORMAT,
    ]


def audio_input_arguments(
    channels: int, sample_rate: int, bit_depth: int
) -> list[str]:
    """Input options describing interleaved signed little-endian PCM."""
    return [
        "-f",
        pcm_format(bit_depth),
        "-ac",
        str(channels),
        "-ar",
        str(sample_rate),
    ]


def validate_video_geometry(width: int, height: int, framerate: float) -> None:
    if width <= 0 or height <= 0:
        raise ConfigurationError(
            f"Video dimensions must be positive, got {width}x{height}"
        )
    if framerate <= 0:
        raise ConfigurationError(f"Frame rate must be positive, got {framerate}")


def validate_audio_layout(channels: int, sample_rate: int, bit_depth: int) -> None:
    validate_bit_depth(bit_depth)
    if channels <= 0:
        raise ConfigurationError(f"Channel count must be positive, got {channels}")
    if sample_rate <= 0:
        raise ConfigurationError(f"Sample rate must be positive, got {sample_rate}")


class MediaWriter(Generic[FrameT]):
    """Common writer plumbing: destination handling and the encode session.

    Args:
        destination: Output path, or a writable binary stream. For a stream
            the encoder writes to its stdout and a relay thread copies the
            bytes across.
        ffmpeg_path: Explicit ffmpeg path; defaults to configuration/PATH.
        close_timeout: Seconds close() waits for ffmpeg to finish.
    """

    def __init__(
        self,
        destination: Destination,
        *,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        if isinstance(destination, (str, Path)):
            self.path: Path | None = Path(destination)
            self.stream: BinaryIO | None = None
        else:
            self.path = None
            self.stream = destination
        self._ffmpeg_path = ffmpeg_path
        self._session: MediaSession[FrameT] = MediaSession(self.path, close_timeout)

    @property
    def session(self) -> MediaSession[FrameT]:
        return self._session

    @property
    def process(self) -> ProcessHandle | None:
        return self._session.process

    @property
    def is_open(self) -> bool:
        return self._session.state is SessionState.OPEN_FOR_WRITING

    def _executable(self) -> Path:
        if self._ffmpeg_path is None:
            self._ffmpeg_path = require_tool(FFMPEG)
        return self._ffmpeg_path

    def _output_target(self) -> str:
        return str(self.path) if self.path is not None else "-"

    def build_arguments(self) -> list[str]:
        raise NotImplementedError

    def open_write(self, options: SpawnOptions | None = None) -> ProcessHandle:
        """Start the encoder.

        Raises:
            InvalidSessionState: If the writer is already open.
            SpawnFailure: If ffmpeg cannot be started.
        """
        return self._session.open_write(
            self._executable(),
            self.build_arguments(),
            options,
            destination=self.stream,
        )

    def write_frame(self, frame: FrameT) -> None:
        """Push one frame's payload into the encoder.

        Raises:
            InvalidSessionState: If the writer is not open.
            IOFailure: If the encoder's pipe broke.
        """
        self._session.write_unit(frame)

    def write_raw(self, data: bytes | memoryview) -> None:
        """Push raw bytes in the writer's input format."""
        self._session.write_bytes(data)

    def close(self) -> int | None:
        """Finish encoding and wait for ffmpeg to exit.

        Returns:
            The encoder's exit status, or None if the writer was not open.
        """
        return self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class VideoWriter(MediaWriter[VideoFrame]):
    """Encode RGB24 frames into a video file or stream.

    Raises:
        ConfigurationError: If the geometry or frame rate is not positive.
    """

    def __init__(
        self,
        destination: Destination,
        width: int,
        height: int,
        framerate: float,
        encoder_options: EncoderOptions | None = None,
        *,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        validate_video_geometry(width, height, framerate)
        super().__init__(
            destination, ffmpeg_path=ffmpeg_path, close_timeout=close_timeout
        )
        self.width = width
        self.height = height
        self.framerate = framerate
        self.encoder_options = encoder_options or VideoEncoderOptions()

    def build_arguments(self) -> list[str]:
        options = self.encoder_options
        args = ["-y"]
        args.extend(video_input_arguments(self.width, self.height, self.framerate))
        args.extend(["-i", "-"])
        args.extend(["-c:v", options.encoder_name])
        args.extend(options.argument_list())
        args.extend(["-f", options.format, self._output_target()])
        return args

    def new_frame(self) -> VideoFrame:
        return VideoFrame(self.width, self.height)

    def write_frame(self, frame: VideoFrame) -> None:
        if (frame.width, frame.height) != (self.width, self.height):
            raise ConfigurationError(
                f"Frame is {frame.width}x{frame.height}, "
                f"writer expects {self.width}x{self.height}"
            )
        super().write_frame(frame)


class AudioWriter(MediaWriter[AudioFrame]):
    """Encode PCM blocks into an audio file or stream.

    Raises:
        ConfigurationError: If the channel count, sample rate or bit depth
            is invalid.
    """

    def __init__(
        self,
        destination: Destination,
        channels: int,
        sample_rate: int,
        bit_depth: int = 16,
        encoder_options: EncoderOptions | None = None,
        *,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        validate_audio_layout(channels, sample_rate, bit_depth)
        super().__init__(
            destination, ffmpeg_path=ffmpeg_path, close_timeout=close_timeout
        )
        self.channels = channels
        self.sample_rate = sample_rate
        self.bit_depth = bit_depth
        self.encoder_options = encoder_options or AudioEncoderOptions()

    def build_arguments(self) -> list[str]:
        options = self.encoder_options
        args = ["-y"]
        args.extend(
            audio_input_arguments(self.channels, self.sample_rate, self.bit_depth)
        )
        args.extend(["-i", "-"])
        args.extend(["-c:a", options.encoder_name])
        args.extend(options.argument_list())
        args.extend(["-f", options.format, self._output_target()])
        return args

    def new_frame(self, samples: int = DEFAULT_FRAME_SAMPLES) -> AudioFrame:
        return AudioFrame(samples, self.channels, self.bit_depth)

    def write_frame(self, frame: AudioFrame) -> None:
        if (frame.channels, frame.bit_depth) != (self.channels, self.bit_depth):
            raise ConfigurationError(
                f"Frame has {frame.channels} channels at {frame.bit_depth} bits, "
                f"writer expects {self.channels} at {self.bit_depth}"
            )
        super().write_frame(frame)
