"""Combined audio/video writer fed over two channels.

Video frames go to ffmpeg's stdin. Audio goes over a loopback TCP
connection that ffmpeg opens as its first input. The caller interleaves
writes to the two channels; ffmpeg probes the audio input before it reads
stdin, so audio should be written first.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from rawpipe.channels import LoopbackChannel
from rawpipe.config import get_config
from rawpipe.encoding import AudioEncoderOptions, EncoderOptions, VideoEncoderOptions
from rawpipe.exceptions import ConfigurationError, InvalidSessionState
from rawpipe.frames import AudioFrame, FrameBuffer, VideoFrame
from rawpipe.media.writer import (
    Destination,
    audio_input_arguments,
    validate_audio_layout,
    validate_video_geometry,
    video_input_arguments,
)
from rawpipe.process import FFMPEG, ProcessHandle, SpawnOptions, require_tool
from rawpipe.session import MediaSession, SessionState

logger = logging.getLogger(__name__)


class AudioVideoWriter:
    """Encode RGB24 video and PCM audio into one container.

    Args:
        destination: Output path, or a writable binary stream.
        width: Video frame width in pixels.
        height: Video frame height in pixels.
        framerate: Video frame rate.
        channels: Audio channel count.
        sample_rate: Audio sample rate in Hz.
        bit_depth: Audio bit depth (16, 24 or 32).
        video_options: Video encoder options; H.264 in MP4 by default.
        audio_options: Audio encoder options; MP3 by default. Its format is
            ignored, the container comes from ``video_options``.
        ffmpeg_path: Explicit ffmpeg path; defaults to configuration/PATH.
        close_timeout: Seconds close() waits for ffmpeg to finish.

    Raises:
        ConfigurationError: If any geometry or audio layout value is invalid.
    """

    def __init__(
        self,
        destination: Destination,
        width: int,
        height: int,
        framerate: float,
        channels: int,
        sample_rate: int,
        bit_depth: int = 16,
        video_options: EncoderOptions | None = None,
        audio_options: EncoderOptions | None = None,
        *,
        ffmpeg_path: Path | None = None,
        close_timeout: float | None = None,
    ) -> None:
        validate_video_geometry(width, height, framerate)
        validate_audio_layout(channels, sample_rate, bit_depth)
        if isinstance(destination, (str, Path)):
            self.path: Path | None = Path(destination)
            self.stream: BinaryIO | None = None
        else:
            self.path = None
            self.stream = destination
        self.width = width
        self.height = height
        self.framerate = framerate
        self.channels = channels
        self.sample_rate = sample_rate
        self.bit_depth = bit_depth
        self.video_options = video_options or VideoEncoderOptions()
        self.audio_options = audio_options or AudioEncoderOptions()
        self._ffmpeg_path = ffmpeg_path
        self._session: MediaSession[FrameBuffer] = MediaSession(
            self.path, close_timeout
        )
        self._audio_channel: LoopbackChannel | None = None

    @property
    def session(self) -> MediaSession[FrameBuffer]:
        return self._session

    @property
    def process(self) -> ProcessHandle | None:
        return self._session.process

    @property
    def is_open(self) -> bool:
        return self._session.state is SessionState.OPEN_FOR_WRITING

    @property
    def video_stream(self) -> BinaryIO | None:
        """ffmpeg's stdin, carrying raw video frames."""
        return self._session.input_stream

    @property
    def audio_stream(self) -> BinaryIO | None:
        """The accepted loopback connection, carrying raw PCM."""
        if self._audio_channel is None:
            return None
        return self._audio_channel.stream

    def build_arguments(self, audio_url: str, thread_queue_size: int) -> list[str]:
        queue = str(thread_queue_size)
        output = str(self.path) if self.path is not None else "-"

        args = ["-y"]
        args.extend(
            audio_input_arguments(self.channels, self.sample_rate, self.bit_depth)
        )
        args.extend(["-thread_queue_size", queue, "-i", audio_url])
        args.extend(video_input_arguments(self.width, self.height, self.framerate))
        args.extend(["-thread_queue_size", queue, "-i", "-"])
        args.extend(["-map", "0", "-c:a", self.audio_options.encoder_name])
        args.extend(self.audio_options.argument_list())
        args.extend(["-map", "1", "-c:v", self.video_options.encoder_name])
        args.extend(self.video_options.argument_list())
        args.extend(["-f", self.video_options.format, output])
        return args

    def open_write(
        self,
        options: SpawnOptions | None = None,
        channel_timeout: float | None = None,
        thread_queue_size: int | None = None,
    ) -> ProcessHandle:
        """Start ffmpeg and wait for it to connect to the audio channel.

        Args:
            options: Spawn options.
            channel_timeout: Seconds to wait for the audio connection.
                Defaults to configuration.
            thread_queue_size: ffmpeg input queue size per stream.
                Defaults to configuration.

        Raises:
            InvalidSessionState: If the writer is already open.
            ConfigurationError: If ``thread_queue_size`` is not positive.
            SpawnFailure: If ffmpeg cannot be started.
            ChannelEstablishmentTimeout: If ffmpeg does not connect in time
                or exits first. Everything is torn down before raising.
        """
        if self._session.state is not SessionState.CLOSED:
            raise InvalidSessionState(
                f"Cannot open_write: session is {self._session.state.value}",
                state=self._session.state.value,
                operation="open_write",
            )
        if thread_queue_size is None:
            thread_queue_size = get_config().process.thread_queue_size
        if thread_queue_size <= 0:
            raise ConfigurationError(
                f"thread_queue_size must be positive, got {thread_queue_size}"
            )
        if self._ffmpeg_path is None:
            self._ffmpeg_path = require_tool(FFMPEG)

        channel = LoopbackChannel()
        try:
            handle = self._session.open_write(
                self._ffmpeg_path,
                self.build_arguments(channel.url, thread_queue_size),
                options,
                destination=self.stream,
                channels=[channel],
                channel_timeout=channel_timeout,
            )
        except BaseException:
            channel.close()
            raise
        self._audio_channel = channel
        logger.debug("Audio side-channel established on %s", channel.url)
        return handle

    def write_video_frame(self, frame: VideoFrame) -> None:
        """Push one video frame into ffmpeg's stdin.

        Raises:
            ConfigurationError: If the frame size does not match.
            InvalidSessionState: If the writer is not open.
            IOFailure: If the pipe broke.
        """
        if (frame.width, frame.height) != (self.width, self.height):
            raise ConfigurationError(
                f"Frame is {frame.width}x{frame.height}, "
                f"writer expects {self.width}x{self.height}"
            )
        self._session.write_unit(frame)

    def write_audio_frame(self, frame: AudioFrame) -> None:
        """Push one PCM block into the audio side-channel.

        Raises:
            ConfigurationError: If the channel count or bit depth does not
                match.
            InvalidSessionState: If the writer is not open.
            IOFailure: If the connection broke.
        """
        if (frame.channels, frame.bit_depth) != (self.channels, self.bit_depth):
            raise ConfigurationError(
                f"Frame has {frame.channels} channels at {frame.bit_depth} bits, "
                f"writer expects {self.channels} at {self.bit_depth}"
            )
        self._session.require(SessionState.OPEN_FOR_WRITING, "write")
        self._session.write_unit(frame, channel=self.audio_stream)

    def close(self) -> int | None:
        """Close both channels and wait for ffmpeg to finish.

        Returns:
            The encoder's exit status, or None if the writer was not open.
        """
        try:
            return self._session.close()
        finally:
            self._audio_channel = None

    def __enter__(self) -> AudioVideoWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
