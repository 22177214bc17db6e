"""rawpipe: read and write raw video frames and audio samples through ffmpeg."""

from rawpipe.encoding import AudioEncoderOptions, EncoderOptions, VideoEncoderOptions
from rawpipe.exceptions import (
    AlreadyLoaded,
    ChannelEstablishmentTimeout,
    ConfigurationError,
    InvalidSessionState,
    IOFailure,
    MetadataParseFailure,
    ProbeOutputUnparseable,
    RawpipeError,
    SpawnFailure,
    ToolNotFoundError,
    UsageError,
)
from rawpipe.frames import AudioFrame, LoadPolicy, VideoFrame
from rawpipe.media import (
    AudioReader,
    AudioVideoWriter,
    AudioWriter,
    VideoReader,
    VideoWriter,
    convert_file,
)
from rawpipe.probe import AudioMetadata, MediaKind, VideoMetadata, probe
from rawpipe.progress import attach as attach_progress

__version__ = "0.1.0"

__all__ = [
    "AlreadyLoaded",
    "AudioEncoderOptions",
    "AudioFrame",
    "AudioMetadata",
    "AudioReader",
    "AudioVideoWriter",
    "AudioWriter",
    "ChannelEstablishmentTimeout",
    "ConfigurationError",
    "EncoderOptions",
    "IOFailure",
    "InvalidSessionState",
    "LoadPolicy",
    "MediaKind",
    "MetadataParseFailure",
    "ProbeOutputUnparseable",
    "RawpipeError",
    "SpawnFailure",
    "ToolNotFoundError",
    "UsageError",
    "VideoEncoderOptions",
    "VideoFrame",
    "VideoMetadata",
    "VideoReader",
    "VideoWriter",
    "attach_progress",
    "convert_file",
    "probe",
]
