"""Encoder option values and per-encoder builders."""

from rawpipe.encoding.builders import (
    AACEncoder,
    EncoderOptionsBuilder,
    H264Encoder,
    H264Preset,
    H264Profile,
    H264Tune,
    MP3Encoder,
    OpusApplication,
    OpusEncoder,
    VorbisEncoder,
    VP9Encoder,
    VP9Quality,
    VP9Tune,
)
from rawpipe.encoding.options import (
    AudioEncoderOptions,
    EncoderOptions,
    VideoEncoderOptions,
)

__all__ = [
    "AACEncoder",
    "AudioEncoderOptions",
    "EncoderOptions",
    "EncoderOptionsBuilder",
    "H264Encoder",
    "H264Preset",
    "H264Profile",
    "H264Tune",
    "MP3Encoder",
    "OpusApplication",
    "OpusEncoder",
    "VP9Encoder",
    "VP9Quality",
    "VP9Tune",
    "VideoEncoderOptions",
    "VorbisEncoder",
]
