"""Raw media units: RGB24 video frames and PCM audio blocks."""

from rawpipe.frames.audio import (
    DEFAULT_FRAME_SAMPLES,
    SUPPORTED_BIT_DEPTHS,
    AudioFrame,
    pcm_format,
    validate_bit_depth,
)
from rawpipe.frames.buffer import FrameBuffer, LoadPolicy, MediaUnit
from rawpipe.frames.video import BYTES_PER_PIXEL, PIXEL_FORMAT, VideoFrame

__all__ = [
    "AudioFrame",
    "BYTES_PER_PIXEL",
    "DEFAULT_FRAME_SAMPLES",
    "FrameBuffer",
    "LoadPolicy",
    "MediaUnit",
    "PIXEL_FORMAT",
    "SUPPORTED_BIT_DEPTHS",
    "VideoFrame",
    "pcm_format",
    "validate_bit_depth",
]
