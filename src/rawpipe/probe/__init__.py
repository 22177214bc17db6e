"""Metadata probing via ffprobe."""

from rawpipe.probe.ffprobe import FFprobeProber, build_probe_args, probe
from rawpipe.probe.interface import MetadataProbe
from rawpipe.probe.models import (
    AudioMetadata,
    FormatInfo,
    MediaKind,
    MediaMetadata,
    StreamInfo,
    VideoMetadata,
)
from rawpipe.probe.parsers import (
    build_metadata,
    infer_bit_depth,
    parse_ffprobe_output,
    parse_ratio,
)

__all__ = [
    "AudioMetadata",
    "FFprobeProber",
    "FormatInfo",
    "MediaKind",
    "MediaMetadata",
    "MetadataProbe",
    "StreamInfo",
    "VideoMetadata",
    "build_metadata",
    "build_probe_args",
    "infer_bit_depth",
    "parse_ffprobe_output",
    "parse_ratio",
    "probe",
]
