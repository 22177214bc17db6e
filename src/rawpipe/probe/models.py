"""Immutable metadata records produced by the prober.

A metadata object is only built once every raw field has been parsed, so
derived values (frame rate, predicted unit count) are always populated
when a caller can see them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class MediaKind(enum.Enum):
    """Kind of stream a reader is interested in."""

    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class StreamInfo:
    """Facts about one stream in a media file."""

    index: int
    codec_type: str | None = None
    codec_name: str | None = None
    codec_long_name: str | None = None
    profile: str | None = None
    width: int | None = None
    height: int | None = None
    pixel_format: str | None = None
    sample_aspect_ratio: str | None = None
    avg_frame_rate: str | None = None
    r_frame_rate: str | None = None
    sample_format: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    channel_layout: str | None = None
    bits_per_raw_sample: int | None = None
    bits_per_sample: int | None = None
    duration: float | None = None
    bit_rate: int | None = None
    nb_frames: int | None = None
    disposition: dict[str, int] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def is_video(self) -> bool:
        return (self.codec_type or "").strip().lower() == MediaKind.VIDEO.value

    @property
    def is_audio(self) -> bool:
        return (self.codec_type or "").strip().lower() == MediaKind.AUDIO.value


@dataclass(frozen=True)
class FormatInfo:
    """Container-level facts."""

    filename: str | None = None
    nb_streams: int = 0
    format_name: str | None = None
    format_long_name: str | None = None
    start_time: float | None = None
    duration: float | None = None
    size: int | None = None
    bit_rate: int | None = None
    probe_score: int = 0
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MediaMetadata:
    """Probe result for one file.

    Top-level fields are derived from the first stream of the requested
    kind. They stay at zero/None when no such stream exists and stream
    errors are being ignored.
    """

    path: str
    streams: tuple[StreamInfo, ...] = ()
    format: FormatInfo | None = None
    codec: str | None = None
    codec_long_name: str | None = None
    duration: float = 0.0
    bit_rate: int = 0
    bit_depth: int = 0

    def first_video_stream(self) -> StreamInfo | None:
        return next((s for s in self.streams if s.is_video), None)

    def first_audio_stream(self) -> StreamInfo | None:
        return next((s for s in self.streams if s.is_audio), None)

    @property
    def predicted_unit_count(self) -> int:
        return 0


@dataclass(frozen=True)
class VideoMetadata(MediaMetadata):
    """Metadata derived from the first video stream."""

    width: int = 0
    height: int = 0
    pixel_format: str | None = None
    avg_frame_rate: float = 0.0
    avg_frame_rate_text: str | None = None
    sample_aspect_ratio: str | None = None
    predicted_frame_count: int = 0

    @property
    def predicted_unit_count(self) -> int:
        return self.predicted_frame_count


@dataclass(frozen=True)
class AudioMetadata(MediaMetadata):
    """Metadata derived from the first audio stream."""

    channels: int = 0
    sample_rate: int = 0
    sample_format: str | None = None
    channel_layout: str | None = None
    predicted_sample_count: int = 0

    @property
    def predicted_unit_count(self) -> int:
        return self.predicted_sample_count
