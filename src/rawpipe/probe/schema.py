"""Pydantic models for the ffprobe JSON document.

Only the keys the pipeline consumes are declared; anything else ffprobe
emits is ignored. Numeric keys are held as text, whether ffprobe quotes them
("44100", "1.515102") or not (width, channels). The parsers convert them,
so a malformed or unexpected value is a field-level problem rather than a
broken document.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _number_as_text(value: Any) -> Any:
    # Some ffprobe builds and wrappers emit bare numbers for these keys
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


NumericText = Annotated[str | None, BeforeValidator(_number_as_text)]


class ProbeStream(BaseModel):
    """One entry of ffprobe's "streams" array."""

    model_config = ConfigDict(extra="ignore")

    index: int = 0
    codec_name: str | None = None
    codec_long_name: str | None = None
    profile: str | None = None
    codec_type: str | None = None

    # Video
    width: NumericText = None
    height: NumericText = None
    pix_fmt: str | None = None
    sample_aspect_ratio: str | None = None
    r_frame_rate: NumericText = None
    avg_frame_rate: NumericText = None
    bits_per_raw_sample: NumericText = None
    nb_frames: NumericText = None

    # Audio
    sample_fmt: str | None = None
    sample_rate: NumericText = None
    channels: NumericText = None
    channel_layout: str | None = None
    bits_per_sample: NumericText = None

    duration: NumericText = None
    bit_rate: NumericText = None
    disposition: dict[str, int] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)


class ProbeFormat(BaseModel):
    """ffprobe's "format" object (container-level facts)."""

    model_config = ConfigDict(extra="ignore")

    filename: str | None = None
    nb_streams: int = 0
    format_name: str | None = None
    format_long_name: str | None = None
    start_time: NumericText = None
    duration: NumericText = None
    size: NumericText = None
    bit_rate: NumericText = None
    probe_score: int = 0
    tags: dict[str, str] = Field(default_factory=dict)


class ProbeDocument(BaseModel):
    """Top-level ffprobe output for -show_format -show_streams."""

    model_config = ConfigDict(extra="ignore")

    streams: list[ProbeStream] = Field(default_factory=list)
    format: ProbeFormat | None = None
