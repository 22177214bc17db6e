"""Pure parsing functions for ffprobe JSON output.

These functions turn the validated probe document into metadata records.
All functions are pure (no I/O, no side effects) for easy testing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rawpipe.exceptions import MetadataParseFailure, ProbeOutputUnparseable
from rawpipe.probe.models import (
    AudioMetadata,
    FormatInfo,
    MediaKind,
    MediaMetadata,
    StreamInfo,
    VideoMetadata,
)
from rawpipe.probe.schema import ProbeDocument, ProbeFormat, ProbeStream

logger = logging.getLogger(__name__)

# Checked in this order; the first substring found wins
_BIT_DEPTH_MARKERS = ("64", "32", "24", "16", "8")


def parse_ratio(value: str | None) -> float:
    """Parse an ffprobe rate such as "30000/1001" or "29.97".

    A zero denominator ("0/0" is how ffprobe reports an unknown rate)
    yields 0.0. A missing value also yields 0.0.

    Raises:
        ValueError: If the text is not a number or a ratio of numbers.
    """
    if value is None or not value.strip():
        return 0.0
    text = value.strip()
    if "/" in text:
        numerator, denominator = text.split("/", 1)
        num = float(numerator)
        den = float(denominator)
        if den == 0:
            return 0.0
        return num / den
    return float(text)


def infer_bit_depth(format_name: str | None) -> int:
    """Guess bit depth from a pixel or sample format name.

    Args:
        format_name: e.g. "s16", "s32p", "yuv420p10le", "fltp".

    Returns:
        The first of 64, 32, 24, 16, 8 contained in the name, or 0.
    """
    if not format_name:
        return 0
    for marker in _BIT_DEPTH_MARKERS:
        if marker in format_name:
            return int(marker)
    return 0


def parse_duration(value: str | None) -> float | None:
    """Parse duration string from ffprobe into seconds.

    Args:
        value: Duration string from ffprobe (e.g., "3600.000") or None.

    Returns:
        Duration in seconds as float, or None if parsing fails.
    """
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def parse_int(value: str | int) -> int:
    """Parse an integer field, accepting integral decimals such as "44100.0".

    Raises:
        ValueError: If the value is not a whole number ("N/A", "1.5", "nan").
    """
    try:
        return int(value)
    except ValueError:
        number = float(value)
        if not number.is_integer():
            raise ValueError(f"not a whole number: {value!r}") from None
        return int(number)


def _optional_int(
    value: Any, field_name: str, file_path: str | None = None
) -> int | None:
    if value is None:
        return None
    try:
        return parse_int(value)
    except (ValueError, TypeError):
        context = f" in {file_path}" if file_path else ""
        logger.warning("Invalid integer for %s%s: %r", field_name, context, value)
        return None


def parse_stream(stream: ProbeStream, file_path: str | None = None) -> StreamInfo:
    """Convert one validated probe stream into a StreamInfo.

    Malformed numeric fields become None with a warning.
    """
    return StreamInfo(
        index=stream.index,
        codec_type=stream.codec_type,
        codec_name=stream.codec_name,
        codec_long_name=stream.codec_long_name,
        profile=stream.profile,
        width=_optional_int(stream.width, "width", file_path),
        height=_optional_int(stream.height, "height", file_path),
        pixel_format=stream.pix_fmt,
        sample_aspect_ratio=stream.sample_aspect_ratio,
        avg_frame_rate=stream.avg_frame_rate,
        r_frame_rate=stream.r_frame_rate,
        sample_format=stream.sample_fmt,
        sample_rate=_optional_int(stream.sample_rate, "sample_rate", file_path),
        channels=_optional_int(stream.channels, "channels", file_path),
        channel_layout=stream.channel_layout,
        bits_per_raw_sample=_optional_int(
            stream.bits_per_raw_sample, "bits_per_raw_sample", file_path
        ),
        bits_per_sample=_optional_int(
            stream.bits_per_sample, "bits_per_sample", file_path
        ),
        duration=parse_duration(stream.duration),
        bit_rate=_optional_int(stream.bit_rate, "bit_rate", file_path),
        nb_frames=_optional_int(stream.nb_frames, "nb_frames", file_path),
        disposition=dict(stream.disposition),
        tags=dict(stream.tags),
    )


def parse_format(fmt: ProbeFormat, file_path: str | None = None) -> FormatInfo:
    """Convert the validated probe format object into a FormatInfo."""
    return FormatInfo(
        filename=fmt.filename,
        nb_streams=fmt.nb_streams,
        format_name=fmt.format_name,
        format_long_name=fmt.format_long_name,
        start_time=parse_duration(fmt.start_time),
        duration=parse_duration(fmt.duration),
        size=_optional_int(fmt.size, "size", file_path),
        bit_rate=_optional_int(fmt.bit_rate, "bit_rate", file_path),
        probe_score=fmt.probe_score,
        tags=dict(fmt.tags),
    )


class _FieldParser:
    """Parse derived fields one at a time, collecting failures.

    A field that is missing gets its default silently unless it is required.
    A field that is present but malformed gets its default and is recorded,
    so the caller can decide between raising and warning.
    """

    def __init__(self) -> None:
        self.errors: list[str] = []

    def take(
        self,
        name: str,
        value: Any,
        parse: Callable[[Any], Any],
        default: Any,
        *,
        required: bool = False,
    ) -> Any:
        if value is None:
            if required:
                self.errors.append(f"{name} is missing")
            return default
        try:
            return parse(value)
        except (ValueError, TypeError, OverflowError) as e:
            self.errors.append(f"{name}={value!r}: {e}")
            return default

    def predict(self, name: str, duration: float, rate: float) -> int:
        """Round ``duration * rate`` into a unit count, 0 if not finite."""
        try:
            return round(duration * rate)
        except (ValueError, OverflowError) as e:
            self.errors.append(f"{name}: {e}")
            return 0


def _duration(
    fields: _FieldParser, stream: ProbeStream, container: ProbeFormat | None
) -> float:
    if stream.duration is not None:
        return fields.take("duration", stream.duration, float, 0.0)
    if container is not None:
        return fields.take("format.duration", container.duration, float, 0.0)
    return 0.0


def _bit_depth(
    fields: _FieldParser, explicit: str | int | None, format_name: str | None
) -> int:
    depth = fields.take("bit_depth", explicit, parse_int, 0)
    return depth or infer_bit_depth(format_name)


def _derive_video(
    fields: _FieldParser, stream: ProbeStream, container: ProbeFormat | None
) -> dict:
    duration = _duration(fields, stream, container)
    frame_rate = fields.take("avg_frame_rate", stream.avg_frame_rate, parse_ratio, 0.0)
    return {
        "codec": stream.codec_name,
        "codec_long_name": stream.codec_long_name,
        "duration": duration,
        "bit_rate": fields.take("bit_rate", stream.bit_rate, parse_int, 0),
        "bit_depth": _bit_depth(fields, stream.bits_per_raw_sample, stream.pix_fmt),
        "width": fields.take("width", stream.width, parse_int, 0, required=True),
        "height": fields.take("height", stream.height, parse_int, 0, required=True),
        "pixel_format": stream.pix_fmt,
        "avg_frame_rate": frame_rate,
        "avg_frame_rate_text": stream.avg_frame_rate,
        "sample_aspect_ratio": stream.sample_aspect_ratio,
        "predicted_frame_count": fields.predict(
            "predicted_frame_count", duration, frame_rate
        ),
    }


def _derive_audio(
    fields: _FieldParser, stream: ProbeStream, container: ProbeFormat | None
) -> dict:
    duration = _duration(fields, stream, container)
    sample_rate = fields.take(
        "sample_rate", stream.sample_rate, parse_int, 0, required=True
    )
    return {
        "codec": stream.codec_name,
        "codec_long_name": stream.codec_long_name,
        "duration": duration,
        "bit_rate": fields.take("bit_rate", stream.bit_rate, parse_int, 0),
        "bit_depth": _bit_depth(fields, stream.bits_per_sample, stream.sample_fmt),
        "channels": fields.take(
            "channels", stream.channels, parse_int, 0, required=True
        ),
        "sample_rate": sample_rate,
        "sample_format": stream.sample_fmt,
        "channel_layout": stream.channel_layout,
        "predicted_sample_count": fields.predict(
            "predicted_sample_count", duration, sample_rate
        ),
    }


def build_metadata(
    document: ProbeDocument,
    kind: MediaKind,
    path: Path | str,
    *,
    ignore_stream_errors: bool = True,
) -> MediaMetadata:
    """Build metadata for ``kind`` from a validated probe document.

    The first stream whose codec_type matches ``kind`` is authoritative for
    the derived top-level fields. Each derived field is parsed on its own:
    one malformed value does not discard the others.

    Args:
        document: Validated probe output.
        kind: Media kind the caller will decode.
        path: File that was probed.
        ignore_stream_errors: Leave missing or malformed fields at their
            defaults instead of raising.

    Returns:
        VideoMetadata or AudioMetadata.

    Raises:
        MetadataParseFailure: If ``ignore_stream_errors`` is False and the
            authoritative stream is missing, lacks a required field, or has
            a malformed one.
    """
    file_path = str(path)
    streams = tuple(parse_stream(s, file_path) for s in document.streams)
    container = document.format
    fmt = parse_format(container, file_path) if container is not None else None

    authoritative = next(
        (
            s
            for s in document.streams
            if (s.codec_type or "").strip().lower() == kind.value
        ),
        None,
    )

    derived: dict = {}
    if authoritative is None:
        if not ignore_stream_errors:
            raise MetadataParseFailure(
                f"No {kind.value} stream found in {file_path}", path=file_path
            )
        logger.warning("No %s stream found in %s", kind.value, file_path)
    else:
        fields = _FieldParser()
        derive = _derive_video if kind is MediaKind.VIDEO else _derive_audio
        derived = derive(fields, authoritative, container)
        if fields.errors:
            problems = "; ".join(fields.errors)
            if not ignore_stream_errors:
                raise MetadataParseFailure(
                    f"Failed to parse {kind.value} stream data in {file_path}: "
                    f"{problems}",
                    path=file_path,
                )
            logger.warning(
                "Using defaults for malformed %s stream fields in %s: %s",
                kind.value,
                file_path,
                problems,
            )

    metadata_cls = VideoMetadata if kind is MediaKind.VIDEO else AudioMetadata
    return metadata_cls(path=file_path, streams=streams, format=fmt, **derived)


def parse_ffprobe_output(
    path: Path | str,
    output: str | bytes,
    kind: MediaKind,
    *,
    ignore_stream_errors: bool = True,
) -> MediaMetadata:
    """Parse raw ffprobe stdout into metadata.

    Raises:
        ProbeOutputUnparseable: If the output is not a probe JSON document.
        MetadataParseFailure: See build_metadata().
    """
    try:
        document = ProbeDocument.model_validate_json(output)
    except ValidationError as e:
        raise ProbeOutputUnparseable(
            f"Invalid ffprobe output for {path}: {e}", path=path
        ) from e
    return build_metadata(
        document, kind, path, ignore_stream_errors=ignore_stream_errors
    )
