"""Encoder options handed to a writer.

An EncoderOptions value names the container format, the ffmpeg encoder and
the encoder's argument string. Writers pass them through unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from rawpipe.process import split_arguments


class EncoderOptions(BaseModel):
    """Container format, encoder and encoder arguments for one stream.

    Attributes:
        format: ffmpeg muxer name, e.g. "mp4", "webm", "mp3", "ogg".
        encoder_name: ffmpeg encoder, e.g. "libx264", "libopus".
        encoder_arguments: Extra encoder arguments as one shell-style string.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    format: str = Field(min_length=1)
    encoder_name: str = Field(min_length=1)
    encoder_arguments: str = ""

    def argument_list(self) -> list[str]:
        """Encoder arguments tokenized for the command line."""
        return split_arguments(self.encoder_arguments)


class VideoEncoderOptions(EncoderOptions):
    """Default video encoding: H.264 in MP4."""

    format: str = "mp4"
    encoder_name: str = "libx264"
    encoder_arguments: str = "-preset veryfast -crf 23"


class AudioEncoderOptions(EncoderOptions):
    """Default audio encoding: MP3."""

    format: str = "mp3"
    encoder_name: str = "libmp3lame"
    encoder_arguments: str = "-b:a 192k"
