"""Readers, writers and one-shot conversion built on media sessions."""

from rawpipe.media.av_writer import AudioVideoWriter
from rawpipe.media.convert import build_convert_args, convert_file
from rawpipe.media.reader import AudioReader, MediaReader, VideoReader
from rawpipe.media.writer import AudioWriter, MediaWriter, VideoWriter

__all__ = [
    "AudioReader",
    "AudioVideoWriter",
    "AudioWriter",
    "MediaReader",
    "MediaWriter",
    "VideoReader",
    "VideoWriter",
    "build_convert_args",
    "convert_file",
]
