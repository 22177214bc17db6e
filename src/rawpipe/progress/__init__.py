"""Progress reporting from ffmpeg's diagnostic stream."""

from rawpipe.progress.monitor import ProgressSubscription, attach
from rawpipe.progress.parser import (
    ProgressSample,
    parse_elapsed,
    parse_progress_line,
)

__all__ = [
    "ProgressSample",
    "ProgressSubscription",
    "attach",
    "parse_elapsed",
    "parse_progress_line",
]
