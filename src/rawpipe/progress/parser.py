"""FFmpeg stderr progress parsing.

ffmpeg rewrites a stats line such as

    frame=  120 fps= 30 q=28.0 size=  256kB time=00:00:04.00 bitrate= 524.3kbits/s speed=1.0x

on its diagnostic stream while it encodes. At lower verbosity the
frame=/fps=/q= fields can be missing; only time= is required here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TIME_PATTERN = re.compile(r"time=\s*(\d+):(\d+):(\d+(?:\.\d+)?)")

FIELD_PATTERNS = {
    "frame": re.compile(r"frame=\s*(\d+)"),
    "fps": re.compile(r"fps=\s*([\d.]+)"),
    "bitrate": re.compile(r"bitrate=\s*([^\s]+)"),
    "speed": re.compile(r"speed=\s*([^\s]+)"),
}


@dataclass
class ProgressSample:
    """One parsed stats line."""

    elapsed_seconds: float
    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    speed: str | None = None

    def get_percent(self, duration_seconds: float | None) -> float:
        """Calculate progress percentage based on duration.

        Args:
            duration_seconds: Total duration of the media in seconds.

        Returns:
            Progress percentage (0.0 to 100.0), or 0.0 if unknown.
        """
        if duration_seconds is None or duration_seconds <= 0:
            return 0.0
        return min(100.0, (self.elapsed_seconds / duration_seconds) * 100)


def parse_elapsed(line: str) -> float | None:
    """Return the time= position of a stats line in seconds, if present."""
    match = TIME_PATTERN.search(line)
    if match is None:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def _convert(key: str, value: str) -> int | float | str | None:
    if value == "N/A":
        return None
    if key == "frame":
        try:
            return int(value)
        except ValueError:
            return None
    if key == "fps":
        try:
            return float(value)
        except ValueError:
            return None
    return value


def parse_progress_line(line: str) -> ProgressSample | None:
    """Parse an ffmpeg stderr line.

    Args:
        line: A line from ffmpeg stderr.

    Returns:
        ProgressSample, or None if the line carries no usable time=.
    """
    elapsed = parse_elapsed(line)
    if elapsed is None:
        return None

    sample = ProgressSample(elapsed_seconds=elapsed)
    for key, pattern in FIELD_PATTERNS.items():
        match = pattern.search(line)
        if match:
            converted = _convert(key, match.group(1))
            if converted is not None:
                setattr(sample, key, converted)
    return sample
