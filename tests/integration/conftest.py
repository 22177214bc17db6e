"""Integration test fixtures that need real ffmpeg and ffprobe binaries.

Clips are generated with ffmpeg's lavfi sources, using only encoders that
every ffmpeg build ships (ffv1, pcm), so the tests do not depend on
optional libraries.
"""

from __future__ import annotations

import shutil
import subprocess  # nosec B404 - test media generation
from collections.abc import Callable
from pathlib import Path

import pytest


def _tool_available(name: str) -> bool:
    """Check if an external tool is available in PATH."""
    return shutil.which(name) is not None


def _ffmpeg(*args: str) -> None:
    subprocess.run(  # nosec B603 B607 - fixed argument list
        ["ffmpeg", "-hide_banner", "-loglevel", "error", "-y", *args],
        check=True,
        capture_output=True,
    )


@pytest.fixture(autouse=True)
def requires_tools() -> None:
    """Skip when ffmpeg or ffprobe is not installed."""
    if not (_tool_available("ffmpeg") and _tool_available("ffprobe")):
        pytest.skip("ffmpeg and ffprobe are required")


@pytest.fixture(scope="session")
def require_encoder() -> Callable[[str], None]:
    """Return a function that skips unless ffmpeg has the named encoder."""

    def check(name: str) -> None:
        result = subprocess.run(  # nosec B603 B607 - fixed argument list
            ["ffmpeg", "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            check=False,
        )
        names = set()
        for line in result.stdout.splitlines():
            fields = line.split()
            if len(fields) > 1:
                names.add(fields[1])
        if name not in names:
            pytest.skip(f"ffmpeg encoder {name} is not available")

    return check


@pytest.fixture(scope="module")
def media_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("media")


@pytest.fixture(scope="module")
def video_clip(media_dir: Path) -> Path:
    """A 1 second 64x48 test pattern at 10 fps, lossless, video only."""
    if not _tool_available("ffmpeg"):
        pytest.skip("ffmpeg is required")
    path = media_dir / "pattern.mkv"
    _ffmpeg(
        "-f",
        "lavfi",
        "-i",
        "testsrc=size=64x48:rate=10:duration=1",
        "-c:v",
        "ffv1",
        str(path),
    )
    return path


@pytest.fixture(scope="module")
def audio_clip(media_dir: Path) -> Path:
    """A 1 second 440 Hz mono tone at 8 kHz, 16-bit WAV."""
    if not _tool_available("ffmpeg"):
        pytest.skip("ffmpeg is required")
    path = media_dir / "tone.wav"
    _ffmpeg(
        "-f",
        "lavfi",
        "-i",
        "sine=frequency=440:sample_rate=8000:duration=1",
        "-c:a",
        "pcm_s16le",
        str(path),
    )
    return path
