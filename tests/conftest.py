"""Shared test fixtures for rawpipe."""

import json
import logging
import os
from pathlib import Path

import pytest

from rawpipe.config import clear_config_cache

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch):
    """Point configuration at an empty location and drop RAWPIPE_* overrides."""
    for var in list(os.environ):
        if var.startswith("RAWPIPE_"):
            monkeypatch.delenv(var, raising=False)
    config_dir = tmp_path_factory.mktemp("rawpipe-config")
    monkeypatch.setenv("RAWPIPE_CONFIG_PATH", str(config_dir / "config.toml"))
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Save and restore root logger state between tests."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers[:] = original_handlers
    root.setLevel(original_level)


@pytest.fixture
def ffprobe_fixtures_dir() -> Path:
    """Return the path to the ffprobe fixtures directory."""
    return FIXTURES_DIR / "ffprobe"


def load_ffprobe_fixture(name: str) -> dict:
    """Load an ffprobe JSON fixture by name.

    Args:
        name: Name of the fixture file (without .json extension).

    Returns:
        Parsed JSON data from the fixture.
    """
    fixture_path = FIXTURES_DIR / "ffprobe" / f"{name}.json"
    return json.loads(fixture_path.read_text())


@pytest.fixture
def video_probe_output() -> str:
    """ffprobe output for a 1 second 320x240 H.264 clip at 30 fps."""
    return json.dumps(load_ffprobe_fixture("video_h264"))


@pytest.fixture
def audio_probe_output() -> str:
    """ffprobe output for a stereo Vorbis clip with no container duration."""
    return json.dumps(load_ffprobe_fixture("audio_vorbis"))


@pytest.fixture
def media_file(tmp_path: Path) -> Path:
    """An existing (empty) file standing in for a media file."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"")
    return path

