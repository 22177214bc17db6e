"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. Explicit arguments (passed directly to get_config)
2. Environment variables (RAWPIPE_*)
3. Config file (~/.rawpipe/config.toml)
4. Default values

Environment variables:
- RAWPIPE_CONFIG_PATH: Path to config file (overrides default location)
- RAWPIPE_FFMPEG_PATH: Path to ffmpeg executable
- RAWPIPE_FFPROBE_PATH: Path to ffprobe executable
- RAWPIPE_VERBOSITY: ffmpeg -loglevel passed to every spawned transcoder
- RAWPIPE_CLOSE_TIMEOUT: Seconds to wait for a process to exit on close
- RAWPIPE_CHANNEL_TIMEOUT: Seconds to wait for the audio side-channel
- RAWPIPE_LOG_LEVEL / RAWPIPE_LOG_FORMAT / RAWPIPE_LOG_FILE: Logging
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path

from rawpipe.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from rawpipe.config.env import EnvReader
from rawpipe.config.models import RawpipeConfig
from rawpipe.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".rawpipe"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# path -> (parsed dict, mtime)
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by RAWPIPE_CONFIG_PATH environment variable.

    Returns:
        Path to config file.
    """
    env_path = os.environ.get("RAWPIPE_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def _read_toml(path: Path, *, strict: bool) -> dict:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        if strict:
            raise ConfigurationError(
                f"Failed to parse config file {path}: {e}"
            ) from e
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. The cache automatically
    reloads the file if it has been modified since the last read.
    Use clear_config_cache() to force a reload regardless of mtime.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise ConfigurationError on parse failures.
                If False (default), return empty dict on errors.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.

    Raises:
        ConfigurationError: When strict=True and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = _read_toml(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache.

    Primarily useful for testing.
    """
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # Explicit overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    verbosity: str | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> RawpipeConfig:
    """Get rawpipe configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides RAWPIPE_CONFIG_PATH).
        ffmpeg_path: Override for ffmpeg path.
        ffprobe_path: Override for ffprobe path.
        verbosity: Override for the transcoder log level.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigurationError on config file parse
            failures. If False (default), use defaults for unparseable config.

    Returns:
        RawpipeConfig with merged configuration.

    Raises:
        ConfigurationError: When strict=True and the config file cannot be
            parsed, or when a merged value is invalid.
    """
    reader = env_reader or EnvReader()

    file_config = load_config_file(config_path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    builder.apply(
        ConfigSource(
            ffmpeg_path=ffmpeg_path,
            ffprobe_path=ffprobe_path,
            verbosity=verbosity,
        )
    )
    return builder.build()
