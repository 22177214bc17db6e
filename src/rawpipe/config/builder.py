"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building RawpipeConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from rawpipe.config.env import EnvReader
from rawpipe.config.models import (
    LoggingConfig,
    ProcessConfig,
    RawpipeConfig,
    ToolPathsConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Tool paths
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    # Process config
    verbosity: str | None = None
    close_timeout: float | None = None
    channel_timeout: float | None = None
    thread_queue_size: int | None = None
    diagnostic_tail_lines: int | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds RawpipeConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(override_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> RawpipeConfig:
        """Build the final RawpipeConfig with defaults for unset values.

        Returns:
            Complete RawpipeConfig with all values resolved.

        Raises:
            ConfigurationError: If a resolved value fails validation.
        """
        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
        )

        process_defaults = ProcessConfig()
        process = ProcessConfig(
            verbosity=self._get("verbosity", process_defaults.verbosity),
            close_timeout=float(
                self._get("close_timeout", process_defaults.close_timeout)
            ),
            channel_timeout=float(
                self._get("channel_timeout", process_defaults.channel_timeout)
            ),
            thread_queue_size=int(
                self._get("thread_queue_size", process_defaults.thread_queue_size)
            ),
            diagnostic_tail_lines=int(
                self._get(
                    "diagnostic_tail_lines", process_defaults.diagnostic_tail_lines
                )
            ),
        )

        logging_defaults = LoggingConfig()
        logging_config = LoggingConfig(
            level=self._get("logging_level", logging_defaults.level),
            file=self._get("logging_file", logging_defaults.file),
            format=self._get("logging_format", logging_defaults.format),
            include_stderr=self._get(
                "logging_include_stderr", logging_defaults.include_stderr
            ),
            max_bytes=self._get("logging_max_bytes", logging_defaults.max_bytes),
            backup_count=self._get(
                "logging_backup_count", logging_defaults.backup_count
            ),
        )

        return RawpipeConfig(tools=tools, process=process, logging=logging_config)


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from parsed TOML config file.

    Expected layout:

        [tools]
        ffmpeg = "/usr/local/bin/ffmpeg"

        [process]
        verbosity = "error"
        close_timeout = 30

        [logging]
        level = "debug"

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    tools = file_config.get("tools", {})
    process = file_config.get("process", {})
    logging_conf = file_config.get("logging", {})

    log_file_str = logging_conf.get("file")
    log_file = Path(log_file_str).expanduser() if log_file_str else None

    return ConfigSource(
        ffmpeg_path=Path(tools["ffmpeg"]) if tools.get("ffmpeg") else None,
        ffprobe_path=Path(tools["ffprobe"]) if tools.get("ffprobe") else None,
        verbosity=process.get("verbosity"),
        close_timeout=process.get("close_timeout"),
        channel_timeout=process.get("channel_timeout"),
        thread_queue_size=process.get("thread_queue_size"),
        diagnostic_tail_lines=process.get("diagnostic_tail_lines"),
        logging_level=logging_conf.get("level"),
        logging_file=log_file,
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from RAWPIPE_* environment variables.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    return ConfigSource(
        ffmpeg_path=reader.get_path("RAWPIPE_FFMPEG_PATH"),
        ffprobe_path=reader.get_path("RAWPIPE_FFPROBE_PATH"),
        verbosity=reader.get_str("RAWPIPE_VERBOSITY"),
        close_timeout=reader.get_float("RAWPIPE_CLOSE_TIMEOUT"),
        channel_timeout=reader.get_float("RAWPIPE_CHANNEL_TIMEOUT"),
        logging_level=reader.get_str("RAWPIPE_LOG_LEVEL"),
        logging_file=reader.get_path("RAWPIPE_LOG_FILE", must_exist=False),
        logging_format=reader.get_str("RAWPIPE_LOG_FORMAT"),
    )
