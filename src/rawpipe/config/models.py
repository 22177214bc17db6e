"""Configuration data models.

This module defines dataclasses for rawpipe configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path

from rawpipe.exceptions import ConfigurationError

# ffmpeg -loglevel names, quietest first
VALID_VERBOSITY_LEVELS = (
    "quiet",
    "panic",
    "fatal",
    "error",
    "warning",
    "info",
    "verbose",
    "debug",
    "trace",
)


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class ProcessConfig:
    """Configuration for spawned transcoder processes."""

    # Passed to ffmpeg as -loglevel; None leaves ffmpeg's default
    verbosity: str | None = None

    # Seconds to wait for a process to exit on close before killing it
    close_timeout: float = 30.0

    # Seconds to wait for the transcoder to connect to the audio side-channel
    channel_timeout: float = 10.0

    # ffmpeg -thread_queue_size for combined audio/video inputs
    thread_queue_size: int = 4096

    # Number of diagnostic lines kept for error messages
    diagnostic_tail_lines: int = 200

    def __post_init__(self) -> None:
        """Validate configuration."""
        if (
            self.verbosity is not None
            and self.verbosity.lower() not in VALID_VERBOSITY_LEVELS
        ):
            raise ConfigurationError(
                f"verbosity must be one of {VALID_VERBOSITY_LEVELS}, "
                f"got {self.verbosity}"
            )
        if self.close_timeout <= 0:
            raise ConfigurationError("close_timeout must be positive")
        if self.channel_timeout <= 0:
            raise ConfigurationError("channel_timeout must be positive")
        if self.thread_queue_size < 1:
            raise ConfigurationError("thread_queue_size must be at least 1")
        if self.diagnostic_tail_lines < 1:
            raise ConfigurationError("diagnostic_tail_lines must be at least 1")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ConfigurationError(
                f"level must be one of {valid_levels}, got {self.level}"
            )
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ConfigurationError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class RawpipeConfig:
    """Top-level rawpipe configuration."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    process: ProcessConfig = field(default_factory=ProcessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
