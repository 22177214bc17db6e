"""Configuration for rawpipe.

Values are merged from defaults, ~/.rawpipe/config.toml, RAWPIPE_*
environment variables and explicit overrides, in increasing precedence.
"""

from rawpipe.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from rawpipe.config.env import EnvReader
from rawpipe.config.loader import (
    DEFAULT_CONFIG_FILE,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from rawpipe.config.models import (
    VALID_VERBOSITY_LEVELS,
    LoggingConfig,
    ProcessConfig,
    RawpipeConfig,
    ToolPathsConfig,
)

__all__ = [
    "ConfigBuilder",
    "ConfigSource",
    "DEFAULT_CONFIG_FILE",
    "EnvReader",
    "LoggingConfig",
    "ProcessConfig",
    "RawpipeConfig",
    "ToolPathsConfig",
    "VALID_VERBOSITY_LEVELS",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    "source_from_env",
    "source_from_file",
]
