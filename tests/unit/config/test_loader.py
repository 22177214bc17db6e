"""Unit tests for configuration loading and precedence."""

import os
import time
from pathlib import Path

import pytest

from rawpipe.config import (
    EnvReader,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from rawpipe.exceptions import ConfigurationError


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        "[tools]\n"
        'ffmpeg = "/opt/ffmpeg/bin/ffmpeg"\n'
        "\n"
        "[process]\n"
        'verbosity = "error"\n'
        "close_timeout = 12\n"
        "thread_queue_size = 1024\n"
        "\n"
        "[logging]\n"
        'level = "debug"\n'
        'format = "json"\n'
    )
    return path


class TestDefaultConfigPath:
    """Tests for get_default_config_path()."""

    def test_env_override(self, tmp_path: Path, monkeypatch) -> None:
        """RAWPIPE_CONFIG_PATH should replace the default location."""
        monkeypatch.setenv("RAWPIPE_CONFIG_PATH", str(tmp_path / "custom.toml"))
        assert get_default_config_path() == tmp_path / "custom.toml"

    def test_default_location(self, monkeypatch) -> None:
        """Without the variable the file lives under ~/.rawpipe."""
        monkeypatch.delenv("RAWPIPE_CONFIG_PATH", raising=False)
        assert get_default_config_path().parts[-2:] == (".rawpipe", "config.toml")


class TestLoadConfigFile:
    """Tests for load_config_file()."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """A missing file should give an empty dict."""
        assert load_config_file(tmp_path / "absent.toml") == {}

    def test_parses_toml(self, config_file: Path) -> None:
        """Sections should come back as nested dicts."""
        data = load_config_file(config_file)
        assert data["process"]["close_timeout"] == 12
        assert data["logging"]["format"] == "json"

    def test_invalid_toml_lenient(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A broken file should be ignored with a warning by default."""
        path = tmp_path / "broken.toml"
        path.write_text("[process\nclose_timeout = ")

        assert load_config_file(path) == {}
        assert "Ignoring unreadable config file" in caplog.text

    def test_invalid_toml_strict(self, tmp_path: Path) -> None:
        """A broken file should raise in strict mode."""
        path = tmp_path / "broken.toml"
        path.write_text("not = [valid")

        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_config_file(path, strict=True)

    def test_reloads_after_modification(self, config_file: Path) -> None:
        """A changed mtime should invalidate the cached parse."""
        assert load_config_file(config_file)["process"]["verbosity"] == "error"

        config_file.write_text('[process]\nverbosity = "info"\n')
        later = time.time() + 5
        os.utime(config_file, (later, later))

        assert load_config_file(config_file)["process"]["verbosity"] == "info"

    def test_clear_cache(self, config_file: Path) -> None:
        """clear_config_cache() should force a re-read."""
        first = load_config_file(config_file)
        assert load_config_file(config_file) is first

        clear_config_cache()

        assert load_config_file(config_file) is not first


class TestGetConfig:
    """Tests for get_config() precedence."""

    def test_defaults(self) -> None:
        """With no file and no environment, defaults apply."""
        config = get_config(env_reader=EnvReader(env={}))

        assert config.tools.ffmpeg is None
        assert config.process.verbosity is None
        assert config.process.close_timeout == 30.0
        assert config.process.channel_timeout == 10.0
        assert config.process.thread_queue_size == 4096
        assert config.logging.level == "info"

    def test_file_values(self, config_file: Path) -> None:
        """File values should override defaults."""
        config = get_config(config_path=config_file, env_reader=EnvReader(env={}))

        assert config.tools.ffmpeg == Path("/opt/ffmpeg/bin/ffmpeg")
        assert config.process.verbosity == "error"
        assert config.process.close_timeout == 12.0
        assert config.process.thread_queue_size == 1024
        assert config.logging.format == "json"

    def test_env_overrides_file(self, config_file: Path) -> None:
        """Environment values should override file values."""
        env = EnvReader(
            env={"RAWPIPE_VERBOSITY": "warning", "RAWPIPE_CLOSE_TIMEOUT": "2.5"}
        )
        config = get_config(config_path=config_file, env_reader=env)

        assert config.process.verbosity == "warning"
        assert config.process.close_timeout == 2.5
        assert config.logging.level == "debug"

    def test_explicit_overrides_env(self, config_file: Path) -> None:
        """Explicit arguments should win over everything."""
        env = EnvReader(env={"RAWPIPE_VERBOSITY": "warning"})
        config = get_config(
            config_path=config_file,
            verbosity="quiet",
            ffprobe_path=Path("/usr/local/bin/ffprobe"),
            env_reader=env,
        )

        assert config.process.verbosity == "quiet"
        assert config.tools.ffprobe == Path("/usr/local/bin/ffprobe")

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        """An invalid merged value should raise ConfigurationError."""
        path = tmp_path / "config.toml"
        path.write_text("[process]\nclose_timeout = 0\n")

        with pytest.raises(ConfigurationError, match="close_timeout"):
            get_config(config_path=path, env_reader=EnvReader(env={}))

    def test_unknown_verbosity_raises(self) -> None:
        """Verbosity must be an ffmpeg log level name."""
        with pytest.raises(ConfigurationError, match="verbosity"):
            get_config(verbosity="chatty", env_reader=EnvReader(env={}))
