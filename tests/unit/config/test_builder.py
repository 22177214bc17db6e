"""Unit tests for ConfigBuilder, config sources and EnvReader."""

from pathlib import Path

import pytest

from rawpipe.config import (
    ConfigBuilder,
    ConfigSource,
    EnvReader,
    source_from_env,
    source_from_file,
)
from rawpipe.exceptions import ConfigurationError


class TestConfigBuilder:
    """Tests for ConfigBuilder layering."""

    def test_later_sources_win(self) -> None:
        """A later non-None value should replace an earlier one."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(close_timeout=5.0, verbosity="error"))
        builder.apply(ConfigSource(close_timeout=8.0))

        config = builder.build()

        assert config.process.close_timeout == 8.0
        assert config.process.verbosity == "error"

    def test_none_does_not_override(self) -> None:
        """None means 'not specified' and must not clear a value."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(ffmpeg_path=Path("/bin/ffmpeg")))
        builder.apply(ConfigSource(ffmpeg_path=None))

        assert builder.build().tools.ffmpeg == Path("/bin/ffmpeg")

    def test_validation_runs_on_build(self) -> None:
        """Resolved values should be validated."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(thread_queue_size=0))

        with pytest.raises(ConfigurationError, match="thread_queue_size"):
            builder.build()

    def test_invalid_logging_format(self) -> None:
        """Only text and json log formats are accepted."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(logging_format="xml"))

        with pytest.raises(ConfigurationError, match="format"):
            builder.build()


class TestSourceFromFile:
    """Tests for source_from_file()."""

    def test_maps_sections(self) -> None:
        """Each TOML section should map onto its ConfigSource fields."""
        source = source_from_file(
            {
                "tools": {"ffprobe": "/opt/ffprobe"},
                "process": {"channel_timeout": 3, "diagnostic_tail_lines": 50},
                "logging": {"file": "~/rawpipe.log", "include_stderr": True},
            }
        )

        assert source.ffprobe_path == Path("/opt/ffprobe")
        assert source.ffmpeg_path is None
        assert source.channel_timeout == 3
        assert source.diagnostic_tail_lines == 50
        assert source.logging_file == Path("~/rawpipe.log").expanduser()
        assert source.logging_include_stderr is True

    def test_empty_config(self) -> None:
        """An empty file should specify nothing."""
        assert source_from_file({}) == ConfigSource()


class TestSourceFromEnv:
    """Tests for source_from_env() and EnvReader."""

    def test_reads_variables(self, tmp_path: Path) -> None:
        """RAWPIPE_* variables should populate the source."""
        ffmpeg = tmp_path / "ffmpeg"
        ffmpeg.touch()
        reader = EnvReader(
            env={
                "RAWPIPE_FFMPEG_PATH": str(ffmpeg),
                "RAWPIPE_CHANNEL_TIMEOUT": "2.5",
                "RAWPIPE_LOG_LEVEL": "debug",
                "RAWPIPE_LOG_FILE": str(tmp_path / "logs" / "rawpipe.log"),
            }
        )

        source = source_from_env(reader)

        assert source.ffmpeg_path == ffmpeg
        assert source.channel_timeout == 2.5
        assert source.logging_level == "debug"
        assert source.logging_file == tmp_path / "logs" / "rawpipe.log"

    def test_nonexistent_tool_path_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A tool path that does not exist should be ignored with a warning."""
        reader = EnvReader(env={"RAWPIPE_FFPROBE_PATH": str(tmp_path / "nope")})

        assert source_from_env(reader).ffprobe_path is None
        assert "non-existent path" in caplog.text

    def test_invalid_number_falls_back(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Unparseable numbers should log a warning and give the default."""
        reader = EnvReader(env={"RAWPIPE_CLOSE_TIMEOUT": "soon", "N": "x"})

        assert reader.get_float("RAWPIPE_CLOSE_TIMEOUT", 30.0) == 30.0
        assert reader.get_int("N", 4) == 4
        assert "Invalid float value for RAWPIPE_CLOSE_TIMEOUT" in caplog.text

    def test_empty_string_is_unset(self) -> None:
        """Empty strings should be treated as not set."""
        assert EnvReader(env={"RAWPIPE_VERBOSITY": ""}).get_str(
            "RAWPIPE_VERBOSITY", "info"
        ) == "info"
