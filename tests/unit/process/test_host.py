"""Unit tests for process spawning and supervision."""

import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from rawpipe.exceptions import SpawnFailure
from rawpipe.process import (
    IOMode,
    SpawnOptions,
    default_spawn_options,
    spawn,
    split_arguments,
)

PYTHON = sys.executable


def _python(script: str, io_mode: IOMode, **kwargs):
    return spawn(PYTHON, ["-c", script], io_mode, SpawnOptions(), **kwargs)


class TestSpawnCommandLine:
    """Tests for how spawn() builds the command line."""

    def test_verbosity_adds_loglevel(self) -> None:
        """A verbosity should be passed as -loglevel before the arguments."""
        with patch("rawpipe.process.host.subprocess.Popen") as mock_popen:
            mock_popen.return_value.stderr = None
            spawn(
                "/usr/bin/ffmpeg",
                ["-i", "in.mp4"],
                IOMode.STDOUT,
                SpawnOptions(verbosity="error"),
            )

        cmd = mock_popen.call_args.args[0]
        assert cmd == ["/usr/bin/ffmpeg", "-loglevel", "error", "-i", "in.mp4"]

    def test_no_verbosity_leaves_arguments(self) -> None:
        """Without verbosity the arguments should pass through untouched."""
        with patch("rawpipe.process.host.subprocess.Popen") as mock_popen:
            mock_popen.return_value.stderr = None
            spawn(Path("/usr/bin/ffmpeg"), ["-version"], IOMode.NONE, SpawnOptions())

        assert mock_popen.call_args.args[0] == ["/usr/bin/ffmpeg", "-version"]

    def test_uncaptured_channels_go_to_devnull(self) -> None:
        """Uncaptured channels should be discarded unless show_output is set."""
        with patch("rawpipe.process.host.subprocess.Popen") as mock_popen:
            mock_popen.return_value.stderr = None
            spawn("ffmpeg", [], IOMode.STDOUT, SpawnOptions())

        kwargs = mock_popen.call_args.kwargs
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert kwargs["stdout"] == subprocess.PIPE
        assert kwargs["stderr"] == subprocess.DEVNULL

    def test_show_output_inherits_console(self) -> None:
        """show_output should leave uncaptured stdout/stderr inherited."""
        with patch("rawpipe.process.host.subprocess.Popen") as mock_popen:
            mock_popen.return_value.stderr = None
            spawn("ffmpeg", [], IOMode.NONE, SpawnOptions(show_output=True))

        kwargs = mock_popen.call_args.kwargs
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert kwargs["stdout"] is None
        assert kwargs["stderr"] is None

    def test_default_options_come_from_config(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Default spawn options should read the configured verbosity."""
        monkeypatch.setenv("RAWPIPE_VERBOSITY", "warning")
        assert default_spawn_options() == SpawnOptions(verbosity="warning")

    def test_missing_executable_raises_spawn_failure(self, tmp_path: Path) -> None:
        """A program that cannot start should raise SpawnFailure."""
        missing = tmp_path / "no-such-ffmpeg"
        with pytest.raises(SpawnFailure) as exc_info:
            spawn(missing, [], IOMode.NONE, SpawnOptions())
        assert exc_info.value.program == str(missing)


class TestProcessHandle:
    """Tests for ProcessHandle against real child processes."""

    def test_reads_stdout(self) -> None:
        """Captured stdout should be readable through the handle."""
        handle = _python("print('hello')", IOMode.STDOUT)
        output = handle.read_output(timeout=10)

        assert output.strip() == b"hello"
        assert handle.returncode == 0
        assert not handle.is_running()

    def test_wait_exit_timeout_returns_none(self) -> None:
        """wait_exit() should return None while the process keeps running."""
        handle = _python("import time; time.sleep(30)", IOMode.NONE)
        try:
            assert handle.wait_exit(timeout=0.1) is None
            assert handle.is_running()
        finally:
            handle.terminate()
            handle.wait_exit(timeout=10)
        assert not handle.is_running()

    def test_terminate_after_exit_is_harmless(self) -> None:
        """Terminating an exited process should do nothing."""
        handle = _python("pass", IOMode.NONE)
        assert handle.wait_exit(timeout=10) == 0
        handle.terminate()
        assert handle.returncode == 0

    def test_diagnostics_are_drained_and_tailed(self) -> None:
        """stderr lines should be kept in a bounded tail."""
        script = (
            "import sys\n"
            "for i in range(10):\n"
            "    sys.stderr.write(f'line {i}\\n')\n"
        )
        handle = _python(script, IOMode.STDERR, tail_lines=3)
        handle.wait_exit(timeout=10)

        assert handle.wait_diagnostics(timeout=10)
        assert handle.join_drain_thread(timeout=10)
        assert handle.diagnostic_tail() == ["line 7", "line 8", "line 9"]

    def test_carriage_returns_split_lines(self) -> None:
        """ffmpeg's \\r-rewritten stats lines should arrive one by one."""
        script = "import sys; sys.stderr.write('a\\rb\\r\\nc\\n')"
        handle = _python(script, IOMode.STDERR)
        handle.wait_exit(timeout=10)
        handle.wait_diagnostics(timeout=10)

        assert handle.diagnostic_tail() == ["a", "b", "c"]

    def test_listeners_receive_lines_and_end(self) -> None:
        """Listeners should see each line and one end notification."""
        handle = _python(
            "import sys; sys.stdin.read(); sys.stderr.write('x\\ny\\n')",
            IOMode.STDIN | IOMode.STDERR,
        )
        lines: list[str] = []
        ended: list[bool] = []
        handle.add_diagnostic_listener(lines.append, lambda: ended.append(True))

        handle.stdin.close()
        handle.wait_exit(timeout=10)
        handle.join_drain_thread(timeout=10)

        assert lines == ["x", "y"]
        assert ended == [True]

    def test_removed_listener_not_called(self) -> None:
        """A removed listener should not receive further lines."""
        handle = _python(
            "import sys; sys.stdin.read(); sys.stderr.write('x\\n')",
            IOMode.STDIN | IOMode.STDERR,
        )
        lines: list[str] = []
        remove = handle.add_diagnostic_listener(lines.append)
        remove()

        handle.stdin.close()
        handle.wait_exit(timeout=10)
        handle.join_drain_thread(timeout=10)

        assert lines == []
        assert handle.diagnostic_tail() == ["x"]

    def test_failing_listener_does_not_stop_draining(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A raising listener should be logged and draining should go on."""
        handle = _python(
            "import sys; sys.stdin.read(); sys.stderr.write('x\\ny\\n')",
            IOMode.STDIN | IOMode.STDERR,
        )

        def broken(line: str) -> None:
            raise RuntimeError("boom")

        handle.add_diagnostic_listener(broken)
        handle.stdin.close()
        handle.wait_exit(timeout=10)
        handle.join_drain_thread(timeout=10)

        assert handle.diagnostic_tail() == ["x", "y"]
        assert "Diagnostic listener failed" in caplog.text

    def test_read_output_timeout_kills(self) -> None:
        """read_output() should kill a process that overruns its timeout."""
        handle = _python("import time; time.sleep(30)", IOMode.STDOUT)
        with pytest.raises(subprocess.TimeoutExpired):
            handle.read_output(timeout=0.2)
        assert not handle.is_running()


class TestSplitArguments:
    """Tests for split_arguments()."""

    def test_splits_shell_style(self) -> None:
        """Quoted values should stay together."""
        assert split_arguments('-preset slow -metadata title="My Movie"') == [
            "-preset",
            "slow",
            "-metadata",
            "title=My Movie",
        ]

    def test_empty_values(self) -> None:
        """None and empty strings should give no arguments."""
        assert split_arguments(None) == []
        assert split_arguments("") == []

    def test_sequence_passthrough(self) -> None:
        """Sequences should be converted to a list of strings."""
        assert split_arguments(("-crf", 23)) == ["-crf", "23"]
