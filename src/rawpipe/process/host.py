"""Spawning and supervising external transcoder processes.

spawn() starts a program with a chosen set of piped channels and returns a
ProcessHandle. When stderr is captured, a daemon thread drains it from the
moment the process starts so a chatty transcoder can never block on a full
diagnostic pipe while the caller is busy with stdin or stdout.
"""

from __future__ import annotations

import contextvars
import enum
import io
import logging
import shlex
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from rawpipe.config import get_config
from rawpipe.exceptions import SpawnFailure

logger = logging.getLogger(__name__)

DiagnosticListener = Callable[[str], None]
EndListener = Callable[[], None]


class IOMode(enum.Flag):
    """Which standard channels of a spawned process are piped to the host."""

    NONE = 0
    STDIN = enum.auto()
    STDOUT = enum.auto()
    STDERR = enum.auto()


@dataclass(frozen=True)
class SpawnOptions:
    """Per-spawn process options.

    Attributes:
        verbosity: ffmpeg log level passed as "-loglevel <verbosity>". None
            leaves the program's default.
        show_output: Let uncaptured stdout/stderr go to the host console
            instead of the null device.
    """

    verbosity: str | None = None
    show_output: bool = False


def default_spawn_options() -> SpawnOptions:
    """Build SpawnOptions from the current configuration."""
    return SpawnOptions(verbosity=get_config().process.verbosity)


class ProcessHandle:
    """Handle on a spawned process.

    Exposes lifecycle control and the captured diagnostic stream. The raw
    stdin/stdout pipes are available to the session that owns the process.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        program: str,
        tail_lines: int = 200,
    ) -> None:
        self._process = process
        self._program = program
        self._tail: deque[str] = deque(maxlen=tail_lines)
        self._listeners: list[DiagnosticListener] = []
        self._end_listeners: list[EndListener] = []
        self._lock = threading.Lock()
        self._diagnostics_done = threading.Event()
        self._drain_thread: threading.Thread | None = None

        if process.stderr is not None:
            ctx = contextvars.copy_context()
            self._drain_thread = threading.Thread(
                target=ctx.run,
                args=(self._drain_stderr,),
                name=f"rawpipe-stderr-{process.pid}",
                daemon=True,
            )
            self._drain_thread.start()
        else:
            self._diagnostics_done.set()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def program(self) -> str:
        return self._program

    @property
    def args(self) -> list[str]:
        return list(self._process.args)

    @property
    def returncode(self) -> int | None:
        """Exit status, or None while the process is still running."""
        return self._process.poll()

    @property
    def stdin(self) -> IO[bytes] | None:
        return self._process.stdin

    @property
    def stdout(self) -> IO[bytes] | None:
        return self._process.stdout

    def is_running(self) -> bool:
        return self._process.poll() is None

    def wait_exit(self, timeout: float | None = None) -> int | None:
        """Wait for the process to exit.

        Args:
            timeout: Seconds to wait. None waits indefinitely.

        Returns:
            The exit status, or None if the process was still running when
            the timeout expired.
        """
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def read_output(self, timeout: float | None = None) -> bytes:
        """Read stdout to the end and wait for the process to exit.

        Only valid for processes spawned without a stderr pipe, since the
        drain thread owns stderr otherwise.

        Raises:
            subprocess.TimeoutExpired: If the process did not finish in
                time. The process is killed first.
        """
        try:
            output, _ = self._process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.terminate()
            self._process.communicate()
            raise
        return output or b""

    def terminate(self) -> None:
        """Force-terminate the process.

        A process that already exited is not an error.
        """
        if self._process.poll() is not None:
            return
        try:
            self._process.kill()
        except (ProcessLookupError, OSError) as e:
            logger.debug("Process %d already gone: %s", self.pid, e)
            return
        logger.warning("Killed %s (pid %d)", self._program, self.pid)

    def add_diagnostic_listener(
        self,
        listener: DiagnosticListener,
        on_end: EndListener | None = None,
    ) -> Callable[[], None]:
        """Register a callback for each diagnostic line.

        Args:
            listener: Called with every line (without line terminator).
            on_end: Called once when the diagnostic stream ends. Called
                immediately if it already ended.

        Returns:
            A function that removes both callbacks.
        """
        with self._lock:
            self._listeners.append(listener)
            already_done = self._diagnostics_done.is_set()
            if on_end is not None and not already_done:
                self._end_listeners.append(on_end)

        if on_end is not None and already_done:
            on_end()

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
                if on_end is not None and on_end in self._end_listeners:
                    self._end_listeners.remove(on_end)

        return remove

    def diagnostic_tail(self) -> list[str]:
        """Return the most recent diagnostic lines, oldest first."""
        with self._lock:
            return list(self._tail)

    def wait_diagnostics(self, timeout: float | None = None) -> bool:
        """Wait until the diagnostic stream has been fully drained.

        Returns:
            True if draining finished within the timeout.
        """
        return self._diagnostics_done.wait(timeout)

    def join_drain_thread(self, timeout: float | None = None) -> bool:
        """Join the stderr drain thread.

        Returns:
            False if the thread is still alive after the timeout.
        """
        if self._drain_thread is None:
            return True
        self._drain_thread.join(timeout)
        return not self._drain_thread.is_alive()

    def _drain_stderr(self) -> None:
        assert self._process.stderr is not None
        # Universal newlines split ffmpeg's "\r"-rewritten stats line too.
        reader = io.TextIOWrapper(
            self._process.stderr, encoding="utf-8", errors="replace", newline=None
        )
        try:
            for raw_line in reader:
                line = raw_line.rstrip("\n")
                if not line:
                    continue
                with self._lock:
                    self._tail.append(line)
                    listeners = list(self._listeners)
                for listener in listeners:
                    try:
                        listener(line)
                    except Exception:
                        logger.exception("Diagnostic listener failed")
        except (ValueError, OSError) as e:
            # Pipe closed or process terminated
            logger.debug("Stderr reader stopped: %s", e)
        finally:
            with self._lock:
                end_listeners = list(self._end_listeners)
                self._end_listeners.clear()
                self._diagnostics_done.set()
            for on_end in end_listeners:
                try:
                    on_end()
                except Exception:
                    logger.exception("Diagnostic end listener failed")

    def __repr__(self) -> str:
        return (
            f"ProcessHandle(program={self._program!r}, pid={self.pid}, "
            f"returncode={self._process.returncode!r})"
        )


def spawn(
    executable: Path | str,
    arguments: Sequence[str],
    io_mode: IOMode = IOMode.STDIN | IOMode.STDOUT | IOMode.STDERR,
    options: SpawnOptions | None = None,
    *,
    tail_lines: int | None = None,
) -> ProcessHandle:
    """Start an external program.

    Args:
        executable: Program to run.
        arguments: Arguments, passed as-is (no shell).
        io_mode: Channels to pipe to the host.
        options: Spawn options; defaults come from configuration.
        tail_lines: Diagnostic lines to keep; defaults from configuration.

    Returns:
        Handle on the running process.

    Raises:
        SpawnFailure: If the program is missing or cannot be executed.
    """
    if options is None:
        options = default_spawn_options()
    if tail_lines is None:
        tail_lines = get_config().process.diagnostic_tail_lines

    cmd = [str(executable)]
    if options.verbosity:
        cmd.extend(["-loglevel", options.verbosity])
    cmd.extend(str(arg) for arg in arguments)

    uncaptured = None if options.show_output else subprocess.DEVNULL
    logger.debug(
        "Spawning: %s",
        shlex.join(cmd),
        extra={"program": str(executable), "io_mode": str(io_mode)},
    )

    try:
        process = subprocess.Popen(  # nosec B603 - args list, no shell
            cmd,
            stdin=subprocess.PIPE if IOMode.STDIN in io_mode else subprocess.DEVNULL,
            stdout=subprocess.PIPE if IOMode.STDOUT in io_mode else uncaptured,
            stderr=subprocess.PIPE if IOMode.STDERR in io_mode else uncaptured,
        )
    except OSError as e:
        raise SpawnFailure(
            f"Failed to start {executable}: {e}", program=executable
        ) from e

    return ProcessHandle(process, str(executable), tail_lines=tail_lines)


def split_arguments(arguments: str | Sequence[str] | None) -> list[str]:
    """Tokenize an encoder argument string the way a POSIX shell would."""
    if not arguments:
        return []
    if isinstance(arguments, str):
        return shlex.split(arguments)
    return [str(arg) for arg in arguments]
