"""A transcoder process plus the channels and state that go with it.

Every reader and writer composes one MediaSession. The session spawns the
process, exposes the pipes units are moved through, and tears everything
down in a fixed order on close:

1. stop accepting I/O (state CLOSING)
2. close stdin and any side-channels so the process sees end of input
3. wait up to ``close_timeout`` seconds for the process to exit
4. kill it if it did not exit, then join the relay and drain threads
"""

from __future__ import annotations

import contextvars
import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Generic, TypeVar

from rawpipe.channels import LoopbackChannel
from rawpipe.config import get_config
from rawpipe.exceptions import ChannelEstablishmentTimeout, IOFailure
from rawpipe.frames import MediaUnit
from rawpipe.logging import next_session_id, session_context
from rawpipe.process import IOMode, ProcessHandle, SpawnOptions, spawn
from rawpipe.session.lifecycle import SessionLifecycle, SessionState

logger = logging.getLogger(__name__)

UnitT = TypeVar("UnitT", bound=MediaUnit)

RELAY_CHUNK_SIZE = 64 * 1024
THREAD_JOIN_TIMEOUT = 5.0


class MediaSession(Generic[UnitT]):
    """Lifecycle of one transcoder process.

    Args:
        media_path: File this session reads or writes, for log context.
        close_timeout: Seconds close() waits for the process to exit before
            killing it. Defaults to configuration.
    """

    def __init__(
        self,
        media_path: Path | str | None = None,
        close_timeout: float | None = None,
    ) -> None:
        self.session_id = next_session_id()
        self.media_path = str(media_path) if media_path is not None else None
        self._close_timeout = close_timeout
        self._lifecycle = SessionLifecycle()
        self._handle: ProcessHandle | None = None
        self._input: BinaryIO | None = None
        self._output: BinaryIO | None = None
        self._channels: list[LoopbackChannel] = []
        self._relay_thread: threading.Thread | None = None
        self._relay_error: BaseException | None = None
        self._relay_stop = threading.Event()
        # A decoder closed early exits non-zero; only encoder failures matter
        self._writing = False

    @property
    def state(self) -> SessionState:
        return self._lifecycle.state

    @property
    def is_open(self) -> bool:
        return self._lifecycle.is_open

    @property
    def process(self) -> ProcessHandle | None:
        """Handle on the running process, or None when not open."""
        return self._handle

    @property
    def input_stream(self) -> BinaryIO | None:
        """The process's stdin while open for writing."""
        return self._input

    @property
    def output_stream(self) -> BinaryIO | None:
        """The process's stdout while open for reading."""
        return self._output

    def require(self, expected: SessionState, operation: str) -> None:
        """Raise InvalidSessionState unless the session is in ``expected``."""
        self._lifecycle.require(expected, operation)

    @contextmanager
    def _context(self) -> Iterator[None]:
        with session_context(self.session_id, self.media_path):
            yield

    def open_read(
        self,
        executable: Path | str,
        arguments: Sequence[str],
        options: SpawnOptions | None = None,
    ) -> ProcessHandle:
        """Spawn a decoder whose stdout this session reads units from.

        Raises:
            InvalidSessionState: If the session is already open.
            SpawnFailure: If the process cannot be started.
        """
        with self._context():
            self._lifecycle.open(SessionState.OPEN_FOR_READING, "open_read")
            try:
                handle = spawn(
                    executable, arguments, IOMode.STDOUT | IOMode.STDERR, options
                )
            except BaseException:
                self._lifecycle.mark_closed()
                raise
            self._handle = handle
            self._output = handle.stdout
            logger.debug("Opened for reading (pid %d)", handle.pid)
            return handle

    def open_write(
        self,
        executable: Path | str,
        arguments: Sequence[str],
        options: SpawnOptions | None = None,
        *,
        destination: BinaryIO | None = None,
        channels: Sequence[LoopbackChannel] = (),
        channel_timeout: float | None = None,
    ) -> ProcessHandle:
        """Spawn an encoder that this session writes units into.

        Args:
            executable: Transcoder to run.
            arguments: Transcoder arguments.
            options: Spawn options.
            destination: If given, the process writes its output to stdout
                and a relay thread copies it into this stream.
            channels: Side-channels the process must connect to before
                this call returns. They are closed with the session.
            channel_timeout: Seconds to wait for each side-channel.
                Defaults to configuration.

        Raises:
            InvalidSessionState: If the session is already open.
            SpawnFailure: If the process cannot be started.
            ChannelEstablishmentTimeout: If a side-channel never connects.
                The process is terminated first.
        """
        with self._context():
            self._lifecycle.open(SessionState.OPEN_FOR_WRITING, "open_write")
            self._channels = list(channels)
            io_mode = IOMode.STDIN | IOMode.STDERR
            if destination is not None:
                io_mode |= IOMode.STDOUT
            try:
                handle = spawn(executable, arguments, io_mode, options)
            except BaseException:
                self._close_channels()
                self._lifecycle.mark_closed()
                raise

            self._handle = handle
            self._input = handle.stdin
            self._writing = True
            if destination is not None:
                self._start_relay(handle, destination)

            if self._channels:
                if channel_timeout is None:
                    channel_timeout = get_config().process.channel_timeout
                for channel in self._channels:
                    channel.start_accepting()
                try:
                    for channel in self._channels:
                        channel.wait_connected(channel_timeout, handle)
                except (ChannelEstablishmentTimeout, IOFailure):
                    logger.warning(
                        "Side-channel not established within %.1fs; aborting",
                        channel_timeout,
                    )
                    self._lifecycle.begin_close()
                    self._teardown(force=True)
                    raise

            logger.debug("Opened for writing (pid %d)", handle.pid)
            return handle

    def read_unit(self, unit: UnitT) -> bool:
        """Refill ``unit`` from the process output.

        Returns:
            False at end of stream.

        Raises:
            InvalidSessionState: If the session is not open for reading.
        """
        self._lifecycle.require(SessionState.OPEN_FOR_READING, "read")
        assert self._output is not None
        return unit.load(self._output)

    def write_unit(self, unit: UnitT, channel: BinaryIO | None = None) -> None:
        """Write ``unit`` to stdin, or to ``channel`` if given.

        Raises:
            InvalidSessionState: If the session is not open for writing.
            IOFailure: If the pipe or socket broke.
        """
        self._lifecycle.require(SessionState.OPEN_FOR_WRITING, "write")
        target = channel if channel is not None else self._input
        assert target is not None
        try:
            unit.write_to(target)
        except OSError as e:
            raise self._io_failure(e) from e

    def write_bytes(
        self, data: bytes | memoryview, channel: BinaryIO | None = None
    ) -> None:
        """Write raw bytes to stdin, or to ``channel`` if given."""
        self._lifecycle.require(SessionState.OPEN_FOR_WRITING, "write")
        target = channel if channel is not None else self._input
        assert target is not None
        try:
            target.write(data)
        except OSError as e:
            raise self._io_failure(e) from e

    def _io_failure(self, error: OSError) -> IOFailure:
        handle = self._handle
        program = handle.program if handle is not None else "process"
        diagnostics = handle.diagnostic_tail() if handle is not None else []
        return IOFailure(f"Pipe to {program} broke: {error}", diagnostics=diagnostics)

    def _start_relay(self, handle: ProcessHandle, destination: BinaryIO) -> None:
        source = handle.stdout
        assert source is not None
        self._relay_stop.clear()
        self._relay_error = None
        ctx = contextvars.copy_context()
        self._relay_thread = threading.Thread(
            target=ctx.run,
            args=(self._relay, source, destination),
            name=f"rawpipe-relay-{handle.pid}",
            daemon=True,
        )
        self._relay_thread.start()

    def _relay(self, source: BinaryIO, destination: BinaryIO) -> None:
        read = getattr(source, "read1", source.read)
        try:
            while not self._relay_stop.is_set():
                chunk = read(RELAY_CHUNK_SIZE)
                if not chunk:
                    break
                destination.write(chunk)
            destination.flush()
        except (ValueError, OSError) as e:
            if not self._relay_stop.is_set():
                self._relay_error = e
                logger.error("Output relay failed: %s", e)

    def _stop_relay(self, thread: threading.Thread) -> None:
        # By now the process has exited, so the relay only has buffered output
        # left. A destination still blocked in write() cannot be interrupted.
        thread.join(THREAD_JOIN_TIMEOUT)
        if not thread.is_alive():
            return
        self._relay_stop.set()
        logger.error(
            "Output relay is blocked writing to its destination; "
            "abandoning thread %s",
            thread.name,
        )
        self._relay_error = TimeoutError(
            f"destination did not accept output within {THREAD_JOIN_TIMEOUT:.1f}s"
        )

    def close(self) -> int | None:
        """Tear the session down.

        Calling close() on a session that is not open is a no-op.

        A relay into a destination stream is joined before close() returns.
        If the destination is still blocked in write() after the join
        timeout, the relay thread is abandoned (it exits once that write
        returns) and IOFailure is raised.

        Returns:
            The process exit status, or None if there was nothing to close.

        Raises:
            IOFailure: If relaying output to a destination stream failed
                or the destination stopped accepting output.
        """
        if not self._lifecycle.begin_close():
            return None
        with self._context():
            returncode = self._teardown()
        if self._relay_error is not None:
            error, self._relay_error = self._relay_error, None
            raise IOFailure(f"Failed to relay output: {error}") from error
        return returncode

    def _teardown(self, force: bool = False) -> int | None:
        handle = self._handle
        returncode: int | None = None

        self._close_stream(self._input, "stdin")
        self._close_channels()
        if self._relay_thread is None:
            # Reader: closing stdout makes a still-running decoder stop.
            self._close_stream(self._output, "stdout")

        if handle is not None:
            if force:
                handle.terminate()
            timeout = self._close_timeout
            if timeout is None:
                timeout = get_config().process.close_timeout
            returncode = handle.wait_exit(timeout)
            if returncode is None:
                logger.warning(
                    "%s (pid %d) did not exit within %.1fs; killing",
                    handle.program,
                    handle.pid,
                    timeout,
                )
                handle.terminate()
                returncode = handle.wait_exit()
            elif returncode != 0 and self._writing and not force:
                handle.wait_diagnostics(THREAD_JOIN_TIMEOUT)
                logger.warning(
                    "%s exited with status %d: %s",
                    handle.program,
                    returncode,
                    " | ".join(handle.diagnostic_tail()[-3:]),
                )

        if self._relay_thread is not None:
            self._stop_relay(self._relay_thread)
            self._relay_thread = None
            self._close_stream(self._output, "stdout")

        if handle is not None and not handle.join_drain_thread(THREAD_JOIN_TIMEOUT):
            logger.error(
                "Stderr reader thread failed to terminate. "
                "Thread will be abandoned (potential leak)."
            )

        self._handle = None
        self._input = None
        self._output = None
        self._writing = False
        self._lifecycle.mark_closed()
        logger.debug("Session closed (exit status %s)", returncode)
        return returncode

    def _close_channels(self) -> None:
        for channel in self._channels:
            channel.close()
        self._channels = []

    @staticmethod
    def _close_stream(stream: BinaryIO | None, name: str) -> None:
        if stream is None:
            return
        try:
            stream.close()
        except OSError as e:
            # Process already gone; nothing left to flush to.
            logger.debug("Closing %s failed: %s", name, e)

    def __enter__(self) -> MediaSession[UnitT]:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
