"""Loopback TCP side-channel into a spawned process.

A process has one standard input. To feed a second live source (audio
next to video on stdin), the host listens on an ephemeral loopback port,
passes ``tcp://127.0.0.1:<port>`` to ffmpeg as another input, and writes
into the connection ffmpeg opens.
"""

from __future__ import annotations

import contextvars
import logging
import socket
import threading
import time
from typing import BinaryIO

from rawpipe.exceptions import ChannelEstablishmentTimeout, IOFailure
from rawpipe.process import ProcessHandle

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"

# How often the accept loop checks for a stop request
_ACCEPT_POLL_INTERVAL = 0.1


class LoopbackChannel:
    """One-connection TCP listener bound to an ephemeral loopback port.

    The socket is bound and listening as soon as the object exists, so the
    URL can be handed to a process before it is spawned.
    """

    def __init__(self, host: str = LOOPBACK_HOST) -> None:
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._server.bind((host, 0))
            self._server.listen(1)
            self._server.settimeout(_ACCEPT_POLL_INTERVAL)
        except OSError:
            self._server.close()
            raise
        self.host, self.port = self._server.getsockname()[:2]

        self._connection: socket.socket | None = None
        self._stream: BinaryIO | None = None
        self._accept_error: OSError | None = None
        self._accepted = threading.Event()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False
        # Orders the accept handoff against close()
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def stream(self) -> BinaryIO | None:
        """Writable binary stream over the accepted connection."""
        return self._stream

    def start_accepting(self) -> None:
        """Accept the inbound connection on a background thread."""
        if self._thread is not None:
            return
        ctx = contextvars.copy_context()
        self._thread = threading.Thread(
            target=ctx.run,
            args=(self._accept,),
            name=f"rawpipe-accept-{self.port}",
            daemon=True,
        )
        self._thread.start()

    def _accept(self) -> None:
        try:
            while not self._stop.is_set():
                try:
                    connection, peer = self._server.accept()
                except TimeoutError:
                    continue
                with self._lock:
                    if self._stop.is_set():
                        connection.close()
                        logger.debug(
                            "Dropped side-channel connection from %s after close",
                            peer,
                        )
                        return
                    connection.settimeout(None)
                    self._connection = connection
                    self._stream = connection.makefile("wb")
                logger.debug(
                    "Side-channel on port %d connected from %s", self.port, peer
                )
                return
        except OSError as e:
            if not self._stop.is_set():
                self._accept_error = e
                logger.debug("Side-channel accept failed: %s", e)
        finally:
            self._accepted.set()

    def wait_connected(
        self,
        timeout: float,
        process: ProcessHandle | None = None,
    ) -> BinaryIO:
        """Block until the process connects.

        Args:
            timeout: Seconds to wait.
            process: If given, stop waiting as soon as it exits.

        Returns:
            The writable stream over the accepted connection.

        Raises:
            ChannelEstablishmentTimeout: If no connection arrives in time,
                or the process exits first.
            IOFailure: If accepting failed.
        """
        self.start_accepting()
        deadline = time.monotonic() + timeout
        while not self._accepted.wait(_ACCEPT_POLL_INTERVAL):
            diagnostics = process.diagnostic_tail() if process is not None else None
            if process is not None and not process.is_running():
                raise ChannelEstablishmentTimeout(
                    f"Process exited (status {process.returncode}) before "
                    f"connecting to {self.url}",
                    timeout=timeout,
                    diagnostics=diagnostics,
                )
            if time.monotonic() >= deadline:
                raise ChannelEstablishmentTimeout(
                    f"No connection to {self.url} within {timeout}s",
                    timeout=timeout,
                    diagnostics=diagnostics,
                )

        if self._stream is None:
            raise IOFailure(
                f"Side-channel {self.url} failed to accept: {self._accept_error}"
            )
        return self._stream

    def close(self) -> None:
        """Close the connection and the listener, then join the accept thread.

        Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._stop.set()
            stream, connection = self._stream, self._connection

        if stream is not None:
            try:
                stream.close()
            except OSError as e:
                logger.debug("Side-channel stream close failed: %s", e)
        if connection is not None:
            try:
                connection.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # peer already gone
            connection.close()
        self._server.close()

        if self._thread is not None:
            self._thread.join(timeout=2.0)
            if self._thread.is_alive():
                logger.error(
                    "Side-channel accept thread failed to terminate. "
                    "Thread will be abandoned (potential leak)."
                )
