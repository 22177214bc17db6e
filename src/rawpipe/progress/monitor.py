"""Live progress reporting from a transcoder's diagnostic stream."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from rawpipe.exceptions import ConfigurationError, InvalidSessionState
from rawpipe.process import ProcessHandle
from rawpipe.progress.parser import ProgressSample, parse_progress_line

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class HasProcess(Protocol):
    @property
    def process(self) -> ProcessHandle | None: ...


class ProgressSubscription:
    """Completion percentage of one running process.

    Percentages are bounded to [0, 100] but not guaranteed to increase
    strictly; ffmpeg can repeat or slightly regress a timestamp.
    """

    def __init__(self, total_duration_seconds: float) -> None:
        if total_duration_seconds <= 0:
            raise ConfigurationError(
                f"total duration must be positive, got {total_duration_seconds}"
            )
        self.total_duration_seconds = total_duration_seconds
        self.last_percent: float | None = None
        self.last_sample: ProgressSample | None = None
        self._subscribers: list[ProgressCallback] = []
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._detach: Callable[[], None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register ``callback(percent)``.

        Returns:
            A function that unsubscribes the callback.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def feed(self, line: str) -> float | None:
        """Process one diagnostic line.

        Returns:
            The reported percentage, or None if the line had no time=.
        """
        sample = parse_progress_line(line)
        if sample is None:
            return None

        percent = sample.get_percent(self.total_duration_seconds)
        with self._lock:
            self.last_sample = sample
            self.last_percent = percent
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(percent)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)
        return percent

    def close(self) -> None:
        """Stop listening. Safe to call more than once."""
        if self._detach is not None:
            self._detach()
            self._detach = None
        self._closed.set()

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait for the diagnostic stream to end.

        Returns:
            True if the subscription closed within the timeout.
        """
        return self._closed.wait(timeout)

    def _bind(self, handle: ProcessHandle) -> None:
        self._detach = handle.add_diagnostic_listener(self.feed, self._closed.set)


def attach(
    source: ProcessHandle | HasProcess,
    total_duration_seconds: float,
) -> ProgressSubscription:
    """Attach a progress subscription to a process or an open session.

    Args:
        source: A ProcessHandle, or any object exposing one as ``process``
            (readers, writers, sessions).
        total_duration_seconds: Duration that corresponds to 100%.

    Returns:
        A subscription that closes when the diagnostic stream ends.

    Raises:
        ConfigurationError: If the duration is not positive.
        InvalidSessionState: If ``source`` has no running process.
    """
    handle = source if isinstance(source, ProcessHandle) else source.process
    if handle is None:
        raise InvalidSessionState(
            "Cannot attach progress to a session that is not open",
            operation="attach",
        )
    subscription = ProgressSubscription(total_duration_seconds)
    subscription._bind(handle)
    return subscription
