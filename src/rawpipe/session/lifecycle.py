"""Open/close state machine shared by every reader and writer."""

from __future__ import annotations

import enum
import threading

from rawpipe.exceptions import InvalidSessionState


class SessionState(enum.Enum):
    """Lifecycle states of a media session.

    CLOSED -> OPEN_FOR_READING | OPEN_FOR_WRITING -> CLOSING -> CLOSED
    """

    CLOSED = "closed"
    OPEN_FOR_READING = "open_for_reading"
    OPEN_FOR_WRITING = "open_for_writing"
    CLOSING = "closing"


_OPEN_STATES = frozenset({SessionState.OPEN_FOR_READING, SessionState.OPEN_FOR_WRITING})


class SessionLifecycle:
    """Tracks a session's state and rejects invalid transitions."""

    def __init__(self) -> None:
        self._state = SessionState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state in _OPEN_STATES

    def open(self, target: SessionState, operation: str) -> None:
        """Move from CLOSED to an open state.

        Raises:
            InvalidSessionState: If the session is not CLOSED.
        """
        if target not in _OPEN_STATES:
            raise ValueError(f"{target} is not an open state")
        with self._lock:
            if self._state is not SessionState.CLOSED:
                raise InvalidSessionState(
                    f"Cannot {operation}: session is {self._state.value}",
                    state=self._state.value,
                    operation=operation,
                )
            self._state = target

    def require(self, expected: SessionState, operation: str) -> None:
        """Raise InvalidSessionState unless the session is in ``expected``."""
        state = self._state
        if state is not expected:
            raise InvalidSessionState(
                f"Cannot {operation}: session is {state.value}, "
                f"expected {expected.value}",
                state=state.value,
                operation=operation,
            )

    def begin_close(self) -> bool:
        """Enter CLOSING.

        Returns:
            False if the session is already closed or closing, so the
            caller has nothing to tear down.
        """
        with self._lock:
            if self._state in (SessionState.CLOSED, SessionState.CLOSING):
                return False
            self._state = SessionState.CLOSING
            return True

    def mark_closed(self) -> None:
        with self._lock:
            self._state = SessionState.CLOSED
