"""Session context for structured logging.

Every open session gets a short id. While a session's methods run, and
inside the background threads it starts, the id and the media file it
serves are available to log records via contextvars.
"""

from __future__ import annotations

import contextvars
import itertools
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_media_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "media_path", default=None
)

_session_counter = itertools.count(1)


def next_session_id() -> str:
    """Allocate a process-unique session id such as "S0003"."""
    return f"S{next(_session_counter):04d}"


@contextmanager
def session_context(
    session_id: str,
    media_path: Path | str | None = None,
) -> Generator[None, None, None]:
    """Context manager that tags log records with a session.

    Args:
        session_id: Session identifier (e.g., "S0001").
        media_path: File the session reads or writes, if any.

    Example:
        with session_context("S0001", "/media/in.mp4"):
            logger.info("Opening decoder")  # record carries the session tag
    """
    id_token = _session_id.set(session_id)
    path_token = _media_path.set(str(media_path) if media_path is not None else None)
    try:
        yield
    finally:
        _session_id.reset(id_token)
        _media_path.reset(path_token)


def get_session_context() -> tuple[str | None, str | None]:
    """Get current session context.

    Returns:
        Tuple of (session_id, media_path), either may be None.
    """
    return _session_id.get(), _media_path.get()


class SessionContextFilter(logging.Filter):
    """Logging filter that injects session context into log records.

    Adds session_id and media_path attributes, plus a compact session_tag
    like "[S0001] " for the text format.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        session_id, media_path = get_session_context()

        record.session_id = session_id
        record.media_path = media_path
        record.session_tag = f"[{session_id}] " if session_id else ""

        return True
