"""Structured logging module for rawpipe.

Provides configurable logging with JSON format support and file rotation.
Includes session context support so records from background threads can be
traced to the session that started them.
"""

from rawpipe.logging.config import configure_logging
from rawpipe.logging.context import (
    SessionContextFilter,
    get_session_context,
    next_session_id,
    session_context,
)
from rawpipe.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "SessionContextFilter",
    "configure_logging",
    "get_session_context",
    "next_session_id",
    "session_context",
]
