"""JSON output for rawpipe logs.

One object per line, so a session's records can be filtered with ``jq``
on ``context.session_id``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Fields stamped by SessionContextFilter. session_tag only matters to the
# text format.
SESSION_FIELDS = ("session_id", "media_path")
_FILTER_FIELDS = frozenset({*SESSION_FIELDS, "session_tag"})

# Everything a bare LogRecord carries, plus what Formatter.format() adds.
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the ``extra=`` fields and session fields of a record.

    Session fields are read last so an ``extra={"media_path": ...}`` passed
    by a caller cannot shadow the value set by the filter.
    """
    context = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_FIELDS
        and key not in _FILTER_FIELDS
        and not key.startswith("_")
    }
    for field in SESSION_FIELDS:
        value = getattr(record, field, None)
        if value:
            context[field] = value
    return context


class JSONFormatter(logging.Formatter):
    """Format log records as JSON objects.

    Keys: ``timestamp`` (ISO-8601, UTC), ``level``, ``message``, ``logger``
    unless it is the root logger, ``context`` when there is any, and
    ``exception`` with the formatted traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.name and record.name != "root":
            entry["logger"] = record.name

        context = record_context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
