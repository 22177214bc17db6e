"""Exception hierarchy for rawpipe.

Errors are split into two families so callers can tell bugs from
environment failures:

- UsageError: programmer misuse (bad parameters, calling a session method
  in the wrong state). These are never retried.
- RawpipeError: the environment let us down (missing executable, broken
  pipe, garbage probe output, side-channel never connected). These may be
  worth reporting to a user or retrying.
"""

from __future__ import annotations

from pathlib import Path


class UsageError(Exception):
    """Base class for programmer errors."""


class ConfigurationError(UsageError, ValueError):
    """Raised when a parameter or configuration value is invalid.

    Always raised before any external process is started.
    """


class InvalidSessionState(UsageError):
    """Raised when a session transition is attempted from the wrong state.

    Attributes:
        state: Name of the state the session was in.
        operation: The operation that was attempted.
    """

    def __init__(
        self,
        message: str,
        state: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.state = state
        self.operation = operation
        super().__init__(message)


class AlreadyLoaded(InvalidSessionState):
    """Raised when metadata is loaded twice on the same reader."""


class RawpipeError(Exception):
    """Base class for environment errors."""


class SpawnFailure(RawpipeError):
    """Raised when an external program cannot be started.

    Attributes:
        program: The executable that failed to start.
    """

    def __init__(self, message: str, program: str | Path | None = None) -> None:
        self.program = str(program) if program is not None else None
        super().__init__(message)


class ToolNotFoundError(SpawnFailure):
    """Raised when ffmpeg or ffprobe cannot be located."""


class IOFailure(RawpipeError):
    """Raised when a pipe or socket breaks in the middle of a transfer.

    Attributes:
        diagnostics: Last lines the subprocess wrote to its diagnostic
            stream, if they were captured.
    """

    def __init__(self, message: str, diagnostics: list[str] | None = None) -> None:
        self.diagnostics = diagnostics or []
        super().__init__(message)


class ProbeOutputUnparseable(RawpipeError):
    """Raised when the prober output is not a valid JSON document."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = str(path) if path is not None else None
        super().__init__(message)


class MetadataParseFailure(RawpipeError):
    """Raised when the authoritative stream is missing or malformed.

    Only raised when the caller asked for strict metadata parsing.
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = str(path) if path is not None else None
        super().__init__(message)


class ChannelEstablishmentTimeout(RawpipeError):
    """Raised when the transcoder never connects to the loopback channel.

    Attributes:
        timeout: Seconds waited before giving up.
        diagnostics: Tail of the transcoder's diagnostic output.
    """

    def __init__(
        self,
        message: str,
        timeout: float,
        diagnostics: list[str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.diagnostics = diagnostics or []
        super().__init__(message)
