"""Session lifecycle shared by readers and writers."""

from rawpipe.session.lifecycle import SessionLifecycle, SessionState
from rawpipe.session.session import MediaSession

__all__ = ["MediaSession", "SessionLifecycle", "SessionState"]
