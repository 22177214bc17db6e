"""Extra input channels into a spawned process."""

from rawpipe.channels.loopback import LOOPBACK_HOST, LoopbackChannel

__all__ = ["LOOPBACK_HOST", "LoopbackChannel"]
