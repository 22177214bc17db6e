"""Fixed-capacity buffers for raw media units.

A unit is one video frame or one block of audio samples. Buffers are
allocated once and refilled for every unit read from (or written to) a
transcoder pipe.
"""

from __future__ import annotations

import enum
from typing import BinaryIO, Protocol, runtime_checkable

from rawpipe.exceptions import ConfigurationError, InvalidSessionState


class LoadPolicy(enum.Enum):
    """How load() treats a stream that ends before the buffer is full.

    STRICT: any short read is end-of-stream; load() returns False and the
        payload is empty.
    TOLERANT: a non-empty short read becomes a truncated final unit and
        load() returns True; only an immediately empty stream returns False.
    """

    STRICT = "strict"
    TOLERANT = "tolerant"


@runtime_checkable
class MediaUnit(Protocol):
    """Capability shared by every unit a session can move through a pipe."""

    def load(self, stream: BinaryIO) -> bool: ...

    def write_to(self, stream: BinaryIO) -> None: ...


def _read_into(stream: BinaryIO, target: memoryview) -> int:
    readinto = getattr(stream, "readinto", None)
    if readinto is not None:
        return readinto(target) or 0
    chunk = stream.read(len(target))
    if not chunk:
        return 0
    target[: len(chunk)] = chunk
    return len(chunk)


class FrameBuffer:
    """Fixed-capacity byte buffer holding one raw media unit.

    The underlying buffer never changes size. After a tolerant short read
    the logical payload (``raw_data``) is shorter than ``capacity``.

    Args:
        capacity: Size of the buffer in bytes.
        policy: Short-read policy.
        alignment: A truncated payload is cut down to a multiple of this
            many bytes. A truncated read shorter than one alignment block
            counts as no data.
    """

    def __init__(
        self,
        capacity: int,
        policy: LoadPolicy = LoadPolicy.TOLERANT,
        alignment: int = 1,
    ) -> None:
        if capacity <= 0:
            raise ConfigurationError(f"capacity must be positive, got {capacity}")
        if alignment <= 0 or capacity % alignment:
            raise ConfigurationError(
                f"alignment {alignment} does not divide capacity {capacity}"
            )
        self._capacity = capacity
        self._alignment = alignment
        self.policy = policy
        self._buffer: bytearray | None = bytearray(capacity)
        self._length = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def length(self) -> int:
        """Number of valid payload bytes from the last load."""
        return self._length

    @property
    def is_truncated(self) -> bool:
        return 0 < self._length < self._capacity

    @property
    def released(self) -> bool:
        return self._buffer is None

    @property
    def raw_data(self) -> memoryview:
        """View of the current payload."""
        return memoryview(self._require_buffer())[: self._length]

    def _require_buffer(self) -> bytearray:
        if self._buffer is None:
            raise InvalidSessionState(
                "Frame buffer has been released", state="released"
            )
        return self._buffer

    def fill(self, data: bytes | bytearray | memoryview) -> None:
        """Copy caller-produced bytes into the buffer as a full unit.

        Raises:
            ConfigurationError: If ``data`` is not exactly ``capacity`` bytes.
        """
        buffer = self._require_buffer()
        if len(data) != self._capacity:
            raise ConfigurationError(
                f"expected {self._capacity} bytes, got {len(data)}"
            )
        buffer[:] = data
        self._length = self._capacity

    def load(self, stream: BinaryIO) -> bool:
        """Fill the buffer from ``stream``.

        Reads until the buffer is full or a read returns no data.

        Returns:
            True if the buffer holds a unit (full, or truncated under the
            tolerant policy), False at end of stream.
        """
        view = memoryview(self._require_buffer())
        self._length = 0
        offset = 0
        while offset < self._capacity:
            received = _read_into(stream, view[offset:])
            if received <= 0:
                break
            offset += received

        if offset == self._capacity:
            self._length = offset
            return True

        if self.policy is LoadPolicy.STRICT:
            return False

        usable = offset - offset % self._alignment
        if usable == 0:
            return False
        self._length = usable
        return True

    def write_to(self, stream: BinaryIO) -> None:
        """Write the current payload to ``stream``."""
        stream.write(self.raw_data)

    def release(self) -> None:
        """Drop the underlying buffer. Further use raises InvalidSessionState."""
        self._buffer = None
        self._length = 0

    def __enter__(self) -> FrameBuffer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
