"""Signed little-endian PCM audio frames."""

from __future__ import annotations

from rawpipe.exceptions import ConfigurationError
from rawpipe.frames.buffer import FrameBuffer, LoadPolicy

SUPPORTED_BIT_DEPTHS = (16, 24, 32)
DEFAULT_FRAME_SAMPLES = 1024


def validate_bit_depth(bit_depth: int) -> int:
    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise ConfigurationError(
            f"bit depth must be one of {SUPPORTED_BIT_DEPTHS}, got {bit_depth}"
        )
    return bit_depth


def pcm_format(bit_depth: int) -> str:
    """ffmpeg raw format name for signed little-endian PCM, e.g. "s16le"."""
    return f"s{validate_bit_depth(bit_depth)}le"


class AudioFrame(FrameBuffer):
    """A block of interleaved PCM samples.

    Capacity is ``samples * channels * bit_depth / 8``. Under the tolerant
    policy a short final read is cut down to whole samples; a trailing
    partial sample is discarded.
    """

    def __init__(
        self,
        samples: int,
        channels: int,
        bit_depth: int = 16,
        policy: LoadPolicy = LoadPolicy.TOLERANT,
    ) -> None:
        validate_bit_depth(bit_depth)
        if samples <= 0:
            raise ConfigurationError(f"sample count must be positive, got {samples}")
        if channels <= 0:
            raise ConfigurationError(
                f"channel count must be positive, got {channels}"
            )
        self.samples = samples
        self.channels = channels
        self.bit_depth = bit_depth
        self.bytes_per_sample = bit_depth // 8
        frame_bytes = channels * self.bytes_per_sample
        super().__init__(samples * frame_bytes, policy=policy, alignment=frame_bytes)

    @property
    def loaded_samples(self) -> int:
        """Samples per channel held by the current payload."""
        return self.length // (self.channels * self.bytes_per_sample)

    def get_sample(self, sample: int, channel: int) -> memoryview:
        """Return the raw bytes of one sample on one channel.

        Raises:
            IndexError: If the sample or channel is out of range.
        """
        if not 0 <= channel < self.channels:
            raise IndexError(f"channel {channel} out of range")
        if not 0 <= sample < self.loaded_samples:
            raise IndexError(f"sample {sample} out of range")
        index = (sample * self.channels + channel) * self.bytes_per_sample
        return self.raw_data[index : index + self.bytes_per_sample]

    def get_sample_value(self, sample: int, channel: int) -> int:
        """Return one sample decoded as a signed integer."""
        return int.from_bytes(
            self.get_sample(sample, channel), byteorder="little", signed=True
        )
