"""Builders that turn rate-control choices into EncoderOptions.

Each builder starts from a sensible rate-control mode; call one of the
set_* methods to switch modes, then create() to get the options.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field

from rawpipe.encoding.options import EncoderOptions
from rawpipe.exceptions import ConfigurationError


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ConfigurationError(
            f"{name} must be between {low} and {high}, got {value}"
        )


class EncoderOptionsBuilder(BaseModel):
    """Base class for per-encoder builders."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    format: str
    quality_settings: str = ""

    @property
    def name(self) -> str:
        raise NotImplementedError

    def _arguments(self) -> list[str]:
        return [self.quality_settings] if self.quality_settings else []

    def create(self) -> EncoderOptions:
        """Build the options for the current configuration."""
        return EncoderOptions(
            format=self.format,
            encoder_name=self.name,
            encoder_arguments=" ".join(self._arguments()),
        )


class H264Preset(enum.Enum):
    ULTRAFAST = "ultrafast"
    SUPERFAST = "superfast"
    VERYFAST = "veryfast"
    FASTER = "faster"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"
    SLOWER = "slower"
    VERYSLOW = "veryslow"


class H264Tune(enum.Enum):
    AUTO = "auto"
    FILM = "film"
    ANIMATION = "animation"
    GRAIN = "grain"
    STILLIMAGE = "stillimage"
    FASTDECODE = "fastdecode"
    ZEROLATENCY = "zerolatency"


class H264Profile(enum.Enum):
    AUTO = "auto"
    BASELINE = "baseline"
    MAIN = "main"
    HIGH = "high"
    HIGH10 = "high10"
    HIGH422 = "high422"
    HIGH444 = "high444"


class H264Encoder(EncoderOptionsBuilder):
    """libx264. Defaults to constant quality (CRF 22), medium preset."""

    format: str = "mp4"
    preset: H264Preset = H264Preset.MEDIUM
    tune: H264Tune = H264Tune.AUTO
    profile: H264Profile = H264Profile.AUTO
    quality_settings: str = "-crf 22.00"

    @property
    def name(self) -> str:
        return "libx264"

    def set_cqp(self, crf: float = 22) -> None:
        """Constant quality. ``crf`` is 0 (lossless) to 51."""
        _check_range("crf", crf, 0, 51)
        self.quality_settings = f"-crf {crf:.2f}"

    def set_cbr(self, bitrate: str, bufsize: str) -> None:
        """Constant bitrate, e.g. bitrate="1M", bufsize="2M"."""
        self.quality_settings = (
            f"-x264-params nal-hrd=cbr -b:v {bitrate} -minrate {bitrate} "
            f"-maxrate {bitrate} -bufsize {bufsize}"
        )

    def set_vbv(
        self, crf: float, max_bitrate: str, bufsize: str, crf_max: float = -1
    ) -> None:
        """Constrained quality: CRF raised when ``max_bitrate`` is exceeded."""
        _check_range("crf", crf, 0, 51)
        self.quality_settings = (
            f"-crf {crf:.2f} -maxrate {max_bitrate} -bufsize {bufsize} "
            f"-crf_max {crf_max:g}"
        )

    def set_abr(self, avg_bitrate: str) -> None:
        """Average bitrate."""
        self.quality_settings = f"-b:v {avg_bitrate}"

    def _arguments(self) -> list[str]:
        args = super()._arguments()
        args.append(f"-preset {self.preset.value}")
        if self.tune is not H264Tune.AUTO:
            args.append(f"-tune {self.tune.value}")
        if self.profile is not H264Profile.AUTO:
            args.append(f"-profile:v {self.profile.value}")
        return args


class VP9Quality(enum.Enum):
    GOOD = "good"
    BEST = "best"
    REALTIME = "realtime"


class VP9Tune(enum.Enum):
    DEFAULT = "default"
    SCREEN = "screen"
    FILM = "film"


class VP9Encoder(EncoderOptionsBuilder):
    """libvpx-vp9 in WebM. Defaults to constant quality (CRF 31)."""

    format: str = "webm"
    quality: VP9Quality = VP9Quality.GOOD
    tune: VP9Tune = VP9Tune.DEFAULT
    cpu_used: int | None = Field(default=None, ge=-8, le=8)
    row_based_multithreading: bool = False
    quality_settings: str = "-crf 31 -b:v 0"

    @property
    def name(self) -> str:
        return "libvpx-vp9"

    def set_cqp(self, crf: int = 31) -> None:
        """Constant quality. ``crf`` is 0 to 63."""
        _check_range("crf", crf, 0, 63)
        self.quality_settings = f"-crf {crf} -b:v 0"

    def set_constrained_quality(self, crf: int, max_bitrate: str) -> None:
        """Constant quality capped at ``max_bitrate``."""
        _check_range("crf", crf, 0, 63)
        self.quality_settings = f"-crf {crf} -b:v {max_bitrate}"

    def set_cvbr(
        self, target_bitrate: str, min_bitrate: str, max_bitrate: str
    ) -> None:
        """Constrained variable bitrate."""
        self.quality_settings = (
            f"-minrate {min_bitrate} -b:v {target_bitrate} -maxrate {max_bitrate}"
        )

    def set_abr(self, bitrate: str) -> None:
        self.quality_settings = f"-b:v {bitrate}"

    def set_cbr(self, bitrate: str) -> None:
        self.quality_settings = (
            f"-minrate {bitrate} -maxrate {bitrate} -b:v {bitrate}"
        )

    def set_lossless(self) -> None:
        self.quality_settings = "-lossless 1"

    def _arguments(self) -> list[str]:
        args = super()._arguments()
        args.append(f"-tune-content {self.tune.value}")
        args.append(f"-deadline {self.quality.value}")
        if self.cpu_used is not None:
            args.append(f"-cpu-used {self.cpu_used}")
        if self.row_based_multithreading:
            args.append("-row-mt 1")
        return args


class AACEncoder(EncoderOptionsBuilder):
    """Native AAC in M4A. Defaults to 128k constant bitrate."""

    format: str = "m4a"
    quality_settings: str = "-b:a 128k"

    @property
    def name(self) -> str:
        return "aac"

    def set_cbr(self, bitrate: str = "128k") -> None:
        self.quality_settings = f"-b:a {bitrate}"


class _ResamplingAudioBuilder(EncoderOptionsBuilder):
    channel_count: int | None = Field(default=None, ge=1)
    sample_rate: int | None = Field(default=None, ge=1)

    def _arguments(self) -> list[str]:
        args = super()._arguments()
        if self.channel_count is not None:
            args.append(f"-ac {self.channel_count}")
        if self.sample_rate is not None:
            args.append(f"-ar {self.sample_rate}")
        return args


class MP3Encoder(_ResamplingAudioBuilder):
    """libmp3lame. Defaults to VBR quality 4."""

    format: str = "mp3"
    quality_settings: str = "-q:a 4"

    @property
    def name(self) -> str:
        return "libmp3lame"

    def set_cbr(self, bitrate: str) -> None:
        self.quality_settings = f"-b:a {bitrate}"

    def set_abr(self, avg_bitrate: str) -> None:
        self.quality_settings = f"-b:a {avg_bitrate} -abr 1"

    def set_cqp(self, qscale: int = 4) -> None:
        """VBR quality, 0 (best) to 9."""
        _check_range("qscale", qscale, 0, 9)
        self.quality_settings = f"-q:a {qscale}"


class OpusApplication(enum.Enum):
    VOIP = "voip"
    AUDIO = "audio"
    LOWDELAY = "lowdelay"


class OpusEncoder(_ResamplingAudioBuilder):
    """libopus in Ogg. Defaults to 128k VBR."""

    format: str = "ogg"
    application: OpusApplication = OpusApplication.AUDIO
    compression_level: int = Field(default=10, ge=0, le=10)
    quality_settings: str = "-b:a 128k -vbr on"

    @property
    def name(self) -> str:
        return "libopus"

    def set_cbr(self, bitrate: str) -> None:
        self.quality_settings = f"-b:a {bitrate} -vbr off"

    def set_vbr(self, bitrate: str = "128k") -> None:
        self.quality_settings = f"-b:a {bitrate} -vbr on"

    def set_cvbr(self, bitrate: str = "128k") -> None:
        self.quality_settings = f"-b:a {bitrate} -vbr constrained"

    def _arguments(self) -> list[str]:
        args = super()._arguments()
        args.append(f"-application {self.application.value}")
        args.append(f"-compression_level {self.compression_level}")
        return args


class VorbisEncoder(EncoderOptionsBuilder):
    """libvorbis in Ogg. Defaults to quality 3."""

    format: str = "ogg"
    quality_settings: str = "-q:a 3.00"

    @property
    def name(self) -> str:
        return "libvorbis"

    def set_cbr(self, bitrate: str) -> None:
        self.quality_settings = f"-b:a {bitrate}"

    def set_cqp(self, q: float = 3) -> None:
        """VBR quality, -1 to 10."""
        _check_range("q", q, -1, 10)
        self.quality_settings = f"-q:a {q:.2f}"
