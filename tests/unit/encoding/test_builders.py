"""Unit tests for encoder options and their builders."""

import pytest
from pydantic import ValidationError

from rawpipe.encoding import (
    AACEncoder,
    AudioEncoderOptions,
    EncoderOptions,
    H264Encoder,
    H264Preset,
    H264Profile,
    H264Tune,
    MP3Encoder,
    OpusApplication,
    OpusEncoder,
    VideoEncoderOptions,
    VorbisEncoder,
    VP9Encoder,
    VP9Quality,
)
from rawpipe.exceptions import ConfigurationError


class TestEncoderOptions:
    """Tests for the EncoderOptions value."""

    def test_argument_list_is_shell_split(self) -> None:
        """Quoted arguments should stay together."""
        options = EncoderOptions(
            format="mp4",
            encoder_name="libx264",
            encoder_arguments='-preset slow -metadata title="My Clip"',
        )
        assert options.argument_list() == [
            "-preset",
            "slow",
            "-metadata",
            "title=My Clip",
        ]

    def test_defaults(self) -> None:
        """Default video and audio options should be H.264/MP4 and MP3."""
        assert VideoEncoderOptions().encoder_name == "libx264"
        assert VideoEncoderOptions().format == "mp4"
        assert AudioEncoderOptions().argument_list() == ["-b:a", "192k"]

    def test_empty_names_rejected(self) -> None:
        """Format and encoder must not be empty."""
        with pytest.raises(ValidationError):
            EncoderOptions(format="", encoder_name="libx264")

    def test_unknown_fields_rejected(self) -> None:
        """Typos in field names should not pass silently."""
        with pytest.raises(ValidationError):
            EncoderOptions(format="mp4", encoder_name="libx264", preset="slow")

    def test_frozen(self) -> None:
        """Options are immutable once built."""
        options = VideoEncoderOptions()
        with pytest.raises(ValidationError):
            options.format = "webm"


class TestH264Encoder:
    """Tests for H264Encoder."""

    def test_default_is_constant_quality(self) -> None:
        """The default should be CRF 22 with the medium preset."""
        options = H264Encoder().create()

        assert options.format == "mp4"
        assert options.encoder_name == "libx264"
        assert options.encoder_arguments == "-crf 22.00 -preset medium"

    def test_tune_and_profile(self) -> None:
        """Non-auto tune and profile should be passed through."""
        builder = H264Encoder(
            preset=H264Preset.SLOW, tune=H264Tune.FILM, profile=H264Profile.HIGH
        )
        builder.set_abr("2M")

        assert builder.create().argument_list() == [
            "-b:v",
            "2M",
            "-preset",
            "slow",
            "-tune",
            "film",
            "-profile:v",
            "high",
        ]

    def test_cbr(self) -> None:
        """CBR should pin min, max and target bitrate."""
        builder = H264Encoder()
        builder.set_cbr("1M", "2M")

        args = builder.create().encoder_arguments
        assert "-x264-params nal-hrd=cbr" in args
        assert "-minrate 1M -maxrate 1M -bufsize 2M" in args

    def test_vbv(self) -> None:
        """Constrained quality should combine CRF and a rate cap."""
        builder = H264Encoder()
        builder.set_vbv(20, "4M", "8M")

        assert builder.quality_settings == (
            "-crf 20.00 -maxrate 4M -bufsize 8M -crf_max -1"
        )

    @pytest.mark.parametrize("crf", [-1, 52])
    def test_crf_out_of_range(self, crf: float) -> None:
        """CRF outside 0..51 should be rejected."""
        with pytest.raises(ConfigurationError):
            H264Encoder().set_cqp(crf)

    def test_container_override(self) -> None:
        """The container can be changed independently of the encoder."""
        assert H264Encoder(format="matroska").create().format == "matroska"


class TestVP9Encoder:
    """Tests for VP9Encoder."""

    def test_default(self) -> None:
        """The default should be CRF 31 with good deadline in WebM."""
        options = VP9Encoder().create()

        assert options.format == "webm"
        assert options.encoder_name == "libvpx-vp9"
        assert options.argument_list() == [
            "-crf",
            "31",
            "-b:v",
            "0",
            "-tune-content",
            "default",
            "-deadline",
            "good",
        ]

    def test_cpu_used_and_row_mt(self) -> None:
        """Speed and threading options should be appended when set."""
        builder = VP9Encoder(
            quality=VP9Quality.REALTIME, cpu_used=8, row_based_multithreading=True
        )
        builder.set_lossless()

        assert builder.create().encoder_arguments == (
            "-lossless 1 -tune-content default -deadline realtime "
            "-cpu-used 8 -row-mt 1"
        )

    def test_cpu_used_range(self) -> None:
        """cpu_used must be between -8 and 8."""
        with pytest.raises(ValidationError):
            VP9Encoder(cpu_used=9)

    def test_crf_range(self) -> None:
        """CRF outside 0..63 should be rejected."""
        with pytest.raises(ConfigurationError):
            VP9Encoder().set_cqp(64)


class TestAudioEncoders:
    """Tests for the audio encoder builders."""

    def test_aac(self) -> None:
        """AAC should default to 128k in M4A."""
        options = AACEncoder().create()
        assert (options.format, options.encoder_name) == ("m4a", "aac")
        assert options.encoder_arguments == "-b:a 128k"

    def test_mp3_resampling(self) -> None:
        """Channel count and sample rate should be appended when set."""
        builder = MP3Encoder(channel_count=1, sample_rate=22050)
        builder.set_cbr("96k")

        assert builder.create().encoder_arguments == "-b:a 96k -ac 1 -ar 22050"

    def test_mp3_quality_range(self) -> None:
        """MP3 VBR quality is 0 to 9."""
        with pytest.raises(ConfigurationError):
            MP3Encoder().set_cqp(10)

    def test_opus(self) -> None:
        """Opus should carry application and compression level."""
        builder = OpusEncoder(application=OpusApplication.VOIP, compression_level=5)
        builder.set_cbr("64k")

        assert builder.create().encoder_arguments == (
            "-b:a 64k -vbr off -application voip -compression_level 5"
        )

    def test_opus_compression_level_validated(self) -> None:
        """Compression level must be between 0 and 10."""
        with pytest.raises(ValidationError):
            OpusEncoder(compression_level=11)

    def test_vorbis(self) -> None:
        """Vorbis quality should be formatted with two decimals."""
        builder = VorbisEncoder()
        builder.set_cqp(5)

        options = builder.create()
        assert (options.format, options.encoder_name) == ("ogg", "libvorbis")
        assert options.encoder_arguments == "-q:a 5.00"
