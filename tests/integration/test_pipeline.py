"""End-to-end tests that decode and encode through real ffmpeg processes."""

import io
from pathlib import Path

import pytest
from click.testing import CliRunner

from rawpipe.cli import main
from rawpipe.encoding import EncoderOptions
from rawpipe.exceptions import MetadataParseFailure, ProbeOutputUnparseable
from rawpipe.frames import AudioFrame, VideoFrame
from rawpipe.media import (
    AudioReader,
    AudioVideoWriter,
    AudioWriter,
    VideoReader,
    VideoWriter,
    convert_file,
)
from rawpipe.probe import MediaKind, probe
from rawpipe.progress import attach

pytestmark = pytest.mark.integration

FRAME_BYTES = 64 * 48 * 3
LOSSLESS_VIDEO = EncoderOptions(format="matroska", encoder_name="ffv1")
PCM_AUDIO = EncoderOptions(format="wav", encoder_name="pcm_s16le")


class TestProbe:
    """Tests for probing generated clips."""

    def test_video_metadata(self, video_clip: Path) -> None:
        """Geometry, rate and frame count should match the generated clip."""
        metadata = probe(video_clip, MediaKind.VIDEO, ignore_stream_errors=False)

        assert (metadata.width, metadata.height) == (64, 48)
        assert metadata.avg_frame_rate == pytest.approx(10.0)
        assert metadata.codec == "ffv1"
        assert 9 <= metadata.predicted_frame_count <= 11

    def test_audio_metadata(self, audio_clip: Path) -> None:
        """Rate, channels and bit depth should match the generated tone."""
        metadata = probe(audio_clip, MediaKind.AUDIO, ignore_stream_errors=False)

        assert metadata.sample_rate == 8000
        assert metadata.channels == 1
        assert metadata.bit_depth == 16
        assert metadata.predicted_sample_count == pytest.approx(8000, abs=10)

    def test_not_media(self, tmp_path: Path) -> None:
        """Strict probing of a file ffprobe cannot read should raise."""
        path = tmp_path / "notes.txt"
        path.write_text("not a media file\n")

        with pytest.raises((MetadataParseFailure, ProbeOutputUnparseable)):
            probe(path, MediaKind.VIDEO, ignore_stream_errors=False)


class TestVideoPipeline:
    """Tests for reading and writing raw video."""

    def test_reads_every_frame(self, video_clip: Path) -> None:
        """Every decoded frame should be a full RGB24 frame."""
        with VideoReader(video_clip) as reader:
            reader.load_metadata()
            reader.open_read()
            lengths = [frame.length for frame in reader.frames()]
            assert reader.close() == 0

        assert len(lengths) == 10
        assert set(lengths) == {FRAME_BYTES}

    def test_seek(self, video_clip: Path) -> None:
        """Opening at an offset should skip the frames before it."""
        with VideoReader(video_clip) as reader:
            reader.load_metadata()
            reader.open_read(offset_seconds=0.5)
            count = sum(1 for _ in reader.frames())

        assert 4 <= count <= 6

    def test_round_trip(self, video_clip: Path, tmp_path: Path) -> None:
        """Frames read from one file should encode into another."""
        output = tmp_path / "copy.mkv"
        with VideoReader(video_clip) as reader:
            metadata = reader.load_metadata()
            writer = VideoWriter(
                output,
                metadata.width,
                metadata.height,
                metadata.avg_frame_rate,
                LOSSLESS_VIDEO,
            )
            reader.open_read()
            with writer:
                writer.open_write()
                for frame in reader.frames():
                    writer.write_frame(frame)
                assert writer.close() == 0

        copied = probe(output, MediaKind.VIDEO, ignore_stream_errors=False)
        assert (copied.width, copied.height) == (64, 48)
        assert 9 <= copied.predicted_frame_count <= 11

    def test_copy_to(self, video_clip: Path, tmp_path: Path) -> None:
        """copy_to() should move the whole decoded stream."""
        output = tmp_path / "copy.mkv"
        reader = VideoReader(video_clip)
        reader.load_metadata()
        writer = VideoWriter(output, 64, 48, 10, LOSSLESS_VIDEO)

        reader.open_read()
        writer.open_write()
        copied = reader.copy_to(writer)
        reader.close()

        assert writer.close() == 0
        assert copied == 10 * FRAME_BYTES

    def test_stream_destination(self, video_clip: Path) -> None:
        """Encoded output should be relayed into a binary stream."""
        destination = io.BytesIO()
        with VideoReader(video_clip) as reader:
            reader.load_metadata()
            reader.open_read()
            with VideoWriter(destination, 64, 48, 10, LOSSLESS_VIDEO) as writer:
                writer.open_write()
                reader.copy_to(writer)
                assert writer.close() == 0

        # EBML header of a Matroska file
        assert destination.getvalue()[:4] == b"\x1a\x45\xdf\xa3"


class TestAudioPipeline:
    """Tests for reading and writing raw PCM."""

    def test_sample_count(self, audio_clip: Path) -> None:
        """Reading the whole tone should yield every sample."""
        with AudioReader(audio_clip) as reader:
            reader.load_metadata()
            reader.open_read(bit_depth=16)
            total = sum(block.loaded_samples for block in reader.frames(1000))

        assert total == 8000
        assert reader.current_sample_offset == 8000

    def test_round_trip_is_lossless(self, audio_clip: Path, tmp_path: Path) -> None:
        """PCM written to WAV should read back byte for byte."""
        output = tmp_path / "copy.wav"

        original = bytearray()
        with AudioReader(audio_clip) as reader:
            reader.load_metadata()
            reader.open_read()
            with AudioWriter(output, 1, 8000, 16, PCM_AUDIO) as writer:
                writer.open_write()
                for block in reader.frames(512):
                    original += block.raw_data
                    writer.write_frame(block)
                assert writer.close() == 0

        copied = bytearray()
        with AudioReader(output) as reader:
            reader.load_metadata()
            reader.open_read()
            for block in reader.frames(512):
                copied += block.raw_data

        assert copied == original


class TestAudioVideoWriter:
    """Tests for the combined writer."""

    def test_muxes_both_streams(self, tmp_path: Path) -> None:
        """The output should contain one audio and one video stream."""
        output = tmp_path / "muxed.mkv"
        audio_options = EncoderOptions(format="matroska", encoder_name="pcm_s16le")
        writer = AudioVideoWriter(
            output,
            64,
            48,
            10,
            1,
            8000,
            16,
            video_options=LOSSLESS_VIDEO,
            audio_options=audio_options,
        )
        audio = AudioFrame(800, 1, 16)
        audio.fill(bytes(audio.capacity))

        with writer:
            writer.open_write()
            for _ in range(10):
                writer.write_audio_frame(audio)
            frame = VideoFrame(64, 48)
            frame.fill(bytes(FRAME_BYTES))
            for _ in range(10):
                writer.write_video_frame(frame)
            assert writer.close() == 0

        metadata = probe(output, MediaKind.VIDEO, ignore_stream_errors=False)
        assert metadata.first_video_stream() is not None
        audio_stream = metadata.first_audio_stream()
        assert audio_stream is not None
        assert audio_stream.sample_rate == 8000


class TestConvert:
    """Tests for one-shot conversion with progress."""

    def test_convert_with_progress(self, audio_clip: Path, tmp_path: Path) -> None:
        """Progress should be reported while the conversion runs."""
        output = tmp_path / "tone.wav"
        percents: list[float] = []

        handle = convert_file(audio_clip, output, PCM_AUDIO, kind=MediaKind.AUDIO)
        subscription = attach(handle, 1.0)
        subscription.subscribe(percents.append)

        assert handle.wait_exit(timeout=60) == 0
        assert subscription.wait_closed(timeout=10)
        assert output.exists()
        assert all(0.0 <= p <= 100.0 for p in percents)


class TestCommand:
    """Tests for the rawpipe command against real tools."""

    def test_reencode(self, video_clip: Path, tmp_path: Path, require_encoder) -> None:
        """The command should re-encode every frame with H.264."""
        require_encoder("libx264")
        output = tmp_path / "out.mp4"

        result = CliRunner().invoke(main, [str(video_clip), str(output)])

        assert result.exit_code == 0, result.output
        assert "Wrote 10 frames" in result.output
        metadata = probe(output, MediaKind.VIDEO, ignore_stream_errors=False)
        assert metadata.codec == "h264"
