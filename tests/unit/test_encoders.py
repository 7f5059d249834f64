"""Unit tests for encoder collaborators."""

import json

import pytest

from visual_composer.errors import EncoderError
from visual_composer.models import ExportFormat, ExportProfile, Raster
from visual_composer.tools import InMemoryEncoder, PngSequenceEncoder
from visual_composer.tools.clip_assembler import Frame


def make_frame(index, fps=4):
    return Frame(raster=Raster.blank(6, 4, (index * 10, 0, 0)), timestamp=index / fps, index=index)


@pytest.fixture
def profile():
    return ExportProfile(format="webm", quality="480p", fps=4)


class TestInMemoryEncoder:
    """Test the in-memory encoder."""

    @pytest.mark.asyncio
    async def test_collects_frames(self, profile):
        encoder = InMemoryEncoder()
        await encoder.begin(profile, frame_count=3, duration=0.75)
        for index in range(3):
            await encoder.write_frame(make_frame(index))
        handle = await encoder.finish()

        assert handle.frame_count == 3
        assert handle.format == ExportFormat.WEBM
        assert handle.duration == 0.75
        assert handle.location.startswith("memory://")
        assert encoder.finished
        assert [f.index for f in encoder.frames] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_unsupported_format(self, profile):
        """Test an unsupported profile is rejected at begin()."""
        encoder = InMemoryEncoder(supported_formats=[ExportFormat.MP4])
        with pytest.raises(EncoderError, match="webm"):
            await encoder.begin(profile, frame_count=1, duration=0.25)

    @pytest.mark.asyncio
    async def test_out_of_order_frame(self, profile):
        encoder = InMemoryEncoder()
        await encoder.begin(profile, frame_count=2, duration=0.5)
        await encoder.write_frame(make_frame(1))
        with pytest.raises(EncoderError):
            await encoder.write_frame(make_frame(0))

    @pytest.mark.asyncio
    async def test_abort_discards_frames(self, profile):
        encoder = InMemoryEncoder()
        await encoder.begin(profile, frame_count=2, duration=0.5)
        await encoder.write_frame(make_frame(0))
        await encoder.abort()

        assert encoder.aborted
        assert encoder.frames == []


class TestPngSequenceEncoder:
    """Test the PNG sequence encoder."""

    @pytest.mark.asyncio
    async def test_writes_frames_and_manifest(self, tmp_path, profile):
        """Test frames land as numbered PNGs with a timing manifest."""
        encoder = PngSequenceEncoder(output_dir=str(tmp_path), name="trip")
        await encoder.begin(profile, frame_count=2, duration=0.5)
        await encoder.write_frame(make_frame(0))
        await encoder.write_frame(make_frame(1))
        handle = await encoder.finish()

        directory = tmp_path / "trip"
        assert handle.location == str(directory)
        assert handle.frame_count == 2
        assert (directory / "frame_00000.png").exists()
        assert (directory / "frame_00001.png").exists()
        assert Raster.from_file(directory / "frame_00001.png") == make_frame(1).raster

        manifest = json.loads((directory / "manifest.json").read_text())
        assert manifest["format"] == "webm"
        assert manifest["codec"] == "libvpx-vp9"
        assert (manifest["width"], manifest["height"]) == (854, 480)
        assert manifest["fps"] == 4
        assert [f["timestamp"] for f in manifest["frames"]] == [0.0, 0.25]

    @pytest.mark.asyncio
    async def test_abort_removes_partial_output(self, tmp_path, profile):
        """Test an aborted export leaves nothing behind."""
        encoder = PngSequenceEncoder(output_dir=str(tmp_path), name="partial")
        await encoder.begin(profile, frame_count=3, duration=0.75)
        await encoder.write_frame(make_frame(0))
        assert (tmp_path / "partial" / "frame_00000.png").exists()

        await encoder.abort()

        assert not (tmp_path / "partial").exists()

    @pytest.mark.asyncio
    async def test_generated_name(self, tmp_path, profile):
        encoder = PngSequenceEncoder(output_dir=str(tmp_path))
        await encoder.begin(profile, frame_count=0, duration=0.0)
        assert encoder.directory.parent == tmp_path
        assert encoder.directory.name.startswith("export_")

    @pytest.mark.asyncio
    async def test_write_before_begin(self, tmp_path):
        encoder = PngSequenceEncoder(output_dir=str(tmp_path))
        with pytest.raises(EncoderError):
            await encoder.write_frame(make_frame(0))

    @pytest.mark.asyncio
    async def test_abort_before_begin_is_noop(self, tmp_path):
        encoder = PngSequenceEncoder(output_dir=str(tmp_path))
        await encoder.abort()
