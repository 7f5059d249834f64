"""Unit tests for the raster buffer."""

import numpy as np
import pytest
from PIL import Image

from visual_composer.errors import InvalidRaster
from visual_composer.models import Raster


class TestRasterConstruction:
    """Test raster constructors and validation."""

    def test_from_rgb_array_adds_opaque_alpha(self):
        """RGB input gets a fully opaque alpha channel."""
        rgb = np.full((2, 3, 3), 10, dtype=np.uint8)
        raster = Raster.from_array(rgb)

        assert raster.size == (3, 2)
        assert raster.channels == 4
        assert np.all(raster.pixels[..., 3] == 255)
        assert np.all(raster.pixels[..., :3] == 10)

    def test_storage_length_matches_geometry(self):
        """width x height x channels equals the byte count."""
        raster = Raster.blank(5, 4, (1, 2, 3))
        assert len(raster.to_bytes()) == 5 * 4 * 4

    def test_from_bytes(self):
        """Test building a raster from packed RGBA bytes."""
        data = bytes(range(16))
        raster = Raster.from_bytes(2, 2, data)

        assert raster.width == 2
        assert raster.height == 2
        assert raster.to_bytes() == data

    def test_from_bytes_length_mismatch(self):
        """Test that a short buffer is rejected."""
        with pytest.raises(InvalidRaster, match="expected 16"):
            Raster.from_bytes(2, 2, b"\x00" * 15)

    @pytest.mark.parametrize("shape", [(0, 4, 4), (4, 0, 4)])
    def test_zero_area_rejected(self, shape):
        """Test that zero-area rasters are rejected."""
        with pytest.raises(InvalidRaster, match="zero area"):
            Raster(np.zeros(shape, dtype=np.uint8))

    def test_wrong_channel_count_rejected(self):
        """Test that a grid without four channels is rejected."""
        with pytest.raises(InvalidRaster):
            Raster(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_wrong_dtype_rejected(self):
        """Test that non-8-bit storage is rejected."""
        with pytest.raises(InvalidRaster, match="uint8"):
            Raster(np.zeros((2, 2, 4), dtype=np.float32))

    def test_blank_zero_area_rejected(self):
        with pytest.raises(InvalidRaster):
            Raster.blank(0, 10)

    def test_blank_rgb_color_is_opaque(self):
        raster = Raster.blank(2, 2, (10, 20, 30))
        assert tuple(raster.pixels[0, 0]) == (10, 20, 30, 255)


class TestRasterOwnership:
    """Test that rasters never share writable storage."""

    def test_pixels_are_read_only(self):
        """Test that the pixel view cannot be written."""
        raster = Raster.blank(2, 2, (0, 0, 0))
        with pytest.raises(ValueError):
            raster.pixels[0, 0, 0] = 255

    def test_source_array_is_copied(self):
        """Test that mutating the source array leaves the raster alone."""
        array = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = Raster(array)
        array[0, 0, 0] = 255

        assert raster.pixels[0, 0, 0] == 0

    def test_read_only_view_is_copied(self):
        """Test that a read-only view cannot alias a writable base array."""
        base = np.zeros((2, 2, 4), dtype=np.uint8)
        view = base.view()
        view.flags.writeable = False
        raster = Raster(view)
        base[0, 0, 0] = 255

        assert raster.pixels[0, 0, 0] == 0
        assert not np.shares_memory(raster.pixels, base)

    def test_copy_is_equal_but_distinct(self):
        raster = Raster.blank(3, 3, (9, 8, 7))
        copy = raster.copy()

        assert copy == raster
        assert copy is not raster
        assert copy.pixels is not raster.pixels

    def test_equality_is_byte_equality(self):
        """Test equality compares geometry and pixel bytes."""
        a = Raster.blank(2, 3, (1, 1, 1))
        b = Raster.blank(3, 2, (1, 1, 1))
        c = Raster.blank(2, 3, (1, 1, 2))

        assert a != b
        assert a != c
        assert a == Raster.blank(2, 3, (1, 1, 1))


class TestRasterImageConversion:
    """Test Pillow and file conversions."""

    def test_image_conversion(self):
        """Test conversion to and from Pillow images."""
        image = Image.new("RGB", (4, 3), (200, 100, 50))
        raster = Raster.from_image(image)

        assert raster.size == (4, 3)
        assert tuple(raster.pixels[1, 1]) == (200, 100, 50, 255)

        back = raster.to_image()
        assert back.mode == "RGBA"
        assert back.size == (4, 3)
        assert back.getpixel((0, 0)) == (200, 100, 50, 255)

    def test_from_file(self, tmp_path):
        """Test decoding an image file."""
        path = tmp_path / "photo.png"
        Image.new("RGBA", (6, 5), (1, 2, 3, 4)).save(path)

        raster = Raster.from_file(path)

        assert raster.size == (6, 5)
        assert tuple(raster.pixels[4, 5]) == (1, 2, 3, 4)

    def test_from_file_not_an_image(self, tmp_path):
        """Test that undecodable files raise InvalidRaster."""
        path = tmp_path / "notes.png"
        path.write_text("definitely not a png")

        with pytest.raises(InvalidRaster, match="Cannot decode"):
            Raster.from_file(path)

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(InvalidRaster):
            Raster.from_file(tmp_path / "missing.jpg")
