"""Unit tests for the filter catalog."""

import numpy as np
import pytest

from visual_composer.models import FilterType
from visual_composer.tools import filters


def solid(r, g, b, a=255, size=(4, 4)):
    """Float RGBA array filled with one color."""
    pixels = np.empty(size + (4,), dtype=np.float32)
    pixels[...] = (r, g, b, a)
    return pixels


class TestColorFactors:
    """Test brightness, contrast and saturation primitives."""

    def test_brightness_scales_linearly(self):
        out = filters.brightness(solid(128, 128, 128), 1.5)
        assert np.all(out[..., :3] == 192)

    def test_brightness_clamps(self):
        out = filters.brightness(solid(200, 10, 0), 2.0)
        assert tuple(out[0, 0, :3]) == (255, 20, 0)

    def test_contrast_pivots_on_mid_gray(self):
        """Test mid-gray is a fixed point of contrast."""
        for factor in (0.0, 0.5, 2.0):
            out = filters.contrast(solid(128, 128, 128), factor)
            assert np.all(out[..., :3] == 128)

    def test_contrast_stretches_and_clamps(self):
        out = filters.contrast(solid(200, 100, 64), 2.0)
        assert tuple(out[0, 0, :3]) == (255, 72, 0)

    def test_zero_saturation_is_luma(self):
        """Test fully desaturated output is gray at the input's luma."""
        out = filters.saturate(solid(255, 0, 0), 0.0)
        expected = 255 * 0.2126
        assert np.allclose(out[..., :3], expected, atol=1e-3)

    def test_saturation_leaves_gray_alone(self):
        out = filters.saturate(solid(90, 90, 90), 2.0)
        assert np.allclose(out[..., :3], 90, atol=1e-3)

    def test_identity_factors_return_input(self):
        pixels = solid(1, 2, 3)
        assert filters.brightness(pixels, 1.0) is pixels
        assert filters.contrast(pixels, 1.0) is pixels
        assert filters.saturate(pixels, 1.0) is pixels

    def test_alpha_untouched(self):
        pixels = solid(100, 150, 200, a=77)
        for out in (
            filters.brightness(pixels, 1.7),
            filters.contrast(pixels, 0.3),
            filters.saturate(pixels, 1.9),
            filters.sepia(pixels),
            filters.hue_rotate(pixels, 45),
            filters.invert(pixels),
        ):
            assert np.all(out[..., 3] == 77)


class TestColorMatrices:
    """Test the CSS matrix filters."""

    def test_grayscale_equalizes_channels(self):
        out = filters.grayscale(solid(200, 50, 10))
        assert np.allclose(out[..., 0], out[..., 1], atol=1e-3)
        assert np.allclose(out[..., 1], out[..., 2], atol=1e-3)

    def test_sepia_on_white(self):
        """Test sepia tone values and clamping on white."""
        out = filters.sepia(solid(255, 255, 255))
        assert out[0, 0, 0] == 255
        assert out[0, 0, 1] == 255
        assert out[0, 0, 2] == pytest.approx(0.937 * 255, abs=1e-2)

    def test_zero_amount_is_identity(self):
        pixels = solid(30, 140, 220)
        assert np.allclose(filters.sepia(pixels, 0.0), pixels, atol=1e-3)
        assert np.allclose(filters.grayscale(pixels, 0.0), pixels, atol=1e-3)
        assert np.allclose(filters.invert(pixels, 0.0), pixels, atol=1e-3)

    def test_invert(self):
        out = filters.invert(solid(0, 100, 255))
        assert tuple(out[0, 0, :3]) == (255, 155, 0)

    def test_full_hue_turn_is_identity(self):
        pixels = solid(30, 140, 220)
        assert np.allclose(filters.hue_rotate(pixels, 360), pixels, atol=1e-2)

    def test_hue_rotate_changes_hue(self):
        out = filters.hue_rotate(solid(255, 0, 0), 120)
        assert out[0, 0, 1] > out[0, 0, 0]


class TestBlur:
    """Test Gaussian blur."""

    def test_blur_smooths_edges(self):
        pixels = np.zeros((16, 16, 4), dtype=np.float32)
        pixels[..., 3] = 255
        pixels[:, 8:, :3] = 255

        out = filters.blur(pixels, 2.0)

        assert out.shape == pixels.shape
        assert 0 < out[8, 7, 0] < 255
        assert out[..., :3].std() < pixels[..., :3].std()

    def test_zero_radius(self):
        pixels = solid(1, 2, 3)
        assert filters.blur(pixels, 0) is pixels


class TestCatalog:
    """Test the catalog of named filters."""

    def test_every_filter_has_an_entry(self):
        assert set(filters.FILTER_CATALOG) == set(FilterType)

    def test_none_is_identity(self):
        pixels = solid(10, 20, 30)
        assert filters.apply_filter(pixels, FilterType.NONE) is pixels

    def test_vintage_is_sepia_contrast_brightness(self):
        """Test composite presets apply their primitives in order."""
        pixels = solid(120, 80, 40)
        expected = filters.brightness(
            filters.contrast(filters.sepia(pixels, 0.5), 1.2), 1.1
        )
        assert np.array_equal(filters.apply_filter(pixels, FilterType.VINTAGE), expected)

    def test_warm_and_cool_differ(self):
        pixels = solid(120, 80, 40)
        warm = filters.apply_filter(pixels, FilterType.WARM)
        cool = filters.apply_filter(pixels, FilterType.COOL)
        assert not np.allclose(warm, cool)

    @pytest.mark.parametrize("filter_type", list(FilterType))
    def test_output_in_range(self, filter_type):
        pixels = solid(250, 5, 128)
        out = filters.apply_filter(pixels, filter_type)
        assert out.shape == pixels.shape
        assert out.min() >= 0
        assert out.max() <= 255
