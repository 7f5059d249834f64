"""Filter catalog: pure functions over float RGBA pixel arrays.

Primitives follow the CSS Filter Effects definitions so a raster filtered
here matches what a browser canvas produces for the same filter string.
Every primitive takes and returns a float32 array of shape
``(height, width, 4)`` in the 0-255 range and clamps its output; alpha is
left alone except by blur.
"""

import math
from functools import partial
from typing import Callable, Dict, Tuple

import numpy as np
from PIL import Image, ImageFilter

from ..models.transform_params import FilterType


PixelOp = Callable[[np.ndarray], np.ndarray]

# Rec.709 luma weights used by grayscale, saturate and hue-rotate
LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

MID_GRAY = 128.0


def _apply_matrix(pixels: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Multiply each RGB vector by a 3x3 color matrix."""
    out = pixels.copy()
    out[..., :3] = np.clip(pixels[..., :3] @ matrix.T.astype(np.float32), 0.0, 255.0)
    return out


def brightness(pixels: np.ndarray, factor: float) -> np.ndarray:
    """Scale RGB linearly."""
    if factor == 1.0:
        return pixels
    out = pixels.copy()
    out[..., :3] = np.clip(pixels[..., :3] * np.float32(factor), 0.0, 255.0)
    return out


def contrast(pixels: np.ndarray, factor: float) -> np.ndarray:
    """Scale RGB distance from mid-gray."""
    if factor == 1.0:
        return pixels
    out = pixels.copy()
    out[..., :3] = np.clip(
        (pixels[..., :3] - np.float32(MID_GRAY)) * np.float32(factor) + np.float32(MID_GRAY),
        0.0, 255.0
    )
    return out


def saturate(pixels: np.ndarray, factor: float) -> np.ndarray:
    """Scale chroma around each pixel's luma; luma itself is unchanged."""
    if factor == 1.0:
        return pixels
    out = pixels.copy()
    rgb = pixels[..., :3]
    luma = (rgb @ LUMA)[..., np.newaxis]
    out[..., :3] = np.clip(luma + (rgb - luma) * np.float32(factor), 0.0, 255.0)
    return out


def sepia(pixels: np.ndarray, amount: float = 1.0) -> np.ndarray:
    a = 1.0 - min(max(amount, 0.0), 1.0)
    matrix = np.array([
        [0.393 + 0.607 * a, 0.769 - 0.769 * a, 0.189 - 0.189 * a],
        [0.349 - 0.349 * a, 0.686 + 0.314 * a, 0.168 - 0.168 * a],
        [0.272 - 0.272 * a, 0.534 - 0.534 * a, 0.131 + 0.869 * a],
    ])
    return _apply_matrix(pixels, matrix)


def grayscale(pixels: np.ndarray, amount: float = 1.0) -> np.ndarray:
    a = 1.0 - min(max(amount, 0.0), 1.0)
    matrix = np.array([
        [0.2126 + 0.7874 * a, 0.7152 - 0.7152 * a, 0.0722 - 0.0722 * a],
        [0.2126 - 0.2126 * a, 0.7152 + 0.2848 * a, 0.0722 - 0.0722 * a],
        [0.2126 - 0.2126 * a, 0.7152 - 0.7152 * a, 0.0722 + 0.9278 * a],
    ])
    return _apply_matrix(pixels, matrix)


def hue_rotate(pixels: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate hue in the luma-preserving color space CSS uses."""
    angle = math.radians(degrees)
    cos, sin = math.cos(angle), math.sin(angle)
    matrix = np.array([
        [0.213 + cos * 0.787 - sin * 0.213, 0.715 - cos * 0.715 - sin * 0.715, 0.072 - cos * 0.072 + sin * 0.928],
        [0.213 - cos * 0.213 + sin * 0.143, 0.715 + cos * 0.285 + sin * 0.140, 0.072 - cos * 0.072 - sin * 0.283],
        [0.213 - cos * 0.213 - sin * 0.787, 0.715 - cos * 0.715 + sin * 0.715, 0.072 + cos * 0.928 + sin * 0.072],
    ])
    return _apply_matrix(pixels, matrix)


def invert(pixels: np.ndarray, amount: float = 1.0) -> np.ndarray:
    a = np.float32(min(max(amount, 0.0), 1.0))
    out = pixels.copy()
    rgb = pixels[..., :3]
    out[..., :3] = np.clip(rgb * (1 - a) + (255.0 - rgb) * a, 0.0, 255.0)
    return out


def blur(pixels: np.ndarray, radius: float = 2.0) -> np.ndarray:
    """Gaussian blur of all four channels."""
    if radius <= 0:
        return pixels
    quantized = np.rint(np.clip(pixels, 0.0, 255.0)).astype(np.uint8)
    image = Image.fromarray(quantized).filter(ImageFilter.GaussianBlur(radius))
    return np.asarray(image, dtype=np.float32).copy()


# Catalog entries are fixed compositions of primitives, applied left to right.
FILTER_CATALOG: Dict[FilterType, Tuple[PixelOp, ...]] = {
    FilterType.NONE: (),
    FilterType.SEPIA: (partial(sepia, amount=1.0),),
    FilterType.GRAYSCALE: (partial(grayscale, amount=1.0),),
    FilterType.BLUR: (partial(blur, radius=2.0),),
    FilterType.BRIGHTNESS: (partial(brightness, factor=1.5),),
    FilterType.CONTRAST: (partial(contrast, factor=1.5),),
    FilterType.SATURATE: (partial(saturate, factor=2.0),),
    FilterType.HUE_ROTATE: (partial(hue_rotate, degrees=90.0),),
    FilterType.INVERT: (partial(invert, amount=1.0),),
    FilterType.VINTAGE: (
        partial(sepia, amount=0.5),
        partial(contrast, factor=1.2),
        partial(brightness, factor=1.1),
    ),
    FilterType.COOL: (
        partial(hue_rotate, degrees=180.0),
        partial(saturate, factor=1.2),
    ),
    FilterType.WARM: (
        partial(hue_rotate, degrees=30.0),
        partial(saturate, factor=1.3),
        partial(brightness, factor=1.1),
    ),
}


def apply_filter(pixels: np.ndarray, filter_type: FilterType) -> np.ndarray:
    """Run a catalog filter over a float RGBA array."""
    for op in FILTER_CATALOG[FilterType(filter_type)]:
        pixels = op(pixels)
    return pixels
