"""
Raster buffer model.

A raster owns decoded RGBA pixel data in row-major order, 8 bits per
channel. Pixel arrays are marked read-only so a raster handed from one
pipeline stage to the next can never be mutated behind the new owner's
back; every transform produces a fresh array.
"""

from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image

from ..errors import InvalidRaster


CHANNELS = 4  # R, G, B, A


class Raster:
    """Immutable RGBA pixel grid."""

    __slots__ = ("_pixels",)

    def __init__(self, pixels: np.ndarray):
        """Wrap a ``(height, width, 4)`` uint8 array.

        The array is copied unless it is a read-only C-contiguous array that
        owns its memory, so callers keep no writable alias into the raster.

        Raises:
            InvalidRaster: If the array is not a non-empty RGBA grid
        """
        if not isinstance(pixels, np.ndarray):
            raise InvalidRaster(f"Expected numpy array, got {type(pixels).__name__}")
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise InvalidRaster(f"Expected shape (height, width, {CHANNELS}), got {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidRaster(f"Raster has zero area: {pixels.shape[1]}x{pixels.shape[0]}")
        if pixels.dtype != np.uint8:
            raise InvalidRaster(f"Expected uint8 pixels, got {pixels.dtype}")

        if pixels.flags.writeable or not pixels.flags.owndata or not pixels.flags.c_contiguous:
            pixels = np.array(pixels, dtype=np.uint8, order="C", copy=True)
            pixels.flags.writeable = False
        self._pixels = pixels

    # Constructors

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Raster":
        """Build a raster from an RGB or RGBA array.

        RGB input gets a fully opaque alpha channel.
        """
        array = np.asarray(array)
        if array.ndim == 3 and array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array.astype(np.uint8), alpha], axis=2)
        return cls(array)

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "Raster":
        """Build a raster from packed RGBA bytes.

        Raises:
            InvalidRaster: If the byte count does not match the geometry
        """
        if width <= 0 or height <= 0:
            raise InvalidRaster(f"Raster has zero area: {width}x{height}")
        expected = width * height * CHANNELS
        if len(data) != expected:
            raise InvalidRaster(
                f"Pixel storage holds {len(data)} bytes, expected {expected} for {width}x{height}"
            )
        array = np.frombuffer(data, dtype=np.uint8).reshape(height, width, CHANNELS)
        return cls(array)

    @classmethod
    def from_image(cls, image: Image.Image) -> "Raster":
        """Build a raster from a Pillow image in any mode."""
        if image.width == 0 or image.height == 0:
            raise InvalidRaster(f"Raster has zero area: {image.width}x{image.height}")
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.asarray(image, dtype=np.uint8))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Raster":
        """Decode an image file into a raster.

        Raises:
            InvalidRaster: If the file cannot be decoded
        """
        try:
            with Image.open(path) as image:
                image.load()
                return cls.from_image(image)
        except (OSError, ValueError) as e:
            raise InvalidRaster(f"Cannot decode image {path}: {e}") from e

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Tuple[int, ...] = (0, 0, 0, 0)
    ) -> "Raster":
        """Create a raster filled with a single RGB or RGBA color."""
        if width <= 0 or height <= 0:
            raise InvalidRaster(f"Raster has zero area: {width}x{height}")
        if len(color) == 3:
            color = tuple(color) + (255,)
        array = np.empty((height, width, CHANNELS), dtype=np.uint8)
        array[...] = np.asarray(color, dtype=np.uint8)
        return cls(array)

    # Geometry

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def channels(self) -> int:
        return CHANNELS

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in Pillow order."""
        return (self.width, self.height)

    @property
    def pixels(self) -> np.ndarray:
        """Read-only view of the pixel array."""
        return self._pixels

    # Conversions

    def to_image(self) -> Image.Image:
        """Convert to a new RGBA Pillow image."""
        return Image.fromarray(np.array(self._pixels))

    def to_bytes(self) -> bytes:
        """Packed RGBA bytes, row-major."""
        return self._pixels.tobytes()

    def copy(self) -> "Raster":
        return Raster(self._pixels.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self._pixels.shape == other._pixels.shape and np.array_equal(
            self._pixels, other._pixels
        )

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height})"
