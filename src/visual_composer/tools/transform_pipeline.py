"""Transform pipeline: source raster + parameters -> output raster.

The stages run in a fixed order so output is reproducible:

1. canvas of the source size
2. rotation about the canvas center (bilinear, transparent outside)
3. brightness -> contrast -> saturation -> catalog filter, each on the
   previous stage's output
4. text overlay, painted last and untouched by the stages above
"""

import logging
import math
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Hashable, List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFont
from pydantic import ValidationError

from ..config import settings
from ..errors import InvalidParameters, InvalidRaster
from ..models.raster import Raster
from ..models.transform_params import FilterType, TextOverlay, TransformParameters
from . import filters


logger = logging.getLogger(__name__)

# Checked in order when no font_path is configured
FONT_PATHS = [
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
    Path("/Library/Fonts/Arial.ttf"),
    Path("C:/Windows/Fonts/arial.ttf"),
]


def load_font(size: int) -> ImageFont.ImageFont:
    """Load the configured or first available TrueType font at a pixel size.

    Falls back to Pillow's bundled font when no TrueType file is found.
    """
    candidates = [Path(settings.font_path)] if settings.font_path else []
    candidates.extend(FONT_PATHS)
    for font_path in candidates:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size=size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


def _validate(raster: Raster) -> None:
    if not isinstance(raster, Raster):
        raise InvalidRaster(f"Expected Raster, got {type(raster).__name__}")
    if raster.width <= 0 or raster.height <= 0:
        raise InvalidRaster(f"Raster has zero area: {raster.width}x{raster.height}")


def _coerce_params(params) -> TransformParameters:
    if params is None:
        return TransformParameters()
    if isinstance(params, TransformParameters):
        return params
    try:
        return TransformParameters.model_validate(params)
    except ValidationError as e:
        raise InvalidParameters(f"Invalid transform parameters: {e}") from e


def rotate_pixels(pixels: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate a float RGBA array clockwise about its center.

    Uses inverse mapping with bilinear sampling. Samples falling outside
    the source contribute transparent black rather than wrapping.
    """
    if degrees % 360.0 == 0.0:
        return pixels

    height, width = pixels.shape[:2]
    cx, cy = (width - 1) / 2.0, (height - 1) / 2.0
    theta = math.radians(degrees)
    cos, sin = math.cos(theta), math.sin(theta)

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    dx, dy = xs - cx, ys - cy
    # Inverse of a clockwise rotation in y-down image coordinates
    src_x = cos * dx + sin * dy + cx
    src_y = -sin * dx + cos * dy + cy

    # Snap values within float noise of an integer so right angles stay exact
    src_x = np.where(np.abs(src_x - np.rint(src_x)) < 1e-9, np.rint(src_x), src_x)
    src_y = np.where(np.abs(src_y - np.rint(src_y)) < 1e-9, np.rint(src_y), src_y)

    x0 = np.floor(src_x).astype(np.int64)
    y0 = np.floor(src_y).astype(np.int64)
    fx = (src_x - x0)[..., np.newaxis].astype(np.float32)
    fy = (src_y - y0)[..., np.newaxis].astype(np.float32)

    padded = np.zeros((height + 2, width + 2, pixels.shape[2]), dtype=np.float32)
    padded[1:-1, 1:-1] = pixels

    def sample(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        # Shift into padded coordinates; anything outside lands on the zero border
        px = np.clip(x + 1, 0, width + 1)
        py = np.clip(y + 1, 0, height + 1)
        return padded[py, px]

    top = sample(x0, y0) * (1 - fx) + sample(x0 + 1, y0) * fx
    bottom = sample(x0, y0 + 1) * (1 - fx) + sample(x0 + 1, y0 + 1) * fx
    return top * (1 - fy) + bottom * fy


def rotate(raster: Raster, degrees: float) -> Raster:
    """Rotate a raster clockwise about its center, keeping its size."""
    _validate(raster)
    if degrees % 360.0 == 0.0:
        return raster.copy()
    rotated = rotate_pixels(raster.pixels.astype(np.float32), degrees)
    return Raster(_quantize(rotated))


def adjust_colors(pixels: np.ndarray, params: TransformParameters) -> np.ndarray:
    """Brightness, contrast, saturation, then the catalog filter."""
    pixels = filters.brightness(pixels, params.brightness)
    pixels = filters.contrast(pixels, params.contrast)
    pixels = filters.saturate(pixels, params.saturation)
    if params.filter != FilterType.NONE:
        pixels = filters.apply_filter(pixels, params.filter)
    return pixels


def draw_text_overlay(image: Image.Image, overlay: TextOverlay) -> Image.Image:
    """Paint overlay text centered on the image, in place."""
    draw = ImageDraw.Draw(image)
    font = load_font(overlay.size)
    left, top, right, bottom = draw.textbbox((0, 0), overlay.text, font=font)
    x = image.width / 2.0 - (left + right) / 2.0
    y = image.height / 2.0 - (top + bottom) / 2.0
    draw.text((x, y), overlay.text, fill=tuple(overlay.color) + (255,), font=font)
    return image


def _quantize(pixels: np.ndarray) -> np.ndarray:
    return np.rint(np.clip(pixels, 0.0, 255.0)).astype(np.uint8)


def apply(source: Raster, params: Optional[Union[TransformParameters, dict]] = None) -> Raster:
    """Run the full pipeline over a raster.

    Pure and thread-safe; the source raster is never modified.

    Args:
        source: Input raster
        params: Adjustments to apply (identity when omitted); a mapping
            of field values is validated into TransformParameters

    Returns:
        New raster of the same size

    Raises:
        InvalidRaster: If the source is malformed or has zero area
        InvalidParameters: If params cannot be validated
    """
    _validate(source)
    params = _coerce_params(params)

    if params.is_identity:
        return source.copy()

    pixels = source.pixels.astype(np.float32)
    if params.rotation != 0.0:
        pixels = rotate_pixels(pixels, params.rotation)
    if params.has_color_adjustments:
        pixels = adjust_colors(pixels, params)
    output = _quantize(pixels)

    if params.text_overlay is not None:
        image = draw_text_overlay(Image.fromarray(output), params.text_overlay)
        output = np.asarray(image, dtype=np.uint8)

    return Raster(output)


# Public alias used by collaborators
transform = apply


class TransformCache:
    """Thread-safe LRU memo of resolved rasters.

    Keys combine the asset id, clip frame index and the full parameter
    set, so any change to a pixel-affecting parameter is a different key.
    A miss always recomputes through apply().
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = settings.transform_cache_size if max_entries is None else max_entries
        self._entries: "OrderedDict[Hashable, Raster]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(asset_id: str, frame_index: int, params: TransformParameters) -> Tuple:
        return (asset_id, frame_index, params)

    def resolve(
        self,
        asset_id: str,
        source: Raster,
        params: TransformParameters,
        frame_index: int = 0,
    ) -> Raster:
        """Return the transformed raster, computing it on a miss."""
        key = self.make_key(asset_id, frame_index, params)
        return self.get_or_compute(key, lambda: apply(source, params))

    def get_or_compute(self, key: Hashable, compute: Callable[[], Raster]) -> Raster:
        """Memoized lookup; the first element of key names the asset."""
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached
            self.misses += 1

        result = compute()

        if self.max_entries > 0:
            with self._lock:
                self._entries[key] = result
                self._entries.move_to_end(key)
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug(f"Evicted resolved raster for {evicted[0]} frame {evicted[1]}")
        return result

    def invalidate(self, asset_id: Optional[str] = None) -> None:
        """Drop entries for one asset, or everything."""
        with self._lock:
            if asset_id is None:
                self._entries.clear()
                return
            stale: List[Hashable] = [key for key in self._entries if key[0] == asset_id]
            for key in stale:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries
