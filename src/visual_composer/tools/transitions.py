"""Transition compositing rules.

Each rule is a pure function of (raster_a, raster_b, progress) over two
rasters of the same size and satisfies progress 0 -> raster_a and
progress 1 -> raster_b exactly. Outputs are opaque: anything a rule
uncovers shows the background color.
"""

from typing import Callable, Dict, Tuple

import numpy as np
from PIL import Image

from ..errors import InvalidRaster
from ..models.raster import Raster
from ..models.timeline import TransitionType
from .transform_pipeline import rotate_pixels


BlendFn = Callable[[Raster, Raster, float, Tuple[int, int, int]], Raster]


def _check_pair(raster_a: Raster, raster_b: Raster) -> None:
    if raster_a.size != raster_b.size:
        raise InvalidRaster(
            f"Transition needs equal sizes, got {raster_a.size} and {raster_b.size}"
        )


def _background(raster: Raster, color: Tuple[int, int, int]) -> np.ndarray:
    canvas = np.empty((raster.height, raster.width, 4), dtype=np.uint8)
    canvas[...] = np.asarray(tuple(color) + (255,), dtype=np.uint8)
    return canvas


def _over_background(pixels: np.ndarray, color: Tuple[int, int, int]) -> np.ndarray:
    """Composite a float RGBA array over an opaque background color."""
    alpha = pixels[..., 3:4] / 255.0
    rgb = pixels[..., :3] * alpha + np.asarray(color, dtype=np.float32) * (1.0 - alpha)
    out = np.empty(pixels.shape, dtype=np.float32)
    out[..., :3] = rgb
    out[..., 3] = 255.0
    return out


def _quantize(pixels: np.ndarray) -> np.ndarray:
    return np.rint(np.clip(pixels, 0.0, 255.0)).astype(np.uint8)


def _scaled(raster: Raster, width: int, height: int) -> Image.Image:
    return raster.to_image().resize((width, height), Image.Resampling.BILINEAR)


def cut(raster_a: Raster, raster_b: Raster, progress: float, background=(0, 0, 0)) -> Raster:
    """Hard cut at the end of the window."""
    return raster_b.copy() if progress >= 1.0 else raster_a.copy()


def fade(raster_a: Raster, raster_b: Raster, progress: float, background=(0, 0, 0)) -> Raster:
    """Alpha cross-dissolve."""
    a = raster_a.pixels.astype(np.float32)
    b = raster_b.pixels.astype(np.float32)
    return Raster(_quantize(a * (1.0 - progress) + b * progress))


def _slide(raster_a: Raster, raster_b: Raster, progress: float, axis: int, forward: bool) -> Raster:
    """Push raster_a out while raster_b follows it in along one axis."""
    a, b = raster_a.pixels, raster_b.pixels
    extent = a.shape[axis]
    shift = int(round(progress * extent))
    # Stack the two frames end to end and take a window that moves with progress
    strip = np.concatenate([a, b] if forward else [b, a], axis=axis)
    offset = shift if forward else extent - shift
    window = [slice(None)] * 3
    window[axis] = slice(offset, offset + extent)
    return Raster(np.ascontiguousarray(strip[tuple(window)]))


def slide_left(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    return _slide(raster_a, raster_b, progress, axis=1, forward=True)


def slide_right(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    return _slide(raster_a, raster_b, progress, axis=1, forward=False)


def slide_up(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    return _slide(raster_a, raster_b, progress, axis=0, forward=True)


def slide_down(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    return _slide(raster_a, raster_b, progress, axis=0, forward=False)


def _zoom(base: Raster, layer: Raster, scale: float) -> Raster:
    """Paste layer scaled about the center on top of base."""
    width, height = base.size
    layer_w = int(round(width * scale))
    layer_h = int(round(height * scale))
    if layer_w <= 0 or layer_h <= 0:
        return base.copy()
    canvas = base.to_image()
    canvas.paste(_scaled(layer, layer_w, layer_h), ((width - layer_w) // 2, (height - layer_h) // 2))
    return Raster.from_image(canvas)


def zoom_in(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    """raster_b grows from the center over raster_a."""
    if progress <= 0.0:
        return raster_a.copy()
    if progress >= 1.0:
        return raster_b.copy()
    return _zoom(raster_a, raster_b, progress)


def zoom_out(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    """raster_a shrinks into the center, revealing raster_b."""
    if progress <= 0.0:
        return raster_a.copy()
    if progress >= 1.0:
        return raster_b.copy()
    return _zoom(raster_b, raster_a, 1.0 - progress)


def rotate(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    """raster_a spins out while raster_b spins in, cross-dissolving."""
    if progress <= 0.0:
        return raster_a.copy()
    if progress >= 1.0:
        return raster_b.copy()
    a = _over_background(rotate_pixels(raster_a.pixels.astype(np.float32), 90.0 * progress), background)
    b = _over_background(rotate_pixels(raster_b.pixels.astype(np.float32), -90.0 * (1.0 - progress)), background)
    return Raster(_quantize(a * (1.0 - progress) + b * progress))


def flip(raster_a, raster_b, progress, background=(0, 0, 0)) -> Raster:
    """Card flip about the vertical axis: raster_a folds away, raster_b unfolds."""
    if progress <= 0.0:
        return raster_a.copy()
    if progress >= 1.0:
        return raster_b.copy()
    width, height = raster_a.size
    if progress < 0.5:
        face, scale = raster_a, 1.0 - 2.0 * progress
    else:
        face, scale = raster_b, 2.0 * progress - 1.0
    face_w = int(round(width * scale))
    canvas = Image.fromarray(_background(raster_a, background))
    if face_w > 0:
        canvas.paste(_scaled(face, face_w, height), ((width - face_w) // 2, 0))
    return Raster.from_image(canvas)


TRANSITIONS: Dict[TransitionType, BlendFn] = {
    TransitionType.NONE: cut,
    TransitionType.FADE: fade,
    TransitionType.SLIDE_LEFT: slide_left,
    TransitionType.SLIDE_RIGHT: slide_right,
    TransitionType.SLIDE_UP: slide_up,
    TransitionType.SLIDE_DOWN: slide_down,
    TransitionType.ZOOM_IN: zoom_in,
    TransitionType.ZOOM_OUT: zoom_out,
    TransitionType.ROTATE: rotate,
    TransitionType.FLIP: flip,
}


def blend(
    transition: TransitionType,
    raster_a: Raster,
    raster_b: Raster,
    progress: float,
    background: Tuple[int, int, int] = (0, 0, 0),
) -> Raster:
    """Composite two equally sized rasters for a transition at progress in [0, 1].

    Raises:
        InvalidRaster: If the rasters differ in size
    """
    _check_pair(raster_a, raster_b)
    progress = min(max(float(progress), 0.0), 1.0)
    return TRANSITIONS[TransitionType(transition)](raster_a, raster_b, progress, background)
