"""Clip assembler: timeline -> time-addressable, composited frames.

For a query time the assembler finds the active item(s), resolves each
through the transform pipeline (memoized), fits the result onto the
output canvas and, inside a transition window, blends the outgoing and
incoming canvases.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from PIL import Image

from ..config import settings
from ..errors import CompositionError, InvalidRaster
from ..models.export_profile import ExportProfile
from ..models.media_asset import VisualAsset
from ..models.raster import Raster
from ..models.timeline import Timeline, TimelineItem
from ..models.transform_params import RGB, parse_hex_color
from .transform_pipeline import TransformCache
from .transitions import blend


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """One timestamped, fully composited raster ready for encoding."""
    raster: Raster
    timestamp: float
    index: int = 0
    item_ids: Tuple[str, ...] = field(default_factory=tuple)
    placeholder: bool = False

    @property
    def is_transition(self) -> bool:
        return len(self.item_ids) == 2


def fit_to_canvas(
    raster: Raster,
    width: int,
    height: int,
    background: RGB = (0, 0, 0),
) -> Raster:
    """Scale a raster to fit the canvas, preserving aspect ratio, centered.

    The shorter axis is padded with the background color and transparent
    pixels are composited over it, so the result is fully opaque.
    """
    canvas = Image.new("RGBA", (width, height), tuple(background) + (255,))
    source = raster.to_image()

    scale = min(width / raster.width, height / raster.height)
    draw_w = max(1, int(round(raster.width * scale)))
    draw_h = max(1, int(round(raster.height * scale)))
    if (draw_w, draw_h) != source.size:
        source = source.resize((draw_w, draw_h), Image.Resampling.BILINEAR)

    canvas.alpha_composite(source, ((width - draw_w) // 2, (height - draw_h) // 2))
    return Raster.from_image(canvas)


def build_sequence_clip(
    name: str,
    rasters: Sequence[Raster],
    seconds_per_image: float,
    canvas_size: Tuple[int, int] = (1920, 1080),
    background: Optional[RGB] = None,
) -> VisualAsset:
    """Turn a list of images into a clip asset.

    Each image is fit onto a canvas of canvas_size and shown for
    seconds_per_image; the clip's intrinsic duration is
    len(rasters) * seconds_per_image.

    Raises:
        InvalidRaster: If no rasters are given
    """
    if not rasters:
        raise InvalidRaster("A sequence clip needs at least one image")
    if seconds_per_image <= 0:
        raise ValueError(f"seconds_per_image must be > 0, got {seconds_per_image}")
    background = background or parse_hex_color(settings.background_color)
    width, height = canvas_size
    frames = [fit_to_canvas(raster, width, height, background) for raster in rasters]
    logger.info(f"Built clip '{name}' from {len(frames)} images ({len(frames) * seconds_per_image:.1f}s)")
    return VisualAsset.from_frames(frames, seconds_per_image, name=name)


def frame_count_for(duration: float, fps: float) -> int:
    """Number of frames sampled at k / fps inside [0, duration)."""
    if duration <= 0:
        return 0
    return int(math.ceil(duration * fps - 1e-9))


class FrameSequence:
    """Lazy, finite, restartable sequence of frames.

    Every iteration starts again from t=0 and reproduces the same frames
    for the same timeline and assembler.
    """

    def __init__(self, assembler: "ClipAssembler", timeline: Timeline, fps: float):
        if fps <= 0:
            raise ValueError(f"Sample rate must be > 0, got {fps}")
        self.assembler = assembler
        self.timeline = timeline
        self.fps = fps
        self.duration = timeline.total_duration

    def __len__(self) -> int:
        return frame_count_for(self.duration, self.fps)

    def timestamps(self) -> List[float]:
        return [index / self.fps for index in range(len(self))]

    def __iter__(self) -> Iterator[Frame]:
        for index in range(len(self)):
            yield self.assembler.frame_at(self.timeline, index / self.fps, index=index)


class ClipAssembler:
    """Resolves timeline frames at a fixed output resolution."""

    def __init__(
        self,
        profile: Optional[ExportProfile] = None,
        cache: Optional[TransformCache] = None,
        preview: bool = False,
        background: Optional[RGB] = None,
    ):
        """Initialize clip assembler.

        Args:
            profile: Export profile giving output resolution and frame rate
            cache: Shared resolved-raster cache (a private one is created if omitted)
            preview: Render at the profile's reduced preview resolution
            background: Letterbox and gap color (defaults to settings.background_color)
        """
        self.profile = profile or ExportProfile()
        self.preview = preview
        self.cache = cache if cache is not None else TransformCache()
        # Fitted canvases depend on the output size as well as the parameters
        self._canvas_cache = TransformCache(max_entries=self.cache.max_entries)
        self.background = background or parse_hex_color(settings.background_color)
        self.placeholder_color = parse_hex_color(settings.placeholder_color)

    @property
    def resolution(self) -> Tuple[int, int]:
        return self.profile.preview_resolution if self.preview else self.profile.resolution

    @property
    def fps(self) -> int:
        return self.profile.fps

    def resolve(self, item: TimelineItem, time: float) -> Raster:
        """Transformed, canvas-fitted raster for an item at a timeline time.

        Raises:
            InvalidRaster: If the asset's source cannot be transformed
        """
        asset = item.asset
        frame_index = asset.frame_index_at(item.local_time(time))
        width, height = self.resolution
        key = (asset.id, frame_index, item.params, width, height)

        def compute() -> Raster:
            transformed = self.cache.resolve(asset.id, asset.source_at(frame_index), item.params, frame_index)
            return fit_to_canvas(transformed, width, height, self.background)

        try:
            return self._canvas_cache.get_or_compute(key, compute)
        except InvalidRaster as e:
            raise InvalidRaster(
                f"Asset {asset.id} ({asset.name or asset.kind.value}) failed to resolve at {time:.3f}s: {e}",
                asset_id=asset.id,
            ) from e

    def background_frame(self, time: float, index: int = 0) -> Frame:
        width, height = self.resolution
        return Frame(raster=Raster.blank(width, height, self.background), timestamp=time, index=index)

    def frame_at(self, timeline: Timeline, time: float, index: int = 0) -> Frame:
        """Composite the frame visible at a timeline time.

        Gaps render as background frames.

        Raises:
            InvalidRaster: If an active asset cannot be resolved
        """
        time = max(float(time), 0.0)
        active = timeline.active_items(time)

        if not active:
            return self.background_frame(time, index)

        if len(active) == 1:
            item = active[0]
            return Frame(raster=self.resolve(item, time), timestamp=time, index=index, item_ids=(item.id,))

        outgoing, incoming = active[0], active[1]
        window_start = incoming.start_time
        window = outgoing.end_time - window_start
        progress = (time - window_start) / window if window > 0 else 1.0
        raster = blend(
            incoming.transition_in,
            self.resolve(outgoing, time),
            self.resolve(incoming, time),
            progress,
            self.background,
        )
        return Frame(raster=raster, timestamp=time, index=index, item_ids=(outgoing.id, incoming.id))

    def preview_frame(self, timeline: Timeline, time: float) -> Frame:
        """Frame for interactive scrubbing; asset failures degrade to a placeholder."""
        try:
            return self.frame_at(timeline, time)
        except CompositionError as e:
            logger.warning(f"Preview at {time:.3f}s fell back to placeholder: {e}")
            width, height = self.resolution
            return Frame(
                raster=Raster.blank(width, height, self.placeholder_color),
                timestamp=max(float(time), 0.0),
                placeholder=True,
            )

    def frames(self, timeline: Timeline, sample_rate: Optional[float] = None) -> FrameSequence:
        """Frames over [0, timeline.total_duration) at sample_rate (defaults to the profile fps)."""
        return FrameSequence(self, timeline, self.fps if sample_rate is None else sample_rate)


def preview_frame(
    timeline: Timeline,
    time: float,
    profile: Optional[ExportProfile] = None,
    cache: Optional[TransformCache] = None,
) -> Frame:
    """Preview-resolution frame at a time; never raises for asset failures."""
    return ClipAssembler(profile=profile, cache=cache, preview=True).preview_frame(timeline, time)
