"""
Timeline data models.

Defines the placement of visual assets on a time axis, the transitions
that bridge neighbouring items, and the coverage bookkeeping used to
decide whether a timeline is ready for export.

Timelines are frozen value objects: every mutation returns a new
Timeline and leaves the receiver untouched, including when the mutation
is rejected.
"""

import logging
import uuid
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import settings
from ..errors import InvalidPlacement, ItemNotFound, OverlappingPlacement
from .media_asset import VisualAsset
from .transform_params import TransformParameters


logger = logging.getLogger(__name__)

# Tolerance for floating point comparisons of times (seconds)
EPSILON = 1e-6

Interval = Tuple[float, float]


class TransitionType(str, Enum):
    """Available transition effects into a timeline item."""
    NONE = "none"
    FADE = "fade"
    SLIDE_LEFT = "slide_left"
    SLIDE_RIGHT = "slide_right"
    SLIDE_UP = "slide_up"
    SLIDE_DOWN = "slide_down"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    ROTATE = "rotate"
    FLIP = "flip"

    @classmethod
    def from_string(cls, value: str) -> "TransitionType":
        """Look up a transition by name, accepting 'slide-left' style names.

        Raises:
            ValueError: If value is not a known transition
        """
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        if normalized in ("", "cut"):
            return cls.NONE
        for transition in cls:
            if transition.value == normalized:
                return transition
        raise ValueError(f"Unknown transition: {value}. Valid options: {[t.value for t in cls]}")


class ReorderPolicy(str, Enum):
    """What reorder() does to start times."""
    PRESERVE = "preserve"  # Keep explicit starts, only the item order changes
    REPACK = "repack"      # Restack items back-to-back in the new order


class TimelineItem(BaseModel):
    """Placement of one visual asset on the timeline."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique item identifier")
    asset: VisualAsset = Field(..., description="Placed asset (shared by reference)")
    start_time: float = Field(..., ge=0, description="Start time in timeline (seconds)")
    duration: float = Field(..., gt=0, description="Item duration (seconds)")
    transition_in: TransitionType = Field(TransitionType.NONE, description="Transition from previous item")
    transition_duration: float = Field(
        default_factory=lambda: settings.default_transition_duration,
        ge=0,
        description="Blend window the incoming transition may overlap (seconds)"
    )
    params: TransformParameters = Field(
        default_factory=TransformParameters, description="Adjustments applied to the asset"
    )

    @field_validator("transition_in", mode="before")
    @classmethod
    def validate_transition(cls, v):
        if isinstance(v, str) and not isinstance(v, TransitionType):
            return TransitionType.from_string(v)
        return v

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def asset_id(self) -> str:
        return self.asset.id

    @property
    def interval(self) -> Interval:
        return (self.start_time, self.end_time)

    def contains(self, time: float) -> bool:
        """Whether the item is on screen at the given timeline time."""
        return self.start_time - EPSILON <= time < self.end_time - EPSILON

    def local_time(self, time: float) -> float:
        """Timeline time converted to seconds since this item started."""
        return min(max(time - self.start_time, 0.0), self.duration)


def _check_placement(items: List[TimelineItem]) -> None:
    """Verify no two items overlap unless a declared transition bridges them.

    A bridge is the later item's transition_in; the overlap must fit
    inside its transition_duration and neither item may swallow the
    other. At most two items are ever on screen at once.

    Raises:
        OverlappingPlacement: If the invariant does not hold
    """
    ordered = sorted(items, key=lambda item: (item.start_time, item.end_time))
    for i in range(1, len(ordered)):
        prev, curr = ordered[i - 1], ordered[i]
        overlap = prev.end_time - curr.start_time
        if overlap > EPSILON:
            bridged = (
                curr.transition_in != TransitionType.NONE
                and overlap <= curr.transition_duration + EPSILON
                and curr.start_time > prev.start_time + EPSILON
                and curr.end_time > prev.end_time + EPSILON
            )
            if not bridged:
                raise OverlappingPlacement(
                    f"Item {curr.id} [{curr.start_time:.3f}, {curr.end_time:.3f}) overlaps "
                    f"item {prev.id} [{prev.start_time:.3f}, {prev.end_time:.3f}) by {overlap:.3f}s "
                    f"without a bridging transition",
                    conflicting_item_id=prev.id,
                )
        if i >= 2:
            earlier = ordered[i - 2]
            if earlier.end_time - curr.start_time > EPSILON:
                raise OverlappingPlacement(
                    f"Item {curr.id} would put three items on screen at {curr.start_time:.3f}s",
                    conflicting_item_id=earlier.id,
                )


def _merge_intervals(intervals: List[Interval]) -> List[Interval]:
    """Union of half-open intervals as a sorted, disjoint list."""
    merged: List[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1] + EPSILON:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


class Timeline(BaseModel):
    """Ordered placements plus a target total duration (usually the audio length)."""
    model_config = ConfigDict(frozen=True)

    items: Tuple[TimelineItem, ...] = Field(default_factory=tuple, description="Items in placement order")
    target_duration: Optional[float] = Field(None, ge=0, description="Target total duration (seconds)")
    reorder_policy: ReorderPolicy = Field(
        default_factory=lambda: ReorderPolicy(settings.reorder_policy),
        description="Start-time handling on reorder"
    )

    # Queries

    @property
    def content_end(self) -> float:
        """End of the last item (0 for an empty timeline)."""
        return max((item.end_time for item in self.items), default=0.0)

    @property
    def total_duration(self) -> float:
        """Target duration when set, otherwise the end of the content."""
        if self.target_duration is not None:
            return self.target_duration
        return self.content_end

    def get_item(self, item_id: str) -> TimelineItem:
        """Find an item by id.

        Raises:
            ItemNotFound: If no item has that id
        """
        for item in self.items:
            if item.id == item_id:
                return item
        raise ItemNotFound(f"No timeline item with id {item_id}")

    def order_of(self, item_id: str) -> int:
        """Order index of an item, derived from its position."""
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        raise ItemNotFound(f"No timeline item with id {item_id}")

    def items_by_time(self) -> List[TimelineItem]:
        return sorted(self.items, key=lambda item: (item.start_time, item.end_time))

    def active_items(self, time: float) -> List[TimelineItem]:
        """Items on screen at a time, earliest start first (zero, one or two)."""
        return [item for item in self.items_by_time() if item.contains(time)]

    def total_coverage(self) -> List[Interval]:
        """Covered time as a sorted list of disjoint [start, end) intervals."""
        return _merge_intervals([item.interval for item in self.items])

    def gaps(self) -> List[Interval]:
        """Uncovered intervals inside [0, total_duration), in time order."""
        span_end = self.total_duration
        gaps: List[Interval] = []
        cursor = 0.0
        for start, end in self.total_coverage():
            if start >= span_end:
                break
            if start - cursor > EPSILON:
                gaps.append((cursor, start))
            cursor = max(cursor, end)
        if span_end - cursor > EPSILON:
            gaps.append((cursor, span_end))
        return gaps

    @property
    def is_complete(self) -> bool:
        return bool(self.items) and not self.gaps()

    def validate_continuity(self) -> List[str]:
        """Human-readable warnings about gaps and content past the target."""
        issues = [
            f"Gap of {end - start:.3f}s at {start:.3f}s" for start, end in self.gaps()
        ]
        if self.target_duration is not None and self.content_end - self.target_duration > EPSILON:
            issues.append(
                f"Content runs {self.content_end - self.target_duration:.3f}s past "
                f"the target duration of {self.target_duration:.3f}s"
            )
        return issues

    # Mutations (each returns a new Timeline)

    def place(
        self,
        asset: VisualAsset,
        start: float,
        duration: float,
        transition: TransitionType = TransitionType.NONE,
        transition_duration: Optional[float] = None,
        params: Optional[TransformParameters] = None,
    ) -> "Timeline":
        """Place an asset at an explicit start time.

        Raises:
            InvalidPlacement: If start < 0, duration <= 0 or fields are malformed
            OverlappingPlacement: If the item overlaps another without a bridge
        """
        item = self._build_item(asset, start, duration, transition, transition_duration, params)
        items = list(self.items) + [item]
        _check_placement(items)
        logger.debug(f"Placed {asset.id} at {start:.3f}s for {duration:.3f}s ({item.transition_in.value})")
        return self.model_copy(update={"items": tuple(items)})

    def append(
        self,
        asset: VisualAsset,
        duration: Optional[float] = None,
        transition: TransitionType = TransitionType.NONE,
        transition_duration: Optional[float] = None,
        params: Optional[TransformParameters] = None,
    ) -> "Timeline":
        """Place an asset right after the current content.

        Duration defaults to the asset's intrinsic duration, then to the
        configured default. A transition pulls the start back so the new
        item overlaps its predecessor by the blend window, shortened so the
        new item starts after both the predecessor's start and the end of
        every other item. When no room is left the item follows as a cut.
        """
        if isinstance(transition, str) and not isinstance(transition, TransitionType):
            transition = TransitionType.from_string(transition)
        if duration is None:
            duration = asset.duration or settings.default_item_duration
        if transition_duration is None:
            transition_duration = settings.default_transition_duration

        start = 0.0
        if self.items:
            last = max(self.items, key=lambda item: item.end_time)
            start = last.end_time
            if transition != TransitionType.NONE:
                floor = max([last.start_time] + [i.end_time for i in self.items if i is not last])
                margin = 2 * EPSILON
                overlap = min(transition_duration, duration - margin, last.end_time - floor - margin)
                if overlap > EPSILON:
                    start -= overlap
        return self.place(asset, max(start, 0.0), duration, transition, transition_duration, params)

    def remove(self, item_id: str) -> "Timeline":
        """Remove an item; later items move up one order index.

        Raises:
            ItemNotFound: If no item has that id
        """
        index = self.order_of(item_id)
        items = self.items[:index] + self.items[index + 1:]
        if self.reorder_policy == ReorderPolicy.REPACK:
            items = self._repack(list(items))
            _check_placement(items)
        return self.model_copy(update={"items": tuple(items)})

    def reorder(self, item_id: str, new_index: int) -> "Timeline":
        """Move an item to a new order index.

        Items between the old and new position shift by one. Under the
        preserve policy start times and durations are untouched; under
        repack the items are restacked back-to-back in the new order.

        Raises:
            ItemNotFound: If no item has that id
            InvalidPlacement: If new_index is out of range
            OverlappingPlacement: If repacking cannot satisfy the placement invariant
        """
        old_index = self.order_of(item_id)
        if not 0 <= new_index < len(self.items):
            raise InvalidPlacement(f"Order index {new_index} out of range 0..{len(self.items) - 1}")
        items = list(self.items)
        item = items.pop(old_index)
        items.insert(new_index, item)
        if self.reorder_policy == ReorderPolicy.REPACK:
            items = self._repack(items)
        _check_placement(items)
        return self.model_copy(update={"items": tuple(items)})

    def with_target_duration(self, target_duration: Optional[float]) -> "Timeline":
        """Copy with a new target duration (e.g. the audio track length)."""
        if target_duration is not None and target_duration < 0:
            raise InvalidPlacement(f"Target duration must be >= 0, got {target_duration}")
        return self.model_copy(update={"target_duration": target_duration})

    def with_reorder_policy(self, policy: ReorderPolicy) -> "Timeline":
        return self.model_copy(update={"reorder_policy": ReorderPolicy(policy)})

    # Helpers

    @staticmethod
    def _build_item(
        asset: VisualAsset,
        start: float,
        duration: float,
        transition: TransitionType,
        transition_duration: Optional[float],
        params: Optional[TransformParameters],
    ) -> TimelineItem:
        if duration is None or duration <= 0:
            raise InvalidPlacement(f"Duration must be > 0, got {duration}")
        if start is None or start < 0:
            raise InvalidPlacement(f"Start must be >= 0, got {start}")

        fields = {
            "asset": asset,
            "start_time": start,
            "duration": duration,
            "transition_in": transition,
            "params": params or TransformParameters(),
        }
        if transition_duration is not None:
            fields["transition_duration"] = transition_duration
        try:
            return TimelineItem(**fields)
        except ValidationError as e:
            raise InvalidPlacement(f"Invalid placement for asset {asset.id}: {e}") from e

    @staticmethod
    def _repack(items: List[TimelineItem]) -> List[TimelineItem]:
        """Restack items back-to-back from t=0 in list order."""
        repacked: List[TimelineItem] = []
        cursor = 0.0
        for item in items:
            start = cursor
            if repacked and item.transition_in != TransitionType.NONE:
                prev = repacked[-1]
                start -= min(item.transition_duration, prev.duration, item.duration)
            start = max(start, 0.0)
            repacked.append(item.model_copy(update={"start_time": start}))
            cursor = start + item.duration
        return repacked


def place_on_timeline(
    timeline: Timeline,
    asset: VisualAsset,
    start: float,
    duration: float,
    transition: TransitionType = TransitionType.NONE,
) -> Timeline:
    """Place an asset on a timeline, returning the updated timeline.

    Raises:
        InvalidPlacement: If start or duration are out of range
        OverlappingPlacement: If the placement overlaps without a bridging transition
    """
    if isinstance(transition, str) and not isinstance(transition, TransitionType):
        transition = TransitionType.from_string(transition)
    return timeline.place(asset, start, duration, transition)
