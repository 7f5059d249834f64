"""
Visual asset models.

Assets are created by the ingestion collaborator from already-decoded
rasters. They are shared by reference between timelines and never
modified after creation.
"""

import uuid
from enum import Enum
from typing import Optional, Sequence, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .raster import Raster


class AssetKind(str, Enum):
    """Kinds of visual asset that can be placed on a timeline."""
    IMAGE = "image"
    CLIP = "clip"
    OVERLAY = "overlay"


class VisualAsset(BaseModel):
    """Immutable visual source: a still raster or a pre-rendered frame sequence."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique identifier")
    kind: AssetKind = Field(AssetKind.IMAGE, description="Asset kind")
    name: str = Field("", description="Display name")
    raster: Optional[Raster] = Field(None, description="Source raster for still assets")
    frames: Tuple[Raster, ...] = Field(default_factory=tuple, description="Frames of a clip asset")
    frame_duration: Optional[float] = Field(None, gt=0, description="Seconds each clip frame is shown")
    intrinsic_duration: Optional[float] = Field(None, gt=0, description="Natural duration (seconds)")

    @model_validator(mode="after")
    def validate_source(self):
        if self.kind == AssetKind.CLIP:
            if not self.frames:
                raise ValueError("Clip assets need at least one frame")
            if self.frame_duration is None:
                raise ValueError("Clip assets need a frame_duration")
        elif self.raster is None:
            raise ValueError(f"{self.kind.value} assets need a source raster")
        return self

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other) -> bool:
        if not isinstance(other, VisualAsset):
            return NotImplemented
        return self.id == other.id

    @classmethod
    def from_raster(
        cls,
        raster: Raster,
        name: str = "",
        kind: AssetKind = AssetKind.IMAGE,
        asset_id: Optional[str] = None,
    ) -> "VisualAsset":
        """Create a still asset from a decoded raster."""
        fields = {"kind": kind, "name": name, "raster": raster}
        if asset_id:
            fields["id"] = asset_id
        return cls(**fields)

    @classmethod
    def from_frames(
        cls,
        frames: Sequence[Raster],
        frame_duration: float,
        name: str = "",
        asset_id: Optional[str] = None,
    ) -> "VisualAsset":
        """Create a clip asset whose frames are each shown for frame_duration seconds."""
        fields = {
            "kind": AssetKind.CLIP,
            "name": name,
            "frames": tuple(frames),
            "frame_duration": frame_duration,
            "intrinsic_duration": len(frames) * frame_duration,
        }
        if asset_id:
            fields["id"] = asset_id
        return cls(**fields)

    @property
    def duration(self) -> Optional[float]:
        """Natural duration if the asset has one."""
        return self.intrinsic_duration

    @property
    def frame_count(self) -> int:
        return len(self.frames) if self.kind == AssetKind.CLIP else 1

    def frame_index_at(self, local_time: float) -> int:
        """Index of the clip frame visible at item-local time (0 for stills)."""
        if self.kind != AssetKind.CLIP:
            return 0
        index = int(max(local_time, 0.0) / self.frame_duration + 1e-9)
        return min(index, len(self.frames) - 1)

    def source_at(self, frame_index: int = 0) -> Raster:
        """Source raster for the given frame index."""
        if self.kind == AssetKind.CLIP:
            return self.frames[frame_index]
        return self.raster
