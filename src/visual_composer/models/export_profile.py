"""Export format and quality tables."""

from enum import Enum
from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import settings


class ExportFormat(str, Enum):
    """Supported output container tags."""
    MP4 = "mp4"
    MOV = "mov"
    AVI = "avi"
    WEBM = "webm"

    @classmethod
    def from_string(cls, value: str) -> "ExportFormat":
        """Convert string to ExportFormat enum.

        Raises:
            ValueError: If value is not a supported format
        """
        for fmt in cls:
            if fmt.value == value.lower().lstrip("."):
                return fmt
        raise ValueError(f"Invalid export format: {value}. Valid options: {[f.value for f in cls]}")

    @property
    def description(self) -> str:
        descriptions = {
            ExportFormat.MP4: "MP4 (Recommended): best compatibility",
            ExportFormat.MOV: "MOV: high quality",
            ExportFormat.AVI: "AVI: universal format",
            ExportFormat.WEBM: "WebM: web optimized",
        }
        return descriptions[self]

    @property
    def codec(self) -> str:
        """Video codec an encoder should use for this container."""
        codecs = {
            ExportFormat.MP4: "libx264",
            ExportFormat.MOV: "libx264",
            ExportFormat.AVI: "mpeg4",
            ExportFormat.WEBM: "libvpx-vp9",
        }
        return codecs[self]


class ExportQuality(str, Enum):
    """Resolution and bitrate presets."""
    UHD_4K = "4k"
    FULL_HD = "1080p"
    HD = "720p"
    SD = "480p"

    @classmethod
    def from_string(cls, value: str) -> "ExportQuality":
        """Convert string to ExportQuality enum.

        Raises:
            ValueError: If value is not a supported quality tier
        """
        for quality in cls:
            if quality.value == value.lower():
                return quality
        raise ValueError(f"Invalid export quality: {value}. Valid options: {[q.value for q in cls]}")

    @property
    def resolution(self) -> Tuple[int, int]:
        """Output (width, height) for this tier."""
        resolutions = {
            ExportQuality.UHD_4K: (3840, 2160),
            ExportQuality.FULL_HD: (1920, 1080),
            ExportQuality.HD: (1280, 720),
            ExportQuality.SD: (854, 480),
        }
        return resolutions[self]

    @property
    def bitrate_kbps(self) -> int:
        """Target video bitrate in kilobits per second."""
        bitrates = {
            ExportQuality.UHD_4K: 45000,
            ExportQuality.FULL_HD: 10000,
            ExportQuality.HD: 5000,
            ExportQuality.SD: 2500,
        }
        return bitrates[self]

    @property
    def description(self) -> str:
        width, height = self.resolution
        labels = {
            ExportQuality.UHD_4K: "Ultra HD",
            ExportQuality.FULL_HD: "Full HD",
            ExportQuality.HD: "HD",
            ExportQuality.SD: "Standard",
        }
        return f"{self.value} ({width}x{height}) {labels[self]}"


class ExportProfile(BaseModel):
    """Named (format, quality) pair resolved against the static tables."""
    model_config = ConfigDict(frozen=True)

    format: ExportFormat = Field(ExportFormat.MP4, description="Output container")
    quality: ExportQuality = Field(ExportQuality.FULL_HD, description="Quality tier")
    fps: int = Field(default_factory=lambda: settings.default_fps, gt=0, le=120, description="Frames per second")

    @field_validator("format", mode="before")
    @classmethod
    def validate_format(cls, v):
        if isinstance(v, str) and not isinstance(v, ExportFormat):
            return ExportFormat.from_string(v)
        return v

    @field_validator("quality", mode="before")
    @classmethod
    def validate_quality(cls, v):
        if isinstance(v, str) and not isinstance(v, ExportQuality):
            return ExportQuality.from_string(v)
        return v

    @property
    def width(self) -> int:
        return self.quality.resolution[0]

    @property
    def height(self) -> int:
        return self.quality.resolution[1]

    @property
    def resolution(self) -> Tuple[int, int]:
        return self.quality.resolution

    @property
    def bitrate_kbps(self) -> int:
        return self.quality.bitrate_kbps

    @property
    def frame_interval(self) -> float:
        """Seconds between consecutive frames."""
        return 1.0 / self.fps

    @property
    def preview_resolution(self) -> Tuple[int, int]:
        """Roughly 1/3 size for faster preview rendering, even dimensions."""
        width, height = self.resolution
        return ((width // 3) // 2 * 2, (height // 3) // 2 * 2)

    def get_resolution_string(self, preview: bool = False) -> str:
        """Resolution as 'WIDTHxHEIGHT'."""
        width, height = self.preview_resolution if preview else self.resolution
        return f"{width}x{height}"
