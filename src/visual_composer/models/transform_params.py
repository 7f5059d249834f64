"""
Transform parameter models.

Defines the complete, deterministic set of adjustments applied to one
raster: color factors, rotation, a catalog filter and an optional text
overlay.
"""

from enum import Enum
from typing import Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


RGB = Tuple[int, int, int]


def parse_hex_color(hex_str: str) -> RGB:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    value = hex_str.lstrip("#")
    if len(value) != 6 or any(c not in "0123456789abcdefABCDEF" for c in value):
        raise ValueError(f"Invalid hex color: '{hex_str}'")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


class FilterType(str, Enum):
    """Fixed catalog of image filters."""
    NONE = "none"
    SEPIA = "sepia"
    GRAYSCALE = "grayscale"
    BLUR = "blur"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATE = "saturate"
    HUE_ROTATE = "hue_rotate"
    INVERT = "invert"
    VINTAGE = "vintage"
    COOL = "cool"
    WARM = "warm"

    @classmethod
    def from_string(cls, value: str) -> "FilterType":
        """Look up a filter by name, accepting '-' or '_' separators.

        Raises:
            ValueError: If value is not a catalog filter
        """
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        if normalized in ("", "identity"):
            return cls.NONE
        for filter_type in cls:
            if filter_type.value == normalized:
                return filter_type
        raise ValueError(f"Unknown filter: {value}. Valid options: {[f.value for f in cls]}")


class TextOverlay(BaseModel):
    """Text painted at the canvas center after all other adjustments."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1, description="Text to render")
    color: RGB = Field((255, 255, 255), description="Fill color (R, G, B)")
    size: int = Field(24, gt=0, le=2048, description="Font size in pixels")

    @field_validator("color", mode="before")
    @classmethod
    def validate_color(cls, v):
        if isinstance(v, str):
            return parse_hex_color(v)
        return v

    @field_validator("color")
    @classmethod
    def validate_channels(cls, v):
        if any(c < 0 or c > 255 for c in v):
            raise ValueError("Color channels must be between 0 and 255")
        return v


class TransformParameters(BaseModel):
    """Per-asset raster adjustments.

    Color factors are multiplicative with 1.0 as identity. Instances are
    frozen and hashable, so they can key a resolved-raster cache directly.
    """
    model_config = ConfigDict(frozen=True)

    brightness: float = Field(1.0, ge=0.0, le=2.0, description="Brightness factor")
    contrast: float = Field(1.0, ge=0.0, le=2.0, description="Contrast factor around mid-gray")
    saturation: float = Field(1.0, ge=0.0, le=2.0, description="Saturation factor")
    rotation: float = Field(0.0, ge=-180.0, le=180.0, description="Rotation in degrees (clockwise)")
    filter: FilterType = Field(FilterType.NONE, description="Catalog filter")
    text_overlay: Optional[TextOverlay] = Field(None, description="Optional centered text")

    @field_validator("filter", mode="before")
    @classmethod
    def validate_filter(cls, v):
        if isinstance(v, str) and not isinstance(v, FilterType):
            return FilterType.from_string(v)
        return v

    @classmethod
    def identity(cls) -> "TransformParameters":
        """Parameters that leave a raster byte-identical."""
        return cls()

    @classmethod
    def from_percentages(
        cls,
        brightness: float = 100,
        contrast: float = 100,
        saturation: float = 100,
        rotation: float = 0,
        filter: Union[FilterType, str] = FilterType.NONE,
        text_overlay: Optional[TextOverlay] = None,
    ) -> "TransformParameters":
        """Build parameters from the 0-200 percent scale editors use."""
        return cls(
            brightness=brightness / 100.0,
            contrast=contrast / 100.0,
            saturation=saturation / 100.0,
            rotation=rotation,
            filter=filter,
            text_overlay=text_overlay,
        )

    @property
    def has_color_adjustments(self) -> bool:
        return (
            self.brightness != 1.0
            or self.contrast != 1.0
            or self.saturation != 1.0
            or self.filter != FilterType.NONE
        )

    @property
    def is_identity(self) -> bool:
        """True when applying these parameters is a no-op copy."""
        return (
            not self.has_color_adjustments
            and self.rotation == 0.0
            and self.text_overlay is None
        )
