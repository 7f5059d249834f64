"""
Data models for Visual Composer.

This module provides the value objects that flow through the
composition engine: rasters, transform parameters, assets, timelines
and export profiles.
"""

from .raster import Raster
from .transform_params import (
    TransformParameters,
    TextOverlay,
    FilterType,
    parse_hex_color,
)
from .media_asset import (
    VisualAsset,
    AssetKind,
)
from .timeline import (
    Timeline,
    TimelineItem,
    TransitionType,
    ReorderPolicy,
    place_on_timeline,
)
from .export_profile import (
    ExportProfile,
    ExportFormat,
    ExportQuality,
)

__all__ = [
    # Raster
    "Raster",
    # Transform parameters
    "TransformParameters",
    "TextOverlay",
    "FilterType",
    "parse_hex_color",
    # Assets
    "VisualAsset",
    "AssetKind",
    # Timeline
    "Timeline",
    "TimelineItem",
    "TransitionType",
    "ReorderPolicy",
    "place_on_timeline",
    # Export
    "ExportProfile",
    "ExportFormat",
    "ExportQuality",
]
