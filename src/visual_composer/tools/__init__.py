"""Composition tools: pixel pipeline, transitions, assembly and export."""

from .transform_pipeline import TransformCache, transform
from .transitions import blend
from .clip_assembler import ClipAssembler, Frame, build_sequence_clip, preview_frame
from .encoders import ArtifactHandle, EncoderInterface, InMemoryEncoder, PngSequenceEncoder
from .export_coordinator import (
    CancellationToken,
    ExportCoordinator,
    ExportProgress,
    ExportResult,
    ExportSession,
    ExportStatus,
    GapPolicy,
    export,
)

__all__ = [
    "TransformCache",
    "transform",
    "blend",
    "ClipAssembler",
    "Frame",
    "build_sequence_clip",
    "preview_frame",
    "ArtifactHandle",
    "EncoderInterface",
    "InMemoryEncoder",
    "PngSequenceEncoder",
    "CancellationToken",
    "ExportCoordinator",
    "ExportProgress",
    "ExportResult",
    "ExportSession",
    "ExportStatus",
    "GapPolicy",
    "export",
]
