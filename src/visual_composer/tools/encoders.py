"""Encoder collaborators that receive exported frames.

The engine never produces container bytes itself. Encoders accept an
ordered stream of frames plus the export profile and hand back a handle
to whatever they produced.
"""

import asyncio
import json
import logging
import shutil
import uuid
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiofiles
import aiofiles.os
from pydantic import BaseModel, Field

from ..config import settings
from ..errors import EncoderError
from ..models.export_profile import ExportFormat, ExportProfile
from .clip_assembler import Frame


logger = logging.getLogger(__name__)


class ArtifactHandle(BaseModel):
    """Location of an encoded artifact."""
    location: str = Field(..., description="Path or URI of the artifact")
    format: ExportFormat = Field(..., description="Container tag the frames were encoded for")
    frame_count: int = Field(..., ge=0, description="Frames written")
    duration: float = Field(..., ge=0, description="Covered duration (seconds)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Encoder-specific details")


class EncoderInterface(ABC):
    """Abstract encoder contract.

    Calls arrive in order: begin() once, write_frame() per frame in
    non-decreasing timestamp order, then exactly one of finish() or
    abort(). After abort() nothing the encoder wrote may be treated as a
    valid artifact.
    """

    @abstractmethod
    async def begin(self, profile: ExportProfile, frame_count: int, duration: float) -> None:
        """Prepare for a session.

        Raises:
            EncoderError: If the profile is unsupported or resources cannot be acquired
        """
        pass

    @abstractmethod
    async def write_frame(self, frame: Frame) -> None:
        """Accept the next frame.

        Raises:
            EncoderError: If the frame cannot be written
        """
        pass

    @abstractmethod
    async def finish(self) -> ArtifactHandle:
        """Finalize the artifact and return its handle."""
        pass

    @abstractmethod
    async def abort(self) -> None:
        """Discard everything written in this session."""
        pass


class InMemoryEncoder(EncoderInterface):
    """Keeps frames in memory; used for previews and tests."""

    def __init__(self, supported_formats: Optional[Sequence[ExportFormat]] = None):
        if supported_formats is None:
            supported_formats = ExportFormat
        self.supported_formats = {ExportFormat(f) for f in supported_formats}
        self.frames: List[Frame] = []
        self.profile: Optional[ExportProfile] = None
        self.expected_frames = 0
        self.duration = 0.0
        self.finished = False
        self.aborted = False

    async def begin(self, profile: ExportProfile, frame_count: int, duration: float) -> None:
        if profile.format not in self.supported_formats:
            raise EncoderError(f"Unsupported export format: {profile.format.value}")
        self.profile = profile
        self.expected_frames = frame_count
        self.duration = duration
        self.frames = []
        self.finished = False
        self.aborted = False

    async def write_frame(self, frame: Frame) -> None:
        if self.frames and frame.timestamp < self.frames[-1].timestamp:
            raise EncoderError(
                f"Frame at {frame.timestamp:.3f}s arrived after {self.frames[-1].timestamp:.3f}s"
            )
        self.frames.append(frame)

    async def finish(self) -> ArtifactHandle:
        self.finished = True
        return ArtifactHandle(
            location=f"memory://{id(self)}",
            format=self.profile.format,
            frame_count=len(self.frames),
            duration=self.duration,
        )

    async def abort(self) -> None:
        self.frames = []
        self.aborted = True


class PngSequenceEncoder(EncoderInterface):
    """Writes each frame as a PNG plus a manifest describing timing and profile.

    Layout::

        <output_dir>/<name>/frame_00000.png
        <output_dir>/<name>/manifest.json
    """

    def __init__(self, output_dir: Optional[str] = None, name: Optional[str] = None):
        self.output_dir = Path(output_dir or settings.output_dir)
        self.name = name
        self.directory: Optional[Path] = None
        self.profile: Optional[ExportProfile] = None
        self.duration = 0.0
        self.timestamps: List[float] = []

    async def begin(self, profile: ExportProfile, frame_count: int, duration: float) -> None:
        self.profile = profile
        self.duration = duration
        self.timestamps = []
        self.directory = self.output_dir / (self.name or f"export_{uuid.uuid4().hex[:8]}")
        try:
            await aiofiles.os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            raise EncoderError(f"Cannot create output directory {self.directory}: {e}") from e
        logger.info(f"Writing {frame_count} frames to {self.directory}")

    async def write_frame(self, frame: Frame) -> None:
        if self.directory is None:
            raise EncoderError("write_frame() called before begin()")
        buffer = BytesIO()
        frame.raster.to_image().save(buffer, format="PNG")
        path = self.directory / f"frame_{len(self.timestamps):05d}.png"
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(buffer.getvalue())
        except OSError as e:
            raise EncoderError(f"Failed to write {path}: {e}") from e
        self.timestamps.append(frame.timestamp)

    async def finish(self) -> ArtifactHandle:
        if self.directory is None:
            raise EncoderError("finish() called before begin()")
        manifest = {
            "format": self.profile.format.value,
            "codec": self.profile.format.codec,
            "quality": self.profile.quality.value,
            "width": self.profile.width,
            "height": self.profile.height,
            "bitrate_kbps": self.profile.bitrate_kbps,
            "fps": self.profile.fps,
            "duration": self.duration,
            "frames": [
                {"file": f"frame_{index:05d}.png", "timestamp": timestamp}
                for index, timestamp in enumerate(self.timestamps)
            ],
        }
        manifest_path = self.directory / "manifest.json"
        async with aiofiles.open(manifest_path, "w") as f:
            await f.write(json.dumps(manifest, indent=2))

        return ArtifactHandle(
            location=str(self.directory),
            format=self.profile.format,
            frame_count=len(self.timestamps),
            duration=self.duration,
            metadata={"manifest": str(manifest_path)},
        )

    async def abort(self) -> None:
        if self.directory is None:
            return
        logger.info(f"Removing partial export {self.directory}")
        await asyncio.to_thread(shutil.rmtree, self.directory, True)
        self.timestamps = []
