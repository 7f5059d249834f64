"""Export coordinator: drives the clip assembler into an encoder.

An export session walks [0, timeline.total_duration) at the profile's
frame interval, hands every frame to the encoder in timestamp order and
emits progress computed from frames produced over frames total.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import AsyncIterator, Optional

from pydantic import BaseModel, Field

from ..config import settings
from ..errors import ExportError, IncompleteTimeline
from ..models.export_profile import ExportProfile
from ..models.timeline import Timeline
from ..utils.logging_config import ProgressLogger
from .clip_assembler import ClipAssembler, frame_count_for
from .encoders import ArtifactHandle, EncoderInterface
from .transform_pipeline import TransformCache


logger = logging.getLogger(__name__)


class GapPolicy(str, Enum):
    """How export treats uncovered intervals."""
    REJECT = "reject"  # Fail with IncompleteTimeline before any frame work
    BLACK = "black"    # Render gaps as background frames


class ExportStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationToken:
    """Cooperative cancellation signal checked between frames."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ExportProgress(BaseModel):
    """Progress snapshot emitted after each frame."""
    frames_done: int = Field(..., ge=0, description="Frames handed to the encoder")
    frames_total: int = Field(..., ge=0, description="Frames in the session")
    percent: float = Field(..., ge=0, le=100, description="Completion percentage")
    timestamp: float = Field(0.0, ge=0, description="Timeline time of the last frame (seconds)")


class ExportResult(BaseModel):
    """Terminal state of a session that did not fail."""
    status: ExportStatus = Field(..., description="completed or cancelled")
    artifact: Optional[ArtifactHandle] = Field(None, description="Encoded artifact on success")
    frames_written: int = Field(0, ge=0, description="Frames handed to the encoder")
    progress: Optional[ExportProgress] = Field(None, description="Last progress snapshot")

    @property
    def succeeded(self) -> bool:
        return self.status == ExportStatus.COMPLETED


class ExportSession:
    """One export run. Iterate it for progress, or await run() for the result.

    A session can be consumed once. Frames are produced strictly in
    order; independent sessions share no mutable state apart from the
    thread-safe transform cache.
    """

    def __init__(
        self,
        timeline: Timeline,
        profile: ExportProfile,
        encoder: EncoderInterface,
        assembler: ClipAssembler,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.timeline = timeline
        self.profile = profile
        self.encoder = encoder
        self.assembler = assembler
        self.cancel_token = cancel_token or CancellationToken()
        self.frames_total = frame_count_for(timeline.total_duration, profile.fps)
        self.status = ExportStatus.PENDING
        self.result: Optional[ExportResult] = None
        self.last_progress: Optional[ExportProgress] = None
        self._progress_log = ProgressLogger(__name__)

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def __aiter__(self) -> AsyncIterator[ExportProgress]:
        return self.progress()

    async def run(self) -> ExportResult:
        """Drain the session and return its terminal result.

        Raises:
            ExportError: If a frame cannot be produced or the encoder fails
        """
        async for _ in self.progress():
            pass
        return self.result

    def _snapshot(self, frames_done: int, timestamp: float) -> ExportProgress:
        percent = 100.0 if self.frames_total == 0 else frames_done * 100.0 / self.frames_total
        progress = ExportProgress(
            frames_done=frames_done,
            frames_total=self.frames_total,
            percent=min(percent, 100.0),
            timestamp=timestamp,
        )
        self.last_progress = progress
        return progress

    async def _abort(self, status: ExportStatus) -> None:
        self.status = status
        try:
            await self.encoder.abort()
        except Exception as e:
            logger.error(f"Encoder abort failed: {e}")

    def _fail(self, message: str, cause: Exception, frame_index=None, timestamp=None) -> ExportError:
        self._progress_log.error(message)
        return ExportError(
            message,
            frame_index=frame_index,
            timestamp=timestamp,
            asset_id=getattr(cause, "asset_id", None),
            progress=self.last_progress,
        )

    async def progress(self) -> AsyncIterator[ExportProgress]:
        """Async stream of progress snapshots, 0 through 100, non-decreasing."""
        if self.status != ExportStatus.PENDING:
            raise RuntimeError("Export session has already been started")
        self.status = ExportStatus.RUNNING

        duration = self.timeline.total_duration
        self._progress_log.start_task(
            f"Export {self.frames_total} frames ({duration:.2f}s) as "
            f"{self.profile.format.value} {self.profile.quality.value} @ {self.profile.fps}fps"
        )

        try:
            await self.encoder.begin(self.profile, self.frames_total, duration)
        except Exception as e:
            await self._abort(ExportStatus.FAILED)
            raise self._fail(f"Encoder rejected export: {e}", e) from e

        frames_done = 0
        log_step = max(self.frames_total // 10, 1)
        try:
            yield self._snapshot(0, 0.0)

            for index in range(self.frames_total):
                if self.cancel_token.cancelled:
                    await self._abort(ExportStatus.CANCELLED)
                    self._progress_log.warning(f"Export cancelled after {frames_done} frames")
                    self.result = ExportResult(
                        status=ExportStatus.CANCELLED,
                        frames_written=frames_done,
                        progress=self.last_progress,
                    )
                    return

                timestamp = index / self.profile.fps
                try:
                    frame = self.assembler.frame_at(self.timeline, timestamp, index=index)
                except Exception as e:
                    await self._abort(ExportStatus.FAILED)
                    raise self._fail(
                        f"Frame {index} at {timestamp:.3f}s could not be composited: {e}",
                        e, index, timestamp,
                    ) from e

                try:
                    await self.encoder.write_frame(frame)
                except Exception as e:
                    await self._abort(ExportStatus.FAILED)
                    raise self._fail(
                        f"Encoder failed on frame {index} at {timestamp:.3f}s: {e}",
                        e, index, timestamp,
                    ) from e
                del frame

                frames_done = index + 1
                if frames_done % log_step == 0:
                    self._progress_log.update(f"{frames_done}/{self.frames_total} frames")
                yield self._snapshot(frames_done, timestamp)
                # Let other tasks run (and cancel) between frames
                await asyncio.sleep(0)

            try:
                artifact = await self.encoder.finish()
            except Exception as e:
                await self._abort(ExportStatus.FAILED)
                raise self._fail(f"Encoder failed to finalize: {e}", e) from e

            self.status = ExportStatus.COMPLETED
            self.result = ExportResult(
                status=ExportStatus.COMPLETED,
                artifact=artifact,
                frames_written=frames_done,
                progress=self.last_progress,
            )
            self._progress_log.complete(f"Exported {frames_done} frames to {artifact.location}")
        finally:
            if self.status == ExportStatus.RUNNING:
                # Consumer stopped iterating before the session finished
                await self._abort(ExportStatus.CANCELLED)
                self.result = ExportResult(
                    status=ExportStatus.CANCELLED,
                    frames_written=frames_done,
                    progress=self.last_progress,
                )


class ExportCoordinator:
    """Validates export requests and creates sessions."""

    def __init__(
        self,
        encoder: EncoderInterface,
        cache: Optional[TransformCache] = None,
        gap_policy: Optional[GapPolicy] = None,
    ):
        """Initialize export coordinator.

        Args:
            encoder: Collaborator that receives frames
            cache: Resolved-raster cache shared with previews of the same assets
            gap_policy: Overrides settings.gap_policy
        """
        self.encoder = encoder
        self.cache = cache if cache is not None else TransformCache()
        self.gap_policy = GapPolicy(gap_policy or settings.gap_policy)

    def export(
        self,
        timeline: Timeline,
        profile: ExportProfile,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExportSession:
        """Check preconditions and return a session ready to run.

        Raises:
            IncompleteTimeline: If the timeline has gaps and the policy rejects them
            ExportError: If the timeline has nothing to export
        """
        if not timeline.items or timeline.total_duration <= 0:
            raise ExportError("Timeline is empty; nothing to export")

        gaps = timeline.gaps()
        if gaps:
            if self.gap_policy == GapPolicy.REJECT:
                logger.error(f"Export rejected: {len(gaps)} gap(s) in timeline")
                raise IncompleteTimeline(gaps)
            logger.warning(f"Exporting {len(gaps)} gap(s) as background frames")

        assembler = ClipAssembler(profile=profile, cache=self.cache)
        return ExportSession(timeline, profile, self.encoder, assembler, cancel_token)

    async def run(
        self,
        timeline: Timeline,
        profile: ExportProfile,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExportResult:
        """Export and wait for the terminal result."""
        return await self.export(timeline, profile, cancel_token).run()


def export(
    timeline: Timeline,
    profile: ExportProfile,
    encoder: EncoderInterface,
    cancel_token: Optional[CancellationToken] = None,
    cache: Optional[TransformCache] = None,
) -> ExportSession:
    """Start an export; iterate the session for progress, await run() for the result.

    Raises:
        IncompleteTimeline: If the timeline has gaps and the gap policy rejects them
    """
    return ExportCoordinator(encoder, cache=cache).export(timeline, profile, cancel_token)
