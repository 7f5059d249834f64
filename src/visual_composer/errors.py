"""Exception taxonomy for the composition engine."""

from typing import List, Optional, Tuple


class CompositionError(Exception):
    """Base exception for all composition engine failures."""
    pass


class InvalidRaster(CompositionError):
    """Raised when a raster is malformed or has zero area."""

    def __init__(self, message: str, asset_id: Optional[str] = None):
        super().__init__(message)
        self.asset_id = asset_id


class InvalidParameters(CompositionError):
    """Raised when transform parameters fail validation."""
    pass


class InvalidPlacement(CompositionError):
    """Raised when a timeline mutation is rejected.

    The timeline the mutation was attempted on is left unchanged.
    """
    pass


class OverlappingPlacement(InvalidPlacement):
    """Raised when a placement overlaps another item without a bridging transition."""

    def __init__(self, message: str, conflicting_item_id: Optional[str] = None):
        super().__init__(message)
        self.conflicting_item_id = conflicting_item_id


class ItemNotFound(InvalidPlacement):
    """Raised when a timeline item id does not exist."""
    pass


class IncompleteTimeline(CompositionError):
    """Raised when export is requested for a timeline that still has gaps."""

    def __init__(self, gaps: List[Tuple[float, float]]):
        self.gaps = list(gaps)
        spans = ", ".join(f"[{start:.3f}, {end:.3f})" for start, end in self.gaps)
        super().__init__(f"Timeline has uncovered intervals: {spans}")


class EncoderError(CompositionError):
    """Raised by encoder collaborators when they cannot accept frames."""
    pass


class ExportError(CompositionError):
    """Raised when an export session fails.

    Attributes:
        frame_index: Index of the frame being produced when the failure happened
        timestamp: Timeline time of that frame in seconds
        asset_id: Asset that failed to resolve, if the failure came from an asset
        progress: Last progress snapshot emitted before the failure
    """

    def __init__(
        self,
        message: str,
        frame_index: Optional[int] = None,
        timestamp: Optional[float] = None,
        asset_id: Optional[str] = None,
        progress=None,
    ):
        super().__init__(message)
        self.frame_index = frame_index
        self.timestamp = timestamp
        self.asset_id = asset_id
        self.progress = progress
