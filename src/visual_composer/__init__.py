"""Visual Composer: image transforms and timeline assembly for slideshow videos."""

from .models import place_on_timeline
from .tools import export, preview_frame, transform

__version__ = "0.1.0"

__all__ = ["transform", "place_on_timeline", "preview_frame", "export"]
