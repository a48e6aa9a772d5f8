"""
flipbook -- Canvas frame-sequence animation player.

Loads an ordered set of still frames, fits them onto a canvas under a
cover/contain sizing policy, and plays them back with direction, loop,
pause, stop and replay control.
"""

__version__ = "0.1.0"

from flipbook.canvas import Canvas, CanvasRegistry
from flipbook.config import SequencerOptions
from flipbook.exceptions import ConfigurationError, FlipbookError, LoadFailure
from flipbook.geometry import compute_geometry
from flipbook.loader import FrameLoader
from flipbook.scheduler import ManualScheduler, RefreshScheduler
from flipbook.sequencer import Sequencer, create_sequencer
from flipbook.types import (
    Direction,
    FitGeometry,
    FrameSet,
    PlaybackStatus,
    RepeatMode,
    SizingMode,
)

__all__ = [
    "Canvas",
    "CanvasRegistry",
    "ConfigurationError",
    "Direction",
    "FitGeometry",
    "FlipbookError",
    "FrameLoader",
    "FrameSet",
    "LoadFailure",
    "ManualScheduler",
    "PlaybackStatus",
    "RefreshScheduler",
    "RepeatMode",
    "Sequencer",
    "SequencerOptions",
    "SizingMode",
    "compute_geometry",
    "create_sequencer",
]
