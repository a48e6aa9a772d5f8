"""
Core data structures shared by the loader, geometry and playback modules.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Sequence, Union

from PIL import Image

# A frame descriptor is a URL / path string or an already-decoded image.
FrameDescriptor = Union[str, Image.Image]


class SizingMode(enum.Enum):
    """How a frame's intrinsic size is mapped onto the canvas."""
    COVER = "cover"       # Fill the canvas, overflow is clipped.
    CONTAIN = "contain"   # Fit inside the canvas, gap may be tiled.
    AUTO = "auto"         # Intrinsic size, no scaling.


class Direction(enum.Enum):
    """Playback direction through the resolved frame set."""
    NORMAL = "normal"
    REVERSE = "reverse"

    @property
    def step(self) -> int:
        return 1 if self is Direction.NORMAL else -1


class RepeatAxis(enum.Enum):
    X = "x"
    Y = "y"


class RepeatMode(enum.Enum):
    """Explicit tiling override; ``None`` in options means implicit."""
    REPEAT_X = "repeat-x"
    REPEAT_Y = "repeat-y"
    NO_REPEAT = "no-repeat"


class PlaybackStatus(enum.Enum):
    IDLE = "idle"                    # Constructed, frames not loaded.
    AWAITING_LOAD = "awaiting_load"  # play() requested before load.
    PLAYING = "playing"              # A step is scheduled.
    PAUSED = "paused"                # Step cancelled, index retained.
    STOPPED = "stopped"              # Index reset, terminal until play.


@dataclass(frozen=True)
class FitGeometry:
    """Canvas-space size of one frame plus the tiling needed to fill a gap."""
    draw_width: float
    draw_height: float
    repeat_count: float = 0.0
    repeat_axis: RepeatAxis = RepeatAxis.X

    @property
    def is_drawable(self) -> bool:
        return (
            math.isfinite(self.draw_width) and math.isfinite(self.draw_height)
            and self.draw_width > 0 and self.draw_height > 0
        )

    @property
    def pixel_size(self) -> tuple[int, int]:
        """Draw size rounded to whole pixels (at least 1x1)."""
        return (max(1, int(round(self.draw_width))),
                max(1, int(round(self.draw_height))))


@dataclass(frozen=True)
class FrameBounds:
    """First and last frame index for a direction."""
    first_index: int
    last_index: int

    @staticmethod
    def for_direction(length: int, direction: Direction) -> FrameBounds:
        if direction is Direction.NORMAL:
            return FrameBounds(first_index=0, last_index=length - 1)
        return FrameBounds(first_index=length - 1, last_index=0)

    def contains(self, index: int) -> bool:
        low, high = sorted((self.first_index, self.last_index))
        return low <= index <= high


@dataclass(frozen=True)
class FrameSet:
    """Ordered frames, either pending descriptors or resolved images.

    Once resolved, failed entries are gone: indices into the resolved set do
    not line up with indices into the original descriptor list.
    """
    entries: tuple[Any, ...]
    source_count: int
    resolved: bool = False

    @staticmethod
    def pending(descriptors: Sequence[FrameDescriptor]) -> FrameSet:
        return FrameSet(entries=tuple(descriptors),
                        source_count=len(descriptors), resolved=False)

    @staticmethod
    def resolved_from(results: Iterable[Image.Image | None],
                      source_count: int) -> FrameSet:
        survivors = tuple(img for img in results if img is not None)
        return FrameSet(entries=survivors, source_count=source_count,
                        resolved=True)

    @property
    def dropped_count(self) -> int:
        return self.source_count - len(self.entries)

    @property
    def is_preresolved(self) -> bool:
        return all(isinstance(e, Image.Image) for e in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> Any:
        return self.entries[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.entries)
