"""
Sequencer options: defaults, parsing from plain mappings, and validation.

``SequencerOptions.from_dict`` accepts the loose option objects a web
caller would pass (camelCase keys, numeric strings for sizes, enum values
as strings) and turns them into a typed, validated options object.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Callable, List, Mapping, Optional, Union

from flipbook.canvas import Canvas
from flipbook.exceptions import ConfigurationError
from flipbook.types import Direction, FrameDescriptor, RepeatMode, SizingMode

logger = logging.getLogger(__name__)

Callback = Optional[Callable[[], None]]

_CAMEL_KEYS = {
    "sizeCanvasToImage": "size_canvas_to_image",
    "onLoaded": "on_loaded",
    "onComplete": "on_complete",
    "onPaused": "on_paused",
}

_CALLBACK_FIELDS = ("on_loaded", "on_complete", "on_paused")


def _parse_dimension(name: str, value: Any) -> float:
    """Coerce a width/height the way ``Number()`` would; reject non-numbers."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            raise ConfigurationError(
                f"{name} must be numeric, got {value!r}") from None
    elif isinstance(value, (int, float)):
        number = float(value)
    elif value is None:
        return 0.0
    else:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number) or number < 0:
        raise ConfigurationError(f"{name} must be a finite, non-negative number")
    return number


def _parse_enum(name: str, enum_cls, value: Any):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(repr(m.value) for m in enum_cls)
        raise ConfigurationError(
            f"Invalid {name} {value!r}; expected one of {choices}") from None


@dataclass
class SequencerOptions:
    """Everything a Sequencer needs, with the player's defaults."""
    frames: List[FrameDescriptor] = field(default_factory=list)
    canvas: Union[Canvas, str, None] = None
    width: float = 0
    height: float = 0
    size: SizingMode = SizingMode.COVER
    repeat: Optional[RepeatMode] = None
    size_canvas_to_image: bool = False
    autoplay: bool = True
    loop: bool = False
    direction: Direction = Direction.NORMAL
    debug: bool = False
    progress: bool = False      # tqdm bar while frames decode
    on_loaded: Callback = None
    on_complete: Callback = None
    on_paused: Callback = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SequencerOptions:
        """Build options from a loose mapping, filling in defaults."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name not in known:
                logger.debug("Ignoring unknown option %r", key)
                continue
            kwargs[name] = value

        for flag in ("autoplay", "loop"):
            if flag in kwargs and not isinstance(kwargs[flag], bool):
                logger.debug("Option %r is not a bool, using default", flag)
                del kwargs[flag]
        for name in _CALLBACK_FIELDS:
            if name in kwargs and not callable(kwargs[name]):
                kwargs[name] = None

        if "frames" in kwargs and kwargs["frames"] is not None:
            kwargs["frames"] = list(kwargs["frames"])
        for dim in ("width", "height"):
            if dim in kwargs:
                kwargs[dim] = _parse_dimension(dim, kwargs[dim])
        if "size" in kwargs:
            kwargs["size"] = _parse_enum("size", SizingMode, kwargs["size"]) \
                or SizingMode.COVER
        if "direction" in kwargs:
            kwargs["direction"] = _parse_enum(
                "direction", Direction, kwargs["direction"]) or Direction.NORMAL
        if "repeat" in kwargs:
            kwargs["repeat"] = _parse_enum("repeat", RepeatMode, kwargs["repeat"])
        return cls(**kwargs)

    def validate(self) -> None:
        """Raise ConfigurationError for anything that makes the player unusable."""
        if self.canvas is None or self.canvas == "":
            raise ConfigurationError("canvas parameter missing")
        if not self.frames:
            raise ConfigurationError("No frames supplied")
        for dim in ("width", "height"):
            _parse_dimension(dim, getattr(self, dim))
        if not isinstance(self.size, SizingMode):
            raise ConfigurationError(f"Invalid size {self.size!r}")
        if not isinstance(self.direction, Direction):
            raise ConfigurationError(f"Invalid direction {self.direction!r}")
        if self.repeat is not None and not isinstance(self.repeat, RepeatMode):
            raise ConfigurationError(f"Invalid repeat {self.repeat!r}")
