"""
Pillow-backed drawing surface and selector lookup.

A ``Canvas`` owns an RGBA surface; ``DrawingContext.draw_image`` mirrors the
nine-argument 2D-context ``drawImage`` call (source rect -> destination
rect), clipping anything outside the surface.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from PIL import Image

from flipbook.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 300
DEFAULT_HEIGHT = 150
TRANSPARENT = (0, 0, 0, 0)


class Canvas:
    """An RGBA drawing surface with a fixed pixel size."""

    def __init__(self, width: int = DEFAULT_WIDTH,
                 height: int = DEFAULT_HEIGHT) -> None:
        self._surface = Image.new("RGBA", (int(width), int(height)), TRANSPARENT)
        self._context: Optional[DrawingContext] = None

    @property
    def width(self) -> int:
        return self._surface.width

    @property
    def height(self) -> int:
        return self._surface.height

    @property
    def surface(self) -> Image.Image:
        return self._surface

    def resize(self, width: int, height: int) -> None:
        """Reallocate the surface.  Like resetting a canvas, this clears it."""
        self._surface = Image.new("RGBA", (int(width), int(height)), TRANSPARENT)
        logger.debug("Canvas resized to %dx%d", self.width, self.height)

    def get_context(self) -> DrawingContext:
        if self._context is None:
            self._context = DrawingContext(self)
        return self._context

    def snapshot(self) -> Image.Image:
        return self._surface.copy()

    def __repr__(self) -> str:
        return f"Canvas({self.width}x{self.height})"


class DrawingContext:
    """Drawing operations bound to one canvas."""

    def __init__(self, canvas: Canvas) -> None:
        self.canvas = canvas

    def clear(self) -> None:
        surface = self.canvas.surface
        surface.paste(TRANSPARENT, (0, 0, surface.width, surface.height))

    def draw_image(self, image: Image.Image,
                   sx: int, sy: int, sw: int, sh: int,
                   dx: float, dy: float, dw: int, dh: int) -> None:
        """Copy the source rect of *image* scaled into the destination rect."""
        if dw <= 0 or dh <= 0 or sw <= 0 or sh <= 0:
            return
        tile = image
        if (sx, sy, sw, sh) != (0, 0, image.width, image.height):
            tile = tile.crop((sx, sy, sx + sw, sy + sh))
        if tile.size != (dw, dh):
            tile = tile.resize((dw, dh), Image.LANCZOS)
        self.paste(tile, dx, dy)

    def paste(self, tile: Image.Image, dx: float, dy: float) -> None:
        """Paste an already-scaled tile; Pillow clips it to the surface."""
        if tile.mode != "RGBA":
            tile = tile.convert("RGBA")
        self.canvas.surface.paste(tile, (int(round(dx)), int(round(dy))), tile)


class CanvasRegistry:
    """Maps selector strings to canvases, the way a document lookup would."""

    def __init__(self) -> None:
        self._canvases: Dict[str, Canvas] = {}

    def register(self, selector: str, canvas: Canvas) -> Canvas:
        self._canvases[selector] = canvas
        return canvas

    def query(self, selector: str) -> Optional[Canvas]:
        canvas = self._canvases.get(selector)
        if canvas is None and selector.startswith("#"):
            canvas = self._canvases.get(selector[1:])
        return canvas

    def __contains__(self, selector: str) -> bool:
        return self.query(selector) is not None


def resolve_canvas(target: Union[Canvas, str, None],
                   registry: Optional[CanvasRegistry] = None) -> Canvas:
    """Return the canvas for *target*, failing fast if it cannot be found."""
    if target is None or target == "":
        raise ConfigurationError("canvas parameter missing")
    if isinstance(target, Canvas):
        return target
    if not isinstance(target, str):
        raise ConfigurationError(
            f"Invalid canvas element supplied: {type(target).__name__}")
    canvas = registry.query(target) if registry is not None else None
    if canvas is None:
        raise ConfigurationError(
            f"Invalid selector supplied for canvas element: {target!r}")
    return canvas
