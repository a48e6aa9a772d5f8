"""
Draws a single frame onto the canvas using the computed fit geometry.
"""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from PIL import Image

from flipbook.canvas import DrawingContext
from flipbook.geometry import tile_rects
from flipbook.types import FitGeometry

logger = logging.getLogger(__name__)


class FrameRenderer:
    """Clears the canvas and paints one frame plus its repeat tiles.

    Scaled copies are cached per frame and tile size, since every pass over
    the set draws the same images at the same sizes.
    """

    def __init__(self, context: DrawingContext, geometry: FitGeometry) -> None:
        self.context = context
        self.geometry = geometry
        self._scaled: Dict[Tuple[int, Tuple[int, int]], Image.Image] = {}

    def _scaled_frame(self, frame: Image.Image, size: Tuple[int, int]) -> Image.Image:
        key = (id(frame), size)
        tile = self._scaled.get(key)
        if tile is None:
            tile = frame.convert("RGBA")
            if tile.size != size:
                tile = tile.resize(size, Image.LANCZOS)
            self._scaled[key] = tile
        return tile

    def draw(self, frame: Image.Image) -> int:
        """Paint *frame*; return the number of tiles drawn."""
        if not self.geometry.is_drawable:
            logger.debug("Skipping draw, geometry not drawable: %s",
                         self.geometry)
            return 0
        self.context.clear()
        drawn = 0
        for x, y, w, h in tile_rects(self.geometry):
            tile = self._scaled_frame(frame, (w, h))
            self.context.draw_image(tile, 0, 0, w, h, x, y, w, h)
            drawn += 1
        return drawn
