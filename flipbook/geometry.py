"""
Fit geometry: mapping a frame's intrinsic size onto the canvas.

    cover    the axis with the smaller ratio is bound to the canvas; the
             frame overflows on the other axis and is clipped at draw time.
    contain  the axis with the larger ratio is bound to the canvas; the gap
             on the other axis is filled by tiling extra copies.
    auto     intrinsic size, no scaling.

Ratios follow IEEE semantics: a zero-sized canvas or frame produces inf/nan
geometry rather than an exception.  Such geometry is not drawable.
"""

from __future__ import annotations

import logging
import math
from typing import Iterator, Optional

from flipbook.types import FitGeometry, RepeatAxis, RepeatMode, SizingMode

logger = logging.getLogger(__name__)


def _ratio(numerator: float, denominator: float) -> float:
    """Divide like a float unit would instead of raising ZeroDivisionError."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def _cover(fw, fh, cw, ch):
    wr = _ratio(fw, cw)
    hr = _ratio(fh, ch)
    if wr <= hr:
        return float(cw), _ratio(fh, wr)
    return _ratio(fw, hr), float(ch)


def _contain(fw, fh, cw, ch):
    wr = _ratio(fw, cw)
    hr = _ratio(fh, ch)
    if wr >= hr:
        return float(cw), _ratio(fh, wr), RepeatAxis.Y, _ratio(wr, hr) - 1
    return _ratio(fw, hr), float(ch), RepeatAxis.X, _ratio(hr, wr) - 1


def _forced_repeat(draw_w, draw_h, cw, ch, repeat):
    if repeat is RepeatMode.NO_REPEAT:
        return RepeatAxis.X, 0.0
    if repeat is RepeatMode.REPEAT_X:
        return RepeatAxis.X, max(0.0, _ratio(cw, draw_w) - 1)
    return RepeatAxis.Y, max(0.0, _ratio(ch, draw_h) - 1)


def compute_geometry(
    frame_width: float,
    frame_height: float,
    canvas_width: float,
    canvas_height: float,
    mode: SizingMode = SizingMode.COVER,
    repeat: Optional[RepeatMode] = None,
) -> FitGeometry:
    """Compute the draw size and tiling for one frame on the canvas.

    ``repeat_count`` is the number of *additional* tiles and is never
    rounded; the draw loop uses it directly as its bound.
    """
    if mode is SizingMode.AUTO:
        geometry = FitGeometry(float(frame_width), float(frame_height))
    elif mode is SizingMode.COVER:
        draw_w, draw_h = _cover(frame_width, frame_height,
                                canvas_width, canvas_height)
        geometry = FitGeometry(draw_w, draw_h)
        if repeat is not None:
            axis, count = _forced_repeat(draw_w, draw_h, canvas_width,
                                         canvas_height, repeat)
            geometry = FitGeometry(draw_w, draw_h, count, axis)
    else:
        draw_w, draw_h, axis, count = _contain(frame_width, frame_height,
                                               canvas_width, canvas_height)
        if repeat is not None:
            axis, count = _forced_repeat(draw_w, draw_h, canvas_width,
                                         canvas_height, repeat)
        geometry = FitGeometry(draw_w, draw_h, count, axis)

    logger.debug(
        "Geometry %s %sx%s on %sx%s -> %.2fx%.2f, repeat %s along %s",
        mode.value, frame_width, frame_height, canvas_width, canvas_height,
        geometry.draw_width, geometry.draw_height,
        geometry.repeat_count, geometry.repeat_axis.value,
    )
    return geometry


def _span(index: int, size: float) -> tuple[int, int]:
    """Pixel start and extent of tile *index* along an axis of tile *size*.

    Tile edges are rounded once and shared by neighbours, so consecutive
    tiles abut exactly.
    """
    start = int(round(index * size))
    end = int(round((index + 1) * size))
    return start, max(1, end - start)


def tile_rects(geometry: FitGeometry) -> Iterator[tuple[int, int, int, int]]:
    """Yield ``(x, y, width, height)`` for every tile, the base frame first.

    A fractional ``repeat_count`` yields one trailing tile that only
    partially fits; the canvas edge clips it.
    """
    width, height = geometry.pixel_size
    yield (0, 0, width, height)
    count = geometry.repeat_count
    if not math.isfinite(count) or count <= 0:
        return
    i = 1
    while i - 1 < count:
        if geometry.repeat_axis is RepeatAxis.X:
            x, w = _span(i, geometry.draw_width)
            yield (x, 0, w, height)
        else:
            y, h = _span(i, geometry.draw_height)
            yield (0, y, width, h)
        i += 1
