"""
Sequencer: the public face of the player.

Wires the loader, fit geometry and playback controller to a canvas::

    Sequencer(options)
      -> FrameLoader.resolve          (background worker)
      -> _on_loaded                   (posted back to the scheduler)
           -> resize canvas, compute_geometry, attach, on_loaded
           -> play() if autoplay or play() was requested earlier

Everything that touches the canvas or playback state runs on the thread
that drives the scheduler.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Mapping, Optional, Union

from flipbook.canvas import CanvasRegistry, resolve_canvas
from flipbook.channel import FetchChannel
from flipbook.config import SequencerOptions
from flipbook.exceptions import ConfigurationError
from flipbook.geometry import compute_geometry
from flipbook.loader import Decoder, FrameLoader
from flipbook.playback import PlaybackController
from flipbook.render import FrameRenderer
from flipbook.scheduler import RefreshScheduler, Scheduler
from flipbook.types import (Direction, FitGeometry, FrameBounds, FrameSet,
                            PlaybackStatus)

logger = logging.getLogger(__name__)


class Sequencer:
    """A frame-sequence player bound to one canvas."""

    def __init__(
        self,
        options: SequencerOptions,
        scheduler: Optional[Scheduler] = None,
        channel: Optional[FetchChannel] = None,
        decoder: Optional[Decoder] = None,
        registry: Optional[CanvasRegistry] = None,
        loader: Optional[FrameLoader] = None,
    ) -> None:
        options.validate()
        if options.debug:
            logging.getLogger("flipbook").setLevel(logging.DEBUG)

        self.options = options
        self.canvas = resolve_canvas(options.canvas, registry)
        self.context = self.canvas.get_context()
        self.scheduler = scheduler if scheduler is not None else RefreshScheduler()
        self.loader = loader if loader is not None else FrameLoader(
            channel=channel, decoder=decoder, progress=options.progress)

        self._frames = FrameSet.pending(options.frames)
        self._geometry: Optional[FitGeometry] = None
        self._loaded = False
        self.controller = PlaybackController(
            scheduler=self.scheduler,
            direction=options.direction,
            looping=options.loop,
            length=len(self._frames),
            on_complete=self._complete,
            on_paused=self._paused,
        )
        logger.debug("Initialized sequencer on %r with %d frame descriptors",
                     self.canvas, len(self._frames))

        self.load_future: Future = self.loader.resolve(
            options.frames, on_resolved=self._post_loaded)
        self.load_future.add_done_callback(self._log_load_failure)

    # -- Loading -------------------------------------------------------------

    @staticmethod
    def _log_load_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Frame loading failed: %s", exc, exc_info=exc)

    def _post_loaded(self, frames: FrameSet) -> None:
        # Called on the loader's worker; hop back onto the scheduling thread.
        self.scheduler.schedule_next(lambda: self._on_loaded(frames))

    def _on_loaded(self, frames: FrameSet) -> None:
        self._frames = frames
        self._loaded = True
        self._resize_canvas()
        self.controller.attach(frames, FrameRenderer(self.context, self._geometry))
        logger.debug("Loaded %d frames (%d dropped)", len(frames),
                     frames.dropped_count)
        if self.options.on_loaded is not None:
            self.options.on_loaded()
        if self.options.autoplay or self.controller.play_pending:
            self.controller.play()

    def _resize_canvas(self) -> None:
        opts = self.options
        width, height = opts.width, opts.height
        first = self._frames[0] if len(self._frames) else None
        if first is not None and (opts.size_canvas_to_image
                                  or not width or not height):
            width, height = first.width, first.height
        self.canvas.resize(int(width), int(height))
        if first is None:
            self._geometry = FitGeometry(0.0, 0.0)
            return
        self._geometry = compute_geometry(
            first.width, first.height, self.canvas.width, self.canvas.height,
            opts.size, opts.repeat)

    # -- Callbacks -----------------------------------------------------------

    def _complete(self) -> None:
        logger.debug("Completed")
        if self.options.on_complete is not None:
            self.options.on_complete()

    def _paused(self) -> None:
        logger.debug("Paused at frame %d", self.controller.current_index)
        if self.options.on_paused is not None:
            self.options.on_paused()

    # -- Public control surface ----------------------------------------------

    def play(self) -> None:
        self.controller.play()

    def pause(self) -> None:
        self.controller.pause()

    def stop(self) -> None:
        self.controller.stop()

    def replay(self) -> None:
        self.controller.replay()

    def set_direction(self, direction: Union[Direction, str]) -> FrameBounds:
        return self.controller.set_direction(Direction(direction))

    def run(self, timeout: Optional[float] = None) -> int:
        """Wait for loading, then drive the scheduler until playback idles."""
        self.load_future.result(timeout=timeout)
        return self.scheduler.run(until_idle=True)

    def close(self) -> None:
        """Cancel any scheduled step.  Loading, if still running, completes."""
        self.controller.cancel()

    def __enter__(self) -> Sequencer:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -- Introspection -------------------------------------------------------

    @property
    def status(self) -> PlaybackStatus:
        return self.controller.status

    @property
    def current_index(self) -> int:
        return self.controller.current_index

    @property
    def direction(self) -> Direction:
        return self.controller.direction

    @property
    def frames(self) -> FrameSet:
        return self._frames

    @property
    def geometry(self) -> Optional[FitGeometry]:
        return self._geometry

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def dropped_count(self) -> int:
        return self._frames.dropped_count if self._loaded else 0


def create_sequencer(
    options: Union[SequencerOptions, Mapping[str, Any], None] = None,
    **kwargs: Any,
) -> Sequencer:
    """Build a Sequencer from an options object or a loose mapping.

    Keyword arguments other than the Sequencer collaborators are merged into
    the options mapping.
    """
    collaborators = {k: kwargs.pop(k) for k in
                     ("scheduler", "channel", "decoder", "registry", "loader")
                     if k in kwargs}
    if options is None:
        options = {}
    if not isinstance(options, SequencerOptions):
        options = SequencerOptions.from_dict({**options, **kwargs})
    elif kwargs:
        raise TypeError(f"Unexpected options alongside SequencerOptions: "
                        f"{sorted(kwargs)}")
    if not options.canvas:
        raise ConfigurationError("canvas parameter missing")
    return Sequencer(options, **collaborators)
