"""
Playback state machine.

    idle --play--> awaiting_load --attach--> playing
    playing --pause--> paused --play--> playing
    playing/paused --stop--> stopped --play--> playing

One step draws the frame at ``current_index``, advances the index by the
direction's step and schedules the next step.  The step that finds the index
past the last frame completes the pass: ``stop()`` fires ``on_complete`` and,
when looping, playback restarts at the first frame.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, FrozenSet, Optional

from flipbook.exceptions import InvalidTransition
from flipbook.render import FrameRenderer
from flipbook.scheduler import Scheduler
from flipbook.types import Direction, FrameBounds, FrameSet, PlaybackStatus

logger = logging.getLogger(__name__)

S = PlaybackStatus

TRANSITIONS: Dict[PlaybackStatus, FrozenSet[PlaybackStatus]] = {
    S.IDLE: frozenset({S.AWAITING_LOAD, S.PLAYING, S.STOPPED}),
    S.AWAITING_LOAD: frozenset({S.IDLE, S.PLAYING, S.STOPPED}),
    S.PLAYING: frozenset({S.PAUSED, S.STOPPED}),
    S.PAUSED: frozenset({S.PLAYING, S.STOPPED}),
    S.STOPPED: frozenset({S.PLAYING, S.STOPPED}),
}

# Statuses from which play() starts a new pass rather than resuming.
_FRESH_PASS = frozenset({S.IDLE, S.AWAITING_LOAD, S.STOPPED})


def _noop() -> None:
    pass


class PlaybackController:
    """Steps through a resolved frame set on a scheduler."""

    def __init__(
        self,
        scheduler: Scheduler,
        renderer: Optional[FrameRenderer] = None,
        direction: Direction = Direction.NORMAL,
        looping: bool = False,
        length: int = 0,
        on_complete: Optional[Callable[[], None]] = None,
        on_paused: Optional[Callable[[], None]] = None,
    ) -> None:
        self.scheduler = scheduler
        self.renderer = renderer
        self.looping = looping
        self.on_complete = on_complete or _noop
        self.on_paused = on_paused or _noop
        self._frames: Optional[FrameSet] = None
        self._length = length
        self._status = PlaybackStatus.IDLE
        self._token: Optional[int] = None
        self._direction = direction
        self._bounds = FrameBounds.for_direction(length, direction)
        self.current_index = self._bounds.first_index

    # -- State ---------------------------------------------------------------

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def bounds(self) -> FrameBounds:
        return self._bounds

    @property
    def first_frame_index(self) -> int:
        return self._bounds.first_index

    @property
    def last_frame_index(self) -> int:
        return self._bounds.last_index

    @property
    def loaded(self) -> bool:
        return self._frames is not None

    @property
    def running(self) -> bool:
        return self._token is not None

    def _enter(self, status: PlaybackStatus) -> None:
        if status not in TRANSITIONS[self._status]:
            raise InvalidTransition(
                f"{self._status.value} -> {status.value} is not allowed")
        logger.debug("Playback %s -> %s at frame %d",
                     self._status.value, status.value, self.current_index)
        self._status = status

    # -- Configuration -------------------------------------------------------

    def set_direction(self, direction: Direction) -> FrameBounds:
        """Recompute first/last index for *direction*; the index is untouched."""
        self._direction = direction
        self._bounds = FrameBounds.for_direction(self._length, direction)
        logger.debug("Direction set to %s, frames %d..%d", direction.value,
                     self._bounds.first_index, self._bounds.last_index)
        return self._bounds

    @property
    def play_pending(self) -> bool:
        """True when play() was requested before the frames were loaded."""
        return self._status is PlaybackStatus.AWAITING_LOAD

    def attach(self, frames: FrameSet, renderer: Optional[FrameRenderer] = None) -> None:
        """Bind the resolved frame set and recompute bounds on its length.

        A pending play request is kept; the owner decides when to honour it.
        """
        self._frames = frames
        self._length = len(frames)
        if renderer is not None:
            self.renderer = renderer
        self.set_direction(self._direction)
        if not self._bounds.contains(self.current_index):
            self.current_index = self._bounds.first_index

    # -- Transitions ---------------------------------------------------------

    def play(self) -> None:
        if self._frames is None:
            if self._status is PlaybackStatus.IDLE:
                self._enter(PlaybackStatus.AWAITING_LOAD)
            return
        if self._length == 0:
            logger.warning("play() ignored: no frames survived loading")
            return
        if self._status is PlaybackStatus.PLAYING:
            return
        if self._status in _FRESH_PASS:
            self.current_index = self._bounds.first_index
        elif not self._bounds.contains(self.current_index):
            self._finish_pass()
            return
        self._enter(PlaybackStatus.PLAYING)
        self._step()

    def pause(self) -> None:
        if self._status is PlaybackStatus.AWAITING_LOAD:
            self._enter(PlaybackStatus.IDLE)
        elif self._status is PlaybackStatus.PLAYING:
            self._cancel_step()
            self._enter(PlaybackStatus.PAUSED)
        else:
            return
        self.on_paused()

    def stop(self) -> None:
        self._cancel_step()
        self.current_index = self._bounds.first_index
        if self._frames is None:
            if self._status is PlaybackStatus.AWAITING_LOAD:
                self._enter(PlaybackStatus.IDLE)
            return
        self._enter(PlaybackStatus.STOPPED)
        self.on_complete()

    def replay(self) -> None:
        self.stop()
        self.play()

    def cancel(self) -> None:
        """Drop any scheduled step without firing callbacks."""
        self._cancel_step()

    # -- Stepping ------------------------------------------------------------

    def _cancel_step(self) -> None:
        if self._token is not None:
            self.scheduler.cancel(self._token)
            self._token = None

    def _finish_pass(self) -> None:
        self.stop()
        if self.looping:
            self.play()

    def _step(self) -> None:
        self._token = None
        if self._status is not PlaybackStatus.PLAYING:
            return
        if not self._bounds.contains(self.current_index):
            self._finish_pass()
            return
        if self.renderer is not None:
            self.renderer.draw(self._frames[self.current_index])
        self.current_index += self._direction.step
        self._token = self.scheduler.schedule_next(self._step)
