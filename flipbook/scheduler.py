"""
Display-refresh schedulers.

Playback never re-invokes itself directly; it asks a scheduler to run the
next step on the next refresh and keeps the returned token so the step can
be cancelled.  ``schedule_next`` and ``cancel`` may be called from any
thread (the loader posts its completion from a worker), but callbacks only
ever run on the thread that drives the scheduler.
"""

from __future__ import annotations

import abc
import itertools
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler(abc.ABC):
    """Once-per-frame callback scheduling."""

    def __init__(self) -> None:
        self._lock = threading.Condition()
        self._queue: "OrderedDict[int, Callback]" = OrderedDict()
        self._tokens = itertools.count(1)
        self.frame_count = 0

    def schedule_next(self, callback: Callback) -> int:
        """Run *callback* on the next refresh; return a cancellation token."""
        with self._lock:
            token = next(self._tokens)
            self._queue[token] = callback
            self._lock.notify_all()
        return token

    def cancel(self, token: int) -> None:
        """Forget a scheduled callback.  Unknown or spent tokens are ignored."""
        with self._lock:
            self._queue.pop(token, None)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def _run_frame(self) -> int:
        """Run every callback queued before this frame began."""
        with self._lock:
            tokens = list(self._queue)
        ran = 0
        for token in tokens:
            with self._lock:
                callback = self._queue.pop(token, None)
            # Cancelled by an earlier callback in this same frame.
            if callback is None:
                continue
            callback()
            ran += 1
        self.frame_count += 1
        return ran

    @abc.abstractmethod
    def run(self, until_idle: bool = True, timeout: Optional[float] = None) -> int:
        """Drive the scheduler; return the number of frames run."""


class ManualScheduler(Scheduler):
    """Deterministic scheduler advanced explicitly by ``tick()``."""

    def tick(self) -> int:
        return self._run_frame()

    def run_until_idle(self, max_ticks: int = 10_000) -> int:
        ticks = 0
        while self.pending and ticks < max_ticks:
            self.tick()
            ticks += 1
        return ticks

    def run(self, until_idle: bool = True, timeout: Optional[float] = None) -> int:
        return self.run_until_idle()


class RefreshScheduler(Scheduler):
    """Runs callbacks on the calling thread at a fixed refresh rate."""

    def __init__(self, fps: float = 60.0) -> None:
        super().__init__()
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = fps
        self._stopped = False

    @property
    def interval_s(self) -> float:
        return 1.0 / self.fps

    def stop(self) -> None:
        """End the current run, or the next one if none is running."""
        with self._lock:
            self._stopped = True
            self._lock.notify_all()

    def run(self, until_idle: bool = True, timeout: Optional[float] = None) -> int:
        """Pump frames until stopped, idle (if *until_idle*) or timed out.

        While idle and not ``until_idle``, the loop sleeps until a callback
        is posted from another thread.  The stop request is consumed when
        the loop exits.
        """
        start = time.monotonic()
        next_frame = start
        frames = 0
        try:
            while True:
                with self._lock:
                    if self._stopped:
                        break
                    if not self._queue:
                        if until_idle:
                            break
                        remaining = None
                        if timeout is not None:
                            remaining = timeout - (time.monotonic() - start)
                            if remaining <= 0:
                                break
                        self._lock.wait(remaining)
                        next_frame = time.monotonic()
                        continue
                if timeout is not None and time.monotonic() - start >= timeout:
                    break
                delay = next_frame - time.monotonic()
                if delay > 0:
                    time.sleep(delay)
                self._run_frame()
                frames += 1
                next_frame += self.interval_s
        finally:
            with self._lock:
                self._stopped = False
        logger.debug("Refresh loop ran %d frames", frames)
        return frames
