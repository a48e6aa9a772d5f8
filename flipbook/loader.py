"""
Frame loading pipeline.

    descriptors --> [FetchChannel] --> bytes | None --> [decode] --> FrameSet

Architecture
------------
Resolution runs on a single background worker so the caller's scheduling
thread never blocks:

  1. The whole descriptor list goes through the channel in one exchange;
     the reply is index-aligned with the request.
  2. Every non-null reply is decoded on a thread pool.  All decodes are
     submitted at once and all are awaited before anything is published.
  3. Failed entries are dropped, not replaced, so the resolved set can be
     shorter than the input.

Error handling
--------------
- Empty input: ``ConfigurationError``, raised synchronously.
- Per-frame fetch/decode failure: logged and dropped.
- Anything else raised on the worker surfaces through the returned future.
"""

from __future__ import annotations

import io
import logging
import sys
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from PIL import Image
from tqdm import tqdm

from flipbook.channel import FetchChannel, RoutingFetchChannel
from flipbook.exceptions import ConfigurationError, LoadFailure
from flipbook.types import FrameDescriptor, FrameSet

logger = logging.getLogger(__name__)

Resource = Union[bytes, str, Path]
Decoder = Callable[[Resource], Optional[Image.Image]]


def _open_image(resource: Resource) -> Image.Image:
    """Open and fully decode *resource*, raising LoadFailure on any error."""
    try:
        if isinstance(resource, bytes):
            img = Image.open(io.BytesIO(resource))
        else:
            img = Image.open(resource)
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise LoadFailure(f"cannot decode frame: {exc}") from exc
    return img


def decode_image(resource: Resource) -> Optional[Image.Image]:
    """Decode bytes or a path into an image; ``None`` when it is not one."""
    try:
        return _open_image(resource)
    except LoadFailure as exc:
        logger.debug("%s", exc)
        return None


def _determine_worker_count(n_frames: int, max_workers: int) -> int:
    if max_workers > 0:
        return max_workers
    return max(1, min(8, n_frames))


class FrameLoader:
    """Resolves frame descriptors into a FrameSet of decoded images."""

    def __init__(
        self,
        channel: Optional[FetchChannel] = None,
        decoder: Optional[Decoder] = None,
        max_workers: int = 0,
        progress: bool = False,
    ) -> None:
        self.channel = channel if channel is not None else RoutingFetchChannel()
        self.decoder = decoder if decoder is not None else decode_image
        self.max_workers = max_workers
        self.progress = progress

    def resolve(
        self,
        descriptors: Sequence[FrameDescriptor],
        on_resolved: Optional[Callable[[FrameSet], None]] = None,
    ) -> Future:
        """Start resolving *descriptors*; return a future of the FrameSet.

        ``on_resolved`` runs exactly once, after every decode has settled
        and before the future completes.
        """
        if not descriptors:
            raise ConfigurationError("No frames supplied")

        pending = FrameSet.pending(descriptors)
        if pending.is_preresolved:
            frame_set = FrameSet.resolved_from(pending.entries, len(pending))
            logger.debug("All %d frames already decoded, skipping fetch",
                         len(frame_set))
            if on_resolved is not None:
                on_resolved(frame_set)
            done: Future = Future()
            done.set_result(frame_set)
            return done

        # One-shot worker: no pool is kept alive once the set is resolved.
        worker = ThreadPoolExecutor(max_workers=1,
                                    thread_name_prefix="flipbook-load")
        future = worker.submit(self._resolve_pending, pending, on_resolved)
        worker.shutdown(wait=False)
        return future

    def _resolve_pending(
        self,
        pending: FrameSet,
        on_resolved: Optional[Callable[[FrameSet], None]],
    ) -> FrameSet:
        entries = pending.entries
        replies = self.channel.exchange(list(entries))
        if len(replies) != len(entries):
            raise LoadFailure(
                f"Channel {self.channel.name!r} replied with {len(replies)} "
                f"entries for {len(entries)} descriptors"
            )

        results: List[Optional[Image.Image]] = [
            e if isinstance(e, Image.Image) else None for e in entries
        ]
        to_decode = {
            i: reply for i, reply in enumerate(replies)
            if reply is not None and results[i] is None
        }
        results_decoded = self._decode_all(to_decode)
        for i, img in results_decoded.items():
            results[i] = img

        for i, img in enumerate(results):
            if img is None:
                logger.warning("Frame %d (%s) failed to load, dropped.",
                               i, _describe(entries[i]))

        frame_set = FrameSet.resolved_from(results, len(entries))
        logger.info("Loaded %d/%d frames (%d dropped).",
                    len(frame_set), frame_set.source_count,
                    frame_set.dropped_count)
        if on_resolved is not None:
            on_resolved(frame_set)
        return frame_set

    def _decode_all(self, resources: Dict[int, Resource]) -> Dict[int, Optional[Image.Image]]:
        decoded: Dict[int, Optional[Image.Image]] = {}
        if not resources:
            return decoded
        workers = _determine_worker_count(len(resources), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers,
                                thread_name_prefix="flipbook-decode") as pool, \
                tqdm(total=len(resources), desc="Decoding frames", unit="frame",
                     file=sys.stderr, disable=not self.progress) as bar:
            future_to_index = {
                pool.submit(self.decoder, resource): i
                for i, resource in resources.items()
            }
            for fut in as_completed(future_to_index):
                i = future_to_index[fut]
                try:
                    decoded[i] = fut.result()
                except LoadFailure as exc:
                    logger.debug("Frame %d: %s", i, exc)
                    decoded[i] = None
                bar.update(1)
        return decoded


def _describe(entry: object) -> str:
    if isinstance(entry, str):
        return entry
    return type(entry).__name__
