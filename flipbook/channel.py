"""
Background fetch channels.

A channel performs one request/reply exchange: it receives the whole
descriptor list and returns an index-aligned list holding either the raw
bytes of an acceptable image or ``None``.  Non-string descriptors (frames
that are already decoded) always map to ``None``; the loader keeps those
in place itself.

Network and file errors never escape a channel; they become ``None``.
The default channel routes http(s) URLs to httpx and reads anything else
from disk.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPES: FrozenSet[str] = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
})


def media_type(content_type: Optional[str]) -> str:
    """Strip parameters from a Content-Type value: 'image/png; q=1' -> 'image/png'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class FetchChannel(abc.ABC):
    """One-shot request/reply exchange used by the frame loader."""

    name: str = "abstract"

    def __init__(self, accepted_media_types: Optional[FrozenSet[str]] = None) -> None:
        self.accepted_media_types = frozenset(
            accepted_media_types or DEFAULT_MEDIA_TYPES)

    def accepts(self, content_type: Optional[str]) -> bool:
        return media_type(content_type) in self.accepted_media_types

    @abc.abstractmethod
    def exchange(self, descriptors: Sequence[object]) -> List[Optional[bytes]]:
        """Return one entry per descriptor: image bytes or None."""


class HttpFetchChannel(FetchChannel):
    """Fetch every URL concurrently with an async httpx client."""

    name = "http"

    def __init__(
        self,
        accepted_media_types: Optional[FrozenSet[str]] = None,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(accepted_media_types)
        self.timeout_s = timeout_s
        self.transport = transport

    def exchange(self, descriptors: Sequence[object]) -> List[Optional[bytes]]:
        # Runs on the loader's worker thread, which has no event loop of its own.
        return asyncio.run(self._fetch_all(descriptors))

    async def _fetch_all(self, descriptors: Sequence[object]) -> List[Optional[bytes]]:
        async with httpx.AsyncClient(timeout=self.timeout_s,
                                     transport=self.transport,
                                     follow_redirects=True) as client:
            return list(await asyncio.gather(
                *(self._fetch_one(client, i, d) for i, d in enumerate(descriptors))
            ))

    async def _fetch_one(self, client: httpx.AsyncClient, index: int,
                         descriptor: object) -> Optional[bytes]:
        if not isinstance(descriptor, str):
            return None
        try:
            response = await client.get(descriptor)
        # InvalidURL is not an HTTPError; ValueError comes from request building.
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning("Frame %d: fetch of %s failed: %s",
                           index, descriptor, exc)
            return None
        if not self.accepts(response.headers.get("content-type")):
            logger.warning(
                "Frame %d: %s returned %r (status %d), not an accepted image type",
                index, descriptor, response.headers.get("content-type"),
                response.status_code,
            )
            return None
        return response.content


class FileFetchChannel(FetchChannel):
    """Read frames from local paths; the media type is guessed from the name."""

    name = "file"

    def exchange(self, descriptors: Sequence[object]) -> List[Optional[bytes]]:
        return [self._read_one(i, d) for i, d in enumerate(descriptors)]

    def _read_one(self, index: int, descriptor: object) -> Optional[bytes]:
        if not isinstance(descriptor, str):
            return None
        path = Path(descriptor)
        guessed, _ = mimetypes.guess_type(path.name)
        if not self.accepts(guessed):
            logger.warning("Frame %d: %s is not an accepted image type (%s)",
                           index, path, guessed)
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.warning("Frame %d: cannot read %s: %s", index, path, exc)
            return None


REMOTE_SCHEMES = frozenset({"http", "https"})


def is_remote(descriptor: object) -> bool:
    """True for http(s) URLs.  Unparseable strings are treated as paths."""
    if not isinstance(descriptor, str):
        return False
    try:
        scheme = urlsplit(descriptor).scheme
    except ValueError:
        return False
    return scheme.lower() in REMOTE_SCHEMES


class RoutingFetchChannel(FetchChannel):
    """Send http(s) URLs to one channel and everything else to another.

    Each sub-channel still sees a single exchange; replies are merged back
    into the caller's order.
    """

    name = "routing"

    def __init__(
        self,
        remote: Optional[FetchChannel] = None,
        local: Optional[FetchChannel] = None,
        accepted_media_types: Optional[FrozenSet[str]] = None,
    ) -> None:
        super().__init__(accepted_media_types)
        self.remote = remote if remote is not None else HttpFetchChannel(
            self.accepted_media_types)
        self.local = local if local is not None else FileFetchChannel(
            self.accepted_media_types)

    def exchange(self, descriptors: Sequence[object]) -> List[Optional[bytes]]:
        replies: List[Optional[bytes]] = [None] * len(descriptors)
        remote = [i for i, d in enumerate(descriptors) if is_remote(d)]
        local = [i for i, d in enumerate(descriptors)
                 if isinstance(d, str) and not is_remote(d)]
        for channel, indices in ((self.remote, remote), (self.local, local)):
            if not indices:
                continue
            answer = channel.exchange([descriptors[i] for i in indices])
            for i, reply in zip(indices, answer):
                replies[i] = reply
        return replies
