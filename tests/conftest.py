"""
Shared fixtures for the flipbook test suite.
"""

from __future__ import annotations

import io
from typing import Dict, List, Optional, Sequence

import pytest
from PIL import Image

from flipbook.channel import FetchChannel
from flipbook.scheduler import ManualScheduler

PALETTE = ["red", "green", "blue", "yellow", "purple", "orange"]


def make_frame(w: int = 100, h: int = 100, color: str = "red") -> Image.Image:
    return Image.new("RGBA", (w, h), color)


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class StaticChannel(FetchChannel):
    """Synchronous fake channel answering from a fixed table."""

    name = "static"

    def __init__(self, replies: Dict[str, Optional[bytes]]) -> None:
        super().__init__()
        self.replies = replies
        self.requests: List[List[object]] = []

    def exchange(self, descriptors: Sequence[object]) -> List[Optional[bytes]]:
        self.requests.append(list(descriptors))
        return [self.replies.get(d) if isinstance(d, str) else None
                for d in descriptors]


class RecordingRenderer:
    """Stands in for FrameRenderer; remembers what was drawn."""

    def __init__(self) -> None:
        self.drawn: list = []

    def draw(self, frame) -> int:
        self.drawn.append(frame)
        return 1


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def colored_frames():
    """Four 100x100 frames, each a different solid colour."""
    return [make_frame(color=c) for c in PALETTE[:4]]


@pytest.fixture
def remote_channel():
    """Channel serving three PNG frames plus one non-image response."""
    return StaticChannel({
        "http://frames/0.png": png_bytes(make_frame(color="red")),
        "http://frames/1.png": png_bytes(make_frame(color="green")),
        "http://frames/2.png": png_bytes(make_frame(color="blue")),
        "http://frames/broken.png": None,
        "http://frames/garbage.png": b"definitely not a png",
    })
