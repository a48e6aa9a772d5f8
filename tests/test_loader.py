"""
Tests for the frame loading pipeline.
"""

from __future__ import annotations

import httpx
import pytest
from PIL import Image

from conftest import StaticChannel, make_frame, png_bytes
from flipbook.channel import HttpFetchChannel, RoutingFetchChannel
from flipbook.exceptions import ConfigurationError, LoadFailure
from flipbook.loader import FrameLoader, decode_image

URLS = [f"http://frames/{i}.png" for i in range(3)]


def _colors(frame_set):
    return [img.getpixel((0, 0))[:3] for img in frame_set]


# ---------------------------------------------------------------------------
# decode_image
# ---------------------------------------------------------------------------

class TestDecodeImage:
    def test_decodes_png_bytes(self):
        img = decode_image(png_bytes(make_frame(20, 10)))
        assert img is not None
        assert img.size == (20, 10)

    def test_decodes_path(self, tmp_path):
        path = tmp_path / "frame.png"
        make_frame(8, 8).save(path)
        img = decode_image(path)
        assert img.size == (8, 8)

    def test_garbage_returns_none(self):
        assert decode_image(b"not an image") is None

    def test_missing_path_returns_none(self, tmp_path):
        assert decode_image(tmp_path / "nope.png") is None


# ---------------------------------------------------------------------------
# FrameLoader.resolve
# ---------------------------------------------------------------------------

class TestResolve:
    def test_empty_input_raises_synchronously(self, remote_channel):
        loader = FrameLoader(channel=remote_channel)
        with pytest.raises(ConfigurationError):
            loader.resolve([])
        assert remote_channel.requests == []

    def test_all_succeed_preserves_order(self, remote_channel):
        loader = FrameLoader(channel=remote_channel)
        frame_set = loader.resolve(URLS).result(timeout=10)
        assert frame_set.resolved
        assert len(frame_set) == 3
        assert frame_set.dropped_count == 0
        assert _colors(frame_set) == [(255, 0, 0), (0, 128, 0), (0, 0, 255)]

    def test_one_request_for_whole_list(self, remote_channel):
        FrameLoader(channel=remote_channel).resolve(URLS).result(timeout=10)
        assert remote_channel.requests == [URLS]

    def test_failed_fetch_is_dropped(self, remote_channel):
        urls = [URLS[0], "http://frames/broken.png", URLS[2]]
        frame_set = FrameLoader(channel=remote_channel).resolve(urls).result(timeout=10)
        assert len(frame_set) == 2
        assert frame_set.source_count == 3
        assert frame_set.dropped_count == 1
        # Index 1 now holds what was source index 2.
        assert _colors(frame_set) == [(255, 0, 0), (0, 0, 255)]

    def test_failed_decode_is_dropped(self, remote_channel):
        urls = ["http://frames/garbage.png", URLS[1]]
        frame_set = FrameLoader(channel=remote_channel).resolve(urls).result(timeout=10)
        assert _colors(frame_set) == [(0, 128, 0)]

    def test_everything_fails_gives_empty_set(self, remote_channel):
        urls = ["http://frames/broken.png", "http://frames/missing.png"]
        frame_set = FrameLoader(channel=remote_channel).resolve(urls).result(timeout=10)
        assert len(frame_set) == 0
        assert frame_set.dropped_count == 2

    def test_preresolved_short_circuits(self, remote_channel, colored_frames):
        future = FrameLoader(channel=remote_channel).resolve(colored_frames)
        assert future.done()
        frame_set = future.result()
        assert list(frame_set) == colored_frames
        assert remote_channel.requests == []

    def test_mixed_list_keeps_decoded_frames_in_place(self, remote_channel):
        ready = make_frame(color="yellow")
        frame_set = FrameLoader(channel=remote_channel).resolve(
            [URLS[0], ready, URLS[2]]).result(timeout=10)
        assert len(frame_set) == 3
        assert frame_set[1] is ready

    def test_on_resolved_called_once_before_result(self, remote_channel):
        seen = []
        future = FrameLoader(channel=remote_channel).resolve(
            URLS, on_resolved=seen.append)
        frame_set = future.result(timeout=10)
        assert seen == [frame_set]

    def test_decoder_load_failure_is_dropped(self, remote_channel):
        def picky(resource):
            img = decode_image(resource)
            if img is not None and img.getpixel((0, 0))[:3] == (0, 128, 0):
                raise LoadFailure("green frames are not allowed")
            return img

        loader = FrameLoader(channel=remote_channel, decoder=picky)
        frame_set = loader.resolve(URLS).result(timeout=10)
        assert _colors(frame_set) == [(255, 0, 0), (0, 0, 255)]

    def test_misaligned_reply_fails_future(self):
        class ShortChannel(StaticChannel):
            def exchange(self, descriptors):
                return [None]

        future = FrameLoader(channel=ShortChannel({})).resolve(URLS)
        with pytest.raises(LoadFailure):
            future.result(timeout=10)

    def test_progress_bar_does_not_change_result(self, remote_channel):
        loader = FrameLoader(channel=remote_channel, progress=True, max_workers=2)
        assert len(loader.resolve(URLS).result(timeout=10)) == 3


class TestDecodedImages:
    def test_images_are_fully_loaded(self, remote_channel):
        frame_set = FrameLoader(channel=remote_channel).resolve(URLS).result(timeout=10)
        for img in frame_set:
            assert isinstance(img, Image.Image)
            assert img.size == (100, 100)


class TestMalformedDescriptors:
    def test_bad_url_drops_only_that_frame(self):
        png = png_bytes(make_frame(color="red"))

        def handler(request):
            return httpx.Response(200, content=png,
                                  headers={"content-type": "image/png"})

        channel = HttpFetchChannel(transport=httpx.MockTransport(handler))
        future = FrameLoader(channel=channel).resolve(
            ["http://host/a.png", "http://host:abc/x.png"])
        frame_set = future.result(timeout=10)
        assert len(frame_set) == 1
        assert frame_set.dropped_count == 1
        assert _colors(frame_set) == [(255, 0, 0)]


class TestDefaultChannel:
    def test_local_paths_load_without_injected_channel(self, tmp_path):
        paths = []
        for i, color in enumerate(["red", "blue"]):
            path = tmp_path / f"{i}.png"
            path.write_bytes(png_bytes(make_frame(color=color)))
            paths.append(str(path))
        loader = FrameLoader()
        assert isinstance(loader.channel, RoutingFetchChannel)
        frame_set = loader.resolve(paths).result(timeout=10)
        assert _colors(frame_set) == [(255, 0, 0), (0, 0, 255)]
