"""
Frame Registry Tests
====================

Registry ordering, handle ownership and dimension probing.
"""

import asyncio

import pytest

from svga_forge.models.frame import IncomingFile
from svga_forge.models.sequence import CanvasDimensions
from svga_forge.sequence.handles import HandleStore
from svga_forge.sequence.prober import ProbeFailure, decode_dimensions, probe_dimensions
from svga_forge.sequence.registry import FrameRegistry


DIMS = CanvasDimensions(32, 24)


class TestHandleStore:

    def test_acquire_resolve_release(self):
        store = HandleStore()
        handle = store.acquire(b"abc")
        assert store.resolve(handle) == b"abc"
        assert store.release(handle) is True
        assert store.resolve(handle) is None
        assert store.release(handle) is False
        assert store.live_count == 0

    def test_handles_are_unique(self):
        store = HandleStore()
        handles = {store.acquire(b"x") for _ in range(50)}
        assert len(handles) == 50

    def test_release_all(self):
        store = HandleStore()
        handles = [store.acquire(b"x") for _ in range(3)]
        assert store.release_all() == 3
        assert all(store.resolve(h) is None for h in handles)
        assert store.metrics() == {"live": 0, "total_acquired": 3}


class TestFrameRegistry:

    def test_add_orders_naturally(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["b.png", "a.png", "c10.png"]), dimensions=DIMS)
        assert [r.name for r in registry] == ["a.png", "b.png", "c10.png"]
        assert [r.position for r in registry] == [0, 1, 2]

    def test_merge_resorts_whole_collection(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["frame2.png"]), dimensions=DIMS)
        registry.add(make_files(["frame10.png", "frame1.png"]))
        assert [r.name for r in registry] == ["frame1.png", "frame2.png", "frame10.png"]

    def test_first_batch_requires_dimensions(self, make_files):
        registry = FrameRegistry()
        with pytest.raises(ValueError):
            registry.add(make_files(["a.png"]))

    def test_dimensions_kept_after_first_batch(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["a.png"]), dimensions=DIMS)
        registry.add(make_files(["b.png"]), dimensions=CanvasDimensions(99, 99))
        assert registry.dimensions == DIMS

    def test_empty_batch_is_noop(self):
        registry = FrameRegistry()
        assert registry.add([]) == []
        assert registry.dimensions == CanvasDimensions.ZERO

    def test_content_is_preserved(self, make_files):
        files = make_files(["a.png"])
        registry = FrameRegistry()
        registry.add(files, dimensions=DIMS)
        assert registry.records[0].content == files[0].content

    def test_remove_releases_handle_and_reindexes(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["a.png", "b.png", "c.png"]), dimensions=DIMS)
        first = registry.records[0]

        assert registry.remove(first.id) is True
        assert registry.handles.resolve(first.display_handle) is None
        assert [r.name for r in registry] == ["b.png", "c.png"]
        assert [r.position for r in registry] == [0, 1]
        assert registry.dimensions == DIMS

    def test_remove_unknown_id_is_noop(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["a.png"]), dimensions=DIMS)
        assert registry.remove("missing") is False
        assert len(registry) == 1

    def test_remove_to_empty_resets_dimensions(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["a.png", "b.png"]), dimensions=DIMS)
        for record in registry.records:
            registry.remove(record.id)
        assert registry.is_empty
        assert registry.dimensions == CanvasDimensions.ZERO
        assert registry.handles.live_count == 0

    def test_clear(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["a.png", "b.png", "c.png"]), dimensions=DIMS)
        assert registry.clear() == 3
        assert len(registry) == 0
        assert registry.dimensions == CanvasDimensions.ZERO
        assert registry.handles.live_count == 0
        assert registry.metrics()["total_removed"] == 3
        assert registry.metrics()["handles"] == {"live": 0, "total_acquired": 3}

    def test_display_handles_follow_order(self, make_files):
        registry = FrameRegistry()
        registry.add(make_files(["z.png", "y.png"]), dimensions=DIMS)
        assert registry.display_handles == [r.display_handle for r in registry.records]


class TestDimensionProber:

    def test_decode_png(self, make_png):
        assert decode_dimensions(make_png(40, 30)) == CanvasDimensions(40, 30)

    def test_probe_is_async(self, make_png):
        dims = asyncio.run(probe_dimensions(make_png(17, 5), "tiny.png"))
        assert dims == CanvasDimensions(17, 5)

    def test_corrupt_data_fails(self):
        with pytest.raises(ProbeFailure):
            asyncio.run(probe_dimensions(b"\x00\x01garbage", "bad.png"))

    def test_empty_data_fails(self):
        with pytest.raises(ProbeFailure):
            decode_dimensions(b"")

    def test_size_limit(self, make_png):
        with pytest.raises(ProbeFailure):
            decode_dimensions(make_png(8, 8), max_bytes=4)
