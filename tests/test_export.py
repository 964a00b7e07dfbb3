"""
Export Tests
============

Archive encoder output and export trigger lifecycle.
"""

import asyncio
import io
import json
import re
import zipfile

import pytest

from svga_forge.export.encoder import ArchiveEncoder, EncodingFailure, frame_filename
from svga_forge.export.trigger import ALERT_NOTICE, ExportTrigger
from svga_forge.models.sequence import CanvasDimensions, GenerationStatus, SequenceConfig
from svga_forge.sequence.registry import FrameRegistry


DIMS = CanvasDimensions(32, 24)


@pytest.fixture
def registry(make_files):
    reg = FrameRegistry()
    reg.add(make_files(["frame10.png", "frame2.png", "frame1.jpg"]), dimensions=DIMS)
    return reg


def read_archive(content: bytes):
    with zipfile.ZipFile(io.BytesIO(content)) as zf:
        manifest = json.loads(zf.read("movie.spec"))
        entries = {name: zf.read(name) for name in zf.namelist()}
        compress_types = {info.compress_type for info in zf.infolist()}
    return manifest, entries, compress_types


class TestArchiveEncoder:

    def test_manifest_shape(self, registry):
        archive = asyncio.run(
            ArchiveEncoder().encode(registry.records, DIMS, SequenceConfig(fps=12))
        )
        manifest, _, _ = read_archive(archive.content)

        assert manifest["version"] == "2.0"
        assert manifest["params"] == {
            "viewBox": {"width": 32, "height": 24},
            "fps": 12,
            "frames": 3,
        }
        sprites = manifest["sprites"]
        assert len(sprites) == 1
        assert sprites[0]["imageKey"] is None

        placements = sprites[0]["frames"]
        assert [f["imageKey"] for f in placements] == ["img_0", "img_1", "img_2"]
        for placement in placements:
            assert placement["alpha"] == 1
            assert placement["transform"] == {"a": 1, "b": 0, "c": 0, "d": 1, "tx": 0, "ty": 0}
            assert placement["layout"] == {"x": 0, "y": 0, "width": 32, "height": 24}

    def test_counts_agree(self, registry):
        archive = asyncio.run(
            ArchiveEncoder().encode(registry.records, DIMS, SequenceConfig())
        )
        manifest, _, _ = read_archive(archive.content)
        frames = manifest["sprites"][0]["frames"]
        assert len(manifest["images"]) == len(frames) == len(registry)
        assert manifest["params"]["frames"] == len(frames)
        assert archive.frame_count == len(registry)

    def test_round_trip_preserves_order_and_bytes(self, registry):
        archive = asyncio.run(
            ArchiveEncoder().encode(registry.records, DIMS, SequenceConfig())
        )
        manifest, entries, compress_types = read_archive(archive.content)

        restored = [
            entries[manifest["images"][placement["imageKey"]]]
            for placement in manifest["sprites"][0]["frames"]
        ]
        assert restored == [r.content for r in registry.records]
        assert compress_types == {zipfile.ZIP_DEFLATED}

    def test_filenames_keep_extension(self, registry):
        archive = asyncio.run(
            ArchiveEncoder().encode(registry.records, DIMS, SequenceConfig())
        )
        # registry order: frame1.jpg, frame2.png, frame10.png
        assert archive.manifest.images == {
            "img_0": "img_0.jpg",
            "img_1": "img_1.png",
            "img_2": "img_2.png",
        }
        assert frame_filename(4, "noext") == "img_4.png"

    def test_progress_is_monotonic(self, registry):
        updates = []
        asyncio.run(
            ArchiveEncoder().encode(
                registry.records, DIMS, SequenceConfig(),
                on_progress=lambda pct, msg: updates.append((pct, msg)),
            )
        )
        percents = [pct for pct, _ in updates]
        assert percents[0] == 10
        assert percents[-1] == 95
        assert percents == sorted(percents)
        assert updates[1][1] == "Packing frame 1/3"
        assert updates[-1][1] == "Packing frame 3/3"

    def test_empty_is_noop(self):
        updates = []
        result = asyncio.run(
            ArchiveEncoder().encode([], DIMS, SequenceConfig(), lambda p, m: updates.append(p))
        )
        assert result is None
        assert updates == []

    def test_unset_dimensions_fail(self, registry):
        with pytest.raises(EncodingFailure):
            asyncio.run(
                ArchiveEncoder().encode(registry.records, CanvasDimensions.ZERO, SequenceConfig())
            )

    def test_finalize_error_is_wrapped(self, registry, monkeypatch):
        def broken(buffer):
            raise OSError("disk on fire")

        monkeypatch.setattr(ArchiveEncoder, "_finalize", staticmethod(broken))
        with pytest.raises(EncodingFailure):
            asyncio.run(
                ArchiveEncoder().encode(registry.records, DIMS, SequenceConfig())
            )

    def test_identity_values_serialize_as_integers(self, registry):
        archive = asyncio.run(
            ArchiveEncoder().encode(registry.records, DIMS, SequenceConfig())
        )
        with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
            raw = zf.read("movie.spec").decode("utf-8")
        assert '"alpha":1,' in raw
        assert '"transform":{"a":1,"b":0,"c":0,"d":1,"tx":0,"ty":0}' in raw

    @pytest.mark.parametrize("failing_message", [
        "Packaging SVGA 2.0 resources...",
        "Packing frame 2/3",
    ])
    def test_progress_callback_error_is_wrapped(self, registry, failing_message):
        def on_progress(percent, message):
            if message == failing_message:
                raise RuntimeError("display gone")

        with pytest.raises(EncodingFailure):
            asyncio.run(
                ArchiveEncoder().encode(
                    registry.records, DIMS, SequenceConfig(), on_progress=on_progress
                )
            )

    def test_invalid_compression_level(self):
        with pytest.raises(ValueError):
            ArchiveEncoder(compression_level=12)


class TestExportTrigger:

    def test_success_lifecycle(self, registry):
        async def scenario():
            seen = []
            trigger = ExportTrigger(reset_delay_sec=0.0, clock_ms=lambda: 1700000000000)
            trigger.subscribe(seen.append)
            outcome = await trigger.run(registry.records, DIMS, SequenceConfig())
            final = trigger.status
            await trigger.wait_idle()
            return outcome, seen, final, trigger.status

        outcome, seen, final, idle = asyncio.run(scenario())
        assert outcome.ok
        assert outcome.filename == "animation_32x24_1700000000000.svga"
        assert final == GenerationStatus(False, 100, "Export complete")
        assert idle == GenerationStatus.IDLE
        assert all(s.is_generating for s in seen[:-2])
        progress = [s.progress for s in seen[:-1]]
        assert progress == sorted(progress)

    def test_empty_frames_no_status_change(self):
        async def scenario():
            seen = []
            trigger = ExportTrigger()
            trigger.subscribe(seen.append)
            return await trigger.run([], DIMS, SequenceConfig()), seen, trigger.status

        outcome, seen, status = asyncio.run(scenario())
        assert outcome is None
        assert seen == []
        assert status == GenerationStatus.IDLE

    def test_concurrent_run_is_refused(self, registry):
        async def scenario():
            trigger = ExportTrigger(reset_delay_sec=0.0)
            return await asyncio.gather(
                trigger.run(registry.records, DIMS, SequenceConfig()),
                trigger.run(registry.records, DIMS, SequenceConfig()),
            )

        first, second = asyncio.run(scenario())
        assert first.ok
        assert second.accepted is False
        assert second.archive is None

    def test_failure_sets_status_and_alerts(self, registry):
        alerts = []

        async def scenario():
            trigger = ExportTrigger(reset_delay_sec=60.0, alert=alerts.append)
            outcome = await trigger.run(registry.records, CanvasDimensions.ZERO, SequenceConfig())
            return outcome, trigger.status

        outcome, status = asyncio.run(scenario())
        assert outcome.accepted
        assert not outcome.ok
        assert isinstance(outcome.error, EncodingFailure)
        assert status == GenerationStatus(False, 0, "Export failed")
        assert alerts == [ALERT_NOTICE]

    def test_filenames_are_unique(self):
        trigger = ExportTrigger(clock_ms=lambda: 42)
        names = {trigger.filename_for(DIMS) for _ in range(5)}
        assert len(names) == 5
        for name in names:
            assert re.fullmatch(r"animation_32x24_\d+\.svga", name)

    def test_save_writes_archive(self, registry, tmp_path):
        async def scenario():
            trigger = ExportTrigger(reset_delay_sec=0.0)
            outcome = await trigger.run(registry.records, DIMS, SequenceConfig())
            return trigger, outcome

        trigger, outcome = asyncio.run(scenario())
        path = trigger.save(outcome, tmp_path / "out")
        assert path.name == outcome.filename
        assert zipfile.is_zipfile(path)
        assert [p.name for p in path.parent.iterdir()] == [outcome.filename]

    def test_first_snapshot_is_packaging_baseline(self, registry):
        async def scenario():
            seen = []
            trigger = ExportTrigger(reset_delay_sec=0.0)
            trigger.subscribe(seen.append)
            await trigger.run(registry.records, DIMS, SequenceConfig())
            return seen

        seen = asyncio.run(scenario())
        assert seen[0] == GenerationStatus(True, 10, "Packaging SVGA 2.0 resources...")
        assert all(s.message for s in seen if s.is_generating)
        assert seen.count(seen[0]) == 1

    def test_failure_fades_to_idle(self, registry):
        async def scenario():
            trigger = ExportTrigger(reset_delay_sec=0.0)
            await trigger.run(registry.records, CanvasDimensions.ZERO, SequenceConfig())
            failed = trigger.status
            await trigger.wait_idle()
            return failed, trigger.status

        failed, idle = asyncio.run(scenario())
        assert failed == GenerationStatus(False, 0, "Export failed")
        assert idle == GenerationStatus.IDLE

    def test_raising_listener_does_not_block_later_exports(self, registry):
        async def scenario():
            trigger = ExportTrigger(reset_delay_sec=0.0)

            def broken(status):
                if status.progress == 10:
                    raise RuntimeError("render surface gone")

            trigger.subscribe(broken)
            first = await trigger.run(registry.records, DIMS, SequenceConfig())
            after_first = trigger.status
            await trigger.wait_idle()
            second = await trigger.run(registry.records, DIMS, SequenceConfig())
            return first, after_first, second

        first, after_first, second = asyncio.run(scenario())
        assert first.ok
        assert not after_first.is_generating
        assert second.accepted
        assert second.ok

    def test_cancelled_run_returns_to_idle(self, registry):
        async def scenario():
            seen = []
            trigger = ExportTrigger(reset_delay_sec=0.0)
            trigger.subscribe(seen.append)
            task = asyncio.create_task(
                trigger.run(registry.records, DIMS, SequenceConfig())
            )
            await asyncio.sleep(0)
            during = trigger.status
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            after = trigger.status
            retry = await trigger.run(registry.records, DIMS, SequenceConfig())
            return during, after, seen, retry

        during, after, seen, retry = asyncio.run(scenario())
        assert during.is_generating
        assert after == GenerationStatus.IDLE
        assert GenerationStatus.IDLE in seen
        assert retry.ok
        manifest, entries, _ = read_archive(retry.archive.content)
        assert len(manifest["images"]) == len(registry)

    def test_metrics_count_runs(self, registry):
        async def scenario():
            trigger = ExportTrigger(reset_delay_sec=0.0)
            await trigger.run(registry.records, DIMS, SequenceConfig())
            await trigger.run(registry.records, CanvasDimensions.ZERO, SequenceConfig())
            await trigger.wait_idle()
            return trigger.metrics()

        metrics = asyncio.run(scenario())
        assert metrics["runs_completed"] == 1
        assert metrics["runs_failed"] == 1
        assert metrics["status"] == GenerationStatus.IDLE.to_dict()
