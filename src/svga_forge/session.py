"""
Editing Session
===============

Single owned instance holding all state for one editing session:
frame registry, canvas dimensions, sequence config, playback scheduler
and export status.

Collaborator surfaces (HTTP API, CLI) call methods on one EditingSession.
No module-level state is read or written by any operation.

Operation Boundaries:
    ingest()  catches ProbeFailure    -> IngestOutcome.error
    export()  catches EncodingFailure -> ExportOutcome.error (via ExportTrigger)
    set_fps() raises InvalidConfig for rates outside [1, 60]
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Tuple

from svga_forge.export.encoder import ArchiveEncoder
from svga_forge.export.trigger import ExportOutcome, ExportTrigger
from svga_forge.models.frame import FrameRecord, IncomingFile
from svga_forge.models.sequence import (
    MAX_FPS,
    MIN_FPS,
    CanvasDimensions,
    GenerationStatus,
    InvalidConfig,
    SequenceConfig,
)
from svga_forge.playback.scheduler import PlaybackScheduler, PlaybackState
from svga_forge.sequence.handles import HandleStore
from svga_forge.sequence.prober import ProbeFailure, probe_dimensions
from svga_forge.sequence.registry import FrameRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestOutcome:
    """
    Result of one ingestion batch.

    Attributes:
        added: Records created by this batch, in registry order
        dimensions: Canvas size after the batch
        error: ProbeFailure that aborted the batch, if any
    """

    added: Tuple[FrameRecord, ...] = field(default_factory=tuple)
    dimensions: CanvasDimensions = CanvasDimensions.ZERO
    error: Optional[ProbeFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EditingSession:
    """
    One editing session over an ordered set of frames.

    Example:
        session = EditingSession()
        await session.ingest([IncomingFile("frame2.png", data2),
                              IncomingFile("frame10.png", data10)])
        session.set_fps(12)
        outcome = await session.export()
    """

    def __init__(
        self,
        default_config: Optional[SequenceConfig] = None,
        trigger: Optional[ExportTrigger] = None,
        handles: Optional[HandleStore] = None,
        probe_max_bytes: Optional[int] = None,
    ) -> None:
        """
        Initialize an empty session.

        Args:
            default_config: Config restored by clear()
            trigger: Export trigger (default encoder settings if None)
            handles: Display handle store shared with preview surfaces
            probe_max_bytes: Size limit passed to the dimension prober
        """
        self._default_config = default_config or SequenceConfig()
        self.config: SequenceConfig = self._default_config.model_copy()
        self.registry = FrameRegistry(handles=handles)
        self.trigger = trigger if trigger is not None else ExportTrigger()
        self.scheduler = PlaybackScheduler(
            frame_count=lambda: len(self.registry),
            fps=self.config.fps,
        )
        self.probe_max_bytes = probe_max_bytes

    @classmethod
    def from_settings(
        cls,
        settings,
        alert: Optional[Callable[[str], None]] = None,
    ) -> "EditingSession":
        """Build a session wired from a loaded Settings object."""
        export = settings.export
        encoder = ArchiveEncoder(
            compression_level=export.compression_level,
            manifest_filename=export.manifest_filename,
            manifest_version=export.manifest_version,
            progress_baseline=export.progress_baseline,
            progress_ceiling=export.progress_ceiling,
        )
        trigger = ExportTrigger(
            encoder=encoder,
            reset_delay_sec=export.status_reset_delay_sec,
            file_prefix=export.file_prefix,
            extension=export.extension,
            alert=alert,
        )
        return cls(
            default_config=SequenceConfig(
                fps=settings.sequence.default_fps,
                loop=settings.sequence.loop,
            ),
            trigger=trigger,
            probe_max_bytes=settings.probe.max_bytes,
        )

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def frames(self) -> Tuple[FrameRecord, ...]:
        return self.registry.records

    @property
    def dimensions(self) -> CanvasDimensions:
        return self.registry.dimensions

    @property
    def status(self) -> GenerationStatus:
        return self.trigger.status

    @property
    def duration(self) -> float:
        """Playback duration in seconds at the current fps."""
        return self.config.duration_for(len(self.registry))

    @property
    def preview_cursor(self) -> int:
        return self.scheduler.cursor

    @property
    def preview_handle(self) -> Optional[str]:
        """Display handle of the frame under the preview cursor."""
        handles = self.registry.display_handles
        if not handles:
            return None
        return handles[self.scheduler.cursor % len(handles)]

    @property
    def can_export(self) -> bool:
        return not self.registry.is_empty and not self.trigger.is_generating

    # -------------------------------------------------------------------------
    # Registry operations
    # -------------------------------------------------------------------------

    async def ingest(self, files: Iterable[IncomingFile]) -> IngestOutcome:
        """
        Add a batch of files, probing dimensions if the registry is empty.

        A ProbeFailure aborts the whole batch and leaves the registry
        unchanged.
        """
        files = list(files)
        if not files:
            return IngestOutcome(dimensions=self.dimensions)

        probed: Optional[CanvasDimensions] = None
        if self.registry.is_empty and not self.dimensions.is_set:
            first = files[0]
            try:
                probed = await probe_dimensions(
                    first.content, first.name, self.probe_max_bytes
                )
            except ProbeFailure as e:
                logger.error(f"Ingestion aborted, could not probe {first.name}: {e}")
                return IngestOutcome(dimensions=self.dimensions, error=e)

        added = self.registry.add(files, dimensions=probed)
        return IngestOutcome(added=tuple(added), dimensions=self.dimensions)

    def remove(self, frame_id: str) -> bool:
        """Remove one frame. Unknown ids are ignored."""
        removed = self.registry.remove(frame_id)
        if removed:
            self.scheduler.on_length_changed(len(self.registry))
        return removed

    def clear(self) -> int:
        """
        Stop playback, release every frame and restore default config.

        Returns:
            Number of frames cleared.
        """
        self.scheduler.reset()
        cleared = self.registry.clear()
        self.config = self._default_config.model_copy()
        self.scheduler.set_fps(self.config.fps)
        self.trigger.reset()
        return cleared

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_fps(self, fps: int) -> None:
        """
        Change the frame rate for preview and export.

        Raises:
            InvalidConfig: If fps is outside [1, 60]
        """
        if isinstance(fps, bool) or not isinstance(fps, int):
            raise InvalidConfig(f"fps must be an integer, got {fps!r}")
        if not MIN_FPS <= fps <= MAX_FPS:
            raise InvalidConfig(f"fps must be within [{MIN_FPS}, {MAX_FPS}], got {fps}")
        self.config = self.config.model_copy(update={"fps": fps})
        self.scheduler.set_fps(fps)

    def set_loop(self, loop: bool) -> None:
        self.config = self.config.model_copy(update={"loop": bool(loop)})

    # -------------------------------------------------------------------------
    # Playback
    # -------------------------------------------------------------------------

    def start_playback(self) -> bool:
        return self.scheduler.start()

    def stop_playback(self) -> None:
        self.scheduler.stop()

    @property
    def playback_state(self) -> PlaybackState:
        return self.scheduler.state

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    async def export(self) -> Optional[ExportOutcome]:
        """
        Encode the current registry.

        Returns:
            None if the registry is empty (no status change),
            otherwise the ExportOutcome from the trigger.
        """
        return await self.trigger.run(
            self.registry.records,
            self.registry.dimensions,
            self.config,
        )

    def snapshot(self) -> dict:
        """Read-only view for collaborator surfaces."""
        return {
            "frames": [
                {
                    "id": r.id,
                    "name": r.name,
                    "position": r.position,
                    "handle": r.display_handle,
                    "size": r.size,
                }
                for r in self.registry.records
            ],
            "dimensions": self.dimensions.to_dict(),
            "config": self.config.model_dump(),
            "duration": self.duration,
            "playback": {
                "state": self.scheduler.state.value,
                "cursor": self.scheduler.cursor,
                "handle": self.preview_handle,
            },
            "status": self.status.to_dict(),
            "can_export": self.can_export,
        }

    def metrics(self) -> dict:
        """Counters from the registry, scheduler and export trigger."""
        return {
            "registry": self.registry.metrics(),
            "playback": {
                "state": self.scheduler.state.value,
                "fps": self.scheduler.fps,
                "ticks": self.scheduler.ticks,
            },
            "export": self.trigger.metrics(),
        }
