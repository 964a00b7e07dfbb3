"""
Export Trigger
==============

Runs the ArchiveEncoder on behalf of a collaborator surface and owns the
GenerationStatus lifecycle.

Lifecycle:
    idle --run()--> generating (10% .. 95%) --success--> 100% --delay--> idle
                                             --failure--> failed --delay--> idle

Design Rules:
    - A run is refused while another is in progress (no queueing, no
      last-call-wins)
    - An empty frame list is a no-op: no status change, no file
    - Only cancellation escapes run(); any other error becomes a failure status
      plus an alert notice, and a cancelled run returns the status to idle
    - A listener that raises is logged and skipped
    - Progress published within one run never decreases
"""

import asyncio
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from svga_forge.export.encoder import ArchiveEncoder, EncodedArchive, EncodingFailure
from svga_forge.models.frame import FrameRecord
from svga_forge.models.sequence import CanvasDimensions, GenerationStatus, SequenceConfig


logger = logging.getLogger(__name__)


StatusListener = Callable[[GenerationStatus], None]

SUCCESS_MESSAGE = "Export complete"
FAILURE_MESSAGE = "Export failed"
ALERT_NOTICE = "Export failed, please check that the frame files are valid images."


@dataclass(frozen=True)
class ExportOutcome:
    """
    Result of one export request.

    Attributes:
        accepted: False when refused because another run was active
        archive: The finished archive on success
        filename: Download name on success
        error: The EncodingFailure on failure
    """

    accepted: bool
    archive: Optional[EncodedArchive] = None
    filename: Optional[str] = None
    error: Optional[EncodingFailure] = None

    @property
    def ok(self) -> bool:
        return self.accepted and self.archive is not None and self.error is None


class ExportTrigger:
    """
    Guarded, status-reporting wrapper around ArchiveEncoder.

    Attributes:
        status: Latest GenerationStatus snapshot
        encoder: The ArchiveEncoder used for every run

    Example:
        trigger = ExportTrigger(ArchiveEncoder(), alert=print)
        outcome = await trigger.run(registry.records, registry.dimensions, config)
        if outcome and outcome.ok:
            trigger.save(outcome, Path("exports"))
    """

    def __init__(
        self,
        encoder: Optional[ArchiveEncoder] = None,
        reset_delay_sec: float = 2.0,
        file_prefix: str = "animation",
        extension: str = "svga",
        alert: Optional[Callable[[str], None]] = None,
        clock_ms: Callable[[], int] = lambda: time.time_ns() // 1_000_000,
    ) -> None:
        """
        Initialize the trigger.

        Args:
            encoder: Encoder to run (default settings if None)
            reset_delay_sec: Delay before a finished status returns to idle
            file_prefix: Download filename prefix
            extension: Download filename extension, without the dot
            alert: Receives a user-facing notice when an export fails
            clock_ms: Source of unix-millisecond timestamps
        """
        self.encoder = encoder if encoder is not None else ArchiveEncoder()
        self.reset_delay_sec = reset_delay_sec
        self.file_prefix = file_prefix
        self.extension = extension.lstrip(".")
        self._alert = alert
        self._clock_ms = clock_ms

        self._status: GenerationStatus = GenerationStatus.IDLE
        self._listeners: List[StatusListener] = []
        self._fade_task: Optional[asyncio.Task] = None
        self._last_stamp: int = 0
        self.runs_completed: int = 0
        self.runs_failed: int = 0

    @property
    def status(self) -> GenerationStatus:
        return self._status

    @property
    def is_generating(self) -> bool:
        return self._status.is_generating

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a status listener.

        Returns:
            A function that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def filename_for(self, dimensions: CanvasDimensions) -> str:
        """
        Download name: <prefix>_<w>x<h>_<unix-millis>.<ext>

        Timestamps are forced to increase so that two exports in the same
        millisecond still get distinct names.
        """
        stamp = self._clock_ms()
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return (
            f"{self.file_prefix}_{dimensions.width}x{dimensions.height}"
            f"_{stamp}.{self.extension}"
        )

    async def run(
        self,
        frames: Sequence[FrameRecord],
        dimensions: CanvasDimensions,
        config: SequenceConfig,
    ) -> Optional[ExportOutcome]:
        """
        Encode the given frames into an archive.

        Returns:
            None when there are no frames,
            ExportOutcome(accepted=False) when a run is already active,
            otherwise an accepted outcome carrying the archive or the error.

        Raises:
            asyncio.CancelledError: If the awaiting task is cancelled; the
                status returns to idle first
        """
        frames = tuple(frames)
        if not frames:
            return None

        if self._status.is_generating:
            logger.warning("Export refused: another export is in progress")
            return ExportOutcome(accepted=False)

        self._cancel_fade()
        self._publish(GenerationStatus(
            is_generating=True,
            progress=self.encoder.progress_baseline,
            message=self.encoder.packaging_message,
        ))

        def on_progress(percent: int, message: str) -> None:
            progress = max(self._status.progress, min(100, percent))
            update = GenerationStatus(True, progress, message)
            if update != self._status:
                self._publish(update)

        try:
            archive = await self.encoder.encode(frames, dimensions, config, on_progress)
        except asyncio.CancelledError:
            logger.warning("Export cancelled")
            raise
        except Exception as e:
            failure = e if isinstance(e, EncodingFailure) else EncodingFailure(str(e))
            self.runs_failed += 1
            logger.error(f"Export failed: {failure}")
            self._publish(GenerationStatus(False, 0, FAILURE_MESSAGE))
            self._notify(ALERT_NOTICE)
            self._schedule_fade()
            return ExportOutcome(accepted=True, error=failure)
        else:
            filename = self.filename_for(dimensions)
            self.runs_completed += 1
            self._publish(GenerationStatus(False, 100, SUCCESS_MESSAGE))
            self._schedule_fade()
            logger.info(f"Export ready: {filename} ({archive.size} bytes)")
            return ExportOutcome(accepted=True, archive=archive, filename=filename)
        finally:
            # only reached while generating when the run was cancelled
            if self._status.is_generating:
                self._publish(GenerationStatus.IDLE)

    def save(self, outcome: ExportOutcome, directory: Path) -> Path:
        """
        Write a successful outcome's archive into `directory`.

        The file appears atomically under its final name.

        Raises:
            ValueError: If the outcome carries no archive
        """
        if not outcome.ok or outcome.filename is None or outcome.archive is None:
            raise ValueError("only a successful export can be saved")

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / outcome.filename

        tmp_fd, tmp_name = tempfile.mkstemp(
            prefix=".svga-", suffix=".part", dir=str(directory)
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(tmp_fd, "wb") as f:
                f.write(outcome.archive.content)
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        logger.info(f"Saved archive to {target}")
        return target

    async def wait_idle(self) -> None:
        """Wait for a pending fade-to-idle to finish."""
        if self._fade_task is not None:
            try:
                await self._fade_task
            except asyncio.CancelledError:
                pass

    def reset(self) -> None:
        """Drop any pending fade and return to idle immediately."""
        self._cancel_fade()
        if not self._status.is_generating:
            self._publish(GenerationStatus.IDLE)

    def metrics(self) -> dict:
        """
        Get export metrics for observability.

        Returns:
            Dict with run counters and the current status
        """
        return {
            "runs_completed": self.runs_completed,
            "runs_failed": self.runs_failed,
            "listeners": len(self._listeners),
            "status": self._status.to_dict(),
        }

    def _publish(self, status: GenerationStatus) -> None:
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Status listener {listener!r} failed: {e}")

    def _notify(self, notice: str) -> None:
        if self._alert is not None:
            self._alert(notice)

    def _schedule_fade(self) -> None:
        self._cancel_fade()
        self._fade_task = asyncio.get_running_loop().create_task(
            self._fade(self.reset_delay_sec),
            name="export_status_fade",
        )

    def _cancel_fade(self) -> None:
        if self._fade_task is not None and not self._fade_task.done():
            self._fade_task.cancel()
        self._fade_task = None

    async def _fade(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if not self._status.is_generating:
            self._publish(GenerationStatus.IDLE)
