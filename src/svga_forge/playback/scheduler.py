"""
Playback Scheduler
==================

Timer-driven preview cursor over the frame registry.

State Machine:
    STOPPED --start() [registry non-empty]--> RUNNING
    RUNNING --stop() / clear / registry emptied--> STOPPED
    RUNNING --set_fps()--> RUNNING (timer recreated with the new period)

While RUNNING, an asyncio task sleeps 1 / fps seconds and then advances
cursor = (cursor + 1) % len(registry), wrapping to 0 after the last frame.

Design Rules:
    - The timer task is the only recurring background activity
    - It is cancelled before any destructive registry mutation
    - A superseded task never ticks (generation check after every sleep)
    - Export never depends on the scheduler
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from svga_forge.models.sequence import MAX_FPS, MIN_FPS, InvalidConfig


logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    """
    Scheduler states.

    Attributes:
        STOPPED: No timer, cursor frozen
        RUNNING: Timer active, cursor advancing
    """

    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


class PlaybackScheduler:
    """
    Cyclic preview cursor driven by an asyncio task.

    Attributes:
        state: Current PlaybackState
        cursor: Index of the frame currently previewed
        fps: Ticks per second while running

    Example:
        scheduler = PlaybackScheduler(frame_count=lambda: len(registry), fps=12)
        scheduler.start()      # needs a running event loop
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        frame_count: Callable[[], int],
        fps: int = 24,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            frame_count: Returns the current registry length
            fps: Initial rate in [1, 60]
        """
        self._frame_count = frame_count
        self._fps = self._validate_fps(fps)

        self._state: PlaybackState = PlaybackState.STOPPED
        self._cursor: int = 0
        self._task: Optional[asyncio.Task] = None
        self._generation: int = 0
        self.ticks: int = 0

    @staticmethod
    def _validate_fps(fps: int) -> int:
        if not MIN_FPS <= fps <= MAX_FPS:
            raise InvalidConfig(f"fps must be within [{MIN_FPS}, {MAX_FPS}], got {fps}")
        return fps

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == PlaybackState.RUNNING

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def fps(self) -> int:
        return self._fps

    @property
    def interval_sec(self) -> float:
        """Timer period in seconds (1000 / fps milliseconds)."""
        return 1.0 / self._fps

    def start(self) -> bool:
        """
        Transition STOPPED -> RUNNING.

        Returns:
            True if the scheduler is running afterwards,
            False if the registry is empty.
        """
        if self.is_running:
            return True
        if self._frame_count() == 0:
            logger.debug("Playback not started: registry is empty")
            return False

        self._state = PlaybackState.RUNNING
        self._spawn()
        logger.info(f"Playback started at {self._fps} fps")
        return True

    def stop(self) -> None:
        """Transition to STOPPED and cancel the timer."""
        self._cancel()
        if self._state != PlaybackState.STOPPED:
            self._state = PlaybackState.STOPPED
            logger.info(f"Playback stopped at frame {self._cursor}")

    def set_fps(self, fps: int) -> None:
        """
        Change the rate. A running timer is recreated with the new period.

        Raises:
            InvalidConfig: If fps is outside [1, 60]
        """
        fps = self._validate_fps(fps)
        if fps == self._fps:
            return
        self._fps = fps
        if self.is_running:
            self._cancel()
            self._spawn()
            logger.debug(f"Playback period changed to {self.interval_sec:.4f}s")

    def tick(self) -> int:
        """
        Advance the cursor by one frame, wrapping at the end.

        Returns:
            The new cursor.
        """
        length = self._frame_count()
        if length == 0:
            self._cursor = 0
            return self._cursor

        self._cursor = (self._cursor + 1) % length
        self.ticks += 1
        return self._cursor

    def on_length_changed(self, length: int) -> None:
        """
        Keep the cursor valid after the registry changed size.

        An empty registry stops playback and clamps the cursor to 0.
        """
        if length == 0:
            self.stop()
            self._cursor = 0
        elif self._cursor >= length:
            self._cursor = 0

    def reset(self) -> None:
        """Stop and rewind to the first frame."""
        self.stop()
        self._cursor = 0

    def _spawn(self) -> None:
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(self._generation),
            name="playback_scheduler",
        )

    def _cancel(self) -> None:
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, generation: int) -> None:
        period = self.interval_sec
        try:
            while True:
                await asyncio.sleep(period)
                if generation != self._generation:
                    return
                self.tick()
        except asyncio.CancelledError:
            logger.debug("Playback timer cancelled")
            raise
