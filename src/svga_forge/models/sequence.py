"""
Sequence State Models
=====================

Session-scoped state shared by the registry, scheduler and encoder.

Core Concepts:
    - SequenceConfig: playback rate and loop flag
    - CanvasDimensions: pixel size shared by every frame in a session
    - GenerationStatus: transient export progress snapshot

Invariants:
    - fps is always within [MIN_FPS, MAX_FPS]
    - a non-empty registry has non-zero CanvasDimensions,
      an empty registry has CanvasDimensions.ZERO
    - progress is non-decreasing within one export run
"""

from dataclasses import dataclass
from typing import ClassVar

from pydantic import BaseModel, Field


MIN_FPS = 1
MAX_FPS = 60


class InvalidConfig(ValueError):
    """Raised when a sequence setting falls outside its allowed range."""
    pass


def clamp_fps(fps: int) -> int:
    """Clamp a requested frame rate into [MIN_FPS, MAX_FPS]."""
    return max(MIN_FPS, min(MAX_FPS, int(fps)))


class SequenceConfig(BaseModel):
    """
    Playback configuration for one editing session.

    Attributes:
        fps: Frames per second, used for preview and exported playback
        loop: Advisory loop flag
    """

    fps: int = Field(
        default=24,
        ge=MIN_FPS,
        le=MAX_FPS,
        description="Playback rate in frames per second",
    )

    loop: bool = Field(
        default=True,
        description="Advisory loop flag",
    )

    def duration_for(self, frame_count: int) -> float:
        """Playback duration in seconds, rounded to two decimals."""
        if frame_count <= 0:
            return 0.0
        return round(frame_count / self.fps, 2)


@dataclass(frozen=True, slots=True)
class CanvasDimensions:
    """Pixel width and height of the sprite canvas. (0, 0) means unset."""

    width: int = 0
    height: int = 0

    ZERO: ClassVar["CanvasDimensions"]

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.width < 0 or self.height < 0:
            raise ValueError("dimensions must be non-negative")
        if (self.width == 0) != (self.height == 0):
            raise ValueError("width and height must both be zero or both be positive")

    @property
    def is_set(self) -> bool:
        return self.width > 0

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


CanvasDimensions.ZERO = CanvasDimensions(0, 0)


@dataclass(frozen=True, slots=True)
class GenerationStatus:
    """
    Snapshot of export progress.

    Attributes:
        is_generating: True while an export run is active
        progress: Integer percentage 0-100
        message: Human-readable current step
    """

    is_generating: bool = False
    progress: int = 0
    message: str = ""

    IDLE: ClassVar["GenerationStatus"]

    def to_dict(self) -> dict:
        """Export as dictionary for the status surface."""
        return {
            "is_generating": self.is_generating,
            "progress": self.progress,
            "message": self.message,
        }


GenerationStatus.IDLE = GenerationStatus()
