"""
Playback Module
===============

Interactive preview scheduling, independent of export.

Components:
    - PlaybackState: STOPPED / RUNNING
    - PlaybackScheduler: asyncio timer that cycles a preview cursor
"""

from svga_forge.playback.scheduler import PlaybackScheduler, PlaybackState

__all__ = [
    "PlaybackScheduler",
    "PlaybackState",
]
