"""
Data Models
===========

Typed models for SVGA Forge.

This module re-exports all data models for convenient access.

Models:
    Frame:
        - FrameRecord: Ingested frame owned by the registry
        - IncomingFile: Raw filename + bytes handed to ingestion
        - FrameUpload, IngestRequest: HTTP ingestion schema

    Sequence:
        - SequenceConfig: fps and loop flag
        - CanvasDimensions: Shared pixel size
        - GenerationStatus: Export progress snapshot

    Manifest:
        - MovieSpec and its parts (ViewBox, Sprite, SpriteFrame, ...)
"""

from svga_forge.models.frame import FrameRecord, FrameUpload, IncomingFile, IngestRequest
from svga_forge.models.sequence import (
    MAX_FPS,
    MIN_FPS,
    CanvasDimensions,
    GenerationStatus,
    InvalidConfig,
    SequenceConfig,
    clamp_fps,
)
from svga_forge.models.manifest import (
    Layout,
    MovieParams,
    MovieSpec,
    Sprite,
    SpriteFrame,
    Transform,
    ViewBox,
    image_key,
)

__all__ = [
    # Frame
    "FrameRecord",
    "FrameUpload",
    "IncomingFile",
    "IngestRequest",
    # Sequence
    "MIN_FPS",
    "MAX_FPS",
    "CanvasDimensions",
    "GenerationStatus",
    "InvalidConfig",
    "SequenceConfig",
    "clamp_fps",
    # Manifest
    "Layout",
    "MovieParams",
    "MovieSpec",
    "Sprite",
    "SpriteFrame",
    "Transform",
    "ViewBox",
    "image_key",
]
