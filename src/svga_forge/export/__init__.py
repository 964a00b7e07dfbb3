"""
Export Module
=============

Archive assembly and the export request lifecycle.

Components:
    - ArchiveEncoder: Builds the manifest and the deflate container
    - ExportTrigger: Guards concurrent runs, publishes GenerationStatus,
      names and saves the finished archive
"""

from svga_forge.export.encoder import (
    ArchiveEncoder,
    EncodedArchive,
    EncodingFailure,
    frame_filename,
)
from svga_forge.export.trigger import ExportOutcome, ExportTrigger

__all__ = [
    "ArchiveEncoder",
    "EncodedArchive",
    "EncodingFailure",
    "frame_filename",
    "ExportOutcome",
    "ExportTrigger",
]
