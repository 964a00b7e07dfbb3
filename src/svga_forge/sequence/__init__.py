"""
Sequence Module
===============

Frame ingestion, ordering and dimension inference.

This module provides the ingestion layer for SVGA Forge:
    - natural_key / natural_sorted: Natural filename ordering
    - HandleStore: Revocable display handles for previews
    - probe_dimensions: Async reference-image decode
    - FrameRegistry: Ordered frame collection

Example:
    from svga_forge.sequence import FrameRegistry, probe_dimensions

    registry = FrameRegistry()
    dims = await probe_dimensions(files[0].content, files[0].name)
    registry.add(files, dimensions=dims)
"""

from svga_forge.sequence.sorting import compare_names, natural_key, natural_sorted
from svga_forge.sequence.handles import HandleStore
from svga_forge.sequence.prober import ProbeFailure, decode_dimensions, probe_dimensions
from svga_forge.sequence.registry import FrameRegistry


__all__ = [
    "compare_names",
    "natural_key",
    "natural_sorted",
    "HandleStore",
    "ProbeFailure",
    "decode_dimensions",
    "probe_dimensions",
    "FrameRegistry",
]
