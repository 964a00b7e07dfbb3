"""
SVGA Forge
==========

Packs an ordered set of still images into a single SVGA 2.0 animated-sprite
archive (deflate container + JSON manifest + one image per frame).

Components:
    - sequence: Natural ordering, dimension probing, frame registry
    - playback: Preview scheduler
    - export: Archive encoder and export trigger
    - session: EditingSession tying the pieces together

Example:
    from svga_forge.session import EditingSession
    from svga_forge.models import IncomingFile

    session = EditingSession()
    await session.ingest([IncomingFile("frame1.png", data)])
    outcome = await session.export()
"""

__version__ = "0.1.0"
__author__ = "SVGA Forge Project"

__all__ = [
    "__version__",
]
