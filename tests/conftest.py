"""
Test Configuration
==================

Pytest fixtures and test configuration for SVGA Forge.
"""

import cv2
import numpy as np
import pytest

from svga_forge.models.frame import IncomingFile


def encode_png(width: int, height: int, value: int = 0) -> bytes:
    """Encode a solid-colour PNG of the given size."""
    pixels = np.full((height, width, 3), value % 256, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", pixels)
    assert ok
    return buf.tobytes()


@pytest.fixture
def make_png():
    """Factory for real PNG bytes."""
    return encode_png


@pytest.fixture
def make_files():
    """Factory for IncomingFile batches of uniform size."""

    def _make(names, width: int = 32, height: int = 24):
        return [
            IncomingFile(name=name, content=encode_png(width, height, value=i * 7))
            for i, name in enumerate(names)
        ]

    return _make


@pytest.fixture
def corrupt_file():
    """A file whose bytes are not a decodable image."""
    return IncomingFile(name="broken.png", content=b"definitely not an image")
