"""
Dimension Prober
================

Decodes one reference image to obtain the canvas size for a whole session.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Decoding runs in a worker thread so the event loop keeps ticking
    - Fails fast on corrupt or unsupported input
    - The decoded pixel buffer is dropped on success and on failure
"""

import asyncio
import logging
from typing import Optional

import cv2
import numpy as np

from svga_forge.models.sequence import CanvasDimensions


logger = logging.getLogger(__name__)


class ProbeFailure(Exception):
    """Raised when the reference image cannot be decoded."""
    pass


def decode_dimensions(
    content: bytes,
    name: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> CanvasDimensions:
    """
    Decode `content` and return its pixel size.

    Args:
        content: Raw image bytes (PNG, JPEG, WebP, ...)
        name: Filename, used only in error messages
        max_bytes: Refuse inputs larger than this

    Returns:
        CanvasDimensions of the decoded image

    Raises:
        ProbeFailure: If decoding fails or the image is empty
    """
    label = name or "<unnamed>"

    if not content:
        raise ProbeFailure(f"Cannot probe {label}: no image data")
    if max_bytes is not None and len(content) > max_bytes:
        raise ProbeFailure(
            f"Cannot probe {label}: {len(content)} bytes exceeds limit of {max_bytes}"
        )

    image = None
    try:
        buffer = np.frombuffer(content, np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)

        if image is None:
            raise ProbeFailure(
                f"Failed to decode {label}: cv2.imdecode returned None"
            )

        height, width = image.shape[:2]
        if width <= 0 or height <= 0:
            raise ProbeFailure(f"Invalid image size for {label}: {image.shape}")

        return CanvasDimensions(width=int(width), height=int(height))

    except ProbeFailure:
        raise
    except Exception as e:
        raise ProbeFailure(f"Unexpected error decoding {label}: {e}") from e
    finally:
        del image


async def probe_dimensions(
    content: bytes,
    name: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> CanvasDimensions:
    """
    Asynchronously probe the pixel size of one image.

    Args:
        content: Raw image bytes
        name: Filename, used only in log and error messages
        max_bytes: Refuse inputs larger than this

    Returns:
        CanvasDimensions of the image

    Raises:
        ProbeFailure: If decoding fails
    """
    dims = await asyncio.to_thread(decode_dimensions, content, name, max_bytes)
    logger.info(f"Probed {name or '<unnamed>'}: {dims}")
    return dims
