"""
Display Handle Store
====================

Issues revocable tokens that preview surfaces use to fetch frame bytes.

A handle is acquired when a FrameRecord is created and released when the
record is removed or the registry is cleared. Once released, a handle no
longer resolves, so a stale preview cannot read freed content.

Design Rules:
    - The FrameRegistry is the only owner of handles it acquires
    - release() is idempotent
    - live_count exposes leaks to tests and metrics
"""

import logging
import secrets
from typing import Dict, Optional


logger = logging.getLogger(__name__)


class HandleStore:
    """
    Registry of live display handles.

    Example:
        store = HandleStore()
        handle = store.acquire(content)
        store.resolve(handle)   # -> content
        store.release(handle)
        store.resolve(handle)   # -> None
    """

    def __init__(self, prefix: str = "preview") -> None:
        self._prefix = prefix
        self._live: Dict[str, bytes] = {}
        self._total_acquired: int = 0

    @property
    def live_count(self) -> int:
        """Number of handles not yet released."""
        return len(self._live)

    def acquire(self, content: bytes) -> str:
        """Issue a new handle for `content`."""
        handle = f"{self._prefix}-{secrets.token_urlsafe(12)}"
        self._live[handle] = content
        self._total_acquired += 1
        return handle

    def resolve(self, handle: str) -> Optional[bytes]:
        """Bytes behind a live handle, or None once released."""
        return self._live.get(handle)

    def release(self, handle: str) -> bool:
        """
        Revoke a handle.

        Returns:
            True if the handle was live, False if already released.
        """
        return self._live.pop(handle, None) is not None

    def release_all(self) -> int:
        """Revoke every live handle. Returns how many were released."""
        released = len(self._live)
        self._live.clear()
        if released:
            logger.debug(f"Released {released} display handles")
        return released

    def metrics(self) -> dict:
        return {
            "live": self.live_count,
            "total_acquired": self._total_acquired,
        }
