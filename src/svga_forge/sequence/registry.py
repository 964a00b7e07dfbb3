"""
Frame Registry
==============

Ordered collection of FrameRecords: the single source of truth read by the
playback scheduler and the archive encoder.

Design Rules:
    - Iteration order always equals natural order of names
    - Order is re-established after every add; remove only filters
    - Dimensions are zero exactly when the registry is empty
    - The registry owns every display handle it acquires
    - All mutations are synchronous, so readers never see a half-applied change
"""

import logging
import uuid
from dataclasses import replace
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from svga_forge.models.frame import FrameRecord, IncomingFile
from svga_forge.models.sequence import CanvasDimensions
from svga_forge.sequence.handles import HandleStore
from svga_forge.sequence.sorting import natural_sorted


logger = logging.getLogger(__name__)


def _new_frame_id() -> str:
    return uuid.uuid4().hex[:12]


class FrameRegistry:
    """
    Naturally-ordered frame collection with owned display handles.

    Dimension probing is asynchronous and happens before `add`
    (see EditingSession.ingest); `add` itself never awaits.

    Attributes:
        dimensions: Canvas size shared by all frames, ZERO when empty
        handles: Store that issues and revokes display handles

    Example:
        registry = FrameRegistry()
        registry.add(files, dimensions=CanvasDimensions(320, 240))
        for record in registry:
            print(record.position, record.name)
    """

    def __init__(self, handles: Optional[HandleStore] = None) -> None:
        self.handles = handles if handles is not None else HandleStore()
        self._records: List[FrameRecord] = []
        self._dimensions: CanvasDimensions = CanvasDimensions.ZERO
        self._total_added: int = 0
        self._total_removed: int = 0

    @property
    def dimensions(self) -> CanvasDimensions:
        return self._dimensions

    @property
    def records(self) -> Tuple[FrameRecord, ...]:
        """Immutable snapshot of the records in natural order."""
        return tuple(self._records)

    @property
    def display_handles(self) -> List[str]:
        """Display handles in registry order, for preview surfaces."""
        return [r.display_handle for r in self._records]

    @property
    def is_empty(self) -> bool:
        return not self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[FrameRecord]:
        return iter(tuple(self._records))

    def get(self, frame_id: str) -> Optional[FrameRecord]:
        for record in self._records:
            if record.id == frame_id:
                return record
        return None

    def add(
        self,
        files: Sequence[IncomingFile],
        dimensions: Optional[CanvasDimensions] = None,
    ) -> List[FrameRecord]:
        """
        Ingest a batch of files and re-sort the whole collection.

        Args:
            files: Files in the order they were supplied
            dimensions: Probed size of files[0]; adopted only when the
                registry has no dimensions yet

        Returns:
            The newly created records (with their final positions)

        Raises:
            ValueError: If the registry has no dimensions and none were given
        """
        if not files:
            return []

        if not self._dimensions.is_set:
            if dimensions is None or not dimensions.is_set:
                raise ValueError("first batch requires probed dimensions")
            self._dimensions = dimensions

        new_ids = set()
        for f in files:
            content = bytes(f.content)
            record = FrameRecord(
                id=_new_frame_id(),
                name=f.name,
                content=content,
                display_handle=self.handles.acquire(content),
            )
            new_ids.add(record.id)
            self._records.append(record)

        self._reorder(natural_sorted(self._records, key=lambda r: r.name))
        self._total_added += len(files)

        logger.info(
            f"Ingested {len(files)} frame(s), registry size={len(self._records)}, "
            f"canvas={self._dimensions}"
        )
        return [r for r in self._records if r.id in new_ids]

    def remove(self, frame_id: str) -> bool:
        """
        Delete one record and release its handle.

        Returns:
            True if a record was removed, False if the id was unknown.
        """
        record = self.get(frame_id)
        if record is None:
            return False

        self.handles.release(record.display_handle)
        self._reorder([r for r in self._records if r.id != frame_id])
        self._total_removed += 1

        if not self._records:
            self._dimensions = CanvasDimensions.ZERO
            logger.info("Registry emptied, canvas dimensions reset")

        return True

    def clear(self) -> int:
        """
        Release every handle and empty the registry.

        Returns:
            Number of records cleared.
        """
        cleared = len(self._records)
        self.handles.release_all()
        self._records = []
        self._dimensions = CanvasDimensions.ZERO
        self._total_removed += cleared

        if cleared:
            logger.info(f"Cleared {cleared} frame(s)")
        return cleared

    def _reorder(self, ordered: Iterable[FrameRecord]) -> None:
        self._records = [
            r if r.position == i else replace(r, position=i)
            for i, r in enumerate(ordered)
        ]

    def metrics(self) -> dict:
        """
        Get registry metrics for observability.

        Returns:
            Dict with size, dimensions, totals and handle store metrics
        """
        return {
            "size": len(self._records),
            "width": self._dimensions.width,
            "height": self._dimensions.height,
            "total_added": self._total_added,
            "total_removed": self._total_removed,
            "handles": self.handles.metrics(),
        }
