"""
Archive Encoder
===============

Packs the frame registry into a single SVGA 2.0 archive.

Algorithm:
    1. Report the baseline progress (default 10%)
    2. Build the manifest: one sprite, one full-canvas identity placement
       per frame, image key img_<index> in registry order
    3. For each frame in order, write its bytes under img_<index><ext>,
       record the image-table entry and report interpolated progress
       (baseline -> ceiling, default 10% -> 95%)
    4. Serialize the manifest to movie.spec
    5. Finalize the deflate container at the configured level (default 6)

Archive Layout:
    movie.spec       JSON manifest (see svga_forge.models.manifest)
    img_0.png        byte-identical copy of frame 0
    img_1.png        ...

Design Rules:
    - Frames are processed strictly in order, one at a time
    - The container is opened, written and closed inside one worker thread
    - Cancellation stops the worker before its next frame
    - Any failure aborts the run with EncodingFailure; no partial archive
    - An empty frame list is a no-op, not an error
"""

import asyncio
import io
import logging
import re
import threading
import zipfile
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, List, Optional, Sequence, Tuple

from svga_forge.models.frame import FrameRecord
from svga_forge.models.manifest import MANIFEST_VERSION, MovieSpec, image_key
from svga_forge.models.sequence import CanvasDimensions, SequenceConfig


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[int, str], None]

DEFAULT_IMAGE_EXT = ".png"
_EXT_PATTERN = re.compile(r"^\.[a-z0-9]{1,8}$")


class EncodingFailure(Exception):
    """Raised when reading frames, building the manifest or finalizing fails."""
    pass


@dataclass(frozen=True)
class EncodedArchive:
    """
    A finished archive.

    Attributes:
        content: Compressed container bytes
        manifest: The manifest written to the archive
        dimensions: Canvas size the archive was built for
    """

    content: bytes
    manifest: MovieSpec
    dimensions: CanvasDimensions

    @property
    def frame_count(self) -> int:
        return self.manifest.params.frames

    @property
    def size(self) -> int:
        return len(self.content)

    def __repr__(self) -> str:
        return (
            f"EncodedArchive(frames={self.frame_count}, "
            f"canvas={self.dimensions}, size={self.size})"
        )


def frame_filename(index: int, source_name: str) -> str:
    """Archive entry name for frame `index`, keeping the source extension."""
    ext = PurePath(source_name).suffix.lower()
    if not _EXT_PATTERN.match(ext):
        ext = DEFAULT_IMAGE_EXT
    return f"{image_key(index)}{ext}"


class ArchiveEncoder:
    """
    Builds SVGA archives from an ordered frame list.

    Example:
        encoder = ArchiveEncoder(compression_level=6)
        archive = await encoder.encode(
            registry.records,
            registry.dimensions,
            SequenceConfig(fps=24),
            on_progress=lambda pct, msg: print(pct, msg),
        )
    """

    def __init__(
        self,
        compression_level: int = 6,
        manifest_filename: str = "movie.spec",
        manifest_version: str = MANIFEST_VERSION,
        progress_baseline: int = 10,
        progress_ceiling: int = 95,
    ) -> None:
        """
        Initialize the encoder.

        Args:
            compression_level: Deflate level 0-9
            manifest_filename: Manifest entry name inside the archive
            manifest_version: Version marker written to the manifest
            progress_baseline: Percentage reported when packaging starts
            progress_ceiling: Percentage reached after the last frame
        """
        if not 0 <= compression_level <= 9:
            raise ValueError("compression_level must be in [0, 9]")
        if not 0 <= progress_baseline <= progress_ceiling <= 100:
            raise ValueError("progress range must satisfy 0 <= baseline <= ceiling <= 100")

        self.compression_level = compression_level
        self.manifest_filename = manifest_filename
        self.manifest_version = manifest_version
        self.progress_baseline = progress_baseline
        self.progress_ceiling = progress_ceiling

    @property
    def packaging_message(self) -> str:
        return f"Packaging SVGA {self.manifest_version} resources..."

    def progress_for(self, completed: int, total: int) -> int:
        """Linear interpolation from baseline to ceiling over `total` frames."""
        if total <= 0:
            return self.progress_baseline
        span = self.progress_ceiling - self.progress_baseline
        return self.progress_baseline + (completed * span) // total

    async def encode(
        self,
        frames: Sequence[FrameRecord],
        dimensions: CanvasDimensions,
        config: SequenceConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[EncodedArchive]:
        """
        Encode `frames` into one archive.

        The container is built and closed entirely inside one worker thread;
        per-frame progress is posted back to the event loop. Cancelling the
        awaiting task tells the worker to stop before its next frame.

        Args:
            frames: Frames in registry order (snapshot taken by the caller)
            dimensions: Canvas size, must be set
            config: Playback configuration
            on_progress: Receives (percent, message) after every step

        Returns:
            The archive, or None when `frames` is empty.

        Raises:
            EncodingFailure: On any error while packing or finalizing,
                including an error raised by `on_progress`
        """
        frames = tuple(frames)
        if not frames:
            return None

        total = len(frames)
        loop = asyncio.get_running_loop()
        abort = threading.Event()
        callback_errors: List[Exception] = []

        def report(percent: int, message: str) -> None:
            if on_progress is not None:
                on_progress(percent, message)

        def deliver(percent: int, message: str) -> None:
            # runs on the event loop
            if abort.is_set():
                return
            try:
                report(percent, message)
            except Exception as e:
                callback_errors.append(e)
                abort.set()

        def post(percent: int, message: str) -> None:
            loop.call_soon_threadsafe(deliver, percent, message)

        try:
            if not dimensions.is_set:
                raise EncodingFailure("Canvas dimensions are not set")

            report(self.progress_baseline, self.packaging_message)
            logger.info(f"Encoding {total} frame(s) at {config.fps} fps, canvas={dimensions}")

            manifest = MovieSpec.full_frame(
                width=dimensions.width,
                height=dimensions.height,
                fps=config.fps,
                frame_count=total,
                version=self.manifest_version,
            )
            entries = []
            for index, frame in enumerate(frames):
                filename = frame_filename(index, frame.name)
                manifest.images[image_key(index)] = filename
                entries.append((filename, frame.content))

            content = await asyncio.to_thread(
                self._build,
                entries,
                manifest.to_json().encode("utf-8"),
                post,
                abort,
            )
            if callback_errors:
                raise callback_errors[0]

        except asyncio.CancelledError:
            abort.set()
            logger.info("Encoding cancelled")
            raise
        except EncodingFailure:
            raise
        except Exception as e:
            raise EncodingFailure(f"Archive assembly failed: {e}") from e

        archive = EncodedArchive(
            content=content,
            manifest=manifest,
            dimensions=dimensions,
        )
        logger.info(f"Encoded {archive!r}")
        return archive

    def _build(
        self,
        entries: List[Tuple[str, bytes]],
        manifest_json: bytes,
        post: ProgressCallback,
        abort: threading.Event,
    ) -> bytes:
        """Write every entry plus the manifest and return the container bytes."""
        total = len(entries)
        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compression_level,
        ) as container:
            for index, (filename, content) in enumerate(entries):
                if abort.is_set():
                    raise EncodingFailure("Archive assembly aborted")
                container.writestr(filename, content)
                post(
                    self.progress_for(index + 1, total),
                    f"Packing frame {index + 1}/{total}",
                )
            container.writestr(self.manifest_filename, manifest_json)
        return self._finalize(buffer)

    @staticmethod
    def _finalize(buffer: io.BytesIO) -> bytes:
        return buffer.getvalue()
