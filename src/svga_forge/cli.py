"""
Batch Command Line
==================

Builds one SVGA archive from a directory of still images, without a server.

This script:
    1. Collects every supported image in the input directory
    2. Ingests them into a fresh EditingSession (natural filename order)
    3. Exports once and writes the archive into the output directory
    4. Prints the archive path

Usage:
    svga-forge ./frames
    svga-forge ./frames -o ./out --fps 12
    svga-forge ./frames --config config.yaml
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from svga_forge.config import Settings, load_config, settings as default_settings
from svga_forge.models.frame import IncomingFile
from svga_forge.models.sequence import InvalidConfig
from svga_forge.session import EditingSession


logger = logging.getLogger(__name__)


SUPPORTED_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".bmp"}


def collect_frames(input_dir: Path) -> List[IncomingFile]:
    """Read every supported image directly inside `input_dir`."""
    files = []
    for path in sorted(input_dir.iterdir()):
        if path.is_file() and path.suffix.lower() in SUPPORTED_EXTS:
            files.append(IncomingFile(name=path.name, content=path.read_bytes()))
    return files


async def build_archive(
    files: List[IncomingFile],
    output_dir: Path,
    config: Settings,
    fps: Optional[int] = None,
) -> Optional[Path]:
    """
    Ingest `files` and export one archive.

    Returns:
        Path of the written archive, or None on failure.
    """
    session = EditingSession.from_settings(
        config,
        alert=lambda notice: print(notice, file=sys.stderr),
    )

    def on_status(status) -> None:
        if status.is_generating and status.message:
            logger.info(f"[{status.progress:3d}%] {status.message}")

    session.trigger.subscribe(on_status)

    if fps is not None:
        session.set_fps(fps)

    ingested = await session.ingest(files)
    if not ingested.ok:
        print(f"Could not read reference image: {ingested.error}", file=sys.stderr)
        return None

    logger.info(
        f"{len(session.frames)} frame(s), canvas={session.dimensions}, "
        f"duration={session.duration}s at {session.config.fps} fps"
    )

    outcome = await session.export()
    if outcome is None or not outcome.ok:
        return None

    path = session.trigger.save(outcome, output_dir)
    session.clear()
    return path


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="svga-forge",
        description="Pack an image sequence into an SVGA 2.0 archive",
    )
    parser.add_argument("input_dir", type=Path, help="Directory of frame images")
    parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=None,
        help="Where to write the archive (default: export.output_dir)",
    )
    parser.add_argument("--fps", type=int, default=None, help="Frames per second (1-60)")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else default_settings
    output_dir = args.output_dir or Path(config.export.output_dir)

    if not args.input_dir.is_dir():
        print(f"Not a directory: {args.input_dir}", file=sys.stderr)
        return 2

    files = collect_frames(args.input_dir)
    if not files:
        print(f"No images found in {args.input_dir}", file=sys.stderr)
        return 1

    try:
        path = asyncio.run(build_archive(files, output_dir, config, fps=args.fps))
    except InvalidConfig as e:
        print(str(e), file=sys.stderr)
        return 2

    if path is None:
        return 1

    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
