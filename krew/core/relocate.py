"""Moves extracted archive contents into a plugin's install directory.

Each file operation is a (glob, destination) pair evaluated against the
extracted staging tree. Operations run in manifest order, so a later one
may overwrite what an earlier one put in place.
"""

from __future__ import annotations

import glob
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from krew.config.schemas import FileOperation, Platform
from krew.core.errors import PathTraversalError
from krew.utils.filesystem import ensure_directory, is_sub_path, move_path

logger = logging.getLogger(__name__)


@dataclass
class Move:
    """A single source -> destination relocation."""

    src: Path
    dest: Path


def apply_defaults(platform: Platform) -> list[FileOperation]:
    """Get the file operations for a platform, defaulting to ``* -> .``."""
    ops = platform.file_operations()
    if not platform.files:
        logger.debug("File operations not specified, assuming %s", ops)
    return ops


def find_move_targets(from_dir: Path, to_dir: Path, op: FileOperation) -> list[Move]:
    """Expand one file operation into concrete moves.

    Args:
        from_dir: Extracted staging root the glob is evaluated in
        to_dir: Install root the destination is relative to
        op: The file operation

    Returns:
        Moves in sorted source order; empty if the glob matches nothing

    Raises:
        PathTraversalError: If the destination or a source escapes its root
    """
    from_dir = from_dir.absolute()
    to_dir = to_dir.absolute()

    dest_dir = to_dir / op.to
    _, ok = is_sub_path(to_dir, dest_dir)
    if not ok:
        raise PathTraversalError(dest_dir, to_dir)

    matches = sorted(glob.glob(str(from_dir / op.from_), include_hidden=True))
    moves: list[Move] = []
    for match in matches:
        src = Path(match)
        _, ok = is_sub_path(from_dir, src)
        if not ok:
            raise PathTraversalError(src, from_dir)
        moves.append(Move(src=src, dest=dest_dir / src.name))

    if not moves:
        logger.warning("No files in %s matched the glob %r", from_dir, op.from_)
    return moves


def move_files(from_dir: Path, to_dir: Path, ops: list[FileOperation]) -> list[Path]:
    """Apply file operations from from_dir into to_dir.

    Args:
        from_dir: Extracted staging root
        to_dir: Destination root (created if missing)
        ops: File operations in order

    Returns:
        Destination paths, in the order they were written
    """
    ensure_directory(to_dir)
    written: list[Path] = []
    for op in ops:
        for move in find_move_targets(from_dir, to_dir, op):
            if not move.src.exists():
                # Moved away by an earlier operation with an overlapping glob
                continue
            logger.debug("Moving %s to %s", move.src, move.dest)
            move_path(move.src, move.dest)
            written.append(move.dest)
    return written


def move_to_install_dir(staging_dir: Path, install_dir: Path, ops: list[FileOperation]) -> Path:
    """Relocate staging contents into install_dir.

    Files are first assembled in a temporary sibling of install_dir and
    then moved over it in one step, replacing any previous contents. The
    temporary directory is always removed.

    Args:
        staging_dir: Extracted archive root
        install_dir: Final versioned install directory
        ops: File operations to apply

    Returns:
        The install directory
    """
    parent = ensure_directory(install_dir.parent)
    tmp_dir = Path(tempfile.mkdtemp(prefix=".krew-move-", dir=parent))
    try:
        move_files(staging_dir, tmp_dir, ops)
        logger.debug("Moving %s to %s", tmp_dir, install_dir)
        move_path(tmp_dir, install_dir)
    finally:
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir, ignore_errors=True)
    return install_dir
