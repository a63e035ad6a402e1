"""Filesystem utilities for Krew."""

import io
import os
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_directory(path: Path) -> bool:
    """Remove a directory and its contents.

    Args:
        path: Directory path to remove

    Returns:
        True if the directory was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


def remove_file(path: Path) -> bool:
    """Remove a file.

    Args:
        path: File path to remove

    Returns:
        True if the file was removed, False if it didn't exist
    """
    if not os.path.lexists(path):
        return False
    path.unlink()
    return True


def is_sub_path(base: Path, target: Path) -> tuple[Path | None, bool]:
    """Check whether target is base itself or nested under it.

    Both paths are made absolute and resolved (symlinks and ``..``
    segments) before comparison.

    Args:
        base: The containing directory
        target: The path to check

    Returns:
        Tuple of (path of target relative to base, True) when contained,
        otherwise (None, False)

    Raises:
        OSError: If either path cannot be resolved
    """
    base_abs = Path(os.path.abspath(base)).resolve()
    target_abs = Path(os.path.abspath(target)).resolve()
    try:
        return target_abs.relative_to(base_abs), True
    except ValueError:
        return None, False


def move_path(src: Path, dest: Path) -> Path:
    """Move a file or directory, replacing whatever exists at dest.

    Uses a rename when possible and falls back to copying when src and
    dest live on different filesystems.

    Args:
        src: Path to move
        dest: Final location

    Returns:
        The destination path
    """
    if dest.is_symlink() or dest.is_file():
        dest.unlink()
    elif dest.is_dir():
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dest))
    return dest


def _check_member_name(name: str) -> None:
    """Reject archive member names that would land outside the target."""
    member_path = PurePosixPath(name.replace("\\", "/"))
    parts = member_path.parts
    # A leading "C:" is absolute on Windows
    if member_path.is_absolute() or ".." in parts or (parts and ":" in parts[0]):
        raise ValueError(f"Unsafe path in archive: {name}")


def extract_tar(data: bytes, dest_dir: Path, compressed: bool = True) -> Path:
    """Extract an in-memory tar archive to a destination directory.

    Args:
        data: Raw archive bytes
        dest_dir: Destination directory
        compressed: Whether the archive is gzip-compressed

    Returns:
        The destination directory

    Raises:
        ValueError: If a member would be written outside dest_dir
        tarfile.TarError: If the archive is malformed
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    mode = "r:gz" if compressed else "r:"
    with tarfile.open(fileobj=io.BytesIO(data), mode=mode) as tar:
        # Security: prevent path traversal
        for member in tar.getmembers():
            _check_member_name(member.name)
        try:
            tar.extractall(dest_dir, filter="data")
        except tarfile.FilterError as e:
            raise ValueError(f"Unsafe member in archive: {e}") from e

    return dest_dir


def extract_zip(data: bytes, dest_dir: Path) -> Path:
    """Extract an in-memory zip archive to a destination directory.

    Unix permission bits stored in the archive are restored so that
    executables stay executable.

    Args:
        data: Raw archive bytes
        dest_dir: Destination directory

    Returns:
        The destination directory

    Raises:
        ValueError: If a member would be written outside dest_dir
        zipfile.BadZipFile: If the archive is malformed
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        members = archive.infolist()
        for info in members:
            _check_member_name(info.filename)

        for info in members:
            target = Path(archive.extract(info, dest_dir))
            mode = (info.external_attr >> 16) & 0o777
            if mode and not info.is_dir():
                os.chmod(target, mode)

    return dest_dir
