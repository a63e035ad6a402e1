"""Publishes installed plugin binaries as symlinks in the shared bin directory.

The symlink is the only externally visible name of an installed plugin.
Anything at a link path that is not a symlink belongs to someone else and
is never removed.
"""

from __future__ import annotations

import logging
import os
import secrets
import stat
from pathlib import Path

from krew.core.errors import (
    BinaryNotFoundError,
    ForeignFileError,
    IOFailureError,
    PathTraversalError,
)
from krew.utils.filesystem import ensure_directory, is_sub_path
from krew.utils.platform import is_windows

logger = logging.getLogger(__name__)

LINK_PREFIX = "kubectl-"


def plugin_name_to_bin(name: str, windows: bool | None = None) -> str:
    """Get the executable name a plugin is exposed under.

    Dashes become underscores so kubectl maps ``kubectl foo_bar`` back to
    the plugin ``foo-bar``.

    Args:
        name: Plugin name
        windows: Whether to add the ".exe" suffix (defaults to the target OS)

    Returns:
        The link file name, e.g. "kubectl-foo_bar"
    """
    if windows is None:
        windows = is_windows()
    bin_name = LINK_PREFIX + name.replace("-", "_")
    if windows:
        bin_name += ".exe"
    return bin_name


def ensure_within(install_dir: Path, binary: Path, plugin_name: str | None = None) -> Path:
    """Check that binary resolves to a path inside install_dir.

    Args:
        install_dir: The plugin's versioned install directory
        binary: Path of the executable to publish
        plugin_name: For error context

    Returns:
        The absolute binary path

    Raises:
        PathTraversalError: If binary is outside install_dir or cannot be resolved
    """
    try:
        _, ok = is_sub_path(install_dir, binary)
    except (OSError, RuntimeError) as e:
        raise PathTraversalError(binary, install_dir, plugin_name) from e
    if not ok:
        raise PathTraversalError(binary, install_dir, plugin_name)
    return Path(os.path.abspath(binary))


def remove_link(path: Path) -> bool:
    """Remove a plugin symlink if one exists.

    Args:
        path: Link path

    Returns:
        True if a symlink was removed, False if nothing was there

    Raises:
        ForeignFileError: If something other than a symlink is at path
        IOFailureError: If the path cannot be inspected or removed
    """
    try:
        st = path.lstat()
    except FileNotFoundError:
        logger.debug("No file found at %s", path)
        return False
    except OSError as e:
        raise IOFailureError("failed to read the symlink in", path, detail=str(e)) from e

    if not stat.S_ISLNK(st.st_mode):
        raise ForeignFileError(path)

    try:
        path.unlink()
    except OSError as e:
        raise IOFailureError("failed to remove the symlink in", path, detail=str(e)) from e
    logger.debug("Removed symlink from %s", path)
    return True


def create_or_update_link(bin_dir: Path, binary: Path, plugin_name: str) -> Path:
    """Point the plugin's link in bin_dir at binary.

    The new link is created under a temporary name and renamed over the
    final one, so an existing link is replaced without a gap.

    Args:
        bin_dir: Shared directory of plugin links
        binary: Absolute path of the installed executable
        plugin_name: Plugin name the link is derived from

    Returns:
        The link path

    Raises:
        ForeignFileError: If a non-symlink occupies the link path
        BinaryNotFoundError: If binary does not exist
        IOFailureError: If the link cannot be created
    """
    dst = bin_dir / plugin_name_to_bin(plugin_name)

    try:
        st = dst.lstat()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise IOFailureError("failed to read the symlink in", dst, plugin_name, str(e)) from e
    else:
        if not stat.S_ISLNK(st.st_mode):
            raise ForeignFileError(dst, plugin_name)

    if not binary.exists():
        raise BinaryNotFoundError(binary, plugin_name)

    try:
        ensure_directory(bin_dir)
    except OSError as e:
        raise IOFailureError("could not create bin directory", bin_dir, plugin_name, str(e)) from e

    tmp = bin_dir / f".{dst.name}.{secrets.token_hex(4)}.tmp"
    logger.debug("Creating symlink to %s at %s", binary, dst)
    try:
        os.symlink(binary, tmp)
        os.replace(tmp, dst)
    except OSError as e:
        if tmp.is_symlink():
            tmp.unlink()
        raise IOFailureError(
            f"failed to create a symlink from {str(binary)!r} to", dst, plugin_name, str(e)
        ) from e
    logger.debug("Created symlink at %s", dst)
    return dst
