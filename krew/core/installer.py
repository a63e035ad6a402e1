"""Plugin installation orchestrator.

Install runs, in order: receipt lookup, platform matching, download into a
fresh staging directory, relocation into the versioned install directory,
path containment check, link publication and finally the receipt write.
Because the receipt is written last and removed last, the worst state an
interrupted operation leaves behind is an install directory without a
receipt, which the next install of the same plugin (or ``sweep_orphans``)
reclaims.

Operations on the same plugin name are not locked against each other.
"""

import contextlib
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from krew.config.parser import ConfigError
from krew.config.schemas import Platform, PluginManifest, validate_plugin_name
from krew.core import receipt
from krew.core.download import download_and_extract
from krew.core.environment import Paths
from krew.core.errors import (
    AlreadyInstalledError,
    AlreadyUpgradedError,
    InvalidPluginNameError,
    IOFailureError,
    KrewError,
    NotInstalledError,
    ReceiptError,
    SelfUninstallError,
    UnsupportedPlatformError,
)
from krew.core.links import (
    create_or_update_link,
    ensure_within,
    plugin_name_to_bin,
    remove_link,
)
from krew.core.matcher import get_matching_platform
from krew.core.relocate import apply_defaults, move_to_install_dir
from krew.utils.filesystem import remove_directory, remove_file
from krew.utils.platform import is_windows, platform_labels
from krew.utils.version import is_newer

logger = logging.getLogger("krew.installer")

# The plugin manager is itself distributed as a plugin under this name
RESERVED_PLUGIN_NAME = "krew"


@dataclass
class InstallOpts:
    """Options for install and upgrade."""

    # Local archive used instead of downloading the platform's uri
    archive_file_override: Path | None = None


@dataclass
class InstallOperation:
    """Everything one install attempt needs; never persisted."""

    plugin_name: str
    platform: Platform
    download_staging_dir: Path
    install_dir: Path
    bin_dir: Path


@dataclass
class InstallResult:
    """Result of a successful install or upgrade."""

    plugin_name: str
    version: str
    install_dir: Path
    link_path: Path
    previous_version: str | None = None


def _load_receipt(paths: Paths, name: str) -> PluginManifest | None:
    receipt_path = paths.plugin_install_receipt_path(name)
    try:
        return receipt.load(receipt_path)
    except (ConfigError, OSError) as e:
        raise ReceiptError("failed to look up plugin receipt", receipt_path, name, str(e)) from e


def _store_receipt(paths: Paths, plugin: PluginManifest) -> None:
    # Last step: a failure here leaves a linked plugin without a receipt,
    # which uninstall will not recognize until it is reinstalled.
    logger.debug("Storing install receipt for plugin %s", plugin.name)
    try:
        receipt.store(plugin, paths.plugin_install_receipt_path(plugin.name))
    except ReceiptError:
        logger.error(
            "Installation receipt for %s could not be stored, uninstall may fail", plugin.name
        )
        raise


def _check_name(name: str) -> None:
    try:
        validate_plugin_name(name)
    except ValueError as e:
        raise InvalidPluginNameError(name, str(e)) from e


def _find_platform(plugin: PluginManifest) -> Platform:
    labels = platform_labels()
    candidate, ok = get_matching_platform(plugin.spec.platforms, labels)
    if not ok or candidate is None:
        raise UnsupportedPlatformError(plugin.name, labels)
    return candidate


def _reclaim_orphan(paths: Paths, name: str) -> None:
    """Remove install directories left behind without a receipt."""
    plugin_dir = paths.plugin_install_path(name)
    if not plugin_dir.exists():
        return
    logger.info("Removing leftover install directory %s with no receipt", plugin_dir)
    try:
        remove_directory(plugin_dir)
    except OSError as e:
        raise IOFailureError("could not remove leftover plugin directory", plugin_dir, name, str(e)) from e


def _operation(paths: Paths, plugin: PluginManifest, platform: Platform) -> InstallOperation:
    return InstallOperation(
        plugin_name=plugin.name,
        platform=platform,
        download_staging_dir=paths.plugin_download_path(plugin.name),
        install_dir=paths.plugin_version_install_path(plugin.name, plugin.version),
        bin_dir=paths.bin_path,
    )


def install(paths: Paths, plugin: PluginManifest, opts: InstallOpts | None = None) -> InstallResult:
    """Download and install a plugin.

    Args:
        paths: Installation layout
        plugin: Manifest of the plugin to install
        opts: Install options

    Returns:
        InstallResult describing the installed version

    Raises:
        AlreadyInstalledError: If a receipt for the plugin exists
        UnsupportedPlatformError: If no platform entry matches the host
        KrewError: For any download, relocation, path or link failure
        ReceiptError: If the receipt cannot be read or written
    """
    opts = opts or InstallOpts()
    name = plugin.name

    logger.debug("Looking for installed versions of %s", name)
    if _load_receipt(paths, name) is not None:
        raise AlreadyInstalledError(name)

    platform = _find_platform(plugin)
    _reclaim_orphan(paths, name)

    logger.info("Installing plugin %s at version %s", name, plugin.version)
    op = _operation(paths, plugin, platform)
    link_path = _install(op, opts)

    _store_receipt(paths, plugin)

    logger.info("Installed plugin %s", name)
    return InstallResult(
        plugin_name=name,
        version=plugin.version,
        install_dir=op.install_dir,
        link_path=link_path,
    )


def _install(op: InstallOperation, opts: InstallOpts) -> Path:
    """Run one install attempt inside a scoped staging directory."""
    staging = op.download_staging_dir
    logger.debug("Creating download staging directory %s", staging)
    try:
        remove_directory(staging)
        staging.mkdir(parents=True)
    except OSError as e:
        raise IOFailureError("could not create download path", staging, op.plugin_name, str(e)) from e

    try:
        return _install_from_staging(op, opts)
    finally:
        logger.debug("Deleting the download staging directory %s", staging)
        shutil.rmtree(staging, ignore_errors=True)
        if staging.exists():
            logger.warning("Failed to clean up download staging directory %s", staging)


def _install_from_staging(op: InstallOperation, opts: InstallOpts) -> Path:
    name = op.plugin_name
    try:
        download_and_extract(
            op.download_staging_dir,
            op.platform.uri,
            op.platform.sha256,
            opts.archive_file_override,
        )
    except KrewError as e:
        e.plugin_name = name
        raise

    ops = apply_defaults(op.platform)
    try:
        try:
            move_to_install_dir(op.download_staging_dir, op.install_dir, ops)
        except OSError as e:
            raise IOFailureError(
                "failed while moving files to the installation directory",
                op.install_dir,
                name,
                str(e),
            ) from e

        binary = op.install_dir / op.platform.bin.replace("/", os.sep)
        binary = ensure_within(op.install_dir, binary, name)
        return create_or_update_link(op.bin_dir, binary, name)
    except Exception as e:
        if isinstance(e, KrewError) and e.plugin_name is None:
            e.plugin_name = name
        logger.debug("Removing install directory %s after failed install", op.install_dir)
        shutil.rmtree(op.install_dir, ignore_errors=True)
        # Only succeeds when no other version is installed
        with contextlib.suppress(OSError):
            op.install_dir.parent.rmdir()
        raise


def upgrade(paths: Paths, plugin: PluginManifest, opts: InstallOpts | None = None) -> InstallResult:
    """Replace an installed plugin with a newer version.

    The new version is installed and linked, its receipt replaces the old
    one, and only then is the old version directory removed.

    Args:
        paths: Installation layout
        plugin: Manifest offering the new version
        opts: Install options

    Returns:
        InstallResult with previous_version set

    Raises:
        NotInstalledError: If the plugin has no receipt
        UnsupportedPlatformError: If no platform entry matches the host
        AlreadyUpgradedError: If the offered version is not newer
    """
    opts = opts or InstallOpts()
    name = plugin.name

    installed = _load_receipt(paths, name)
    if installed is None:
        raise NotInstalledError(name)

    platform = _find_platform(plugin)

    current_version = installed.version
    if not is_newer(current_version, plugin.version):
        raise AlreadyUpgradedError(name, current_version)

    logger.info("Upgrading plugin %s from %s to %s", name, current_version, plugin.version)
    op = _operation(paths, plugin, platform)
    link_path = _install(op, opts)

    _store_receipt(paths, plugin)

    old_dir = paths.plugin_version_install_path(name, current_version)
    logger.debug("Removing old version directory %s", old_dir)
    try:
        remove_directory(old_dir)
    except OSError as e:
        raise IOFailureError("could not remove old plugin version", old_dir, name, str(e)) from e

    return InstallResult(
        plugin_name=name,
        version=plugin.version,
        install_dir=op.install_dir,
        link_path=link_path,
        previous_version=current_version,
    )


def uninstall(paths: Paths, name: str) -> None:
    """Uninstall a plugin.

    Removes, in order, the link, every installed version and the receipt.

    Args:
        paths: Installation layout
        name: Plugin name

    Raises:
        InvalidPluginNameError: If name cannot be a file name under the root
        SelfUninstallError: If name is the plugin manager itself
        NotInstalledError: If the plugin has no receipt
        ForeignFileError: If a non-symlink occupies the plugin's link path
        IOFailureError: If files cannot be removed
    """
    _check_name(name)

    if name == RESERVED_PLUGIN_NAME:
        if not is_windows():
            logger.warning(
                "To uninstall %s altogether, run:\n\trm -rf -- %s", name, paths.base_path
            )
        raise SelfUninstallError(name)

    logger.debug("Finding installed version of %s to delete", name)
    if _load_receipt(paths, name) is None:
        raise NotInstalledError(name)

    logger.info("Deleting plugin %s", name)

    link_path = paths.bin_path / plugin_name_to_bin(name)
    logger.debug("Unlinking %s", link_path)
    try:
        remove_link(link_path)
    except KrewError as e:
        e.plugin_name = name
        raise

    plugin_dir = paths.plugin_install_path(name)
    logger.debug("Deleting path %s", plugin_dir)
    try:
        remove_directory(plugin_dir)
    except OSError as e:
        raise IOFailureError("could not remove plugin directory", plugin_dir, name, str(e)) from e

    receipt_path = paths.plugin_install_receipt_path(name)
    logger.debug("Deleting plugin receipt %s", receipt_path)
    try:
        receipt.delete(receipt_path)
    except ReceiptError as e:
        e.plugin_name = name
        raise


def sweep_orphans(paths: Paths) -> list[Path]:
    """Remove install directories that no receipt refers to.

    A plugin directory without a receipt is removed entirely; for an
    installed plugin, version directories other than the receipt's are
    removed. Plugins whose receipt cannot be read are left alone.

    Returns:
        The removed paths
    """
    removed: list[Path] = []
    if not paths.install_path.is_dir():
        return removed

    for plugin_dir in sorted(paths.install_path.iterdir()):
        if not plugin_dir.is_dir():
            continue
        try:
            installed = receipt.load(paths.plugin_install_receipt_path(plugin_dir.name))
        except (ConfigError, OSError) as e:
            logger.warning("Skipping %s, its receipt is unreadable: %s", plugin_dir, e)
            continue

        if installed is None:
            candidates = [plugin_dir]
        else:
            candidates = [
                d for d in sorted(plugin_dir.iterdir()) if d.name != installed.version
            ]

        for path in candidates:
            logger.info("Removing orphaned install directory %s", path)
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    remove_file(path)
            except OSError as e:
                raise IOFailureError("could not remove orphaned path", path, detail=str(e)) from e
            removed.append(path)

    return removed
