"""Install receipts: the record of which plugins are installed.

A receipt is the plugin manifest as it was at install time, stored at a
path keyed only by plugin name. A readable receipt is the single source
of truth for "this plugin is installed".
"""

import logging
import os
import tempfile
from pathlib import Path

import yaml

from krew.config.parser import ConfigError, dump_plugin_manifest, load_plugin_manifest
from krew.config.schemas import PluginManifest
from krew.core.errors import ReceiptError

logger = logging.getLogger(__name__)


def load(path: Path) -> PluginManifest | None:
    """Load a receipt.

    Args:
        path: Receipt file path

    Returns:
        The stored manifest, or None if no receipt exists

    Raises:
        ConfigError: If the receipt exists but cannot be read or parsed
    """
    if not path.exists():
        return None
    return load_plugin_manifest(path)


def store(plugin: PluginManifest, path: Path) -> None:
    """Write a receipt for plugin.

    The receipt is written to a temporary file and renamed into place, so
    a reader never sees a half-written receipt.

    Args:
        plugin: Manifest to record
        path: Receipt file path

    Raises:
        ReceiptError: If the receipt cannot be written
    """
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                dump_plugin_manifest(plugin),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, yaml.YAMLError) as e:
        raise ReceiptError(
            "could not store install receipt", path, plugin.name, str(e)
        ) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.remove(tmp_name)
    logger.debug("Stored receipt for %s at %s", plugin.name, path)


def delete(path: Path) -> None:
    """Remove a receipt.

    Raises:
        ReceiptError: If the receipt cannot be removed (including when missing)
    """
    try:
        path.unlink()
    except OSError as e:
        raise ReceiptError("could not remove plugin receipt", path, detail=str(e)) from e
    logger.debug("Deleted receipt %s", path)


def list_installed(receipts_dir: Path) -> list[PluginManifest]:
    """Load every readable receipt in receipts_dir.

    Unreadable receipts are logged and skipped.

    Returns:
        Receipts sorted by plugin name
    """
    if not receipts_dir.is_dir():
        return []

    plugins: list[PluginManifest] = []
    for receipt_path in sorted(receipts_dir.glob("*.yaml")):
        try:
            plugins.append(load_plugin_manifest(receipt_path))
        except ConfigError as e:
            logger.warning("Skipping unreadable receipt %s: %s", receipt_path, e)
    return sorted(plugins, key=lambda p: p.name)
