"""Configuration file parsing utilities."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from krew.config.schemas import PluginManifest, validate_plugin_name


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def save_yaml(path: Path, data: dict[str, Any]) -> None:
    """Save data to a YAML file.

    Args:
        path: Path to write to
        data: Data to serialize
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def parse_plugin_manifest(data: dict[str, Any], path: Path | None = None) -> PluginManifest:
    """Validate raw manifest data.

    Args:
        data: Parsed YAML mapping
        path: File the data came from, for error messages

    Returns:
        Parsed PluginManifest

    Raises:
        ConfigError: If the data is not a valid manifest
    """
    try:
        return PluginManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid plugin manifest: {e}", path) from e


def load_plugin_manifest(path: Path) -> PluginManifest:
    """Load a plugin manifest from a YAML file.

    Args:
        path: Path to the manifest file

    Returns:
        Parsed PluginManifest

    Raises:
        ConfigError: If the file is missing or invalid
    """
    return parse_plugin_manifest(load_yaml(path), path)


def save_plugin_manifest(path: Path, plugin: PluginManifest) -> None:
    """Save a plugin manifest to a YAML file, using its wire field names.

    Args:
        path: Path to write to
        plugin: Manifest to save
    """
    save_yaml(path, dump_plugin_manifest(plugin))


def dump_plugin_manifest(plugin: PluginManifest) -> dict[str, Any]:
    """Convert a manifest to the mapping written to disk."""
    return plugin.model_dump(by_alias=True, exclude_none=True)


def load_plugin_from_index(index_dir: Path, name: str) -> PluginManifest:
    """Load a plugin manifest from a local index checkout.

    Manifests live at ``<index_dir>/plugins/<name>.yaml``.

    Args:
        index_dir: Root of the index
        name: Plugin name

    Returns:
        Parsed PluginManifest

    Raises:
        ConfigError: If the manifest is missing, invalid, or declares another name
    """
    try:
        validate_plugin_name(name)
    except ValueError as e:
        raise ConfigError(f"Invalid plugin name: {name!r}") from e

    manifest_path = index_dir / "plugins" / f"{name}.yaml"
    plugin = load_plugin_manifest(manifest_path)
    if plugin.name != name:
        raise ConfigError(
            f"Plugin manifest declares name {plugin.name!r}, expected {name!r}",
            manifest_path,
        )
    return plugin
