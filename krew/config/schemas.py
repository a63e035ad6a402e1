"""Pydantic schemas for Krew plugin manifests.

A plugin manifest is a YAML document describing a kubectl plugin and the
archives it ships for each platform:

    apiVersion: krew.googlecontainertools.github.com/v1alpha2
    kind: Plugin
    metadata:
      name: foo
    spec:
      version: v1.0.0
      shortDescription: Does foo things
      platforms:
      - selector:
          matchLabels:
            os: linux
            arch: amd64
        uri: https://example.com/foo.tar.gz
        sha256: <hex digest>
        bin: foo

The same document, as it existed at install time, is persisted as the
install receipt.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from krew.utils.version import parse_plugin_version

# =============================================================================
# Common Types
# =============================================================================

API_VERSION = "krew.googlecontainertools.github.com/v1alpha2"
PLUGIN_KIND = "Plugin"

SelectorOperator = Literal["In", "NotIn", "Exists", "DoesNotExist"]

_SHA256_PATTERN = re.compile(r"^[a-fA-F0-9]{64}$")
_UNSAFE_NAME_CHARS = set('\\/:*?"<>|')


def validate_plugin_name(name: str) -> str:
    """Check that a plugin name is safe to use as a file name.

    Raises:
        ValueError: If the name is empty, "." or "..", or contains a path
            separator or a character reserved on Windows
    """
    if not name:
        raise ValueError("Plugin name cannot be empty")
    if name in (".", "..") or any(c in _UNSAFE_NAME_CHARS for c in name):
        raise ValueError(f"Plugin name is not a safe file name: {name!r}")
    return name


# =============================================================================
# Platform Selector Models
# =============================================================================


class SelectorRequirement(BaseModel):
    """A single label requirement (key, operator, values)."""

    key: str
    operator: SelectorOperator
    values: list[str] = Field(default_factory=list)


class Selector(BaseModel):
    """Label selector matched against the host's os/arch labels.

    All matchLabels and matchExpressions must hold for a match.
    """

    model_config = ConfigDict(populate_by_name=True)

    match_labels: dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: list[SelectorRequirement] = Field(
        default_factory=list, alias="matchExpressions"
    )


# =============================================================================
# Platform Models
# =============================================================================


class FileOperation(BaseModel):
    """Moves files matching a glob from the archive into the install directory.

    - from: glob relative to the extracted archive root
    - to: destination directory relative to the install root
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str

    @field_validator("from_", "to")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("File operation paths cannot be empty")
        return v


DEFAULT_FILE_OPERATIONS = (FileOperation(from_="*", to="."),)


class Platform(BaseModel):
    """Installable artifact for one OS/architecture combination."""

    selector: Selector | None = None
    uri: str
    sha256: str
    bin: str
    files: list[FileOperation] | None = None

    @field_validator("uri", "bin")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Platform uri and bin cannot be empty")
        return v

    @field_validator("sha256")
    @classmethod
    def validate_sha256(cls, v: str) -> str:
        """Validate a hex-encoded sha256 digest."""
        if not _SHA256_PATTERN.match(v):
            raise ValueError(f"Invalid sha256 checksum: {v!r}")
        return v

    def file_operations(self) -> list[FileOperation]:
        """Get the file operations, falling back to moving the whole archive."""
        if not self.files:
            return [op.model_copy() for op in DEFAULT_FILE_OPERATIONS]
        return list(self.files)


# =============================================================================
# Plugin Manifest
# =============================================================================


class PluginMetadata(BaseModel):
    """Manifest metadata; the name is the install key."""

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject names that are unsafe to use as file names."""
        return validate_plugin_name(v)


class PluginSpec(BaseModel):
    """Versioned description of a plugin and its platform artifacts."""

    model_config = ConfigDict(populate_by_name=True)

    version: str
    homepage: str | None = None
    short_description: str | None = Field(default=None, alias="shortDescription")
    description: str | None = None
    caveats: str | None = None
    platforms: list[Platform]

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        parse_plugin_version(v)
        return v

    @field_validator("platforms")
    @classmethod
    def validate_platforms(cls, v: list[Platform]) -> list[Platform]:
        if not v:
            raise ValueError("Plugin must declare at least one platform")
        return v


class PluginManifest(BaseModel):
    """Plugin manifest schema, also used as the install receipt."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = PLUGIN_KIND
    metadata: PluginMetadata
    spec: PluginSpec

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if v != PLUGIN_KIND:
            raise ValueError(f"Expected kind {PLUGIN_KIND!r}, got {v!r}")
        return v

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def version(self) -> str:
        return self.spec.version
