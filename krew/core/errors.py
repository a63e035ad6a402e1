"""Errors raised by the plugin install/uninstall lifecycle.

The sentinel conditions (already installed, not installed, already
upgraded) are separate classes from I/O failures so callers can render
friendly messages for them.
"""

from pathlib import Path


class KrewError(Exception):
    """Base class for plugin lifecycle errors."""

    def __init__(self, message: str, plugin_name: str | None = None):
        self.plugin_name = plugin_name
        super().__init__(message)


class AlreadyInstalledError(KrewError):
    """The plugin already has an install receipt."""

    def __init__(self, plugin_name: str):
        super().__init__(
            f"can't install {plugin_name!r}, the newest version is already installed",
            plugin_name,
        )


class NotInstalledError(KrewError):
    """The plugin has no install receipt."""

    def __init__(self, plugin_name: str):
        super().__init__(f"plugin {plugin_name!r} is not installed", plugin_name)


class AlreadyUpgradedError(KrewError):
    """The installed version is not older than the offered one."""

    def __init__(self, plugin_name: str, version: str):
        self.version = version
        super().__init__(
            f"can't upgrade {plugin_name!r}, the newest version ({version}) is already installed",
            plugin_name,
        )


class UnsupportedPlatformError(KrewError):
    """No platform entry in the manifest matches the host."""

    def __init__(self, plugin_name: str, labels: dict[str, str]):
        self.labels = labels
        host = "/".join(labels.get(k, "?") for k in ("os", "arch"))
        super().__init__(
            f"plugin {plugin_name!r} does not offer installation for this platform ({host})",
            plugin_name,
        )


class InvalidPluginNameError(KrewError):
    """A plugin name cannot be used as a file name under the install root."""

    def __init__(self, plugin_name: str, reason: str):
        super().__init__(f"invalid plugin name {plugin_name!r}: {reason}", plugin_name)


class SelfUninstallError(KrewError):
    """The plugin manager refuses to uninstall itself."""

    def __init__(self, plugin_name: str):
        super().__init__(f"removing {plugin_name} through {plugin_name} is not supported", plugin_name)


class DownloadError(KrewError):
    """Fetching, verifying or extracting an archive failed."""

    def __init__(self, message: str, source: str, plugin_name: str | None = None):
        self.source = source
        super().__init__(message, plugin_name)


class FetchError(DownloadError):
    """The archive could not be downloaded or read."""


class ChecksumMismatchError(DownloadError):
    """The archive's sha256 does not match the manifest."""

    def __init__(self, source: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"checksum does not match for {source}, want: {expected}, got: {actual}",
            source,
        )


class ExtractError(DownloadError):
    """The archive could not be extracted safely."""


class PathTraversalError(KrewError):
    """A manifest or archive would place files outside the install directory."""

    def __init__(self, path: Path | str, base: Path | str, plugin_name: str | None = None):
        self.path = Path(path)
        self.base = Path(base)
        super().__init__(f"path {str(path)!r} is not inside {str(base)!r}", plugin_name)


class ForeignFileError(KrewError):
    """Something other than a symlink occupies a plugin's link path."""

    def __init__(self, path: Path, plugin_name: str | None = None):
        self.path = path
        super().__init__(
            f"file {str(path)!r} is not a symlink, refusing to remove it", plugin_name
        )


class BinaryNotFoundError(KrewError):
    """The manifest's bin does not exist after relocation."""

    def __init__(self, path: Path, plugin_name: str | None = None):
        self.path = path
        super().__init__(
            f"can't create symbolic link, source binary ({str(path)!r}) "
            "cannot be found in extracted archive",
            plugin_name,
        )


class IOFailureError(KrewError):
    """An OS-level operation failed; the original error is the __cause__."""

    def __init__(
        self,
        operation: str,
        path: Path | str | None = None,
        plugin_name: str | None = None,
        detail: str | None = None,
    ):
        self.operation = operation
        self.path = Path(path) if path is not None else None
        message = operation
        if path is not None:
            message += f" {str(path)!r}"
        if detail:
            message += f": {detail}"
        super().__init__(message, plugin_name)


class ReceiptError(IOFailureError):
    """An install receipt could not be read, written or removed."""
