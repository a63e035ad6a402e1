"""Filesystem layout of a Krew installation.

    $KREW_ROOT/               (default: ~/.krew)
        bin/                  symlinks exposing installed plugins
        index/plugins/        local plugin manifests
        receipts/<name>.yaml  install receipts
        store/<name>/<ver>/   installed plugin files
    $TMPDIR/krew-downloads/   per-install staging directories
"""

import tempfile
from pathlib import Path

from krew.utils.platform import get_env, get_home_directory

ROOT_ENV = "KREW_ROOT"


class Paths:
    """Resolves every path the installer reads from or writes to."""

    def __init__(self, base: Path, tmp: Path | None = None):
        """Initialize the paths provider.

        Args:
            base: Root of the Krew installation
            tmp: Scratch root for staging directories (defaults to the system temp dir)
        """
        self._base = Path(base)
        self._tmp = Path(tmp) if tmp is not None else Path(tempfile.gettempdir())

    @classmethod
    def from_environment(cls) -> "Paths":
        """Build paths from ``KREW_ROOT``, falling back to ``~/.krew``."""
        root = get_env(ROOT_ENV)
        if root:
            return cls(Path(root).expanduser())
        return cls(Path(get_home_directory()) / ".krew")

    @property
    def base_path(self) -> Path:
        return self._base

    @property
    def index_path(self) -> Path:
        return self._base / "index"

    @property
    def bin_path(self) -> Path:
        """Directory holding the plugin symlinks; users add it to $PATH."""
        return self._base / "bin"

    @property
    def install_path(self) -> Path:
        return self._base / "store"

    @property
    def install_receipts_path(self) -> Path:
        return self._base / "receipts"

    @property
    def download_path(self) -> Path:
        return self._tmp / "krew-downloads"

    def plugin_download_path(self, name: str) -> Path:
        """Staging directory for one install attempt of a plugin."""
        return self.download_path / name

    def plugin_install_path(self, name: str) -> Path:
        """Directory holding every installed version of a plugin."""
        return self.install_path / name

    def plugin_version_install_path(self, name: str, version: str) -> Path:
        return self.plugin_install_path(name) / version

    def plugin_install_receipt_path(self, name: str) -> Path:
        return self.install_receipts_path / f"{name}.yaml"
