"""Shared fixtures for Krew tests."""

import hashlib
import io
import shutil
import tarfile
import tempfile
import zipfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from krew.config.schemas import PluginManifest
from krew.core.environment import Paths

FOO_SCRIPT = b"#!/bin/sh\necho foo\n"

ArchiveFactory = Callable[..., tuple[Path, str]]
ManifestFactory = Callable[..., PluginManifest]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="krew_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def host_platform(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Pin the target platform to linux/amd64 regardless of the real host."""
    monkeypatch.setenv("KREW_OS", "linux")
    monkeypatch.setenv("KREW_ARCH", "amd64")
    return {"os": "linux", "arch": "amd64"}


@pytest.fixture
def krew_paths(temp_dir: Path) -> Paths:
    """Installation layout rooted in the temporary directory."""
    return Paths(temp_dir / "krew-root", tmp=temp_dir / "tmp")


def _write_tarball(path: Path, files: dict[str, bytes]) -> None:
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))


def _write_zip(path: Path, files: dict[str, bytes]) -> None:
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in files.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = 0o755 << 16
            archive.writestr(info, content)


@pytest.fixture
def archive_factory(temp_dir: Path) -> ArchiveFactory:
    """Build an archive from a {name: content} mapping.

    Returns a callable giving (archive path, sha256 hex digest).
    """
    archives_dir = temp_dir / "archives"
    archives_dir.mkdir()

    def factory(
        files: dict[str, bytes] | None = None,
        name: str = "foo.tar.gz",
    ) -> tuple[Path, str]:
        contents = files if files is not None else {"foo": FOO_SCRIPT}
        path = archives_dir / name
        if name.endswith(".zip"):
            _write_zip(path, contents)
        else:
            _write_tarball(path, contents)
        return path, hashlib.sha256(path.read_bytes()).hexdigest()

    return factory


@pytest.fixture
def foo_archive(archive_factory: ArchiveFactory) -> tuple[Path, str]:
    """A tarball holding a single executable named foo."""
    return archive_factory()


@pytest.fixture
def manifest_factory(foo_archive: tuple[Path, str]) -> ManifestFactory:
    """Build plugin manifests whose single platform matches linux/amd64."""
    archive_path, digest = foo_archive

    def factory(
        name: str = "foo",
        version: str = "v1.0.0",
        uri: str | None = None,
        sha256: str | None = None,
        bin: str = "foo",
        files: list[dict[str, str]] | None = None,
        selector: dict[str, Any] | None = None,
    ) -> PluginManifest:
        platform: dict[str, Any] = {
            "selector": selector
            if selector is not None
            else {"matchLabels": {"os": "linux", "arch": "amd64"}},
            "uri": uri or archive_path.as_uri(),
            "sha256": sha256 or digest,
            "bin": bin,
        }
        if files is not None:
            platform["files"] = files
        return PluginManifest.model_validate(
            {
                "apiVersion": "krew.googlecontainertools.github.com/v1alpha2",
                "kind": "Plugin",
                "metadata": {"name": name},
                "spec": {
                    "version": version,
                    "homepage": "https://example.com/foo",
                    "shortDescription": "Does foo things",
                    "platforms": [platform],
                },
            }
        )

    return factory
