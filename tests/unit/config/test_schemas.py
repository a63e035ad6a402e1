"""Tests for krew.config.schemas module."""

from typing import Any

import pytest
from pydantic import ValidationError

from krew.config.schemas import FileOperation, Platform, PluginManifest, validate_plugin_name

DIGEST = "a" * 64


def _manifest_data(**spec_overrides: Any) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "version": "v1.0.0",
        "shortDescription": "Test plugin",
        "platforms": [
            {
                "selector": {"matchLabels": {"os": "linux"}},
                "uri": "https://example.com/foo.tar.gz",
                "sha256": DIGEST,
                "bin": "foo",
            }
        ],
    }
    spec.update(spec_overrides)
    return {
        "apiVersion": "krew.googlecontainertools.github.com/v1alpha2",
        "kind": "Plugin",
        "metadata": {"name": "foo"},
        "spec": spec,
    }


class TestPluginManifest:
    """Tests for PluginManifest schema."""

    def test_valid_manifest(self):
        """Parses a valid manifest and exposes shortcuts."""
        manifest = PluginManifest.model_validate(_manifest_data())

        assert manifest.name == "foo"
        assert manifest.version == "v1.0.0"
        assert manifest.spec.short_description == "Test plugin"
        assert manifest.spec.platforms[0].selector is not None
        assert manifest.spec.platforms[0].selector.match_labels == {"os": "linux"}

    def test_rejects_version_without_prefix(self):
        """Versions must be v-prefixed semver."""
        with pytest.raises(ValidationError):
            PluginManifest.model_validate(_manifest_data(version="1.0.0"))

    def test_rejects_empty_platforms(self):
        """At least one platform is required."""
        with pytest.raises(ValidationError, match="at least one platform"):
            PluginManifest.model_validate(_manifest_data(platforms=[]))

    def test_rejects_wrong_kind(self):
        """Only Plugin documents are accepted."""
        data = _manifest_data()
        data["kind"] = "Index"

        with pytest.raises(ValidationError, match="Expected kind"):
            PluginManifest.model_validate(data)

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b", "a:b"])
    def test_rejects_unsafe_names(self, name: str):
        """Names that are unsafe as file names are rejected."""
        data = _manifest_data()
        data["metadata"]["name"] = name

        with pytest.raises(ValidationError):
            PluginManifest.model_validate(data)

    def test_dump_uses_wire_names(self):
        """Serialization by alias uses camelCase wire names."""
        manifest = PluginManifest.model_validate(_manifest_data())

        data = manifest.model_dump(by_alias=True, exclude_none=True)

        assert data["apiVersion"].endswith("/v1alpha2")
        assert data["spec"]["shortDescription"] == "Test plugin"
        assert data["spec"]["platforms"][0]["selector"]["matchLabels"] == {"os": "linux"}


class TestPlatform:
    """Tests for Platform schema."""

    def test_rejects_bad_sha256(self):
        """Checksums must be 64 hex digits."""
        with pytest.raises(ValidationError, match="Invalid sha256"):
            Platform(uri="https://x", sha256="xyz", bin="foo")

    def test_rejects_empty_bin(self):
        """bin is required."""
        with pytest.raises(ValidationError):
            Platform(uri="https://x", sha256=DIGEST, bin="")

    def test_default_file_operations_when_absent(self):
        """Missing files default to moving everything."""
        platform = Platform(uri="https://x", sha256=DIGEST, bin="foo")

        ops = platform.file_operations()

        assert len(ops) == 1
        assert ops[0].from_ == "*"
        assert ops[0].to == "."

    def test_default_file_operations_when_empty(self):
        """An empty files list also defaults to moving everything."""
        platform = Platform(uri="https://x", sha256=DIGEST, bin="foo", files=[])

        assert [(op.from_, op.to) for op in platform.file_operations()] == [("*", ".")]

    def test_declared_file_operations(self):
        """Declared operations are kept in order."""
        platform = Platform.model_validate(
            {
                "uri": "https://x",
                "sha256": DIGEST,
                "bin": "foo",
                "files": [{"from": "bin/foo", "to": "."}, {"from": "LICENSE", "to": "doc"}],
            }
        )

        assert [(op.from_, op.to) for op in platform.file_operations()] == [
            ("bin/foo", "."),
            ("LICENSE", "doc"),
        ]


class TestFileOperation:
    """Tests for FileOperation schema."""

    def test_rejects_empty_paths(self):
        """Both from and to are required."""
        with pytest.raises(ValidationError):
            FileOperation.model_validate({"from": "", "to": "."})


class TestValidatePluginName:
    """Tests for validate_plugin_name function."""

    @pytest.mark.parametrize("name", ["foo", "foo-bar", "foo_bar", "foo.v2"])
    def test_accepts_plain_names(self, name: str):
        assert validate_plugin_name(name) == name

    @pytest.mark.parametrize("name", ["", ".", "..", "../receipts/foo", "a\\b", "c:foo"])
    def test_rejects_path_like_names(self, name: str):
        with pytest.raises(ValueError):
            validate_plugin_name(name)
