"""Tests for krew.utils.platform module."""

from unittest.mock import patch

import pytest

from krew.utils.platform import (
    get_arch,
    get_env,
    get_host_arch,
    get_host_os,
    get_os,
    is_windows,
    platform_labels,
)


@pytest.fixture(autouse=True)
def clear_overrides(monkeypatch: pytest.MonkeyPatch):
    """Run every test without KREW_OS/KREW_ARCH from the outer environment."""
    monkeypatch.delenv("KREW_OS", raising=False)
    monkeypatch.delenv("KREW_ARCH", raising=False)


class TestGetHostOS:
    """Tests for get_host_os function."""

    @patch("platform.system")
    def test_darwin(self, mock_system):
        """Darwin is reported as darwin."""
        mock_system.return_value = "Darwin"
        assert get_host_os() == "darwin"

    @patch("platform.system")
    def test_windows(self, mock_system):
        """Windows platform returns windows."""
        mock_system.return_value = "Windows"
        assert get_host_os() == "windows"

    @patch("platform.system")
    def test_cygwin_is_windows(self, mock_system):
        """Cygwin counts as windows."""
        mock_system.return_value = "CYGWIN_NT-10.0"
        assert get_host_os() == "windows"

    @patch("platform.system")
    def test_linux(self, mock_system):
        """Linux platform returns linux."""
        mock_system.return_value = "Linux"
        assert get_host_os() == "linux"


class TestGetHostArch:
    """Tests for get_host_arch function."""

    @pytest.mark.parametrize(
        ("machine", "expected"),
        [
            ("x86_64", "amd64"),
            ("AMD64", "amd64"),
            ("aarch64", "arm64"),
            ("arm64", "arm64"),
            ("armv7l", "arm"),
            ("i686", "386"),
        ],
    )
    def test_maps_machine_names(self, machine: str, expected: str):
        """Maps machine names to selector vocabulary."""
        with patch("platform.machine", return_value=machine):
            assert get_host_arch() == expected

    @patch("platform.machine")
    def test_unknown_machine_passes_through(self, mock_machine):
        """Unknown machines are reported lowercased."""
        mock_machine.return_value = "RISCV64"
        assert get_host_arch() == "riscv64"


class TestOverrides:
    """Tests for the KREW_OS / KREW_ARCH overrides."""

    def test_os_override(self, monkeypatch: pytest.MonkeyPatch):
        """KREW_OS replaces the host OS."""
        monkeypatch.setenv("KREW_OS", "windows")
        with patch("platform.system", return_value="Linux"):
            assert get_os() == "windows"
            assert is_windows() is True

    def test_arch_override(self, monkeypatch: pytest.MonkeyPatch):
        """KREW_ARCH replaces the host architecture."""
        monkeypatch.setenv("KREW_ARCH", "arm64")
        with patch("platform.machine", return_value="x86_64"):
            assert get_arch() == "arm64"

    def test_no_override_uses_host(self):
        """Without overrides the host values are used."""
        with patch("platform.system", return_value="Darwin"):
            assert get_os() == "darwin"
            assert is_windows() is False

    def test_platform_labels(self, monkeypatch: pytest.MonkeyPatch):
        """Labels carry os and arch."""
        monkeypatch.setenv("KREW_OS", "darwin")
        monkeypatch.setenv("KREW_ARCH", "arm64")
        assert platform_labels() == {"os": "darwin", "arch": "arm64"}


class TestGetEnv:
    """Tests for get_env function."""

    def test_returns_value(self, monkeypatch: pytest.MonkeyPatch):
        """Returns set values."""
        monkeypatch.setenv("KREW_TEST_VAR", "value")
        assert get_env("KREW_TEST_VAR") == "value"

    def test_returns_default(self):
        """Returns the default for unset variables."""
        assert get_env("KREW_SURELY_UNSET_VAR", "fallback") == "fallback"
