"""Tests for krew.core.matcher module."""

from typing import Any

import pytest

from krew.config.schemas import Platform, Selector
from krew.core.matcher import get_matching_platform, selector_matches

LINUX_AMD64 = {"os": "linux", "arch": "amd64"}


def _selector(data: dict[str, Any]) -> Selector:
    return Selector.model_validate(data)


def _platform(uri: str, selector: dict[str, Any] | None) -> Platform:
    return Platform.model_validate(
        {"selector": selector, "uri": uri, "sha256": "0" * 64, "bin": "foo"}
    )


class TestSelectorMatches:
    """Tests for selector_matches function."""

    def test_missing_selector_matches_nothing(self):
        """A platform without a selector never matches."""
        assert selector_matches(None, LINUX_AMD64) is False

    def test_empty_selector_matches_everything(self):
        """An empty selector matches any labels."""
        assert selector_matches(_selector({}), LINUX_AMD64) is True

    def test_match_labels(self):
        """All matchLabels entries must hold."""
        assert selector_matches(_selector({"matchLabels": {"os": "linux"}}), LINUX_AMD64)
        assert not selector_matches(
            _selector({"matchLabels": {"os": "linux", "arch": "arm64"}}), LINUX_AMD64
        )

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ({"key": "os", "operator": "In", "values": ["linux", "darwin"]}, True),
            ({"key": "os", "operator": "In", "values": ["windows"]}, False),
            ({"key": "os", "operator": "NotIn", "values": ["windows"]}, True),
            ({"key": "os", "operator": "NotIn", "values": ["linux"]}, False),
            ({"key": "arch", "operator": "Exists"}, True),
            ({"key": "distro", "operator": "Exists"}, False),
            ({"key": "distro", "operator": "DoesNotExist"}, True),
            ({"key": "os", "operator": "DoesNotExist"}, False),
            ({"key": "distro", "operator": "NotIn", "values": ["ubuntu"]}, True),
        ],
    )
    def test_match_expressions(self, expression: dict[str, Any], expected: bool):
        """Each operator follows label-selector semantics."""
        selector = _selector({"matchExpressions": [expression]})
        assert selector_matches(selector, LINUX_AMD64) is expected

    def test_labels_and_expressions_combined(self):
        """matchLabels and matchExpressions must both hold."""
        selector = _selector(
            {
                "matchLabels": {"os": "linux"},
                "matchExpressions": [{"key": "arch", "operator": "In", "values": ["arm64"]}],
            }
        )
        assert selector_matches(selector, LINUX_AMD64) is False


class TestGetMatchingPlatform:
    """Tests for get_matching_platform function."""

    def test_first_match_wins(self):
        """Platforms are tried in manifest order."""
        platforms = [
            _platform("https://example.com/darwin", {"matchLabels": {"os": "darwin"}}),
            _platform("https://example.com/linux", {"matchLabels": {"os": "linux"}}),
            _platform("https://example.com/any", {}),
        ]

        match, ok = get_matching_platform(platforms, LINUX_AMD64)

        assert ok is True
        assert match is not None
        assert match.uri == "https://example.com/linux"

    def test_no_match(self):
        """Returns (None, False) when nothing matches."""
        platforms = [
            _platform("https://example.com/darwin", {"matchLabels": {"os": "darwin"}}),
            _platform("https://example.com/none", None),
        ]

        assert get_matching_platform(platforms, LINUX_AMD64) == (None, False)

    def test_defaults_to_host_labels(self, monkeypatch: pytest.MonkeyPatch):
        """Without labels the KREW_OS/KREW_ARCH-aware host labels are used."""
        monkeypatch.setenv("KREW_OS", "windows")
        monkeypatch.setenv("KREW_ARCH", "386")
        platforms = [
            _platform("https://example.com/linux", {"matchLabels": {"os": "linux"}}),
            _platform(
                "https://example.com/win",
                {"matchLabels": {"os": "windows", "arch": "386"}},
            ),
        ]

        match, ok = get_matching_platform(platforms)

        assert ok is True
        assert match is not None
        assert match.uri == "https://example.com/win"
