"""Selects the platform entry of a manifest that fits the current host."""

import logging

from krew.config.schemas import Platform, Selector, SelectorRequirement
from krew.utils.platform import platform_labels

logger = logging.getLogger(__name__)


def _requirement_matches(req: SelectorRequirement, labels: dict[str, str]) -> bool:
    if req.operator == "In":
        return req.key in labels and labels[req.key] in req.values
    if req.operator == "NotIn":
        return req.key not in labels or labels[req.key] not in req.values
    if req.operator == "Exists":
        return req.key in labels
    if req.operator == "DoesNotExist":
        return req.key not in labels
    return False


def selector_matches(selector: Selector | None, labels: dict[str, str]) -> bool:
    """Check a label selector against a set of labels.

    An empty selector matches everything; a missing selector matches nothing.

    Args:
        selector: Selector from a platform entry
        labels: Labels describing the host

    Returns:
        True if every matchLabels entry and matchExpressions term holds
    """
    if selector is None:
        return False

    for key, value in selector.match_labels.items():
        if labels.get(key) != value:
            return False

    return all(_requirement_matches(req, labels) for req in selector.match_expressions)


def get_matching_platform(
    platforms: list[Platform],
    labels: dict[str, str] | None = None,
) -> tuple[Platform | None, bool]:
    """Find the first platform entry whose selector matches the host.

    Args:
        platforms: Platform entries in manifest order
        labels: Labels to match against (defaults to the host's os/arch,
            including any KREW_OS/KREW_ARCH override)

    Returns:
        Tuple of (matching platform, True), or (None, False) if none match
    """
    if labels is None:
        labels = platform_labels()

    for i, candidate in enumerate(platforms):
        if selector_matches(candidate.selector, labels):
            logger.debug("Platform entry %d matches labels %s", i, labels)
            return candidate, True
        logger.debug("Platform entry %d does not match labels %s", i, labels)

    logger.debug("No platform entry matches labels %s", labels)
    return None, False
