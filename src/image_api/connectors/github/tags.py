"""Channel tag classification for container package versions.

Turns the raw tags of the current release into the primary and secondary
(trixie) channel tags that image records are keyed on.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from image_api.config import (
    DEFAULT_PRIMARY_TAG,
    DEFAULT_SECONDARY_TAG,
    PINNED_TAG_PREFIX,
    SECONDARY_TAG_PREFIX,
)

__all__ = ["TagClassification", "classify_tags", "image_url"]


def image_url(registry_host: str, org: str, name: str, tag: str) -> str:
    """Pull reference ``<registry-host>/<org>/<name>:<tag>``."""
    return f"{registry_host}/{org}/{name}:{tag}"


@dataclass(frozen=True)
class TagClassification:
    """Canonical channel tags derived from a tag list.

    Attributes:
        primary_tag: First ``latest-build-*`` tag, else ``latest``
        secondary_tag: First ``trixie-latest-*`` tag, else ``trixie-latest``
        pinned: A ``latest-build-*`` tag was found
        has_secondary: A ``trixie-latest-*`` tag was found
    """

    primary_tag: str = DEFAULT_PRIMARY_TAG
    secondary_tag: str = DEFAULT_SECONDARY_TAG
    pinned: bool = False
    has_secondary: bool = False

    def primary_url(self, registry_host: str, org: str, name: str) -> str:
        return image_url(registry_host, org, name, self.primary_tag)

    def secondary_url(self, registry_host: str, org: str, name: str) -> str:
        """Secondary pull reference, or "" when the channel is unpublished.

        The default placeholder tag is never turned into a URL.
        """
        if not self.has_secondary:
            return ""
        return image_url(registry_host, org, name, self.secondary_tag)


def classify_tags(tags: Iterable[str]) -> TagClassification:
    """Classify tags in discovery order; the first prefix match wins.

    Args:
        tags: Tags as returned by the walker, duplicates allowed

    Returns:
        TagClassification with defaults for channels that had no match
    """
    primary_tag = None
    secondary_tag = None

    for tag in tags:
        if primary_tag is None and tag.startswith(PINNED_TAG_PREFIX):
            primary_tag = tag
        if secondary_tag is None and tag.startswith(SECONDARY_TAG_PREFIX):
            secondary_tag = tag
        if primary_tag is not None and secondary_tag is not None:
            break

    return TagClassification(
        primary_tag=primary_tag or DEFAULT_PRIMARY_TAG,
        secondary_tag=secondary_tag or DEFAULT_SECONDARY_TAG,
        pinned=primary_tag is not None,
        has_secondary=secondary_tag is not None,
    )
