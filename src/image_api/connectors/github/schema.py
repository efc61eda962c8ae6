"""Response shapes for GitHub listing endpoints.

Some GitHub endpoints return a bare JSON array, others wrap the array in an
object next to metadata keys (total_count, incomplete_results, ...), and a
few answer 204 with no body. parse_listing() resolves a body into one of
three explicit variants so callers only ever read ``listing.items``.
"""

from dataclasses import dataclass, field
from typing import Any, Union

__all__ = [
    "LISTING_METADATA_KEYS",
    "BareListing",
    "EmptyListing",
    "Listing",
    "WrappedListing",
    "parse_listing",
    "version_tags",
]

# Keys that sit beside the data array in wrapped responses
LISTING_METADATA_KEYS = ("incomplete_results", "repository_selection", "total_count")


@dataclass(frozen=True)
class BareListing:
    """Body was the array itself."""

    items: list[Any]


@dataclass(frozen=True)
class WrappedListing:
    """Body was an object; ``namespace`` is the key that held the array."""

    namespace: str
    items: list[Any]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmptyListing:
    """No body, an empty body, or an object with no data-bearing key."""

    @property
    def items(self) -> list[Any]:
        return []


Listing = Union[BareListing, WrappedListing, EmptyListing]


def parse_listing(data: Any) -> Listing:
    """Resolve a decoded response body into a Listing variant.

    Args:
        data: Decoded JSON body (list, dict, or None)

    Returns:
        BareListing for arrays, WrappedListing for objects whose first
        non-metadata key holds an array, EmptyListing otherwise
    """
    if isinstance(data, list):
        return BareListing(items=data)

    if not data or not isinstance(data, dict):
        return EmptyListing()

    metadata = {k: data[k] for k in LISTING_METADATA_KEYS if k in data}
    remaining = [k for k in data if k not in LISTING_METADATA_KEYS]
    if not remaining:
        return EmptyListing()

    namespace = remaining[0]
    items = data[namespace]
    if not isinstance(items, list):
        return EmptyListing()
    return WrappedListing(namespace=namespace, items=items, metadata=metadata)


def version_tags(element: Any) -> list[str] | None:
    """Container tags of one package version, or None when it carries none.

    Reads ``element["metadata"]["container"]["tags"]``.
    """
    if not isinstance(element, dict):
        return None
    metadata = element.get("metadata") or {}
    container = metadata.get("container") or {}
    tags = container.get("tags")
    if not tags:
        return None
    return [t for t in tags if isinstance(t, str)]
