"""GitHub integration package.

Provides the async API client for the GitHub REST API, the listing
response model, the package version walker, channel tag classification,
and the sync engine that records image versions.
"""

from .client import ApiResponse, GitHubClient, GitHubClientError, parse_next_link
from .schema import (
    BareListing,
    EmptyListing,
    Listing,
    WrappedListing,
    parse_listing,
    version_tags,
)
from .sync import ImageSyncEngine, SyncResult
from .tags import TagClassification, classify_tags, image_url
from .walker import TagWalker

__all__ = [
    "ApiResponse",
    "BareListing",
    "EmptyListing",
    "GitHubClient",
    "GitHubClientError",
    "ImageSyncEngine",
    "Listing",
    "SyncResult",
    "TagClassification",
    "TagWalker",
    "WrappedListing",
    "classify_tags",
    "image_url",
    "parse_listing",
    "parse_next_link",
    "version_tags",
]
