"""Package version walker.

Reads the versions listing of one container package and returns the tags
of the version(s) marked ``latest`` or ``trixie-latest``.

GitHub lists package versions newest first, so the current release is on
the first non-empty page. The walk stops after that page even when the
Link header advertises more; continuation links are only followed past
empty pages.
"""

import logging

from image_api.config import LATEST_MARKERS
from image_api.connectors.github.client import (
    GitHubClient,
    GitHubClientError,
    parse_next_link,
)
from image_api.connectors.github.schema import parse_listing, version_tags

logger = logging.getLogger("image_api.github.walker")


class TagWalker:
    """Collects release tags from a package versions endpoint.

    Attributes:
        client: GitHubClient used for every page request
        max_pages: Upper bound on pages requested per walk
    """

    def __init__(self, client: GitHubClient, max_pages: int = 100) -> None:
        self.client = client
        self.max_pages = max_pages

    async def fetch_tags(self, path: str) -> list[str]:
        """Return the tags of the current release of a package.

        Every tag of a version that carries a latest marker is included, so
        channel tags such as ``trixie-latest-<build>`` come along with it.
        Request failures (including 404 for repositories without a
        package) end the walk and return what was gathered; nothing is
        raised.

        Args:
            path: Versions endpoint, e.g.
                /orgs/<org>/packages/container/<name>/versions

        Returns:
            Tags in discovery order, possibly with duplicates
        """
        tags: list[str] = []
        url = path
        params: dict[str, str] | None = {"per_page": str(GitHubClient.DEFAULT_PER_PAGE)}

        for page in range(self.max_pages):
            try:
                response = await self.client.request("GET", url, params=params)
            except GitHubClientError as e:
                logger.info("No packages for %s: %s", path, e)
                return tags

            listing = parse_listing(response.data)
            for element in listing.items:
                element_tags = version_tags(element)
                if element_tags and any(t in LATEST_MARKERS for t in element_tags):
                    tags.extend(element_tags)

            if listing.items:
                break

            next_url = parse_next_link(response.header("Link"), self.client.base_url)
            if not next_url:
                break

            logger.debug("Empty page %d for %s, following %s", page + 1, path, next_url)
            url = next_url
            params = None

        return tags
