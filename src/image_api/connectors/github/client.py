"""GitHub REST API client.

Provides an async httpx-based client for the GitHub REST API with token auth
and Link header pagination. Requests are made once: there is no retry,
backoff, or client-side rate limiting. Callers decide how to recover from
GitHubClientError.

Reference: https://docs.github.com/en/rest
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from image_api.config import GITHUB_API_VERSION
from image_api.connectors.github.schema import parse_listing

logger = logging.getLogger("image_api.github.client")

# <https://api.github.com/...?page=2>; rel="next"
_NEXT_LINK_PATTERN = re.compile(r'<(\S*)>;\s*rel="next"', re.IGNORECASE)


class GitHubClientError(Exception):
    """Raised when a GitHub API request fails.

    Wraps httpx transport errors and non-2xx responses.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class ApiResponse:
    """Decoded response: JSON body (None when empty) plus headers."""

    data: Any
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    def header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default


def parse_next_link(link_header: str, base_url: str | None = None) -> str | None:
    """Extract the ``rel="next"`` URL from a Link header.

    Format: <https://api.github.com/...?page=2>; rel="next", <...>; rel="last"

    Args:
        link_header: Raw Link header value
        base_url: When given, a next URL outside this base is rejected.
            Page requests carry the Bearer token, so they must stay on the
            API host.

    Returns:
        Next page URL or None if there is no (acceptable) next page
    """
    if not link_header or 'rel="next"' not in link_header.lower():
        return None
    for part in link_header.split(","):
        match = _NEXT_LINK_PATTERN.search(part.strip())
        if match:
            url = match.group(1)
            if base_url is not None and not url.startswith(base_url.rstrip("/") + "/"):
                logger.warning(
                    "Rejecting Link header URL not matching base_url: %.100s", url
                )
                return None
            return url
    return None


class GitHubClient:
    """GitHub REST API client using httpx with Bearer token auth.

    Uses a long-lived httpx.AsyncClient with connection pooling. One
    instance is built at startup and handed to the walker and sync engine.

    Example:
        >>> async with GitHubClient("ghp_token", "sdr-enthusiasts") as client:
        ...     repos = await client.list_org_repos()
    """

    BASE_URL = "https://api.github.com"

    # Timeout configuration
    CONNECT_TIMEOUT = 5.0  # seconds
    READ_TIMEOUT = 30.0  # seconds
    WRITE_TIMEOUT = 5.0  # seconds
    POOL_TIMEOUT = 5.0  # seconds

    # Pagination
    DEFAULT_PER_PAGE = 100

    def __init__(
        self,
        token: str,
        org: str,
        base_url: str | None = None,
        api_version: str = GITHUB_API_VERSION,
    ) -> None:
        """Initialize GitHub client with token authentication.

        Args:
            token: GitHub token (PAT or app installation token)
            org: Organization whose repositories and packages are read
            base_url: GitHub API base URL (default: https://api.github.com)
            api_version: X-GitHub-Api-Version header value
        """
        self.org = org
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.api_version = api_version

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": api_version,
                "User-Agent": "sdr-image-api/1.0",
            },
            timeout=httpx.Timeout(
                connect=self.CONNECT_TIMEOUT,
                read=self.READ_TIMEOUT,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and release connections."""
        await self._client.aclose()

    # --- Authentication & Connection ---

    async def test_connection(self) -> dict[str, Any]:
        """Validate the token against the rate limit endpoint.

        /rate_limit accepts both user and installation tokens and never
        counts against the quota.

        Returns:
            dict with keys: success (bool), rate_limit (dict) or error (str)
        """
        try:
            rate = await self.get_rate_limit()
            return {"success": True, "rate_limit": rate}
        except GitHubClientError as e:
            return {"success": False, "error": str(e)}

    async def get_rate_limit(self) -> dict[str, Any]:
        """Current core rate limit.

        Returns:
            dict with limit, remaining, reset, used
        """
        response = await self.request("GET", "/rate_limit")
        data = response.data or {}
        core = (data.get("resources") or {}).get("core") or data.get("rate") or {}
        return {
            "limit": core.get("limit"),
            "remaining": core.get("remaining"),
            "reset": core.get("reset"),
            "used": core.get("used"),
        }

    # --- Organization Endpoints ---

    async def list_org_repos(self, repo_type: str = "public") -> list[dict[str, Any]]:
        """List the organization's repositories across all pages.

        Args:
            repo_type: Repository type filter (all, public, private, forks, ...)

        Returns:
            List of repository dicts from the GitHub API
        """
        return await self.paginate(
            f"/orgs/{self.org}/repos", params={"type": repo_type}
        )

    # --- Core HTTP Methods ---

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
    ) -> ApiResponse:
        """Make a single API request.

        Args:
            method: HTTP method
            path: API path relative to base_url, or an absolute URL taken
                from a Link header
            params: Query parameters

        Returns:
            ApiResponse with the decoded body (None for empty bodies)

        Raises:
            GitHubClientError: On transport errors and non-2xx statuses
        """
        try:
            response = await self._client.request(method, path, params=params)
        except httpx.HTTPError as e:
            raise GitHubClientError(f"HTTP error for {method} {path}: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            try:
                error_body = response.json() if response.content else {}
            except (ValueError, UnicodeDecodeError):
                error_body = {}
            message = (
                error_body.get("message", response.text)
                if isinstance(error_body, dict)
                else response.text
            )
            raise GitHubClientError(
                f"GitHub API error {response.status_code} for {path}: {message}",
                status_code=response.status_code,
            )

        data: Any = None
        if response.status_code != 204 and response.content:
            try:
                data = response.json()
            except (ValueError, UnicodeDecodeError) as e:
                raise GitHubClientError(
                    f"Invalid JSON from {path}: {e}",
                    status_code=response.status_code,
                ) from e

        return ApiResponse(
            data=data,
            headers=dict(response.headers),
            status_code=response.status_code,
        )

    async def paginate(
        self,
        path: str,
        params: dict[str, str] | None = None,
        max_pages: int = 100,
    ) -> list[Any]:
        """Fetch all pages of a paginated endpoint using Link headers.

        Each page body is normalized with parse_listing(), so bare and
        wrapped array responses are both supported.

        Args:
            path: API path
            params: Query parameters (per_page added automatically)
            max_pages: Safety limit to prevent runaway pagination

        Returns:
            Concatenated list of all items across all pages

        Raises:
            GitHubClientError: If any page request fails
        """
        all_items: list[Any] = []
        current_params: dict[str, str] | None = dict(params or {})
        current_params["per_page"] = str(self.DEFAULT_PER_PAGE)
        current_path = path

        for page in range(max_pages):
            response = await self.request("GET", current_path, params=current_params)
            all_items.extend(parse_listing(response.data).items)

            next_url = parse_next_link(response.header("Link"), self.base_url)
            if not next_url:
                break

            # Parameters are embedded in the Link URL
            current_path = next_url
            current_params = None

            logger.debug(
                "Paginating %s: page %d, %d items so far",
                path,
                page + 1,
                len(all_items),
            )

        return all_items
