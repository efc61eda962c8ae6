"""Shared pytest fixtures for SDR Image API tests.

Fixture Organization:
    - Config fixtures: ImageApiConfig built without reading .env
    - Sample data fixtures: ImageRecord factory
    - Temporary resource fixtures: aiosqlite store in tmp_path
    - Mock fixtures: httpx.Response builder for GitHubClient tests
"""

import time
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import httpx
import pytest
import pytest_asyncio

from image_api.config import ImageApiConfig
from image_api.models import ImageRecord
from image_api.storage import ImageStore

BASE_TIME = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Pytest CLI Options
# =============================================================================


def pytest_addoption(parser):
    """Add custom command line options for test selection."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against the live GitHub API (needs GITHUB_TOKEN)",
    )


def pytest_collection_modifyitems(session, config, items):
    """Skip integration tests unless --run-integration is provided."""
    if config.getoption("--run-integration", default=False):
        return
    skip_integration = pytest.mark.skip(
        reason="Need --run-integration option to run integration tests"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# =============================================================================
# Config
# =============================================================================


@pytest.fixture
def config(tmp_path):
    """Config with a dummy token, isolated from the environment's .env."""
    return ImageApiConfig(
        _env_file=None,
        github_token="ghp_test_token_123",
        github_org="sdr-enthusiasts",
        ignored_repos="docker-baseimage,.github",
        database_path=tmp_path / "images.db",
    )


# =============================================================================
# Sample Data
# =============================================================================


@pytest.fixture
def make_image():
    """Factory for ImageRecord instances.

    ``minutes`` offsets created/modified time from BASE_TIME.
    """

    def _make(
        name: str = "acarshub",
        tag: str = "latest",
        tag_trixie: str = "trixie-latest",
        trixie: bool = False,
        stable: bool = True,
        minutes: int = 0,
        pinned: bool = False,
        record_id: int | None = None,
    ) -> ImageRecord:
        when = BASE_TIME + timedelta(minutes=minutes)
        return ImageRecord(
            id=record_id,
            name=name,
            primary_url=f"ghcr.io/sdr-enthusiasts/{name}:{tag}",
            primary_tag=tag,
            secondary_url=(
                f"ghcr.io/sdr-enthusiasts/{name}:{tag_trixie}" if trixie else ""
            ),
            secondary_tag=tag_trixie,
            pinned=pinned,
            stable=stable,
            created_at=when,
            modified_at=when,
            release_notes="No release notes available",
        )

    return _make


# =============================================================================
# Temporary Resources
# =============================================================================


@pytest_asyncio.fixture
async def store(tmp_path):
    """Initialized ImageStore backed by a temporary SQLite file."""
    image_store = ImageStore(tmp_path / "images.db")
    await image_store.initialize()
    yield image_store
    await image_store.close()


# =============================================================================
# HTTP Mocks
# =============================================================================


def mock_response(
    status_code: int = 200,
    json_data: dict | list | None = None,
    headers: dict | None = None,
    content: bytes | None = None,
) -> Mock:
    """Create a mock httpx.Response with given attributes."""
    resp = Mock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data
    if content is None:
        content = b"" if json_data is None else b"[...]"
    resp.content = content
    resp.text = content.decode() if content else ""
    _headers = {
        "X-RateLimit-Remaining": "4999",
        "X-RateLimit-Reset": str(int(time.time()) + 3600),
    }
    if headers:
        _headers.update(headers)
    resp.headers = _headers
    return resp


@pytest.fixture
def response_factory():
    """Expose mock_response to tests as a fixture."""
    return mock_response
