"""Configuration management with pydantic-settings for the SDR Image API.

Loads from (in order of precedence):
1. Environment variables (highest priority)
2. .env file in the working directory
3. Default values (lowest priority)

The config is frozen after load and cached by get_config().
"""

import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_IGNORED_REPOS",
    "DEFAULT_PRIMARY_TAG",
    "DEFAULT_SECONDARY_TAG",
    "GITHUB_API_VERSION",
    "LATEST_MARKERS",
    "PINNED_TAG_PREFIX",
    "RELEASE_NOTES_PLACEHOLDER",
    "SECONDARY_TAG_PREFIX",
    "ImageApiConfig",
    "get_config",
    "reset_config",
]

# GitHub REST contract version sent with every request
GITHUB_API_VERSION = "2022-11-28"

# Channel tags
DEFAULT_PRIMARY_TAG = "latest"
DEFAULT_SECONDARY_TAG = "trixie-latest"
PINNED_TAG_PREFIX = "latest-build-"
SECONDARY_TAG_PREFIX = "trixie-latest-"

# A package version carrying one of these tags is the current release
LATEST_MARKERS = frozenset({DEFAULT_PRIMARY_TAG, DEFAULT_SECONDARY_TAG})

RELEASE_NOTES_PLACEHOLDER = "No release notes available"

# Organization repositories that never publish a runnable image
DEFAULT_IGNORED_REPOS = (
    ".github",
    "common-github-workflows",
    "docker-baseimage",
    "docker-install",
    "sdr-enthusiast-assets",
    "sdr-enthusiasts.github.io",
    "sdre-hub",
    "gitbook-adsb-guide",
    "install-libsdrplay",
    "sdre-bias-t-common",
)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ImageApiConfig(BaseSettings):
    """Configuration for the image sync service and read API.

    Attributes:
        github_token: Token used as Bearer credential for the GitHub REST API
        github_org: Organization whose repositories and packages are mirrored
        github_api_url: GitHub API base URL
        github_api_version: Value of the X-GitHub-Api-Version header
        registry_host: Container registry host used in pull references
        ignored_repos: Comma-separated repository names excluded from sync
        sync_interval_minutes: Freshness window and cadence between cycles
        sync_on_start: Force a cycle immediately at startup
        database_path: SQLite file holding images and the last sync time
        host: Bind address for the HTTP API
        port: Bind port for the HTTP API
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json for production, text for development)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    github_token: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub token with read access to the organization's packages",
    )

    github_org: str = Field(
        default="sdr-enthusiasts",
        min_length=1,
        description="Organization whose container packages are mirrored",
    )

    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )

    github_api_version: str = Field(
        default=GITHUB_API_VERSION,
        description="GitHub REST API version header value",
    )

    registry_host: str = Field(
        default="ghcr.io", description="Registry host used to build pull references"
    )

    ignored_repos: str = Field(
        default=",".join(DEFAULT_IGNORED_REPOS),
        description="Comma-separated repository names skipped during sync",
    )

    sync_interval_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Minutes between sync cycles; a non-forced cycle inside this window is skipped",
    )

    sync_on_start: bool = Field(
        default=True, description="Run a forced sync cycle when the service starts"
    )

    database_path: Path = Field(
        default=Path.home() / ".image-api" / "images.db",
        description="SQLite database file for image records and sync state",
    )

    host: str = Field(default="0.0.0.0", description="HTTP bind address")

    port: int = Field(default=3000, ge=1, le=65535, description="HTTP bind port")

    log_level: str = Field(default="INFO", description="Logging level")

    log_format: str = Field(default="json", description="Log format: json or text")

    @field_validator("github_token")
    @classmethod
    def require_token(cls, v: SecretStr) -> SecretStr:
        """Reject a missing token; the service cannot authenticate without one."""
        if not v.get_secret_value().strip():
            raise ValueError("GITHUB_TOKEN is required")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Expected one of {sorted(_VALID_LOG_LEVELS)}"
            )
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in ("json", "text"):
            raise ValueError(f"Invalid log format '{v}'. Expected 'json' or 'text'")
        return fmt

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("database_path", mode="before")
    @classmethod
    def expand_user_paths(cls, v):
        """Expand ~ and environment variables in paths."""
        if isinstance(v, str):
            return Path(os.path.expanduser(os.path.expandvars(v)))
        return v

    @property
    def ignored_repo_set(self) -> frozenset[str]:
        """Parsed ignore-set."""
        return frozenset(r.strip() for r in self.ignored_repos.split(",") if r.strip())

    @property
    def sync_interval_seconds(self) -> float:
        return self.sync_interval_minutes * 60.0


@lru_cache(maxsize=1)
def get_config() -> ImageApiConfig:
    """Get the cached configuration instance.

    Raises:
        pydantic.ValidationError: If required settings are missing or invalid
    """
    return ImageApiConfig()


def reset_config() -> None:
    """Reset configuration singleton for testing."""
    get_config.cache_clear()
