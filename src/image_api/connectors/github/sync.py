"""Image sync engine.

Walks every public repository of the organization, reads the tags of its
current container release, and records a new ImageRecord whenever the
(name, tag, tag_trixie) key has not been seen before.

Cycles are gated by a freshness window: a non-forced cycle that starts
within sync_interval_minutes of the last recorded sync does nothing and
reports how long to wait. Only one cycle runs at a time.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from image_api import metrics
from image_api.config import RELEASE_NOTES_PLACEHOLDER, ImageApiConfig
from image_api.connectors.github.client import GitHubClient, GitHubClientError
from image_api.connectors.github.tags import classify_tags
from image_api.connectors.github.walker import TagWalker
from image_api.models import ImageRecord
from image_api.storage import ImageStore, StoreError

logger = logging.getLogger("image_api.github.sync")

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_BUSY = "busy"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncResult:
    """Result of one run_cycle() call.

    ``next_run_seconds`` is the delay the caller should wait before the
    next cycle; None for a busy result.
    """

    status: str = STATUS_COMPLETED
    next_run_seconds: float | None = None
    repositories_seen: int = 0
    repositories_ignored: int = 0
    repositories_without_tags: int = 0
    images_created: int = 0
    images_existing: int = 0
    errors: int = 0
    duration_seconds: float = 0.0
    error_details: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for logging and the API."""
        return {
            "status": self.status,
            "next_run_seconds": (
                round(self.next_run_seconds, 2)
                if self.next_run_seconds is not None
                else None
            ),
            "repositories_seen": self.repositories_seen,
            "repositories_ignored": self.repositories_ignored,
            "repositories_without_tags": self.repositories_without_tags,
            "images_created": self.images_created,
            "images_existing": self.images_existing,
            "errors": self.errors,
            "duration_seconds": round(self.duration_seconds, 2),
        }


class ImageSyncEngine:
    """Orchestrates one synchronization pass over the organization.

    Attributes:
        client: GitHubClient for the repository listing and rate limit probe
        store: ImageStore receiving new records and the sync state
        config: Service configuration (org, registry host, ignore-set, window)
        walker: TagWalker reading package versions
    """

    def __init__(
        self,
        client: GitHubClient,
        store: ImageStore,
        config: ImageApiConfig,
        walker: TagWalker | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.store = store
        self.config = config
        self.walker = walker or TagWalker(client)
        self._clock = clock
        self._cycle_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._cycle_lock.locked()

    async def run_cycle(self, force: bool = False) -> SyncResult:
        """Run one sync cycle unless another is in flight or the data is fresh.

        Args:
            force: Bypass the freshness window

        Returns:
            SyncResult; status is "busy", "skipped" or "completed"
        """
        if self._cycle_lock.locked():
            logger.warning("Sync cycle already running, ignoring trigger")
            metrics.sync_cycles_total.labels(status=STATUS_BUSY).inc()
            return SyncResult(status=STATUS_BUSY)

        async with self._cycle_lock:
            if not force:
                wait = await self._remaining_window()
                if wait is not None:
                    metrics.sync_cycles_total.labels(status=STATUS_SKIPPED).inc()
                    return SyncResult(status=STATUS_SKIPPED, next_run_seconds=wait)
            return await self._sync()

    async def _remaining_window(self) -> float | None:
        """Seconds left in the freshness window, or None if a sync is due."""
        try:
            state = await self.store.get_sync_state()
        except StoreError as e:
            logger.warning("No last updated time found: %s", e)
            return None
        if state is None:
            return None

        window = self.config.sync_interval_seconds
        elapsed = (self._clock() - state.time).total_seconds()
        logger.info("Last updated %d minutes ago", int(elapsed // 60))
        if elapsed >= window:
            return None

        remaining = window - elapsed
        logger.info(
            "Skipping update. Last updated less than %d minutes ago. "
            "Rechecking in approximately %d minutes",
            self.config.sync_interval_minutes,
            int(remaining // 60),
        )
        return remaining

    async def _sync(self) -> SyncResult:
        start = time.monotonic()
        result = SyncResult(next_run_seconds=self.config.sync_interval_seconds)

        await self._replace_sync_state(result)
        await self._probe_rate_limit(result)

        try:
            repos = await self.client.list_org_repos()
        except GitHubClientError as e:
            logger.error("Failed to list repositories for %s: %s", self.config.github_org, e)
            self._record_error(result, "list_repos", f"list_org_repos: {e}")
            repos = []

        ignored = self.config.ignored_repo_set
        for repo in repos:
            name = repo.get("name") if isinstance(repo, dict) else None
            if not name:
                continue
            result.repositories_seen += 1
            if name in ignored:
                result.repositories_ignored += 1
                continue
            await self._sync_repository(name, result)

        result.duration_seconds = time.monotonic() - start
        metrics.sync_cycles_total.labels(status=STATUS_COMPLETED).inc()
        metrics.sync_duration_seconds.observe(result.duration_seconds)
        metrics.last_sync_timestamp.set(time.time())

        logger.info(
            "Done checking for updates: %d repositories, %d created, %d existing, "
            "%d errors in %.1fs",
            result.repositories_seen,
            result.images_created,
            result.images_existing,
            result.errors,
            result.duration_seconds,
        )
        return result

    async def _sync_repository(self, name: str, result: SyncResult) -> None:
        """Walk, classify and record one repository."""
        org = self.config.github_org
        tags = await self.walker.fetch_tags(
            f"/orgs/{org}/packages/container/{name}/versions"
        )
        if not tags:
            result.repositories_without_tags += 1
            return

        classification = classify_tags(tags)
        host = self.config.registry_host
        now = self._clock()
        # Every new record is stable; upstream exposes no stability signal
        record = ImageRecord(
            name=name,
            primary_url=classification.primary_url(host, org, name),
            primary_tag=classification.primary_tag,
            secondary_url=classification.secondary_url(host, org, name),
            secondary_tag=classification.secondary_tag,
            pinned=classification.pinned,
            stable=True,
            created_at=now,
            modified_at=now,
            release_notes=RELEASE_NOTES_PLACEHOLDER,
        )

        try:
            existing = await self.store.find_matching(*record.dedup_key)
        except StoreError as e:
            logger.error("Failed to look up %s:%s: %s", name, record.primary_tag, e)
            self._record_error(result, "lookup", f"{name}: {e}")
            existing = []

        if existing:
            # Existing records are not refreshed when upstream metadata drifts
            logger.debug("Skipping update for %s:%s", name, record.primary_tag)
            result.images_existing += 1
            metrics.images_existing_total.inc()
            return

        logger.info("Creating %s:%s", name, record.primary_tag)
        try:
            await self.store.create_image(record)
        except StoreError as e:
            logger.error("Failed to create %s:%s: %s", name, record.primary_tag, e)
            self._record_error(result, "create", f"{name}: {e}")
            return
        result.images_created += 1
        metrics.images_created_total.inc()

    async def _replace_sync_state(self, result: SyncResult) -> None:
        """Delete-then-create the sync state; failures do not stop the cycle."""
        try:
            await self.store.delete_sync_state()
        except StoreError as e:
            logger.error("Failed to clear last updated time: %s", e)
            self._record_error(result, "sync_state", f"delete_sync_state: {e}")
        try:
            await self.store.create_sync_state(self._clock())
        except StoreError as e:
            logger.error("Failed to record last updated time: %s", e)
            self._record_error(result, "sync_state", f"create_sync_state: {e}")

    async def _probe_rate_limit(self, result: SyncResult) -> None:
        """Log the current rate limit. The result never throttles the cycle."""
        try:
            rate = await self.client.get_rate_limit()
        except GitHubClientError as e:
            logger.warning("Rate limit probe failed: %s", e)
            metrics.sync_errors_total.labels(stage="rate_limit").inc()
            return
        logger.info("Rate Limit %s (remaining %s)", rate.get("limit"), rate.get("remaining"))
        for kind in ("limit", "remaining"):
            if rate.get(kind) is not None:
                metrics.github_rate_limit.labels(kind=kind).set(rate[kind])

    @staticmethod
    def _record_error(result: SyncResult, stage: str, detail: str) -> None:
        result.errors += 1
        result.error_details.append(detail)
        metrics.sync_errors_total.labels(stage=stage).inc()
