"""Read-side queries over the image store.

All read endpoints go through ImageQueries. A failed store read is logged
and answered with an empty result, never an error: API consumers cannot
tell "store unavailable" from "no rows".
"""

import logging
from datetime import datetime

from image_api import metrics
from image_api.models import ImageRecord
from image_api.recommend import recommend, recommend_secondary
from image_api.storage import ImageStore, StoreError

logger = logging.getLogger("image_api.queries")


class ImageQueries:
    """Query surfaces shared by the HTTP routes."""

    def __init__(self, store: ImageStore) -> None:
        self.store = store

    async def last_updated(self) -> datetime | None:
        try:
            state = await self.store.get_sync_state()
        except StoreError as e:
            logger.error("Failed to read last updated time: %s", e)
            metrics.reads_total.labels(endpoint="last_updated", status="store_error").inc()
            return None
        metrics.reads_total.labels(endpoint="last_updated", status="success").inc()
        return state.time if state else None

    async def images(
        self, name: str | None = None, stable_only: bool = False
    ) -> list[ImageRecord]:
        """Stored images ordered by name, optionally filtered."""
        return await self._read(
            "images", name=name, stable=True if stable_only else None
        )

    async def recommended(
        self, name: str | None = None, secondary_only: bool = False
    ) -> list[ImageRecord]:
        """Recommended image per name.

        Args:
            name: Restrict to one repository; None for all
            secondary_only: Only consider records with a secondary channel URL

        Returns:
            At most one record per name
        """
        endpoint = "recommended_secondary" if secondary_only else "recommended"
        records = await self._read(endpoint, name=name)
        if secondary_only:
            return recommend_secondary(records)
        return recommend(records)

    async def _read(
        self, endpoint: str, name: str | None = None, stable: bool | None = None
    ) -> list[ImageRecord]:
        try:
            records = await self.store.find_images(name=name, stable=stable)
        except StoreError as e:
            logger.error("Image query failed (%s, name=%s): %s", endpoint, name, e)
            metrics.reads_total.labels(endpoint=endpoint, status="store_error").inc()
            return []
        metrics.reads_total.labels(endpoint=endpoint, status="success").inc()
        return records
