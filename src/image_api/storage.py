"""SQLite storage for image records and sync state.

Uses aiosqlite so store access suspends instead of blocking the event loop.
Two tables: ``images`` (one row per ImageRecord) and ``last_updated`` (at
most one row, replaced on every sync cycle).

Every database failure surfaces as StoreError; callers decide whether to
degrade or propagate.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from image_api.models import ImageRecord, SyncState

logger = logging.getLogger("image_api.storage")

__all__ = ["ImageStore", "StoreError"]


class StoreError(Exception):
    """Raised when a store operation fails."""


SCHEMA = """
CREATE TABLE IF NOT EXISTS images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    url TEXT NOT NULL,
    url_trixie TEXT NOT NULL DEFAULT '',
    tag TEXT NOT NULL,
    tag_trixie TEXT NOT NULL,
    release_notes TEXT NOT NULL DEFAULT '',
    stable INTEGER NOT NULL,
    is_pinned_version INTEGER NOT NULL,
    created_date TEXT NOT NULL,
    modified_date TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_images_name ON images(name);
CREATE INDEX IF NOT EXISTS idx_images_dedup ON images(name, tag, tag_trixie);

CREATE TABLE IF NOT EXISTS last_updated (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    time TEXT NOT NULL
);
"""

_IMAGE_COLUMNS = (
    "id, name, url, url_trixie, tag, tag_trixie, release_notes, "
    "stable, is_pinned_version, created_date, modified_date"
)


def _to_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _from_text(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_image(row: Any) -> ImageRecord:
    return ImageRecord(
        id=row["id"],
        name=row["name"],
        primary_url=row["url"],
        primary_tag=row["tag"],
        secondary_url=row["url_trixie"],
        secondary_tag=row["tag_trixie"],
        release_notes=row["release_notes"],
        stable=bool(row["stable"]),
        pinned=bool(row["is_pinned_version"]),
        created_at=_from_text(row["created_date"]),
        modified_at=_from_text(row["modified_date"]),
    )


class ImageStore:
    """aiosqlite-backed store for ImageRecord and SyncState.

    Example:
        >>> async with ImageStore("/tmp/images.db") as store:
        ...     images = await store.find_images(name="acarshub")
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: aiosqlite.Connection | None = None

    async def __aenter__(self) -> "ImageStore":
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def initialize(self) -> None:
        """Open the database and create the schema.

        Raises:
            StoreError: If the database cannot be opened or migrated
        """
        if self._conn is not None:
            return
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._path)
            self._conn.row_factory = aiosqlite.Row
            if self._path != ":memory:":
                await self._conn.execute("PRAGMA journal_mode=WAL;")
            await self._conn.executescript(SCHEMA)
            await self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to initialize image store at {self._path}: {e}") from e
        logger.info("Image store initialized at %s", self._path)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("Image store not initialized")
        return self._conn

    # --- Images ---

    async def find_images(
        self, name: str | None = None, stable: bool | None = None
    ) -> list[ImageRecord]:
        """Images filtered by name and/or stability, ordered by name.

        Raises:
            StoreError: On database failure
        """
        clauses = []
        args: list[Any] = []
        if name is not None:
            clauses.append("name = ?")
            args.append(name)
        if stable is not None:
            clauses.append("stable = ?")
            args.append(int(stable))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"SELECT {_IMAGE_COLUMNS} FROM images{where} ORDER BY name ASC, id ASC"
        return await self._fetch_images(query, args)

    async def find_matching(
        self, name: str, tag: str, tag_trixie: str
    ) -> list[ImageRecord]:
        """Images sharing the dedup key (name, tag, tag_trixie)."""
        query = (
            f"SELECT {_IMAGE_COLUMNS} FROM images "
            "WHERE name = ? AND tag = ? AND tag_trixie = ? ORDER BY id ASC"
        )
        return await self._fetch_images(query, [name, tag, tag_trixie])

    async def create_image(self, record: ImageRecord) -> ImageRecord:
        """Insert a record.

        Returns:
            The record with its store-assigned id
        """
        conn = self._connection()
        try:
            cursor = await conn.execute(
                "INSERT INTO images (name, url, url_trixie, tag, tag_trixie, "
                "release_notes, stable, is_pinned_version, created_date, modified_date) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.name,
                    record.primary_url,
                    record.secondary_url,
                    record.primary_tag,
                    record.secondary_tag,
                    record.release_notes,
                    int(record.stable),
                    int(record.pinned),
                    _to_text(record.created_at),
                    _to_text(record.modified_at),
                ),
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create image {record.name}: {e}") from e
        return record.with_id(cursor.lastrowid)

    async def _fetch_images(self, query: str, args: list[Any]) -> list[ImageRecord]:
        conn = self._connection()
        try:
            async with conn.execute(query, args) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Image query failed: {e}") from e
        return [_row_to_image(row) for row in rows]

    # --- Sync state ---

    async def get_sync_state(self) -> SyncState | None:
        """Latest sync state row, or None when no cycle has run."""
        conn = self._connection()
        try:
            async with conn.execute(
                "SELECT id, time FROM last_updated ORDER BY time DESC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Sync state query failed: {e}") from e
        if row is None:
            return None
        return SyncState(id=row["id"], time=_from_text(row["time"]))

    async def delete_sync_state(self) -> int:
        """Delete every sync state row; returns the number removed."""
        conn = self._connection()
        try:
            cursor = await conn.execute("DELETE FROM last_updated")
            await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete sync state: {e}") from e
        return cursor.rowcount

    async def create_sync_state(self, time: datetime) -> SyncState:
        conn = self._connection()
        try:
            cursor = await conn.execute(
                "INSERT INTO last_updated (time) VALUES (?)", (_to_text(time),)
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to record sync state: {e}") from e
        return SyncState(id=cursor.lastrowid, time=time)
