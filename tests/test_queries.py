"""Tests for the read-side query surfaces."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from image_api.queries import ImageQueries
from image_api.storage import StoreError


@pytest.fixture
def failing_store():
    store = MagicMock()
    store.find_images = AsyncMock(side_effect=StoreError("database is locked"))
    store.get_sync_state = AsyncMock(side_effect=StoreError("database is locked"))
    return store


@pytest.mark.asyncio
async def test_last_updated_never(store):
    assert await ImageQueries(store).last_updated() is None


@pytest.mark.asyncio
async def test_last_updated_time(store):
    when = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    await store.create_sync_state(when)
    assert await ImageQueries(store).last_updated() == when


@pytest.mark.asyncio
async def test_images_stable_only(store, make_image):
    await store.create_image(make_image(name="acarshub", stable=True))
    await store.create_image(make_image(name="acarshub", tag="latest-build-2", stable=False))
    queries = ImageQueries(store)

    assert len(await queries.images()) == 2
    assert len(await queries.images(name="acarshub", stable_only=True)) == 1


@pytest.mark.asyncio
async def test_recommended_by_name_and_all(store, make_image):
    await store.create_image(make_image(name="acarshub", tag="latest-build-1", minutes=0))
    newest = await store.create_image(make_image(name="acarshub", tag="latest-build-2", minutes=5))
    other = await store.create_image(make_image(name="dump978"))
    queries = ImageQueries(store)

    assert await queries.recommended(name="acarshub") == [newest]
    assert await queries.recommended() == [newest, other]
    assert await queries.recommended(name="missing") == []


@pytest.mark.asyncio
async def test_recommended_secondary(store, make_image):
    trixie = await store.create_image(
        make_image(name="acarshub", tag="latest-build-1", trixie=True,
                   tag_trixie="trixie-latest-build-1", minutes=0)
    )
    await store.create_image(make_image(name="acarshub", tag="latest-build-2", minutes=5))
    await store.create_image(make_image(name="dump978"))
    queries = ImageQueries(store)

    assert await queries.recommended(secondary_only=True) == [trixie]
    assert await queries.recommended(name="acarshub", secondary_only=True) == [trixie]
    assert await queries.recommended(name="dump978", secondary_only=True) == []


@pytest.mark.asyncio
async def test_store_failures_degrade_to_empty(failing_store):
    queries = ImageQueries(failing_store)
    assert await queries.last_updated() is None
    assert await queries.images() == []
    assert await queries.images(name="acarshub", stable_only=True) == []
    assert await queries.recommended() == []
    assert await queries.recommended(name="acarshub", secondary_only=True) == []
