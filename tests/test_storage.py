"""Tests for the SQLite image store."""

from datetime import datetime, timedelta, timezone

import pytest

from image_api.storage import ImageStore, StoreError

T0 = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestImages:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_round_trips(self, store, make_image):
        record = make_image(trixie=True, tag_trixie="trixie-latest-build-1", pinned=True)
        created = await store.create_image(record)

        assert created.id is not None
        [loaded] = await store.find_images()
        assert loaded == created

    @pytest.mark.asyncio
    async def test_find_images_ordered_by_name(self, store, make_image):
        for name in ("dump978", "acarshub", "docker-adsb-ultrafeeder"):
            await store.create_image(make_image(name=name))
        names = [r.name for r in await store.find_images()]
        assert names == ["acarshub", "docker-adsb-ultrafeeder", "dump978"]

    @pytest.mark.asyncio
    async def test_find_images_filters(self, store, make_image):
        await store.create_image(make_image(name="acarshub", stable=True))
        await store.create_image(make_image(name="acarshub", tag="latest-build-1", stable=False))
        await store.create_image(make_image(name="dump978", stable=False))

        assert len(await store.find_images(name="acarshub")) == 2
        assert [r.name for r in await store.find_images(stable=True)] == ["acarshub"]
        unstable = await store.find_images(name="acarshub", stable=False)
        assert [r.primary_tag for r in unstable] == ["latest-build-1"]
        assert await store.find_images(name="missing") == []

    @pytest.mark.asyncio
    async def test_find_matching_uses_full_key(self, store, make_image):
        await store.create_image(make_image(name="acarshub", tag="latest-build-1"))

        assert len(await store.find_matching("acarshub", "latest-build-1", "trixie-latest")) == 1
        assert await store.find_matching("acarshub", "latest-build-2", "trixie-latest") == []
        assert await store.find_matching("acarshub", "latest-build-1", "trixie-latest-build-1") == []


class TestSyncState:
    @pytest.mark.asyncio
    async def test_empty_store_has_no_state(self, store):
        assert await store.get_sync_state() is None

    @pytest.mark.asyncio
    async def test_replace_all(self, store):
        await store.create_sync_state(T0)
        await store.create_sync_state(T0 + timedelta(minutes=5))
        assert (await store.get_sync_state()).time == T0 + timedelta(minutes=5)

        assert await store.delete_sync_state() == 2
        await store.create_sync_state(T0 + timedelta(hours=1))
        state = await store.get_sync_state()
        assert state.time == T0 + timedelta(hours=1)
        assert await store.delete_sync_state() == 1

    @pytest.mark.asyncio
    async def test_naive_time_stored_as_utc(self, store):
        await store.create_sync_state(datetime(2026, 10, 1, 8, 30))
        state = await store.get_sync_state()
        assert state.time == datetime(2026, 10, 1, 8, 30, tzinfo=timezone.utc)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_uninitialized_store_raises(self, tmp_path):
        image_store = ImageStore(tmp_path / "images.db")
        with pytest.raises(StoreError, match="not initialized"):
            await image_store.find_images()

    @pytest.mark.asyncio
    async def test_closed_store_raises(self, tmp_path):
        image_store = ImageStore(tmp_path / "images.db")
        await image_store.initialize()
        await image_store.close()
        with pytest.raises(StoreError):
            await image_store.get_sync_state()

    @pytest.mark.asyncio
    async def test_context_manager_creates_parent_dir(self, tmp_path, make_image):
        path = tmp_path / "nested" / "dir" / "images.db"
        async with ImageStore(path) as image_store:
            await image_store.create_image(make_image())
        assert path.exists()

        async with ImageStore(path) as reopened:
            assert len(await reopened.find_images()) == 1

    @pytest.mark.asyncio
    async def test_in_memory_database(self, make_image):
        async with ImageStore(":memory:") as image_store:
            await image_store.create_image(make_image())
            assert len(await image_store.find_images()) == 1
