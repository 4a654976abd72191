"""Test cases for the offline cache service."""
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from delta_offline.config import MINUTE_MS
from delta_offline.connectivity import ConnectivitySignalEmitter
from delta_offline.service import OfflineCacheService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def emitter() -> ConnectivitySignalEmitter:
    return ConnectivitySignalEmitter()


@pytest_asyncio.fixture
async def service(storage, settings, clock, emitter):
    """テスト用のOfflineCacheServiceを作成する。"""
    service = OfflineCacheService(storage, settings, clock)
    service.start(emitter)
    yield service
    await service.aclose()


class TestOfflineCacheService:
    """OfflineCacheServiceのテスト。"""

    async def test_offline_message_is_synced_on_reconnect(self, service, emitter, clock) -> None:
        """オフライン中に保留した変更がオンライン復帰時に自動で同期される。"""
        handler = AsyncMock()
        service.register_sync_handler("chat_message", handler)

        emitter.emit(False)
        assert service.is_online() is False
        await service.enqueue_pending_sync("chat_message", {"text": "hi"})
        assert len(await service.list_pending_sync()) == 1

        clock.advance(1)
        emitter.emit(True, True)
        await service.monitor.wait_for_reconnect_tasks()

        handler.assert_awaited_once_with({"text": "hi"})
        assert await service.list_pending_sync() == []

    async def test_insights_expiry_scenario(self, service, clock) -> None:
        """insights は29分後には取得でき、31分後には期限切れになる。"""
        await service.cache_set("insights", {"hrv": 52}, "user1")
        clock.advance(29 * MINUTE_MS)
        assert await service.cache_get("insights", "user1") == {"hrv": 52}
        assert (await service.get_cache_stats()).entry_count == 1

        clock.advance(2 * MINUTE_MS)
        assert await service.cache_get("insights", "user1") is None
        assert (await service.get_cache_stats()).entry_count == 0

    async def test_cache_surface(self, service) -> None:
        """キャッシュ操作のテスト。"""
        await service.cache_set("profile", "p1", "user1")
        await service.cache_set("profile", "p2", "user2")
        await service.cache_clear("profile", "user1")
        assert await service.cache_get("profile", "user1") is None
        assert await service.cache_get("profile", "user2") == "p2"

        await service.cache_clear_all()
        assert await service.cache_get("profile", "user2") is None

    async def test_stats_include_pending_sync(self, service) -> None:
        await service.cache_set("profile", "p")
        await service.enqueue_pending_sync("chat_message", {"text": "hi"})

        stats = await service.get_cache_stats()

        assert stats.entry_count == 1
        assert stats.pending_sync_count == 1
        assert stats.approx_byte_size > 0

    async def test_fetch_with_cache_respects_connectivity(self, service, emitter) -> None:
        fetch_fn = AsyncMock(return_value={"steps": 1000})

        emitter.emit(False)
        assert await service.fetch_with_cache("workout", fetch_fn) is None
        fetch_fn.assert_not_called()

        emitter.emit(True, True)
        result = await service.fetch_with_cache("workout", fetch_fn)
        assert result.data == {"steps": 1000}
        assert result.from_cache is False

    async def test_manual_sync_and_remove(self, service) -> None:
        service.register_sync_handler("chat_message", AsyncMock())
        await service.enqueue_pending_sync("chat_message", 1)
        await service.enqueue_pending_sync("other", 2)
        other = (await service.list_pending_sync())[1]

        await service.remove_pending_sync(other.id)
        report = await service.sync_pending()

        assert report.synced == 1
        assert await service.list_pending_sync() == []

    async def test_subscribe(self, service, emitter) -> None:
        received = []
        unsubscribe = service.subscribe(received.append)
        emitter.emit(False)
        unsubscribe()
        emitter.emit(True, True)
        assert received == [False]
