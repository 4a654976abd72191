"""Test cases for per-screen adapters."""
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from delta_offline.adapters import (
    FAILED_TO_FETCH,
    NO_DATA_AVAILABLE,
    NetworkStatus,
    OfflineResource,
)
from delta_offline.connectivity import ConnectivitySignalEmitter
from delta_offline.service import OfflineCacheService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def emitter() -> ConnectivitySignalEmitter:
    return ConnectivitySignalEmitter()


@pytest_asyncio.fixture
async def service(storage, settings, clock, emitter):
    service = OfflineCacheService(storage, settings, clock)
    service.start(emitter)
    yield service
    await service.aclose()


class TestNetworkStatus:
    """NetworkStatusのテスト。"""

    async def test_tracks_connectivity(self, service, emitter) -> None:
        status = NetworkStatus(service)
        assert status.is_online is True

        emitter.emit(False)
        assert status.is_online is False

        status.close()
        emitter.emit(True, True)
        assert status.is_online is False


class TestOfflineResource:
    """OfflineResourceのテスト。"""

    async def test_load_from_network(self, service) -> None:
        resource = OfflineResource(service, "profile", AsyncMock(return_value="p"), "user1")

        await resource.load()

        assert resource.data == "p"
        assert resource.from_cache is False
        assert resource.is_loading is False
        assert resource.error is None
        resource.close()

    async def test_no_data_available(self, service, emitter) -> None:
        emitter.emit(False)
        resource = OfflineResource(service, "profile", AsyncMock(return_value="p"))

        await resource.load()

        assert resource.data is None
        assert resource.error == NO_DATA_AVAILABLE
        resource.close()

    async def test_refetches_when_back_online(self, service, emitter) -> None:
        """キャッシュを表示中にオンラインに戻ると強制的に再取得する。"""
        await service.cache_set("insights", "cached")
        fetch_fn = AsyncMock(return_value="fresh")
        resource = OfflineResource(service, "insights", fetch_fn)

        emitter.emit(False)
        await resource.load()
        assert resource.data == "cached"
        assert resource.from_cache is True

        emitter.emit(True, True)
        await resource.wait_for_refresh()

        assert resource.data == "fresh"
        assert resource.from_cache is False
        fetch_fn.assert_awaited_once()
        resource.close()

    async def test_refetch_forces_network(self, service) -> None:
        await service.cache_set("workout", "cached")
        resource = OfflineResource(service, "workout", AsyncMock(return_value="fresh"))

        await resource.refetch()

        assert resource.data == "fresh"
        assert resource.from_cache is False
        resource.close()

    async def test_repeated_online_signals_refetch_once(self, service, emitter) -> None:
        """オンラインの重複通知では再取得は1回だけ行われる。"""
        await service.cache_set("insights", "cached")
        fetch_fn = AsyncMock(return_value="fresh")
        resource = OfflineResource(service, "insights", fetch_fn)

        emitter.emit(False)
        await resource.load()
        assert resource.from_cache is True

        emitter.emit(True, True)
        emitter.emit(True, True)
        await resource.wait_for_refresh()

        assert fetch_fn.await_count == 1
        assert resource.data == "fresh"
        resource.close()

    async def test_online_signal_without_prior_offline_does_not_refetch(
        self, service, emitter
    ) -> None:
        """オンラインのままの通知ではキャッシュ表示中でも再取得しない。"""
        await service.cache_set("insights", "cached")
        resource = OfflineResource(service, "insights", AsyncMock(return_value="fresh"))
        await resource.load(force_refresh=False)
        await service.coordinator.wait_for_background()
        assert resource.from_cache is True

        emitter.emit(True, True)
        await resource.wait_for_refresh()

        assert resource.data == "cached"
        assert resource.from_cache is True
        resource.close()

    async def test_unexpected_error_is_stored(self, service) -> None:
        """取得中の例外は error に記録され、送出されない。"""
        resource = OfflineResource(service, "profile", AsyncMock(return_value="p"))

        with patch.object(
            service, "fetch_with_cache", AsyncMock(side_effect=RuntimeError())
        ):
            await resource.load()
        assert resource.error == FAILED_TO_FETCH
        assert resource.is_loading is False

        with patch.object(
            service, "fetch_with_cache", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            await resource.load()
        assert resource.error == "boom"
        resource.close()
