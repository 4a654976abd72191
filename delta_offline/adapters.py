"""画面ごとのデータ取得アダプター。"""
import asyncio
import logging
from typing import Any, Optional, Set

from delta_offline.fetch_coordinator import FetchFn
from delta_offline.service import OfflineCacheService

logger = logging.getLogger(__name__)

NO_DATA_AVAILABLE = "No data available"
FAILED_TO_FETCH = "Failed to fetch data"


class NetworkStatus:
    """接続状態を購読して保持する。"""

    def __init__(self, service: OfflineCacheService):
        self.is_online = service.is_online()
        self._unsubscribe = service.subscribe(self._on_change)

    def _on_change(self, online: bool) -> None:
        self.is_online = online

    def close(self) -> None:
        """購読を解除する。"""
        self._unsubscribe()


class OfflineResource:
    """1つのリソースをキャッシュ付きで取得し、状態を保持する。

    キャッシュから表示している間にオフラインからオンラインに戻ると、強制的に再取得する。
    オンラインのままの重複通知では再取得しない。
    """

    def __init__(
        self,
        service: OfflineCacheService,
        resource_key: str,
        fetch_fn: FetchFn,
        owner_id: Optional[str] = None,
    ):
        """初期化。

        Args:
            service: オフラインキャッシュサービス
            resource_key: リソース名
            fetch_fn: 最新のデータを返すコルーチン関数
            owner_id: 所有者ID
        """
        self.service = service
        self.resource_key = resource_key
        self.fetch_fn = fetch_fn
        self.owner_id = owner_id

        self.data: Optional[Any] = None
        self.from_cache = False
        self.is_loading = False
        self.error: Optional[str] = None

        self.status = NetworkStatus(service)
        self._last_online = service.is_online()
        self._unsubscribe = service.subscribe(self._on_connectivity)
        self._tasks: Set[asyncio.Task] = set()

    async def load(self, force_refresh: bool = False) -> None:
        """データを取得して状態を更新する。"""
        self.is_loading = True
        self.error = None
        try:
            result = await self.service.fetch_with_cache(
                self.resource_key,
                self.fetch_fn,
                self.owner_id,
                force_refresh=force_refresh,
            )
            if result is not None:
                self.data = result.data
                self.from_cache = result.from_cache
            else:
                self.error = NO_DATA_AVAILABLE
        except Exception as e:
            logger.warning(f"データの取得に失敗: {self.resource_key}: {e}")
            self.error = str(e) or FAILED_TO_FETCH
        finally:
            self.is_loading = False

    async def refetch(self, force_refresh: bool = True) -> None:
        await self.load(force_refresh)

    def _on_connectivity(self, online: bool) -> None:
        was_online = self._last_online
        self._last_online = online
        if was_online or not (online and self.from_cache):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        logger.debug(f"オンライン復帰のため再取得: {self.resource_key}")
        task = loop.create_task(self.load(force_refresh=True))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_for_refresh(self) -> None:
        """再取得タスクの完了を待つ。"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """購読を解除する。"""
        self._unsubscribe()
        self.status.close()
