"""オフラインキャッシュサービス。

キャッシュ・接続監視・保留中の同期・取得方針を1つにまとめ、画面側に公開する。
プロセス起動時に1度生成し、参照を渡して使う。
"""
import logging
from typing import Any, List, Optional

from delta_offline.cache_store import CacheStore
from delta_offline.config import Settings, create_storage
from delta_offline.connectivity import (
    ConnectionListener,
    ConnectivityMonitor,
    ConnectivitySource,
    Unsubscribe,
)
from delta_offline.fetch_coordinator import FetchCoordinator, FetchFn
from delta_offline.models import CacheStats, DrainReport, FetchResult, PendingSyncItem
from delta_offline.pending_sync import PendingSyncQueue, SyncHandler, SyncHandlerRegistry
from delta_offline.storage import KeyValueStorage
from delta_offline.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class OfflineCacheService:
    """オフラインファーストのキャッシュと同期の窓口。"""

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        settings: Optional[Settings] = None,
        clock: Clock = now_ms,
        initial_online: bool = True,
    ):
        """初期化。

        Args:
            storage: 永続ストレージ（Noneの場合は設定から生成）
            settings: 設定
            clock: 現在時刻（ミリ秒）を返す関数
            initial_online: シグナル受信前の接続状態
        """
        self.settings = settings or Settings()
        self.storage = storage or create_storage(self.settings)
        self.cache = CacheStore(self.storage, self.settings, clock)
        self.handlers = SyncHandlerRegistry()
        self.pending = PendingSyncQueue(self.storage, self.handlers, self.settings, clock)
        self.monitor = ConnectivityMonitor(
            on_reconnect=self.pending.drain, initial_online=initial_online
        )
        self.coordinator = FetchCoordinator(self.cache, self.monitor)
        logger.info(f"OfflineCacheServiceを初期化: ストレージ={type(self.storage).__name__}")

    @classmethod
    def from_env(cls) -> "OfflineCacheService":
        """環境変数の設定からサービスを生成する。"""
        return cls(settings=Settings.from_env())

    def start(self, source: ConnectivitySource) -> None:
        """接続状態の監視を開始する。"""
        self.monitor.start(source)

    def is_online(self) -> bool:
        return self.monitor.is_online()

    def subscribe(self, listener: ConnectionListener) -> Unsubscribe:
        return self.monitor.subscribe(listener)

    async def fetch_with_cache(
        self,
        resource_key: str,
        fetch_fn: FetchFn,
        owner_id: Optional[str] = None,
        force_refresh: bool = False,
        cache_only: bool = False,
    ) -> Optional[FetchResult]:
        return await self.coordinator.fetch_with_cache(
            resource_key,
            fetch_fn,
            owner_id,
            force_refresh=force_refresh,
            cache_only=cache_only,
        )

    async def cache_get(self, resource_key: str, owner_id: Optional[str] = None) -> Optional[Any]:
        return await self.cache.get(resource_key, owner_id)

    async def cache_set(
        self,
        resource_key: str,
        payload: Any,
        owner_id: Optional[str] = None,
        ttl_override_ms: Optional[int] = None,
    ) -> None:
        await self.cache.put(resource_key, payload, owner_id, ttl_override_ms)

    async def cache_clear(self, resource_key: str, owner_id: Optional[str] = None) -> None:
        await self.cache.delete(resource_key, owner_id)

    async def cache_clear_all(self) -> None:
        await self.cache.clear_all()

    def register_sync_handler(self, kind: str, handler: SyncHandler) -> None:
        """保留中の変更を反映するハンドラーを登録する。"""
        self.handlers.register(kind, handler)

    async def enqueue_pending_sync(self, kind: str, payload: Any) -> None:
        await self.pending.enqueue(kind, payload)

    async def list_pending_sync(self) -> List[PendingSyncItem]:
        return await self.pending.list()

    async def remove_pending_sync(self, item_id: str) -> None:
        await self.pending.remove(item_id)

    async def sync_pending(self) -> DrainReport:
        """保留中の変更を今すぐ同期する。"""
        return await self.pending.drain()

    async def get_cache_stats(self) -> CacheStats:
        """キャッシュと保留中の同期の統計情報を取得する。"""
        stats = await self.cache.stats()
        stats.pending_sync_count = await self.pending.count()
        return stats

    async def aclose(self) -> None:
        """監視を停止し、実行中のタスクを待ってからリソースを解放する。"""
        self.monitor.stop()
        await self.coordinator.wait_for_background()
        await self.monitor.wait_for_reconnect_tasks()
        await self.storage.aclose()
