"""キャッシュとネットワークの取得方針。"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from delta_offline.cache_store import CacheStore
from delta_offline.connectivity import ConnectivityMonitor
from delta_offline.models import FetchResult
from delta_offline.utils.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Any]]


class FetchCoordinator:
    """リソースの取得でキャッシュとネットワークのどちらを使うかを決める。

    方針（この順に評価する）:
        1. cache_only の場合はキャッシュだけを返す。
        2. キャッシュを読む。
        3. オフラインの場合はキャッシュだけを返す。
        4. 有効なキャッシュがあり force_refresh でない場合は、キャッシュを即座に返し、
           バックグラウンドで再取得する（stale-while-revalidate）。
        5. それ以外はネットワークから取得し、失敗したらキャッシュにフォールバックする。
    """

    def __init__(self, cache: CacheStore, monitor: ConnectivityMonitor):
        """初期化。

        Args:
            cache: キャッシュストア
            monitor: 接続状態モニター
        """
        self.cache = cache
        self.monitor = monitor
        self._background_tasks: Set[asyncio.Task] = set()

    async def fetch_with_cache(
        self,
        resource_key: str,
        fetch_fn: FetchFn,
        owner_id: Optional[str] = None,
        force_refresh: bool = False,
        cache_only: bool = False,
    ) -> Optional[FetchResult]:
        """リソースを取得する。

        Args:
            resource_key: リソース名
            fetch_fn: 最新のデータを返すコルーチン関数
            owner_id: 所有者ID
            force_refresh: キャッシュがあってもネットワークから取得する
            cache_only: キャッシュだけを使う（force_refresh より優先）

        Returns:
            取得結果。利用できるデータがない場合は None
        """
        if not resource_key:
            raise ValueError("resource_key must be a non-empty string")
        if not callable(fetch_fn):
            raise ValueError("fetch_fn must be callable")

        if cache_only:
            cached = await self.cache.get(resource_key, owner_id)
            return self._from_cache(cached)

        cached = await self.cache.get(resource_key, owner_id)

        if not self.monitor.is_online():
            logger.debug(f"オフラインのためキャッシュを使用: {resource_key}")
            return self._from_cache(cached)

        if cached is not None and not force_refresh:
            self._revalidate_in_background(resource_key, fetch_fn, owner_id)
            return FetchResult(data=cached, from_cache=True)

        fetched = await self._fetch_foreground(resource_key, fetch_fn, owner_id)
        if fetched.is_ok:
            return FetchResult(data=fetched.value, from_cache=False)

        logger.warning(f"データの取得に失敗: {resource_key}: {fetched.error}")
        return self._from_cache(cached)

    @staticmethod
    def _from_cache(cached: Any) -> Optional[FetchResult]:
        if cached is None:
            return None
        return FetchResult(data=cached, from_cache=True)

    async def _fetch_foreground(
        self, resource_key: str, fetch_fn: FetchFn, owner_id: Optional[str]
    ) -> Result[Any]:
        """ネットワークから取得してキャッシュを更新する。呼び出し元が待つ経路。"""
        try:
            data = await fetch_fn()
        except Exception as e:
            return Err(ErrorKind.NETWORK_FAILURE, e)
        await self.cache.put(resource_key, data, owner_id)
        return Ok(data)

    def _revalidate_in_background(
        self, resource_key: str, fetch_fn: FetchFn, owner_id: Optional[str]
    ) -> None:
        """再取得を切り離したタスクとして起動する。呼び出し元は待たない。"""
        task = asyncio.get_running_loop().create_task(
            self._revalidate(resource_key, fetch_fn, owner_id)
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _revalidate(
        self, resource_key: str, fetch_fn: FetchFn, owner_id: Optional[str]
    ) -> None:
        result = await self._fetch_foreground(resource_key, fetch_fn, owner_id)
        if result.is_err:
            # 呼び出し元は既にキャッシュを受け取っているため破棄する
            logger.debug(f"バックグラウンドでの再取得に失敗: {resource_key}: {result.error}")

    @property
    def background_task_count(self) -> int:
        return len(self._background_tasks)

    async def wait_for_background(self) -> None:
        """実行中のバックグラウンド再取得の完了を待つ。"""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
