"""保留中の同期キュー。

オフライン中に行われた変更を永続化し、オンライン復帰時に再送する。
再試行回数には上限があり、上限に達したアイテムは破棄される。
これは意図したデータ損失であり、破棄は警告ログと DrainReport.dropped で確認できる。
"""
import logging
import secrets
import string
from typing import Any, Awaitable, Callable, Dict, List, Optional

import msgpack

from delta_offline.config import Settings
from delta_offline.models import DrainReport, PendingSyncItem
from delta_offline.storage import KeyValueStorage
from delta_offline.utils.clock import Clock, now_ms
from delta_offline.utils.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

SyncHandler = Callable[[Any], Awaitable[Any]]

_ID_ALPHABET = string.ascii_lowercase + string.digits


class SyncHandlerRegistry:
    """kind ごとの同期ハンドラーを管理するクラス。"""

    def __init__(self) -> None:
        self._handlers: Dict[str, SyncHandler] = {}

    def register(self, kind: str, handler: SyncHandler) -> None:
        """ハンドラーを登録する。

        Args:
            kind: 変更の種類
            handler: payload を受け取りリモートへ反映するコルーチン関数

        Raises:
            ValueError: kind が空、または handler が呼び出し可能でない場合
        """
        if not kind:
            raise ValueError("kind must be a non-empty string")
        if not callable(handler):
            raise ValueError("handler must be callable")
        self._handlers[kind] = handler
        logger.debug(f"同期ハンドラーを登録: {kind}")

    def unregister(self, kind: str) -> None:
        self._handlers.pop(kind, None)

    def get(self, kind: str) -> Optional[SyncHandler]:
        return self._handlers.get(kind)

    def __contains__(self, kind: str) -> bool:
        return kind in self._handlers


class PendingSyncQueue:
    """永続化された保留中の変更の順序付きリスト。"""

    def __init__(
        self,
        storage: KeyValueStorage,
        handlers: Optional[SyncHandlerRegistry] = None,
        settings: Optional[Settings] = None,
        clock: Clock = now_ms,
    ):
        """初期化。

        Args:
            storage: 永続ストレージ
            handlers: 同期ハンドラーのレジストリ
            settings: 設定
            clock: 現在時刻（ミリ秒）を返す関数
        """
        self.storage = storage
        self.handlers = handlers or SyncHandlerRegistry()
        self.settings = settings or Settings()
        self.key = self.settings.pending_sync_key
        self.max_attempts = self.settings.max_sync_attempts
        self.clock = clock
        self._draining = False

    def _new_id(self) -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        return f"{self.clock()}_{suffix}"

    async def _load(self) -> Result[List[PendingSyncItem]]:
        try:
            stored = await self.storage.get_item(self.key)
            if stored is None:
                return Ok([])
            records = msgpack.unpackb(stored, raw=False)
            return Ok([PendingSyncItem(**record) for record in records])
        except Exception as e:
            return Err(ErrorKind.STORAGE_FAILURE, e)

    async def _save(self, items: List[PendingSyncItem]) -> Result[None]:
        try:
            packed = msgpack.packb([item.model_dump() for item in items], use_bin_type=True)
            await self.storage.set_item(self.key, packed)
        except Exception as e:
            return Err(ErrorKind.STORAGE_FAILURE, e)
        return Ok(None)

    async def enqueue_result(self, kind: str, payload: Any) -> Result[PendingSyncItem]:
        """変更を末尾に追加し、結果を返す。"""
        if not kind:
            raise ValueError("kind must be a non-empty string")
        loaded = await self._load()
        if loaded.is_err:
            return loaded

        item = PendingSyncItem(
            id=self._new_id(),
            kind=kind,
            payload=payload,
            created_at=self.clock(),
            attempts=0,
        )
        saved = await self._save(loaded.value + [item])
        if saved.is_err:
            return saved
        return Ok(item)

    async def enqueue(self, kind: str, payload: Any) -> None:
        """変更を末尾に追加する。"""
        result = await self.enqueue_result(kind, payload)
        if result.is_err:
            logger.warning(f"保留中の同期への追加に失敗: {kind}: {result.error}")
        else:
            logger.info(f"保留中の同期に追加: ID={result.value.id}, 種類={kind}")

    async def list(self) -> List[PendingSyncItem]:
        """保留中のアイテムを追加順に取得する。"""
        result = await self._load()
        if result.is_err:
            logger.warning(f"保留中の同期の読み込みに失敗: {result.error}")
        return result.unwrap_or([])

    async def count(self) -> int:
        return len(await self.list())

    async def remove(self, item_id: str) -> None:
        """IDに対応するアイテムを削除する。"""
        loaded = await self._load()
        if loaded.is_ok:
            remaining = [item for item in loaded.value if item.id != item_id]
            result = await self._save(remaining)
        else:
            result = loaded
        if result.is_err:
            logger.warning(f"保留中の同期の削除に失敗: {item_id}: {result.error}")

    async def _record_attempts(self, item_id: str, attempts: int) -> None:
        # 同時に追加された他のアイテムを消さないよう最新の一覧に対して更新する
        loaded = await self._load()
        if loaded.is_err:
            logger.warning(f"試行回数の更新に失敗: {item_id}: {loaded.error}")
            return
        updated = [
            item.model_copy(update={"attempts": attempts}) if item.id == item_id else item
            for item in loaded.value
        ]
        saved = await self._save(updated)
        if saved.is_err:
            logger.warning(f"試行回数の更新に失敗: {item_id}: {saved.error}")

    async def _apply(self, item: PendingSyncItem) -> Result[Any]:
        handler = self.handlers.get(item.kind)
        if handler is None:
            logger.warning(f"同期ハンドラーが登録されていません: {item.kind}")
            return Err(ErrorKind.NOT_FOUND)
        try:
            return Ok(await handler(item.payload))
        except Exception as e:
            return Err(ErrorKind.NETWORK_FAILURE, e)

    async def drain(self) -> DrainReport:
        """保留中のアイテムをすべて同期する。

        各アイテムについてハンドラーが成功すれば削除し、失敗すれば試行回数を
        増やす。試行回数が上限に達したアイテムは再試行せずに破棄する。

        Returns:
            同期結果
        """
        if self.settings.exclusive_drain and self._draining:
            logger.info("同期が実行中のためスキップ")
            return DrainReport()

        self._draining = True
        try:
            return await self._drain_snapshot()
        finally:
            self._draining = False

    async def _drain_snapshot(self) -> DrainReport:
        pending = await self.list()
        report = DrainReport(total=len(pending))
        if pending:
            logger.info(f"保留中の同期を開始: {len(pending)}件")

        for item in pending:
            attempts = item.attempts + 1
            result = await self._apply(item)

            if result.is_ok:
                await self.remove(item.id)
                report.synced += 1
                continue

            report.failed += 1
            if attempts >= self.max_attempts:
                await self.remove(item.id)
                report.dropped += 1
                logger.warning(
                    f"再試行の上限に達したため破棄: ID={item.id}, 種類={item.kind}, "
                    f"試行回数={attempts}, 種別={ErrorKind.RETRY_EXHAUSTED.value}"
                )
            else:
                await self._record_attempts(item.id, attempts)
                logger.debug(f"同期に失敗: ID={item.id}, 試行回数={attempts}: {result.error}")

        if pending:
            logger.info(
                f"保留中の同期が完了: 成功={report.synced}, 失敗={report.failed}, "
                f"破棄={report.dropped}"
            )
        return report
