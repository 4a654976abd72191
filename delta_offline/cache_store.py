"""TTL付きキャッシュストア。"""
import logging
from typing import Any, List, Optional

import msgpack

from delta_offline.config import Settings
from delta_offline.models import CacheEntry, CacheStats
from delta_offline.storage import KeyValueStorage
from delta_offline.utils.clock import Clock, now_ms
from delta_offline.utils.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)


class CacheStore:
    """リソースと所有者で名前空間を分けたキャッシュ。

    有効期限切れのエントリは読み出し時に削除する。バックグラウンドでの掃除は行わない。
    ストレージの失敗は呼び出し元に送出せず、読み出しでは「なし」、書き込みでは
    何もしなかったものとして扱う。
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        settings: Optional[Settings] = None,
        clock: Clock = now_ms,
    ):
        """初期化。

        Args:
            storage: 永続ストレージ
            settings: 設定（プレフィックスとTTL表）
            clock: 現在時刻（ミリ秒）を返す関数
        """
        self.storage = storage
        self.settings = settings or Settings()
        self.prefix = self.settings.cache_prefix
        self.clock = clock

    def make_key(self, resource_key: str, owner_id: Optional[str] = None) -> str:
        """リソースと所有者からストレージのキーを組み立てる。"""
        if not resource_key:
            raise ValueError("resource_key must be a non-empty string")
        if owner_id:
            return f"{self.prefix}{resource_key}_{owner_id}"
        return f"{self.prefix}{resource_key}"

    async def put_result(
        self,
        resource_key: str,
        payload: Any,
        owner_id: Optional[str] = None,
        ttl_override_ms: Optional[int] = None,
    ) -> Result[CacheEntry]:
        """値を保存し、結果を返す。"""
        if ttl_override_ms is not None and ttl_override_ms < 0:
            raise ValueError("ttl_override_ms must not be negative")
        key = self.make_key(resource_key, owner_id)
        ttl = (
            ttl_override_ms
            if ttl_override_ms is not None
            else self.settings.ttl_for(resource_key)
        )
        now = self.clock()
        entry = CacheEntry(
            resource_key=resource_key,
            owner_id=owner_id,
            payload=payload,
            stored_at=now,
            expires_at=now + ttl,
        )
        try:
            await self.storage.set_item(
                key, msgpack.packb(entry.to_record(), use_bin_type=True)
            )
        except Exception as e:
            return Err(ErrorKind.STORAGE_FAILURE, e)
        return Ok(entry)

    async def put(
        self,
        resource_key: str,
        payload: Any,
        owner_id: Optional[str] = None,
        ttl_override_ms: Optional[int] = None,
    ) -> None:
        """値を保存する。既存のエントリは無条件に上書きする。"""
        result = await self.put_result(resource_key, payload, owner_id, ttl_override_ms)
        if result.is_err:
            logger.warning(f"キャッシュの保存に失敗: {resource_key}: {result.error}")

    async def get_entry_result(
        self, resource_key: str, owner_id: Optional[str] = None
    ) -> Result[CacheEntry]:
        """有効なエントリを取得し、結果を返す。"""
        key = self.make_key(resource_key, owner_id)
        try:
            stored = await self.storage.get_item(key)
            if stored is None:
                return Err(ErrorKind.NOT_FOUND)
            entry = CacheEntry(**msgpack.unpackb(stored, raw=False))

            if entry.is_expired(self.clock()):
                await self.storage.remove_item(key)
                logger.debug(f"期限切れのキャッシュを削除: {key}")
                return Err(ErrorKind.NOT_FOUND)
        except Exception as e:
            return Err(ErrorKind.STORAGE_FAILURE, e)
        return Ok(entry)

    async def get(self, resource_key: str, owner_id: Optional[str] = None) -> Optional[Any]:
        """有効な値を取得する。存在しない場合や失敗した場合は None を返す。"""
        result = await self.get_entry_result(resource_key, owner_id)
        if result.is_err and result.kind is ErrorKind.STORAGE_FAILURE:
            logger.warning(f"キャッシュの読み込みに失敗: {resource_key}: {result.error}")
        return result.value.payload if result.is_ok else None

    async def delete(self, resource_key: str, owner_id: Optional[str] = None) -> None:
        """値を削除する。"""
        key = self.make_key(resource_key, owner_id)
        try:
            await self.storage.remove_item(key)
        except Exception as e:
            logger.warning(f"キャッシュの削除に失敗: {key}: {e}")

    async def _own_keys(self) -> List[str]:
        keys = await self.storage.get_all_keys()
        return [key for key in keys if key.startswith(self.prefix)]

    async def clear_all(self) -> None:
        """このストアが所有するすべての値を削除する。"""
        try:
            keys = await self._own_keys()
            await self.storage.multi_remove(keys)
            logger.info(f"キャッシュをクリア: {len(keys)}件")
        except Exception as e:
            logger.warning(f"キャッシュのクリアに失敗: {e}")

    async def stats(self) -> CacheStats:
        """キャッシュの統計情報を取得する。

        サイズは直列化済みエントリの長さの合計による概算。
        """
        entry_count = 0
        total_size = 0
        try:
            for key in await self._own_keys():
                value = await self.storage.get_item(key)
                if value is not None:
                    entry_count += 1
                    total_size += len(value)
        except Exception as e:
            logger.warning(f"キャッシュ統計の取得に失敗: {e}")
            return CacheStats()
        return CacheStats(entry_count=entry_count, approx_byte_size=total_size)
