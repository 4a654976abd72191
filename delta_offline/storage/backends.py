"""永続キーバリューストレージの実装。"""
import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
from urllib.parse import quote, unquote

import redis.asyncio as redis
from tenacity import retry, stop_after_attempt, wait_exponential


class KeyValueStorage(ABC):
    """永続キーバリューストレージの基底クラス。

    失敗時は例外をそのまま送出する。回復方針は呼び出し側が決める。
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[bytes]:
        """キーに対応する値を取得する。"""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: bytes) -> None:
        """キーと値のペアを保存する。"""
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """キーに対応する値を削除する。"""
        pass

    @abstractmethod
    async def get_all_keys(self) -> List[str]:
        """すべてのキーを取得する。"""
        pass

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """複数のキーをまとめて削除する。"""
        for key in keys:
            await self.remove_item(key)

    async def clear(self) -> None:
        """すべての値を削除する。"""
        await self.multi_remove(await self.get_all_keys())

    async def aclose(self) -> None:
        """リソースを解放する。"""
        pass


class MemoryStorage(KeyValueStorage):
    """プロセス内の辞書を使うストレージ。"""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._store: Dict[str, bytes] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[bytes]:
        return self._store.get(key)

    async def set_item(self, key: str, value: bytes) -> None:
        self._store[key] = value

    async def remove_item(self, key: str) -> None:
        self._store.pop(key, None)

    async def get_all_keys(self) -> List[str]:
        return list(self._store.keys())

    async def clear(self) -> None:
        self._store.clear()


class FileSystemStorage(KeyValueStorage):
    """キーごとに1ファイルを使うストレージ。"""

    suffix = ".msgpack"

    def __init__(self, storage_dir: Union[str, Path]):
        self.storage_dir = Path(storage_dir).expanduser()
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """キーに対応するファイルパスを取得する。"""
        return self.storage_dir / f"{quote(key, safe='')}{self.suffix}"

    def _read(self, key: str) -> Optional[bytes]:
        path = self._get_path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def _write(self, key: str, value: bytes) -> None:
        # 途中まで書かれたファイルを読まないよう一時ファイル経由で置き換える
        path = self._get_path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(value)
        tmp_path.replace(path)

    def _remove(self, key: str) -> None:
        path = self._get_path(key)
        if path.exists():
            path.unlink()

    def _keys(self) -> List[str]:
        return [
            unquote(path.name[: -len(self.suffix)])
            for path in sorted(self.storage_dir.glob(f"*{self.suffix}"))
        ]

    async def get_item(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, key)

    async def set_item(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def get_all_keys(self) -> List[str]:
        return await asyncio.to_thread(self._keys)


_redis_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    reraise=True,
)


class RedisStorage(KeyValueStorage):
    """Redisベースのストレージ。"""

    def __init__(self, url: Optional[str] = None, prefix: str = "", **connection):
        """初期化。

        Args:
            url: 接続URL（例: redis://localhost:6379/0）。URLの内容は connection より優先される
            prefix: このストレージが使うキーの名前空間
            connection: host, port, db, password など redis.asyncio.Redis への引数
        """
        self.prefix = prefix
        connection = {k: v for k, v in connection.items() if v is not None}
        if url:
            self.client = redis.Redis.from_url(url, **connection)
        else:
            self.client = redis.Redis(**connection)

    def _namespaced(self, key: str) -> str:
        return self.prefix + key

    @_redis_retry
    async def get_item(self, key: str) -> Optional[bytes]:
        return await self.client.get(self._namespaced(key))

    @_redis_retry
    async def set_item(self, key: str, value: bytes) -> None:
        await self.client.set(self._namespaced(key), value)

    @_redis_retry
    async def remove_item(self, key: str) -> None:
        await self.client.delete(self._namespaced(key))

    @_redis_retry
    async def get_all_keys(self) -> List[str]:
        keys: List[str] = []
        cursor = 0
        while True:
            cursor, batch = await self.client.scan(cursor, match=f"{self.prefix}*")
            for raw in batch:
                name = raw.decode() if isinstance(raw, bytes) else raw
                keys.append(name[len(self.prefix):])
            if cursor == 0:
                break
        return keys

    @_redis_retry
    async def multi_remove(self, keys: Iterable[str]) -> None:
        full_keys = [self._namespaced(key) for key in keys]
        if full_keys:
            await self.client.delete(*full_keys)

    async def aclose(self) -> None:
        await self.client.aclose()
