"""永続キーバリューストレージ。"""
from delta_offline.storage.backends import (
    FileSystemStorage,
    KeyValueStorage,
    MemoryStorage,
    RedisStorage,
)

__all__ = ["FileSystemStorage", "KeyValueStorage", "MemoryStorage", "RedisStorage"]
