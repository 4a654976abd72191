"""設定の読み込みとストレージの生成。"""
import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from delta_offline.storage import (
    FileSystemStorage,
    KeyValueStorage,
    MemoryStorage,
    RedisStorage,
)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS

# デフォルトのキャッシュ期間: 24時間
DEFAULT_TTL_MS = 24 * HOUR_MS

# リソースごとのキャッシュ期間（ミリ秒）
RESOURCE_TTLS_MS: Dict[str, int] = {
    "insights": 30 * MINUTE_MS,
    "workout": HOUR_MS,
    "calendar": 24 * HOUR_MS,
    "derivatives": HOUR_MS,
    "profile": 24 * HOUR_MS,
    "menstrual": 24 * HOUR_MS,
}

MAX_SYNC_ATTEMPTS = 3


class RedisConfig(BaseModel):
    """Redisの接続設定。"""

    url: Optional[str] = None
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    prefix: str = ""


class Settings(BaseModel):
    """オフラインキャッシュの設定。"""

    cache_prefix: str = "delta_cache_"
    pending_sync_key: str = "delta_pending_sync"
    default_ttl_ms: int = Field(default=DEFAULT_TTL_MS, ge=0)
    resource_ttls_ms: Dict[str, int] = Field(
        default_factory=lambda: dict(RESOURCE_TTLS_MS)
    )
    max_sync_attempts: int = Field(default=MAX_SYNC_ATTEMPTS, ge=1)
    exclusive_drain: bool = False
    storage_backend: str = "memory"
    storage_dir: str = "~/.delta_offline/storage"
    redis: RedisConfig = Field(default_factory=RedisConfig)

    @model_validator(mode="after")
    def check_namespaces(self) -> "Settings":
        # clear_all はプレフィックス一致で削除するため、他の状態と重なってはならない
        if not self.cache_prefix:
            raise ValueError("cache_prefix must be a non-empty string")
        if self.pending_sync_key.startswith(self.cache_prefix):
            raise ValueError(
                f"pending_sync_key {self.pending_sync_key!r} must not start with "
                f"cache_prefix {self.cache_prefix!r}"
            )
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """環境変数（および .env）から設定を読み込む。"""
        load_dotenv()
        defaults = cls()
        return cls(
            cache_prefix=os.getenv("DELTA_CACHE_PREFIX", defaults.cache_prefix),
            pending_sync_key=os.getenv(
                "DELTA_PENDING_SYNC_KEY", defaults.pending_sync_key
            ),
            default_ttl_ms=int(
                os.getenv("DELTA_DEFAULT_TTL_MS", str(defaults.default_ttl_ms))
            ),
            max_sync_attempts=int(
                os.getenv("DELTA_MAX_SYNC_ATTEMPTS", str(defaults.max_sync_attempts))
            ),
            exclusive_drain=os.getenv("DELTA_EXCLUSIVE_DRAIN", "false").lower()
            in ("1", "true", "yes"),
            storage_backend=os.getenv(
                "DELTA_STORAGE_BACKEND", defaults.storage_backend
            ),
            storage_dir=os.getenv("DELTA_STORAGE_DIR", defaults.storage_dir),
            redis=RedisConfig(
                url=os.getenv("DELTA_REDIS_URL") or None,
                host=os.getenv("DELTA_REDIS_HOST", "localhost"),
                port=int(os.getenv("DELTA_REDIS_PORT", "6379")),
                db=int(os.getenv("DELTA_REDIS_DB", "0")),
                password=os.getenv("DELTA_REDIS_PASSWORD") or None,
                prefix=os.getenv("DELTA_REDIS_PREFIX", ""),
            ),
        )

    def ttl_for(self, resource_key: str) -> int:
        """リソースのキャッシュ期間を取得する。"""
        return self.resource_ttls_ms.get(resource_key, self.default_ttl_ms)


def create_storage(settings: Settings) -> KeyValueStorage:
    """設定に応じたストレージを生成する。

    Args:
        settings: 設定

    Returns:
        ストレージ

    Raises:
        ValueError: 未対応のバックエンドが指定された場合
    """
    if settings.storage_backend == "memory":
        return MemoryStorage()
    if settings.storage_backend == "filesystem":
        return FileSystemStorage(settings.storage_dir)
    if settings.storage_backend == "redis":
        return RedisStorage(**settings.redis.model_dump())
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
