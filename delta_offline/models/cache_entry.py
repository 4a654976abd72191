"""キャッシュエントリのモデル。"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """永続化されるキャッシュエントリ。

    payload の構造には関知しない。msgpack で直列化できる値であればよい。
    """

    resource_key: str
    owner_id: Optional[str] = None
    payload: Any = None
    stored_at: int = Field(description="書き込み時刻（エポックミリ秒）")
    expires_at: int = Field(description="有効期限（エポックミリ秒）")

    model_config = {
        "json_schema_extra": {
            "example": {
                "resource_key": "insights",
                "owner_id": "user-123",
                "payload": {"score": 72},
                "stored_at": 1700000000000,
                "expires_at": 1700001800000,
            }
        }
    }

    def is_expired(self, now: int) -> bool:
        """指定時刻に有効期限切れかどうかを判定する。"""
        return now >= self.expires_at

    def to_record(self) -> Dict[str, Any]:
        """直列化用の辞書に変換する。"""
        return self.model_dump()


class CacheStats(BaseModel):
    """キャッシュの統計情報。"""

    entry_count: int = 0
    approx_byte_size: int = 0
    pending_sync_count: Optional[int] = None
