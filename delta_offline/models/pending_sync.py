"""保留中の同期アイテムのモデル。"""
from typing import Any

from pydantic import BaseModel, Field


class PendingSyncItem(BaseModel):
    """オフライン中に保留された変更。"""

    id: str
    kind: str
    payload: Any = None
    created_at: int = Field(description="作成時刻（エポックミリ秒）")
    attempts: int = Field(default=0, ge=0)

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "1700000000000_k3j9x2a1b",
                "kind": "chat_message",
                "payload": {"text": "hi"},
                "created_at": 1700000000000,
                "attempts": 0,
            }
        }
    }


class DrainReport(BaseModel):
    """drain 1回分の結果。"""

    total: int = 0
    synced: int = 0
    failed: int = 0
    dropped: int = 0
