"""テスト共通のフィクスチャ。"""
from typing import List, Optional

import pytest

from delta_offline.config import Settings
from delta_offline.storage import KeyValueStorage, MemoryStorage


class FakeClock:
    """手動で進める時計（ミリ秒）。"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FailingStorage(KeyValueStorage):
    """すべての操作で失敗するストレージ。"""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self) -> None:
        self.calls += 1
        raise OSError("storage unavailable")

    async def get_item(self, key: str) -> Optional[bytes]:
        self._fail()

    async def set_item(self, key: str, value: bytes) -> None:
        self._fail()

    async def remove_item(self, key: str) -> None:
        self._fail()

    async def get_all_keys(self) -> List[str]:
        self._fail()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def settings() -> Settings:
    return Settings()
