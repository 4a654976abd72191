"""時刻ユーティリティ。"""
import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """現在時刻をエポックからのミリ秒で返す。"""
    return int(time.time() * 1000)
