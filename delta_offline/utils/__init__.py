"""ユーティリティ。"""
from delta_offline.utils.clock import now_ms
from delta_offline.utils.result import Err, ErrorKind, Ok, Result

__all__ = ["Err", "ErrorKind", "Ok", "Result", "now_ms"]
