"""取得結果のモデル。"""
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class FetchResult(BaseModel, Generic[T]):
    """fetch_with_cache の戻り値。"""

    data: T
    from_cache: bool
