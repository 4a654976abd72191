"""処理結果を表す型。

ストレージやネットワークの失敗を例外ではなく値として返すための型。
呼び出し側は ``is_ok`` / ``is_err`` で分岐し、ローカルで回復するか
呼び出し元へ伝えるかをその場で明示する。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """失敗の種類。"""

    STORAGE_FAILURE = "storage_failure"
    NETWORK_FAILURE = "network_failure"
    RETRY_EXHAUSTED = "retry_exhausted"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """成功結果。"""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap_or(self, default: Any) -> T:
        """値を返す。"""
        return self.value


@dataclass(frozen=True)
class Err:
    """失敗結果。"""

    kind: ErrorKind
    error: Optional[BaseException] = None

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap_or(self, default: Any) -> Any:
        """失敗時はデフォルト値を返す。"""
        return default


Result = Union[Ok[T], Err]
