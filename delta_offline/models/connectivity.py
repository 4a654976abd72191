"""接続状態シグナルのモデル。"""
from typing import Optional

from pydantic import BaseModel


class ConnectivitySignal(BaseModel):
    """プラットフォームから届く接続状態。

    is_reachable が None の場合は到達可能性が不明であることを表す。
    """

    has_transport: bool
    is_reachable: Optional[bool] = None

    @property
    def online(self) -> bool:
        """オンラインかどうか。到達可能性が不明な場合は到達可能とみなす。"""
        return self.has_transport and self.is_reachable is not False
