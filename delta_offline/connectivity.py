"""接続状態の監視。"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Set

from delta_offline.models import ConnectivitySignal

logger = logging.getLogger(__name__)

ConnectionListener = Callable[[bool], None]
SignalCallback = Callable[[ConnectivitySignal], None]
Unsubscribe = Callable[[], None]
DrainTrigger = Callable[[], Awaitable[object]]


class ConnectivitySource(ABC):
    """プラットフォームの接続状態シグナルの発生源。"""

    @abstractmethod
    def add_listener(self, callback: SignalCallback) -> Unsubscribe:
        """シグナルの受信者を登録し、登録解除関数を返す。"""
        pass


class ConnectivitySignalEmitter(ConnectivitySource):
    """プロセス内でシグナルを配信する発生源。

    ホストアプリはプラットフォームのAPIからの通知を emit に渡す。
    """

    def __init__(self) -> None:
        self._callbacks: List[SignalCallback] = []

    def add_listener(self, callback: SignalCallback) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, has_transport: bool, is_reachable: Optional[bool] = None) -> None:
        """シグナルを配信する。"""
        signal = ConnectivitySignal(has_transport=has_transport, is_reachable=is_reachable)
        for callback in list(self._callbacks):
            callback(signal)


class ConnectivityMonitor:
    """オンライン/オフライン状態を保持し、変化を購読者に通知する。

    シグナルを受け取るたびに、値が前回と同じでもすべての購読者に通知する。
    重複通知の抑制は購読者側の責務。
    オフラインからオンラインへの遷移時だけ、保留中の同期の drain を1回起動する。
    """

    def __init__(self, on_reconnect: Optional[DrainTrigger] = None, initial_online: bool = True):
        """初期化。

        Args:
            on_reconnect: オンライン復帰時に起動するコルーチン関数
            initial_online: シグナル受信前の状態
        """
        self._online = initial_online
        self._listeners: List[ConnectionListener] = []
        self._on_reconnect = on_reconnect
        self._unsubscribe_source: Optional[Unsubscribe] = None
        self._reconnect_tasks: Set[asyncio.Task] = set()

    def is_online(self) -> bool:
        """最後に確認した接続状態を返す。"""
        return self._online

    def set_reconnect_handler(self, on_reconnect: Optional[DrainTrigger]) -> None:
        """オンライン復帰時の処理を設定する。"""
        self._on_reconnect = on_reconnect

    def subscribe(self, listener: ConnectionListener) -> Unsubscribe:
        """購読者を登録し、登録解除関数を返す。

        通知中に呼び出しても安全。
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def start(self, source: ConnectivitySource) -> None:
        """シグナルの発生源に接続する。"""
        self.stop()
        self._unsubscribe_source = source.add_listener(self.handle_signal)
        logger.info("接続状態の監視を開始")

    def stop(self) -> None:
        """シグナルの発生源から切断する。"""
        if self._unsubscribe_source is not None:
            self._unsubscribe_source()
            self._unsubscribe_source = None
            logger.info("接続状態の監視を停止")

    def handle_signal(self, signal: ConnectivitySignal) -> None:
        """プラットフォームからのシグナルを処理する。"""
        was_online = self._online
        self._online = signal.online

        if was_online != self._online:
            logger.info(f"接続状態が変化: {'オンライン' if self._online else 'オフライン'}")

        # 購読者の登録・解除で反復が壊れないようスナップショットに対して通知する
        for listener in list(self._listeners):
            try:
                listener(self._online)
            except Exception as e:
                logger.error(f"接続状態リスナーでエラーが発生: {e}", exc_info=True)

        if self._online and not was_online:
            self._trigger_reconnect()

    def _trigger_reconnect(self) -> None:
        """drain を切り離したタスクとして起動する。"""
        if self._on_reconnect is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("イベントループが動作していないため同期をスキップ")
            return

        task = loop.create_task(self._run_reconnect(self._on_reconnect))
        self._reconnect_tasks.add(task)
        task.add_done_callback(self._reconnect_tasks.discard)

    async def _run_reconnect(self, on_reconnect: DrainTrigger) -> None:
        try:
            await on_reconnect()
        except Exception as e:
            logger.warning(f"オンライン復帰時の同期に失敗: {e}")

    async def wait_for_reconnect_tasks(self) -> None:
        """起動済みの復帰処理の完了を待つ。"""
        while self._reconnect_tasks:
            await asyncio.gather(*list(self._reconnect_tasks), return_exceptions=True)
