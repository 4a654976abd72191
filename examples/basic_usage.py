"""オフラインキャッシュの基本的な使い方を示すサンプルスクリプト。"""
import asyncio
import logging
import random

from delta_offline import ConnectivitySignalEmitter, OfflineCacheService

# ログの設定
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def fetch_insights() -> dict:
    """リモートAPIの代わりにインサイトを返す。"""
    await asyncio.sleep(0.1)
    return {"recovery": random.randint(40, 90)}


async def send_chat_message(payload: dict) -> None:
    """保留中のチャットメッセージを送信する。"""
    logger.info(f"メッセージを送信: {payload['text']}")


async def main() -> None:
    service = OfflineCacheService.from_env()
    service.register_sync_handler("chat_message", send_chat_message)

    # プラットフォームの接続状態通知を中継する発生源
    network = ConnectivitySignalEmitter()
    service.start(network)
    service.subscribe(lambda online: logger.info(f"接続状態: {online}"))

    try:
        # 初回はネットワークから取得
        result = await service.fetch_with_cache("insights", fetch_insights, "user-1")
        logger.info(f"取得結果: {result}")

        # 2回目はキャッシュを即座に返し、裏で更新
        result = await service.fetch_with_cache("insights", fetch_insights, "user-1")
        logger.info(f"取得結果: {result}")

        # オフライン中の変更は保留される
        network.emit(has_transport=False)
        await service.enqueue_pending_sync("chat_message", {"text": "hi"})
        logger.info(f"保留中: {await service.list_pending_sync()}")

        # オンラインに戻ると自動で同期される
        network.emit(has_transport=True, is_reachable=True)
        await service.monitor.wait_for_reconnect_tasks()

        logger.info(f"キャッシュ統計: {await service.get_cache_stats()}")
    except Exception as e:
        logger.error(f"エラーが発生しました: {e}", exc_info=True)
    finally:
        await service.aclose()


if __name__ == "__main__":
    asyncio.run(main())
