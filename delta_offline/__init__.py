"""オフラインファーストのキャッシュと同期。"""
from delta_offline.adapters import NetworkStatus, OfflineResource
from delta_offline.cache_store import CacheStore
from delta_offline.config import Settings, create_storage
from delta_offline.connectivity import (
    ConnectivityMonitor,
    ConnectivitySignalEmitter,
    ConnectivitySource,
)
from delta_offline.fetch_coordinator import FetchCoordinator
from delta_offline.models import (
    CacheEntry,
    CacheStats,
    ConnectivitySignal,
    DrainReport,
    FetchResult,
    PendingSyncItem,
)
from delta_offline.pending_sync import PendingSyncQueue, SyncHandlerRegistry
from delta_offline.service import OfflineCacheService

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "ConnectivityMonitor",
    "ConnectivitySignal",
    "ConnectivitySignalEmitter",
    "ConnectivitySource",
    "DrainReport",
    "FetchCoordinator",
    "FetchResult",
    "NetworkStatus",
    "OfflineCacheService",
    "OfflineResource",
    "PendingSyncItem",
    "PendingSyncQueue",
    "Settings",
    "SyncHandlerRegistry",
    "create_storage",
]
