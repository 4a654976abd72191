"""データモデル。"""
from delta_offline.models.cache_entry import CacheEntry, CacheStats
from delta_offline.models.connectivity import ConnectivitySignal
from delta_offline.models.fetch_result import FetchResult
from delta_offline.models.pending_sync import DrainReport, PendingSyncItem

__all__ = [
    "CacheEntry",
    "CacheStats",
    "ConnectivitySignal",
    "DrainReport",
    "FetchResult",
    "PendingSyncItem",
]
