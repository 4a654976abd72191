"""Test cases for settings."""
import pytest

from delta_offline.config import DEFAULT_TTL_MS, MINUTE_MS, Settings


class TestSettings:
    """Settingsのテスト。"""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.cache_prefix == "delta_cache_"
        assert settings.pending_sync_key == "delta_pending_sync"
        assert settings.max_sync_attempts == 3
        assert settings.ttl_for("insights") == 30 * MINUTE_MS
        assert settings.ttl_for("workout") == 60 * MINUTE_MS
        assert settings.ttl_for("unlisted") == DEFAULT_TTL_MS == 24 * 60 * MINUTE_MS

    def test_from_env(self, monkeypatch) -> None:
        """環境変数から設定を読み込む。"""
        monkeypatch.setenv("DELTA_CACHE_PREFIX", "test_cache_")
        monkeypatch.setenv("DELTA_DEFAULT_TTL_MS", "1000")
        monkeypatch.setenv("DELTA_MAX_SYNC_ATTEMPTS", "5")
        monkeypatch.setenv("DELTA_EXCLUSIVE_DRAIN", "true")
        monkeypatch.setenv("DELTA_STORAGE_BACKEND", "filesystem")
        monkeypatch.setenv("DELTA_REDIS_PORT", "6380")

        settings = Settings.from_env()

        assert settings.cache_prefix == "test_cache_"
        assert settings.ttl_for("unlisted") == 1000
        assert settings.ttl_for("insights") == 30 * MINUTE_MS
        assert settings.max_sync_attempts == 5
        assert settings.exclusive_drain is True
        assert settings.storage_backend == "filesystem"
        assert settings.redis.port == 6380

    def test_empty_cache_prefix_rejected(self) -> None:
        """空のプレフィックスではストア全体が消えるため拒否する。"""
        with pytest.raises(ValueError):
            Settings(cache_prefix="")

    def test_cache_prefix_must_not_cover_pending_sync_key(self) -> None:
        """保留中の同期キーがキャッシュの名前空間に入る設定は拒否する。"""
        with pytest.raises(ValueError):
            Settings(cache_prefix="delta_")
        with pytest.raises(ValueError):
            Settings(cache_prefix="q_", pending_sync_key="q_pending")

        settings = Settings(cache_prefix="cache_", pending_sync_key="pending_sync")
        assert settings.cache_prefix == "cache_"

    def test_from_env_rejects_overlapping_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("DELTA_CACHE_PREFIX", "delta_")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_redis_url_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("DELTA_REDIS_URL", "redis://cache.internal:6380/2")
        assert Settings.from_env().redis.url == "redis://cache.internal:6380/2"
