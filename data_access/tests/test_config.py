"""
Unit tests for configuration loading.
"""

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from data_access.app.caching.query_cache import QueryCacheStore
from shared.config import get_config
from shared.test_helpers import test_environment


class TestConfig:
    """Test cases for BaseConfig."""

    def test_defaults(self, monkeypatch):
        for name in test_environment.get_mock_config():
            monkeypatch.delenv(name, raising=False)

        config = get_config()

        assert config.default_stale_time == 30.0
        assert config.default_cache_time == 300.0
        assert config.detail_stale_time == 60.0
        assert config.keep_previous_data is True
        assert config.refetch_on_window_focus is False

    def test_environment_overrides(self, monkeypatch):
        for name, value in test_environment.get_mock_config().items():
            monkeypatch.setenv(name, value)

        config = get_config()

        assert config.env == "test"
        assert config.api_base_url == "http://api.test/api/v1"
        assert config.request_timeout == 5.0
        assert config.metrics_enabled is False

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("DATA_ACCESS_DEFAULT_STALE_TIME", "30")

        config = get_config(default_stale_time=5)

        assert config.default_stale_time == 5.0

    def test_store_defaults_from_config(self):
        config = get_config(default_stale_time=10, default_cache_time=60, metrics_enabled=False)

        store = QueryCacheStore.create(config)

        assert store.default_options.stale_time == 10.0
        assert store.default_options.cache_time == 60.0
        assert store.default_options.keep_previous_data is True
        assert store.metrics is None
