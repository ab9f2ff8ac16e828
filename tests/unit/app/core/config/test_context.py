"""Unit tests for the configuration context."""

from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context

import pytest

from src.app.runtime.config.config_data import ConfigData
from src.app.runtime.context import (
    AppContext,
    get_config,
    get_context,
    merge_configs,
    with_context,
)


class TestContextManager:
    """Test the context manager functionality."""

    def test_default_context_available(self):
        context = get_context()

        assert isinstance(context, AppContext)
        assert isinstance(get_config(), ConfigData)
        assert context.config is get_config()

    def test_with_context_override_single_level(self):
        original_config = get_config()
        original_backend = original_config.store.backend

        override = ConfigData()
        override.store.backend = "memory" if original_backend == "sql" else "sql"

        with with_context(override):
            assert get_config().store.backend == override.store.backend
            assert get_config() is not original_config

        assert get_config() is original_config
        assert get_config().store.backend == original_backend

    def test_unset_fields_are_inherited(self):
        original = get_config()
        override = ConfigData()
        override.telemetry.service_name = "scoped"

        with with_context(override):
            config = get_config()
            assert config.telemetry.service_name == "scoped"
            assert config.database.url == original.database.url
            assert config.telemetry.duration_buckets == original.telemetry.duration_buckets

    def test_nested_overrides(self):
        level1 = ConfigData()
        level1.app.port = 9001
        level2 = ConfigData()
        level2.logging.level = "DEBUG"

        with with_context(level1):
            outer_level = get_config().logging.level
            with with_context(level2):
                config = get_config()
                assert config.app.port == 9001
                assert config.logging.level == "DEBUG"
            assert get_config().logging.level == outer_level
            assert get_config().app.port == 9001

    def test_none_override_is_noop(self):
        original = get_config()

        with with_context(None):
            assert get_config() is original

    def test_rejects_wrong_type(self):
        with pytest.raises(ValueError):
            with with_context({"store": {"backend": "memory"}}):
                pass

    def test_context_is_isolated_per_thread(self):
        """Fresh threads see the default context; copied contexts see the override."""
        original_port = get_config().app.port
        override = ConfigData()
        override.app.port = 9555

        with with_context(override):
            with ThreadPoolExecutor(max_workers=1) as pool:
                other_thread_port = pool.submit(lambda: get_config().app.port).result()
            in_copied_context = copy_context().run(lambda: get_config().app.port)

        assert other_thread_port == original_port
        assert in_copied_context == 9555


class TestMergeConfigs:
    def test_merge_prefers_explicit_override_values(self):
        base = ConfigData()
        base.database.url = "sqlite:///base.db"
        base.store.seed_demo_users = True
        override = ConfigData()
        override.database.url = "sqlite:///override.db"

        merged = merge_configs(base, override)

        assert merged.database.url == "sqlite:///override.db"
        assert merged.store.seed_demo_users is True
