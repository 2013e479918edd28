"""
Tests for environment-driven configuration
"""

import pytest

from config import DatabaseConfig, RegistryConfig, get_log_level


class TestDatabaseConfig:

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db.example")
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("DB_NAME", "app")
        monkeypatch.setenv("DB_USER", "app_user")
        monkeypatch.setenv("DB_PASSWORD", "pw")
        monkeypatch.setenv("DB_MAX_POOL_SIZE", "4")
        monkeypatch.setenv("DB_ACQUIRE_TIMEOUT", "2.5")

        config = DatabaseConfig.from_environment("test")

        assert config.host == "db.example"
        assert config.port == 6543
        assert config.max_pool_size == 4
        assert config.acquire_timeout == 2.5
        assert config.ssl_mode == "require"

    def test_defaults(self, monkeypatch):
        for name in ("DB_MIN_POOL_SIZE", "DB_MAX_POOL_SIZE", "DB_ACQUIRE_TIMEOUT", "DB_SSL_MODE"):
            monkeypatch.delenv(name, raising=False)

        config = DatabaseConfig.from_environment("development")

        assert (config.min_pool_size, config.max_pool_size, config.acquire_timeout) == (1, 10, 10.0)
        assert config.ssl_mode == "prefer"

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("DB_MAX_POOL_SIZE", "lots")
        with pytest.raises(ValueError, match="DB_MAX_POOL_SIZE"):
            DatabaseConfig.from_environment("test")

    def test_pool_bounds_validated(self):
        with pytest.raises(ValueError):
            DatabaseConfig("h", 5432, "d", "u", "p", min_pool_size=5, max_pool_size=2)

    def test_dsn_quotes_password(self):
        config = DatabaseConfig("h", 5432, "d", "u", "p@ss/word")
        assert config.asyncpg_dsn == "postgresql://u:p%40ss%2Fword@h:5432/d"

    @pytest.mark.parametrize("mode,expected", [("require", True), ("disable", False), ("prefer", "prefer")])
    def test_ssl_setting(self, mode, expected):
        assert DatabaseConfig("h", 5432, "d", "u", "p", ssl_mode=mode).ssl_setting == expected


class TestRegistryConfig:

    def test_defaults(self):
        config = RegistryConfig()
        assert config.max_rows == 100
        assert config.max_field_chars == 2000
        assert config.execution_timeout is None
        assert config.confirm_field == "confirm"
        assert config.essential_categories == ("core",)

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("REGISTRY_MAX_ROWS", "25")
        monkeypatch.setenv("REGISTRY_EXECUTION_TIMEOUT", "30")
        monkeypatch.setenv("REGISTRY_ESSENTIAL_CATEGORIES", "core, table ,")

        config = RegistryConfig.from_environment()

        assert config.max_rows == 25
        assert config.execution_timeout == 30.0
        assert config.essential_categories == ("core", "table")

    @pytest.mark.parametrize("kwargs", [{"max_rows": 0}, {"max_field_chars": 8}, {"execution_timeout": 0}])
    def test_invalid_limits(self, kwargs):
        with pytest.raises(ValueError):
            RegistryConfig(**kwargs)


def test_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert get_log_level() == "DEBUG"
