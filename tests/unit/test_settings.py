"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from patchwork.config.loader import DEFAULT_FETCHER_CONFIG, load_config
from patchwork.config.settings import Settings

_HOUR_MS = 3_600_000


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("CACHE_PROVIDER", "CACHE_TTL_7DAY", "CACHE_MAX_SIZE_MB", "APP_ENV", "APP_HOST", "APP_PORT", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.cache_provider == "filesystem"
        assert s.cache_dir == "./cache/images"
        assert s.redis_scan_batch_size == 100
        assert s.cache_max_entries == 10_000
        assert s.cache_max_size_bytes == 1024 * 1024 * 1024

    def test_ttl_map_defaults_in_milliseconds(self) -> None:
        assert Settings(_env_file=None).ttl_map_ms() == {
            "7day": 6 * _HOUR_MS,
            "1month": 12 * _HOUR_MS,
            "3month": 24 * _HOUR_MS,
            "6month": 48 * _HOUR_MS,
            "12month": 72 * _HOUR_MS,
            "overall": 168 * _HOUR_MS,
        }

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_PROVIDER", "redis")
        monkeypatch.setenv("CACHE_TTL_7DAY", "1")
        monkeypatch.setenv("CACHE_MAX_SIZE_MB", "2")

        s = Settings(_env_file=None)
        assert s.cache_provider == "redis"
        assert s.ttl_map_ms()["7day"] == _HOUR_MS
        assert s.cache_max_size_bytes == 2 * 1024 * 1024

    def test_invalid_cache_provider_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_PROVIDER", "memcached")
        with pytest.raises(ValueError):
            Settings(_env_file=None)


class TestLoadConfig:
    def test_missing_file_uses_fetcher_defaults(self, tmp_path: Path) -> None:
        cfg = load_config(str(tmp_path / "absent.yaml"), settings=Settings(_env_file=None))
        assert cfg["fetcher"] == DEFAULT_FETCHER_CONFIG
        assert cfg["app"] == {"host": "0.0.0.0", "port": 8000, "env": "development"}
        assert cfg["logging"]["level"] == "INFO"
        assert "cache" not in cfg

    def test_yaml_overrides_defaults_partially(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("fetcher:\n  concurrency: 2\n  user_agent: Custom/1.0\n", "utf-8")

        cfg = load_config(str(path), settings=Settings(_env_file=None))
        assert cfg["fetcher"]["concurrency"] == 2
        assert cfg["fetcher"]["user_agent"] == "Custom/1.0"
        assert cfg["fetcher"]["retries"] == 3

    def test_settings_win_over_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("app:\n  env: staging\n  workers: 4\n", "utf-8")

        cfg = load_config(str(path), settings=Settings(_env_file=None, app_env="production"))
        assert cfg["app"]["env"] == "production"
        assert cfg["app"]["workers"] == 4

    def test_repository_config_matches_defaults(self, project_root: Path) -> None:
        cfg = load_config(str(project_root / "config" / "config.yaml"), settings=Settings(_env_file=None))
        assert cfg["fetcher"]["concurrency"] == 5
        assert cfg["fetcher"]["timeout_seconds"] == 10
        assert cfg["fetcher"]["backoff_base_ms"] == 500
