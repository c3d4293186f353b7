"""Unit tests for factory functions in patchwork/main.py.

Covers cache backend selection, cover provider registration, the
component bundle shared by the server and the CLI, and the app factory.
No network connections are opened: the Redis client connects lazily.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI

from patchwork.config.settings import Settings


def _settings(**overrides) -> Settings:
    """Build a Settings instance isolated from the environment and .env."""
    defaults = {
        "lastfm_api_key": "",
        "cache_provider": "filesystem",
        "matomo_enabled": False,
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


class TestBuildCacheStore:
    def test_filesystem_default(self, tmp_path: Path) -> None:
        from patchwork.main import _build_cache_store
        from patchwork.providers.cache.filesystem_cache import FilesystemCacheStore

        store = _build_cache_store(_settings(cache_dir=str(tmp_path / "images")))
        assert isinstance(store, FilesystemCacheStore)
        assert store.get_provider_name() == "filesystem"

    def test_redis_selected(self) -> None:
        from patchwork.main import _build_cache_store
        from patchwork.providers.cache.redis_cache import RedisCacheStore

        store = _build_cache_store(_settings(cache_provider="redis"))
        assert isinstance(store, RedisCacheStore)
        assert store.get_provider_name() == "redis"


class TestBuildCoverProviders:
    def test_listenbrainz_always_registered(self) -> None:
        import httpx

        from patchwork.main import _build_cover_providers

        providers = _build_cover_providers(_settings(), httpx.AsyncClient())
        assert sorted(providers) == ["listenbrainz"]

    def test_lastfm_registered_with_key(self) -> None:
        import httpx

        from patchwork.main import _build_cover_providers
        from patchwork.providers.covers.lastfm_provider import LastFmCoverProvider

        providers = _build_cover_providers(_settings(lastfm_api_key="abc"), httpx.AsyncClient())
        assert sorted(providers) == ["lastfm", "listenbrainz"]
        assert isinstance(providers["lastfm"], LastFmCoverProvider)


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_bundle_contents(self, tmp_path: Path) -> None:
        from patchwork.main import build_components, close_components

        components = build_components(
            _settings(cache_dir=str(tmp_path / "images"), lastfm_api_key="abc"),
            {"fetcher": {"concurrency": 2}},
        )
        try:
            assert set(components) == {"http_client", "cache_store", "cache_manager", "generator", "tracker"}
            assert components["cache_manager"].store is components["cache_store"]
            assert components["generator"].provider_names == ["lastfm", "listenbrainz"]
            assert components["tracker"].active is False
        finally:
            await close_components(components)

        assert components["http_client"].is_closed


class TestCreateApp:
    def test_routes_registered(self) -> None:
        from patchwork.main import create_app

        app = create_app()
        assert isinstance(app, FastAPI)
        paths = {route.path for route in app.routes}
        assert {"/patchwork.jpg", "/patchwork", "/api/cache-stats.json", "/api/health"} <= paths
