"""Patchwork FastAPI application entry point.

Wires together the cache store, cover providers and services via dependency
injection.  Loads configuration from ``.env`` and ``config/config.yaml``,
configures structured logging, and exposes the image and JSON routes.

:func:`build_components` / :func:`close_components` are shared with the CLI
tools so a one-shot ``python -m patchwork.cli.generate`` runs exactly the
same stack as the server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from patchwork import __version__
from patchwork.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from patchwork.api.routes import router as api_router
from patchwork.config.loader import load_config
from patchwork.config.settings import Settings
from patchwork.interfaces.cache_store import ICacheStore
from patchwork.interfaces.cover_provider import ICoverProvider
from patchwork.models.request import ProviderName
from patchwork.providers.cache.filesystem_cache import FilesystemCacheStore
from patchwork.providers.cache.redis_cache import RedisCacheStore
from patchwork.providers.covers.lastfm_provider import LastFmCoverProvider
from patchwork.providers.covers.listenbrainz_provider import ListenBrainzCoverProvider
from patchwork.services.analytics import MatomoTracker
from patchwork.services.cache_manager import CacheManager
from patchwork.services.cover_resolver import CoverResolver
from patchwork.services.image_fetcher import ImageFetcher
from patchwork.services.patchwork_generator import PatchworkGenerator
from patchwork.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=config["logging"]["level"],
    json_output=(config["app"]["env"] == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)

# Upstream statistics APIs are slow on cold caches; downloads carry their own
# per-attempt timeout on top of this.
_HTTP_TIMEOUT = 30.0


# ---------------------------------------------------------------------------
# Component builders
# ---------------------------------------------------------------------------


def _build_cache_store(app_settings: Settings) -> ICacheStore:
    """Select the cache backend named by ``CACHE_PROVIDER``."""
    if app_settings.cache_provider == "redis":
        return RedisCacheStore.from_url(
            app_settings.redis_url,
            scan_batch_size=app_settings.redis_scan_batch_size,
        )
    return FilesystemCacheStore(cache_dir=app_settings.cache_dir)


def _build_cover_providers(app_settings: Settings, http_client: httpx.AsyncClient) -> dict[str, ICoverProvider]:
    """Register every cover provider that is usable with the current settings.

    ListenBrainz statistics are public; Last.fm is only registered when an
    API key is configured.
    """
    providers: dict[str, ICoverProvider] = {
        ProviderName.LISTENBRAINZ.value: ListenBrainzCoverProvider(http_client=http_client),
    }
    if app_settings.lastfm_api_key:
        providers[ProviderName.LASTFM.value] = LastFmCoverProvider(
            http_client=http_client,
            api_key=app_settings.lastfm_api_key,
        )
    else:
        _logger.warning("lastfm_disabled", reason="LASTFM_API_KEY is not set")
    return providers


def build_components(
    app_settings: Settings | None = None,
    app_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    s = app_settings or settings
    cfg = app_config or config

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=_HTTP_TIMEOUT)

    # -- Cache --
    cache_store = _build_cache_store(s)
    cache_manager = CacheManager(
        store=cache_store,
        ttl_map_ms=s.ttl_map_ms(),
        max_size=s.cache_max_size_bytes,
        max_entries=s.cache_max_entries,
    )

    # -- Generation --
    fetcher = ImageFetcher.from_config(http_client, cfg.get("fetcher", {}))
    generator = PatchworkGenerator(
        providers=_build_cover_providers(s, http_client),
        fetcher=fetcher,
        resolver=CoverResolver(),
    )

    # -- Analytics --
    tracker = MatomoTracker(
        http_client=http_client,
        host=s.matomo_host,
        site_id=s.matomo_site_id,
        token_auth=s.matomo_token_auth,
        enabled=s.matomo_enabled,
    )

    return {
        "http_client": http_client,
        "cache_store": cache_store,
        "cache_manager": cache_manager,
        "generator": generator,
        "tracker": tracker,
    }


async def close_components(components: dict[str, Any]) -> None:
    """Release the network resources created by :func:`build_components`."""
    cache_store: ICacheStore = components["cache_store"]
    await cache_store.close()

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = build_components(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=config["app"]["env"],
        cache_provider=components["cache_store"].get_provider_name(),
        cover_providers=components["generator"].provider_names,
        analytics=components["tracker"].active,
    )

    yield

    await close_components(components)
    _logger.info("app_shutdown", message="HTTP and cache clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Patchwork API",
        version=__version__,
        description=(
            "Render a listener's most-played albums from Last.fm or ListenBrainz "
            "as a cached cover-art grid JPEG."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- Routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "patchwork.main:app",
        host=config["app"]["host"],
        port=config["app"]["port"],
        reload=(config["app"]["env"] == "development"),
    )
