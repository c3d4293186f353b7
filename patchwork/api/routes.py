"""FastAPI routes for the patchwork service.

Endpoint                    Method  Description
--------------------------  ------  -----------------------------------------
/patchwork.jpg, /patchwork  GET     Cached cover-art grid as JPEG
/api/cache-stats.json       GET     Aggregate cache statistics
/api/health                 GET     Health check

Service dependencies are resolved from ``app.state`` (populated at startup
by ``patchwork.main.build_components``) via FastAPI's ``Depends`` using the
``Annotated`` pattern, so tests can mount the router on a bare app with
mocked services.

The image endpoint is embedded with plain ``<img>`` tags, so it never
answers with a FastAPI 422: query values are parsed leniently (bad numbers
fall back to defaults, out-of-range numbers are clamped) and the few hard
validation failures are short plain-text 400s.
"""

from __future__ import annotations

import re
import time
from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from patchwork import __version__
from patchwork.api.schemas import CacheStatsResponse, HealthResponse
from patchwork.models.request import (
    USERNAME_PATTERN,
    BorderStyle,
    PatchworkRequest,
    Period,
    ProviderName,
)
from patchwork.services.analytics import MatomoTracker
from patchwork.services.cache_manager import CacheManager
from patchwork.services.patchwork_generator import PatchworkGenerator
from patchwork.utils.errors import PatchworkError
from patchwork.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter()

_USERNAME_RE = re.compile(USERNAME_PATTERN)
_IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"

# (default, minimum, maximum)
_ROWS_BOUNDS = (3, 1, 10)
_COLS_BOUNDS = (3, 1, 10)
_SIZE_BOUNDS = (150, 50, 300)


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_cache_manager(request: Request) -> CacheManager:
    """Return the cache manager from application state."""
    return request.app.state.cache_manager


def _get_generator(request: Request) -> PatchworkGenerator:
    """Return the patchwork generator from application state."""
    return request.app.state.generator


def _get_tracker(request: Request) -> MatomoTracker | None:
    """Return the analytics tracker, if one was wired in."""
    return getattr(request.app.state, "tracker", None)


CacheDep = Annotated[CacheManager, Depends(_get_cache_manager)]
GeneratorDep = Annotated[PatchworkGenerator, Depends(_get_generator)]
TrackerDep = Annotated[MatomoTracker | None, Depends(_get_tracker)]


# ---------------------------------------------------------------------------
# Query parsing helpers
# ---------------------------------------------------------------------------


def parse_bounded_int(raw: str | None, bounds: tuple[int, int, int]) -> int:
    """Parse *raw* as an int clamped to ``[minimum, maximum]``.

    Missing or unparseable values yield the default.
    """
    default, minimum, maximum = bounds
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    return min(max(value, minimum), maximum)


def _bad_request(message: str) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=400)


def _schedule_tracking(background_tasks: BackgroundTasks, tracker: MatomoTracker | None, request: Request) -> None:
    if tracker is None or not tracker.active:
        return
    background_tasks.add_task(
        tracker.track_page_view,
        str(request.url),
        request.headers.get("user-agent", ""),
        request.headers.get("x-forwarded-for"),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/patchwork.jpg", response_class=Response)
@router.get("/patchwork", response_class=Response, include_in_schema=False)
async def get_patchwork(
    request: Request,
    background_tasks: BackgroundTasks,
    cache: CacheDep,
    generator: GeneratorDep,
    tracker: TrackerDep,
    username: Annotated[str | None, Query()] = None,
    period: Annotated[str | None, Query()] = None,
    rows: Annotated[str | None, Query()] = None,
    cols: Annotated[str | None, Query()] = None,
    size: Annotated[str | None, Query()] = None,
    border: Annotated[str | None, Query()] = None,
    provider: Annotated[str | None, Query()] = None,
) -> Response:
    """Return the patchwork JPEG for a listener, from cache when possible."""
    if not username:
        return _bad_request("Missing required parameter: username")
    if not _USERNAME_RE.fullmatch(username):
        return _bad_request("Invalid username format")

    provider_value = provider or ProviderName.LASTFM.value
    if provider_value not in {p.value for p in ProviderName}:
        return _bad_request('Invalid provider. Must be "lastfm" or "listenbrainz"')

    try:
        params = PatchworkRequest(
            username=username,
            period=period or Period.OVERALL.value,
            rows=parse_bounded_int(rows, _ROWS_BOUNDS),
            cols=parse_bounded_int(cols, _COLS_BOUNDS),
            image_size=parse_bounded_int(size, _SIZE_BOUNDS),
            border=BorderStyle.NONE if border == BorderStyle.NONE.value else BorderStyle.NORMAL,
            provider=ProviderName(provider_value),
        )
    except ValidationError:
        # Numeric fields are already clamped, so only the username can fail here.
        return _bad_request("Invalid username format")

    key = cache.generate_key(params)
    cached = await cache.get(key)
    if cached is not None:
        _schedule_tracking(background_tasks, tracker, request)
        return Response(
            content=cached,
            media_type="image/jpeg",
            headers={
                "X-Cache": "HIT",
                "Cache-Control": _IMAGE_CACHE_CONTROL,
            },
        )

    _logger.info("cache_miss_generating", username=params.username, provider=params.provider.value)

    start = time.perf_counter()
    try:
        result = await generator.generate(params)
    except PatchworkError as exc:
        _logger.error(
            "patchwork_generation_failed",
            username=params.username,
            provider=params.provider.value,
            error_type=type(exc).__name__,
            error=exc.message,
        )
        return PlainTextResponse(f"Error generating patchwork: {exc.message}", status_code=500)
    duration_ms = round((time.perf_counter() - start) * 1000)

    try:
        await cache.set(key, result.image, params.period)
    except OSError as exc:
        # Serve the image uncached.
        _logger.error("cache_store_failed", key=key, error=str(exc))
    _schedule_tracking(background_tasks, tracker, request)

    return Response(
        content=result.image,
        media_type="image/jpeg",
        headers={
            "X-Cache": "MISS",
            "X-Generation-Time": f"{duration_ms}ms",
            "X-Image-Width": str(result.width),
            "X-Image-Height": str(result.height),
            "Cache-Control": _IMAGE_CACHE_CONTROL,
        },
    )


@router.get("/api/cache-stats.json", response_model=CacheStatsResponse)
async def cache_stats(cache: CacheDep, response: Response) -> CacheStatsResponse:
    """Return aggregate statistics over every live cache entry."""
    stats = await cache.get_stats()
    response.headers["Cache-Control"] = "no-cache"
    return CacheStatsResponse(**stats.model_dump())


@router.get("/api/health", response_model=HealthResponse)
async def health(cache: CacheDep) -> HealthResponse:
    """Report liveness and the active cache backend."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        cache_provider=cache.provider_name,
    )
