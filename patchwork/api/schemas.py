"""Pydantic response schemas for the patchwork JSON endpoints.

The image endpoint answers with raw JPEG bytes (or plain-text errors) and
has no schema; these models cover the JSON side of the API.
"""

from __future__ import annotations

from pydantic import BaseModel

from patchwork.models.cache import CacheStats


class CacheStatsResponse(CacheStats):
    """Aggregate cache statistics, as returned by ``/api/cache-stats.json``."""


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    cache_provider: str


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
