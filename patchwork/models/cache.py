"""Cache bookkeeping models shared by every cache store backend.

The JSON field names (``createdAt``, ``lastAccess``, ``totalSize``) are the
on-disk / on-wire format of the filesystem metadata file and the Redis
metadata records, so existing caches stay readable.  Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CacheEntry(BaseModel):
    """Bookkeeping record for one cached patchwork image.

    Timestamps are epoch milliseconds and ``ttl`` is a duration in
    milliseconds, fixed when the entry is created.  The model is frozen;
    read-side updates (``hits``, ``last_access``) go through
    :meth:`touched`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    filename: str
    size: int = Field(ge=0)
    created_at: int = Field(alias="createdAt")
    last_access: int = Field(alias="lastAccess")
    hits: int = Field(default=0, ge=0)
    ttl: int = Field(ge=0)

    def is_expired(self, now_ms: int) -> bool:
        """Return ``True`` once the entry has outlived its TTL."""
        return now_ms - self.created_at > self.ttl

    def remaining_ttl(self, now_ms: int) -> int:
        """Milliseconds left before the original deadline (never negative)."""
        return max(0, self.ttl - (now_ms - self.created_at))

    def touched(self, now_ms: int) -> CacheEntry:
        """Return a copy recording one more successful read at *now_ms*."""
        return self.model_copy(update={"hits": self.hits + 1, "last_access": now_ms})


class CacheMetadata(BaseModel):
    """Index persisted by the filesystem store: all entries plus running size."""

    model_config = ConfigDict(populate_by_name=True)

    entries: dict[str, CacheEntry] = Field(default_factory=dict)
    total_size: int = Field(default=0, alias="totalSize")


class CacheStats(BaseModel):
    """Aggregate statistics over every live cache entry."""

    total_entries: int = 0
    total_size: int = 0
    total_size_mb: float = 0.0
    avg_size: float = 0.0
    total_hits: int = 0
    oldest_entry: int | None = None
    newest_entry: int | None = None
