"""Content-addressed cache of generated patchwork images.

The CacheManager is backend-agnostic: it derives keys, maps statistics
periods to lifetimes and enforces the size/count budget, while the
injected :class:`ICacheStore` decides where bytes live.

Keys are the SHA-256 of the canonical JSON of every parameter that affects
the image (sorted keys, no whitespace), so two requests that differ only in
query-string order share one entry.

Budget enforcement runs *before* each insert:

    1. expired entries are dropped;
    2. beyond ``max_entries``, the least-hit entries go (LFU);
    3. beyond ``max_size`` bytes, the least-recently-read entries go (LRU)
       until the total is at most 80% of the budget.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Mapping
from typing import Any, Callable

import structlog

from patchwork.interfaces.cache_store import ICacheStore
from patchwork.models.cache import CacheStats
from patchwork.models.request import PatchworkRequest, Period
from patchwork.utils.logging import get_logger

_MB = 1024 * 1024


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheManager:
    """Facade over an :class:`ICacheStore` with TTL and budget policy.

    Parameters
    ----------
    store:
        Backend holding payloads and bookkeeping.
    ttl_map_ms:
        Period -> lifetime in milliseconds.  Unknown periods use the
        ``overall`` lifetime.
    max_size:
        Byte budget for all payloads.
    max_entries:
        Maximum number of entries.
    clock:
        Returns the current time in epoch milliseconds.  Injected by tests.
    """

    def __init__(
        self,
        store: ICacheStore,
        ttl_map_ms: Mapping[str, int],
        max_size: int,
        max_entries: int,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._store = store
        self._ttl_map = dict(ttl_map_ms)
        self._max_size = max_size
        self._max_entries = max_entries
        self._clock = clock or _now_ms
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def store(self) -> ICacheStore:
        return self._store

    @property
    def provider_name(self) -> str:
        return self._store.get_provider_name()

    # -- Keys & lifetimes -----------------------------------------------------

    @staticmethod
    def generate_key(params: PatchworkRequest | Mapping[str, Any]) -> str:
        """Return the hex SHA-256 fingerprint of *params*.

        Deterministic and independent of field order.
        """
        if isinstance(params, PatchworkRequest):
            payload = params.fingerprint_payload()
        else:
            payload = dict(params)
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def ttl_for(self, period: str) -> int:
        """Lifetime in milliseconds for *period* (``overall`` when unknown)."""
        if period in self._ttl_map:
            return self._ttl_map[period]
        return self._ttl_map[Period.OVERALL.value]

    # -- Cache operations -----------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        data = await self._store.get(key)
        if data is None:
            self._logger.debug("cache_miss", key=key)
        else:
            self._logger.info("cache_hit", key=key, size=len(data))
        return data

    async def set(self, key: str, data: bytes, period: str) -> None:
        """Store *data* under *key* with the lifetime of *period*.

        The budget is enforced first so the new entry never counts against
        itself.
        """
        ttl = self.ttl_for(period)
        await self.cleanup()
        await self._store.set(key, data, ttl)
        self._logger.info("cache_set", key=key, size=len(data), period=period, ttl_ms=ttl)

    async def delete(self, key: str) -> None:
        await self._store.delete(key)

    async def cleanup(self) -> None:
        await self._store.cleanup(self._max_size, self._max_entries)

    async def get_stats(self) -> CacheStats:
        """Aggregate statistics over every unexpired entry."""
        now = self._clock()
        entries = [entry for entry in await self._store.get_all_entries() if not entry.is_expired(now)]
        if not entries:
            return CacheStats()

        total_size = sum(entry.size for entry in entries)
        created = [entry.created_at for entry in entries]
        return CacheStats(
            total_entries=len(entries),
            total_size=total_size,
            total_size_mb=round(total_size / _MB, 2),
            avg_size=round(total_size / len(entries), 2),
            total_hits=sum(entry.hits for entry in entries),
            oldest_entry=min(created),
            newest_entry=max(created),
        )
