"""Redis-backed image cache store.

Each entry is two records that expire together through Redis' native
per-key expiry:

    cache:img:<key>   raw JPEG bytes
    cache:meta:<key>  JSON CacheEntry

Redis cannot list keys by value, so enumeration is a cursor ``SCAN`` over
``cache:meta:*`` followed by one ``MGET``.  Records can expire between the
scan and the fetch; those gaps are skipped silently.

Every Redis failure is logged and swallowed: a broken cache must degrade to
"always regenerate", never to a failed request.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from patchwork.interfaces.cache_store import ICacheStore
from patchwork.models.cache import CacheEntry
from patchwork.utils.eviction import plan_eviction
from patchwork.utils.logging import get_logger

IMG_PREFIX = "cache:img:"
META_PREFIX = "cache:meta:"


def _now_ms() -> int:
    return int(time.time() * 1000)


class RedisCacheStore(ICacheStore):
    """Cache store shared by every worker that points at the same Redis.

    Parameters
    ----------
    client:
        An ``redis.asyncio.Redis`` client created with
        ``decode_responses=False`` (payloads are binary).
    scan_batch_size:
        ``COUNT`` hint passed to each ``SCAN`` page during enumeration.
    clock:
        Returns the current time in epoch milliseconds.  Injected by tests.
    """

    def __init__(
        self,
        client: Redis,
        scan_batch_size: int = 100,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._client = client
        self._scan_batch_size = scan_batch_size
        self._clock = clock or _now_ms
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @classmethod
    def from_url(cls, url: str, scan_batch_size: int = 100) -> RedisCacheStore:
        """Build a store with a fresh client for *url* (``redis://...``)."""
        return cls(Redis.from_url(url), scan_batch_size=scan_batch_size)

    # ------------------------------------------------------------------
    # ICacheStore implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        img_key, meta_key = self._keys(key)
        try:
            payload, raw_meta = await self._client.mget([img_key, meta_key])

            if payload is None or raw_meta is None:
                await self._repair_orphan(key, payload, raw_meta)
                return None

            try:
                entry = CacheEntry.model_validate_json(raw_meta)
            except ValidationError as exc:
                self._logger.warning("cache_metadata_corrupt", key=key, error=str(exc))
                await self._client.delete(img_key, meta_key)
                return None

            now = self._clock()
            remaining = entry.remaining_ttl(now)
            if remaining <= 0:
                await self._client.delete(img_key, meta_key)
                return None

            # The metadata record follows the payload's remaining lifetime,
            # so a read never pushes either record past the original deadline.
            await self._client.set(
                meta_key,
                entry.touched(now).model_dump_json(by_alias=True),
                px=remaining,
            )
        except RedisError as exc:
            self._logger.error("redis_get_failed", key=key, error=str(exc))
            return None

        self._logger.debug("cache_hit", key=key, backend="redis")
        return bytes(payload)

    async def set(self, key: str, data: bytes, ttl: int) -> None:
        if ttl <= 0:
            self._logger.warning("cache_set_skipped_non_positive_ttl", key=key, ttl=ttl)
            return

        img_key, meta_key = self._keys(key)
        now = self._clock()
        entry = CacheEntry(
            key=key,
            filename=f"{key}.jpg",
            size=len(data),
            created_at=now,
            last_access=now,
            hits=0,
            ttl=ttl,
        )

        try:
            await asyncio.gather(
                self._client.set(img_key, data, px=ttl),
                self._client.set(meta_key, entry.model_dump_json(by_alias=True), px=ttl),
            )
        except RedisError as exc:
            self._logger.error("redis_set_failed", key=key, error=str(exc))
            return

        self._logger.info(
            "cache_set",
            key=key,
            backend="redis",
            size_kb=round(len(data) / 1024, 2),
            ttl_hours=round(ttl / 3_600_000),
        )

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(*self._keys(key))
        except RedisError as exc:
            self._logger.error("redis_delete_failed", key=key, error=str(exc))
            return
        self._logger.info("cache_delete", key=key, backend="redis")

    async def get_all_entries(self) -> list[CacheEntry]:
        try:
            meta_keys: list[bytes | str] = []
            cursor = 0
            while True:
                cursor, batch = await self._client.scan(
                    cursor=cursor,
                    match=f"{META_PREFIX}*",
                    count=self._scan_batch_size,
                )
                meta_keys.extend(batch)
                if int(cursor) == 0:
                    break

            if not meta_keys:
                return []

            raw_records = await self._client.mget(meta_keys)
        except RedisError as exc:
            self._logger.error("redis_scan_failed", error=str(exc))
            return []

        entries: list[CacheEntry] = []
        for raw in raw_records:
            if raw is None:
                continue  # expired between SCAN and MGET
            try:
                entries.append(CacheEntry.model_validate_json(raw))
            except ValidationError as exc:
                self._logger.warning("cache_metadata_corrupt", error=str(exc))
        return entries

    async def cleanup(self, max_size: int, max_entries: int) -> None:
        entries = await self.get_all_entries()
        if not entries:
            return

        plan = plan_eviction(
            entries,
            now_ms=self._clock(),
            max_size=max_size,
            max_entries=max_entries,
        )

        phases = (
            ("expired", plan.expired),
            ("lfu", plan.over_count),
            ("lru", plan.over_size),
        )
        for phase, victims in phases:
            if not victims:
                continue
            keys = [k for entry in victims for k in self._keys(entry.key)]
            try:
                await self._client.delete(*keys)
            except RedisError as exc:
                self._logger.error("redis_cleanup_failed", phase=phase, error=str(exc))
                return
            self._logger.info("cache_cleanup", backend="redis", phase=phase, removed=len(victims))

        if plan.over_size:
            self._logger.info(
                "cache_cleanup_freed",
                backend="redis",
                freed_mb=round(plan.freed_bytes / 1024 / 1024, 2),
            )

    def get_provider_name(self) -> str:
        return "redis"

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _keys(key: str) -> tuple[str, str]:
        return f"{IMG_PREFIX}{key}", f"{META_PREFIX}{key}"

    async def _repair_orphan(self, key: str, payload: bytes | None, raw_meta: bytes | None) -> None:
        """Delete the surviving half of an entry whose twin record is gone."""
        img_key, meta_key = self._keys(key)
        if payload is not None:
            self._logger.warning("cache_orphan_payload", key=key)
            await self._client.delete(img_key)
        elif raw_meta is not None:
            self._logger.warning("cache_orphan_metadata", key=key)
            await self._client.delete(meta_key)
        else:
            self._logger.debug("cache_miss", key=key, backend="redis")
