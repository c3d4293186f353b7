"""Filesystem-backed image cache store.

Payloads are written as individual ``<key>.jpg`` files under ``cache_dir``;
the bookkeeping index lives in memory and is rewritten in full to
``<cache_dir>/../metadata.json`` after every mutation::

    {"entries": {"<key>": {"key": ..., "filename": ..., "size": ...,
                           "createdAt": ..., "lastAccess": ..., "hits": ...,
                           "ttl": ...}},
     "totalSize": 12345}

File I/O is synchronous: each operation touches one small JPEG and one
small JSON file, so event-loop blocking is negligible.

There is no locking.  Two processes sharing one cache directory will lose
index updates; run a single worker per directory or use the Redis store.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Callable

import structlog
from pydantic import ValidationError

from patchwork.interfaces.cache_store import ICacheStore
from patchwork.models.cache import CacheEntry, CacheMetadata
from patchwork.utils.eviction import plan_eviction
from patchwork.utils.logging import get_logger

_METADATA_FILENAME = "metadata.json"
_PAYLOAD_SUFFIX = ".jpg"


def _now_ms() -> int:
    return int(time.time() * 1000)


class FilesystemCacheStore(ICacheStore):
    """Single-process cache store keeping payloads as files on local disk.

    Parameters
    ----------
    cache_dir:
        Directory for payload files.  Created when missing.  The metadata
        file is written next to it, in its parent directory.
    clock:
        Returns the current time in epoch milliseconds.  Injected by tests.
    """

    def __init__(
        self,
        cache_dir: str | Path = "./cache/images",
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._metadata_file = self._cache_dir.parent / _METADATA_FILENAME
        self._clock = clock or _now_ms
        self._logger: structlog.BoundLogger = get_logger(__name__)

        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self._metadata = self._load_metadata()

    # ------------------------------------------------------------------
    # ICacheStore implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        entry = self._metadata.entries.get(key)
        if entry is None:
            self._logger.debug("cache_miss", key=key, backend="filesystem")
            return None

        now = self._clock()
        if entry.is_expired(now):
            self._logger.debug("cache_entry_expired", key=key)
            self._remove(entry)
            self._save_metadata()
            return None

        try:
            data = (self._cache_dir / entry.filename).read_bytes()
        except OSError as exc:
            # Index points at a payload that is gone or unreadable: prune it.
            self._logger.warning("cache_payload_missing", key=key, error=str(exc))
            self._remove(entry)
            self._save_metadata()
            return None

        self._metadata.entries[key] = entry.touched(now)
        self._save_metadata()
        self._logger.debug("cache_hit", key=key, backend="filesystem")
        return data

    async def set(self, key: str, data: bytes, ttl: int) -> None:
        filename = f"{key}{_PAYLOAD_SUFFIX}"
        (self._cache_dir / filename).write_bytes(data)

        previous = self._metadata.entries.get(key)
        if previous is not None:
            self._metadata.total_size -= previous.size

        now = self._clock()
        self._metadata.entries[key] = CacheEntry(
            key=key,
            filename=filename,
            size=len(data),
            created_at=now,
            last_access=now,
            hits=0,
            ttl=ttl,
        )
        self._metadata.total_size += len(data)
        self._save_metadata()

        self._logger.info(
            "cache_set",
            key=key,
            backend="filesystem",
            size_kb=round(len(data) / 1024, 2),
            ttl_hours=round(ttl / 3_600_000),
        )

    async def delete(self, key: str) -> None:
        entry = self._metadata.entries.get(key)
        if entry is None:
            return

        self._remove(entry)
        self._save_metadata()
        self._logger.info("cache_delete", key=key, backend="filesystem")

    async def get_all_entries(self) -> list[CacheEntry]:
        return list(self._metadata.entries.values())

    async def cleanup(self, max_size: int, max_entries: int) -> None:
        plan = plan_eviction(
            list(self._metadata.entries.values()),
            now_ms=self._clock(),
            max_size=max_size,
            max_entries=max_entries,
        )
        if not plan:
            return

        for entry in plan.all_entries:
            self._remove(entry)
        self._save_metadata()

        self._logger.info(
            "cache_cleanup",
            backend="filesystem",
            expired=len(plan.expired),
            evicted_lfu=len(plan.over_count),
            evicted_lru=len(plan.over_size),
            freed_mb=round(plan.freed_bytes / 1024 / 1024, 2),
            total_size=self._metadata.total_size,
        )

    def get_provider_name(self) -> str:
        return "filesystem"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _remove(self, entry: CacheEntry) -> None:
        """Drop *entry* from the index and disk without persisting the index."""
        (self._cache_dir / entry.filename).unlink(missing_ok=True)
        if self._metadata.entries.pop(entry.key, None) is not None:
            self._metadata.total_size -= entry.size

    def _load_metadata(self) -> CacheMetadata:
        if not self._metadata_file.exists():
            return CacheMetadata()

        try:
            metadata = CacheMetadata.model_validate_json(self._metadata_file.read_text("utf-8"))
        except (OSError, ValidationError) as exc:
            self._logger.warning(
                "cache_metadata_unreadable",
                path=str(self._metadata_file),
                error=str(exc),
            )
            return CacheMetadata()

        # The running total is derived data; trust the entries over the file.
        metadata.total_size = sum(e.size for e in metadata.entries.values())
        return metadata

    def _save_metadata(self) -> None:
        self._metadata_file.parent.mkdir(parents=True, exist_ok=True)
        payload = self._metadata.model_dump(mode="json", by_alias=True)
        self._metadata_file.write_text(json.dumps(payload, indent=2), "utf-8")
