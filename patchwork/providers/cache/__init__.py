"""Cache store providers.

Two implementations of ICacheStore, selected by ``CACHE_PROVIDER``:

    1. FilesystemCacheStore -- payload files plus a JSON index on local
       disk.  Default; single process only.
    2. RedisCacheStore      -- payload and metadata records with native
       Redis expiry.  Shared by every worker pointing at the same server.

Both delegate eviction decisions to ``patchwork.utils.eviction`` so the
rules are identical whichever backend is active.
"""

from patchwork.providers.cache.filesystem_cache import FilesystemCacheStore
from patchwork.providers.cache.redis_cache import RedisCacheStore

__all__ = ["FilesystemCacheStore", "RedisCacheStore"]
