"""Public interface definitions for the swappable parts of the service.

Business logic only talks to these abstract base classes; concrete adapters
live in ``patchwork/providers/`` and are chosen in ``patchwork/main.py``
at startup.

    Interface        ->  Concrete implementations
    -------------------------------------------------------------
    ICacheStore      ->  FilesystemCacheStore, RedisCacheStore
    ICoverProvider   ->  LastFmCoverProvider, ListenBrainzCoverProvider
"""

from patchwork.interfaces.cache_store import ICacheStore
from patchwork.interfaces.cover_provider import ICoverProvider

__all__ = [
    "ICacheStore",
    "ICoverProvider",
]
