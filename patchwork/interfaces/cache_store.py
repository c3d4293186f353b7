"""Abstract base class for patchwork image cache stores.

Defines the contract the :class:`~patchwork.services.cache_manager.CacheManager`
drives.  Implementations decide where payloads and their bookkeeping live
(local files, Redis, ...); the manager never looks past this interface, so
the backend can be swapped from configuration without touching the
orchestration logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from patchwork.models.cache import CacheEntry


class ICacheStore(ABC):
    """Contract for image cache backends.

    All operations are async so network-backed stores do not block the
    event loop.  Implementations must keep each entry's ``size`` equal to
    the stored payload length and must never extend an entry's lifetime
    past ``created_at + ttl``.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the payload stored under *key*, recording the read.

        A successful read increments the entry's hit counter and sets its
        last-access time.

        Returns
        -------
        bytes or None
            The cached image, or ``None`` on a miss (absent, expired,
            orphaned or unreadable).
        """

    @abstractmethod
    async def set(self, key: str, data: bytes, ttl: int) -> None:
        """Store *data* under *key* with a lifetime of *ttl* milliseconds.

        Re-setting an existing key replaces the previous entry.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the entry under *key*; a no-op when it does not exist."""

    @abstractmethod
    async def get_all_entries(self) -> list[CacheEntry]:
        """Return the bookkeeping records of every entry currently stored."""

    @abstractmethod
    async def cleanup(self, max_size: int, max_entries: int) -> None:
        """Run expiry, count (LFU) and size (LRU) eviction, in that order.

        Parameters
        ----------
        max_size:
            Byte budget.  When exceeded, entries are evicted until the total
            is at or below 80% of it.
        max_entries:
            Maximum number of entries kept after the expiry sweep.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short backend identifier, e.g. ``"filesystem"``."""

    async def close(self) -> None:  # noqa: B027 -- optional hook
        """Release backend resources.  Default: nothing to release."""
