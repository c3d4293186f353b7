"""Three-phase eviction planning shared by the cache store backends.

Both stores enumerate their entries, ask :func:`plan_eviction` which keys
to drop, and then delete them with their own I/O.  Keeping the rules in one
pure function means the filesystem and Redis stores evict identically.

Phases, strictly ordered, each working on what the previous one left:

1. **expiry** -- every entry with ``now - created_at > ttl``;
2. **count (LFU)** -- when more than ``max_entries`` remain, the least
   frequently read entries (ascending ``hits``, ties in enumeration order);
3. **size (LRU)** -- when the remaining bytes exceed ``max_size``, the least
   recently read entries until the total is at or below
   ``max_size * SIZE_HYSTERESIS``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from patchwork.models.cache import CacheEntry

# Size eviction stops at 80% of the limit so the next few inserts do not
# trigger another round immediately.
SIZE_HYSTERESIS = 0.8


@dataclass
class EvictionPlan:
    """Entries chosen for deletion, grouped by the phase that chose them."""

    expired: list[CacheEntry] = field(default_factory=list)
    over_count: list[CacheEntry] = field(default_factory=list)
    over_size: list[CacheEntry] = field(default_factory=list)

    @property
    def all_entries(self) -> list[CacheEntry]:
        return [*self.expired, *self.over_count, *self.over_size]

    @property
    def freed_bytes(self) -> int:
        return sum(e.size for e in self.over_size)

    def __bool__(self) -> bool:
        return bool(self.expired or self.over_count or self.over_size)


def plan_eviction(
    entries: Sequence[CacheEntry],
    now_ms: int,
    max_size: int,
    max_entries: int,
) -> EvictionPlan:
    """Decide which entries a cleanup pass removes.

    Parameters
    ----------
    entries:
        Every entry currently known to the store, in enumeration order.
    now_ms:
        Current time in epoch milliseconds.
    max_size:
        Byte budget for the remaining entries.
    max_entries:
        Entry-count budget.

    Returns
    -------
    EvictionPlan
        Disjoint lists of entries to delete per phase.
    """
    plan = EvictionPlan()

    live: list[CacheEntry] = []
    for entry in entries:
        if entry.is_expired(now_ms):
            plan.expired.append(entry)
        else:
            live.append(entry)

    if len(live) > max_entries:
        # sorted() is stable, so equal hit counts keep enumeration order.
        by_hits = sorted(live, key=lambda e: e.hits)
        excess = len(live) - max_entries
        plan.over_count = by_hits[:excess]
        dropped = {e.key for e in plan.over_count}
        live = [e for e in live if e.key not in dropped]

    total_size = sum(e.size for e in live)
    if total_size > max_size:
        target = max_size * SIZE_HYSTERESIS
        for entry in sorted(live, key=lambda e: e.last_access):
            if total_size <= target:
                break
            plan.over_size.append(entry)
            total_size -= entry.size

    return plan
