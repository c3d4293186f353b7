"""Patchwork domain models -- re-exports all public model classes.

Submodules by concern:
    - request.py    -- validated request parameters and their enums
    - cache.py      -- cache entries, filesystem index, aggregate stats
    - patchwork.py  -- ranked top items and the finished image
"""

from __future__ import annotations

from patchwork.models.cache import CacheEntry, CacheMetadata, CacheStats
from patchwork.models.patchwork import PatchworkResult, TopItem
from patchwork.models.request import (
    USERNAME_PATTERN,
    BorderStyle,
    PatchworkRequest,
    Period,
    ProviderName,
)

__all__ = [
    "USERNAME_PATTERN",
    "BorderStyle",
    "CacheEntry",
    "CacheMetadata",
    "CacheStats",
    "PatchworkRequest",
    "PatchworkResult",
    "Period",
    "ProviderName",
    "TopItem",
]
