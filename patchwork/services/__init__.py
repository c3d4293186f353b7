"""Patchwork services: cover resolution, downloading, composition, caching."""

from patchwork.services.analytics import MatomoTracker
from patchwork.services.cache_manager import CacheManager
from patchwork.services.cover_resolver import CoverResolver
from patchwork.services.image_fetcher import ImageFetcher
from patchwork.services.patchwork_generator import PatchworkGenerator

__all__ = [
    "CacheManager",
    "CoverResolver",
    "ImageFetcher",
    "MatomoTracker",
    "PatchworkGenerator",
]
