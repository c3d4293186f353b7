"""Ranked cover URL resolution.

Turns "username + period" into an ordered list of downloadable cover URLs
using any :class:`ICoverProvider`.  The provider supplies the three
primitives (user lookup, top list, per-item cover URL); this service owns
the policy around them:

    1. Unknown user            -> UserNotFoundError
    2. Empty top list          -> NoListeningDataError
    3. Per-item cover lookups  -> all concurrent, failures become "no cover"
    4. Nothing survived        -> NoCoversFoundError

The order of the returned URLs follows the provider's ranking, so the
most-played item lands in the top-left tile.
"""

from __future__ import annotations

import structlog

from patchwork.interfaces.cover_provider import ICoverProvider
from patchwork.utils.concurrency import gather_settled
from patchwork.utils.errors import (
    NoCoversFoundError,
    NoListeningDataError,
    UserNotFoundError,
)
from patchwork.utils.logging import get_logger


class CoverResolver:
    """Resolves a listener's top items into ranked cover URLs."""

    def __init__(self) -> None:
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def fetch_cover_urls(
        self,
        provider: ICoverProvider,
        username: str,
        period: str,
        limit: int,
    ) -> list[str]:
        """Return up to *limit* cover URLs for the user's top items, best first.

        Parameters
        ----------
        provider:
            Statistics service to query.
        username:
            Account name on that service.
        period:
            Statistics range (Last.fm vocabulary).
        limit:
            Number of top items to request.

        Raises
        ------
        UserNotFoundError
            If the provider does not know *username*.
        NoListeningDataError
            If the user has no top items for *period*.
        NoCoversFoundError
            If none of the top items yields a cover URL.
        ProviderUnavailableError
            If the top-list request itself fails.
        """
        provider_name = provider.get_provider_name()

        if not await provider.user_exists(username):
            raise UserNotFoundError(provider_name=provider_name)

        items = await provider.fetch_top_items(username, period, limit)
        if not items:
            raise NoListeningDataError(provider_name=provider_name)

        resolved = await gather_settled(
            [provider.resolve_cover_url(item) for item in items],
            logger=self._logger,
            error_msg="cover_url_lookup_failed",
        )
        urls = [url for url in resolved if url]

        self._logger.info(
            "cover_urls_resolved",
            provider=provider_name,
            username=username,
            period=period,
            items=len(items),
            covers=len(urls),
        )

        if not urls:
            raise NoCoversFoundError(provider_name=provider_name)
        return urls
