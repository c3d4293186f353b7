"""Abstract base class for listening-statistics cover providers.

A cover provider knows three things about one external statistics service:
whether a user exists, what the user's ranked top albums/releases are for a
period, and how to turn one of those items into a downloadable cover URL.
The :class:`~patchwork.services.cover_resolver.CoverResolver` combines the
three into the end-to-end "ranked covers" result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from patchwork.models.patchwork import TopItem


class ICoverProvider(ABC):
    """Contract for statistics services that can supply ranked cover art."""

    @abstractmethod
    async def user_exists(self, username: str) -> bool:
        """Return ``True`` if the service has a user called *username*.

        Network or parsing failures are reported as ``False``.
        """

    @abstractmethod
    async def fetch_top_items(self, username: str, period: str, limit: int) -> list[TopItem]:
        """Fetch the user's most-played items, best first.

        Parameters
        ----------
        username:
            Account name on the service.
        period:
            Statistics range in the Last.fm vocabulary (``7day``,
            ``overall``, ...).  Providers translate it as needed.
        limit:
            Maximum number of items to request.

        Raises
        ------
        patchwork.utils.errors.ProviderUnavailableError
            If the service cannot be reached or answers with an error.
        """

    @abstractmethod
    async def resolve_cover_url(self, item: TopItem) -> str | None:
        """Return a downloadable cover URL for *item*, or ``None``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider identifier, e.g. ``"lastfm"``."""
