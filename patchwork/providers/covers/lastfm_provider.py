"""Last.fm cover provider.

Implements ICoverProvider on top of the Last.fm 2.0 web API
(``user.getinfo`` and ``user.gettopalbums``).  Top albums already carry
thumbnail URLs hosted on Last.fm's image CDN; the original-size image lives
on the same host under ``/i/u/<filename>``, so turning an album into a
cover URL is a pure string rewrite with no extra request.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from patchwork.interfaces.cover_provider import ICoverProvider
from patchwork.models.patchwork import TopItem
from patchwork.utils.errors import ProviderUnavailableError
from patchwork.utils.logging import get_logger

_API_URL = "https://ws.audioscrobbler.com/2.0/"
_PROVIDER_NAME = "lastfm"
# Largest thumbnail size Last.fm reports; its filename is reused for the
# original-size URL.
_THUMBNAIL_SIZE = "extralarge"


class LastFmCoverProvider(ICoverProvider):
    """Cover provider backed by a user's Last.fm top albums.

    The ``httpx.AsyncClient`` is injected via the constructor for
    testability and so one connection pool is shared across providers.
    """

    def __init__(self, http_client: httpx.AsyncClient, api_key: str) -> None:
        self._http = http_client
        self._api_key = api_key
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # -- Private helpers -------------------------------------------------------

    def _params(self, method: str, **extra: Any) -> dict[str, Any]:
        return {
            "method": method,
            "api_key": self._api_key,
            "format": "json",
            **extra,
        }

    @staticmethod
    def _parse_album(raw: dict[str, Any]) -> TopItem:
        """Convert one ``topalbums.album`` element into a :class:`TopItem`."""
        artist = raw.get("artist") or {}
        image_url = None
        for image in raw.get("image") or []:
            if image.get("size") == _THUMBNAIL_SIZE and image.get("#text"):
                image_url = image["#text"]
                break

        try:
            playcount = int(raw.get("playcount") or 0)
        except (TypeError, ValueError):
            playcount = 0

        return TopItem(
            title=str(raw.get("name", "")),
            artist=str(artist.get("name", "")) if isinstance(artist, dict) else str(artist),
            playcount=playcount,
            image_url=image_url,
        )

    # -- ICoverProvider implementation -----------------------------------------

    async def user_exists(self, username: str) -> bool:
        try:
            response = await self._http.get(_API_URL, params=self._params("user.getinfo", user=username))
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.warning("lastfm_user_check_failed", username=username, error=str(exc))
            return False

        user = data.get("user") if isinstance(data, dict) else None
        return bool(isinstance(user, dict) and user.get("name"))

    async def fetch_top_items(self, username: str, period: str, limit: int) -> list[TopItem]:
        params = self._params("user.gettopalbums", user=username, period=period, limit=str(limit))
        try:
            response = await self._http.get(_API_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error("lastfm_top_albums_failed", username=username, error=str(exc))
            raise ProviderUnavailableError(
                message="Unable to fetch Last.fm user Top Albums.",
                provider_name=_PROVIDER_NAME,
            ) from exc

        albums = (data.get("topalbums") or {}).get("album") if isinstance(data, dict) else None
        if albums is None:
            raise ProviderUnavailableError(message="No albums found", provider_name=_PROVIDER_NAME)
        if isinstance(albums, dict):
            albums = [albums]

        return [self._parse_album(album) for album in albums if isinstance(album, dict)]

    async def resolve_cover_url(self, item: TopItem) -> str | None:
        if not item.image_url:
            return None

        parts = urlsplit(item.image_url)
        filename = parts.path.rsplit("/", 1)[-1]
        if not parts.hostname or not filename:
            self._logger.warning("lastfm_cover_url_unparseable", url=item.image_url)
            return None

        return f"https://{parts.hostname}/i/u/{filename}"

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME
