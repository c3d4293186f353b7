"""ListenBrainz cover provider.

Implements ICoverProvider on top of the public ListenBrainz statistics API.
ListenBrainz ranks *releases* and identifies them with MusicBrainz release
IDs (MBIDs) but hosts no artwork itself, so each cover is looked up in the
Cover Art Archive: candidate URLs are probed with ``HEAD`` requests, in
the order 500, 250, 1200, sizeless, and the first one that answers 2xx wins.

ListenBrainz uses its own range vocabulary; :data:`PERIOD_TO_RANGE` maps the
Last.fm-style periods used throughout the service onto it.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from patchwork.interfaces.cover_provider import ICoverProvider
from patchwork.models.patchwork import TopItem
from patchwork.utils.errors import ProviderUnavailableError
from patchwork.utils.logging import get_logger

_API_URL = "https://api.listenbrainz.org/1"
_COVER_ART_URL = "https://coverartarchive.org/release"
_PROVIDER_NAME = "listenbrainz"

# Sizes probed in order before falling back to the sizeless front image.
_COVER_ART_SIZES = ("500", "250", "1200")

PERIOD_TO_RANGE: dict[str, str] = {
    "7day": "week",
    "1month": "month",
    "3month": "quarter",
    "6month": "half_yearly",
    "12month": "year",
    "overall": "all_time",
    "this_week": "this_week",
    "this_month": "this_month",
    "this_year": "this_year",
}


def map_period_to_range(period: str) -> str:
    """Translate *period* to a ListenBrainz range; unknown values pass through."""
    return PERIOD_TO_RANGE.get(period, period)


def cover_art_candidates(mbid: str) -> list[str]:
    """Return the Cover Art Archive URLs to probe for *mbid*, in order."""
    base = f"{_COVER_ART_URL}/{mbid}/front"
    return [f"{base}-{size}" for size in _COVER_ART_SIZES] + [base]


class ListenBrainzCoverProvider(ICoverProvider):
    """Cover provider backed by ListenBrainz top releases and the Cover Art Archive."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @staticmethod
    def _parse_release(raw: dict[str, Any]) -> TopItem:
        try:
            playcount = int(raw.get("listen_count") or 0)
        except (TypeError, ValueError):
            playcount = 0

        return TopItem(
            title=str(raw.get("release_name", "")),
            artist=str(raw.get("artist_name", "")),
            playcount=playcount,
            release_mbid=raw.get("release_mbid") or None,
        )

    # -- ICoverProvider implementation -----------------------------------------

    async def user_exists(self, username: str) -> bool:
        url = f"{_API_URL}/user/{quote(username)}/listen-count"
        try:
            response = await self._http.get(url)
            if not response.is_success:
                return False
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.warning("listenbrainz_user_check_failed", username=username, error=str(exc))
            return False

        payload = data.get("payload") if isinstance(data, dict) else None
        return isinstance(payload, dict) and payload.get("count") is not None

    async def fetch_top_items(self, username: str, period: str, limit: int) -> list[TopItem]:
        url = f"{_API_URL}/stats/user/{quote(username)}/releases"
        params = {"range": map_period_to_range(period), "count": limit}
        try:
            response = await self._http.get(url, params=params)
            # 204: statistics for this user/range have not been computed yet.
            if response.status_code == 204:
                return []
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error("listenbrainz_top_releases_failed", username=username, error=str(exc))
            raise ProviderUnavailableError(
                message="Unable to fetch ListenBrainz user stats",
                provider_name=_PROVIDER_NAME,
            ) from exc

        payload = data.get("payload") if isinstance(data, dict) else None
        releases = payload.get("releases") if isinstance(payload, dict) else None
        if releases is None:
            raise ProviderUnavailableError(message="No releases found", provider_name=_PROVIDER_NAME)

        return [self._parse_release(release) for release in releases if isinstance(release, dict)]

    async def resolve_cover_url(self, item: TopItem) -> str | None:
        if not item.release_mbid:
            self._logger.warning("listenbrainz_release_without_mbid", release=item.title, artist=item.artist)
            return None

        for candidate in cover_art_candidates(item.release_mbid):
            try:
                # The archive answers with a redirect to the actual image host.
                response = await self._http.head(candidate, follow_redirects=True)
            except httpx.HTTPError as exc:
                self._logger.debug("cover_art_probe_failed", url=candidate, error=str(exc))
                continue
            if response.is_success:
                return candidate

        self._logger.debug("cover_art_not_found", mbid=item.release_mbid)
        return None

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME
