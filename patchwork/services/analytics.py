"""Server-side Matomo page-view tracking.

Patchwork images are usually embedded in third-party pages (forum
signatures, READMEs), where no JavaScript tracker runs.  Instead the route
reports each image request to Matomo's HTTP tracking API as a plain page
view, so it shows up in the standard Pages report.

Tracking is fire-and-forget: it runs as a background task after the
response and every failure is swallowed after a debug log.
"""

from __future__ import annotations

import secrets

import httpx
import structlog

from patchwork.utils.logging import get_logger


class MatomoTracker:
    """Reports page views to a Matomo instance.

    A tracker without ``enabled`` or without host/site id is a no-op, so it
    can always be wired in.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        host: str = "",
        site_id: str = "",
        token_auth: str = "",
        enabled: bool = False,
    ) -> None:
        self._http = http_client
        self._host = host
        self._site_id = site_id
        self._token_auth = token_auth
        self._enabled = enabled
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def active(self) -> bool:
        return self._enabled and bool(self._host) and bool(self._site_id)

    def build_params(self, url: str, user_agent: str = "", forwarded_for: str | None = None) -> dict[str, str]:
        """Return the tracking API form fields for one page view."""
        params = {
            "idsite": self._site_id,
            "rec": "1",
            "apiv": "1",
            "rand": secrets.token_hex(6),
            "url": url,
            "ua": user_agent,
            "send_image": "0",
        }

        # Overriding the visitor IP requires an auth token.
        client_ip = forwarded_for.split(",")[0].strip() if forwarded_for else ""
        if self._token_auth and client_ip:
            params["cip"] = client_ip
            params["token_auth"] = self._token_auth
        return params

    async def track_page_view(self, url: str, user_agent: str = "", forwarded_for: str | None = None) -> None:
        if not self.active:
            return

        try:
            await self._http.post(
                f"https://{self._host}/matomo.php",
                data=self.build_params(url, user_agent, forwarded_for),
            )
        except httpx.HTTPError as exc:
            self._logger.debug("matomo_tracking_failed", error=str(exc))
