"""Cover image downloader.

Downloads cover URLs in fixed-size batches and turns each payload into a
square RGB tile ready for the compositor.  Cover hosts (Last.fm's CDN, the
Cover Art Archive / archive.org) rate-limit aggressively, so the fetcher is
deliberately polite:

- at most ``concurrency`` downloads in flight, batch after batch;
- a short pause between batches;
- per-URL retries with exponential backoff, every attempt bounded by a
  timeout.

A URL that still fails after the last attempt (or whose payload Pillow
cannot decode) is simply dropped; the grid is filled with whatever
succeeded.
"""

from __future__ import annotations

import asyncio
import io
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import structlog
from PIL import Image, ImageOps

from patchwork.config.loader import DEFAULT_FETCHER_CONFIG
from patchwork.utils.concurrency import gather_in_batches
from patchwork.utils.logging import get_logger


def fit_cover(data: bytes, size: int) -> Image.Image:
    """Decode *data* and centre-crop it to a ``size x size`` RGB tile.

    Raises
    ------
    PIL.UnidentifiedImageError
        If *data* is not a decodable image (subclass of ``OSError``).
    """
    with Image.open(io.BytesIO(data)) as img:
        rgb = img.convert("RGB")
    return ImageOps.fit(rgb, (size, size), method=Image.Resampling.LANCZOS)


class ImageFetcher:
    """Batched, retrying cover downloader.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``.
    concurrency:
        Downloads per batch.
    retries:
        Attempts per URL (including the first one).
    timeout:
        Seconds allowed for a single attempt.
    backoff_base:
        Seconds to wait after the first failed attempt; doubles after each
        further failure.
    batch_delay:
        Seconds to pause between two batches.
    user_agent:
        ``User-Agent`` header sent with every download.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        concurrency: int = 5,
        retries: int = 3,
        timeout: float = 10.0,
        backoff_base: float = 0.5,
        batch_delay: float = 0.1,
        user_agent: str = "Patchwork-Generator/1.0",
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if retries < 1:
            raise ValueError("retries must be at least 1")

        self._http = http_client
        self._concurrency = concurrency
        self._retries = retries
        self._timeout = timeout
        self._backoff_base = backoff_base
        self._batch_delay = batch_delay
        self._headers = {"User-Agent": user_agent}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @classmethod
    def from_config(cls, http_client: httpx.AsyncClient, fetcher_config: Mapping[str, Any]) -> ImageFetcher:
        """Build a fetcher from the ``fetcher`` section of the YAML config."""
        cfg = {**DEFAULT_FETCHER_CONFIG, **fetcher_config}
        return cls(
            http_client=http_client,
            concurrency=int(cfg["concurrency"]),
            retries=int(cfg["retries"]),
            timeout=float(cfg["timeout_seconds"]),
            backoff_base=cfg["backoff_base_ms"] / 1000,
            batch_delay=cfg["batch_delay_ms"] / 1000,
            user_agent=str(cfg["user_agent"]),
        )

    # -- Public API -----------------------------------------------------------

    async def fetch_tiles(self, urls: Sequence[str], size: int) -> list[Image.Image]:
        """Download *urls* and return the decodable ones as square tiles.

        Returns
        -------
        list[PIL.Image.Image]
            ``size x size`` RGB tiles in the order of *urls*, failed URLs
            omitted.
        """

        async def _worker(url: str) -> Image.Image | None:
            return await self._fetch_tile(url, size)

        results = await gather_in_batches(
            list(urls),
            _worker,
            batch_size=self._concurrency,
            pause=self._batch_delay,
        )
        tiles = [tile for tile in results if tile is not None]

        self._logger.info("covers_downloaded", requested=len(urls), succeeded=len(tiles))
        return tiles

    # -- Private helpers ------------------------------------------------------

    async def _fetch_tile(self, url: str, size: int) -> Image.Image | None:
        data = await self._download(url)
        if data is None:
            return None

        try:
            return await asyncio.to_thread(fit_cover, data, size)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            self._logger.warning("cover_decode_failed", url=url, error=str(exc))
            return None

    async def _download(self, url: str) -> bytes | None:
        """Return the body of *url*, or ``None`` once every attempt failed."""
        for attempt in range(1, self._retries + 1):
            try:
                response = await asyncio.wait_for(
                    self._http.get(url, headers=self._headers, follow_redirects=True),
                    timeout=self._timeout,
                )
                if response.is_success:
                    return response.content
                self._logger.debug(
                    "cover_download_attempt_failed",
                    url=url,
                    attempt=attempt,
                    status=response.status_code,
                )
            except asyncio.TimeoutError:
                self._logger.debug("cover_download_timeout", url=url, attempt=attempt)
            except httpx.HTTPError as exc:
                self._logger.debug(
                    "cover_download_attempt_failed",
                    url=url,
                    attempt=attempt,
                    error=str(exc),
                )

            if attempt < self._retries:
                await asyncio.sleep(self._backoff_base * 2 ** (attempt - 1))

        self._logger.warning("cover_download_failed", url=url, attempts=self._retries)
        return None
