"""End-to-end patchwork generation.

Resolve ranked cover URLs with the provider named by the request, download
and square them, then lay them out on the grid.  Caching is not this
service's concern; the route (and the CLI) consult the CacheManager first
and only call :meth:`PatchworkGenerator.generate` on a miss.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping

import structlog

from patchwork.interfaces.cover_provider import ICoverProvider
from patchwork.models.patchwork import PatchworkResult
from patchwork.models.request import PatchworkRequest
from patchwork.services.compositor import compose_patchwork, patchwork_dimensions
from patchwork.services.cover_resolver import CoverResolver
from patchwork.services.image_fetcher import ImageFetcher
from patchwork.utils.errors import ConfigurationError, InsufficientCoverArtError
from patchwork.utils.logging import get_logger


def covers_to_request(cell_count: int) -> int:
    """Number of top items to ask for so a few missing covers still fill the grid."""
    return cell_count + math.ceil(cell_count / 3)


class PatchworkGenerator:
    """Builds patchwork JPEGs from listening statistics.

    Parameters
    ----------
    providers:
        Cover providers keyed by provider name (``"lastfm"``,
        ``"listenbrainz"``).  Only configured providers are registered.
    fetcher:
        Downloader turning cover URLs into square tiles.
    resolver:
        Top-items-to-URLs policy; a default instance is created when omitted.
    """

    def __init__(
        self,
        providers: Mapping[str, ICoverProvider],
        fetcher: ImageFetcher,
        resolver: CoverResolver | None = None,
    ) -> None:
        self._providers = dict(providers)
        self._fetcher = fetcher
        self._resolver = resolver or CoverResolver()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def provider_names(self) -> list[str]:
        return sorted(self._providers)

    async def generate(self, request: PatchworkRequest) -> PatchworkResult:
        """Generate the patchwork described by *request*.

        Raises
        ------
        ConfigurationError
            If the requested provider is not registered.
        CoverResolutionError
            If the user, their statistics or their covers cannot be found.
        ProviderUnavailableError
            If the statistics service fails.
        InsufficientCoverArtError
            If not a single cover could be downloaded.
        CompositionError
            If the final image cannot be encoded.
        """
        provider_name = request.provider.value
        provider = self._providers.get(provider_name)
        if provider is None:
            raise ConfigurationError(
                message=f"Cover provider '{provider_name}' is not configured",
                provider_name=provider_name,
            )

        cell_count = request.cell_count
        urls = await self._resolver.fetch_cover_urls(
            provider,
            request.username,
            request.period,
            covers_to_request(cell_count),
        )

        urls = urls[:cell_count]
        if len(urls) < cell_count:
            self._logger.warning(
                "fewer_covers_than_cells",
                username=request.username,
                found=len(urls),
                cells=cell_count,
            )

        tiles = await self._fetcher.fetch_tiles(urls, request.image_size)
        if not tiles:
            raise InsufficientCoverArtError(provider_name=provider_name)

        image = await asyncio.to_thread(
            compose_patchwork,
            tiles,
            request.rows,
            request.cols,
            request.image_size,
            request.bordered,
        )
        width, height = patchwork_dimensions(request.rows, request.cols, request.image_size, request.bordered)

        self._logger.info(
            "patchwork_generated",
            username=request.username,
            provider=provider_name,
            tiles=len(tiles),
            width=width,
            height=height,
            bytes=len(image),
        )
        return PatchworkResult(image=image, width=width, height=height)
