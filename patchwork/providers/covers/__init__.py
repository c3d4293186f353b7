"""Cover provider implementations.

Two concrete implementations of ICoverProvider, selected per request by the
``provider`` query parameter:

    1. LastFmCoverProvider       -- Last.fm top albums (requires
       LASTFM_API_KEY).  Cover URLs are rewritten from the thumbnail URL,
       no extra request per album.
    2. ListenBrainzCoverProvider -- ListenBrainz top releases (no key).
       Each cover is probed in the Cover Art Archive by release MBID.
"""

from patchwork.providers.covers.lastfm_provider import LastFmCoverProvider
from patchwork.providers.covers.listenbrainz_provider import ListenBrainzCoverProvider

__all__ = ["LastFmCoverProvider", "ListenBrainzCoverProvider"]
