"""Result and intermediate models of the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TopItem:
    """One entry of a listener's ranked top albums / releases.

    Attributes
    ----------
    title:
        Album or release name.
    artist:
        Credited artist name.
    playcount:
        Plays counted by the provider for the requested period.
    image_url:
        Provider-hosted thumbnail URL (Last.fm only).
    release_mbid:
        MusicBrainz release identifier (ListenBrainz only).
    """

    title: str
    artist: str
    playcount: int = 0
    image_url: str | None = None
    release_mbid: str | None = None


@dataclass(frozen=True)
class PatchworkResult:
    """A finished patchwork: encoded JPEG bytes plus canvas dimensions."""

    image: bytes
    width: int
    height: int
