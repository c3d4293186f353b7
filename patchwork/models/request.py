"""Request-side domain models for patchwork generation.

A :class:`PatchworkRequest` is the validated, immutable form of the query
parameters accepted by ``GET /patchwork.jpg``.  It is both the input of the
generation pipeline and the source of the cache fingerprint, so every field
that influences the output image must live here -- and nothing else.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


class Period(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Listening-statistics ranges understood by the cache TTL table.

    The values follow the Last.fm vocabulary.  The ListenBrainz provider
    translates them to its own range names.
    """

    SEVEN_DAY = "7day"
    ONE_MONTH = "1month"
    THREE_MONTH = "3month"
    SIX_MONTH = "6month"
    TWELVE_MONTH = "12month"
    OVERALL = "overall"


class BorderStyle(str, Enum):  # noqa: UP042
    """Whether tiles are separated by a 1px white gap or packed edge to edge."""

    NORMAL = "normal"
    NONE = "none"


class ProviderName(str, Enum):  # noqa: UP042
    """Listening-statistics services a patchwork can be built from."""

    LASTFM = "lastfm"
    LISTENBRAINZ = "listenbrainz"


class PatchworkRequest(BaseModel):
    """Validated parameters for one patchwork image.

    ``period`` is deliberately a plain string: unknown values are forwarded
    to the provider untouched and only fall back to the ``overall`` TTL in
    the cache layer.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    username: str = Field(..., min_length=1, pattern=USERNAME_PATTERN)
    period: str = Period.OVERALL.value
    rows: int = Field(default=3, ge=1, le=10)
    cols: int = Field(default=3, ge=1, le=10)
    image_size: int = Field(default=150, ge=50, le=300, alias="imageSize")
    border: BorderStyle = BorderStyle.NORMAL
    provider: ProviderName = ProviderName.LASTFM

    @property
    def bordered(self) -> bool:
        """``True`` when tiles are separated by a 1px gap."""
        return self.border is BorderStyle.NORMAL

    @property
    def cell_count(self) -> int:
        """Number of grid cells (and therefore covers) the image holds."""
        return self.rows * self.cols

    def fingerprint_payload(self) -> dict[str, Any]:
        """Return the JSON-ready field map the cache key is derived from."""
        return self.model_dump(mode="json", by_alias=True)
