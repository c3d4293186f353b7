"""Unit tests for the request and cache models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from patchwork.models.cache import CacheEntry, CacheMetadata
from patchwork.models.request import BorderStyle, PatchworkRequest, ProviderName


class TestPatchworkRequest:
    def test_defaults(self) -> None:
        req = PatchworkRequest(username="rj")
        assert req.period == "overall"
        assert (req.rows, req.cols, req.image_size) == (3, 3, 150)
        assert req.bordered is True
        assert req.cell_count == 9
        assert req.provider is ProviderName.LASTFM

    @pytest.mark.parametrize("username", ["", "bad name", "semi;colon", "a/b"])
    def test_invalid_usernames(self, username: str) -> None:
        with pytest.raises(ValidationError):
            PatchworkRequest(username=username)

    @pytest.mark.parametrize("username", ["rj", "Some_User-1.2"])
    def test_valid_usernames(self, username: str) -> None:
        assert PatchworkRequest(username=username).username == username

    @pytest.mark.parametrize(
        "field,value",
        [("rows", 0), ("rows", 11), ("cols", 0), ("cols", 11), ("image_size", 49), ("image_size", 301)],
    )
    def test_bounds(self, field: str, value: int) -> None:
        with pytest.raises(ValidationError):
            PatchworkRequest(username="rj", **{field: value})

    def test_unknown_period_is_kept(self) -> None:
        assert PatchworkRequest(username="rj", period="decade").period == "decade"

    def test_frozen(self) -> None:
        req = PatchworkRequest(username="rj")
        with pytest.raises(ValidationError):
            req.rows = 4  # type: ignore[misc]

    def test_fingerprint_payload(self) -> None:
        req = PatchworkRequest(username="rj", border=BorderStyle.NONE, provider=ProviderName.LISTENBRAINZ)
        assert req.bordered is False
        assert req.fingerprint_payload() == {
            "username": "rj",
            "period": "overall",
            "rows": 3,
            "cols": 3,
            "imageSize": 150,
            "border": "none",
            "provider": "listenbrainz",
        }


class TestCacheEntry:
    def _entry(self, **overrides) -> CacheEntry:
        data = {"key": "k", "filename": "k.jpg", "size": 10, "created_at": 1000, "last_access": 1000, "ttl": 500}
        data.update(overrides)
        return CacheEntry(**data)

    def test_expiry_is_strict(self) -> None:
        entry = self._entry()
        assert not entry.is_expired(1500)
        assert entry.is_expired(1501)

    def test_remaining_ttl_never_negative(self) -> None:
        entry = self._entry()
        assert entry.remaining_ttl(1200) == 300
        assert entry.remaining_ttl(5000) == 0

    def test_touched_returns_updated_copy(self) -> None:
        entry = self._entry()
        touched = entry.touched(2000)
        assert (touched.hits, touched.last_access) == (1, 2000)
        assert (entry.hits, entry.last_access) == (0, 1000)

    def test_metadata_round_trips_camel_case(self) -> None:
        meta = CacheMetadata(entries={"k": self._entry()}, total_size=10)
        dumped = meta.model_dump(by_alias=True)
        assert dumped["totalSize"] == 10
        assert dumped["entries"]["k"]["createdAt"] == 1000
        assert CacheMetadata.model_validate(dumped) == meta
