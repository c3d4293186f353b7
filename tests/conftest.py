"""Shared pytest fixtures for the patchwork test suite."""

from __future__ import annotations

import fnmatch
import io
from pathlib import Path

import pytest
from PIL import Image

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_jpeg(width: int = 100, height: int = 100, color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    """Create a solid-colour JPEG in memory."""
    img = Image.new("RGB", (width, height), color=color)
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with ``decode_responses=False``.

    Supports the subset the cache store uses (``mget``, ``set`` with ``px``,
    ``delete``, cursor ``scan`` and ``aclose``).  Expiry follows the injected
    clock.  Set ``fail_with`` to make every call raise.
    """

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._data: dict[str, tuple[bytes, int | None]] = {}
        self.closed = False
        self.fail_with: Exception | None = None

    @staticmethod
    def _norm(key: str | bytes) -> str:
        return key.decode() if isinstance(key, bytes) else key

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _live(self, key: str) -> bytes | None:
        record = self._data.get(key)
        if record is None:
            return None
        value, expires_at = record
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    # -- Test inspection helpers --

    def raw(self, key: str) -> bytes | None:
        return self._live(key)

    def expires_at(self, key: str) -> int | None:
        return self._data[key][1]

    def put(self, key: str, value: bytes | str, px: int | None = None) -> None:
        data = value.encode() if isinstance(value, str) else value
        self._data[key] = (data, self._clock() + px if px else None)

    # -- redis.asyncio.Redis API subset --

    async def mget(self, keys: list[str | bytes]) -> list[bytes | None]:
        self._check()
        return [self._live(self._norm(k)) for k in keys]

    async def set(self, key: str, value: bytes | str, px: int | None = None) -> bool:
        self._check()
        self.put(key, value, px)
        return True

    async def delete(self, *keys: str | bytes) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self._data.pop(self._norm(key), None) is not None:
                removed += 1
        return removed

    async def scan(self, cursor: int = 0, match: str | None = None, count: int | None = None):
        self._check()
        keys = sorted(k for k in list(self._data) if self._live(k) is not None)
        if match is not None:
            keys = [k for k in keys if fnmatch.fnmatchcase(k, match)]
        page = count or 10
        batch = keys[cursor:cursor + page]
        next_cursor = cursor + page if cursor + page < len(keys) else 0
        return next_cursor, [k.encode() for k in batch]

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def jpeg_factory():
    """Return :func:`make_jpeg` so tests can build images of any size/colour."""
    return make_jpeg
