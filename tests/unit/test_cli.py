"""Unit tests for the CLI modules patchwork.cli.generate and patchwork.cli.cache."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from patchwork.models.cache import CacheStats
from patchwork.models.patchwork import PatchworkResult
from patchwork.models.request import BorderStyle, ProviderName
from patchwork.providers.cache.filesystem_cache import FilesystemCacheStore
from patchwork.services.cache_manager import CacheManager
from patchwork.utils.errors import UserNotFoundError


# ======================================================================
# Shared helpers
# ======================================================================


def _components(cached: bytes | None = None, result: PatchworkResult | None = None, error: Exception | None = None):
    cache = MagicMock()
    cache.generate_key = MagicMock(return_value="k" * 64)
    cache.get = AsyncMock(return_value=cached)
    cache.set = AsyncMock()

    generator = MagicMock()
    generator.generate = AsyncMock(return_value=result, side_effect=error)

    return {"cache_manager": cache, "generator": generator}


# ======================================================================
# patchwork.cli.generate
# ======================================================================


class TestGenerateArguments:
    def test_defaults(self) -> None:
        from patchwork.cli.generate import _build_parser, build_request

        request = build_request(_build_parser().parse_args(["rj"]))
        assert request.username == "rj"
        assert request.period == "overall"
        assert (request.rows, request.cols, request.image_size) == (3, 3, 150)
        assert request.border is BorderStyle.NORMAL
        assert request.provider is ProviderName.LASTFM

    def test_all_flags(self) -> None:
        from patchwork.cli.generate import _build_parser, build_request

        args = _build_parser().parse_args(
            ["mayhem", "--period", "7day", "--rows", "2", "--cols", "5", "--size", "60",
             "--no-border", "--provider", "listenbrainz", "-o", "out.jpg", "--no-cache"]
        )
        request = build_request(args)
        assert request.period == "7day"
        assert (request.rows, request.cols, request.image_size) == (2, 5, 60)
        assert request.border is BorderStyle.NONE
        assert request.provider is ProviderName.LISTENBRAINZ
        assert args.output == "out.jpg"
        assert args.no_cache is True

    def test_out_of_range_rows_rejected(self) -> None:
        from patchwork.cli.generate import _build_parser, build_request

        with pytest.raises(ValidationError):
            build_request(_build_parser().parse_args(["rj", "--rows", "11"]))

    def test_main_exits_1_on_invalid_arguments(self) -> None:
        from patchwork.cli.generate import main

        with pytest.raises(SystemExit) as exc_info:
            main(["rj", "--size", "10"])
        assert exc_info.value.code == 1

    def test_unknown_provider_is_an_argparse_error(self) -> None:
        from patchwork.cli.generate import _build_parser

        with pytest.raises(SystemExit):
            _build_parser().parse_args(["rj", "--provider", "spotify"])


class TestGenerateRun:
    @pytest.mark.asyncio
    async def test_miss_generates_stores_and_writes(self, tmp_path: Path) -> None:
        from patchwork.cli.generate import _run, _build_parser, build_request

        request = build_request(_build_parser().parse_args(["rj"]))
        components = _components(result=PatchworkResult(image=b"jpeg-bytes", width=451, height=451))
        output = tmp_path / "grid.jpg"

        with patch("patchwork.main.build_components", return_value=components), \
             patch("patchwork.main.close_components", new_callable=AsyncMock) as close:
            code = await _run(request, output, use_cache=True)

        assert code == 0
        assert output.read_bytes() == b"jpeg-bytes"
        components["cache_manager"].set.assert_awaited_once_with("k" * 64, b"jpeg-bytes", "overall")
        close.assert_awaited_once_with(components)

    @pytest.mark.asyncio
    async def test_hit_skips_generation(self, tmp_path: Path) -> None:
        from patchwork.cli.generate import _run, _build_parser, build_request

        request = build_request(_build_parser().parse_args(["rj"]))
        components = _components(cached=b"cached")
        output = tmp_path / "grid.jpg"

        with patch("patchwork.main.build_components", return_value=components), \
             patch("patchwork.main.close_components", new_callable=AsyncMock):
            code = await _run(request, output, use_cache=True)

        assert code == 0
        assert output.read_bytes() == b"cached"
        components["generator"].generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_cache_bypasses_lookup_and_store(self, tmp_path: Path) -> None:
        from patchwork.cli.generate import _run, _build_parser, build_request

        request = build_request(_build_parser().parse_args(["rj"]))
        components = _components(cached=b"cached", result=PatchworkResult(image=b"fresh", width=1, height=1))
        output = tmp_path / "grid.jpg"

        with patch("patchwork.main.build_components", return_value=components), \
             patch("patchwork.main.close_components", new_callable=AsyncMock):
            await _run(request, output, use_cache=False)

        assert output.read_bytes() == b"fresh"
        components["cache_manager"].get.assert_not_awaited()
        components["cache_manager"].set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_error_returns_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        from patchwork.cli.generate import _run, _build_parser, build_request

        request = build_request(_build_parser().parse_args(["ghost"]))
        components = _components(error=UserNotFoundError())
        output = tmp_path / "grid.jpg"

        with patch("patchwork.main.build_components", return_value=components), \
             patch("patchwork.main.close_components", new_callable=AsyncMock) as close:
            code = await _run(request, output, use_cache=True)

        assert code == 1
        assert not output.exists()
        assert "Error generating patchwork: User does not exist" in capsys.readouterr().err
        close.assert_awaited_once()


# ======================================================================
# patchwork.cli.cache
# ======================================================================


class TestCacheCommand:
    def test_parser_rejects_unknown_command(self) -> None:
        from patchwork.cli.cache import _build_parser

        with pytest.raises(SystemExit):
            _build_parser().parse_args(["purge"])

    @pytest.mark.asyncio
    async def test_stats_prints_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        from patchwork.cli.cache import _run

        cache = MagicMock()
        cache.get_stats = AsyncMock(return_value=CacheStats(total_entries=2, total_size=2048, total_hits=5))
        components = {"cache_manager": cache}

        with patch("patchwork.main.build_components", return_value=components), \
             patch("patchwork.main.close_components", new_callable=AsyncMock):
            assert await _run("stats") == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["total_entries"] == 2
        assert printed["total_hits"] == 5

    @pytest.mark.asyncio
    async def test_cleanup_counts_expired_entries(
        self, tmp_path: Path, clock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        from patchwork.cli.cache import _run

        store = FilesystemCacheStore(cache_dir=tmp_path / "images", clock=clock)
        cache = CacheManager(
            store=store,
            ttl_map_ms={"7day": 6 * 3_600_000, "overall": 168 * 3_600_000},
            max_size=10**9,
            max_entries=100,
            clock=clock,
        )
        await cache.set("weekly", b"w" * 10, "7day")
        await cache.set("alltime", b"a" * 10, "overall")
        clock.advance(7 * 3_600_000)
        components = {"cache_manager": cache}

        with patch("patchwork.main.build_components", return_value=components), \
             patch("patchwork.main.close_components", new_callable=AsyncMock):
            assert await _run("cleanup") == 0

        captured = capsys.readouterr()
        assert "Removed 1 entries" in captured.err
        # stdout also carries structured log lines from the store.
        assert '"total_entries": 1' in captured.out
        assert [e.key for e in await store.get_all_entries()] == ["alltime"]
