"""Unit tests for MatomoTracker."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from patchwork.services.analytics import MatomoTracker


def _tracker(handler, **kwargs) -> MatomoTracker:
    defaults = {"host": "stats.example.org", "site_id": "7", "enabled": True}
    defaults.update(kwargs)
    return MatomoTracker(httpx.AsyncClient(transport=httpx.MockTransport(handler)), **defaults)


class TestMatomoTracker:
    @pytest.mark.asyncio
    async def test_posts_page_view(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(204)

        tracker = _tracker(handler)
        await tracker.track_page_view("https://patchwork.example/patchwork.jpg?username=rj", "Mozilla/5.0")

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://stats.example.org/matomo.php"
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        assert form["idsite"] == "7"
        assert form["rec"] == "1"
        assert form["apiv"] == "1"
        assert form["send_image"] == "0"
        assert form["ua"] == "Mozilla/5.0"
        assert form["url"] == "https://patchwork.example/patchwork.jpg?username=rj"
        assert form["rand"]
        assert "cip" not in form

    def test_client_ip_sent_only_with_token(self) -> None:
        without_token = _tracker(lambda r: httpx.Response(204))
        assert "cip" not in without_token.build_params("u", forwarded_for="203.0.113.9")

        with_token = _tracker(lambda r: httpx.Response(204), token_auth="secret")
        params = with_token.build_params("u", forwarded_for="203.0.113.9, 10.0.0.1")
        assert params["cip"] == "203.0.113.9"
        assert params["token_auth"] == "secret"

        assert "cip" not in with_token.build_params("u", forwarded_for=None)

    @pytest.mark.asyncio
    async def test_disabled_tracker_sends_nothing(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        tracker = _tracker(handler, enabled=False)
        assert tracker.active is False
        await tracker.track_page_view("u")

    def test_unconfigured_tracker_sends_nothing(self) -> None:
        tracker = _tracker(lambda r: httpx.Response(204), host="")
        assert tracker.active is False

    @pytest.mark.asyncio
    async def test_network_failure_is_swallowed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        await _tracker(handler).track_page_view("u")  # should not raise
