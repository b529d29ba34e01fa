"""Unit tests for announcehelper.fetcher."""

from __future__ import annotations

import httpx
import pytest
import respx

from announcehelper.config import FetcherSettings
from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.fetcher import Fetcher, build_http_client, safe_url

PAGE_URL = "https://help.mypurecloud.com/announcements/"


@pytest.fixture()
async def client():
    async with httpx.AsyncClient() as client:
        yield client


# ---------------------------------------------------------------------------
# safe_url
# ---------------------------------------------------------------------------


class TestSafeUrl:
    def test_plain_url_unchanged(self) -> None:
        assert safe_url(PAGE_URL) == PAGE_URL

    def test_query_and_fragment_kept(self) -> None:
        url = "https://x.test/a?b=1&c=2#top"
        assert safe_url(url) == url

    def test_spaces_and_non_ascii_encoded(self) -> None:
        assert safe_url("https://x.test/a b/ไทย") == "https://x.test/a%20b/%E0%B9%84%E0%B8%97%E0%B8%A2"

    def test_already_encoded_not_double_encoded(self) -> None:
        assert safe_url("https://x.test/a%20b") == "https://x.test/a%20b"


# ---------------------------------------------------------------------------
# build_http_client
# ---------------------------------------------------------------------------


class TestBuildHttpClient:
    async def test_defaults(self) -> None:
        async with build_http_client() as client:
            assert client.follow_redirects is True
            assert client.headers["User-Agent"] == "Mozilla/5.0"
            assert client.timeout.read == 30.0

    async def test_from_settings(self) -> None:
        settings = FetcherSettings(timeout_seconds=5, user_agent="announcehelper-test")
        async with build_http_client(settings) as client:
            assert client.headers["User-Agent"] == "announcehelper-test"
            assert client.timeout.connect == 5.0


# ---------------------------------------------------------------------------
# Fetcher.fetch
# ---------------------------------------------------------------------------


class TestFetch:
    async def test_returns_body(self, client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.get(PAGE_URL).mock(return_value=httpx.Response(200, text="<html>ok</html>"))
            assert await Fetcher(client).fetch(PAGE_URL) == "<html>ok</html>"

    async def test_non_2xx_is_upstream_failure(self, client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.get(PAGE_URL).mock(return_value=httpx.Response(404))
            with pytest.raises(AnnounceHelperError) as exc_info:
                await Fetcher(client).fetch(PAGE_URL)
        assert exc_info.value.code == ErrorCode.UPSTREAM_FAILURE
        assert "404" in exc_info.value.message

    async def test_network_error_is_upstream_failure(self, client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.get(PAGE_URL).mock(side_effect=httpx.ConnectError("refused"))
            with pytest.raises(AnnounceHelperError) as exc_info:
                await Fetcher(client).fetch(PAGE_URL)
        assert exc_info.value.code == ErrorCode.UPSTREAM_FAILURE

    async def test_timeout_is_upstream_failure(self, client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.get(PAGE_URL).mock(side_effect=httpx.ReadTimeout("slow"))
            with pytest.raises(AnnounceHelperError) as exc_info:
                await Fetcher(client).fetch(PAGE_URL)
        assert exc_info.value.code == ErrorCode.UPSTREAM_FAILURE
        assert "Timed out" in exc_info.value.message

    async def test_url_is_encoded_before_request(self, client: httpx.AsyncClient) -> None:
        with respx.mock:
            route = respx.get("https://x.test/a%20b").mock(
                return_value=httpx.Response(200, text="spaced")
            )
            assert await Fetcher(client).fetch("https://x.test/a b") == "spaced"
        assert route.called
