"""Tests for services.fetcher: URL validation and PageFetcher over a mock transport."""

import asyncio

import httpx
import pytest
from pydantic import SecretStr

from a11y_audit.models.settings import BasicAuthCredentials
from a11y_audit.services.errors import FetchError
from a11y_audit.services.fetcher import PageFetcher, validate_url


def _fetch(handler, url="https://example.test/", auth=None):
    async def run():
        async with PageFetcher(auth=auth, allow_private=True) as fetcher:
            await fetcher._client.aclose()
            fetcher._client = httpx.AsyncClient(
                transport=httpx.MockTransport(handler), auth=fetcher._client.auth
            )
            return await fetcher.fetch(url)

    return asyncio.run(run())


class TestValidateUrl:
    def test_rejects_non_http_scheme(self):
        with pytest.raises(ValueError):
            validate_url("ftp://example.test/")

    def test_rejects_missing_host(self):
        with pytest.raises(ValueError):
            validate_url("https:///path")

    def test_rejects_loopback(self):
        with pytest.raises(ValueError):
            validate_url("http://127.0.0.1/")

    def test_private_allowed_when_enabled(self):
        validate_url("http://127.0.0.1/", allow_private=True)


class TestPageFetcher:
    def test_returns_body(self):
        page = _fetch(lambda request: httpx.Response(200, text="<a href='/a'>a</a>"))
        assert page.html == "<a href='/a'>a</a>"
        assert page.url == "https://example.test/"

    def test_control_character_in_url_raises_fetch_error(self):
        with pytest.raises(FetchError):
            _fetch(lambda request: httpx.Response(200), url="https://example.test/bad\x01x")

    def test_non_2xx_raises_fetch_error(self):
        with pytest.raises(FetchError) as info:
            _fetch(lambda request: httpx.Response(404))
        assert "404" in str(info.value)

    def test_network_error_raises_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError):
            _fetch(handler)

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "/new"})
            return httpx.Response(200, text="moved")

        page = _fetch(handler, url="https://example.test/old")
        assert page.html == "moved"
        assert page.url == "https://example.test/new"

    def test_redirect_loop_raises(self):
        with pytest.raises(FetchError):
            _fetch(lambda request: httpx.Response(302, headers={"location": "/"}))

    def test_sends_basic_auth(self):
        seen = {}

        def handler(request):
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(200, text="ok")

        auth = BasicAuthCredentials(username="user", password=SecretStr("secret"))
        _fetch(handler, auth=auth)
        assert seen["authorization"] == "Basic dXNlcjpzZWNyZXQ="
