"""Tests for sitemap HTTP fetching behavior."""

from __future__ import annotations

import gzip

import httpx
import pytest

from gsc_indexer.services.sitemap_fetcher import (
    SitemapFetchError,
    SitemapFetchHTTPError,
    build_sitemap_http_client,
    fetch_sitemap,
)

_URLSET = b"<urlset><url><loc>https://example.com/</loc></url></urlset>"


def _mock_client(handler: httpx.MockTransport) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=handler, headers={"User-Agent": "TestAgent/1.0"})


@pytest.mark.asyncio
async def test_fetch_sitemap_retries_transient_status() -> None:
    request_headers: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        request_headers.append(request.headers)
        if len(request_headers) == 1:
            return httpx.Response(503)
        return httpx.Response(200, content=_URLSET)

    async with _mock_client(httpx.MockTransport(handler)) as client:
        content = await fetch_sitemap(
            client,
            "https://example.com/sitemap.xml",
            max_retries=2,
            backoff_base_seconds=0.0,
        )

    assert content == _URLSET
    assert len(request_headers) == 2
    assert request_headers[0]["user-agent"] == "TestAgent/1.0"


@pytest.mark.asyncio
async def test_fetch_sitemap_does_not_retry_permanent_status() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(404)

    async with _mock_client(httpx.MockTransport(handler)) as client:
        with pytest.raises(SitemapFetchHTTPError) as error_info:
            await fetch_sitemap(
                client,
                "https://example.com/missing.xml",
                max_retries=3,
                backoff_base_seconds=0.0,
            )

    assert error_info.value.status_code == 404
    assert calls == ["https://example.com/missing.xml"]


@pytest.mark.asyncio
async def test_fetch_sitemap_raises_after_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _mock_client(httpx.MockTransport(handler)) as client:
        with pytest.raises(SitemapFetchError, match="after 2 attempts"):
            await fetch_sitemap(
                client,
                "https://example.com/sitemap.xml",
                max_retries=1,
                backoff_base_seconds=0.0,
            )


@pytest.mark.asyncio
async def test_fetch_sitemap_decompresses_gzip_files() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(
            200,
            headers={"content-type": "application/x-gzip"},
            content=gzip.compress(_URLSET),
        )

    async with _mock_client(httpx.MockTransport(handler)) as client:
        content = await fetch_sitemap(
            client, "https://example.com/sitemap.xml.gz", max_retries=0
        )

    assert content == _URLSET


@pytest.mark.asyncio
async def test_fetch_sitemap_rejects_corrupt_gzip_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(200, content=b"\x1f\x8bnot-really-gzip")

    async with _mock_client(httpx.MockTransport(handler)) as client:
        with pytest.raises(SitemapFetchError, match="decompress"):
            await fetch_sitemap(
                client, "https://example.com/sitemap.xml.gz", max_retries=0
            )


@pytest.mark.asyncio
async def test_fetch_sitemap_validates_retry_arguments() -> None:
    async with build_sitemap_http_client(user_agent="TestAgent/1.0") as client:
        assert client.headers["user-agent"] == "TestAgent/1.0"
        with pytest.raises(ValueError):
            await fetch_sitemap(client, "https://example.com/sitemap.xml", max_retries=-1)
