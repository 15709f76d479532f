"""Async sitemap downloads with retry and gzip support."""

from __future__ import annotations

import asyncio
import gzip
import logging
import zlib
from typing import Final
from urllib.parse import urlsplit

import httpx

DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_MAX_REDIRECTS: Final[int] = 5
DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_BACKOFF_BASE_SECONDS: Final[float] = 0.5
TRANSIENT_HTTP_STATUS_CODES: Final[frozenset[int]] = frozenset(
    {408, 425, 429, 500, 502, 503, 504}
)
SITEMAP_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}
_GZIP_MAGIC_BYTES: Final[bytes] = b"\x1f\x8b"

_logger = logging.getLogger("gsc_indexer.sitemap.fetcher")


class SitemapFetchError(Exception):
    """Base exception for sitemap fetching failures."""


class SitemapFetchHTTPError(SitemapFetchError):
    """Raised when sitemap fetch receives an unrecoverable HTTP status."""

    def __init__(self, url: str, status_code: int) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch sitemap {url!r}: HTTP {status_code}")


def _retry_delay_seconds(attempt_index: int, backoff_base_seconds: float) -> float:
    return float(backoff_base_seconds * (2**attempt_index))


def _sanitize_sitemap_url(url: str) -> str:
    split_url = urlsplit(url)
    host = split_url.netloc.rsplit("@", maxsplit=1)[-1]
    return f"{host}{split_url.path or '/'}"


def _maybe_decompress(url: str, content: bytes) -> bytes:
    # httpx already decodes Content-Encoding: gzip; this handles .xml.gz files
    if not content.startswith(_GZIP_MAGIC_BYTES):
        return content

    try:
        return gzip.decompress(content)
    except (OSError, EOFError, zlib.error) as exc:
        raise SitemapFetchError(f"Failed to decompress sitemap {url!r}") from exc


def build_sitemap_http_client(
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str = "gsc-indexer",
) -> httpx.AsyncClient:
    """Create the shared HTTP client used for sitemap downloads."""

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        max_redirects=DEFAULT_MAX_REDIRECTS,
        headers={"User-Agent": user_agent, **SITEMAP_HEADERS},
    )


async def fetch_sitemap(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS,
) -> bytes:
    """Download a sitemap, retrying timeouts, network errors and transient statuses."""

    if max_retries < 0:
        raise ValueError("max_retries must be zero or greater")

    if backoff_base_seconds < 0:
        raise ValueError("backoff_base_seconds must be zero or greater")

    for attempt in range(max_retries + 1):
        try:
            response = await client.get(url)
            response.raise_for_status()
            return _maybe_decompress(url, response.content)
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            is_transient_status = status_code in TRANSIENT_HTTP_STATUS_CODES
            _logger.warning(
                "sitemap_fetch_http_status",
                extra={
                    "url": _sanitize_sitemap_url(url),
                    "status_code": status_code,
                    "attempt": attempt + 1,
                },
            )
            if not is_transient_status or attempt == max_retries:
                raise SitemapFetchHTTPError(url=url, status_code=status_code) from exc
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            _logger.warning(
                "sitemap_fetch_network_error",
                extra={
                    "url": _sanitize_sitemap_url(url),
                    "attempt": attempt + 1,
                    "error_type": exc.__class__.__name__,
                },
            )
            if attempt == max_retries:
                raise SitemapFetchError(
                    f"Network error fetching sitemap {url!r} after "
                    f"{max_retries + 1} attempts: {exc}"
                ) from exc
        except httpx.HTTPError as exc:
            raise SitemapFetchError(
                f"HTTP error while fetching sitemap {url!r}: {exc}"
            ) from exc

        await asyncio.sleep(
            _retry_delay_seconds(
                attempt_index=attempt,
                backoff_base_seconds=backoff_base_seconds,
            )
        )

    raise SitemapFetchError(f"Unexpected failure while fetching sitemap {url!r}")


__all__ = [
    "SitemapFetchError",
    "SitemapFetchHTTPError",
    "build_sitemap_http_client",
    "fetch_sitemap",
]
