"""Page discovery from the sitemaps registered in Search Console."""

from __future__ import annotations

import logging
from typing import Final, Protocol

import httpx

from gsc_indexer.services.sitemap_fetcher import SitemapFetchError, fetch_sitemap
from gsc_indexer.services.sitemap_parser import (
    SitemapKind,
    SitemapParserError,
    parse_sitemap,
)

DEFAULT_MAX_DEPTH: Final[int] = 5

_logger = logging.getLogger("gsc_indexer.sitemap.discovery")


class _SitemapListingClient(Protocol):
    async def list_sitemaps(self, site_url: str) -> list[str]: ...


async def collect_sitemap_pages(
    client: httpx.AsyncClient,
    sitemap_url: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    visited: set[str] | None = None,
) -> list[str]:
    """Return page URLs of a sitemap, following nested sitemap indexes.

    Unreachable or malformed sitemaps are logged and contribute no pages.
    """

    seen = visited if visited is not None else set()
    pages: list[str] = []
    await _collect(
        client, sitemap_url, depth=0, max_depth=max_depth, seen=seen, pages=pages
    )
    return pages


async def _collect(
    client: httpx.AsyncClient,
    sitemap_url: str,
    *,
    depth: int,
    max_depth: int,
    seen: set[str],
    pages: list[str],
) -> None:
    if sitemap_url in seen:
        return
    seen.add(sitemap_url)

    try:
        document = parse_sitemap(await fetch_sitemap(client, sitemap_url))
    except (SitemapFetchError, SitemapParserError) as exc:
        _logger.warning(
            "sitemap_skipped",
            extra={"url": sitemap_url, "error_message": str(exc)},
        )
        return

    if document.kind is SitemapKind.URLSET:
        pages.extend(document.locations)
        return

    if depth >= max_depth:
        _logger.warning("sitemap_max_depth_reached", extra={"url": sitemap_url})
        return

    for child_url in document.locations:
        await _collect(
            client,
            child_url,
            depth=depth + 1,
            max_depth=max_depth,
            seen=seen,
            pages=pages,
        )


async def list_sitemaps_and_pages(
    search_console: _SitemapListingClient,
    site_url: str,
    *,
    http_client: httpx.AsyncClient,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[list[str], list[str]]:
    """List the property's sitemaps and the unique pages they contain."""

    sitemaps = await search_console.list_sitemaps(site_url)
    visited: set[str] = set()
    pages: list[str] = []
    for sitemap_url in sitemaps:
        pages.extend(
            await collect_sitemap_pages(
                http_client, sitemap_url, max_depth=max_depth, visited=visited
            )
        )

    return sitemaps, list(dict.fromkeys(pages))


__all__ = ["collect_sitemap_pages", "list_sitemaps_and_pages"]
