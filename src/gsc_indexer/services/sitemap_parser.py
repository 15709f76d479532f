"""Streaming sitemap XML parsing for URL sets and sitemap indexes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from urllib.parse import urlsplit

from lxml import etree  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)


class SitemapParserError(Exception):
    """Base exception for sitemap parsing failures."""


class SitemapXMLParseError(SitemapParserError):
    """Raised when sitemap XML cannot be parsed."""


class SitemapKind(str, Enum):
    """Root element type of a sitemap document."""

    URLSET = "urlset"
    SITEMAP_INDEX = "sitemapindex"


@dataclass(slots=True, frozen=True)
class SitemapDocument:
    """Parsed sitemap: page URLs for a URL set, child sitemaps for an index."""

    kind: SitemapKind
    locations: list[str]


def _normalize_tag_name(tag_name: str) -> str:
    if tag_name.startswith("{"):
        _, _, local_name = tag_name.partition("}")
        return local_name.lower()

    _, _, local_name = tag_name.rpartition(":")
    if local_name:
        return local_name.lower()

    return tag_name.lower()


def _to_xml_bytes(xml_content: bytes | str) -> bytes:
    if isinstance(xml_content, bytes):
        xml_bytes = xml_content
    else:
        xml_bytes = xml_content.encode("utf-8")

    if not xml_bytes.strip():
        raise SitemapXMLParseError("Sitemap XML content is empty")

    return xml_bytes.lstrip()


def _is_valid_http_url(url: str) -> bool:
    parsed_url = urlsplit(url)
    return parsed_url.scheme in {"http", "https"} and bool(parsed_url.netloc)


def _release_element_memory(element: etree._Element) -> None:
    element.clear()
    parent = element.getparent()
    if parent is None:
        return

    while element.getprevious() is not None:
        del parent[0]


def _entry_location(element: etree._Element) -> str | None:
    for child in element:
        if not isinstance(child.tag, str):
            continue
        if _normalize_tag_name(child.tag) == "loc" and child.text:
            return child.text.strip() or None
    return None


def parse_sitemap(xml_content: bytes | str) -> SitemapDocument:
    """Parse a sitemap URL set or sitemap index and collect its <loc> values."""

    xml_stream = BytesIO(_to_xml_bytes(xml_content))
    kind: SitemapKind | None = None
    locations: list[str] = []

    try:
        context = etree.iterparse(
            xml_stream,
            events=("start", "end"),
            resolve_entities=False,
            no_network=True,
            recover=False,
        )

        for event, element in context:
            if not isinstance(element.tag, str):
                continue

            tag_name = _normalize_tag_name(element.tag)
            if event == "start":
                if kind is None:
                    try:
                        kind = SitemapKind(tag_name)
                    except ValueError as exc:
                        raise SitemapXMLParseError(
                            f"Unexpected sitemap root element <{tag_name}>"
                        ) from exc
                continue

            if tag_name not in {"url", "sitemap"}:
                continue

            loc = _entry_location(element)
            _release_element_memory(element)
            if loc is None:
                logger.warning("Skipping sitemap entry without <loc> value")
                continue
            if not _is_valid_http_url(loc):
                logger.warning("Skipping malformed sitemap URL %r", loc)
                continue
            locations.append(loc)
    except etree.XMLSyntaxError as exc:
        raise SitemapXMLParseError(f"Invalid sitemap XML: {exc}") from exc

    if kind is None:
        raise SitemapXMLParseError("Sitemap XML has no root element")

    return SitemapDocument(kind=kind, locations=locations)


__all__ = [
    "SitemapDocument",
    "SitemapKind",
    "SitemapParserError",
    "SitemapXMLParseError",
    "parse_sitemap",
]
