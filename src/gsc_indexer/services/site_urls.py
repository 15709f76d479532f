"""Search Console property naming and page URL normalization helpers."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

DOMAIN_PROPERTY_PREFIX = "sc-domain:"
_HTTP_PREFIXES = ("http://", "https://")

_logger = logging.getLogger("gsc_indexer.site_urls")


def convert_to_site_url(site_or_domain: str) -> str:
    """Turn user input into a Search Console property identifier.

    URLs become URL-prefix properties with a trailing slash; bare domains
    become ``sc-domain:`` domain properties.
    """

    normalized_input = site_or_domain.strip()
    if normalized_input.startswith(_HTTP_PREFIXES):
        if normalized_input.endswith("/"):
            return normalized_input
        return f"{normalized_input}/"
    if normalized_input.startswith(DOMAIN_PROPERTY_PREFIX):
        return normalized_input
    return f"{DOMAIN_PROPERTY_PREFIX}{normalized_input.rstrip('/')}"


def _domain_of(site_url: str) -> str:
    if site_url.startswith(DOMAIN_PROPERTY_PREFIX):
        return site_url[len(DOMAIN_PROPERTY_PREFIX) :].strip("/")
    return urlsplit(site_url).netloc


def _swap_scheme(site_url: str, scheme: str) -> str:
    _, _, rest = site_url.partition("://")
    return f"{scheme}://{rest}"


def site_url_variants(site_url: str) -> list[str]:
    """Return the property forms to try during ownership verification."""

    domain = _domain_of(site_url)
    if site_url.startswith("https://"):
        variants = [site_url, _swap_scheme(site_url, "http")]
    elif site_url.startswith("http://"):
        variants = [site_url, _swap_scheme(site_url, "https")]
    elif site_url.startswith(DOMAIN_PROPERTY_PREFIX):
        variants = [site_url, f"http://{domain}/", f"https://{domain}/"]
    else:
        raise ValueError(f"Unknown site URL format: {site_url!r}")

    if not site_url.startswith(DOMAIN_PROPERTY_PREFIX):
        variants.append(f"{DOMAIN_PROPERTY_PREFIX}{domain}")

    return list(dict.fromkeys(variants))


def cache_file_name(site_url: str) -> str:
    """Deterministic cache document name for a property."""

    file_stem = (
        site_url.replace("http://", "http_")
        .replace("https://", "https_")
        .replace("/", "_")
    )
    return f"{file_stem}.json"


def _belongs_to_site(url: str, site_url: str) -> bool:
    if site_url.startswith(DOMAIN_PROPERTY_PREFIX):
        domain = _domain_of(site_url).lower()
        host = (urlsplit(url).hostname or "").lower()
        return host == domain or host.endswith(f".{domain}")
    return url.startswith(site_url) or f"{url}/" == site_url


def normalize_custom_urls(site_url: str, urls: list[str]) -> list[str]:
    """Expand user supplied page references into absolute URLs of the property.

    Accepts full URLs, ``/relative`` paths, ``relative`` paths and
    scheme-less ``domain/path`` forms. URLs outside the property are dropped
    with a warning; duplicates keep their first position.
    """

    protocol = "http://" if site_url.startswith("http://") else "https://"
    if site_url.startswith(DOMAIN_PROPERTY_PREFIX):
        base = _domain_of(site_url)
    else:
        base = site_url.partition("://")[2].rstrip("/")

    normalized_urls: list[str] = []
    for raw_url in urls:
        url = raw_url.strip()
        if not url:
            continue

        if url.startswith(_HTTP_PREFIXES):
            absolute_url = url
        elif url.startswith("/"):
            absolute_url = f"{protocol}{base}{url}"
        elif url.startswith(base):
            absolute_url = f"{protocol}{url}"
        else:
            absolute_url = f"{protocol}{base}/{url}"

        if not _belongs_to_site(absolute_url, site_url):
            _logger.warning(
                "custom_url_outside_site",
                extra={"url": absolute_url, "site_url": site_url},
            )
            continue

        normalized_urls.append(absolute_url)

    return list(dict.fromkeys(normalized_urls))


__all__ = [
    "DOMAIN_PROPERTY_PREFIX",
    "cache_file_name",
    "convert_to_site_url",
    "normalize_custom_urls",
    "site_url_variants",
]
