"""Google Search Console API client: sites, sitemaps and URL inspection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol, cast

import google_auth_httplib2  # type: ignore[import-untyped]
import httplib2  # type: ignore[import-untyped]
from google.oauth2.credentials import Credentials as BearerTokenCredentials
from googleapiclient.discovery import build  # type: ignore[import-untyped]
from googleapiclient.errors import HttpError  # type: ignore[import-untyped]

from gsc_indexer.schemas import StatusKind
from gsc_indexer.services.google_errors import (
    GoogleAPIError,
    QuotaExceededError,
    parse_google_http_error,
)
from gsc_indexer.services.site_urls import site_url_variants

DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0
UNVERIFIED_PERMISSION_LEVEL = "siteUnverifiedUser"
_LOGGER = logging.getLogger("gsc_indexer.google_api.search_console")

_COVERAGE_STATE_STATUSES: dict[str, StatusKind] = {
    "submitted and indexed": StatusKind.SUBMITTED_AND_INDEXED,
    "indexed, not submitted in sitemap": StatusKind.SUBMITTED_AND_INDEXED,
    "duplicate without user-selected canonical": (
        StatusKind.DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL
    ),
    "crawled - currently not indexed": StatusKind.CRAWLED_CURRENTLY_NOT_INDEXED,
    "discovered - currently not indexed": StatusKind.DISCOVERED_CURRENTLY_NOT_INDEXED,
    "page with redirect": StatusKind.PAGE_WITH_REDIRECT,
    "url is unknown to google": StatusKind.URL_IS_UNKNOWN_TO_GOOGLE,
}


class SiteAccessError(Exception):
    """Raised when a service account cannot read the requested site."""


@dataclass(slots=True, frozen=True)
class SiteEntry:
    """A Search Console property visible to the authenticated account."""

    site_url: str
    permission_level: str | None


class _GoogleBuildCallable(Protocol):
    def __call__(
        self,
        service_name: str,
        version: str,
        *,
        credentials: Any,
        cache_discovery: bool,
    ) -> Any: ...


def status_from_coverage_state(coverage_state: str | None) -> StatusKind:
    """Map a Search Console coverage state string onto a StatusKind."""

    if coverage_state is None:
        return StatusKind.ERROR

    status = _COVERAGE_STATE_STATUSES.get(coverage_state.strip().casefold())
    if status is None:
        _LOGGER.warning(
            "unmapped_coverage_state",
            extra={"status": coverage_state},
        )
        return StatusKind.ERROR
    return status


def status_from_api_error(error: GoogleAPIError) -> StatusKind:
    """Coerce a failed inspection call into a StatusKind."""

    if error.status_code == 403:
        return StatusKind.FORBIDDEN
    if error.status_code == 429 or isinstance(error, QuotaExceededError):
        return StatusKind.RATE_LIMITED
    return StatusKind.ERROR


class GoogleSearchConsoleClient:
    """Search Console API v1 client bound to one bearer token."""

    def __init__(
        self,
        *,
        access_token: str,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        builder: _GoogleBuildCallable = build,
    ) -> None:
        self._credentials = BearerTokenCredentials(token=access_token)
        self._timeout_seconds = timeout_seconds
        self._builder = builder
        self._service: Any | None = None

    @property
    def _search_console_service(self) -> Any:
        if self._service is None:
            self._service = self._builder(
                "searchconsole",
                "v1",
                credentials=self._credentials,
                cache_discovery=False,
            )
        return self._service

    def _new_http(self) -> Any:
        # httplib2.Http is not thread-safe, so every call gets its own
        return google_auth_httplib2.AuthorizedHttp(
            self._credentials, http=httplib2.Http(timeout=self._timeout_seconds)
        )

    def _execute(self, request: Any, *, operation: str) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], request.execute(http=self._new_http()))
        except HttpError as error:
            raise parse_google_http_error(
                error, operation=operation, service="searchconsole"
            ) from error
        except (httplib2.HttpLib2Error, OSError) as error:
            raise GoogleAPIError(
                f"Transport failure during {operation}: {error}",
                status_code=None,
                reason=error.__class__.__name__,
                details=None,
                operation=operation,
                service="searchconsole",
            ) from error

    def list_sites_sync(self) -> list[SiteEntry]:
        """List the properties the token's account can see."""

        response = self._execute(
            self._search_console_service.sites().list(), operation="sites.list"
        )
        entries = response.get("siteEntry", [])
        return [
            SiteEntry(
                site_url=str(entry["siteUrl"]),
                permission_level=entry.get("permissionLevel"),
            )
            for entry in entries
            if isinstance(entry, dict) and entry.get("siteUrl")
        ]

    def list_sitemaps_sync(self, site_url: str) -> list[str]:
        """Return the sitemap URLs registered for a property."""

        response = self._execute(
            self._search_console_service.sitemaps().list(siteUrl=site_url),
            operation="sitemaps.list",
        )
        sitemaps = response.get("sitemap", [])
        return [
            str(sitemap["path"])
            for sitemap in sitemaps
            if isinstance(sitemap, dict) and sitemap.get("path")
        ]

    def inspect_url_sync(self, url: str, site_url: str) -> StatusKind:
        """Inspect a URL and return its indexing status.

        Remote failures never raise: 403 becomes FORBIDDEN, 429 or quota
        errors become RATE_LIMITED and anything else becomes ERROR.
        """

        try:
            response = self._execute(
                self._search_console_service.urlInspection()
                .index()
                .inspect(body={"inspectionUrl": url, "siteUrl": site_url}),
                operation="urlInspection.index.inspect",
            )
        except GoogleAPIError as error:
            status = status_from_api_error(error)
            _LOGGER.info(
                "url_inspection_failed",
                extra={
                    "url": url,
                    "site_url": site_url,
                    "status": status.value,
                    "status_code": error.status_code,
                    "error_message": error.message,
                },
            )
            return status

        inspection_result = cast(dict[str, Any], response.get("inspectionResult", {}))
        index_status_result = cast(
            dict[str, Any], inspection_result.get("indexStatusResult", {})
        )
        return status_from_coverage_state(index_status_result.get("coverageState"))

    async def list_sites(self) -> list[SiteEntry]:
        return await asyncio.to_thread(self.list_sites_sync)

    async def list_sitemaps(self, site_url: str) -> list[str]:
        return await asyncio.to_thread(self.list_sitemaps_sync, site_url)

    async def inspect_url(self, url: str, site_url: str) -> StatusKind:
        return await asyncio.to_thread(self.inspect_url_sync, url, site_url)


class _SiteListingClient(Protocol):
    async def list_sites(self) -> list[SiteEntry]: ...


async def verify_site_ownership(client: _SiteListingClient, site_url: str) -> str:
    """Return the form of ``site_url`` that the account has verified access to.

    The input itself is tried first, then its http, https and sc-domain
    variants. Raises SiteAccessError when none of them is accessible.
    """

    try:
        sites = await client.list_sites()
    except GoogleAPIError as error:
        raise SiteAccessError(
            f"Unable to list Search Console sites: {error.message}"
        ) from error

    accessible_sites = {
        site.site_url
        for site in sites
        if site.permission_level != UNVERIFIED_PERMISSION_LEVEL
    }
    for candidate in site_url_variants(site_url):
        if candidate in accessible_sites:
            return candidate

    raise SiteAccessError(f"This service account doesn't have access to {site_url}")


__all__ = [
    "GoogleSearchConsoleClient",
    "SiteAccessError",
    "SiteEntry",
    "status_from_api_error",
    "status_from_coverage_state",
    "verify_site_ownership",
]
