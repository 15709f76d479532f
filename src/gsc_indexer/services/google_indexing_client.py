"""Google Indexing API v3 client with sync and async wrappers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import google_auth_httplib2  # type: ignore[import-untyped]
import httplib2  # type: ignore[import-untyped]
from google.oauth2.credentials import Credentials as BearerTokenCredentials
from googleapiclient.discovery import build  # type: ignore[import-untyped]
from googleapiclient.errors import HttpError  # type: ignore[import-untyped]

from gsc_indexer.services.google_errors import (
    AuthenticationError,
    GoogleAPIError,
    InvalidURLError,
    NotFoundError,
    QuotaExceededError,
    parse_google_http_error,
)

URL_UPDATED = "URL_UPDATED"
HTTP_OK = 200
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500
TRANSPORT_FAILURE_STATUS = HTTP_INTERNAL_SERVER_ERROR
DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0
DEFAULT_RATE_LIMIT_WAIT_SECONDS = 60.0
_LOGGER = logging.getLogger("gsc_indexer.google_api.indexing")


class _GoogleBuildCallable(Protocol):
    def __call__(
        self,
        service_name: str,
        version: str,
        *,
        credentials: Any,
        cache_discovery: bool,
    ) -> Any: ...


class GoogleIndexingClient:
    """Indexing API client bound to one bearer token.

    Calls return the HTTP status code of the remote response instead of
    raising, since callers branch on 403/404/429 directly.
    """

    def __init__(
        self,
        *,
        access_token: str,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        rate_limit_wait_seconds: float = DEFAULT_RATE_LIMIT_WAIT_SECONDS,
        builder: _GoogleBuildCallable = build,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._credentials = BearerTokenCredentials(token=access_token)
        self._timeout_seconds = timeout_seconds
        self._rate_limit_wait_seconds = rate_limit_wait_seconds
        self._builder = builder
        self._sleep = sleep
        self._service: Any | None = None

    @property
    def _indexing_service(self) -> Any:
        if self._service is None:
            self._service = self._builder(
                "indexing",
                "v3",
                credentials=self._credentials,
                cache_discovery=False,
            )
        return self._service

    def _new_http(self) -> Any:
        return google_auth_httplib2.AuthorizedHttp(
            self._credentials, http=httplib2.Http(timeout=self._timeout_seconds)
        )

    def _execute_for_status(self, request: Any, *, operation: str, url: str) -> int:
        try:
            request.execute(http=self._new_http())
        except HttpError as error:
            parsed_error = parse_google_http_error(
                error, operation=operation, service="indexing"
            )
            _log_failed_request(parsed_error, url=url)
            return parsed_error.status_code or TRANSPORT_FAILURE_STATUS
        except (httplib2.HttpLib2Error, OSError) as error:
            _LOGGER.warning(
                "google_api_transport_error",
                extra={
                    "service": "indexing",
                    "operation": operation,
                    "url": url,
                    "error_type": error.__class__.__name__,
                    "error_message": str(error),
                },
            )
            return TRANSPORT_FAILURE_STATUS
        return HTTP_OK

    def get_metadata_sync(self, url: str) -> int:
        """Probe the URL notification metadata; 404 means never submitted."""

        return self._execute_for_status(
            self._indexing_service.urlNotifications().getMetadata(url=url),
            operation="urlNotifications.getMetadata",
            url=url,
        )

    def request_indexing_sync(self, url: str) -> int:
        """Publish a URL_UPDATED notification for the URL."""

        return self._execute_for_status(
            self._indexing_service.urlNotifications().publish(
                body={"url": url, "type": URL_UPDATED}
            ),
            operation="urlNotifications.publish",
            url=url,
        )

    async def get_metadata(self, url: str, *, retries_on_rate_limit: int = 0) -> int:
        """Async metadata probe, waiting out per-minute rate limits if allowed."""

        remaining_retries = retries_on_rate_limit
        while True:
            status_code = await asyncio.to_thread(self.get_metadata_sync, url)
            if status_code != HTTP_TOO_MANY_REQUESTS or remaining_retries <= 0:
                return status_code

            _LOGGER.warning(
                "rate_limit_wait",
                extra={
                    "service": "indexing",
                    "operation": "urlNotifications.getMetadata",
                    "url": url,
                    "attempt": retries_on_rate_limit - remaining_retries + 1,
                },
            )
            remaining_retries -= 1
            await self._sleep(self._rate_limit_wait_seconds)

    async def request_indexing(self, url: str) -> int:
        return await asyncio.to_thread(self.request_indexing_sync, url)


_FAILURE_EVENTS: tuple[tuple[type[GoogleAPIError], str], ...] = (
    (QuotaExceededError, "indexing_api_rate_limited"),
    (AuthenticationError, "indexing_api_forbidden"),
    (InvalidURLError, "indexing_api_invalid_url"),
)


def _log_failed_request(error: GoogleAPIError, *, url: str) -> None:
    # a 404 from getMetadata just means the URL was never submitted
    if isinstance(error, NotFoundError):
        return

    event = next(
        (name for kind, name in _FAILURE_EVENTS if isinstance(error, kind)),
        "indexing_api_error",
    )
    _LOGGER.warning(
        event,
        extra={
            "service": error.service,
            "operation": error.operation,
            "url": url,
            "status_code": error.status_code,
            "error_message": error.message,
        },
    )


__all__ = [
    "GoogleIndexingClient",
    "HTTP_FORBIDDEN",
    "HTTP_NOT_FOUND",
    "HTTP_OK",
    "HTTP_TOO_MANY_REQUESTS",
    "TRANSPORT_FAILURE_STATUS",
    "URL_UPDATED",
]
