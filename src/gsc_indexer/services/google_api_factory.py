"""Factory for token-scoped Google API client bundles."""

from __future__ import annotations

from dataclasses import dataclass

from gsc_indexer.services.google_indexing_client import (
    DEFAULT_RATE_LIMIT_WAIT_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    GoogleIndexingClient,
)
from gsc_indexer.services.google_search_console_client import (
    GoogleSearchConsoleClient,
)


@dataclass(slots=True, frozen=True)
class GoogleClientSettings:
    """Transport settings shared by every client the factory builds."""

    timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    rate_limit_wait_seconds: float = DEFAULT_RATE_LIMIT_WAIT_SECONDS


class GoogleAPIClients:
    """Lazy Google API clients for a single access token."""

    def __init__(self, *, access_token: str, settings: GoogleClientSettings) -> None:
        self._access_token = access_token
        self._settings = settings
        self._indexing_client: GoogleIndexingClient | None = None
        self._search_console_client: GoogleSearchConsoleClient | None = None

    @property
    def indexing(self) -> GoogleIndexingClient:
        """Get (or lazily initialize) the Indexing API client."""

        if self._indexing_client is None:
            self._indexing_client = GoogleIndexingClient(
                access_token=self._access_token,
                timeout_seconds=self._settings.timeout_seconds,
                rate_limit_wait_seconds=self._settings.rate_limit_wait_seconds,
            )
        return self._indexing_client

    @property
    def search_console(self) -> GoogleSearchConsoleClient:
        """Get (or lazily initialize) the Search Console client."""

        if self._search_console_client is None:
            self._search_console_client = GoogleSearchConsoleClient(
                access_token=self._access_token,
                timeout_seconds=self._settings.timeout_seconds,
            )
        return self._search_console_client


class GoogleAPIClientFactory:
    """Cache of client bundles keyed by access token.

    A refreshed token gets a fresh bundle, so rotation never reuses a client
    bound to an expired token.
    """

    def __init__(self, *, settings: GoogleClientSettings | None = None) -> None:
        self._settings = settings or GoogleClientSettings()
        self._clients: dict[str, GoogleAPIClients] = {}

    def get_client(self, access_token: str) -> GoogleAPIClients:
        """Return a cached client bundle for the token."""

        cached_client = self._clients.get(access_token)
        if cached_client is not None:
            return cached_client

        client_bundle = GoogleAPIClients(
            access_token=access_token, settings=self._settings
        )
        self._clients[access_token] = client_bundle
        return client_bundle


__all__ = [
    "GoogleAPIClientFactory",
    "GoogleAPIClients",
    "GoogleClientSettings",
]
