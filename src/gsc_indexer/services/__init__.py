"""Service layer for gsc-indexer."""

from gsc_indexer import __version__
from gsc_indexer.services.batch_runner import run_in_batches
from gsc_indexer.services.google_api_factory import (
    GoogleAPIClientFactory,
    GoogleAPIClients,
    GoogleClientSettings,
)
from gsc_indexer.services.google_credentials import (
    GoogleCredentialsError,
    ServiceAccountCredential,
    credential_from_key,
    load_service_account_credentials,
    obtain_access_token,
)
from gsc_indexer.services.google_errors import (
    AuthenticationError,
    GoogleAPIError,
    InvalidURLError,
    NotFoundError,
    QuotaExceededError,
    parse_google_http_error,
)
from gsc_indexer.services.google_indexing_client import GoogleIndexingClient
from gsc_indexer.services.google_search_console_client import (
    GoogleSearchConsoleClient,
    SiteAccessError,
    verify_site_ownership,
)
from gsc_indexer.services.indexing_orchestrator import (
    IndexingOrchestrator,
    IndexingOutcome,
    IndexingRunResult,
    NoPageSourceError,
    UrlIndexingResult,
)
from gsc_indexer.services.session_pool import (
    AccountSession,
    IndexingRunError,
    NoUsableServiceAccountError,
    SessionPool,
)
from gsc_indexer.services.site_urls import (
    cache_file_name,
    convert_to_site_url,
    normalize_custom_urls,
    site_url_variants,
)
from gsc_indexer.services.status_cache import CACHE_TIMEOUT, StatusCache, should_recheck
from gsc_indexer.services.url_discovery import list_sitemaps_and_pages

__all__ = [
    "AccountSession",
    "AuthenticationError",
    "CACHE_TIMEOUT",
    "GoogleAPIClientFactory",
    "GoogleAPIClients",
    "GoogleAPIError",
    "GoogleClientSettings",
    "GoogleCredentialsError",
    "GoogleIndexingClient",
    "GoogleSearchConsoleClient",
    "IndexingOrchestrator",
    "IndexingOutcome",
    "IndexingRunError",
    "IndexingRunResult",
    "InvalidURLError",
    "NoPageSourceError",
    "NoUsableServiceAccountError",
    "NotFoundError",
    "QuotaExceededError",
    "ServiceAccountCredential",
    "SessionPool",
    "SiteAccessError",
    "StatusCache",
    "UrlIndexingResult",
    "__version__",
    "cache_file_name",
    "convert_to_site_url",
    "credential_from_key",
    "list_sitemaps_and_pages",
    "load_service_account_credentials",
    "normalize_custom_urls",
    "obtain_access_token",
    "parse_google_http_error",
    "run_in_batches",
    "should_recheck",
    "site_url_variants",
    "verify_site_ownership",
]
