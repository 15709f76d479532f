"""Entry point that wires configuration, Google clients and the orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from gsc_indexer.config import ConfigurationError, Settings, get_settings
from gsc_indexer.services.google_api_factory import (
    GoogleAPIClientFactory,
    GoogleClientSettings,
)
from gsc_indexer.services.google_credentials import (
    ServiceAccountCredential,
    credential_from_key,
    load_service_account_credentials,
    obtain_access_token,
)
from gsc_indexer.services.google_search_console_client import verify_site_ownership
from gsc_indexer.services.indexing_orchestrator import (
    IndexingOrchestrator,
    IndexingRunResult,
)
from gsc_indexer.services.session_pool import (
    AccountSession,
    SessionPool,
    TokenProvider,
)
from gsc_indexer.services.sitemap_fetcher import build_sitemap_http_client
from gsc_indexer.services.site_urls import convert_to_site_url
from gsc_indexer.services.status_cache import StatusCache
from gsc_indexer.services.url_discovery import list_sitemaps_and_pages
from gsc_indexer.utils.console import ConsoleReporter

_LOGGER = logging.getLogger("gsc_indexer.main")


@dataclass(slots=True)
class IndexOptions:
    """Per-run overrides; unset fields fall back to settings."""

    client_email: str | None = None
    private_key: str | None = None
    path: str | Path | None = None
    urls: list[str] | None = None
    rpm_retry: bool | None = None


def _resolve_options(options: IndexOptions, settings: Settings) -> IndexOptions:
    private_key = options.private_key
    if private_key is None and settings.GIS_PRIVATE_KEY is not None:
        private_key = settings.GIS_PRIVATE_KEY.get_secret_value()

    return IndexOptions(
        client_email=options.client_email or settings.GIS_CLIENT_EMAIL,
        private_key=private_key,
        path=options.path or settings.GIS_PATH,
        urls=options.urls if options.urls is not None else settings.custom_urls,
        rpm_retry=(
            options.rpm_retry
            if options.rpm_retry is not None
            else settings.GIS_QUOTA_RPM_RETRY
        ),
    )


def load_credentials(options: IndexOptions) -> list[ServiceAccountCredential]:
    """Explicit email/key pair wins; otherwise read the key file."""

    if options.client_email and options.private_key:
        return [credential_from_key(options.client_email, options.private_key)]
    return load_service_account_credentials(options.path)


async def index(
    site_or_domain: str,
    options: IndexOptions | None = None,
    *,
    settings: Settings | None = None,
    reporter: ConsoleReporter | None = None,
    client_factory: GoogleAPIClientFactory | None = None,
    token_provider: TokenProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> IndexingRunResult:
    """Check indexing status of a site's pages and request indexing where needed.

    Raises ConfigurationError or IndexingRunError for conditions that should
    end the process with a non-zero status.
    """

    if not site_or_domain or not site_or_domain.strip():
        raise ConfigurationError(
            "Please provide a domain or site URL as the first argument."
        )

    run_settings = settings or get_settings()
    run_options = _resolve_options(options or IndexOptions(), run_settings)
    console = reporter or ConsoleReporter()
    factory = client_factory or GoogleAPIClientFactory(
        settings=GoogleClientSettings(
            timeout_seconds=run_settings.GIS_REQUEST_TIMEOUT_SECONDS,
            rate_limit_wait_seconds=run_settings.GIS_QUOTA_RPM_WAIT_SECONDS,
        )
    )

    async def default_token_provider(credential: ServiceAccountCredential) -> str:
        return await obtain_access_token(
            credential, timeout_seconds=run_settings.GIS_REQUEST_TIMEOUT_SECONDS
        )

    async def site_verifier(access_token: str, site_url: str) -> str:
        return await verify_site_ownership(
            factory.get_client(access_token).search_console, site_url
        )

    credentials = load_credentials(run_options)
    requested_site_url = convert_to_site_url(site_or_domain)
    console.processing_site(requested_site_url)

    pool = await SessionPool.build(
        credentials,
        requested_site_url,
        token_provider=token_provider or default_token_provider,
        site_verifier=site_verifier,
    )
    _LOGGER.info(
        "session_pool_ready",
        extra={"site_url": pool.site_url, "client_email": pool.active.client_email},
    )

    owns_http_client = http_client is None
    sitemap_client = http_client or build_sitemap_http_client(
        timeout_seconds=run_settings.GIS_SITEMAP_TIMEOUT_SECONDS,
        user_agent=run_settings.OUTBOUND_HTTP_USER_AGENT,
    )

    async def page_source(
        session: AccountSession, site_url: str
    ) -> tuple[list[str], list[str]]:
        return await list_sitemaps_and_pages(
            factory.get_client(session.token).search_console,
            site_url,
            http_client=sitemap_client,
        )

    orchestrator = IndexingOrchestrator(
        pool=pool,
        client_factory=factory,
        status_cache=StatusCache.for_site(run_settings.GIS_CACHE_DIR, pool.site_url),
        page_source=page_source,
        reporter=console,
        concurrency=run_settings.GIS_BATCH_CONCURRENCY,
        rate_limit_retries=(
            run_settings.GIS_QUOTA_RPM_RETRIES if run_options.rpm_retry else 0
        ),
    )

    try:
        return await orchestrator.run(run_options.urls)
    finally:
        if owns_http_client:
            await sitemap_client.aclose()


__all__ = ["IndexOptions", "index", "load_credentials"]
