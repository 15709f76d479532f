"""Status-check and indexing-request phases driven over a session pool."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Protocol, TypeVar

from gsc_indexer.schemas import (
    THROTTLE_STATUSES,
    StatusKind,
    empty_status_partition,
    is_indexable,
)
from gsc_indexer.services.batch_runner import DEFAULT_CONCURRENCY, run_in_batches
from gsc_indexer.services.google_errors import GoogleAPIError
from gsc_indexer.services.google_indexing_client import (
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_TOO_MANY_REQUESTS,
)
from gsc_indexer.services.session_pool import (
    AccountSession,
    IndexingRunError,
    SessionPool,
)
from gsc_indexer.services.site_urls import normalize_custom_urls
from gsc_indexer.services.status_cache import StatusCache
from gsc_indexer.utils.console import ConsoleReporter

R = TypeVar("R")

THROTTLE_HTTP_STATUSES = frozenset({HTTP_FORBIDDEN, HTTP_TOO_MANY_REQUESTS})
HTTP_ERROR_THRESHOLD = 400

_LOGGER = logging.getLogger("gsc_indexer.orchestrator")


class NoPageSourceError(IndexingRunError):
    """Raised when no explicit URLs were given and the site has no sitemaps."""


class IndexingOutcome(str, Enum):
    """What happened to a page during the indexing-request phase."""

    REQUESTED = "REQUESTED"
    ALREADY_REQUESTED = "ALREADY_REQUESTED"
    FAILED = "FAILED"
    EXHAUSTED = "EXHAUSTED"


@dataclass(slots=True, frozen=True)
class RotationResult(Generic[R]):
    """Last result of a rotated call and how many rotations it took."""

    value: R
    rotations: int
    exhausted: bool


@dataclass(slots=True, frozen=True)
class UrlIndexingResult:
    """Per-URL outcome of the indexing-request phase."""

    url: str
    outcome: IndexingOutcome
    status_code: int | None
    rotations: int


@dataclass(slots=True, frozen=True)
class IndexingRunResult:
    """Everything an indexing run produced, for callers and reporting."""

    site_url: str
    pages: list[str]
    pages_per_status: dict[StatusKind, list[str]]
    indexable_pages: list[str]
    indexing_results: list[UrlIndexingResult] = field(default_factory=list)

    def outcome_counts(self) -> dict[IndexingOutcome, int]:
        counts = {outcome: 0 for outcome in IndexingOutcome}
        for result in self.indexing_results:
            counts[result.outcome] += 1
        return counts


@dataclass(slots=True, frozen=True)
class _IndexingAttempt:
    probe_status: int
    request_status: int | None = None

    @property
    def throttled(self) -> bool:
        return (
            self.probe_status in THROTTLE_HTTP_STATUSES
            or self.request_status in THROTTLE_HTTP_STATUSES
        )


class _SearchConsoleClient(Protocol):
    async def inspect_url(self, url: str, site_url: str) -> StatusKind: ...


class _IndexingClient(Protocol):
    async def get_metadata(
        self, url: str, *, retries_on_rate_limit: int = 0
    ) -> int: ...

    async def request_indexing(self, url: str) -> int: ...


class _ClientBundle(Protocol):
    @property
    def search_console(self) -> _SearchConsoleClient: ...

    @property
    def indexing(self) -> _IndexingClient: ...


class _ClientFactory(Protocol):
    def get_client(self, access_token: str) -> _ClientBundle: ...


PageSource = Callable[[AccountSession, str], Awaitable[tuple[list[str], list[str]]]]


class IndexingOrchestrator:
    """Runs page resolution, status checks and indexing requests for one site."""

    def __init__(
        self,
        *,
        pool: SessionPool,
        client_factory: _ClientFactory,
        status_cache: StatusCache,
        page_source: PageSource,
        reporter: ConsoleReporter | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        rate_limit_retries: int = 0,
    ) -> None:
        self._pool = pool
        self._client_factory = client_factory
        self._status_cache = status_cache
        self._page_source = page_source
        self._reporter = reporter or ConsoleReporter()
        self._concurrency = concurrency
        self._rate_limit_retries = rate_limit_retries

    @property
    def site_url(self) -> str:
        return self._pool.site_url

    async def run(self, explicit_urls: list[str] | None = None) -> IndexingRunResult:
        """Run all phases and return the partitioned statuses and outcomes."""

        pages = await self.resolve_pages(explicit_urls)
        pages_per_status = await self.check_statuses(pages)
        self._status_cache.save()
        self._reporter.status_summary(len(pages), pages_per_status)

        indexable_pages = [
            url
            for status, urls in pages_per_status.items()
            if is_indexable(status)
            for url in urls
        ]
        self._reporter.indexable_pages(indexable_pages)

        indexing_results = await self.request_indexing(indexable_pages)
        self._reporter.all_done()

        return IndexingRunResult(
            site_url=self.site_url,
            pages=pages,
            pages_per_status=pages_per_status,
            indexable_pages=indexable_pages,
            indexing_results=indexing_results,
        )

    async def resolve_pages(self, explicit_urls: list[str] | None) -> list[str]:
        """Use the explicit URL list if given, else every page of every sitemap."""

        if explicit_urls:
            pages = normalize_custom_urls(self.site_url, explicit_urls)
            self._reporter.pages_from_list(len(pages))
            return pages

        self._reporter.fetching_sitemaps()
        try:
            sitemaps, pages = await self._page_source(self._pool.active, self.site_url)
        except GoogleAPIError as error:
            raise NoPageSourceError(
                f"Unable to list sitemaps for {self.site_url}: {error.message}"
            ) from error

        if not sitemaps:
            raise NoPageSourceError(
                "No sitemaps found, add them to Google Search Console and try again."
            )

        self._reporter.pages_from_sitemaps(len(pages), len(sitemaps))
        return pages

    async def check_statuses(self, pages: list[str]) -> dict[StatusKind, list[str]]:
        """Fill a status -> URLs partition from the cache or live inspection."""

        pages_per_status = empty_status_partition()

        async def check_page(url: str) -> None:
            record = self._status_cache.lookup(url)
            if record is None:
                rotation = await self.call_with_rotation(
                    lambda session: self._inspect(session, url),
                    lambda status: status in THROTTLE_STATUSES,
                )
                if rotation.exhausted:
                    _LOGGER.warning(
                        "status_check_rotations_exhausted",
                        extra={
                            "url": url,
                            "status": rotation.value.value,
                            "rotations": rotation.rotations,
                        },
                    )
                record = self._status_cache.record(url, rotation.value)
            pages_per_status[record.status].append(url)

        await run_in_batches(
            pages,
            check_page,
            concurrency=self._concurrency,
            on_batch_complete=self._reporter.batch_complete,
        )
        return pages_per_status

    async def request_indexing(self, pages: list[str]) -> list[UrlIndexingResult]:
        """Probe and, where needed, request indexing for each page in turn."""

        results: list[UrlIndexingResult] = []
        for url in pages:
            self._reporter.processing_url(url)
            result = await self._index_page(url)
            results.append(result)

            if result.outcome is IndexingOutcome.REQUESTED:
                self._reporter.indexing_requested()
            elif result.outcome is IndexingOutcome.ALREADY_REQUESTED:
                self._reporter.indexing_already_requested()
            elif result.outcome is IndexingOutcome.FAILED:
                self._reporter.indexing_failed(url, result.status_code)
            else:
                self._reporter.rotations_exhausted(url)
            self._reporter.url_done()

        return results

    async def call_with_rotation(
        self,
        call: Callable[[AccountSession], Awaitable[R]],
        is_throttled: Callable[[R], bool],
    ) -> RotationResult[R]:
        """Call with the active session, rotating on throttle signals.

        Rotations are capped at the pool size; when the cap is reached the
        last throttled result is returned as exhausted.
        """

        rotations = 0
        while True:
            session = self._pool.active
            result = await call(session)
            if not is_throttled(result):
                return RotationResult(result, rotations, exhausted=False)

            # the pool only advances for the first caller throttled on a session
            advancing = self._pool.active is session
            next_session = await self._pool.rotate(expected=session)
            if advancing:
                self._reporter.rotating_to(next_session.client_email)
            rotations += 1
            if rotations >= self._pool.size:
                return RotationResult(result, rotations, exhausted=True)

    async def _inspect(self, session: AccountSession, url: str) -> StatusKind:
        search_console = self._client_factory.get_client(session.token).search_console
        try:
            return await search_console.inspect_url(url, self.site_url)
        except Exception:
            _LOGGER.exception("url_inspection_crashed", extra={"url": url})
            return StatusKind.ERROR

    async def _probe_and_submit(
        self, session: AccountSession, url: str
    ) -> _IndexingAttempt:
        indexing = self._client_factory.get_client(session.token).indexing
        probe_status = await indexing.get_metadata(
            url, retries_on_rate_limit=self._rate_limit_retries
        )
        if probe_status != HTTP_NOT_FOUND:
            return _IndexingAttempt(probe_status=probe_status)

        request_status = await indexing.request_indexing(url)
        return _IndexingAttempt(probe_status, request_status=request_status)

    async def _index_page(self, url: str) -> UrlIndexingResult:
        rotation = await self.call_with_rotation(
            lambda session: self._probe_and_submit(session, url),
            lambda attempt: attempt.throttled,
        )
        attempt = rotation.value

        if rotation.exhausted:
            outcome = IndexingOutcome.EXHAUSTED
            status_code = attempt.request_status or attempt.probe_status
        elif attempt.request_status is not None:
            status_code = attempt.request_status
            outcome = (
                IndexingOutcome.REQUESTED
                if status_code == HTTP_OK
                else IndexingOutcome.FAILED
            )
        else:
            status_code = attempt.probe_status
            outcome = (
                IndexingOutcome.ALREADY_REQUESTED
                if status_code < HTTP_ERROR_THRESHOLD
                else IndexingOutcome.FAILED
            )

        if outcome in {IndexingOutcome.FAILED, IndexingOutcome.EXHAUSTED}:
            _LOGGER.warning(
                "indexing_request_failed",
                extra={
                    "url": url,
                    "status": outcome.value,
                    "status_code": status_code,
                    "rotations": rotation.rotations,
                },
            )

        return UrlIndexingResult(
            url=url,
            outcome=outcome,
            status_code=status_code,
            rotations=rotation.rotations,
        )


__all__ = [
    "IndexingOrchestrator",
    "IndexingOutcome",
    "IndexingRunResult",
    "NoPageSourceError",
    "PageSource",
    "RotationResult",
    "UrlIndexingResult",
]
