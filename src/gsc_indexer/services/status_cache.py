"""Per-site page status cache persisted as a single JSON document."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from gsc_indexer.schemas import PageStatusRecord, StatusKind, is_indexable
from gsc_indexer.services.site_urls import cache_file_name

CACHE_TIMEOUT = timedelta(days=14)

Clock = Callable[[], datetime]

_RECORDS_ADAPTER = TypeAdapter(dict[str, PageStatusRecord])
_LOGGER = logging.getLogger("gsc_indexer.status_cache")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def should_recheck(
    status: StatusKind,
    last_checked_at: datetime,
    *,
    now: datetime | None = None,
) -> bool:
    """Return whether a cached status is stale enough to fetch again.

    Only indexable statuses expire; anything else, such as an indexed page,
    stays valid forever.
    """

    if not is_indexable(status):
        return False

    reference_time = now if now is not None else _utc_now()
    return _as_utc(last_checked_at) < reference_time - CACHE_TIMEOUT


class StatusCache:
    """URL -> last known status store for one Search Console property."""

    def __init__(
        self,
        path: Path,
        records: dict[str, PageStatusRecord] | None = None,
        *,
        clock: Clock = _utc_now,
    ) -> None:
        self._path = path
        self._records: dict[str, PageStatusRecord] = dict(records or {})
        self._clock = clock

    @classmethod
    def for_site(
        cls, cache_dir: Path, site_url: str, *, clock: Clock = _utc_now
    ) -> StatusCache:
        """Load the cache document that belongs to a property."""

        return cls.load(cache_dir / cache_file_name(site_url), clock=clock)

    @classmethod
    def load(cls, path: Path, *, clock: Clock = _utc_now) -> StatusCache:
        """Read a cache document; a missing or unreadable file is an empty cache."""

        if not path.is_file():
            return cls(path, clock=clock)

        try:
            records = _RECORDS_ADAPTER.validate_json(path.read_bytes())
        except (OSError, ValidationError) as error:
            _LOGGER.warning(
                "status_cache_unreadable",
                extra={
                    "error_type": error.__class__.__name__,
                    "error_message": str(error),
                },
            )
            return cls(path, clock=clock)

        return cls(path, records, clock=clock)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def records(self) -> dict[str, PageStatusRecord]:
        return dict(self._records)

    def get(self, url: str) -> PageStatusRecord | None:
        return self._records.get(url)

    def lookup(self, url: str) -> PageStatusRecord | None:
        """Return the cached record if it can be trusted, else None."""

        record = self._records.get(url)
        if record is None:
            return None
        if should_recheck(record.status, record.last_checked_at, now=self._clock()):
            return None
        return record

    def record(self, url: str, status: StatusKind) -> PageStatusRecord:
        """Store a freshly fetched status with the current time."""

        checked_at = self._clock()
        previous = self._records.get(url)
        if previous is not None:
            checked_at = max(checked_at, _as_utc(previous.last_checked_at))

        page_status = PageStatusRecord(status=status, last_checked_at=checked_at)
        self._records[url] = page_status
        return page_status

    def save(self) -> None:
        """Write the whole store atomically (temp file + rename)."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = _RECORDS_ADAPTER.dump_json(self._records, by_alias=True, indent=2)
        temp_path = self._path.with_name(f"{self._path.name}.tmp")
        temp_path.write_bytes(payload)
        os.replace(temp_path, self._path)


__all__ = ["CACHE_TIMEOUT", "StatusCache", "should_recheck"]
