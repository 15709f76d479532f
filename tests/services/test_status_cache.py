"""Tests for the per-site status cache and its recheck policy."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from gsc_indexer.schemas import StatusKind
from gsc_indexer.services.status_cache import CACHE_TIMEOUT, StatusCache, should_recheck

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("status", "age", "expected"),
    [
        (StatusKind.SUBMITTED_AND_INDEXED, timedelta(days=365), False),
        (StatusKind.PAGE_WITH_REDIRECT, timedelta(days=30), False),
        (StatusKind.DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL, timedelta(days=30), False),
        (StatusKind.URL_IS_UNKNOWN_TO_GOOGLE, timedelta(days=13), False),
        (StatusKind.URL_IS_UNKNOWN_TO_GOOGLE, CACHE_TIMEOUT, False),
        (StatusKind.URL_IS_UNKNOWN_TO_GOOGLE, timedelta(days=15), True),
        (StatusKind.RATE_LIMITED, timedelta(days=15), True),
        (StatusKind.ERROR, timedelta(days=14, seconds=1), True),
    ],
)
def test_should_recheck_only_expires_indexable_statuses(
    status: StatusKind, age: timedelta, expected: bool
) -> None:
    assert should_recheck(status, NOW - age, now=NOW) is expected


def test_should_recheck_treats_naive_timestamps_as_utc() -> None:
    naive_checked_at = (NOW - timedelta(days=20)).replace(tzinfo=None)

    assert should_recheck(StatusKind.ERROR, naive_checked_at, now=NOW) is True


def test_lookup_skips_missing_and_stale_records(tmp_path: Path) -> None:
    cache = StatusCache(tmp_path / "cache.json", clock=lambda: NOW)
    cache.record("https://example.com/indexed", StatusKind.SUBMITTED_AND_INDEXED)
    cache.record("https://example.com/unknown", StatusKind.URL_IS_UNKNOWN_TO_GOOGLE)

    later_cache = StatusCache(
        cache.path, cache.records, clock=lambda: NOW + timedelta(days=20)
    )

    assert later_cache.lookup("https://example.com/missing") is None
    assert later_cache.lookup("https://example.com/unknown") is None
    indexed = later_cache.lookup("https://example.com/indexed")
    assert indexed is not None
    assert indexed.status is StatusKind.SUBMITTED_AND_INDEXED
    assert "https://example.com/unknown" in later_cache.records
    assert len(later_cache.records) == 2


def test_record_never_moves_last_checked_backwards(tmp_path: Path) -> None:
    clock_values = [NOW, NOW - timedelta(hours=1)]
    cache = StatusCache(tmp_path / "cache.json", clock=lambda: clock_values.pop(0))

    first = cache.record("https://example.com/", StatusKind.ERROR)
    second = cache.record("https://example.com/", StatusKind.SUBMITTED_AND_INDEXED)

    assert first.last_checked_at == NOW
    assert second.last_checked_at == NOW
    assert second.status is StatusKind.SUBMITTED_AND_INDEXED


def test_save_writes_the_cache_document_atomically(tmp_path: Path) -> None:
    cache = StatusCache.for_site(
        tmp_path / ".cache", "https://example.com/", clock=lambda: NOW
    )
    cache.record("https://example.com/a", StatusKind.CRAWLED_CURRENTLY_NOT_INDEXED)

    cache.save()

    cache_path = tmp_path / ".cache" / "https_example.com_.json"
    assert cache.path == cache_path
    assert not cache_path.with_name("https_example.com_.json.tmp").exists()
    payload = json.loads(cache_path.read_text(encoding="utf-8"))
    entry = payload["https://example.com/a"]
    assert entry["status"] == "Crawled - currently not indexed"
    assert entry["lastCheckedAt"].startswith("2024-06-01T12:00:00")

    reloaded = StatusCache.for_site(tmp_path / ".cache", "https://example.com/")
    assert reloaded.records == cache.records


def test_load_reads_camel_case_documents(tmp_path: Path) -> None:
    cache_path = tmp_path / "sc-domain:example.com.json"
    cache_path.write_text(
        json.dumps(
            {
                "https://example.com/": {
                    "status": "Submitted and indexed",
                    "lastCheckedAt": "2024-01-01T00:00:00.000Z",
                }
            }
        ),
        encoding="utf-8",
    )

    cache = StatusCache.load(cache_path)

    record = cache.get("https://example.com/")
    assert record is not None
    assert record.status is StatusKind.SUBMITTED_AND_INDEXED
    assert record.last_checked_at == datetime(2024, 1, 1, tzinfo=UTC)


@pytest.mark.parametrize(
    "content",
    ["{not json", '{"https://example.com/": {"status": "Mystery"}}', "[]"],
)
def test_unreadable_cache_is_treated_as_empty(tmp_path: Path, content: str) -> None:
    cache_path = tmp_path / "cache.json"
    cache_path.write_text(content, encoding="utf-8")

    cache = StatusCache.load(cache_path)

    assert cache.records == {}
    assert cache.path == cache_path


def test_missing_cache_file_is_empty(tmp_path: Path) -> None:
    assert StatusCache.load(tmp_path / "absent.json").records == {}
