"""Page indexing status kinds and cached status records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StatusKind(str, Enum):
    """Indexing status of a page, named after Search Console coverage states."""

    SUBMITTED_AND_INDEXED = "Submitted and indexed"
    DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL = (
        "Duplicate without user-selected canonical"
    )
    CRAWLED_CURRENTLY_NOT_INDEXED = "Crawled - currently not indexed"
    DISCOVERED_CURRENTLY_NOT_INDEXED = "Discovered - currently not indexed"
    PAGE_WITH_REDIRECT = "Page with redirect"
    URL_IS_UNKNOWN_TO_GOOGLE = "URL is unknown to Google"
    RATE_LIMITED = "RateLimited"
    FORBIDDEN = "Forbidden"
    ERROR = "Error"


INDEXABLE_STATUSES = frozenset(
    {
        StatusKind.DISCOVERED_CURRENTLY_NOT_INDEXED,
        StatusKind.CRAWLED_CURRENTLY_NOT_INDEXED,
        StatusKind.URL_IS_UNKNOWN_TO_GOOGLE,
        StatusKind.FORBIDDEN,
        StatusKind.ERROR,
        StatusKind.RATE_LIMITED,
    }
)

THROTTLE_STATUSES = frozenset({StatusKind.RATE_LIMITED, StatusKind.FORBIDDEN})


def is_indexable(status: StatusKind) -> bool:
    """Return whether a page with this status should get an indexing request."""

    return status in INDEXABLE_STATUSES


def empty_status_partition() -> dict[StatusKind, list[str]]:
    """Return a status -> URLs map with an entry for every status kind."""

    return {status: [] for status in StatusKind}


class PageStatusRecord(BaseModel):
    """Last known status of a page and when it was checked."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: StatusKind
    last_checked_at: datetime = Field(alias="lastCheckedAt")


__all__ = [
    "INDEXABLE_STATUSES",
    "PageStatusRecord",
    "StatusKind",
    "THROTTLE_STATUSES",
    "empty_status_partition",
    "is_indexable",
]
