"""Pydantic schemas and enums shared across services."""

from gsc_indexer.schemas.page_status import (
    INDEXABLE_STATUSES,
    THROTTLE_STATUSES,
    PageStatusRecord,
    StatusKind,
    empty_status_partition,
    is_indexable,
)

__all__ = [
    "INDEXABLE_STATUSES",
    "PageStatusRecord",
    "StatusKind",
    "THROTTLE_STATUSES",
    "empty_status_partition",
    "is_indexable",
]
