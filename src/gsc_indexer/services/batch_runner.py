"""Bounded-concurrency execution of async per-item operations in batch waves."""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")

ItemOperation = Callable[[T], Awaitable[object]]
BatchCallback = Callable[[int, int], Awaitable[None] | None]

DEFAULT_CONCURRENCY = 50

_LOGGER = logging.getLogger("gsc_indexer.batch_runner")


async def run_in_batches(
    items: Sequence[T],
    operation: ItemOperation[T],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_batch_complete: BatchCallback | None = None,
) -> None:
    """Run ``operation`` over ``items``, at most ``concurrency`` at a time.

    Items are processed in contiguous slices of ``concurrency``; a slice
    starts only after the previous one has fully settled, and
    ``on_batch_complete(batch_number, batch_count)`` fires after each slice
    with a 1-based batch number. An exception from one item is logged and
    does not stop the others.
    """

    if concurrency <= 0:
        raise ValueError("concurrency must be greater than zero")

    batch_count = math.ceil(len(items) / concurrency)
    for batch_index in range(batch_count):
        batch = items[batch_index * concurrency : (batch_index + 1) * concurrency]
        results = await asyncio.gather(
            *(operation(item) for item in batch), return_exceptions=True
        )

        for item, result in zip(batch, results):
            if isinstance(result, Exception):
                _LOGGER.error(
                    "batch_item_failed",
                    exc_info=result,
                    extra={"batch_index": batch_index + 1, "url": str(item)},
                )
            elif isinstance(result, BaseException):
                raise result

        if on_batch_complete is not None:
            callback_result = on_batch_complete(batch_index + 1, batch_count)
            if inspect.isawaitable(callback_result):
                await callback_result


__all__ = ["BatchCallback", "DEFAULT_CONCURRENCY", "ItemOperation", "run_in_batches"]
