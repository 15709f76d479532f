"""Tests for bounded-concurrency batch execution."""

from __future__ import annotations

import asyncio

import pytest

from gsc_indexer.services.batch_runner import run_in_batches


@pytest.mark.asyncio
async def test_run_in_batches_caps_concurrency_and_reports_each_batch() -> None:
    in_flight = 0
    max_in_flight = 0
    processed: list[int] = []
    batches: list[tuple[int, int]] = []

    async def operation(item: int) -> None:
        nonlocal in_flight, max_in_flight
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0)
        processed.append(item)
        in_flight -= 1

    await run_in_batches(
        list(range(7)),
        operation,
        concurrency=3,
        on_batch_complete=lambda number, count: batches.append((number, count)),
    )

    assert sorted(processed) == list(range(7))
    assert max_in_flight == 3
    assert batches == [(1, 3), (2, 3), (3, 3)]


@pytest.mark.asyncio
async def test_run_in_batches_waits_for_a_wave_before_starting_the_next() -> None:
    events: list[str] = []

    async def operation(item: str) -> None:
        events.append(f"start:{item}")
        await asyncio.sleep(0.01 if item == "a" else 0)
        events.append(f"end:{item}")

    await run_in_batches(["a", "b", "c"], operation, concurrency=2)

    assert events.index("end:a") < events.index("start:c")
    assert events.index("end:b") < events.index("start:c")


@pytest.mark.asyncio
async def test_run_in_batches_isolates_item_failures() -> None:
    processed: list[str] = []

    async def operation(item: str) -> None:
        if item == "boom":
            raise RuntimeError("item failed")
        processed.append(item)

    await run_in_batches(["a", "boom", "b"], operation, concurrency=2)

    assert processed == ["a", "b"]


@pytest.mark.asyncio
async def test_run_in_batches_awaits_async_callbacks_and_handles_empty_input() -> None:
    batches: list[int] = []

    async def on_batch_complete(number: int, count: int) -> None:
        del count
        batches.append(number)

    async def operation(item: int) -> None:
        del item

    await run_in_batches([], operation, on_batch_complete=on_batch_complete)
    assert batches == []

    await run_in_batches([1, 2], operation, on_batch_complete=on_batch_complete)
    assert batches == [1]


@pytest.mark.asyncio
async def test_run_in_batches_rejects_non_positive_concurrency() -> None:
    async def operation(item: int) -> None:
        del item

    with pytest.raises(ValueError):
        await run_in_batches([1], operation, concurrency=0)
