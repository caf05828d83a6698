"""
Tests for the pending-call ledger in microbatcher.ledger.
"""

import asyncio

import pytest

from microbatcher.ledger import PendingCallLedger


@pytest.mark.asyncio
async def test_enqueue_returns_unsettled_call(ledger: PendingCallLedger):
    call = ledger.enqueue((1,))

    assert call.payload == (1,)
    assert isinstance(call.future, asyncio.Future)
    assert not call.future.done()
    assert ledger.size() == 1
    assert len(ledger) == 1


@pytest.mark.asyncio
async def test_enqueue_assigns_distinct_call_ids(ledger: PendingCallLedger):
    first = ledger.enqueue((1,))
    second = ledger.enqueue((1,))

    assert first.call_id != second.call_id


@pytest.mark.asyncio
async def test_drain_all_preserves_arrival_order(ledger: PendingCallLedger):
    for n in range(5):
        ledger.enqueue((n,))

    group = ledger.drain()

    assert [call.payload for call in group] == [(0,), (1,), (2,), (3,), (4,)]
    assert ledger.size() == 0


@pytest.mark.asyncio
async def test_drain_max_count_takes_oldest_first(ledger: PendingCallLedger):
    for n in range(5):
        ledger.enqueue((n,))

    first = ledger.drain(max_count=3)
    second = ledger.drain()

    assert [call.payload for call in first] == [(0,), (1,), (2,)]
    assert [call.payload for call in second] == [(3,), (4,)]
    assert ledger.size() == 0


@pytest.mark.asyncio
async def test_drain_max_count_larger_than_ledger(ledger: PendingCallLedger):
    ledger.enqueue((1,))

    group = ledger.drain(max_count=10)

    assert len(group) == 1
    assert ledger.drain() == []


@pytest.mark.asyncio
async def test_calls_enqueued_after_drain_are_not_included(ledger: PendingCallLedger):
    ledger.enqueue((1,))
    group = ledger.drain()
    ledger.enqueue((2,))

    assert [call.payload for call in group] == [(1,)]
    assert ledger.size() == 1


@pytest.mark.asyncio
async def test_drain_rejects_non_positive_max_count(ledger: PendingCallLedger):
    ledger.enqueue((1,))

    with pytest.raises(ValueError):
        ledger.drain(max_count=0)

    assert ledger.size() == 1


def test_enqueue_requires_running_loop(ledger: PendingCallLedger):
    with pytest.raises(RuntimeError):
        ledger.enqueue((1,))


@pytest.mark.asyncio
async def test_settle_is_single_assignment(ledger: PendingCallLedger):
    call = ledger.enqueue((1,))

    call.settle(2)
    call.settle(3)
    call.settle_with_error(ValueError("late"))

    assert await call.future == 2


@pytest.mark.asyncio
async def test_settle_ignores_cancelled_future(ledger: PendingCallLedger):
    call = ledger.enqueue((1,))
    call.future.cancel()

    call.settle(2)
    call.settle_with_error(ValueError("late"))

    assert call.future.cancelled()
