"""Tests for DebounceStrategy.

Tests cover:
- Debounce coalescing of bursts into one upload
- Single-flight with a deferred follow-up flush
- Requeue at the head of the queue on failure
- Auto-retry on and off
- Abort and debounce delay replacement
- FIFO and no-loss properties under failing uploads
"""

import asyncio

import pytest
from conftest import ControlledTransport, make_event, settle, wait_until
from hypothesis import given, settings
from hypothesis import strategies as st

from hecflush.core.strategy import FlushStatus
from hecflush.strategies.debounce import DebounceState, DebounceStrategy
from hecflush.transports.inmemory import InMemoryTransport


class TestCoalescing:
    """Bursts of events end up in a single upload."""

    async def test_events_within_delay_share_one_upload(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0.3)
        first, second = make_event(1), make_event(2)

        strategy.add_event(first)
        strategy.flush_events()
        await asyncio.sleep(0.1)
        strategy.add_event(second)
        handle = strategy.flush_events()

        # 0.3s after the first event: the restarted timer has not fired yet
        await asyncio.sleep(0.2)
        assert transport.attempts == []

        result = await handle
        assert result.status is FlushStatus.SENT
        assert result.sent == 2
        assert transport.batches == [(first, second)]

    async def test_add_event_does_not_schedule_flush(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0.01)

        strategy.add_event(make_event(1))
        await asyncio.sleep(0.05)

        assert not strategy.flush_scheduled
        assert transport.attempts == []
        assert len(strategy.queued()) == 1

    async def test_flush_of_empty_queue_makes_no_call(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0)

        result = await strategy.flush_events()

        assert result.status is FlushStatus.EMPTY
        assert transport.attempts == []
        assert strategy.state is DebounceState.IDLE


class TestSingleFlight:
    """Only one upload is outstanding at a time."""

    async def test_flush_during_upload_is_deferred(self, controlled_transport: ControlledTransport):
        strategy = DebounceStrategy(controlled_transport.transmit, debounce_delay=0)
        first, second = make_event(1), make_event(2)

        strategy.add_event(first)
        first_handle = strategy.flush_events()
        await settle()
        assert controlled_transport.calls == [(first,)]
        assert strategy.in_flight == (first,)

        strategy.add_event(second)
        deferred = await strategy.flush_events()
        assert deferred.status is FlushStatus.DEFERRED
        assert strategy.state is DebounceState.SENDING_FLUSH_PENDING
        assert len(controlled_transport.calls) == 1

        controlled_transport.succeed(0)
        await settle()
        # Follow-up starts immediately, without another debounce wait
        assert controlled_transport.calls == [(first,), (second,)]

        controlled_transport.succeed(1)
        result = await first_handle
        assert result.status is FlushStatus.SENT
        assert result.sent == 1
        assert strategy.state is DebounceState.IDLE
        assert strategy.queued() == []

    async def test_new_events_during_upload_stay_out_of_batch(
        self, controlled_transport: ControlledTransport
    ):
        strategy = DebounceStrategy(controlled_transport.transmit, debounce_delay=0)
        first, late = make_event(1), make_event(2)

        strategy.add_event(first)
        handle = strategy.flush_events()
        await settle()
        strategy.add_event(late)

        assert controlled_transport.calls == [(first,)]
        assert strategy.queued() == [late]

        controlled_transport.succeed()
        await handle
        assert strategy.queued() == [late]


class TestFailure:
    """Failed uploads requeue their events."""

    async def test_failed_batch_is_requeued_ahead_of_new_events(
        self, controlled_transport: ControlledTransport
    ):
        strategy = DebounceStrategy(
            controlled_transport.transmit, debounce_delay=0, auto_retry=False
        )
        events = [make_event(i) for i in range(3)]

        strategy.add_event(events[0])
        strategy.add_event(events[1])
        handle = strategy.flush_events()
        await settle()
        strategy.add_event(events[2])
        controlled_transport.fail()

        result = await handle
        assert result.status is FlushStatus.REQUEUED
        assert result.error is not None
        assert strategy.queued() == events
        assert strategy.state is DebounceState.IDLE
        # Without auto-retry the events wait for an external flush
        assert not strategy.flush_scheduled

        retry = strategy.flush_events()
        await settle()
        assert controlled_transport.calls[-1] == tuple(events)
        controlled_transport.succeed()
        assert (await retry).status is FlushStatus.SENT

    async def test_auto_retry_rearms_debounce_timer(self):
        transport = InMemoryTransport(fail_times=1)
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0.02, auto_retry=True)
        event = make_event(1)

        strategy.add_event(event)
        result = await strategy.flush_events()

        assert result.status is FlushStatus.REQUEUED
        assert strategy.flush_scheduled

        await wait_until(lambda: transport.batches == [(event,)])
        assert len(transport.attempts) == 2

    async def test_failure_with_pending_flush_retries_immediately(
        self, controlled_transport: ControlledTransport
    ):
        strategy = DebounceStrategy(
            controlled_transport.transmit, debounce_delay=0, auto_retry=False
        )
        first, second = make_event(1), make_event(2)

        strategy.add_event(first)
        handle = strategy.flush_events()
        await settle()
        strategy.add_event(second)
        await strategy.flush_events()

        controlled_transport.fail(0)
        await settle()
        assert controlled_transport.calls == [(first,), (first, second)]

        controlled_transport.succeed(1)
        result = await handle
        assert result.status is FlushStatus.REQUEUED
        assert strategy.queued() == []


class TestCancellation:
    """abort() and delay changes affect only scheduled flushes."""

    async def test_abort_cancels_scheduled_flush(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0.03)
        event = make_event(1)

        strategy.add_event(event)
        handle = strategy.flush_events()
        strategy.abort()

        assert handle.cancelled()
        await asyncio.sleep(0.06)
        assert transport.attempts == []
        assert strategy.queued() == [event]

    async def test_abort_leaves_in_flight_upload_alone(
        self, controlled_transport: ControlledTransport
    ):
        strategy = DebounceStrategy(controlled_transport.transmit, debounce_delay=0)
        strategy.add_event(make_event(1))
        handle = strategy.flush_events()
        await settle()

        strategy.abort()
        controlled_transport.succeed()

        assert (await handle).status is FlushStatus.SENT

    async def test_aclose_during_failing_upload_schedules_no_retry(
        self, controlled_transport: ControlledTransport
    ):
        strategy = DebounceStrategy(
            controlled_transport.transmit, debounce_delay=0, auto_retry=True
        )
        event = make_event(1)
        strategy.add_event(event)
        handle = strategy.flush_events()
        await settle()

        await strategy.aclose()
        controlled_transport.fail()
        result = await handle
        await asyncio.sleep(0.02)

        assert result.status is FlushStatus.REQUEUED
        assert len(controlled_transport.calls) == 1
        assert not strategy.flush_scheduled
        assert strategy.queued() == [event]

    async def test_aclose_stops_pending_follow_up_flush(
        self, controlled_transport: ControlledTransport
    ):
        strategy = DebounceStrategy(controlled_transport.transmit, debounce_delay=0)
        strategy.add_event(make_event(1))
        handle = strategy.flush_events()
        await settle()
        strategy.add_event(make_event(2))
        await strategy.flush_events()

        await strategy.aclose()
        controlled_transport.succeed()
        await handle
        await settle()

        assert len(controlled_transport.calls) == 1
        assert strategy.queued() == [make_event(2)]

    async def test_flush_after_aclose_is_skipped(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0)
        strategy.add_event(make_event(1))

        await strategy.aclose()
        result = await strategy.flush_events()

        assert result.status is FlushStatus.SKIPPED
        assert transport.attempts == []

    async def test_delay_change_replaces_pending_timer(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=10)
        event = make_event(1)

        strategy.add_event(event)
        stale = strategy.flush_events()
        strategy.debounce_delay = 0.02

        assert stale.cancelled()
        assert strategy.flush_scheduled
        assert strategy.debounce_delay == 0.02
        await wait_until(lambda: transport.batches == [(event,)])

    async def test_delay_change_without_pending_flush_schedules_nothing(self):
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=1)

        strategy.debounce_delay = 0.5

        assert not strategy.flush_scheduled

    async def test_invalid_delay_keeps_current_timer(self):
        strategy = DebounceStrategy(InMemoryTransport().transmit, debounce_delay=10)
        strategy.add_event(make_event(1))
        handle = strategy.flush_events()

        with pytest.raises(ValueError):
            strategy.debounce_delay = -1

        assert not handle.cancelled()
        assert strategy.flush_scheduled
        strategy.abort()


# FIFO preservation: one flush uploads every event in insertion order.
@given(event_count=st.integers(min_value=1, max_value=40))
@settings(max_examples=25, deadline=None)
def test_single_flush_preserves_order(event_count: int):
    async def run():
        transport = InMemoryTransport()
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0)
        events = [make_event(i) for i in range(event_count)]
        for event in events:
            strategy.add_event(event)

        await strategy.flush_events()
        assert transport.batches == [tuple(events)]

    asyncio.run(run())


# No loss on failure: every event is delivered exactly once, in order.
@given(
    chunks=st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=8),
    failures=st.integers(min_value=0, max_value=4),
)
@settings(max_examples=25, deadline=None)
def test_failed_uploads_lose_no_events(chunks: list[int], failures: int):
    async def run():
        transport = InMemoryTransport(fail_times=failures)
        strategy = DebounceStrategy(transport.transmit, debounce_delay=0, auto_retry=True)
        events = []
        for size in chunks:
            for _ in range(size):
                event = make_event(len(events))
                events.append(event)
                strategy.add_event(event)
            strategy.flush_events()
            await asyncio.sleep(0)

        await wait_until(lambda: len(transport.events) >= len(events))
        await settle()
        assert transport.events == events
        await strategy.aclose()

    asyncio.run(run())
