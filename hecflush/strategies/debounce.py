"""Debounced batching strategy.

Bursts of events are coalesced into one upload per quiet period. Only one
upload is in flight at a time; flush requests that arrive meanwhile are
recorded and served as soon as the upload completes. Failed batches go back
to the head of the queue so ordering survives retries.
"""

import asyncio
from enum import Enum

from hecflush.core.event import Event
from hecflush.core.logging import batch_extra, get_logger
from hecflush.core.strategy import FlushResult, FlushStatus, Transmit, resolved
from hecflush.core.timer import Debouncer

DEFAULT_DEBOUNCE_DELAY = 2.0

_log = get_logger("hecflush.strategy.debounce")


class DebounceState(Enum):
    """Upload state of a DebounceStrategy.

    IDLE: No upload in flight.
    SENDING: One upload in flight, no follow-up requested.
    SENDING_FLUSH_PENDING: One upload in flight and a flush arrived meanwhile.
    """

    IDLE = "idle"
    SENDING = "sending"
    SENDING_FLUSH_PENDING = "sending_flush_pending"


class DebounceStrategy:
    """Batch events until no flush has been requested for ``debounce_delay`` seconds."""

    def __init__(
        self,
        transmit: Transmit,
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
        auto_retry: bool = True,
    ) -> None:
        """Initialize the strategy.

        Args:
            transmit: Coroutine function uploading a batch; raising means failure.
            debounce_delay: Quiet period in seconds before a flush fires.
            auto_retry: Re-arm the debounce timer after a failed upload.
        """
        self._transmit = transmit
        self.auto_retry = auto_retry
        self._events: list[Event] = []
        self._in_flight: tuple[Event, ...] = ()
        self._state = DebounceState.IDLE
        self._closed = False
        self._debouncer = Debouncer(self._flush, debounce_delay)

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def in_flight(self) -> tuple[Event, ...]:
        """Batch currently handed to the transport."""
        return self._in_flight

    @property
    def flush_scheduled(self) -> bool:
        return self._debouncer.pending

    @property
    def debounce_delay(self) -> float:
        return self._debouncer.delay

    @debounce_delay.setter
    def debounce_delay(self, value: float) -> None:
        # Timers cannot change delay in place: replace, and re-arm a pending flush.
        if value == self._debouncer.delay:
            return
        replacement = Debouncer(self._flush, value)
        was_pending = self._debouncer.cancel()
        self._debouncer = replacement
        if was_pending:
            self._debouncer.schedule()

    def add_event(self, event: Event) -> None:
        self._events.append(event)

    def queued(self) -> list[Event]:
        return list(self._events)

    def flush_events(self) -> "asyncio.Future[FlushResult]":
        """(Re)start the debounce timer.

        Returns:
            A future resolving with the result of the flush this call scheduled,
            or cancelled if a later call or ``abort()`` superseded it. Once
            closed, an already-resolved SKIPPED result.
        """
        if self._closed:
            return resolved(FlushResult(FlushStatus.SKIPPED))
        return self._debouncer.schedule()

    def abort(self) -> None:
        """Cancel a scheduled flush; queued and in-flight events are untouched."""
        self._debouncer.cancel()

    async def aclose(self) -> None:
        """Cancel the scheduled flush and stop re-arming it.

        An upload already in flight is left to finish; if it fails its batch is
        requeued but no retry is scheduled.
        """
        self._closed = True
        self._debouncer.cancel()

    async def _flush(self) -> FlushResult:
        if self._state is not DebounceState.IDLE:
            self._state = DebounceState.SENDING_FLUSH_PENDING
            _log.debug(
                "Upload in flight, flush deferred",
                extra=batch_extra("debounce", len(self._in_flight), state=self._state.value),
            )
            return FlushResult(FlushStatus.DEFERRED)

        result, flush_pending = await self._send_queued()
        while flush_pending and not self._closed:
            _, flush_pending = await self._send_queued()
        return result

    async def _send_queued(self) -> tuple[FlushResult, bool]:
        """Upload the live queue as one batch.

        Returns:
            The flush result and whether a flush was requested during the upload.
        """
        if not self._events:
            return FlushResult(FlushStatus.EMPTY), False

        batch = tuple(self._events)
        self._events = []
        self._in_flight = batch
        self._state = DebounceState.SENDING
        _log.info(
            f"Sending batch of {len(batch)} events",
            extra=batch_extra("debounce", len(batch), state=self._state.value),
        )

        try:
            await self._transmit(batch)
        except asyncio.CancelledError:
            self._requeue(batch)
            raise
        except Exception as e:
            flush_pending = self._requeue(batch)
            retrying = not flush_pending and self.auto_retry and not self._closed
            _log.warning(
                f"Upload failed, {len(batch)} events requeued: {e}",
                extra=batch_extra(
                    "debounce",
                    len(batch),
                    state=self._state.value,
                    error=str(e),
                    auto_retry=retrying,
                ),
            )
            if retrying:
                self.flush_events()
            return FlushResult(FlushStatus.REQUEUED, attempts=1, error=e), flush_pending

        flush_pending = self._state is DebounceState.SENDING_FLUSH_PENDING
        self._in_flight = ()
        self._state = DebounceState.IDLE
        _log.debug(
            f"Sent batch of {len(batch)} events",
            extra=batch_extra("debounce", len(batch), state=self._state.value),
        )
        return FlushResult(FlushStatus.SENT, sent=len(batch), attempts=1), flush_pending

    def _requeue(self, batch: tuple[Event, ...]) -> bool:
        """Put a failed batch back ahead of newer events and return to IDLE."""
        flush_pending = self._state is DebounceState.SENDING_FLUSH_PENDING
        self._events = list(batch) + self._events
        self._in_flight = ()
        self._state = DebounceState.IDLE
        return flush_pending
