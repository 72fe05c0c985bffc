"""Strategy contract shared by the batching strategies.

A strategy owns a queue of events and decides when and how they are uploaded.
Callers append with ``add_event`` and request uploads with ``flush_events``;
the strategy guarantees at most one upload in flight at a time.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from hecflush.core.event import Event

Transmit = Callable[[Sequence[Event]], Awaitable[None]]


class StrategyKind(Enum):
    """Batching strategy selected at configuration time."""

    DEBOUNCE = "debounce"
    EXPONENTIAL_BACKOFF = "exponential_backoff"


class FlushStatus(Enum):
    """Outcome of a single flush cycle.

    SENT: The batch was accepted by the collector.
    EMPTY: Nothing was queued, no upload was attempted.
    DEFERRED: An upload was in flight, a follow-up flush was recorded instead.
    SKIPPED: A retry cycle was already running or the strategy is closed,
        nothing was started.
    REQUEUED: The upload failed and the batch went back to the queue.
    DROPPED: The retry ceiling was exceeded and the queued events were discarded.
    """

    SENT = "sent"
    EMPTY = "empty"
    DEFERRED = "deferred"
    SKIPPED = "skipped"
    REQUEUED = "requeued"
    DROPPED = "dropped"


@dataclass(frozen=True)
class FlushResult:
    """Result reported to whoever awaits a flush."""

    status: FlushStatus
    sent: int = 0
    dropped: int = 0
    attempts: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        """True unless events were requeued or dropped."""
        return self.status not in (FlushStatus.REQUEUED, FlushStatus.DROPPED)


class Strategy(Protocol):
    """Protocol implemented by every batching strategy."""

    def add_event(self, event: Event) -> None:
        """Append an event to the live queue without scheduling an upload."""
        ...

    def flush_events(self) -> "asyncio.Future[FlushResult]":
        """Request an upload; the returned future resolves when it completes."""
        ...

    def abort(self) -> None:
        """Cancel any scheduled but not yet started upload."""
        ...

    def queued(self) -> list[Event]:
        """Return a snapshot of events waiting for an upload."""
        ...

    async def aclose(self) -> None:
        """Cancel pending timers and waits, and refuse further uploads."""
        ...


def resolved(result: FlushResult) -> "asyncio.Future[FlushResult]":
    """Return a future already completed with ``result``."""
    future: asyncio.Future[FlushResult] = asyncio.get_running_loop().create_future()
    future.set_result(result)
    return future
