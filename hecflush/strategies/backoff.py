"""Exponential-backoff batching strategy.

Uploads start as soon as a flush is requested. A failing collector is treated
as degraded: retries wait 1, 2, 4, 8... seconds (capped at ``backoff_limit``)
and events logged during the outage join the next attempt. Once ``max_retries``
is exceeded every queued event is dropped to bound memory and staleness.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from hecflush.core.event import Event
from hecflush.core.logging import batch_extra, get_logger
from hecflush.core.strategy import FlushResult, FlushStatus, Transmit, resolved

DEFAULT_BACKOFF_LIMIT = 60.0
DEFAULT_BASE_DELAY = 1.0
BACKOFF_MULTIPLIER = 2

_log = get_logger("hecflush.strategy.backoff")


class BackoffState(Enum):
    """Upload state of an ExponentialBackoffStrategy."""

    IDLE = "idle"
    SENDING = "sending"
    WAITING = "waiting"


class ExponentialBackoffStrategy:
    """Upload immediately, retry failures with geometrically growing delays."""

    def __init__(
        self,
        transmit: Transmit,
        backoff_limit: float = DEFAULT_BACKOFF_LIMIT,
        max_retries: int | None = None,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the strategy.

        Args:
            transmit: Coroutine function uploading a batch; raising means failure.
            backoff_limit: Upper bound in seconds for a single retry wait.
            max_retries: Retry depth after which queued events are dropped.
                None retries forever.
            base_delay: Wait in seconds before the first retry.
            sleep: Awaitable used for retry waits.
        """
        if max_retries is not None and max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries!r}")
        self._transmit = transmit
        self.backoff_limit = backoff_limit
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep
        self._events: list[Event] = []
        self._pending: list[Event] = []
        self._state = BackoffState.IDLE
        self._closed = False
        self._cycle: asyncio.Task[FlushResult] | None = None
        self._tasks: set[asyncio.Task[FlushResult]] = set()

    @property
    def state(self) -> BackoffState:
        return self._state

    @property
    def pending(self) -> list[Event]:
        """Batch being uploaded or waiting for its next retry."""
        return list(self._pending)

    def add_event(self, event: Event) -> None:
        self._events.append(event)

    def queued(self) -> list[Event]:
        return list(self._events)

    def backoff_delay(self, depth: int) -> float:
        """Wait before retrying an attempt that failed at ``depth``."""
        return min(self.base_delay * BACKOFF_MULTIPLIER**depth, self.backoff_limit)

    def flush_events(self) -> "asyncio.Future[FlushResult]":
        """Start a retry cycle unless one is already running.

        Returns:
            The running cycle's task, or an already-resolved SKIPPED result
            when a cycle was in progress or the strategy is closed. A SKIPPED
            result does not mean an upload happened.
        """
        if self._closed or self._state is not BackoffState.IDLE:
            return resolved(FlushResult(FlushStatus.SKIPPED))

        self._state = BackoffState.SENDING
        task = asyncio.ensure_future(self._run_cycle())
        self._cycle = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def abort(self) -> None:
        """Cancel a retry wait; the batch stays queued for the next flush."""
        if self._state is BackoffState.WAITING and self._cycle is not None:
            self._cycle.cancel()

    async def aclose(self) -> None:
        """Cancel a retry wait and stop scheduling attempts.

        An upload already in flight is left to finish; if it fails the cycle
        ends with the batch kept pending instead of waiting for a retry.
        """
        self._closed = True
        cycle = self._cycle
        self.abort()
        if cycle is not None and self._state is not BackoffState.SENDING:
            await asyncio.gather(cycle, return_exceptions=True)

    async def _run_cycle(self) -> FlushResult:
        depth = 0
        try:
            while True:
                # Events logged since the last attempt join this one.
                self._pending.extend(self._events)
                self._events = []
                if not self._pending:
                    self._state = BackoffState.IDLE
                    return FlushResult(FlushStatus.EMPTY)

                batch = tuple(self._pending)
                self._state = BackoffState.SENDING
                _log.info(
                    f"Sending batch of {len(batch)} events",
                    extra=batch_extra(
                        "backoff", len(batch), state=self._state.value, attempt=depth + 1
                    ),
                )
                try:
                    await self._transmit(batch)
                except Exception as e:
                    if self.max_retries is not None and depth > self.max_retries:
                        return self._drop(e, attempts=depth + 1)
                    if self._closed:
                        return self._stop(e, attempts=depth + 1)

                    delay = self.backoff_delay(depth)
                    self._state = BackoffState.WAITING
                    _log.warning(
                        f"Upload failed, retrying in {delay}s: {e}",
                        extra=batch_extra(
                            "backoff",
                            len(batch),
                            state=self._state.value,
                            attempt=depth + 1,
                            delay=delay,
                            error=str(e),
                        ),
                    )
                    await self._sleep(delay)
                    depth += 1
                    continue

                self._pending = []
                self._state = BackoffState.IDLE
                _log.debug(
                    f"Sent batch of {len(batch)} events",
                    extra=batch_extra(
                        "backoff", len(batch), state=self._state.value, attempt=depth + 1
                    ),
                )
                if self._events and not self._closed:
                    self.flush_events()
                return FlushResult(FlushStatus.SENT, sent=len(batch), attempts=depth + 1)
        except asyncio.CancelledError:
            # Pending events stay ahead of the live queue for the next cycle.
            self._state = BackoffState.IDLE
            raise

    def _drop(self, error: Exception, attempts: int) -> FlushResult:
        dropped = len(self._pending) + len(self._events)
        self._pending = []
        self._events = []
        self._state = BackoffState.IDLE
        _log.error(
            f"Retry limit exceeded after {attempts} attempts, dropped {dropped} events: {error}",
            extra=batch_extra(
                "backoff",
                state=self._state.value,
                attempt=attempts,
                dropped=dropped,
                error=str(error),
            ),
        )
        return FlushResult(FlushStatus.DROPPED, dropped=dropped, attempts=attempts, error=error)

    def _stop(self, error: Exception, attempts: int) -> FlushResult:
        # Closed mid-upload: keep the batch pending, schedule nothing.
        self._state = BackoffState.IDLE
        _log.warning(
            f"Upload failed after close, {len(self._pending)} events left pending: {error}",
            extra=batch_extra(
                "backoff",
                len(self._pending),
                state=self._state.value,
                attempt=attempts,
                error=str(error),
            ),
        )
        return FlushResult(FlushStatus.REQUEUED, attempts=attempts, error=error)
