"""Restartable trailing-edge timer used for debounced flushing."""

import asyncio
import inspect
from collections.abc import Callable
from functools import partial
from typing import Any


class Debouncer:
    """Delays an action until ``delay`` seconds pass without a new schedule call.

    Each ``schedule()`` cancels the previous pending invocation and restarts the
    delay, so a steady stream of calls keeps postponing the action. The returned
    future resolves with the action's result (awaiting coroutine actions), or is
    cancelled if the invocation is aborted before it starts.

    Args:
        action: Callable invoked when the timer fires. May be a coroutine function.
        delay: Quiet period in seconds. Zero still defers to the next loop iteration.
    """

    def __init__(self, action: Callable[[], Any], delay: float = 0.1) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay!r}")
        self._action = action
        self._delay = delay
        self._timer: asyncio.TimerHandle | None = None
        self._waiter: asyncio.Future[Any] | None = None
        # Started invocations, kept referenced until they finish
        self._running: set[asyncio.Future[Any]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while an invocation is scheduled but has not started."""
        return self._timer is not None

    def schedule(self) -> "asyncio.Future[Any]":
        """(Re)start the delay and return a future for this invocation."""
        loop = asyncio.get_running_loop()
        self.cancel()
        waiter: asyncio.Future[Any] = loop.create_future()
        self._waiter = waiter
        self._timer = loop.call_later(self._delay, self._fire, waiter)
        return waiter

    def cancel(self) -> bool:
        """Abort the pending invocation, if any.

        Returns:
            True if an invocation was pending and has been cancelled.
        """
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        waiter, self._waiter = self._waiter, None
        if waiter is not None and not waiter.done():
            waiter.cancel()
        return True

    def _fire(self, waiter: "asyncio.Future[Any]") -> None:
        self._timer = None
        self._waiter = None
        try:
            result = self._action()
        except Exception as e:
            if not waiter.done():
                waiter.set_exception(e)
            return

        if not inspect.isawaitable(result):
            if not waiter.done():
                waiter.set_result(result)
            return

        task = asyncio.ensure_future(result)
        self._running.add(task)
        task.add_done_callback(partial(self._settle, waiter))

    def _settle(self, waiter: "asyncio.Future[Any]", task: "asyncio.Future[Any]") -> None:
        self._running.discard(task)
        if task.cancelled():
            if not waiter.done():
                waiter.cancel()
            return
        error = task.exception()
        if waiter.done():
            return
        if error is not None:
            waiter.set_exception(error)
        else:
            waiter.set_result(task.result())
