"""Pytest configuration, Hypothesis profiles and shared test doubles."""

import asyncio
import time
from collections.abc import Callable, Sequence

import pytest
from hypothesis import settings

from hecflush.core.errors import TransmitError
from hecflush.core.event import Event

# Register Hypothesis profiles
settings.register_profile("ci", max_examples=100)
settings.register_profile("dev", max_examples=20)

# Load dev profile by default, CI can override via --hypothesis-profile=ci
settings.load_profile("dev")


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend for pytest-asyncio."""
    return "asyncio"


def make_event(index: int) -> Event:
    """Build a small rendered event tagged with its index."""
    return Event(host="test-host", sourcetype="log", event=f"index={index} ")


class ControlledTransport:
    """Transport whose uploads complete only when the test resolves them."""

    def __init__(self) -> None:
        self.calls: list[tuple[Event, ...]] = []
        self._waiters: list[asyncio.Future[None]] = []

    async def transmit(self, batch: Sequence[Event]) -> None:
        self.calls.append(tuple(batch))
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    def succeed(self, index: int = -1) -> None:
        self._waiters[index].set_result(None)

    def fail(self, index: int = -1, error: Exception | None = None) -> None:
        self._waiters[index].set_exception(error or TransmitError("collector unavailable"))


class RecordingSleep:
    """Sleep replacement that records requested delays.

    When ``gate`` is set, each sleep blocks until the gate is opened.
    """

    def __init__(self, gate: asyncio.Event | None = None) -> None:
        self.delays: list[float] = []
        self.gate = gate

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.gate is not None:
            await self.gate.wait()
            self.gate.clear()
        else:
            await asyncio.sleep(0)


async def settle(rounds: int = 10) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def controlled_transport() -> ControlledTransport:
    return ControlledTransport()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
