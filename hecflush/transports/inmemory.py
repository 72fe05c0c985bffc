"""In-memory transport recording every batch it receives."""

import asyncio
from collections.abc import Sequence

from hecflush.core.errors import TransmitError
from hecflush.core.event import Event


class InMemoryTransport:
    """Transport that keeps uploaded batches in a list.

    This transport is suitable for development and testing. It provides
    no delivery to a real collector.

    Args:
        fail_times: Number of leading calls that fail with TransmitError.
        delay: Seconds each call waits before completing.
    """

    def __init__(self, fail_times: int = 0, delay: float = 0.0) -> None:
        self.batches: list[tuple[Event, ...]] = []
        self.attempts: list[tuple[Event, ...]] = []
        self._fail_times = fail_times
        self._delay = delay

    async def transmit(self, batch: Sequence[Event]) -> None:
        """Record the batch, or fail while failures remain.

        Raises:
            TransmitError: For the first ``fail_times`` calls.
        """
        snapshot = tuple(batch)
        self.attempts.append(snapshot)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail_times > 0:
            self._fail_times -= 1
            raise TransmitError("simulated upload failure", status_code=503)
        self.batches.append(snapshot)

    async def aclose(self) -> None:
        pass

    @property
    def events(self) -> list[Event]:
        """All successfully uploaded events, in upload order."""
        return [event for batch in self.batches for event in batch]
