"""Transport protocol for uploading batches.

Strategies only depend on a ``transmit`` coroutine function. Completing
normally signals success; raising any exception signals failure and the
strategy decides whether to requeue or retry.
"""

from collections.abc import Sequence
from typing import Protocol

from hecflush.core.event import Event


class Transport(Protocol):
    """Protocol for collector transports."""

    async def transmit(self, batch: Sequence[Event]) -> None:
        """Upload one batch.

        Implementations must not mutate ``batch``. The strategy does not
        deduplicate, so a retried batch may reach the collector twice.

        Args:
            batch: Events to upload, in queue order.

        Raises:
            Exception: Any exception marks the upload as failed.
        """
        ...

    async def aclose(self) -> None:
        """Release connections held by the transport."""
        ...
