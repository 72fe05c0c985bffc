"""HTTP Event Collector transport.

Posts each batch as newline-delimited JSON to ``{endpoint}{path}`` with a
``Splunk <token>`` authorization header. Timeouts are the transport's
business; strategies never cancel an upload mid-flight.
"""

import logging
from collections.abc import Sequence

import httpx

from hecflush.core.config import DEFAULT_PATH
from hecflush.core.errors import TransmitError
from hecflush.core.event import Event
from hecflush.core.formatting import format_batch

logger = logging.getLogger("hecflush.transport")


class HecTransport:
    """Async httpx transport for a Splunk-style HTTP Event Collector."""

    def __init__(
        self,
        endpoint: str,
        token: str,
        path: str = DEFAULT_PATH,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint: Collector base URL.
            token: Collector token sent in the Authorization header.
            path: Collector path appended to the endpoint.
            timeout: Request timeout in seconds for an owned client.
            client: Shared client; closing it stays the caller's responsibility.
        """
        self.url = f"{endpoint.rstrip('/')}{path}"
        self._headers = {"Authorization": f"Splunk {token}"}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def transmit(self, batch: Sequence[Event]) -> None:
        """POST the batch body.

        Raises:
            TransmitError: On network errors and non-2xx responses.
        """
        try:
            response = await self._client.post(
                self.url,
                content=format_batch(batch),
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise TransmitError(f"request to {self.url} failed: {e}") from e

        if not response.is_success:
            raise TransmitError(
                f"collector rejected batch of {len(batch)} events",
                status_code=response.status_code,
                body=response.text,
            )
        logger.debug(
            f"Collector accepted {len(batch)} events",
            extra={"batch_size": len(batch), "status_code": response.status_code},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
