"""EventCollector: the client-facing entry point.

Builds events from workflow records, routes them to the configured batching
strategy and owns the HTTP transport when no custom ``transmit`` is given.
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from hecflush.core.config import CollectorConfig
from hecflush.core.errors import ConfigurationError, InvalidEventError, TransmitError
from hecflush.core.event import Event
from hecflush.core.formatting import additional_info, parse_event_data, validate_event_data
from hecflush.core.logging import batch_extra, get_logger
from hecflush.core.strategy import FlushResult, Strategy, Transmit
from hecflush.strategies import DebounceStrategy, ExponentialBackoffStrategy, build_strategy
from hecflush.transports.http import HecTransport

# Settings that require a fresh HTTP transport when changed
_TRANSPORT_FIELDS = ("endpoint", "token", "path")


class EventCollector:
    """Batches workflow events and forwards them to a collector.

    Example:
        async with EventCollector(CollectorConfig(endpoint=url, token=token)) as collector:
            collector.log_event("info", "click", "checkout", "cart", {"item": "42"})
    """

    def __init__(
        self,
        config: CollectorConfig | None = None,
        transmit: Transmit | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            config: Collector settings. Defaults to CollectorConfig().
            transmit: Upload coroutine function. Defaults to an HecTransport
                built from ``config.endpoint`` and ``config.token``.
        """
        self._config = config or CollectorConfig()
        self._transmit = transmit
        self._transport: HecTransport | None = None
        self._retired_transports: list[HecTransport] = []
        self._strategy: Strategy | None = None
        self._closed = False
        self._log = get_logger("hecflush.collector", self._log_level())

    @property
    def config(self) -> CollectorConfig:
        return self._config

    @property
    def strategy(self) -> Strategy:
        """The active strategy, built on first use."""
        if self._strategy is None:
            self._strategy = build_strategy(self._config, self._send)
        return self._strategy

    def configure(self, **overrides: Any) -> CollectorConfig:
        """Apply setting overrides to the running collector.

        A new debounce delay cancels the scheduled timer and replaces it.

        Raises:
            ConfigurationError: On invalid values, or when switching strategy
                after it has been built.
        """
        config = self._config.merged(**overrides)
        strategy = self._strategy
        if strategy is not None and config.strategy is not self._config.strategy:
            raise ConfigurationError("strategy cannot change once the collector is in use")

        if isinstance(strategy, DebounceStrategy):
            strategy.debounce_delay = config.debounce_delay
            strategy.auto_retry = config.auto_retry
        elif isinstance(strategy, ExponentialBackoffStrategy):
            strategy.backoff_limit = config.backoff_limit
            strategy.max_retries = config.max_retries

        if self._transport is not None and any(
            getattr(config, name) != getattr(self._config, name) for name in _TRANSPORT_FIELDS
        ):
            self._retired_transports.append(self._transport)
            self._transport = None

        self._config = config
        self._log.setLevel(self._log_level())
        return config

    def log_event(
        self,
        level: str,
        type: str,
        workflow_type: str,
        workflow_instance: str,
        event_data: Mapping[str, Any] | None,
        account: str = "",
    ) -> "asyncio.Future[FlushResult] | None":
        """Queue one workflow event.

        Returns:
            The flush future when ``auto_flush`` is enabled, else None.

        Raises:
            InvalidEventError: If ``event_data`` is not a valid record.
        """
        event = self.build_event(level, type, workflow_type, workflow_instance, event_data, account)
        strategy = self.strategy
        strategy.add_event(event)
        self._log.debug(
            f"Queued {type} event for {workflow_type}/{workflow_instance}",
            extra=batch_extra(self._config.strategy.value),
        )
        if self._config.auto_flush:
            return strategy.flush_events()
        return None

    def build_event(
        self,
        level: str,
        type: str,
        workflow_type: str,
        workflow_instance: str,
        event_data: Mapping[str, Any] | None,
        account: str = "",
    ) -> Event:
        """Render a workflow record into an Event without queueing it."""
        data = validate_event_data(event_data)
        record: dict[str, Any] = {
            "level": level,
            "type": type,
            "workflowType": workflow_type,
            "workflowInstance": workflow_instance,
            "account": account,
            **data,
        }
        if self._config.inject_additional_info:
            record.update(additional_info())

        payload: str | dict[str, Any]
        if self._config.parse_event_data:
            payload = parse_event_data(record)
        else:
            payload = {key: value for key, value in record.items() if value is not None}

        try:
            return Event(
                host=self._config.host,
                sourcetype=self._config.source,
                time=int(time.time() * 1000) if self._config.inject_timestamp else None,
                event=payload,
            )
        except ValidationError as e:
            raise InvalidEventError(f"invalid event: {e}") from e

    def flush(self) -> "asyncio.Future[FlushResult]":
        """Request an upload through the active strategy."""
        return self.strategy.flush_events()

    def abort(self) -> None:
        """Cancel a scheduled upload without touching queued events."""
        if self._strategy is not None:
            self._strategy.abort()

    async def aclose(self) -> None:
        """Stop the strategy and close every HTTP transport the collector built.

        Uploads requested after this point fail without opening a connection.
        """
        self._closed = True
        if self._strategy is not None:
            await self._strategy.aclose()
        if self._transport is not None:
            self._retired_transports.append(self._transport)
            self._transport = None
        await self._close_retired()

    async def __aenter__(self) -> "EventCollector":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _send(self, batch: Sequence[Event]) -> None:
        self._log.debug(
            f"Sending {len(batch)} events",
            extra=batch_extra(self._config.strategy.value, len(batch)),
        )
        if self._transmit is not None:
            await self._transmit(batch)
            return
        if self._closed:
            raise TransmitError("collector is closed")
        # Strategies keep a single upload in flight, so retired transports are idle here.
        await self._close_retired()
        if self._transport is None:
            endpoint, token = self._config.require_transport_settings()
            self._transport = HecTransport(endpoint, token, path=self._config.path)
        await self._transport.transmit(batch)

    async def _close_retired(self) -> None:
        transports, self._retired_transports = self._retired_transports, []
        for transport in transports:
            await transport.aclose()

    def _log_level(self) -> int:
        return logging.DEBUG if self._config.debug else logging.INFO
