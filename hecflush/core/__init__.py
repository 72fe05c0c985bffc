"""Core components for the hecflush batching engine.

This module exposes the primary types and utilities:

Types:
    Event: Immutable, already-formatted collector record.
    CollectorConfig: Validated settings for a collector and its strategy.
    Debouncer: Restartable trailing-edge timer.

Strategy contract:
    Strategy: Protocol implemented by the batching strategies.
    StrategyKind: Closed set of strategies (DEBOUNCE, EXPONENTIAL_BACKOFF).
    FlushStatus: Outcome of a flush cycle (SENT, EMPTY, DEFERRED, ...).
    FlushResult: Status plus counts and the failure, if any.

Errors:
    HecflushError: Base class.
    InvalidEventError: Event data rejected before queueing.
    ConfigurationError: Invalid or incomplete configuration.
    TransmitError: Upload failure raised by a transport.
"""

from hecflush.core.config import CollectorConfig
from hecflush.core.errors import (
    ConfigurationError,
    HecflushError,
    InvalidEventError,
    TransmitError,
)
from hecflush.core.event import Event
from hecflush.core.strategy import FlushResult, FlushStatus, Strategy, StrategyKind, Transmit
from hecflush.core.timer import Debouncer

__all__ = [
    "CollectorConfig",
    "ConfigurationError",
    "Debouncer",
    "Event",
    "FlushResult",
    "FlushStatus",
    "HecflushError",
    "InvalidEventError",
    "Strategy",
    "StrategyKind",
    "Transmit",
    "TransmitError",
]
