"""hecflush - Async event batching for HTTP Event Collectors."""

from hecflush.collector import EventCollector
from hecflush.core import (
    CollectorConfig,
    ConfigurationError,
    Debouncer,
    Event,
    FlushResult,
    FlushStatus,
    HecflushError,
    InvalidEventError,
    Strategy,
    StrategyKind,
    TransmitError,
)
from hecflush.strategies import DebounceStrategy, ExponentialBackoffStrategy, build_strategy
from hecflush.transports import HecTransport, InMemoryTransport, Transport

__version__ = "0.1.0"

__all__ = [
    # Core
    "Event",
    "EventCollector",
    "CollectorConfig",
    "Debouncer",
    # Strategies
    "Strategy",
    "StrategyKind",
    "DebounceStrategy",
    "ExponentialBackoffStrategy",
    "build_strategy",
    "FlushResult",
    "FlushStatus",
    # Errors
    "HecflushError",
    "InvalidEventError",
    "ConfigurationError",
    "TransmitError",
    # Transports
    "Transport",
    "HecTransport",
    "InMemoryTransport",
    # Meta
    "__version__",
]
