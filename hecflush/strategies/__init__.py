"""Batching strategies and the factory selecting one at configuration time."""

from hecflush.core.config import CollectorConfig
from hecflush.core.strategy import Strategy, StrategyKind, Transmit
from hecflush.strategies.backoff import BackoffState, ExponentialBackoffStrategy
from hecflush.strategies.debounce import DebounceState, DebounceStrategy


def build_strategy(config: CollectorConfig, transmit: Transmit) -> Strategy:
    """Instantiate the strategy named by ``config.strategy``."""
    if config.strategy is StrategyKind.DEBOUNCE:
        return DebounceStrategy(
            transmit,
            debounce_delay=config.debounce_delay,
            auto_retry=config.auto_retry,
        )
    if config.strategy is StrategyKind.EXPONENTIAL_BACKOFF:
        return ExponentialBackoffStrategy(
            transmit,
            backoff_limit=config.backoff_limit,
            max_retries=config.max_retries,
        )
    raise ValueError(f"unknown strategy kind: {config.strategy!r}")


__all__ = [
    "BackoffState",
    "DebounceState",
    "DebounceStrategy",
    "ExponentialBackoffStrategy",
    "build_strategy",
]
