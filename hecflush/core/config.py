"""Collector configuration."""

import os
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from hecflush.core.errors import ConfigurationError
from hecflush.core.strategy import StrategyKind

DEFAULT_PATH = "/services/collector/event"

# Environment variable suffix -> config field
_ENV_FIELDS = {
    "ENDPOINT": "endpoint",
    "TOKEN": "token",
    "PATH": "path",
    "HOST": "host",
    "SOURCE": "source",
    "DEBOUNCE_DELAY": "debounce_delay",
    "STRATEGY": "strategy",
    "BACKOFF_LIMIT": "backoff_limit",
    "MAX_RETRIES": "max_retries",
}


class CollectorConfig(BaseModel):
    """Settings for an EventCollector and the strategy it drives.

    Delays are in seconds. ``endpoint`` and ``token`` are only required when
    the collector builds its own HTTP transport.
    """

    endpoint: str | None = None
    token: str | None = None
    path: str = DEFAULT_PATH
    host: str = "-"
    source: str = "log"
    auto_flush: bool = True
    auto_retry: bool = True
    debounce_delay: float = Field(default=2.0, ge=0)
    strategy: StrategyKind = StrategyKind.DEBOUNCE
    backoff_limit: float = Field(default=60.0, ge=0)
    max_retries: int | None = Field(default=None, ge=0)
    inject_additional_info: bool = False
    inject_timestamp: bool = False
    parse_event_data: bool = True
    debug: bool = False

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Ensure the collector path is absolute."""
        if not v.startswith("/"):
            raise ValueError(f"path must start with '/', got: {v!r}")
        return v

    @classmethod
    def from_env(cls, prefix: str = "HECFLUSH_", **overrides: Any) -> "CollectorConfig":
        """Build a config from ``{prefix}*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, Any] = {}
        for suffix, name in _ENV_FIELDS.items():
            raw = os.getenv(f"{prefix}{suffix}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return build_config(**values)

    def merged(self, **overrides: Any) -> "CollectorConfig":
        """Return a validated copy with ``overrides`` applied."""
        return build_config(**{**self.model_dump(), **overrides})

    def require_transport_settings(self) -> tuple[str, str]:
        """Return ``(endpoint, token)`` or raise if either is missing."""
        if self.endpoint is None:
            raise ConfigurationError("endpoint must not be None")
        if self.token is None:
            raise ConfigurationError("token must not be None")
        return self.endpoint, self.token


def build_config(**values: Any) -> CollectorConfig:
    """Validate ``values`` into a CollectorConfig.

    Raises:
        ConfigurationError: If any value is rejected.
    """
    try:
        return CollectorConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"invalid collector configuration: {e}") from e
