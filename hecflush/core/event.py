"""Event model for hecflush."""

import json
from typing import Any

from pydantic import BaseModel, field_validator

EventData = dict[str, str | int | float | bool]


class Event(BaseModel):
    """Immutable, already-formatted collector record.

    Events are the unit a batching strategy queues and uploads. They are:
    - Immutable (frozen after creation)
    - Opaque to the strategies (never inspected, only ordered)
    - Serializable (one JSON object per event in a batch body)

    Attributes:
        host: Host the event is attributed to.
        sourcetype: Collector source type.
        time: Optional epoch timestamp in milliseconds.
        event: Rendered event string, or the raw key/value record.
    """

    host: str
    sourcetype: str
    time: int | None = None
    event: str | EventData

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @field_validator("sourcetype")
    @classmethod
    def validate_sourcetype(cls, v: str) -> str:
        """Ensure sourcetype is non-empty after whitespace stripping."""
        v = v.strip()
        if not v:
            raise ValueError("sourcetype must not be empty")
        return v

    def to_json(self) -> str:
        """Serialize to the JSON object sent to the collector."""
        data: dict[str, Any] = self.model_dump(exclude_none=True)
        return json.dumps(data, separators=(",", ":"))
