"""Transport implementations for uploading batches."""

from hecflush.transports.base import Transport
from hecflush.transports.http import HecTransport
from hecflush.transports.inmemory import InMemoryTransport

__all__ = ["HecTransport", "InMemoryTransport", "Transport"]
