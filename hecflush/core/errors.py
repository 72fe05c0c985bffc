"""Exception hierarchy for hecflush."""


class HecflushError(Exception):
    """Base class for all hecflush errors."""


class InvalidEventError(HecflushError, ValueError):
    """Raised when event data is rejected before it reaches a strategy."""


class ConfigurationError(HecflushError, ValueError):
    """Raised when the collector configuration is incomplete or inconsistent."""


class TransmitError(HecflushError):
    """Raised by a transport when an upload fails.

    Attributes:
        status_code: HTTP status returned by the collector, if any.
        body: Response body returned by the collector, if any.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (status: {self.status_code})"
        return base
