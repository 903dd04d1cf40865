"""Exceptions raised by event sources and the aggregation pipeline."""
from typing import Optional


class SourceError(Exception):
    """Base class for failures of a single event source."""


class SourceTransportError(SourceError):
    """The upstream could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SourceDataError(SourceError):
    """The upstream payload could not be decoded or is missing required fields."""


class SourceCancelled(SourceError):
    """A sibling source failed and this source stopped early."""


class AggregationError(Exception):
    """Raised by the fan-out coordinator when any source fails."""

    def __init__(self, source_name: str, message: str):
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name


class InvalidWindowError(ValueError):
    """The today/tomorrow pair handed to the aggregator is not a valid window."""


class RateLimiterError(Exception):
    """Waiting on the rate limiter was interrupted."""


class SecretNotFoundError(Exception):
    """A secret exists but holds no string value."""


class UploadError(Exception):
    """Publishing the rendered pages failed."""
