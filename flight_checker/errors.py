"""Exception hierarchy shared by the clients, the notifier and the runner."""

from __future__ import annotations

from typing import Optional


class FlightCheckerError(RuntimeError):
    """Base class for all errors raised by this package."""


class ConfigError(FlightCheckerError):
    """Missing or invalid startup parameter. Fatal."""


class RequestError(FlightCheckerError):
    """Network/transport failure while talking to an upstream API."""


class ResponseError(FlightCheckerError):
    """Upstream API answered with a non-2xx status or a malformed payload."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ResponseError):
    """HTTP 429 (or Telegram ``RetryAfter``).

    *retry_after* is the server's hint in seconds, when it sent one.
    """

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = 429,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class DeliveryError(FlightCheckerError):
    """A message could not be posted to Telegram."""


__all__ = [
    "FlightCheckerError",
    "ConfigError",
    "RequestError",
    "ResponseError",
    "RateLimitError",
    "DeliveryError",
]
