"""Custom exception hierarchy for the relay proxy."""

from typing import Any


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class InvalidJSON(ProxyError):
    """Request body is not valid JSON."""


class UpstreamError(ProxyError):
    """Raised when the upstream call fails at the transport level.

    Attributes:
        message: Error message
        status_code: HTTP status code carried by the failure (optional)
        payload: Error body carried by the failure (optional)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class UpstreamTimeoutError(UpstreamError):
    """Raised when the upstream request times out."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None)


class UpstreamConnectionError(UpstreamError):
    """Raised when unable to reach the upstream."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None)
