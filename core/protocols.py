"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard, ConsoleLogger)."""

    def log_request(self, method: str, path: str, *, streaming: bool = False) -> None: ...
    def log_response(self, status: int, *, streaming: bool, duration: float) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
