"""Shared request and response data types."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from services.relay import StreamRelay

EVENT_STREAM = "text/event-stream"


@dataclass(frozen=True)
class InboundRequest:
    """A parsed request received on the proxy route."""

    method: str
    path: str
    headers: dict[str, str]
    body: Any = field(default_factory=dict)

    @property
    def wants_stream(self) -> bool:
        """Whether the caller asked for a server-sent event stream."""
        return EVENT_STREAM in self.headers.get("accept", "")


@dataclass(frozen=True)
class JsonBody:
    """Buffered upstream body that decoded to a JSON object or array."""

    value: dict[str, Any] | list[Any]


@dataclass(frozen=True)
class TextBody:
    """Buffered upstream body relayed as raw bytes."""

    content: bytes


@dataclass(frozen=True)
class StreamBody:
    """Open upstream byte stream."""

    relay: "StreamRelay"


UpstreamBody = Union[JsonBody, TextBody, StreamBody]


@dataclass(frozen=True)
class UpstreamResponse:
    """Status, raw headers and body of an upstream reply."""

    status_code: int
    headers: list[tuple[str, str]]
    body: UpstreamBody
