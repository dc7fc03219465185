"""Relay of streamed upstream bodies to the caller."""

from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum

import anyio
import httpx


class RelayOutcome(str, Enum):
    """How a relayed stream ended."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED_BEFORE_BYTES = "failed_before_bytes"
    FAILED_AFTER_BYTES = "failed_after_bytes"
    CANCELLED = "cancelled"


class StreamRelay:
    """Pass upstream chunks through unchanged and record the outcome.

    The relay owns the upstream response: it is closed exactly once, when the
    stream ends, fails, is abandoned by the caller or is cancelled.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        close: Callable[[], Awaitable[None]],
    ) -> None:
        self._chunks = chunks
        self._close = close
        self._first = b""
        self._exhausted = False
        self._cancelled = False
        self._closed = False
        self._callbacks: list[Callable[["StreamRelay"], None]] = []
        self.bytes_sent = 0
        self.outcome = RelayOutcome.PENDING
        self.error: Exception | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def add_done_callback(self, callback: Callable[["StreamRelay"], None]) -> None:
        """Register a callback run once the upstream has been released."""
        self._callbacks.append(callback)

    async def prime(self) -> bool:
        """Pull the first non-empty chunk before any response is started.

        Returns False if the upstream failed before producing a byte; the
        relay is closed in that case and the caller may still pick a status.
        """
        try:
            while not self._first:
                self._first = await anext(self._chunks)
        except StopAsyncIteration:
            self._exhausted = True
        except httpx.HTTPError as e:
            self._fail(e)
            await self.aclose()
            return False
        return True

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            if self._first:
                chunk, self._first = self._first, b""
                self.bytes_sent += len(chunk)
                yield chunk
            if not self._exhausted:
                async for chunk in self._chunks:
                    if self._cancelled:
                        break
                    if not chunk:
                        continue
                    self.bytes_sent += len(chunk)
                    yield chunk
            if not self._cancelled:
                self.outcome = RelayOutcome.COMPLETED
        except httpx.HTTPError as e:
            if not self._cancelled:
                self._fail(e)
        except httpx.StreamError:
            # Reads interrupted by cancel() surface as a closed stream
            if not self._cancelled:
                raise
        finally:
            await self.aclose()

    async def cancel(self) -> None:
        """Stop relaying and release the upstream connection."""
        self._cancelled = True
        await self.aclose()

    async def aclose(self) -> None:
        """Release the upstream response. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self.outcome is RelayOutcome.PENDING:
            self.outcome = RelayOutcome.CANCELLED
        with anyio.CancelScope(shield=True):
            await self._close()
        for callback in self._callbacks:
            callback(self)

    def _fail(self, error: Exception) -> None:
        self.error = error
        if self.bytes_sent:
            self.outcome = RelayOutcome.FAILED_AFTER_BYTES
        else:
            self.outcome = RelayOutcome.FAILED_BEFORE_BYTES
