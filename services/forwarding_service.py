"""Forwarding of inbound requests to the upstream and relay of its reply."""

import json
import time
from typing import Any

from fastapi import Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from core.exceptions import UpstreamError
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import InboundRequest, JsonBody, StreamBody, UpstreamResponse
from services.relay import RelayOutcome, StreamRelay
from services.upstream import UpstreamClient, describe

ROUTE = "upstream"
FALLBACK_STATUS = 502


class RelayResponse(StreamingResponse):
    """Streaming response that always releases its relay once sent."""

    def __init__(self, relay: StreamRelay, status_code: int) -> None:
        super().__init__(relay, status_code=status_code)
        self.relay = relay

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.relay.aclose()


def error_response(error: UpstreamError) -> JSONResponse:
    """Translate a transport failure into a JSON reply for the caller."""
    status = error.status_code or FALLBACK_STATUS
    payload: Any = error.payload
    if payload is None:
        payload = {"error": "Upstream request failed", "detail": str(error)}
    return JSONResponse(payload, status_code=status)


def _encode_json(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _extend_headers(response: Response, headers: list[tuple[str, str]]) -> None:
    """Append upstream headers without clobbering ones Starlette computed."""
    computed = {key for key, _ in response.raw_headers}
    for key, value in headers:
        raw_key = key.lower().encode("latin-1")
        if raw_key in computed:
            continue
        response.raw_headers.append((raw_key, value.encode("latin-1")))


class ForwardingService:
    """Send each inbound request upstream once and mirror the reply."""

    def __init__(
        self,
        upstream: UpstreamClient,
        header_builder: HeaderBuilder,
        logger: RequestLogger,
    ) -> None:
        self._upstream = upstream
        self._headers = header_builder
        self._logger = logger
        self._active: set[StreamRelay] = set()

    @property
    def active_streams(self) -> int:
        return len(self._active)

    async def forward(self, request: InboundRequest) -> Response:
        """Forward one request; upstream failures become HTTP replies."""
        started = time.monotonic()
        streaming = request.wants_stream
        headers = self._headers.sanitize(request.headers)
        self._logger.log_request(request.method, request.path, streaming=streaming)

        try:
            upstream = await self._upstream.dispatch(request.body, headers, stream=streaming)
        except UpstreamError as e:
            response = error_response(e)
            self._logger.log_error(ROUTE, response.status_code, str(e))
            return response

        self._logger.log_response(
            upstream.status_code,
            streaming=streaming,
            duration=time.monotonic() - started,
        )
        return await self._render(upstream)

    async def shutdown(self) -> None:
        """Cancel in-flight streams so their upstream connections are released."""
        for relay in list(self._active):
            await relay.cancel()

    async def _render(self, upstream: UpstreamResponse) -> Response:
        headers = self._headers.response_headers(upstream.headers)
        body = upstream.body

        if isinstance(body, StreamBody):
            return await self._stream(upstream.status_code, headers, body.relay)

        has_content_type = any(key.lower() == "content-type" for key, _ in headers)
        if isinstance(body, JsonBody):
            content = _encode_json(body.value)
            media_type = None if has_content_type else "application/json"
        else:
            content = body.content
            media_type = None

        response = Response(content=content, status_code=upstream.status_code, media_type=media_type)
        _extend_headers(response, headers)
        return response

    async def _stream(
        self,
        status: int,
        headers: list[tuple[str, str]],
        relay: StreamRelay,
    ) -> Response:
        if not await relay.prime():
            message = f"stream error: {describe(relay.error)}"
            self._logger.log_error(ROUTE, FALLBACK_STATUS, message)
            return Response(content=message, status_code=FALLBACK_STATUS, media_type="text/plain")

        self._active.add(relay)
        relay.add_done_callback(lambda done: self._release(done, status))
        response = RelayResponse(relay, status_code=status)
        _extend_headers(response, headers)
        return response

    def _release(self, relay: StreamRelay, status: int) -> None:
        self._active.discard(relay)
        if relay.outcome is RelayOutcome.FAILED_AFTER_BYTES:
            self._logger.log_error(
                ROUTE,
                status,
                f"stream error after {relay.bytes_sent} bytes: {describe(relay.error)}",
            )
