"""HTTP dispatch to the configured upstream."""

import json
from typing import Any

import anyio
import httpx

from core.exceptions import UpstreamConnectionError, UpstreamError, UpstreamTimeoutError
from core.request_types import JsonBody, StreamBody, TextBody, UpstreamResponse
from services.relay import StreamRelay

UPSTREAM_TIMEOUT = 120.0


def decode_body(content: bytes) -> JsonBody | TextBody:
    """Decode a buffered body as JSON, keeping non-structured bodies raw."""
    try:
        value = json.loads(content)
    except ValueError:
        return TextBody(content)
    if isinstance(value, (dict, list)):
        return JsonBody(value)
    return TextBody(content)


def describe(error: BaseException) -> str:
    """Human readable message for transport errors that may have none."""
    return str(error) or type(error).__name__


class UpstreamClient:
    """Send one POST per inbound request to the upstream URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        target_url: str,
        timeout: float = UPSTREAM_TIMEOUT,
    ) -> None:
        self._client = client
        self._target_url = target_url
        self._timeout = timeout

    @property
    def target_url(self) -> str:
        return self._target_url

    async def dispatch(
        self,
        body: Any,
        headers: dict[str, str],
        *,
        stream: bool,
    ) -> UpstreamResponse:
        """Forward the body and return the upstream reply, whatever its status.

        Raises:
            UpstreamError: the call failed below HTTP (connect, DNS, TLS,
                timeout, protocol) or a client hook rejected the response.
        """
        request = self._client.build_request(
            "POST",
            self._target_url,
            json=body,
            headers=headers,
            timeout=self._timeout,
        )
        try:
            # Whole-call deadline: headers plus body when buffered, headers only when streamed
            with anyio.fail_after(self._timeout):
                response = await self._client.send(request, stream=stream)
        except TimeoutError as e:
            raise UpstreamTimeoutError(f"upstream did not respond within {self._timeout:g}s") from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(describe(e)) from e
        except httpx.HTTPStatusError as e:
            payload = await self._read_error_payload(e.response)
            raise UpstreamError(
                describe(e),
                status_code=e.response.status_code,
                payload=payload,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamConnectionError(describe(e)) from e

        raw_headers = [
            (key.decode("latin-1"), value.decode("latin-1"))
            for key, value in response.headers.raw
        ]
        if stream:
            relay = StreamRelay(response.aiter_bytes(), response.aclose)
            return UpstreamResponse(response.status_code, raw_headers, StreamBody(relay))
        return UpstreamResponse(response.status_code, raw_headers, decode_body(response.content))

    async def _read_error_payload(self, response: httpx.Response) -> Any:
        """Best-effort body of a response rejected by a client hook."""
        try:
            content = await response.aread()
        except (httpx.HTTPError, httpx.StreamError):
            return None
        finally:
            await response.aclose()
        body = decode_body(content)
        if isinstance(body, JsonBody):
            return body.value
        return content.decode("utf-8", errors="replace") or None
