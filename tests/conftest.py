"""Shared fixtures: an in-process proxy talking to a mocked upstream."""

from contextlib import asynccontextmanager

import anyio
import httpx
import pytest

from app import create_app
from core.config import Config

UPSTREAM_URL = "http://upstream.test/v1/chat/completions"


class RecordingLogger:
    """RequestLogger that keeps every event for assertions."""

    def __init__(self):
        self.requests: list[tuple[str, str, bool]] = []
        self.responses: list[tuple[int, bool]] = []
        self.errors: list[tuple[str, int, str]] = []

    def log_request(self, method, path, *, streaming=False):
        self.requests.append((method, path, streaming))

    def log_response(self, status, *, streaming, duration):
        self.responses.append((status, streaming))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


class ChunkStream(httpx.AsyncByteStream):
    """Upstream body yielding fixed chunks.

    After the chunks it can fail with ``error`` or, with ``hang``, stay open
    without sending more. ``delay`` spaces the chunks out.
    """

    def __init__(
        self,
        chunks: list[bytes],
        error: Exception | None = None,
        *,
        delay: float = 0.0,
        hang: bool = False,
    ):
        self.chunks = chunks
        self.error = error
        self.delay = delay
        self.hang = hang
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            if self.delay:
                await anyio.sleep(self.delay)
            yield chunk
        if self.error is not None:
            raise self.error
        if self.hang:
            await anyio.sleep_forever()

    async def aclose(self):
        self.closed = True


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def config(tmp_path):
    return Config(target_url=UPSTREAM_URL, log_dir=tmp_path / "logs")


@pytest.fixture
def proxy_client(config, logger):
    """Build an AsyncClient bound to the proxy app with a mocked upstream."""

    @asynccontextmanager
    async def factory(handler):
        app = create_app(config, logger, transport=httpx.MockTransport(handler))
        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://proxy.test") as client:
                yield client

    return factory
