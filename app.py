"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_healthz, handle_proxy
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from services.forwarding_service import ForwardingService
from services.upstream import UPSTREAM_TIMEOUT, UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # No connection cap: backpressure is left to the transport and OS.
        # Redirects are not followed so a 3xx is relayed like any other status.
        limits = httpx.Limits(max_connections=None, max_keepalive_connections=20)
        upstream_client = httpx.AsyncClient(
            timeout=UPSTREAM_TIMEOUT,
            limits=limits,
            transport=transport,
        )
        forwarding_service = ForwardingService(
            upstream=UpstreamClient(upstream_client, config.target_url),
            header_builder=HeaderBuilder(),
            logger=logger,
        )
        app.state.forwarding_service = forwarding_service
        try:
            yield
        finally:
            await forwarding_service.shutdown()
            await upstream_client.aclose()

    app = FastAPI(title="Relay Proxy", version="0.1.0", lifespan=lifespan)

    @app.get("/healthz")
    async def healthz():
        return await handle_healthz()

    @app.post("/proxy")
    async def proxy(request: Request):
        return await handle_proxy(request, config, logger)

    return app
