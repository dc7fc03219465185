"""FastAPI route handlers."""

import json
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.config import Config
from core.exceptions import InvalidJSON
from core.protocols import RequestLogger
from core.request_types import InboundRequest
from ui.log_utils import write_incoming_log


async def _parse_json_body(request: Request) -> Any:
    """Parse the request body as JSON; an empty body is an empty object."""
    raw_body = await request.body()
    if not raw_body.strip():
        return {}
    try:
        return json.loads(raw_body)
    except ValueError as e:
        raise InvalidJSON(str(e)) from e


async def handle_proxy(
    request: Request,
    config: Config,
    logger: RequestLogger,
) -> Response:
    """Handle POST /proxy by forwarding to the configured upstream."""
    try:
        body = await _parse_json_body(request)
    except InvalidJSON as e:
        logger.log_error("proxy", 400, f"Invalid JSON: {e}")
        return JSONResponse({"error": f"Invalid JSON: {e}"}, status_code=400)

    headers = dict(request.headers)
    if config.debug:
        write_incoming_log(
            request.method,
            request.url.path,
            headers,
            body,
            log_root=config.log_dir,
        )

    inbound = InboundRequest(
        method=request.method,
        path=request.url.path,
        headers=headers,
        body=body,
    )
    forwarding_service = request.app.state.forwarding_service
    return await forwarding_service.forward(inbound)


async def handle_healthz() -> dict[str, str]:
    """Liveness probe; never touches the upstream."""
    return {"status": "ok"}
