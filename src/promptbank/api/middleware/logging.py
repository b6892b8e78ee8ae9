"""Per-request log context, timing and form action outcomes."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.datastructures import URL, QueryParams
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger()

MAX_REQUEST_ID_LENGTH = 128
QUIET_PATHS = ("/health/live", "/health/ready")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id into the structlog context and log every request.

    Form actions answer with a 303 whose query carries either ``status`` or
    ``error``; that outcome is logged so a rejected submission is visible
    without the browser.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id", "")[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)

        response.headers["x-request-id"] = request_id
        response.headers["x-promptbank-latency-ms"] = str(duration_ms)

        if request.url.path in QUIET_PATHS:
            return response

        fields = {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "client": request.client.host if request.client else None,
        }
        location = response.headers.get("location")
        if response.status_code == 303 and location:
            fields.update(redirect_outcome(location))

        if "error" in fields:
            await logger.awarning("http.action_rejected", **fields)
        else:
            await logger.ainfo("http.request", **fields)
        return response


def redirect_outcome(location: str) -> dict[str, str | None]:
    """Split a form action redirect into its target path and ``status`` or ``error``."""
    target = URL(location)
    params = QueryParams(target.query)
    outcome: dict[str, str | None] = {"redirect": target.path}
    if "error" in params:
        outcome["error"] = params["error"]
    else:
        outcome["outcome"] = params.get("status")
    return outcome
