from __future__ import annotations

import re
import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-Id"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

CallNext = Callable[[Request], Awaitable[Response]]


def resolve_request_id(candidate: str | None) -> str:
    """Keep a well-formed inbound id; otherwise mint a fresh UUID4."""
    value = (candidate or "").strip()
    if _REQUEST_ID_RE.fullmatch(value):
        return value
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds `request_id` into structlog context vars and echoes it on every response."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
        ):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
