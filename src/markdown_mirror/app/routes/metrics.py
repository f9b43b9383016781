from __future__ import annotations

import hmac

from fastapi import APIRouter, Request
from pydantic import SecretStr
from starlette.responses import Response

from markdown_mirror.observability.metrics import render_latest

router = APIRouter()

_BEARER_PREFIX = "Bearer "


def _metrics_unauthorized() -> Response:
    return Response(
        content="Unauthorized\n",
        status_code=401,
        media_type="text/plain",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_matches(authorization: str, token: SecretStr) -> bool:
    if not authorization.startswith(_BEARER_PREFIX):
        return False
    expected = token.get_secret_value().encode("utf-8")
    provided = authorization[len(_BEARER_PREFIX):].strip().encode("utf-8")
    return bool(expected) and hmac.compare_digest(expected, provided)


@router.get("/metrics")
def metrics(request: Request) -> Response:
    settings = getattr(request.app.state, "settings", None)
    token = settings.observability.metrics_bearer_token if settings is not None else None
    if token is not None and not _bearer_matches(request.headers.get("Authorization", ""), token):
        return _metrics_unauthorized()
    payload, content_type = render_latest()
    return Response(content=payload, headers={"Content-Type": content_type})
