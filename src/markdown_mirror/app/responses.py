"""Centralized API response helpers for consistent JSON error and markdown success shapes."""

from __future__ import annotations

from collections.abc import Mapping

from starlette.responses import JSONResponse, Response

from markdown_mirror.config.settings import CacheOptions
from markdown_mirror.domain.errors import PipelineError

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
NO_STORE_CACHE_CONTROL = "no-cache, no-store, must-revalidate"


def api_error(
    status_code: int,
    detail: str,
    *,
    code: str | None = None,
    hint: str | None = None,
    request_id: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Return a JSON error response with optional code, hint and request id."""
    content: dict[str, str] = {"detail": detail}
    if code is not None:
        content["code"] = code
    if hint is not None:
        content["hint"] = hint
    if request_id is not None:
        content["request_id"] = request_id
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=dict(headers) if headers else None,
    )


def pipeline_error_response(error: PipelineError) -> JSONResponse:
    """Default mapping: one status per error kind, generic detail only."""
    return api_error(
        error.status_code,
        error.public_detail,
        code=error.code,
        headers={"Cache-Control": NO_STORE_CACHE_CONTROL},
    )


def cache_control_header(cache: CacheOptions) -> str:
    if not cache.enabled:
        return NO_STORE_CACHE_CONTROL
    s_max_age = cache.max_age_seconds if cache.s_max_age_seconds is None else cache.s_max_age_seconds
    return f"public, max-age={cache.max_age_seconds}, s-maxage={s_max_age}"


def markdown_response(
    markdown: str,
    *,
    cache: CacheOptions,
    custom_headers: Mapping[str, str] | None = None,
) -> Response:
    response = Response(
        content=markdown,
        status_code=200,
        headers={
            "Content-Type": MARKDOWN_CONTENT_TYPE,
            "Cache-Control": cache_control_header(cache),
        },
    )
    for name, value in (custom_headers or {}).items():
        response.headers[name] = value
    return response
