from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Request
from starlette.responses import Response

from markdown_mirror.app.pipeline import convert_page
from markdown_mirror.config.settings import PipelineOptions
from markdown_mirror.domain.request_context import RequestContext

DEFAULT_ROUTER_PREFIX = "/api/markdown"
# The explicit endpoint forwards less than the transparent middleware by default.
DEFAULT_ROUTER_FORWARD: tuple[str, ...] = ("user-agent", "accept-language")
_HTML_ACCEPT = "text/html"
# RFC 3986 pchar delimiters kept as-is when re-encoding a decoded page path.
_PATH_SAFE = "/:@!$&'()*+,;="


def _page_path(ctx: RequestContext, prefix: str, page_path: str) -> str:
    # Prefer the still-encoded request path so %2F, %3F and %23 keep naming one resource.
    marker = prefix + "/"
    if ctx.path.startswith(marker):
        return "/" + ctx.path[len(marker) :].lstrip("/")
    return "/" + quote(page_path.lstrip("/"), safe=_PATH_SAFE)


def create_markdown_router(
    options: PipelineOptions | None = None,
    *,
    prefix: str = DEFAULT_ROUTER_PREFIX,
) -> APIRouter:
    """
    Build a router exposing `GET {prefix}/{path}` as the markdown rendering of `/{path}`.

    Exclusion rules do not apply here; the caller names the page explicitly.
    """
    opts = options or PipelineOptions()
    forward = (
        opts.headers.forward if opts.headers.forward is not None else list(DEFAULT_ROUTER_FORWARD)
    )
    router = APIRouter()

    @router.get(prefix + "/{page_path:path}", include_in_schema=False)
    async def markdown_page(page_path: str, request: Request) -> Response:
        ctx = RequestContext.from_scope(request.scope)
        fetcher = getattr(request.app.state, "upstream_fetcher", None)
        return await convert_page(
            ctx,
            _page_path(ctx, prefix, page_path),
            opts,
            fetcher=fetcher,
            forward=forward,
            accept=_HTML_ACCEPT,
        )

    return router
