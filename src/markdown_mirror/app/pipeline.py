from __future__ import annotations

import inspect
import time
from collections.abc import Iterable

import structlog
from starlette.responses import Response

from markdown_mirror.adapters.markdown.converter import convert_html_to_markdown
from markdown_mirror.adapters.upstream.fetcher import UpstreamFetcher, UpstreamPage
from markdown_mirror.app.responses import markdown_response, pipeline_error_response
from markdown_mirror.config.settings import ErrorHook, PipelineOptions
from markdown_mirror.domain.errors import (
    FetchTimeoutError,
    ForbiddenError,
    InternalError,
    MissingHostError,
    PipelineError,
    wrap_exception,
)
from markdown_mirror.domain.path_policy import (
    build_absolute_url,
    is_markdown_path,
    original_path,
    should_exclude_path,
)
from markdown_mirror.domain.request_context import RequestContext
from markdown_mirror.domain.safe_headers import extract_safe_headers
from markdown_mirror.domain.ssrf import MISSING_HOST_REASON, validate_internal_request
from markdown_mirror.observability.metrics import (
    conversion_seconds,
    markdown_requests_total,
    markdown_skipped_total,
    upstream_bytes,
    upstream_fetch_seconds,
)

log = structlog.get_logger(__name__)

_DEFAULT_OPTIONS = PipelineOptions()


async def handle_markdown_request(
    ctx: RequestContext,
    options: PipelineOptions | None = None,
    *,
    fetcher: UpstreamFetcher | None = None,
) -> Response | None:
    """
    Answer a `.md` request with the markdown rendering of the page it shadows.

    Returns None when the request is not eligible (no marker suffix, or excluded) so the caller
    continues with its normal handling.
    """
    opts = options or _DEFAULT_OPTIONS
    if not is_markdown_path(ctx.path):
        return None

    exclude = opts.exclude
    if should_exclude_path(ctx.path, exclude.paths, exclude_api_routes=exclude.exclude_api_routes):
        markdown_skipped_total.inc()
        log.debug("markdown.skipped", path=ctx.path)
        return None

    return await convert_page(ctx, original_path(ctx.path), opts, fetcher=fetcher)


async def convert_page(
    ctx: RequestContext,
    page_path: str,
    options: PipelineOptions,
    *,
    fetcher: UpstreamFetcher | None = None,
    forward: Iterable[str] | None = None,
    accept: str | None = None,
) -> Response:
    """
    Fetch `page_path` from the request's origin and return it as markdown.

    Every failure is turned into a response by `map_error`; nothing is raised to the caller.
    `forward` defaults to the configured forward list.
    """
    if forward is None:
        forward = options.headers.forward

    try:
        markdown = await _render(
            ctx,
            page_path,
            options,
            fetcher=fetcher,
            forward=forward,
            accept=accept,
        )
    except Exception as exc:
        return await map_error(exc, ctx, options.on_error)

    markdown_requests_total.labels(outcome="converted").inc()
    return markdown_response(markdown, cache=options.cache, custom_headers=options.headers.custom)


async def _render(
    ctx: RequestContext,
    page_path: str,
    options: PipelineOptions,
    *,
    fetcher: UpstreamFetcher | None,
    forward: Iterable[str] | None,
    accept: str | None,
) -> str:
    target_url = build_absolute_url(page_path, ctx)

    validation = validate_internal_request(target_url, ctx)
    if not validation.is_valid:
        if validation.reason == MISSING_HOST_REASON:
            raise MissingHostError()
        raise ForbiddenError(validation.reason or "Forbidden")

    headers = extract_safe_headers(ctx, forward)
    if accept is not None:
        headers["accept"] = accept

    started = time.perf_counter()
    if fetcher is None:
        async with UpstreamFetcher() as owned:
            page = await _fetch(owned, target_url, ctx, headers, options)
    else:
        page = await _fetch(fetcher, target_url, ctx, headers, options)
    upstream_fetch_seconds.observe(time.perf_counter() - started)
    upstream_bytes.observe(page.size)

    with conversion_seconds.time():
        markdown = convert_html_to_markdown(page.html, page.url, options.converter)

    log.info(
        "markdown.converted",
        path=ctx.path,
        upstream_bytes=page.size,
        markdown_chars=len(markdown),
    )
    return markdown


async def _fetch(
    fetcher: UpstreamFetcher,
    target_url: str,
    ctx: RequestContext,
    headers: dict[str, str],
    options: PipelineOptions,
) -> UpstreamPage:
    return await fetcher.fetch(
        target_url,
        ctx=ctx,
        headers=headers,
        timeout_ms=options.fetch_timeout_ms,
        max_bytes=options.max_request_size,
        max_redirects=options.max_redirects,
    )


async def map_error(
    exc: BaseException,
    ctx: RequestContext,
    on_error: ErrorHook | None = None,
) -> Response:
    """
    Turn any failure into a response.

    The override hook sees the classified error first; a returned `Response` is used verbatim.
    Otherwise the error's default status and generic JSON body are used.
    """
    error = wrap_exception(exc)
    _log_pipeline_error(error, ctx)
    markdown_requests_total.labels(outcome=error.code).inc()

    if on_error is not None:
        custom = await _call_error_hook(on_error, error, ctx)
        if custom is not None:
            return custom

    return pipeline_error_response(error)


async def _call_error_hook(
    on_error: ErrorHook,
    error: PipelineError,
    ctx: RequestContext,
) -> Response | None:
    try:
        result = on_error(error, ctx)
        if inspect.isawaitable(result):
            result = await result
    except Exception:
        log.exception("markdown.on_error_hook_failed", path=ctx.path, code=error.code)
        return None
    if result is not None and not isinstance(result, Response):
        log.warning(
            "markdown.on_error_hook_invalid_result",
            path=ctx.path,
            code=error.code,
            result_type=type(result).__name__,
        )
        return None
    return result


def _log_pipeline_error(error: PipelineError, ctx: RequestContext) -> None:
    if isinstance(error, ForbiddenError):
        log.warning("markdown.ssrf_rejected", path=ctx.path, reason=error.reason)
    elif isinstance(error, FetchTimeoutError):
        log.warning("markdown.fetch_timeout", path=ctx.path, error=str(error))
    elif isinstance(error, InternalError):
        log.error(
            "markdown.internal_error",
            path=ctx.path,
            error=str(error),
            exc_info=error.__cause__ or error,
        )
    else:
        log.info(
            "markdown.upstream_error",
            path=ctx.path,
            code=error.code,
            status=error.status_code,
            error=str(error),
        )
