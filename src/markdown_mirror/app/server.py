from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from markdown_mirror._version import __version__
from markdown_mirror.adapters.upstream.fetcher import UpstreamFetcher
from markdown_mirror.app.middleware.markdown import MarkdownMiddleware
from markdown_mirror.app.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from markdown_mirror.app.responses import api_error
from markdown_mirror.app.routes.healthz import router as healthz_router
from markdown_mirror.config.settings import PipelineOptions, Settings, UpstreamSettings

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned: UpstreamFetcher | None = None
    if getattr(app.state, "upstream_fetcher", None) is None:
        settings = getattr(app.state, "settings", None)
        upstream = settings.upstream if settings is not None else UpstreamSettings()
        owned = UpstreamFetcher.from_settings(upstream)
        app.state.upstream_fetcher = owned
    try:
        yield
    finally:
        if owned is not None:
            app.state.upstream_fetcher = None
            await owned.aclose()


async def _global_exception_handler(request, exc):
    request_id = getattr(request.state, "request_id", None)
    log.error("server.unhandled_exception", path=request.url.path, exc_info=exc)
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return api_error(
        500,
        "An internal server error occurred.",
        code="internal_error",
        request_id=request_id,
        headers=headers,
    )


def _wire_app(
    app: FastAPI,
    *,
    settings: Settings | None,
    fetcher: UpstreamFetcher | None,
) -> None:
    app.state.settings = settings
    app.state.upstream_fetcher = fetcher
    options = settings.pipeline if settings is not None else PipelineOptions()

    # Added first, so it runs innermost: request ids are already bound when it answers.
    app.add_middleware(MarkdownMiddleware, options=options)
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(Exception, _global_exception_handler)

    app.include_router(healthz_router)
    if settings is not None and settings.observability.metrics_enabled:
        from markdown_mirror.app.routes.metrics import router as metrics_router

        app.include_router(metrics_router)
    if settings is not None and settings.router.enabled:
        from markdown_mirror.app.routes.markdown import create_markdown_router

        app.include_router(create_markdown_router(options, prefix=settings.router.prefix))


def create_app(
    settings: Settings | None = None,
    *,
    fetcher: UpstreamFetcher | None = None,
) -> FastAPI:
    """
    Build the service app.

    A caller-supplied fetcher is shared by every request and left open on shutdown; otherwise the
    lifespan owns one built from `settings.upstream`.
    """
    app = FastAPI(title="markdown-mirror", version=__version__, lifespan=lifespan)
    _wire_app(app, settings=settings, fetcher=fetcher)
    return app


app = create_app()
