from __future__ import annotations

from starlette.types import ASGIApp, Receive, Scope, Send

from markdown_mirror.adapters.upstream.fetcher import UpstreamFetcher
from markdown_mirror.app.pipeline import handle_markdown_request
from markdown_mirror.config.settings import PipelineOptions
from markdown_mirror.domain.path_policy import is_markdown_path
from markdown_mirror.domain.request_context import RequestContext

_INTERCEPTED_METHODS = frozenset({"GET", "HEAD"})


def _is_candidate(scope: Scope) -> bool:
    return (
        scope["type"] == "http"
        and scope.get("method", "GET").upper() in _INTERCEPTED_METHODS
        and is_markdown_path(scope.get("path") or "")
    )


def _shared_fetcher(scope: Scope) -> UpstreamFetcher | None:
    app = scope.get("app")
    state = getattr(app, "state", None)
    return getattr(state, "upstream_fetcher", None)


class MarkdownMiddleware:
    """
    Serve `<page>.md` as the markdown rendering of `<page>`.

    Requests that are not eligible reach the wrapped app untouched. The fetcher is taken from the
    constructor, then from `app.state.upstream_fetcher`; without either a short-lived one is used
    per request.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        options: PipelineOptions | None = None,
        fetcher: UpstreamFetcher | None = None,
    ) -> None:
        self.app = app
        self._options = options or PipelineOptions()
        self._fetcher = fetcher

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not _is_candidate(scope):
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_scope(scope)
        fetcher = self._fetcher or _shared_fetcher(scope)
        response = await handle_markdown_request(ctx, self._options, fetcher=fetcher)
        if response is None:
            await self.app(scope, receive, send)
            return
        await response(scope, receive, send)
