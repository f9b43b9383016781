from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import httpx
import structlog

from markdown_mirror.adapters.http_util import timeouts_for
from markdown_mirror.adapters.upstream.gate import (
    check_response_head,
    decode_body,
    read_limited_body,
)
from markdown_mirror.config.settings import UpstreamSettings
from markdown_mirror.domain.errors import (
    FetchTimeoutError,
    ForbiddenError,
    InternalError,
    UpstreamError,
)
from markdown_mirror.domain.request_context import RequestContext
from markdown_mirror.domain.ssrf import validate_internal_request

log = structlog.get_logger(__name__)

_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


@dataclass(frozen=True, slots=True)
class UpstreamPage:
    url: str
    html: str
    size: int


class UpstreamFetcher:
    """
    Same-origin HTML fetcher with a hard deadline and a payload ceiling.

    httpx never follows redirects on its own here: every Location is resolved and passed through
    the SSRF check before the next hop is requested.
    """

    def __init__(
        self,
        *,
        verify_tls: bool = True,
        trust_env: bool = False,
        max_connections: int = 20,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeouts_for(30.0),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
                keepalive_expiry=30.0,
            ),
            verify=verify_tls,
            trust_env=trust_env,
            follow_redirects=False,
        )

    @classmethod
    def from_settings(cls, settings: UpstreamSettings) -> UpstreamFetcher:
        return cls(
            verify_tls=settings.verify_tls,
            trust_env=settings.trust_env,
            max_connections=settings.max_connections,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> UpstreamFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> None:
        await self.aclose()

    async def fetch(
        self,
        url: str,
        *,
        ctx: RequestContext,
        headers: Mapping[str, str],
        timeout_ms: int,
        max_bytes: int,
        max_redirects: int = 5,
    ) -> UpstreamPage:
        """
        GET `url` and return its HTML once it passes the response gate.

        The deadline covers every hop and the body read; it is disarmed when this call returns
        or raises.
        """
        seconds = timeout_ms / 1000
        try:
            async with asyncio.timeout(seconds):
                return await self._fetch_following_redirects(
                    url,
                    ctx=ctx,
                    headers=headers,
                    timeout=timeouts_for(seconds),
                    max_bytes=max_bytes,
                    max_redirects=max_redirects,
                )
        except TimeoutError as exc:
            raise FetchTimeoutError(f"Upstream fetch exceeded {timeout_ms} ms") from exc
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(
                f"Upstream fetch timed out ({exc.__class__.__name__})"
            ) from exc
        except httpx.HTTPError as exc:
            raise InternalError(f"Upstream request failed ({exc.__class__.__name__})") from exc

    async def _fetch_following_redirects(
        self,
        url: str,
        *,
        ctx: RequestContext,
        headers: Mapping[str, str],
        timeout: httpx.Timeout,
        max_bytes: int,
        max_redirects: int,
    ) -> UpstreamPage:
        current = url
        for _ in range(max_redirects + 1):
            async with self._http.stream(
                "GET", current, headers=dict(headers), timeout=timeout
            ) as response:
                location = response.headers.get("location")
                if response.status_code in _REDIRECT_STATUSES and location:
                    current = _next_hop(current, location, ctx)
                    continue

                check_response_head(response, max_bytes=max_bytes)
                body = await read_limited_body(response, max_bytes=max_bytes)
                return UpstreamPage(
                    url=str(response.url),
                    html=decode_body(body, response.charset_encoding),
                    size=len(body),
                )

        raise UpstreamError(502, f"Too many redirects (max_redirects={max_redirects})")


def _next_hop(current: str, location: str, ctx: RequestContext) -> str:
    target = urljoin(current, location)
    result = validate_internal_request(target, ctx)
    if not result.is_valid:
        log.warning("markdown.redirect_rejected", path=ctx.path, reason=result.reason)
        raise ForbiddenError(result.reason or "Redirect target not allowed")
    log.debug("markdown.redirect_followed", path=ctx.path, location=target)
    return target
