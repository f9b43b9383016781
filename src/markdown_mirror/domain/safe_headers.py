from __future__ import annotations

from collections.abc import Iterable
from typing import Final

from markdown_mirror.domain.request_context import RequestContext

# Fixed allow-list; configuration can only narrow it.
SAFE_HEADERS: Final[tuple[str, ...]] = (
    "user-agent",
    "accept-language",
    "accept-encoding",
    "accept",
    "referer",
    "origin",
)

_SAFE_HEADER_SET: Final[frozenset[str]] = frozenset(SAFE_HEADERS)


def is_safe_header(name: str) -> bool:
    return name.strip().lower() in _SAFE_HEADER_SET


def extract_safe_headers(
    ctx: RequestContext,
    forward: Iterable[str] | None = None,
) -> dict[str, str]:
    """
    Build a fresh outbound header set from the inbound request.

    With `forward`, only names in both `forward` and SAFE_HEADERS are copied; without it, every
    allow-listed header present on the request is copied. Values are copied verbatim; absent or
    empty headers are omitted.
    """
    if forward is None:
        names: Iterable[str] = SAFE_HEADERS
    else:
        names = (name.strip().lower() for name in forward)

    outbound: dict[str, str] = {}
    for name in names:
        if name not in _SAFE_HEADER_SET or name in outbound:
            continue
        value = ctx.header(name)
        if value:
            outbound[name] = value
    return outbound
