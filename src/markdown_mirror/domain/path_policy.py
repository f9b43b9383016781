from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Annotated, Literal
from urllib.parse import urljoin

from pydantic import BaseModel, ConfigDict, Field

from markdown_mirror.domain.request_context import RequestContext

MARKDOWN_SUFFIX = ".md"
API_ROUTE_PREFIX = "/api/"
# Only used to build a URL when Host is absent; the SSRF check still rejects such requests.
FALLBACK_HOST = "localhost"
DEFAULT_SCHEME = "https"

_ALLOWED_SCHEMES = frozenset({"http", "https"})


class SubstringRule(BaseModel):
    """Excludes any path containing `value`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["substring"] = "substring"
    value: str

    def matches(self, path: str) -> bool:
        return self.value in path


class PatternRule(BaseModel):
    """Excludes any path in which `pattern` finds a match (search, not fullmatch)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["pattern"] = "pattern"
    pattern: re.Pattern[str]

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None


ExclusionRule = Annotated[SubstringRule | PatternRule, Field(discriminator="kind")]


def is_markdown_path(path: str) -> bool:
    return path.endswith(MARKDOWN_SUFFIX)


def should_exclude_path(
    path: str,
    rules: Sequence[SubstringRule | PatternRule] = (),
    *,
    exclude_api_routes: bool = True,
) -> bool:
    if exclude_api_routes and path.startswith(API_ROUTE_PREFIX):
        return True
    # Configured order, first match wins.
    return any(rule.matches(path) for rule in rules)


def is_eligible(
    path: str,
    rules: Sequence[SubstringRule | PatternRule] = (),
    *,
    exclude_api_routes: bool = True,
) -> bool:
    """True when the request path should be answered by the markdown pipeline."""
    if not is_markdown_path(path):
        return False
    return not should_exclude_path(path, rules, exclude_api_routes=exclude_api_routes)


def original_path(path: str) -> str:
    """Strip one trailing marker suffix: '/about.md' -> '/about'."""
    if path.endswith(MARKDOWN_SUFFIX):
        return path[: -len(MARKDOWN_SUFFIX)]
    return path


def resolve_scheme(forwarded_proto: str | None) -> str:
    normalized = (forwarded_proto or "").strip().lower()
    return normalized if normalized in _ALLOWED_SCHEMES else DEFAULT_SCHEME


def build_base_url(ctx: RequestContext) -> str:
    host = ctx.host or FALLBACK_HOST
    return f"{resolve_scheme(ctx.forwarded_proto)}://{host}"


def build_absolute_url(path: str, ctx: RequestContext) -> str:
    """
    Resolve `path` against the request origin.

    The path is joined like a relative reference, so scheme-relative input such as
    `//other.example/x` changes the host. Callers must run the SSRF check on the result.
    """
    return urljoin(build_base_url(ctx) + "/", path)
