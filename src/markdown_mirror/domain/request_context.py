from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

HOST_HEADER = "host"
FORWARDED_PROTO_HEADER = "x-forwarded-proto"


def _request_path(scope: Mapping[str, Any]) -> str:
    # `path` is percent-decoded; re-joining it would turn %3F, %23 and %2F into URL syntax.
    raw_path = scope.get("raw_path")
    if raw_path:
        # Some servers include the query string in raw_path.
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return scope.get("path") or "/"


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Inbound request as seen by the pipeline: path plus a read-only, lower-cased header view."""

    path: str
    headers: Mapping[str, str]
    method: str = "GET"

    @classmethod
    def from_headers(
        cls,
        path: str,
        headers: Mapping[str, str] | Iterable[tuple[str, str]],
        *,
        method: str = "GET",
    ) -> RequestContext:
        items = headers.items() if isinstance(headers, Mapping) else headers
        normalized: dict[str, str] = {}
        for name, value in items:
            # First occurrence wins, matching Starlette's Headers.get().
            normalized.setdefault(name.lower(), value)
        return cls(path=path, headers=MappingProxyType(normalized), method=method.upper())

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> RequestContext:
        raw = scope.get("headers") or []
        decoded = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in raw]
        return cls.from_headers(
            _request_path(scope),
            decoded,
            method=scope.get("method") or "GET",
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def host(self) -> str | None:
        value = self.header(HOST_HEADER)
        return value if value else None

    @property
    def forwarded_proto(self) -> str | None:
        return self.header(FORWARDED_PROTO_HEADER)
