from __future__ import annotations

from dataclasses import dataclass
from typing import Final
from urllib.parse import urlsplit

from markdown_mirror.domain.request_context import RequestContext

# Deliberately exact: other loopback spellings (127.1, 0x7f000001, ::ffff:127.0.0.1) are rejected.
LOOPBACK_HOSTNAMES: Final[frozenset[str]] = frozenset({"localhost", "127.0.0.1", "::1"})

MISSING_HOST_REASON = "Missing Host header"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    reason: str | None = None


_VALID = ValidationResult(is_valid=True)


def _normalize_hostname(hostname: str) -> str:
    normalized = hostname.strip().lower()
    if normalized.startswith("[") and normalized.endswith("]"):
        normalized = normalized[1:-1]
    if normalized.endswith("."):
        normalized = normalized[:-1]
    return normalized


def hostname_from_host_header(host: str) -> str:
    """
    Remove the port from a Host header value.

    IPv6 literals are unbracketed by locating the closing bracket, so `[::1]:3000` yields `::1`.
    A value with several colons and no brackets is returned unchanged.
    """
    value = host.strip()
    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            return value
        return value[1:end]
    if value.count(":") == 1:
        return value.partition(":")[0]
    return value


def validate_internal_request(target_url: str, ctx: RequestContext) -> ValidationResult:
    """
    Decide whether `target_url` may be fetched on behalf of `ctx`.

    Allowed: relative references, the loopback names in LOOPBACK_HOSTNAMES and the request's own
    hostname. This is the only SSRF gate and must run before any network call.
    """
    try:
        hostname = urlsplit(target_url).hostname
    except ValueError:
        return ValidationResult(is_valid=False, reason="Invalid target URL")

    if not hostname:
        return _VALID

    host_header = ctx.host
    if not host_header:
        return ValidationResult(is_valid=False, reason=MISSING_HOST_REASON)

    target = _normalize_hostname(hostname)
    allowed = LOOPBACK_HOSTNAMES | {_normalize_hostname(hostname_from_host_header(host_header))}
    if target not in allowed:
        return ValidationResult(
            is_valid=False,
            reason=f"External URL not allowed: {hostname}",
        )
    return _VALID
