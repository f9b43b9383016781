"""Shared HTTP client utilities (timeouts, content-type helpers)."""

from __future__ import annotations

import httpx


def timeouts_for(seconds: float) -> httpx.Timeout:
    """Build httpx.Timeout with bounded connect/pool for fail-fast on unreachable upstreams."""
    total = float(seconds)
    connect = min(5.0, total)
    return httpx.Timeout(connect=connect, read=total, write=total, pool=connect)


def parse_content_length(value: str | None) -> int | None:
    """Return a usable Content-Length, or None when absent, non-numeric or negative."""
    if not value:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    if length < 0:
        return None
    return length
