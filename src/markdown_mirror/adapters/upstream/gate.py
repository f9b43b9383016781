"""Checks applied to the upstream response before and while its body is read."""

from __future__ import annotations

from typing import Final

import httpx
from httpx._decoders import SUPPORTED_DECODERS

from markdown_mirror.adapters.http_util import parse_content_length
from markdown_mirror.domain.errors import (
    NotFoundError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    UpstreamError,
)

HTML_MEDIA_TYPES: Final[tuple[str, ...]] = ("text/html", "application/xhtml+xml")


def _undecodable_encodings(response: httpx.Response) -> list[str]:
    # httpx passes unknown codings through as raw bytes instead of failing.
    header = response.headers.get("content-encoding") or ""
    codings = [part.strip().lower() for part in header.split(",")]
    return [coding for coding in codings if coding and coding not in SUPPORTED_DECODERS]


def check_response_head(response: httpx.Response, *, max_bytes: int) -> int | None:
    """
    Validate status, content type, content coding and declared size, in that order.

    Returns the usable Content-Length (or None) so the body reader can report it.
    """
    status = response.status_code
    if status == 404:
        raise NotFoundError("Upstream page not found (status=404)")
    if not response.is_success:
        raise UpstreamError(status, response.reason_phrase)

    content_type = (response.headers.get("content-type") or "").lower()
    if not any(media_type in content_type for media_type in HTML_MEDIA_TYPES):
        raise UnsupportedMediaTypeError(f"Upstream content-type {content_type or '<none>'!r}")

    if undecodable := _undecodable_encodings(response):
        raise UpstreamError(502, f"unsupported content-encoding {', '.join(undecodable)}")

    declared = parse_content_length(response.headers.get("content-length"))
    if declared is not None and declared > max_bytes:
        raise PayloadTooLargeError(
            f"Upstream Content-Length {declared} exceeds limit of {max_bytes} bytes"
        )
    return declared


async def read_limited_body(response: httpx.Response, *, max_bytes: int) -> bytes:
    """
    Read the (decoded) body, failing as soon as it grows past `max_bytes`.

    Counting the realized bytes covers upstreams that omit or understate Content-Length.
    """
    received = 0
    chunks: list[bytes] = []
    async for chunk in response.aiter_bytes():
        received += len(chunk)
        if received > max_bytes:
            raise PayloadTooLargeError(
                f"Upstream body exceeded limit of {max_bytes} bytes while reading"
            )
        chunks.append(chunk)
    return b"".join(chunks)


def decode_body(body: bytes, charset: str | None) -> str:
    encoding = charset or "utf-8"
    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        # Unknown charset label from upstream.
        return body.decode("utf-8", errors="replace")
