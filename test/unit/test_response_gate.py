from __future__ import annotations

import asyncio

import httpx
import pytest

from markdown_mirror.adapters.upstream.gate import (
    check_response_head,
    decode_body,
    read_limited_body,
)
from markdown_mirror.domain.errors import (
    NotFoundError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    UpstreamError,
)


def test_404_maps_to_not_found() -> None:
    with pytest.raises(NotFoundError):
        check_response_head(httpx.Response(404), max_bytes=100)


def test_other_failures_keep_upstream_status() -> None:
    with pytest.raises(UpstreamError) as exc_info:
        check_response_head(httpx.Response(503), max_bytes=100)
    assert exc_info.value.status_code == 503


def test_status_is_checked_before_content_type() -> None:
    response = httpx.Response(500, headers={"content-type": "application/json"})
    with pytest.raises(UpstreamError):
        check_response_head(response, max_bytes=100)


def test_non_html_content_type_is_rejected() -> None:
    response = httpx.Response(200, json={"ok": True})
    with pytest.raises(UnsupportedMediaTypeError):
        check_response_head(response, max_bytes=100)


def test_missing_content_type_is_rejected() -> None:
    with pytest.raises(UnsupportedMediaTypeError):
        check_response_head(httpx.Response(200), max_bytes=100)


def test_html_and_xhtml_are_accepted_case_insensitively() -> None:
    assert check_response_head(httpx.Response(200, html="<p>x</p>"), max_bytes=100) == 8
    xhtml = httpx.Response(200, headers={"content-type": "Application/XHTML+XML"})
    assert check_response_head(xhtml, max_bytes=100) is None


@pytest.mark.parametrize("coding", ["gzip", "deflate", "br", "zstd", "identity", "GZIP, br"])
def test_decodable_content_encodings_are_accepted(coding: str) -> None:
    response = httpx.Response(
        200, headers={"content-type": "text/html", "content-encoding": coding}
    )
    assert check_response_head(response, max_bytes=100) is None


@pytest.mark.parametrize("coding", ["compress", "gzip, x-custom"])
def test_undecodable_content_encoding_is_an_upstream_error(coding: str) -> None:
    response = httpx.Response(
        200, headers={"content-type": "text/html", "content-encoding": coding}
    )
    with pytest.raises(UpstreamError) as exc_info:
        check_response_head(response, max_bytes=100)
    assert exc_info.value.status_code == 502


def test_declared_length_over_limit_is_rejected() -> None:
    response = httpx.Response(
        200, headers={"content-type": "text/html", "content-length": "101"}
    )
    with pytest.raises(PayloadTooLargeError):
        check_response_head(response, max_bytes=100)


def test_unparseable_content_length_is_ignored() -> None:
    response = httpx.Response(
        200, headers={"content-type": "text/html", "content-length": "lots"}
    )
    assert check_response_head(response, max_bytes=100) is None


def test_read_limited_body_allows_exact_limit() -> None:
    body = asyncio.run(read_limited_body(httpx.Response(200, content=b"x" * 10), max_bytes=10))
    assert body == b"x" * 10


def test_read_limited_body_rejects_realized_overflow() -> None:
    async def chunks():
        for _ in range(4):
            yield b"x" * 4

    response = httpx.Response(200, content=chunks())
    with pytest.raises(PayloadTooLargeError):
        asyncio.run(read_limited_body(response, max_bytes=10))


def test_decode_body_uses_charset_with_utf8_fallback() -> None:
    assert decode_body("café".encode("latin-1"), "latin-1") == "café"
    assert decode_body("café".encode(), None) == "café"
    assert decode_body("café".encode(), "no-such-charset") == "café"
    assert decode_body(b"\xff", "utf-8") == "�"
