from __future__ import annotations

import pytest

from markdown_mirror.domain.ssrf import (
    MISSING_HOST_REASON,
    hostname_from_host_header,
    validate_internal_request,
)
from support.settings_factory import make_ctx


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("example.com", "example.com"),
        ("example.com:8080", "example.com"),
        ("[::1]:3000", "::1"),
        ("[::1]", "::1"),
        ("::1", "::1"),
        (" localhost:3000 ", "localhost"),
    ],
)
def test_hostname_from_host_header(host: str, expected: str) -> None:
    assert hostname_from_host_header(host) == expected


def test_same_host_is_allowed() -> None:
    ctx = make_ctx(host="example.com:8443")
    assert validate_internal_request("https://example.com/about", ctx).is_valid


def test_hostname_comparison_is_case_insensitive() -> None:
    ctx = make_ctx(host="Example.COM")
    assert validate_internal_request("https://EXAMPLE.com/about", ctx).is_valid


def test_loopback_names_are_always_allowed() -> None:
    ctx = make_ctx(host="example.com")
    for url in ("http://localhost/x", "http://127.0.0.1:9000/x", "http://[::1]/x"):
        assert validate_internal_request(url, ctx).is_valid, url


def test_ipv6_request_host_matches_bracketed_target() -> None:
    ctx = make_ctx(host="[2001:db8::1]:3000")
    assert validate_internal_request("https://[2001:db8::1]:3000/about", ctx).is_valid


def test_external_host_is_rejected_with_reason() -> None:
    result = validate_internal_request("https://evil.com/about", make_ctx(host="example.com"))
    assert not result.is_valid
    assert result.reason == "External URL not allowed: evil.com"


def test_subdomain_of_request_host_is_rejected() -> None:
    result = validate_internal_request(
        "https://api.example.com/", make_ctx(host="example.com")
    )
    assert not result.is_valid


def test_other_loopback_spellings_are_rejected() -> None:
    ctx = make_ctx(host="example.com")
    assert not validate_internal_request("http://127.0.0.2/", ctx).is_valid
    assert not validate_internal_request("http://0.0.0.0/", ctx).is_valid


def test_missing_host_header_is_rejected() -> None:
    result = validate_internal_request("https://localhost/about", make_ctx(host=None))
    assert not result.is_valid
    assert result.reason == MISSING_HOST_REASON


def test_empty_host_header_counts_as_missing() -> None:
    result = validate_internal_request("https://localhost/about", make_ctx(host=""))
    assert result.reason == MISSING_HOST_REASON


def test_relative_reference_without_hostname_is_allowed() -> None:
    assert validate_internal_request("/about", make_ctx(host=None)).is_valid


def test_unparseable_url_is_rejected() -> None:
    result = validate_internal_request("http://[::1/", make_ctx())
    assert not result.is_valid
    assert result.reason == "Invalid target URL"


def test_trailing_dot_does_not_change_the_decision() -> None:
    ctx = make_ctx(host="example.com")
    assert validate_internal_request("https://EXAMPLE.com./about", ctx).is_valid
    assert not validate_internal_request("https://evil.com./about", ctx).is_valid


def test_malicious_host_scenario() -> None:
    result = validate_internal_request("https://malicious.com/", make_ctx(host="localhost:3000"))
    assert not result.is_valid
    assert result.reason == "External URL not allowed: malicious.com"
