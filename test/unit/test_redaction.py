from __future__ import annotations

from pydantic import SecretStr

from markdown_mirror.config.redact import (
    REDACTED_VALUE,
    redact_settings_dict,
    scrub_secrets_in_text,
)


def test_redact_settings_dict_redacts_credential_headers() -> None:
    raw = {
        "path": "/about.md",
        "headers": {
            "authorization": "Bearer abc",
            "Cookie": "session=1",
            "x-api-key": "k",
            "user-agent": "pytest",
        },
    }

    out = redact_settings_dict(raw)

    assert out["path"] == "/about.md"
    assert out["headers"]["authorization"] == REDACTED_VALUE
    assert out["headers"]["Cookie"] == REDACTED_VALUE
    assert out["headers"]["x-api-key"] == REDACTED_VALUE
    assert out["headers"]["user-agent"] == "pytest"
    # Input is not mutated.
    assert raw["headers"]["authorization"] == "Bearer abc"


def test_redact_settings_dict_redacts_config_secrets() -> None:
    raw = {
        "observability": {"metrics_bearer_token": "tok", "log_level": "INFO"},
        "ok": 1,
        "secret": SecretStr("value"),
        "items": [{"password": "pw"}],
    }
    out = redact_settings_dict(raw)
    assert out["observability"]["metrics_bearer_token"] == REDACTED_VALUE
    assert out["observability"]["log_level"] == "INFO"
    assert out["secret"] == REDACTED_VALUE
    assert out["items"][0]["password"] == REDACTED_VALUE


def test_scrub_secrets_in_text_redacts_common_credential_patterns() -> None:
    text = (
        "boom Authorization: Bearer abc123 "
        "Cookie: session=cookiesecret; other=1\n"
        "api_key=apisecret123 https://localhost/about?token=querysecret456"
    )
    out = scrub_secrets_in_text(text)
    assert "abc123" not in out
    assert "cookiesecret" not in out
    assert "apisecret123" not in out
    assert "querysecret456" not in out
    assert REDACTED_VALUE in out


def test_scrub_secrets_in_text_leaves_plain_text_alone() -> None:
    text = "External URL not allowed: evil.com"
    assert scrub_secrets_in_text(text) == text
