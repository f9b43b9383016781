from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from markdown_mirror.domain.errors import PipelineError
from markdown_mirror.domain.path_policy import ExclusionRule
from markdown_mirror.domain.request_context import RequestContext

DEFAULT_MAX_REQUEST_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_FETCH_TIMEOUT_MS = 30_000
DEFAULT_CACHE_MAX_AGE = 3600

# (error, request) -> Response | None, or an awaitable of it.
ErrorHook = Callable[[PipelineError, RequestContext], Any]


class _BaseSection(BaseModel):
    model_config = {"extra": "forbid"}


class _OptionsSection(BaseModel):
    # Built once by the embedding application and shared read-only across requests.
    model_config = ConfigDict(extra="forbid", frozen=True)


class ServerSettings(_BaseSection):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class CacheOptions(_OptionsSection):
    enabled: bool = False
    max_age_seconds: int = Field(default=DEFAULT_CACHE_MAX_AGE, ge=0)
    # None mirrors max_age_seconds.
    s_max_age_seconds: int | None = Field(default=None, ge=0)


class HeaderOptions(_OptionsSection):
    # None = forward every allow-listed header; a list narrows it (never widens).
    forward: list[str] | None = None
    # Copied verbatim onto successful markdown responses.
    custom: dict[str, str] = Field(default_factory=dict)


class ExcludeOptions(_OptionsSection):
    paths: list[ExclusionRule] = Field(default_factory=list)
    exclude_api_routes: bool = True

    @field_validator("paths", mode="before")
    @classmethod
    def _coerce_rules(cls, value: Any) -> Any:
        # Config boundary: bare strings are substring rules, compiled patterns are pattern rules.
        if not isinstance(value, list):
            return value
        coerced: list[Any] = []
        for item in value:
            if isinstance(item, str):
                coerced.append({"kind": "substring", "value": item})
            elif isinstance(item, re.Pattern):
                coerced.append({"kind": "pattern", "pattern": item})
            elif isinstance(item, dict) and "kind" not in item:
                kind = "pattern" if "pattern" in item else "substring"
                coerced.append({"kind": kind, **item})
            else:
                coerced.append(item)
        return coerced


class ConverterOptions(BaseModel):
    """Markdown style options; unknown keys are passed through to markdownify unchanged."""

    model_config = ConfigDict(extra="allow", frozen=True)

    heading_style: Literal["atx", "setext"] | None = None
    code_block_style: Literal["fenced", "indented"] | None = None
    bullet_list_marker: Literal["-", "+", "*"] | None = None


class PipelineOptions(_OptionsSection):
    cache: CacheOptions = Field(default_factory=CacheOptions)
    headers: HeaderOptions = Field(default_factory=HeaderOptions)
    exclude: ExcludeOptions = Field(default_factory=ExcludeOptions)
    # None = shared default converter; any value = a dedicated converter per request.
    converter: ConverterOptions | None = None
    max_request_size: int = Field(default=DEFAULT_MAX_REQUEST_SIZE, ge=0)
    fetch_timeout_ms: int = Field(default=DEFAULT_FETCH_TIMEOUT_MS, gt=0)
    max_redirects: int = Field(default=5, ge=0, le=20)
    on_error: ErrorHook | None = Field(default=None, exclude=True)


class UpstreamSettings(_BaseSection):
    verify_tls: bool = True
    # Allow disabling TLS verification for the same-origin fetch. Strongly discouraged.
    allow_insecure_tls: bool = False
    # If true, allow httpx to read HTTP_PROXY/HTTPS_PROXY/NO_PROXY from the environment.
    trust_env: bool = False
    max_connections: int = Field(default=20, ge=1, le=1000)


class RouterSettings(_BaseSection):
    # Exposes GET {prefix}/{path} converting the page at /{path}.
    enabled: bool = False
    prefix: str = "/api/markdown"


class ObservabilitySettings(_BaseSection):
    log_level: str = "INFO"
    log_format: str | None = None  # json|human (overrides LOG_FORMAT/env when set)
    json_logs: bool = False
    metrics_enabled: bool = False
    # When set, GET /metrics requires Authorization: Bearer <this token> (constant-time compare).
    metrics_bearer_token: SecretStr | None = None
    # When true, GET /healthz omits version and service name (reduces fingerprinting).
    healthz_omit_version: bool = False

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized in {"json", "human"}:
            return normalized
        raise ValueError("observability.log_format must be 'json' or 'human'")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    server: ServerSettings = Field(default_factory=ServerSettings)
    pipeline: PipelineOptions = Field(default_factory=PipelineOptions)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    router: RouterSettings = Field(default_factory=RouterSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """
        Construct Settings from a mapping without reading environment variables.

        Useful in tests and for embedding applications that pass hooks and compiled patterns.
        """
        class _InitOnlySettings(Settings):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls,
                init_settings,
                env_settings,
                dotenv_settings,
                file_secret_settings,
            ):
                return (init_settings,)

        return _InitOnlySettings(**dict(data))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            env_settings,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )
