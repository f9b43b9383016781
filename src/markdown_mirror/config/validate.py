from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import ValidationError

from markdown_mirror.config.settings import Settings
from markdown_mirror.domain.path_policy import MARKDOWN_SUFFIX


@dataclass(frozen=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(ValueError):
    def __init__(self, issues: Iterable[ConfigValidationIssue]):
        self.issues = list(issues)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = ["Configuration is invalid:"]
        for issue in self.issues:
            lines.append(f"- {issue.path}: {issue.message}")
        return "\n".join(lines)


def issues_from_pydantic_error(error: ValidationError) -> list[ConfigValidationIssue]:
    issues: list[ConfigValidationIssue] = []
    for item in error.errors(include_url=False):
        loc = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        msg = item.get("msg", "Invalid value")
        issues.append(ConfigValidationIssue(path=loc, message=msg))
    return issues


def _validate_router_prefix(settings: Settings, issues: list[ConfigValidationIssue]) -> None:
    if not settings.router.enabled:
        return

    prefix = settings.router.prefix
    if not prefix.startswith("/") or prefix.endswith("/"):
        issues.append(
            ConfigValidationIssue(
                path="router.prefix",
                message="Router prefix must start with '/' and must not end with '/'.",
            )
        )
    if prefix.endswith(MARKDOWN_SUFFIX):
        issues.append(
            ConfigValidationIssue(
                path="router.prefix",
                message=f"Router prefix must not end with {MARKDOWN_SUFFIX!r}.",
            )
        )


def validate_settings(settings: Settings) -> None:
    issues: list[ConfigValidationIssue] = []

    log_level = settings.observability.log_level.upper()
    allowed_levels = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
    if log_level not in allowed_levels:
        issues.append(
            ConfigValidationIssue(
                path="observability.log_level",
                message=(
                    f"Unsupported log level {settings.observability.log_level!r} "
                    f"(allowed: {sorted(allowed_levels)})"
                ),
            )
        )

    upstream = settings.upstream
    if not upstream.verify_tls and not upstream.allow_insecure_tls:
        issues.append(
            ConfigValidationIssue(
                path="upstream.verify_tls",
                message=(
                    "Disabling TLS verification is not allowed by default. "
                    "Set upstream.allow_insecure_tls=true to override (not recommended)."
                ),
            )
        )

    _validate_router_prefix(settings, issues)

    if issues:
        raise ConfigValidationError(issues)
