from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from markdown_mirror.config.settings import Settings
from markdown_mirror.config.validate import (
    ConfigValidationError,
    ConfigValidationIssue,
    issues_from_pydantic_error,
    validate_settings,
)


def _default_config_path_if_present() -> Path | None:
    candidate = Path("config/config.yaml")
    return candidate if candidate.exists() else None


def _load_dotenv_if_present() -> None:
    dotenv_path = Path(".env")
    if dotenv_path.is_file():
        load_dotenv(dotenv_path=dotenv_path, override=False)


def _resolve_config_path(config_path: str | Path | None) -> tuple[Path | None, bool]:
    """
    Returns (path, explicit) where `explicit` is True when the user asked for this path
    (via argument or CONFIG_PATH), in which case missing files are errors.
    """
    if config_path is not None:
        return Path(config_path), True

    if (env_path := os.environ.get("CONFIG_PATH")):
        return Path(env_path), True

    return _default_config_path_if_present(), False


def _load_yaml_config(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message=f"Unable to read config file: {exc}")]
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message=f"Invalid YAML: {exc}")]
        ) from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message="YAML root must be a mapping/object")]
        )
    return raw


def load_settings(*, config_path: str | Path | None = None) -> Settings:
    _load_dotenv_if_present()

    path, explicit = _resolve_config_path(config_path)
    yaml_data: dict[str, Any] = {}

    if path is not None:
        if not path.exists():
            if explicit:
                raise ConfigValidationError(
                    [
                        ConfigValidationIssue(
                            path="CONFIG_PATH",
                            message=f"Config file not found: {path}",
                        )
                    ]
                )
        else:
            yaml_data = _load_yaml_config(path)

    try:
        settings = Settings(**yaml_data)
    except ValidationError as exc:
        raise ConfigValidationError(_add_hints(issues_from_pydantic_error(exc))) from exc

    validate_settings(settings)
    return settings


_HINTS: dict[str, str] = {
    "pipeline.max_request_size": (
        "Set `PIPELINE__MAX_REQUEST_SIZE` (or YAML `pipeline.max_request_size`) in bytes."
    ),
    "pipeline.fetch_timeout_ms": (
        "Set `PIPELINE__FETCH_TIMEOUT_MS` (or YAML `pipeline.fetch_timeout_ms`) to a positive "
        "number of milliseconds."
    ),
    "pipeline.max_redirects": "Use a value between 0 and 20.",
    "pipeline.converter.heading_style": "Use `atx` or `setext`.",
    "pipeline.converter.code_block_style": "Use `fenced` or `indented`.",
    "pipeline.converter.bullet_list_marker": "Use one of `-`, `+` or `*`.",
}

# Exclusion rules report their list index, so they are matched by prefix.
_PREFIX_HINTS: tuple[tuple[str, str], ...] = (
    (
        "pipeline.exclude.paths.",
        "Each rule is a substring string or a mapping with a `pattern` regular expression.",
    ),
)


def _hint_for(path: str) -> str | None:
    if (hint := _HINTS.get(path)) is not None:
        return hint
    for prefix, prefix_hint in _PREFIX_HINTS:
        if path.startswith(prefix):
            return prefix_hint
    return None


def _add_hints(issues: list[ConfigValidationIssue]) -> list[ConfigValidationIssue]:
    enriched: list[ConfigValidationIssue] = []
    for issue in issues:
        hint = _hint_for(issue.path)
        if hint and hint not in issue.message:
            enriched.append(ConfigValidationIssue(issue.path, f"{issue.message} {hint}"))
        else:
            enriched.append(issue)
    return enriched
