from __future__ import annotations

import logging
import os
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from markdown_mirror.config.redact import redact_settings_dict
from markdown_mirror.config.settings import ObservabilitySettings

LOG_FORMATS = frozenset({"json", "human"})

# Loggers whose own handlers are dropped so records flow through the structlog formatter.
_REROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
# httpx/httpcore log every upstream request (with full URL) at INFO.
_QUIETED_LOGGERS = ("httpx", "httpcore")


def _redact_event(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Inbound header maps and exception text may carry credentials.
    return redact_settings_dict(event_dict)


def _normalize_format(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    return normalized if normalized in LOG_FORMATS else None


def resolve_log_format(*, log_format: str | None, json_logs: bool) -> str:
    """Explicit setting, then LOG_FORMAT, then the json_logs flag."""
    return (
        _normalize_format(log_format)
        or _normalize_format(os.environ.get("LOG_FORMAT"))
        or ("json" if json_logs else "human")
    )


def resolve_log_level(log_level: str) -> str:
    override = (os.environ.get("LOG_LEVEL") or "").strip()
    return (override or log_level).upper()


def configure_logging(
    *,
    log_level: str = "INFO",
    json_logs: bool = False,
    log_format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Route structlog and stdlib logging through one redacting formatter.

    LOG_LEVEL overrides `log_level`; LOG_FORMAT=human|json applies when `log_format` is unset.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _redact_event,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer: Any
    if resolve_log_format(log_format=log_format, json_logs=json_logs) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            exception_formatter=structlog.dev.plain_traceback,
        )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(resolve_log_level(log_level))

    for name in _REROUTED_LOGGERS:
        rerouted = logging.getLogger(name)
        rerouted.handlers = []
        rerouted.propagate = True
    for name in _QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(
    observability: ObservabilitySettings,
    *,
    stream: TextIO | None = None,
) -> None:
    configure_logging(
        log_level=observability.log_level,
        json_logs=observability.json_logs,
        log_format=observability.log_format,
        stream=stream,
    )
