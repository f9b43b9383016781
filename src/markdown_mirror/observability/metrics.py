from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

markdown_requests_total = Counter(
    "markdown_requests_total",
    "Number of markdown requests answered by the pipeline, by outcome.",
    labelnames=("outcome",),
)
markdown_skipped_total = Counter(
    "markdown_skipped_total",
    "Number of .md requests passed through because an exclusion rule matched.",
)

upstream_fetch_seconds = Histogram(
    "upstream_fetch_seconds",
    "Seconds spent fetching and reading the upstream HTML page.",
)
upstream_bytes = Histogram(
    "upstream_bytes",
    "Size in bytes of accepted upstream HTML pages.",
    buckets=(1_024, 10_240, 102_400, 1_048_576, 5_242_880, 10_485_760, float("inf")),
)
conversion_seconds = Histogram(
    "conversion_seconds",
    "Seconds spent converting HTML to markdown.",
)


def render_latest(*, registry=REGISTRY) -> tuple[bytes, str]:
    return generate_latest(registry), CONTENT_TYPE_LATEST
