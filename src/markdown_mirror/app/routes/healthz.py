from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request

from markdown_mirror._version import DISTRIBUTION_NAME, __version__

router = APIRouter()


@router.get("/healthz")
def healthz(request: Request) -> dict[str, str]:
    out: dict[str, str] = {"status": "ok", "time": datetime.now(UTC).isoformat()}
    settings = getattr(request.app.state, "settings", None)
    if settings is None or not settings.observability.healthz_omit_version:
        out["service"] = DISTRIBUTION_NAME
        out["version"] = __version__
    out["upstream_client"] = (
        "shared" if getattr(request.app.state, "upstream_fetcher", None) is not None else "per-request"
    )
    return out
