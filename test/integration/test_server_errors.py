from __future__ import annotations

from fastapi.testclient import TestClient

from markdown_mirror.app.server import create_app
from support.settings_factory import make_settings


def test_global_exception_handler_returns_consistent_api_error() -> None:
    app = create_app(make_settings())

    @app.get("/boom")
    def _boom() -> dict[str, str]:
        raise RuntimeError("boom")

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/boom", headers={"X-Request-Id": "req-boom-1"})

    assert response.status_code == 500
    assert response.json() == {
        "detail": "An internal server error occurred.",
        "code": "internal_error",
        "request_id": "req-boom-1",
    }
    assert response.headers.get("X-Request-Id") == "req-boom-1"


def test_malformed_request_id_is_replaced() -> None:
    client = TestClient(create_app(make_settings()))
    response = client.get("/healthz", headers={"X-Request-Id": "bad id with spaces"})

    request_id = response.headers.get("X-Request-Id")
    assert request_id and request_id != "bad id with spaces"
