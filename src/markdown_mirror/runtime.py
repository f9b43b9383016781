from __future__ import annotations

import uvicorn

from markdown_mirror.app.server import create_app
from markdown_mirror.config.load import load_settings
from markdown_mirror.config.settings import Settings
from markdown_mirror.observability.logger import configure_logging_from_settings


def serve(settings: Settings) -> int:
    configure_logging_from_settings(settings.observability)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )
    return 0


def main() -> int:
    return serve(load_settings())
