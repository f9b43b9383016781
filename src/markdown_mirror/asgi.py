from __future__ import annotations

from markdown_mirror.app.server import create_app
from markdown_mirror.config.load import load_settings
from markdown_mirror.observability.logger import configure_logging_from_settings

settings = load_settings()
configure_logging_from_settings(settings.observability)

app = create_app(settings)
