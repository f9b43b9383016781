from __future__ import annotations

import threading
from typing import Any, Final
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from markdownify import ATX, SETEXT, MarkdownConverter

from markdown_mirror.config.settings import ConverterOptions
from markdown_mirror.domain.base_tag import add_base_tag

DEFAULT_HEADING_STYLE = "atx"
DEFAULT_CODE_BLOCK_STYLE = "fenced"
DEFAULT_BULLET_LIST_MARKER = "-"

_HEADING_STYLES: Final[dict[str, str]] = {"atx": ATX, "setext": SETEXT}

_URL_ATTRIBUTES: Final[tuple[tuple[str, str], ...]] = (("a", "href"), ("img", "src"))
_UNRESOLVED_PREFIXES: Final[tuple[str, ...]] = ("#", "javascript:", "mailto:", "tel:", "data:")
# Document metadata and active content never become markdown text.
_DROPPED_TAGS: Final[list[str]] = ["head", "script", "style", "template", "noscript"]


def _resolve_relative_urls(soup: BeautifulSoup, base_url: str) -> None:
    for tag_name, attr in _URL_ATTRIBUTES:
        for tag in soup.find_all(tag_name, attrs={attr: True}):
            value = str(tag[attr]).strip()
            if value and not value.lower().startswith(_UNRESOLVED_PREFIXES):
                tag[attr] = urljoin(base_url, value)


class DocumentConverter(MarkdownConverter):
    """markdownify converter for whole documents, resolving links against the <base href>."""

    class Options(MarkdownConverter.DefaultOptions):
        code_block_style = DEFAULT_CODE_BLOCK_STYLE

    def convert_document(self, html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")
        base = soup.find("base", href=True)
        if base is not None:
            _resolve_relative_urls(soup, str(base["href"]))
        for tag in soup.find_all(_DROPPED_TAGS):
            tag.decompose()
        # Leading spaces belong to an indented code block; only line breaks are trimmed there.
        return self.convert_soup(soup).lstrip("\r\n\t").rstrip()

    def convert_pre(self, el, text, *args, **kwargs):
        if self.options["code_block_style"] != "indented":
            return super().convert_pre(el, text, *args, **kwargs)
        if not text:
            return ""
        lines = text.strip("\n").split("\n")
        body = "\n".join(f"    {line}" if line else "" for line in lines)
        return f"\n\n{body}\n\n"


def build_converter_config(options: ConverterOptions | None = None) -> dict[str, Any]:
    """
    Translate style options into markdownify keyword arguments.

    Each known field falls back to its default only when it is unset (None). Unknown fields are
    passed through unchanged.
    """
    heading_style = DEFAULT_HEADING_STYLE
    code_block_style = DEFAULT_CODE_BLOCK_STYLE
    bullets = DEFAULT_BULLET_LIST_MARKER
    extras: dict[str, Any] = {}

    if options is not None:
        if options.heading_style is not None:
            heading_style = options.heading_style
        if options.code_block_style is not None:
            code_block_style = options.code_block_style
        if options.bullet_list_marker is not None:
            bullets = options.bullet_list_marker
        extras = dict(options.model_extra or {})

    return {
        "heading_style": _HEADING_STYLES[heading_style],
        "code_block_style": code_block_style,
        "bullets": bullets,
        **extras,
    }


_default_converter: DocumentConverter | None = None
_default_converter_guard = threading.Lock()


def get_default_converter() -> DocumentConverter:
    """Return the process-wide default converter, building it on first use."""
    global _default_converter
    converter = _default_converter
    if converter is None:
        with _default_converter_guard:
            if _default_converter is None:
                _default_converter = DocumentConverter(**build_converter_config())
            converter = _default_converter
    return converter


def reset_default_converter() -> None:
    """Drop the cached default converter (test isolation)."""
    global _default_converter
    with _default_converter_guard:
        _default_converter = None


def convert_html_to_markdown(
    html: str,
    base_url: str,
    options: ConverterOptions | None = None,
) -> str:
    """
    Convert an HTML document to markdown with `base_url` as its base reference.

    Without options the shared default converter is used; with options a dedicated converter is
    built for this call and the shared one is left untouched.
    """
    document = add_base_tag(html, base_url)
    if options is None:
        converter = get_default_converter()
    else:
        converter = DocumentConverter(**build_converter_config(options))
    return converter.convert_document(document)
