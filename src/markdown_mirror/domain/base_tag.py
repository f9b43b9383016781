from __future__ import annotations

import re
from html import escape

_BASE_TAG_RE = re.compile(r"<base\b[^>]*>", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html\b[^>]*>", re.IGNORECASE)


def build_base_tag(base_url: str) -> str:
    return f'<base href="{escape(base_url, quote=True)}">'


def add_base_tag(html: str, base_url: str) -> str:
    """
    Point the document's base reference at `base_url`.

    An existing <base> is replaced; otherwise one is inserted after <head>, or a <head> is
    synthesized after <html>, or the tag is prepended. The URL is attribute-escaped.
    """
    tag = build_base_tag(base_url)

    if _BASE_TAG_RE.search(html):
        return _BASE_TAG_RE.sub(lambda _m: tag, html, count=1)

    if _HEAD_OPEN_RE.search(html):
        return _HEAD_OPEN_RE.sub(lambda m: m.group(0) + tag, html, count=1)

    if _HTML_OPEN_RE.search(html):
        return _HTML_OPEN_RE.sub(lambda m: f"{m.group(0)}<head>{tag}</head>", html, count=1)

    return tag + html
