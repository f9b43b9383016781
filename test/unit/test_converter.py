from __future__ import annotations

from markdownify import ATX, SETEXT

from markdown_mirror.adapters.markdown.converter import (
    build_converter_config,
    convert_html_to_markdown,
    get_default_converter,
    reset_default_converter,
)
from markdown_mirror.config.settings import ConverterOptions

BASE = "https://localhost:3000/docs/page"


def test_default_config() -> None:
    assert build_converter_config() == {
        "heading_style": ATX,
        "code_block_style": "fenced",
        "bullets": "-",
    }


def test_config_only_replaces_set_fields_and_passes_extras_through() -> None:
    config = build_converter_config(ConverterOptions(heading_style="setext", wrap=True))
    assert config["heading_style"] == SETEXT
    assert config["code_block_style"] == "fenced"
    assert config["bullets"] == "-"
    assert config["wrap"] is True


def test_heading_converts_to_atx() -> None:
    html = "<html><head><title>ignored</title></head><body><h1>Test</h1></body></html>"
    assert convert_html_to_markdown(html, BASE) == "# Test"


def test_setext_headings_when_requested() -> None:
    out = convert_html_to_markdown(
        "<h1>Title</h1>", BASE, ConverterOptions(heading_style="setext")
    )
    assert out == "Title\n====="


def test_bullet_marker_option() -> None:
    html = "<ul><li>one</li><li>two</li></ul>"
    assert convert_html_to_markdown(html, BASE).splitlines() == ["- one", "- two"]
    plus = convert_html_to_markdown(html, BASE, ConverterOptions(bullet_list_marker="+"))
    assert plus.splitlines() == ["+ one", "+ two"]


def test_fenced_and_indented_code_blocks() -> None:
    html = "<pre><code>x = 1\ny = 2</code></pre>"
    assert convert_html_to_markdown(html, BASE) == "```\nx = 1\ny = 2\n```"
    indented = convert_html_to_markdown(html, BASE, ConverterOptions(code_block_style="indented"))
    assert indented == "    x = 1\n    y = 2"


def test_relative_links_resolve_against_base_url() -> None:
    html = (
        '<body><a href="/pricing">Pricing</a> '
        '<a href="sibling">Sibling</a> '
        '<img src="img/logo.png" alt="Logo"></body>'
    )
    out = convert_html_to_markdown(html, BASE)
    assert "[Pricing](https://localhost:3000/pricing)" in out
    assert "[Sibling](https://localhost:3000/docs/sibling)" in out
    assert "![Logo](https://localhost:3000/docs/img/logo.png)" in out


def test_upstream_base_tag_is_overridden() -> None:
    html = (
        '<html><head><base href="https://cdn.example/"></head>'
        '<body><a href="a">A</a></body></html>'
    )
    assert convert_html_to_markdown(html, BASE) == "[A](https://localhost:3000/docs/a)"


def test_fragment_and_mailto_links_are_left_alone() -> None:
    html = '<a href="#top">Top</a> <a href="mailto:team@example.com">Mail</a>'
    out = convert_html_to_markdown(html, BASE)
    assert "[Top](#top)" in out
    assert "[Mail](mailto:team@example.com)" in out


def test_scripts_and_styles_are_dropped() -> None:
    html = (
        "<html><head><style>body{}</style></head><body>"
        "<script>alert(1)</script><p>Visible</p><noscript>Enable JS</noscript>"
        "</body></html>"
    )
    assert convert_html_to_markdown(html, BASE) == "Visible"


def test_default_converter_is_shared_until_reset() -> None:
    first = get_default_converter()
    assert get_default_converter() is first

    convert_html_to_markdown("<p>x</p>", BASE, ConverterOptions(heading_style="setext"))
    assert get_default_converter() is first

    reset_default_converter()
    assert get_default_converter() is not first


def test_conversion_is_deterministic() -> None:
    html = '<h1>Docs</h1><p>See <a href="/a">a</a> and <em>b</em>.</p><ol><li>one</li></ol>'
    first = convert_html_to_markdown(html, BASE)
    reset_default_converter()
    assert convert_html_to_markdown(html, BASE) == first
    assert convert_html_to_markdown(html, BASE) == first
