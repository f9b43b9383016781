from __future__ import annotations

from markdown_mirror.domain.base_tag import add_base_tag, build_base_tag

BASE = "https://localhost:3000/docs/page"


def test_build_base_tag_escapes_attribute() -> None:
    assert build_base_tag('https://x/"><script>') == (
        '<base href="https://x/&quot;&gt;&lt;script&gt;">'
    )


def test_existing_base_is_replaced() -> None:
    html = '<html><head><BASE href="https://old/"></head><body></body></html>'
    out = add_base_tag(html, BASE)
    assert "https://old/" not in out
    assert out.count("<base") == 1
    assert f'<base href="{BASE}">' in out


def test_base_inserted_after_head_open_tag() -> None:
    html = '<html><head lang="en"><title>t</title></head></html>'
    assert add_base_tag(html, BASE) == (
        f'<html><head lang="en"><base href="{BASE}"><title>t</title></head></html>'
    )


def test_head_synthesized_after_html_open_tag() -> None:
    html = "<html><body>x</body></html>"
    assert add_base_tag(html, BASE) == (
        f'<html><head><base href="{BASE}"></head><body>x</body></html>'
    )


def test_fragment_gets_tag_prepended() -> None:
    assert add_base_tag("<p>x</p>", BASE) == f'<base href="{BASE}"><p>x</p>'


def test_header_element_is_not_mistaken_for_head() -> None:
    html = "<html><header>x</header></html>"
    out = add_base_tag(html, BASE)
    assert out.startswith(f'<html><head><base href="{BASE}"></head><header>')


def test_special_characters_never_appear_unescaped_in_attribute() -> None:
    url = 'https://localhost/?a=1&b="2"<x>'
    out = add_base_tag("<html><head></head></html>", url)
    attribute = out.split('href="', 1)[1].split('">', 1)[0]
    for raw in ('"', "<", ">"):
        assert raw not in attribute
    assert "&amp;" in attribute
    assert "&b" not in attribute.replace("&amp;", "")
