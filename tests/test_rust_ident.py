"""Tests for identifier spelling, visibility keywords and macro elision."""

import pytest

from graph_builders import crate_doc, function, item
from rustskel.load_item_graph import load_item_graph
from rustskel.render_macro import FALLBACK_RULE, macro_matchers, render_macro_rules
from rustskel.rust_ident import render_name, render_path, visibility_keyword


def test_render_name() -> None:
    """Verify keyword escaping."""
    assert render_name("type") == "r#type"
    assert render_name("self") == "self"
    assert render_name("value") == "value"
    assert render_name(None) == "?"


def test_render_path() -> None:
    """Verify each path segment is escaped on its own."""
    assert render_path("crate::r#mod::type") == "crate::r#mod::r#type"
    assert render_path("crate::match::Item") == "crate::r#match::Item"
    assert render_path("self::Thing") == "self::Thing"


@pytest.mark.parametrize(
    ("visibility", "expected"),
    [
        ("public", "pub "),
        ("default", ""),
        ("crate", "pub(crate) "),
        ({"restricted": {"parent": 1, "path": "::a::b"}}, "pub(in crate::a::b) "),
        ({"restricted": {"parent": 1, "path": "super"}}, "pub(super) "),
    ],
)
def test_visibility_keyword(visibility: object, expected: str) -> None:
    """Verify the keyword for every visibility form."""
    doc = crate_doc([function(1, "f", visibility=visibility)], [1])
    assert visibility_keyword(load_item_graph(doc).items["1"]) == expected


def test_macro_matchers() -> None:
    """Verify matchers are extracted and whitespace-normalized."""
    source = 'macro_rules! m {\n    ( $a:expr ,\n  $b:expr ) => { $a + $b };\n    [] => { "}" };\n}'
    name, matchers = macro_matchers(source)
    assert name == "m"
    assert matchers == ["( $a:expr , $b:expr )", "[]"]


def test_macro_matchers_reject_invalid_source() -> None:
    """Verify malformed macro source raises ValueError."""
    with pytest.raises(ValueError):
        macro_matchers("fn not_a_macro() {}")
    with pytest.raises(ValueError):
        macro_matchers("macro_rules! m { () => { ( }; }")


def test_unparseable_macro_falls_back() -> None:
    """Verify a macro whose source cannot be split gets the catch-all rule."""
    doc = crate_doc([item(1, "m", "macro", "macro_rules! m { oops }")], [1])
    lines = render_macro_rules(load_item_graph(doc).items["1"])
    assert lines == ["macro_rules! m {", f"    {FALLBACK_RULE}", "}"]
