"""Tests for impl grouping, de-duplication and ordering."""

from graph_builders import (
    angle,
    crate_doc,
    function,
    generic,
    impl,
    path,
    primitive,
    ref,
    resolved,
    struct,
    trait,
)
from rustskel.filter_graph import filter_graph
from rustskel.load_item_graph import load_item_graph
from rustskel.merge_impls import MergedGraph, canonical_json, merge_impls
from rustskel.render_options import RenderOptions
from rustskel.resolve_references import resolve_references

SELF_REF = ("self", ref(generic("Self")))

EXTERNAL = {
    50: (1, ["core", "fmt", "Display"], "trait"),
    51: (1, ["core", "fmt", "Formatter"], "struct"),
    52: (1, ["core", "fmt", "Result"], "type_alias"),
    61: (1, ["core", "clone", "Clone"], "trait"),
    62: (1, ["core", "fmt", "Debug"], "trait"),
}


def _merge(doc: dict, options: RenderOptions | None = None) -> MergedGraph:
    options = options or RenderOptions()
    filtered = filter_graph(load_item_graph(doc), options)
    return merge_impls(resolve_references(filtered, options), options)


def _scenario_c() -> dict:
    """Struct P with a Display impl declared before its inherent impl."""
    return crate_doc(
        [
            struct(2, "P", None, impls=[3, 4]),
            impl(3, resolved("P", 2), trait_path=path("Display", 50), items=[6]),
            function(
                6,
                "fmt",
                inputs=[SELF_REF, ("f", ref(resolved("Formatter", 51), mutable=True))],
                output=resolved("Result", 52),
                visibility="default",
            ),
            impl(4, resolved("P", 2), items=[5]),
            function(5, "foo", inputs=[SELF_REF]),
        ],
        [2],
        external=EXTERNAL,
    )


def test_inherent_impls_come_before_trait_impls() -> None:
    """Verify inherent blocks lead regardless of declaration order."""
    merged = _merge(_scenario_c())
    impls = merged.impls_for("2")
    assert impls is not None
    assert [m.id for m in impls.impls] == ["4", "3"]


def test_trait_impls_sorted_by_trait_path() -> None:
    """Verify trait impls are ordered by their resolved trait path."""
    doc = crate_doc(
        [
            struct(1, "S", None, impls=[2, 3]),
            impl(2, resolved("S", 1), trait_path=path("Display", 50)),
            impl(3, resolved("S", 1), trait_path=path("Clone", 61)),
        ],
        [1],
        external=EXTERNAL,
    )
    impls = _merge(doc).impls_for("1")
    assert impls is not None
    assert [m.block.trait_name for m in impls.impls] == ["Clone", "Display"]


def test_inherent_blocks_are_merged_and_deduplicated() -> None:
    """Verify several inherent blocks fold into one with unique members."""
    doc = crate_doc(
        [
            struct(1, "S", None, impls=[2, 4]),
            impl(2, resolved("S", 1), items=[3]),
            function(3, "len", inputs=[SELF_REF], output=primitive("usize")),
            impl(4, resolved("S", 1), items=[5, 6]),
            function(5, "len", inputs=[SELF_REF], output=primitive("usize")),
            function(6, "is_empty", inputs=[SELF_REF], output=primitive("bool")),
        ],
        [1],
    )
    merged = _merge(doc)
    impls = merged.impls_for("1")
    assert impls is not None
    [block] = impls.impls
    assert block.item_ids == ("3", "6")
    assert block.source_ids == ("2", "4")
    assert "4" not in merged.items
    assert "5" not in merged.items


def test_distinct_instantiations_stay_separate() -> None:
    """Verify inherent blocks for different generic arguments are not merged."""
    generic_s = resolved("S", 1, angle(primitive("u8")))
    doc = crate_doc(
        [
            struct(1, "S", None, impls=[2, 4]),
            impl(2, resolved("S", 1), items=[3]),
            function(3, "a"),
            impl(4, generic_s, items=[5]),
            function(5, "b"),
        ],
        [1],
    )
    impls = _merge(doc).impls_for("1")
    assert impls is not None
    assert len(impls.impls) == 2


def test_derived_impls_become_derive_names() -> None:
    """Verify automatically derived impls are folded into #[derive]."""
    doc = crate_doc(
        [
            struct(1, "S", None, impls=[2, 3]),
            impl(
                2,
                resolved("S", 1),
                trait_path=path("Clone", 61),
                attrs=["#[automatically_derived]"],
            ),
            impl(
                3,
                resolved("S", 1),
                trait_path=path("Debug", 62),
                attrs=["#[automatically_derived]"],
            ),
        ],
        [1],
        external=EXTERNAL,
    )
    impls = _merge(doc).impls_for("1")
    assert impls is not None
    assert impls.derive_names() == ["Clone", "Debug"]
    assert impls.rendered_impls(RenderOptions()) == []
    assert len(impls.rendered_impls(RenderOptions(include_auto_impls=True))) == 2


def test_blanket_impls_are_emitted_once() -> None:
    """Verify copies of one blanket impl collapse into a single block."""
    doc = crate_doc(
        [
            trait(1, "Describe", []),
            struct(2, "A", None, impls=[4]),
            struct(3, "B", None, impls=[5]),
            impl(4, generic("T"), trait_path=path("Describe", 1), blanket=generic("T")),
            impl(5, generic("T"), trait_path=path("Describe", 1), blanket=generic("T")),
        ],
        [1, 2, 3],
    )
    merged = _merge(doc, RenderOptions(include_blanket_impls=True))
    blankets = merged.module_impls["0"]
    assert [m.id for m in blankets] == ["4"]
    assert blankets[0].source_ids == ("4", "5")
    assert "5" not in merged.items


def test_canonical_json_is_key_order_independent() -> None:
    """Verify structurally equal values share a key."""
    assert canonical_json({"a": 1, "b": [2]}) == canonical_json({"b": [2], "a": 1})
