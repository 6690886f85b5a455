"""Tests for visibility, feature and impl filtering."""

from graph_builders import (
    crate_doc,
    function,
    generic,
    impl,
    item,
    module,
    path,
    primitive,
    ref,
    resolved,
    struct,
    struct_field,
    trait,
    use,
)
from rustskel.feature_gate import FeatureSet
from rustskel.filter_graph import filter_graph
from rustskel.load_item_graph import load_item_graph
from rustskel.render_options import RenderOptions


def _scenario_a() -> dict:
    return crate_doc(
        [
            module(1, "a", [2, 4]),
            struct(2, "S", [3]),
            struct_field(3, "field", primitive("i32")),
            struct(4, "T", [], visibility="default"),
        ],
        [1],
    )


def test_private_items_are_dropped_and_counted() -> None:
    """Verify only public items survive by default."""
    filtered = filter_graph(load_item_graph(_scenario_a()), RenderOptions())
    assert set(filtered.items) == {"0", "1", "2", "3"}
    assert filtered.summary.private_items == 1


def test_include_private_keeps_everything() -> None:
    """Verify include_private retains private items without counting them."""
    filtered = filter_graph(
        load_item_graph(_scenario_a()), RenderOptions(include_private=True)
    )
    assert "4" in filtered.items
    assert filtered.summary.private_items == 0


def test_private_module_hides_its_contents() -> None:
    """Verify public items inside a private module are not reachable."""
    doc = crate_doc(
        [module(1, "hidden", [2], visibility="default"), function(2, "f")], [1]
    )
    filtered = filter_graph(load_item_graph(doc), RenderOptions())
    assert "2" not in filtered.items


def test_trait_members_inherit_visibility() -> None:
    """Verify trait items without a visibility of their own are kept."""
    doc = crate_doc(
        [trait(1, "Shape", [2]), function(2, "area", has_body=False, visibility="default")],
        [1],
    )
    filtered = filter_graph(load_item_graph(doc), RenderOptions())
    assert "2" in filtered.items
    assert filtered.summary.private_items == 0


def test_feature_gated_items() -> None:
    """Verify cfg(feature) gates follow the enabled feature set."""
    doc = crate_doc([function(1, "gated", attrs=['#[cfg(feature = "x")]'])], [1])
    graph = load_item_graph(doc)

    default = filter_graph(graph, RenderOptions())
    assert "1" not in default.items
    assert default.summary.feature_gated == 1

    enabled = filter_graph(graph, RenderOptions(features=FeatureSet.parse("x")))
    assert "1" in enabled.items
    assert filter_graph(graph, RenderOptions(features=FeatureSet(all=True))).get("1")


def _with_impls() -> dict:
    return crate_doc(
        [
            struct(1, "S", None, impls=[2, 3, 5]),
            impl(2, resolved("S", 1), trait_path=path("Send", 60), synthetic=True),
            impl(3, resolved("S", 1), items=[4]),
            function(4, "secret", visibility="default"),
            impl(
                5,
                generic("T"),
                trait_path=path("Into", 61),
                blanket=generic("T"),
            ),
        ],
        [1],
        external={
            60: (1, ["core", "marker", "Send"], "trait"),
            61: (1, ["core", "convert", "Into"], "trait"),
        },
    )


def test_auto_impls_are_suppressed_by_default() -> None:
    """Verify synthetic and auto-trait impls are dropped and counted."""
    filtered = filter_graph(load_item_graph(_with_impls()), RenderOptions())
    assert "2" not in filtered.impls
    assert filtered.summary.auto_impls == 2  # Send, and the noise blanket Into


def test_auto_impls_can_be_included() -> None:
    """Verify include_auto_impls keeps marker impls."""
    filtered = filter_graph(
        load_item_graph(_with_impls()), RenderOptions(include_auto_impls=True)
    )
    assert {"2", "5"} <= set(filtered.impls)
    assert filtered.summary.auto_impls == 0


def test_inherent_impl_without_visible_members_is_dropped() -> None:
    """Verify an inherent block whose members are all private disappears."""
    filtered = filter_graph(load_item_graph(_with_impls()), RenderOptions())
    assert "3" not in filtered.impls
    assert "4" not in filtered.items

    with_private = filter_graph(
        load_item_graph(_with_impls()), RenderOptions(include_private=True)
    )
    assert with_private.impls["3"].item_ids == ("4",)


def test_blanket_impls_are_counted_separately() -> None:
    """Verify non-noise blanket impls follow include_blanket_impls."""
    doc = crate_doc(
        [
            trait(1, "Describe", []),
            impl(2, generic("T"), trait_path=path("Describe", 1), blanket=generic("T")),
        ],
        [1],
    )
    graph = load_item_graph(doc)
    default = filter_graph(graph, RenderOptions())
    assert "2" not in default.impls
    assert default.summary.blanket_impls == 1
    assert "2" in filter_graph(graph, RenderOptions(include_blanket_impls=True)).impls


def test_unknown_kind_is_kept_with_a_diagnostic() -> None:
    """Verify unknown items become opaque placeholders with a diagnostic."""
    doc = crate_doc([item(1, "Thing", "extern_thing", {"x": 1})], [1])
    filtered = filter_graph(load_item_graph(doc), RenderOptions())
    assert filtered.items["1"].payload is None
    [diagnostic] = filtered.diagnostics
    assert diagnostic.code == "UnsupportedItemKind"
    assert diagnostic.item_id == "1"


def test_reexported_private_items_are_forced() -> None:
    """Verify a public re-export keeps its target from a private module."""
    doc = crate_doc(
        [
            module(1, "inner", [2], visibility="default"),
            struct(2, "Hidden", None),
            use(3, "Hidden", "inner::Hidden", 2),
        ],
        [1, 3],
    )
    filtered = filter_graph(load_item_graph(doc), RenderOptions())
    assert "2" in filtered.items
    assert filtered.forced == frozenset({"2"})
    assert "1" not in filtered.items


def test_visibility_is_monotone() -> None:
    """Verify enabling private items never removes anything."""
    for doc in (_scenario_a(), _with_impls()):
        graph = load_item_graph(doc)
        public = set(filter_graph(graph, RenderOptions()).items)
        everything = set(filter_graph(graph, RenderOptions(include_private=True)).items)
        assert public <= everything


def test_impl_for_reference_to_private_type_is_dropped() -> None:
    """Verify impls on wrappers of a dropped type go with it."""
    display = path("Display", 50)
    doc = crate_doc(
        [
            struct(1, "Hidden", None, visibility="default"),
            impl(2, ref(resolved("Hidden", 1)), trait_path=display, items=[3]),
            function(3, "fmt"),
            struct(4, "Shown", None),
            impl(5, ref(resolved("Shown", 4)), trait_path=display, items=[6]),
            function(6, "fmt"),
            impl(7, {"slice": resolved("Hidden", 1)}, trait_path=display),
        ],
        [1, 4],
        external={50: (1, ["core", "fmt", "Display"], "trait")},
    )
    filtered = filter_graph(load_item_graph(doc), RenderOptions())
    assert set(filtered.impls) == {"5"}
    assert "2" not in filtered.items
