"""Visibility, feature and auto-trait filtering of the item graph."""

import dataclasses
import logging
from dataclasses import dataclass, field

from rustskel.diagnostic import Diagnostic
from rustskel.errors import UnsupportedItemKind
from rustskel.impl_block import ImplBlock, impl_block_from_item
from rustskel.impl_policy import is_auto_impl
from rustskel.load_item_graph import child_ids
from rustskel.models import Item, ItemGraph, ItemKind
from rustskel.render_options import RenderOptions
from rustskel.rustdoc_fields import as_id, field as rustdoc_field

logger = logging.getLogger(__name__)

# Members of these containers take the container's visibility.
INHERITING_CONTAINERS = frozenset({ItemKind.TRAIT, ItemKind.ENUM, ItemKind.VARIANT})


@dataclass
class FilterSummary:
    """Counts of what the filter left out, for the summary header."""

    private_items: int = 0
    auto_impls: int = 0
    blanket_impls: int = 0
    feature_gated: int = 0

    def to_dict(self) -> dict[str, int]:
        """Return the JSON-friendly form."""
        return dataclasses.asdict(self)


@dataclass
class FilteredGraph:
    """The subset of the item graph eligible for rendering."""

    graph: ItemGraph
    items: dict[str, Item]
    impls: dict[str, ImplBlock]
    forced: frozenset[str] = frozenset()  # kept only because a re-export names them
    summary: FilterSummary = field(default_factory=FilterSummary)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def get(self, item_id: str | None) -> Item | None:
        """Look up a retained item."""
        if item_id is None:
            return None
        return self.items.get(item_id)

    def members(self, container: Item) -> list[Item]:
        """Return the retained children of a container in declaration order."""
        return [
            self.items[c]
            for c in child_ids(container.kind_tag, container.payload)
            if c in self.items and self.items[c].kind is not ItemKind.IMPL
        ]


def check_supported(item: Item) -> None:
    """Raise :class:`UnsupportedItemKind` for items of an unknown kind."""
    if item.kind is ItemKind.OPAQUE:
        raise UnsupportedItemKind(item.kind_tag or "<missing>", item_id=item.id)


class _GraphFilter:
    """Single filtering pass over one graph."""

    def __init__(self, graph: ItemGraph, options: RenderOptions) -> None:
        self.graph = graph
        self.options = options
        self.kept: dict[str, Item] = {}
        self.forced: set[str] = set()
        self.reexports: list[Item] = []
        self.summary = FilterSummary()
        self.diagnostics: list[Diagnostic] = []

    def run(self) -> FilteredGraph:
        root = self.graph.root
        self.kept[root.id] = root
        self._visit_members(root, inherited=False)
        self._keep_reexport_targets()
        impls = self._filter_impls()
        logger.info(
            "Filter kept %d items and %d impls (dropped %d private, %d auto impls)",
            len(self.kept),
            len(impls),
            self.summary.private_items,
            self.summary.auto_impls,
        )
        return FilteredGraph(
            graph=self.graph,
            items=self.kept,
            impls=impls,
            forced=frozenset(self.forced),
            summary=self.summary,
            diagnostics=self.diagnostics,
        )

    def _eligible(self, item: Item, *, inherited: bool, count: bool = True) -> bool:
        gate = item.attributes.gate
        if gate is not None and not gate.allows(self.options.features):
            if count:
                self.summary.feature_gated += 1
            logger.debug("Dropping %s: feature gate %s", item.id, gate.render())
            return False
        if item.is_public or inherited or self.options.include_private:
            return True
        if count:
            self.summary.private_items += 1
        return False

    def _keep(self, item: Item, *, forced: bool = False) -> None:
        try:
            check_supported(item)
        except UnsupportedItemKind as exc:
            logger.warning("%s", exc)
            self.diagnostics.append(Diagnostic.from_error(exc))
            item = dataclasses.replace(item, payload=None)
        self.kept[item.id] = item
        if forced:
            self.forced.add(item.id)
        else:
            self.forced.discard(item.id)

    def _visit_members(self, container: Item, *, inherited: bool, forced: bool = False) -> None:
        """Visit the children of a kept container."""
        inherits = inherited or container.kind in INHERITING_CONTAINERS
        for child_id in child_ids(container.kind_tag, container.payload):
            child = self.graph.get(child_id)
            if child is None or child.kind in {ItemKind.IMPL, ItemKind.PRIMITIVE}:
                continue
            if child.id in self.kept and (forced or child.id not in self.forced):
                continue
            if not self._eligible(child, inherited=inherits, count=not forced):
                continue
            self._keep(child, forced=forced)
            if child.kind is ItemKind.REEXPORT:
                self.reexports.append(child)
            self._visit_members(child, inherited=False, forced=forced)

    def _keep_reexport_targets(self) -> None:
        """Keep what public re-exports point at, even inside private modules."""
        visited: set[str] = set()
        position = 0
        # forced visits below append further re-exports to self.reexports
        while position < len(self.reexports):
            reexport = self.reexports[position]
            position += 1
            if reexport.id in visited:
                continue
            visited.add(reexport.id)
            target = self.graph.get(as_id(rustdoc_field(reexport.payload, "id")))
            if target is None:
                continue
            if not self._eligible(target, inherited=True, count=False):
                continue
            if target.kind is ItemKind.REEXPORT:
                if target.id not in self.kept:
                    self._keep(target, forced=True)
                self.reexports.append(target)
                continue
            if target.id not in self.kept:
                self._keep(target, forced=True)
                self._visit_members(target, inherited=False, forced=True)

    def _filter_impls(self) -> dict[str, ImplBlock]:
        impls: dict[str, ImplBlock] = {}
        for item in self.graph.items.values():
            if item.kind is not ItemKind.IMPL:
                continue
            block = impl_block_from_item(item)
            gate = item.attributes.gate
            if gate is not None and not gate.allows(self.options.features):
                self.summary.feature_gated += 1
                continue
            if not self._impl_subjects_kept(block):
                continue
            if is_auto_impl(block, self.options.policy):
                if not self.options.include_auto_impls:
                    self.summary.auto_impls += 1
                    continue
            elif block.is_blanket and not self.options.include_blanket_impls:
                self.summary.blanket_impls += 1
                continue

            member_ids = self._filter_impl_members(block)
            if block.is_inherent and not member_ids:
                continue
            self.kept[item.id] = item
            impls[item.id] = dataclasses.replace(block, item_ids=tuple(member_ids))
        return impls

    def _impl_subjects_kept(self, block: ImplBlock) -> bool:
        """An impl survives only if its local target type and trait survived."""
        target_id = block.target_id
        if target_id is not None and self.graph.is_local(target_id):
            if target_id not in self.kept:
                return False
        for type_id in block.type_ids:
            local = self.graph.is_local(type_id) and type_id in self.graph.items
            if local and type_id not in self.kept:
                return False
        trait_id = block.trait_id
        if trait_id is not None and self.graph.is_local(trait_id):
            if trait_id in self.graph.items and trait_id not in self.kept:
                return False
        return True

    def _filter_impl_members(self, block: ImplBlock) -> list[str]:
        kept_ids = []
        for member_id in block.item_ids:
            member = self.graph.get(member_id)
            if member is None:
                continue
            if not self._eligible(member, inherited=not block.is_inherent):
                continue
            self._keep(member)
            kept_ids.append(member_id)
        return kept_ids


def filter_graph(graph: ItemGraph, options: RenderOptions) -> FilteredGraph:
    """Reduce the graph to the items eligible under ``options``."""
    return _GraphFilter(graph, options).run()
