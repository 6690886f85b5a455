"""Logic for grouping, de-duplicating and ordering impl blocks per type."""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from rustskel.diagnostic import Diagnostic
from rustskel.filter_graph import FilteredGraph, FilterSummary
from rustskel.impl_block import ImplBlock
from rustskel.impl_policy import is_derived_impl
from rustskel.models import Item, ItemGraph, ItemKind
from rustskel.render_options import RenderOptions
from rustskel.resolve_references import ResolvedGraph
from rustskel.rustdoc_fields import field as rustdoc_field, path_name

logger = logging.getLogger(__name__)

# derive(PartialEq) emits this marker impl alongside the real one
HIDDEN_DERIVES = frozenset({"StructuralPartialEq", "StructuralEq"})


def canonical_json(value: Any) -> str:
    """Return a stable text key for a JSON value."""
    return json.dumps(value, sort_keys=True, default=str)


@dataclass(frozen=True)
class MergedImpl:
    """One impl block as it will be rendered."""

    block: ImplBlock
    derived: bool = False
    source_ids: tuple[str, ...] = ()  # every input impl folded into this block

    @property
    def id(self) -> str:
        """Return the id of the representative impl item."""
        return self.block.id

    @property
    def item_ids(self) -> tuple[str, ...]:
        """Return the member ids in declaration order."""
        return self.block.item_ids

    @property
    def for_type(self) -> Any:
        """Return the implementing type; the generic parameter for blanket impls."""
        if self.block.is_blanket:
            return self.block.blanket
        return self.block.for_type


@dataclass
class TypeImpls:
    """All retained impls of one local type, in render order."""

    type_id: str
    impls: list[MergedImpl] = field(default_factory=list)

    def derive_names(self) -> list[str]:
        """Return the derived trait names folded into ``#[derive(...)]``."""
        names = {
            m.block.trait_name
            for m in self.impls
            if m.derived and m.block.trait_name not in HIDDEN_DERIVES
        }
        return sorted(names)

    def rendered_impls(self, options: RenderOptions) -> list[MergedImpl]:
        """Return the impls rendered as blocks under ``options``."""
        if options.include_auto_impls:
            return [m for m in self.impls if m.block.trait_name not in HIDDEN_DERIVES]
        return [m for m in self.impls if not m.derived]


@dataclass
class MergedGraph:
    """A resolved graph with impls grouped per type and per home module."""

    resolved: ResolvedGraph
    items: dict[str, Item]
    types: dict[str, TypeImpls]
    module_impls: dict[str, list[MergedImpl]]
    impls: dict[str, MergedImpl]

    @property
    def filtered(self) -> FilteredGraph:
        """Return the filtered graph this was derived from."""
        return self.resolved.filtered

    @property
    def graph(self) -> ItemGraph:
        """Return the original item graph."""
        return self.resolved.filtered.graph

    @property
    def summary(self) -> FilterSummary:
        """Return the filter's omission counts."""
        return self.resolved.filtered.summary

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """Return every diagnostic recorded so far."""
        return self.resolved.diagnostics

    def impls_for(self, type_id: str) -> TypeImpls | None:
        """Return the impl group of a local type."""
        return self.types.get(type_id)

    def canonical_ids(self) -> list[str]:
        """Return the sorted ids of everything that survives to the output."""
        return sorted(self.items)


def _member_signature(member: Item) -> str:
    payload = member.payload if isinstance(member.payload, dict) else {}
    return canonical_json(
        [
            member.name,
            member.kind_tag,
            rustdoc_field(payload, "sig", "decl"),
            payload.get("generics"),
            rustdoc_field(payload, "type", "type_"),
        ]
    )


def enclosing_module(filtered: FilteredGraph, item: Item) -> str | None:
    """Return the nearest retained module that contains ``item``."""
    current = item.parent_id
    visited = {item.id}
    while current is not None and current not in visited:
        visited.add(current)
        parent = filtered.graph.get(current)
        if parent is None:
            return None
        if parent.kind is ItemKind.MODULE:
            return current if current in filtered.items else None
        current = parent.parent_id
    return None


class _ImplMerger:
    def __init__(self, resolved: ResolvedGraph, options: RenderOptions) -> None:
        self.resolved = resolved
        self.filtered = resolved.filtered
        self.options = options
        self.items = dict(self.filtered.items)
        self.types: dict[str, TypeImpls] = {}
        self.module_impls: dict[str, list[MergedImpl]] = {}
        self.impls: dict[str, MergedImpl] = {}

    def trait_key(self, block: ImplBlock) -> str:
        resolved = self.resolved.lookup(block.trait_id)
        if resolved is not None:
            return resolved.path
        return path_name(block.trait_path)

    def _sort_key(self, block: ImplBlock) -> tuple[str, str, int]:
        return (self.trait_key(block), canonical_json(block.trait_path), block.item.order)

    def home_module(self, block: ImplBlock) -> str:
        home = enclosing_module(self.filtered, block.item)
        if home is None:
            trait = self.filtered.get(block.trait_id)
            if trait is not None:
                home = enclosing_module(self.filtered, trait)
        return home or self.filtered.graph.root_id

    def run(self) -> MergedGraph:
        per_type: dict[str, list[ImplBlock]] = {}
        orphans: dict[str, list[ImplBlock]] = {}
        blankets: dict[str, list[ImplBlock]] = {}
        for block in sorted(self.filtered.impls.values(), key=lambda b: b.item.order):
            if block.is_blanket:
                key = canonical_json(
                    [block.trait_path, block.blanket, block.generics, block.is_negative]
                )
                blankets.setdefault(key, []).append(block)
            elif block.target_id is not None and block.target_id in self.items:
                per_type.setdefault(block.target_id, []).append(block)
            else:
                orphans.setdefault(self.home_module(block), []).append(block)

        for type_id, blocks in per_type.items():
            self.types[type_id] = TypeImpls(type_id, self._order_blocks(blocks))

        for module_id, blocks in orphans.items():
            self.module_impls[module_id] = self._order_blocks(blocks)

        # one block per blanket impl, however many types it was copied onto
        for key in sorted(blankets, key=lambda k: self._sort_key(blankets[k][0])):
            blocks = blankets[key]
            merged = MergedImpl(blocks[0], source_ids=tuple(b.id for b in blocks))
            for duplicate in blocks[1:]:
                self._drop_impl(duplicate, keep=set(blocks[0].item_ids))
            module_id = self.home_module(blocks[0])
            self.module_impls.setdefault(module_id, []).append(merged)
            self.impls[merged.id] = merged

        logger.info(
            "Merged impls for %d types (%d blanket impls)", len(self.types), len(blankets)
        )
        return MergedGraph(
            resolved=self.resolved,
            items=self.items,
            types=self.types,
            module_impls=self.module_impls,
            impls=self.impls,
        )

    def _order_blocks(self, blocks: list[ImplBlock]) -> list[MergedImpl]:
        inherent: dict[str, list[ImplBlock]] = {}
        trait_impls: list[ImplBlock] = []
        for block in blocks:
            if block.is_inherent:
                key = canonical_json([block.for_type, block.generics])
                inherent.setdefault(key, []).append(block)
            else:
                trait_impls.append(block)

        ordered = [self._merge_inherent(group) for group in inherent.values()]
        for block in sorted(trait_impls, key=self._sort_key):
            merged = MergedImpl(
                block,
                derived=is_derived_impl(block, self.options.policy),
                source_ids=(block.id,),
            )
            ordered.append(merged)
        for merged in ordered:
            self.impls[merged.id] = merged
        return ordered

    def _merge_inherent(self, group: list[ImplBlock]) -> MergedImpl:
        """Fold every inherent block of one instantiation into the first."""
        seen: set[str] = set()
        members: list[str] = []
        for block in group:
            for member_id in block.item_ids:
                member = self.items.get(member_id)
                if member is None:
                    continue
                signature = _member_signature(member)
                if signature in seen:
                    logger.debug("Dropping duplicate inherent member %s", member_id)
                    self.items.pop(member_id, None)
                    continue
                seen.add(signature)
                members.append(member_id)
        for duplicate in group[1:]:
            self.items.pop(duplicate.id, None)
        block = dataclasses.replace(group[0], item_ids=tuple(members))
        return MergedImpl(block, source_ids=tuple(b.id for b in group))

    def _drop_impl(self, block: ImplBlock, *, keep: set[str]) -> None:
        self.items.pop(block.id, None)
        for member_id in block.item_ids:
            if member_id not in keep:
                self.items.pop(member_id, None)


def merge_impls(resolved: ResolvedGraph, options: RenderOptions) -> MergedGraph:
    """Group the retained impl blocks per type in their stable render order."""
    return _ImplMerger(resolved, options).run()
