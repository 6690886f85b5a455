"""Logic for turning a rendered document or merged graph into final output."""

import copy
import json
import logging
from collections import Counter
from typing import Any

from rustskel.compute_options_hash import compute_options_hash
from rustskel.diagnostic import Diagnostic
from rustskel.document import Document, ModuleBlock
from rustskel.filter_graph import FilterSummary
from rustskel.item_order import sort_key
from rustskel.load_item_graph import child_ids
from rustskel.merge_impls import MergedGraph, MergedImpl
from rustskel.models import Item, ItemKind, TYPE_KINDS
from rustskel.render_options import RenderOptions
from rustskel.render_skeleton import module_member_lister
from rustskel.rustdoc_fields import variant_of

logger = logging.getLogger(__name__)

INDENT = "    "

# container lists whose dangling ids are dropped from raw output
PRUNED_ID_LISTS = ("items", "impls", "implementations")

DEGRADED_LABELS = {
    "UnresolvedReference": "unresolved references",
    "UnsupportedItemKind": "unsupported items",
}


def summary_lines(
    crate_name: str,
    crate_version: str | None,
    summary: FilterSummary,
    diagnostics: list[Diagnostic],
) -> list[str]:
    """Return the ``//`` header; visibility omissions and degradations stay separate."""
    title = f"// {crate_name}"
    if crate_version:
        title += f" {crate_version}"
    lines = [
        f"{title} (skeleton, bodies elided)",
        (
            f"// omitted: {summary.private_items} private items, "
            f"{summary.auto_impls} auto impls, {summary.blanket_impls} blanket impls, "
            f"{summary.feature_gated} feature-gated items"
        ),
    ]
    degraded = degraded_counts(diagnostics)
    if degraded:
        parts = [
            f"{count} {DEGRADED_LABELS.get(code, code)}"
            for code, count in sorted(degraded.items())
        ]
        lines.append(f"// degraded: {', '.join(parts)}")
    else:
        lines.append("// degraded: none")
    return lines


def degraded_counts(diagnostics: list[Diagnostic]) -> dict[str, int]:
    """Count distinct degraded items per diagnostic code."""
    seen = {(d.code, d.item_id) for d in diagnostics}
    return dict(Counter(code for code, _ in seen))


def module_lines(block: ModuleBlock) -> list[str]:
    """Render a module block, nesting children one indent deeper."""
    head = f"{block.visibility}mod {block.name} {{"
    body: list[str] = []
    for entry in block.entries:
        if body:
            body.append("")
        body.extend(entry)
    for child in block.children:
        if body:
            body.append("")
        body.extend(module_lines(child))
    if not body:
        return [*block.prelude, head + "}"]
    return [
        *block.prelude,
        head,
        *(INDENT + line if line else "" for line in body),
        "}",
    ]


def assemble_text(document: Document, summary: FilterSummary | None = None) -> str:
    """Return the skeleton text with its summary header."""
    header = summary_lines(
        document.crate_name,
        document.crate_version,
        summary or document.summary,
        document.diagnostics,
    )
    return "\n".join([*header, *module_lines(document.root)]) + "\n"


class _RawOrder:
    """Walks the merged graph in the same category and name order as text mode."""

    def __init__(self, merged: MergedGraph, options: RenderOptions) -> None:
        self.merged = merged
        self.list_members = module_member_lister(merged, options)
        self.order: list[str] = []
        self.seen: set[str] = set()

    def emit(self, item_id: str) -> bool:
        if item_id in self.seen or item_id not in self.merged.items:
            return False
        self.seen.add(item_id)
        self.order.append(item_id)
        return True

    def visit_item(self, item: Item) -> None:
        if not self.emit(item.id):
            return
        for child_id in child_ids(item.kind_tag, item.payload):
            child = self.merged.items.get(child_id)
            if child is not None and child.kind is not ItemKind.IMPL:
                self.visit_item(child)

    def visit_type_impls(self, item: Item) -> None:
        impls = self.merged.impls_for(item.id)
        for merged in impls.impls if impls else []:
            self.visit_impl(merged)

    def visit_impl(self, merged: MergedImpl) -> None:
        if self.emit(merged.id):
            for member_id in merged.item_ids:
                self.emit(member_id)

    def visit_module(self, module: Item) -> None:
        if not self.emit(module.id):
            return
        members = [m for m, _ in self.list_members(module) if m.id in self.merged.items]
        for member in members:
            if member.kind is not ItemKind.MODULE:
                self.visit_item(member)
        for member in members:
            if member.kind in TYPE_KINDS:
                self.visit_type_impls(member)
        for merged in self.merged.module_impls.get(module.id, []):
            self.visit_impl(merged)
        for member in members:
            if member.kind is ItemKind.MODULE:
                self.visit_module(member)

    def run(self) -> list[str]:
        self.visit_module(self.merged.graph.root)
        # items only reachable through re-exports, and impls homed elsewhere
        rest = sorted(
            (self.merged.items[i] for i in self.merged.items if i not in self.seen),
            key=sort_key,
        )
        for item in rest:
            if item.kind is ItemKind.MODULE:
                self.visit_module(item)
            elif item.kind is ItemKind.IMPL:
                merged = self.merged.impls.get(item.id)
                if merged is not None:
                    self.visit_impl(merged)
                else:
                    self.emit(item.id)
            else:
                self.visit_item(item)
                if item.kind in TYPE_KINDS:
                    self.visit_type_impls(item)
        return self.order


def sorted_value(value: Any) -> Any:
    """Return a copy of a JSON value with every object's keys sorted."""
    if isinstance(value, dict):
        return {str(k): sorted_value(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, list):
        return [sorted_value(v) for v in value]
    return value


def _raw_item(merged: MergedGraph, item: Item) -> dict[str, Any]:
    raw = copy.deepcopy(item.raw)
    tag, payload = variant_of(raw.get("inner"))
    if not isinstance(payload, dict):
        return raw
    impl = merged.impls.get(item.id)
    if impl is not None:
        payload["items"] = [int(i) if i.isdigit() else i for i in impl.item_ids]
    for key in PRUNED_ID_LISTS:
        ids = payload.get(key)
        if isinstance(ids, list):
            payload[key] = [i for i in ids if str(i) in merged.items]
    raw["inner"] = {tag: payload}
    return raw


def assemble_raw(
    merged: MergedGraph, options: RenderOptions, summary: FilterSummary | None = None
) -> dict[str, Any]:
    """Serialize the merged graph to a rustdoc-shaped dict in render order."""
    graph = merged.graph
    order = _RawOrder(merged, options).run()
    index = {item_id: sorted_value(_raw_item(merged, merged.items[item_id])) for item_id in order}
    paths = {
        item_id: {"crate_id": entry.crate_id, "kind": entry.kind, "path": list(entry.path)}
        for item_id, entry in sorted(graph.paths.items())
    }
    logger.info("Serialized %d items in raw mode", len(index))
    return {
        "crate_version": graph.crate_version,
        "diagnostics": [d.to_dict() for d in merged.diagnostics],
        "external_crates": sorted_value(graph.external_crates),
        "format_version": graph.format_version,
        "includes_private": graph.includes_private or options.include_private,
        "index": index,
        "options_hash": compute_options_hash(options),
        "paths": paths,
        "root": int(graph.root_id) if graph.root_id.isdigit() else graph.root_id,
        "summary": (summary or merged.summary).to_dict(),
    }


def assemble_output(
    source: Document | MergedGraph,
    summary: FilterSummary | None,
    options: RenderOptions,
) -> str | dict[str, Any]:
    """Finalize text output from a document, or raw output from a merged graph."""
    if isinstance(source, Document):
        return assemble_text(source, summary)
    return assemble_raw(source, options, summary)


def dump_raw(raw: dict[str, Any]) -> str:
    """Return raw output as JSON text; key order is already canonical."""
    return json.dumps(raw, indent=2, ensure_ascii=False) + "\n"
