"""Resolution of type references and re-export chains."""

import enum
import logging
from dataclasses import dataclass, field

from rustskel.diagnostic import Diagnostic
from rustskel.errors import CycleDetected, UnresolvedReference
from rustskel.filter_graph import FilteredGraph
from rustskel.models import Item, ItemGraph, ItemKind
from rustskel.render_options import RenderOptions
from rustskel.rustdoc_fields import as_id, field as rustdoc_field, path_name
from rustskel.type_refs import iter_item_paths

logger = logging.getLogger(__name__)


class RefKind(enum.Enum):
    """Where a reference points."""

    LOCAL = "local"  # defined in this crate, rendered inline or by name
    EXTERNAL = "external"  # defined elsewhere, rendered as a full path
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ResolvedRef:
    """The canonical target of one reference."""

    kind: RefKind
    path: str
    target_id: str | None = None

    @property
    def is_local(self) -> bool:
        """Return True when the target is defined in this crate."""
        return self.kind is RefKind.LOCAL

    @property
    def is_external(self) -> bool:
        """Return True when the target lives in another crate."""
        return self.kind is RefKind.EXTERNAL


@dataclass
class ResolvedGraph:
    """A filtered graph whose references all have canonical targets."""

    filtered: FilteredGraph
    references: dict[str, ResolvedRef]
    reexports: dict[str, ResolvedRef]
    unresolved: frozenset[str] = frozenset()
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def graph(self) -> ItemGraph:
        """Return the original item graph."""
        return self.filtered.graph

    def lookup(self, ref_id: str | None) -> ResolvedRef | None:
        """Return the resolution of a referenced id, if any."""
        if ref_id is None:
            return None
        return self.references.get(ref_id)

    def degraded_items(self) -> set[str]:
        """Return ids of items rendered in a degraded form."""
        return {d.item_id for d in self.diagnostics if d.item_id is not None}


class _ReferenceResolver:
    """Resolves ids against the graph, following re-exports iteratively."""

    def __init__(self, filtered: FilteredGraph, options: RenderOptions) -> None:
        self.filtered = filtered
        self.graph = filtered.graph
        self.max_depth = options.policy.max_reexport_depth
        self.cache: dict[str, ResolvedRef] = {}
        self.diagnostics: list[Diagnostic] = list(filtered.diagnostics)
        self.reported: set[tuple[str | None, str]] = set()
        self.unresolved: set[str] = set()

    def canonical_path(self, item_id: str) -> str | None:
        entry = self.graph.paths.get(item_id)
        if entry is not None and entry.path:
            return entry.joined()
        item = self.graph.get(item_id)
        if item is not None and item.name:
            return "::".join((*item.module_path, item.name))
        return None

    def resolve_id(self, ref_id: str, written: str) -> ResolvedRef:
        """Resolve one id; raises on cycles and over-long chains."""
        if ref_id in self.cache:
            return self.cache[ref_id]

        chain = [ref_id]
        visited = {ref_id}
        current = ref_id
        item = self.graph.get(current)
        while item is not None and item.kind is ItemKind.REEXPORT:
            target = as_id(rustdoc_field(item.payload, "id"))
            if target is None:
                source = str(rustdoc_field(item.payload, "source", default=written))
                return self._remember(ref_id, ResolvedRef(RefKind.EXTERNAL, source))
            if target in visited:
                raise CycleDetected([*chain, target])
            if len(chain) > self.max_depth:
                msg = (
                    f"re-export chain from {ref_id} exceeds {self.max_depth} hops"
                )
                raise UnresolvedReference(msg, stage="resolve")
            visited.add(target)
            chain.append(target)
            current = target
            item = self.graph.get(current)

        path = self.canonical_path(current)
        if path is None:
            msg = f"reference {written or ref_id!r} points to missing id {current}"
            raise UnresolvedReference(msg, stage="resolve")
        kind = RefKind.LOCAL if self.graph.is_local(current) else RefKind.EXTERNAL
        return self._remember(ref_id, ResolvedRef(kind, path, current))

    def _remember(self, ref_id: str, resolved: ResolvedRef) -> ResolvedRef:
        self.cache[ref_id] = resolved
        return resolved

    def resolve_for_item(self, item: Item, ref_id: str, written: str) -> ResolvedRef:
        """Resolve a reference made by ``item``, recovering from dead ends."""
        try:
            return self.resolve_id(ref_id, written)
        except UnresolvedReference as exc:
            self.unresolved.add(ref_id)
            key = (item.id, ref_id)
            if key not in self.reported:
                self.reported.add(key)
                exc.item_id = item.id
                logger.warning("Unresolved reference in %s: %s", item.id, exc.message)
                self.diagnostics.append(Diagnostic.from_error(exc))
            return ResolvedRef(RefKind.UNRESOLVED, written)

    def run(self) -> ResolvedGraph:
        references: dict[str, ResolvedRef] = {}
        reexports: dict[str, ResolvedRef] = {}
        for item in self.filtered.items.values():
            if item.kind is ItemKind.REEXPORT:
                target = as_id(rustdoc_field(item.payload, "id"))
                source = str(rustdoc_field(item.payload, "source", default=""))
                if target is None:
                    reexports[item.id] = ResolvedRef(RefKind.EXTERNAL, source)
                else:
                    reexports[item.id] = self.resolve_for_item(item, target, source)
                continue
            for path in iter_item_paths(item):
                ref_id = as_id(path.get("id"))
                if ref_id is None or ref_id in references:
                    continue
                resolved = self.resolve_for_item(item, ref_id, path_name(path))
                if resolved.kind is not RefKind.UNRESOLVED:
                    references[ref_id] = resolved
        logger.info(
            "Resolved %d references and %d re-exports", len(references), len(reexports)
        )
        return ResolvedGraph(
            filtered=self.filtered,
            references=references,
            reexports=reexports,
            unresolved=frozenset(self.unresolved),
            diagnostics=self.diagnostics,
        )


def resolve_references(filtered: FilteredGraph, options: RenderOptions) -> ResolvedGraph:
    """Map every reference in the filtered graph to a canonical target."""
    return _ReferenceResolver(filtered, options).run()
