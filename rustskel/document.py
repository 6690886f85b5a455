"""Data models for the rendered skeleton before assembly."""

from dataclasses import dataclass, field

from rustskel.diagnostic import Diagnostic
from rustskel.filter_graph import FilterSummary


@dataclass
class ModuleBlock:
    """One ``mod`` in the rendered tree."""

    item_id: str
    name: str
    prelude: list[str] = field(default_factory=list)  # docs and attributes
    visibility: str = "pub "
    entries: list[list[str]] = field(default_factory=list)  # one line list per item
    children: list["ModuleBlock"] = field(default_factory=list)

    def item_count(self) -> int:
        """Return the number of rendered entries in this subtree."""
        return len(self.entries) + sum(c.item_count() + 1 for c in self.children)


@dataclass
class Document:
    """The rendered module tree with the facts the header reports."""

    crate_name: str
    root: ModuleBlock
    summary: FilterSummary
    diagnostics: list[Diagnostic] = field(default_factory=list)
    crate_version: str | None = None
