"""Data models for the item graph."""

import enum
from dataclasses import dataclass, field
from typing import Any

from rustskel.feature_gate import FeatureGate


class ItemKind(enum.Enum):
    """Every item kind the pipeline knows how to handle."""

    MODULE = "module"
    STRUCT = "struct"
    ENUM = "enum"
    UNION = "union"
    TRAIT = "trait"
    FUNCTION = "function"
    METHOD = "method"
    CONSTANT = "constant"
    STATIC = "static"
    TYPE_ALIAS = "type_alias"
    MACRO = "macro"
    PROC_MACRO = "proc_macro"
    IMPL = "impl"
    FIELD = "struct_field"
    VARIANT = "variant"
    ASSOC_CONST = "assoc_const"
    ASSOC_TYPE = "assoc_type"
    REEXPORT = "use"
    EXTERN_CRATE = "extern_crate"
    PRIMITIVE = "primitive"
    OPAQUE = "opaque"


# rustdoc tag -> kind; older formats spell some tags differently
KIND_TAGS: dict[str, ItemKind] = {
    "module": ItemKind.MODULE,
    "struct": ItemKind.STRUCT,
    "enum": ItemKind.ENUM,
    "union": ItemKind.UNION,
    "trait": ItemKind.TRAIT,
    "function": ItemKind.FUNCTION,
    "constant": ItemKind.CONSTANT,
    "static": ItemKind.STATIC,
    "type_alias": ItemKind.TYPE_ALIAS,
    "typedef": ItemKind.TYPE_ALIAS,
    "macro": ItemKind.MACRO,
    "proc_macro": ItemKind.PROC_MACRO,
    "impl": ItemKind.IMPL,
    "struct_field": ItemKind.FIELD,
    "variant": ItemKind.VARIANT,
    "assoc_const": ItemKind.ASSOC_CONST,
    "assoc_type": ItemKind.ASSOC_TYPE,
    "use": ItemKind.REEXPORT,
    "import": ItemKind.REEXPORT,
    "extern_crate": ItemKind.EXTERN_CRATE,
    "primitive": ItemKind.PRIMITIVE,
}

TYPE_KINDS = frozenset({ItemKind.STRUCT, ItemKind.ENUM, ItemKind.UNION})


class Visibility(enum.Enum):
    """Declared visibility of an item."""

    PUBLIC = "public"
    RESTRICTED = "restricted"  # pub(crate), pub(super), pub(in path)
    PRIVATE = "private"


@dataclass(frozen=True)
class ItemAttributes:
    """Declarative metadata parsed from an item's attributes."""

    docs: str | None = None
    gate: FeatureGate | None = None
    deprecation: dict[str, Any] | None = None
    derives: tuple[str, ...] = ()
    automatically_derived: bool = False
    markers: tuple[str, ...] = ()  # attributes rendered verbatim, e.g. #[non_exhaustive]


@dataclass(frozen=True)
class Item:
    """One declared entity of the crate."""

    id: str
    name: str | None
    kind: ItemKind
    kind_tag: str
    visibility: Visibility
    module_path: tuple[str, ...]
    parent_id: str | None
    attributes: ItemAttributes
    payload: Any
    crate_id: int = 0
    order: int = 0
    visibility_path: str | None = None  # "crate", "super" or an explicit path
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def generics(self) -> dict[str, Any]:
        """Return the generics record of the payload, or an empty one."""
        if isinstance(self.payload, dict):
            return self.payload.get("generics") or {}
        return {}

    @property
    def is_public(self) -> bool:
        """Return True for ``pub`` items."""
        return self.visibility is Visibility.PUBLIC

    def display_name(self) -> str:
        """Return the name, or a placeholder for anonymous items."""
        return self.name or "?"


@dataclass(frozen=True)
class PathEntry:
    """One row of the rustdoc ``paths`` table."""

    crate_id: int
    path: tuple[str, ...]
    kind: str

    def joined(self) -> str:
        """Return the ``::``-separated path."""
        return "::".join(self.path)


@dataclass
class ItemGraph:
    """The normalized item graph of one crate."""

    format_version: int
    root_id: str
    items: dict[str, Item]
    paths: dict[str, PathEntry] = field(default_factory=dict)
    external_crates: dict[str, dict[str, Any]] = field(default_factory=dict)
    crate_version: str | None = None
    includes_private: bool = False

    @property
    def root(self) -> Item:
        """Return the crate root module."""
        return self.items[self.root_id]

    @property
    def crate_name(self) -> str:
        """Return the name of the crate being rendered."""
        return self.root.display_name()

    def get(self, item_id: str | None) -> Item | None:
        """Look up an item by id."""
        if item_id is None:
            return None
        return self.items.get(item_id)

    def is_local(self, item_id: str) -> bool:
        """Return True when the id belongs to the crate being rendered."""
        if item_id in self.items:
            return self.items[item_id].crate_id == 0
        entry = self.paths.get(item_id)
        return entry is not None and entry.crate_id == 0
