"""Data model for implementation blocks."""

from dataclasses import dataclass
from typing import Any

from rustskel.models import Item, ItemKind
from rustskel.rustdoc_fields import as_id, field, flag, path_name, variant_of
from rustskel.type_refs import iter_type_paths


@dataclass(frozen=True)
class ImplBlock:
    """An ``impl`` item viewed as target type + optional trait."""

    item: Item
    for_type: Any
    trait_path: dict[str, Any] | None
    blanket: Any
    item_ids: tuple[str, ...]
    is_synthetic: bool
    is_negative: bool
    is_unsafe: bool

    @property
    def id(self) -> str:
        """Return the id of the underlying impl item."""
        return self.item.id

    @property
    def generics(self) -> dict[str, Any]:
        """Return the impl's generic context."""
        return self.item.generics

    @property
    def is_inherent(self) -> bool:
        """Return True for ``impl Type { .. }`` blocks."""
        return self.trait_path is None

    @property
    def is_blanket(self) -> bool:
        """Return True when the impl applies to an open set of types."""
        return self.blanket is not None

    @property
    def is_derived(self) -> bool:
        """Return True for impls produced by ``#[derive]``."""
        return self.item.attributes.automatically_derived

    @property
    def trait_name(self) -> str:
        """Return the last segment of the trait path, or ``""``."""
        if self.trait_path is None:
            return ""
        return path_name(self.trait_path).split("::")[-1]

    @property
    def trait_id(self) -> str | None:
        """Return the id of the implemented trait."""
        if self.trait_path is None:
            return None
        return as_id(self.trait_path.get("id"))

    @property
    def target_id(self) -> str | None:
        """Return the id of the implementing type when it is a named path."""
        tag, payload = variant_of(self.for_type)
        if tag == "resolved_path":
            return as_id(field(payload, "id"))
        return None

    @property
    def type_ids(self) -> list[str]:
        """Return every path id named by the implementing type, wrappers included."""
        ids = (as_id(field(path, "id")) for path in iter_type_paths(self.for_type))
        return [type_id for type_id in ids if type_id is not None]


def impl_block_from_item(item: Item) -> ImplBlock:
    """Interpret an impl item's payload."""
    if item.kind is not ItemKind.IMPL:
        msg = f"item {item.id} is not an impl"
        raise ValueError(msg)
    payload = item.payload or {}
    return ImplBlock(
        item=item,
        for_type=field(payload, "for", "for_"),
        trait_path=field(payload, "trait", "trait_"),
        blanket=field(payload, "blanket_impl"),
        item_ids=tuple(str(i) for i in payload.get("items") or []),
        is_synthetic=flag(payload, "is_synthetic", "synthetic"),
        is_negative=flag(payload, "is_negative", "negative"),
        is_unsafe=flag(payload, "is_unsafe", "unsafe"),
    )
