"""Fixed category order for the members of a rendered module."""

from rustskel.models import Item, ItemKind

CATEGORY_ORDER: dict[ItemKind, int] = {
    ItemKind.REEXPORT: 0,
    ItemKind.EXTERN_CRATE: 0,
    ItemKind.TYPE_ALIAS: 1,
    ItemKind.STRUCT: 2,
    ItemKind.ENUM: 3,
    ItemKind.UNION: 4,
    ItemKind.CONSTANT: 5,
    ItemKind.STATIC: 5,
    ItemKind.TRAIT: 6,
    ItemKind.FUNCTION: 7,
    ItemKind.MACRO: 8,
    ItemKind.PROC_MACRO: 8,
    ItemKind.OPAQUE: 9,
    ItemKind.IMPL: 10,
    ItemKind.MODULE: 11,
}

# never rendered as module members
UNLISTED_KINDS = frozenset(
    {
        ItemKind.PRIMITIVE,
        ItemKind.METHOD,
        ItemKind.FIELD,
        ItemKind.VARIANT,
        ItemKind.ASSOC_CONST,
        ItemKind.ASSOC_TYPE,
    }
)


def category(item: Item) -> int:
    """Return the category rank of a module member."""
    return CATEGORY_ORDER.get(item.kind, CATEGORY_ORDER[ItemKind.OPAQUE])


def sort_key(item: Item, name: str | None = None) -> tuple[int, str, int]:
    """Order by category, then name, then original declaration order."""
    return (category(item), name if name is not None else item.name or "", item.order)
