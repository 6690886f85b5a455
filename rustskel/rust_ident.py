"""Identifier and visibility spelling helpers."""

from rustskel.models import Item, Visibility

RESERVED_WORDS = frozenset(
    {
        "abstract", "as", "become", "box", "break", "const", "continue", "crate",
        "do", "else", "enum", "extern", "false", "final", "fn", "for", "if", "impl",
        "in", "let", "loop", "macro", "match", "mod", "move", "mut", "override",
        "priv", "pub", "ref", "return", "self", "Self", "static", "struct", "super",
        "trait", "true", "try", "type", "typeof", "unsafe", "unsized", "use",
        "virtual", "where", "while", "yield",
    }
)  # fmt: skip

# these cannot be raw identifiers
NON_RAW_KEYWORDS = frozenset({"crate", "self", "Self", "super"})


def render_name(name: str | None) -> str:
    """Escape keywords used as identifiers, e.g. ``type`` -> ``r#type``."""
    if not name:
        return "?"
    if name in RESERVED_WORDS and name not in NON_RAW_KEYWORDS:
        return f"r#{name}"
    return name


def render_path(path: str) -> str:
    """Escape each segment of a ``::`` path."""
    segments = path.split("::")
    return "::".join(
        s if s in NON_RAW_KEYWORDS or not s else render_name(s) for s in segments
    )


def visibility_keyword(item: Item) -> str:
    """Return ``pub ``, ``pub(crate) ``, ``pub(in path) `` or nothing."""
    if item.visibility is Visibility.PUBLIC:
        return "pub "
    if item.visibility is Visibility.RESTRICTED:
        scope = item.visibility_path or "crate"
        if scope in {"crate", "super", "self"}:
            return f"pub({scope}) "
        if scope.split("::")[0] not in NON_RAW_KEYWORDS:
            scope = f"crate::{scope}"
        return f"pub(in {scope}) "
    return ""
