"""Tolerant accessors for rustdoc JSON values.

rustdoc renamed a number of fields between format versions (``import`` became
``use``, ``decl`` became ``sig``, ``mutable`` became ``is_mutable`` and so on).
These helpers read whichever spelling is present.
"""

from typing import Any


def variant_of(value: Any) -> tuple[str, Any]:
    """Split an externally tagged enum value into ``(tag, payload)``.

    ``"infer"`` -> ``("infer", None)``; ``{"generic": "T"}`` -> ``("generic", "T")``.
    """
    if isinstance(value, str):
        return value, None
    if isinstance(value, dict) and len(value) == 1:
        tag, payload = next(iter(value.items()))
        return str(tag), payload
    return "", value


def field(data: dict[str, Any] | None, *names: str, default: Any = None) -> Any:
    """Return the first present field among ``names``."""
    if not data:
        return default
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


def flag(data: dict[str, Any] | None, *names: str) -> bool:
    """Return a boolean field that may appear under several names."""
    return bool(field(data, *names, default=False))


def path_name(path: dict[str, Any] | None) -> str:
    """Return the written name of a rustdoc ``Path`` value."""
    return str(field(path, "path", "name", default="")).replace("$crate::", "")


def as_id(value: Any) -> str | None:
    """Normalize an item id (integers in newer formats, strings in older)."""
    if value is None:
        return None
    return str(value)
