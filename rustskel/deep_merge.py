"""Logic for layering configuration dictionaries."""

from typing import Any

# policy tables that a user config extends rather than replaces
ADDITIVE_KEYS = frozenset({"auto_traits", "blanket_noise_traits", "derivable_traits"})


def _merge_value(key: str, current: Any, value: Any) -> Any:
    if isinstance(current, dict) and isinstance(value, dict):
        return deep_merge(current, value)
    if key in ADDITIVE_KEYS and isinstance(current, list) and isinstance(value, list):
        return sorted({*current, *value})
    return value


def deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``update`` layered on top.

    Nested mappings merge key by key. Lists from ``update`` replace the base
    list, except for the policy trait tables, which take the sorted union.
    Neither argument is modified.
    """
    merged = dict(base)
    for key, value in update.items():
        merged[key] = _merge_value(key, merged.get(key), value) if key in merged else value
    return merged
