"""Logic for loading rustdoc JSON into an :class:`ItemGraph`."""

import json
import logging
from collections import deque
from pathlib import Path
from typing import Any

import yaml

from rustskel.errors import MalformedGraph, SchemaVersionMismatch
from rustskel.models import KIND_TAGS, Item, ItemGraph, ItemKind, PathEntry, Visibility
from rustskel.parse_attributes import parse_attributes
from rustskel.rustdoc_fields import as_id, field, variant_of

logger = logging.getLogger(__name__)

MIN_FORMAT_VERSION = 28
MAX_FORMAT_VERSION = 57


def load_item_graph_file(
    path: Path,
    *,
    min_version: int = MIN_FORMAT_VERSION,
    max_version: int = MAX_FORMAT_VERSION,
) -> ItemGraph:
    """Read a metadata file from disk and build the item graph."""
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yml", ".yaml"}:
            doc = yaml.safe_load(text)
        else:
            doc = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        msg = f"cannot parse {path}: {exc}"
        raise MalformedGraph(msg, stage="load") from exc
    return load_item_graph(doc or {}, min_version=min_version, max_version=max_version)


def load_item_graph(
    doc: dict[str, Any],
    *,
    min_version: int = MIN_FORMAT_VERSION,
    max_version: int = MAX_FORMAT_VERSION,
) -> ItemGraph:
    """Validate a parsed rustdoc JSON document and normalize its items."""
    if not isinstance(doc, dict):
        msg = "metadata document must be a JSON object"
        raise MalformedGraph(msg, stage="load")

    version = doc.get("format_version")
    if not isinstance(version, int) or not min_version <= version <= max_version:
        raise SchemaVersionMismatch(version, min_version, max_version)

    index = doc.get("index")
    if not isinstance(index, dict):
        msg = "metadata document has no item index"
        raise MalformedGraph(msg, stage="load")
    raw_items = {str(k): v for k, v in index.items() if isinstance(v, dict)}

    root_id = as_id(doc.get("root"))
    if root_id is None or root_id not in raw_items:
        msg = f"root item {root_id!r} is missing from the index"
        raise MalformedGraph(msg, stage="load")

    paths = _load_paths(doc.get("paths") or {})
    parents, order = _discover_parents(raw_items, root_id)

    items: dict[str, Item] = {}
    fallback_order = len(order)
    for position, (item_id, raw) in enumerate(raw_items.items()):
        items[item_id] = _build_item(
            item_id,
            raw,
            raw_items,
            parents,
            paths,
            order.get(item_id, fallback_order + position),
        )

    logger.info(
        "Loaded %d items (format_version %s, root %s)", len(items), version, root_id
    )
    return ItemGraph(
        format_version=version,
        root_id=root_id,
        items=items,
        paths=paths,
        external_crates={
            str(k): v for k, v in (doc.get("external_crates") or {}).items()
        },
        crate_version=doc.get("crate_version"),
        includes_private=bool(doc.get("includes_private", False)),
    )


def _load_paths(raw_paths: dict[str, Any]) -> dict[str, PathEntry]:
    paths: dict[str, PathEntry] = {}
    for k, v in raw_paths.items():
        if not isinstance(v, dict):
            continue
        paths[str(k)] = PathEntry(
            crate_id=int(v.get("crate_id", 0)),
            path=tuple(str(p) for p in v.get("path") or []),
            kind=str(v.get("kind") or ""),
        )
    return paths


def child_ids(tag: str, payload: Any) -> list[str]:
    """Return the ids an item owns (module members, fields, variants, ...)."""
    if not isinstance(payload, dict):
        return []
    ids: list[Any] = []
    if tag in {"module", "trait", "impl"}:
        ids.extend(payload.get("items") or [])
    elif tag == "struct":
        kind_tag, kind_payload = variant_of(payload.get("kind"))
        if kind_tag == "plain":
            ids.extend(field(kind_payload, "fields", default=[]))
        elif kind_tag == "tuple":
            ids.extend(kind_payload or [])
    elif tag == "union":
        ids.extend(payload.get("fields") or [])
    elif tag == "enum":
        ids.extend(payload.get("variants") or [])
    elif tag == "variant":
        kind_tag, kind_payload = variant_of(payload.get("kind"))
        if kind_tag == "struct":
            ids.extend(field(kind_payload, "fields", default=[]))
        elif kind_tag == "tuple":
            ids.extend(kind_payload or [])
    if tag in {"struct", "union", "enum"}:
        ids.extend(payload.get("impls") or [])
    return [str(i) for i in ids if i is not None]


def _discover_parents(
    raw_items: dict[str, dict[str, Any]], root_id: str
) -> tuple[dict[str, str], dict[str, int]]:
    """Walk containers breadth-first from the root; first owner wins."""
    parents: dict[str, str] = {}
    order: dict[str, int] = {root_id: 0}
    queue = deque([root_id])
    seen = {root_id}
    while queue:
        current = queue.popleft()
        tag, payload = variant_of(raw_items[current].get("inner"))
        for child in child_ids(tag, payload):
            if child in seen or child not in raw_items:
                continue
            seen.add(child)
            parents[child] = current
            order[child] = len(order)
            queue.append(child)
    # impls and trait members that no container listed
    for item_id, raw in raw_items.items():
        tag, payload = variant_of(raw.get("inner"))
        for child in child_ids(tag, payload):
            if child in raw_items and child not in parents and child != root_id:
                parents[child] = item_id
    return parents, order


def _visibility(raw_vis: Any) -> tuple[Visibility, str | None]:
    tag, payload = variant_of(raw_vis)
    if tag == "public":
        return Visibility.PUBLIC, None
    if tag == "crate":
        return Visibility.RESTRICTED, "crate"
    if tag == "restricted":
        path = str(field(payload, "path", default="")).lstrip(":") or "crate"
        return Visibility.RESTRICTED, path
    return Visibility.PRIVATE, None


def _module_path(
    item_id: str,
    raw_items: dict[str, dict[str, Any]],
    parents: dict[str, str],
    paths: dict[str, PathEntry],
) -> tuple[str, ...]:
    """Names of the enclosing modules, outermost first."""
    names: list[str] = []
    current = parents.get(item_id)
    visited = {item_id}
    while current is not None and current not in visited:
        visited.add(current)
        raw = raw_items[current]
        if variant_of(raw.get("inner"))[0] == "module":
            names.append(str(raw.get("name") or ""))
        current = parents.get(current)
    if names:
        return tuple(reversed(names))
    entry = paths.get(item_id)
    if entry and len(entry.path) > 1:
        return entry.path[:-1]
    return ()


def _build_item(
    item_id: str,
    raw: dict[str, Any],
    raw_items: dict[str, dict[str, Any]],
    parents: dict[str, str],
    paths: dict[str, PathEntry],
    order: int,
) -> Item:
    tag, payload = variant_of(raw.get("inner"))
    kind = KIND_TAGS.get(tag, ItemKind.OPAQUE)
    parent_id = parents.get(item_id)
    if kind is ItemKind.FUNCTION and parent_id is not None:
        parent_tag = variant_of(raw_items[parent_id].get("inner"))[0]
        if parent_tag in {"impl", "trait"}:
            kind = ItemKind.METHOD
    if kind is ItemKind.OPAQUE:
        logger.debug("Item %s has unknown kind %r", item_id, tag)

    visibility, visibility_path = _visibility(raw.get("visibility"))
    return Item(
        id=item_id,
        name=raw.get("name"),
        kind=kind,
        kind_tag=tag,
        visibility=visibility,
        visibility_path=visibility_path,
        module_path=_module_path(item_id, raw_items, parents, paths),
        parent_id=parent_id,
        attributes=parse_attributes(raw),
        payload=payload,
        crate_id=int(raw.get("crate_id", 0) or 0),
        order=order,
        raw=raw,
    )
