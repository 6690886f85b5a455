"""Logic for turning raw rustdoc attributes into :class:`ItemAttributes`."""

import logging
import re
from typing import Any

from rustskel.feature_gate import FeatureGate, combine_gates, parse_cfg
from rustskel.models import ItemAttributes

logger = logging.getLogger(__name__)

ATTR_RE = re.compile(r"^#!?\[(?P<body>.*)\]$", re.DOTALL)
RENDERED_ATTRIBUTES = ("non_exhaustive", "repr", "must_use")


def attribute_text(attr: Any) -> str:
    """Return the ``#[...]`` source form of one attribute entry."""
    if isinstance(attr, str):
        return attr if attr.startswith("#") else f"#[{attr}]"
    if isinstance(attr, dict) and len(attr) == 1:
        tag, payload = next(iter(attr.items()))
        if tag == "other" and isinstance(payload, str):
            return payload if payload.startswith("#") else f"#[{payload}]"
        return f"#[{tag}]"
    return ""


def _balanced_args(body: str, start: int) -> str | None:
    """Return the text between the paren at ``start`` and its partner."""
    depth = 0
    in_str = False
    for i in range(start, len(body)):
        ch = body[i]
        if in_str:
            if ch == "\\":
                continue
            if ch == '"' and body[i - 1] != "\\":
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return body[start + 1 : i]
    return None


def _cfg_expressions(body: str) -> list[str]:
    """Find the ``cfg(...)`` payloads in an attribute body."""
    exprs = []
    for m in re.finditer(r"\bcfg\s*\(", body):
        inner = _balanced_args(body, m.end() - 1)
        if inner is not None:
            exprs.append(inner)
    return exprs


def parse_attributes(raw_item: dict[str, Any]) -> ItemAttributes:
    """Parse docs, feature gates, derives and render markers of one item."""
    gates: list[FeatureGate] = []
    derives: list[str] = []
    markers: list[str] = []
    automatically_derived = False

    for attr in raw_item.get("attrs") or []:
        text = attribute_text(attr).strip()
        m = ATTR_RE.match(text)
        if not m:
            continue
        body = m.group("body").strip()
        head = re.split(r"[\s(=]", body, maxsplit=1)[0]

        if head == "automatically_derived":
            automatically_derived = True
        elif head == "derive":
            inner = _balanced_args(body, body.find("("))
            if inner:
                derives.extend(d.strip() for d in inner.split(",") if d.strip())
        elif head in {"cfg", "doc", "cfg_attr"}:
            for expr in _cfg_expressions(body):
                try:
                    gates.append(parse_cfg(expr))
                except ValueError:
                    logger.debug("Ignoring unparseable cfg on %s: %s", raw_item.get("id"), expr)
        elif head in RENDERED_ATTRIBUTES:
            markers.append(f"#[{body}]")

    # a feature listed twice (cfg + doc(cfg)) only needs one gate
    unique_gates = list(dict.fromkeys(gates))
    docs = raw_item.get("docs")
    return ItemAttributes(
        docs=str(docs) if docs else None,
        gate=combine_gates(unique_gates),
        deprecation=raw_item.get("deprecation") or None,
        derives=tuple(derives),
        automatically_derived=automatically_derived,
        markers=tuple(markers),
    )
