"""Logic for rendering declarative and procedural macros without bodies."""

import logging
import re

from rustskel.models import Item
from rustskel.rust_ident import render_name
from rustskel.rustdoc_fields import field

logger = logging.getLogger(__name__)

OPEN_TO_CLOSE = {"(": ")", "[": "]", "{": "}"}
FALLBACK_RULE = "($($tt:tt)*) => {};"
HEADER_RE = re.compile(r"^\s*macro_rules!\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*")


def _group_end(text: str, start: int) -> int:
    """Return the index of the delimiter closing the one at ``start``."""
    stack = [OPEN_TO_CLOSE[text[start]]]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == '"':
            i += 1
            while i < len(text) and text[i] != '"':
                i += 2 if text[i] == "\\" else 1
        elif ch in OPEN_TO_CLOSE:
            stack.append(OPEN_TO_CLOSE[ch])
        elif ch in ")]}":
            if ch != stack.pop():
                msg = f"mismatched {ch!r} at offset {i}"
                raise ValueError(msg)
            if not stack:
                return i
        i += 1
    msg = "unbalanced delimiters"
    raise ValueError(msg)


def macro_matchers(source: str) -> tuple[str, list[str]]:
    """Split ``macro_rules!`` source into its name and rule matchers."""
    header = HEADER_RE.match(source)
    if not header:
        msg = "not a macro_rules! definition"
        raise ValueError(msg)
    body_start = header.end()
    if body_start >= len(source) or source[body_start] not in OPEN_TO_CLOSE:
        msg = "macro body is missing"
        raise ValueError(msg)
    body_end = _group_end(source, body_start)
    body = source[body_start + 1 : body_end]

    matchers = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch.isspace() or ch == ";":
            i += 1
            continue
        if ch not in OPEN_TO_CLOSE:
            msg = f"unexpected {ch!r} in macro rules"
            raise ValueError(msg)
        end = _group_end(body, i)
        matchers.append(" ".join(body[i : end + 1].split()))
        arrow = body.find("=>", end + 1)
        if arrow < 0 or body[end + 1 : arrow].strip():
            msg = "rule without '=>'"
            raise ValueError(msg)
        j = arrow + 2
        while j < len(body) and body[j].isspace():
            j += 1
        if j >= len(body) or body[j] not in OPEN_TO_CLOSE:
            msg = "rule without a transcriber"
            raise ValueError(msg)
        i = _group_end(body, j) + 1
    return header.group("name"), matchers


def render_macro_rules(item: Item) -> list[str]:
    """Return the lines of a ``macro_rules!`` with every transcriber elided."""
    source = item.payload if isinstance(item.payload, str) else ""
    name = render_name(item.name)
    try:
        parsed_name, matchers = macro_matchers(source)
        name = parsed_name or name
        rules = [f"{m} => {{}};" for m in matchers] or [FALLBACK_RULE]
    except ValueError as exc:
        logger.debug("Eliding unparseable macro %s: %s", item.id, exc)
        rules = [FALLBACK_RULE]
    return [f"macro_rules! {name} {{", *(f"    {r}" for r in rules), "}"]


def render_proc_macro(item: Item) -> list[str]:
    """Return the marker attribute and empty function of a proc macro."""
    payload = item.payload if isinstance(item.payload, dict) else {}
    name = render_name(item.name)
    kind = str(field(payload, "kind", default="bang"))
    helpers = [str(h) for h in payload.get("helpers") or []]
    if kind == "derive":
        if helpers:
            marker = f"#[proc_macro_derive({name}, attributes({', '.join(helpers)}))]"
        else:
            marker = f"#[proc_macro_derive({name})]"
    elif kind == "attr":
        marker = "#[proc_macro_attribute]"
    else:
        marker = "#[proc_macro]"
    if kind == "attr":
        args = "attr: proc_macro::TokenStream, item: proc_macro::TokenStream"
    else:
        args = "input: proc_macro::TokenStream"
    return [marker, f"pub fn {name}({args}) -> proc_macro::TokenStream {{}}"]
