"""Parsing and evaluation of ``cfg`` feature-gate expressions."""

import re
from dataclasses import dataclass, field

CFG_TOKEN_RE = re.compile(
    r"\s*(?:(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r'|(?P<str>"(?:[^"\\]|\\.)*")'
    r"|(?P<punct>[(),=]))"
)


@dataclass(frozen=True)
class FeatureSet:
    """The set of enabled features, or every feature."""

    names: frozenset[str] = field(default_factory=frozenset)
    all: bool = False

    @classmethod
    def parse(cls, value: object) -> "FeatureSet":
        """Build from ``"all"``, ``"none"``, a comma string or an iterable."""
        if value is None:
            return cls()
        if isinstance(value, FeatureSet):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text.lower() == "all":
                return cls(all=True)
            if text.lower() in {"", "none", "default"}:
                return cls()
            return cls(frozenset(p.strip() for p in text.split(",") if p.strip()))
        names = frozenset(str(v) for v in value)  # type: ignore[attr-defined]
        if "all" in names:
            return cls(all=True)
        return cls(names)

    def enabled(self, name: str) -> bool:
        """Return True if the named feature is on."""
        return self.all or name in self.names

    def to_config(self) -> str | list[str]:
        """Return the form stored in configuration dicts."""
        return "all" if self.all else sorted(self.names)


@dataclass(frozen=True)
class FeatureGate:
    """One node of a ``cfg`` predicate tree.

    ``op`` is ``all``/``any``/``not`` for combinators, ``feature`` for a feature
    test, and ``other`` for any predicate that is not about features.
    """

    op: str
    name: str = ""
    value: str | None = None
    args: tuple["FeatureGate", ...] = ()

    def evaluate(self, features: FeatureSet) -> bool | None:
        """Three-valued evaluation; ``None`` means the outcome is unknown."""
        if self.op == "feature":
            return features.enabled(self.value or "")
        if self.op == "not":
            inner = self.args[0].evaluate(features) if self.args else None
            return None if inner is None else not inner
        if self.op == "all":
            results = [a.evaluate(features) for a in self.args]
            if any(r is False for r in results):
                return False
            return None if any(r is None for r in results) else True
        if self.op == "any":
            results = [a.evaluate(features) for a in self.args]
            if any(r is True for r in results):
                return True
            return None if any(r is None for r in results) else False
        return None

    def allows(self, features: FeatureSet) -> bool:
        """Return False only when the gate is definitely off."""
        return self.evaluate(features) is not False

    def features(self) -> set[str]:
        """Return every feature name mentioned in the expression."""
        if self.op == "feature":
            return {self.value or ""}
        names: set[str] = set()
        for a in self.args:
            names |= a.features()
        return names

    def render(self) -> str:
        """Render back to ``cfg`` syntax."""
        if self.op in {"all", "any", "not"}:
            return f"{self.op}({', '.join(a.render() for a in self.args)})"
        if self.value is not None:
            return f'{self.name} = "{self.value}"'
        return self.name


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    while pos < len(text):
        if text[pos:].strip() == "":
            break
        m = CFG_TOKEN_RE.match(text, pos)
        if not m:
            msg = f"cannot parse cfg expression: {text!r}"
            raise ValueError(msg)
        kind = m.lastgroup or ""
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


def parse_cfg(text: str) -> FeatureGate:
    """Parse the inside of ``cfg(...)`` into a :class:`FeatureGate`."""
    tokens = _tokenize(text)
    gate, pos = _parse_predicate(tokens, 0)
    if pos != len(tokens):
        msg = f"trailing tokens in cfg expression: {text!r}"
        raise ValueError(msg)
    return gate


def _parse_predicate(tokens: list[tuple[str, str]], pos: int) -> tuple[FeatureGate, int]:
    if pos >= len(tokens) or tokens[pos][0] != "ident":
        msg = "expected identifier in cfg expression"
        raise ValueError(msg)
    name = tokens[pos][1]
    pos += 1
    if name in {"all", "any", "not"} and pos < len(tokens) and tokens[pos][1] == "(":
        pos += 1
        args: list[FeatureGate] = []
        while pos < len(tokens) and tokens[pos][1] != ")":
            arg, pos = _parse_predicate(tokens, pos)
            args.append(arg)
            if pos < len(tokens) and tokens[pos][1] == ",":
                pos += 1
        if pos >= len(tokens):
            msg = "unbalanced parentheses in cfg expression"
            raise ValueError(msg)
        return FeatureGate(op=name, args=tuple(args)), pos + 1
    if pos < len(tokens) and tokens[pos][1] == "=":
        if pos + 1 >= len(tokens) or tokens[pos + 1][0] != "str":
            msg = f"expected string after {name} ="
            raise ValueError(msg)
        value = tokens[pos + 1][1][1:-1]
        op = "feature" if name == "feature" else "other"
        return FeatureGate(op=op, name=name, value=value), pos + 2
    return FeatureGate(op="other", name=name), pos


def combine_gates(gates: list[FeatureGate]) -> FeatureGate | None:
    """Join several gates on one item with ``all``."""
    if not gates:
        return None
    if len(gates) == 1:
        return gates[0]
    return FeatureGate(op="all", args=tuple(gates))
