"""Rendering of rustdoc type expressions, generics and signatures."""

from typing import Any

from rustskel.resolve_references import ResolvedGraph
from rustskel.rust_ident import render_name, render_path
from rustskel.rustdoc_fields import as_id, field, flag, path_name, variant_of

UNRESOLVED_MARK = " /* unresolved */"


class TypeRenderer:
    """Turns rustdoc type JSON into Rust source text.

    Paths to local items keep their written name, paths to external items are
    spelled out in full from the ``paths`` table, and ids that failed to
    resolve keep the written name with an ``/* unresolved */`` annotation.
    """

    def __init__(self, resolved: ResolvedGraph | None = None) -> None:
        self.resolved = resolved

    # paths

    def path_text(self, path: dict[str, Any] | None) -> str:
        """Render the name part of a ``Path`` without generic arguments."""
        written = path_name(path)
        ref_id = as_id(field(path, "id"))
        if self.resolved is not None and ref_id is not None:
            if ref_id in self.resolved.unresolved:
                return render_path(written) + UNRESOLVED_MARK
            resolved = self.resolved.lookup(ref_id)
            if resolved is not None and resolved.is_external:
                return render_path(resolved.path)
        return render_path(written)

    def path(self, path: dict[str, Any] | None) -> str:
        """Render a ``Path`` with its generic arguments."""
        return self.path_text(path) + self.generic_args(field(path, "args"))

    # types

    def type_(self, ty: Any, *, nested: bool = False) -> str:
        """Render one type expression."""
        tag, payload = variant_of(ty)
        if tag == "resolved_path":
            return self.path(payload)
        if tag == "dyn_trait":
            traits = " + ".join(
                self.poly_trait(p) for p in field(payload, "traits", default=[])
            )
            lifetime = field(payload, "lifetime")
            inner = f"dyn {traits}" + (f" + {lifetime}" if lifetime else "")
            return f"({inner})" if nested and lifetime else inner
        if tag in {"generic", "primitive"}:
            return str(payload)
        if tag == "function_pointer":
            return self.function_pointer(payload)
        if tag == "tuple":
            inner = [self.type_(t, nested=True) for t in payload or []]
            if len(inner) == 1:
                return f"({inner[0]},)"
            return f"({', '.join(inner)})"
        if tag == "slice":
            return f"[{self.type_(payload, nested=True)}]"
        if tag == "array":
            inner = self.type_(field(payload, "type", "type_"), nested=True)
            return f"[{inner}; {field(payload, 'len', default='_')}]"
        if tag == "impl_trait":
            return f"impl {self.bounds(payload or [])}"
        if tag == "infer":
            return "_"
        if tag == "raw_pointer":
            mutability = "mut" if flag(payload, "is_mutable", "mutable") else "const"
            inner = self.type_(field(payload, "type", "type_"), nested=True)
            return f"*{mutability} {inner}"
        if tag == "borrowed_ref":
            lifetime = field(payload, "lifetime")
            prefix = f"{lifetime} " if lifetime else ""
            mutability = "mut " if flag(payload, "is_mutable", "mutable") else ""
            inner = self.type_(field(payload, "type", "type_"), nested=True)
            return f"&{prefix}{mutability}{inner}"
        if tag == "qualified_path":
            return self.qualified_path(payload)
        if tag == "pat":
            return self.type_(field(payload, "type", "type_"), nested=nested)
        return "_"

    def qualified_path(self, payload: dict[str, Any]) -> str:
        self_type = self.type_(field(payload, "self_type"), nested=True)
        name = render_name(field(payload, "name"))
        args = self.generic_args(field(payload, "args"))
        trait = field(payload, "trait", "trait_")
        if trait and path_name(trait):
            return f"<{self_type} as {self.path(trait)}>::{name}{args}"
        return f"{self_type}::{name}{args}"

    def function_pointer(self, payload: dict[str, Any]) -> str:
        hrtb = self.hrtb(field(payload, "generic_params", default=[]))
        header = self.fn_qualifiers(field(payload, "header"))
        sig = field(payload, "sig", "decl")
        args = ", ".join(
            self.type_(ty) if name in {"", "_"} else f"{render_name(name)}: {self.type_(ty)}"
            for name, ty in field(sig, "inputs", default=[])
        )
        if flag(sig, "is_c_variadic", "c_variadic"):
            args = f"{args}, ..." if args else "..."
        return f"{hrtb}{header}fn({args}){self.return_type(sig)}"

    # generic arguments

    def generic_args(self, args: Any) -> str:
        """Render ``<A, B, Item = C>`` or ``(A) -> B`` argument lists."""
        tag, payload = variant_of(args)
        if tag == "angle_bracketed":
            parts = [self.generic_arg(a) for a in field(payload, "args", default=[])]
            parts.extend(
                self.constraint(c)
                for c in field(payload, "constraints", "bindings", default=[])
            )
            return f"<{', '.join(parts)}>" if parts else ""
        if tag == "parenthesized":
            inputs = ", ".join(self.type_(t) for t in field(payload, "inputs", default=[]))
            output = field(payload, "output")
            return f"({inputs})" + (f" -> {self.type_(output)}" if output else "")
        if tag == "return_type_notation":
            return "(..)"
        return ""

    def generic_arg(self, arg: Any) -> str:
        tag, payload = variant_of(arg)
        if tag == "lifetime":
            return str(payload)
        if tag == "type":
            return self.type_(payload)
        if tag == "const":
            return str(field(payload, "expr", default="_"))
        return "_"

    def term(self, term: Any) -> str:
        tag, payload = variant_of(term)
        if tag == "type":
            return self.type_(payload)
        if tag == "constant":
            return str(field(payload, "expr", default="_"))
        return "_"

    def constraint(self, constraint: dict[str, Any]) -> str:
        name = render_name(constraint.get("name"))
        args = self.generic_args(constraint.get("args"))
        tag, payload = variant_of(constraint.get("binding"))
        if tag == "equality":
            return f"{name}{args} = {self.term(payload)}"
        return f"{name}{args}: {self.bounds(payload or [])}"

    # bounds and generic parameters

    def hrtb(self, params: list[Any]) -> str:
        """Render a ``for<'a> `` binder, or nothing."""
        rendered = [p for p in (self.generic_param(p) for p in params) if p]
        return f"for<{', '.join(rendered)}> " if rendered else ""

    def poly_trait(self, poly: dict[str, Any]) -> str:
        hrtb = self.hrtb(field(poly, "generic_params", default=[]))
        return hrtb + self.path(field(poly, "trait", "trait_"))

    def bound(self, bound: Any) -> str:
        tag, payload = variant_of(bound)
        if tag == "trait_bound":
            modifier = {"maybe": "?", "maybe_const": "~const "}.get(
                str(field(payload, "modifier", default="none")), ""
            )
            return modifier + self.poly_trait(payload)
        if tag == "outlives":
            return str(payload)
        if tag == "use":
            args = []
            for arg in payload or []:
                arg_tag, arg_payload = variant_of(arg)
                args.append(str(arg_payload if arg_tag in {"lifetime", "param"} else arg))
            return f"use<{', '.join(args)}>"
        return ""

    def bounds(self, bounds: list[Any]) -> str:
        """Render bounds joined with ``+``."""
        return " + ".join(b for b in (self.bound(x) for x in bounds) if b)

    def generic_param(self, param: dict[str, Any]) -> str | None:
        """Render one parameter definition; synthetic ``impl Trait`` params vanish."""
        name = str(param.get("name") or "")
        tag, payload = variant_of(param.get("kind"))
        if tag == "lifetime":
            outlives = field(payload, "outlives", default=[])
            return f"{name}: {' + '.join(outlives)}" if outlives else name
        if tag == "type":
            if flag(payload, "is_synthetic", "synthetic"):
                return None
            bounds = self.bounds(field(payload, "bounds", default=[]))
            text = f"{name}: {bounds}" if bounds else name
            default = field(payload, "default")
            return f"{text} = {self.type_(default)}" if default else text
        if tag == "const":
            text = f"const {name}: {self.type_(field(payload, 'type', 'type_'))}"
            default = field(payload, "default")
            return f"{text} = {default}" if default else text
        return None

    def generic_params(self, generics: dict[str, Any] | None) -> str:
        """Render ``<'a, T: Bound, const N: usize>`` or nothing."""
        params = (generics or {}).get("params") or []
        rendered = [p for p in (self.generic_param(p) for p in params) if p]
        return f"<{', '.join(rendered)}>" if rendered else ""

    def where_predicates(self, generics: dict[str, Any] | None) -> list[str]:
        """Render each where-clause predicate."""
        generics = generics or {}
        synthetic = {
            str(p.get("name"))
            for p in generics.get("params") or []
            if flag(variant_of(p.get("kind"))[1], "is_synthetic", "synthetic")
        }
        predicates = []
        for predicate in generics.get("where_predicates") or []:
            tag, payload = variant_of(predicate)
            if tag == "bound_predicate":
                ty = field(payload, "type", "type_")
                ty_tag, ty_name = variant_of(ty)
                if ty_tag == "generic" and ty_name in synthetic:
                    continue
                hrtb = self.hrtb(field(payload, "generic_params", default=[]))
                bounds = self.bounds(field(payload, "bounds", default=[]))
                predicates.append(f"{hrtb}{self.type_(ty)}: {bounds}")
            elif tag in {"lifetime_predicate", "region_predicate"}:
                lifetime = field(payload, "lifetime", default="'_")
                outlives = field(payload, "outlives", "bounds", default=[])
                rendered = [o if isinstance(o, str) else self.bound(o) for o in outlives]
                predicates.append(
                    f"{lifetime}: {' + '.join(rendered)}" if rendered else str(lifetime)
                )
            elif tag == "eq_predicate":
                lhs = self.type_(field(payload, "lhs"))
                predicates.append(f"{lhs} = {self.term(field(payload, 'rhs'))}")
        return predicates

    def where_clause(self, generics: dict[str, Any] | None, indent: str = "") -> list[str]:
        """Render the where-clause lines in rustfmt layout, or an empty list."""
        predicates = self.where_predicates(generics)
        if not predicates:
            return []
        return [f"{indent}where", *(f"{indent}    {p}," for p in predicates)]

    # functions

    def fn_qualifiers(self, header: dict[str, Any] | None) -> str:
        """Render ``const unsafe async extern "C" `` in Rust's keyword order."""
        if isinstance(header, list):
            # very old formats list the qualifiers as strings
            header = {str(q): True for q in header}
        parts = []
        if flag(header, "is_const", "const", "const_"):
            parts.append("const")
        if flag(header, "is_async", "async", "async_"):
            parts.append("async")
        if flag(header, "is_unsafe", "unsafe", "unsafe_"):
            parts.append("unsafe")
        abi_tag, _ = variant_of(field(header, "abi", default="Rust"))
        if abi_tag and abi_tag != "Rust":
            parts.append(f'extern "{abi_tag}"')
        return "".join(f"{p} " for p in parts)

    def self_param(self, ty: Any) -> str:
        tag, payload = variant_of(ty)
        if tag == "borrowed_ref":
            inner_tag, inner = variant_of(field(payload, "type", "type_"))
            if inner_tag == "generic" and inner == "Self":
                lifetime = field(payload, "lifetime")
                prefix = f"{lifetime} " if lifetime else ""
                mutability = "mut " if flag(payload, "is_mutable", "mutable") else ""
                return f"&{prefix}{mutability}self"
        if tag == "generic" and payload == "Self":
            return "self"
        return f"self: {self.type_(ty)}"

    def fn_args(self, sig: dict[str, Any] | None) -> str:
        """Render a parameter list without the parentheses."""
        args = []
        for name, ty in field(sig, "inputs", default=[]):
            if name == "self":
                args.append(self.self_param(ty))
            else:
                args.append(f"{render_name(name) if name else '_'}: {self.type_(ty)}")
        if flag(sig, "is_c_variadic", "c_variadic"):
            args.append("...")
        return ", ".join(args)

    def return_type(self, sig: dict[str, Any] | None) -> str:
        """Render `` -> T``, or nothing for unit returns."""
        output = field(sig, "output")
        if output is None:
            return ""
        tag, payload = variant_of(output)
        if tag == "tuple" and not payload:
            return ""
        return f" -> {self.type_(output)}"
