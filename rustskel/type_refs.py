"""Traversal of rustdoc type expressions to find referenced paths."""

from collections.abc import Iterator
from typing import Any

from rustskel.models import Item, ItemKind
from rustskel.rustdoc_fields import field, variant_of


def iter_type_paths(ty: Any) -> Iterator[dict[str, Any]]:
    """Yield every ``Path`` record mentioned in a type expression."""
    tag, payload = variant_of(ty)
    if tag == "resolved_path":
        yield payload
        yield from iter_args_paths(field(payload, "args"))
    elif tag == "dyn_trait":
        for poly in field(payload, "traits", default=[]):
            trait = field(poly, "trait", "trait_")
            if trait:
                yield trait
                yield from iter_args_paths(field(trait, "args"))
            yield from iter_generic_params_paths(poly.get("generic_params") or [])
    elif tag == "function_pointer":
        yield from iter_sig_paths(field(payload, "sig", "decl"))
        yield from iter_generic_params_paths(field(payload, "generic_params", default=[]))
    elif tag == "tuple":
        for inner in payload or []:
            yield from iter_type_paths(inner)
    elif tag == "slice":
        yield from iter_type_paths(payload)
    elif tag in {"array", "raw_pointer", "borrowed_ref", "pat"}:
        yield from iter_type_paths(field(payload, "type", "type_"))
    elif tag == "impl_trait":
        yield from iter_bounds_paths(payload or [])
    elif tag == "qualified_path":
        yield from iter_type_paths(field(payload, "self_type"))
        trait = field(payload, "trait", "trait_")
        if trait:
            yield trait
            yield from iter_args_paths(field(trait, "args"))
        yield from iter_args_paths(field(payload, "args"))


def iter_args_paths(args: Any) -> Iterator[dict[str, Any]]:
    """Yield paths inside ``GenericArgs``."""
    tag, payload = variant_of(args)
    if tag == "angle_bracketed":
        for arg in field(payload, "args", default=[]):
            arg_tag, arg_payload = variant_of(arg)
            if arg_tag == "type":
                yield from iter_type_paths(arg_payload)
        for constraint in field(payload, "constraints", "bindings", default=[]):
            yield from iter_args_paths(constraint.get("args"))
            binding_tag, binding = variant_of(constraint.get("binding"))
            if binding_tag == "equality":
                yield from iter_term_paths(binding)
            elif binding_tag == "constraint":
                yield from iter_bounds_paths(binding or [])
    elif tag == "parenthesized":
        for inner in field(payload, "inputs", default=[]):
            yield from iter_type_paths(inner)
        if field(payload, "output"):
            yield from iter_type_paths(payload["output"])


def iter_term_paths(term: Any) -> Iterator[dict[str, Any]]:
    """Yield paths inside a ``Term`` (type or constant)."""
    tag, payload = variant_of(term)
    if tag == "type":
        yield from iter_type_paths(payload)


def iter_bounds_paths(bounds: list[Any]) -> Iterator[dict[str, Any]]:
    """Yield paths inside generic bounds."""
    for bound in bounds:
        tag, payload = variant_of(bound)
        if tag == "trait_bound":
            trait = field(payload, "trait", "trait_")
            if trait:
                yield trait
                yield from iter_args_paths(field(trait, "args"))
            yield from iter_generic_params_paths(field(payload, "generic_params", default=[]))


def iter_generic_params_paths(params: list[Any]) -> Iterator[dict[str, Any]]:
    """Yield paths inside generic parameter definitions."""
    for param in params:
        tag, payload = variant_of(param.get("kind"))
        if tag == "type":
            yield from iter_bounds_paths(field(payload, "bounds", default=[]))
            if field(payload, "default"):
                yield from iter_type_paths(payload["default"])
        elif tag == "const":
            yield from iter_type_paths(field(payload, "type", "type_"))


def iter_generics_paths(generics: dict[str, Any] | None) -> Iterator[dict[str, Any]]:
    """Yield paths inside a ``Generics`` record, where-clause included."""
    if not generics:
        return
    yield from iter_generic_params_paths(generics.get("params") or [])
    for predicate in generics.get("where_predicates") or []:
        tag, payload = variant_of(predicate)
        if tag == "bound_predicate":
            yield from iter_type_paths(field(payload, "type", "type_"))
            yield from iter_bounds_paths(field(payload, "bounds", default=[]))
            yield from iter_generic_params_paths(field(payload, "generic_params", default=[]))
        elif tag == "eq_predicate":
            yield from iter_type_paths(field(payload, "lhs"))
            yield from iter_term_paths(field(payload, "rhs"))


def iter_sig_paths(sig: dict[str, Any] | None) -> Iterator[dict[str, Any]]:
    """Yield paths inside a function signature."""
    if not sig:
        return
    for _name, ty in sig.get("inputs") or []:
        yield from iter_type_paths(ty)
    if sig.get("output"):
        yield from iter_type_paths(sig["output"])


def iter_item_paths(item: Item) -> Iterator[dict[str, Any]]:
    """Yield every path an item's declaration refers to."""
    payload = item.payload
    if payload is None:
        return
    kind = item.kind
    if kind is ItemKind.FIELD:
        yield from iter_type_paths(payload)
        return
    if not isinstance(payload, dict):
        return
    yield from iter_generics_paths(payload.get("generics"))
    if kind in {ItemKind.FUNCTION, ItemKind.METHOD}:
        yield from iter_sig_paths(field(payload, "sig", "decl"))
    elif kind is ItemKind.TRAIT:
        yield from iter_bounds_paths(payload.get("bounds") or [])
    elif kind in {ItemKind.TYPE_ALIAS, ItemKind.CONSTANT, ItemKind.STATIC, ItemKind.ASSOC_CONST}:
        yield from iter_type_paths(field(payload, "type", "type_"))
    elif kind is ItemKind.ASSOC_TYPE:
        yield from iter_bounds_paths(payload.get("bounds") or [])
        if field(payload, "type", "default"):
            yield from iter_type_paths(field(payload, "type", "default"))
    elif kind is ItemKind.IMPL:
        yield from iter_type_paths(field(payload, "for", "for_"))
        trait = field(payload, "trait", "trait_")
        if trait:
            yield trait
            yield from iter_args_paths(field(trait, "args"))
