"""Logic for rendering the merged item graph as skeleton source text."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from rustskel.document import Document, ModuleBlock
from rustskel.filter_graph import INHERITING_CONTAINERS
from rustskel.item_order import UNLISTED_KINDS, sort_key
from rustskel.merge_impls import MergedGraph, MergedImpl
from rustskel.models import Item, ItemKind, TYPE_KINDS, Visibility
from rustskel.render_macro import render_macro_rules, render_proc_macro
from rustskel.render_options import RenderOptions
from rustskel.render_types import UNRESOLVED_MARK, TypeRenderer
from rustskel.resolve_references import RefKind
from rustskel.rust_ident import render_name, render_path, visibility_keyword
from rustskel.rustdoc_fields import field, flag, variant_of

logger = logging.getLogger(__name__)

INDENT = "    "


@dataclass(frozen=True)
class _Member:
    """A module member with the name it is rendered under."""

    item: Item
    name: str


class _SkeletonRenderer:
    """One depth-first rendering pass over a merged graph."""

    def __init__(self, merged: MergedGraph, options: RenderOptions) -> None:
        self.merged = merged
        self.filtered = merged.filtered
        self.graph = merged.graph
        self.options = options
        self.types = TypeRenderer(merged.resolved)
        self.inlined: set[str] = set()
        self.renderers: dict[ItemKind, Callable[[Item, str], list[str]]] = {
            ItemKind.MODULE: self.render_module_stub,
            ItemKind.STRUCT: self.render_struct,
            ItemKind.ENUM: self.render_enum,
            ItemKind.UNION: self.render_union,
            ItemKind.TRAIT: self.render_trait,
            ItemKind.FUNCTION: self.render_function,
            ItemKind.METHOD: self.render_function,
            ItemKind.CONSTANT: self.render_constant,
            ItemKind.STATIC: self.render_static,
            ItemKind.TYPE_ALIAS: self.render_type_alias,
            ItemKind.MACRO: self.render_macro,
            ItemKind.PROC_MACRO: self.render_proc_macro,
            ItemKind.IMPL: self.render_impl_item,
            ItemKind.FIELD: self.render_field,
            ItemKind.VARIANT: self.render_variant,
            ItemKind.ASSOC_CONST: self.render_assoc_const,
            ItemKind.ASSOC_TYPE: self.render_assoc_type,
            ItemKind.REEXPORT: self.render_reexport,
            ItemKind.EXTERN_CRATE: self.render_extern_crate,
            ItemKind.PRIMITIVE: self.render_nothing,
            ItemKind.OPAQUE: self.render_opaque,
        }

    def run(self) -> Document:
        root = self.graph.root
        block = self.render_module(root, self.graph.crate_name)
        logger.info("Rendered %d entries", block.item_count())
        return Document(
            crate_name=self.graph.crate_name,
            root=block,
            summary=self.merged.summary,
            diagnostics=list(self.merged.diagnostics),
            crate_version=self.graph.crate_version,
        )

    # shared pieces

    def docs(self, item: Item) -> list[str]:
        docs = item.attributes.docs
        if not self.options.include_docs or not docs:
            return []
        return [f"/// {line}".rstrip() for line in docs.splitlines()]

    def attributes(self, item: Item, derives: list[str] | None = None) -> list[str]:
        lines = []
        if (
            self.options.include_private
            and item.visibility is not Visibility.PUBLIC
            and item.kind is not ItemKind.FIELD
            and not self.inherits_visibility(item)
        ):
            lines.append("// private")
        deprecation = item.attributes.deprecation
        if deprecation is not None:
            args = [
                f'{key} = "{deprecation[key]}"'
                for key in ("since", "note")
                if deprecation.get(key)
            ]
            lines.append(f"#[deprecated({', '.join(args)})]" if args else "#[deprecated]")
        names = sorted(set(item.attributes.derives) | set(derives or []))
        if names:
            lines.append(f"#[derive({', '.join(names)})]")
        lines.extend(item.attributes.markers)
        return lines

    def inherits_visibility(self, item: Item) -> bool:
        parent = self.graph.get(item.parent_id)
        if parent is None or item.id == self.graph.root_id:
            return False
        if parent.kind in INHERITING_CONTAINERS:
            return True
        merged = self.merged.impls.get(parent.id)
        return merged is not None and not merged.block.is_inherent

    def header(self, item: Item, derives: list[str] | None = None) -> list[str]:
        return [*self.docs(item), *self.attributes(item, derives)]

    def derives_for(self, item: Item) -> list[str]:
        impls = self.merged.impls_for(item.id)
        if impls is None or self.options.include_auto_impls:
            return []
        return impls.derive_names()

    def with_where(
        self, head: str, generics: dict[str, Any] | None, tail: str
    ) -> list[str]:
        """Attach a where-clause in rustfmt layout; ``tail`` ends the declaration."""
        where = self.types.where_clause(generics)
        if not where:
            return [f"{head}{tail}"]
        if tail.strip() == ";":
            return [head, *where[:-1], where[-1].rstrip(",") + tail.lstrip()]
        return [head, *where, tail.lstrip()]

    def render(self, item: Item, name: str | None = None) -> list[str]:
        renderer = self.renderers[item.kind]
        return renderer(item, render_name(name if name is not None else item.name))

    def render_member_lines(self, ids: list[str], *, in_trait_impl: bool = False) -> list[str]:
        lines = []
        for member_id in ids:
            member = self.merged.items.get(member_id)
            if member is None:
                continue
            if in_trait_impl:
                rendered = self.render_trait_impl_member(member)
            elif member.kind is ItemKind.ASSOC_CONST:
                rendered = self.render_assoc_const(
                    member, render_name(member.name), vis=visibility_keyword(member)
                )
            else:
                rendered = self.render(member)
            lines.extend(INDENT + line if line else line for line in rendered)
        return lines

    # modules

    def module_members(self, module: Item) -> list[_Member]:
        """Return the members of a module, with re-exports expanded."""
        members: list[_Member] = []
        module_forced = module.id in self.filtered.forced
        for item in self.filtered.members(module):
            if item.kind in UNLISTED_KINDS:
                continue
            if item.id in self.filtered.forced:
                if not module_forced or item.id in self.inlined:
                    continue
                self.inlined.add(item.id)
            if item.kind is ItemKind.REEXPORT:
                members.extend(self.expand_reexport(item))
            else:
                members.append(_Member(item, item.name or ""))
        return members

    def sorted_members(self, module: Item) -> list[_Member]:
        return sorted(self.module_members(module), key=lambda m: sort_key(m.item, m.name))

    def expand_reexport(self, use_item: Item) -> list[_Member]:
        """Inline local items only reachable through this re-export."""
        alias = str(field(use_item.payload, "name", default=use_item.name or ""))
        resolved = self.merged.resolved.reexports.get(use_item.id)
        target = None
        if resolved is not None and resolved.is_local:
            target = self.merged.items.get(resolved.target_id)
        if (
            target is None
            or target.id not in self.filtered.forced
            or target.id in self.inlined
            or target.kind is ItemKind.PRIMITIVE
        ):
            return [_Member(use_item, alias)]
        if flag(use_item.payload, "is_glob", "glob"):
            if target.kind is not ItemKind.MODULE:
                return [_Member(use_item, alias)]
            self.inlined.add(target.id)
            return self.module_members(target)
        self.inlined.add(target.id)
        logger.debug("Inlining %s at re-export %s", target.id, use_item.id)
        return [_Member(target, alias)]

    def render_module(self, module: Item, name: str | None = None) -> ModuleBlock:
        block = ModuleBlock(
            item_id=module.id,
            name=render_name(name if name is not None else module.name),
            prelude=self.header(module),
            visibility="pub " if module.id == self.graph.root_id else visibility_keyword(module),
        )
        members = self.sorted_members(module)
        rendered_types: list[Item] = []
        for member in members:
            if member.item.kind is ItemKind.MODULE:
                block.children.append(self.render_module(member.item, member.name))
                continue
            lines = self.render(member.item, member.name)
            if lines:
                block.entries.append(lines)
            if member.item.kind in TYPE_KINDS:
                rendered_types.append(member.item)

        for type_item in rendered_types:
            impls = self.merged.impls_for(type_item.id)
            if impls is None:
                continue
            for merged in impls.rendered_impls(self.options):
                block.entries.append(self.render_impl(merged))
        for merged in self.merged.module_impls.get(module.id, []):
            block.entries.append(self.render_impl(merged))
        return block

    def render_module_stub(self, item: Item, name: str) -> list[str]:
        # modules become ModuleBlocks; this only runs for a module listed as a member
        return [*self.header(item), f"{visibility_keyword(item)}mod {name} {{}}"]

    # data types

    def struct_fields(self, field_ids: list[Any]) -> tuple[list[str], bool]:
        lines = []
        omitted = False
        for field_id in field_ids:
            member = self.merged.items.get(str(field_id))
            if member is None:
                omitted = True
                continue
            lines.extend(INDENT + line for line in self.render(member))
        return lines, omitted

    def tuple_fields(self, field_ids: list[Any]) -> str:
        parts = []
        for field_id in field_ids:
            member = self.merged.items.get(str(field_id)) if field_id is not None else None
            if member is None:
                parts.append("/* private field */")
            else:
                vis = visibility_keyword(member) if member.kind is ItemKind.FIELD else ""
                parts.append(f"{vis}{self.types.type_(member.payload)}")
        return ", ".join(parts)

    def render_struct(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        head = f"{visibility_keyword(item)}struct {name}{self.types.generic_params(generics)}"
        lines = self.header(item, self.derives_for(item))
        kind_tag, kind = variant_of(payload.get("kind"))
        if kind_tag == "unit":
            return [*lines, *self.with_where(head, generics, ";")]
        if kind_tag == "tuple":
            head = f"{head}({self.tuple_fields(kind or [])})"
            return [*lines, *self.with_where(head, generics, ";")]
        fields, omitted = self.struct_fields(field(kind, "fields", default=[]))
        if omitted or flag(kind, "has_stripped_fields", "fields_stripped"):
            fields.append(f"{INDENT}// some fields omitted")
        return [*lines, *self.with_where(head, generics, " {"), *fields, "}"]

    def render_union(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        head = f"{visibility_keyword(item)}union {name}{self.types.generic_params(generics)}"
        fields, omitted = self.struct_fields(payload.get("fields") or [])
        if omitted or flag(payload, "has_stripped_fields", "fields_stripped"):
            fields.append(f"{INDENT}// some fields omitted")
        lines = self.header(item, self.derives_for(item))
        return [*lines, *self.with_where(head, generics, " {"), *fields, "}"]

    def render_enum(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        head = f"{visibility_keyword(item)}enum {name}{self.types.generic_params(generics)}"
        variants = []
        omitted = flag(payload, "has_stripped_variants", "variants_stripped")
        for variant_id in payload.get("variants") or []:
            variant = self.merged.items.get(str(variant_id))
            if variant is None:
                omitted = True
                continue
            variants.extend(INDENT + line if line else line for line in self.render(variant))
        if omitted:
            variants.append(f"{INDENT}// some variants omitted")
        lines = self.header(item, self.derives_for(item))
        return [*lines, *self.with_where(head, generics, " {"), *variants, "}"]

    def render_variant(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        kind_tag, kind = variant_of(payload.get("kind"))
        lines = self.header(item)
        if kind_tag == "tuple":
            text = f"{name}({self.tuple_fields(kind or [])})"
        elif kind_tag == "struct":
            fields, omitted = self.struct_fields(field(kind, "fields", default=[]))
            if omitted or flag(kind, "has_stripped_fields", "fields_stripped"):
                fields.append(f"{INDENT}// some fields omitted")
            lines.append(f"{name} {{")
            lines.extend(fields)
            text = "}"
        else:
            text = name
        discriminant = field(payload, "discriminant")
        if discriminant:
            text += f" = {field(discriminant, 'expr', default='_')}"
        return [*lines, f"{text},"]

    def render_field(self, item: Item, name: str) -> list[str]:
        return [
            *self.header(item),
            f"{visibility_keyword(item)}{name}: {self.types.type_(item.payload)},",
        ]

    # traits and functions

    def render_trait(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        qualifiers = ""
        if flag(payload, "is_unsafe", "unsafe"):
            qualifiers += "unsafe "
        if flag(payload, "is_auto", "auto"):
            qualifiers += "auto "
        bounds = self.types.bounds(payload.get("bounds") or [])
        head = (
            f"{visibility_keyword(item)}{qualifiers}trait {name}"
            f"{self.types.generic_params(generics)}"
            + (f": {bounds}" if bounds else "")
        )
        members = []
        for member_id in payload.get("items") or []:
            member = self.merged.items.get(str(member_id))
            if member is None:
                continue
            rendered = self.render_trait_member(member)
            members.extend(INDENT + line if line else line for line in rendered)
        if not members:
            return [*self.header(item), *self.with_where(head, generics, " {}")]
        return [*self.header(item), *self.with_where(head, generics, " {"), *members, "}"]

    def render_trait_member(self, member: Item) -> list[str]:
        name = render_name(member.name)
        if member.kind is ItemKind.METHOD:
            provided = flag(member.payload, "has_body")
            return self.function_lines(member, name, vis="", body=" {}" if provided else ";")
        return self.render(member)

    def function_lines(self, item: Item, name: str, *, vis: str, body: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        sig = field(payload, "sig", "decl")
        head = (
            f"{vis}{self.types.fn_qualifiers(payload.get('header'))}fn {name}"
            f"{self.types.generic_params(generics)}({self.types.fn_args(sig)})"
            f"{self.types.return_type(sig)}"
        )
        return [*self.header(item), *self.with_where(head, generics, body)]

    def render_function(self, item: Item, name: str) -> list[str]:
        return self.function_lines(item, name, vis=visibility_keyword(item), body=" {}")

    def render_assoc_const(self, item: Item, name: str, vis: str = "") -> list[str]:
        """Render an associated const; only inherent impls pass a visibility."""
        payload = item.payload or {}
        ty = self.types.type_(field(payload, "type", "type_"))
        value = field(payload, "value", "default")
        tail = f" = {value}" if value else ""
        return [*self.header(item), f"{vis}const {name}: {ty}{tail};"]

    def render_assoc_type(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        bounds = self.types.bounds(payload.get("bounds") or [])
        default = field(payload, "type", "default")
        head = f"type {name}{self.types.generic_params(generics)}"
        if bounds:
            head += f": {bounds}"
        if default:
            head += f" = {self.types.type_(default)}"
        return [*self.header(item), *self.with_where(head, generics, ";")]

    # simple items

    def render_constant(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        ty = self.types.type_(field(payload, "type", "type_"))
        const = field(payload, "const", default=payload)
        expr = field(const, "expr", default="_")
        return [*self.header(item), f"{visibility_keyword(item)}const {name}: {ty} = {expr};"]

    def render_static(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        ty = self.types.type_(field(payload, "type", "type_"))
        mutability = "mut " if flag(payload, "is_mutable", "mutable") else ""
        expr = field(payload, "expr", default="_")
        return [
            *self.header(item),
            f"{visibility_keyword(item)}static {mutability}{name}: {ty} = {expr};",
        ]

    def render_type_alias(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        generics = payload.get("generics")
        head = f"{visibility_keyword(item)}type {name}{self.types.generic_params(generics)}"
        ty = self.types.type_(field(payload, "type", "type_"))
        return [*self.header(item), *self.with_where(head, generics, f" = {ty};")]

    def render_macro(self, item: Item, name: str) -> list[str]:
        lines = self.header(item)
        if item.is_public:
            lines.append("#[macro_export]")
        return [*lines, *render_macro_rules(item)]

    def render_proc_macro(self, item: Item, name: str) -> list[str]:
        return [*self.header(item), *render_proc_macro(item)]

    def render_extern_crate(self, item: Item, name: str) -> list[str]:
        crate = render_name(field(item.payload, "name", default=item.name))
        rename = f" as {name}" if name != crate else ""
        return [*self.header(item), f"{visibility_keyword(item)}extern crate {crate}{rename};"]

    def render_opaque(self, item: Item, name: str) -> list[str]:
        return [f"// unsupported item `{name}` (kind `{item.kind_tag or '?'}`)"]

    def render_nothing(self, item: Item, name: str) -> list[str]:
        return []

    def render_reexport(self, item: Item, name: str) -> list[str]:
        payload = item.payload or {}
        source = str(field(payload, "source", default=""))
        resolved = self.merged.resolved.reexports.get(item.id)
        path = source
        suffix = ""
        if resolved is not None:
            if resolved.kind is RefKind.UNRESOLVED:
                suffix = UNRESOLVED_MARK
            elif resolved.is_local:
                segments = resolved.path.split("::")
                if segments and segments[0] == self.graph.crate_name:
                    segments[0] = "crate"
                path = "::".join(segments)
            else:
                path = resolved.path
        vis = visibility_keyword(item)
        path = render_path(path)
        if flag(payload, "is_glob", "glob"):
            return [*self.header(item), f"{vis}use {path}::*{suffix};"]
        last = path.split("::")[-1]
        alias = f" as {name}" if name not in {"?", last} else ""
        return [*self.header(item), f"{vis}use {path}{alias}{suffix};"]

    # impls

    def render_impl_item(self, item: Item, name: str) -> list[str]:
        merged = self.merged.impls.get(item.id)
        return self.render_impl(merged) if merged is not None else []

    def render_trait_impl_member(self, member: Item) -> list[str]:
        name = render_name(member.name)
        if member.kind is ItemKind.METHOD:
            return self.function_lines(member, name, vis="", body=" {}")
        if member.kind is ItemKind.ASSOC_TYPE:
            ty = self.types.type_(field(member.payload, "type", "default"))
            generics = self.types.generic_params(field(member.payload, "generics"))
            return [*self.header(member), f"type {name}{generics} = {ty};"]
        return self.render(member)

    def render_impl(self, merged: MergedImpl) -> list[str]:
        block = merged.block
        generics = block.generics
        prefix = "unsafe " if block.is_unsafe else ""
        trait = ""
        if block.trait_path is not None:
            negative = "!" if block.is_negative else ""
            trait = f"{negative}{self.types.path(block.trait_path)} for "
        head = (
            f"{prefix}impl{self.types.generic_params(generics)} "
            f"{trait}{self.types.type_(merged.for_type)}"
        )
        lines = self.docs(block.item)
        if merged.derived:
            lines.append("#[automatically_derived]")
        members = self.render_member_lines(
            list(merged.item_ids), in_trait_impl=not block.is_inherent
        )
        if not members:
            return [*lines, *self.with_where(head, generics, " {}")]
        return [*lines, *self.with_where(head, generics, " {"), *members, "}"]


def render_skeleton(merged: MergedGraph, options: RenderOptions) -> Document:
    """Render the merged graph into a module tree of skeleton lines."""
    return _SkeletonRenderer(merged, options).run()


def module_member_lister(
    merged: MergedGraph, options: RenderOptions
) -> Callable[[Item], list[tuple[Item, str]]]:
    """Return a function listing a module's members in rendering order.

    Re-export targets are inlined at most once across calls, so modules must
    be listed in the same depth-first order the renderer visits them.
    """
    renderer = _SkeletonRenderer(merged, options)

    def list_members(module: Item) -> list[tuple[Item, str]]:
        return [(member.item, member.name) for member in renderer.sorted_members(module)]

    return list_members
