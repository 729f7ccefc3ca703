from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from jinja2 import Environment, FileSystemLoader

from brpc_compiler.normalizer import BIG_INT
from brpc_compiler.parser.brpc_ast import (
    SCOPED_DEFINITIONS,
    BrpcDefinition,
    BrpcEnum,
    BrpcImport,
    BrpcMember,
    BrpcService,
    BrpcStruct,
    BrpcTypeRef,
    BrpcUnion,
    Modifier,
)
from brpc_compiler.tables import TypeTable
from brpc_compiler.walk import AstNode, walk_list

# Normalized brpc primitive -> Go type
PRIMITIVE_TYPE_MAP: Dict[str, str] = {
    "int8": "int8",
    "int16": "int16",
    "int32": "int32",
    "int64": "int64",
    BIG_INT: "*big.Int",
    "float32": "float32",
    "float64": "float64",
    "bool": "bool",
    "string": "string",
}


# Words that cannot name a Go package
GO_KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type",
    "var",
})

_PACKAGE_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def is_go_package_name(name: str) -> bool:
    return (
        _PACKAGE_PATTERN.fullmatch(name) is not None
        and name != "_"
        and name not in GO_KEYWORDS
    )


def go_name(iden: str) -> str:
    """Exported Go identifier: snake_case and lowerCamel become UpperCamel.

    Identifiers left without a leading letter (``_``, ``_1``) get an ``X``
    prefix.
    """
    name = "".join(part[:1].upper() + part[1:] for part in iden.split("_") if part)
    if not name or not name[0].isalpha():
        name = "X" + name
    return name


def _unique(name: str, used: Set[str]) -> str:
    """Return name, or name with the lowest free numeric suffix, and mark it used."""
    candidate = name
    n = 2
    while candidate in used:
        candidate = f"{name}{n}"
        n += 1
    used.add(candidate)
    return candidate


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


# Anonymous bodies of an rpc argument and return type
_REF_SUFFIXES = ("Arg", "Ret")


class _GoNames:
    """Go names of every emitted package-level identifier.

    Nested and anonymous definitions are hoisted to the top level and named
    after their enclosing definition: ``Outer_Inner``, ``Outer_Field``,
    ``Service_RpcArg``. Names that collapse onto one Go identifier
    (``AB`` and ``A_B``) are kept apart with a numeric suffix, first come
    first served.
    """

    def __init__(self, nodes: List[BrpcDefinition]):
        self.ordered: List[Tuple[BrpcDefinition, str]] = []
        self._by_id: Dict[int, str] = {}
        self._used: Set[str] = set()
        self._collect(nodes, "")

    def _collect(self, nodes: List[BrpcDefinition], prefix: str) -> None:
        for node in nodes:
            if not isinstance(node, SCOPED_DEFINITIONS) or node.poisoned:
                continue
            name = f"{prefix}_{go_name(node.iden)}" if prefix else go_name(node.iden)
            self._add(node, name)

    def _add(self, node: BrpcDefinition, name: str) -> None:
        name = self.unique(name)
        self._by_id[id(node)] = name
        self.ordered.append((node, name))
        for member in node.members():
            if member.poisoned:
                continue
            refs = member.type_refs()
            suffixes = _REF_SUFFIXES if len(refs) > 1 else ("",)
            for ref, suffix in zip(refs, suffixes):
                self._collect_anonymous(ref, f"{name}_{_member_label(member)}{suffix}")
        self._collect(node.nested(), name)

    def _collect_anonymous(self, ref: BrpcTypeRef, name: str) -> None:
        if ref.definition is not None and not ref.definition.poisoned:
            self._add(ref.definition, name)
        for i, arg in enumerate(ref.type_args, start=1):
            self._collect_anonymous(arg, f"{name}{i}")

    def name_of(self, node: BrpcDefinition) -> Optional[str]:
        return self._by_id.get(id(node))

    def unique(self, name: str) -> str:
        return _unique(name, self._used)


def _member_label(member: BrpcMember) -> str:
    if not member.iden:
        return f"Variant{member.ordinal}"
    return go_name(member.iden)


def _go_type(ref: BrpcTypeRef, table: TypeTable, names: _GoNames) -> str:
    prefix = "".join(f"[{size}]" if size else "[]" for size in ref.array)

    if ref.definition is not None:
        base = names.name_of(ref.definition) or "struct{}"
    elif ref.primitive:
        base = PRIMITIVE_TYPE_MAP[ref.canonical_name]
    elif table.is_type_param(ref.canonical_name):
        base = ref.canonical_name
    else:
        target = table.resolve(ref.canonical_name)
        base = (names.name_of(target) if target is not None else None) or go_name(ref.iden)

    if ref.type_args:
        args = ", ".join(_go_type(arg, table, names) for arg in ref.type_args)
        base = f"{base}[{args}]"
    return prefix + base


def _type_params(params: List[str]) -> Tuple[str, str]:
    """Go type parameter list and the matching argument list for receivers."""
    if not params:
        return "", ""
    return (
        "[" + ", ".join(f"{p} any" for p in params) + "]",
        "[" + ", ".join(params) + "]",
    )


def _struct_context(node: BrpcStruct, name: str, names: _GoNames) -> Dict:
    table = node.type_table
    params, _ = _type_params(node.type_params)
    fields = []
    used: Set[str] = set()
    for fld in node.fields:
        go_type = _go_type(fld.type_ref, table, names)
        if fld.modifier == Modifier.OPTIONAL and not go_type.startswith("*"):
            go_type = "*" + go_type
        fields.append({
            "name": _unique(go_name(fld.iden), used),
            "go_type": go_type,
            "ordinal": fld.ordinal,
            "modifier": fld.modifier.value,
            "deprecated": fld.modifier == Modifier.DEPRECATED,
        })
    return {"kind": "struct", "name": name, "params": params, "fields": fields}


def _union_context(node: BrpcUnion, name: str, names: _GoNames) -> Dict:
    table = node.type_table
    params, args = _type_params(node.type_params)
    variants = []
    for opt in node.options:
        variants.append({
            "name": names.unique(f"{name}{_member_label(opt)}Option"),
            "go_type": _go_type(opt.type_ref, table, names),
            "ordinal": opt.ordinal,
        })
    return {
        "kind": "union",
        "name": name,
        "params": params,
        "args": args,
        "variants": variants,
    }


def _enum_context(node: BrpcEnum, name: str, names: _GoNames) -> Dict:
    # Constants live in the package scope next to the types.
    cases = [
        {"name": names.unique(f"{name}_{go_name(c.iden)}"), "ordinal": c.ordinal}
        for c in node.cases
    ]
    return {"kind": "enum", "name": name, "cases": cases}


def _service_context(node: BrpcService, name: str, names: _GoNames) -> Dict:
    table = node.type_table
    methods = []
    used: Set[str] = set()
    for rpc in node.rpcs:
        methods.append({
            "name": _unique(go_name(rpc.iden), used),
            "arg": _go_type(rpc.arg, table, names),
            "ret": _go_type(rpc.ret, table, names),
        })
    return {"kind": "service", "name": name, "methods": methods}


def _uses_big_int(nodes: List[BrpcDefinition]) -> bool:
    found: List[bool] = []

    def visit(node: AstNode) -> None:
        if isinstance(node, BrpcTypeRef) and node.primitive and node.canonical_name == BIG_INT:
            found.append(True)

    walk_list(visit, nodes)
    return bool(found)


def generate_go(
    nodes: List[BrpcDefinition],
    package: str,
    imports: Optional[Dict[str, BrpcImport]] = None,
    source_name: str = "",
) -> str:
    """Generate Go source for a validated, annotated schema.

    Poisoned definitions are skipped.
    """
    env = _get_template_env()
    names = _GoNames(nodes)

    blocks: List[str] = []
    for node, name in names.ordered:
        if isinstance(node, BrpcStruct):
            context = _struct_context(node, name, names)
        elif isinstance(node, BrpcUnion):
            context = _union_context(node, name, names)
        elif isinstance(node, BrpcEnum):
            context = _enum_context(node, name, names)
        else:
            context = _service_context(node, name, names)
        template = env.get_template(f"{context['kind']}.go.j2")
        blocks.append(template.render(t=context).rstrip("\n"))

    return env.get_template("schema.go.j2").render(
        package=package,
        source=source_name,
        uses_big=_uses_big_int(nodes),
        imports=sorted(imports or {}),
        blocks=blocks,
    )


def write_go_file(source: str, output_dir: str, stem: str) -> str:
    """Write generated source to ``<output_dir>/<stem>.go`` and return the path."""
    os.makedirs(output_dir, exist_ok=True)
    file_path = os.path.join(output_dir, f"{stem}.go")
    Path(file_path).write_text(source)
    return file_path
