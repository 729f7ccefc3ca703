"""Canonical text rendering of a brpc AST.

Printing a parsed schema and parsing the result again yields an equal AST.
"""

from __future__ import annotations

from typing import List

from brpc_compiler.parser.brpc_ast import (
    BrpcDefinition,
    BrpcEnum,
    BrpcField,
    BrpcImport,
    BrpcOption,
    BrpcProperty,
    BrpcRpc,
    BrpcService,
    BrpcStruct,
    BrpcTypeRef,
    BrpcUnion,
)

INDENT = "    "

_UNESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\t": "\\t",
    "\f": "\\f",
    "\r": "\\r",
    '"': '\\"',
}


def quote_string(value: str) -> str:
    return '"' + "".join(_UNESCAPES.get(ch, ch) for ch in value) + '"'


def print_schema(nodes: List[BrpcDefinition]) -> str:
    """Render top-level definitions as brpc source text."""
    lines: List[str] = []
    for node in nodes:
        if isinstance(node, BrpcProperty):
            lines.append(f"{node.iden} = {quote_string(node.value)}")
        elif isinstance(node, BrpcImport):
            lines.append(f"import {quote_string(node.path)}")
        elif isinstance(node, BrpcService):
            _print_service(node, lines, 0)
        else:
            _print_message(node, lines, 0)
    return "\n".join(lines) + "\n" if lines else ""


def _print_message(node: BrpcDefinition, lines: List[str], depth: int) -> None:
    pad = INDENT * depth
    body = _print_body(node, depth)
    lines.append(f"{pad}message {node.iden} {body[0]}")
    lines.extend(body[1:])


def _print_service(node: BrpcService, lines: List[str], depth: int) -> None:
    pad = INDENT * depth
    inner = INDENT * (depth + 1)
    lines.append(f"{pad}service {node.iden} {{")
    for rpc in node.rpcs:
        lines.append(f"{inner}{_print_rpc(rpc, depth + 1)}")
    for local in node.local_defs:
        _print_message(local, lines, depth + 1)
    lines.append(f"{pad}}}")


def _print_body(node: BrpcDefinition, depth: int) -> List[str]:
    """Render a struct, union or enum body; the first line continues the
    line it is attached to."""
    pad = INDENT * depth
    inner = INDENT * (depth + 1)
    out: List[str] = []

    if isinstance(node, BrpcStruct):
        out.append(f"struct{_print_params(node.type_params)} {{")
        for fld in node.fields:
            out.extend(_print_member_line(
                f"{fld.modifier.value} {fld.iden} @{fld.ordinal} ",
                fld.type_ref, ";", depth + 1,
            ))
    elif isinstance(node, BrpcUnion):
        out.append(f"union{_print_params(node.type_params)} {{")
        for opt in node.options:
            out.extend(_print_member_line(f"@{opt.ordinal} ", opt.type_ref, ";", depth + 1))
    elif isinstance(node, BrpcEnum):
        out.append("enum {")
        for case in node.cases:
            out.append(f"{inner}@{case.ordinal} {case.iden};")
    else:
        raise AssertionError(f"assertion error: cannot print definition: {node!r}")

    for local in node.nested():
        lines: List[str] = []
        _print_message(local, lines, depth + 1)
        out.extend(lines)
    out.append(f"{pad}}}")
    return out


def _print_member_line(prefix: str, ref: BrpcTypeRef, suffix: str, depth: int) -> List[str]:
    type_lines = _print_type_ref(ref, depth)
    type_lines[0] = INDENT * depth + prefix + type_lines[0]
    type_lines[-1] += suffix
    return type_lines


def _print_rpc(rpc: BrpcRpc, depth: int) -> str:
    arg = " ".join(_print_type_ref(rpc.arg, depth))
    ret = " ".join(_print_type_ref(rpc.ret, depth))
    return f"rpc @{rpc.ordinal} {rpc.iden}({arg}) returns ({ret})"


def _print_type_ref(ref: BrpcTypeRef, depth: int) -> List[str]:
    prefix = "".join(f"[{size}]" if size else "[]" for size in ref.array)
    if ref.definition is not None:
        body = _print_body(ref.definition, depth)
        body[0] = prefix + body[0]
        return body
    text = prefix + ref.iden
    if ref.type_args:
        args = [" ".join(_print_type_ref(arg, depth)) for arg in ref.type_args]
        text += "(" + " ".join(args) + ")"
    return [text]


def _print_params(params: List[str]) -> str:
    if not params:
        return ""
    return "(" + " ".join(params) + ")"
