"""Semantic analysis of a parsed brpc schema.

``annotate`` builds the scope tables and normalizes every type reference.
``validate`` then runs two passes: pass A sorts each member list by ordinal
and checks ordinals and duplicate names, pass B resolves every non-primitive
type reference through the scope tables. Poisoned nodes are skipped.
"""

from __future__ import annotations

from typing import Iterator, List

from brpc_compiler.diagnostics import (
    BrpcDiagnostic,
    FirstOrdinalError,
    OrdinalError,
    Redefined,
    Undefined,
)
from brpc_compiler.normalizer import normalize_type_ref
from brpc_compiler.parser.brpc_ast import (
    SCOPED_DEFINITIONS,
    BrpcDefinition,
    BrpcEnum,
    BrpcImport,
    BrpcMember,
    BrpcProperty,
    BrpcTypeRef,
)
from brpc_compiler.tables import TypeTable


def annotate(nodes: List[BrpcDefinition], diagnostics: List[BrpcDiagnostic]) -> TypeTable:
    """First semantic pass: attach scope tables and normalize types.

    Returns the top-level table.
    """
    root = TypeTable()
    _declare(nodes, root, diagnostics)
    return root


def _declare(
    nodes: List[BrpcDefinition],
    scope: TypeTable,
    diagnostics: List[BrpcDiagnostic],
) -> None:
    # Siblings are bound before any body is entered so that references to
    # later siblings are visible while normalizing.
    for node in nodes:
        if isinstance(node, (BrpcProperty, BrpcImport)) or not node.iden:
            continue
        err = scope.insert(node.iden, node)
        if err is not None:
            diagnostics.append(err)

    for node in nodes:
        if isinstance(node, SCOPED_DEFINITIONS):
            _open_scope(node, scope, diagnostics)


def _open_scope(
    node: BrpcDefinition,
    parent: TypeTable,
    diagnostics: List[BrpcDiagnostic],
) -> None:
    table = TypeTable(parent)
    node.type_table = table
    table.bind_params(getattr(node, "type_params", []))

    _declare(node.nested(), table, diagnostics)

    for member in node.members():
        for ref in member.type_refs():
            _annotate_type_ref(ref, table, diagnostics)


def _annotate_type_ref(
    ref: BrpcTypeRef,
    table: TypeTable,
    diagnostics: List[BrpcDiagnostic],
) -> None:
    if ref.definition is not None:
        if isinstance(ref.definition, SCOPED_DEFINITIONS):
            _open_scope(ref.definition, table, diagnostics)
    else:
        normalize_type_ref(ref)
        # A user definition named like a primitive wins over the primitive.
        if ref.primitive and table.resolve(ref.iden) is not None:
            ref.primitive = False
            ref.canonical_name = ref.iden
    for arg in ref.type_args:
        _annotate_type_ref(arg, table, diagnostics)


def validate(nodes: List[BrpcDefinition], diagnostics: List[BrpcDiagnostic]) -> None:
    """Run pass A over every definition, then pass B."""
    for node in nodes:
        _check_members(node, diagnostics)
    for node in nodes:
        _check_references(node, diagnostics)


# -- pass A --


def _check_members(node: BrpcDefinition, diagnostics: List[BrpcDiagnostic]) -> None:
    if not isinstance(node, SCOPED_DEFINITIONS) or node.poisoned:
        return

    members = node.members()
    members.sort(key=lambda m: m.ordinal)
    check_ordinals(members, diagnostics)
    check_duplicates(members, diagnostics)

    for member in members:
        for ref in member.type_refs():
            for anonymous in _anonymous_definitions(ref):
                _check_members(anonymous, diagnostics)
    for child in node.nested():
        _check_members(child, diagnostics)


def check_ordinals(members: List[BrpcMember], diagnostics: List[BrpcDiagnostic]) -> None:
    """Ordinals of a sorted member list must read 1, 2, ..., N.

    Only the first violation is reported. A list with a poisoned member is not
    checked since the poisoned member's ordinal is unknown.
    """
    if any(m.poisoned for m in members):
        return
    for expected, member in enumerate(members, start=1):
        if member.ordinal == expected:
            continue
        if expected == 1:
            diagnostics.append(FirstOrdinalError(member))
        else:
            diagnostics.append(OrdinalError(member, expected, member.ordinal))
        return


def check_duplicates(members: List[BrpcMember], diagnostics: List[BrpcDiagnostic]) -> None:
    """Report every member whose identifier repeats an earlier one."""
    for i, member in enumerate(members):
        if member.poisoned or not member.iden:
            continue
        for prev in reversed(members[:i]):
            if not prev.poisoned and prev.iden == member.iden:
                diagnostics.append(Redefined(member, member.iden))
                break


# -- pass B --


def _check_references(node: BrpcDefinition, diagnostics: List[BrpcDiagnostic]) -> None:
    if not isinstance(node, SCOPED_DEFINITIONS) or node.poisoned:
        return
    table = node.type_table
    if table is None:
        raise AssertionError(f"assertion error: definition was not annotated: {node.iden!r}")

    if not isinstance(node, BrpcEnum):
        for member in node.members():
            if member.poisoned:
                continue
            for ref in member.type_refs():
                _resolve(ref, member, table, diagnostics)
    for child in node.nested():
        _check_references(child, diagnostics)


def _resolve(
    ref: BrpcTypeRef,
    member: BrpcMember,
    table: TypeTable,
    diagnostics: List[BrpcDiagnostic],
) -> None:
    if ref.definition is not None:
        _check_references(ref.definition, diagnostics)
    elif not ref.primitive and not table.is_type_param(ref.canonical_name):
        if table.resolve(ref.canonical_name) is None:
            diagnostics.append(Undefined(member, ref.canonical_name, ref.positions))
    # Type arguments are resolved one by one, never matched against parameters.
    for arg in ref.type_args:
        _resolve(arg, member, table, diagnostics)


def _anonymous_definitions(ref: BrpcTypeRef) -> Iterator[BrpcDefinition]:
    if ref.definition is not None:
        yield ref.definition
    for arg in ref.type_args:
        yield from _anonymous_definitions(arg)
