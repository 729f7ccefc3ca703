"""Pre-order traversal over brpc AST nodes."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Union

from brpc_compiler.parser.brpc_ast import BrpcDefinition, BrpcMember, BrpcTypeRef

AstNode = Union[BrpcDefinition, BrpcMember, BrpcTypeRef]


def walk(visit: Callable[[AstNode], None], node: Optional[AstNode]) -> None:
    """Visit node, then its local definitions, members and type references.

    Within a type reference the anonymous definition comes before the type
    arguments; an rpc's argument is visited before its return type.
    """
    if node is None:
        return
    visit(node)

    if isinstance(node, BrpcDefinition):
        walk_list(visit, node.nested())
        walk_list(visit, node.members())
    elif isinstance(node, BrpcMember):
        walk_list(visit, node.type_refs())
    elif isinstance(node, BrpcTypeRef):
        walk(visit, node.definition)
        walk_list(visit, node.type_args)


def walk_list(visit: Callable[[AstNode], None], nodes: Iterable[AstNode]) -> None:
    for node in nodes:
        walk(visit, node)
