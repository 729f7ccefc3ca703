"""Scope tables mapping identifiers to definitions.

Type tables chain child -> parent; a parent never references its children.
The property and import tables are flat and only hold top-level entries.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Set

from brpc_compiler.diagnostics import BrpcDiagnostic, Redefined
from brpc_compiler.parser.brpc_ast import BrpcDefinition, BrpcImport, BrpcProperty


class TypeTable:
    """Identifier -> definition bindings for one lexical scope."""

    def __init__(self, parent: Optional[TypeTable] = None):
        self.parent = parent
        self._entries: Dict[str, BrpcDefinition] = {}
        self._params: Set[str] = set()

    def insert(self, iden: str, node: BrpcDefinition) -> Optional[Redefined]:
        """Bind iden to node. On collision the first binding is kept and the
        diagnostic for the new node is returned."""
        if iden in self._entries:
            return Redefined(node, iden)
        self._entries[iden] = node
        return None

    def lookup(self, iden: str) -> Optional[BrpcDefinition]:
        """Look iden up in this scope only."""
        return self._entries.get(iden)

    def resolve(self, iden: str) -> Optional[BrpcDefinition]:
        """Return the innermost binding of iden, or None."""
        table: Optional[TypeTable] = self
        while table is not None:
            node = table._entries.get(iden)
            if node is not None:
                return node
            table = table.parent
        return None

    def bind_params(self, params: Iterable[str]) -> None:
        self._params.update(params)

    def is_type_param(self, iden: str) -> bool:
        """Type parameters are visible to the definition's own members only,
        not to nested or anonymous definitions inside it."""
        return iden in self._params

    def __contains__(self, iden: object) -> bool:
        return iden in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def build_property_table(
    nodes: List[BrpcDefinition],
    diagnostics: List[BrpcDiagnostic],
) -> Dict[str, str]:
    """Collect top-level properties, skipping poisoned ones."""
    props: Dict[str, str] = {}
    for node in nodes:
        if not isinstance(node, BrpcProperty) or node.poisoned:
            continue
        if node.iden in props:
            diagnostics.append(Redefined(node, node.iden))
            continue
        props[node.iden] = node.value
    return props


def build_import_table(
    nodes: List[BrpcDefinition],
    diagnostics: List[BrpcDiagnostic],
) -> Dict[str, BrpcImport]:
    """Collect top-level imports by path, skipping poisoned ones."""
    imports: Dict[str, BrpcImport] = {}
    for node in nodes:
        if not isinstance(node, BrpcImport) or node.poisoned:
            continue
        if node.path in imports:
            diagnostics.append(Redefined(node, node.path))
            continue
        imports[node.path] = node
    return imports
