"""Diagnostics reported by the brpc compiler.

Syntactic diagnostics are raised inside parse routines and caught by the
routine owning the node being built. Semantic diagnostics are collected by
the table builder and the validator. Every diagnostic knows its source span
and the kind of node it was found in.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

from brpc_compiler.parser.brpc_ast import (
    BrpcDefinition,
    BrpcMember,
    NodeKind,
    Positions,
)
from brpc_compiler.parser.brpc_tokenizer import BrpcToken, BrpcTokenType

Node = Union[BrpcDefinition, BrpcMember]


class BrpcDiagnostic(Exception):
    """Base class for every user-visible compiler diagnostic."""

    context = "while parsing"

    def __init__(self, positions: Positions, kind: Optional[NodeKind] = None):
        self.positions = positions
        self.kind = kind
        super().__init__(self.message)

    @property
    def message(self) -> str:
        raise NotImplementedError

    def render(self, file_name: str) -> str:
        kind = self.kind or NodeKind.SCHEMA
        return (
            f"{file_name}:{self.positions.begin}:{self.positions.end}: "
            f"{self.message} {self.context} {kind}"
        )

    def __str__(self) -> str:
        return self.message


# -- syntactic --


class BrpcSyntaxError(BrpcDiagnostic):
    """A diagnostic raised at a specific token."""

    def __init__(self, actual: BrpcToken, kind: Optional[NodeKind] = None):
        self.actual = actual
        super().__init__(Positions(actual.begin, actual.end), kind)


class ExpectError(BrpcSyntaxError):
    def __init__(
        self,
        actual: BrpcToken,
        expected: Sequence[BrpcTokenType],
        kind: Optional[NodeKind] = None,
    ):
        self.expected = tuple(expected)
        super().__init__(actual, kind)

    @property
    def message(self) -> str:
        names = [t.describe() for t in self.expected]
        if len(names) > 1:
            wanted = ", ".join(names[:-1]) + " or " + names[-1]
        else:
            wanted = names[0] if names else "token"
        return f"expected {wanted} but got {self.actual}"


class EscapeSequenceError(BrpcSyntaxError):
    def __init__(self, actual: BrpcToken, escape: str, kind: Optional[NodeKind] = None):
        self.escape = escape
        super().__init__(actual, kind)

    @property
    def message(self) -> str:
        return f"invalid escape sequence '\\{self.escape}' in {self.actual}"


class IntegerError(BrpcSyntaxError):
    def __init__(
        self,
        actual: BrpcToken,
        reason: str = "is not a valid integer",
        kind: Optional[NodeKind] = None,
    ):
        self.reason = reason
        super().__init__(actual, kind)

    @property
    def message(self) -> str:
        return f"{self.actual} {self.reason}"


class OrdinalFormatError(BrpcSyntaxError):
    @property
    def message(self) -> str:
        return f"{self.actual} is not a valid ordinal, expected '@' followed by digits"


class IdentifierError(BrpcSyntaxError):
    @property
    def message(self) -> str:
        return f"{self.actual} is not a valid identifier"


class ImportPathError(BrpcSyntaxError):
    def __init__(self, actual: BrpcToken, extension: str, kind: Optional[NodeKind] = None):
        self.extension = extension
        super().__init__(actual, kind)

    @property
    def message(self) -> str:
        return (
            f"import path {self.actual} must refer to a brpc file ending "
            f"with extension '{self.extension}'"
        )


def error_from_token(actual: BrpcToken, expected: Sequence[BrpcTokenType]) -> BrpcSyntaxError:
    """Build the diagnostic for an unexpected token, using the scanner's
    intent when the token is a lexer ERROR."""
    if actual.type == BrpcTokenType.ERROR:
        if actual.expected == BrpcTokenType.INTEGER:
            return IntegerError(actual)
        if actual.expected == BrpcTokenType.ORDINAL:
            return OrdinalFormatError(actual)
        if actual.expected == BrpcTokenType.IDENT:
            return IdentifierError(actual)
    return ExpectError(actual, expected)


# -- semantic --


class BrpcSemanticError(BrpcDiagnostic):
    """A diagnostic attached to an AST node."""

    context = "while inside"

    def __init__(self, node: Node, positions: Optional[Positions] = None):
        self.node = node
        super().__init__(positions or node.positions, node.kind)


class Redefined(BrpcSemanticError):
    def __init__(self, node: Node, iden: str):
        self.iden = iden
        super().__init__(node)

    @property
    def message(self) -> str:
        return f"'{self.iden}' is already defined"


class OrdinalError(BrpcSemanticError):
    def __init__(self, node: BrpcMember, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(node)

    @property
    def message(self) -> str:
        return f"expected ordinal @{self.expected} but got @{self.got}"


class FirstOrdinalError(OrdinalError):
    def __init__(self, node: BrpcMember):
        super().__init__(node, 1, node.ordinal)

    @property
    def message(self) -> str:
        return f"first ordinal must be @1 but got @{self.got}"


class Undefined(BrpcSemanticError):
    def __init__(self, node: Node, iden: str, positions: Optional[Positions] = None):
        self.iden = iden
        super().__init__(node, positions)

    @property
    def message(self) -> str:
        return f"undefined type '{self.iden}'"


def sort_diagnostics(diagnostics: Iterable[BrpcDiagnostic]) -> List[BrpcDiagnostic]:
    """Order diagnostics by source position, keeping emission order on ties."""
    return sorted(diagnostics, key=lambda d: (d.positions.begin, d.positions.end))
