"""AST node definitions for brpc (.brpc) schema files.

Positions and attached scope tables are excluded from equality so that two
parses of equivalent text compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, List, Optional

if TYPE_CHECKING:
    from brpc_compiler.tables import TypeTable


class NodeKind(Enum):
    """Kind of an AST node, as named in diagnostics."""

    SCHEMA = "schema"
    PROPERTY = "property"
    IMPORT = "import"
    MESSAGE = "message"
    STRUCT = "struct"
    UNION = "union"
    ENUM = "enum"
    SERVICE = "service"
    FIELD = "field"
    OPTION = "option"
    CASE = "case"
    RPC = "rpc"
    TYPE_REF = "typeref"

    def __str__(self) -> str:
        return self.value


class Modifier(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    DEPRECATED = "deprecated"


@dataclass
class Positions:
    """Begin and end byte offsets of a node in the source."""

    begin: int = 0
    end: int = 0


@dataclass
class BrpcTypeRef:
    """A reference to a type: ``[4][]Name(Arg...)`` or an anonymous body.

    ``canonical_name`` and ``primitive`` are filled in by the normalizer.
    """

    kind: ClassVar[NodeKind] = NodeKind.TYPE_REF

    iden: str = ""
    array: List[int] = field(default_factory=list)
    type_args: List[BrpcTypeRef] = field(default_factory=list)
    definition: Optional[BrpcDefinition] = None
    canonical_name: str = ""
    primitive: bool = False
    positions: Positions = field(default_factory=Positions, compare=False)


# -- definitions --


@dataclass
class BrpcDefinition:
    """Base definition node. A bare instance stands for a message whose body
    could not be parsed."""

    kind: ClassVar[NodeKind] = NodeKind.MESSAGE

    iden: str = ""
    poisoned: bool = False
    positions: Positions = field(default_factory=Positions, compare=False)
    type_table: Optional[TypeTable] = field(default=None, compare=False, repr=False)

    def members(self) -> List[BrpcMember]:
        return []

    def nested(self) -> List[BrpcDefinition]:
        return []


@dataclass
class BrpcProperty(BrpcDefinition):
    """name = "value" (top level only)"""

    kind: ClassVar[NodeKind] = NodeKind.PROPERTY

    value: str = ""


@dataclass
class BrpcImport(BrpcDefinition):
    """import "path.brpc" """

    kind: ClassVar[NodeKind] = NodeKind.IMPORT

    path: str = ""


@dataclass
class BrpcStruct(BrpcDefinition):
    kind: ClassVar[NodeKind] = NodeKind.STRUCT

    fields: List[BrpcField] = field(default_factory=list)
    type_params: List[str] = field(default_factory=list)
    local_defs: List[BrpcDefinition] = field(default_factory=list)

    def members(self) -> List[BrpcMember]:
        return self.fields

    def nested(self) -> List[BrpcDefinition]:
        return self.local_defs


@dataclass
class BrpcUnion(BrpcDefinition):
    kind: ClassVar[NodeKind] = NodeKind.UNION

    options: List[BrpcOption] = field(default_factory=list)
    type_params: List[str] = field(default_factory=list)
    local_defs: List[BrpcDefinition] = field(default_factory=list)

    def members(self) -> List[BrpcMember]:
        return self.options

    def nested(self) -> List[BrpcDefinition]:
        return self.local_defs


@dataclass
class BrpcEnum(BrpcDefinition):
    kind: ClassVar[NodeKind] = NodeKind.ENUM

    cases: List[BrpcCase] = field(default_factory=list)

    def members(self) -> List[BrpcMember]:
        return self.cases


@dataclass
class BrpcService(BrpcDefinition):
    kind: ClassVar[NodeKind] = NodeKind.SERVICE

    rpcs: List[BrpcRpc] = field(default_factory=list)
    local_defs: List[BrpcDefinition] = field(default_factory=list)

    def members(self) -> List[BrpcMember]:
        return self.rpcs

    def nested(self) -> List[BrpcDefinition]:
        return self.local_defs


# -- members --


@dataclass
class BrpcMember:
    """A child of a definition carrying an ordinal."""

    kind: ClassVar[NodeKind] = NodeKind.FIELD

    ordinal: int = 0
    iden: str = ""
    poisoned: bool = False
    positions: Positions = field(default_factory=Positions, compare=False)

    def type_refs(self) -> List[BrpcTypeRef]:
        return []


@dataclass
class BrpcField(BrpcMember):
    """<modifier> name @N type;"""

    kind: ClassVar[NodeKind] = NodeKind.FIELD

    modifier: Modifier = Modifier.REQUIRED
    type_ref: BrpcTypeRef = field(default_factory=BrpcTypeRef)

    def type_refs(self) -> List[BrpcTypeRef]:
        return [self.type_ref]


@dataclass
class BrpcOption(BrpcMember):
    """@N type; -- the identifier is the referenced type's name."""

    kind: ClassVar[NodeKind] = NodeKind.OPTION

    type_ref: BrpcTypeRef = field(default_factory=BrpcTypeRef)

    def type_refs(self) -> List[BrpcTypeRef]:
        return [self.type_ref]


@dataclass
class BrpcCase(BrpcMember):
    """@N Name;"""

    kind: ClassVar[NodeKind] = NodeKind.CASE


@dataclass
class BrpcRpc(BrpcMember):
    """rpc @N Name(arg) returns (ret)"""

    kind: ClassVar[NodeKind] = NodeKind.RPC

    arg: BrpcTypeRef = field(default_factory=BrpcTypeRef)
    ret: BrpcTypeRef = field(default_factory=BrpcTypeRef)

    def type_refs(self) -> List[BrpcTypeRef]:
        return [self.arg, self.ret]


# Definitions that own a scope table.
SCOPED_DEFINITIONS = (BrpcStruct, BrpcUnion, BrpcEnum, BrpcService)
