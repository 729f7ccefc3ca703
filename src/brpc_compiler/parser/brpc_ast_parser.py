"""Recursive descent parser for brpc (.brpc) schema files.

Consumes a token stream from brpc_tokenizer and produces brpc AST nodes.

Every production allocates its node before consuming anything. When a
syntax error is raised inside a production, the production poisons its node,
records the diagnostic once and skips forward to a sentinel token, then
returns the partial node so parsing continues with the next construct.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple, Union

from brpc_compiler.diagnostics import (
    BrpcDiagnostic,
    BrpcSyntaxError,
    EscapeSequenceError,
    ImportPathError,
    IntegerError,
    error_from_token,
)

from .brpc_ast import (
    BrpcCase,
    BrpcDefinition,
    BrpcEnum,
    BrpcField,
    BrpcImport,
    BrpcMember,
    BrpcOption,
    BrpcProperty,
    BrpcRpc,
    BrpcService,
    BrpcStruct,
    BrpcTypeRef,
    BrpcUnion,
    Modifier,
    NodeKind,
    Positions,
)
from .brpc_tokenizer import BrpcToken, BrpcTokenType, tokenize_brpc

BRPC_EXTENSION = ".brpc"

_ESCAPES = {
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "f": "\f",
    "r": "\r",
    '"': '"',
}

_MODIFIERS = {
    BrpcTokenType.REQUIRED: Modifier.REQUIRED,
    BrpcTokenType.OPTIONAL: Modifier.OPTIONAL,
    BrpcTokenType.DEPRECATED: Modifier.DEPRECATED,
}

# Skipping stops in front of these tokens ...
_STOP_TOKENS = frozenset({
    BrpcTokenType.LBRACE,
    BrpcTokenType.RBRACE,
    BrpcTokenType.SERVICE,
    BrpcTokenType.RPC,
    BrpcTokenType.REQUIRED,
    BrpcTokenType.OPTIONAL,
    BrpcTokenType.DEPRECATED,
    BrpcTokenType.MESSAGE,
    BrpcTokenType.STRUCT,
    BrpcTokenType.UNION,
    BrpcTokenType.ENUM,
})
# ... and ends after a run of these.
_EAT_TOKENS = frozenset({BrpcTokenType.SEMICOLON})

_ROOT_START = (
    BrpcTokenType.MESSAGE,
    BrpcTokenType.SERVICE,
    BrpcTokenType.IMPORT,
    BrpcTokenType.IDENT,
)
_TYPE_START = (
    BrpcTokenType.LBRACK,
    BrpcTokenType.IDENT,
    BrpcTokenType.STRUCT,
    BrpcTokenType.UNION,
    BrpcTokenType.ENUM,
)
_BODY_START = (BrpcTokenType.STRUCT, BrpcTokenType.UNION, BrpcTokenType.ENUM)

# Errors about the content of a token that was fully consumed; the token
# stream is still in sync, so no skipping is needed.
_IN_PLACE_ERRORS = (EscapeSequenceError, ImportPathError)

Node = Union[BrpcDefinition, BrpcMember]


class BrpcParser:
    """Recursive descent parser for .brpc files."""

    def __init__(self, tokens: List[BrpcToken]):
        self._tokens = tokens
        self._pos = 0
        self._diagnostics: List[BrpcDiagnostic] = []
        self._eof_reported = False

    @property
    def diagnostics(self) -> List[BrpcDiagnostic]:
        return self._diagnostics

    # -- public API --

    def parse(self) -> List[BrpcDefinition]:
        """Parse the full token stream into a list of top-level definitions."""
        nodes: List[BrpcDefinition] = []
        while not self._at_end():
            node = self._parse_root()
            if node is not None:
                nodes.append(node)
        return nodes

    def _parse_root(self) -> Optional[BrpcDefinition]:
        tok = self._peek()
        tt = tok.type

        if tt == BrpcTokenType.MESSAGE:
            return self._parse_message()
        if tt == BrpcTokenType.SERVICE:
            return self._parse_service()
        if tt == BrpcTokenType.IMPORT:
            return self._parse_import()
        if tt == BrpcTokenType.IDENT:
            return self._parse_property()

        self._advance()
        self._report(error_from_token(tok, _ROOT_START), NodeKind.SCHEMA)
        self._skip_until_sentinel()
        return None

    # -- top-level statements --

    def _parse_property(self) -> BrpcProperty:
        """Parse: IDENT EQUALS STRING"""
        name_tok = self._advance()
        prop = BrpcProperty(iden=name_tok.value, positions=self._span(name_tok))
        try:
            self._expect(BrpcTokenType.EQUALS)
            value_tok, prop.value = self._parse_string()
        except BrpcSyntaxError as err:
            return self._poison(prop, err, NodeKind.PROPERTY)
        prop.positions.end = value_tok.end
        return prop

    def _parse_import(self) -> BrpcImport:
        """Parse: IMPORT STRING"""
        imp = BrpcImport(positions=self._span(self._advance()))
        try:
            path_tok, imp.path = self._parse_string()
            imp.positions.end = path_tok.end
            if not imp.path.endswith(BRPC_EXTENSION):
                raise ImportPathError(path_tok, BRPC_EXTENSION)
        except BrpcSyntaxError as err:
            return self._poison(imp, err, NodeKind.IMPORT)
        return imp

    def _parse_string(self) -> Tuple[BrpcToken, str]:
        """Parse a STRING token and decode its escape sequences."""
        tok = self._expect(BrpcTokenType.STRING_LIT)
        raw = tok.value
        if len(raw) < 2 or raw[0] != '"' or raw[-1] != '"':
            raise AssertionError(f"assertion error: string token must be quoted, was: {raw!r}")

        chars: List[str] = []
        escaped = False
        for ch in raw[1:-1]:
            if escaped:
                decoded = _ESCAPES.get(ch)
                if decoded is None:
                    raise EscapeSequenceError(tok, ch)
                chars.append(decoded)
                escaped = False
            elif ch == "\\":
                escaped = True
            else:
                chars.append(ch)
        return tok, "".join(chars)

    # -- definitions --

    def _parse_message(self) -> BrpcDefinition:
        """Parse: MESSAGE IDENT (struct-body | union-body | enum-body)"""
        msg_tok = self._advance()
        message = BrpcDefinition(positions=self._span(msg_tok))
        try:
            message.iden = self._expect(BrpcTokenType.IDENT).value
            body_tok = self._expect(*_BODY_START)
        except BrpcSyntaxError as err:
            return self._poison(message, err, NodeKind.MESSAGE)
        return self._parse_body(body_tok, message.iden, msg_tok.begin)

    def _parse_body(self, body_tok: BrpcToken, iden: str, begin: int) -> BrpcDefinition:
        """Dispatch on an already consumed STRUCT, UNION or ENUM keyword."""
        if body_tok.type == BrpcTokenType.STRUCT:
            return self._parse_struct(iden, begin)
        if body_tok.type == BrpcTokenType.UNION:
            return self._parse_union(iden, begin)
        if body_tok.type == BrpcTokenType.ENUM:
            return self._parse_enum(iden, begin)
        raise AssertionError(f"assertion error: not a type body keyword: {body_tok}")

    def _parse_struct(self, iden: str, begin: int) -> BrpcStruct:
        """Parse: [type-params] LBRACE (field | message)* RBRACE"""
        struct = BrpcStruct(iden=iden, positions=Positions(begin, begin))
        try:
            struct.type_params = self._parse_type_params()
            self._expect(BrpcTokenType.LBRACE)
        except BrpcSyntaxError as err:
            return self._poison(struct, err, NodeKind.STRUCT)

        expected = (*_MODIFIERS, BrpcTokenType.MESSAGE, BrpcTokenType.RBRACE)
        while True:
            tt = self._peek().type
            if tt in _MODIFIERS:
                struct.fields.append(self._parse_field())
            elif tt == BrpcTokenType.MESSAGE:
                struct.local_defs.append(self._parse_message())
            elif tt == BrpcTokenType.RBRACE:
                struct.positions.end = self._advance().end
                return struct
            elif not self._recover_in_body(struct, expected, NodeKind.STRUCT):
                return struct

    def _parse_union(self, iden: str, begin: int) -> BrpcUnion:
        """Parse: [type-params] LBRACE (option | message)* RBRACE"""
        union = BrpcUnion(iden=iden, positions=Positions(begin, begin))
        try:
            union.type_params = self._parse_type_params()
            self._expect(BrpcTokenType.LBRACE)
        except BrpcSyntaxError as err:
            return self._poison(union, err, NodeKind.UNION)

        expected = (BrpcTokenType.ORDINAL, BrpcTokenType.MESSAGE, BrpcTokenType.RBRACE)
        while True:
            tt = self._peek().type
            if self._at_ordinal():
                union.options.append(self._parse_option())
            elif tt == BrpcTokenType.MESSAGE:
                union.local_defs.append(self._parse_message())
            elif tt == BrpcTokenType.RBRACE:
                union.positions.end = self._advance().end
                return union
            elif not self._recover_in_body(union, expected, NodeKind.UNION):
                return union

    def _parse_enum(self, iden: str, begin: int) -> BrpcEnum:
        """Parse: LBRACE case* RBRACE"""
        enum = BrpcEnum(iden=iden, positions=Positions(begin, begin))
        try:
            self._expect(BrpcTokenType.LBRACE)
        except BrpcSyntaxError as err:
            return self._poison(enum, err, NodeKind.ENUM)

        expected = (BrpcTokenType.ORDINAL, BrpcTokenType.RBRACE)
        while True:
            if self._at_ordinal():
                enum.cases.append(self._parse_case())
            elif self._peek().type == BrpcTokenType.RBRACE:
                enum.positions.end = self._advance().end
                return enum
            elif not self._recover_in_body(enum, expected, NodeKind.ENUM):
                return enum

    def _parse_service(self) -> BrpcService:
        """Parse: SERVICE IDENT LBRACE (rpc | message)* RBRACE"""
        svc = BrpcService(positions=self._span(self._advance()))
        try:
            svc.iden = self._expect(BrpcTokenType.IDENT).value
            self._expect(BrpcTokenType.LBRACE)
        except BrpcSyntaxError as err:
            return self._poison(svc, err, NodeKind.SERVICE)

        expected = (BrpcTokenType.RPC, BrpcTokenType.MESSAGE, BrpcTokenType.RBRACE)
        while True:
            tt = self._peek().type
            if tt == BrpcTokenType.RPC:
                svc.rpcs.append(self._parse_rpc())
            elif tt == BrpcTokenType.MESSAGE:
                svc.local_defs.append(self._parse_message())
            elif tt == BrpcTokenType.RBRACE:
                svc.positions.end = self._advance().end
                return svc
            elif not self._recover_in_body(svc, expected, NodeKind.SERVICE):
                return svc

    def _parse_type_params(self) -> List[str]:
        """Parse: [LPAREN IDENT* RPAREN]"""
        params: List[str] = []
        if self._peek().type != BrpcTokenType.LPAREN:
            return params
        self._advance()
        while True:
            tok = self._expect(BrpcTokenType.IDENT, BrpcTokenType.RPAREN)
            if tok.type == BrpcTokenType.RPAREN:
                return params
            params.append(tok.value)

    # -- members --

    def _parse_field(self) -> BrpcField:
        """Parse: MODIFIER IDENT ORDINAL type-ref SEMICOLON+"""
        mod_tok = self._advance()
        fld = BrpcField(modifier=_MODIFIERS[mod_tok.type], positions=self._span(mod_tok))
        try:
            fld.iden = self._expect(BrpcTokenType.IDENT).value
            fld.ordinal = self._parse_ordinal()
            fld.type_ref = self._parse_type_ref()
            fld.positions.end = self._expect_terminator().end
        except BrpcSyntaxError as err:
            return self._poison(fld, err, NodeKind.FIELD)
        return fld

    def _parse_option(self) -> BrpcOption:
        """Parse: ORDINAL type-ref SEMICOLON+"""
        opt = BrpcOption(positions=self._span(self._peek()))
        try:
            opt.ordinal = self._parse_ordinal()
            opt.type_ref = self._parse_type_ref()
            opt.iden = opt.type_ref.iden
            opt.positions.end = self._expect_terminator().end
        except BrpcSyntaxError as err:
            return self._poison(opt, err, NodeKind.OPTION)
        return opt

    def _parse_case(self) -> BrpcCase:
        """Parse: ORDINAL IDENT SEMICOLON+"""
        case = BrpcCase(positions=self._span(self._peek()))
        try:
            case.ordinal = self._parse_ordinal()
            case.iden = self._expect(BrpcTokenType.IDENT).value
            case.positions.end = self._expect_terminator().end
        except BrpcSyntaxError as err:
            return self._poison(case, err, NodeKind.CASE)
        return case

    def _parse_rpc(self) -> BrpcRpc:
        """Parse: RPC ORDINAL IDENT LPAREN type-ref RPAREN RETURNS LPAREN type-ref RPAREN"""
        rpc = BrpcRpc(positions=self._span(self._advance()))
        try:
            rpc.ordinal = self._parse_ordinal()
            rpc.iden = self._expect(BrpcTokenType.IDENT).value
            self._expect(BrpcTokenType.LPAREN)
            rpc.arg = self._parse_type_ref()
            self._expect(BrpcTokenType.RPAREN)
            self._expect(BrpcTokenType.RETURNS)
            self._expect(BrpcTokenType.LPAREN)
            rpc.ret = self._parse_type_ref()
            rpc.positions.end = self._expect(BrpcTokenType.RPAREN).end
        except BrpcSyntaxError as err:
            return self._poison(rpc, err, NodeKind.RPC)
        return rpc

    def _parse_ordinal(self) -> int:
        tok = self._expect(BrpcTokenType.ORDINAL)
        if tok.num is None:
            raise AssertionError(f"assertion error: ordinal token has no value: {tok}")
        return tok.num

    # -- type references --

    def _parse_type_ref(self) -> BrpcTypeRef:
        """Parse: (LBRACK [INTEGER] RBRACK)* (IDENT [type-args] | type-body)

        Errors propagate to the member being parsed.
        """
        ref = BrpcTypeRef(positions=self._span(self._peek()))
        while self._peek().type == BrpcTokenType.LBRACK:
            self._advance()
            ref.array.append(self._parse_array_size())

        tok = self._expect(*_TYPE_START)
        if tok.type == BrpcTokenType.IDENT:
            ref.iden = tok.value
            ref.positions.end = tok.end
            if self._peek().type == BrpcTokenType.LPAREN:
                ref.type_args, close_tok = self._parse_type_args()
                ref.positions.end = close_tok.end
        else:
            # Anonymous nested definition; recovers from its own errors.
            ref.definition = self._parse_body(tok, "", tok.begin)
            ref.positions.end = ref.definition.positions.end
        return ref

    def _parse_array_size(self) -> int:
        """Parse the remainder of an array prefix: [INTEGER] RBRACK. 0 means unsized."""
        tok = self._expect(BrpcTokenType.INTEGER, BrpcTokenType.RBRACK)
        if tok.type == BrpcTokenType.RBRACK:
            return 0
        if not tok.num:
            raise IntegerError(tok, "is not a valid array size, sizes must be greater than zero")
        self._expect(BrpcTokenType.RBRACK)
        return tok.num

    def _parse_type_args(self) -> Tuple[List[BrpcTypeRef], BrpcToken]:
        """Parse: LPAREN type-ref* RPAREN"""
        self._advance()
        args: List[BrpcTypeRef] = []
        while self._peek().type != BrpcTokenType.RPAREN:
            args.append(self._parse_type_ref())
        return args, self._advance()

    # -- error recovery --

    def _poison(self, node: Node, err: BrpcSyntaxError, kind: NodeKind):
        """Mark node as partial, record err and resynchronise."""
        node.poisoned = True
        node.positions.end = err.actual.end
        self._report(err, kind)
        if not isinstance(err, _IN_PLACE_ERRORS):
            self._skip_until_sentinel()
        return node

    def _recover_in_body(
        self,
        node: BrpcDefinition,
        expected: Sequence[BrpcTokenType],
        kind: NodeKind,
    ) -> bool:
        """Handle an unexpected token inside a definition body.

        Returns False when the body cannot be continued (end of input).
        """
        tok = self._peek()
        err = error_from_token(tok, expected)
        if tok.type == BrpcTokenType.EOF:
            node.poisoned = True
            node.positions.end = tok.end
            self._report(err, kind)
            return False
        self._advance()
        self._poison(node, err, kind)
        return True

    def _report(self, err: BrpcSyntaxError, kind: NodeKind) -> None:
        if err.kind is None:
            err.kind = kind
        # Once an error has been reported at end of input, everything after
        # it is a cascade of the same problem.
        if not self._eof_reported:
            self._diagnostics.append(err)
        if err.actual.type == BrpcTokenType.EOF:
            self._eof_reported = True

    def _skip_until_sentinel(self) -> None:
        """Skip tokens until a stop token, or past a run of eat tokens."""
        while not self._at_end():
            tt = self._peek().type
            if tt in _EAT_TOKENS:
                while self._peek().type in _EAT_TOKENS:
                    self._advance()
                return
            if tt in _STOP_TOKENS:
                return
            self._advance()

    # -- token helpers --

    def _peek(self) -> BrpcToken:
        return self._tokens[self._pos]

    def _advance(self) -> BrpcToken:
        tok = self._tokens[self._pos]
        if tok.type != BrpcTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, *expected: BrpcTokenType) -> BrpcToken:
        tok = self._peek()
        if tok.type not in expected:
            raise error_from_token(tok, expected)
        return self._advance()

    def _expect_terminator(self) -> BrpcToken:
        """Consume one or more semicolons and return the last one."""
        tok = self._expect(BrpcTokenType.SEMICOLON)
        while self._peek().type == BrpcTokenType.SEMICOLON:
            tok = self._advance()
        return tok

    def _at_ordinal(self) -> bool:
        tok = self._peek()
        return tok.type == BrpcTokenType.ORDINAL or (
            tok.type == BrpcTokenType.ERROR and tok.expected == BrpcTokenType.ORDINAL
        )

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == BrpcTokenType.EOF

    @staticmethod
    def _span(tok: BrpcToken) -> Positions:
        return Positions(tok.begin, tok.end)


def parse_brpc(text: Union[str, bytes]) -> Tuple[List[BrpcDefinition], List[BrpcDiagnostic]]:
    """Tokenize and parse brpc source text."""
    parser = BrpcParser(tokenize_brpc(text))
    nodes = parser.parse()
    return nodes, parser.diagnostics
