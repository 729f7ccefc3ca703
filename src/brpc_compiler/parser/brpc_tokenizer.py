"""Tokenizer for brpc (.brpc) schema files.

The scanner works on the UTF-8 encoded source so that every token carries
byte offsets into the input. It never raises on user input: malformed
lexemes become ERROR tokens that remember which kind of token was being
scanned, and scanning resumes at the next delimiter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional, Union


class BrpcTokenType(Enum):
    # Keywords
    MESSAGE = auto()
    SERVICE = auto()
    REQUIRED = auto()
    OPTIONAL = auto()
    DEPRECATED = auto()
    STRUCT = auto()
    UNION = auto()
    ENUM = auto()
    RPC = auto()
    RETURNS = auto()
    IMPORT = auto()

    # Delimiters
    SEMICOLON = auto()
    COMMA = auto()
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACK = auto()
    RBRACK = auto()
    EQUALS = auto()
    PIPE = auto()

    # Literals
    IDENT = auto()
    INTEGER = auto()
    ORDINAL = auto()
    STRING_LIT = auto()

    # Special
    ERROR = auto()
    EOF = auto()

    # Only ever used as the expected kind of an ERROR token
    COMMENT = auto()
    UNKNOWN = auto()

    def describe(self) -> str:
        """Human readable name used in diagnostics."""
        return _DESCRIPTIONS.get(self, self.name.lower())


_KEYWORDS = {
    "message": BrpcTokenType.MESSAGE,
    "service": BrpcTokenType.SERVICE,
    "required": BrpcTokenType.REQUIRED,
    "optional": BrpcTokenType.OPTIONAL,
    "deprecated": BrpcTokenType.DEPRECATED,
    "struct": BrpcTokenType.STRUCT,
    "union": BrpcTokenType.UNION,
    "enum": BrpcTokenType.ENUM,
    "rpc": BrpcTokenType.RPC,
    "returns": BrpcTokenType.RETURNS,
    "import": BrpcTokenType.IMPORT,
}

_SINGLE_CHAR: Dict[int, BrpcTokenType] = {
    ord("{"): BrpcTokenType.LBRACE,
    ord("}"): BrpcTokenType.RBRACE,
    ord("("): BrpcTokenType.LPAREN,
    ord(")"): BrpcTokenType.RPAREN,
    ord("["): BrpcTokenType.LBRACK,
    ord("]"): BrpcTokenType.RBRACK,
    ord(";"): BrpcTokenType.SEMICOLON,
    ord(","): BrpcTokenType.COMMA,
    ord("="): BrpcTokenType.EQUALS,
    ord("|"): BrpcTokenType.PIPE,
}

_DESCRIPTIONS: Dict[BrpcTokenType, str] = {
    BrpcTokenType.SEMICOLON: "';'",
    BrpcTokenType.COMMA: "','",
    BrpcTokenType.LBRACE: "'{'",
    BrpcTokenType.RBRACE: "'}'",
    BrpcTokenType.LPAREN: "'('",
    BrpcTokenType.RPAREN: "')'",
    BrpcTokenType.LBRACK: "'['",
    BrpcTokenType.RBRACK: "']'",
    BrpcTokenType.EQUALS: "'='",
    BrpcTokenType.PIPE: "'|'",
    BrpcTokenType.IDENT: "identifier",
    BrpcTokenType.STRING_LIT: "string",
    BrpcTokenType.COMMENT: "'//'",
    BrpcTokenType.EOF: "end of file",
    BrpcTokenType.UNKNOWN: "token",
}

_WHITESPACE: FrozenSet[int] = frozenset(b" \t\r\n\f")
_CONTROL: FrozenSet[int] = frozenset(b"=()[]{};,|@")
_NEWLINE: FrozenSet[int] = frozenset(b"\r\n")
_DIGITS: FrozenSet[int] = frozenset(b"0123456789")
_IDENT_START: FrozenSet[int] = frozenset(
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_"
)
_IDENT_BODY: FrozenSet[int] = _IDENT_START | _DIGITS
# Identifiers, integers and ordinals must be followed by whitespace, a control
# byte or end of input. Malformed lexemes are skipped up to the same set.
_DELIMITERS: FrozenSet[int] = _WHITESPACE | _CONTROL

_END = -1


@dataclass
class BrpcToken:
    type: BrpcTokenType
    value: str
    begin: int
    end: int
    expected: Optional[BrpcTokenType] = None
    num: Optional[int] = None

    def __str__(self) -> str:
        if self.type == BrpcTokenType.EOF:
            return "<eof>"
        return f"'{self.value}'"


class _Lexer:
    """Single pass scanner dispatching to one sub-lexer per token family."""

    def __init__(self, src: bytes):
        self._src = src
        self._start = 0
        self._curr = 0
        self._tokens: List[BrpcToken] = []

    def run(self) -> List[BrpcToken]:
        while self._lex():
            pass
        return self._tokens

    # -- dispatch --

    def _lex(self) -> bool:
        self._accept_while(_WHITESPACE)
        self._start = self._curr

        ch = self._peek()
        if ch == _END:
            self._emit(BrpcTokenType.EOF)
            return False

        single = _SINGLE_CHAR.get(ch)
        if single is not None:
            self._curr += 1
            self._emit(single)
        elif ch == ord("/"):
            self._lex_comment()
        elif ch == ord("@"):
            self._lex_ordinal()
        elif ch == ord('"'):
            self._lex_string()
        elif ch in _DIGITS:
            self._lex_integer()
        elif ch in _IDENT_START:
            self._lex_identifier()
        else:
            self._curr += 1
            self._emit_error(BrpcTokenType.UNKNOWN)
        return True

    # -- sub-lexers --

    def _lex_identifier(self) -> None:
        self._accept_while(_IDENT_BODY)
        if not self._at_delimiter():
            self._emit_error(BrpcTokenType.IDENT)
            return
        word = self._lexeme()
        self._emit(_KEYWORDS.get(word, BrpcTokenType.IDENT))

    def _lex_integer(self) -> None:
        self._accept_while(_DIGITS)
        if not self._at_delimiter():
            self._emit_error(BrpcTokenType.INTEGER)
            return
        self._emit(BrpcTokenType.INTEGER, num=int(self._lexeme()))

    def _lex_ordinal(self) -> None:
        self._curr += 1  # '@'
        self._accept_while(_DIGITS)
        if not self._at_delimiter() or self._curr - self._start <= 1:
            self._emit_error(BrpcTokenType.ORDINAL)
            return
        self._emit(BrpcTokenType.ORDINAL, num=int(self._lexeme()[1:]))

    def _lex_string(self) -> None:
        self._curr += 1  # opening quote
        escaped = False
        while True:
            ch = self._peek()
            if ch == _END:
                self._emit(BrpcTokenType.ERROR, expected=BrpcTokenType.STRING_LIT)
                return
            self._curr += 1
            if escaped:
                escaped = False
            elif ch == ord("\\"):
                escaped = True
            elif ch == ord('"'):
                break
        # Escapes are decoded by the parser, the raw lexeme keeps its quotes.
        self._emit(BrpcTokenType.STRING_LIT)

    def _lex_comment(self) -> None:
        self._curr += 1  # first '/'
        if self._peek() != ord("/"):
            self._emit_error(BrpcTokenType.COMMENT)
            return
        self._accept_until(_NEWLINE)
        self._start = self._curr

    # -- emit helpers --

    def _emit(
        self,
        kind: BrpcTokenType,
        expected: Optional[BrpcTokenType] = None,
        num: Optional[int] = None,
    ) -> None:
        self._tokens.append(
            BrpcToken(kind, self._lexeme(), self._start, self._curr, expected, num)
        )
        self._start = self._curr

    def _emit_error(self, expected: BrpcTokenType) -> None:
        if expected == BrpcTokenType.COMMENT:
            self._accept_until(_NEWLINE)
        else:
            self._accept_until(_DELIMITERS)
        self._emit(BrpcTokenType.ERROR, expected=expected)

    # -- byte helpers --

    def _lexeme(self) -> str:
        return self._src[self._start:self._curr].decode("utf-8", errors="replace")

    def _peek(self) -> int:
        if self._curr >= len(self._src):
            return _END
        return self._src[self._curr]

    def _at_delimiter(self) -> bool:
        ch = self._peek()
        return ch == _END or ch in _DELIMITERS

    def _accept_while(self, valid: FrozenSet[int]) -> None:
        while self._peek() in valid:
            self._curr += 1

    def _accept_until(self, invalid: FrozenSet[int]) -> None:
        while self._curr < len(self._src) and self._src[self._curr] not in invalid:
            self._curr += 1


def tokenize_brpc(text: Union[str, bytes]) -> List[BrpcToken]:
    """Tokenize a brpc source into a list of tokens terminated by EOF."""
    src = text.encode("utf-8") if isinstance(text, str) else text
    return _Lexer(src).run()
