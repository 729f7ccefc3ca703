from brpc_compiler.parser.brpc_tokenizer import BrpcTokenType, tokenize_brpc


def _types(tokens):
    return [t.type for t in tokens]


class TestTokenKinds:
    def test_message_header(self):
        tokens = tokenize_brpc("message Data struct {")
        assert _types(tokens) == [
            BrpcTokenType.MESSAGE,
            BrpcTokenType.IDENT,
            BrpcTokenType.STRUCT,
            BrpcTokenType.LBRACE,
            BrpcTokenType.EOF,
        ]
        assert tokens[1].value == "Data"

    def test_all_keywords(self):
        src = "message service required optional deprecated struct union enum rpc returns import"
        tokens = tokenize_brpc(src)
        assert _types(tokens)[:-1] == [
            BrpcTokenType.MESSAGE,
            BrpcTokenType.SERVICE,
            BrpcTokenType.REQUIRED,
            BrpcTokenType.OPTIONAL,
            BrpcTokenType.DEPRECATED,
            BrpcTokenType.STRUCT,
            BrpcTokenType.UNION,
            BrpcTokenType.ENUM,
            BrpcTokenType.RPC,
            BrpcTokenType.RETURNS,
            BrpcTokenType.IMPORT,
        ]

    def test_keywords_are_case_sensitive(self):
        tokens = tokenize_brpc("Message STRUCT")
        assert _types(tokens) == [BrpcTokenType.IDENT, BrpcTokenType.IDENT, BrpcTokenType.EOF]

    def test_control_characters_need_no_whitespace(self):
        tokens = tokenize_brpc("a=(b)[4]{c};,|")
        assert _types(tokens) == [
            BrpcTokenType.IDENT,
            BrpcTokenType.EQUALS,
            BrpcTokenType.LPAREN,
            BrpcTokenType.IDENT,
            BrpcTokenType.RPAREN,
            BrpcTokenType.LBRACK,
            BrpcTokenType.INTEGER,
            BrpcTokenType.RBRACK,
            BrpcTokenType.LBRACE,
            BrpcTokenType.IDENT,
            BrpcTokenType.RBRACE,
            BrpcTokenType.SEMICOLON,
            BrpcTokenType.COMMA,
            BrpcTokenType.PIPE,
            BrpcTokenType.EOF,
        ]
        assert tokens[6].num == 4

    def test_ordinal_value(self):
        tokens = tokenize_brpc("@12;")
        assert tokens[0].type == BrpcTokenType.ORDINAL
        assert tokens[0].num == 12
        assert tokens[0].value == "@12"

    def test_string_keeps_raw_lexeme(self):
        tokens = tokenize_brpc('"a\\"b" x')
        assert tokens[0].type == BrpcTokenType.STRING_LIT
        assert tokens[0].value == '"a\\"b"'
        assert tokens[1].value == "x"

    def test_comment_is_skipped(self):
        src = "// leading comment\nfoo // trailing\nbar"
        tokens = tokenize_brpc(src)
        assert _types(tokens) == [BrpcTokenType.IDENT, BrpcTokenType.IDENT, BrpcTokenType.EOF]
        assert tokens[0].begin == src.index("foo")
        assert tokens[1].begin == src.index("bar")

    def test_empty_input(self):
        tokens = tokenize_brpc("")
        assert len(tokens) == 1
        assert tokens[0].type == BrpcTokenType.EOF
        assert tokens[0].begin == 0
        assert tokens[0].end == 0

    def test_single_eof_at_end(self):
        tokens = tokenize_brpc("a b  \n")
        assert [t.type for t in tokens].count(BrpcTokenType.EOF) == 1
        assert tokens[-1].begin == 6


class TestErrorTokens:
    def test_ordinal_with_trailing_letters(self):
        tokens = tokenize_brpc("@1abc int8")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.ORDINAL
        assert tokens[0].value == "@1abc"
        assert tokens[1].type == BrpcTokenType.IDENT

    def test_bare_at_sign(self):
        tokens = tokenize_brpc("@ x")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.ORDINAL
        assert tokens[0].value == "@"

    def test_integer_with_trailing_letters(self):
        tokens = tokenize_brpc("[5a]")
        assert tokens[1].type == BrpcTokenType.ERROR
        assert tokens[1].expected == BrpcTokenType.INTEGER
        assert tokens[1].value == "5a"
        assert tokens[2].type == BrpcTokenType.RBRACK

    def test_identifier_with_invalid_byte(self):
        tokens = tokenize_brpc("ab$cd;")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.IDENT
        assert tokens[0].value == "ab$cd"
        assert tokens[1].type == BrpcTokenType.SEMICOLON

    def test_single_slash_runs_to_end_of_line(self):
        tokens = tokenize_brpc("/x y\nfoo")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.COMMENT
        assert tokens[0].value == "/x y"
        assert tokens[1].value == "foo"

    def test_unterminated_string(self):
        tokens = tokenize_brpc('x = "abc')
        assert tokens[2].type == BrpcTokenType.ERROR
        assert tokens[2].expected == BrpcTokenType.STRING_LIT
        assert tokens[2].value == '"abc'
        assert tokens[3].type == BrpcTokenType.EOF

    def test_ordinal_followed_by_comment(self):
        tokens = tokenize_brpc("@1// c")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.ORDINAL
        assert tokens[0].value == "@1//"
        assert tokens[1].value == "c"

    def test_integer_followed_by_string(self):
        tokens = tokenize_brpc('12"a" ]')
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.INTEGER
        assert tokens[0].value == '12"a"'
        assert tokens[1].type == BrpcTokenType.RBRACK

    def test_identifier_followed_by_string(self):
        tokens = tokenize_brpc('ab"c";')
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.IDENT
        assert tokens[0].value == 'ab"c"'
        assert tokens[1].type == BrpcTokenType.SEMICOLON

    def test_identifier_followed_by_slash(self):
        tokens = tokenize_brpc("a/b c")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.IDENT
        assert tokens[0].value == "a/b"

    def test_unknown_byte(self):
        tokens = tokenize_brpc("# x")
        assert tokens[0].type == BrpcTokenType.ERROR
        assert tokens[0].expected == BrpcTokenType.UNKNOWN
        assert tokens[0].value == "#"


class TestOffsets:
    SOURCES = [
        'package = "demo"\nimport "other.brpc"\n',
        "message Data struct { required a @1 int9; optional b @2 [4][]Pair(int8 string); }",
        "message A struct { required one @1abc int8; required two @2 int8; }",
        "service S {\n  rpc @1 Get(Req) returns (Resp)\n}\n// done",
        '"naïve" @ 5a /x\n"unterminated',
    ]

    def test_lexeme_matches_source_bytes(self):
        for src in self.SOURCES:
            data = src.encode("utf-8")
            for tok in tokenize_brpc(src):
                assert 0 <= tok.begin <= tok.end <= len(data)
                assert data[tok.begin:tok.end].decode("utf-8") == tok.value
                if tok.type != BrpcTokenType.EOF:
                    assert tok.begin < tok.end

    def test_offsets_strictly_increase(self):
        for src in self.SOURCES:
            tokens = tokenize_brpc(src)
            for prev, curr in zip(tokens, tokens[1:]):
                assert prev.end <= curr.begin

    def test_offsets_are_bytes(self):
        tokens = tokenize_brpc('"é" x')
        assert tokens[0].end == 4
        assert tokens[1].begin == 5

    def test_accepts_bytes(self):
        assert _types(tokenize_brpc(b"a b")) == _types(tokenize_brpc("a b"))
