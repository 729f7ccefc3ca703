from brpc_compiler.parser.brpc_ast_parser import parse_brpc
from brpc_compiler.printer import print_schema, quote_string


SCHEMA = """\
package = "shop\\t\\"v1\\""
import "common.brpc"

message Order struct(T) {
    required id @1 int64;
    optional tags @2 [][8]string;
    deprecated extra @3 Pair(T [2]int9);
    required shipping @4 struct {
        required street @1 string;
        optional kind @2 enum { @1 Home; @2 Office; };
    };
    message Pair struct(A B) {
        required first @1 A;
        required second @2 B;
    }
}

message Payment union {
    @1 Card;
    @2 union { @1 bool; @2 string; };
    message Card struct { required number @1 string; }
}

service Checkout {
    rpc @1 Pay(Payment) returns (Order(int8))
    rpc @2 Cancel([]int64) returns (struct { required ok @1 bool; })
    message Receipt enum { @1 Ok; }
}
"""


def _parse(src):
    nodes, diagnostics = parse_brpc(src)
    assert diagnostics == []
    return nodes


class TestPrinter:
    def test_simple_struct(self):
        nodes = _parse("message Data struct { required a @1 int9; optional b @2 []bool; }")
        assert print_schema(nodes) == (
            "message Data struct {\n"
            "    required a @1 int9;\n"
            "    optional b @2 []bool;\n"
            "}\n"
        )

    def test_service_layout(self):
        nodes = _parse("service S { rpc @1 Get(Req) returns (Resp) message Req struct {} }")
        assert print_schema(nodes) == (
            "service S {\n"
            "    rpc @1 Get(Req) returns (Resp)\n"
            "    message Req struct {\n"
            "    }\n"
            "}\n"
        )

    def test_round_trip(self):
        nodes = _parse(SCHEMA)
        printed = print_schema(nodes)
        assert _parse(printed) == nodes

    def test_idempotent(self):
        once = print_schema(_parse(SCHEMA))
        assert print_schema(_parse(once)) == once

    def test_empty(self):
        assert print_schema([]) == ""

    def test_quote_string(self):
        assert quote_string('a"b\\c\n') == '"a\\"b\\\\c\\n"'
