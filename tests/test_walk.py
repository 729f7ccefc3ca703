from brpc_compiler.parser.brpc_ast_parser import parse_brpc
from brpc_compiler.walk import walk, walk_list


def _trace(nodes):
    seen = []
    walk_list(lambda n: seen.append((type(n).__name__, n.iden)), nodes)
    return seen


class TestWalk:
    def test_pre_order(self):
        nodes, _ = parse_brpc(
            "message S struct {\n"
            "    required a @1 Pair(int8 struct { required x @1 bool; });\n"
            "    message Inner enum { @1 A; }\n"
            "}\n"
        )
        assert _trace(nodes) == [
            ("BrpcStruct", "S"),
            ("BrpcEnum", "Inner"),
            ("BrpcCase", "A"),
            ("BrpcField", "a"),
            ("BrpcTypeRef", "Pair"),
            ("BrpcTypeRef", "int8"),
            ("BrpcTypeRef", ""),
            ("BrpcStruct", ""),
            ("BrpcField", "x"),
            ("BrpcTypeRef", "bool"),
        ]

    def test_rpc_argument_before_return(self):
        nodes, _ = parse_brpc("service S { rpc @1 Get(Req) returns (Resp) }")
        assert _trace(nodes) == [
            ("BrpcService", "S"),
            ("BrpcRpc", "Get"),
            ("BrpcTypeRef", "Req"),
            ("BrpcTypeRef", "Resp"),
        ]

    def test_top_level_statements_are_leaves(self):
        nodes, _ = parse_brpc('package = "p"\nimport "a.brpc"')
        assert _trace(nodes) == [("BrpcProperty", "package"), ("BrpcImport", "")]

    def test_none_is_ignored(self):
        seen = []
        walk(seen.append, None)
        assert seen == []
