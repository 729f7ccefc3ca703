from brpc_compiler.diagnostics import Redefined
from brpc_compiler.parser.brpc_ast import BrpcEnum, BrpcStruct
from brpc_compiler.parser.brpc_ast_parser import parse_brpc
from brpc_compiler.tables import TypeTable, build_import_table, build_property_table


class TestTypeTable:
    def test_insert_and_lookup(self):
        table = TypeTable()
        node = BrpcStruct(iden="A")
        assert table.insert("A", node) is None
        assert table.lookup("A") is node
        assert "A" in table
        assert len(table) == 1
        assert list(table) == ["A"]

    def test_insert_keeps_first_binding(self):
        table = TypeTable()
        first = BrpcStruct(iden="A")
        second = BrpcEnum(iden="A")
        table.insert("A", first)
        err = table.insert("A", second)
        assert isinstance(err, Redefined)
        assert err.node is second
        assert err.iden == "A"
        assert table.lookup("A") is first

    def test_resolve_walks_parents(self):
        root = TypeTable()
        child = TypeTable(root)
        grandchild = TypeTable(child)
        outer = BrpcStruct(iden="X")
        inner = BrpcEnum(iden="X")
        root.insert("X", outer)
        root.insert("Y", BrpcStruct(iden="Y"))
        child.insert("X", inner)

        assert grandchild.resolve("X") is inner
        assert child.resolve("X") is inner
        assert root.resolve("X") is outer
        assert grandchild.resolve("Y").iden == "Y"
        assert grandchild.resolve("Z") is None
        assert grandchild.lookup("X") is None

    def test_type_params_are_scoped(self):
        root = TypeTable()
        child = TypeTable(root)
        child.bind_params(["T"])
        inner = TypeTable(child)
        assert child.is_type_param("T")
        assert not inner.is_type_param("T")
        assert not root.is_type_param("T")
        assert "T" not in child


class TestPropertyTable:
    def test_collects_properties(self):
        nodes, _ = parse_brpc('package = "demo"\nauthor = "me"\nmessage E enum { @1 A; }')
        diagnostics = []
        props = build_property_table(nodes, diagnostics)
        assert props == {"package": "demo", "author": "me"}
        assert diagnostics == []

    def test_duplicate_property(self):
        nodes, _ = parse_brpc('package = "a"\npackage = "b"')
        diagnostics = []
        props = build_property_table(nodes, diagnostics)
        assert props == {"package": "a"}
        assert len(diagnostics) == 1
        assert isinstance(diagnostics[0], Redefined)
        assert diagnostics[0].node is nodes[1]

    def test_poisoned_property_is_skipped(self):
        nodes, parse_errors = parse_brpc('package = "a\\q"')
        assert len(parse_errors) == 1
        diagnostics = []
        assert build_property_table(nodes, diagnostics) == {}
        assert diagnostics == []


class TestImportTable:
    def test_collects_imports(self):
        nodes, _ = parse_brpc('import "a.brpc"\nimport "b.brpc"')
        diagnostics = []
        imports = build_import_table(nodes, diagnostics)
        assert sorted(imports) == ["a.brpc", "b.brpc"]
        assert imports["a.brpc"] is nodes[0]

    def test_duplicate_import(self):
        nodes, _ = parse_brpc('import "a.brpc"\nimport "a.brpc"')
        diagnostics = []
        imports = build_import_table(nodes, diagnostics)
        assert list(imports) == ["a.brpc"]
        assert len(diagnostics) == 1
        assert diagnostics[0].render("x.brpc").endswith(
            "'a.brpc' is already defined while inside import"
        )

    def test_bad_extension_is_skipped(self):
        nodes, _ = parse_brpc('import "a.proto"')
        diagnostics = []
        assert build_import_table(nodes, diagnostics) == {}
