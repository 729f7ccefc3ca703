"""Compilation pipeline: lex, parse, annotate, validate, emit.

One call handles one translation unit. Nothing is shared between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from brpc_compiler.diagnostics import BrpcDiagnostic, sort_diagnostics
from brpc_compiler.generator.go_generator import generate_go, is_go_package_name
from brpc_compiler.parser.brpc_ast import BrpcDefinition, BrpcImport
from brpc_compiler.parser.brpc_ast_parser import BrpcParser
from brpc_compiler.parser.brpc_tokenizer import tokenize_brpc
from brpc_compiler.tables import TypeTable, build_import_table, build_property_table
from brpc_compiler.validator import annotate, validate

logger = logging.getLogger(__name__)

PACKAGE_PROPERTY = "package"


@dataclass
class CompileResult:
    nodes: List[BrpcDefinition] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    imports: Dict[str, BrpcImport] = field(default_factory=dict)
    diagnostics: List[BrpcDiagnostic] = field(default_factory=list)
    types: Optional[TypeTable] = None
    output: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.diagnostics


def parse_source(text: Union[str, bytes]) -> CompileResult:
    """Lex and parse only."""
    tokens = tokenize_brpc(text)
    logger.debug("scanned %d token(s)", len(tokens))
    parser = BrpcParser(tokens)
    nodes = parser.parse()
    logger.debug(
        "parsed %d top-level definition(s), %d syntax error(s)",
        len(nodes),
        len(parser.diagnostics),
    )
    return CompileResult(nodes=nodes, diagnostics=list(parser.diagnostics))


def check_source(text: Union[str, bytes]) -> CompileResult:
    """Parse, build the tables and run both validation passes."""
    result = parse_source(text)
    result.properties = build_property_table(result.nodes, result.diagnostics)
    result.imports = build_import_table(result.nodes, result.diagnostics)
    result.types = annotate(result.nodes, result.diagnostics)
    validate(result.nodes, result.diagnostics)
    result.diagnostics = sort_diagnostics(result.diagnostics)
    logger.debug("validation finished with %d diagnostic(s)", len(result.diagnostics))
    return result


def compile_source(
    text: Union[str, bytes],
    package: Optional[str] = None,
    source_name: str = "",
    default_package: Optional[str] = None,
) -> CompileResult:
    """Run the whole pipeline. Code is only generated for a clean schema.

    The Go package is, in order: ``package``, the schema's ``package``
    property, ``default_package``. Raises ValueError when none is given or
    the chosen name is not a valid Go package name.
    """
    result = check_source(text)
    if result.diagnostics:
        return result

    package = package or result.properties.get(PACKAGE_PROPERTY) or default_package
    if not package:
        raise ValueError("no package name given and the schema has no 'package' property")
    if not is_go_package_name(package):
        raise ValueError(f"invalid Go package name: {package!r}")
    result.output = generate_go(result.nodes, package, result.imports, source_name)
    logger.debug("generated %d byte(s) of Go for package %s", len(result.output), package)
    return result
