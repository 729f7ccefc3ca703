from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Optional

from brpc_compiler.compiler import compile_source
from brpc_compiler.generator.go_generator import is_go_package_name, write_go_file

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_IO_ERROR = 2


def _package_from_path(input_path: str) -> str:
    name = re.sub(r"\W", "_", Path(input_path).stem).lower()
    if not is_go_package_name(name):
        name = f"pkg_{name}"
    return name


def run(input_path: str, out_dir: str, package: Optional[str] = None) -> int:
    """Compile one schema file into ``out_dir``. Returns the process exit code."""
    try:
        text = Path(input_path).read_bytes()
    except OSError as e:
        print(f"FATAL: cannot read {input_path}: {e}", file=sys.stderr)
        return EXIT_IO_ERROR

    try:
        result = compile_source(
            text,
            package=package,
            source_name=Path(input_path).name,
            default_package=_package_from_path(input_path),
        )
    except ValueError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return EXIT_DIAGNOSTICS

    if result.diagnostics:
        for diagnostic in result.diagnostics:
            print(diagnostic.render(input_path), file=sys.stderr)
        print(f"{len(result.diagnostics)} error(s) in {input_path}", file=sys.stderr)
        return EXIT_DIAGNOSTICS

    try:
        out_path = write_go_file(result.output, out_dir, Path(input_path).stem)
    except OSError as e:
        print(f"FATAL: cannot write output to {out_dir}: {e}", file=sys.stderr)
        return EXIT_IO_ERROR

    print(f"Generated: {out_path}")
    return EXIT_OK


def main():
    parser = argparse.ArgumentParser(
        description="Compile a .brpc schema into Go type definitions",
    )
    parser.add_argument(
        "--input",
        required=True,
        help="Path to the .brpc schema file",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output directory for the generated .go file",
    )
    parser.add_argument(
        "--package",
        required=False,
        help="Go package name (defaults to the schema's 'package' property, then the file name)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline progress to stderr",
    )

    args = parser.parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(run(args.input, args.out, args.package))


if __name__ == "__main__":
    main()
