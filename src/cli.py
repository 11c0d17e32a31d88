"""
Command-line interface for inspecting the scopes and bindings of JavaScript files.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from frontend import FrontEndResult, analyze_many, render_tree
from lexer import AnalysisError, line_column, tokenize

logger = logging.getLogger(__name__)


def _format_location(line: int | None, column: int | None) -> str:
    if line is None:
        return ""
    if column is None:
        return f":{line}"
    return f":{line}:{column}"


def _print_diagnostics(messages: List[str]) -> None:
    if not messages:
        return
    for message in messages:
        sys.stderr.write(message + "\n")


def _read_sources(paths: List[str]) -> Tuple[List[Tuple[str, str]], int]:
    sources: List[Tuple[str, str]] = []
    failures = 0
    for raw in paths:
        input_path = Path(raw).resolve()
        if not input_path.exists():
            sys.stderr.write(f"ERROR: Input file not found: {input_path}\n")
            failures += 1
            continue
        try:
            sources.append((str(input_path), input_path.read_text(encoding="utf-8")))
        except OSError as exc:
            sys.stderr.write(f"ERROR: Failed to read {input_path}: {exc}\n")
            failures += 1
    return sources, failures


def _collect_diagnostics(result: FrontEndResult, source: str, strict: bool) -> List[str]:
    diagnostics: List[str] = []
    source_name = result.source_name

    for error in result.errors:
        loc = _format_location(error.line, error.column)
        diagnostics.append(f"ERROR {source_name}{loc}: {error.message}")

    for warning in result.warnings:
        loc = _format_location(warning.line, warning.column)
        diagnostics.append(f"WARNING {source_name}{loc}: {warning.message}")

    if result.analysis is not None:
        severity = "WARNING" if strict else "INFO"
        for occurrence in result.analysis.unresolved:
            line, column = line_column(source, occurrence.position)
            loc = _format_location(line, column)
            diagnostics.append(
                f"{severity} {source_name}{loc}: unresolved identifier '{occurrence.name}'"
            )

    return diagnostics


def analyze_command(args: argparse.Namespace) -> int:
    sources, failures = _read_sources(args.inputs)
    if not sources:
        return 1

    results = analyze_many(sources, max_tokens=args.max_tokens, max_workers=args.jobs)

    has_errors = failures > 0
    rendered: List[str] = []
    payload = []
    for (name, source), result in zip(sources, results):
        _print_diagnostics(_collect_diagnostics(result, source, args.strict))
        if result.analysis is None:
            has_errors = True
            continue
        if args.strict and (result.analysis.unresolved or result.analysis.issues):
            has_errors = True
        if args.json:
            payload.append(result.analysis.to_dict())
        else:
            rendered.append(f"# {name}\n{render_tree(result.analysis)}")

    if args.json:
        output = json.dumps(payload[0] if len(payload) == 1 else payload, ensure_ascii=False, indent=2)
    else:
        output = "\n\n".join(rendered)

    if args.out:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output + "\n", encoding="utf-8")
        logger.debug("wrote %s", output_path)
    elif output:
        sys.stdout.write(output + "\n")

    return 1 if has_errors else 0


def tokens_command(args: argparse.Namespace) -> int:
    sources, failures = _read_sources([args.input])
    if failures:
        return 1
    name, source = sources[0]
    try:
        tokens = tokenize(source)
    except AnalysisError as exc:
        line, column = line_column(source, exc.position)
        sys.stderr.write(f"ERROR {name}{_format_location(line, column)}: {exc.reason}\n")
        return 1
    for token in tokens:
        sys.stdout.write(f"{token.start}-{token.end}\t{token.kind.value}\t{token.lexeme!r}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scopetrace", description="Resolve lexical scopes and variable bindings in JavaScript"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Print the scope tree of JS files")
    analyze_parser.add_argument("inputs", nargs="+", help="Paths to JavaScript files")
    analyze_parser.add_argument("--out", help="Write the report to this file instead of stdout")
    analyze_parser.add_argument(
        "--json", action="store_true", help="Emit the analysis as JSON instead of a text tree."
    )
    analyze_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on unresolved identifiers and dynamic-scope constructs.",
    )
    analyze_parser.add_argument(
        "--max-tokens", type=int, default=None, help="Abort files with more tokens than this."
    )
    analyze_parser.add_argument(
        "--jobs", type=int, default=None, help="Number of files analysed in parallel."
    )
    analyze_parser.set_defaults(func=analyze_command)

    tokens_parser = subparsers.add_parser("tokens", help="Dump the token stream of a JS file")
    tokens_parser.add_argument("input", help="Path to the JavaScript file")
    tokens_parser.set_defaults(func=tokens_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
