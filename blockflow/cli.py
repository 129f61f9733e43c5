"""
blockflow: command line for flow documents
===========================================
Validates, runs or renders a flow exported from the block editor.

Usage
-----
    blockflow validate <flow.json> [--strict] [--json]
    blockflow run      <flow.json> [--strict] [--json]
    blockflow generate <flow.json> [--mode MODE] [--out DIR | --print] [--strict]

Options
-------
    --mode       {logic,trace,javascript,js,c-family,python,py,indentation-based}
                 Output language for `generate` (default: logic)
    --out        <dir>  Output directory for `generate` (default: generated/)
    --print      Print the generated source to stdout instead of writing a file
    --strict     Treat unknown node types as errors (default: warnings only)
    --json       Print the result as a JSON object
    --log-level  Logging level (default: WARNING)

Examples
--------
    blockflow run flows/count_to_three.json
    blockflow generate flows/hello_world.json --mode javascript --print
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .compiler import CodeMode, generate_code
from .core.Executor import Executor
from .core.Validator import validate
from .serializers.graph_serializer import SchemaError, json_safe, load_flow

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    CodeMode.LOGIC: ".txt",
    CodeMode.JAVASCRIPT: ".js",
    CodeMode.PYTHON: ".py",
}


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="blockflow",
        description="Validate, run or generate code from a block flow JSON document.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for diagnostics on stderr (default: WARNING).",
    )
    sub = p.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("validate", "Check the flow's structure."),
        ("run", "Execute the flow and print its output."),
        ("generate", "Render the flow as source code."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("flow_json", metavar="flow.json", help="Path to the flow JSON file.")
        cmd.add_argument(
            "--strict",
            action="store_true",
            help="Treat unknown node types as errors rather than warnings.",
        )
        if name == "generate":
            cmd.add_argument(
                "--mode",
                default="logic",
                help="Output language: logic, javascript or python (default: logic).",
            )
            cmd.add_argument(
                "--out",
                metavar="DIR",
                default="generated",
                help="Output directory for the generated file (default: generated/).",
            )
            cmd.add_argument(
                "--print",
                dest="print_only",
                action="store_true",
                help="Print generated source to stdout instead of writing a file.",
            )
        else:
            cmd.add_argument(
                "--json",
                dest="as_json",
                action="store_true",
                help="Print the result as JSON.",
            )
    return p


# ── Commands ──────────────────────────────────────────────────────────────────

def _cmd_validate(graph, args) -> int:
    errors = validate(graph)
    if args.as_json:
        print(json.dumps({"valid": not errors, "errors": errors}, ensure_ascii=False, indent=2))
    elif errors:
        for line in errors:
            print(line)
    else:
        print("[blockflow] flow is valid")
    return 1 if errors else 0


def _cmd_run(graph, args) -> int:
    result = Executor(graph).execute()
    if args.as_json:
        print(json.dumps(json_safe(result.to_dict()), ensure_ascii=False, indent=2))
    else:
        for line in result.output:
            print(line)
        for line in result.errors:
            print(line, file=sys.stderr)
    return 0 if result.ok else 1


def _cmd_generate(graph, args, json_path: Path) -> int:
    mode = CodeMode.parse(args.mode)
    if mode is None:
        print(f"[error] Unknown code mode: {args.mode}", file=sys.stderr)
        return 1

    source = generate_code(graph, mode=mode)
    if args.print_only:
        print(source)
        return 0

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / (json_path.stem + _EXTENSIONS[mode])
    out_path.write_text(source + "\n", encoding="utf-8")

    print(f"[blockflow] mode  : {mode.value}")
    print(f"[blockflow] wrote : {out_path}")
    return 0


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    json_path = Path(args.flow_json)
    if not json_path.exists():
        print(f"[error] File not found: {json_path}", file=sys.stderr)
        return 1

    try:
        graph = load_flow(json_path, strict=args.strict)
    except SchemaError as exc:
        print(f"[error] Schema validation failed: {exc}", file=sys.stderr)
        return 1
    logger.debug("Loaded %s: %d nodes, %d edges", json_path, len(graph.nodes), len(graph.edges))

    if args.command == "validate":
        return _cmd_validate(graph, args)
    if args.command == "run":
        return _cmd_run(graph, args)
    return _cmd_generate(graph, args, json_path)


if __name__ == "__main__":
    sys.exit(main())
