#!/usr/bin/env python3
"""mermaid-sync CLI - convert, normalize and validate diagrams, or run the server."""

import argparse
import json
import sys

from pydantic import ValidationError

from .core import Dialect, GraphModel, parse, serialize, validate_graph, validation_summary


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _error(message):
    _json_out({"status": "error", "error": message}, code=1)


def _read_input(path):
    """Read from a file path, or stdin when the path is '-'."""
    if path == "-":
        return sys.stdin.read()
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        _error(f"Cannot read {path}: {e.strerror}")


def _load_graph(path):
    raw = _read_input(path)
    try:
        return GraphModel.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        _error(f"Invalid JSON: {e}")
    except ValidationError as e:
        _error(f"Invalid graph: {e.errors()[0]['msg']}")


# ── Conversion ───────────────────────────────────────────────────────────────

def cmd_parse(args):
    graph = parse(_read_input(args.input), args.dialect)
    _json_out({"status": "ok", "graph": graph.to_json_dict()})


def cmd_serialize(args):
    graph = _load_graph(args.input)
    dialect = args.dialect or graph.dialect
    _json_out({"status": "ok", "text": serialize(graph, dialect)})


def cmd_normalize(args):
    dialect = Dialect.coerce(args.dialect)
    text = serialize(parse(_read_input(args.input), dialect), dialect)
    if args.raw:
        sys.stdout.write(text)
        sys.exit(0)
    _json_out({"status": "ok", "text": text})


# ── Analysis ─────────────────────────────────────────────────────────────────

def cmd_validate(args):
    if args.graph:
        graph = _load_graph(args.input)
    else:
        graph = parse(_read_input(args.input), args.dialect)
    issues = validate_graph(graph)
    _json_out({
        "status": "ok",
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues)
    })


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    from .backend.config import get_settings
    from .backend.main import run

    settings = get_settings()
    overrides = {k: v for k, v in {"host": args.host, "port": args.port}.items() if v is not None}
    run(settings.model_copy(update=overrides))


# ── Main ─────────────────────────────────────────────────────────────────────

def _dialect_arg(p, default="flowchart"):
    p.add_argument("--dialect", default=default, choices=[d.value for d in Dialect])


def main(argv=None):
    parser = argparse.ArgumentParser(description="mermaid-sync CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse", help="diagram text -> graph JSON")
    p.add_argument("--input", "-i", default="-")
    _dialect_arg(p)

    p = sub.add_parser("serialize", help="graph JSON -> diagram text")
    p.add_argument("--input", "-i", default="-")
    _dialect_arg(p, default=None)

    p = sub.add_parser("normalize", help="diagram text -> normalized diagram text")
    p.add_argument("--input", "-i", default="-")
    p.add_argument("--raw", action="store_true", help="print the text instead of JSON")
    _dialect_arg(p)

    p = sub.add_parser("validate", help="check a diagram for structural issues")
    p.add_argument("--input", "-i", default="-")
    p.add_argument("--graph", action="store_true", help="input is graph JSON rather than text")
    _dialect_arg(p)

    p = sub.add_parser("serve", help="run the API server")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)

    args = parser.parse_args(argv)

    cmd_map = {
        "parse": cmd_parse,
        "serialize": cmd_serialize,
        "normalize": cmd_normalize,
        "validate": cmd_validate,
        "serve": cmd_serve,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
