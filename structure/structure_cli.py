"""
Command line inspection of structured documents.

    python -m structure FILE [--select a.b.0] [--format yaml] [--to json] [--trace]

Loads FILE through the serialization bridge, optionally narrows it with a
dotted selector path and prints the debug form of the result (or renders
it with --to).
"""
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from structure.structure_interpreter import Interpreter, InterpreterSettings
from structure.structure_printer import Printer
from structure.structure_selector import Selector
from structure.structure_serialize import deserialize, detect_format, serialize


def parse_path(path: str) -> Selector:
    """`a.b.0` -> `Selector.get('a').get('b').get_item(0)`."""
    selector = Selector.identity()
    for segment in path.split("."):
        if not segment:
            continue
        if segment.lstrip("-").isdigit():
            selector = selector.get_item(int(segment))
        elif segment.startswith("@"):
            selector = selector.get_attr(segment[1:])
        else:
            selector = selector.get(segment)
    return selector


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="structure", description=__doc__.strip().splitlines()[0])
    p.add_argument("file", help="document to load (JSON, YAML, TOML or XML)")
    p.add_argument("--select", metavar="PATH", help="dotted path to select, e.g. a.b.0 or @tag")
    p.add_argument("--format", dest="fmt", choices=["json", "yaml", "toml", "xml"],
                   help="input format; guessed from the file suffix and contents when omitted")
    p.add_argument("--to", choices=["json", "yaml", "toml", "xml"],
                   help="render the result in this format instead of its debug form")
    p.add_argument("--trace", action="store_true", help="log every evaluation step to stderr")
    return p


def run(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = InterpreterSettings.from_env()
    if args.trace:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr)
        settings = replace(settings, trace=True)

    path = Path(args.file)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 1

    fmt = args.fmt or detect_format(path.suffix.lstrip("."))
    document = deserialize(data, fmt=fmt)

    result = document
    if args.select:
        interpreter = Interpreter.from_any(document, settings=settings)
        result = parse_path(args.select).evaluate(interpreter)

    if args.to:
        print(serialize(result, fmt=args.to))
    else:
        print(Printer().pformat(result))
    return 0


def main() -> None:
    raise SystemExit(run())
