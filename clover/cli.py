"""Clover CLI — compile a .clv file to JavaScript."""

from __future__ import annotations

import json
import sys

from .ast import to_dict
from .backend.javascript import emit_javascript
from .parse import ParseError, parse_module
from .resolve import ResolveError, resolve_module
from .tokens import TokenizeError

PHASES: list[str] = ["parse", "resolve"]

USAGE: str = """\
clover [OPTIONS] [INPUT] [-o OUTPUT]

Compile a Clover (.clv) program to JavaScript. Reads stdin when INPUT is omitted.

Options:
  --stop-at PHASE     Stop after phase: parse, resolve
  -o, --output FILE   Write output to FILE instead of stdout
  --help              Show this help message
"""


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)
    return (source, 0)


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w") as f:
                f.write(output)
        except OSError:
            print("error: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    sys.stdout.write(output)
    return 0


def run_pipeline(source: str, stop_at: str | None) -> tuple[int, str]:
    """Run the compilation pipeline. Returns (exit_code, output)."""
    try:
        module = parse_module(source)
    except (TokenizeError, ParseError) as e:
        print("error: " + str(e), file=sys.stderr)
        return (1, "")
    if stop_at == "parse":
        return (0, json.dumps(to_dict(module), indent=2) + "\n")
    try:
        resolution = resolve_module(module)
    except ResolveError as e:
        print("error: " + str(e), file=sys.stderr)
        return (1, "")
    if stop_at == "resolve":
        return (0, json.dumps(resolution.to_dict(), indent=2) + "\n")
    return (0, emit_javascript(module))


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    input_file: str | None = None
    output_file: str | None = None
    stop_at: str | None = None
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--stop-at":
            if i + 1 >= len(args):
                print("error: --stop-at requires an argument", file=sys.stderr)
                return 2
            stop_at = args[i + 1]
            if stop_at not in PHASES:
                print(
                    "error: unknown phase '" + stop_at + "' (expected: "
                    + ", ".join(PHASES) + ")",
                    file=sys.stderr,
                )
                return 2
            i += 2
        elif arg == "-o" or arg == "--output":
            if i + 1 >= len(args):
                print("error: " + arg + " requires an argument", file=sys.stderr)
                return 2
            output_file = args[i + 1]
            i += 2
        elif arg.startswith("-"):
            print("error: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif input_file is None:
            input_file = arg
            i += 1
        else:
            print("error: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2

    source, err = read_source(input_file)
    if err != 0:
        return err
    exit_code, output = run_pipeline(source, stop_at)
    if exit_code != 0:
        return exit_code
    return write_output(output, output_file)


if __name__ == "__main__":
    sys.exit(main())
