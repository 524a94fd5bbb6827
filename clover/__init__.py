"""Clover compiler — public API."""

from __future__ import annotations

from .ast import Module
from .backend.javascript import emit_javascript
from .parse import ParseError as ParseError, parse_module
from .resolve import Resolution, ResolveError as ResolveError, resolve_module
from .tokens import TokenizeError as TokenizeError

__version__ = "0.1.0"


def parse(source: str) -> Module:
    """Parse Clover source code into a Module AST."""
    return parse_module(source)


def resolve(source: str) -> Resolution:
    """Parse and resolve Clover source. Raises on the first error."""
    return resolve_module(parse(source))


def compile_source(source: str) -> str:
    """Parse, resolve and generate JavaScript for Clover source."""
    module = parse(source)
    resolve_module(module)
    return emit_javascript(module)
