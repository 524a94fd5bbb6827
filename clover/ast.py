"""Clover AST — parse-time node definitions."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass


# ============================================================
# TYPES (parse-time, unresolved)
# ============================================================


@dataclass
class TypeName:
    """Qualified type name with optional generic parameters: vec<T>, a.B."""

    name: list[str]
    parameters: list[TypeName]


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Param:
    """Function parameter: ref? name: Type."""

    name: str
    typ: TypeName
    is_by_reference: bool


@dataclass
class FieldDecl:
    """Struct or variant field: name: Type."""

    name: str
    typ: TypeName


@dataclass
class FnDecl:
    """fn Name(params): RetType { body }."""

    name: str
    params: list[Param]
    ret: TypeName | None
    body: list[Stmt]


@dataclass
class StructDecl:
    """struct Name { fields }."""

    name: str
    fields: list[FieldDecl]


@dataclass
class Variant:
    """Enum variant, optionally carrying fields."""

    name: str
    fields: list[FieldDecl]


@dataclass
class EnumDecl:
    """enum Name { Variant1 { fields }, Variant2 }."""

    name: str
    variants: list[Variant]


Decl = FnDecl | StructDecl | EnumDecl


@dataclass
class Module:
    """Top-level module — list of declarations in source order."""

    decls: list[Decl]


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class LetStmt:
    """let name = expr;"""

    name: str
    value: Expr


@dataclass
class IfStmt:
    """if (cond) stmt else stmt."""

    cond: Expr
    then_stmt: Stmt
    else_stmt: Stmt | None


@dataclass
class WhileStmt:
    """while (cond) stmt."""

    cond: Expr
    body: Stmt


@dataclass
class BlockStmt:
    """{ stmts }."""

    body: list[Stmt]


@dataclass
class ReturnStmt:
    """return expr;"""

    value: Expr


@dataclass
class ExprStmt:
    """Bare expression as statement."""

    expr: Expr


Stmt = LetStmt | IfStmt | WhileStmt | BlockStmt | ReturnStmt | ExprStmt


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class BoolLit:
    """true or false."""

    value: bool


@dataclass
class CharLit:
    """Character literal with escapes resolved."""

    value: str


@dataclass
class StringLit:
    """String literal with escapes resolved."""

    value: str


@dataclass
class NumberLit:
    """Integer literal."""

    value: int
    raw: str


@dataclass
class UnaryOp:
    """op operand, op is '-' or '!'."""

    op: str
    operand: Expr


@dataclass
class IdentityTest:
    """operand is Variant / operand isnt Variant."""

    operand: Expr
    variant: list[str]
    is_negative: bool


@dataclass
class QualifiedName:
    """a.b.c field-access chain."""

    name: list[str]


@dataclass
class Arg:
    """Call argument, optionally marked ref."""

    value: Expr
    is_by_reference: bool


@dataclass
class Call:
    """func(args)."""

    func: list[str]
    args: list[Arg]


@dataclass
class CollectionLit:
    """vec[elements] or set[elements]."""

    kind: str
    elements: list[Expr]


@dataclass
class ObjectField:
    """name: value, or shorthand name."""

    name: str
    value: Expr | None
    is_shorthand: bool


@dataclass
class ObjectLit:
    """Type { fields } or { fields }."""

    type_name: list[str] | None
    fields: list[ObjectField]


@dataclass
class BinaryOp:
    """left op right, including assignment."""

    op: str
    left: Expr
    right: Expr


@dataclass
class CollectionAccess:
    """collection[key]."""

    collection: list[str]
    key: Expr


@dataclass
class InPlaceAssign:
    """++x, x++, --x, x--."""

    op: str
    target: Expr
    is_prefix: bool


Expr = (
    BoolLit
    | CharLit
    | StringLit
    | NumberLit
    | UnaryOp
    | IdentityTest
    | QualifiedName
    | Call
    | CollectionLit
    | ObjectLit
    | BinaryOp
    | CollectionAccess
    | InPlaceAssign
)


# ============================================================
# SERIALIZATION
# ============================================================


def to_dict(node: object) -> object:
    """Render an AST node as plain dicts and lists, tagging each node with its kind."""
    if isinstance(node, list):
        return [to_dict(item) for item in node]
    if dataclasses.is_dataclass(node) and not isinstance(node, type):
        result: dict[str, object] = {"kind": type(node).__name__}
        for f in dataclasses.fields(node):
            result[f.name] = to_dict(getattr(node, f.name))
        return result
    return node
