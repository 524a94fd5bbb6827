"""Resolved type representation: type-table entries, symbols and scopes."""

from __future__ import annotations

from dataclasses import dataclass, field


# ============================================================
# TYPE REFERENCES
# ============================================================


@dataclass(frozen=True)
class TypeRef:
    """A type-table id plus its resolved generic parameters."""

    id: int
    parameters: tuple[TypeRef, ...] = ()


@dataclass(frozen=True)
class UnknownType:
    """Inference result for expression forms without a typing rule."""


UNKNOWN: UnknownType = UnknownType()

Inferred = TypeRef | UnknownType


def is_unknown(t: Inferred | None) -> bool:
    return t is None or isinstance(t, UnknownType)


def same_type(a: Inferred, b: Inferred | None) -> bool:
    """Id equality, with UNKNOWN on either side always matching."""
    if is_unknown(a) or is_unknown(b):
        return True
    return a.id == b.id


# ============================================================
# TYPE-TABLE ENTRIES
# ============================================================


@dataclass
class BuiltinType:
    name: str
    parameter_count: int = 0
    is_number: bool = False
    is_signed: bool = False


@dataclass
class StructType:
    name: str
    fields: dict[str, TypeRef] = field(default_factory=dict)


@dataclass
class EnumType:
    name: str
    variant_ids: list[int] = field(default_factory=list)


@dataclass
class EnumVariantType:
    name: str
    enum_id: int
    fields: dict[str, TypeRef] = field(default_factory=dict)


@dataclass
class FunctionType:
    name: str
    argument_ids: list[int] = field(default_factory=list)
    return_type: TypeRef | None = None


@dataclass
class FunctionArgument:
    name: str
    type: TypeRef
    is_by_reference: bool


@dataclass
class Variable:
    name: str
    type: Inferred
    function_id: int | None = None


TypeEntry = (
    BuiltinType
    | StructType
    | EnumType
    | EnumVariantType
    | FunctionType
    | FunctionArgument
    | Variable
)


# Built-in types, registered in this order in the outermost scope
BUILTIN_TYPES: list[BuiltinType] = [
    BuiltinType("bool"),
    BuiltinType("vec", parameter_count=1),
    BuiltinType("set"),
    BuiltinType("str"),
    BuiltinType("char"),
    BuiltinType("i32", is_number=True, is_signed=True),
    BuiltinType("u32", is_number=True),
]


# ============================================================
# SYMBOLS
# ============================================================


@dataclass
class TypeSymbol:
    id: int
    parameter_count: int = 0


@dataclass
class FunctionSymbol:
    id: int


@dataclass
class ValueReference:
    """A value: argument, local variable, or a field reached through one.

    Field projections have no table entry of their own, so id is None.
    """

    id: int | None
    type: Inferred


Symbol = TypeSymbol | FunctionSymbol | ValueReference


# ============================================================
# SCOPES
# ============================================================


class Scope:
    """Name → symbol mapping with a back-reference to the enclosing scope."""

    def __init__(self, parent: Scope | None = None) -> None:
        self.parent: Scope | None = parent
        self.names: dict[str, Symbol] = {}

    def child(self) -> Scope:
        return Scope(self)

    def bind(self, name: str, symbol: Symbol) -> None:
        self.names[name] = symbol

    def lookup(self, name: str) -> Symbol | None:
        """Search innermost-out; None when no scope binds the name."""
        scope: Scope | None = self
        while scope is not None:
            if name in scope.names:
                return scope.names[name]
            scope = scope.parent
        return None
