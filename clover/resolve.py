"""Clover resolver — builds the type table and validates every declaration and body.

Resolution runs three passes over the module:

1. name/id assignment for every struct, enum, variant and function;
2. signature resolution (fields, arguments, return types), for the whole module;
3. body analysis, with lexically scoped lookup and best-effort type inference.

Because every signature is resolved before any body is analysed, declarations
may reference each other regardless of their order in the source.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from .ast import (
    BinaryOp,
    BlockStmt,
    BoolLit,
    Call,
    CharLit,
    CollectionAccess,
    CollectionLit,
    EnumDecl,
    Expr,
    ExprStmt,
    FieldDecl,
    FnDecl,
    IdentityTest,
    IfStmt,
    InPlaceAssign,
    LetStmt,
    Module,
    NumberLit,
    ObjectLit,
    QualifiedName,
    ReturnStmt,
    Stmt,
    StringLit,
    StructDecl,
    TypeName,
    UnaryOp,
    WhileStmt,
)
from .intrinsics import INTRINSICS, lookup_intrinsic
from .types import (
    BUILTIN_TYPES,
    UNKNOWN,
    BuiltinType,
    EnumType,
    EnumVariantType,
    FunctionArgument,
    FunctionSymbol,
    FunctionType,
    Inferred,
    Scope,
    StructType,
    Symbol,
    TypeEntry,
    TypeRef,
    TypeSymbol,
    ValueReference,
    Variable,
    is_unknown,
    same_type,
)


# ============================================================
# ERRORS
# ============================================================


class ResolveError(Exception):
    """Base class for name and type errors found during resolution."""


class DuplicateNameError(ResolveError):
    """Two declarations or fields share a name within one namespace."""


class UnknownNameError(ResolveError):
    """A lookup walked the whole scope chain, or a struct's fields, without success."""


class ArityError(ResolveError):
    """Wrong generic-parameter count or wrong call argument count."""


class TypeMismatchError(ResolveError):
    """An inferred type differs from the required one."""


# ============================================================
# RESOLUTION RESULT
# ============================================================


@dataclass
class Resolution:
    """Read-only output of a completed resolution."""

    types: dict[int, TypeEntry]
    module_scope: Scope
    builtins: dict[str, TypeRef]

    def describe(self, t: Inferred | None) -> str:
        """Human-readable name for a resolved type."""
        if is_unknown(t):
            return "unknown"
        entry = self.types[t.id]
        name = getattr(entry, "name", "#" + str(t.id))
        if t.parameters:
            return name + "<" + ", ".join(self.describe(p) for p in t.parameters) + ">"
        return name

    def _fields_to_dict(self, fields: dict[str, TypeRef]) -> dict[str, str]:
        return {name: self.describe(t) for name, t in fields.items()}

    def to_dict(self) -> dict[str, object]:
        """Summarise user declarations by kind, in declaration order."""
        structs: dict[str, object] = {}
        enums: dict[str, object] = {}
        variants: dict[str, object] = {}
        functions: dict[str, object] = {}
        for type_id, entry in self.types.items():
            match entry:
                case StructType(name=name, fields=fields):
                    structs[name] = {"id": type_id, "fields": self._fields_to_dict(fields)}
                case EnumType(name=name, variant_ids=variant_ids):
                    enums[name] = {
                        "id": type_id,
                        "variants": [self.types[v].name for v in variant_ids],
                    }
                case EnumVariantType(name=name, enum_id=enum_id, fields=fields):
                    variants[name] = {
                        "id": type_id,
                        "enum": self.types[enum_id].name,
                        "fields": self._fields_to_dict(fields),
                    }
                case FunctionType(name=name, argument_ids=argument_ids, return_type=ret):
                    arguments: list[object] = []
                    for arg_id in argument_ids:
                        arg = self.types[arg_id]
                        arguments.append(
                            {
                                "name": arg.name,
                                "type": self.describe(arg.type),
                                "ref": arg.is_by_reference,
                            }
                        )
                    functions[name] = {
                        "id": type_id,
                        "arguments": arguments,
                        "return": None if ret is None else self.describe(ret),
                        "locals": {},
                    }
        for entry in self.types.values():
            if isinstance(entry, Variable) and entry.function_id is not None:
                fn = self.types[entry.function_id]
                functions[fn.name]["locals"][entry.name] = self.describe(entry.type)
        return {
            "structs": structs,
            "enums": enums,
            "variants": variants,
            "functions": functions,
        }


# ============================================================
# RESOLVER
# ============================================================


class Resolver:
    """Per-invocation resolver context: id counter, type table and scopes."""

    def __init__(self) -> None:
        self.next_id: int = 1
        self.types: dict[int, TypeEntry] = {}
        self.builtins: dict[str, TypeRef] = {}
        self.global_scope: Scope = Scope()
        self.current_fn: FunctionType | None = None
        self.current_fn_id: int | None = None

    def unique_id(self) -> int:
        type_id = self.next_id
        self.next_id += 1
        return type_id

    def resolve(self, module: Module) -> Resolution:
        """Run all three passes; raises a ResolveError on the first problem."""
        self.next_id = 1
        self.types = {}
        self.builtins = {}
        self.global_scope = Scope()
        for builtin in BUILTIN_TYPES:
            type_id = self.unique_id()
            self.types[type_id] = dataclasses.replace(builtin)
            self.global_scope.bind(
                builtin.name, TypeSymbol(type_id, builtin.parameter_count)
            )
            self.builtins[builtin.name] = TypeRef(type_id)

        module_scope = self.global_scope.child()
        decl_ids = self.collect_names(module, module_scope)
        self.resolve_signatures(module, decl_ids, module_scope)
        for index, decl in enumerate(module.decls):
            if isinstance(decl, FnDecl):
                self.analyze_function(decl, decl_ids[index][0], module_scope)
        return Resolution(self.types, module_scope, self.builtins)

    # ── Pass 1: Names and ids ─────────────────────────────────

    def _declare(self, scope: Scope, name: str, symbol: Symbol) -> None:
        if name in INTRINSICS:
            raise DuplicateNameError("cannot use reserved name '" + name + "'")
        if name in scope.names:
            raise DuplicateNameError('duplicate name "' + name + '"')
        scope.bind(name, symbol)

    def collect_names(
        self, module: Module, scope: Scope
    ) -> dict[int, tuple[int, list[int]]]:
        """Assign ids to every top-level name. Returns decl index → (id, variant ids)."""
        decl_ids: dict[int, tuple[int, list[int]]] = {}
        for index, decl in enumerate(module.decls):
            match decl:
                case EnumDecl():
                    enum_id = self.unique_id()
                    self._declare(scope, decl.name, TypeSymbol(enum_id))
                    variant_ids: list[int] = []
                    for variant in decl.variants:
                        variant_id = self.unique_id()
                        self._declare(scope, variant.name, TypeSymbol(variant_id))
                        variant_ids.append(variant_id)
                    decl_ids[index] = (enum_id, variant_ids)
                case StructDecl():
                    struct_id = self.unique_id()
                    self._declare(scope, decl.name, TypeSymbol(struct_id))
                    decl_ids[index] = (struct_id, [])
                case FnDecl():
                    fn_id = self.unique_id()
                    self._declare(scope, decl.name, FunctionSymbol(fn_id))
                    decl_ids[index] = (fn_id, [])
        return decl_ids

    # ── Pass 2: Signatures ────────────────────────────────────

    def resolve_fields(
        self, fields: list[FieldDecl], owner: str, scope: Scope
    ) -> dict[str, TypeRef]:
        resolved: dict[str, TypeRef] = {}
        for f in fields:
            if f.name in resolved:
                raise DuplicateNameError(
                    'duplicate field name "' + f.name + '" in ' + owner
                )
            resolved[f.name] = self.resolve_type(f.typ, scope)
        return resolved

    def resolve_signatures(
        self,
        module: Module,
        decl_ids: dict[int, tuple[int, list[int]]],
        scope: Scope,
    ) -> None:
        for index, decl in enumerate(module.decls):
            type_id, variant_ids = decl_ids[index]
            match decl:
                case EnumDecl():
                    for variant, variant_id in zip(decl.variants, variant_ids):
                        fields = self.resolve_fields(
                            variant.fields, 'enum variant "' + variant.name + '"', scope
                        )
                        self.types[variant_id] = EnumVariantType(
                            variant.name, type_id, fields
                        )
                    self.types[type_id] = EnumType(decl.name, list(variant_ids))
                case StructDecl():
                    fields = self.resolve_fields(
                        decl.fields, 'struct "' + decl.name + '"', scope
                    )
                    self.types[type_id] = StructType(decl.name, fields)
                case FnDecl():
                    argument_ids: list[int] = []
                    for param in decl.params:
                        arg_id = self.unique_id()
                        argument_ids.append(arg_id)
                        self.types[arg_id] = FunctionArgument(
                            param.name,
                            self.resolve_type(param.typ, scope),
                            param.is_by_reference,
                        )
                    ret: TypeRef | None = None
                    if decl.ret is not None:
                        ret = self.resolve_type(decl.ret, scope)
                    self.types[type_id] = FunctionType(decl.name, argument_ids, ret)

    # ── Pass 3: Bodies ────────────────────────────────────────

    def analyze_function(self, decl: FnDecl, fn_id: int, module_scope: Scope) -> None:
        fn = self.types[fn_id]
        assert isinstance(fn, FunctionType)
        scope = module_scope.child()
        for arg_id in fn.argument_ids:
            arg = self.types[arg_id]
            scope.bind(arg.name, ValueReference(arg_id, arg.type))
        self.current_fn = fn
        self.current_fn_id = fn_id
        for stmt in decl.body:
            self.analyze_stmt(stmt, scope)
        self.current_fn = None
        self.current_fn_id = None

    def require_bool(self, cond: Expr, scope: Scope, context: str) -> None:
        t = self.infer(cond, scope)
        if not same_type(t, self.builtins["bool"]):
            raise TypeMismatchError(
                context + " condition must be bool, got " + self._describe(t)
            )

    def analyze_stmt(self, stmt: Stmt, scope: Scope) -> None:
        match stmt:
            case IfStmt(cond=cond, then_stmt=then_stmt, else_stmt=else_stmt):
                self.require_bool(cond, scope, "if")
                self.analyze_stmt(then_stmt, scope.child())
                if else_stmt is not None:
                    self.analyze_stmt(else_stmt, scope.child())
            case WhileStmt(cond=cond, body=body):
                self.require_bool(cond, scope, "while")
                self.analyze_stmt(body, scope.child())
            case LetStmt(name=name, value=value):
                t = self.infer(value, scope)
                var_id = self.unique_id()
                self.types[var_id] = Variable(name, t, self.current_fn_id)
                scope.bind(name, ValueReference(var_id, t))
            case BlockStmt(body=body):
                inner = scope.child()
                for s in body:
                    self.analyze_stmt(s, inner)
            case ReturnStmt(value=value):
                t = self.infer(value, scope)
                expected = self.current_fn.return_type if self.current_fn else None
                if expected is not None and not same_type(t, expected):
                    raise TypeMismatchError(
                        "function '"
                        + self.current_fn.name
                        + "' returns "
                        + self._describe(expected)
                        + ", got "
                        + self._describe(t)
                    )
            case ExprStmt(expr=expr):
                self.infer(expr, scope)

    def infer(self, expr: Expr, scope: Scope) -> Inferred:
        """Infer the type of an expression, checking the forms that have a typing rule."""
        match expr:
            case BoolLit():
                return self.builtins["bool"]
            case CharLit():
                return self.builtins["char"]
            case StringLit():
                return self.builtins["str"]
            case UnaryOp(op="-", operand=operand):
                t = self.infer(operand, scope)
                if is_unknown(t):
                    return t
                entry = self.types[t.id]
                if not (
                    isinstance(entry, BuiltinType) and entry.is_number and entry.is_signed
                ):
                    raise TypeMismatchError(
                        "unary '-' needs a signed number, got " + self._describe(t)
                    )
                return t
            case UnaryOp(op="!", operand=operand):
                t = self.infer(operand, scope)
                if not same_type(t, self.builtins["bool"]):
                    raise TypeMismatchError("'!' needs a bool, got " + self._describe(t))
                return t
            case UnaryOp(op=op):
                raise ResolveError('invalid op "' + op + '"')
            case IdentityTest(operand=operand, variant=variant):
                t = self.infer(operand, scope)
                variant_ref = self.resolve_type(TypeName(variant, []), scope)
                entry = self.types[variant_ref.id]
                if not isinstance(entry, EnumVariantType):
                    raise TypeMismatchError(
                        "'" + ".".join(variant) + "' is not an enum variant"
                    )
                if not is_unknown(t) and entry.enum_id != t.id:
                    raise TypeMismatchError(
                        "variant '"
                        + entry.name
                        + "' does not belong to "
                        + self._describe(t)
                    )
                return self.builtins["bool"]
            case QualifiedName(name=name):
                symbol = self.resolve_qualified_name(name, scope)
                if not isinstance(symbol, ValueReference):
                    raise TypeMismatchError("'" + ".".join(name) + "' is not a value")
                return symbol.type
            case Call():
                return self.infer_call(expr, scope)
            case CollectionLit(kind=kind, elements=elements):
                for element in elements:
                    self.infer(element, scope)
                return self.builtins[kind]
            case ObjectLit(type_name=type_name, fields=fields):
                if type_name is not None:
                    symbol = self.resolve_qualified_name(type_name, scope)
                    if not isinstance(symbol, TypeSymbol):
                        raise TypeMismatchError(
                            "'" + ".".join(type_name) + "' is not a type"
                        )
                for f in fields:
                    if f.value is None:
                        self.infer(QualifiedName([f.name]), scope)
                    else:
                        self.infer(f.value, scope)
                return UNKNOWN
            case BinaryOp(left=left, right=right):
                self.infer(left, scope)
                self.infer(right, scope)
                return UNKNOWN
            case CollectionAccess(collection=collection, key=key):
                self.infer(QualifiedName(collection), scope)
                self.infer(key, scope)
                return UNKNOWN
            case InPlaceAssign(target=target):
                self.infer(target, scope)
                return UNKNOWN
            case NumberLit():
                return UNKNOWN
        return UNKNOWN

    def infer_call(self, call: Call, scope: Scope) -> Inferred:
        intrinsic = lookup_intrinsic(call.func)
        if intrinsic is not None:
            if len(call.args) != intrinsic.arity:
                raise ArityError(
                    "'"
                    + intrinsic.name
                    + "' expects "
                    + str(intrinsic.arity)
                    + " argument(s), got "
                    + str(len(call.args))
                )
            for arg in call.args:
                self.infer(arg.value, scope)
            if intrinsic.result is None:
                return UNKNOWN
            return self.builtins[intrinsic.result]

        callee = ".".join(call.func)
        symbol = self.resolve_qualified_name(call.func, scope)
        if not isinstance(symbol, FunctionSymbol):
            raise TypeMismatchError("'" + callee + "' is not a function")
        fn = self.types[symbol.id]
        assert isinstance(fn, FunctionType)
        if len(fn.argument_ids) != len(call.args):
            raise ArityError(
                "'"
                + callee
                + "' expects "
                + str(len(fn.argument_ids))
                + " argument(s), got "
                + str(len(call.args))
            )
        for i, (arg, arg_id) in enumerate(zip(call.args, fn.argument_ids)):
            t = self.infer(arg.value, scope)
            declared = self.types[arg_id]
            assert isinstance(declared, FunctionArgument)
            if not same_type(t, declared.type):
                raise TypeMismatchError(
                    "argument "
                    + str(i + 1)
                    + " of '"
                    + callee
                    + "' must be "
                    + self._describe(declared.type)
                    + ", got "
                    + self._describe(t)
                )
        if fn.return_type is None:
            return UNKNOWN
        return fn.return_type

    # ── Lookup ────────────────────────────────────────────────

    def lookup(self, name: str, scope: Scope) -> Symbol:
        symbol = scope.lookup(name)
        if symbol is None:
            raise UnknownNameError('unknown name "' + name + '"')
        return symbol

    def resolve_type(self, type_name: TypeName, scope: Scope) -> TypeRef:
        """Resolve a parse-time type name, enforcing the declared parameter count."""
        symbol = self.resolve_qualified_name(type_name.name, scope)
        display = ".".join(type_name.name)
        if not isinstance(symbol, TypeSymbol):
            raise TypeMismatchError("'" + display + "' is not a type")
        if len(type_name.parameters) != symbol.parameter_count:
            raise ArityError(
                "expected "
                + str(symbol.parameter_count)
                + ' type parameter(s) for "'
                + display
                + '"'
            )
        parameters = tuple(self.resolve_type(p, scope) for p in type_name.parameters)
        return TypeRef(symbol.id, parameters)

    def resolve_qualified_name(self, name: list[str], scope: Scope) -> Symbol:
        """Resolve the head through the scope chain, then walk struct fields."""
        symbol = self.lookup(name[0], scope)
        for i in range(1, len(name)):
            prefix = ".".join(name[:i])
            if not isinstance(symbol, ValueReference):
                raise TypeMismatchError("'" + prefix + "' is not a value")
            if is_unknown(symbol.type):
                symbol = ValueReference(None, UNKNOWN)
                continue
            entry = self.types[symbol.type.id]
            if not isinstance(entry, StructType):
                raise TypeMismatchError(
                    "'" + prefix + "' is a " + self._describe(symbol.type) + ", not a struct"
                )
            if name[i] not in entry.fields:
                raise UnknownNameError(
                    'unknown field "' + name[i] + '" in struct "' + entry.name + '"'
                )
            symbol = ValueReference(None, entry.fields[name[i]])
        return symbol

    def _describe(self, t: Inferred | None) -> str:
        return Resolution(self.types, self.global_scope, self.builtins).describe(t)


def resolve_module(module: Module) -> Resolution:
    """Resolve a parsed module with a fresh resolver context."""
    return Resolver().resolve(module)
