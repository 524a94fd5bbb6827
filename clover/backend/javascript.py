"""JavaScript backend: Clover AST → CommonJS module source.

The backend reads the AST only. Resolution has already validated the module,
so nothing here consults resolved types; value-passing decisions come from the
callee's declared parameters, looked up by name among the module's functions.
"""

from __future__ import annotations

from clover.ast import (
    Arg,
    BinaryOp,
    BlockStmt,
    BoolLit,
    Call,
    CharLit,
    CollectionAccess,
    CollectionLit,
    Expr,
    ExprStmt,
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
    UnaryOp,
    WhileStmt,
)
from clover.backend.util import Emitter, escape_string
from clover.intrinsics import lookup_intrinsic

HEADER: str = "// GENERATED, DO NOT EDIT"

# Fixed runtime support, emitted once per module
RUNTIME: str = """\
function $clone(v) {
  if (v == null) return v;
  if (typeof v === 'string') return v;
  if (typeof v === 'number') return v;
  if (typeof v === 'function') return v;
  if (typeof v === 'boolean') return v;
  if (Array.isArray(v)) return v.map(a => $clone(a));
  if (v instanceof Set) return new Set([...v].map(a => $clone(a)));
  if (typeof v !== 'object') throw new Error('failed to clone: ' + typeof v);
  const o = {};
  for (const k of Object.keys(v)) {
    o[k] = $clone(v[k]);
  }
  return o;
}

function $access(collection, key) {
  if (typeof collection === 'string') {
    if (key < 0 || key >= collection.length) throw new Error('out of bounds');
    return collection[key];
  }
  if (collection instanceof Set) return collection.has(key);
  throw new Error('invalid collection');
}

function $identity_test(value, type) {
  return value.__type === type;
}
"""

TAG_FIELD: str = "__type"

# Identifiers a binding must not take: JS reserved words and the globals the
# generated code relies on
JS_RESERVED: frozenset[str] = frozenset(
    """
    arguments await break case catch class const continue debugger default
    delete do else enum eval export extends false finally for function if
    implements import in instanceof interface let new null package private
    protected public return static super switch this throw true try typeof
    var void while with yield undefined NaN Infinity
    module require process Error Set Array Object
    """.split()
)


class JsBackend(Emitter):
    """Emit JavaScript code from a Clover module."""

    def __init__(self) -> None:
        super().__init__("  ")
        self.functions: dict[str, FnDecl] = {}
        # Innermost JS block last; each maps a Clover name to its JS identifier
        self.bindings: list[dict[str, str]] = []
        self.renamed: int = 0

    def emit(self, module: Module) -> str:
        """Emit the whole module, runtime helpers included."""
        self.indent = 0
        self.lines = []
        self.functions = {d.name: d for d in module.decls if isinstance(d, FnDecl)}
        self.line(HEADER)
        self.line()
        for func in self.functions.values():
            self._emit_function(func)
            self.line()
        return self.output() + "\n" + RUNTIME

    def _emit_function(self, func: FnDecl) -> None:
        # Function identifiers live in the module scope
        module_scope = {_fn_name(name): _fn_name(name) for name in self.functions}
        self.bindings = [module_scope, {}]
        self.renamed = 0
        params = ", ".join(self._bind(p.name) for p in func.params)
        self.line(f"module.exports.{func.name} = {_fn_name(func.name)};")
        self.line(f"function {_fn_name(func.name)}({params}) {{")
        self.indent += 1
        for stmt in func.body:
            self._emit_stmt(stmt)
        self.indent -= 1
        self.line("}")
        self.bindings = []

    # ── Bindings ─────────────────────────────────────────────

    def _bind(self, name: str) -> str:
        """Bind name in the innermost block, renaming it if JS would reject or shadow it."""
        js_name = name
        if name in JS_RESERVED or self._lookup(name) is not None:
            self.renamed += 1
            js_name = f"{name}${self.renamed}"
        self.bindings[-1][name] = js_name
        return js_name

    def _lookup(self, name: str) -> str | None:
        for scope in reversed(self.bindings):
            if name in scope:
                return scope[name]
        return None

    def _name(self, name: list[str]) -> str:
        head = self._lookup(name[0]) or name[0]
        return ".".join([head, *name[1:]])

    # ── Statements ───────────────────────────────────────────

    def _emit_body(self, stmt: Stmt) -> None:
        """Emit a branch or loop body inside braces that the caller opened."""
        self.indent += 1
        self.bindings.append({})
        if isinstance(stmt, BlockStmt):
            for s in stmt.body:
                self._emit_stmt(s)
        else:
            self._emit_stmt(stmt)
        self.bindings.pop()
        self.indent -= 1

    def _emit_stmt(self, stmt: Stmt) -> None:
        match stmt:
            case LetStmt(name=name, value=value):
                # The initializer still sees the binding being shadowed
                code = self._expr(value)
                self.line(f"let {self._bind(name)} = {code};")
            case ExprStmt(expr=expr):
                code = self._expr(expr)
                # A leading '{' would open a block statement
                if code.startswith("{"):
                    code = f"({code})"
                self.line(f"{code};")
            case ReturnStmt(value=value):
                self.line(f"return {self._expr(value)};")
            case BlockStmt(body=body):
                self.line("{")
                self.indent += 1
                self.bindings.append({})
                for s in body:
                    self._emit_stmt(s)
                self.bindings.pop()
                self.indent -= 1
                self.line("}")
            case WhileStmt(cond=cond, body=body):
                self.line(f"while ({self._expr(cond)}) {{")
                self._emit_body(body)
                self.line("}")
            case IfStmt():
                self.line(f"if ({self._expr(stmt.cond)}) {{")
                self._emit_if_tail(stmt)

    def _emit_if_tail(self, stmt: IfStmt) -> None:
        self._emit_body(stmt.then_stmt)
        else_stmt = stmt.else_stmt
        if isinstance(else_stmt, IfStmt):
            self.line(f"}} else if ({self._expr(else_stmt.cond)}) {{")
            self._emit_if_tail(else_stmt)
            return
        if else_stmt is not None:
            self.line("} else {")
            self._emit_body(else_stmt)
        self.line("}")

    # ── Expressions ──────────────────────────────────────────

    def _expr(self, expr: Expr) -> str:
        match expr:
            case BoolLit(value=value):
                return "true" if value else "false"
            case CharLit(value=value) | StringLit(value=value):
                return _string_literal(value)
            case NumberLit(raw=raw):
                return raw
            case QualifiedName(name=name):
                return self._name(name)
            case UnaryOp(op=op, operand=operand):
                inner = self._expr(operand)
                if isinstance(operand, UnaryOp) or (
                    isinstance(operand, InPlaceAssign) and operand.is_prefix
                ):
                    inner = f"({inner})"
                return f"{op}{inner}"
            case InPlaceAssign(op=op, target=target, is_prefix=is_prefix):
                if is_prefix:
                    return f"{op}{self._expr(target)}"
                return f"{self._expr(target)}{op}"
            case BinaryOp(op=op, left=left, right=right):
                return f"({self._expr(left)} {_binary_op(op)} {self._expr(right)})"
            case IdentityTest(operand=operand, variant=variant, is_negative=is_negative):
                tag = _string_literal(".".join(variant))
                test = f"$identity_test({self._expr(operand)}, {tag})"
                return f"!{test}" if is_negative else test
            case CollectionLit(kind=kind, elements=elements):
                items = ", ".join(self._expr(e) for e in elements)
                if kind == "set":
                    return f"new Set([{items}])"
                return f"[{items}]"
            case CollectionAccess(collection=collection, key=key):
                return f"$access({self._name(collection)}, {self._expr(key)})"
            case ObjectLit(type_name=type_name, fields=fields):
                parts: list[str] = []
                for f in fields:
                    if f.value is None:
                        value = self._name([f.name])
                    else:
                        value = self._expr(f.value)
                    parts.append(f"{f.name}: {value}")
                if type_name is not None:
                    parts.append(f"{TAG_FIELD}: {_string_literal('.'.join(type_name))}")
                return "{" + ", ".join(parts) + "}"
            case Call():
                return self._call(expr)
        raise NotImplementedError(f"unhandled expression: {type(expr).__name__}")

    def _call(self, call: Call) -> str:
        intrinsic = lookup_intrinsic(call.func)
        if intrinsic is not None:
            args = [self._expr(a.value) for a in call.args]
            match intrinsic.name:
                case "__has":
                    return f"({args[0]}.has({args[1]}))"
                case "__push":
                    return f"({args[0]}.push({args[1]}))"
                case "__substring":
                    return f"({args[0]}.substring({args[1]}, {args[2]}))"
                case "__read_file":
                    return f"require('fs').readFileSync({args[0]}, 'utf8')"
                case "__write":
                    return f"process.stdout.write({args[0]})"
                case "__die":
                    return f"(() => {{ throw new Error({args[0]}); }})()"
        callee = ".".join(call.func)
        args = [
            self._argument(a, self._passes_by_reference(call, i))
            for i, a in enumerate(call.args)
        ]
        return f"{_fn_name(callee)}({', '.join(args)})"

    def _passes_by_reference(self, call: Call, index: int) -> bool:
        """The callee's declaration decides.

        The call-site marker only matters for callees the module does not declare,
        which resolution rejects; it serves emission from an unresolved AST.
        """
        func = self.functions.get(".".join(call.func))
        if func is not None and index < len(func.params):
            return func.params[index].is_by_reference
        return call.args[index].is_by_reference

    def _argument(self, arg: Arg, by_reference: bool) -> str:
        if by_reference:
            return self._expr(arg.value)
        return f"$clone({self._expr(arg.value)})"


def _fn_name(name: str) -> str:
    return "__" + name


def _binary_op(op: str) -> str:
    if op == "==":
        return "==="
    if op == "!=":
        return "!=="
    return op


def _string_literal(value: str) -> str:
    return f'"{escape_string(value)}"'


def emit_javascript(module: Module) -> str:
    """Emit a resolved Clover module as JavaScript source."""
    return JsBackend().emit(module)
