"""Clover parser — recursive descent, one method per grammar production."""

from __future__ import annotations

from collections.abc import Callable

from .ast import (
    Arg,
    BinaryOp,
    BlockStmt,
    BoolLit,
    Call,
    CharLit,
    CollectionAccess,
    CollectionLit,
    Decl,
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
    ObjectField,
    ObjectLit,
    Param,
    QualifiedName,
    ReturnStmt,
    Stmt,
    StringLit,
    StructDecl,
    TypeName,
    UnaryOp,
    Variant,
    WhileStmt,
)
from .tokens import (
    TK_BOOL,
    TK_CHAR,
    TK_NUMBER,
    TK_OP,
    TK_STRING,
    TokenStream,
)

# Keywords that name a generic container in type position
CONTAINER_TYPES: set[str] = {"vec", "set", "dict"}

# Keywords that open a collection literal in expression position
COLLECTION_KINDS: set[str] = {"vec", "set"}

SUM_OPS: frozenset[str] = frozenset({"+", "-"})
COMPARE_OPS: frozenset[str] = frozenset({"<", "<=", ">", ">="})
EQUALITY_OPS: frozenset[str] = frozenset({"==", "!="})
AND_OPS: frozenset[str] = frozenset({"&&"})
OR_OPS: frozenset[str] = frozenset({"||"})

MUTATION_OPS: set[str] = {"++", "--"}


class ParseError(Exception):
    """Parse error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


def _left_associative(
    operand: Callable[[Parser], Expr], operators: frozenset[str]
) -> Callable[[Parser], Expr]:
    """Build a precedence level: operand ( op operand )*, folded to the left."""

    def parse_level(self: Parser) -> Expr:
        left = operand(self)
        while self.stream.token.type == TK_OP and self.stream.token.value in operators:
            op = self.stream.advance().value
            right = operand(self)
            left = BinaryOp(op, left, right)
        return left

    return parse_level


class Parser:
    """Recursive descent parser for Clover."""

    def __init__(self, stream: TokenStream):
        self.stream: TokenStream = stream

    # ── Helpers ──────────────────────────────────────────────

    def at(self, op: str) -> bool:
        return self.stream.at_operator(op)

    def at_keyword(self, keyword: str) -> bool:
        return self.stream.at_keyword(keyword)

    def expect(self, op: str) -> None:
        if not self.stream.at_operator(op):
            raise self.error("expected '" + op + "', got '" + self.stream.token.value + "'")
        self.stream.advance()

    def expect_keyword(self, keyword: str) -> None:
        if not self.stream.at_keyword(keyword):
            raise self.error(
                "expected '" + keyword + "', got '" + self.stream.token.value + "'"
            )
        self.stream.advance()

    def expect_ident(self) -> str:
        if not self.stream.at_identifier():
            raise self.error("expected identifier, got '" + self.stream.token.value + "'")
        return self.stream.advance().value

    def parse_qualified_name(self) -> list[str]:
        if not self.stream.at_identifier():
            raise self.error("expected identifier, got '" + self.stream.token.value + "'")
        return self.stream.read_qualified_name()

    def skip_separator(self, closing: str) -> None:
        """Consume a ',' or require that the closing delimiter follows."""
        if self.at(","):
            self.stream.advance()
        elif not self.at(closing):
            raise self.error(
                "expected ',' or '" + closing + "', got '" + self.stream.token.value + "'"
            )

    def error(self, msg: str) -> ParseError:
        tok = self.stream.token
        return ParseError(msg, tok.line, tok.col)

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Module:
        decls: list[Decl] = []
        while not self.stream.at_eof():
            decls.append(self.parse_decl())
        return Module(decls)

    def parse_decl(self) -> Decl:
        if self.at_keyword("fn"):
            return self.parse_fn_decl()
        if self.at_keyword("enum"):
            return self.parse_enum_decl()
        if self.at_keyword("struct"):
            return self.parse_struct_decl()
        raise self.error("expected declaration (fn, enum, struct)")

    def parse_fn_decl(self) -> FnDecl:
        self.expect_keyword("fn")
        name = self.expect_ident()
        self.expect("(")
        params: list[Param] = []
        while not self.at(")"):
            params.append(self.parse_param())
            self.skip_separator(")")
        self.stream.advance()
        ret: TypeName | None = None
        if self.at(":"):
            self.stream.advance()
            ret = self.parse_type_name()
        body = self.parse_block_body()
        return FnDecl(name, params, ret, body)

    def parse_param(self) -> Param:
        """Param = 'ref'? IDENT ':' Type"""
        is_by_reference = self.at_keyword("ref")
        if is_by_reference:
            self.stream.advance()
        name = self.expect_ident()
        self.expect(":")
        typ = self.parse_type_name()
        return Param(name, typ, is_by_reference)

    def parse_block_body(self) -> list[Stmt]:
        self.expect("{")
        body: list[Stmt] = []
        while not self.at("}"):
            if self.stream.at_eof():
                raise self.error("expected '}', got end of file")
            body.append(self.parse_stmt())
        self.stream.advance()
        return body

    def parse_enum_decl(self) -> EnumDecl:
        self.expect_keyword("enum")
        name = self.expect_ident()
        self.expect("{")
        variants: list[Variant] = []
        while self.stream.at_identifier():
            variants.append(self.parse_variant())
        self.expect("}")
        return EnumDecl(name, variants)

    def parse_variant(self) -> Variant:
        """Variant = IDENT ( '{' Field* '}' )? ','?"""
        name = self.expect_ident()
        fields: list[FieldDecl] = []
        if self.at("{"):
            self.stream.advance()
            while self.stream.at_identifier():
                fields.append(self.parse_field_decl())
            self.expect("}")
        self.skip_separator("}")
        return Variant(name, fields)

    def parse_struct_decl(self) -> StructDecl:
        self.expect_keyword("struct")
        name = self.expect_ident()
        self.expect("{")
        fields: list[FieldDecl] = []
        while self.stream.at_identifier():
            fields.append(self.parse_field_decl())
        self.expect("}")
        return StructDecl(name, fields)

    def parse_field_decl(self) -> FieldDecl:
        """Field = IDENT ':' Type ','?"""
        name = self.expect_ident()
        self.expect(":")
        typ = self.parse_type_name()
        self.skip_separator("}")
        return FieldDecl(name, typ)

    def parse_type_name(self) -> TypeName:
        """Type = ( 'vec' | 'set' | 'dict' | Qualified ) ( '<' Type ( ',' Type )* '>' )?"""
        tok = self.stream.token
        if any(self.at_keyword(k) for k in CONTAINER_TYPES):
            self.stream.advance()
            name = [tok.value]
        else:
            name = self.parse_qualified_name()
        parameters: list[TypeName] = []
        if self.at("<"):
            self.stream.advance()
            while not self.at(">"):
                parameters.append(self.parse_type_name())
                self.skip_separator(">")
            self.stream.advance()
        return TypeName(name, parameters)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        if self.at_keyword("let"):
            return self.parse_let_stmt()
        if self.at_keyword("while"):
            return self.parse_while_stmt()
        if self.at_keyword("if"):
            return self.parse_if_stmt()
        if self.at_keyword("return"):
            return self.parse_return_stmt()
        if self.at("{"):
            return BlockStmt(self.parse_block_body())
        expr = self.parse_expr()
        self.expect(";")
        return ExprStmt(expr)

    def parse_let_stmt(self) -> LetStmt:
        self.expect_keyword("let")
        name = self.expect_ident()
        self.expect("=")
        value = self.parse_expr()
        self.expect(";")
        return LetStmt(name, value)

    def parse_while_stmt(self) -> WhileStmt:
        self.expect_keyword("while")
        cond = self.parse_condition()
        body = self.parse_stmt()
        return WhileStmt(cond, body)

    def parse_if_stmt(self) -> IfStmt:
        self.expect_keyword("if")
        cond = self.parse_condition()
        then_stmt = self.parse_stmt()
        else_stmt: Stmt | None = None
        if self.at_keyword("else"):
            self.stream.advance()
            else_stmt = self.parse_stmt()
        return IfStmt(cond, then_stmt, else_stmt)

    def parse_condition(self) -> Expr:
        self.expect("(")
        cond = self.parse_expr()
        self.expect(")")
        return cond

    def parse_return_stmt(self) -> ReturnStmt:
        self.expect_keyword("return")
        value = self.parse_expr()
        self.expect(";")
        return ReturnStmt(value)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        """Assignment = Or ( '=' Assignment )?"""
        left = self.parse_or()
        if not self.at("="):
            return left
        self.stream.advance()
        right = self.parse_assignment()
        return BinaryOp("=", left, right)

    def parse_identity(self) -> Expr:
        """Identity = Primary ( ( 'is' | 'isnt' ) Qualified )?"""
        operand = self.parse_primary()
        if not self.at_keyword("is") and not self.at_keyword("isnt"):
            return operand
        is_negative = self.stream.advance().value == "isnt"
        variant = self.parse_qualified_name()
        return IdentityTest(operand, variant, is_negative)

    parse_sum = _left_associative(parse_identity, SUM_OPS)
    parse_compare = _left_associative(parse_sum, COMPARE_OPS)
    parse_equality = _left_associative(parse_compare, EQUALITY_OPS)
    parse_and = _left_associative(parse_equality, AND_OPS)
    parse_or = _left_associative(parse_and, OR_OPS)

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.stream.token

        if self.at("("):
            self.stream.advance()
            inner = self.parse_expr()
            self.expect(")")
            return inner

        if tok.type == TK_OP and (tok.value == "-" or tok.value == "!"):
            op = self.stream.advance().value
            return UnaryOp(op, self.parse_primary())

        if tok.type == TK_OP and tok.value in MUTATION_OPS:
            op = self.stream.advance().value
            return InPlaceAssign(op, self.parse_primary(), True)

        if any(self.at_keyword(k) for k in COLLECTION_KINDS):
            kind = self.stream.advance().value
            return CollectionLit(kind, self.parse_collection_elements())

        if self.at("{"):
            return ObjectLit(None, self.parse_object_fields())

        if tok.type == TK_STRING:
            self.stream.advance()
            return StringLit(tok.value)
        if tok.type == TK_CHAR:
            self.stream.advance()
            return CharLit(tok.value)
        if tok.type == TK_BOOL:
            self.stream.advance()
            return BoolLit(tok.value == "true")
        if tok.type == TK_NUMBER:
            self.stream.advance()
            return NumberLit(int(tok.value), tok.value)

        if not self.stream.at_identifier():
            raise self.error("unexpected token '" + tok.value + "'")

        name = self.stream.read_qualified_name()
        if self.at("("):
            return Call(name, self.parse_call_args())
        if self.at("{"):
            return ObjectLit(name, self.parse_object_fields())
        if self.at("["):
            self.stream.advance()
            key = self.parse_expr()
            self.expect("]")
            return CollectionAccess(name, key)
        if self.stream.token.type == TK_OP and self.stream.token.value in MUTATION_OPS:
            op = self.stream.advance().value
            return InPlaceAssign(op, QualifiedName(name), False)
        return QualifiedName(name)

    def parse_call_args(self) -> list[Arg]:
        """Args = '(' ( 'ref'? Expr ','? )* ')'"""
        self.expect("(")
        args: list[Arg] = []
        while not self.at(")"):
            is_by_reference = self.at_keyword("ref")
            if is_by_reference:
                self.stream.advance()
            args.append(Arg(self.parse_expr(), is_by_reference))
            self.skip_separator(")")
        self.stream.advance()
        return args

    def parse_collection_elements(self) -> list[Expr]:
        """Elements = '[' ( Expr ','? )* ']'"""
        self.expect("[")
        elements: list[Expr] = []
        while not self.at("]"):
            elements.append(self.parse_expr())
            self.skip_separator("]")
        self.stream.advance()
        return elements

    def parse_object_fields(self) -> list[ObjectField]:
        """Fields = '{' ( IDENT ( ':' Expr )? ','? )* '}'"""
        self.expect("{")
        fields: list[ObjectField] = []
        while not self.at("}"):
            name = self.expect_ident()
            if self.at(":"):
                self.stream.advance()
                fields.append(ObjectField(name, self.parse_expr(), False))
            else:
                fields.append(ObjectField(name, None, True))
            self.skip_separator("}")
        self.stream.advance()
        return fields


def parse_module(source: str) -> Module:
    """Tokenize and parse Clover source into a Module AST."""
    return Parser(TokenStream(source)).parse_program()
