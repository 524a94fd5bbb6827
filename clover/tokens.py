"""Clover tokenizer — lexes source into a token stream with one token of lookahead."""

from __future__ import annotations

from collections.abc import Iterator


# Token type constants
TK_KEYWORD = "KEYWORD"
TK_OP = "OP"
TK_IDENT = "IDENT"
TK_STRING = "STRING"
TK_CHAR = "CHAR"
TK_BOOL = "BOOL"
TK_NUMBER = "NUMBER"
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "dict",
    "else",
    "enum",
    "fn",
    "if",
    "is",
    "isnt",
    "let",
    "ref",
    "return",
    "set",
    "struct",
    "vec",
    "while",
}

BOOL_WORDS: set[str] = {"true", "false"}

# Multi-character operators, matched before single characters
MULTI_OPS: list[str] = [
    "++",
    "--",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "<",
    ">",
    "=",
    "!",
    "(",
    ")",
    "{",
    "}",
    "[",
    "]",
    ",",
    ":",
    ";",
    ".",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}


class TokenizeError(Exception):
    """Error during tokenization."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _process_escape(src: str, pos: int, line: int, col: int) -> tuple[str, int]:
    """Process escape after backslash. Returns (resolved_char, new_pos)."""
    if pos >= len(src):
        raise TokenizeError("unexpected end of input in escape", line, col)
    c = src[pos]
    if c in ESCAPE_MAP:
        return ESCAPE_MAP[c], pos + 1
    raise TokenizeError("invalid escape: \\" + c, line, col)


def tokenize(source: str) -> Iterator[Token]:
    """Lazily tokenize Clover source; the last token is always TK_EOF."""
    pos = 0
    line = 1
    col = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        start_pos = pos
        start_line = line
        start_col = col

        # Integer literal
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
                col += 1
            yield Token(TK_NUMBER, source[start_pos:pos], start_line, start_col)
            continue

        # String literal: "..."
        if c == '"':
            pos += 1
            col += 1
            chars: list[str] = []
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    raise TokenizeError(
                        "unterminated string literal", start_line, start_col
                    )
                if source[pos] == "\\":
                    pos += 1
                    col += 1
                    ch, pos = _process_escape(source, pos, start_line, col)
                    chars.append(ch)
                else:
                    chars.append(source[pos])
                    pos += 1
                col += 1
            if pos >= length:
                raise TokenizeError(
                    "unterminated string literal", start_line, start_col
                )
            pos += 1  # skip closing "
            col += 1
            yield Token(TK_STRING, "".join(chars), start_line, start_col)
            continue

        # Character literal: '...'
        if c == "'":
            pos += 1
            col += 1
            if pos >= length or source[pos] == "\n":
                raise TokenizeError("unterminated character literal", start_line, start_col)
            if source[pos] == "\\":
                pos += 1
                col += 1
                char_value, pos = _process_escape(source, pos, start_line, col)
            elif source[pos] == "'":
                raise TokenizeError("empty character literal", start_line, start_col)
            else:
                char_value = source[pos]
                pos += 1
            col += 1
            if pos >= length or source[pos] != "'":
                raise TokenizeError("unterminated character literal", start_line, start_col)
            pos += 1  # skip closing '
            col += 1
            yield Token(TK_CHAR, char_value, start_line, start_col)
            continue

        # Identifier, keyword, or boolean
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
                col += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                yield Token(TK_KEYWORD, word, start_line, start_col)
            elif word in BOOL_WORDS:
                yield Token(TK_BOOL, word, start_line, start_col)
            else:
                yield Token(TK_IDENT, word, start_line, start_col)
            continue

        # Multi-character operators
        matched = False
        for op in MULTI_OPS:
            op_len = len(op)
            if source[pos : pos + op_len] == op:
                yield Token(TK_OP, op, start_line, start_col)
                pos += op_len
                col += op_len
                matched = True
                break
        if matched:
            continue

        # Single-character operators
        if c in SINGLE_OPS:
            yield Token(TK_OP, c, start_line, start_col)
            pos += 1
            col += 1
            continue

        raise TokenizeError("unexpected character: " + repr(c), line, col)

    yield Token(TK_EOF, "", line, col)


class TokenStream:
    """Current token plus exactly one token of lookahead over `tokenize`."""

    def __init__(self, source: str):
        self._tokens: Iterator[Token] = tokenize(source)
        self.token: Token = next(self._tokens)
        self.next_token: Token = self._pull()

    def _pull(self) -> Token:
        if self.token.type == TK_EOF:
            return self.token
        return next(self._tokens)

    def advance(self) -> Token:
        """Discard the current token and promote the lookahead."""
        tok = self.token
        self.token = self.next_token
        self.next_token = self._pull()
        return tok

    def at_keyword(self, keyword: str) -> bool:
        return self.token.type == TK_KEYWORD and self.token.value == keyword

    def at_operator(self, op: str) -> bool:
        return self.token.type == TK_OP and self.token.value == op

    def at_identifier(self) -> bool:
        return self.token.type == TK_IDENT

    def at_eof(self) -> bool:
        return self.token.type == TK_EOF

    def read_qualified_name(self) -> list[str]:
        """Consume IDENT ( '.' IDENT )* and return the segments."""
        tok = self.token
        if tok.type != TK_IDENT:
            raise TokenizeError(
                "expected identifier, got '" + tok.value + "'", tok.line, tok.col
            )
        name = [self.advance().value]
        while self.at_operator(".") and self.next_token.type == TK_IDENT:
            self.advance()
            name.append(self.advance().value)
        return name
