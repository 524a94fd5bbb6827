"""Tokenizer and token-stream tests."""

import pytest

from clover.tokens import (
    TK_BOOL,
    TK_CHAR,
    TK_EOF,
    TK_IDENT,
    TK_KEYWORD,
    TK_NUMBER,
    TK_OP,
    TK_STRING,
    TokenizeError,
    TokenStream,
    tokenize,
)


def kinds(source: str) -> list[tuple[str, str]]:
    return [(t.type, t.value) for t in tokenize(source)]


def test_empty_source_is_eof():
    assert kinds("") == [(TK_EOF, "")]


def test_keywords_identifiers_and_bools():
    assert kinds("fn main isnt true false_") == [
        (TK_KEYWORD, "fn"),
        (TK_IDENT, "main"),
        (TK_KEYWORD, "isnt"),
        (TK_BOOL, "true"),
        (TK_IDENT, "false_"),
        (TK_EOF, ""),
    ]


def test_multi_character_operators_win():
    assert [v for _, v in kinds("a++ <= b -- == != && ||")][:-1] == [
        "a",
        "++",
        "<=",
        "b",
        "--",
        "==",
        "!=",
        "&&",
        "||",
    ]


def test_nested_generic_closers_are_separate():
    assert [v for _, v in kinds("vec<vec<i32>>")][-3:-1] == [">", ">"]


def test_string_and_char_escapes():
    tokens = list(tokenize(r""" "a\n\t\"\\" '\'' '\0' """))
    assert (tokens[0].type, tokens[0].value) == (TK_STRING, 'a\n\t"\\')
    assert (tokens[1].type, tokens[1].value) == (TK_CHAR, "'")
    assert (tokens[2].type, tokens[2].value) == (TK_CHAR, "\0")


def test_number_literal():
    assert kinds("042")[0] == (TK_NUMBER, "042")


def test_line_comments_are_skipped():
    assert kinds("a // comment ; {\nb") == [
        (TK_IDENT, "a"),
        (TK_IDENT, "b"),
        (TK_EOF, ""),
    ]


def test_positions_are_one_based():
    tokens = list(tokenize("fn\n  main"))
    assert (tokens[0].line, tokens[0].col) == (1, 1)
    assert (tokens[1].line, tokens[1].col) == (2, 3)


@pytest.mark.parametrize(
    "source,message",
    [
        ('"open', "unterminated string literal"),
        ('"line\nbreak"', "unterminated string literal"),
        ("''", "empty character literal"),
        ("'ab'", "unterminated character literal"),
        (r'"\q"', "invalid escape"),
        ("a # b", "unexpected character"),
    ],
)
def test_tokenize_errors(source, message):
    with pytest.raises(TokenizeError) as exc:
        list(tokenize(source))
    assert message in str(exc.value)


def test_error_carries_position():
    with pytest.raises(TokenizeError) as exc:
        list(tokenize("fn f() {\n  @"))
    assert exc.value.line == 2
    assert exc.value.col == 3


def test_tokenize_is_lazy():
    tokens = tokenize("fn f @")
    assert next(tokens).value == "fn"
    assert next(tokens).value == "f"
    with pytest.raises(TokenizeError):
        next(tokens)


def test_stream_lookahead():
    stream = TokenStream("a.b c")
    assert stream.token.value == "a"
    assert stream.next_token.value == "."
    assert stream.advance().value == "a"
    assert stream.at_operator(".")
    assert stream.next_token.value == "b"


def test_stream_stays_at_eof():
    stream = TokenStream("x")
    stream.advance()
    assert stream.at_eof()
    stream.advance()
    assert stream.at_eof()
    assert stream.next_token.type == TK_EOF


def test_read_qualified_name():
    stream = TokenStream("a.b.c d")
    assert stream.read_qualified_name() == ["a", "b", "c"]
    assert stream.at_identifier()
    assert stream.token.value == "d"


def test_read_qualified_name_stops_before_trailing_dot():
    stream = TokenStream("a.b.;")
    assert stream.read_qualified_name() == ["a", "b"]
    assert stream.at_operator(".")


def test_read_qualified_name_requires_identifier():
    stream = TokenStream("fn")
    with pytest.raises(TokenizeError) as exc:
        stream.read_qualified_name()
    assert "expected identifier" in str(exc.value)
