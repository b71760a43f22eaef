import pytest

from bcompiler.lexer import Lexer, Location, TokenKind, display_token_kind


def lex_all(source):
    lexer = Lexer(source)
    tokens = []
    while True:
        token = lexer.get_token()
        tokens.append(token)
        if token.kind == TokenKind.EOF:
            return tokens


def kinds(source):
    return [t.kind for t in lex_all(source)]


def test_identifiers_and_single_chars():
    tokens = lex_all("foo(bar);")
    assert [t.kind for t in tokens] == [
        TokenKind.ID, ord("("), TokenKind.ID, ord(")"), ord(";"), TokenKind.EOF
    ]
    assert [t.text for t in tokens if t.kind == TokenKind.ID] == ["foo", "bar"]


@pytest.mark.parametrize(
    "text, kind",
    [
        ("<<=", TokenKind.SHLEQ),
        (">>=", TokenKind.SHREQ),
        (">=", TokenKind.GREATEREQ),
        ("|=", TokenKind.OREQ),
        ("+=", TokenKind.PLUSEQ),
        ("*=", TokenKind.MULEQ),
        ("<<", TokenKind.SHL),
        (">>", TokenKind.SHR),
        ("==", TokenKind.EQ),
        ("->", TokenKind.ARROW),
    ],
)
def test_multi_char_operators(text, kind):
    assert kinds(text) == [kind, TokenKind.EOF]


def test_longest_match_wins():
    assert kinds("a<<=b") == [TokenKind.ID, TokenKind.SHLEQ, TokenKind.ID, TokenKind.EOF]
    assert kinds("a< <b") == [TokenKind.ID, ord("<"), ord("<"), TokenKind.ID, TokenKind.EOF]


def test_integer_literals():
    assert lex_all("42")[0].int_value == 42
    assert lex_all("0x1F")[0].int_value == 0x1F
    assert lex_all("017")[0].int_value == 0o17
    assert all(t.kind == TokenKind.INTLIT for t in lex_all("42 0x1F 017")[:-1])


def test_integer_suffix_is_consumed():
    tokens = lex_all("10L")
    assert [t.kind for t in tokens] == [TokenKind.INTLIT, TokenKind.EOF]
    assert tokens[0].int_value == 10


def test_float_literal():
    token = lex_all("1.5")[0]
    assert token.kind == TokenKind.FLOATLIT
    assert token.float_value == 1.5


def test_bad_octal_is_parse_error():
    assert lex_all("09")[0].kind == TokenKind.PARSE_ERROR


def test_string_with_escapes():
    token = lex_all(r'"a\nb\t\"c\\"')[0]
    assert token.kind == TokenKind.DQSTRING
    assert token.text == 'a\nb\t"c\\'


def test_string_hex_escape():
    assert lex_all(r'"\x41"')[0].text == "\x41"


def test_char_literal():
    token = lex_all("'a'")[0]
    assert token.kind == TokenKind.CHARLIT
    assert token.int_value == ord("a")
    assert lex_all(r"'\n'")[0].int_value == ord("\n")


@pytest.mark.parametrize("source", ['"abc', r'"\q"', "/* never closed", "'ab'"])
def test_parse_errors(source):
    assert lex_all(source)[0].kind == TokenKind.PARSE_ERROR


def test_too_long_identifier_is_parse_error():
    assert lex_all("x" * 2000)[0].kind == TokenKind.PARSE_ERROR
    assert lex_all("x" * 100)[0].kind == TokenKind.ID


def test_comments_are_skipped():
    tokens = lex_all("a // line\n /* block\n */ b")
    assert [t.text for t in tokens] == ["a", "b", ""]


def test_token_positions():
    source = "  foo + bar"
    tokens = lex_all(source)
    for token in tokens[:-1]:
        assert source[token.start : token.end + 1].strip() == source[token.start : token.end + 1]
    assert source[tokens[0].start : tokens[0].end + 1] == "foo"
    assert tokens[2].start == source.index("bar")


def test_save_and_restore():
    lexer = Lexer("alpha beta")
    lexer.get_token()
    point = lexer.save()
    first = lexer.get_token()
    lexer.restore(point)
    second = lexer.get_token()
    assert first == second
    assert lexer.token == second
    assert second.text == "beta"


def test_eof_repeats():
    lexer = Lexer("x")
    lexer.get_token()
    assert lexer.get_token().kind == TokenKind.EOF
    assert lexer.get_token().kind == TokenKind.EOF


def test_location_start_of_source():
    assert Lexer("abc").location(0) == Location(1, 0)


def test_location_next_line():
    source = "ab\n  cd"
    lexer = Lexer(source)
    first = lexer.location(0)
    second = lexer.location(source.index("cd"))
    assert second.line_number == first.line_number + 1
    assert second.line_offset == 2


def test_location_crlf_counts_once():
    source = "a\r\nb"
    lexer = Lexer(source)
    first = lexer.location(0)
    second = lexer.location(source.index("b"))
    assert second.line_number == first.line_number + 1
    assert second.line_offset == first.line_offset


def test_display_token_kind():
    assert display_token_kind(TokenKind.ID) == "identifier"
    assert display_token_kind(TokenKind.EOF) == "end of file"
    assert display_token_kind(TokenKind.GREATEREQ) == ">="
    assert display_token_kind(TokenKind.DQSTRING) == "string literal"
    assert display_token_kind(ord("+")) == "`+`"
    assert display_token_kind(1000) == "<<<UNKNOWN TOKEN 1000>>>"


def test_non_ascii_identifier():
    tokens = lex_all("año")
    assert tokens[0].kind == TokenKind.ID
    assert tokens[0].text == "año"