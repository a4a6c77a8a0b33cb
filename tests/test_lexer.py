import pytest

from tinycompiler.lexer import Lexer, LexerError, Token, TokenType, tokenize


def types(source):
    return [tok.type for tok in tokenize(source)]


@pytest.mark.parametrize(
    "word, expected",
    [
        ("int", TokenType.INT),
        ("float", TokenType.FLOAT),
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("while", TokenType.WHILE),
        ("return", TokenType.RETURN),
    ],
)
def test_keywords(word, expected):
    tokens = tokenize(word)
    assert tokens[0].type is expected
    assert tokens[0].value is None


def test_identifier_carries_name():
    source = "foo_1"
    tok = tokenize(source)[0]
    assert tok.type is TokenType.IDENTIFIER
    assert tok.value == source


def test_keyword_prefix_is_identifier():
    source = "integer"
    tok = tokenize(source)[0]
    assert tok.type is TokenType.IDENTIFIER
    assert tok.value == source


def test_int_literal():
    tok = tokenize("42")[0]
    assert tok.type is TokenType.INT_LITERAL
    assert tok.value == 42


def test_int64_max_is_accepted():
    source = "9223372036854775807"
    tok = tokenize(source)[0]
    assert tok.value == int(source)


def test_int_overflow_raises():
    source = "99999999999999999999"
    with pytest.raises(LexerError) as info:
        tokenize(source)
    assert info.value.message == f"Invalid integer literal: {source}"


def test_float_literal():
    tok = tokenize("3.25")[0]
    assert tok.type is TokenType.FLOAT_LITERAL
    assert tok.value == 3.25


def test_second_dot_is_unexpected():
    with pytest.raises(LexerError) as info:
        tokenize("1.2.3")
    assert info.value.message == "Unexpected character: ."


def test_string_literal_excludes_quotes_and_keeps_escapes():
    tok = tokenize('"a\\"b"')[0]
    assert tok.type is TokenType.STRING_LITERAL
    assert tok.value == 'a\\"b'


def test_string_column_is_opening_quote():
    source = 'x = "hi";'
    tokens = tokenize(source)
    string_tok = next(t for t in tokens if t.type is TokenType.STRING_LITERAL)
    assert string_tok.column == source.index('"') + 1


def test_operators_and_punctuation():
    assert types("+-*/=<>(){};,") == [
        TokenType.PLUS,
        TokenType.MINUS,
        TokenType.MULTIPLY,
        TokenType.DIVIDE,
        TokenType.ASSIGN,
        TokenType.LESS_THAN,
        TokenType.GREATER_THAN,
        TokenType.LEFT_PAREN,
        TokenType.RIGHT_PAREN,
        TokenType.LEFT_BRACE,
        TokenType.RIGHT_BRACE,
        TokenType.SEMICOLON,
        TokenType.COMMA,
        TokenType.EOF,
    ]


def test_two_char_operators():
    assert types("a == b != c") == [
        TokenType.IDENTIFIER,
        TokenType.EQUAL,
        TokenType.IDENTIFIER,
        TokenType.NOT_EQUAL,
        TokenType.IDENTIFIER,
        TokenType.EOF,
    ]


def test_empty_source_gives_only_eof():
    tokens = tokenize("")
    assert tokens == [Token(TokenType.EOF, 1, 1)]


@pytest.mark.parametrize("source", ["", "int x = 1;", "a\n/* c */ b // d"])
def test_eof_is_last_and_unique(source):
    tokens = tokenize(source)
    assert tokens[-1].type is TokenType.EOF
    assert [t.type for t in tokens].count(TokenType.EOF) == 1


def test_single_line_columns_follow_positions():
    source = "x+y*(z)"
    tokens = tokenize(source)[:-1]
    assert [t.column for t in tokens] == [i + 1 for i in range(len(source))]


def test_line_comment_skipped():
    tokens = tokenize("1 // ignored 3\n2")
    assert [t.value for t in tokens[:-1]] == [1, 2]


def test_block_comment_counts_lines():
    source = "/* a\n b\n */ x"
    tokens = tokenize(source)
    assert tokens[0].type is TokenType.IDENTIFIER
    assert tokens[0].line == source.count("\n") + 1


def test_newlines_advance_line():
    source = "a\nb\nc"
    lines = [t.line for t in tokenize(source)[:-1]]
    assert lines == [1, 2, 3]


def test_bang_alone_is_error():
    with pytest.raises(LexerError) as info:
        tokenize("!")
    assert info.value.message == "Unexpected character: !"


def test_unexpected_character_message():
    with pytest.raises(LexerError) as info:
        tokenize("@")
    assert str(info.value) == "Lexer error at 1:1: Unexpected character: @"


def test_unterminated_string_at_end():
    with pytest.raises(LexerError) as info:
        tokenize('"abc')
    assert info.value.message == "Unterminated string literal"


def test_unterminated_string_at_newline():
    with pytest.raises(LexerError) as info:
        tokenize('"ab\ncd"')
    assert info.value.message == "Unterminated string literal"
    assert info.value.line == 1


def test_unterminated_block_comment():
    with pytest.raises(LexerError) as info:
        tokenize("/* never closed")
    assert info.value.message == "Unterminated block comment"


def test_lexer_class_matches_function():
    source = 'int x = 3; while (x > 0) { x = x - 1; } return "done";'
    assert Lexer(source).tokenize() == tokenize(source)


def test_tokenize_twice_is_stable():
    lexer = Lexer("float y = 2.5;")
    first = lexer.tokenize()
    second = lexer.tokenize()
    assert [t.type for t in first] == [
        TokenType.FLOAT,
        TokenType.IDENTIFIER,
        TokenType.ASSIGN,
        TokenType.FLOAT_LITERAL,
        TokenType.SEMICOLON,
        TokenType.EOF,
    ]
    assert first[1].value == "y"
    assert first[3].value == 2.5
    assert second == first