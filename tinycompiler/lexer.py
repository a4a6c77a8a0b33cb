"""Turn source text into a flat list of tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Union

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_DIGITS = frozenset("0123456789")
_IDENT_START = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_"
)


class TokenType(Enum):
    """Kinds of token produced by the lexer."""

    # Keywords
    INT = auto()
    FLOAT = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    RETURN = auto()

    # Literals
    INT_LITERAL = auto()
    FLOAT_LITERAL = auto()
    STRING_LITERAL = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    ASSIGN = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS_THAN = auto()
    GREATER_THAN = auto()

    # Punctuation
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    SEMICOLON = auto()
    COMMA = auto()

    EOF = auto()


KEYWORDS = {
    "int": TokenType.INT,
    "float": TokenType.FLOAT,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "return": TokenType.RETURN,
}

_SINGLE_CHAR = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.MULTIPLY,
    "<": TokenType.LESS_THAN,
    ">": TokenType.GREATER_THAN,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
}

TokenValue = Union[int, float, str, None]


@dataclass(frozen=True)
class Token:
    """A token with its position; literals and identifiers carry a value."""

    type: TokenType
    line: int
    column: int
    value: TokenValue = None


class LexerError(Exception):
    """Raised when the source text cannot be split into tokens."""

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        return f"Lexer error at {self.line}:{self.column}: {self.message}"


class Lexer:
    """Scans source text into tokens, tracking line and column."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._pos = 0
        self._line = 1
        self._column = 1

    def tokenize(self) -> list[Token]:
        """Return every token in the source, ending with an EOF token."""
        self._pos = 0
        self._line = 1
        self._column = 1
        tokens = list(self._scan())
        tokens.append(Token(TokenType.EOF, self._line, self._column))
        return tokens

    # -- scanning -----------------------------------------------------------

    def _scan(self) -> Iterator[Token]:
        while not self._at_end():
            c = self._current()
            if c in " \t\r":
                self._advance()
            elif c == "\n":
                self._line += 1
                self._column = 1
                self._advance()
            elif c in _DIGITS:
                yield self._number()
            elif c in _IDENT_START:
                yield self._identifier()
            elif c == '"':
                yield self._string_literal()
            elif c in _SINGLE_CHAR:
                yield self._token(_SINGLE_CHAR[c])
                self._advance()
            elif c == "/":
                if self._peek() == "/":
                    self._advance()
                    self._advance()
                    self._skip_line_comment()
                elif self._peek() == "*":
                    self._advance()
                    self._advance()
                    self._skip_block_comment()
                else:
                    yield self._token(TokenType.DIVIDE)
                    self._advance()
            elif c == "=":
                if self._peek() == "=":
                    self._advance()
                    self._advance()
                    yield self._token(TokenType.EQUAL)
                else:
                    yield self._token(TokenType.ASSIGN)
                    self._advance()
            elif c == "!":
                if self._peek() == "=":
                    self._advance()
                    self._advance()
                    yield self._token(TokenType.NOT_EQUAL)
                else:
                    raise self._error("Unexpected character: !")
            else:
                raise self._error(f"Unexpected character: {c}")

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _current(self) -> str:
        return self.source[self._pos]

    def _peek(self) -> str:
        nxt = self._pos + 1
        return self.source[nxt] if nxt < len(self.source) else ""

    def _advance(self) -> None:
        self._pos += 1
        self._column += 1

    def _token(self, token_type: TokenType, value: TokenValue = None) -> Token:
        return Token(token_type, self._line, self._column, value)

    def _error(self, message: str, column: int | None = None) -> LexerError:
        return LexerError(
            message, self._line, self._column if column is None else column
        )

    def _number(self) -> Token:
        start = self._pos
        is_float = False
        while not self._at_end():
            c = self._current()
            if c in _DIGITS:
                self._advance()
            elif c == "." and not is_float:
                is_float = True
                self._advance()
            else:
                break

        text = self.source[start:self._pos]
        column = self._column - len(text)
        if is_float:
            try:
                value: int | float = float(text)
            except ValueError:
                raise self._error(f"Invalid float literal: {text}", column) from None
            return Token(TokenType.FLOAT_LITERAL, self._line, column, value)

        value = int(text)
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise self._error(f"Invalid integer literal: {text}", column)
        return Token(TokenType.INT_LITERAL, self._line, column, value)

    def _identifier(self) -> Token:
        start = self._pos
        while not self._at_end():
            c = self._current()
            if c.isalnum() or c == "_":
                self._advance()
            else:
                break

        ident = self.source[start:self._pos]
        column = self._column - len(ident)
        keyword = KEYWORDS.get(ident)
        if keyword is not None:
            return Token(keyword, self._line, column)
        return Token(TokenType.IDENTIFIER, self._line, column, ident)

    def _string_literal(self) -> Token:
        self._advance()  # opening quote
        start = self._pos
        while not self._at_end() and self._current() != '"':
            if self._current() == "\n":
                raise self._error("Unterminated string literal")
            if self._current() == "\\" and self._pos + 1 < len(self.source):
                self._advance()
            self._advance()

        if self._at_end():
            raise self._error("Unterminated string literal")

        content = self.source[start:self._pos]
        column = self._column - len(content) - 1
        self._advance()  # closing quote
        return Token(TokenType.STRING_LITERAL, self._line, column, content)

    def _skip_line_comment(self) -> None:
        while not self._at_end() and self._current() != "\n":
            self._advance()

    def _skip_block_comment(self) -> None:
        while self._pos + 1 < len(self.source):
            if self._current() == "*" and self._peek() == "/":
                self._advance()
                self._advance()
                return
            if self._current() == "\n":
                self._line += 1
                self._column = 1
            self._advance()
        raise self._error("Unterminated block comment")


def tokenize(source: str) -> list[Token]:
    """Tokenize source text in one call."""
    return Lexer(source).tokenize()