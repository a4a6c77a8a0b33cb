"""Recursive-descent parser that builds an abstract syntax tree from tokens."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from .lexer import Token, TokenType


@dataclass(frozen=True)
class Program:
    """The whole source: a sequence of top-level statements."""

    statements: tuple[Node, ...] = ()


@dataclass(frozen=True)
class VarDeclaration:
    """``int name = init;`` or ``float name;``."""

    var_type: str
    name: str
    initializer: Optional[Node] = None


@dataclass(frozen=True)
class Block:
    """A braced list of statements."""

    statements: tuple[Node, ...] = ()


@dataclass(frozen=True)
class ExpressionStatement:
    """An expression evaluated for its effect."""

    expression: Node


@dataclass(frozen=True)
class IfStatement:
    """Conditional with an optional else branch."""

    condition: Node
    then_branch: Node
    else_branch: Optional[Node] = None


@dataclass(frozen=True)
class WhileStatement:
    """Loop that runs its body while the condition holds."""

    condition: Node
    body: Node


@dataclass(frozen=True)
class ReturnStatement:
    """``return;`` or ``return expr;``."""

    value: Optional[Node] = None


@dataclass(frozen=True)
class BinaryExpression:
    """Two operands joined by an operator token type."""

    left: Node
    operator: TokenType
    right: Node


@dataclass(frozen=True)
class UnaryExpression:
    """A prefix operator applied to one operand."""

    operator: TokenType
    operand: Node


@dataclass(frozen=True)
class CallExpression:
    """A callee applied to a list of arguments."""

    callee: Node
    arguments: tuple[Node, ...] = ()


@dataclass(frozen=True)
class AssignmentExpression:
    """``name = value``."""

    name: str
    value: Node


@dataclass(frozen=True)
class IntLiteral:
    value: int


@dataclass(frozen=True)
class FloatLiteral:
    value: float


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class Identifier:
    name: str


Node = Union[
    Program,
    VarDeclaration,
    Block,
    ExpressionStatement,
    IfStatement,
    WhileStatement,
    ReturnStatement,
    BinaryExpression,
    UnaryExpression,
    CallExpression,
    AssignmentExpression,
    IntLiteral,
    FloatLiteral,
    StringLiteral,
    Identifier,
]


class ParserError(Exception):
    """Raised when the token stream does not form a valid program."""

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        return f"Parser error at {self.line}:{self.column}: {self.message}"


_VALUED = {
    TokenType.INT_LITERAL,
    TokenType.FLOAT_LITERAL,
    TokenType.STRING_LITERAL,
    TokenType.IDENTIFIER,
}


def _describe(token: Token) -> str:
    """Name a token the way error messages show it, e.g. ``IntLiteral(5)``."""
    kind = token.type
    name = "EOF" if kind is TokenType.EOF else "".join(
        part.capitalize() for part in kind.name.split("_")
    )
    if kind not in _VALUED:
        return name
    if isinstance(token.value, str):
        return f'{name}("{token.value}")'
    return f"{name}({token.value!r})"


class Parser:
    """Parses a token list (ending with EOF) into a :class:`Program`."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type is not TokenType.EOF:
            raise ValueError("token list must end with an EOF token")
        self._current = 0

    def parse(self) -> Program:
        """Parse every declaration up to EOF."""
        self._current = 0
        statements = []
        while not self._at_end():
            statements.append(self._declaration())
        return Program(tuple(statements))

    # -- statements ---------------------------------------------------------

    def _declaration(self) -> Node:
        if self._match(TokenType.INT, TokenType.FLOAT):
            return self._var_declaration()
        return self._statement()

    def _var_declaration(self) -> Node:
        var_type = "int" if self._previous().type is TokenType.INT else "float"
        token = self._peek()
        if token.type is not TokenType.IDENTIFIER:
            raise self._error("Expected identifier")
        self._advance()
        initializer = self._expression() if self._match(TokenType.ASSIGN) else None
        self._consume(TokenType.SEMICOLON, "Expected ';' after variable declaration")
        return VarDeclaration(var_type, token.value, initializer)

    def _statement(self) -> Node:
        if self._match(TokenType.IF):
            return self._if_statement()
        if self._match(TokenType.WHILE):
            return self._while_statement()
        if self._match(TokenType.RETURN):
            return self._return_statement()
        if self._match(TokenType.LEFT_BRACE):
            return self._block()
        return self._expression_statement()

    def _if_statement(self) -> Node:
        self._consume(TokenType.LEFT_PAREN, "Expected '(' after 'if'")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after if condition")
        then_branch = self._statement()
        else_branch = self._statement() if self._match(TokenType.ELSE) else None
        return IfStatement(condition, then_branch, else_branch)

    def _while_statement(self) -> Node:
        self._consume(TokenType.LEFT_PAREN, "Expected '(' after 'while'")
        condition = self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after while condition")
        return WhileStatement(condition, self._statement())

    def _return_statement(self) -> Node:
        value = None if self._check(TokenType.SEMICOLON) else self._expression()
        self._consume(TokenType.SEMICOLON, "Expected ';' after return value")
        return ReturnStatement(value)

    def _block(self) -> Node:
        statements = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._at_end():
            statements.append(self._declaration())
        self._consume(TokenType.RIGHT_BRACE, "Expected '}' after block")
        return Block(tuple(statements))

    def _expression_statement(self) -> Node:
        expr = self._expression()
        self._consume(TokenType.SEMICOLON, "Expected ';' after expression")
        return ExpressionStatement(expr)

    # -- expressions --------------------------------------------------------

    def _expression(self) -> Node:
        return self._assignment()

    def _assignment(self) -> Node:
        expr = self._equality()
        if self._match(TokenType.ASSIGN):
            if isinstance(expr, Identifier):
                return AssignmentExpression(expr.name, self._assignment())
            raise self._error("Invalid assignment target")
        return expr

    def _binary(self, operand: Callable[[], Node], *operators: TokenType) -> Node:
        expr = operand()
        while self._match(*operators):
            operator = self._previous().type
            expr = BinaryExpression(expr, operator, operand())
        return expr

    def _equality(self) -> Node:
        return self._binary(self._comparison, TokenType.EQUAL, TokenType.NOT_EQUAL)

    def _comparison(self) -> Node:
        return self._binary(self._term, TokenType.LESS_THAN, TokenType.GREATER_THAN)

    def _term(self) -> Node:
        return self._binary(self._factor, TokenType.PLUS, TokenType.MINUS)

    def _factor(self) -> Node:
        return self._binary(self._unary, TokenType.MULTIPLY, TokenType.DIVIDE)

    def _unary(self) -> Node:
        if self._match(TokenType.MINUS):
            operator = self._previous().type
            return UnaryExpression(operator, self._unary())
        return self._call()

    def _call(self) -> Node:
        expr = self._primary()
        while self._match(TokenType.LEFT_PAREN):
            expr = self._finish_call(expr)
        return expr

    def _finish_call(self, callee: Node) -> Node:
        arguments = []
        if not self._check(TokenType.RIGHT_PAREN):
            arguments.append(self._expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._expression())
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after arguments")
        return CallExpression(callee, tuple(arguments))

    def _primary(self) -> Node:
        if self._match(TokenType.INT_LITERAL):
            return IntLiteral(self._previous().value)
        if self._match(TokenType.FLOAT_LITERAL):
            return FloatLiteral(self._previous().value)
        if self._match(TokenType.STRING_LITERAL):
            return StringLiteral(self._previous().value)
        if self._match(TokenType.IDENTIFIER):
            return Identifier(self._previous().value)
        if self._match(TokenType.LEFT_PAREN):
            expr = self._expression()
            self._consume(TokenType.RIGHT_PAREN, "Expected ')' after expression")
            return expr
        raise self._error(f"Expected expression, got {_describe(self._peek())}")

    # -- helpers ------------------------------------------------------------

    def _match(self, *types: TokenType) -> bool:
        if any(self._check(t) for t in types):
            self._advance()
            return True
        return False

    def _check(self, token_type: TokenType) -> bool:
        return not self._at_end() and self._peek().type is token_type

    def _advance(self) -> Token:
        if not self._at_end():
            self._current += 1
        return self._previous()

    def _at_end(self) -> bool:
        return self._peek().type is TokenType.EOF

    def _peek(self) -> Token:
        return self.tokens[self._current]

    def _previous(self) -> Token:
        return self.tokens[self._current - 1]

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise self._error(message)

    def _error(self, message: str) -> ParserError:
        token = self._peek()
        return ParserError(message, token.line, token.column)


def parse(tokens: Iterable[Token]) -> Program:
    """Parse a token list in one call."""
    return Parser(tokens).parse()