"""Compile a syntax tree into a flat list of stack-machine instructions."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum, auto
from typing import Union

from .lexer import TokenType
from .parser import (
    AssignmentExpression,
    BinaryExpression,
    Block,
    CallExpression,
    ExpressionStatement,
    FloatLiteral,
    Identifier,
    IfStatement,
    IntLiteral,
    Node,
    Program,
    ReturnStatement,
    StringLiteral,
    UnaryExpression,
    VarDeclaration,
    WhileStatement,
)

Constant = Union[int, float, str, bool, None]
Operand = Union[int, float, str, bool, None]


class Op(Enum):
    """Instruction kinds emitted by the generator."""

    # Stack operations
    CONSTANT = auto()
    POP = auto()

    # Variables
    GET_LOCAL = auto()
    SET_LOCAL = auto()
    GET_GLOBAL = auto()
    SET_GLOBAL = auto()
    DEFINE_GLOBAL = auto()

    # Arithmetic
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    NEGATE = auto()

    # Comparison
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS_THAN = auto()
    GREATER_THAN = auto()

    # Control flow
    JUMP = auto()
    JUMP_IF_FALSE = auto()
    CALL = auto()
    RETURN = auto()

    # Debug
    PRINT = auto()


_JUMPS = frozenset({Op.JUMP, Op.JUMP_IF_FALSE})


@dataclass(frozen=True)
class OpCode:
    """One instruction: its kind and, where the kind takes one, an operand.

    The operand is the constant for ``CONSTANT``, a slot index for locals,
    a name for globals, a target index for jumps and an argument count for
    ``CALL``.
    """

    op: Op
    operand: Operand = None


def format_constant(value: Constant) -> str:
    """Render a constant the way the bytecode listing shows it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    return f'"{value}"'


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _token_name(token_type: TokenType) -> str:
    if token_type is TokenType.EOF:
        return "EOF"
    return "".join(part.capitalize() for part in token_type.name.split("_"))


class BytecodeGeneratorError(Exception):
    """Raised when a syntax tree cannot be compiled."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Bytecode generator error: {self.message}"


_BINARY_OPS = {
    TokenType.PLUS: Op.ADD,
    TokenType.MINUS: Op.SUBTRACT,
    TokenType.MULTIPLY: Op.MULTIPLY,
    TokenType.DIVIDE: Op.DIVIDE,
    TokenType.EQUAL: Op.EQUAL,
    TokenType.NOT_EQUAL: Op.NOT_EQUAL,
    TokenType.LESS_THAN: Op.LESS_THAN,
    TokenType.GREATER_THAN: Op.GREATER_THAN,
}


@dataclass(frozen=True)
class _Local:
    name: str
    depth: int


class BytecodeGenerator:
    """Walks a syntax tree and emits instructions.

    Variables declared at the top level become globals; those declared
    inside blocks live in numbered local slots and are popped when their
    block ends. Code accumulates across calls to :meth:`generate`.
    """

    def __init__(self) -> None:
        self._code: list[OpCode] = []
        self._locals: list[_Local] = []
        self._scope_depth = 0

    def generate(self, ast: Node) -> list[OpCode]:
        """Compile a program (or a single statement) and return all code."""
        statements = ast.statements if isinstance(ast, Program) else (ast,)
        for statement in statements:
            self._statement(statement)
        return list(self._code)

    # -- statements ---------------------------------------------------------

    def _statement(self, node: Node) -> None:
        if isinstance(node, VarDeclaration):
            if node.initializer is not None:
                self._expression(node.initializer)
            else:
                self._emit(Op.CONSTANT, None)
            self._declare_variable(node.name)
        elif isinstance(node, Block):
            self._scope_depth += 1
            for statement in node.statements:
                self._statement(statement)
            self._end_scope()
        elif isinstance(node, ExpressionStatement):
            self._expression(node.expression)
            self._emit(Op.POP)
        elif isinstance(node, IfStatement):
            self._expression(node.condition)
            jump_if_false = self._emit(Op.JUMP_IF_FALSE, 0)
            self._statement(node.then_branch)
            jump = self._emit(Op.JUMP, 0)
            self._patch_jump(jump_if_false)
            if node.else_branch is not None:
                self._statement(node.else_branch)
            self._patch_jump(jump)
        elif isinstance(node, WhileStatement):
            loop_start = len(self._code)
            self._expression(node.condition)
            exit_jump = self._emit(Op.JUMP_IF_FALSE, 0)
            self._statement(node.body)
            self._emit(Op.JUMP, loop_start)
            self._patch_jump(exit_jump)
        elif isinstance(node, ReturnStatement):
            if node.value is not None:
                self._expression(node.value)
            else:
                self._emit(Op.CONSTANT, None)
            self._emit(Op.RETURN)
        else:
            raise BytecodeGeneratorError(
                f"Unexpected node type in statement context: {node!r}"
            )

    # -- expressions --------------------------------------------------------

    def _expression(self, node: Node) -> None:
        if isinstance(node, BinaryExpression):
            self._expression(node.left)
            self._expression(node.right)
            op = _BINARY_OPS.get(node.operator)
            if op is None:
                raise BytecodeGeneratorError(
                    f"Unsupported binary operator: {_token_name(node.operator)}"
                )
            self._emit(op)
        elif isinstance(node, UnaryExpression):
            self._expression(node.operand)
            if node.operator is not TokenType.MINUS:
                raise BytecodeGeneratorError(
                    f"Unsupported unary operator: {_token_name(node.operator)}"
                )
            self._emit(Op.NEGATE)
        elif isinstance(node, CallExpression):
            self._expression(node.callee)
            for argument in node.arguments:
                self._expression(argument)
            self._emit(Op.CALL, len(node.arguments))
        elif isinstance(node, AssignmentExpression):
            self._expression(node.value)
            index = self._resolve_local(node.name)
            if index is not None:
                self._emit(Op.SET_LOCAL, index)
            else:
                self._emit(Op.SET_GLOBAL, node.name)
        elif isinstance(node, (IntLiteral, FloatLiteral, StringLiteral)):
            self._emit(Op.CONSTANT, node.value)
        elif isinstance(node, Identifier):
            index = self._resolve_local(node.name)
            if index is not None:
                self._emit(Op.GET_LOCAL, index)
            else:
                self._emit(Op.GET_GLOBAL, node.name)
        else:
            raise BytecodeGeneratorError(
                f"Unexpected node type in expression context: {node!r}"
            )

    # -- helpers ------------------------------------------------------------

    def _emit(self, op: Op, operand: Operand = None) -> int:
        self._code.append(OpCode(op, operand))
        return len(self._code) - 1

    def _patch_jump(self, index: int) -> None:
        instruction = self._code[index]
        if instruction.op not in _JUMPS:
            raise BytecodeGeneratorError("Tried to patch a non-jump instruction")
        self._code[index] = replace(instruction, operand=len(self._code))

    def _end_scope(self) -> None:
        self._scope_depth -= 1
        while self._locals and self._locals[-1].depth > self._scope_depth:
            self._emit(Op.POP)
            self._locals.pop()

    def _declare_variable(self, name: str) -> None:
        if self._scope_depth == 0:
            self._emit(Op.DEFINE_GLOBAL, name)
            return
        for local in reversed(self._locals):
            if local.depth < self._scope_depth:
                break
            if local.name == name:
                raise BytecodeGeneratorError(
                    f"Variable '{name}' already declared in this scope"
                )
        self._locals.append(_Local(name, self._scope_depth))

    def _resolve_local(self, name: str) -> int | None:
        for index in range(len(self._locals) - 1, -1, -1):
            if self._locals[index].name == name:
                return index
        return None