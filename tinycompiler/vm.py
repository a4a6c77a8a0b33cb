"""A small stack machine that runs compiled instructions and collects output."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto
from typing import Iterable, Union

Value = Union[float, str, bool, None]
Operand = Union[float, int, str, bool, None]

_NOTHING = object()


class InstructionKind(Enum):
    """Operations the virtual machine understands."""

    # Stack operations
    PUSH = auto()
    POP = auto()
    DUPLICATE = auto()

    # Arithmetic operations
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    NEGATE = auto()

    # Comparison operations
    EQUAL = auto()
    NOT_EQUAL = auto()
    GREATER_THAN = auto()
    LESS_THAN = auto()

    # Variable operations
    STORE_VARIABLE = auto()
    LOAD_VARIABLE = auto()

    # Control flow
    JUMP = auto()
    JUMP_IF_FALSE = auto()
    CALL = auto()
    RETURN = auto()

    # I/O operations
    PRINT = auto()

    # End of program
    HALT = auto()

    @property
    def display_name(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


@dataclass(frozen=True)
class Instruction:
    """One machine instruction.

    ``operand`` holds the value for ``PUSH``, the variable name for
    ``STORE_VARIABLE``/``LOAD_VARIABLE``, the target index for jumps and the
    function name for ``CALL``; ``arg_count`` is only used by ``CALL``.
    """

    kind: InstructionKind
    operand: Operand = None
    arg_count: int = 0


class VMError(Exception):
    """Raised when execution fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _display_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _debug_number(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return _display_number(value)
    magnitude = abs(value)
    if magnitude != 0 and (magnitude >= 1e16 or magnitude < 1e-4):
        sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
        digits = "".join(map(str, digit_tuple))
        power = exponent + len(digits) - 1
        digits = digits.rstrip("0") or "0"
        mantissa = digits[0] + (f".{digits[1:]}" if len(digits) > 1 else "")
        return f"{'-' if sign else ''}{mantissa}e{power}"
    text = _display_number(value)
    return text if "." in text else f"{text}.0"


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t", "\0": "\\0"}


def _debug_str(text: str) -> str:
    parts = []
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            parts.append(f"\\u{{{ord(ch):x}}}")
        else:
            parts.append(ch)
    return '"' + "".join(parts) + '"'


def _debug_value(value: Operand) -> str:
    if value is None:
        return "Null"
    if isinstance(value, bool):
        return f"Boolean({'true' if value else 'false'})"
    if _is_number(value):
        return f"Number({_debug_number(float(value))})"
    return f"String({_debug_str(str(value))})"


def format_value(value: Value) -> str:
    """Render a runtime value the way program output shows it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return _display_number(float(value))
    return str(value)


def format_instruction(instruction: Instruction) -> str:
    """Render an instruction for a bytecode listing, e.g. ``Push(Number(1.0))``."""
    kind = instruction.kind
    name = kind.display_name
    if kind is InstructionKind.PUSH:
        return f"{name}({_debug_value(instruction.operand)})"
    if kind in (InstructionKind.STORE_VARIABLE, InstructionKind.LOAD_VARIABLE):
        return f"{name}({_debug_str(str(instruction.operand))})"
    if kind in (InstructionKind.JUMP, InstructionKind.JUMP_IF_FALSE):
        return f"{name}({instruction.operand})"
    if kind is InstructionKind.CALL:
        return f"{name}({_debug_str(str(instruction.operand))}, {instruction.arg_count})"
    return name


def _same_kind_equal(a: Value, b: Value) -> bool | None:
    """Compare values of the same kind; ``None`` when the kinds differ."""
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if isinstance(a, bool) and isinstance(b, bool):
        return a == b
    return None


class VirtualMachine:
    """Executes instruction lists and returns what they printed.

    Function addresses (from ``STORE_VARIABLE`` of names starting with
    ``fn_``) are kept across runs; everything else is reset by each
    :meth:`execute`.
    """

    def __init__(self) -> None:
        self.stack: list[Value] = []
        self.variables: dict[str, Value] = {}
        self.call_stack: list[int] = []
        self.functions: dict[str, int] = {}
        self._output: list[str] = []
        self._last_popped: object = _NOTHING

    def execute(self, bytecode: Iterable[Instruction]) -> str:
        """Run the instructions and return the collected output."""
        program = list(bytecode)
        self.stack.clear()
        self.variables.clear()
        self.call_stack.clear()
        self._output = []
        self._last_popped = _NOTHING

        for index, instruction in enumerate(program):
            if instruction.kind is InstructionKind.STORE_VARIABLE:
                name = str(instruction.operand)
                if name.startswith("fn_"):
                    self.functions[name[3:]] = index

        ip = 0
        while 0 <= ip < len(program):
            instruction = program[ip]
            kind = instruction.kind
            if kind is InstructionKind.HALT:
                break
            ip = self._step(instruction, ip)

        output = "".join(self._output)
        if self.stack:
            final: object = self.stack[-1]
        else:
            final = self._last_popped
        if final is not _NOTHING:
            if output and not output.endswith("\n"):
                output += "\n"
            output += format_value(final)  # type: ignore[arg-type]
        return output

    # -- single steps -------------------------------------------------------

    def _step(self, instruction: Instruction, ip: int) -> int:
        K = InstructionKind
        match instruction.kind:
            case K.PUSH:
                value = instruction.operand
                self.stack.append(float(value) if _is_number(value) else value)
            case K.POP:
                self._last_popped = self._pop()
            case K.DUPLICATE:
                if not self.stack:
                    raise VMError("Cannot duplicate from empty stack")
                self.stack.append(self.stack[-1])
            case K.ADD:
                b, a = self._pop(), self._pop()
                if _is_number(a) and _is_number(b):
                    self.stack.append(a + b)
                elif isinstance(a, str) and isinstance(b, str):
                    self.stack.append(a + b)
                else:
                    raise VMError("Type error in addition")
            case K.SUBTRACT:
                a, b = self._numbers("subtraction")
                self.stack.append(a - b)
            case K.MULTIPLY:
                a, b = self._numbers("multiplication")
                self.stack.append(a * b)
            case K.DIVIDE:
                a, b = self._numbers("division")
                if b == 0.0:
                    raise VMError("Division by zero")
                self.stack.append(a / b)
            case K.NEGATE:
                value = self._pop()
                if not _is_number(value):
                    raise VMError("Type error in negation")
                self.stack.append(-value)
            case K.EQUAL:
                b, a = self._pop(), self._pop()
                result = _same_kind_equal(a, b)
                self.stack.append(False if result is None else result)
            case K.NOT_EQUAL:
                b, a = self._pop(), self._pop()
                result = _same_kind_equal(a, b)
                self.stack.append(True if result is None else not result)
            case K.GREATER_THAN:
                a, b = self._numbers("greater than comparison")
                self.stack.append(a > b)
            case K.LESS_THAN:
                a, b = self._numbers("less than comparison")
                self.stack.append(a < b)
            case K.STORE_VARIABLE:
                self.variables[str(instruction.operand)] = self._pop()
            case K.LOAD_VARIABLE:
                name = str(instruction.operand)
                if name not in self.variables:
                    raise VMError(f"Undefined variable: {name}")
                self.stack.append(self.variables[name])
            case K.JUMP:
                return int(instruction.operand)
            case K.JUMP_IF_FALSE:
                condition = self._pop()
                if condition is False:
                    return int(instruction.operand)
            case K.CALL:
                name = str(instruction.operand)
                if name not in self.functions:
                    raise VMError(f"Undefined function: {name}")
                self.call_stack.append(ip + 1)
                return self.functions[name]
            case K.RETURN:
                if self.call_stack:
                    return self.call_stack.pop()
            case K.PRINT:
                self._output.append(f"{format_value(self._pop())}\n")
        return ip + 1

    def _pop(self) -> Value:
        if not self.stack:
            raise VMError("Stack underflow")
        return self.stack.pop()

    def _numbers(self, what: str) -> tuple[float, float]:
        b, a = self._pop(), self._pop()
        if not (_is_number(a) and _is_number(b)):
            raise VMError(f"Type error in {what}")
        return a, b