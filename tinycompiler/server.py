"""HTTP front end: compile and run submitted source, serve static files."""

from __future__ import annotations

import argparse
import json
from functools import partial
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Mapping, Sequence

from .bytecode import BytecodeGenerator, Op, OpCode
from .lexer import Lexer
from .parser import Parser
from .vm import Instruction, InstructionKind, VirtualMachine, format_instruction

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

_SIMPLE_OPS = {
    Op.ADD: InstructionKind.ADD,
    Op.SUBTRACT: InstructionKind.SUBTRACT,
    Op.MULTIPLY: InstructionKind.MULTIPLY,
    Op.DIVIDE: InstructionKind.DIVIDE,
    Op.NEGATE: InstructionKind.NEGATE,
    Op.EQUAL: InstructionKind.EQUAL,
    Op.NOT_EQUAL: InstructionKind.NOT_EQUAL,
    Op.LESS_THAN: InstructionKind.LESS_THAN,
    Op.GREATER_THAN: InstructionKind.GREATER_THAN,
    Op.RETURN: InstructionKind.RETURN,
    Op.PRINT: InstructionKind.PRINT,
    Op.POP: InstructionKind.POP,
}


def convert_to_instruction(op: OpCode) -> Instruction:
    """Translate a generator instruction into one the virtual machine runs."""
    kind = op.op
    if kind is Op.CONSTANT:
        value = op.operand
        if isinstance(value, bool) or value is None or isinstance(value, str):
            return Instruction(InstructionKind.PUSH, value)
        return Instruction(InstructionKind.PUSH, float(value))
    if kind in _SIMPLE_OPS:
        return Instruction(_SIMPLE_OPS[kind])
    if kind is Op.JUMP:
        return Instruction(InstructionKind.JUMP, op.operand)
    if kind is Op.JUMP_IF_FALSE:
        return Instruction(InstructionKind.JUMP_IF_FALSE, op.operand)
    if kind is Op.CALL:
        return Instruction(InstructionKind.CALL, "<unknown>", int(op.operand))
    if kind in (Op.DEFINE_GLOBAL, Op.SET_GLOBAL):
        return Instruction(InstructionKind.STORE_VARIABLE, op.operand)
    if kind is Op.GET_GLOBAL:
        return Instruction(InstructionKind.LOAD_VARIABLE, op.operand)
    if kind is Op.GET_LOCAL:
        return Instruction(InstructionKind.LOAD_VARIABLE, "<local>")
    if kind is Op.SET_LOCAL:
        return Instruction(InstructionKind.STORE_VARIABLE, "<local>")
    raise ValueError(f"Unknown opcode: {kind}")


def process_code(source: str, language: str = "custom") -> tuple[str, list[str]]:
    """Compile and run ``source``; return its output and the bytecode listing.

    Only one language exists, so ``language`` is accepted and ignored.
    Lexer, parser, generator and VM errors propagate unchanged.
    """
    del language
    tokens = Lexer(source).tokenize()
    ast = Parser(tokens).parse()
    bytecode = BytecodeGenerator().generate(ast)
    instructions = [convert_to_instruction(op) for op in bytecode]
    output = VirtualMachine().execute(instructions)
    return output, [format_instruction(instr) for instr in instructions]


def compile_request(payload: Any) -> dict[str, Any]:
    """Handle a decoded ``/compile`` request body and build the response body.

    Raises ``ValueError`` when the payload lacks a string ``source`` or
    ``language``; compilation and run-time failures are reported in the
    ``error`` field instead.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("request body must be a JSON object")
    for field in ("source", "language"):
        if not isinstance(payload.get(field), str):
            raise ValueError(f"missing or invalid field: {field}")
    try:
        output, bytecode = process_code(payload["source"], payload["language"])
    except Exception as exc:  # every stage's failure is reported to the client
        return {"result": "", "bytecode": [], "error": f"Error: {exc}"}
    return {"result": output, "bytecode": bytecode, "error": None}


class CompilerRequestHandler(SimpleHTTPRequestHandler):
    """Serves ``POST /compile`` and static files, with permissive CORS."""

    def end_headers(self) -> None:
        self.send_header("Access-Control-Allow-Origin", "*")
        super().end_headers()

    def do_OPTIONS(self) -> None:
        self.send_response(HTTPStatus.NO_CONTENT)
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        requested = self.headers.get("Access-Control-Request-Headers")
        self.send_header("Access-Control-Allow-Headers", requested or "*")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_POST(self) -> None:
        path = self.path.split("?", 1)[0]
        if path != "/compile":
            self.send_error(HTTPStatus.NOT_FOUND)
            return
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length)
        try:
            response = compile_request(json.loads(body.decode("utf-8")))
        except (ValueError, UnicodeDecodeError) as exc:
            self._send_text(HTTPStatus.BAD_REQUEST, str(exc))
            return
        data = json.dumps(response).encode("utf-8")
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_text(self, status: HTTPStatus, text: str) -> None:
        data = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


def make_server(
    host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, root: str = "./"
) -> ThreadingHTTPServer:
    """Create (but do not start) the HTTP server serving files from ``root``."""
    handler = partial(CompilerRequestHandler, directory=root)
    return ThreadingHTTPServer((host, port), handler)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the compiler web server until interrupted."""
    parser = argparse.ArgumentParser(description="Serve the compiler interface.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--root", default="./", help="directory of static files")
    args = parser.parse_args(argv)

    server = make_server(args.host, args.port, args.root)
    print(f"Starting server at http://127.0.0.1:{args.port}")
    print(
        f"Visit http://127.0.0.1:{args.port} in your browser "
        "to access the compiler interface"
    )
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())