import json
import threading
import urllib.error
import urllib.request

import pytest

from tinycompiler.bytecode import Op, OpCode
from tinycompiler.lexer import LexerError
from tinycompiler.parser import ParserError
from tinycompiler.server import (
    compile_request,
    convert_to_instruction,
    make_server,
    process_code,
)
from tinycompiler.vm import Instruction, InstructionKind, VMError


@pytest.mark.parametrize(
    "op, expected",
    [
        (OpCode(Op.CONSTANT, 3), Instruction(InstructionKind.PUSH, 3.0)),
        (OpCode(Op.CONSTANT, 2.5), Instruction(InstructionKind.PUSH, 2.5)),
        (OpCode(Op.CONSTANT, "hi"), Instruction(InstructionKind.PUSH, "hi")),
        (OpCode(Op.CONSTANT, True), Instruction(InstructionKind.PUSH, True)),
        (OpCode(Op.CONSTANT, None), Instruction(InstructionKind.PUSH, None)),
        (OpCode(Op.ADD), Instruction(InstructionKind.ADD)),
        (OpCode(Op.POP), Instruction(InstructionKind.POP)),
        (OpCode(Op.JUMP, 7), Instruction(InstructionKind.JUMP, 7)),
        (OpCode(Op.JUMP_IF_FALSE, 4), Instruction(InstructionKind.JUMP_IF_FALSE, 4)),
        (OpCode(Op.CALL, 2), Instruction(InstructionKind.CALL, "<unknown>", 2)),
        (OpCode(Op.DEFINE_GLOBAL, "x"), Instruction(InstructionKind.STORE_VARIABLE, "x")),
        (OpCode(Op.SET_GLOBAL, "x"), Instruction(InstructionKind.STORE_VARIABLE, "x")),
        (OpCode(Op.GET_GLOBAL, "x"), Instruction(InstructionKind.LOAD_VARIABLE, "x")),
        (OpCode(Op.GET_LOCAL, 0), Instruction(InstructionKind.LOAD_VARIABLE, "<local>")),
        (OpCode(Op.SET_LOCAL, 1), Instruction(InstructionKind.STORE_VARIABLE, "<local>")),
    ],
)
def test_convert_to_instruction(op, expected):
    assert convert_to_instruction(op) == expected


def test_int_constant_becomes_float():
    pushed = convert_to_instruction(OpCode(Op.CONSTANT, 5)).operand
    assert isinstance(pushed, float) and pushed == 5


def test_process_code_arithmetic():
    output, bytecode = process_code("1 + 2;", "custom")
    assert output == "3"
    assert bytecode == ["Push(Number(1.0))", "Push(Number(2.0))", "Add", "Pop"]


def test_process_code_globals():
    output, bytecode = process_code("int x = 5; x * 2;", "custom")
    assert output == "10"
    assert bytecode[1] == 'StoreVariable("x")'
    assert bytecode[2] == 'LoadVariable("x")'


def test_process_code_local_is_unknown_to_vm():
    with pytest.raises(VMError) as info:
        process_code("{ int y = 4; y; }", "custom")
    assert str(info.value) == "Undefined variable: <local>"


def test_process_code_propagates_stage_errors():
    with pytest.raises(LexerError):
        process_code("1 @ 2;", "custom")
    with pytest.raises(ParserError):
        process_code("1 + ;", "custom")
    with pytest.raises(VMError) as info:
        process_code("1 / 0;", "custom")
    assert str(info.value) == "Division by zero"


def test_compile_request_success_matches_process_code():
    source = "int a = 2; a + 3;"
    response = compile_request({"source": source, "language": "custom"})
    output, bytecode = process_code(source, "custom")
    assert response == {"result": output, "bytecode": bytecode, "error": None}


def test_compile_request_reports_errors():
    response = compile_request({"source": "1 / 0;", "language": "custom"})
    assert response == {
        "result": "",
        "bytecode": [],
        "error": "Error: Division by zero",
    }


def test_compile_request_lexer_error_message():
    response = compile_request({"source": "!", "language": "custom"})
    assert response["error"] == "Error: Lexer error at 1:1: Unexpected character: !"


@pytest.mark.parametrize(
    "payload",
    [None, [], {"language": "custom"}, {"source": "1;"}, {"source": 3, "language": "x"}],
)
def test_compile_request_rejects_malformed(payload):
    with pytest.raises(ValueError):
        compile_request(payload)


@pytest.fixture
def running_server(tmp_path):
    (tmp_path / "index.html").write_text("<h1>compiler</h1>", encoding="utf-8")
    server = make_server("127.0.0.1", 0, str(tmp_path))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
    thread.join()


def _post(url, body):
    request = urllib.request.Request(
        url, data=body, headers={"Content-Type": "application/json"}, method="POST"
    )
    return urllib.request.urlopen(request, timeout=5)


def test_server_compile_endpoint(running_server):
    body = json.dumps({"source": "1 + 2;", "language": "custom"}).encode()
    with _post(running_server + "/compile", body) as response:
        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        data = json.loads(response.read())
    assert data == compile_request({"source": "1 + 2;", "language": "custom"})


def test_server_bad_json_is_rejected(running_server):
    with pytest.raises(urllib.error.HTTPError) as info:
        _post(running_server + "/compile", b"not json")
    status = info.value.code
    info.value.close()
    assert status == 400

    body = json.dumps({"source": "2 * 3;", "language": "custom"}).encode()
    with _post(running_server + "/compile", body) as response:
        data = json.loads(response.read())
    assert data == {
        "result": "6",
        "bytecode": ["Push(Number(2.0))", "Push(Number(3.0))", "Multiply", "Pop"],
        "error": None,
    }


def test_server_serves_index(running_server):
    with urllib.request.urlopen(running_server + "/", timeout=5) as response:
        assert response.read().decode("utf-8") == "<h1>compiler</h1>"


def test_server_preflight(running_server):
    request = urllib.request.Request(running_server + "/compile", method="OPTIONS")
    with urllib.request.urlopen(request, timeout=5) as response:
        assert response.status == 204
        assert "POST" in response.headers["Access-Control-Allow-Methods"]