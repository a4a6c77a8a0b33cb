# tinycompiler

A compiler and stack virtual machine for a small C-like language. It also
includes an HTTP server that compiles and runs programs sent to it as JSON.

## The language

- Declarations: `int x = 1;` and `float y;`. A variable declared without an
  initializer holds `null`.
- Statements: expression statements, `{ ... }` blocks, `if (...) ... else ...`,
  `while (...) ...` and `return expr;`.
- Expressions: `+ - * /`, unary `-`, `== != < >`, assignment `x = expr`,
  calls `f(a, b)`, and integer, float and string literals.
- Comments: `// line` and `/* block */`.

## Pipeline

A program passes through four stages:

1. `tinycompiler.lexer`: `tokenize(source)`, or `Lexer(source).tokenize()`,
   turns text into a list of `Token`s that ends with an `EOF` token. It raises
   `LexerError` on bad input.
2. `tinycompiler.parser`: `parse(tokens)`, or `Parser(tokens).parse()`, builds
   a `Program` syntax tree made of frozen dataclasses such as `VarDeclaration`,
   `IfStatement` and `BinaryExpression`. It raises `ParserError` on bad input.
3. `tinycompiler.bytecode`: `BytecodeGenerator().generate(ast)` produces a
   list of `OpCode`s. Each one holds an `Op` and an operand. It raises
   `BytecodeGeneratorError`, for example when a variable is declared twice in
   the same block.
4. `tinycompiler.vm`: `VirtualMachine().execute(instructions)` runs a list of
   `Instruction`s and returns the output as a string. It raises `VMError` on
   runtime errors such as stack underflow, a type error, division by zero or
   an undefined variable.

`tinycompiler.server.convert_to_instruction(op)` maps an `OpCode` onto an
`Instruction`. `tinycompiler.vm.format_instruction(instruction)` renders an
instruction for a listing, for example `Push(Number(1.0))`.

`tinycompiler.server.process_code(source, language)` runs all four stages. It
returns the output and the instruction listing. The `language` argument is
accepted but ignored.

```python
from tinycompiler.server import process_code

output, listing = process_code("int x = 2; x * 21;", "custom")
print(output)   # 42
```

All numbers become floating-point values in the VM. When a whole number is
shown, it has no fractional part. If a value is left on the stack when the run
ends, it is appended to the output. If the stack is empty, the last value that
was popped is appended instead.

## The server

```
tinycompiler
```

This command starts an HTTP server on `0.0.0.0:8080`. The server serves static
files from the current directory, and `index.html` is the index page. It sends
permissive CORS headers. It also accepts `POST /compile` with a JSON body:

```json
{"source": "int x = 1; x + 2;", "language": "custom"}
```

The reply has this form:

```json
{"result": "3", "bytecode": ["Push(Number(1.0))", "..."], "error": null}
```

If compilation or execution fails, `result` is an empty string, `bytecode` is
an empty list, and `error` holds the message prefixed with `Error: `. A body
that is not a JSON object, or that lacks a string `source` or `language`, gets
a `400` reply.

`tinycompiler.server.compile_request(payload)` builds the reply body from a
decoded request. `make_server(host, port, root)` creates the server without
starting it.

Options (see `tinycompiler --help`):

- `--host`: the address to bind to (default `0.0.0.0`).
- `--port`: the port to listen on (default `8080`).
- `--root`: the directory of static files (default `./`).

## What it does not do

- Function calls compile, but they cannot run. Every call becomes a call to
  `<unknown>`, which stops execution with `Undefined function: <unknown>`.
- All variables declared inside blocks share one VM slot named `<local>`. They
  are not kept apart from each other.
- The language has no statement that prints. Output comes only from the final
  value described above.

## Tests

```
pip install .[test]
pytest
```