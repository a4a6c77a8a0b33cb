"""A small C-like language: lexer, parser, bytecode generator, stack virtual machine and HTTP compile server."""

__version__ = "0.1.0"
__all__ = ["lexer", "parser", "bytecode", "vm", "server"]