[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinycompiler"
version = "0.1.0"
description = "A small C-like language: lexer, parser, bytecode generator, stack VM and a JSON compile endpoint"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "bytecode", "virtual machine", "interpreter", "lexer", "parser"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinycompiler = "tinycompiler.server:main"

[tool.hatch.build.targets.wheel]
packages = ["tinycompiler"]

[tool.pytest.ini_options]
addopts = "-ra"
