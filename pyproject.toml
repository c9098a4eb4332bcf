[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wasmtojs"
version = "0.1.0"
description = "Building blocks for turning WebAssembly binary modules into readable JavaScript"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "webassembly",
    "wasm",
    "javascript",
    "decompiler",
    "constant-folding",
    "reverse-engineering",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["wasmtojs"]

[tool.pytest.ini_options]
addopts = "-ra"
