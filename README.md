# wasmtojs

`wasmtojs` is a library of building blocks for turning WebAssembly binary
modules (`.wasm`) into readable JavaScript. It contains:

- a decoder for the binary format;
- constant folding and JavaScript rendering of binary operators;
- text helpers that tidy generated JavaScript;
- a small client for the Gemini API, used to suggest names.

It has no third-party dependencies at run time.

## Installation

```
pip install .
```

## Modules

### `wasmtojs.wasm`: decoding modules

`read_module(data)` decodes bytes into a `Module`. `load_module(path)` reads a
file and then decodes it. Both raise `WasmDecodeError`, a subclass of
`ValueError`, for any of these:

- a bad magic number or an unsupported version;
- an unknown section or opcode;
- truncated data.

A `Module` holds these lists, each in the order the binary gives:

- `types`, `imports`, `funcs`, `tables`, `memories`, `globals`;
- `exports`, `data_segments`, `elem_segments`.

It also holds `start` and `import_func_names`. Imported tables, memories and
globals come first in their lists.

`Module.func_signature(index)` looks up a `FuncSignature` in the combined
function index space, where imports come first. It returns `None` for an
index that is out of range.

Function bodies are trees of `Instr` objects. Every `Instr` has:

- an `ExprKind`;
- an opcode name such as `"i32.add"`;
- its operands;
- for `block`, `loop` and `if`, the nested `body` and `else_body`.

Constants are `Const` values that keep the raw bit pattern. `u32`, `s32`,
`u64`, `s64`, `f32_bits` and `f64_bits` give views of that pattern. Names
from the `name` custom section are attached to each `Func` as `name` and
`local_names`.

```python
from wasmtojs.wasm import read_module

module = read_module(b"\0asm\x01\x00\x00\x00")
assert module.funcs == []
```

### `wasmtojs.folding`: operands and binary operators

An `Operand` is a value on the translation stack. It holds its JavaScript text
and, when the value is known, the constant itself. `const_operand(const)`
builds one from a constant, with these texts:

- an `i32` becomes a signed decimal;
- an `i64` becomes a decimal with the BigInt suffix `n`;
- an `f32` becomes `f32(<bits>)`;
- an `f64` becomes `f64(<bits>)`.

`fold_binary(opname, lhs, rhs)` evaluates an integer or float binary operator
or comparison on two constant operands, with wrap-around integer arithmetic.
It returns `None` in these cases:

- an operand is not constant;
- the operator is unknown;
- the divisor is zero.

`render_binary(opname, lhs, rhs)` writes the JavaScript expression. Unsigned
`i32` operators are wrapped in `>>> 0`. Rotations, `min`, `max` and
`copysign` become helper calls. Any operator not in `BINARY_OPERATORS` becomes
an `UNHANDLED_OP(...)` call.

`binary_result_type(opname)` gives the type an operator produces.

```python
from wasmtojs.folding import Operand, const_operand, fold_binary, render_binary
from wasmtojs.wasm import Const, ValType

two = const_operand(Const(ValType.I32, 2))
three = const_operand(Const(ValType.I32, 3))
assert fold_binary("i32.add", two, three).js_repr == "5"
assert render_binary("i32.lt_u", Operand("x"), Operand("y")).js_repr == "((x >>> 0) < (y >>> 0))"
```

### `wasmtojs.jsclean`: tidying JavaScript text

| Function | What it does |
| --- | --- |
| `const_to_js` | Renders a constant as a literal; float constants come out as their raw bit patterns. |
| `init_expr_to_js` | Renders a global or segment initializer expression. |
| `clean_dead_js` | Drops lines that follow a `return` or `break` within the same brace scope. |
| `clean_empty_braces` | Removes empty `{` / `}` line pairs. |
| `fill_brackets` | Balances unmatched braces. |
| `remove_semicolons` | Collapses runs of `;` outside string literals. |
| `parse_gemini_answer` | Parses `index=name` replies into safe JavaScript names of at most 40 characters. A name that is a reserved word gets a trailing `_`. |
| `replace_id` | Replaces whole-word occurrences of an identifier. |
| `extract_locals` | Lists the names declared by `let` statements. |
| `is_reserved_word` | Tests a name against the JavaScript reserved words. |

### `wasmtojs.textutil`: string helpers

| Function | What it does |
| --- | --- |
| `replace_all` | Plain substring replacement. |
| `trim` | Strips spaces, tabs, carriage returns and newlines from both ends. |
| `join_kv` | Renders a mapping as `k=v` pairs. |
| `replace_all_regex` | Regex replacement; `$&`, `$n` and `$$` work in the replacement text. |
| `parse_renaming_answer` | Parses `old=new` lines. New names are cleaned up and cut to 30 characters. |
| `remove_unused_decls` | Drops `let`-declared names that do not occur in a body. |

### `wasmtojs.gemini`: naming suggestions

`ask_gemini(api_key, prompt)` posts the prompt to the
`gemini-1.5-pro-latest` model, with a 30-second timeout. It returns the
reply text. On failure it returns a marker string that starts with
`[AI_ERROR` instead of raising.

`ask_gemini_retry(api_key, prompt, max_attempts=4, base_delay=2)` retries
after each failure. The wait is `base_delay * 2**attempt` seconds. When every
attempt has failed, it raises `GeminiUnreachable`.

These functions send data over the network. Nothing else in the package does.

## What the package does not do

The package has no command-line program. It also has no function that turns
a whole module into a finished JavaScript file. The following are not
provided:

- translation of function bodies into statements;
- emission of memory, tables, globals, imports and exports;
- assembly of the output file.

What it offers are the decoding, folding, rendering and clean-up pieces
described above, which such a tool would be built from.

## Running the tests

```
pip install .[test]
pytest
```