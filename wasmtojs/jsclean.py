"""Text-level helpers for rendering constants and tidying generated JavaScript."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from .textutil import replace_all_regex, trim
from .wasm import Const, ExprKind, Instr, ValType

MAX_FUNC_NAME_LEN = 40

JS_RESERVED_WORDS = frozenset({
    "await", "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "enum", "export", "extends", "false",
    "finally", "for", "function", "if", "implements", "import", "in",
    "instanceof", "interface", "let", "new", "null", "package", "private",
    "protected", "public", "return", "static", "super", "switch", "this",
    "throw", "true", "try", "typeof", "var", "void", "while", "with", "yield",
})

_OPEN_RE = re.compile(r"\s*\{\s*")
_CLOSE_RE = re.compile(r"\s*\}\s*")
_LET_RE = re.compile(r"\blet\s+([^;=]+)")
_ID_PREFIX_RE = re.compile(r"\s*([+-]?)(\d*)")
_U32_MASK = 0xFFFFFFFF


def is_reserved_word(name: str) -> bool:
    """Whether ``name`` is a reserved word in JavaScript."""
    return name in JS_RESERVED_WORDS


def const_to_js(const: Const, global_prefix: str = "global") -> str:
    """Render a constant as a JS literal; floats are given as their raw bit patterns.

    ``global_prefix`` has no effect on plain constants; it is accepted so the
    signature matches :func:`init_expr_to_js`.
    """
    if const.type is ValType.I32:
        return str(const.u32)
    if const.type is ValType.I64:
        return f"{const.u64}n"
    if const.type is ValType.F32:
        return f"{const.f32_bits} /* f32 */"
    if const.type is ValType.F64:
        return f"{const.f64_bits} /* f64 */"
    return "0 /* unsupported const */"


def init_expr_to_js(exprs: Sequence[Instr], global_prefix: str = "global") -> str:
    """Render an initializer expression, looking only at its first instruction."""
    if not exprs:
        return "0 /* empty init */"
    first = exprs[0]
    if first.kind is ExprKind.CONST and first.const is not None:
        return const_to_js(first.const, global_prefix)
    if first.kind is ExprKind.GLOBAL_GET:
        return f"{global_prefix}{first.index}"
    return "0 /* complex init not handled */"


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def clean_dead_js(source: str) -> str:
    """Drop lines that follow a ``return`` or ``break`` in the same brace scope."""
    keep: list[str] = []
    reachable = [True]
    for line in _split_lines(source):
        stripped = line.strip()
        for _ in range(line.count("}")):
            if len(reachable) > 1:
                reachable.pop()
        if reachable[-1]:
            keep.append(line)
        reachable.extend([reachable[-1]] * line.count("{"))
        if reachable[-1] and (stripped.startswith("return") or stripped.startswith("break")):
            reachable[-1] = False
    return "\n".join(keep)


def clean_empty_braces(lines: Iterable[str]) -> list[str]:
    """Remove ``{`` / ``}`` line pairs with nothing between them.

    A pair is kept when the line after it is a ``//`` comment.
    """
    result = list(lines)
    i = 1
    while i + 1 < len(result):
        if _OPEN_RE.fullmatch(result[i - 1]) and _CLOSE_RE.fullmatch(result[i]):
            if result[i + 1].strip().startswith("//"):
                i += 1
                continue
            del result[i - 1 : i + 1]
            i = max(i - 1, 1)
        else:
            i += 1
    return result


def fill_brackets(scope: str) -> str:
    """Balance braces: open unmatched ``}`` and close unmatched ``{`` at the end."""
    out: list[str] = []
    opened = 0
    for ch in scope:
        if ch == "{":
            opened += 1
        elif ch == "}":
            if opened == 0:
                out.append("{")
            else:
                opened -= 1
        out.append(ch)
    out.append("}" * opened)
    return "".join(out)


def _collapse_semicolons(line: str) -> str:
    result: list[str] = []
    in_string = False
    quote = ""
    for i, ch in enumerate(line):
        if ch in "\"'" and (i == 0 or line[i - 1] != "\\"):
            if not in_string:
                in_string, quote = True, ch
            elif ch == quote:
                in_string = False
        if not in_string and ch == ";" and result and result[-1] == ";":
            continue
        result.append(ch)
    return "".join(result)


def remove_semicolons(statements: Iterable[str]) -> list[str]:
    """Collapse runs of ``;`` outside string literals and end every statement with a newline."""
    cleaned: list[str] = []
    for line in statements:
        result = _collapse_semicolons(line)
        if len(result) >= 2 and result.endswith(";\n"):
            body = result[:-1]
            semis = len(body) - len(body.rstrip(";"))
            if semis > 1:
                result = body[: len(body) - (semis - 1)] + "\n"
        if not result.endswith("\n"):
            result += "\n"
        cleaned.append(result)
    return cleaned


def _parse_index(text: str) -> int:
    match = _ID_PREFIX_RE.match(text)
    sign, digits = match.group(1), match.group(2)
    if not digits:
        return 0
    value = int(digits)
    if value > _U32_MASK:
        return _U32_MASK
    if sign == "-":
        value = -value
    return value & _U32_MASK


def _sanitize(name: str) -> str:
    return "".join(c if (c.isascii() and c.isalnum()) or c in "_$" else "_" for c in name)


def parse_gemini_answer(text: str) -> dict[int, str]:
    """Parse ``index=name`` lines into a mapping from function index to a safe JS name."""
    names: dict[int, str] = {}
    for raw in text.split("\n"):
        line = trim(raw)
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        name = value.strip()
        if not name or not (name[0].isascii() and name[0].isalpha()):
            continue
        name = _sanitize(name)[:MAX_FUNC_NAME_LEN]
        if is_reserved_word(name):
            name += "_"
        names[_parse_index(key)] = name
    return names


def replace_id(text: str, old_id: str, new_id: str) -> str:
    """Replace whole-word occurrences of ``old_id`` with ``new_id``."""
    return replace_all_regex(text, r"\b" + re.escape(old_id) + r"\b", new_id)


def extract_locals(func_src: str) -> list[str]:
    """Names declared by ``let`` statements, in order of appearance."""
    return [
        name
        for match in _LET_RE.finditer(func_src)
        for name in (trim(part) for part in match.group(1).split(","))
        if name
    ]