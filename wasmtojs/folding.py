"""Stack operands plus constant folding and rendering of binary operators."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Callable

from .wasm import Const, ValType

_MASKS = {32: 0xFFFFFFFF, 64: 0xFFFFFFFFFFFFFFFF}
_INT_TYPES = {"i32": (ValType.I32, 32), "i64": (ValType.I64, 64)}
_FLOAT_TYPES = {"f32": ValType.F32, "f64": ValType.F64}
_COMPARE_OPS = frozenset({
    "eq", "ne", "lt", "gt", "le", "ge",
    "lt_s", "lt_u", "gt_s", "gt_u", "le_s", "le_u", "ge_s", "ge_u",
})
_FLT_MAX = float.fromhex("0x1.fffffep+127")
_F32_OVERFLOW = 2.0**128 - 2.0**103


@dataclass
class Operand:
    """A value on the translation stack: its JS text and, if known, its constant value."""

    js_repr: str = ""
    is_constant: bool = False
    type: ValType | None = None
    value: Const | None = None


def const_operand(const: Const) -> Operand:
    """Operand for a constant instruction."""
    if const.type is ValType.I32:
        text = str(const.s32)
    elif const.type is ValType.I64:
        text = f"{const.s64}n"
    elif const.type is ValType.F32:
        text = f"f32({const.f32_bits})"
    elif const.type is ValType.F64:
        text = f"f64({const.f64_bits})"
    else:
        text = "/* unknown const */"
    return Operand(text, True, const.type, const)


def binary_result_type(opname: str) -> ValType | None:
    """Type produced by a binary or comparison operator such as ``i64.add``."""
    prefix, _, op = opname.partition(".")
    if prefix not in _INT_TYPES and prefix not in _FLOAT_TYPES:
        return None
    if op in _COMPARE_OPS:
        return ValType.I32
    return _INT_TYPES[prefix][0] if prefix in _INT_TYPES else _FLOAT_TYPES[prefix]


# ---------------------------------------------------------------- folding

def _signed(value: int, bits: int) -> int:
    return value - (1 << bits) if value >> (bits - 1) else value


def _trunc_div(x: int, y: int) -> int:
    q = abs(x) // abs(y)
    return q if (x < 0) == (y < 0) else -q


_IntOp = Callable[[int, int, int, int, int, int], int]

_INT_ARITH: dict[str, _IntOp] = {
    "add": lambda a, b, sa, sb, s, n: a + b,
    "sub": lambda a, b, sa, sb, s, n: a - b,
    "mul": lambda a, b, sa, sb, s, n: a * b,
    "and": lambda a, b, sa, sb, s, n: a & b,
    "or": lambda a, b, sa, sb, s, n: a | b,
    "xor": lambda a, b, sa, sb, s, n: a ^ b,
    "shl": lambda a, b, sa, sb, s, n: a << s,
    "shr_s": lambda a, b, sa, sb, s, n: sa >> s,
    "shr_u": lambda a, b, sa, sb, s, n: a >> s,
    "rotl": lambda a, b, sa, sb, s, n: (a << s) | (a >> (n - s)),
    "rotr": lambda a, b, sa, sb, s, n: (a >> s) | (a << (n - s)),
}

_INT_DIV: dict[str, Callable[[int, int, int, int], int]] = {
    "div_s": lambda a, b, sa, sb: _trunc_div(sa, sb),
    "div_u": lambda a, b, sa, sb: a // b,
    "rem_s": lambda a, b, sa, sb: sa - sb * _trunc_div(sa, sb),
    "rem_u": lambda a, b, sa, sb: a % b,
}

_INT_COMPARE: dict[str, Callable[[int, int, int, int], bool]] = {
    "eq": lambda a, b, sa, sb: a == b,
    "ne": lambda a, b, sa, sb: a != b,
    "lt_s": lambda a, b, sa, sb: sa < sb,
    "lt_u": lambda a, b, sa, sb: a < b,
    "gt_s": lambda a, b, sa, sb: sa > sb,
    "gt_u": lambda a, b, sa, sb: a > b,
    "le_s": lambda a, b, sa, sb: sa <= sb,
    "le_u": lambda a, b, sa, sb: a <= b,
    "ge_s": lambda a, b, sa, sb: sa >= sb,
    "ge_u": lambda a, b, sa, sb: a >= b,
}

_FLOAT_ARITH: dict[str, Callable[[float, float], float]] = {
    "add": lambda a, b: a + b,
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
    "div": lambda a, b: a / b,
    "min": lambda a, b: b if b < a else a,
    "max": lambda a, b: b if a < b else a,
    "copysign": math.copysign,
}

_FLOAT_COMPARE: dict[str, Callable[[float, float], bool]] = {
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
    "lt": lambda a, b: a < b,
    "le": lambda a, b: a <= b,
    "gt": lambda a, b: a > b,
    "ge": lambda a, b: a >= b,
}


def _int_result(value: int, valtype: ValType) -> Operand:
    bits = 32 if valtype is ValType.I32 else 64
    const = Const(valtype, value & _MASKS[bits])
    text = str(const.s32) if bits == 32 else f"{const.s64}n"
    return Operand(text, True, valtype, const)


def _round_f32(value: float) -> float:
    if math.isnan(value) or math.isinf(value):
        return value
    if abs(value) > _FLT_MAX:
        return math.copysign(math.inf if abs(value) >= _F32_OVERFLOW else _FLT_MAX, value)
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _decode_float(const: Const, valtype: ValType) -> float:
    if valtype is ValType.F32:
        return struct.unpack("<f", const.f32_bits.to_bytes(4, "little"))[0]
    return struct.unpack("<d", const.f64_bits.to_bytes(8, "little"))[0]


def _float_result(value: float, valtype: ValType) -> Operand:
    if valtype is ValType.F32:
        value = _round_f32(value)
        bits = int.from_bytes(struct.pack("<f", value), "little")
    else:
        bits = int.from_bytes(struct.pack("<d", value), "little")
    text = "NaN" if math.isnan(value) else f"{value:f}"
    return Operand(text, True, valtype, Const(valtype, bits))


def _fold_int(op: str, lhs: Const, rhs: Const, valtype: ValType, bits: int) -> Operand | None:
    mask = _MASKS[bits]
    a, b = lhs.bits & mask, rhs.bits & mask
    sa, sb = _signed(a, bits), _signed(b, bits)
    if op in _INT_COMPARE:
        return _int_result(int(_INT_COMPARE[op](a, b, sa, sb)), ValType.I32)
    if op in _INT_DIV:
        if b == 0:
            return None
        return _int_result(_INT_DIV[op](a, b, sa, sb), valtype)
    if op in _INT_ARITH:
        shift = b & (bits - 1)
        return _int_result(_INT_ARITH[op](a, b, sa, sb, shift, bits), valtype)
    return None


def _fold_float(op: str, lhs: Const, rhs: Const, valtype: ValType) -> Operand | None:
    a, b = _decode_float(lhs, valtype), _decode_float(rhs, valtype)
    if op in _FLOAT_COMPARE:
        return _int_result(int(_FLOAT_COMPARE[op](a, b)), ValType.I32)
    if op not in _FLOAT_ARITH:
        return None
    if op == "div" and b == 0.0:
        return None
    if valtype is ValType.F32:
        a, b = _round_f32(a), _round_f32(b)
    return _float_result(_FLOAT_ARITH[op](a, b), valtype)


def fold_binary(opname: str, lhs: Operand, rhs: Operand) -> Operand | None:
    """Evaluate a binary operator on two constants.

    Returns ``None`` when either side is not constant, the operator is unknown,
    or the divisor of a division or remainder is zero.
    """
    if not (lhs.is_constant and rhs.is_constant) or lhs.value is None or rhs.value is None:
        return None
    prefix, _, op = opname.partition(".")
    if prefix in _INT_TYPES:
        valtype, bits = _INT_TYPES[prefix]
        return _fold_int(op, lhs.value, rhs.value, valtype, bits)
    if prefix in _FLOAT_TYPES:
        return _fold_float(op, lhs.value, rhs.value, _FLOAT_TYPES[prefix])
    return None


# -------------------------------------------------------------- rendering

_INFIX: dict[str, str] = {}
_UNSIGNED_I32: dict[str, str] = {}
_CALLS: dict[str, str] = {}

for _t in ("i32", "i64"):
    for _op, _sym in (("add", "+"), ("sub", "-"), ("mul", "*"), ("div_s", "/"),
                      ("rem_s", "%"), ("and", "&"), ("or", "|"), ("xor", "^"),
                      ("shl", "<<"), ("shr_s", ">>"), ("eq", "==="), ("ne", "!=="),
                      ("lt_s", "<"), ("le_s", "<="), ("gt_s", ">"), ("ge_s", ">=")):
        _INFIX[f"{_t}.{_op}"] = _sym
    _CALLS[f"{_t}.rotl"] = f"rotl{_t[1:]}"
    _CALLS[f"{_t}.rotr"] = f"rotr{_t[1:]}"

for _op, _sym in (("div_u", "/"), ("rem_u", "%"), ("lt_u", "<"), ("le_u", "<="),
                  ("gt_u", ">"), ("ge_u", ">=")):
    _UNSIGNED_I32[f"i32.{_op}"] = _sym
    _INFIX[f"i64.{_op}"] = _sym
_INFIX["i32.shr_u"] = ">>>"
_INFIX["i64.shr_u"] = ">>"

for _t in ("f32", "f64"):
    for _op, _sym in (("add", "+"), ("sub", "-"), ("mul", "*"), ("div", "/"),
                      ("eq", "==="), ("ne", "!=="), ("lt", "<"), ("le", "<="),
                      ("gt", ">"), ("ge", ">=")):
        _INFIX[f"{_t}.{_op}"] = _sym
    _CALLS[f"{_t}.min"] = "Math.min"
    _CALLS[f"{_t}.max"] = "Math.max"
    _CALLS[f"{_t}.copysign"] = "copysign"

BINARY_OPERATORS = frozenset(_INFIX) | frozenset(_UNSIGNED_I32) | frozenset(_CALLS)


def render_binary(opname: str, lhs: Operand, rhs: Operand) -> Operand:
    """JS expression for a binary operator applied to two operands.

    Operators outside :data:`BINARY_OPERATORS` become an ``UNHANDLED_OP`` call.
    """
    l, r = lhs.js_repr, rhs.js_repr
    if opname in _UNSIGNED_I32:
        text = f"(({l} >>> 0) {_UNSIGNED_I32[opname]} ({r} >>> 0))"
    elif opname in _INFIX:
        text = f"({l} {_INFIX[opname]} {r})"
    elif opname in _CALLS:
        text = f"{_CALLS[opname]}({l}, {r})"
    else:
        text = f'UNHANDLED_OP("{opname}", {l}, {r})'
    return Operand(text, False, binary_result_type(opname))