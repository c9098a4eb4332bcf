"""Decoder for the WebAssembly binary format into a simple tree IR."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TypeVar, Union

T = TypeVar("T")


class WasmDecodeError(ValueError):
    """Raised when a module cannot be decoded."""


class ValType(enum.Enum):
    I32 = 0x7F
    I64 = 0x7E
    F32 = 0x7D
    F64 = 0x7C
    V128 = 0x7B
    FUNCREF = 0x70
    EXTERNREF = 0x6F

    @property
    def wat_name(self) -> str:
        return self.name.lower()


class ExprKind(enum.Enum):
    UNREACHABLE = enum.auto()
    NOP = enum.auto()
    BLOCK = enum.auto()
    LOOP = enum.auto()
    IF = enum.auto()
    BR = enum.auto()
    BR_IF = enum.auto()
    BR_TABLE = enum.auto()
    RETURN = enum.auto()
    CALL = enum.auto()
    CALL_INDIRECT = enum.auto()
    DROP = enum.auto()
    SELECT = enum.auto()
    LOCAL_GET = enum.auto()
    LOCAL_SET = enum.auto()
    LOCAL_TEE = enum.auto()
    GLOBAL_GET = enum.auto()
    GLOBAL_SET = enum.auto()
    LOAD = enum.auto()
    STORE = enum.auto()
    MEMORY_SIZE = enum.auto()
    MEMORY_GROW = enum.auto()
    CONST = enum.auto()
    COMPARE = enum.auto()
    UNARY = enum.auto()
    BINARY = enum.auto()
    CONVERT = enum.auto()
    REF_NULL = enum.auto()
    REF_IS_NULL = enum.auto()
    REF_FUNC = enum.auto()
    OTHER = enum.auto()


class ExternalKind(enum.Enum):
    FUNC = 0
    TABLE = 1
    MEMORY = 2
    GLOBAL = 3
    TAG = 4


class SegmentKind(enum.Enum):
    ACTIVE = "active"
    PASSIVE = "passive"
    DECLARED = "declared"


@dataclass(frozen=True)
class Const:
    """A constant; ``bits`` holds the raw unsigned bit pattern."""

    type: ValType
    bits: int

    @property
    def u32(self) -> int:
        return self.bits & 0xFFFFFFFF

    @property
    def s32(self) -> int:
        v = self.u32
        return v - (1 << 32) if v & 0x80000000 else v

    @property
    def u64(self) -> int:
        return self.bits & 0xFFFFFFFFFFFFFFFF

    @property
    def s64(self) -> int:
        v = self.u64
        return v - (1 << 64) if v & (1 << 63) else v

    @property
    def f32_bits(self) -> int:
        return self.u32

    @property
    def f64_bits(self) -> int:
        return self.u64


@dataclass(frozen=True)
class FuncSignature:
    params: tuple[ValType, ...] = ()
    results: tuple[ValType, ...] = ()

    @property
    def num_params(self) -> int:
        return len(self.params)

    @property
    def num_results(self) -> int:
        return len(self.results)

    def result_type(self, index: int) -> ValType:
        return self.results[index]


BlockType = Union[None, ValType, int]


@dataclass
class Instr:
    """One instruction; structured instructions carry their nested bodies."""

    kind: ExprKind
    opcode: str
    position: int = 0
    index: int = 0
    const: Const | None = None
    block_type: BlockType = None
    body: list[Instr] = field(default_factory=list)
    else_body: list[Instr] = field(default_factory=list)
    targets: tuple[int, ...] = ()
    default_target: int = 0
    table_index: int = 0
    memory_index: int = 0
    offset: int = 0
    align: int = 0
    label: str = ""


@dataclass(eq=False)
class Memory:
    initial: int
    maximum: int | None = None
    shared: bool = False
    memory64: bool = False


@dataclass(eq=False)
class Table:
    elem_type: ValType
    initial: int
    maximum: int | None = None


@dataclass(eq=False)
class Global:
    type: ValType
    mutable: bool
    init: list[Instr] = field(default_factory=list)


@dataclass(eq=False)
class Import:
    module_name: str
    field_name: str
    kind: ExternalKind
    type_index: int = 0
    memory: Memory | None = None
    table: Table | None = None
    global_: Global | None = None


@dataclass
class Export:
    name: str
    kind: ExternalKind
    index: int


@dataclass(eq=False)
class Func:
    """A function defined in the module; ``name`` comes from the name section."""

    type_index: int
    signature: FuncSignature
    local_types: list[ValType] = field(default_factory=list)
    body: list[Instr] = field(default_factory=list)
    name: str = ""
    local_names: dict[int, str] = field(default_factory=dict)

    @property
    def num_params(self) -> int:
        return self.signature.num_params

    @property
    def num_locals(self) -> int:
        """Number of declared locals, not counting parameters."""
        return len(self.local_types)


@dataclass(eq=False)
class DataSegment:
    kind: SegmentKind
    data: bytes
    memory_index: int = 0
    offset: list[Instr] = field(default_factory=list)


@dataclass(eq=False)
class ElemSegment:
    kind: SegmentKind
    elem_type: ValType
    elem_exprs: list[list[Instr]]
    table_index: int = 0
    offset: list[Instr] = field(default_factory=list)


@dataclass(eq=False)
class Module:
    types: list[FuncSignature] = field(default_factory=list)
    imports: list[Import] = field(default_factory=list)
    funcs: list[Func] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    memories: list[Memory] = field(default_factory=list)
    globals: list[Global] = field(default_factory=list)
    exports: list[Export] = field(default_factory=list)
    data_segments: list[DataSegment] = field(default_factory=list)
    elem_segments: list[ElemSegment] = field(default_factory=list)
    start: int | None = None
    import_func_names: dict[int, str] = field(default_factory=dict)

    @property
    def func_imports(self) -> list[Import]:
        return [imp for imp in self.imports if imp.kind is ExternalKind.FUNC]

    @property
    def num_func_imports(self) -> int:
        return len(self.func_imports)

    def func_signature(self, index: int) -> FuncSignature | None:
        """Signature of a function in the combined (imports first) index space."""
        if index < 0:
            return None
        imported = self.func_imports
        if index < len(imported):
            type_index = imported[index].type_index
            return self.types[type_index] if type_index < len(self.types) else None
        local = index - len(imported)
        if local < len(self.funcs):
            return self.funcs[local].signature
        return None


class _Reader:
    def __init__(self, data: bytes, pos: int = 0, end: int | None = None):
        self.data = data
        self.pos = pos
        self.end = len(data) if end is None else end

    @property
    def at_end(self) -> bool:
        return self.pos >= self.end

    def byte(self) -> int:
        if self.pos >= self.end:
            raise WasmDecodeError(f"unexpected end of data at offset {self.pos}")
        b = self.data[self.pos]
        self.pos += 1
        return b

    def peek(self) -> int:
        if self.pos >= self.end:
            raise WasmDecodeError(f"unexpected end of data at offset {self.pos}")
        return self.data[self.pos]

    def take(self, n: int) -> bytes:
        if n < 0 or self.pos + n > self.end:
            raise WasmDecodeError(f"unexpected end of data at offset {self.pos}")
        chunk = self.data[self.pos : self.pos + n]
        self.pos += n
        return bytes(chunk)

    def uleb(self, bits: int = 32) -> int:
        result = shift = 0
        for _ in range((bits + 6) // 7):
            b = self.byte()
            result |= (b & 0x7F) << shift
            shift += 7
            if not b & 0x80:
                if result >> bits:
                    raise WasmDecodeError("integer too large")
                return result
        raise WasmDecodeError("integer representation too long")

    def sleb(self, bits: int) -> int:
        result = shift = 0
        for _ in range((bits + 6) // 7):
            b = self.byte()
            result |= (b & 0x7F) << shift
            shift += 7
            if not b & 0x80:
                if b & 0x40:
                    result -= 1 << shift
                if not -(1 << (bits - 1)) <= result < (1 << (bits - 1)):
                    raise WasmDecodeError("integer too large")
                return result
        raise WasmDecodeError("integer representation too long")

    def name(self) -> str:
        raw = self.take(self.uleb())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WasmDecodeError("invalid UTF-8 name") from exc

    def vec(self, item: Callable[[], T]) -> list[T]:
        return [item() for _ in range(self.uleb())]

    def sub(self, size: int) -> _Reader:
        if self.pos + size > self.end:
            raise WasmDecodeError(f"section extends past end of data at offset {self.pos}")
        reader = _Reader(self.data, self.pos, self.pos + size)
        self.pos += size
        return reader

    def valtype(self) -> ValType:
        b = self.byte()
        try:
            return ValType(b)
        except ValueError:
            raise WasmDecodeError(f"unsupported value type 0x{b:02x}") from None


_SIMPLE: dict[int, tuple[str, ExprKind]] = {}


def _add(start: int, names: list[str], kind: ExprKind) -> None:
    for offset, name in enumerate(names):
        _SIMPLE[start + offset] = (name, kind)


_CMP_I = ["eq", "ne", "lt_s", "lt_u", "gt_s", "gt_u", "le_s", "le_u", "ge_s", "ge_u"]
_CMP_F = ["eq", "ne", "lt", "gt", "le", "ge"]
_UN_I = ["clz", "ctz", "popcnt"]
_BIN_I = ["add", "sub", "mul", "div_s", "div_u", "rem_s", "rem_u",
          "and", "or", "xor", "shl", "shr_s", "shr_u", "rotl", "rotr"]
_UN_F = ["abs", "neg", "ceil", "floor", "trunc", "nearest", "sqrt"]
_BIN_F = ["add", "sub", "mul", "div", "min", "max", "copysign"]
_CONVERSIONS = [
    "i32.wrap_i64", "i32.trunc_f32_s", "i32.trunc_f32_u", "i32.trunc_f64_s", "i32.trunc_f64_u",
    "i64.extend_i32_s", "i64.extend_i32_u", "i64.trunc_f32_s", "i64.trunc_f32_u",
    "i64.trunc_f64_s", "i64.trunc_f64_u", "f32.convert_i32_s", "f32.convert_i32_u",
    "f32.convert_i64_s", "f32.convert_i64_u", "f32.demote_f64", "f64.convert_i32_s",
    "f64.convert_i32_u", "f64.convert_i64_s", "f64.convert_i64_u", "f64.promote_f32",
    "i32.reinterpret_f32", "i64.reinterpret_f64", "f32.reinterpret_i32", "f64.reinterpret_i64",
]

_add(0x00, ["unreachable", "nop"], ExprKind.OTHER)
_SIMPLE[0x00] = ("unreachable", ExprKind.UNREACHABLE)
_SIMPLE[0x01] = ("nop", ExprKind.NOP)
_SIMPLE[0x0F] = ("return", ExprKind.RETURN)
_SIMPLE[0x1A] = ("drop", ExprKind.DROP)
_SIMPLE[0x1B] = ("select", ExprKind.SELECT)
_SIMPLE[0xD1] = ("ref.is_null", ExprKind.REF_IS_NULL)
_add(0x45, ["i32.eqz"], ExprKind.UNARY)
_add(0x46, ["i32." + n for n in _CMP_I], ExprKind.COMPARE)
_add(0x50, ["i64.eqz"], ExprKind.UNARY)
_add(0x51, ["i64." + n for n in _CMP_I], ExprKind.COMPARE)
_add(0x5B, ["f32." + n for n in _CMP_F], ExprKind.COMPARE)
_add(0x61, ["f64." + n for n in _CMP_F], ExprKind.COMPARE)
_add(0x67, ["i32." + n for n in _UN_I], ExprKind.UNARY)
_add(0x6A, ["i32." + n for n in _BIN_I], ExprKind.BINARY)
_add(0x79, ["i64." + n for n in _UN_I], ExprKind.UNARY)
_add(0x7C, ["i64." + n for n in _BIN_I], ExprKind.BINARY)
_add(0x8B, ["f32." + n for n in _UN_F], ExprKind.UNARY)
_add(0x92, ["f32." + n for n in _BIN_F], ExprKind.BINARY)
_add(0x99, ["f64." + n for n in _UN_F], ExprKind.UNARY)
_add(0xA0, ["f64." + n for n in _BIN_F], ExprKind.BINARY)
_add(0xA7, _CONVERSIONS, ExprKind.CONVERT)
_add(0xC0, ["i32.extend8_s", "i32.extend16_s", "i64.extend8_s", "i64.extend16_s",
            "i64.extend32_s"], ExprKind.UNARY)

_LOADS = {0x28 + i: n for i, n in enumerate([
    "i32.load", "i64.load", "f32.load", "f64.load", "i32.load8_s", "i32.load8_u",
    "i32.load16_s", "i32.load16_u", "i64.load8_s", "i64.load8_u", "i64.load16_s",
    "i64.load16_u", "i64.load32_s", "i64.load32_u"])}
_STORES = {0x36 + i: n for i, n in enumerate([
    "i32.store", "i64.store", "f32.store", "f64.store", "i32.store8", "i32.store16",
    "i64.store8", "i64.store16", "i64.store32"])}
_VARIABLE = {
    0x20: ("local.get", ExprKind.LOCAL_GET),
    0x21: ("local.set", ExprKind.LOCAL_SET),
    0x22: ("local.tee", ExprKind.LOCAL_TEE),
    0x23: ("global.get", ExprKind.GLOBAL_GET),
    0x24: ("global.set", ExprKind.GLOBAL_SET),
    0x25: ("table.get", ExprKind.OTHER),
    0x26: ("table.set", ExprKind.OTHER),
    0x0C: ("br", ExprKind.BR),
    0x0D: ("br_if", ExprKind.BR_IF),
    0x10: ("call", ExprKind.CALL),
    0x12: ("return_call", ExprKind.OTHER),
    0xD2: ("ref.func", ExprKind.REF_FUNC),
}
_TRUNC_SAT = ["i32.trunc_sat_f32_s", "i32.trunc_sat_f32_u", "i32.trunc_sat_f64_s",
              "i32.trunc_sat_f64_u", "i64.trunc_sat_f32_s", "i64.trunc_sat_f32_u",
              "i64.trunc_sat_f64_s", "i64.trunc_sat_f64_u"]
_STRUCTURED = {0x02: ("block", ExprKind.BLOCK), 0x03: ("loop", ExprKind.LOOP),
               0x04: ("if", ExprKind.IF)}
_END = 0x0B
_ELSE = 0x05


def _block_type(r: _Reader) -> BlockType:
    b = r.peek()
    if b == 0x40:
        r.byte()
        return None
    if b in {t.value for t in ValType}:
        return r.valtype()
    index = r.sleb(33)
    if index < 0:
        raise WasmDecodeError(f"invalid block type at offset {r.pos}")
    return index


def _memarg(r: _Reader) -> tuple[int, int, int]:
    align = r.uleb()
    memory_index = r.uleb() if align & 0x40 else 0
    return align & ~0x40, memory_index, r.uleb(64)


def _prefixed(r: _Reader, pos: int) -> Instr:
    sub = r.uleb()
    if sub < len(_TRUNC_SAT):
        return Instr(ExprKind.CONVERT, _TRUNC_SAT[sub], pos)
    if sub == 8:
        index = r.uleb()
        return Instr(ExprKind.OTHER, "memory.init", pos, index=index, memory_index=r.uleb())
    if sub == 9:
        return Instr(ExprKind.OTHER, "data.drop", pos, index=r.uleb())
    if sub == 10:
        dst = r.uleb()
        r.uleb()
        return Instr(ExprKind.OTHER, "memory.copy", pos, memory_index=dst)
    if sub == 11:
        return Instr(ExprKind.OTHER, "memory.fill", pos, memory_index=r.uleb())
    if sub == 12:
        index = r.uleb()
        return Instr(ExprKind.OTHER, "table.init", pos, index=index, table_index=r.uleb())
    if sub == 13:
        return Instr(ExprKind.OTHER, "elem.drop", pos, index=r.uleb())
    if sub == 14:
        dst = r.uleb()
        r.uleb()
        return Instr(ExprKind.OTHER, "table.copy", pos, table_index=dst)
    names = {15: "table.grow", 16: "table.size", 17: "table.fill"}
    if sub in names:
        return Instr(ExprKind.OTHER, names[sub], pos, table_index=r.uleb())
    raise WasmDecodeError(f"unsupported opcode 0xfc {sub} at offset {pos}")


def _decode_instr(r: _Reader, op: int, pos: int) -> Instr:
    if op in _SIMPLE:
        name, kind = _SIMPLE[op]
        return Instr(kind, name, pos)
    if op in _STRUCTURED:
        name, kind = _STRUCTURED[op]
        return Instr(kind, name, pos, block_type=_block_type(r))
    if op in _VARIABLE:
        name, kind = _VARIABLE[op]
        return Instr(kind, name, pos, index=r.uleb())
    if op in _LOADS or op in _STORES:
        align, memory_index, offset = _memarg(r)
        if op in _LOADS:
            return Instr(ExprKind.LOAD, _LOADS[op], pos, align=align,
                         memory_index=memory_index, offset=offset)
        return Instr(ExprKind.STORE, _STORES[op], pos, align=align,
                     memory_index=memory_index, offset=offset)
    if op == 0x0E:
        targets = tuple(r.vec(r.uleb))
        return Instr(ExprKind.BR_TABLE, "br_table", pos, targets=targets, default_target=r.uleb())
    if op in (0x11, 0x13):
        type_index = r.uleb()
        name = "call_indirect" if op == 0x11 else "return_call_indirect"
        kind = ExprKind.CALL_INDIRECT if op == 0x11 else ExprKind.OTHER
        return Instr(kind, name, pos, index=type_index, table_index=r.uleb())
    if op == 0x1C:
        r.vec(r.valtype)
        return Instr(ExprKind.SELECT, "select", pos)
    if op in (0x3F, 0x40):
        memory_index = r.uleb()
        if op == 0x3F:
            return Instr(ExprKind.MEMORY_SIZE, "memory.size", pos, memory_index=memory_index)
        return Instr(ExprKind.MEMORY_GROW, "memory.grow", pos, memory_index=memory_index)
    if op == 0x41:
        return Instr(ExprKind.CONST, "i32.const", pos, const=Const(ValType.I32, r.sleb(32) & 0xFFFFFFFF))
    if op == 0x42:
        return Instr(ExprKind.CONST, "i64.const", pos,
                     const=Const(ValType.I64, r.sleb(64) & 0xFFFFFFFFFFFFFFFF))
    if op == 0x43:
        return Instr(ExprKind.CONST, "f32.const", pos,
                     const=Const(ValType.F32, int.from_bytes(r.take(4), "little")))
    if op == 0x44:
        return Instr(ExprKind.CONST, "f64.const", pos,
                     const=Const(ValType.F64, int.from_bytes(r.take(8), "little")))
    if op == 0xD0:
        return Instr(ExprKind.REF_NULL, "ref.null", pos, index=r.byte())
    if op == 0xFC:
        return _prefixed(r, pos)
    raise WasmDecodeError(f"unsupported opcode 0x{op:02x} at offset {pos}")


def _read_expr(r: _Reader) -> list[Instr]:
    result: list[Instr] = []
    frames: list[tuple[Instr | None, list[Instr]]] = [(None, result)]
    while True:
        pos = r.pos
        op = r.byte()
        if op == _END:
            owner, _ = frames.pop()
            if owner is None:
                return result
            continue
        if op == _ELSE:
            owner, current = frames[-1]
            if owner is None or owner.kind is not ExprKind.IF or current is owner.else_body:
                raise WasmDecodeError(f"unexpected else at offset {pos}")
            frames[-1] = (owner, owner.else_body)
            continue
        instr = _decode_instr(r, op, pos)
        frames[-1][1].append(instr)
        if instr.kind in (ExprKind.BLOCK, ExprKind.LOOP, ExprKind.IF):
            frames.append((instr, instr.body))


def _limits(r: _Reader) -> tuple[int, int | None, bool, bool]:
    flags = r.byte()
    if flags & ~0x07:
        raise WasmDecodeError(f"invalid limits flags 0x{flags:02x}")
    bits = 64 if flags & 0x04 else 32
    initial = r.uleb(bits)
    maximum = r.uleb(bits) if flags & 0x01 else None
    return initial, maximum, bool(flags & 0x02), bool(flags & 0x04)


def _memory(r: _Reader) -> Memory:
    initial, maximum, shared, mem64 = _limits(r)
    return Memory(initial, maximum, shared, mem64)


def _table(r: _Reader) -> Table:
    elem_type = r.valtype()
    initial, maximum, _, _ = _limits(r)
    return Table(elem_type, initial, maximum)


def _global_type(r: _Reader) -> Global:
    valtype = r.valtype()
    mut = r.byte()
    if mut not in (0, 1):
        raise WasmDecodeError("invalid global mutability")
    return Global(valtype, bool(mut))


def _func_type(r: _Reader) -> FuncSignature:
    form = r.byte()
    if form != 0x60:
        raise WasmDecodeError(f"unsupported type form 0x{form:02x}")
    params = tuple(r.vec(r.valtype))
    return FuncSignature(params, tuple(r.vec(r.valtype)))


def _import(r: _Reader, module: Module) -> Import:
    module_name = r.name()
    field_name = r.name()
    kind_byte = r.byte()
    try:
        kind = ExternalKind(kind_byte)
    except ValueError:
        raise WasmDecodeError(f"invalid import kind {kind_byte}") from None
    imp = Import(module_name, field_name, kind)
    if kind is ExternalKind.FUNC:
        imp.type_index = r.uleb()
    elif kind is ExternalKind.TABLE:
        imp.table = _table(r)
        module.tables.append(imp.table)
    elif kind is ExternalKind.MEMORY:
        imp.memory = _memory(r)
        module.memories.append(imp.memory)
    elif kind is ExternalKind.GLOBAL:
        imp.global_ = _global_type(r)
        module.globals.append(imp.global_)
    else:
        r.byte()
        imp.type_index = r.uleb()
    return imp


def _export(r: _Reader) -> Export:
    name = r.name()
    kind_byte = r.byte()
    try:
        kind = ExternalKind(kind_byte)
    except ValueError:
        raise WasmDecodeError(f"invalid export kind {kind_byte}") from None
    return Export(name, kind, r.uleb())


def _ref_funcs(r: _Reader) -> list[list[Instr]]:
    return [[Instr(ExprKind.REF_FUNC, "ref.func", index=i)] for i in r.vec(r.uleb)]


def _elem_segment(r: _Reader) -> ElemSegment:
    flags = r.uleb()
    if flags > 7:
        raise WasmDecodeError(f"invalid element segment flags {flags}")
    passive_or_declared = bool(flags & 0x01)
    explicit_table = bool(flags & 0x02)
    uses_exprs = bool(flags & 0x04)
    if passive_or_declared:
        kind = SegmentKind.DECLARED if explicit_table else SegmentKind.PASSIVE
    else:
        kind = SegmentKind.ACTIVE
    table_index = 0
    offset: list[Instr] = []
    if kind is SegmentKind.ACTIVE:
        if explicit_table:
            table_index = r.uleb()
        offset = _read_expr(r)
    elem_type = ValType.FUNCREF
    if passive_or_declared or explicit_table:
        if uses_exprs:
            elem_type = r.valtype()
        elif r.byte() != 0x00:
            raise WasmDecodeError("invalid element kind")
    exprs = r.vec(lambda: _read_expr(r)) if uses_exprs else _ref_funcs(r)
    return ElemSegment(kind, elem_type, exprs, table_index, offset)


def _data_segment(r: _Reader) -> DataSegment:
    flags = r.uleb()
    if flags == 0:
        offset = _read_expr(r)
        return DataSegment(SegmentKind.ACTIVE, r.take(r.uleb()), 0, offset)
    if flags == 1:
        return DataSegment(SegmentKind.PASSIVE, r.take(r.uleb()))
    if flags == 2:
        memory_index = r.uleb()
        offset = _read_expr(r)
        return DataSegment(SegmentKind.ACTIVE, r.take(r.uleb()), memory_index, offset)
    raise WasmDecodeError(f"invalid data segment flags {flags}")


def _code_entry(r: _Reader) -> tuple[list[ValType], list[Instr]]:
    entry = r.sub(r.uleb())
    local_types: list[ValType] = []
    for _ in range(entry.uleb()):
        count = entry.uleb()
        valtype = entry.valtype()
        local_types.extend([valtype] * count)
    body = _read_expr(entry)
    if not entry.at_end:
        raise WasmDecodeError(f"trailing bytes in function body at offset {entry.pos}")
    return local_types, body


def _name_section(r: _Reader) -> tuple[dict[int, str], dict[int, dict[int, str]]]:
    func_names: dict[int, str] = {}
    local_names: dict[int, dict[int, str]] = {}
    while not r.at_end:
        sub_id = r.byte()
        sub = r.sub(r.uleb())
        if sub_id == 1:
            for _ in range(sub.uleb()):
                index = sub.uleb()
                func_names[index] = sub.name()
        elif sub_id == 2:
            for _ in range(sub.uleb()):
                func_index = sub.uleb()
                names = local_names.setdefault(func_index, {})
                for _ in range(sub.uleb()):
                    local_index = sub.uleb()
                    names[local_index] = sub.name()
    return func_names, local_names


def read_module(data: bytes) -> Module:
    """Decode a binary module."""
    r = _Reader(bytes(data))
    if r.take(4) != b"\0asm" if len(data) >= 4 else True:
        raise WasmDecodeError("bad magic number")
    version = int.from_bytes(r.take(4), "little")
    if version != 1:
        raise WasmDecodeError(f"unsupported version {version}")

    module = Module()
    type_indices: list[int] = []
    codes: list[tuple[list[ValType], list[Instr]]] = []
    func_names: dict[int, str] = {}
    local_names: dict[int, dict[int, str]] = {}

    while not r.at_end:
        section_id = r.byte()
        s = r.sub(r.uleb())
        if section_id == 0:
            if s.name() == "name":
                try:
                    func_names, local_names = _name_section(s)
                except WasmDecodeError:
                    func_names, local_names = {}, {}
            continue
        if section_id == 1:
            module.types = s.vec(lambda: _func_type(s))
        elif section_id == 2:
            module.imports = s.vec(lambda: _import(s, module))
        elif section_id == 3:
            type_indices = s.vec(s.uleb)
        elif section_id == 4:
            module.tables.extend(s.vec(lambda: _table(s)))
        elif section_id == 5:
            module.memories.extend(s.vec(lambda: _memory(s)))
        elif section_id == 6:
            def read_global() -> Global:
                g = _global_type(s)
                g.init = _read_expr(s)
                return g
            module.globals.extend(s.vec(read_global))
        elif section_id == 7:
            module.exports = s.vec(lambda: _export(s))
        elif section_id == 8:
            module.start = s.uleb()
        elif section_id == 9:
            module.elem_segments = s.vec(lambda: _elem_segment(s))
        elif section_id == 10:
            codes = s.vec(lambda: _code_entry(s))
        elif section_id == 11:
            module.data_segments = s.vec(lambda: _data_segment(s))
        elif section_id == 12:
            s.uleb()
        else:
            raise WasmDecodeError(f"unknown section id {section_id}")
        if not s.at_end:
            raise WasmDecodeError(f"section {section_id} has trailing bytes")

    if len(type_indices) != len(codes):
        raise WasmDecodeError("function and code section counts differ")

    num_imports = module.num_func_imports
    for index, name in func_names.items():
        if index < num_imports:
            module.import_func_names[index] = name
    for offset, (type_index, (local_types, body)) in enumerate(zip(type_indices, codes)):
        if type_index >= len(module.types):
            raise WasmDecodeError(f"invalid type index {type_index}")
        absolute = num_imports + offset
        module.funcs.append(Func(
            type_index, module.types[type_index], local_types, body,
            func_names.get(absolute, ""), local_names.get(absolute, {}),
        ))
    return module


def load_module(path: str | Path) -> Module:
    """Read and decode a module from a file."""
    return read_module(Path(path).read_bytes())