import pytest

from wasmtojs.wasm import (
    ExprKind,
    ExternalKind,
    SegmentKind,
    ValType,
    WasmDecodeError,
    load_module,
    read_module,
)

HEADER = b"\0asm\x01\x00\x00\x00"


def uleb(n):
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def section(sid, payload):
    return bytes([sid]) + uleb(len(payload)) + payload


def name(s):
    raw = s.encode()
    return uleb(len(raw)) + raw


def vec(items):
    return uleb(len(items)) + b"".join(items)


def code(body, locals_=b"\x00"):
    entry = locals_ + body
    return uleb(len(entry)) + entry


def module_with(body, params=b"", results=b"", extra=b""):
    types = section(1, vec([b"\x60" + vec([bytes([p]) for p in params]) + vec([bytes([r]) for r in results])]))
    funcs = section(3, vec([b"\x00"]))
    codes = section(10, vec([code(body)]))
    return HEADER + types + funcs + extra + codes


def test_empty_module():
    m = read_module(HEADER)
    assert m.funcs == [] and m.imports == [] and m.num_func_imports == 0


def test_bad_magic():
    with pytest.raises(WasmDecodeError):
        read_module(b"\0asx\x01\x00\x00\x00")


def test_bad_version():
    with pytest.raises(WasmDecodeError):
        read_module(b"\0asm\x02\x00\x00\x00")


def test_add_function_and_export():
    exports = section(7, vec([name("add") + b"\x00\x00"]))
    data = module_with(b"\x20\x00\x20\x01\x6a\x0b", params=b"\x7f\x7f", results=b"\x7f", extra=exports)
    m = read_module(data)
    func = m.funcs[0]
    assert [i.kind for i in func.body] == [ExprKind.LOCAL_GET, ExprKind.LOCAL_GET, ExprKind.BINARY]
    assert func.body[2].opcode == "i32.add"
    assert [i.index for i in func.body[:2]] == [0, 1]
    assert func.num_params == 2 and func.num_locals == 0
    sig = m.func_signature(0)
    assert sig.params == (ValType.I32, ValType.I32)
    assert sig.result_type(0) is ValType.I32
    assert m.func_signature(1) is None
    assert m.exports[0].name == "add" and m.exports[0].kind is ExternalKind.FUNC


def test_negative_i32_const():
    m = read_module(module_with(b"\x41\x7f\x1a\x0b"))
    const = m.funcs[0].body[0].const
    assert const.type is ValType.I32
    assert const.s32 == -1
    assert const.u32 == 0xFFFFFFFF


def test_comparison_kind():
    m = read_module(module_with(b"\x41\x01\x41\x02\x46\x1a\x0b"))
    assert m.funcs[0].body[2].kind is ExprKind.COMPARE
    assert m.funcs[0].body[2].opcode == "i32.eq"


def test_if_else_nesting():
    body = b"\x41\x01\x04\x40\x41\x02\x1a\x05\x41\x03\x1a\x0b\x0b"
    m = read_module(module_with(body))
    iff = m.funcs[0].body[1]
    assert iff.kind is ExprKind.IF and iff.block_type is None
    assert [i.const.u32 for i in iff.body if i.const] == [2]
    assert [i.const.u32 for i in iff.else_body if i.const] == [3]
    assert len(m.funcs[0].body) == 2


def test_loop_with_br_table():
    body = b"\x03\x40\x41\x00\x0e\x02\x00\x01\x00\x0b\x0b"
    m = read_module(module_with(body))
    loop = m.funcs[0].body[0]
    assert loop.kind is ExprKind.LOOP
    br = loop.body[1]
    assert br.targets == (0, 1) and br.default_target == 0


def test_else_outside_if_rejected():
    with pytest.raises(WasmDecodeError):
        read_module(module_with(b"\x05\x0b"))


def test_truncated_body_rejected():
    data = module_with(b"\x20\x00\x0b")
    with pytest.raises(WasmDecodeError):
        read_module(data[:-2])


def test_locals_are_expanded():
    data = HEADER + section(1, vec([b"\x60\x00\x00"])) + section(3, vec([b"\x00"])) + section(
        10, vec([code(b"\x0b", locals_=vec([b"\x02\x7e", b"\x01\x7d"]))])
    )
    func = read_module(data).funcs[0]
    assert func.local_types == [ValType.I64, ValType.I64, ValType.F32]


def test_imported_memory_is_shared_object():
    imports = section(2, vec([name("env") + name("mem") + b"\x02\x00\x01"]))
    m = read_module(HEADER + imports)
    assert m.memories[0] is m.imports[0].memory
    assert m.memories[0].initial == 1
    assert m.num_func_imports == 0


def test_func_import_signature_and_index_space():
    types = section(1, vec([b"\x60\x01\x7f\x00", b"\x60\x00\x01\x7e"]))
    imports = section(2, vec([name("env") + name("log") + b"\x00\x00"]))
    funcs = section(3, vec([b"\x01"]))
    codes = section(10, vec([code(b"\x42\x05\x0b")]))
    m = read_module(HEADER + types + imports + funcs + codes)
    assert m.num_func_imports == 1
    assert m.func_signature(0).params == (ValType.I32,)
    assert m.func_signature(1).results == (ValType.I64,)


def test_active_and_passive_data_segments():
    data = section(11, vec([b"\x00\x41\x08\x0b" + uleb(3) + b"abc", b"\x01" + uleb(2) + b"xy"]))
    m = read_module(HEADER + section(5, vec([b"\x00\x01"])) + data)
    active, passive = m.data_segments
    assert active.kind is SegmentKind.ACTIVE and active.data == b"abc"
    assert active.offset[0].const.u32 == 8
    assert passive.kind is SegmentKind.PASSIVE and passive.data == b"xy"


def test_elem_segment_ref_funcs():
    elem = section(9, vec([b"\x00\x41\x02\x0b" + vec([b"\x00", b"\x00"])]))
    table = section(4, vec([b"\x70\x00\x04"]))
    data = module_with(b"\x0b", extra=table + elem)
    m = read_module(data)
    seg = m.elem_segments[0]
    assert seg.kind is SegmentKind.ACTIVE
    assert [exprs[0].kind for exprs in seg.elem_exprs] == [ExprKind.REF_FUNC] * 2
    assert m.tables[0].initial == 4


def test_global_with_init():
    glob = section(6, vec([b"\x7f\x01\x41\x2a\x0b"]))
    m = read_module(HEADER + glob)
    g = m.globals[0]
    assert g.mutable and g.type is ValType.I32
    assert g.init[0].const.u32 == 0x2A


def test_name_section_assigns_function_names(tmp_path):
    names = section(0, name("name") + bytes([1]) + uleb(len(vec([b"\x00" + name("main")]))) + vec([b"\x00" + name("main")]))
    path = tmp_path / "m.wasm"
    path.write_bytes(module_with(b"\x0b") + names)
    m = load_module(path)
    assert m.funcs[0].name == "main"


def test_function_code_count_mismatch():
    data = HEADER + section(1, vec([b"\x60\x00\x00"])) + section(3, vec([b"\x00"]))
    with pytest.raises(WasmDecodeError):
        read_module(data)