import re

import pytest

from bcompiler.gas_aarch64 import (
    generate_function,
    generate_program,
    load_arg_to_reg,
    load_literal_to_reg,
)
from bcompiler.ir import (
    Add,
    AutoVar,
    DataOffset,
    Func,
    Funcall,
    Jmp,
    Literal,
    Mod,
    Negate,
    Program,
    Ref,
    UnsupportedError,
)


def _reconstruct(text, reg):
    value = 0
    for line in text.splitlines():
        m = re.fullmatch(rf"    mov {reg}, (\d+)", line)
        if m:
            value |= int(m.group(1))
            continue
        m = re.fullmatch(rf"    movk {reg}, (\d+), lsl (\d+)", line)
        assert m, line
        value |= int(m.group(1)) << int(m.group(2))
    return value


def test_literal_zero():
    assert load_literal_to_reg("x0", 0) == "    mov x0, 0\n"


def test_negative_literal_unsupported():
    with pytest.raises(UnsupportedError):
        load_literal_to_reg("x0", -1)


@pytest.mark.parametrize("value", [1, 0xFFFF, 0x10000, 0x12345678, 2**63 - 1, 1 << 48])
def test_literal_round_trip(value):
    assert _reconstruct(load_literal_to_reg("x3", value), "x3") == value


def test_literal_chunk_counts():
    assert len(load_literal_to_reg("x0", 0xFFFF).splitlines()) == 1
    assert len(load_literal_to_reg("x0", 1 << 48).splitlines()) == 4


def test_load_autovar():
    assert load_arg_to_reg(AutoVar(1), "x1") == "    ldr x1, [sp, 16]\n"


def test_load_ref_dereferences():
    text = load_arg_to_reg(Ref(1), "x1")
    lines = text.splitlines()
    assert len(lines) == 2
    assert lines[0] == load_arg_to_reg(AutoVar(1), "x1").rstrip("\n")
    assert lines[1] == "    ldr x1, [x1]"


def test_load_data_offset():
    base = load_arg_to_reg(DataOffset(0), "x2")
    assert base.splitlines()[0] == "    adrp x2, .dat"
    assert len(base.splitlines()) == 2
    shifted = load_arg_to_reg(DataOffset(5), "x2")
    assert shifted.startswith(base)
    assert shifted.endswith("    add x2, x2, 5\n")


def test_data_offset_too_large():
    with pytest.raises(UnsupportedError):
        load_arg_to_reg(DataOffset(4095), "x0")


def test_empty_function_frame():
    text = generate_function(Func("main", [], 0))
    assert text.startswith(".global main\nmain:\n")
    assert "[sp, -16]!" in text
    assert text.endswith("    ret\n")
    assert "main.op_0:\n" in text


@pytest.mark.parametrize("count", [0, 1, 2, 3, 7])
def test_stack_size_aligned_and_balanced(count):
    text = generate_function(Func("f", [], count))
    push = int(re.search(r"\[sp, -(\d+)\]!", text).group(1))
    pop = int(re.search(r"ldp x29, x30, \[sp\], (\d+)", text).group(1))
    assert push == pop
    assert push % 16 == 0
    assert push >= (2 + count) * 8


def test_labels_for_every_op():
    body = [Add(1, Literal(1), Literal(2)), Jmp(0), Add(1, AutoVar(1), Literal(3))]
    text = generate_function(Func("g", body, 1))
    for i in range(len(body) + 1):
        assert f"g.op_{i}:\n" in text
    assert "    b g.op_0\n" in text


def test_funcall():
    text = generate_function(Func("main", [Funcall(1, "printf", (DataOffset(0),))], 1))
    assert "    bl printf\n" in text


def test_unsupported_ops():
    with pytest.raises(UnsupportedError):
        generate_function(Func("f", [Negate(1, Literal(1))], 1))
    with pytest.raises(UnsupportedError):
        generate_function(Func("f", [Mod(1, Literal(1), Literal(2))], 1))
    args = tuple(Literal(i) for i in range(6))
    with pytest.raises(UnsupportedError):
        generate_function(Func("f", [Funcall(1, "g", args)], 1))


def test_program_data_section():
    program = Program(funcs=[Func("main", [], 0)], data=bytearray(b"Hi\x00"))
    text = generate_program(program)
    assert text.startswith(generate_function(program.funcs[0]))
    assert text.endswith(".dat: .byte 0x48,0x69,0x00\n")


def test_program_without_data():
    text = generate_program(Program(funcs=[Func("main", [], 0)]))
    assert ".dat:" not in text