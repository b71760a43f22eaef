import pytest

from bcompiler.compiler import compile_source
from bcompiler.fasm_x86_64 import generate_function, generate_program, load_arg_to_reg
from bcompiler.ir import (
    Add,
    AutoVar,
    DataOffset,
    Func,
    Funcall,
    Jmp,
    JmpIfNot,
    Literal,
    Mod,
    Program,
    Ref,
    UnsupportedError,
)


def test_load_literal():
    assert load_arg_to_reg(Literal(-5), "rax") == "    mov rax, -5\n"


def test_load_data_offset():
    assert load_arg_to_reg(DataOffset(3), "rbx") == "    mov rbx, dat+3\n"


def test_ref_loads_autovar_then_dereferences():
    auto = load_arg_to_reg(AutoVar(2), "rcx")
    ref = load_arg_to_reg(Ref(2), "rcx")
    assert ref == auto + "    mov rcx, [rcx]\n"


def test_empty_function_epilogue():
    text = generate_function(Func("main"))
    assert text.startswith("public main\nmain:\n    push rbp\n    mov rbp, rsp\n")
    assert "sub rsp" not in text
    assert text.endswith(".op_0:\n    mov rsp, rbp\n    pop rbp\n    mov rax, 0\n    ret\n")


def test_stack_is_aligned():
    text = generate_function(Func("f", [], 1))
    assert "    sub rsp, 16\n" in text


@pytest.mark.parametrize("count", [1, 2, 3, 5])
def test_labels_for_every_op(count):
    body = [Jmp(0)] * count
    text = generate_function(Func("f", body, 0))
    for i in range(count + 1):
        assert f".op_{i}:\n" in text
    assert f".op_{count + 1}:" not in text


def test_jumps_target_labels():
    text = generate_function(Func("f", [JmpIfNot(1, Literal(0))], 0))
    assert "    test rax, rax\n    jz .op_1\n" in text


def test_binary_and_mod():
    text = generate_function(
        Func("f", [Add(1, Literal(1), Literal(2)), Mod(2, AutoVar(1), Literal(3))], 2)
    )
    assert "    add rax, rbx\n" in text
    assert "    xor rdx, rdx\n    idiv rbx\n" in text


def test_funcall_uses_registers_in_order():
    text = generate_function(Func("f", [Funcall(1, "g", (Literal(1), Literal(2)))], 1))
    assert text.index("mov rdi, 1") < text.index("mov rsi, 2") < text.index("call g")
    assert "    mov al, 0\n    call g\n" in text


def test_too_many_call_arguments():
    args = tuple(Literal(i) for i in range(6))
    with pytest.raises(UnsupportedError):
        generate_function(Func("f", [Funcall(1, "g", args)], 1))


def test_program_layout():
    program = Program(funcs=[Func("main")], extrns=["printf"], data=bytearray(b"\x01\xff"))
    text = generate_program(program)
    assert text.startswith('format ELF64\nsection ".text" executable\npublic main\n')
    assert "extrn printf\n" in text
    assert text.endswith('section ".data"\ndat: db 0x01,0xFF\n')


def test_program_without_data_has_no_data_section():
    assert 'section ".data"' not in generate_program(Program(funcs=[Func("main")]))


def test_compiled_program():
    program = compile_source("main() { extrn putchar; putchar(65); }", "t.b")
    text = generate_program(program)
    assert "    mov rdi, 65\n" in text
    assert "    call putchar\n" in text
    assert "extrn putchar\n" in text