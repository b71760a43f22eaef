"""Code generator for flat assembler, x86_64 Linux ELF objects."""

from __future__ import annotations

from .ir import (
    Add,
    Arg,
    AutoAssign,
    AutoVar,
    BitAnd,
    BitOr,
    BitShl,
    BitShr,
    DataOffset,
    Func,
    Funcall,
    Jmp,
    JmpIfNot,
    Less,
    Literal,
    Mod,
    Mul,
    Negate,
    Program,
    Ref,
    Store,
    Sub,
    UnaryNot,
    UnsupportedError,
    align_bytes,
)

CALL_REGISTERS: tuple[str, ...] = ("rdi", "rsi", "rdx", "rcx", "r8")

_SIMPLE_BINARY = {BitOr: "or", BitAnd: "and", Add: "add", Sub: "sub"}
_SHIFTS = {BitShl: "shl", BitShr: "shr"}


def load_arg_to_reg(arg: Arg, reg: str) -> str:
    """Instructions that load an operand into register ``reg``."""
    match arg:
        case Ref(index):
            return f"    mov {reg}, [rbp-{index * 8}]\n    mov {reg}, [{reg}]\n"
        case AutoVar(index):
            return f"    mov {reg}, [rbp-{index * 8}]\n"
        case Literal(value):
            return f"    mov {reg}, {value}\n"
        case DataOffset(offset):
            return f"    mov {reg}, dat+{offset}\n"
    raise TypeError(f"unknown operand {arg!r}")


def _generate_op(op) -> str:
    kind = type(op)
    if kind in _SIMPLE_BINARY:
        return (
            load_arg_to_reg(op.lhs, "rax")
            + load_arg_to_reg(op.rhs, "rbx")
            + f"    {_SIMPLE_BINARY[kind]} rax, rbx\n"
            + f"    mov [rbp-{op.index * 8}], rax\n"
        )
    if kind in _SHIFTS:
        return (
            load_arg_to_reg(op.lhs, "rax")
            + load_arg_to_reg(op.rhs, "rcx")
            + f"    {_SHIFTS[kind]} rax, cl\n"
            + f"    mov [rbp-{op.index * 8}], rax\n"
        )
    match op:
        case Store(index, arg):
            return (
                f"    mov rax, [rbp-{index * 8}]\n"
                + load_arg_to_reg(arg, "rbx")
                + "    mov [rax], rbx\n"
            )
        case AutoAssign(index, arg):
            return load_arg_to_reg(arg, "rax") + f"    mov QWORD [rbp-{index * 8}], rax\n"
        case Negate(result, arg):
            return (
                load_arg_to_reg(arg, "rax")
                + "    neg rax\n"
                + f"    mov [rbp-{result * 8}], rax\n"
            )
        case UnaryNot(result, arg):
            return (
                "    xor rbx, rbx\n"
                + load_arg_to_reg(arg, "rax")
                + "    test rax, rax\n"
                + "    setz bl\n"
                + f"    mov [rbp-{result * 8}], rbx\n"
            )
        case Mod(index, lhs, rhs):
            return (
                load_arg_to_reg(lhs, "rax")
                + load_arg_to_reg(rhs, "rbx")
                + "    xor rdx, rdx\n"
                + "    idiv rbx\n"
                + f"    mov [rbp-{index * 8}], rdx\n"
            )
        case Mul(index, lhs, rhs):
            return (
                load_arg_to_reg(lhs, "rax")
                + load_arg_to_reg(rhs, "rbx")
                + "    xor rdx, rdx\n"
                + "    imul rbx\n"
                + f"    mov [rbp-{index * 8}], rax\n"
            )
        case Less(index, lhs, rhs):
            return (
                load_arg_to_reg(lhs, "rax")
                + load_arg_to_reg(rhs, "rbx")
                + "    xor rdx, rdx\n"
                + "    cmp rax, rbx\n"
                + "    setl dl\n"
                + f"    mov [rbp-{index * 8}], rdx\n"
            )
        case Funcall(result, name, args):
            if len(args) > len(CALL_REGISTERS):
                raise UnsupportedError(
                    "Too many function call arguments. "
                    f"We support only {len(CALL_REGISTERS)} but {len(args)} were provided"
                )
            loads = "".join(load_arg_to_reg(arg, reg) for arg, reg in zip(args, CALL_REGISTERS))
            # The ABI passes the number of vector registers used by a variadic call in al.
            return (
                loads
                + "    mov al, 0\n"
                + f"    call {name}\n"
                + f"    mov [rbp-{result * 8}], rax\n"
            )
        case JmpIfNot(addr, arg):
            return load_arg_to_reg(arg, "rax") + "    test rax, rax\n" + f"    jz .op_{addr}\n"
        case Jmp(addr):
            return f"    jmp .op_{addr}\n"
    raise TypeError(f"unknown op {op!r}")


def generate_function(func: Func) -> str:
    """Assembly for one function, with a label before every op and at the end."""
    stack_size = align_bytes(func.auto_vars_count * 8, 16)
    parts = [
        f"public {func.name}\n",
        f"{func.name}:\n",
        "    push rbp\n",
        "    mov rbp, rsp\n",
    ]
    if stack_size > 0:
        parts.append(f"    sub rsp, {stack_size}\n")
    for i, op in enumerate(func.body):
        parts.append(f".op_{i}:\n")
        parts.append(_generate_op(op))
    parts.append(f".op_{len(func.body)}:\n")
    parts.append("    mov rsp, rbp\n    pop rbp\n    mov rax, 0\n    ret\n")
    return "".join(parts)


def _generate_data_section(data: bytes) -> str:
    if not data:
        return ""
    body = ",".join(f"0x{byte:02X}" for byte in data)
    return f'section ".data"\ndat: db {body}\n'


def generate_program(program: Program) -> str:
    """A complete flat assembler source file for ``program``."""
    return (
        "format ELF64\n"
        + 'section ".text" executable\n'
        + "".join(generate_function(func) for func in program.funcs)
        + "".join(f"extrn {name}\n" for name in program.extrns)
        + _generate_data_section(program.data)
    )