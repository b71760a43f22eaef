"""Code generator for the GNU assembler, AArch64 Linux."""

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

CALL_REGISTERS: tuple[str, ...] = ("x0", "x1", "x2", "x3", "x4")

_BINARY = {
    BitOr: "orr",
    BitAnd: "and",
    BitShl: "lsl",
    BitShr: "lsr",
    Add: "add",
    Sub: "sub",
    Mul: "mul",
}


def _slot(index: int) -> int:
    """Stack offset of auto variable slot ``index`` above the frame record."""
    return (index + 1) * 8


def load_literal_to_reg(reg: str, literal: int) -> str:
    """Instructions that load a non-negative integer into ``reg`` 16 bits at a time."""
    if literal < 0:
        raise UnsupportedError("Loading negative numbers is not supported yet")
    if literal == 0:
        return f"    mov {reg}, 0\n"

    chunks: list[int] = []
    while literal > 0:
        chunks.append(literal & 0xFFFF)
        literal >>= 16

    first, *rest = chunks
    lines = [f"    mov {reg}, {first}\n"]
    lines.extend(
        f"    movk {reg}, {chunk}, lsl {16 * shift}\n"
        for shift, chunk in enumerate(rest, start=1)
    )
    return "".join(lines)


def load_arg_to_reg(arg: Arg, reg: str) -> str:
    """Instructions that load an operand into register ``reg``."""
    match arg:
        case Ref(index):
            return f"    ldr {reg}, [sp, {_slot(index)}]\n    ldr {reg}, [{reg}]\n"
        case AutoVar(index):
            return f"    ldr {reg}, [sp, {_slot(index)}]\n"
        case Literal(value):
            return load_literal_to_reg(reg, value)
        case DataOffset(offset):
            text = f"    adrp {reg}, .dat\n    add  {reg}, {reg}, :lo12:.dat\n"
            if offset >= 4095:
                raise UnsupportedError("Data offsets bigger than 4095 are not supported yet")
            if offset > 0:
                text += f"    add {reg}, {reg}, {offset}\n"
            return text
    raise TypeError(f"unknown operand {arg!r}")


def _generate_op(op, func_name: str) -> str:
    kind = type(op)
    if kind in _BINARY:
        return (
            load_arg_to_reg(op.lhs, "x0")
            + load_arg_to_reg(op.rhs, "x1")
            + f"    {_BINARY[kind]} x0, x0, x1\n"
            + f"    str x0, [sp, {_slot(op.index)}]\n"
        )
    match op:
        case Negate():
            raise UnsupportedError("Negate is not supported on this target yet")
        case Mod():
            raise UnsupportedError("Mod is not supported on this target yet")
        case UnaryNot(result, arg):
            return (
                load_arg_to_reg(arg, "x0")
                + "    cmp x0, 0\n"
                + "    cset x0, eq\n"
                + f"    str x0, [sp, {_slot(result)}]\n"
            )
        case Less(index, lhs, rhs):
            return (
                load_arg_to_reg(lhs, "x0")
                + load_arg_to_reg(rhs, "x1")
                + "    cmp x0, x1\n"
                + "    cset x0, lt\n"
                + f"    str x0, [sp, {_slot(index)}]\n"
            )
        case AutoAssign(index, arg):
            return load_arg_to_reg(arg, "x0") + f"    str x0, [sp, {_slot(index)}]\n"
        case Store(index, arg):
            return (
                f"    ldr x0, [sp, {_slot(index)}]\n"
                + load_arg_to_reg(arg, "x1")
                + "    str x1, [x0]\n"
            )
        case Funcall(result, name, args):
            if len(args) > len(CALL_REGISTERS):
                raise UnsupportedError(
                    "Too many function call arguments. "
                    f"We support only {len(CALL_REGISTERS)} but {len(args)} were provided"
                )
            loads = "".join(load_arg_to_reg(arg, reg) for arg, reg in zip(args, CALL_REGISTERS))
            return loads + f"    bl {name}\n" + f"    str x0, [sp, {_slot(result)}]\n"
        case Jmp(addr):
            return f"    b {func_name}.op_{addr}\n"
        case JmpIfNot(addr, arg):
            return (
                load_arg_to_reg(arg, "x0")
                + "    cmp x0, 0\n"
                + f"    beq {func_name}.op_{addr}\n"
            )
    raise TypeError(f"unknown op {op!r}")


def generate_function(func: Func) -> str:
    """Assembly for one function, with a label before every op and at the end."""
    name = func.name
    stack_size = align_bytes((2 + func.auto_vars_count) * 8, 16)
    parts = [
        f".global {name}\n",
        f"{name}:\n",
        f"    stp x29, x30, [sp, -{stack_size}]!\n",
        "    mov x29, sp\n",
    ]
    for i, op in enumerate(func.body):
        parts.append(f"{name}.op_{i}:\n")
        parts.append(_generate_op(op, name))
    parts.append(f"{name}.op_{len(func.body)}:\n")
    parts.append("    mov w0, 0\n")
    parts.append(f"    ldp x29, x30, [sp], {stack_size}\n")
    parts.append("    ret\n")
    return "".join(parts)


def _generate_data_section(data: bytes) -> str:
    if not data:
        return ""
    body = ",".join(f"0x{byte:02X}" for byte in data)
    return f".dat: .byte {body}\n"


def generate_program(program: Program) -> str:
    """A complete GNU assembler source file for ``program``."""
    return "".join(generate_function(func) for func in program.funcs) + _generate_data_section(
        program.data
    )