"""Human-readable dump of the intermediate representation."""

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
)

_BINARY = (BitOr, BitAnd, BitShl, BitShr, Add, Sub, Mod, Mul, Less)


def dump_arg(arg: Arg) -> str:
    """Textual form of an operand."""
    match arg:
        case Ref(index):
            return f"Ref({index})"
        case Literal(value):
            return f"Literal({value})"
        case AutoVar(index):
            return f"AutoVar({index})"
        case DataOffset(offset):
            return f"DataOffset({offset})"
    raise TypeError(f"unknown operand {arg!r}")


def _dump_op(op) -> str:
    match op:
        case Store(index, arg):
            return f"Store({index}, {dump_arg(arg)})"
        case AutoAssign(index, arg):
            return f"AutoAssign({index}, {dump_arg(arg)})"
        case Negate(result, arg):
            return f"Negate({result}, {dump_arg(arg)})"
        case UnaryNot(result, arg):
            return f"UnaryNot({result}, {dump_arg(arg)})"
        case Funcall(result, name, args):
            rest = "".join(f", {dump_arg(arg)}" for arg in args)
            return f'Funcall({result}, "{name}"{rest})'
        case JmpIfNot(addr, arg):
            return f"JmpIfNot({addr}, {dump_arg(arg)})"
        case Jmp(addr):
            return f"Jmp({addr})"
    if isinstance(op, _BINARY):
        return f"{type(op).__name__}({op.index}, {dump_arg(op.lhs)}, {dump_arg(op.rhs)})"
    raise TypeError(f"unknown op {op!r}")


def generate_function(func: Func) -> str:
    """Dump one function: a header line, then one numbered line per op."""
    lines = [f"{func.name}({func.auto_vars_count}):\n"]
    lines.extend(f"{i:8d}    {_dump_op(op)}\n" for i, op in enumerate(func.body))
    return "".join(lines)


def _generate_funcs(funcs: list[Func]) -> str:
    return "-- Functions --\n\n" + "".join(generate_function(f) for f in funcs)


def _generate_extrns(extrns: list[str]) -> str:
    return "\n-- External Symbols --\n\n" + "".join(f"    {name}\n" for name in extrns)


def _generate_data_section(data: bytes) -> str:
    if not data:
        return ""
    body = ",".join(f"0x{byte:02X}" for byte in data)
    return f"\n-- Data Section --\n\n    {body}\n"


def generate_program(program: Program) -> str:
    """Dump a whole program: functions, external symbols and data section."""
    return (
        _generate_funcs(program.funcs)
        + _generate_extrns(program.extrns)
        + _generate_data_section(program.data)
    )