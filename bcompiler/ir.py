"""Intermediate representation produced by the compiler and consumed by code generators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


class UnsupportedError(Exception):
    """A language construct or code-generation case that is not supported yet."""


@dataclass(frozen=True)
class AutoVar:
    """Value of the auto variable in slot ``index`` (slots count from 1)."""

    index: int


@dataclass(frozen=True)
class Ref:
    """Memory pointed to by the auto variable in slot ``index``."""

    index: int


@dataclass(frozen=True)
class Literal:
    """An integer constant."""

    value: int


@dataclass(frozen=True)
class DataOffset:
    """Address of a byte offset into the data section."""

    offset: int


Arg = Union[AutoVar, Ref, Literal, DataOffset]


@dataclass(frozen=True)
class UnaryNot:
    result: int
    arg: Arg


@dataclass(frozen=True)
class Negate:
    result: int
    arg: Arg


@dataclass(frozen=True)
class _Binary:
    index: int
    lhs: Arg
    rhs: Arg


@dataclass(frozen=True)
class Add(_Binary):
    pass


@dataclass(frozen=True)
class Sub(_Binary):
    pass


@dataclass(frozen=True)
class Mul(_Binary):
    pass


@dataclass(frozen=True)
class Mod(_Binary):
    pass


@dataclass(frozen=True)
class Less(_Binary):
    pass


@dataclass(frozen=True)
class BitOr(_Binary):
    pass


@dataclass(frozen=True)
class BitAnd(_Binary):
    pass


@dataclass(frozen=True)
class BitShl(_Binary):
    pass


@dataclass(frozen=True)
class BitShr(_Binary):
    pass


@dataclass(frozen=True)
class AutoAssign:
    """Store ``arg`` into the auto variable in slot ``index``."""

    index: int
    arg: Arg


@dataclass(frozen=True)
class Store:
    """Store ``arg`` into the memory addressed by the auto variable in slot ``index``."""

    index: int
    arg: Arg


@dataclass(frozen=True)
class Funcall:
    """Call external function ``name``; its return value goes to slot ``result``."""

    result: int
    name: str
    args: tuple[Arg, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class Jmp:
    addr: int


@dataclass(frozen=True)
class JmpIfNot:
    """Jump to ``addr`` when ``arg`` is zero."""

    addr: int
    arg: Arg


Op = Union[
    UnaryNot, Negate, Add, Sub, Mul, Mod, Less, BitOr, BitAnd, BitShl, BitShr,
    AutoAssign, Store, Funcall, Jmp, JmpIfNot,
]


@dataclass
class Func:
    """A compiled function: its ops and the peak number of auto variables it needs."""

    name: str
    body: list[Op] = field(default_factory=list)
    auto_vars_count: int = 0


@dataclass
class Program:
    """Everything a code generator needs: functions, external names and static data."""

    funcs: list[Func] = field(default_factory=list)
    data: bytearray = field(default_factory=bytearray)
    extrns: list[str] = field(default_factory=list)


def align_bytes(size: int, alignment: int) -> int:
    """Round ``size`` up to the next multiple of ``alignment``."""
    rem = size % alignment
    return size + alignment - rem if rem else size