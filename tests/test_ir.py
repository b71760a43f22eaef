import dataclasses

import pytest

from bcompiler.ir import (
    Add,
    AutoAssign,
    AutoVar,
    BitShl,
    DataOffset,
    Func,
    Funcall,
    Jmp,
    JmpIfNot,
    Literal,
    Program,
    Ref,
    Store,
    Sub,
    UnsupportedError,
    align_bytes,
)


@pytest.mark.parametrize("size", range(0, 70))
@pytest.mark.parametrize("alignment", [8, 16])
def test_align_bytes_invariants(size, alignment):
    result = align_bytes(size, alignment)
    assert result % alignment == 0
    assert size <= result < size + alignment


def test_align_bytes_values():
    assert align_bytes(32, 16) == 32
    assert align_bytes(24, 16) == 32
    assert align_bytes(0, 16) == 0


def test_args_compare_by_value():
    assert AutoVar(3) == AutoVar(3)
    assert AutoVar(3) != Ref(3)
    assert Literal(5) == Literal(5)
    assert DataOffset(7).offset == 7


def test_binary_ops_distinguished_by_class():
    add = Add(1, Literal(2), AutoVar(1))
    assert add == Add(1, Literal(2), AutoVar(1))
    assert add != Sub(1, Literal(2), AutoVar(1))
    assert (add.index, add.lhs, add.rhs) == (1, Literal(2), AutoVar(1))
    assert repr(BitShl(1, Literal(1), Literal(2))).startswith("BitShl(")


def test_ops_are_frozen():
    op = AutoAssign(1, Literal(4))
    with pytest.raises(dataclasses.FrozenInstanceError):
        op.index = 2
    with pytest.raises(dataclasses.FrozenInstanceError):
        Literal(1).value = 3


def test_funcall_args_become_tuple():
    call = Funcall(2, "printf", [DataOffset(0), AutoVar(1)])
    assert call.args == (DataOffset(0), AutoVar(1))
    assert hash(call) == hash(Funcall(2, "printf", (DataOffset(0), AutoVar(1))))


def test_funcall_default_args_empty():
    assert Funcall(1, "getchar").args == ()


def test_jumps_can_be_patched_by_replacement():
    body = [JmpIfNot(0, AutoVar(1)), Store(1, Literal(9)), Jmp(0)]
    body[0] = JmpIfNot(len(body), body[0].arg)
    assert body[0] == JmpIfNot(3, AutoVar(1))


def test_func_defaults():
    func = Func("main")
    assert func.body == []
    assert func.auto_vars_count == 0
    func.body.append(Jmp(0))
    assert Func("other").body == []


def test_program_containers_independent():
    first = Program()
    second = Program()
    first.data.extend(b"hi\0")
    first.extrns.append("putchar")
    first.funcs.append(Func("main", [], 1))
    assert bytes(first.data) == b"hi\0"
    assert second.data == bytearray()
    assert second.extrns == []
    assert second.funcs == []


def test_unsupported_error_carries_message():
    err = UnsupportedError("negative literals")
    assert str(err) == "negative literals"
    assert err.args == ("negative literals",)
    assert isinstance(err, Exception)