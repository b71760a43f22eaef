"""Front end: turns B source text into the intermediate representation."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum, auto
from typing import Union

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
    Op,
    Program,
    Ref,
    Store,
    Sub,
    UnaryNot,
    UnsupportedError,
)
from .lexer import Lexer, Token, TokenKind, display_token_kind

B_KEYWORDS: tuple[str, ...] = (
    "auto",
    "extrn",
    "case",
    "if",
    "while",
    "switch",
    "goto",
    "return",
)


class CompileError(Exception):
    """A diagnosed error in the program being compiled."""


def is_keyword(name: str) -> bool:
    """Whether ``name`` is a reserved B keyword."""
    return name in B_KEYWORDS


class Binop(Enum):
    """Binary operators understood by the expression parser."""

    ASSIGN = auto()
    ASSIGN_PLUS = auto()
    ASSIGN_MULT = auto()
    PLUS = auto()
    MINUS = auto()
    MULT = auto()
    MOD = auto()
    LESS = auto()
    GREATER_EQUAL = auto()
    BIT_OR = auto()
    BIT_AND = auto()
    BIT_SHL = auto()
    BIT_SHR = auto()
    ASSIGN_BIT_OR = auto()
    ASSIGN_BIT_SHL = auto()

    def precedence(self) -> int:
        """Row of this operator in the precedence table; higher binds tighter."""
        for level, row in enumerate(PRECEDENCE):
            if self in row:
                return level
        raise AssertionError(f"{self} has no precedence")


PRECEDENCE: tuple[tuple[Binop, ...], ...] = (
    (Binop.ASSIGN, Binop.ASSIGN_PLUS, Binop.ASSIGN_MULT, Binop.ASSIGN_BIT_OR, Binop.ASSIGN_BIT_SHL),
    (Binop.BIT_OR,),
    (Binop.BIT_AND,),
    (Binop.BIT_SHL, Binop.BIT_SHR),
    (Binop.LESS, Binop.GREATER_EQUAL),
    (Binop.PLUS, Binop.MINUS),
    (Binop.MULT, Binop.MOD),
)
MAX_PRECEDENCE = len(PRECEDENCE)

_TOKEN_BINOPS: dict[int, Binop] = {
    ord("+"): Binop.PLUS,
    ord("-"): Binop.MINUS,
    ord("*"): Binop.MULT,
    ord("%"): Binop.MOD,
    ord("<"): Binop.LESS,
    TokenKind.GREATEREQ: Binop.GREATER_EQUAL,
    ord("="): Binop.ASSIGN,
    ord("|"): Binop.BIT_OR,
    ord("&"): Binop.BIT_AND,
    TokenKind.SHLEQ: Binop.ASSIGN_BIT_SHL,
    TokenKind.OREQ: Binop.ASSIGN_BIT_OR,
    TokenKind.PLUSEQ: Binop.ASSIGN_PLUS,
    TokenKind.MULEQ: Binop.ASSIGN_MULT,
    TokenKind.SHL: Binop.BIT_SHL,
    TokenKind.SHR: Binop.BIT_SHR,
}

_PLAIN_OPS = {
    Binop.BIT_SHL: BitShl,
    Binop.BIT_SHR: BitShr,
    Binop.BIT_OR: BitOr,
    Binop.BIT_AND: BitAnd,
    Binop.PLUS: Add,
    Binop.MINUS: Sub,
    Binop.MULT: Mul,
    Binop.MOD: Mod,
    Binop.LESS: Less,
}

_COMPOUND_OPS = {
    Binop.ASSIGN_BIT_OR: BitOr,
    Binop.ASSIGN_BIT_SHL: BitShl,
    Binop.ASSIGN_PLUS: Add,
    Binop.ASSIGN_MULT: Mul,
}


def binop_from_token(token: int) -> Binop | None:
    """The binary operator a token kind stands for, or None."""
    return _TOKEN_BINOPS.get(token)


@dataclass(frozen=True)
class External:
    """Storage of a name that lives outside the function: a symbol."""

    name: str


@dataclass(frozen=True)
class Auto:
    """Storage of an auto variable in slot ``index``."""

    index: int


Storage = Union[External, Auto]


@dataclass(frozen=True)
class Var:
    """A declared name, where it was declared and how it is stored."""

    name: str
    where: int
    storage: Storage


class Compiler:
    """Single-pass compiler from B source to a :class:`Program`."""

    def __init__(self, source: str, input_path: str) -> None:
        self.input_path = input_path
        self._lexer = Lexer(source)
        self._scopes: list[dict[str, Var]] = []
        self._auto_count = 0
        self._auto_max = 0
        self._func_body: list[Op] = []
        self.program = Program()

    # ---- diagnostics -------------------------------------------------

    def _diag(self, where: int, text: str) -> str:
        loc = self._lexer.location(where)
        return f"{self.input_path}:{loc.line_number}:{loc.line_offset + 1}: {text}"

    def _error(self, where: int, *lines: str) -> CompileError:
        return CompileError("\n".join(self._diag(where, line) for line in lines))

    def _missing(self, where: int, text: str) -> UnsupportedError:
        return UnsupportedError(self._diag(where, f"TODO: {text}"))

    @property
    def _token(self) -> Token:
        assert self._lexer.token is not None
        return self._lexer.token

    def _expect(self, *kinds: int) -> None:
        token = self._token
        if token.kind in kinds:
            return
        names = [display_token_kind(kind) for kind in kinds]
        if len(names) > 1:
            expected = ", ".join(names[:-1]) + ", or " + names[-1]
        else:
            expected = names[0]
        raise self._error(
            token.start,
            f"ERROR: expected {expected}, but got {display_token_kind(token.kind)}",
        )

    def _get_and_expect(self, kind: int) -> None:
        self._lexer.get_token()
        self._expect(kind)

    def _get_and_expect_id(self, name: str) -> None:
        self._get_and_expect(TokenKind.ID)
        token = self._token
        if token.text != name:
            raise self._error(token.start, f"ERROR: expected `{name}`, but got `{token.text}`")

    # ---- scopes and allocation ---------------------------------------

    def _find_var(self, name: str) -> Var | None:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def _declare_var(self, name: str, where: int, storage: Storage) -> None:
        scope = self._scopes[-1]
        existing = scope.get(name)
        if existing is not None:
            raise CompileError(
                "\n".join(
                    (
                        self._diag(where, f"ERROR: redefinition of variable `{name}`"),
                        self._diag(existing.where, "NOTE: the first declaration is located here"),
                    )
                )
            )
        scope[name] = Var(name, where, storage)

    def _allocate_auto_var(self) -> int:
        self._auto_count += 1
        self._auto_max = max(self._auto_max, self._auto_count)
        return self._auto_count

    def _emit(self, op: Op) -> None:
        self._func_body.append(op)

    # ---- expressions -------------------------------------------------

    def _compile_primary(self) -> tuple[Arg, bool]:
        lexer = self._lexer
        token = lexer.get_token()
        kind = token.kind
        if kind == ord("("):
            result = self.compile_expression()
            self._get_and_expect(ord(")"))
            return result
        if kind == ord("!"):
            arg, _ = self._compile_primary()
            result = self._allocate_auto_var()
            self._emit(UnaryNot(result, arg))
            return AutoVar(result), False
        if kind == ord("*"):
            arg, _ = self._compile_primary()
            index = self._allocate_auto_var()
            self._emit(AutoAssign(index, arg))
            return Ref(index), True
        if kind == ord("-"):
            arg, _ = self._compile_primary()
            index = self._allocate_auto_var()
            self._emit(Negate(index, arg))
            return AutoVar(index), False
        if kind == TokenKind.INTLIT:
            return Literal(token.int_value), False
        if kind == TokenKind.ID:
            name, name_where = token.text, token.start
            var = self._find_var(name)
            if var is None:
                raise self._error(name_where, f"ERROR: could not find name `{name}`")
            saved = lexer.save()
            if lexer.get_token().kind == ord("("):
                return self._compile_function_call(name, name_where), False
            lexer.restore(saved)
            if isinstance(var.storage, Auto):
                return AutoVar(var.storage.index), True
            raise self._missing(name_where, "external variables in lvalues are not supported yet")
        if kind == TokenKind.DQSTRING:
            data = self.program.data
            offset = len(data)
            text = token.text.split("\0", 1)[0]
            data.extend(text.encode("utf-8"))
            data.append(0)
            return DataOffset(offset), False
        raise self._missing(
            token.start,
            f"Unexpected token {display_token_kind(kind)} not all expressions are implemented yet",
        )

    def _compile_binop(self, precedence: int) -> tuple[Arg, bool]:
        if precedence >= MAX_PRECEDENCE:
            return self._compile_primary()

        lexer = self._lexer
        lhs, lvalue = self._compile_binop(precedence + 1)
        saved = lexer.save()
        lexer.get_token()

        while True:
            binop = binop_from_token(self._token.kind)
            if binop is None or binop.precedence() != precedence:
                break
            binop_where = self._token.start
            rhs, _ = self._compile_binop(precedence)

            if binop in _PLAIN_OPS:
                index = self._allocate_auto_var()
                self._emit(_PLAIN_OPS[binop](index, lhs, rhs))
                lhs = AutoVar(index)
            elif binop is Binop.GREATER_EQUAL:
                index = self._allocate_auto_var()
                self._emit(Less(index, lhs, rhs))
                self._emit(UnaryNot(index, AutoVar(index)))
                lhs = AutoVar(index)
            else:
                if not lvalue:
                    raise self._error(binop_where, "ERROR: cannot assign to lvalue")
                if binop is Binop.ASSIGN:
                    if isinstance(lhs, Ref):
                        self._emit(Store(lhs.index, rhs))
                    else:
                        self._emit(AutoAssign(lhs.index, rhs))
                else:
                    if isinstance(lhs, Ref):
                        raise self._missing(
                            binop_where, "compound assignment through a pointer"
                        )
                    self._emit(_COMPOUND_OPS[binop](lhs.index, lhs, rhs))
            lvalue = False

            saved = lexer.save()
            lexer.get_token()

        lexer.restore(saved)
        return lhs, lvalue

    def compile_expression(self) -> tuple[Arg, bool]:
        """Compile one expression; return its value and whether it is an lvalue."""
        return self._compile_binop(0)

    def _compile_function_call(self, name: str, name_where: int) -> Arg:
        var = self._find_var(name)
        if var is None:
            raise self._error(name_where, f"ERROR: could not find function `{name}`")

        lexer = self._lexer
        args: list[Arg] = []
        saved = lexer.save()
        if lexer.get_token().kind != ord(")"):
            lexer.restore(saved)
            while True:
                expr, _ = self.compile_expression()
                args.append(expr)
                lexer.get_token()
                self._expect(ord(")"), ord(","))
                if self._token.kind == ord(")"):
                    break

        if isinstance(var.storage, External):
            result = self._allocate_auto_var()
            self._emit(Funcall(result, var.storage.name, tuple(args)))
            return AutoVar(result)
        raise self._missing(name_where, "calling functions from auto variables")

    # ---- statements --------------------------------------------------

    def _compile_block(self) -> None:
        lexer = self._lexer
        while True:
            saved = lexer.save()
            if lexer.get_token().kind == ord("}"):
                return
            lexer.restore(saved)
            self.compile_statement()

    def _declare_extrn(self, name: str) -> None:
        if name not in self.program.extrns:
            self.program.extrns.append(name)

    def compile_statement(self) -> None:
        """Compile one statement into the current function body."""
        lexer = self._lexer
        saved = lexer.save()
        token = lexer.get_token()

        if token.kind == ord("{"):
            self._scopes.append({})
            saved_count = self._auto_count
            self._compile_block()
            self._auto_count = saved_count
            self._scopes.pop()
            return

        word = token.text if token.kind == TokenKind.ID else None

        if word in ("extrn", "auto"):
            extrn = word == "extrn"
            while True:
                self._get_and_expect(TokenKind.ID)
                name, name_where = self._token.text, self._token.start
                storage: Storage
                if extrn:
                    self._declare_extrn(name)
                    storage = External(name)
                else:
                    storage = Auto(self._allocate_auto_var())
                self._declare_var(name, name_where, storage)
                lexer.get_token()
                self._expect(ord(","), ord(";"))
                if self._token.kind == ord(";"):
                    return

        body = self._func_body
        if word == "if":
            self._get_and_expect(ord("("))
            saved_count = self._auto_count
            cond, _ = self.compile_expression()
            self._get_and_expect(ord(")"))

            addr_condition = len(body)
            self._emit(JmpIfNot(0, cond))
            self._auto_count = saved_count

            self.compile_statement()
            addr_skips_else = len(body)
            self._emit(Jmp(0))

            self._get_and_expect_id("else")

            addr_else = len(body)
            self.compile_statement()
            addr_after_else = len(body)

            body[addr_condition] = JmpIfNot(addr_else, cond)
            body[addr_skips_else] = Jmp(addr_after_else)
            return

        if word == "while":
            begin = len(body)
            self._get_and_expect(ord("("))
            saved_count = self._auto_count
            arg, _ = self.compile_expression()
            self._get_and_expect(ord(")"))
            condition_jump = len(body)
            self._emit(JmpIfNot(0, arg))
            self._auto_count = saved_count

            self.compile_statement()
            self._emit(Jmp(begin))
            body[condition_jump] = JmpIfNot(len(body), arg)
            return

        lexer.restore(saved)
        saved_count = self._auto_count
        self.compile_expression()
        self._auto_count = saved_count
        self._get_and_expect(ord(";"))

    # ---- program -----------------------------------------------------

    def compile_program(self) -> Program:
        """Compile the whole source and return the resulting program."""
        lexer = self._lexer
        self._scopes.append({})
        while True:
            token = lexer.get_token()
            if token.kind == TokenKind.EOF:
                break
            self._expect(TokenKind.ID)

            name, name_where = token.text, token.start
            if is_keyword(name):
                keywords = ", ".join(f"`{k}`" for k in B_KEYWORDS)
                raise self._error(
                    name_where,
                    f"ERROR: Trying to define a reserved keyword `{name}` as a symbol. "
                    "Please choose a different name.",
                    f"NOTE: Reserved keywords are: {keywords}",
                )

            token = lexer.get_token()
            if token.kind != ord("("):
                raise self._missing(token.start, "variable definitions")

            self._get_and_expect(ord(")"))
            self._scopes.append({})
            self.compile_statement()
            self._scopes.pop()

            try:
                self._declare_var(name, name_where, External(name))
            except CompileError as err:
                print(err, file=sys.stderr)
            self.program.funcs.append(Func(name, self._func_body, self._auto_max))
            self._func_body = []
            self._auto_count = 0
            self._auto_max = 0
        self._scopes.pop()
        return self.program


def compile_source(source: str, input_path: str) -> Program:
    """Compile B source text; ``input_path`` is used in diagnostics."""
    return Compiler(source, input_path).compile_program()