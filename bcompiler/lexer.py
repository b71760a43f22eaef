"""Tokenizer for B source text with a C-style token set."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from enum import IntEnum

STRING_STORE_LEN = 1024
"""Identifiers and string literals must fit into this many bytes, terminator included."""


class TokenKind(IntEnum):
    """Multi-character token kinds. Single characters use their own code point."""

    EOF = 256
    PARSE_ERROR = 257
    INTLIT = 258
    FLOATLIT = 259
    ID = 260
    DQSTRING = 261
    SQSTRING = 262
    CHARLIT = 263
    EQ = 264
    NOTEQ = 265
    LESSEQ = 266
    GREATEREQ = 267
    ANDAND = 268
    OROR = 269
    SHL = 270
    SHR = 271
    PLUSPLUS = 272
    MINUSMINUS = 273
    PLUSEQ = 274
    MINUSEQ = 275
    MULEQ = 276
    DIVEQ = 277
    MODEQ = 278
    ANDEQ = 279
    OREQ = 280
    XOREQ = 281
    ARROW = 282
    EQARROW = 283
    SHLEQ = 284
    SHREQ = 285
    FIRST_UNUSED_TOKEN = 286


_PUNCTUATORS: tuple[tuple[str, TokenKind], ...] = (
    ("<<=", TokenKind.SHLEQ),
    (">>=", TokenKind.SHREQ),
    ("==", TokenKind.EQ),
    ("!=", TokenKind.NOTEQ),
    ("<=", TokenKind.LESSEQ),
    (">=", TokenKind.GREATEREQ),
    ("&&", TokenKind.ANDAND),
    ("||", TokenKind.OROR),
    ("<<", TokenKind.SHL),
    (">>", TokenKind.SHR),
    ("++", TokenKind.PLUSPLUS),
    ("--", TokenKind.MINUSMINUS),
    ("+=", TokenKind.PLUSEQ),
    ("-=", TokenKind.MINUSEQ),
    ("*=", TokenKind.MULEQ),
    ("/=", TokenKind.DIVEQ),
    ("%=", TokenKind.MODEQ),
    ("&=", TokenKind.ANDEQ),
    ("|=", TokenKind.OREQ),
    ("^=", TokenKind.XOREQ),
    ("->", TokenKind.ARROW),
    ("=>", TokenKind.EQARROW),
)

_DISPLAY_NAMES: dict[int, str] = {
    TokenKind.ID: "identifier",
    TokenKind.DQSTRING: "string literal",
    TokenKind.SQSTRING: "single quote literal",
    TokenKind.CHARLIT: "character literal",
    TokenKind.INTLIT: "integer literal",
    TokenKind.FLOATLIT: "floating-point literal",
    TokenKind.EOF: "end of file",
    **{kind: text for text, kind in _PUNCTUATORS},
}

_WHITESPACE = " \t\r\n\f"
_NEWLINE = re.compile(r"\r\n|\r|\n")
_HEX_INT = re.compile(r"0[xX][0-9a-fA-F]+")
_FLOAT = re.compile(
    r"(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[0-9]+[eE][+-]?[0-9]+"
)
_DEC_INT = re.compile(r"[0-9]+")
_INT_SUFFIX = re.compile(r"[uUlL]*")
_FLOAT_SUFFIX = re.compile(r"[fFlL]?")

_SIMPLE_ESCAPES = {
    "\\": "\\",
    "'": "'",
    '"': '"',
    "t": "\t",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "0": "\0",
}


def display_token_kind(kind: int) -> str:
    """Human-readable name of a token kind for diagnostics."""
    name = _DISPLAY_NAMES.get(kind)
    if name is not None:
        return name
    if 0 <= kind < 256:
        return f"`{chr(kind)}`"
    return f"<<<UNKNOWN TOKEN {kind}>>>"


@dataclass(frozen=True)
class Token:
    """One lexed token. ``start`` and ``end`` are indices of its first and last character."""

    kind: int
    start: int
    end: int
    text: str = ""
    int_value: int = 0
    float_value: float = 0.0


@dataclass(frozen=True)
class Location:
    """Line number (from 1) and character offset within the line (from 0)."""

    line_number: int
    line_offset: int


def _is_ident_start(ch: str) -> bool:
    return ch in string.ascii_letters or ch in "_$" or ch >= "\x80"


def _is_ident_char(ch: str) -> bool:
    return _is_ident_start(ch) or ch in string.digits


def _fits_store(text: str) -> bool:
    return len(text.encode("utf-8")) + 1 < STRING_STORE_LEN


class Lexer:
    """Pull-style tokenizer; ``save``/``restore`` allow backtracking."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._pos = 0
        self.token: Token | None = None

    def save(self) -> int:
        """Return the current parse point."""
        return self._pos

    def restore(self, point: int) -> None:
        """Move the parse point back to one returned by ``save``."""
        self._pos = point

    def location(self, position: int) -> Location:
        """Line and column of a character index in the source."""
        line = 1
        line_start = 0
        for match in _NEWLINE.finditer(self.source, 0, position):
            line += 1
            line_start = match.end()
        return Location(line, position - line_start)

    def get_token(self) -> Token:
        """Lex the next token, remember it as ``self.token`` and return it."""
        token = self._lex()
        self.token = token
        return token

    def _error(self, start: int, end: int) -> Token:
        self._pos = end + 1
        return Token(TokenKind.PARSE_ERROR, start, end)

    def _skip_blank(self) -> int | None:
        """Skip whitespace and comments; return an error position for an open block comment."""
        src = self.source
        n = len(src)
        while self._pos < n:
            ch = src[self._pos]
            if ch in _WHITESPACE:
                self._pos += 1
            elif src.startswith("//", self._pos):
                newline = src.find("\n", self._pos)
                self._pos = n if newline < 0 else newline + 1
            elif src.startswith("/*", self._pos):
                close = src.find("*/", self._pos + 2)
                if close < 0:
                    return self._pos
                self._pos = close + 2
            else:
                break
        return None

    def _lex(self) -> Token:
        open_comment = self._skip_blank()
        src = self.source
        if open_comment is not None:
            return self._error(open_comment, len(src) - 1)
        start = self._pos
        if start >= len(src):
            return Token(TokenKind.EOF, start, start)
        ch = src[start]

        if _is_ident_start(ch):
            end = start + 1
            while end < len(src) and _is_ident_char(src[end]):
                end += 1
            text = src[start:end]
            if not _fits_store(text):
                return self._error(start, end - 1)
            self._pos = end
            return Token(TokenKind.ID, start, end - 1, text=text)

        if ch in string.digits or (ch == "." and src[start + 1 : start + 2].isdigit()):
            return self._number(start)

        if ch == '"':
            return self._string(start)

        if ch == "'":
            return self._char(start)

        for text, kind in _PUNCTUATORS:
            if src.startswith(text, start):
                self._pos = start + len(text)
                return Token(kind, start, self._pos - 1)

        self._pos = start + 1
        return Token(ord(ch), start, start)

    def _number(self, start: int) -> Token:
        src = self.source
        match = _HEX_INT.match(src, start)
        if match:
            value = int(match.group()[2:], 16)
            end = _INT_SUFFIX.match(src, match.end()).end()
            self._pos = end
            return Token(TokenKind.INTLIT, start, end - 1, int_value=value)

        match = _FLOAT.match(src, start)
        if match:
            value = float(match.group())
            end = _FLOAT_SUFFIX.match(src, match.end()).end()
            self._pos = end
            return Token(TokenKind.FLOATLIT, start, end - 1, float_value=value)

        match = _DEC_INT.match(src, start)
        digits = match.group()
        if len(digits) > 1 and digits[0] == "0":
            if any(d in "89" for d in digits):
                return self._error(start, match.end() - 1)
            value = int(digits, 8)
        else:
            value = int(digits, 10)
        end = _INT_SUFFIX.match(src, match.end()).end()
        self._pos = end
        return Token(TokenKind.INTLIT, start, end - 1, int_value=value)

    def _escape(self, pos: int) -> tuple[str, int] | None:
        """Decode the escape sequence whose backslash is at ``pos``."""
        src = self.source
        if pos + 1 >= len(src):
            return None
        code = src[pos + 1]
        if code in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[code], pos + 2
        if code == "x":
            end = pos + 2
            while end < len(src) and src[end] in string.hexdigits:
                end += 1
            if end == pos + 2:
                return None
            return chr(int(src[pos + 2 : end], 16)), end
        if code == "u":
            digits = src[pos + 2 : pos + 6]
            if len(digits) != 4 or any(d not in string.hexdigits for d in digits):
                return None
            return chr(int(digits, 16)), pos + 6
        return None

    def _string(self, start: int) -> Token:
        src = self.source
        pos = start + 1
        chars: list[str] = []
        while True:
            if pos >= len(src):
                return self._error(start, len(src) - 1)
            ch = src[pos]
            if ch == '"':
                break
            if ch == "\\":
                decoded = self._escape(pos)
                if decoded is None:
                    return self._error(start, pos)
                ch, pos = decoded
            else:
                pos += 1
            chars.append(ch)
        text = "".join(chars)
        if not _fits_store(text):
            return self._error(start, pos)
        self._pos = pos + 1
        return Token(TokenKind.DQSTRING, start, pos, text=text)

    def _char(self, start: int) -> Token:
        src = self.source
        pos = start + 1
        if pos >= len(src):
            return self._error(start, len(src) - 1)
        if src[pos] == "\\":
            decoded = self._escape(pos)
            if decoded is None:
                return self._error(start, pos)
            ch, pos = decoded
        else:
            ch = src[pos]
            pos += 1
        if pos >= len(src) or src[pos] != "'":
            return self._error(start, min(pos, len(src) - 1))
        self._pos = pos + 1
        return Token(TokenKind.CHARLIT, start, pos, int_value=ord(ch))