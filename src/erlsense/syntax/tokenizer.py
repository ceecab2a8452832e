"""Tokenizer for Erlang source fragments.

Turns a possibly incomplete fragment such as ``lists:ma`` or
``maps:get(Key, `` into a flat token list. Incomplete *syntax* is fine;
only character-level problems (unterminated strings or quoted atoms, bad
escapes, malformed based integers) are reported, as LexError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from erlsense.core.exceptions import LexError


class TokenKind(str, Enum):
    """Lexical category of a token."""

    ATOM = "atom"
    VAR = "var"
    INTEGER = "integer"
    FLOAT = "float"
    CHAR = "char"
    STRING = "string"
    RESERVED = "reserved"
    PUNCT = "punct"
    DOT = "dot"


RESERVED_WORDS: frozenset[str] = frozenset({
    "after", "and", "andalso", "band", "begin", "bnot", "bor", "bsl", "bsr",
    "bxor", "case", "catch", "cond", "div", "end", "fun", "if", "let", "not",
    "of", "or", "orelse", "receive", "rem", "try", "when", "xor",
})

# Longest first
PUNCTUATION: tuple[str, ...] = (
    "=:=", "=/=", "...",
    "::", ":=", "->", "=>", "<-", "<=", "<<", ">>", ">=", "==", "/=", "=<",
    "++", "--", "||", "..",
    "(", ")", "[", "]", "{", "}", ",", ";", ":", "|", "=", "+", "-", "*",
    "/", "<", ">", "!", "#", "?", ".",
)

OPENING_BRACKETS: frozenset[str] = frozenset({"(", "[", "{", "<<"})
CLOSING_BRACKETS: frozenset[str] = frozenset({")", "]", "}", ">>"})

_LATIN1_LOWER = "\xdf-\xf6\xf8-\xff"
_LATIN1_UPPER = "\xc0-\xd6\xd8-\xde"
_NAME_TAIL = f"[A-Za-z0-9_@{_LATIN1_UPPER}{_LATIN1_LOWER}]*"

_ATOM_RE = re.compile(f"[a-z{_LATIN1_LOWER}]{_NAME_TAIL}")
_VAR_RE = re.compile(f"[A-Z_{_LATIN1_UPPER}]{_NAME_TAIL}")
_FLOAT_RE = re.compile(r"[0-9](?:_?[0-9])*\.[0-9](?:_?[0-9])*(?:[eE][+-]?[0-9](?:_?[0-9])*)?")
_INTEGER_RE = re.compile(r"[0-9](?:_?[0-9])*")
_BASED_DIGITS_RE = re.compile(r"[0-9a-zA-Z](?:_?[0-9a-zA-Z])*")
_OCTAL_RE = re.compile(r"[0-7]{1,3}")
_HEX2_RE = re.compile(r"[0-9a-fA-F]{2}")
_HEX_BRACED_RE = re.compile(r"\{([0-9a-fA-F]+)\}")

_SIMPLE_ESCAPES: dict[str, str] = {
    "b": "\b",
    "d": "\x7f",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "s": " ",
    "t": "\t",
    "v": "\v",
}


@dataclass(frozen=True)
class Token:
    """A lexical token with its 1-based source position."""

    kind: TokenKind
    value: Any
    line: int = 1
    column: int = 1

    def is_punct(self, *symbols: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.value in symbols

    def is_reserved(self, *words: str) -> bool:
        return self.kind is TokenKind.RESERVED and self.value in words

    @property
    def is_atom(self) -> bool:
        return self.kind is TokenKind.ATOM

    @property
    def is_opening_bracket(self) -> bool:
        return self.kind is TokenKind.PUNCT and self.value in OPENING_BRACKETS

    @property
    def is_closing_bracket(self) -> bool:
        return self.kind is TokenKind.PUNCT and self.value in CLOSING_BRACKETS

    def __str__(self) -> str:
        if self.kind in (TokenKind.PUNCT, TokenKind.RESERVED, TokenKind.DOT):
            return str(self.value)
        return f"{self.kind.value}:{self.value!r}"


class Tokenizer:
    """Single-use scanner over one fragment."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        text = self.text

        while self.pos < len(text):
            char = text[self.pos]

            if char.isspace():
                self._advance(1)
                continue

            if char == "%":
                end = text.find("\n", self.pos)
                self._advance((len(text) if end == -1 else end) - self.pos)
                continue

            line, column = self.line, self.column

            if "0" <= char <= "9":
                tokens.append(self._scan_number(line, column))
            elif match := _ATOM_RE.match(text, self.pos):
                word = match.group()
                kind = TokenKind.RESERVED if word in RESERVED_WORDS else TokenKind.ATOM
                tokens.append(Token(kind, word, line, column))
                self._advance(len(word))
            elif match := _VAR_RE.match(text, self.pos):
                tokens.append(Token(TokenKind.VAR, match.group(), line, column))
                self._advance(len(match.group()))
            elif char == "'":
                value = self._scan_quoted("'", "quoted atom")
                tokens.append(Token(TokenKind.ATOM, value, line, column))
            elif char == '"':
                value = self._scan_quoted('"', "string")
                tokens.append(Token(TokenKind.STRING, value, line, column))
            elif char == "$":
                tokens.append(self._scan_char(line, column))
            elif char == "." and self._is_dot_terminator(self.pos + 1):
                tokens.append(Token(TokenKind.DOT, ".", line, column))
                self._advance(1)
            else:
                symbol = self._match_punctuation()
                tokens.append(Token(TokenKind.PUNCT, symbol, line, column))
                self._advance(len(symbol))

        return tokens

    def _advance(self, count: int) -> None:
        for char in self.text[self.pos:self.pos + count]:
            if char == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += count

    def _error(self, message: str) -> LexError:
        return LexError(message, self.line, self.column)

    def _is_dot_terminator(self, index: int) -> bool:
        return index >= len(self.text) or self.text[index].isspace() or self.text[index] == "%"

    def _match_punctuation(self) -> str:
        for symbol in PUNCTUATION:
            if self.text.startswith(symbol, self.pos):
                return symbol
        # Any other character is a token of its own, as in the runtime scanner
        return self.text[self.pos]

    def _scan_number(self, line: int, column: int) -> Token:
        text = self.text

        if match := _FLOAT_RE.match(text, self.pos):
            literal = match.group()
            self._advance(len(literal))
            return Token(TokenKind.FLOAT, float(literal.replace("_", "")), line, column)

        match = _INTEGER_RE.match(text, self.pos)
        literal = match.group()
        hash_index = self.pos + len(literal)

        if hash_index < len(text) and text[hash_index] == "#":
            base = int(literal.replace("_", ""))
            if not 2 <= base <= 36:
                raise self._error(f"Invalid integer base: {base}")
            digits_match = _BASED_DIGITS_RE.match(text, hash_index + 1)
            if digits_match is None:
                self._advance(hash_index + 1 - self.pos)
                raise self._error(f"Missing digits after {base}#")
            digits = digits_match.group().replace("_", "")
            try:
                value = int(digits, base)
            except ValueError:
                self._advance(hash_index + 1 - self.pos)
                raise self._error(f"Invalid digits for base {base}: {digits}") from None
            self._advance(digits_match.end() - self.pos)
            return Token(TokenKind.INTEGER, value, line, column)

        self._advance(len(literal))
        return Token(TokenKind.INTEGER, int(literal.replace("_", "")), line, column)

    def _scan_quoted(self, quote: str, what: str) -> str:
        start_line, start_column = self.line, self.column
        self._advance(1)
        chars: list[str] = []

        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == quote:
                self._advance(1)
                return "".join(chars)
            if char == "\\":
                chars.append(self._scan_escape())
            else:
                chars.append(char)
                self._advance(1)

        raise LexError(f"Unterminated {what}", start_line, start_column)

    def _scan_char(self, line: int, column: int) -> Token:
        self._advance(1)
        if self.pos >= len(self.text):
            raise LexError("Unterminated character literal", line, column)
        char = self.text[self.pos]
        if char == "\\":
            value = self._scan_escape()
        else:
            value = char
            self._advance(1)
        return Token(TokenKind.CHAR, ord(value), line, column)

    def _scan_escape(self) -> str:
        """Consume a backslash escape and return the character it denotes."""
        text = self.text
        self._advance(1)
        if self.pos >= len(text):
            raise self._error("Unterminated escape sequence")

        char = text[self.pos]

        if match := _OCTAL_RE.match(text, self.pos):
            self._advance(len(match.group()))
            return chr(int(match.group(), 8))

        if char == "x":
            if match := _HEX2_RE.match(text, self.pos + 1):
                self._advance(1 + len(match.group()))
                return chr(int(match.group(), 16))
            if match := _HEX_BRACED_RE.match(text, self.pos + 1):
                code = int(match.group(1), 16)
                if code > 0x10FFFF:
                    raise self._error(f"Invalid code point: {match.group(1)}")
                self._advance(1 + len(match.group()))
                return chr(code)
            raise self._error("Invalid hexadecimal escape")

        if char == "^":
            if self.pos + 1 >= len(text):
                raise self._error("Unterminated control escape")
            control = text[self.pos + 1]
            self._advance(2)
            return chr(ord(control) & 0x1F)

        self._advance(1)
        return _SIMPLE_ESCAPES.get(char, char)


def format_atom(name: str) -> str:
    """Render an atom as it must be written in source, quoting when needed."""
    if _ATOM_RE.fullmatch(name) and name not in RESERVED_WORDS:
        return name
    escaped = name.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def tokenize(fragment: str) -> list[Token]:
    """Tokenize an Erlang fragment.

    Raises:
        LexError: If the fragment is not lexically valid
    """
    return Tokenizer(fragment).tokenize()
