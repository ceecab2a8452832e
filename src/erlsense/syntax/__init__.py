"""Tokenizer and expression parser for Erlang fragments."""

from erlsense.syntax.parser import Parser, parse_exprs
from erlsense.syntax.tokenizer import Token, TokenKind, Tokenizer, format_atom, tokenize

__all__ = [
    "Token",
    "TokenKind",
    "Tokenizer",
    "tokenize",
    "format_atom",
    "Parser",
    "parse_exprs",
]
