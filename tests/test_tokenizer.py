"""Tests for the Erlang fragment tokenizer."""

import pytest

from erlsense.core.exceptions import LexError
from erlsense.syntax.tokenizer import Token, TokenKind, format_atom, tokenize


def kinds(fragment):
    return [token.kind for token in tokenize(fragment)]


def values(fragment):
    return [token.value for token in tokenize(fragment)]


class TestNamesAndPunctuation:
    """Tests for atoms, variables, reserved words and punctuation."""

    def test_qualified_prefix(self):
        """A qualified prefix is atom, colon, atom."""
        tokens = tokenize("lists:ma")
        assert [t.kind for t in tokens] == [TokenKind.ATOM, TokenKind.PUNCT, TokenKind.ATOM]
        assert [t.value for t in tokens] == ["lists", ":", "ma"]

    def test_variables(self):
        """Capitalized and underscore-led names are variables."""
        assert kinds("Key _Ignored _") == [TokenKind.VAR] * 3

    def test_reserved_words(self):
        """Reserved words are not atoms."""
        tokens = tokenize("case X of")
        assert tokens[0].is_reserved("case")
        assert tokens[2].is_reserved("of")
        assert not tokens[0].is_atom

    def test_maybe_and_else_are_atoms(self):
        """maybe and else are only reserved behind a feature flag."""
        assert kinds("maybe else") == [TokenKind.ATOM, TokenKind.ATOM]

    def test_atoms_with_at_sign_and_digits(self):
        """Node names tokenize as a single atom."""
        assert values("app@host1") == ["app@host1"]

    def test_quoted_atom(self):
        """Quoted atoms unescape to their name."""
        tokens = tokenize("'hello world'")
        assert tokens == [Token(TokenKind.ATOM, "hello world", 1, 1)]

    def test_longest_punctuation_wins(self):
        """Multi-character operators are single tokens."""
        assert values("A =:= B") == ["A", "=:=", "B"]
        assert values("<<X>>") == ["<<", "X", ">>"]
        assert values("#{a => 1}") == ["#", "{", "a", "=>", 1, "}"]

    def test_unknown_character_is_single_token(self):
        """Characters outside the grammar become one-character tokens."""
        tokens = tokenize("a ~ b")
        assert tokens[1].kind is TokenKind.PUNCT
        assert tokens[1].value == "~"

    def test_positions(self):
        """Tokens carry 1-based line and column."""
        tokens = tokenize("foo(\n  Bar)")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (1, 4)
        assert (tokens[2].line, tokens[2].column) == (2, 3)

    def test_comments_are_skipped(self):
        """Comments run to end of line."""
        assert values("a % comment, with (parens\nb") == ["a", "b"]


class TestLiterals:
    """Tests for numbers, characters and strings."""

    def test_integers_and_floats(self):
        """Integers and floats, with digit separators."""
        tokens = tokenize("42 1_000 3.14 1.0e3")
        assert [t.kind for t in tokens] == [
            TokenKind.INTEGER, TokenKind.INTEGER, TokenKind.FLOAT, TokenKind.FLOAT,
        ]
        assert [t.value for t in tokens] == [42, 1000, 3.14, 1000.0]

    def test_based_integer(self):
        """Base#digits integers."""
        assert values("16#ff 2#1010") == [255, 10]

    def test_invalid_base(self):
        """Bases outside 2..36 are rejected."""
        with pytest.raises(LexError):
            tokenize("37#10")

    def test_invalid_digits_for_base(self):
        """Digits must be valid in the base."""
        with pytest.raises(LexError):
            tokenize("2#102")

    def test_integer_followed_by_dot(self):
        """A trailing dot terminates rather than starting a float."""
        tokens = tokenize("1.")
        assert [t.kind for t in tokens] == [TokenKind.INTEGER, TokenKind.DOT]

    def test_characters(self):
        """Character literals are their code points."""
        assert values("$a $\\n $\\x41 $\\101 $\\^A") == [97, 10, 65, 65, 1]

    def test_string_escapes(self):
        """Strings unescape their contents."""
        assert values('"a\\tb\\x{263A}"') == ["a\tb☺"]

    def test_unterminated_string(self):
        """An unterminated string is a lexical error."""
        with pytest.raises(LexError) as exc_info:
            tokenize('io:format("abc')
        assert exc_info.value.column == 11

    def test_unterminated_quoted_atom(self):
        """An unterminated quoted atom is a lexical error."""
        with pytest.raises(LexError):
            tokenize("'abc")

    def test_incomplete_syntax_is_fine(self):
        """Unbalanced brackets are not a lexical concern."""
        assert values("foo(1, [a, ") == ["foo", "(", 1, ",", "[", "a", ","]


class TestDot:
    """Tests for the expression terminator."""

    def test_dot_before_whitespace(self):
        """A dot followed by whitespace or end of input terminates."""
        assert kinds("a. b.")[1] is TokenKind.DOT
        assert kinds("a.")[-1] is TokenKind.DOT

    def test_dot_inside_expression(self):
        """A dot followed by a name is record field access punctuation."""
        tokens = tokenize("R#rec.field")
        assert tokens[3].is_punct(".")


class TestFormatAtom:
    """Tests for atom rendering."""

    def test_plain_atom(self):
        assert format_atom("map") == "map"

    def test_atom_needing_quotes(self):
        """Atoms that would not re-tokenize as themselves are quoted."""
        assert format_atom("Hello") == "'Hello'"
        assert format_atom("hello world") == "'hello world'"
        assert format_atom("case") == "'case'"
        assert format_atom("it's") == "'it\\'s'"
