"""Tests for the expression parser."""

import pytest

from erlsense.core.exceptions import ParseError
from erlsense.syntax.parser import (
    Atom,
    BinaryExpr,
    BinaryOp,
    Call,
    CaseExpr,
    Comprehension,
    FunExpr,
    FunRef,
    Generator,
    ListExpr,
    Literal,
    MapExpr,
    Match,
    RecordAccess,
    RecordExpr,
    Remote,
    TryExpr,
    TupleExpr,
    UnaryOp,
    Var,
    parse_exprs,
)
from erlsense.syntax.tokenizer import TokenKind, tokenize


def parse(source):
    return parse_exprs(tokenize(source))


def parse_one(source):
    exprs = parse(source)
    assert len(exprs) == 1
    return exprs[0]


class TestCalls:
    """Tests for local and remote calls."""

    def test_remote_call(self):
        """mod:fun(Args) is a call of a remote target."""
        expr = parse_one("lists:map(F, L).")
        assert isinstance(expr, Call)
        assert expr.target == Remote(Atom("lists"), Atom("map"))
        assert expr.args == [Var("F"), Var("L")]

    def test_local_call(self):
        expr = parse_one("self().")
        assert expr == Call(Atom("self"), [])

    def test_nested_calls(self):
        """Arguments may be calls themselves."""
        expr = parse_one("mod:outer(inner(1, 2), x).")
        assert isinstance(expr.args[0], Call)
        assert expr.args[0].target == Atom("inner")
        assert len(expr.args) == 2

    def test_variable_module(self):
        """The module of a remote call may be any expression."""
        expr = parse_one("Mod:f().")
        assert expr.target == Remote(Var("Mod"), Atom("f"))

    def test_call_of_call_result(self):
        """Calls chain on their results."""
        expr = parse_one("(get_fun())(1).")
        assert isinstance(expr.target, Call)


class TestOperators:
    """Tests for operator precedence."""

    def test_multiplication_binds_tighter(self):
        expr = parse_one("1 + 2 * 3.")
        assert isinstance(expr, BinaryOp)
        assert expr.op == "+"
        assert expr.right == BinaryOp(
            "*", Literal(TokenKind.INTEGER, 2), Literal(TokenKind.INTEGER, 3)
        )

    def test_match_is_right_associative(self):
        expr = parse_one("A = B = 1.")
        assert isinstance(expr, Match)
        assert isinstance(expr.value, Match)

    def test_list_append_is_right_associative(self):
        expr = parse_one("A ++ B ++ C.")
        assert expr.left == Var("A")
        assert isinstance(expr.right, BinaryOp)

    def test_comparison_is_not_associative(self):
        """Chained comparisons are a syntax error."""
        with pytest.raises(ParseError):
            parse("A < B < C.")

    def test_prefix_operators(self):
        expr = parse_one("not -X.")
        assert expr == UnaryOp("not", UnaryOp("-", Var("X")))

    def test_word_operators(self):
        expr = parse_one("A andalso B orelse C.")
        assert expr.op == "orelse"
        assert expr.left.op == "andalso"


class TestDataStructures:
    """Tests for tuples, lists, maps, records and binaries."""

    def test_tuple_and_list(self):
        expr = parse_one("{ok, [1, 2 | T]}.")
        assert isinstance(expr, TupleExpr)
        inner = expr.elements[1]
        assert isinstance(inner, ListExpr)
        assert len(inner.elements) == 2
        assert inner.tail == Var("T")

    def test_list_comprehension(self):
        expr = parse_one("[X * 2 || X <- L, X > 0].")
        assert isinstance(expr, Comprehension)
        assert expr.kind == "list"
        assert len(expr.qualifiers) == 2

    def test_map_comprehension(self):
        expr = parse_one("#{K => V + 1 || K := V <- M}.")
        assert isinstance(expr, Comprehension)
        assert expr.kind == "map"
        assert expr.template.op == "=>"
        [generator] = expr.qualifiers
        assert isinstance(generator, Generator)
        assert generator.pattern.key == Var("K")
        assert generator.source == Var("M")

    def test_map_and_update(self):
        expr = parse_one("M#{a := 1, b => 2}.")
        assert isinstance(expr, MapExpr)
        assert expr.base == Var("M")
        assert [f.op for f in expr.fields] == [":=", "=>"]

    def test_record(self):
        expr = parse_one("#state{count = 0}.")
        assert isinstance(expr, RecordExpr)
        assert expr.name == "state"

    def test_record_field_access(self):
        expr = parse_one("S#state.count.")
        assert expr == RecordAccess("state", "count", Var("S"))

    def test_binary(self):
        expr = parse_one("<<X:8/integer, Rest/binary>>.")
        assert isinstance(expr, BinaryExpr)
        assert expr.elements[0].types == ["integer"]
        assert expr.elements[1].types == ["binary"]


class TestBlocks:
    """Tests for fun, case and friends."""

    def test_fun_reference(self):
        expr = parse_one("fun lists:map/2.")
        assert isinstance(expr, FunRef)
        assert expr.module == Atom("lists")

    def test_anonymous_fun(self):
        expr = parse_one("fun(X) when X > 0 -> X; (_) -> 0 end.")
        assert isinstance(expr, FunExpr)
        assert len(expr.clauses) == 2

    def test_case(self):
        expr = parse_one("case X of {ok, V} -> V; _ -> undefined end.")
        assert isinstance(expr, CaseExpr)
        assert len(expr.clauses) == 2

    def test_try_catch(self):
        expr = parse_one("try f() catch _ -> ok end.")
        assert isinstance(expr, TryExpr)
        assert expr.catch_clauses[0].patterns == [Var("_")]

    def test_try_with_all_sections(self):
        expr = parse_one(
            "try f() of {ok, V} -> V; _ -> none "
            "catch throw:T -> T; error:R:S when is_atom(R) -> {R, S} "
            "after cleanup() end."
        )
        assert isinstance(expr, TryExpr)
        assert len(expr.clauses) == 2
        assert expr.catch_clauses[0].patterns == [Atom("throw"), Var("T")]
        assert expr.catch_clauses[1].patterns == [Atom("error"), Var("R"), Var("S")]
        assert len(expr.catch_clauses[1].guards) == 1
        assert isinstance(expr.after_body[0], Call)

    def test_try_after_only(self):
        expr = parse_one("try f() after g() end.")
        assert expr.catch_clauses == []
        assert len(expr.after_body) == 1


class TestExpressionList:
    """Tests for the dot-terminated expression list."""

    def test_multiple_expressions(self):
        assert len(parse("a, b, c.")) == 3

    def test_missing_dot(self):
        with pytest.raises(ParseError):
            parse("foo(1)")

    def test_tokens_after_dot(self):
        with pytest.raises(ParseError):
            parse("a. b.")

    def test_unbalanced(self):
        with pytest.raises(ParseError):
            parse("foo(1, .")

    def test_try_needs_catch_or_after(self):
        with pytest.raises(ParseError):
            parse("try f() end.")
