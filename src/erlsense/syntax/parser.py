"""Expression parser for Erlang token sequences.

Parses a dot-terminated list of comma-separated expressions into a small
AST. The call-site parser uses it to check that a reconstructed call
fragment is well formed and to count its arguments, so the grammar covers
expressions (with the runtime's operator precedence) but not forms such as
attributes or function definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from erlsense.core.exceptions import ParseError
from erlsense.syntax.tokenizer import Token, TokenKind

COMPARISON_OPS = ("==", "/=", "=<", "<", ">=", ">", "=:=", "=/=")
LIST_OPS = ("++", "--")
ADD_OPS = ("+", "-")
ADD_WORDS = ("bor", "bxor", "bsl", "bsr", "or", "xor")
MULT_OPS = ("/", "*")
MULT_WORDS = ("div", "rem", "band", "and")
PREFIX_OPS = ("+", "-")
PREFIX_WORDS = ("bnot", "not")


@dataclass
class Atom:
    value: str


@dataclass
class Var:
    name: str


@dataclass
class Literal:
    """Integer, float, character or string literal."""

    kind: TokenKind
    value: Any


@dataclass
class TupleExpr:
    elements: list[Expr]


@dataclass
class ListExpr:
    elements: list[Expr]
    tail: Expr | None = None


@dataclass
class Generator:
    """``Pattern <- List``, ``Pattern <= Binary`` or ``K := V <- Map`` qualifier."""

    op: str
    pattern: Expr | MapField
    source: Expr


@dataclass
class Comprehension:
    kind: str  # "list", "binary" or "map"
    template: Expr | MapField
    qualifiers: list[Expr | Generator]


@dataclass
class BinElement:
    value: Expr
    size: Expr | None = None
    types: list[str] = field(default_factory=list)


@dataclass
class BinaryExpr:
    elements: list[BinElement]


@dataclass
class MapField:
    op: str  # "=>" or ":="
    key: Expr
    value: Expr


@dataclass
class MapExpr:
    fields: list[MapField]
    base: Expr | None = None


@dataclass
class RecordField:
    name: str
    value: Expr


@dataclass
class RecordExpr:
    name: str
    fields: list[RecordField]
    base: Expr | None = None


@dataclass
class RecordAccess:
    name: str
    field: str
    base: Expr | None = None


@dataclass
class Remote:
    module: Expr
    function: Expr


@dataclass
class Call:
    target: Expr
    args: list[Expr]


@dataclass
class FunRef:
    name: Expr
    arity: Expr
    module: Expr | None = None


@dataclass
class Clause:
    patterns: list[Expr]
    guards: list[list[Expr]]
    body: list[Expr]


@dataclass
class FunExpr:
    clauses: list[Clause]
    name: str | None = None


@dataclass
class Block:
    body: list[Expr]


@dataclass
class CaseExpr:
    subject: Expr
    clauses: list[Clause]


@dataclass
class IfExpr:
    clauses: list[Clause]


@dataclass
class ReceiveExpr:
    clauses: list[Clause]
    after_timeout: Expr | None = None
    after_body: list[Expr] = field(default_factory=list)


@dataclass
class TryExpr:
    """``try Body [of Clauses] [catch Clauses] [after Body] end``.

    Catch clause patterns hold ``[Reason]``, ``[Class, Reason]`` or
    ``[Class, Reason, Stack]``.
    """

    body: list[Expr]
    clauses: list[Clause] = field(default_factory=list)
    catch_clauses: list[Clause] = field(default_factory=list)
    after_body: list[Expr] = field(default_factory=list)


@dataclass
class BinaryOp:
    op: str
    left: Expr
    right: Expr


@dataclass
class UnaryOp:
    op: str
    operand: Expr


@dataclass
class Match:
    pattern: Expr
    value: Expr


@dataclass
class Catch:
    expr: Expr


Expr = Union[
    Atom, Var, Literal, TupleExpr, ListExpr, Comprehension, BinaryExpr,
    MapExpr, RecordExpr, RecordAccess, Remote, Call, FunRef, FunExpr, Block,
    CaseExpr, IfExpr, ReceiveExpr, TryExpr, BinaryOp, UnaryOp, Match, Catch,
]


class Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    # Token helpers

    def _peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise ParseError("Unexpected end of input")
        self.pos += 1
        return token

    def _error(self, message: str, token: Token | None = None) -> ParseError:
        token = token or self._peek()
        if token is None:
            return ParseError(f"{message} at end of input")
        return ParseError(
            message, {"token": str(token), "line": token.line, "column": token.column}
        )

    def _at_punct(self, *symbols: str) -> bool:
        token = self._peek()
        return token is not None and token.is_punct(*symbols)

    def _at_reserved(self, *words: str) -> bool:
        token = self._peek()
        return token is not None and token.is_reserved(*words)

    def _accept_punct(self, *symbols: str) -> str | None:
        if self._at_punct(*symbols):
            return self._next().value
        return None

    def _accept_reserved(self, *words: str) -> str | None:
        if self._at_reserved(*words):
            return self._next().value
        return None

    def _expect_punct(self, symbol: str) -> Token:
        if not self._at_punct(symbol):
            raise self._error(f"Expected '{symbol}'")
        return self._next()

    def _expect_reserved(self, word: str) -> Token:
        if not self._at_reserved(word):
            raise self._error(f"Expected '{word}'")
        return self._next()

    def _expect_atom(self) -> str:
        token = self._peek()
        if token is None or token.kind is not TokenKind.ATOM:
            raise self._error("Expected atom")
        return self._next().value

    # Entry point

    def parse_exprs(self) -> list[Expr]:
        exprs = self._parse_expr_list()
        token = self._peek()
        if token is None or token.kind is not TokenKind.DOT:
            raise self._error("Expected end of expression")
        self.pos += 1
        if self.pos != len(self.tokens):
            raise self._error("Unexpected tokens after end of expression")
        return exprs

    def _parse_expr_list(self) -> list[Expr]:
        exprs = [self.parse_expr()]
        while self._accept_punct(","):
            exprs.append(self.parse_expr())
        return exprs

    # Operator levels, loosest first

    def parse_expr(self) -> Expr:
        if self._accept_reserved("catch"):
            return Catch(self.parse_expr())

        left = self._parse_orelse()
        if self._accept_punct("="):
            return Match(left, self.parse_expr())
        if self._accept_punct("!"):
            return BinaryOp("!", left, self.parse_expr())
        return left

    def _parse_orelse(self) -> Expr:
        left = self._parse_andalso()
        if self._accept_reserved("orelse"):
            return BinaryOp("orelse", left, self._parse_orelse())
        return left

    def _parse_andalso(self) -> Expr:
        left = self._parse_comparison()
        if self._accept_reserved("andalso"):
            return BinaryOp("andalso", left, self._parse_andalso())
        return left

    def _parse_comparison(self) -> Expr:
        left = self._parse_list_op()
        if op := self._accept_punct(*COMPARISON_OPS):
            return BinaryOp(op, left, self._parse_list_op())
        return left

    def _parse_list_op(self) -> Expr:
        left = self._parse_additive()
        if op := self._accept_punct(*LIST_OPS):
            return BinaryOp(op, left, self._parse_list_op())
        return left

    def _parse_additive(self) -> Expr:
        left = self._parse_multiplicative()
        while op := (self._accept_punct(*ADD_OPS) or self._accept_reserved(*ADD_WORDS)):
            left = BinaryOp(op, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> Expr:
        left = self._parse_prefix()
        while op := (self._accept_punct(*MULT_OPS) or self._accept_reserved(*MULT_WORDS)):
            left = BinaryOp(op, left, self._parse_prefix())
        return left

    def _parse_prefix(self) -> Expr:
        if op := (self._accept_punct(*PREFIX_OPS) or self._accept_reserved(*PREFIX_WORDS)):
            return UnaryOp(op, self._parse_prefix())
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        """Calls, map updates and record operations on a remote/max expression."""
        expr = self._parse_remote()
        while True:
            if self._at_punct("("):
                expr = Call(expr, self._parse_arguments())
            elif self._accept_punct("#"):
                expr = self._parse_hash(base=expr)
            else:
                return expr

    def _parse_remote(self) -> Expr:
        left = self._parse_max()
        if self._accept_punct(":"):
            return Remote(left, self._parse_max())
        return left

    def _parse_arguments(self) -> list[Expr]:
        self._expect_punct("(")
        if self._accept_punct(")"):
            return []
        args = self._parse_expr_list()
        self._expect_punct(")")
        return args

    # Primary expressions

    def _parse_max(self) -> Expr:
        token = self._peek()
        if token is None:
            raise self._error("Expected expression")

        if token.kind is TokenKind.VAR:
            self.pos += 1
            return Var(token.value)
        if token.kind is TokenKind.ATOM:
            self.pos += 1
            return Atom(token.value)
        if token.kind in (TokenKind.INTEGER, TokenKind.FLOAT, TokenKind.CHAR):
            self.pos += 1
            return Literal(token.kind, token.value)
        if token.kind is TokenKind.STRING:
            return self._parse_strings()

        if token.kind is TokenKind.PUNCT:
            if token.value == "(":
                self.pos += 1
                expr = self.parse_expr()
                self._expect_punct(")")
                return expr
            if token.value == "{":
                return self._parse_tuple()
            if token.value == "[":
                return self._parse_list()
            if token.value == "<<":
                return self._parse_binary()
            if token.value == "#":
                self.pos += 1
                return self._parse_hash(base=None)

        if token.kind is TokenKind.RESERVED:
            if token.value == "fun":
                return self._parse_fun()
            if token.value == "begin":
                self.pos += 1
                body = self._parse_expr_list()
                self._expect_reserved("end")
                return Block(body)
            if token.value == "case":
                return self._parse_case()
            if token.value == "if":
                return self._parse_if()
            if token.value == "receive":
                return self._parse_receive()
            if token.value == "try":
                return self._parse_try()

        raise self._error("Unexpected token", token)

    def _parse_strings(self) -> Literal:
        parts = []
        while (token := self._peek()) is not None and token.kind is TokenKind.STRING:
            parts.append(token.value)
            self.pos += 1
        return Literal(TokenKind.STRING, "".join(parts))

    def _parse_tuple(self) -> TupleExpr:
        self._expect_punct("{")
        if self._accept_punct("}"):
            return TupleExpr([])
        elements = self._parse_expr_list()
        self._expect_punct("}")
        return TupleExpr(elements)

    def _parse_list(self) -> ListExpr | Comprehension:
        self._expect_punct("[")
        if self._accept_punct("]"):
            return ListExpr([])

        first = self.parse_expr()
        if self._accept_punct("||"):
            qualifiers = self._parse_qualifiers()
            self._expect_punct("]")
            return Comprehension("list", first, qualifiers)

        elements = [first]
        while self._accept_punct(","):
            elements.append(self.parse_expr())
        tail = self.parse_expr() if self._accept_punct("|") else None
        self._expect_punct("]")
        return ListExpr(elements, tail)

    def _parse_qualifiers(self) -> list[Expr | Generator]:
        qualifiers: list[Expr | Generator] = []
        while True:
            expr = self.parse_expr()
            if self._accept_punct(":="):
                value = self.parse_expr()
                self._expect_punct("<-")
                qualifiers.append(Generator("<-", MapField(":=", expr, value), self.parse_expr()))
            elif op := self._accept_punct("<-", "<="):
                qualifiers.append(Generator(op, expr, self.parse_expr()))
            else:
                qualifiers.append(expr)
            if not self._accept_punct(","):
                return qualifiers

    def _parse_binary(self) -> BinaryExpr | Comprehension:
        self._expect_punct("<<")
        if self._accept_punct(">>"):
            return BinaryExpr([])

        first = self._parse_bin_element()
        if self._accept_punct("||"):
            qualifiers = self._parse_qualifiers()
            self._expect_punct(">>")
            return Comprehension("binary", first.value, qualifiers)

        elements = [first]
        while self._accept_punct(","):
            elements.append(self._parse_bin_element())
        self._expect_punct(">>")
        return BinaryExpr(elements)

    def _parse_bin_element(self) -> BinElement:
        if op := (self._accept_punct(*PREFIX_OPS) or self._accept_reserved(*PREFIX_WORDS)):
            value: Expr = UnaryOp(op, self._parse_max())
        else:
            value = self._parse_max()

        size = self._parse_max() if self._accept_punct(":") else None

        types: list[str] = []
        if self._accept_punct("/"):
            while True:
                type_name = self._expect_atom()
                if self._accept_punct(":"):
                    unit = self._next()
                    if unit.kind is not TokenKind.INTEGER:
                        raise self._error("Expected integer unit", unit)
                    type_name = f"{type_name}:{unit.value}"
                types.append(type_name)
                if not self._accept_punct("-"):
                    break

        return BinElement(value, size, types)

    def _parse_hash(self, base: Expr | None) -> Expr:
        """Parse what follows ``#``: a map, a record or a record field."""
        if self._at_punct("{"):
            if base is None:
                return self._parse_map()
            return MapExpr(self._parse_map_fields(), base)

        name = self._expect_atom()
        if self._accept_punct("."):
            return RecordAccess(name, self._expect_atom(), base)

        self._expect_punct("{")
        fields: list[RecordField] = []
        if not self._accept_punct("}"):
            while True:
                field_token = self._next()
                if field_token.kind not in (TokenKind.ATOM, TokenKind.VAR):
                    raise self._error("Expected record field", field_token)
                self._expect_punct("=")
                fields.append(RecordField(field_token.value, self.parse_expr()))
                if not self._accept_punct(","):
                    break
            self._expect_punct("}")
        return RecordExpr(name, fields, base)

    def _parse_map(self) -> MapExpr | Comprehension:
        self._expect_punct("{")
        if self._accept_punct("}"):
            return MapExpr([])

        first = self._parse_map_field()
        if self._accept_punct("||"):
            qualifiers = self._parse_qualifiers()
            self._expect_punct("}")
            return Comprehension("map", first, qualifiers)

        fields = [first]
        while self._accept_punct(","):
            fields.append(self._parse_map_field())
        self._expect_punct("}")
        return MapExpr(fields)

    def _parse_map_fields(self) -> list[MapField]:
        self._expect_punct("{")
        fields: list[MapField] = []
        if self._accept_punct("}"):
            return fields
        while True:
            fields.append(self._parse_map_field())
            if not self._accept_punct(","):
                break
        self._expect_punct("}")
        return fields

    def _parse_map_field(self) -> MapField:
        key = self.parse_expr()
        op = self._accept_punct("=>", ":=")
        if op is None:
            raise self._error("Expected '=>' or ':='")
        return MapField(op, key, self.parse_expr())

    # Block expressions

    def _parse_fun(self) -> FunRef | FunExpr:
        self._expect_reserved("fun")
        token = self._peek()
        following = self._peek(1)

        if token is not None and token.is_punct("("):
            clauses = self._parse_clauses(self._parse_fun_clause)
            self._expect_reserved("end")
            return FunExpr(clauses)

        if (
            token is not None
            and token.kind is TokenKind.VAR
            and following is not None
            and following.is_punct("(")
        ):
            name = token.value
            clauses = self._parse_clauses(lambda: self._parse_named_fun_clause(name))
            self._expect_reserved("end")
            return FunExpr(clauses, name)

        first = self._parse_fun_name_part()
        if self._accept_punct(":"):
            name = self._parse_fun_name_part()
            self._expect_punct("/")
            return FunRef(name, self._parse_fun_name_part(), module=first)
        self._expect_punct("/")
        return FunRef(first, self._parse_fun_name_part())

    def _parse_fun_name_part(self) -> Expr:
        token = self._next()
        if token.kind is TokenKind.ATOM:
            return Atom(token.value)
        if token.kind is TokenKind.VAR:
            return Var(token.value)
        if token.kind is TokenKind.INTEGER:
            return Literal(token.kind, token.value)
        raise self._error("Expected function reference", token)

    def _parse_fun_clause(self) -> Clause:
        patterns = self._parse_arguments()
        guards = self._parse_guard() if self._accept_reserved("when") else []
        self._expect_punct("->")
        return Clause(patterns, guards, self._parse_expr_list())

    def _parse_named_fun_clause(self, name: str) -> Clause:
        token = self._next()
        if token.kind is not TokenKind.VAR or token.value != name:
            raise self._error(f"Expected clause of fun {name}", token)
        return self._parse_fun_clause()

    def _parse_cr_clause(self) -> Clause:
        pattern = self.parse_expr()
        guards = self._parse_guard() if self._accept_reserved("when") else []
        self._expect_punct("->")
        return Clause([pattern], guards, self._parse_expr_list())

    def _parse_if_clause(self) -> Clause:
        guards = self._parse_guard()
        self._expect_punct("->")
        return Clause([], guards, self._parse_expr_list())

    def _parse_guard(self) -> list[list[Expr]]:
        # ';' before the clause arrow always separates guard alternatives
        guards = [self._parse_expr_list()]
        while self._accept_punct(";"):
            guards.append(self._parse_expr_list())
        return guards

    def _parse_clauses(self, parse_clause) -> list[Clause]:
        clauses = [parse_clause()]
        while self._accept_punct(";"):
            clauses.append(parse_clause())
        return clauses

    def _parse_case(self) -> CaseExpr:
        self._expect_reserved("case")
        subject = self.parse_expr()
        self._expect_reserved("of")
        clauses = self._parse_clauses(self._parse_cr_clause)
        self._expect_reserved("end")
        return CaseExpr(subject, clauses)

    def _parse_if(self) -> IfExpr:
        self._expect_reserved("if")
        clauses = self._parse_clauses(self._parse_if_clause)
        self._expect_reserved("end")
        return IfExpr(clauses)

    def _parse_receive(self) -> ReceiveExpr:
        self._expect_reserved("receive")
        clauses: list[Clause] = []
        if not self._at_reserved("after"):
            clauses = self._parse_clauses(self._parse_cr_clause)

        after_timeout = None
        after_body: list[Expr] = []
        if self._accept_reserved("after"):
            after_timeout = self.parse_expr()
            self._expect_punct("->")
            after_body = self._parse_expr_list()

        self._expect_reserved("end")
        return ReceiveExpr(clauses, after_timeout, after_body)

    def _parse_try(self) -> TryExpr:
        self._expect_reserved("try")
        expr = TryExpr(self._parse_expr_list())

        if self._accept_reserved("of"):
            expr.clauses = self._parse_clauses(self._parse_cr_clause)

        has_handler = False
        if self._accept_reserved("catch"):
            expr.catch_clauses = self._parse_clauses(self._parse_catch_clause)
            has_handler = True
        if self._accept_reserved("after"):
            expr.after_body = self._parse_expr_list()
            has_handler = True

        if not has_handler:
            raise self._error("Expected 'catch' or 'after'")
        self._expect_reserved("end")
        return expr

    def _parse_catch_clause(self) -> Clause:
        pattern = self.parse_expr()
        # Class:Reason reads as a remote term; a second ':' adds the stacktrace
        if isinstance(pattern, Remote):
            patterns = [pattern.module, pattern.function]
            if self._accept_punct(":"):
                stack = self._next()
                if stack.kind is not TokenKind.VAR:
                    raise self._error("Expected stacktrace variable", stack)
                patterns.append(Var(stack.value))
        else:
            patterns = [pattern]
        guards = self._parse_guard() if self._accept_reserved("when") else []
        self._expect_punct("->")
        return Clause(patterns, guards, self._parse_expr_list())


def parse_exprs(tokens: list[Token]) -> list[Expr]:
    """Parse a dot-terminated expression list.

    Raises:
        ParseError: If the tokens do not form a valid expression list
    """
    return Parser(tokens).parse_exprs()
