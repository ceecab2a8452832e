"""Signature help for partially typed calls.

Finds the innermost call that is still open at the end of a fragment,
e.g. ``outer`` in ``mod:outer(inner(1, 2), ``, works out which argument
the cursor is in and looks up the signatures of the call target.

The fragment is scanned backwards once. Tokens after the point of interest
and the insides of already closed nested brackets are dropped; what is
kept is the call head plus the complete arguments typed so far. That
prefix is closed with a placeholder argument and handed to the expression
parser, so only well formed calls produce signature help.
"""

from __future__ import annotations

import logging
from enum import Enum

from erlsense.core.exceptions import CallError, LexError, MalformedCallError, ParseError
from erlsense.core.types import (
    CALLABLE_KINDS,
    CallSiteParse,
    CallTarget,
    DocumentedMember,
    LocalCall,
    RemoteCall,
    RuntimeTarget,
    SignatureMatch,
    SignatureResult,
)
from erlsense.docs.store import DocumentationStore
from erlsense.syntax.parser import Atom, Call, Remote, parse_exprs
from erlsense.syntax.tokenizer import Token, TokenKind, format_atom, tokenize

logger = logging.getLogger(__name__)

PLACEHOLDER_ARGUMENT = "__context__"

# Unqualified calls resolve to the built-in functions
BUILTIN_MODULE = "erlang"


class ScanState(Enum):
    """States of the backwards call-site scan."""

    STRIP_TRAILING_NOISE = "strip_trailing_noise"
    SCAN_FUNCTION_NAME = "scan_function_name"
    SCAN_ARGUMENTS = "scan_arguments"
    SCAN_NESTED_BRACKET = "scan_nested_bracket"


def _ends_callee(token: Token) -> bool:
    """Whether ``token`` can end the expression a ``(`` is applied to."""
    return (
        token.kind in (TokenKind.ATOM, TokenKind.VAR)
        or token.is_closing_bracket
        or token.is_reserved("fun", "end")
    )


def _function_head(tokens: list[Token], index: int) -> list[Token] | None:
    """Return ``[name]`` or ``[module, ':', name]`` ending at ``index``."""
    name = tokens[index]
    if not name.is_atom:
        return None
    if index >= 1 and tokens[index - 1].is_punct(":"):
        if index >= 2 and tokens[index - 2].is_atom:
            return tokens[index - 2:index + 1]
        return None
    return [name]


def filter_last_call(tokens: list[Token]) -> list[Token] | None:
    """Reduce ``tokens`` to the head and complete arguments of the last open call.

    Returns None when no open call is found.

    Raises:
        MalformedCallError: If bracket nesting underflows
    """
    state = ScanState.STRIP_TRAILING_NOISE
    resume = ScanState.STRIP_TRAILING_NOISE
    depth = 0
    kept: list[Token] = []  # reversed
    index = len(tokens) - 1

    while index >= 0:
        token = tokens[index]

        if state is ScanState.STRIP_TRAILING_NOISE:
            if token.is_punct("("):
                kept.append(token)
                state = ScanState.SCAN_FUNCTION_NAME
            elif token.is_punct(","):
                kept.append(token)
                state = ScanState.SCAN_ARGUMENTS
            elif token.is_closing_bracket:
                state, resume, depth = ScanState.SCAN_NESTED_BRACKET, state, 1

        elif state is ScanState.SCAN_ARGUMENTS:
            if token.is_punct("("):
                kept.append(token)
                state = ScanState.SCAN_FUNCTION_NAME
            elif token.is_closing_bracket:
                kept.append(token)
                state, resume, depth = ScanState.SCAN_NESTED_BRACKET, state, 1
            elif token.is_opening_bracket:
                # Cursor is inside an unclosed list, tuple or binary of the
                # current argument; everything kept so far belongs to it
                kept.clear()
                state = ScanState.STRIP_TRAILING_NOISE
            else:
                kept.append(token)

        elif state is ScanState.SCAN_NESTED_BRACKET:
            if resume is ScanState.SCAN_ARGUMENTS:
                kept.append(token)
            if token.is_closing_bracket:
                depth += 1
            elif token.is_opening_bracket:
                if depth < 1:
                    raise MalformedCallError(
                        "Bracket nesting underflow",
                        {"line": token.line, "column": token.column},
                    )
                depth -= 1
                if depth == 0:
                    state = resume

        else:  # SCAN_FUNCTION_NAME
            if not _ends_callee(token):
                # The '(' only groups an expression of the current argument
                kept.clear()
                state = ScanState.STRIP_TRAILING_NOISE
                continue
            head = _function_head(tokens, index)
            if head is None:
                return None
            return head + kept[::-1]

        index -= 1

    return None


def _call_target(expr) -> CallTarget | None:
    if isinstance(expr, Atom):
        return LocalCall(expr.value)
    if (
        isinstance(expr, Remote)
        and isinstance(expr.module, Atom)
        and isinstance(expr.function, Atom)
    ):
        return RemoteCall(expr.module.value, expr.function.value)
    return None


def locate_call(fragment: str) -> CallSiteParse | None:
    """Find the innermost open call of ``fragment`` and its active argument."""
    try:
        tokens = tokenize(fragment)
    except LexError as e:
        logger.debug(f"Fragment is not lexically valid: {e}")
        return None

    try:
        call_tokens = filter_last_call(tokens)
    except MalformedCallError as e:
        logger.debug(f"Malformed call site: {e}")
        return None

    if not call_tokens:
        return None

    last = call_tokens[-1]
    call_tokens = call_tokens + [
        Token(TokenKind.ATOM, PLACEHOLDER_ARGUMENT, last.line, last.column),
        Token(TokenKind.PUNCT, ")", last.line, last.column),
        Token(TokenKind.DOT, ".", last.line, last.column),
    ]

    try:
        exprs = parse_exprs(call_tokens)
    except ParseError as e:
        logger.debug(f"Call site does not parse: {e}")
        return None

    call = exprs[0]
    if not isinstance(call, Call):
        return None

    target = _call_target(call.target)
    if target is None:
        return None
    return CallSiteParse(target, len(call.args) - 1)


def signature_fallback(name: str, arity: int) -> str:
    """``name(Arg1, ..., ArgN)`` with ``name`` quoted where Erlang needs it."""
    args = ", ".join(f"Arg{n}" for n in range(1, arity + 1))
    return f"{format_atom(name)}({args})"


class SignatureMatcher:
    """Looks up the signatures of call targets."""

    def __init__(self, docs: DocumentationStore) -> None:
        self.docs = docs

    def resolve_signatures(
        self, call_target: CallTarget, target: RuntimeTarget
    ) -> list[SignatureMatch]:
        """Return one signature per documented arity of ``call_target``.

        Arity is not checked against the active argument; choosing the
        signature to highlight is up to the caller.
        """
        if isinstance(call_target, RemoteCall):
            module, name = call_target.module, call_target.name
        else:
            module, name = BUILTIN_MODULE, call_target.name

        try:
            members: list[DocumentedMember] = self.docs.lookup_members(
                module, [(name, None)], target, CALLABLE_KINDS
            )
        except CallError as e:
            logger.warning(f"Could not fetch signatures of {module}:{name}: {e}")
            return []

        return [
            SignatureMatch(
                name=member.name,
                signature="\n".join(member.record.signatures)
                or signature_fallback(member.name, member.arity),
                documentation=member.record.documentation,
                spec="\n".join(member.record.specs) or None,
            )
            for member in sorted(members, key=lambda member: member.arity)
        ]

    def get_matching_signatures(
        self, hint: str, target: RuntimeTarget
    ) -> SignatureResult | None:
        """Signature help for the end of ``hint``, or None if not in a call."""
        call_site = locate_call(hint)
        if call_site is None:
            return None
        return SignatureResult(
            active_argument=call_site.active_argument,
            signatures=self.resolve_signatures(call_site.target, target),
        )
