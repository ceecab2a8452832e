"""Classify what the user is trying to complete.

Only the trailing tokens matter: ``mod:`` asks for everything ``mod``
exports, ``mod:pre`` for the exports starting with ``pre``. Every other
shape (nested calls, variables, macros, unqualified names) is not
recognized.
"""

from __future__ import annotations

import logging

from erlsense.core.exceptions import LexError
from erlsense.core.types import CursorContext, NoContext, QualifiedEmpty, QualifiedPartial
from erlsense.syntax.tokenizer import Token, tokenize

logger = logging.getLogger(__name__)


def classify(tokens: list[Token]) -> CursorContext:
    """Classify a token sequence by its last tokens."""
    context = tokens[::-1][:3]

    # module:
    if len(context) >= 2 and context[0].is_punct(":") and context[1].is_atom:
        return QualifiedEmpty(context[1].value)

    # module:prefix
    if (
        len(context) == 3
        and context[0].is_atom
        and context[1].is_punct(":")
        and context[2].is_atom
    ):
        return QualifiedPartial(context[2].value, context[0].value)

    return NoContext()


def classify_fragment(fragment: str) -> CursorContext:
    """Tokenize and classify a fragment; lexically invalid input has no context."""
    try:
        tokens = tokenize(fragment)
    except LexError as e:
        logger.debug(f"Fragment is not lexically valid: {e}")
        return NoContext()
    return classify(tokens)
