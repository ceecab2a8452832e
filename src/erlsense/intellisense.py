"""Request handling for editor intellisense.

Routes completion and signature requests to the resolvers and turns their
matches into the items an editor displays: a label, a kind, markdown
documentation and the text to insert.
"""

from __future__ import annotations

import logging
from typing import Any

from erlsense.completion.identifier_matcher import IdentifierMatcher
from erlsense.completion.signature_matcher import SignatureMatcher, signature_fallback
from erlsense.core.exceptions import LexError
from erlsense.core.types import (
    FunctionMatch,
    IdentifierMatch,
    RuntimeTarget,
    SignatureMatch,
    TypeMatch,
)
from erlsense.docs.store import DocumentationStore
from erlsense.runtime.cache import LoadedModulesCache
from erlsense.runtime.introspection import IntrospectionProvider
from erlsense.syntax.tokenizer import format_atom, tokenize

logger = logging.getLogger(__name__)


def join_with_newlines(strings: list[str | None]) -> str | None:
    parts = [string for string in strings if string]
    return "\n\n".join(parts) if parts else None


def code(text: str | None) -> str | None:
    if text is None:
        return None
    return f"```\n{text}\n```"


def format_documentation(documentation: str | None, variant: str = "short") -> str | None:
    """Format documentation text; the short variant keeps the first paragraph."""
    if not documentation:
        return None
    text = documentation.strip()
    if variant == "short":
        text = text.split("\n\n", 1)[0].strip()
    return text or None


def format_signatures(signatures: list[str], module: str, name: str, arity: int) -> str:
    """Qualify each signature with its module, or synthesize one."""
    if not signatures:
        return f"{format_atom(module)}:{signature_fallback(name, arity)}"
    # Operator signatures like "A + B" are left unqualified
    return "\n".join(
        f"{format_atom(module)}:{signature}" if "(" in signature else signature
        for signature in signatures
    )


def insert_text(display_name: str, arity: int) -> str:
    if arity == 0:
        return f"{display_name}()"
    # A snippet with the cursor in parentheses
    return f"{display_name}(${{}})"


def format_completion_item(match: IdentifierMatch) -> dict[str, Any] | None:
    """Turn a match into a completion item, or None for kinds not completed here."""
    if isinstance(match, FunctionMatch):
        item = {
            "label": f"{match.display_name}/{match.arity}",
            "kind": match.type.value,
            "documentation": join_with_newlines([
                format_documentation(match.documentation, "short"),
                code(format_signatures(match.signatures, match.module, match.name, match.arity)),
            ]),
            "insert_text": insert_text(match.display_name, match.arity),
        }
        if deprecated := match.meta.get("deprecated"):
            item["deprecated"] = str(deprecated)
        return item

    if isinstance(match, TypeMatch):
        display_name = format_atom(match.name)
        return {
            "label": f"{display_name}/{match.arity}",
            "kind": "type",
            "documentation": join_with_newlines([
                format_documentation(match.documentation, "short"),
                code(match.type_spec),
            ]),
            "insert_text": insert_text(display_name, match.arity),
        }

    return None


def signature_arguments(signature: str) -> list[str]:
    """Split the argument list out of a signature such as ``map(Fun, List) -> L``."""
    line = signature.splitlines()[0] if signature else ""
    try:
        tokens = tokenize(line)
    except LexError:
        return []

    start = next((i for i, token in enumerate(tokens) if token.is_punct("(")), None)
    if start is None:
        return []

    arguments: list[str] = []
    depth = 0
    # Columns are 1-based, so a token's column is the index just after it
    arg_start = tokens[start].column
    for token in tokens[start + 1:]:
        if token.is_opening_bracket:
            depth += 1
        elif token.is_closing_bracket:
            if depth == 0:
                last = line[arg_start:token.column - 1].strip()
                if last:
                    arguments.append(last)
                return arguments
            depth -= 1
        elif token.is_punct(",") and depth == 0:
            arguments.append(line[arg_start:token.column - 1].strip())
            arg_start = token.column
    return arguments


def format_signature_item(match: SignatureMatch) -> dict[str, Any]:
    return {
        "signature": match.signature,
        "arguments": signature_arguments(match.signature),
        "documentation": join_with_newlines([
            format_documentation(match.documentation, "short"),
            code(match.spec),
        ]),
    }


class Intellisense:
    """Entry point for intellisense requests against runtime targets.

    Owns the loaded-module cache; call ``clear_loaded_modules`` when a
    target's code is reloaded.
    """

    def __init__(
        self,
        provider: IntrospectionProvider,
        docs: DocumentationStore,
        cache: LoadedModulesCache | None = None,
    ) -> None:
        self.cache = cache or LoadedModulesCache(provider)
        self.identifier_matcher = IdentifierMatcher(provider, docs, self.cache)
        self.signature_matcher = SignatureMatcher(docs)

    def handle_request(self, request: tuple, target: RuntimeTarget) -> dict[str, Any] | None:
        """Dispatch a request tuple such as ``("completion", "lists:ma")``.

        Raises:
            ValueError: If the request kind is unknown
        """
        kind, *args = request

        if kind == "completion":
            return self.handle_completion(args[0], target)
        if kind == "signature":
            return self.handle_signature(args[0], target)
        if kind in ("details", "format"):
            # Not supported.
            return None
        raise ValueError(f"Unsupported request: {kind}")

    def handle_completion(self, hint: str, target: RuntimeTarget) -> dict[str, Any]:
        matches = self.identifier_matcher.completion_identifiers(hint, target)
        items = [item for item in map(format_completion_item, matches) if item is not None]
        logger.debug(f"{len(items)} completion items for {hint!r} on {target}")
        return {"items": items}

    def handle_signature(self, hint: str, target: RuntimeTarget) -> dict[str, Any] | None:
        result = self.signature_matcher.get_matching_signatures(hint, target)
        if result is None:
            return None
        return {
            "active_argument": result.active_argument,
            "signature_items": [format_signature_item(match) for match in result.signatures],
        }

    def clear_loaded_modules(self, target: RuntimeTarget) -> None:
        """Drop the cached module list of ``target``; safe if nothing is cached."""
        self.cache.invalidate(target)
