"""Completion of module-qualified identifiers.

Given ``mod:pre``, finds the functions, macros and types ``mod`` exports
whose name starts with ``pre`` and joins each with its documentation.

Law compliance:
- L-fallback-graceful: A failing runtime or documentation call degrades
  that step to no results; resolution never raises
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection

from erlsense.completion.context import classify_fragment
from erlsense.core.exceptions import CallError
from erlsense.core.types import (
    CALLABLE_KINDS,
    DocumentationRecord,
    DocumentedMember,
    ExportEntry,
    FunctionMatch,
    IdentifierMatch,
    MemberKind,
    QualifiedEmpty,
    QualifiedPartial,
    RuntimeTarget,
    TypeEntry,
    TypeMatch,
)
from erlsense.docs.store import DocumentationStore, MemberKey
from erlsense.runtime.cache import LoadedModulesCache
from erlsense.runtime.introspection import IntrospectionProvider
from erlsense.syntax.tokenizer import format_atom

logger = logging.getLogger(__name__)

# Reflection accessors every module exports; never completion candidates
BOOKKEEPING_EXPORTS: frozenset[tuple[str, int]] = frozenset({
    ("module_info", 0),
    ("module_info", 1),
    ("__info__", 1),
})

PrefixMatcher = Callable[[str, str], bool]


def prefix_matcher(name: str, hint: str) -> bool:
    """Match names that start with the typed hint."""
    return name.startswith(hint)


class IdentifierMatcher:
    """Resolves qualified references against a runtime target."""

    def __init__(
        self,
        provider: IntrospectionProvider,
        docs: DocumentationStore,
        cache: LoadedModulesCache,
        matcher: PrefixMatcher = prefix_matcher,
    ) -> None:
        self.provider = provider
        self.docs = docs
        self.cache = cache
        self.matcher = matcher

    def completion_identifiers(self, hint: str, target: RuntimeTarget) -> list[IdentifierMatch]:
        """Return completion candidates for the end of ``hint``."""
        context = classify_fragment(hint)

        if isinstance(context, QualifiedEmpty):
            return self.resolve_qualified(context.module, "", target)
        if isinstance(context, QualifiedPartial):
            return self.resolve_qualified(context.module, context.name_prefix, target)
        return []

    def resolve_qualified(
        self, module: str, name_prefix: str, target: RuntimeTarget
    ) -> list[IdentifierMatch]:
        """Return the exports of ``module`` matching ``name_prefix``.

        Functions and macros come first, then types.
        """
        if not self._module_available(module, target):
            logger.debug(f"Module {module} is not loaded on {target}")
            return []

        matches: list[IdentifierMatch] = []
        matches.extend(self._match_functions(module, name_prefix, target))
        matches.extend(self._match_types(module, name_prefix, target))
        return matches

    def _module_available(self, module: str, target: RuntimeTarget) -> bool:
        if not target.is_local:
            return module in self.cache.loaded_modules(target)

        # Asking the local node for exports would load the module
        try:
            return self.provider.is_loaded(target, module)
        except CallError as e:
            logger.warning(f"Could not check whether {module} is loaded: {e}")
            return False

    def _exports(self, module: str, target: RuntimeTarget) -> list[ExportEntry]:
        try:
            exports = self.provider.list_exports(target, module)
        except CallError as e:
            logger.warning(f"Could not list exports of {module}: {e}")
            return []
        return [
            entry
            for entry in exports
            if not (entry.kind is MemberKind.FUNCTION and (entry.name, entry.arity) in BOOKKEEPING_EXPORTS)
        ]

    def _types(self, module: str, target: RuntimeTarget) -> list[TypeEntry]:
        try:
            return self.provider.list_types(target, module)
        except CallError as e:
            logger.debug(f"No types for {module}: {e}")
            return []

    def _lookup_docs(
        self,
        module: str,
        members: list[MemberKey],
        target: RuntimeTarget,
        kinds: Collection[MemberKind],
    ) -> dict[tuple[str, int], DocumentationRecord]:
        if not members:
            return {}
        try:
            documented: list[DocumentedMember] = self.docs.lookup_members(
                module, members, target, kinds
            )
        except CallError as e:
            logger.warning(f"Could not fetch documentation for {module}: {e}")
            return {}
        return {member.key: member.record for member in documented}

    def _match_functions(
        self, module: str, name_prefix: str, target: RuntimeTarget
    ) -> list[FunctionMatch]:
        exports = [
            entry for entry in self._exports(module, target)
            if self.matcher(entry.name, name_prefix)
        ]
        records = self._lookup_docs(
            module, [(entry.name, entry.arity) for entry in exports], target, CALLABLE_KINDS
        )

        matches = []
        for entry in exports:
            record = records.get((entry.name, entry.arity)) or DocumentationRecord.default()
            matches.append(
                FunctionMatch(
                    module=module,
                    name=entry.name,
                    arity=entry.arity,
                    type=entry.kind,
                    display_name=format_atom(entry.name),
                    documentation=record.documentation,
                    signatures=record.signatures,
                    specs=record.specs,
                    meta=record.meta,
                    from_default=record.from_default,
                )
            )
        return matches

    def _match_types(
        self, module: str, name_prefix: str, target: RuntimeTarget
    ) -> list[TypeMatch]:
        types = [
            entry for entry in self._types(module, target)
            if self.matcher(entry.name, name_prefix)
        ]
        records = self._lookup_docs(
            module, [(entry.name, entry.arity) for entry in types], target, [MemberKind.TYPE]
        )

        matches = []
        for entry in types:
            record = records.get((entry.name, entry.arity)) or DocumentationRecord.default()
            matches.append(
                TypeMatch(
                    module=module,
                    name=entry.name,
                    arity=entry.arity,
                    documentation=record.documentation,
                    type_spec=record.specs[0] if record.specs else None,
                    from_default=record.from_default,
                )
            )
        return matches
