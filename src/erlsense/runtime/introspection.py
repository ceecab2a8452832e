"""Introspection providers.

A provider answers the reflective questions completion needs about a
runtime target: which modules are loaded, whether a given module is, and
what a module exports (callables and types). Each method raises CallError
when the target cannot answer.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from erlsense.core.exceptions import CallError
from erlsense.core.types import ExportEntry, MemberKind, RuntimeTarget, TypeEntry
from erlsense.docs.store import parse_docs_chunk
from erlsense.runtime.client import RuntimeClient
from erlsense.runtime.snapshot import RuntimeSnapshot

logger = logging.getLogger(__name__)

# Macros are exported as MACRO-name with the caller environment as an extra argument
MACRO_PREFIX = "MACRO-"


class IntrospectionProvider(Protocol):
    """Reflection over a runtime target's modules."""

    def list_loaded_modules(self, target: RuntimeTarget) -> list[str]:
        ...

    def is_loaded(self, target: RuntimeTarget, module: str) -> bool:
        ...

    def list_exports(self, target: RuntimeTarget, module: str) -> list[ExportEntry]:
        ...

    def list_types(self, target: RuntimeTarget, module: str) -> list[TypeEntry]:
        ...


def decode_exports(pairs: Any) -> list[ExportEntry]:
    """Turn a ``module_info(exports)`` table into export entries.

    Raises:
        CallError: If the table is not a list of name/arity pairs
    """
    if not isinstance(pairs, list):
        raise CallError("Malformed export table")

    entries = []
    for pair in pairs:
        try:
            name, arity = pair
            name, arity = str(name), int(arity)
        except (TypeError, ValueError):
            raise CallError("Malformed export table entry") from None

        if name.startswith(MACRO_PREFIX):
            entries.append(ExportEntry(name[len(MACRO_PREFIX):], arity - 1, MemberKind.MACRO))
        else:
            entries.append(ExportEntry(name, arity, MemberKind.FUNCTION))
    return entries


class RpcIntrospectionProvider:
    """Introspection through runtime calls.

    Calls made on the target:
    - ``erlang:loaded()`` for the loaded modules
    - ``code:is_loaded(Module)`` which never loads the module
    - ``Module:module_info(exports)`` for the callables
    - ``code:get_doc(Module)`` for the types
    """

    def __init__(self, client: RuntimeClient) -> None:
        self.client = client

    def list_loaded_modules(self, target: RuntimeTarget) -> list[str]:
        modules = self.client.call(target, "erlang", "loaded", [])
        if not isinstance(modules, list):
            raise CallError("Malformed loaded module list", target=target)
        return [str(module) for module in modules]

    def is_loaded(self, target: RuntimeTarget, module: str) -> bool:
        # false, or {file, Loaded}
        result = self.client.call(target, "code", "is_loaded", [module])
        return result not in (False, None, "false")

    def list_exports(self, target: RuntimeTarget, module: str) -> list[ExportEntry]:
        return decode_exports(self.client.call(target, module, "module_info", ["exports"]))

    def list_types(self, target: RuntimeTarget, module: str) -> list[TypeEntry]:
        chunk = self.client.call(target, "code", "get_doc", [module])
        return [
            TypeEntry(member.name, member.arity)
            for member in parse_docs_chunk(chunk)
            if member.kind is MemberKind.TYPE
        ]


class SnapshotIntrospectionProvider:
    """Introspection answered from a runtime snapshot."""

    def __init__(self, snapshot: RuntimeSnapshot) -> None:
        self.snapshot = snapshot

    def list_loaded_modules(self, target: RuntimeTarget) -> list[str]:
        return [
            name
            for name, entry in self.snapshot.modules_for(target).items()
            if entry.loaded
        ]

    def is_loaded(self, target: RuntimeTarget, module: str) -> bool:
        entry = self.snapshot.modules_for(target).get(module)
        return entry is not None and entry.loaded

    def list_exports(self, target: RuntimeTarget, module: str) -> list[ExportEntry]:
        return decode_exports([list(pair) for pair in self.snapshot.module(target, module).exports])

    def list_types(self, target: RuntimeTarget, module: str) -> list[TypeEntry]:
        entry = self.snapshot.module(target, module)
        if entry.types is None:
            raise CallError(f"No type information for {module}", target=target)
        return [TypeEntry(name, arity) for name, arity in entry.types]
