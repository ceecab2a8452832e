"""Documentation stores.

A documentation store answers "what do we know about these members of
this module": documentation text, signatures, specs and metadata. The
completion and signature resolvers join its records onto the members they
found in the export and type tables.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import TYPE_CHECKING, Any, Optional, Protocol

from erlsense.core.exceptions import CallError
from erlsense.core.types import DocumentationRecord, DocumentedMember, MemberKind, RuntimeTarget

if TYPE_CHECKING:
    from erlsense.runtime.client import RuntimeClient
    from erlsense.runtime.snapshot import RuntimeSnapshot

logger = logging.getLogger(__name__)

# (name, arity); arity None matches every arity of the name
MemberKey = tuple[str, Optional[int]]


class DocumentationStore(Protocol):
    """Bulk lookup of member documentation."""

    def lookup_members(
        self,
        module: str,
        members: list[MemberKey],
        target: RuntimeTarget,
        kinds: Collection[MemberKind],
    ) -> list[DocumentedMember]:
        """Return the documented members among ``members``.

        Unknown members are omitted; an empty ``members`` list returns [].

        Raises:
            CallError: If the documentation could not be fetched
        """
        ...


def select_members(
    documented: list[DocumentedMember],
    members: list[MemberKey],
    kinds: Collection[MemberKind],
) -> list[DocumentedMember]:
    """Keep the documented members that were asked for, in store order."""
    exact = {(name, arity) for name, arity in members if arity is not None}
    any_arity = {name for name, arity in members if arity is None}

    return [
        member
        for member in documented
        if member.kind in kinds
        and (member.key in exact or member.name in any_arity)
    ]


def _doc_text(doc: Any) -> str | None:
    if isinstance(doc, dict):
        return doc.get("en") or next(iter(doc.values()), None)
    if isinstance(doc, str) and doc not in ("none", "hidden"):
        return doc
    return None


def parse_docs_chunk(chunk: Any) -> list[DocumentedMember]:
    """Decode an EEP-48 ``docs_v1`` chunk as returned by ``code:get_doc/1``.

    The chunk arrives JSON-encoded: ``["docs_v1", Anno, Language, Format,
    ModuleDoc, Metadata, Docs]`` where each entry of ``Docs`` is
    ``[[Kind, Name, Arity], Anno, Signatures, Doc, Metadata]``. An
    ``["error", Reason]`` result means the module has no docs chunk.

    Raises:
        CallError: If the chunk does not have the docs_v1 shape
    """
    if isinstance(chunk, list) and chunk and chunk[0] == "error":
        logger.debug(f"No docs chunk: {chunk[1:] if len(chunk) > 1 else chunk}")
        return []

    if not (isinstance(chunk, list) and len(chunk) == 7 and chunk[0] == "docs_v1"):
        raise CallError("Malformed docs chunk")

    members: list[DocumentedMember] = []
    for entry in chunk[6] or []:
        try:
            (kind, name, arity), _anno, signatures, doc, meta = entry
            arity = int(arity)
        except (TypeError, ValueError):
            raise CallError("Malformed docs chunk entry") from None
        if not isinstance(meta or {}, dict) or not isinstance(signatures or [], list):
            raise CallError("Malformed docs chunk entry")

        try:
            member_kind = MemberKind(kind)
        except ValueError:
            continue  # callbacks and other kinds are never completed

        meta = dict(meta or {})
        if doc == "hidden":
            meta["hidden"] = True
        specs = meta.pop("specs", None) or []

        members.append(
            DocumentedMember(
                kind=member_kind,
                name=name,
                arity=arity,
                record=DocumentationRecord(
                    documentation=_doc_text(doc),
                    signatures=list(signatures or []),
                    specs=list(specs),
                    meta=meta,
                ),
            )
        )
    return members


class RpcDocumentationStore:
    """Documentation read from the runtime's EEP-48 docs chunks."""

    def __init__(self, client: RuntimeClient) -> None:
        self.client = client

    def lookup_members(
        self,
        module: str,
        members: list[MemberKey],
        target: RuntimeTarget,
        kinds: Collection[MemberKind],
    ) -> list[DocumentedMember]:
        if not members:
            return []
        chunk = self.client.call(target, "code", "get_doc", [module])
        return select_members(parse_docs_chunk(chunk), members, kinds)


class SnapshotDocumentationStore:
    """Documentation recorded in a runtime snapshot."""

    def __init__(self, snapshot: RuntimeSnapshot) -> None:
        self.snapshot = snapshot

    def lookup_members(
        self,
        module: str,
        members: list[MemberKey],
        target: RuntimeTarget,
        kinds: Collection[MemberKind],
    ) -> list[DocumentedMember]:
        if not members:
            return []
        entry = self.snapshot.modules_for(target).get(module)
        if entry is None:
            return []
        return select_members(entry.docs, members, kinds)
