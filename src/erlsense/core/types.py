"""Core type definitions for erlsense library.

This module defines the values that flow between the tokenizer, the
completion resolvers and the runtime layer: runtime targets, export and
type table entries, documentation records and the match results handed to
the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class RuntimeTarget:
    """Execution context to introspect.

    ``node=None`` is the node the runtime client is attached to; any other
    value names a remote node reachable from it.
    """

    node: str | None = None

    @classmethod
    def local(cls) -> RuntimeTarget:
        return cls()

    @classmethod
    def remote(cls, node: str) -> RuntimeTarget:
        if not node:
            raise ValueError("Remote target requires a node name")
        return cls(node=node)

    @property
    def is_local(self) -> bool:
        return self.node is None

    def __str__(self) -> str:
        return self.node or "local"


class MemberKind(str, Enum):
    """Kind of a documented module member."""

    FUNCTION = "function"
    MACRO = "macro"
    TYPE = "type"


CALLABLE_KINDS: frozenset[MemberKind] = frozenset({MemberKind.FUNCTION, MemberKind.MACRO})


@dataclass(frozen=True)
class ExportEntry:
    """One exported callable of a module."""

    name: str
    arity: int
    kind: MemberKind = MemberKind.FUNCTION


@dataclass(frozen=True)
class TypeEntry:
    """One exported or opaque type of a module."""

    name: str
    arity: int


@dataclass
class DocumentationRecord:
    """Documentation joined onto a completion or signature match.

    ``from_default`` marks a record synthesized because the member exists
    but the documentation store had no entry for it.
    """

    documentation: str | None = None
    signatures: list[str] = field(default_factory=list)
    specs: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    from_default: bool = False

    @classmethod
    def default(cls) -> DocumentationRecord:
        return cls(from_default=True)

    @property
    def deprecated(self) -> str | None:
        value = self.meta.get("deprecated")
        return str(value) if value else None


@dataclass
class DocumentedMember:
    """Documentation record keyed by the member it describes."""

    kind: MemberKind
    name: str
    arity: int
    record: DocumentationRecord

    @property
    def key(self) -> tuple[str, int]:
        return (self.name, self.arity)


# Cursor contexts


@dataclass(frozen=True)
class NoContext:
    """No completable pattern at the end of the fragment."""


@dataclass(frozen=True)
class QualifiedEmpty:
    """Fragment ends with ``module:``."""

    module: str


@dataclass(frozen=True)
class QualifiedPartial:
    """Fragment ends with ``module:prefix``."""

    module: str
    name_prefix: str


CursorContext = Union[NoContext, QualifiedEmpty, QualifiedPartial]


# Identifier matches


class MatchKind(str, Enum):
    """Kind tag of an identifier match."""

    MODULE = "module"
    FUNCTION = "function"
    TYPE = "type"
    VARIABLE = "variable"
    MAP_FIELD = "map_field"
    MODULE_ATTRIBUTE = "module_attribute"
    BITSTRING_MODIFIER = "bitstring_modifier"


@dataclass
class IdentifierMatch:
    """Base class of all identifier matches."""

    kind: ClassVar[MatchKind]


@dataclass
class ModuleMatch(IdentifierMatch):
    kind: ClassVar[MatchKind] = MatchKind.MODULE

    module: str
    display_name: str
    documentation: str | None = None


@dataclass
class FunctionMatch(IdentifierMatch):
    """Exported function or macro of a module."""

    kind: ClassVar[MatchKind] = MatchKind.FUNCTION

    module: str
    name: str
    arity: int
    type: MemberKind
    display_name: str
    documentation: str | None = None
    signatures: list[str] = field(default_factory=list)
    specs: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    from_default: bool = False

    @property
    def key(self) -> tuple[str, str, int, MatchKind]:
        return (self.module, self.name, self.arity, self.kind)


@dataclass
class TypeMatch(IdentifierMatch):
    """Exported or opaque type of a module."""

    kind: ClassVar[MatchKind] = MatchKind.TYPE

    module: str
    name: str
    arity: int
    documentation: str | None = None
    type_spec: str | None = None
    from_default: bool = False

    @property
    def key(self) -> tuple[str, str, int, MatchKind]:
        return (self.module, self.name, self.arity, self.kind)


@dataclass
class VariableMatch(IdentifierMatch):
    kind: ClassVar[MatchKind] = MatchKind.VARIABLE

    name: str


@dataclass
class MapFieldMatch(IdentifierMatch):
    kind: ClassVar[MatchKind] = MatchKind.MAP_FIELD

    name: str


@dataclass
class ModuleAttributeMatch(IdentifierMatch):
    kind: ClassVar[MatchKind] = MatchKind.MODULE_ATTRIBUTE

    name: str
    documentation: str | None = None


@dataclass
class BitstringModifierMatch(IdentifierMatch):
    kind: ClassVar[MatchKind] = MatchKind.BITSTRING_MODIFIER

    name: str
    arity: int = 0


# Signature help


@dataclass(frozen=True)
class RemoteCall:
    """Call of ``module:name(...)``."""

    module: str
    name: str


@dataclass(frozen=True)
class LocalCall:
    """Call of an unqualified ``name(...)``."""

    name: str


CallTarget = Union[RemoteCall, LocalCall]


@dataclass(frozen=True)
class CallSiteParse:
    """Innermost unfinished call and the argument slot under the cursor."""

    target: CallTarget
    active_argument: int


@dataclass
class SignatureMatch:
    """One documented arity of a call target."""

    name: str
    signature: str
    documentation: str | None = None
    spec: str | None = None


@dataclass
class SignatureResult:
    """Signatures of a call target paired with the active argument."""

    active_argument: int
    signatures: list[SignatureMatch] = field(default_factory=list)
