"""Core types and configuration for erlsense."""

from .types import (
    CALLABLE_KINDS,
    BitstringModifierMatch,
    CallSiteParse,
    CallTarget,
    CursorContext,
    DocumentationRecord,
    DocumentedMember,
    ExportEntry,
    FunctionMatch,
    IdentifierMatch,
    LocalCall,
    MapFieldMatch,
    MatchKind,
    MemberKind,
    ModuleAttributeMatch,
    ModuleMatch,
    NoContext,
    QualifiedEmpty,
    QualifiedPartial,
    RemoteCall,
    RuntimeTarget,
    SignatureMatch,
    SignatureResult,
    TypeEntry,
    TypeMatch,
    VariableMatch,
)
from .config import ErlsenseConfig, load_config
from .exceptions import (
    ErlsenseError,
    LexError,
    ParseError,
    MalformedCallError,
    CallError,
    ConfigurationError,
)

__all__ = [
    # Types
    "RuntimeTarget",
    "MemberKind",
    "CALLABLE_KINDS",
    "ExportEntry",
    "TypeEntry",
    "DocumentationRecord",
    "DocumentedMember",
    "CursorContext",
    "NoContext",
    "QualifiedEmpty",
    "QualifiedPartial",
    "MatchKind",
    "IdentifierMatch",
    "ModuleMatch",
    "FunctionMatch",
    "TypeMatch",
    "VariableMatch",
    "MapFieldMatch",
    "ModuleAttributeMatch",
    "BitstringModifierMatch",
    "CallTarget",
    "RemoteCall",
    "LocalCall",
    "CallSiteParse",
    "SignatureMatch",
    "SignatureResult",
    # Config
    "ErlsenseConfig",
    "load_config",
    # Exceptions
    "ErlsenseError",
    "LexError",
    "ParseError",
    "MalformedCallError",
    "CallError",
    "ConfigurationError",
]
