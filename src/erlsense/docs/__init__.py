"""Documentation lookup for module members."""

from erlsense.docs.store import (
    DocumentationStore,
    RpcDocumentationStore,
    SnapshotDocumentationStore,
    parse_docs_chunk,
)

__all__ = [
    "DocumentationStore",
    "RpcDocumentationStore",
    "SnapshotDocumentationStore",
    "parse_docs_chunk",
]
