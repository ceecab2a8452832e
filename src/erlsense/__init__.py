"""erlsense - Intellisense for Erlang code against live runtimes.

erlsense completes module-qualified references (``lists:ma``) and provides
signature help for partially typed calls (``maps:get(Key, ``) by
introspecting the modules loaded on a runtime target and joining them with
their documentation.

Quick Start:
    from erlsense import Intellisense, RuntimeTarget
    from erlsense.docs.store import SnapshotDocumentationStore
    from erlsense.runtime.introspection import SnapshotIntrospectionProvider
    from erlsense.runtime.snapshot import RuntimeSnapshot

    snapshot = RuntimeSnapshot.from_yaml("runtime.yaml")
    engine = Intellisense(
        SnapshotIntrospectionProvider(snapshot),
        SnapshotDocumentationStore(snapshot),
    )

    engine.handle_request(("completion", "lists:ma"), RuntimeTarget.local())
    engine.handle_request(("signature", "lists:map(F, "), RuntimeTarget.local())
"""

__version__ = "0.1.0"

from erlsense.core.types import RuntimeTarget
from erlsense.intellisense import Intellisense

__all__ = [
    "Intellisense",
    "RuntimeTarget",
    "__version__",
]
