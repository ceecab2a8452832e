"""Access to Erlang runtime targets.

The bridge process speaks JSON-RPC over stdio and executes calls on the
local node or on a connected remote node. Snapshots stand in for a live
runtime when working offline.
"""

from erlsense.runtime.cache import LoadedModulesCache
from erlsense.runtime.client import BridgeClient, RuntimeClient
from erlsense.runtime.introspection import (
    IntrospectionProvider,
    RpcIntrospectionProvider,
    SnapshotIntrospectionProvider,
)
from erlsense.runtime.snapshot import ModuleSnapshot, RuntimeSnapshot

__all__ = [
    "LoadedModulesCache",
    "RuntimeClient",
    "BridgeClient",
    "IntrospectionProvider",
    "RpcIntrospectionProvider",
    "SnapshotIntrospectionProvider",
    "ModuleSnapshot",
    "RuntimeSnapshot",
]
