"""Loaded-module cache.

Enumerating a remote node's loaded modules is a network round trip, so the
result is kept per target until the owner invalidates it (typically when
it learns the node reloaded code). There is no expiry.
"""

from __future__ import annotations

import logging

from erlsense.core.exceptions import CallError
from erlsense.core.types import RuntimeTarget
from erlsense.runtime.introspection import IntrospectionProvider

logger = logging.getLogger(__name__)


class LoadedModulesCache:
    """Per-target set of loaded modules, populated on first use.

    Reads are lock free. Concurrent misses for one target may both
    enumerate; each stores a complete frozenset and the last write wins.
    """

    def __init__(self, provider: IntrospectionProvider) -> None:
        self._provider = provider
        self._entries: dict[RuntimeTarget, frozenset[str]] = {}

    def loaded_modules(self, target: RuntimeTarget) -> frozenset[str]:
        """Return the loaded modules of ``target``, enumerating on a miss.

        A failed enumeration yields an empty set and is not cached.
        """
        modules = self._entries.get(target)
        if modules is not None:
            return modules

        try:
            modules = frozenset(self._provider.list_loaded_modules(target))
        except CallError as e:
            logger.warning(f"Could not list loaded modules of {target}: {e}")
            return frozenset()

        self._entries[target] = modules
        logger.debug(f"Cached {len(modules)} loaded modules for {target}")
        return modules

    def invalidate(self, target: RuntimeTarget) -> None:
        """Forget the modules of ``target``; no-op if nothing is cached."""
        if self._entries.pop(target, None) is not None:
            logger.debug(f"Invalidated loaded modules for {target}")

    def clear(self) -> None:
        """Forget every target."""
        self._entries.clear()

    def __contains__(self, target: RuntimeTarget) -> bool:
        return target in self._entries
