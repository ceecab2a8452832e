"""Runtime snapshots.

A snapshot records what runtime targets expose (loaded modules, export and
type tables, documentation) in a YAML file, so completion can run without a
live runtime:

    targets:
      local:
        modules:
          lists:
            exports: [[map, 2], [module_info, 0]]
            types: [[orddict, 0]]
            docs:
              - {kind: function, name: map, arity: 2, doc: "...",
                 signatures: ["map(Fun, List1) -> List2"]}
      "app@host":
        modules: {...}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from erlsense.core.exceptions import CallError, ConfigurationError
from erlsense.core.types import DocumentationRecord, DocumentedMember, MemberKind, RuntimeTarget

LOCAL_TARGET_KEY = "local"


def _pairs(value: Any, what: str, module: str) -> list[tuple[str, int]]:
    pairs = []
    for item in value or []:
        try:
            name, arity = item
            pairs.append((str(name), int(arity)))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid {what} entry in snapshot",
                {"module": module, "entry": item},
            ) from e
    return pairs


def _documented_member(data: dict[str, Any], module: str) -> DocumentedMember:
    try:
        kind = MemberKind(data.get("kind", "function"))
        name = str(data["name"])
        arity = int(data["arity"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(
            "Invalid docs entry in snapshot", {"module": module, "entry": data}
        ) from e

    return DocumentedMember(
        kind=kind,
        name=name,
        arity=arity,
        record=DocumentationRecord(
            documentation=data.get("doc"),
            signatures=list(data.get("signatures", [])),
            specs=list(data.get("specs", [])),
            meta=dict(data.get("meta", {})),
        ),
    )


@dataclass
class ModuleSnapshot:
    """What one module exposes on one target."""

    name: str
    loaded: bool = True
    exports: list[tuple[str, int]] = field(default_factory=list)
    types: list[tuple[str, int]] | None = None
    docs: list[DocumentedMember] = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> ModuleSnapshot:
        data = data or {}
        types = data.get("types")
        return cls(
            name=name,
            loaded=bool(data.get("loaded", True)),
            exports=_pairs(data.get("exports"), "export", name),
            types=_pairs(types, "type", name) if types is not None else None,
            docs=[_documented_member(doc, name) for doc in data.get("docs", [])],
        )


@dataclass
class RuntimeSnapshot:
    """Recorded introspection data for a set of runtime targets."""

    targets: dict[str, dict[str, ModuleSnapshot]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuntimeSnapshot:
        """Create a snapshot from its dictionary form."""
        targets: dict[str, dict[str, ModuleSnapshot]] = {}
        for target_key, target_data in (data.get("targets") or {}).items():
            modules = (target_data or {}).get("modules") or {}
            targets[str(target_key)] = {
                str(name): ModuleSnapshot.from_dict(str(name), module_data)
                for name, module_data in modules.items()
            }
        return cls(targets=targets)

    @classmethod
    def from_yaml(cls, path: Path | str) -> RuntimeSnapshot:
        """Load a snapshot from a YAML file.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Snapshot not found: {path}", {"path": str(path)})

        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse snapshot: {path}", {"path": str(path), "error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Snapshot must contain a mapping: {path}")
        return cls.from_dict(data)

    def modules_for(self, target: RuntimeTarget) -> dict[str, ModuleSnapshot]:
        """Modules known on ``target``.

        Raises:
            CallError: If the target is not part of the snapshot
        """
        key = LOCAL_TARGET_KEY if target.is_local else target.node
        if key not in self.targets:
            raise CallError("Runtime target unreachable", target=target)
        return self.targets[key]

    def module(self, target: RuntimeTarget, module: str) -> ModuleSnapshot:
        """One module on ``target``.

        Raises:
            CallError: If the target or module is unknown
        """
        entry = self.modules_for(target).get(module)
        if entry is None:
            raise CallError(f"Undefined module: {module}", target=target)
        return entry
