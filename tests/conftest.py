"""Shared fixtures: in-memory runtime doubles and a sample snapshot."""

from collections import Counter

import pytest

from erlsense.core.exceptions import CallError
from erlsense.core.types import DocumentationRecord, DocumentedMember, MemberKind, TypeEntry
from erlsense.docs.store import select_members
from erlsense.runtime.introspection import decode_exports


class FakeProvider:
    """Introspection provider over plain dictionaries, counting calls."""

    def __init__(self, exports=None, types=None, loaded=None, fail=()):
        self.exports = exports or {}
        self.types = types or {}
        self.loaded = set(self.exports) if loaded is None else set(loaded)
        self.fail = set(fail)
        self.calls = Counter()

    def _record(self, name):
        self.calls[name] += 1
        if name in self.fail:
            raise CallError(f"{name} failed")

    def list_loaded_modules(self, target):
        self._record("list_loaded_modules")
        return sorted(self.loaded)

    def is_loaded(self, target, module):
        self._record("is_loaded")
        return module in self.loaded

    def list_exports(self, target, module):
        self._record("list_exports")
        if module not in self.exports:
            raise CallError(f"Undefined module: {module}")
        return decode_exports([list(pair) for pair in self.exports[module]])

    def list_types(self, target, module):
        self._record("list_types")
        if module not in self.types:
            raise CallError(f"No type information for {module}")
        return [TypeEntry(name, arity) for name, arity in self.types[module]]


class FakeDocs:
    """Documentation store over a module -> members dictionary."""

    def __init__(self, members=None, fail=False):
        self.members = members or {}
        self.fail = fail
        self.requests = []

    def lookup_members(self, module, members, target, kinds):
        self.requests.append((module, list(members)))
        if self.fail:
            raise CallError("docs unavailable")
        return select_members(self.members.get(module, []), members, kinds)


def documented(name, arity, doc=None, signatures=(), specs=(), kind=MemberKind.FUNCTION, meta=None):
    return DocumentedMember(
        kind=kind,
        name=name,
        arity=arity,
        record=DocumentationRecord(
            documentation=doc,
            signatures=list(signatures),
            specs=list(specs),
            meta=dict(meta or {}),
        ),
    )


@pytest.fixture
def lists_provider():
    """A node with ``lists`` loaded and ``unloaded_mod`` available but not loaded."""
    return FakeProvider(
        exports={
            "lists": [
                ("map", 2), ("max", 1), ("member", 2), ("reverse", 1), ("reverse", 2),
                ("module_info", 0), ("module_info", 1),
            ],
            "unloaded_mod": [("f", 1)],
        },
        types={"lists": [("filter_fun", 1)]},
        loaded=["lists"],
    )


@pytest.fixture
def lists_docs():
    return FakeDocs({
        "lists": [
            documented(
                "map", 2,
                doc="Takes a function from As to Bs.\n\nMore details.",
                signatures=["map(Fun, List1)"],
                specs=["-spec map(Fun, List1) -> List2."],
            ),
            documented("max", 1, doc="Returns the largest element.", signatures=["max(List)"]),
            documented("reverse", 1, signatures=["reverse(List1)"]),
            documented("reverse", 2, signatures=["reverse(List1, Tail)"]),
            documented(
                "filter_fun", 1,
                doc="A filter.",
                specs=["-type filter_fun(T) :: fun((T) -> boolean())."],
                kind=MemberKind.TYPE,
            ),
        ],
        "erlang": [
            documented("abs", 1, signatures=["abs(Number)"], specs=["-spec abs(Int) -> integer()."]),
        ],
    })


SNAPSHOT_YAML = """\
targets:
  local:
    modules:
      lists:
        exports: [[map, 2], [max, 1], [module_info, 0], [module_info, 1]]
        types: [[filter_fun, 1]]
        docs:
          - kind: function
            name: map
            arity: 2
            doc: Takes a function from As to Bs.
            signatures: ["map(Fun, List1)"]
            specs: ["-spec map(Fun, List1) -> List2."]
      maps:
        exports: [[get, 2], [get, 3]]
        docs:
          - {kind: function, name: get, arity: 2, signatures: ["get(Key, Map)"]}
          - {kind: function, name: get, arity: 3, signatures: ["get(Key, Map, Default)"]}
      cold:
        loaded: false
        exports: [[f, 0]]
  "app@host":
    modules:
      app_server:
        exports: [[start_link, 0], [call, 2], ["MACRO-debug", 2]]
"""


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "runtime.yaml"
    path.write_text(SNAPSHOT_YAML)
    return path

