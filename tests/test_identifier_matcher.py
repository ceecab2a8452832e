"""Tests for qualified identifier completion."""

from unittest.mock import MagicMock

import pytest
from conftest import FakeDocs, FakeProvider, documented

from erlsense.completion.identifier_matcher import BOOKKEEPING_EXPORTS, IdentifierMatcher
from erlsense.core.types import FunctionMatch, MatchKind, MemberKind, RuntimeTarget, TypeMatch
from erlsense.docs.store import RpcDocumentationStore
from erlsense.runtime.cache import LoadedModulesCache
from erlsense.runtime.introspection import RpcIntrospectionProvider


LOCAL = RuntimeTarget.local()
REMOTE = RuntimeTarget.remote("app@host")


def make_matcher(provider, docs):
    return IdentifierMatcher(provider, docs, LoadedModulesCache(provider))


def functions(matches):
    return [m for m in matches if isinstance(m, FunctionMatch)]


def labels(matches):
    return [f"{m.name}/{m.arity}" for m in matches]


class TestCompletionIdentifiers:
    """Tests for completion of ``mod:`` and ``mod:pre``."""

    @pytest.fixture
    def matcher(self, lists_provider, lists_docs):
        return make_matcher(lists_provider, lists_docs)

    def test_prefix_match_returns_documented_function(self):
        """``mod:f`` finds f/2 with its documentation."""
        provider = FakeProvider(exports={"mod": [("f", 2), ("g", 1)]})
        docs = FakeDocs({"mod": [documented("f", 2, doc="Does f.", signatures=["f(A, B)"])]})

        matches = make_matcher(provider, docs).completion_identifiers("mod:f", LOCAL)

        assert len(matches) == 1
        match = matches[0]
        assert isinstance(match, FunctionMatch)
        assert (match.module, match.name, match.arity) == ("mod", "f", 2)
        assert match.type is MemberKind.FUNCTION
        assert match.documentation == "Does f."
        assert match.signatures == ["f(A, B)"]
        assert match.from_default is False

    def test_qualified_empty_lists_all_exports(self, matcher):
        """``mod:`` returns every export, then the types."""
        matches = matcher.completion_identifiers("lists:", LOCAL)

        assert labels(matches) == [
            "map/2", "max/1", "member/2", "reverse/1", "reverse/2", "filter_fun/1",
        ]
        assert isinstance(matches[-1], TypeMatch)

    def test_bookkeeping_exports_excluded(self, matcher):
        """module_info/0 and module_info/1 are never offered."""
        matches = matcher.completion_identifiers("lists:module", LOCAL)
        assert matches == []
        assert ("module_info", 0) in BOOKKEEPING_EXPORTS

    def test_every_result_matches_prefix(self, matcher):
        matches = matcher.completion_identifiers("lists:ma", LOCAL)
        assert labels(matches) == ["map/2", "max/1"]
        assert all(m.name.startswith("ma") for m in matches)

    def test_results_are_unique(self, matcher):
        matches = matcher.completion_identifiers("lists:", LOCAL)
        keys = [m.key for m in matches]
        assert len(keys) == len(set(keys))

    def test_resolution_is_idempotent(self, matcher):
        """Same hint and unchanged runtime give equal results."""
        first = matcher.completion_identifiers("lists:re", LOCAL)
        second = matcher.completion_identifiers("lists:re", LOCAL)
        assert first == second

    def test_no_context_returns_empty(self, matcher, lists_provider):
        assert matcher.completion_identifiers("lists", LOCAL) == []
        assert matcher.completion_identifiers("Mod:f", LOCAL) == []
        assert lists_provider.calls["list_exports"] == 0

    def test_unknown_module_returns_empty(self, matcher):
        assert matcher.completion_identifiers("nosuchmod:", LOCAL) == []

    def test_local_unloaded_module_is_not_introspected(self, matcher, lists_provider):
        """Asking for exports of an unloaded module would load it."""
        assert matcher.completion_identifiers("unloaded_mod:f", LOCAL) == []
        assert lists_provider.calls["is_loaded"] == 1
        assert lists_provider.calls["list_exports"] == 0

    def test_local_target_does_not_enumerate_modules(self, matcher, lists_provider):
        matcher.completion_identifiers("lists:ma", LOCAL)
        assert lists_provider.calls["list_loaded_modules"] == 0


class TestRemoteTargets:
    """Tests for resolution against remote nodes."""

    def test_remote_uses_loaded_module_cache(self, lists_provider, lists_docs):
        matcher = make_matcher(lists_provider, lists_docs)

        matcher.completion_identifiers("lists:ma", REMOTE)
        matcher.completion_identifiers("lists:re", REMOTE)

        assert lists_provider.calls["list_loaded_modules"] == 1
        assert lists_provider.calls["is_loaded"] == 0

    def test_remote_module_not_loaded(self, lists_provider, lists_docs):
        matcher = make_matcher(lists_provider, lists_docs)
        assert matcher.completion_identifiers("unloaded_mod:", REMOTE) == []
        assert lists_provider.calls["list_exports"] == 0

    def test_unreachable_remote_returns_empty(self, lists_docs):
        provider = FakeProvider(exports={"lists": [("map", 2)]}, fail=["list_loaded_modules"])
        matcher = make_matcher(provider, lists_docs)
        assert matcher.completion_identifiers("lists:", REMOTE) == []


class TestDocumentationJoin:
    """Tests for joining documentation onto matches."""

    def test_missing_docs_use_default_record(self, lists_provider, lists_docs):
        """member/2 has no documentation entry."""
        matcher = make_matcher(lists_provider, lists_docs)
        [match] = matcher.completion_identifiers("lists:mem", LOCAL)

        assert match.from_default is True
        assert match.documentation is None
        assert match.signatures == []

    def test_docs_failure_degrades_to_defaults(self, lists_provider):
        matcher = make_matcher(lists_provider, FakeDocs(fail=True))
        matches = matcher.completion_identifiers("lists:ma", LOCAL)

        assert labels(matches) == ["map/2", "max/1"]
        assert all(m.from_default for m in matches)

    def test_docs_requested_in_bulk(self, lists_provider, lists_docs):
        """One documentation lookup per member kind."""
        matcher = make_matcher(lists_provider, lists_docs)
        matcher.completion_identifiers("lists:", LOCAL)

        requested = [members for module, members in lists_docs.requests]
        assert len(requested) == 2
        assert ("map", 2) in requested[0]
        assert requested[1] == [("filter_fun", 1)]

    def test_deprecation_meta_is_carried(self):
        provider = FakeProvider(exports={"mod": [("old", 0)]})
        docs = FakeDocs({"mod": [documented("old", 0, meta={"deprecated": "use new/0"})]})
        [match] = make_matcher(provider, docs).completion_identifiers("mod:o", LOCAL)
        assert match.meta["deprecated"] == "use new/0"


    def test_malformed_docs_chunk_degrades_to_defaults(self):
        """A bad docs chunk from the runtime never escapes resolution."""
        chunk = ["docs_v1", 1, "erlang", "text/markdown", "none", {},
                 [[["function", "foo", 1], 1, [], "none", ["x"]]]]
        replies = {
            ("code", "is_loaded"): ["file", "mod.beam"],
            ("mod", "module_info"): [["foo", 1]],
            ("code", "get_doc"): chunk,
        }
        client = MagicMock()
        client.call.side_effect = lambda target, module, function, args: replies[(module, function)]

        matcher = make_matcher(RpcIntrospectionProvider(client), RpcDocumentationStore(client))
        matches = matcher.completion_identifiers("mod:", LOCAL)

        assert labels(matches) == ["foo/1"]
        assert matches[0].from_default is True


class TestMacrosAndTypes:
    """Tests for macro exports and type matches."""

    def test_macro_exports_are_decoded(self):
        """MACRO-name/N is the macro name/N-1."""
        provider = FakeProvider(exports={"mod": [("MACRO-debug", 2), ("dump", 1)]})
        docs = FakeDocs({"mod": [documented("debug", 1, doc="Debug macro.", kind=MemberKind.MACRO)]})

        matches = make_matcher(provider, docs).completion_identifiers("mod:d", LOCAL)

        macro = next(m for m in matches if m.name == "debug")
        assert macro.arity == 1
        assert macro.type is MemberKind.MACRO
        assert macro.documentation == "Debug macro."

    def test_type_match_carries_spec(self, lists_provider, lists_docs):
        matcher = make_matcher(lists_provider, lists_docs)
        [match] = matcher.completion_identifiers("lists:filter", LOCAL)

        assert isinstance(match, TypeMatch)
        assert match.kind is MatchKind.TYPE
        assert match.type_spec == "-type filter_fun(T) :: fun((T) -> boolean())."
        assert match.documentation == "A filter."

    def test_missing_type_table_gives_functions_only(self, lists_docs):
        provider = FakeProvider(exports={"lists": [("map", 2)]})
        matches = make_matcher(provider, lists_docs).completion_identifiers("lists:", LOCAL)
        assert labels(matches) == ["map/2"]

    def test_quoted_names_get_display_name(self):
        provider = FakeProvider(exports={"mod": [("Weird Name", 0)]})
        [match] = make_matcher(provider, FakeDocs()).completion_identifiers("mod:", LOCAL)
        assert match.display_name == "'Weird Name'"
