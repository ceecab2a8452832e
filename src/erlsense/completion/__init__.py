"""Completion and signature help.

Terms:
- Cursor context: What the text before the cursor is asking for
- IdentifierMatcher: Resolves ``mod:pre`` against a runtime target
- SignatureMatcher: Finds the open call at the cursor and its signatures

Laws:
- L-fallback-graceful: Runtime failures yield no results, never errors
"""

from erlsense.completion.context import classify, classify_fragment
from erlsense.completion.identifier_matcher import IdentifierMatcher, prefix_matcher
from erlsense.completion.signature_matcher import SignatureMatcher, locate_call

__all__ = [
    "classify",
    "classify_fragment",
    "IdentifierMatcher",
    "prefix_matcher",
    "SignatureMatcher",
    "locate_call",
]
