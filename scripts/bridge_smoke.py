#!/usr/bin/env python3
"""Smoke test for intellisense against a live runtime bridge."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from erlsense import Intellisense, RuntimeTarget
from erlsense.core.config import load_config
from erlsense.core.exceptions import CallError
from erlsense.docs.store import RpcDocumentationStore
from erlsense.runtime.client import BridgeClient
from erlsense.runtime.introspection import RpcIntrospectionProvider

COMPLETION_HINTS = ["lists:", "lists:ma", "maps:get", "erlang:self"]
SIGNATURE_HINTS = ["lists:map(", "maps:get(Key, ", "lists:foldl(fun(X, A) -> X + A end, "]


def smoke_test(node: str | None = None) -> bool:
    """Run a few completion and signature requests; True if all answered."""
    config = load_config()
    target = RuntimeTarget.remote(node) if node else config.target

    print(f"Testing bridge {' '.join(config.bridge_command)} on target {target}")
    print("=" * 60)

    try:
        client = BridgeClient(config.bridge_command, timeout_seconds=config.timeout_seconds)
        client.start()
    except CallError as e:
        print(f"ERROR: {e}")
        return False

    ok = True
    try:
        modules = RpcIntrospectionProvider(client).list_loaded_modules(target)
        print(f"{len(modules)} modules loaded")

        engine = Intellisense(RpcIntrospectionProvider(client), RpcDocumentationStore(client))

        for hint in COMPLETION_HINTS:
            items = engine.handle_request(("completion", hint), target)["items"]
            print(f"\n--- complete {hint!r}: {len(items)} items ---")
            for item in items[:5]:
                print(f"  {item['label']}")
            ok = ok and bool(items)

        for hint in SIGNATURE_HINTS:
            result = engine.handle_request(("signature", hint), target)
            print(f"\n--- signature {hint!r} ---")
            if result is None:
                print("  (no call)")
                ok = False
                continue
            print(f"  active argument: {result['active_argument']}")
            for item in result["signature_items"]:
                print(f"  {item['signature']}")

    except CallError as e:
        print(f"ERROR: {e}")
        ok = False
    finally:
        client.stop()

    print()
    print("PASSED" if ok else "FAILED")
    return ok


if __name__ == "__main__":
    sys.exit(0 if smoke_test(sys.argv[1] if len(sys.argv) > 1 else None) else 1)
