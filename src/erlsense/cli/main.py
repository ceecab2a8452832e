"""CLI entry point for erlsense.

Provides commands for:
- complete: Completion items for a fragment ending in ``mod:`` or ``mod:pre``
- signature: Signature help for a fragment ending inside a call
- modules: Modules loaded on a runtime target
"""

from __future__ import annotations

import json
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Any

import click

from ..core.config import ErlsenseConfig, load_config
from ..core.exceptions import ErlsenseError
from ..core.types import RuntimeTarget


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_config(
    config_path: Path | None, node: str | None, snapshot: Path | None
) -> ErlsenseConfig:
    config = load_config(config_path)
    if node:
        config.node = node
    if snapshot:
        config.snapshot_path = snapshot
    return config


def _open_runtime(config: ErlsenseConfig, stack: ExitStack):
    """Build the introspection provider and documentation store for ``config``."""
    if config.snapshot_path:
        from ..docs.store import SnapshotDocumentationStore
        from ..runtime.introspection import SnapshotIntrospectionProvider
        from ..runtime.snapshot import RuntimeSnapshot

        snapshot = RuntimeSnapshot.from_yaml(config.snapshot_path)
        return SnapshotIntrospectionProvider(snapshot), SnapshotDocumentationStore(snapshot)

    from ..docs.store import RpcDocumentationStore
    from ..runtime.client import BridgeClient
    from ..runtime.introspection import RpcIntrospectionProvider

    client = stack.enter_context(
        BridgeClient(config.bridge_command, timeout_seconds=config.timeout_seconds)
    )
    return RpcIntrospectionProvider(client), RpcDocumentationStore(client)


def _run(config: ErlsenseConfig, request: tuple) -> Any:
    from ..intellisense import Intellisense

    with ExitStack() as stack:
        provider, docs = _open_runtime(config, stack)
        engine = Intellisense(provider, docs)
        return engine.handle_request(request, config.target)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def runtime_options(func):
    """Options selecting the runtime target, shared by every command."""
    func = click.option(
        "--config", "-c", "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file (default: erlsense.yaml or ERLSENSE_CONFIG)",
    )(func)
    func = click.option(
        "--snapshot", "-s",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Runtime snapshot to use instead of a live bridge",
    )(func)
    func = click.option(
        "--node", "-n",
        help="Remote node to introspect (default: the bridge's own node)",
    )(func)
    return func


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """erlsense - Intellisense for Erlang runtimes.

    Completion and signature help for code fragments, answered by
    introspecting the modules loaded on a runtime node.

    Examples:

      # Complete a qualified name
      erlsense complete "lists:ma"

      # Signature help inside a call
      erlsense signature "maps:get(Key, "

      # Work offline from a snapshot
      erlsense complete --snapshot runtime.yaml "lists:"
    """
    _configure_logging(verbose)


@main.command()
@click.argument("hint")
@runtime_options
def complete(
    hint: str,
    node: str | None,
    snapshot: Path | None,
    config_path: Path | None,
) -> None:
    """Print completion items for the end of HINT as JSON."""
    try:
        config = _resolve_config(config_path, node, snapshot)
        result = _run(config, ("completion", hint))
    except ErlsenseError as e:
        click.echo(f"Completion failed: {e}", err=True)
        raise click.Abort()
    _echo_json(result)


@main.command()
@click.argument("hint")
@runtime_options
def signature(
    hint: str,
    node: str | None,
    snapshot: Path | None,
    config_path: Path | None,
) -> None:
    """Print signature help for the call open at the end of HINT as JSON.

    Prints null when HINT does not end inside a call.
    """
    try:
        config = _resolve_config(config_path, node, snapshot)
        result = _run(config, ("signature", hint))
    except ErlsenseError as e:
        click.echo(f"Signature lookup failed: {e}", err=True)
        raise click.Abort()
    _echo_json(result)


@main.command()
@runtime_options
def modules(
    node: str | None,
    snapshot: Path | None,
    config_path: Path | None,
) -> None:
    """List the modules loaded on the runtime target."""
    try:
        config = _resolve_config(config_path, node, snapshot)
        with ExitStack() as stack:
            provider, _docs = _open_runtime(config, stack)
            target: RuntimeTarget = config.target
            # Unlike completion, a failure here is reported
            loaded = provider.list_loaded_modules(target)
    except ErlsenseError as e:
        click.echo(f"Listing modules failed: {e}", err=True)
        raise click.Abort()

    if not loaded:
        click.echo(f"No modules loaded on {target}")
        return

    for name in sorted(set(loaded)):
        click.echo(name)


if __name__ == "__main__":
    main()
