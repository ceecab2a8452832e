"""Configuration management for erlsense library."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .types import RuntimeTarget

DEFAULT_BRIDGE_COMMAND = ["erlsense-bridge"]


@dataclass
class ErlsenseConfig:
    """Main configuration for erlsense library.

    This configuration can be loaded from:
    - erlsense.yaml in the working directory
    - ERLSENSE_CONFIG environment variable
    - Programmatic configuration
    """

    # Command that starts the bridge process attached to the runtime
    bridge_command: list[str] = field(default_factory=lambda: list(DEFAULT_BRIDGE_COMMAND))

    # Per-call timeout for bridge requests
    timeout_seconds: float = 5.0

    # Remote node to introspect (None for the node the bridge runs on)
    node: str | None = None

    # Runtime snapshot used instead of a live bridge
    snapshot_path: Path | None = None

    def __post_init__(self) -> None:
        if isinstance(self.snapshot_path, str):
            self.snapshot_path = Path(self.snapshot_path)
        if isinstance(self.bridge_command, str):
            self.bridge_command = self.bridge_command.split()
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                "timeout_seconds must be positive",
                {"timeout_seconds": self.timeout_seconds},
            )

    @property
    def target(self) -> RuntimeTarget:
        """Runtime target selected by this configuration."""
        if self.node:
            return RuntimeTarget.remote(self.node)
        return RuntimeTarget.local()

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "bridge_command": list(self.bridge_command),
            "timeout_seconds": self.timeout_seconds,
            "node": self.node,
            "snapshot_path": str(self.snapshot_path) if self.snapshot_path else None,
        }

    def save(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErlsenseConfig:
        """Create configuration from dictionary."""
        try:
            timeout = float(data.get("timeout_seconds", 5.0))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                "timeout_seconds must be a number",
                {"timeout_seconds": data.get("timeout_seconds")},
            ) from e

        return cls(
            bridge_command=data.get("bridge_command") or list(DEFAULT_BRIDGE_COMMAND),
            timeout_seconds=timeout,
            node=data.get("node"),
            snapshot_path=Path(data["snapshot_path"]) if data.get("snapshot_path") else None,
        )


def load_config(
    config_path: Path | str | None = None,
    search_paths: list[Path | str] | None = None,
) -> ErlsenseConfig:
    """Load erlsense configuration.

    Search order:
    1. Explicit config_path if provided
    2. ERLSENSE_CONFIG environment variable
    3. search_paths if provided
    4. Default locations: ./erlsense.yaml, ~/.erlsense/config.yaml

    Args:
        config_path: Explicit path to configuration file
        search_paths: Additional paths to search for configuration

    Returns:
        ErlsenseConfig instance

    Raises:
        ConfigurationError: If configuration file has errors
    """
    paths_to_check: list[Path] = []

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}", {"path": str(path)}
            )
        paths_to_check.append(path)

    if env_config := os.environ.get("ERLSENSE_CONFIG"):
        paths_to_check.append(Path(env_config))

    if search_paths:
        paths_to_check.extend(Path(p) for p in search_paths)

    paths_to_check.extend([
        Path.cwd() / "erlsense.yaml",
        Path.cwd() / "erlsense.yml",
        Path.home() / ".erlsense" / "config.yaml",
    ])

    for path in paths_to_check:
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    if path.suffix in (".yaml", ".yml"):
                        data = yaml.safe_load(f)
                    else:
                        data = json.load(f)
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Failed to parse configuration file: {path}",
                    {"path": str(path), "error": str(e)},
                ) from e
            if data is not None and not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file must contain a mapping: {path}",
                    {"path": str(path)},
                )
            return ErlsenseConfig.from_dict(data or {})

    return ErlsenseConfig()
